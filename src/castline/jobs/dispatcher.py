"""Ways of waking a queue worker without waiting for it."""

import asyncio
from collections.abc import Awaitable, Callable
import logging
from typing import Any, Protocol

import httpx

from .nonce import NonceSigner

logger = logging.getLogger(__name__)

DISPATCH_TIMEOUT = httpx.Timeout(0.01, connect=1.0)


class Dispatcher(Protocol):
    """Starts a worker cycle and returns immediately."""

    async def dispatch(self) -> None: ...

    async def close(self) -> None: ...


class LocalDispatcher:
    """Run worker cycles as an in-process asyncio task.

    Only one drain task exists at a time. A dispatch that arrives while it
    runs re-arms it, so the drain task starts another cycle when the current
    one finishes.

    Attributes:
        _worker: Coroutine function run per cycle, called with a fresh nonce.
        _nonces: Nonce source.
    """

    def __init__(
        self,
        worker: Callable[[str], Awaitable[Any]],
        nonces: NonceSigner,
    ):
        self._worker = worker
        self._nonces = nonces
        self._drain_task: asyncio.Task[None] | None = None
        self._rearm = False

    @property
    def is_running(self) -> bool:
        return self._drain_task is not None and not self._drain_task.done()

    async def dispatch(self) -> None:
        if self.is_running:
            self._rearm = True
            return
        self._rearm = False
        self._drain_task = asyncio.create_task(self._drain(), name="castline-queue-drain")

    async def _drain(self) -> None:
        while True:
            self._rearm = False
            try:
                await self._worker(self._nonces.create())
            except Exception:
                logger.exception("Queue worker cycle failed.")
            if not self._rearm:
                return

    async def wait_idle(self) -> None:
        """Wait for the current drain task, if any, to finish."""
        if self._drain_task is not None:
            await asyncio.shield(self._drain_task)

    async def close(self) -> None:
        """Cancel an in-flight drain task."""
        if self._drain_task is None or self._drain_task.done():
            return
        self._drain_task.cancel()
        try:
            await self._drain_task
        except asyncio.CancelledError:
            logger.debug("Queue drain task cancelled.")


class HttpDispatcher:
    """Wake a worker by POSTing to the worker endpoint.

    Suits deployments running several server processes; any of them may pick
    up the request. The response is never awaited: the request is given a
    very short read timeout and the resulting read timeout is expected.
    Connect, write and pool timeouts mean the request never arrived and are
    reported like any other HTTP failure.

    Attributes:
        _client: HTTP client used for the request.
        _endpoint: Absolute URL of the worker endpoint.
        _nonces: Nonce source.
    """

    def __init__(self, client: httpx.AsyncClient, base_url: str, nonces: NonceSigner):
        self._client = client
        self._endpoint = base_url.rstrip("/") + "/api/jobs/handle"
        self._nonces = nonces
        self._pending: set[asyncio.Task[None]] = set()

    async def dispatch(self) -> None:
        task = asyncio.create_task(self._post(self._nonces.create()))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _post(self, nonce: str) -> None:
        try:
            await self._client.post(
                self._endpoint, params={"nonce": nonce}, timeout=DISPATCH_TIMEOUT
            )
        except httpx.ReadTimeout:
            logger.debug("Worker request sent.", extra={"endpoint": self._endpoint})
        except httpx.HTTPError as e:
            logger.warning(
                "Failed to send worker request.",
                extra={"endpoint": self._endpoint},
                exc_info=e,
            )

    async def close(self) -> None:
        for task in list(self._pending):
            task.cancel()
        self._pending.clear()
