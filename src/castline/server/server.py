"""uvicorn server construction."""

from collections.abc import Awaitable, Callable
import logging
from typing import Any

import uvicorn

from ..config import AppSettings
from ..feed import FeedService
from ..jobs import BackgroundJobQueue, NonceSigner
from ..store import ObjectStore
from .app import create_app

logger = logging.getLogger(__name__)


def create_server(
    settings: AppSettings,
    feed_service: FeedService,
    object_store: ObjectStore,
    job_queue: BackgroundJobQueue,
    nonce_signer: NonceSigner,
    log_config: dict[str, Any],
    shutdown_callback: Callable[[], Awaitable[None]] | None = None,
) -> uvicorn.Server:
    """Create a uvicorn server running the castline app.

    Args:
        settings: Application settings with the bind address.
        feed_service: Feed retrieval service.
        object_store: Object register and data storage.
        job_queue: Background job queue.
        nonce_signer: Verifier for worker trigger nonces.
        log_config: The dictConfig mapping installed by ``setup_logging``.
        shutdown_callback: Awaited when the server shuts down.

    Returns:
        Configured server, ready to ``serve()``.
    """
    app = create_app(
        feed_service=feed_service,
        object_store=object_store,
        job_queue=job_queue,
        nonce_signer=nonce_signer,
        shutdown_callback=shutdown_callback,
    )
    config = uvicorn.Config(
        app=app,
        host=settings.server_host,
        port=settings.server_port,
        log_config=log_config,
        access_log=False,
        ws="none",
        lifespan="on",
    )
    server = uvicorn.Server(config)
    logger.debug(
        "HTTP server configured.",
        extra={"host": settings.server_host, "port": settings.server_port},
    )
    return server
