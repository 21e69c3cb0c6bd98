"""Durable background job queue.

Tasks live in a single option holding a map of task id to task. Every
mutation is a read-modify-write of that map, serialized in-process by
``_mutate_tasks``. Workers are gated by a global TTL lock held in a
transient, so a crashed worker's lock simply expires.

A worker cycle handles exactly one task, pauses, releases the lock and then
dispatches the next cycle until the queue is empty.
"""

import asyncio
from collections.abc import AsyncGenerator, Callable
from contextlib import asynccontextmanager
from datetime import timedelta
import hashlib
import logging
from typing import Any

from ..db import KeyValueStore
from ..exceptions import InvalidNonceError, TaskHandlerNotFoundError
from ..logging_config import set_context_id
from ..mimetypes import is_http_url
from .dispatcher import Dispatcher
from .memory import current_memory_usage
from .nonce import NonceSigner
from .types import Task, TaskHandler, TaskStatus, TaskType

logger = logging.getLogger(__name__)

QUEUE_OPTION = "castline_bg_jobs"
LOCK_TRANSIENT = "castline_bg_jobs_process_lock"
IMG_SAVE_OPTION = "castline_img_save"

MAX_ATTEMPTS = 3
MEMORY_THRESHOLD = 0.9
DEFAULT_PRIORITY = 10


def _md5(value: str) -> str:
    return hashlib.md5(value.encode("utf-8")).hexdigest()


def normalize_identifier(identifier: str) -> str:
    """Replace a URL routing id by its md5; other ids pass through."""
    return _md5(identifier) if is_http_url(identifier) else identifier


def task_id_for(identifier: str, task_type: TaskType) -> str:
    return _md5(normalize_identifier(identifier) + task_type.value)[:12]


class BackgroundJobQueue:
    """Enqueue, coalesce, dispatch and execute background tasks.

    Attributes:
        _kv: Option and transient storage.
        _nonces: Nonce verifier for worker requests.
        _lock_ttl: Lifetime of the worker lock.
        _pause: Sleep taken after each handled task.
        _memory_limit: Memory ceiling in bytes.
        _memory_usage: Source of the current memory usage.
        _handlers: Registered handler per task type.
        _dispatcher: Wakes workers; set with ``attach_dispatcher``.
    """

    def __init__(
        self,
        kv_store: KeyValueStore,
        nonces: NonceSigner,
        lock_ttl: timedelta = timedelta(seconds=30),
        pause: timedelta = timedelta(seconds=5),
        memory_limit: int = 1024 * 1024 * 1024,
        memory_usage: Callable[[], int] = current_memory_usage,
    ):
        self._kv = kv_store
        self._nonces = nonces
        self._lock_ttl = lock_ttl
        self._pause = pause
        self._memory_limit = memory_limit
        self._memory_usage = memory_usage
        self._handlers: dict[TaskType, TaskHandler] = {}
        self._dispatcher: Dispatcher | None = None
        self._tasks_lock = asyncio.Lock()

    def register_handler(self, task_type: TaskType, handler: TaskHandler) -> None:
        self._handlers[task_type] = handler

    def attach_dispatcher(self, dispatcher: Dispatcher) -> None:
        self._dispatcher = dispatcher

    # --- Task map ---

    async def get_tasks(self) -> dict[str, Task]:
        """Return all queued tasks keyed by task id, in insertion order."""
        raw: dict[str, Any] = await self._kv.get_option(QUEUE_OPTION, {})
        return {task_id: Task.model_validate(task) for task_id, task in raw.items()}

    @asynccontextmanager
    async def _mutate_tasks(self) -> AsyncGenerator[dict[str, Task]]:
        """Yield the task map for modification and persist it afterwards."""
        async with self._tasks_lock:
            tasks = await self.get_tasks()
            yield tasks
            await self._kv.set_option(
                QUEUE_OPTION,
                {task_id: task.model_dump(mode="json") for task_id, task in tasks.items()},
            )

    async def add_task(
        self,
        identifier: str,
        task_type: TaskType,
        data: Any,
        priority: int = DEFAULT_PRIORITY,
    ) -> Task:
        """Queue work, merging it into an outstanding task of the same kind.

        ``download_image`` payloads merge key-wise and ``import_episodes``
        payloads merge as an ordered union. Other types replace the
        outstanding task, which resets its attempts.

        Args:
            identifier: Routing id, usually the feed URL.
            task_type: Kind of work.
            data: Payload.
            priority: Lower runs first.

        Returns:
            The task as stored.
        """
        routing_id = normalize_identifier(identifier)
        task_id = task_id_for(identifier, task_type)
        async with self._mutate_tasks() as tasks:
            existing = tasks.get(task_id)
            if existing is not None and task_type.is_coalescible:
                task = existing.model_copy(
                    update={"data": self._merge_payload(task_type, existing.data, data)}
                )
            else:
                task = Task(
                    id=task_id,
                    identifier=routing_id,
                    type=task_type,
                    data=data,
                    priority=priority,
                )
            tasks[task_id] = task

        logger.debug(
            "Queued background task.",
            extra={
                "task_id": task_id,
                "task_type": task_type.value,
                "coalesced": existing is not None,
            },
        )
        return task

    @staticmethod
    def _merge_payload(task_type: TaskType, current: Any, new: Any) -> Any:
        match task_type:
            case TaskType.DOWNLOAD_IMAGE:
                return {**(current or {}), **(new or {})}
            case TaskType.IMPORT_EPISODES:
                return list(dict.fromkeys([*(current or []), *(new or [])]))
            case _:
                return new

    async def remove_task(self, task_id: str) -> bool:
        """Drop a task regardless of its state."""
        async with self._mutate_tasks() as tasks:
            removed = tasks.pop(task_id, None)
        return removed is not None

    # --- State ---

    async def is_processing(self) -> bool:
        """Whether a worker currently holds the lock."""
        return await self._kv.get_transient(LOCK_TRANSIENT) is not None

    async def is_queue_empty(self) -> bool:
        return not await self.get_tasks()

    def memory_exceeded(self) -> bool:
        """Whether usage is at or above 90% of the memory limit."""
        return self._memory_usage() >= self._memory_limit * MEMORY_THRESHOLD

    # --- Dispatch and execution ---

    async def dispatch(self) -> bool:
        """Wake a worker unless one is running or there is nothing to do.

        Returns:
            True if a worker was woken.
        """
        if self._dispatcher is None:
            logger.warning("No dispatcher attached; background tasks will not run.")
            return False
        if await self.is_processing() or await self.is_queue_empty():
            return False
        await self._dispatcher.dispatch()
        return True

    async def maybe_handle(self, nonce: str | None) -> bool:
        """Run one worker cycle if allowed.

        Raises:
            InvalidNonceError: If the nonce is missing or stale.

        Returns:
            True if a task was handled.
        """
        if not self._nonces.verify(nonce):
            raise InvalidNonceError("Worker request nonce is invalid.")
        if await self.is_processing() or await self.is_queue_empty():
            return False
        if self.memory_exceeded():
            logger.warning(
                "Memory budget nearly exhausted; postponing background work.",
                extra={"memory_limit": self._memory_limit},
            )
            await asyncio.sleep(self._pause.total_seconds())
            await self.dispatch()
            return False
        return await self.handle()

    async def handle(self) -> bool:
        """Acquire the lock and run the highest-priority task.

        Returns:
            True if a task was run, False if the lock was held or the queue
            was empty.
        """
        if not await self._kv.add_transient(LOCK_TRANSIENT, "locked", self._lock_ttl):
            logger.debug("Queue lock held by another worker.")
            return False

        handled = False
        try:
            tasks = await self.get_tasks()
            if tasks:
                task = sorted(tasks.values(), key=lambda t: t.priority)[0]
                await self._run(task)
                handled = True
        finally:
            await asyncio.sleep(self._pause.total_seconds())
            await self._kv.delete_transient(LOCK_TRANSIENT)

        if handled:
            await self.dispatch()
        return handled

    async def _run(self, task: Task) -> None:
        set_context_id(f"task-{task.id}")
        log_params = {"task_id": task.id, "task_type": task.type.value}
        logger.debug("Running background task.", extra=log_params)

        status: TaskStatus
        result: Any
        try:
            handler = self._handlers.get(task.type)
            if handler is None:
                raise TaskHandlerNotFoundError(
                    "No handler registered for task type.",
                    task_id=task.id,
                    task_type=task.type.value,
                )
            status, result = await handler(task.identifier, task.data)
        except Exception as e:
            status, result = e, None

        if isinstance(status, Exception) or isinstance(result, Exception):
            error = status if isinstance(status, Exception) else result
            await self._record_failure(task, error)
        elif status is False:
            logger.debug("Handler declined task; leaving it queued.", extra=log_params)
        else:
            await self._record_success(task, result)

    async def _record_success(self, task: Task, completed: Any) -> None:
        async with self._mutate_tasks() as tasks:
            current = tasks.get(task.id)
            if current is None:
                return
            if not task.type.is_coalescible:
                del tasks[task.id]
            elif completed:
                remaining = self._trim_payload(current, completed)
                if remaining:
                    tasks[task.id] = current.model_copy(update={"data": remaining})
                else:
                    del tasks[task.id]
            done = task.id not in tasks

        logger.info(
            "Background task completed." if done else "Background task progressed.",
            extra={"task_id": task.id, "task_type": task.type.value},
        )

    @staticmethod
    def _trim_payload(task: Task, completed: Any) -> Any:
        match task.type:
            case TaskType.DOWNLOAD_IMAGE:
                done = set(completed)
                return {k: v for k, v in (task.data or {}).items() if k not in done}
            case TaskType.IMPORT_EPISODES:
                done = set(completed)
                return [k for k in (task.data or []) if k not in done]
            case _:
                return None

    async def _record_failure(self, task: Task, error: Exception) -> None:
        async with self._mutate_tasks() as tasks:
            current = tasks.get(task.id)
            if current is None:
                return
            attempts = current.attempts + 1
            if attempts < MAX_ATTEMPTS:
                tasks[task.id] = current.model_copy(update={"attempts": attempts})
            else:
                del tasks[task.id]

        log_params = {
            "task_id": task.id,
            "task_type": task.type.value,
            "attempts": attempts,
        }
        if attempts < MAX_ATTEMPTS:
            logger.warning(
                "Background task failed; will retry.", extra=log_params, exc_info=error
            )
            return

        logger.error(
            "Background task failed too often; dropped.",
            extra=log_params,
            exc_info=error,
        )
        if task.type is TaskType.DOWNLOAD_IMAGE:
            await self._kv.set_option(IMG_SAVE_OPTION, "no")
            logger.error(
                "Image downloads keep failing; image saving has been disabled.",
                extra=log_params,
            )
