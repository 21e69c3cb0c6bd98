"""Handler protocol for background tasks."""

from typing import Any, Protocol

type TaskStatus = bool | Exception
"""``True`` when handled, ``False`` when declined, or the error that occurred."""

type TaskResult = tuple[TaskStatus, Any]


class TaskHandler(Protocol):
    """Callable that performs one pass of a task's work.

    Returns ``(status, data)``. On success ``data`` is the completed part of
    the payload (keys or ids), which the queue trims from the task.
    """

    async def __call__(self, identifier: str, data: Any) -> TaskResult: ...
