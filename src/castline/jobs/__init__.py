from .dispatcher import Dispatcher, HttpDispatcher, LocalDispatcher
from .nonce import NonceSigner
from .queue import IMG_SAVE_OPTION, BackgroundJobQueue
from .types import Task, TaskHandler, TaskResult, TaskType

__all__ = [
    "IMG_SAVE_OPTION",
    "BackgroundJobQueue",
    "Dispatcher",
    "HttpDispatcher",
    "LocalDispatcher",
    "NonceSigner",
    "Task",
    "TaskHandler",
    "TaskResult",
    "TaskType",
]
