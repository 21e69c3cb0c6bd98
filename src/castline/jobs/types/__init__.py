"""Background job types."""

from .handler import TaskHandler, TaskResult, TaskStatus
from .task import Task, TaskType

__all__ = ["Task", "TaskHandler", "TaskResult", "TaskStatus", "TaskType"]
