"""Background task types."""

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field


class TaskType(StrEnum):
    """Kinds of background work, each with one registered handler."""

    DOWNLOAD_IMAGE = "download_image"
    IMPORT_EPISODES = "import_episodes"
    UPDATE_PODCAST_DATA = "update_podcast_data"

    @property
    def is_coalescible(self) -> bool:
        """Whether new work of this type merges into an outstanding task."""
        return self in (TaskType.DOWNLOAD_IMAGE, TaskType.IMPORT_EPISODES)


class Task(BaseModel):
    """A queued unit of background work.

    Payload shape depends on the type: ``download_image`` carries a mapping
    of item key to image URL, ``import_episodes`` a list of episode keys and
    ``update_podcast_data`` the feed URL.

    Attributes:
        id: First 12 hex chars of md5(identifier + type).
        identifier: Routing id; md5 of the feed URL for feed-scoped work.
        type: Task type.
        data: Payload.
        priority: Lower runs first.
        attempts: Failed runs so far.
    """

    id: str
    identifier: str
    type: TaskType
    data: Any = None
    priority: int = 10
    attempts: int = Field(default=0, ge=0)
