"""Types for the object register."""

from enum import StrEnum

from pydantic import BaseModel, Field


class DataKind(StrEnum):
    """Names of the attribute-bag entries kept per stored object."""

    FEED_DATA = "feed_data"
    LAST_CHECKED = "last_checked"
    MODIFIED_FEED_DATA = "modified_feed_data"


class ObjectIndexEntry(BaseModel):
    """Register entry mapping a podcast's keys to its stored object.

    Attributes:
        unique_id: md5 of the key the object was created with.
        title: Display title.
        feed_url: Every known key (feed URL and aliases) for the object.
        object_keys: md5 of each entry in ``feed_url``.
        object_id: Numeric id of the stored object.
        is_hidden: Hidden objects are skipped when listing.
    """

    unique_id: str
    title: str = ""
    feed_url: list[str] = Field(default_factory=list[str])
    object_keys: list[str] = Field(default_factory=list[str])
    object_id: int
    is_hidden: bool = False

    def lookup(self, needle: str) -> bool:
        """Whether ``needle`` names this entry by any of its keys or ids."""
        return (
            needle in self.object_keys
            or needle in self.feed_url
            or needle == str(self.object_id)
            or needle == self.unique_id
        )
