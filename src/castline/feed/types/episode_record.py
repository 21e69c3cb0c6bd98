"""Episode record produced by feed extraction."""

import html
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..date_parser import parse_feed_date


def _absint(v: Any) -> int:
    match v:
        case None | False | "":
            return 0
        case bool():
            return 1
        case int():
            return abs(v)
        case float():
            return abs(int(v))
        case str() as s:
            try:
                return abs(int(float(s.strip())))
            except ValueError:
                return 0
        case _:
            raise TypeError(f"expected an integer value, got {type(v).__name__}")


class PublishDate(BaseModel):
    """Publish time as a UTC timestamp plus the original UTC offset."""

    timestamp: int = 0
    offset: int = 0


class Transcript(BaseModel):
    """A ``podcast:transcript`` entry."""

    url: str
    type: str
    lang: str = ""
    rel: str = ""


class EpisodeRecord(BaseModel):
    """Normalized data for one playable episode.

    Field validators act as sanitizers, so records can be built from raw
    feed strings and from stored JSON alike.

    Attributes:
        title: Episode title with HTML entities decoded.
        description: Episode show notes (may contain HTML).
        author: First listed author.
        published: Publish timestamp and UTC offset.
        link: Canonical web link.
        media_url: Resolved media enclosure URL.
        media_type: ``audio`` or ``video``.
        featured_image: Episode image URL.
        featured_id: Local asset id of the featured image, 0 if not saved.
        episode: Episode number, ``"<season>-<episode>"`` when a season exists.
        season: Season number, 0 if none.
        categories: Category labels keyed by normalized label.
        episode_id: Stable identifier (Atom id, GUID, or md5 of the title).
        duration: Duration in seconds.
        episode_type: ``full``, ``trailer`` or ``bonus``.
        post_id: Id of the post this episode was imported as, 0 if none.
        transcripts: Transcript links.
        chapters: Chapter file URLs mapped to their MIME type.
    """

    model_config = ConfigDict(extra="ignore")

    title: str = ""
    description: str = ""
    author: str = ""
    published: PublishDate = Field(default_factory=PublishDate)
    link: str = ""
    media_url: str
    media_type: Literal["audio", "video"] = "audio"
    featured_image: str = ""
    featured_id: int = 0
    episode: str = ""
    season: int = 0
    categories: dict[str, str] = Field(default_factory=dict[str, str])
    episode_id: str = ""
    duration: int = 0
    episode_type: str = "full"
    post_id: int = 0
    transcripts: list[Transcript] = Field(default_factory=list[Transcript])
    chapters: dict[str, str] = Field(default_factory=dict[str, str])

    @field_validator("title", mode="before")
    @classmethod
    def clean_title(cls, v: Any) -> str:
        return html.unescape(str(v or "")).strip()

    @field_validator("description", "author", "link", "featured_image", mode="before")
    @classmethod
    def strip_text(cls, v: Any) -> str:
        return str(v or "").strip()

    @field_validator("episode_id", mode="before")
    @classmethod
    def clean_episode_id(cls, v: Any) -> str:
        return str(v or "").strip()

    @field_validator("episode_type", mode="before")
    @classmethod
    def default_episode_type(cls, v: Any) -> str:
        text = str(v or "").strip().lower()
        return text or "full"

    @field_validator("featured_id", "post_id", "season", mode="before")
    @classmethod
    def coerce_absint(cls, v: Any) -> int:
        return _absint(v)

    @field_validator("published", mode="before")
    @classmethod
    def parse_published(cls, v: Any) -> Any:
        """Accept a raw date string or a bare timestamp as well as a mapping."""
        match v:
            case None | "":
                return PublishDate()
            case str() as s:
                timestamp, offset = parse_feed_date(s)
                return PublishDate(timestamp=timestamp, offset=offset)
            case int() if not isinstance(v, bool):
                return PublishDate(timestamp=abs(v))
            case _:
                return v

    @field_validator("duration", mode="before")
    @classmethod
    def parse_duration(cls, v: Any) -> int:
        """Convert ``hh:mm:ss``, ``mm:ss`` or plain seconds into seconds."""
        match v:
            case None | False | "":
                return 0
            case int() | float():
                return _absint(v)
            case str() as s:
                seconds = 0
                for power, part in enumerate(reversed(s.strip().split(":"))):
                    seconds += _absint(part.split(".")[0]) * 60**power
                return seconds
            case _:
                raise TypeError(f"duration must be a string or number, got {type(v).__name__}")
