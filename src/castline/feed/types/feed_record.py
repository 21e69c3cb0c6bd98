"""Feed record produced by feed extraction."""

import html
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .cache_duration import CacheDuration
from .customizations import FeedCustomizations
from .episode_record import EpisodeRecord


class Owner(BaseModel):
    """The ``itunes:owner`` block."""

    name: str = ""
    email: str = ""


class PodcastCategory(BaseModel):
    """An ``itunes:category`` with its subcategories."""

    label: str
    subcats: list[str] = Field(default_factory=list[str])


class FeedRecord(BaseModel):
    """Normalized channel data plus the ordered episode mapping.

    ``items`` preserves feed order and is keyed by episode key (md5 of the
    media URL).

    Attributes:
        title: Podcast title.
        description: Podcast description.
        link: Podcast website.
        image: Cover image URL.
        cover_id: Local asset id of the cover, 0 if not saved.
        furl: Feed URL the record was fetched from.
        fkey: md5 of ``furl``.
        copyright: Copyright notice.
        author: First listed author.
        podcats: iTunes categories keyed by normalized label.
        owner: iTunes owner.
        funding: Funding URLs mapped to their label.
        items: Episodes keyed by episode key.
        seasons: Distinct season numbers.
        categories: Union of episode categories.
        total: Number of episodes.
        etag: ETag response header.
        last_modified: Last-Modified response header.
        is_active: Whether an episode was released in the last 90 days.
        release_cycle: Estimated days between episodes.
        last_released: Timestamp of the most recent episode.
        cache_duration: Seconds the record may be reused before refetching.
    """

    model_config = ConfigDict(extra="ignore")

    title: str = ""
    description: str = ""
    link: str = ""
    image: str = ""
    cover_id: int = 0
    furl: str = ""
    fkey: str = ""
    copyright: str = ""
    author: str = ""
    podcats: dict[str, PodcastCategory] = Field(default_factory=dict[str, PodcastCategory])
    owner: Owner = Field(default_factory=Owner)
    funding: dict[str, str] = Field(default_factory=dict[str, str])
    items: dict[str, EpisodeRecord] = Field(default_factory=dict[str, EpisodeRecord])
    seasons: list[int] = Field(default_factory=list[int])
    categories: dict[str, str] = Field(default_factory=dict[str, str])
    total: int = 0
    etag: str = ""
    last_modified: str = ""
    is_active: bool = True
    release_cycle: float = 7
    last_released: int = 0
    cache_duration: int = CacheDuration.ONE_DAY.seconds

    @field_validator("title", mode="before")
    @classmethod
    def clean_title(cls, v: Any) -> str:
        return html.unescape(str(v or "")).strip()

    @field_validator(
        "description", "link", "image", "copyright", "author", "etag", "last_modified",
        mode="before",
    )
    @classmethod
    def strip_text(cls, v: Any) -> str:
        return str(v or "").strip()

    def refresh_derived(self) -> None:
        """Recompute ``seasons``, ``categories`` and ``total`` from ``items``."""
        seasons: list[int] = []
        categories: dict[str, str] = {}
        for item in self.items.values():
            if item.season and item.season not in seasons:
                seasons.append(item.season)
            categories.update(item.categories)
        self.seasons = seasons
        self.categories = categories
        self.total = len(self.items)

    def with_customizations(self, custom: FeedCustomizations) -> "FeedRecord":
        """Return a copy with recorded asset and post ids overlaid.

        Overrides for episodes no longer in ``items`` are ignored.
        """
        record = self.model_copy(deep=True)
        if custom.cover_id:
            record.cover_id = custom.cover_id
        for key, override in custom.items.items():
            item = record.items.get(key)
            if item is None:
                continue
            updates = {k: v for k, v in override.model_dump().items() if v}
            if updates:
                record.items[key] = item.model_copy(update=updates)
        record.refresh_derived()
        return record
