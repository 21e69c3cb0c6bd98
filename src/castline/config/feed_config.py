"""Feed configuration models for castline.

Each entry under ``feeds:`` in the YAML config describes one podcast feed to
poll, plus the import settings used when new episodes are turned into posts.
"""

from datetime import timedelta
from typing import Any
from urllib.parse import urlparse

from pydantic import BaseModel, Field, field_validator

from .types import parse_duration


class ImportSettings(BaseModel):
    """How new episodes of a feed are imported as posts.

    Attributes:
        is_auto: Queue newly discovered episodes for import automatically.
        post_status: Status given to imported posts.
        post_type: Post type given to imported posts.
        is_get_img: Attach the episode's featured image to imported posts.
        taxonomy: Taxonomy that episode categories are assigned to, if any.
        batch_size: Maximum number of episodes imported per worker pass.
    """

    is_auto: bool = Field(
        default=False,
        description="Automatically import newly discovered episodes.",
    )
    post_status: str = Field(
        default="draft",
        min_length=1,
        description="Status for imported posts (e.g. 'draft', 'publish').",
    )
    post_type: str = Field(
        default="post",
        min_length=1,
        description="Post type for imported posts.",
    )
    is_get_img: bool = Field(
        default=False,
        description="Attach the episode image to the imported post.",
    )
    taxonomy: str | None = Field(
        default=None,
        description="Taxonomy for episode categories; categories are skipped when unset.",
    )
    batch_size: int = Field(
        default=10,
        ge=1,
        le=100,
        description="Maximum episodes imported per background pass.",
    )


class FeedConfig(BaseModel):
    """Configuration for a single podcast feed.

    Attributes:
        url: Feed URL.
        enabled: Whether the feed is polled on a schedule.
        title: Optional display title used until the feed has been fetched.
        aliases: Other URLs that resolve to the same feed.
        refresh_interval: Per-feed override of the global refresh interval.
        import_settings: Episode import options.
    """

    url: str = Field(..., min_length=1, description="Podcast feed URL.")
    enabled: bool = Field(
        default=True,
        description="Whether the feed is polled. Disabled feeds are still served from storage.",
    )
    title: str | None = Field(
        default=None,
        description="Display title used before the first successful fetch.",
    )
    aliases: list[str] = Field(
        default_factory=list[str],
        description="Additional URLs that should resolve to this feed.",
    )
    refresh_interval: timedelta | None = Field(
        default=None,
        description="Upper bound on how long fetched data is reused (e.g. '6h', '1 day').",
    )
    import_settings: ImportSettings = Field(
        default_factory=ImportSettings,
        description="Episode import options.",
    )

    @staticmethod
    def _require_http_url(value: str) -> str:
        parsed = urlparse(value)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError(f"Feed URL must be an http(s) URL, got '{value}'")
        return value

    @field_validator("url", mode="before")
    @classmethod
    def validate_url(cls, v: Any) -> str:
        """Strip the URL and require an http(s) scheme.

        Raises:
            ValueError: If the URL is not http(s).
            TypeError: If the value is not a string.
        """
        match v:
            case str() as s:
                return cls._require_http_url(s.strip())
            case _:
                raise TypeError(f"url must be a string, got {type(v).__name__}")

    @field_validator("aliases", mode="before")
    @classmethod
    def validate_aliases(cls, v: Any) -> list[str]:
        """Accept a single alias or a list of aliases."""
        match v:
            case None:
                return []
            case str() as s:
                return [cls._require_http_url(s.strip())]
            case list():
                return [cls._require_http_url(str(a).strip()) for a in v]  # type: ignore
            case _:
                raise TypeError(
                    f"aliases must be a string or list of strings, got {type(v).__name__}"
                )

    @field_validator("refresh_interval", mode="before")
    @classmethod
    def parse_refresh_interval(cls, v: Any) -> timedelta | None:
        """Parse the refresh interval as a duration."""
        return parse_duration(v, "refresh_interval")
