# pyright: reportUnknownVariableType=false, reportUnknownMemberType=false

"""Imported episode post table."""

from datetime import datetime

from sqlalchemy import JSON, Column, text
from sqlmodel import Field, SQLModel

from .timezone_aware_datetime import SQLITE_DATETIME_NOW, TimezoneAwareDatetime


class ImportedPost(SQLModel, table=True):
    """ORM model for an episode imported as a post.

    Attributes:
        id: Post id, recorded in feed customizations as the episode's post id.
        feed_key: md5 of the feed URL.
        episode_key: Episode key within the feed.
        episode_id: Stable episode identifier.
        title: Post title.
        content: Post body (episode description).
        published: Publish time (UTC).
        status: Post status, e.g. ``draft``.
        post_type: Post type, e.g. ``post``.
        media_url: Episode media URL.
        media_type: ``audio`` or ``video``.
        featured_asset_id: Asset attached as the post image, if any.
        taxonomy: Taxonomy the categories belong to.
        categories: Category labels assigned to the post.
        created_at: Import time (UTC).
    """

    __tablename__ = "imported_post"  # pyright: ignore[reportAssignmentType]

    id: int | None = Field(default=None, primary_key=True)
    feed_key: str = Field(index=True)
    episode_key: str
    episode_id: str = Field(default="")
    title: str
    content: str = Field(default="")
    published: datetime = Field(sa_column=Column(TimezoneAwareDatetime, nullable=False))
    status: str = Field(default="draft")
    post_type: str = Field(default="post")
    media_url: str = Field(default="")
    media_type: str = Field(default="audio")
    featured_asset_id: int | None = Field(default=None, foreign_key="asset.id")
    taxonomy: str | None = None
    categories: list[str] = Field(
        default_factory=list[str], sa_column=Column(JSON, nullable=False)
    )
    created_at: datetime | None = Field(
        default=None,
        sa_column=Column(
            TimezoneAwareDatetime,
            nullable=False,
            server_default=text(SQLITE_DATETIME_NOW),
        ),
    )
