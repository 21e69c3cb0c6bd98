# pyright: reportUnknownVariableType=false, reportUnknownMemberType=false

"""Downloaded image asset table."""

from datetime import datetime

from sqlalchemy import Column, text
from sqlmodel import Field, SQLModel

from .timezone_aware_datetime import SQLITE_DATETIME_NOW, TimezoneAwareDatetime


class Asset(SQLModel, table=True):
    """ORM model for an image saved to local storage.

    Attributes:
        id: Asset id, referenced from feed customizations.
        source_key: md5 of the source URL; used to skip repeat downloads.
        url: Source URL.
        path: File path relative to the images directory.
        title: Title of the episode or podcast the image belongs to.
        mime_type: Content type reported by the server.
        created_at: Download time (UTC).
    """

    id: int | None = Field(default=None, primary_key=True)
    source_key: str = Field(unique=True, index=True)
    url: str
    path: str
    title: str = Field(default="")
    mime_type: str | None = None
    created_at: datetime | None = Field(
        default=None,
        sa_column=Column(
            TimezoneAwareDatetime,
            nullable=False,
            server_default=text(SQLITE_DATETIME_NOW),
        ),
    )
