# pyright: reportUnknownVariableType=false, reportUnknownMemberType=false

"""Stored object and per-object attribute tables."""

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, Column, ForeignKey, Integer, String, text
from sqlmodel import Field, SQLModel

from .timezone_aware_datetime import SQLITE_DATETIME_NOW, TimezoneAwareDatetime


class StoredObject(SQLModel, table=True):
    """ORM model for a registered object, one per logical podcast.

    Attributes:
        id: Numeric object id.
        title: Display title at creation time.
        created_at: Creation time (UTC).
    """

    __tablename__ = "stored_object"  # pyright: ignore[reportAssignmentType]

    id: int | None = Field(default=None, primary_key=True)
    title: str = Field(default="")
    created_at: datetime | None = Field(
        default=None,
        sa_column=Column(
            TimezoneAwareDatetime,
            nullable=False,
            server_default=text(SQLITE_DATETIME_NOW),
        ),
    )


class ObjectMeta(SQLModel, table=True):
    """ORM model for one entry of an object's attribute bag.

    Attributes:
        object_id: Owning object; rows cascade on object deletion.
        name: Data kind, e.g. ``feed_data`` or ``last_checked``.
        value: JSON-serializable value.
    """

    __tablename__ = "object_meta"  # pyright: ignore[reportAssignmentType]

    object_id: int = Field(
        sa_column=Column(
            Integer,
            ForeignKey("stored_object.id", ondelete="CASCADE"),
            primary_key=True,
        )
    )
    name: str = Field(sa_column=Column(String, primary_key=True))
    value: Any = Field(default=None, sa_column=Column(JSON, nullable=True))
