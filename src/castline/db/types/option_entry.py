# pyright: reportUnknownVariableType=false, reportUnknownMemberType=false

"""Option and transient storage table.

Options are durable named JSON values (the task queue, the object register,
feature flags). Transients are the same rows with an expiry; an expired row is
treated as absent.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, Column, text
from sqlalchemy.sql.schema import FetchedValue
from sqlmodel import Field, SQLModel

from .timezone_aware_datetime import SQLITE_DATETIME_NOW, TimezoneAwareDatetime


class OptionEntry(SQLModel, table=True):
    """ORM model for a named JSON value.

    Attributes:
        key: Option name.
        value: JSON-serializable value.
        expires_at: Expiry for transients; None for durable options.
        updated_at: Last write time (UTC), maintained by a trigger.
    """

    __tablename__ = "option"  # pyright: ignore[reportAssignmentType]

    key: str = Field(primary_key=True)
    value: Any = Field(default=None, sa_column=Column(JSON, nullable=True))
    expires_at: datetime | None = Field(
        default=None, sa_column=Column(TimezoneAwareDatetime, nullable=True, index=True)
    )
    updated_at: datetime | None = Field(
        default=None,
        sa_column=Column(
            TimezoneAwareDatetime,
            nullable=False,
            server_default=text(SQLITE_DATETIME_NOW),
            server_onupdate=FetchedValue(),
        ),
    )
