"""Option and transient storage.

This is the key/value collaborator used by the job queue and the object
register: durable JSON options, plus short-lived transients whose expiry is
checked on read. ``add_transient`` is the atomic primitive behind the queue
lock.
"""

from datetime import UTC, datetime, timedelta
import logging
from typing import Any

from sqlalchemy import delete
from sqlalchemy.dialects.sqlite import insert
from sqlmodel import col

from .decorators import handle_option_db_errors
from .sqlalchemy_core import SqlalchemyCore
from .types import OptionEntry

logger = logging.getLogger(__name__)

TRANSIENT_PREFIX = "_transient_"


def _transient_key(key: str) -> str:
    return f"{TRANSIENT_PREFIX}{key}"


class KeyValueStore:
    """Persist options and transients in the ``option`` table.

    Attributes:
        _db: Core SQLAlchemy database manager.
    """

    def __init__(self, db_core: SqlalchemyCore):
        self._db = db_core

    # --- Options ---

    @handle_option_db_errors("get option")
    async def get_option(self, key: str, default: Any = None) -> Any:
        """Return the stored value for ``key``, or ``default`` if unset."""
        async with self._db.session() as session:
            entry = await session.get(OptionEntry, key)
            if entry is None or entry.value is None:
                return default
            return entry.value

    @handle_option_db_errors("set option")
    async def set_option(self, key: str, value: Any) -> None:
        """Insert or replace the value stored under ``key``."""
        async with self._db.session() as session:
            stmt = insert(OptionEntry).values(key=key, value=value, expires_at=None)
            stmt = stmt.on_conflict_do_update(
                index_elements=[OptionEntry.key],
                set_={"value": value, "expires_at": None},
            )
            await session.execute(stmt)
            await session.commit()

    @handle_option_db_errors("delete option")
    async def delete_option(self, key: str) -> bool:
        """Delete ``key``; returns whether a row was removed."""
        async with self._db.session() as session:
            result = await session.execute(
                delete(OptionEntry).where(col(OptionEntry.key) == key)
            )
            await session.commit()
            return self._db.rowcount(result) > 0

    # --- Transients ---

    @handle_option_db_errors("get transient")
    async def get_transient(self, key: str) -> Any:
        """Return the transient value, or None when unset or expired.

        Expired rows are removed as a side effect.
        """
        now = datetime.now(UTC)
        async with self._db.session() as session:
            entry = await session.get(OptionEntry, _transient_key(key))
            if entry is None:
                return None
            if entry.expires_at is not None and entry.expires_at <= now:
                await session.delete(entry)
                await session.commit()
                logger.debug("Purged expired transient.", extra={"key": key})
                return None
            return entry.value

    @handle_option_db_errors("set transient")
    async def set_transient(self, key: str, value: Any, ttl: timedelta) -> None:
        """Store ``value`` under ``key`` until ``ttl`` has elapsed."""
        expires_at = datetime.now(UTC) + ttl
        async with self._db.session() as session:
            stmt = insert(OptionEntry).values(
                key=_transient_key(key), value=value, expires_at=expires_at
            )
            stmt = stmt.on_conflict_do_update(
                index_elements=[OptionEntry.key],
                set_={"value": value, "expires_at": expires_at},
            )
            await session.execute(stmt)
            await session.commit()

    @handle_option_db_errors("add transient")
    async def add_transient(self, key: str, value: Any, ttl: timedelta) -> bool:
        """Store a transient only if no live one exists.

        The expired-row cleanup and the insert run in one transaction, so at
        most one concurrent caller sees True.

        Returns:
            True if the transient was created, False if a live one was present.
        """
        now = datetime.now(UTC)
        async with self._db.session() as session:
            await session.execute(
                delete(OptionEntry)
                .where(col(OptionEntry.key) == _transient_key(key))
                .where(col(OptionEntry.expires_at) <= now)
            )
            stmt = (
                insert(OptionEntry)
                .values(key=_transient_key(key), value=value, expires_at=now + ttl)
                .on_conflict_do_nothing(index_elements=[OptionEntry.key])
            )
            result = await session.execute(stmt)
            await session.commit()
            return self._db.rowcount(result) == 1

    @handle_option_db_errors("delete transient")
    async def delete_transient(self, key: str) -> bool:
        """Delete the transient ``key``; returns whether a row was removed."""
        async with self._db.session() as session:
            result = await session.execute(
                delete(OptionEntry).where(col(OptionEntry.key) == _transient_key(key))
            )
            await session.commit()
            return self._db.rowcount(result) > 0
