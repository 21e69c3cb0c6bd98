"""Database access for stored objects and their attribute bags."""

import logging
from typing import Any

from sqlalchemy import delete
from sqlalchemy.dialects.sqlite import insert
from sqlmodel import col

from ..exceptions import ObjectNotFoundError
from .decorators import handle_db_errors, handle_object_db_errors
from .sqlalchemy_core import SqlalchemyCore
from .types import ObjectMeta, StoredObject

logger = logging.getLogger(__name__)


class ObjectDatabase:
    """Create and delete objects and read/write their attributes.

    Attributes:
        _db: Core SQLAlchemy database manager.
    """

    def __init__(self, db_core: SqlalchemyCore):
        self._db = db_core

    @handle_db_errors("create object")
    async def create_object(self, title: str) -> int:
        """Insert a new object and return its id."""
        async with self._db.session() as session:
            obj = StoredObject(title=title)
            session.add(obj)
            await session.commit()
            await session.refresh(obj)
            assert obj.id is not None
            logger.debug("Created stored object.", extra={"object_id": obj.id})
            return obj.id

    @handle_object_db_errors("get object")
    async def get_object(self, object_id: int) -> StoredObject:
        """Return the object row.

        Raises:
            ObjectNotFoundError: If no such object exists.
        """
        async with self._db.session() as session:
            obj = await session.get(StoredObject, object_id)
            if obj is None:
                raise ObjectNotFoundError(
                    "Stored object not found.", lookup_key=str(object_id)
                )
            return obj

    @handle_object_db_errors("delete object")
    async def delete_object(self, object_id: int) -> None:
        """Delete an object together with all of its attributes."""
        async with self._db.session() as session:
            await session.execute(
                delete(ObjectMeta).where(col(ObjectMeta.object_id) == object_id)
            )
            await session.execute(
                delete(StoredObject).where(col(StoredObject.id) == object_id)
            )
            await session.commit()
        logger.debug("Deleted stored object.", extra={"object_id": object_id})

    @handle_object_db_errors("get object meta")
    async def get_meta(self, object_id: int, name: str) -> Any:
        """Return the attribute value, or None if unset."""
        async with self._db.session() as session:
            meta = await session.get(ObjectMeta, (object_id, name))
            return meta.value if meta is not None else None

    @handle_object_db_errors("set object meta")
    async def set_meta(self, object_id: int, name: str, value: Any) -> None:
        """Insert or replace an attribute value."""
        async with self._db.session() as session:
            stmt = insert(ObjectMeta).values(object_id=object_id, name=name, value=value)
            stmt = stmt.on_conflict_do_update(
                index_elements=[ObjectMeta.object_id, ObjectMeta.name],
                set_={"value": value},
            )
            await session.execute(stmt)
            await session.commit()

    @handle_object_db_errors("delete object meta")
    async def delete_meta(self, object_id: int, name: str) -> bool:
        """Remove an attribute; returns whether it existed."""
        async with self._db.session() as session:
            result = await session.execute(
                delete(ObjectMeta)
                .where(col(ObjectMeta.object_id) == object_id)
                .where(col(ObjectMeta.name) == name)
            )
            await session.commit()
            return self._db.rowcount(result) > 0
