"""Object register and per-object data storage.

Each logical podcast is a stored object with an attribute bag (feed data,
last-checked time, customizations). The register is a single option mapping
``unique_id`` to an :class:`ObjectIndexEntry`, so any alias of a feed URL,
its md5, the object id or the unique id all resolve to the same object.
"""

import asyncio
import hashlib
import logging
from typing import Any

from ..db import KeyValueStore, ObjectDatabase
from .types import DataKind, ObjectIndexEntry

logger = logging.getLogger(__name__)

REGISTER_OPTION = "castline_register"


def md5_hex(value: str) -> str:
    return hashlib.md5(value.encode("utf-8")).hexdigest()


class ObjectStore:
    """Resolve application keys to stored objects and read/write their data.

    Register updates are read-modify-write of the whole register map and are
    serialized by an internal lock.

    Attributes:
        _kv: Option storage holding the register.
        _objects: Object and attribute storage.
    """

    def __init__(self, kv_store: KeyValueStore, object_db: ObjectDatabase):
        self._kv = kv_store
        self._objects = object_db
        self._register_lock = asyncio.Lock()

    # --- Register ---

    async def get_register(self) -> dict[str, ObjectIndexEntry]:
        raw: dict[str, Any] = await self._kv.get_option(REGISTER_OPTION, {})
        return {uid: ObjectIndexEntry.model_validate(entry) for uid, entry in raw.items()}

    async def _save_register(self, register: dict[str, ObjectIndexEntry]) -> None:
        await self._kv.set_option(
            REGISTER_OPTION,
            {uid: entry.model_dump(mode="json") for uid, entry in register.items()},
        )

    async def get_object_index(self, object_key: str) -> ObjectIndexEntry | None:
        """Find the register entry for a key.

        Tries the key as a unique id, then its md5, then a deep search over
        every entry's known keys, object keys, object id and unique id.

        Args:
            object_key: Feed URL, alias, md5 of either, object id or unique id.

        Returns:
            The matching entry, or None.
        """
        if not object_key:
            return None
        register = await self.get_register()
        if object_key in register:
            return register[object_key]
        hashed = md5_hex(object_key)
        if hashed in register:
            return register[hashed]
        for entry in register.values():
            if entry.lookup(object_key):
                return entry
        return None

    async def list_objects(self) -> dict[str, ObjectIndexEntry]:
        """Return all register entries that are not hidden."""
        register = await self.get_register()
        return {uid: entry for uid, entry in register.items() if not entry.is_hidden}

    # --- Data ---

    async def get_data(
        self, object_key: str, data_kind: DataKind | str = DataKind.FEED_DATA
    ) -> Any:
        """Return one attribute of the object, or None if the object is unknown."""
        index = await self.get_object_index(object_key)
        if index is None:
            return None
        return await self._objects.get_meta(index.object_id, str(data_kind))

    async def get_many(
        self, object_key: str, data_kinds: list[DataKind | str]
    ) -> dict[str, Any] | None:
        """Return several attributes of the object keyed by name."""
        index = await self.get_object_index(object_key)
        if index is None:
            return None
        return {
            str(kind): await self._objects.get_meta(index.object_id, str(kind))
            for kind in data_kinds
        }

    async def update_data(
        self,
        data: Any,
        object_key: str,
        data_kind: DataKind | str = DataKind.FEED_DATA,
        alias: str | None = None,
    ) -> bool:
        """Write an attribute of an existing object.

        When ``object_key`` is not registered but ``alias`` is, the two are
        swapped so the data lands on the aliased object. Whenever an alias is
        given it is added to the object's known keys.

        Returns:
            True if an object was found and written, else False.
        """
        index = await self.get_object_index(object_key)
        if index is None and alias:
            index = await self.get_object_index(alias)
            if index is not None:
                object_key, alias = alias, object_key

        if index is None:
            logger.debug(
                "No stored object for key; data not written.",
                extra={"object_key": object_key, "data_kind": str(data_kind)},
            )
            return False

        await self._objects.set_meta(index.object_id, str(data_kind), data)
        if alias:
            await self._add_alias(object_key, alias)
        return True

    async def delete_data(
        self, object_key: str, data_kind: DataKind | str | None = None
    ) -> bool:
        """Delete one attribute, or the whole object and its register entry.

        Returns:
            True if something was deleted.
        """
        index = await self.get_object_index(object_key)
        if index is None:
            return False
        if data_kind is not None:
            return await self._objects.delete_meta(index.object_id, str(data_kind))

        await self._objects.delete_object(index.object_id)
        async with self._register_lock:
            register = await self.get_register()
            register.pop(index.unique_id, None)
            await self._save_register(register)
        logger.info(
            "Deleted stored object.",
            extra={"object_id": index.object_id, "unique_id": index.unique_id},
        )
        return True

    async def hide_data(self, object_key: str) -> bool:
        """Hide an object from listings without deleting its data."""
        async with self._register_lock:
            index = await self.get_object_index(object_key)
            if index is None:
                return False
            register = await self.get_register()
            register[index.unique_id] = index.model_copy(update={"is_hidden": True})
            await self._save_register(register)
        return True

    async def maybe_add_new_object(self, object_key: str, title: str = "") -> int:
        """Return the object id for ``object_key``, creating the object if needed.

        An existing hidden object is unhidden.
        """
        async with self._register_lock:
            index = await self.get_object_index(object_key)
            if index is not None:
                if index.is_hidden:
                    register = await self.get_register()
                    register[index.unique_id] = index.model_copy(
                        update={"is_hidden": False}
                    )
                    await self._save_register(register)
                return index.object_id

            object_id = await self._objects.create_object(title)
            unique_id = md5_hex(object_key)
            register = await self.get_register()
            register[unique_id] = ObjectIndexEntry(
                unique_id=unique_id,
                title=title,
                feed_url=[object_key],
                object_keys=[unique_id],
                object_id=object_id,
            )
            await self._save_register(register)
        logger.info(
            "Registered new stored object.",
            extra={"object_key": object_key, "object_id": object_id},
        )
        return object_id

    async def _add_alias(self, object_key: str, alias: str) -> None:
        async with self._register_lock:
            index = await self.get_object_index(object_key)
            if index is None:
                return
            urls = list(dict.fromkeys([*index.feed_url, alias]))
            if urls == index.feed_url:
                return
            register = await self.get_register()
            register[index.unique_id] = index.model_copy(
                update={"feed_url": urls, "object_keys": [md5_hex(u) for u in urls]}
            )
            await self._save_register(register)
        logger.debug(
            "Added alias to stored object.",
            extra={"object_key": object_key, "alias": alias},
        )
