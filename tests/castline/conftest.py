"""Shared fixtures for castline unit tests."""

from collections.abc import AsyncGenerator
from pathlib import Path

from helpers.alembic import run_migrations
import pytest_asyncio

from castline.db import KeyValueStore, ObjectDatabase
from castline.db.sqlalchemy_core import SqlalchemyCore
from castline.store import ObjectStore


@pytest_asyncio.fixture
async def db_core(tmp_path: Path) -> AsyncGenerator[SqlalchemyCore]:
    """A migrated throwaway database."""
    db_path = tmp_path / "db" / "castline.db"
    db_path.parent.mkdir(parents=True)
    run_migrations(db_path)

    core = SqlalchemyCore(db_path)
    yield core
    await core.close()


@pytest_asyncio.fixture
async def kv_store(db_core: SqlalchemyCore) -> KeyValueStore:
    return KeyValueStore(db_core)


@pytest_asyncio.fixture
async def object_store(db_core: SqlalchemyCore, kv_store: KeyValueStore) -> ObjectStore:
    return ObjectStore(kv_store, ObjectDatabase(db_core))
