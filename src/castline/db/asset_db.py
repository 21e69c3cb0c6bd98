"""Database access for downloaded image assets."""

import logging

from sqlmodel import col, select

from .decorators import handle_db_errors
from .sqlalchemy_core import SqlalchemyCore
from .types import Asset

logger = logging.getLogger(__name__)


class AssetDatabase:
    """Look up and record locally stored images."""

    def __init__(self, db_core: SqlalchemyCore):
        self._db = db_core

    @handle_db_errors("get assets by source key")
    async def get_ids_by_source_keys(self, source_keys: list[str]) -> dict[str, int]:
        """Map each known source key to its asset id; unknown keys are omitted."""
        if not source_keys:
            return {}
        async with self._db.session() as session:
            stmt = select(Asset.source_key, Asset.id).where(
                col(Asset.source_key).in_(source_keys)
            )
            rows = (await session.execute(stmt)).all()
            return {key: asset_id for key, asset_id in rows if asset_id is not None}

    @handle_db_errors("add asset")
    async def add_asset(self, asset: Asset) -> int:
        """Insert an asset and return its id."""
        async with self._db.session() as session:
            session.add(asset)
            await session.commit()
            await session.refresh(asset)
            assert asset.id is not None
            return asset.id

    @handle_db_errors("get asset")
    async def get_asset(self, asset_id: int) -> Asset | None:
        async with self._db.session() as session:
            return await session.get(Asset, asset_id)
