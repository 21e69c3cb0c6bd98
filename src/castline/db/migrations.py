"""Programmatic Alembic upgrades run at startup."""

import asyncio
import logging
from pathlib import Path

from alembic.config import Config
from sqlalchemy.exc import SQLAlchemyError

from alembic import command

from ..exceptions import DatabaseOperationError

logger = logging.getLogger(__name__)


def _upgrade(alembic_ini: Path, db_path: Path) -> None:
    config = Config(str(alembic_ini))
    config.set_main_option("sqlalchemy.url", f"sqlite:///{db_path}")
    config.attributes["configure_logger"] = False
    command.upgrade(config, "head")


async def run_migrations(alembic_ini: Path, db_path: Path) -> None:
    """Upgrade the database schema to the latest revision.

    Runs in a worker thread because Alembic drives a synchronous engine.

    Raises:
        DatabaseOperationError: If the config is missing or the upgrade fails.
    """
    if not alembic_ini.exists():
        raise DatabaseOperationError(
            f"Alembic configuration not found at '{alembic_ini}'."
        )
    db_path.parent.mkdir(parents=True, exist_ok=True)
    logger.debug(
        "Running database migrations.",
        extra={"alembic_config": str(alembic_ini), "db_path": str(db_path)},
    )
    try:
        await asyncio.to_thread(_upgrade, alembic_ini, db_path)
    except SQLAlchemyError as e:
        raise DatabaseOperationError("Database migration failed.") from e
    logger.info("Database schema is up to date.", extra={"db_path": str(db_path)})
