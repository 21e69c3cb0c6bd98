"""Shared SQL helpers for SQLite triggers used by migrations."""

from alembic import op

TRIGGER_OPTION_UPDATE_UPDATED_AT = "option_update_updated_at"

OPTION_TRIGGER_NAMES = (TRIGGER_OPTION_UPDATE_UPDATED_AT,)

OPTION_TRIGGER_STATEMENTS = (
    f"""
        CREATE TRIGGER IF NOT EXISTS {TRIGGER_OPTION_UPDATE_UPDATED_AT}
        AFTER UPDATE OF value, expires_at ON option
        FOR EACH ROW
        BEGIN
            UPDATE option SET updated_at = (datetime('now', 'utc')) WHERE key = NEW.key;
        END;
    """,
)


def create_option_triggers() -> None:
    """Create option-table triggers."""
    for statement in OPTION_TRIGGER_STATEMENTS:
        op.execute(statement)


def drop_option_triggers() -> None:
    """Drop option-table triggers if present."""
    for trigger in OPTION_TRIGGER_NAMES:
        op.execute(f"DROP TRIGGER IF EXISTS {trigger}")
