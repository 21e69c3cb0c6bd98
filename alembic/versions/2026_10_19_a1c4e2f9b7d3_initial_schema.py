"""Initial schema.

Revision ID: a1c4e2f9b7d3
Revises:
Create Date: 2026-10-19 09:12:44.501233

"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op
from alembic_helpers.triggers import (  # pyright: ignore[reportMissingImports]
    create_option_triggers,  # pyright: ignore[reportUnknownVariableType]
    drop_option_triggers,  # pyright: ignore[reportUnknownVariableType]
)
from castline.db.types.timezone_aware_datetime import (
    SQLITE_DATETIME_NOW,
    TimezoneAwareDatetime,
)

# revision identifiers, used by Alembic.
revision: str = "a1c4e2f9b7d3"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "option",
        sa.Column("key", sa.String(), nullable=False),
        sa.Column("value", sa.JSON(), nullable=True),
        sa.Column("expires_at", TimezoneAwareDatetime(), nullable=True),
        sa.Column(
            "updated_at",
            TimezoneAwareDatetime(),
            nullable=False,
            server_default=sa.text(SQLITE_DATETIME_NOW),
        ),
        sa.PrimaryKeyConstraint("key"),
    )
    op.create_index("ix_option_expires_at", "option", ["expires_at"])

    op.create_table(
        "stored_object",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column(
            "created_at",
            TimezoneAwareDatetime(),
            nullable=False,
            server_default=sa.text(SQLITE_DATETIME_NOW),
        ),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "object_meta",
        sa.Column("object_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("value", sa.JSON(), nullable=True),
        sa.ForeignKeyConstraint(
            ["object_id"], ["stored_object.id"], ondelete="CASCADE"
        ),
        sa.PrimaryKeyConstraint("object_id", "name"),
    )

    op.create_table(
        "asset",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("source_key", sa.String(), nullable=False),
        sa.Column("url", sa.String(), nullable=False),
        sa.Column("path", sa.String(), nullable=False),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("mime_type", sa.String(), nullable=True),
        sa.Column(
            "created_at",
            TimezoneAwareDatetime(),
            nullable=False,
            server_default=sa.text(SQLITE_DATETIME_NOW),
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_asset_source_key", "asset", ["source_key"], unique=True)

    op.create_table(
        "imported_post",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("feed_key", sa.String(), nullable=False),
        sa.Column("episode_key", sa.String(), nullable=False),
        sa.Column("episode_id", sa.String(), nullable=False),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("content", sa.String(), nullable=False),
        sa.Column("published", TimezoneAwareDatetime(), nullable=False),
        sa.Column("status", sa.String(), nullable=False),
        sa.Column("post_type", sa.String(), nullable=False),
        sa.Column("media_url", sa.String(), nullable=False),
        sa.Column("media_type", sa.String(), nullable=False),
        sa.Column("featured_asset_id", sa.Integer(), nullable=True),
        sa.Column("taxonomy", sa.String(), nullable=True),
        sa.Column("categories", sa.JSON(), nullable=False),
        sa.Column(
            "created_at",
            TimezoneAwareDatetime(),
            nullable=False,
            server_default=sa.text(SQLITE_DATETIME_NOW),
        ),
        sa.ForeignKeyConstraint(["featured_asset_id"], ["asset.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_imported_post_feed_key", "imported_post", ["feed_key"])

    create_option_triggers()


def downgrade() -> None:
    """Downgrade schema."""
    drop_option_triggers()
    op.drop_index("ix_imported_post_feed_key", table_name="imported_post")
    op.drop_table("imported_post")
    op.drop_index("ix_asset_source_key", table_name="asset")
    op.drop_table("asset")
    op.drop_table("object_meta")
    op.drop_table("stored_object")
    op.drop_index("ix_option_expires_at", table_name="option")
    op.drop_table("option")
