"""Create content item and social account tables

Revision ID: 001
Revises:
Create Date: 2026-10-18

"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create the content store and linked account tables."""

    op.create_table(
        "content_items",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("owner_id", sa.String(64), nullable=False),
        sa.Column("body", sa.Text(), nullable=False),
        sa.Column("media", sa.JSON(), nullable=False),
        sa.Column("tags", sa.JSON(), nullable=False),
        sa.Column("targets", sa.JSON(), nullable=False),
        sa.Column("scheduled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("timezone", sa.String(64), nullable=False, server_default=sa.text("'UTC'")),
        sa.Column("status", sa.String(32), nullable=False),
        sa.Column("per_target_result", sa.JSON(), nullable=False),
        sa.Column("claimed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
    )
    # Due-item scan: status = 'scheduled' AND scheduled_at <= now
    op.create_index("ix_content_items_status_scheduled", "content_items", ["status", "scheduled_at"])
    op.create_index("ix_content_items_owner_status", "content_items", ["owner_id", "status"])
    op.create_index("ix_content_items_owner_scheduled", "content_items", ["owner_id", "scheduled_at"])

    op.create_table(
        "social_accounts",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("owner_id", sa.String(64), nullable=False),
        sa.Column("platform", sa.String(32), nullable=False),
        sa.Column("platform_account_id", sa.String(255), nullable=False),
        sa.Column("platform_username", sa.String(255), nullable=True),
        sa.Column("access_token_encrypted", sa.Text(), nullable=False),
        sa.Column("refresh_token_encrypted", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
    )
    op.create_index(
        "ix_social_accounts_owner_platform",
        "social_accounts",
        ["owner_id", "platform"],
        unique=True,
    )


def downgrade() -> None:
    """Drop the content store and linked account tables."""
    op.drop_index("ix_social_accounts_owner_platform", table_name="social_accounts")
    op.drop_table("social_accounts")

    op.drop_index("ix_content_items_owner_scheduled", table_name="content_items")
    op.drop_index("ix_content_items_owner_status", table_name="content_items")
    op.drop_index("ix_content_items_status_scheduled", table_name="content_items")
    op.drop_table("content_items")
