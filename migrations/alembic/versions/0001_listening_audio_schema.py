"""Listening audio schema - rl_items, l_items, tokens

Revision ID: 0001
Revises:
Create Date: 2026-10-19

Creates the tables the listening audio pipeline reads and writes. Column
types are portable (UUID is native on PostgreSQL, CHAR(32) elsewhere) so the
same revision runs against the SQLite databases used in tests.
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # ==========================================================================
    # rl_items table
    # ==========================================================================
    op.create_table(
        "rl_items",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("owner_id", sa.Uuid(), nullable=True),
        sa.Column("title", sa.Text(), nullable=True),
        sa.Column("r_item", sa.Text(), nullable=True),
        # NULL = no audio, all-zero UUID = generation in progress, else l_items.uid
        sa.Column("l_item_id", sa.Uuid(), nullable=True),
        sa.Column("delete_requested", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("audio_requested_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_rl_items_l_item_id", "rl_items", ["l_item_id"])

    # ==========================================================================
    # l_items table
    # ==========================================================================
    op.create_table(
        "l_items",
        sa.Column("uid", sa.Uuid(), nullable=False),
        sa.Column("rl_item_id", sa.Integer(), nullable=True),
        sa.Column("s3_key", sa.Text(), nullable=True),
        sa.Column("public_url", sa.Text(), nullable=True),
        sa.Column("is_deleted", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("uid"),
        sa.ForeignKeyConstraint(["rl_item_id"], ["rl_items.id"], ondelete="SET NULL"),
    )

    # ==========================================================================
    # tokens table
    # ==========================================================================
    op.create_table(
        "tokens",
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("free", sa.Integer(), server_default="0", nullable=False),
        sa.Column("paid", sa.Integer(), server_default="0", nullable=False),
        sa.Column("free_renewal_date", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("user_id"),
        sa.CheckConstraint("free >= 0", name="ck_tokens_free_non_negative"),
    )


def downgrade() -> None:
    # Drop tables in reverse order (respecting foreign key dependencies)
    op.drop_table("tokens")
    op.drop_table("l_items")
    op.drop_index("ix_rl_items_l_item_id", table_name="rl_items")
    op.drop_table("rl_items")
