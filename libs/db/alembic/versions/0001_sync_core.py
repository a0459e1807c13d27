# ruff: noqa: I001
"""Processed-transaction ledger and queue slot tables.

Revision ID: 0001_sync_core
Revises: None
Create Date: 2026-10-19
"""

from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op


# revision identifiers, used by Alembic.
revision: str = "0001_sync_core"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "processed_transactions",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Text(), nullable=False),
        sa.Column("transaction_id", sa.String(68), nullable=False),
        sa.Column("dedup_hash", sa.CHAR(64), nullable=False),
        sa.Column("posted_date", sa.Date(), nullable=False),
        sa.Column("amount_minor", sa.BigInteger(), nullable=False),
        sa.Column("normalized_merchant", sa.Text(), nullable=False),
        sa.Column("category", sa.Text(), nullable=True),
        sa.Column(
            "occurrence_count",
            sa.Integer(),
            nullable=False,
            server_default=sa.text("1"),
        ),
        sa.Column(
            "first_seen_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.Column(
            "last_seen_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.UniqueConstraint("user_id", "dedup_hash", name="uq_processed_tx_user_hash"),
        sa.CheckConstraint("occurrence_count >= 1", name="ck_processed_tx_occurrence_count"),
    )
    # Lookups by batch-scoped id (support/debugging)
    op.create_index(
        "ix_processed_tx_transaction_id",
        "processed_transactions",
        ["transaction_id"],
    )

    op.create_table(
        "queue_slots",
        sa.Column("key", sa.Text(), primary_key=True),
        sa.Column("value", sa.Text(), nullable=False),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
    )


def downgrade() -> None:
    op.drop_table("queue_slots")
    op.drop_index("ix_processed_tx_transaction_id", table_name="processed_transactions")
    op.drop_table("processed_transactions")
