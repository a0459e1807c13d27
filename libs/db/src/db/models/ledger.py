from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import (
    CHAR,
    BigInteger,
    CheckConstraint,
    Date,
    DateTime,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


# ---------------------------
# Core: processed_transactions
# ---------------------------


class ProcessedTransaction(Base):
    """One row per real-world transaction seen for a user.

    Rows are keyed by the batch-independent ``dedup_hash``; re-importing the
    same statement line (or an overlapping statement) bumps
    ``occurrence_count`` instead of inserting a second row. ``transaction_id``
    records the batch-scoped identity of the first import that produced it.
    """

    __tablename__ = "processed_transactions"

    id: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True
    )
    user_id: Mapped[str] = mapped_column(String, nullable=False)
    # "txn_" + 64 hex chars
    transaction_id: Mapped[str] = mapped_column(String(68), nullable=False)
    dedup_hash: Mapped[str] = mapped_column(CHAR(64), nullable=False)
    posted_date: Mapped[date] = mapped_column(Date, nullable=False)
    amount_minor: Mapped[int] = mapped_column(BigInteger, nullable=False)
    normalized_merchant: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[str | None] = mapped_column(String, nullable=True)
    occurrence_count: Mapped[int] = mapped_column(
        Integer, nullable=False, server_default=text("1")
    )
    first_seen_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=text("CURRENT_TIMESTAMP")
    )
    last_seen_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=text("CURRENT_TIMESTAMP")
    )

    __table_args__ = (
        UniqueConstraint("user_id", "dedup_hash", name="uq_processed_tx_user_hash"),
        Index("ix_processed_tx_transaction_id", "transaction_id"),
        CheckConstraint("occurrence_count >= 1", name="ck_processed_tx_occurrence_count"),
    )


# ---------------------------
# Key-value: queue_slots
# ---------------------------


class QueueSlot(Base):
    """A single key-value slot holding a serialized action queue.

    ``value`` is the JSON text written by ``spend_sync.action_queue``; the
    table does not interpret its contents.
    """

    __tablename__ = "queue_slots"

    key: Mapped[str] = mapped_column(String, primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=text("CURRENT_TIMESTAMP")
    )


__all__ = [
    "Base",
    "ProcessedTransaction",
    "QueueSlot",
]
