"""Persistence integration for ``spend_sync``.

Writes annotated transactions to the ``processed_transactions`` ledger owned
by ``libs/db`` and reports which of them were already seen for the user in an
earlier batch. Callers own the session and commit
(see ``db.client.session_scope``).
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import UTC, datetime

from sqlalchemy import select
from sqlalchemy.orm import Session

from db.models.ledger import ProcessedTransaction

from .logging_setup import get_logger
from .models import AnnotatedTransaction, RecordResult

_logger = get_logger("spend_sync.persistence")


def record_processed_transactions(
    session: Session,
    *,
    user_id: str,
    items: Iterable[AnnotatedTransaction],
) -> list[RecordResult]:
    """Insert or bump ledger rows keyed by ``(user_id, dedup_hash)``.

    Idempotency rules:
    - No row for the hash: insert one with ``occurrence_count = 1``; the item
      is not a duplicate.
    - A row exists (earlier batch, or earlier in this call): increment
      ``occurrence_count``, refresh ``last_seen_at``; the item is a duplicate.

    Results are returned in input order.
    """

    now = datetime.now(UTC)
    results: list[RecordResult] = []
    duplicates = 0

    for item in items:
        existing = get_processed_transaction(
            session, user_id=user_id, dedup_hash=item.dedup_hash
        )
        if existing is not None:
            existing.occurrence_count = existing.occurrence_count + 1
            existing.last_seen_at = now
            duplicates += 1
            results.append(
                RecordResult(
                    transaction_id=item.transaction_id,
                    dedup_hash=item.dedup_hash,
                    is_duplicate=True,
                    occurrence_count=existing.occurrence_count,
                )
            )
            continue

        session.add(
            ProcessedTransaction(
                user_id=user_id,
                transaction_id=item.transaction_id,
                dedup_hash=item.dedup_hash,
                posted_date=item.posted_date,
                amount_minor=item.amount_minor,
                normalized_merchant=item.merchant_normalized,
                category=item.category,
                occurrence_count=1,
                first_seen_at=now,
                last_seen_at=now,
            )
        )
        # Make the new row visible to lookups later in this call.
        session.flush()
        results.append(
            RecordResult(
                transaction_id=item.transaction_id,
                dedup_hash=item.dedup_hash,
                is_duplicate=False,
                occurrence_count=1,
            )
        )

    _logger.info(
        "ledger:recorded user_id=%s total=%d duplicates=%d",
        user_id,
        len(results),
        duplicates,
    )
    return results


def get_processed_transaction(
    session: Session, *, user_id: str, dedup_hash: str
) -> ProcessedTransaction | None:
    """Return the ledger row for ``(user_id, dedup_hash)`` when present."""

    return session.execute(
        select(ProcessedTransaction).where(
            ProcessedTransaction.user_id == user_id,
            ProcessedTransaction.dedup_hash == dedup_hash,
        )
    ).scalar_one_or_none()


__all__ = [
    "record_processed_transactions",
    "get_processed_transaction",
]
