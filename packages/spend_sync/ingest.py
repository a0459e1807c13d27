"""Annotate an imported batch with identity and canonical category.

This is the seam between the (external) statement parser and persistence:
it takes parsed rows for one import batch, drops rows the parser emitted twice,
and derives the values that are stored alongside each record.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from decimal import Decimal, InvalidOperation
from typing import Any

from .categories import canonical_category
from .identity import (
    amount_to_minor,
    dedup_hash,
    normalize_merchant,
    parse_posted_date,
    transaction_id,
    validate_identity_fields,
)
from .logging_setup import get_logger
from .models import AnnotatedTransaction, Transactions

# Two rows in one batch with the same date and merchant whose amounts differ
# by less than this are treated as the same line.
IN_BATCH_AMOUNT_TOLERANCE = Decimal("0.01")

_logger = get_logger("spend_sync.ingest")


def _approx_amount(raw: Any) -> Decimal | None:
    if raw is None or isinstance(raw, bool):
        return None
    try:
        d = Decimal(str(raw).strip())
    except (InvalidOperation, ValueError):
        return None
    return d if d.is_finite() else None


def _same_line(a: Mapping[str, Any], b: Mapping[str, Any]) -> bool:
    if a.get("date") != b.get("date") or a.get("merchant") != b.get("merchant"):
        return False
    amt_a = _approx_amount(a.get("amount"))
    amt_b = _approx_amount(b.get("amount"))
    if amt_a is None or amt_b is None:
        return amt_a is None and amt_b is None
    return abs(amt_a - amt_b) < IN_BATCH_AMOUNT_TOLERANCE


def drop_in_batch_duplicates(transactions: Transactions) -> list[Mapping[str, Any]]:
    """Return ``transactions`` without rows repeated within the batch.

    A row is dropped when an earlier kept row has the same ``date``, the same
    raw ``merchant`` and an amount within :data:`IN_BATCH_AMOUNT_TOLERANCE`.
    The first occurrence wins and input order is preserved.
    """

    kept: list[Mapping[str, Any]] = []
    for tx in transactions:
        if any(_same_line(prev, tx) for prev in kept):
            continue
        kept.append(tx)
    return kept


def annotate_transaction(
    tx: Mapping[str, Any],
    *,
    user_id: str,
    batch_id: str,
    line_number: int,
) -> AnnotatedTransaction:
    """Derive identity values and the canonical category for one row.

    Raises :class:`~spend_sync.identity.IdentityFieldError` when the row's
    date or amount cannot be interpreted, or an id field contains the
    composite delimiter.
    """

    posted = parse_posted_date(tx.get("date"))
    minor = amount_to_minor(tx.get("amount"))
    merchant = normalize_merchant(tx.get("merchant"))

    validate_identity_fields(
        user_id=user_id,
        batch_id=batch_id,
        posted_date=posted,
        amount_minor=minor,
        normalized_merchant=merchant,
        line_number=line_number,
    )

    return AnnotatedTransaction(
        transaction=tx,
        line_number=line_number,
        posted_date=posted,
        amount_minor=minor,
        merchant_normalized=merchant,
        category=canonical_category(tx.get("category")),
        transaction_id=transaction_id(user_id, batch_id, posted, minor, merchant, line_number),
        dedup_hash=dedup_hash(posted, minor, merchant),
    )


def annotate_batch(
    transactions: Transactions,
    *,
    user_id: str,
    batch_id: str,
) -> list[AnnotatedTransaction]:
    """Drop in-batch duplicates, then annotate each surviving row.

    Line numbers are positions among the surviving rows (0-based), so the same
    statement re-imported under the same batch id yields the same ids.
    """

    rows: Sequence[Mapping[str, Any]] = list(transactions)
    unique = drop_in_batch_duplicates(rows)
    dropped = len(rows) - len(unique)
    if dropped:
        _logger.info(
            "ingest:in_batch_duplicates_dropped batch_id=%s dropped=%d kept=%d",
            batch_id,
            dropped,
            len(unique),
        )

    return [
        annotate_transaction(tx, user_id=user_id, batch_id=batch_id, line_number=i)
        for i, tx in enumerate(unique)
    ]


__all__ = [
    "IN_BATCH_AMOUNT_TOLERANCE",
    "drop_in_batch_duplicates",
    "annotate_transaction",
    "annotate_batch",
]
