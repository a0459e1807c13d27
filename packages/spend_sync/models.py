"""Data models and type aliases for ``spend_sync``.

Transactions are owned by the (external) import step; this package only reads
them and derives annotations. Records are therefore kept as opaque mappings,
and the derived values live on separate immutable views.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, NamedTuple

from .categories import StandardCategory

# ---------------------------------------------------------------------------
# Core record and collections
# ---------------------------------------------------------------------------

type TransactionRecord = Mapping[str, Any]
"""A single transaction row as produced by the import/parse step.

Keys read by this package
-------------------------
- ``date``: posted date (``YYYY-MM-DD`` string or :class:`datetime.date`).
- ``amount``: major-unit amount (number, numeric string or ``Decimal``).
- ``merchant``: raw merchant text.
- ``category``: free text or a canonical label.
- ``transaction_type`` (or legacy ``type``): ``"debit"``, ``"credit"`` or unset.

Any other columns are carried through untouched.
"""

type Transactions = Iterable[TransactionRecord]


@dataclass(frozen=True, slots=True)
class AnnotatedTransaction:
    """A transaction paired with the identity and category derived for it.

    ``transaction`` is the caller's original mapping, unmodified. The derived
    values are what the persistence layer stores alongside the record.
    """

    transaction: TransactionRecord
    line_number: int
    posted_date: date
    amount_minor: int
    merchant_normalized: str
    category: StandardCategory
    transaction_id: str
    dedup_hash: str


class RecordResult(NamedTuple):
    """Outcome of writing one annotated transaction to the ledger."""

    transaction_id: str
    dedup_hash: str
    is_duplicate: bool
    occurrence_count: int


class SpendingSummary(NamedTuple):
    """Aggregates computed over the included subset of a transaction list."""

    total: Decimal
    fees: Decimal
    by_category: dict[str, Decimal]


__all__ = [
    "TransactionRecord",
    "Transactions",
    "AnnotatedTransaction",
    "RecordResult",
    "SpendingSummary",
]
