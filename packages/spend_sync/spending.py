"""Shared transaction inclusion rules for spend aggregates.

Pure predicates over transaction-like mappings, plus the aggregate helpers
built on them. Used by every report that sums spend so that totals agree
across views.

Inclusion is strict: a transaction counts toward spend only when
it is explicitly marked ``debit``. Rows with a positive amount but no type
(or any other type) are excluded even when nothing else disqualifies them.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from decimal import Decimal, InvalidOperation
from typing import Any

from .categories import DEFAULT_CATEGORY
from .models import SpendingSummary

# Lower-case substrings of the merchant text that mark a transfer rather than
# a purchase (wallet top-ups, UPI self transfers, wallet providers).
TRANSFER_PATTERNS: tuple[str, ...] = (
    "transfer",
    "wallet top",
    "paytm wallet",
    "phonepe wallet",
    "google pay",
    "upi transfer",
)

# Merchant markers for transactions that never settled.
FAILED_PATTERNS: tuple[str, ...] = ("failed", "declined")

# Lower-case substrings of merchant or category text that mark an avoidable
# charge levied by the card issuer.
FEE_PATTERNS: tuple[str, ...] = (
    "late fee",
    "annual fee",
    "interest",
    "finance charge",
    "overlimit fee",
    "service charge",
)

_ZERO = Decimal("0")


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).lower()


def _amount(tx: Mapping[str, Any]) -> Decimal:
    raw = tx.get("amount")
    if raw is None or isinstance(raw, bool):
        return _ZERO
    try:
        d = Decimal(str(raw).strip())
    except (InvalidOperation, ValueError):
        return _ZERO
    return d if d.is_finite() else _ZERO


def _transaction_type(tx: Mapping[str, Any]) -> str:
    # ``type`` is the legacy column name used by older exports.
    return _text(tx.get("transaction_type") or tx.get("type")).strip()


def include_in_spending(tx: Mapping[str, Any]) -> bool:
    """Return ``True`` when ``tx`` counts toward spend totals.

    Excluded: credits (refunds, income, reversals); zero or negative amounts;
    transfers (see :data:`TRANSFER_PATTERNS`); failed or declined
    transactions. Everything else is included only when explicitly typed
    ``debit``.
    """

    tx_type = _transaction_type(tx)
    if tx_type == "credit":
        return False

    if _amount(tx) <= _ZERO:
        return False

    merchant = _text(tx.get("merchant"))
    if any(p in merchant for p in TRANSFER_PATTERNS):
        return False
    if any(p in merchant for p in FAILED_PATTERNS):
        return False

    return tx_type == "debit"


def is_fee_or_interest(tx: Mapping[str, Any]) -> bool:
    """Return ``True`` when merchant or category text names a fee/interest charge.

    Independent of :func:`include_in_spending`: a fee can also count toward
    total spend.
    """

    merchant = _text(tx.get("merchant"))
    category = _text(tx.get("category"))
    return any(p in merchant or p in category for p in FEE_PATTERNS)


def calculate_total_spending(transactions: Iterable[Mapping[str, Any]]) -> Decimal:
    """Sum ``amount`` over the transactions that pass :func:`include_in_spending`."""

    return sum((_amount(tx) for tx in transactions if include_in_spending(tx)), _ZERO)


def group_by_category(transactions: Iterable[Mapping[str, Any]]) -> dict[str, Decimal]:
    """Bucket included spend by raw ``category`` (``"Other"`` when missing).

    Categories are taken as-is; callers canonicalize beforehand when they
    want the closed taxonomy.
    """

    groups: dict[str, Decimal] = {}
    for tx in transactions:
        if not include_in_spending(tx):
            continue
        category = tx.get("category") or DEFAULT_CATEGORY
        groups[category] = groups.get(category, _ZERO) + _amount(tx)
    return groups


def summarize_spending(transactions: Iterable[Mapping[str, Any]]) -> SpendingSummary:
    """Compute total, fee/interest total and per-category spend in one pass.

    ``fees`` covers every non-credit, positive-amount transaction flagged by
    :func:`is_fee_or_interest`, whether or not it is included in ``total``.
    """

    items = list(transactions)
    fees = sum(
        (
            _amount(tx)
            for tx in items
            if is_fee_or_interest(tx) and _transaction_type(tx) != "credit" and _amount(tx) > 0
        ),
        _ZERO,
    )
    return SpendingSummary(
        total=calculate_total_spending(items),
        fees=fees,
        by_category=group_by_category(items),
    )


__all__ = [
    "TRANSFER_PATTERNS",
    "FAILED_PATTERNS",
    "FEE_PATTERNS",
    "include_in_spending",
    "is_fee_or_interest",
    "calculate_total_spending",
    "group_by_category",
    "summarize_spending",
]
