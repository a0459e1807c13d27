"""Content-addressed transaction identity.

Two SHA-256 derived values per transaction:

- ``transaction_id``: scoped to (user, batch, posted date, amount, merchant,
  line number). Re-importing the same statement line in the same batch yields
  the same id; moving the line or changing the batch does not.
- ``dedup_hash``: scoped only to (posted date, amount, merchant) so that the
  same real-world transaction imported through two overlapping statements
  hashes identically.

Both are built from a ``|``-joined composite in fixed field order. The
generators neither validate nor escape their inputs: a field that contains
the delimiter yields an ambiguous composite. Sanitize with
:func:`normalize_merchant` and check with :func:`validate_identity_fields`
at the import boundary before calling them.
"""

from __future__ import annotations

import hashlib
import re
from datetime import date
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

ID_PREFIX = "txn_"
DELIMITER = "|"

_ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_WS_RE = re.compile(r"\s+")


class IdentityFieldError(ValueError):
    """Raised at the import boundary when a field cannot be hashed safely."""


def _date_str(posted_date: date | str) -> str:
    if isinstance(posted_date, date):
        return posted_date.isoformat()
    return posted_date


def _sha256_hex(composite: str) -> str:
    return hashlib.sha256(composite.encode("utf-8")).hexdigest()


def transaction_id(
    user_id: str,
    batch_id: str,
    posted_date: date | str,
    amount_minor: int,
    normalized_merchant: str,
    line_number: int,
) -> str:
    """Return ``"txn_" + sha256(user|batch|date|amount|merchant|line)``."""

    composite = DELIMITER.join(
        (
            user_id,
            batch_id,
            _date_str(posted_date),
            str(amount_minor),
            normalized_merchant,
            str(line_number),
        )
    )
    return ID_PREFIX + _sha256_hex(composite)


def dedup_hash(posted_date: date | str, amount_minor: int, normalized_merchant: str) -> str:
    """Return ``sha256(date|amount|merchant)`` as lowercase hex, unprefixed."""

    composite = DELIMITER.join((_date_str(posted_date), str(amount_minor), normalized_merchant))
    return _sha256_hex(composite)


# ---------------------------------------------------------------------------
# Boundary helpers (sanitize / convert / validate before hashing)
# ---------------------------------------------------------------------------


def normalize_merchant(raw: str | None) -> str:
    """Lower-case, trim and single-space ``raw``; the delimiter becomes a space."""

    if raw is None:
        return ""
    s = raw.replace(DELIMITER, " ")
    return _WS_RE.sub(" ", s).strip().lower()


def amount_to_minor(amount: Any) -> int:
    """Convert a major-unit amount to integer minor units (half away from zero)."""

    if amount is None or isinstance(amount, bool):
        raise IdentityFieldError(f"invalid amount: {amount!r}")
    try:
        d = Decimal(str(amount).strip())
    except (InvalidOperation, ValueError) as exc:
        raise IdentityFieldError(f"invalid amount: {amount!r}") from exc
    if not d.is_finite():
        raise IdentityFieldError(f"invalid amount: {amount!r}")
    return int((d * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def parse_posted_date(raw: date | str | None) -> date:
    """Return ``raw`` as a :class:`datetime.date` (``YYYY-MM-DD`` strings only)."""

    if isinstance(raw, date):
        return raw
    if raw is None:
        raise IdentityFieldError("posted date is required")
    s = raw.strip()
    if not _ISO_DATE_RE.fullmatch(s):
        raise IdentityFieldError(f"invalid posted date (expected YYYY-MM-DD): {raw!r}")
    try:
        return date.fromisoformat(s)
    except ValueError as exc:
        raise IdentityFieldError(f"invalid posted date: {raw!r}") from exc


def validate_identity_fields(
    *,
    user_id: str,
    batch_id: str,
    posted_date: date | str,
    amount_minor: int,
    normalized_merchant: str,
    line_number: int,
) -> None:
    """Raise :class:`IdentityFieldError` unless every field is safe to hash."""

    for name, value in (
        ("user_id", user_id),
        ("batch_id", batch_id),
        ("normalized_merchant", normalized_merchant),
    ):
        if not isinstance(value, str):
            raise IdentityFieldError(f"{name} must be a string, got {type(value).__name__}")
        if DELIMITER in value:
            raise IdentityFieldError(f"{name} must not contain {DELIMITER!r}: {value!r}")
    if not user_id or not batch_id:
        raise IdentityFieldError("user_id and batch_id must be non-empty")

    parse_posted_date(posted_date)

    # Booleans are ints; reject them explicitly.
    if isinstance(amount_minor, bool) or not isinstance(amount_minor, int):
        raise IdentityFieldError(f"amount_minor must be an integer, got {amount_minor!r}")
    if isinstance(line_number, bool) or not isinstance(line_number, int) or line_number < 0:
        raise IdentityFieldError(f"line_number must be a non-negative integer, got {line_number!r}")


__all__ = [
    "ID_PREFIX",
    "DELIMITER",
    "IdentityFieldError",
    "transaction_id",
    "dedup_hash",
    "normalize_merchant",
    "amount_to_minor",
    "parse_posted_date",
    "validate_identity_fields",
]
