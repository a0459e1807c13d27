import hashlib
import re
from datetime import date

import pytest

from spend_sync.identity import (
    IdentityFieldError,
    amount_to_minor,
    dedup_hash,
    normalize_merchant,
    parse_posted_date,
    transaction_id,
    validate_identity_fields,
)

BASE = {
    "user_id": "user-1",
    "batch_id": "batch-7",
    "posted_date": "2025-03-14",
    "amount_minor": 129900,
    "normalized_merchant": "amazon pay india",
    "line_number": 4,
}


def _tid(**overrides):
    args = {**BASE, **overrides}
    return transaction_id(
        args["user_id"],
        args["batch_id"],
        args["posted_date"],
        args["amount_minor"],
        args["normalized_merchant"],
        args["line_number"],
    )


def _dh(**overrides):
    args = {**BASE, **overrides}
    return dedup_hash(args["posted_date"], args["amount_minor"], args["normalized_merchant"])


def test_transaction_id_shape_and_construction():
    tid = _tid()
    assert re.fullmatch(r"txn_[0-9a-f]{64}", tid)
    composite = "user-1|batch-7|2025-03-14|129900|amazon pay india|4"
    assert tid == "txn_" + hashlib.sha256(composite.encode("utf-8")).hexdigest()


def test_transaction_id_is_deterministic():
    assert _tid() == _tid()


@pytest.mark.parametrize(
    "field, value",
    [
        ("user_id", "user-2"),
        ("batch_id", "batch-8"),
        ("posted_date", "2025-03-15"),
        ("amount_minor", 129901),
        ("normalized_merchant", "amazon"),
        ("line_number", 5),
    ],
)
def test_transaction_id_changes_with_any_field(field, value):
    assert _tid(**{field: value}) != _tid()


def test_date_objects_and_iso_strings_hash_identically():
    assert _tid(posted_date=date(2025, 3, 14)) == _tid()
    assert _dh(posted_date=date(2025, 3, 14)) == _dh()


def test_dedup_hash_shape_and_construction():
    h = _dh()
    assert re.fullmatch(r"[0-9a-f]{64}", h)
    assert h == hashlib.sha256(b"2025-03-14|129900|amazon pay india").hexdigest()


def test_dedup_hash_ignores_user_batch_and_line():
    a = dedup_hash("2025-03-14", 129900, "amazon pay india")
    # Same real-world transaction, different import context.
    assert _dh(user_id="other", batch_id="other-batch", line_number=99) == a


@pytest.mark.parametrize(
    "field, value",
    [
        ("posted_date", "2025-03-13"),
        ("amount_minor", 129800),
        ("normalized_merchant", "amazon pay"),
    ],
)
def test_dedup_hash_changes_with_content_fields(field, value):
    assert _dh(**{field: value}) != _dh()


def test_no_collisions_across_small_corpus():
    ids = set()
    hashes = set()
    for day in range(1, 11):
        for amount in (100, 101, 5000):
            for merchant in ("swiggy", "zomato", "uber"):
                d = f"2025-01-{day:02d}"
                ids.add(transaction_id("u", "b", d, amount, merchant, 0))
                hashes.add(dedup_hash(d, amount, merchant))
    assert len(ids) == len(hashes) == 10 * 3 * 3


def test_normalize_merchant_sanitizes_delimiter_and_whitespace():
    assert normalize_merchant("  AMAZON   Pay\tIndia ") == "amazon pay india"
    assert normalize_merchant("A|B") == "a b"
    assert normalize_merchant(None) == ""


@pytest.mark.parametrize(
    "raw, expected",
    [
        (1299, 129900),
        ("12.34", 1234),
        ("0.005", 1),
        ("-0.005", -1),
        (0.1 + 0.2, 30),
        ("1,000", None),
    ],
)
def test_amount_to_minor(raw, expected):
    if expected is None:
        with pytest.raises(IdentityFieldError):
            amount_to_minor(raw)
    else:
        assert amount_to_minor(raw) == expected


@pytest.mark.parametrize("raw", [None, True, "Infinity", ""])
def test_amount_to_minor_rejects_non_amounts(raw):
    with pytest.raises(IdentityFieldError):
        amount_to_minor(raw)


def test_parse_posted_date():
    assert parse_posted_date("2025-02-28") == date(2025, 2, 28)
    assert parse_posted_date(date(2025, 1, 1)) == date(2025, 1, 1)
    for bad in (None, "28/02/2025", "2025-02-30", "2025-2-1"):
        with pytest.raises(IdentityFieldError):
            parse_posted_date(bad)


def test_validate_identity_fields_accepts_clean_input():
    validate_identity_fields(**BASE)


@pytest.mark.parametrize(
    "overrides",
    [
        {"user_id": "user|1"},
        {"batch_id": "b|7"},
        {"normalized_merchant": "amazon|pay"},
        {"user_id": ""},
        {"posted_date": "14-03-2025"},
        {"amount_minor": 12.5},
        {"amount_minor": True},
        {"line_number": -1},
    ],
)
def test_validate_identity_fields_rejects_unsafe_input(overrides):
    with pytest.raises(IdentityFieldError):
        validate_identity_fields(**{**BASE, **overrides})


def test_generators_do_not_validate():
    # Garbage in, deterministic garbage out: validation lives at the boundary.
    assert transaction_id("a|b", "c", "d", 1, "e", 0) == transaction_id("a", "b|c", "d", 1, "e", 0)
