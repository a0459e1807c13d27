from datetime import date

import pytest

from spend_sync.identity import IdentityFieldError, dedup_hash
from spend_sync.ingest import annotate_batch, drop_in_batch_duplicates

STATEMENT = [
    {"date": "2025-04-01", "amount": "1299.00", "merchant": "Amazon Pay India", "category": "shopping", "transaction_type": "debit"},
    {"date": "2025-04-01", "amount": "1299.004", "merchant": "Amazon Pay India", "category": "shopping", "transaction_type": "debit"},
    {"date": "2025-04-02", "amount": "450", "merchant": "SWIGGY", "category": "Food", "transaction_type": "debit"},
    {"date": "2025-04-03", "amount": "450", "merchant": "SWIGGY", "category": "Food", "transaction_type": "debit"},
    {"date": "2025-04-05", "amount": "25000", "merchant": "Salary", "category": None, "transaction_type": "credit"},
]


def test_drop_in_batch_duplicates_keeps_first_occurrence():
    kept = drop_in_batch_duplicates(STATEMENT)
    assert kept == [STATEMENT[0], STATEMENT[2], STATEMENT[3], STATEMENT[4]]
    assert kept[0] is STATEMENT[0]


def test_in_batch_tolerance_is_strict():
    rows = [
        {"date": "2025-04-01", "amount": 10.00, "merchant": "Uber"},
        {"date": "2025-04-01", "amount": 10.01, "merchant": "Uber"},
        {"date": "2025-04-01", "amount": 10.00, "merchant": "uber"},
    ]
    # A full cent apart, or a differently-cased merchant, is a distinct line.
    assert drop_in_batch_duplicates(rows) == rows


def test_annotate_batch_assigns_positions_among_kept_rows():
    annotated = annotate_batch(STATEMENT, user_id="u1", batch_id="b1")
    assert [a.line_number for a in annotated] == [0, 1, 2, 3]
    first = annotated[0]
    assert first.posted_date == date(2025, 4, 1)
    assert first.amount_minor == 129900
    assert first.merchant_normalized == "amazon pay india"
    assert first.category == "Shopping & E-commerce"
    assert first.transaction_id.startswith("txn_")
    assert first.dedup_hash == dedup_hash("2025-04-01", 129900, "amazon pay india")
    assert annotated[1].category == "Food & Dining"
    assert annotated[3].category == "Other"


def test_reimport_same_batch_yields_same_ids():
    first = annotate_batch(STATEMENT, user_id="u1", batch_id="b1")
    again = annotate_batch([dict(r) for r in STATEMENT], user_id="u1", batch_id="b1")
    assert [a.transaction_id for a in first] == [a.transaction_id for a in again]


def test_different_batch_changes_id_but_not_hash():
    a = annotate_batch(STATEMENT, user_id="u1", batch_id="b1")
    b = annotate_batch(STATEMENT, user_id="u1", batch_id="b2")
    for x, y in zip(a, b, strict=True):
        assert x.transaction_id != y.transaction_id
        assert x.dedup_hash == y.dedup_hash


def test_same_merchant_on_different_days_hash_differently():
    annotated = annotate_batch(STATEMENT, user_id="u1", batch_id="b1")
    assert annotated[1].dedup_hash != annotated[2].dedup_hash


def test_input_rows_are_not_mutated():
    rows = [dict(r) for r in STATEMENT]
    snapshot = [dict(r) for r in rows]
    annotated = annotate_batch(rows, user_id="u1", batch_id="b1")
    assert rows == snapshot
    assert annotated[0].transaction is rows[0]


def test_delimiter_in_merchant_is_sanitized():
    rows = [{"date": "2025-04-01", "amount": 5, "merchant": "Cafe | Bar"}]
    (item,) = annotate_batch(rows, user_id="u1", batch_id="b1")
    assert item.merchant_normalized == "cafe bar"


@pytest.mark.parametrize(
    "row",
    [
        {"date": "01/04/2025", "amount": 5, "merchant": "x"},
        {"date": "2025-04-01", "amount": "five", "merchant": "x"},
        {"amount": 5, "merchant": "x"},
    ],
)
def test_unparseable_rows_raise(row):
    with pytest.raises(IdentityFieldError):
        annotate_batch([row], user_id="u1", batch_id="b1")


def test_delimiter_in_batch_id_is_rejected():
    with pytest.raises(IdentityFieldError):
        annotate_batch(STATEMENT, user_id="u1", batch_id="b|1")


def test_empty_batch():
    assert annotate_batch([], user_id="u1", batch_id="b1") == []
