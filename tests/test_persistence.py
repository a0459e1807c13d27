import pytest
from sqlalchemy import func, select

from db.client import session_scope
from db.models.ledger import ProcessedTransaction
from spend_sync.ingest import annotate_batch
from spend_sync.persistence import get_processed_transaction, record_processed_transactions
from tests.helpers.db import bootstrap_sqlite_db

JANUARY = [
    {"date": "2025-01-03", "amount": "199", "merchant": "Netflix", "category": "Entertainment"},
    {"date": "2025-01-09", "amount": "640.50", "merchant": "Zomato", "category": "food"},
]
# Overlaps January by one line.
JAN_FEB = [
    {"date": "2025-01-09", "amount": "640.50", "merchant": "ZOMATO ", "category": "Food & Dining"},
    {"date": "2025-02-02", "amount": "1200", "merchant": "IRCTC", "category": "travel"},
]


@pytest.fixture
def db_url(tmp_path):
    return bootstrap_sqlite_db(tmp_path / "ledger.sqlite")


def _count(session) -> int:
    return session.execute(select(func.count()).select_from(ProcessedTransaction)).scalar_one()


def test_first_import_inserts_every_row(db_url):
    items = annotate_batch(JANUARY, user_id="u1", batch_id="jan")
    with session_scope(database_url=db_url) as s:
        results = record_processed_transactions(s, user_id="u1", items=items)

    assert [r.is_duplicate for r in results] == [False, False]
    assert [r.transaction_id for r in results] == [i.transaction_id for i in items]
    with session_scope(database_url=db_url) as s:
        assert _count(s) == 2
        row = get_processed_transaction(s, user_id="u1", dedup_hash=items[1].dedup_hash)
        assert row is not None
        assert row.amount_minor == 64050
        assert row.normalized_merchant == "zomato"
        assert row.category == "Food & Dining"
        assert row.occurrence_count == 1


def test_overlapping_statement_is_flagged_and_counted(db_url):
    with session_scope(database_url=db_url) as s:
        record_processed_transactions(
            s, user_id="u1", items=annotate_batch(JANUARY, user_id="u1", batch_id="jan")
        )
    overlap = annotate_batch(JAN_FEB, user_id="u1", batch_id="jan-feb")
    with session_scope(database_url=db_url) as s:
        results = record_processed_transactions(s, user_id="u1", items=overlap)

    assert [(r.is_duplicate, r.occurrence_count) for r in results] == [(True, 2), (False, 1)]
    with session_scope(database_url=db_url) as s:
        assert _count(s) == 3
        row = get_processed_transaction(s, user_id="u1", dedup_hash=overlap[0].dedup_hash)
        assert row.occurrence_count == 2
        # The first import's batch-scoped id is kept.
        assert row.transaction_id != overlap[0].transaction_id


def test_ledger_is_scoped_per_user(db_url):
    with session_scope(database_url=db_url) as s:
        record_processed_transactions(
            s, user_id="u1", items=annotate_batch(JANUARY, user_id="u1", batch_id="jan")
        )
        results = record_processed_transactions(
            s, user_id="u2", items=annotate_batch(JANUARY, user_id="u2", batch_id="jan")
        )
    assert not any(r.is_duplicate for r in results)


def test_repeat_within_one_call_is_a_duplicate(db_url):
    (item,) = annotate_batch(JANUARY[:1], user_id="u1", batch_id="jan")
    with session_scope(database_url=db_url) as s:
        results = record_processed_transactions(s, user_id="u1", items=[item, item])
    assert [(r.is_duplicate, r.occurrence_count) for r in results] == [(False, 1), (True, 2)]


def test_rollback_discards_partial_batch(db_url):
    items = annotate_batch(JANUARY, user_id="u1", batch_id="jan")
    with pytest.raises(RuntimeError):
        with session_scope(database_url=db_url) as s:
            record_processed_transactions(s, user_id="u1", items=items)
            raise RuntimeError("import aborted")
    with session_scope(database_url=db_url) as s:
        assert _count(s) == 0
