"""Unit tests for applying sync deltas through the TransactionStore."""

import json
from unittest.mock import patch

import pytest
from sqlalchemy import event
from sqlalchemy.exc import OperationalError

from models import PlaidTransaction
from services.exceptions import StoreError
from services.reconciliation_service import ReconciliationService, serialize_payload
from services.transaction_store import TransactionStore
from tests.fixtures import make_added, make_removed, stored_cursor, stored_transactions


def test_first_batch_inserts_rows_and_sets_cursor(db, store, plaid_item):
    """3 added records on a fresh Item: 3 live rows and cursor c1."""
    result = store.apply_sync_batch(
        "item-x",
        [make_added("t1"), make_added("t2"), make_added("t3")],
        [],
        "c1",
    )

    assert result.added_count == 3
    assert result.removed_count == 0
    assert stored_transactions(db) == {"t1": False, "t2": False, "t3": False}
    assert stored_cursor(db, "item-x") == "c1"


def test_removal_marks_only_matching_row(db, store, plaid_item):
    """Next pass with one removal flags that row and advances the cursor."""
    store.apply_sync_batch(
        "item-x", [make_added("t1"), make_added("t2"), make_added("t3")], [], "c1",
    )

    result = store.apply_sync_batch("item-x", [], [make_removed("t2")], "c2")

    assert result.added_count == 0
    assert result.removed_count == 1
    assert stored_transactions(db) == {"t1": False, "t2": True, "t3": False}
    assert stored_cursor(db, "item-x") == "c2"


def test_removed_rows_are_not_physically_deleted(db, store, plaid_item):
    store.apply_sync_batch("item-x", [make_added("t1")], [], "c1")
    store.apply_sync_batch("item-x", [], [make_removed("t1")], "c2")

    db.expire_all()
    assert db.query(PlaidTransaction).count() == 1


def test_reapplying_same_added_record_fails(db, store, plaid_item):
    """A transaction_id applied twice is rejected, not duplicated."""
    store.apply_sync_batch("item-x", [make_added("t1")], [], "c1")

    with pytest.raises(StoreError) as exc_info:
        store.apply_sync_batch("item-x", [make_added("t1")], [], "c2")

    assert exc_info.value.item_id == "item-x"
    db.expire_all()
    assert db.query(PlaidTransaction).count() == 1
    assert stored_cursor(db, "item-x") == "c1"


def test_duplicate_within_one_delta_rolls_back_everything(db, store, plaid_item):
    with pytest.raises(StoreError):
        store.apply_sync_batch(
            "item-x", [make_added("t1"), make_added("t2"), make_added("t1")], [], "c1",
        )

    assert stored_transactions(db) == {}
    assert stored_cursor(db, "item-x") is None


def test_cursor_failure_rolls_back_inserts_and_removals(db, store, plaid_item):
    """If the cursor upsert fails, nothing from the delta is visible."""
    store.apply_sync_batch("item-x", [make_added("t1")], [], "c1")

    with patch(
        "services.reconciliation_service.upsert_cursor",
        side_effect=OperationalError("REPLACE INTO sync_cursors", {}, Exception("disk I/O error")),
    ):
        with pytest.raises(StoreError):
            store.apply_sync_batch(
                "item-x",
                [make_added("t2"), make_added("t3")],
                [make_removed("t1")],
                "c2",
            )

    assert stored_transactions(db) == {"t1": False}
    assert stored_cursor(db, "item-x") == "c1"


def test_removal_failure_rolls_back_inserts(db, store, plaid_item):
    """A failure while marking removals undoes the inserts of the same delta."""
    reconciler = ReconciliationService()
    original_apply = reconciler.apply

    def failing_apply(session, item_id, added, removed, next_cursor):
        # Inserts succeed, then the removal step blows up
        original_apply(session, item_id, added, [], next_cursor)
        raise OperationalError("UPDATE plaid_transactions", {}, Exception("database is locked"))

    failing_store = TransactionStore(store._session_factory, reconciler=reconciler)
    with patch.object(reconciler, "apply", side_effect=failing_apply):
        with pytest.raises(StoreError):
            failing_store.apply_sync_batch(
                "item-x", [make_added("t1"), make_added("t2")], [make_removed("t9")], "c1",
            )

    assert stored_transactions(db) == {}
    assert stored_cursor(db, "item-x") is None


def test_removal_for_unknown_transaction_is_noop(db, store, plaid_item):
    """A removal arriving before its insert is a no-op, not an error."""
    result = store.apply_sync_batch("item-x", [], [make_removed("ghost")], "c1")

    assert result.removed_count == 1
    assert stored_transactions(db) == {}
    assert stored_cursor(db, "item-x") == "c1"


def test_removal_in_earlier_delta_leaves_no_marker(db, store, plaid_item):
    """A removal that arrives before its add has nothing to flag.

    The later add then creates a live row; no orphan removal marker lingers.
    """
    store.apply_sync_batch("item-x", [], [make_removed("t1")], "c1")
    store.apply_sync_batch("item-x", [make_added("t1")], [], "c2")

    assert stored_transactions(db) == {"t1": False}


def test_add_and_remove_in_same_delta_flags_row(db, store, plaid_item):
    """Inserts run before removals within one delta."""
    store.apply_sync_batch("item-x", [make_added("t1")], [make_removed("t1")], "c1")

    assert stored_transactions(db) == {"t1": True}


def test_removed_count_is_request_count(db, store, plaid_item):
    """removed_count reports requested removals, matched or not."""
    store.apply_sync_batch("item-x", [make_added("t1")], [], "c1")

    result = store.apply_sync_batch(
        "item-x", [], [make_removed("t1"), make_removed("missing-1"), make_removed("missing-2")], "c2",
    )

    assert result.removed_count == 3
    assert stored_transactions(db) == {"t1": True}


def test_inserts_are_batched_in_fives(db, engine, session_factory):
    """12 added records produce INSERT statements of 5, 5 and 2 rows."""
    insert_sizes = []

    def _count_rows(conn, cursor, statement, parameters, context, executemany):
        if statement.startswith("INSERT INTO plaid_transactions"):
            # Five bound columns per row
            insert_sizes.append(len(parameters) // 5)

    event.listen(engine, "before_cursor_execute", _count_rows)
    session = session_factory()
    try:
        result = ReconciliationService().apply(
            session, "item-x", [make_added(f"t{i}") for i in range(12)], [], "c1",
        )
        session.commit()
    finally:
        session.close()
        event.remove(engine, "before_cursor_execute", _count_rows)

    assert insert_sizes == [5, 5, 2]
    assert result.added_count == 12
    assert len(stored_transactions(db)) == 12


def test_payload_stored_as_canonical_json(db, store, plaid_item):
    store.apply_sync_batch("item-x", [make_added("t1", amount=4.25, name="Coffee")], [], "c1")

    db.expire_all()
    row = db.query(PlaidTransaction).filter_by(transaction_id="t1").one()
    assert row.item_id == "item-x"
    assert json.loads(row.payload)["name"] == "Coffee"
    assert row.payload == serialize_payload(json.loads(row.payload))


def test_serialize_payload_is_key_order_independent():
    assert serialize_payload({"b": 1, "a": 2}) == serialize_payload({"a": 2, "b": 1})
    assert serialize_payload({"a": 1}) == '{"a":1}'
