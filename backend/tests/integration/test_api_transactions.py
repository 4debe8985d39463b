"""Integration tests for transaction review endpoints."""

from tests.fixtures import create_item, make_added, make_removed


def _seed(store, db):
    create_item(db, "item-a")
    create_item(db, "item-b")
    store.apply_sync_batch(
        "item-a", [make_added("a1", amount=4.5, name="Coffee"), make_added("a2")], [], "ca1",
    )
    store.apply_sync_batch("item-b", [make_added("b1")], [], "cb1")
    store.apply_sync_batch("item-a", [], [make_removed("a2")], "ca2")


def test_lists_live_transactions(client, store, db):
    _seed(store, db)

    response = client.get("/api/transactions")

    assert response.status_code == 200
    data = response.json()
    assert [t["transaction_id"] for t in data] == ["a1", "b1"]
    assert data[0]["transaction"]["name"] == "Coffee"
    assert data[0]["transaction"]["amount"] == 4.5
    assert data[0]["deleted"] is False


def test_include_deleted(client, store, db):
    _seed(store, db)

    response = client.get("/api/transactions", params={"include_deleted": True})

    flags = {t["transaction_id"]: t["deleted"] for t in response.json()}
    assert flags == {"a1": False, "a2": True, "b1": False}


def test_filter_by_item(client, store, db):
    _seed(store, db)

    response = client.get("/api/transactions", params={"item_id": "item-b"})

    assert [t["transaction_id"] for t in response.json()] == ["b1"]


def test_pagination(client, store, db):
    create_item(db, "item-a")
    store.apply_sync_batch("item-a", [make_added(f"t{i}") for i in range(7)], [], "c1")

    first = client.get("/api/transactions", params={"limit": 5}).json()
    second = client.get("/api/transactions", params={"limit": 5, "offset": 5}).json()

    assert [t["transaction_id"] for t in first] == [f"t{i}" for i in range(5)]
    assert [t["transaction_id"] for t in second] == ["t5", "t6"]


def test_limit_out_of_range(client):
    response = client.get("/api/transactions", params={"limit": 0})
    assert response.status_code == 422
