"""Test fixtures and sample data."""
import pytest
from sqlalchemy.orm import Session

from integrations.upstream_protocol import AddedTransaction, RemovedTransaction, TransactionsPage
from models import Institution, PlaidItem, PlaidTransaction, SyncCursor


def make_added(transaction_id: str, amount: float = 12.5, name: str | None = None) -> AddedTransaction:
    """Build an added record shaped like a Plaid transaction."""
    return AddedTransaction(
        transaction_id=transaction_id,
        payload={
            "transaction_id": transaction_id,
            "account_id": "acc_001",
            "amount": amount,
            "date": "2026-01-15",
            "name": name or f"Merchant {transaction_id}",
            "iso_currency_code": "USD",
        },
    )


def make_removed(transaction_id: str) -> RemovedTransaction:
    return RemovedTransaction(transaction_id=transaction_id)


def make_page(
    added: list[str] | None = None,
    removed: list[str] | None = None,
    next_cursor: str = "",
    has_more: bool = False,
) -> TransactionsPage:
    """Build a page from lists of transaction ids."""
    return TransactionsPage(
        added=[make_added(t) for t in added or []],
        removed=[make_removed(t) for t in removed or []],
        next_cursor=next_cursor,
        has_more=has_more,
    )


def create_item(
    db: Session,
    item_id: str,
    access_token: str | None = None,
    institution_id: str | None = "ins_1",
) -> PlaidItem:
    """Create and commit a PlaidItem.

    This is a helper function (not a fixture) for tests that need several
    Items with different ids.
    """
    item = PlaidItem(
        item_id=item_id,
        access_token=access_token or f"access-{item_id}",
        institution_id=institution_id,
    )
    db.add(item)
    db.commit()
    return item


def stored_transactions(db: Session, item_id: str | None = None) -> dict[str, bool]:
    """Map transaction_id -> deleted flag, read fresh from the database."""
    db.expire_all()
    query = db.query(PlaidTransaction)
    if item_id:
        query = query.filter(PlaidTransaction.item_id == item_id)
    return {row.transaction_id: row.deleted for row in query.all()}


def stored_cursor(db: Session, item_id: str) -> str | None:
    db.expire_all()
    row = db.get(SyncCursor, item_id)
    return row.cursor if row else None


@pytest.fixture
def plaid_item(db: Session) -> PlaidItem:
    """Create a test Plaid Item."""
    return create_item(db, "item-x", access_token="access-x", institution_id="ins_109508")


@pytest.fixture
def institution(db: Session) -> Institution:
    """Create a fully populated institution."""
    inst = Institution(institution_id="ins_109508", name="First Platypus Bank", logo="iVBORw0KGgo=")
    db.add(inst)
    db.commit()
    return inst
