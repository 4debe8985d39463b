"""Transaction review endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from database import get_db
from models import PlaidTransaction
from schemas import TransactionResponse

router = APIRouter(prefix="/api/transactions", tags=["transactions"])


@router.get("", response_model=list[TransactionResponse])
def list_transactions(
    item_id: Optional[str] = None,
    include_deleted: bool = False,
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
):
    """List stored transactions in the order they were first observed.

    Transactions Plaid reported as removed are hidden unless
    ``include_deleted`` is set.
    """
    query = db.query(PlaidTransaction)
    if item_id:
        query = query.filter(PlaidTransaction.item_id == item_id)
    if not include_deleted:
        query = query.filter(PlaidTransaction.deleted.is_(False))
    rows = query.order_by(PlaidTransaction.id).offset(offset).limit(limit).all()
    return [TransactionResponse.from_model(row) for row in rows]
