"""Pydantic schemas for stored transactions."""

import json
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel


class TransactionResponse(BaseModel):
    """A stored transaction with its upstream payload decoded."""

    transaction_id: str
    item_id: Optional[str] = None
    deleted: bool
    transaction: dict[str, Any]
    created_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, row) -> "TransactionResponse":
        return cls(
            transaction_id=row.transaction_id,
            item_id=row.item_id,
            deleted=bool(row.deleted),
            transaction=json.loads(row.payload),
            created_at=row.created_at,
        )
