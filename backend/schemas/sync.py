"""Pydantic schemas for sync passes."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class ItemSyncResponse(BaseModel):
    """Counts committed for one Item in a pass."""

    item_id: str
    added: int
    removed: int
    pages: int


class SyncResponse(BaseModel):
    """Response for a completed sync pass.

    ``transactions_removed`` counts removals requested by Plaid, which may
    include transactions that were never stored locally.
    """

    session_id: str
    transactions_added: int
    transactions_removed: int
    items: list[ItemSyncResponse]


class SyncStatusResponse(BaseModel):
    in_progress: bool


class SyncSessionResponse(BaseModel):
    """Audit record of a past sync pass."""

    id: str
    started_at: datetime
    finished_at: Optional[datetime] = None
    status: str
    items_synced: int
    transactions_added: int
    transactions_removed: int
    error_message: Optional[str] = None

    model_config = {"from_attributes": True}
