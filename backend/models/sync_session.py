"""SyncSession model - audit record of one transactions sync pass."""

from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, Integer, String, Text

from database import Base
from models.utils import generate_uuid


class SyncSession(Base):
    """A sync pass over every linked Item.

    Written outside the per-Item reconciliation transactions, so it never
    affects cursor or transaction state.
    """

    __tablename__ = "sync_sessions"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    started_at = Column(DateTime, nullable=False, default=lambda: datetime.now(timezone.utc))
    finished_at = Column(DateTime, nullable=True)
    status = Column(String, nullable=False, default="running")  # running | success | failed | cancelled
    items_synced = Column(Integer, default=0)
    transactions_added = Column(Integer, default=0)
    transactions_removed = Column(Integer, default=0)
    item_results = Column(JSON, nullable=True)  # list of per-item count dicts
    error_message = Column(Text, nullable=True)
