"""SyncCursor model - last committed /transactions/sync cursor per Item."""

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, String

from database import Base


class SyncCursor(Base):
    """Pagination progress for one Plaid Item.

    Only written in the same transaction as the added/removed records that
    precede it, so the stored cursor never runs ahead of the data.
    """

    __tablename__ = "sync_cursors"

    item_id = Column(String, primary_key=True)
    cursor = Column(String, nullable=False)
    updated_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
