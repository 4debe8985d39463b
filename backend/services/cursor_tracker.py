"""Per-Item /transactions/sync cursor access.

Reads happen before a pagination run; writes happen only from
``ReconciliationService.apply`` inside the same transaction as the
records the cursor covers.
"""

from datetime import datetime, timezone

from sqlalchemy.orm import Session

from models.sync_cursor import SyncCursor


def read_cursor(db: Session, item_id: str) -> str:
    """Return the last committed cursor for an Item, or ``""`` if it never synced."""
    row = db.get(SyncCursor, item_id)
    return row.cursor if row is not None else ""


def upsert_cursor(db: Session, item_id: str, cursor: str) -> None:
    """Insert or replace the cursor for an Item (not flushed)."""
    now = datetime.now(timezone.utc)
    row = db.get(SyncCursor, item_id)
    if row is None:
        db.add(SyncCursor(item_id=item_id, cursor=cursor, updated_at=now))
    else:
        row.cursor = cursor
        row.updated_at = now
