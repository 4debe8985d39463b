"""SQLAlchemy ORM models."""

from .institution import Institution
from .plaid_item import PlaidItem
from .plaid_transaction import PlaidTransaction
from .sync_cursor import SyncCursor
from .sync_lock import SyncLock
from .sync_session import SyncSession
from .utils import generate_uuid

__all__ = ["Institution", "PlaidItem", "PlaidTransaction", "SyncCursor", "SyncLock", "SyncSession", "generate_uuid"]
