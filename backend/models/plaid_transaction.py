"""PlaidTransaction model - one upstream transaction as last reported."""

from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, Integer, String, Text

from database import Base


class PlaidTransaction(Base):
    """A transaction observed through /transactions/sync.

    The payload is the canonical JSON of the upstream record; its schema is
    owned by Plaid. Rows are never deleted, only flagged when Plaid reports
    the transaction as removed.
    """

    __tablename__ = "plaid_transactions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    transaction_id = Column(String, unique=True, index=True, nullable=False)
    item_id = Column(String, index=True, nullable=True)
    payload = Column(Text, nullable=False)
    deleted = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime, nullable=True)
