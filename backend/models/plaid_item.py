"""PlaidItem model - one linked bank connection (a Plaid Item)."""

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, String

from database import Base
from models.utils import generate_uuid


class PlaidItem(Base):
    """A Plaid Item representing a linked financial institution.

    Created once when the user completes Plaid Link and never updated
    afterwards. The access_token is used for every transactions sync.
    """

    __tablename__ = "plaid_items"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    item_id = Column(String, unique=True, index=True, nullable=False)
    access_token = Column(String, nullable=False)
    institution_id = Column(String, index=True, nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
