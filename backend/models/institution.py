"""Institution model - cached display metadata for a Plaid institution."""

from sqlalchemy import Column, String, Text

from database import Base
from models.utils import generate_uuid


class Institution(Base):
    """Name and logo of a financial institution, keyed by Plaid institution_id."""

    __tablename__ = "institutions"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    institution_id = Column(String, unique=True, index=True, nullable=False)
    name = Column(String, nullable=True)
    logo = Column(Text, nullable=True)  # base64 encoded PNG
