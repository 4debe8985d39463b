"""SyncLock model - lease preventing overlapping sync passes."""

from sqlalchemy import Column, DateTime, String

from database import Base


class SyncLock(Base):
    """A named lease held for the duration of a pass.

    ``acquired_at`` is naive UTC; a lease older than the configured stale
    timeout is treated as abandoned by a crashed holder.
    """

    __tablename__ = "sync_locks"

    name = Column(String, primary_key=True)
    holder = Column(String, nullable=False)
    acquired_at = Column(DateTime, nullable=False)
