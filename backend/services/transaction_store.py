"""TransactionStore - the owned handle for all persistent sync state.

Every mutation goes through a short-lived session opened under the store's
write lock, so at most one writer touches the database per process at a
time. Reads open their own session and never take the lock.
"""

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from functools import lru_cache
from typing import Iterator

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from database import get_session_local
from integrations.upstream_protocol import AddedTransaction, RemovedTransaction
from models import Institution, PlaidItem, SyncLock, SyncSession
from services.cursor_tracker import read_cursor
from services.exceptions import StoreError, SyncInProgressError
from services.reconciliation_service import ReconciliationResult, ReconciliationService

logger = logging.getLogger(__name__)


def _utcnow_naive() -> datetime:
    """Current UTC time without tzinfo (SQLite strips it on round-trip)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


@dataclass(frozen=True)
class ItemRef:
    """Detached view of a linked Item."""

    item_id: str
    access_token: str
    institution_id: str | None


@dataclass(frozen=True)
class InstitutionRef:
    """Detached view of cached institution metadata."""

    institution_id: str
    name: str | None
    logo: str | None


class TransactionStore:
    """Persistent store for Items, cursors, transactions and sync bookkeeping."""

    def __init__(
        self,
        session_factory: sessionmaker | None = None,
        reconciler: ReconciliationService | None = None,
    ):
        self._session_factory = session_factory or get_session_local()
        self._reconciler = reconciler or ReconciliationService()
        self._write_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Session helpers
    # ------------------------------------------------------------------

    @contextmanager
    def _read_session(self) -> Iterator[Session]:
        db = self._session_factory()
        try:
            yield db
        except SQLAlchemyError as e:
            raise StoreError(f"Store read failed: {e}") from e
        finally:
            db.close()

    @contextmanager
    def _write_session(self, item_id: str | None = None) -> Iterator[Session]:
        """Serialized unit of work: commit on success, roll back on any error."""
        with self._write_lock:
            db = self._session_factory()
            try:
                yield db
                db.commit()
            except SQLAlchemyError as e:
                db.rollback()
                raise StoreError(f"Store transaction failed: {e}", item_id=item_id) from e
            except BaseException:
                db.rollback()
                raise
            finally:
                db.close()

    # ------------------------------------------------------------------
    # Items
    # ------------------------------------------------------------------

    def list_items(self) -> list[ItemRef]:
        """All linked Items in store enumeration order."""
        with self._read_session() as db:
            return [
                ItemRef(item.item_id, item.access_token, item.institution_id)
                for item in db.query(PlaidItem).order_by(PlaidItem.created_at, PlaidItem.id).all()
            ]

    def items_for_institution(self, institution_id: str) -> list[ItemRef]:
        with self._read_session() as db:
            rows = db.query(PlaidItem).filter(PlaidItem.institution_id == institution_id).all()
            return [ItemRef(r.item_id, r.access_token, r.institution_id) for r in rows]

    def create_item(self, item_id: str, access_token: str, institution_id: str | None) -> ItemRef:
        """Record a newly linked Item. Fails with StoreError if item_id exists."""
        with self._write_session(item_id=item_id) as db:
            db.add(PlaidItem(
                item_id=item_id,
                access_token=access_token,
                institution_id=institution_id,
            ))
        logger.info("Created PlaidItem %s for institution %s", item_id, institution_id)
        return ItemRef(item_id, access_token, institution_id)

    # ------------------------------------------------------------------
    # Cursors & reconciliation
    # ------------------------------------------------------------------

    def get_cursor(self, item_id: str) -> str:
        """Last committed cursor for an Item, ``""`` when it has never synced."""
        with self._read_session() as db:
            return read_cursor(db, item_id)

    def apply_sync_batch(
        self,
        item_id: str,
        added: list[AddedTransaction],
        removed: list[RemovedTransaction],
        next_cursor: str,
    ) -> ReconciliationResult:
        """Atomically apply one Item's delta and advance its cursor.

        Raises:
            StoreError: Nothing from this delta was persisted.
        """
        with self._write_session(item_id=item_id) as db:
            return self._reconciler.apply(db, item_id, added, removed, next_cursor)

    # ------------------------------------------------------------------
    # Institutions
    # ------------------------------------------------------------------

    def unique_institution_ids(self) -> list[str]:
        with self._read_session() as db:
            rows = (
                db.query(PlaidItem.institution_id)
                .filter(PlaidItem.institution_id.isnot(None))
                .distinct()
                .all()
            )
            return [r[0] for r in rows]

    def get_institution(self, institution_id: str) -> InstitutionRef | None:
        with self._read_session() as db:
            row = db.query(Institution).filter(Institution.institution_id == institution_id).first()
            if row is None:
                return None
            return InstitutionRef(row.institution_id, row.name, row.logo)

    def upsert_institution(self, institution_id: str, name: str, logo: str | None) -> None:
        """Insert or update institution metadata. An empty logo keeps the stored one."""
        with self._write_session() as db:
            row = db.query(Institution).filter(Institution.institution_id == institution_id).first()
            if row is None:
                row = Institution(institution_id=institution_id)
                db.add(row)
            row.name = name
            if logo:
                row.logo = logo

    # ------------------------------------------------------------------
    # Pass lease
    # ------------------------------------------------------------------

    def acquire_lock(self, name: str, holder: str, stale_after_seconds: int) -> None:
        """Take the named lease, or take over one older than ``stale_after_seconds``.

        Raises:
            SyncInProgressError: A live lease is held by someone else.
        """
        now = _utcnow_naive()
        try:
            with self._write_session() as db:
                current = self._current_lease(db, name)
                if current is None:
                    db.add(SyncLock(name=name, holder=holder, acquired_at=now))
                    return
                old_holder, acquired_at = current
                if (now - acquired_at).total_seconds() < stale_after_seconds:
                    raise SyncInProgressError(name, old_holder)
                logger.warning(
                    "Taking over stale %s lease held by %s since %s",
                    name, old_holder, acquired_at,
                )
                # Only succeeds if nobody else took the lease since we read it
                if not self._swap_holder(db, name, old_holder, holder, now):
                    raise SyncInProgressError(name)
        except StoreError as e:
            # Another process inserted the lease between our read and write
            if isinstance(e.__cause__, IntegrityError):
                raise SyncInProgressError(name) from e
            raise

    def renew_lock(self, name: str, holder: str) -> None:
        """Restart the stale timer on a lease ``holder`` still owns.

        Raises:
            SyncInProgressError: The lease was taken over or released.
        """
        with self._write_session() as db:
            if not self._swap_holder(db, name, holder, holder, _utcnow_naive()):
                raise SyncInProgressError(name)

    def release_lock(self, name: str, holder: str) -> None:
        """Drop the lease if ``holder`` still owns it."""
        with self._write_session() as db:
            lock = db.get(SyncLock, name)
            if lock is not None and lock.holder == holder:
                db.delete(lock)
            else:
                logger.warning("Lease %s no longer held by %s at release", name, holder)

    @staticmethod
    def _current_lease(db: Session, name: str) -> tuple[str, datetime] | None:
        lock = db.get(SyncLock, name)
        if lock is None:
            return None
        return lock.holder, lock.acquired_at

    @staticmethod
    def _swap_holder(db: Session, name: str, expected: str, holder: str, now: datetime) -> bool:
        """Conditional UPDATE of the lease row; False if ``expected`` no longer holds it."""
        table = SyncLock.__table__
        result = db.execute(
            update(table)
            .where(table.c.name == name, table.c.holder == expected)
            .values(holder=holder, acquired_at=now)
        )
        return result.rowcount == 1

    def is_locked(self, name: str, stale_after_seconds: int) -> bool:
        """True if a non-stale lease exists."""
        with self._read_session() as db:
            lock = db.get(SyncLock, name)
            if lock is None:
                return False
            return (_utcnow_naive() - lock.acquired_at).total_seconds() < stale_after_seconds

    # ------------------------------------------------------------------
    # Sync session audit
    # ------------------------------------------------------------------

    def start_session(self) -> str:
        """Create a ``running`` SyncSession and return its id."""
        with self._write_session() as db:
            session = SyncSession(status="running")
            db.add(session)
            db.flush()
            return session.id

    def finish_session(
        self,
        session_id: str,
        status: str,
        item_results: list[dict],
        error_message: str | None = None,
    ) -> None:
        with self._write_session() as db:
            session = db.get(SyncSession, session_id)
            if session is None:
                logger.warning("SyncSession %s vanished before completion", session_id)
                return
            session.status = status
            session.finished_at = datetime.now(timezone.utc)
            session.items_synced = len(item_results)
            session.transactions_added = sum(r["added"] for r in item_results)
            session.transactions_removed = sum(r["removed"] for r in item_results)
            session.item_results = item_results
            session.error_message = error_message


@lru_cache
def get_transaction_store() -> TransactionStore:
    """Process-wide store bound to the configured database (cached)."""
    return TransactionStore()
