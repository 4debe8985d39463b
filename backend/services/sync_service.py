"""Sync service - runs one transactions sync pass across all linked Items."""

import logging
import threading
from dataclasses import asdict, dataclass, field

from config import settings
from integrations.exceptions import UpstreamError
from integrations.upstream_protocol import TransactionsSource
from models.utils import generate_uuid
from services.exceptions import PassAborted, StoreError, SyncCancelledError, SyncInProgressError
from services.pagination_service import PaginationService
from services.transaction_store import ItemRef, TransactionStore

logger = logging.getLogger(__name__)


@dataclass
class ItemSyncResult:
    """Counts committed for one Item during a pass."""

    item_id: str
    added: int
    removed: int
    pages: int


@dataclass
class SyncResult:
    """Outcome of a completed pass."""

    session_id: str
    items: list[ItemSyncResult] = field(default_factory=list)

    @property
    def transactions_added(self) -> int:
        return sum(r.added for r in self.items)

    @property
    def transactions_removed(self) -> int:
        return sum(r.removed for r in self.items)


class SyncService:
    """Orchestrates pagination and reconciliation per Item.

    Items are processed sequentially. Each Item commits atomically on its
    own, so a pass that fails halfway leaves earlier Items committed and
    the next pass resumes the rest from their stored cursors.
    """

    LOCK_NAME = "transactions"

    def __init__(
        self,
        store: TransactionStore,
        source: TransactionsSource,
        stale_after_seconds: int | None = None,
        max_pages: int | None = None,
    ):
        self._store = store
        self._pagination = PaginationService(source, max_pages=max_pages)
        self._stale_after = (
            settings.SYNC_LOCK_STALE_SECONDS if stale_after_seconds is None else stale_after_seconds
        )

    def is_sync_in_progress(self) -> bool:
        """Check if another pass currently holds the lease."""
        return self._store.is_locked(self.LOCK_NAME, self._stale_after)

    def sync_item(self, item: ItemRef) -> ItemSyncResult:
        """Drain upstream for one Item and commit the delta with its new cursor.

        Raises:
            UpstreamError: A page fetch failed; nothing was written.
            StoreError: The commit was rolled back; the cursor is unchanged.
        """
        cursor = self._store.get_cursor(item.item_id)
        logger.info(
            "Syncing item %s from %s",
            item.item_id, "stored cursor" if cursor else "the beginning",
        )

        delta = self._pagination.fetch_all(item.access_token, cursor)
        result = self._store.apply_sync_batch(
            item.item_id, delta.added, delta.removed, delta.next_cursor,
        )

        return ItemSyncResult(
            item_id=item.item_id,
            added=result.added_count,
            removed=result.removed_count,
            pages=delta.pages,
        )

    def trigger_sync(self, cancel_event: threading.Event | None = None) -> SyncResult:
        """Run one sync pass over every linked Item.

        Args:
            cancel_event: Checked before each Item; once set, the pass stops
                without starting another Item.

        Returns:
            SyncResult with per-Item counts.

        Raises:
            SyncInProgressError: Another pass holds the lease.
            SyncCancelledError: ``cancel_event`` was set.
            PassAborted: An Item failed; the cause is chained.
        """
        holder = generate_uuid()
        self._store.acquire_lock(self.LOCK_NAME, holder, self._stale_after)
        logger.info("Sync lock acquired")

        completed: list[ItemSyncResult] = []
        session_id = None
        try:
            session_id = self._store.start_session()
            items = self._store.list_items()
            logger.info("Sync started: %d linked items", len(items))

            for item in items:
                if cancel_event is not None and cancel_event.is_set():
                    raise SyncCancelledError(
                        f"Sync cancelled after {len(completed)} of {len(items)} items",
                        completed=list(completed),
                    )
                try:
                    # Keeps a long pass from looking stale to the next trigger
                    self._store.renew_lock(self.LOCK_NAME, holder)
                    completed.append(self.sync_item(item))
                except (UpstreamError, StoreError, SyncInProgressError) as e:
                    logger.warning("Sync aborted at item %s: %s", item.item_id, e)
                    raise PassAborted(
                        f"Sync aborted at item {item.item_id}: {e}",
                        item_id=item.item_id,
                        completed=list(completed),
                        cause=e,
                    ) from e

        except PassAborted as e:
            status = "cancelled" if isinstance(e, SyncCancelledError) else "failed"
            self._finish_session(session_id, status, completed, str(e))
            raise
        except Exception as e:
            logger.error("Unexpected error during sync", exc_info=True)
            self._finish_session(session_id, "failed", completed, str(e))
            raise
        finally:
            self._release(holder)

        self._finish_session(session_id, "success", completed)
        result = SyncResult(session_id=session_id, items=completed)
        logger.info(
            "Sync complete: %d items, %d added, %d removed",
            len(completed), result.transactions_added, result.transactions_removed,
        )
        return result

    def _release(self, holder: str) -> None:
        try:
            self._store.release_lock(self.LOCK_NAME, holder)
            logger.info("Sync lock released")
        except StoreError:
            logger.warning("Failed to release sync lock", exc_info=True)

    def _finish_session(
        self,
        session_id: str | None,
        status: str,
        completed: list[ItemSyncResult],
        error_message: str | None = None,
    ) -> None:
        """Record the pass outcome; audit failures never mask the pass result."""
        if session_id is None:
            return
        try:
            self._store.finish_session(
                session_id, status, [asdict(r) for r in completed], error_message,
            )
        except StoreError:
            logger.warning("Failed to record sync session %s", session_id, exc_info=True)
