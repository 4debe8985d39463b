"""Institution service - refreshes cached institution names and logos."""

import logging
import threading
from dataclasses import dataclass, field

from config import settings
from integrations.plaid_client import PlaidClient
from models.utils import generate_uuid
from services.exceptions import StoreError, SyncCancelledError
from services.transaction_store import TransactionStore

logger = logging.getLogger(__name__)


@dataclass
class RefreshResult:
    updated: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)


class InstitutionService:
    """Fetch-and-upsert loop over the institutions of linked Items.

    Institutions that already have both a name and a logo are skipped.
    The first upstream or store error stops the refresh and propagates.
    """

    LOCK_NAME = "institutions"

    def __init__(
        self,
        store: TransactionStore,
        client: PlaidClient,
        stale_after_seconds: int | None = None,
    ):
        self._store = store
        self._client = client
        self._stale_after = (
            settings.SYNC_LOCK_STALE_SECONDS if stale_after_seconds is None else stale_after_seconds
        )

    def refresh_one(self, institution_id: str) -> bool:
        """Refresh a single institution. Returns False if it was already complete."""
        existing = self._store.get_institution(institution_id)
        if existing is not None and existing.name and existing.logo:
            return False

        fetched = self._client.get_institution(institution_id)
        self._store.upsert_institution(fetched.institution_id, fetched.name, fetched.logo)
        logger.info("Refreshed institution %s (%s)", institution_id, fetched.name)
        return True

    def refresh(self, cancel_event: threading.Event | None = None) -> RefreshResult:
        """Refresh every institution referenced by a linked Item.

        Raises:
            SyncInProgressError: Another refresh holds the lease, or took it over.
            SyncCancelledError: ``cancel_event`` was set between institutions.
            UpstreamError / StoreError: Propagated from the failing institution.
        """
        holder = generate_uuid()
        self._store.acquire_lock(self.LOCK_NAME, holder, self._stale_after)
        result = RefreshResult()
        try:
            for institution_id in self._store.unique_institution_ids():
                if cancel_event is not None and cancel_event.is_set():
                    raise SyncCancelledError("Institution refresh cancelled")
                self._store.renew_lock(self.LOCK_NAME, holder)
                if self.refresh_one(institution_id):
                    result.updated.append(institution_id)
                else:
                    result.skipped.append(institution_id)
        finally:
            try:
                self._store.release_lock(self.LOCK_NAME, holder)
            except StoreError:
                logger.warning("Failed to release institution lock", exc_info=True)

        logger.info(
            "Institution refresh: %d updated, %d already complete",
            len(result.updated), len(result.skipped),
        )
        return result
