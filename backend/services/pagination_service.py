"""Pagination driver for Plaid /transactions/sync."""

import logging
from dataclasses import dataclass, field

from config import settings
from integrations.exceptions import PaginationLimitError
from integrations.upstream_protocol import AddedTransaction, RemovedTransaction, TransactionsSource

logger = logging.getLogger(__name__)


@dataclass
class SyncDelta:
    """Everything upstream reported for one Item, across all pages."""

    added: list[AddedTransaction] = field(default_factory=list)
    removed: list[RemovedTransaction] = field(default_factory=list)
    next_cursor: str = ""
    pages: int = 0


class PaginationService:
    """Drains /transactions/sync for one Item until ``has_more`` is false.

    No retries: the first failed page aborts the run and its
    ``UpstreamError`` propagates unchanged, with nothing returned.
    """

    def __init__(self, source: TransactionsSource, max_pages: int | None = None):
        self._source = source
        # 0 disables the ceiling; the loop then relies on upstream to finish
        self._max_pages = settings.SYNC_MAX_PAGES if max_pages is None else max_pages

    def fetch_all(self, access_token: str, cursor: str = "") -> SyncDelta:
        """Fetch every page available now, starting after ``cursor``.

        Args:
            access_token: The Item's Plaid access token.
            cursor: Last committed cursor; ``""`` starts from the beginning.

        Returns:
            Accumulated added/removed records in the order received and the
            cursor that marks the end of this delta window.
        """
        delta = SyncDelta(next_cursor=cursor)
        has_more = True

        while has_more:
            if self._max_pages and delta.pages >= self._max_pages:
                raise PaginationLimitError(
                    f"/transactions/sync still reports more data after {delta.pages} pages"
                )

            page = self._source.sync_transactions(access_token, delta.next_cursor or None)
            delta.pages += 1

            delta.added.extend(page.added)
            delta.removed.extend(page.removed)
            delta.next_cursor = page.next_cursor
            has_more = page.has_more

            logger.debug(
                "Page %d: %d added, %d removed, has_more=%s",
                delta.pages, len(page.added), len(page.removed), has_more,
            )

        return delta
