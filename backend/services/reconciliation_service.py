"""Reconciliation writer - applies one Item's sync delta to the store."""

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import insert, update
from sqlalchemy.orm import Session

from integrations.upstream_protocol import AddedTransaction, RemovedTransaction
from models.plaid_transaction import PlaidTransaction
from services.cursor_tracker import upsert_cursor

logger = logging.getLogger(__name__)

# Added records per INSERT statement
BATCH_SIZE = 5


@dataclass
class ReconciliationResult:
    """Counts reported for one applied delta.

    ``added_count`` is the number of rows the INSERTs affected.
    ``removed_count`` is the number of removals *requested*; a removal for
    a transaction that was never stored still counts.
    """

    added_count: int
    removed_count: int


def serialize_payload(payload: dict[str, Any]) -> str:
    """Canonical JSON for a transaction payload (sorted keys, compact)."""
    return json.dumps(payload, sort_keys=True, separators=(",", ":"), default=str)


class ReconciliationService:
    """Writes added records, removal flags and the new cursor.

    ``apply`` performs no commit of its own; the caller owns the
    transaction and must roll it back if anything raises, so a delta is
    either fully visible or not at all.
    """

    def __init__(self, batch_size: int = BATCH_SIZE):
        self._batch_size = batch_size

    def apply(
        self,
        db: Session,
        item_id: str,
        added: list[AddedTransaction],
        removed: list[RemovedTransaction],
        next_cursor: str,
    ) -> ReconciliationResult:
        """Stage one Item's delta in ``db``.

        A transaction_id that already exists makes the INSERT fail with an
        ``IntegrityError``, which is what stops the same page from being
        applied twice.
        """
        now = datetime.now(timezone.utc)
        table = PlaidTransaction.__table__

        affected = 0
        for start in range(0, len(added), self._batch_size):
            batch = added[start:start + self._batch_size]
            rows = [
                {
                    "transaction_id": txn.transaction_id,
                    "item_id": item_id,
                    "payload": serialize_payload(txn.payload),
                    "deleted": False,
                    "created_at": now,
                }
                for txn in batch
            ]
            result = db.execute(insert(table).values(rows))
            affected += result.rowcount

        for rem in removed:
            result = db.execute(
                update(table)
                .where(table.c.transaction_id == rem.transaction_id)
                .values(deleted=True, updated_at=now)
            )
            if result.rowcount == 0:
                logger.debug(
                    "Removal for unknown transaction %s on item %s ignored",
                    rem.transaction_id, item_id,
                )

        upsert_cursor(db, item_id, next_cursor)
        db.flush()

        logger.info(
            "Item %s: %d transactions inserted, %d removals applied",
            item_id, affected, len(removed),
        )
        return ReconciliationResult(added_count=affected, removed_count=len(removed))
