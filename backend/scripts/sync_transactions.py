#!/usr/bin/env python
"""Run one transactions sync pass from the command line.

Ctrl-C stops the pass cleanly after the Item currently being synced;
Items committed before that stay committed.

Usage:
    python -m scripts.sync_transactions
    python -m scripts.sync_transactions --institutions
    python -m scripts.sync_transactions --verbose
"""

import argparse
import logging
import signal
import sys
import threading

from database import init_db
from integrations.exceptions import UpstreamError
from integrations.plaid_client import PlaidClient
from logging_config import setup_logging
from services.exceptions import PassAborted, StoreError, SyncCancelledError, SyncInProgressError
from services.institution_service import InstitutionService
from services.sync_service import SyncResult, SyncService
from services.transaction_store import TransactionStore

logger = logging.getLogger(__name__)


def print_sync_result(result: SyncResult) -> None:
    """Print per-Item and total counts."""
    print(f"\n=== Sync {result.session_id} ===")
    for item in result.items:
        print(f"  {item.item_id}: +{item.added} / -{item.removed} ({item.pages} pages)")
    print(f"  Total: {result.transactions_added} added, {result.transactions_removed} removed")


def run_sync(
    store: TransactionStore,
    client: PlaidClient,
    cancel_event: threading.Event,
) -> int:
    """Run a sync pass and return the process exit code."""
    service = SyncService(store=store, source=client)
    try:
        result = service.trigger_sync(cancel_event=cancel_event)
    except SyncInProgressError:
        print("Error: another sync is already in progress")
        return 2
    except SyncCancelledError as e:
        print(f"Cancelled: {e} ({len(e.completed)} items committed)")
        return 130
    except (PassAborted, StoreError) as e:
        print(f"Error: {e}")
        return 1

    print_sync_result(result)
    return 0


def run_institution_refresh(
    store: TransactionStore,
    client: PlaidClient,
    cancel_event: threading.Event,
) -> int:
    service = InstitutionService(store=store, client=client)
    try:
        result = service.refresh(cancel_event=cancel_event)
    except SyncInProgressError:
        print("Error: another institution refresh is already in progress")
        return 2
    except SyncCancelledError:
        print("Cancelled")
        return 130
    except (UpstreamError, StoreError) as e:
        print(f"Error: {e}")
        return 1
    print(f"Institutions: {len(result.updated)} updated, {len(result.skipped)} already complete")
    return 0


def main(argv: list[str] | None = None) -> int:
    """Entry point: parse args and run the requested job."""
    parser = argparse.ArgumentParser(
        description="Sync Plaid transactions for every linked Item.",
    )
    parser.add_argument(
        "--institutions",
        action="store_true",
        help="Refresh institution names and logos instead of syncing transactions",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Log per-page progress (DEBUG level)",
    )
    args = parser.parse_args(argv)

    setup_logging("DEBUG" if args.verbose else None)
    client = PlaidClient()
    if not client.is_configured():
        print("Error: Plaid is not configured.")
        print("Run 'python -m scripts.setup_plaid' or check your .env file.")
        return 1

    init_db()
    store = TransactionStore()

    cancel_event = threading.Event()

    def _request_cancel(signum, frame):
        logger.warning("Interrupt received; stopping after the current item")
        cancel_event.set()

    signal.signal(signal.SIGINT, _request_cancel)

    if args.institutions:
        return run_institution_refresh(store, client, cancel_event)
    return run_sync(store, client, cancel_event)


if __name__ == "__main__":
    sys.exit(main())
