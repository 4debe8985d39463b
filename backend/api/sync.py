"""Sync API endpoints."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from api.plaid import _get_plaid_client
from database import get_db
from integrations.exceptions import UpstreamAuthError, UpstreamError
from integrations.plaid_client import PlaidClient
from models import SyncSession
from schemas import ItemSyncResponse, SyncResponse, SyncSessionResponse, SyncStatusResponse
from services.exceptions import PassAborted, StoreError, SyncInProgressError
from services.sync_service import SyncService
from services.transaction_store import TransactionStore, get_transaction_store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/sync", tags=["sync"])


def get_sync_service(
    store: TransactionStore = Depends(get_transaction_store),
    client: PlaidClient = Depends(_get_plaid_client),
) -> SyncService:
    """Build a SyncService (overridable in tests)."""
    return SyncService(store=store, source=client)


@router.post("", response_model=SyncResponse)
def trigger_sync(
    sync_service: SyncService = Depends(get_sync_service),
    client: PlaidClient = Depends(_get_plaid_client),
):
    """Run one transactions sync pass over every linked Item.

    Returns:
        Aggregate and per-Item added/removed counts

    Raises:
        HTTPException:
            - 400 Bad Request: Plaid is not configured
            - 409 Conflict: Sync is already in progress, or the lease was taken over
            - 500 Internal Server Error: Store failure or unexpected error
            - 502 Bad Gateway: Plaid rejected or failed a request
    """
    if not client.is_configured():
        raise HTTPException(status_code=400, detail="Plaid is not configured")

    try:
        result = sync_service.trigger_sync()

    except SyncInProgressError:
        raise HTTPException(
            status_code=409,
            detail="Sync already in progress. Please wait for the current sync to complete.",
        )

    except PassAborted as e:
        cause = e.cause
        if isinstance(cause, SyncInProgressError):
            raise HTTPException(
                status_code=409,
                detail=f"Sync lease was taken over by another pass at item {e.item_id}.",
            )
        if isinstance(cause, UpstreamAuthError):
            raise HTTPException(
                status_code=502,
                detail=(
                    f"Plaid authentication failed for item {e.item_id}. "
                    "The item may need to be re-linked."
                ),
            )
        if isinstance(cause, UpstreamError):
            raise HTTPException(status_code=502, detail=str(cause))
        if isinstance(cause, StoreError):
            raise HTTPException(
                status_code=500,
                detail=f"Failed to store transactions for item {e.item_id}.",
            )
        raise HTTPException(status_code=500, detail=str(e))

    except Exception:
        # Never expose str(e) for unexpected errors
        logger.error("Unexpected error during sync", exc_info=True)
        raise HTTPException(
            status_code=500,
            detail="An unexpected error occurred during sync.",
        )

    return SyncResponse(
        session_id=result.session_id,
        transactions_added=result.transactions_added,
        transactions_removed=result.transactions_removed,
        items=[
            ItemSyncResponse(item_id=r.item_id, added=r.added, removed=r.removed, pages=r.pages)
            for r in result.items
        ],
    )


@router.get("/status", response_model=SyncStatusResponse)
def sync_status(sync_service: SyncService = Depends(get_sync_service)):
    """Report whether a sync pass currently holds the lease."""
    return SyncStatusResponse(in_progress=sync_service.is_sync_in_progress())


@router.get("/sessions", response_model=list[SyncSessionResponse])
def list_sync_sessions(
    limit: int = Query(20, ge=1, le=200),
    db: Session = Depends(get_db),
):
    """Most recent sync passes first."""
    return (
        db.query(SyncSession)
        .order_by(SyncSession.started_at.desc())
        .limit(limit)
        .all()
    )
