"""Institution metadata endpoints."""

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from api.plaid import _get_plaid_client
from database import get_db
from integrations.exceptions import UpstreamError
from integrations.plaid_client import PlaidClient
from models import Institution
from schemas import InstitutionRefreshResponse, InstitutionResponse
from services.exceptions import StoreError, SyncInProgressError
from services.institution_service import InstitutionService
from services.transaction_store import TransactionStore, get_transaction_store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/institutions", tags=["institutions"])


def get_institution_service(
    store: TransactionStore = Depends(get_transaction_store),
    client: PlaidClient = Depends(_get_plaid_client),
) -> InstitutionService:
    return InstitutionService(store=store, client=client)


@router.get("", response_model=list[InstitutionResponse])
def list_institutions(db: Session = Depends(get_db)):
    return db.query(Institution).order_by(Institution.name).all()


@router.post("/refresh", response_model=InstitutionRefreshResponse)
def refresh_institutions(
    service: InstitutionService = Depends(get_institution_service),
    client: PlaidClient = Depends(_get_plaid_client),
):
    """Fetch name and logo for every linked institution missing either."""
    if not client.is_configured():
        raise HTTPException(status_code=400, detail="Plaid is not configured")

    try:
        result = service.refresh()
    except SyncInProgressError:
        raise HTTPException(status_code=409, detail="Institution refresh already in progress")
    except UpstreamError as e:
        logger.warning("Plaid error during institution refresh: %s", e)
        raise HTTPException(status_code=502, detail=str(e))
    except StoreError as e:
        logger.error("Store error during institution refresh: %s", e)
        raise HTTPException(status_code=500, detail="Failed to store institution metadata")
    return InstitutionRefreshResponse(updated=result.updated, skipped=result.skipped)
