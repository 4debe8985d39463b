"""Plaid Link API endpoints.

Provides the server-side endpoints for the Plaid Link browser-based
authentication flow: creating link tokens, exchanging public tokens,
and listing linked institutions (PlaidItems).
"""

import logging

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.orm import Session

from database import get_db
from integrations.exceptions import UpstreamError
from integrations.plaid_client import PlaidClient
from models.plaid_item import PlaidItem
from services.exceptions import StoreError
from services.transaction_store import TransactionStore, get_transaction_store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/plaid", tags=["plaid"])


def _get_plaid_client() -> PlaidClient:
    """Dependency for injecting the Plaid client (overridable in tests)."""
    return PlaidClient()


# ------------------------------------------------------------------
# Request / Response schemas
# ------------------------------------------------------------------


class LinkTokenResponse(BaseModel):
    link_token: str


class ExchangeTokenRequest(BaseModel):
    public_token: str
    institution_id: str


class ExchangeTokenResponse(BaseModel):
    item_id: str
    institution_id: str


class PlaidItemResponse(BaseModel):
    id: str
    item_id: str
    institution_id: str | None = None
    created_at: str | None = None


# ------------------------------------------------------------------
# Endpoints
# ------------------------------------------------------------------


@router.post("/link-token", response_model=LinkTokenResponse, status_code=201)
def create_link_token(
    client: PlaidClient = Depends(_get_plaid_client),
):
    """Create a Plaid Link token for the frontend."""
    if not client.is_configured():
        raise HTTPException(status_code=400, detail="Plaid is not configured")

    try:
        link_token = client.create_link_token()
    except UpstreamError as e:
        if e.error_code == "INVALID_API_KEYS":
            hint = (
                "Plaid rejected the credentials. Check that PLAID_ENVIRONMENT "
                "matches your keys (sandbox or production). "
                "Each environment has different secrets."
            )
            logger.error("Plaid INVALID_API_KEYS: %s", hint)
            raise HTTPException(status_code=400, detail=hint)
        logger.error("Failed to create Plaid link token: %s", e)
        raise HTTPException(status_code=400, detail=str(e))
    return LinkTokenResponse(link_token=link_token)


@router.post("/exchange-token", response_model=ExchangeTokenResponse)
def exchange_token(
    body: ExchangeTokenRequest,
    store: TransactionStore = Depends(get_transaction_store),
    client: PlaidClient = Depends(_get_plaid_client),
):
    """Exchange a Plaid Link public_token and store the resulting Item.

    Each institution may be linked only once; linked Items are never
    updated afterwards.
    """
    if not client.is_configured():
        raise HTTPException(status_code=400, detail="Plaid is not configured")

    if store.items_for_institution(body.institution_id):
        raise HTTPException(status_code=400, detail="Institution already linked")

    try:
        result = client.exchange_public_token(body.public_token)
    except UpstreamError as e:
        logger.error("Failed to exchange Plaid token: %s", e)
        raise HTTPException(status_code=400, detail=str(e))

    try:
        item = store.create_item(result["item_id"], result["access_token"], body.institution_id)
    except StoreError as e:
        logger.error("Failed to store PlaidItem %s: %s", result["item_id"], e)
        raise HTTPException(status_code=500, detail="Failed to store linked item")

    return ExchangeTokenResponse(item_id=item.item_id, institution_id=body.institution_id)


@router.get("/items", response_model=list[PlaidItemResponse])
def list_items(db: Session = Depends(get_db)):
    """List all linked Plaid Items (access tokens are never returned)."""
    items = db.query(PlaidItem).order_by(PlaidItem.created_at.desc()).all()
    return [
        PlaidItemResponse(
            id=item.id,
            item_id=item.item_id,
            institution_id=item.institution_id,
            created_at=item.created_at.isoformat() if item.created_at else None,
        )
        for item in items
    ]
