"""Pydantic request/response schemas."""

from .institution import InstitutionRefreshResponse, InstitutionResponse
from .sync import ItemSyncResponse, SyncResponse, SyncSessionResponse, SyncStatusResponse
from .transaction import TransactionResponse

__all__ = [
    "InstitutionRefreshResponse",
    "InstitutionResponse",
    "ItemSyncResponse",
    "SyncResponse",
    "SyncSessionResponse",
    "SyncStatusResponse",
    "TransactionResponse",
]
