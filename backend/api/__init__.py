"""API route handlers."""
from . import institutions, plaid, sync, transactions

__all__ = ["institutions", "plaid", "sync", "transactions"]
