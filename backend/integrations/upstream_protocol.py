"""Normalized shapes exchanged with the aggregation API.

The sync core depends only on these dataclasses and the
``TransactionsSource`` protocol, so tests can substitute a scripted client
for the real Plaid SDK wrapper.
"""

from dataclasses import dataclass, field
from typing import Any, Protocol


@dataclass
class AddedTransaction:
    """One transaction reported in a page's ``added`` list."""

    transaction_id: str
    payload: dict[str, Any]  # Full upstream record; schema owned by Plaid


@dataclass
class RemovedTransaction:
    """One transaction reported in a page's ``removed`` list."""

    transaction_id: str


@dataclass
class TransactionsPage:
    """One /transactions/sync response."""

    added: list[AddedTransaction] = field(default_factory=list)
    removed: list[RemovedTransaction] = field(default_factory=list)
    next_cursor: str = ""
    has_more: bool = False


@dataclass
class UpstreamInstitution:
    """Display metadata for a financial institution."""

    institution_id: str
    name: str
    logo: str | None = None  # base64 encoded PNG


class TransactionsSource(Protocol):
    """Anything that can serve /transactions/sync pages."""

    def sync_transactions(self, access_token: str, cursor: str | None = None) -> TransactionsPage:
        """Fetch one page. ``cursor=None`` means start from the beginning."""
        ...
