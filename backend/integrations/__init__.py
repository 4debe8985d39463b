"""External API integrations.

This package contains:
- Upstream protocol: page and institution types shared by the sync core
- Plaid client: Integration with the Plaid API
- Exceptions: typed upstream failures
"""

from integrations.upstream_protocol import (
    AddedTransaction,
    RemovedTransaction,
    TransactionsPage,
    TransactionsSource,
)

__all__ = [
    "AddedTransaction",
    "RemovedTransaction",
    "TransactionsPage",
    "TransactionsSource",
]
