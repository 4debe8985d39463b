"""Typed exception hierarchy for upstream (Plaid) errors.

Provides structured exceptions for differentiated error handling
(auth errors vs transient network errors vs data issues). None of these
are retried by the sync core; ``retriable`` only tells the caller whether
a fresh pass later is likely to succeed.
"""


class UpstreamError(Exception):
    """Base exception for any failure talking to the aggregation API.

    Carries the Plaid ``error_code`` when the response body had one.
    """

    retriable = False

    def __init__(self, message: str, error_code: str = "", status_code: int | None = None):
        self.error_code = error_code
        self.status_code = status_code
        super().__init__(message)


class UpstreamAuthError(UpstreamError):
    """Credentials or Item access token missing, expired, or invalid (HTTP 401/403)."""

    pass


class UpstreamRateLimitError(UpstreamError):
    """Plaid rejected the request with HTTP 429."""

    retriable = True


class UpstreamConnectionError(UpstreamError):
    """Network failures and 5xx responses - timeouts, DNS, connection refused."""

    retriable = True


class UpstreamDataError(UpstreamError):
    """Malformed or unparseable response from the provider."""

    pass


class PaginationLimitError(UpstreamDataError):
    """Plaid kept reporting ``has_more`` past the configured page ceiling."""

    pass
