"""Plaid API client.

Wraps the plaid-python SDK for the calls this service needs: Link token
creation, public token exchange, the cursor-based /transactions/sync
endpoint, and institution metadata lookup. Every SDK failure is translated
into the ``UpstreamError`` hierarchy so callers never handle
``ApiException`` directly.
"""

import json
import logging
from typing import Any

from plaid import ApiException, Environment
from plaid.api.plaid_api import PlaidApi
from plaid.api_client import ApiClient
from plaid.configuration import Configuration
from plaid.model.country_code import CountryCode
from plaid.model.institutions_get_by_id_request import InstitutionsGetByIdRequest
from plaid.model.institutions_get_by_id_request_options import InstitutionsGetByIdRequestOptions
from plaid.model.item_public_token_exchange_request import ItemPublicTokenExchangeRequest
from plaid.model.link_token_create_request import LinkTokenCreateRequest
from plaid.model.link_token_create_request_user import LinkTokenCreateRequestUser
from plaid.model.products import Products
from plaid.model.transactions_sync_request import TransactionsSyncRequest
from urllib3.exceptions import HTTPError as Urllib3HTTPError

from config import settings
from integrations.exceptions import (
    UpstreamAuthError,
    UpstreamConnectionError,
    UpstreamDataError,
    UpstreamError,
    UpstreamRateLimitError,
)
from integrations.upstream_protocol import (
    AddedTransaction,
    RemovedTransaction,
    TransactionsPage,
    UpstreamInstitution,
)

logger = logging.getLogger(__name__)

# Map PLAID_ENVIRONMENT setting to SDK host URLs.
_ENVIRONMENT_MAP: dict[str, str] = {
    "sandbox": Environment.Sandbox,
    "production": Environment.Production,
}

_AUTH_ERROR_CODES = frozenset({
    "INVALID_ACCESS_TOKEN",
    "ITEM_LOGIN_REQUIRED",
    "INVALID_API_KEYS",
})


class PlaidClient:
    """Wrapper around the Plaid API."""

    def __init__(
        self,
        client_id: str | None = None,
        secret: str | None = None,
        environment: str | None = None,
    ):
        self._client_id = client_id or settings.PLAID_CLIENT_ID
        self._secret = secret or settings.PLAID_SECRET
        self._environment = environment or settings.PLAID_ENVIRONMENT

        # Lazily created on first use
        self._api: PlaidApi | None = None

    def _get_api(self) -> PlaidApi:
        """Return (and cache) a PlaidApi instance."""
        if self._api is None:
            env_key = self._environment.lower()
            host = _ENVIRONMENT_MAP.get(env_key)
            if host is None:
                logger.warning(
                    "Unknown PLAID_ENVIRONMENT=%r, falling back to sandbox. "
                    "Valid values: sandbox, production",
                    self._environment,
                )
                host = Environment.Sandbox
            logger.info(
                "Plaid API client: environment=%s, host=%s, client_id=<configured>",
                env_key,
                host,
            )
            configuration = Configuration(
                host=host,
                api_key={
                    "clientId": self._client_id,
                    "secret": self._secret,
                },
            )
            api_client = ApiClient(configuration)
            self._api = PlaidApi(api_client)
        return self._api

    def is_configured(self) -> bool:
        """Check if Plaid credentials are configured."""
        return bool(self._client_id) and bool(self._secret)

    # ------------------------------------------------------------------
    # Link Token & Token Exchange
    # ------------------------------------------------------------------

    def create_link_token(self) -> str:
        """Create a Plaid Link token for the browser-based auth flow.

        Returns:
            The link_token string to be passed to Plaid Link.
        """
        request = LinkTokenCreateRequest(
            user=LinkTokenCreateRequestUser(client_user_id="1"),
            client_name="Expense Tracker",
            products=[Products("transactions")],
            country_codes=[CountryCode("US")],
            language="en",
        )
        response = self._call(lambda api: api.link_token_create(request))
        return response["link_token"]

    def exchange_public_token(self, public_token: str) -> dict:
        """Exchange a Plaid Link public_token for a permanent access_token.

        Returns:
            Dict with ``access_token`` and ``item_id``.
        """
        request = ItemPublicTokenExchangeRequest(public_token=public_token)
        response = self._call(lambda api: api.item_public_token_exchange(request))
        return {
            "access_token": response["access_token"],
            "item_id": response["item_id"],
        }

    # ------------------------------------------------------------------
    # /transactions/sync
    # ------------------------------------------------------------------

    def sync_transactions(self, access_token: str, cursor: str | None = None) -> TransactionsPage:
        """Fetch one page of transaction deltas for an Item.

        The cursor field is omitted entirely when ``cursor`` is empty:
        Plaid reads a missing cursor as "from the beginning" but rejects an
        empty string as malformed.
        """
        kwargs: dict[str, Any] = {"access_token": access_token}
        if cursor:
            kwargs["cursor"] = cursor
        request = TransactionsSyncRequest(**kwargs)

        response = self._call(lambda api: api.transactions_sync(request))
        return self._map_sync_response(response.to_dict())

    @staticmethod
    def _map_sync_response(body: dict) -> TransactionsPage:
        """Map a /transactions/sync response body to a TransactionsPage."""
        try:
            added = [
                AddedTransaction(transaction_id=txn["transaction_id"], payload=txn)
                for txn in body.get("added") or []
            ]
            removed = [
                RemovedTransaction(transaction_id=rem["transaction_id"])
                for rem in body.get("removed") or []
            ]
            return TransactionsPage(
                added=added,
                removed=removed,
                next_cursor=body["next_cursor"],
                has_more=bool(body["has_more"]),
            )
        except (KeyError, TypeError) as e:
            raise UpstreamDataError(f"Malformed /transactions/sync response: missing {e}") from e

    # ------------------------------------------------------------------
    # Institutions
    # ------------------------------------------------------------------

    def get_institution(self, institution_id: str) -> UpstreamInstitution:
        """Fetch name and logo for one institution."""
        request = InstitutionsGetByIdRequest(
            institution_id=institution_id,
            country_codes=[CountryCode("US")],
            options=InstitutionsGetByIdRequestOptions(include_optional_metadata=True),
        )
        response = self._call(lambda api: api.institutions_get_by_id(request))
        institution = response.to_dict().get("institution") or {}
        if not institution.get("institution_id"):
            raise UpstreamDataError(f"Malformed institution response for {institution_id}")
        return UpstreamInstitution(
            institution_id=institution["institution_id"],
            name=institution.get("name") or "",
            logo=institution.get("logo") or None,
        )

    # ------------------------------------------------------------------
    # Error mapping
    # ------------------------------------------------------------------

    def _call(self, fn):
        """Invoke an SDK call, translating failures to UpstreamError."""
        api = self._get_api()
        try:
            return fn(api)
        except ApiException as e:
            raise self._map_plaid_error(e) from e
        except Urllib3HTTPError as e:
            raise UpstreamConnectionError(f"Plaid connection failed: {e}") from e

    @staticmethod
    def _map_plaid_error(exc: ApiException) -> UpstreamError:
        """Map a Plaid ApiException to the matching UpstreamError subclass."""
        status = exc.status or 0
        message = str(exc)

        error_code = ""
        try:
            body = json.loads(exc.body) if exc.body else {}
        except (TypeError, ValueError):
            body = {}
        if isinstance(body, dict):
            error_code = body.get("error_code") or ""
            error_message = body.get("error_message") or ""
            if error_message:
                message = f"Plaid error ({error_code}): {error_message}"

        if status in (401, 403) or error_code in _AUTH_ERROR_CODES:
            cls = UpstreamAuthError
        elif status == 429:
            cls = UpstreamRateLimitError
        elif status >= 500:
            cls = UpstreamConnectionError
        else:
            cls = UpstreamError

        return cls(message, error_code=error_code, status_code=status or None)
