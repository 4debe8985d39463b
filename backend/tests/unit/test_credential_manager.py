"""Tests for services.credential_manager."""

from unittest.mock import patch

import pytest

from services.credential_manager import (
    CREDENTIAL_KEYS,
    SERVICE_NAME,
    delete_credential,
    get_credential,
    set_credential,
)


@pytest.fixture
def mock_keyring():
    with patch("services.credential_manager.keyring") as mk:
        yield mk


# ---------------------------------------------------------------------------
# get_credential
# ---------------------------------------------------------------------------


class TestGetCredential:
    def test_returns_value(self, mock_keyring):
        mock_keyring.get_password.return_value = "secret123"
        result = get_credential("PLAID_SECRET")
        assert result == "secret123"
        mock_keyring.get_password.assert_called_once_with(SERVICE_NAME, "PLAID_SECRET")

    def test_returns_none_when_not_found(self, mock_keyring):
        mock_keyring.get_password.return_value = None
        assert get_credential("PLAID_SECRET") is None

    def test_returns_none_on_keyring_exception(self, mock_keyring):
        mock_keyring.get_password.side_effect = Exception("no backend")
        assert get_credential("PLAID_SECRET") is None


# ---------------------------------------------------------------------------
# set_credential
# ---------------------------------------------------------------------------


class TestSetCredential:
    def test_stores_value(self, mock_keyring):
        result = set_credential("PLAID_CLIENT_ID", "cid123")
        assert result is True
        mock_keyring.set_password.assert_called_once_with(
            SERVICE_NAME, "PLAID_CLIENT_ID", "cid123"
        )

    def test_rejects_non_credential_key(self, mock_keyring):
        assert set_credential("NOT_A_REAL_KEY", "secret123") is False
        mock_keyring.set_password.assert_not_called()

    def test_rejects_empty_value(self, mock_keyring):
        assert set_credential("PLAID_SECRET", "") is False
        assert set_credential("PLAID_SECRET", "   ") is False
        mock_keyring.set_password.assert_not_called()

    def test_returns_false_on_keyring_exception(self, mock_keyring):
        mock_keyring.set_password.side_effect = Exception("keyring locked")
        assert set_credential("PLAID_SECRET", "secret123") is False


# ---------------------------------------------------------------------------
# delete_credential
# ---------------------------------------------------------------------------


class TestDeleteCredential:
    def test_deletes_value(self, mock_keyring):
        assert delete_credential("PLAID_SECRET") is True
        mock_keyring.delete_password.assert_called_once_with(SERVICE_NAME, "PLAID_SECRET")

    def test_rejects_non_credential_key(self, mock_keyring):
        assert delete_credential("DATABASE_URL") is False
        mock_keyring.delete_password.assert_not_called()

    def test_returns_false_on_keyring_exception(self, mock_keyring):
        mock_keyring.delete_password.side_effect = Exception("not found")
        assert delete_credential("PLAID_SECRET") is False


# ---------------------------------------------------------------------------
# CREDENTIAL_KEYS
# ---------------------------------------------------------------------------


class TestCredentialKeys:
    def test_contains_expected_keys(self):
        assert CREDENTIAL_KEYS == {"PLAID_CLIENT_ID", "PLAID_SECRET"}

    def test_excludes_non_secret_keys(self):
        for key in ("DATABASE_URL", "PLAID_ENVIRONMENT", "LOG_LEVEL", "TLS_KEY_FILE"):
            assert key not in CREDENTIAL_KEYS

    def test_is_frozen(self):
        assert isinstance(CREDENTIAL_KEYS, frozenset)
