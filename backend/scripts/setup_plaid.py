#!/usr/bin/env python3
"""Plaid API setup script.

Validates Plaid API credentials by creating a link token, then offers to
store them in the system keychain. Institution linking happens in the
browser via Plaid Link, not through this script.

Usage:
    python -m scripts.setup_plaid
"""

import os
import sys

from dotenv import load_dotenv

from integrations.exceptions import UpstreamError
from integrations.plaid_client import PlaidClient
from services.credential_manager import set_credential


def _offer_keychain_store(credentials: dict[str, str]) -> None:
    """Prompt the user to store credentials in the keychain."""
    answer = input("\nStore these credentials in the system keychain? [Y/n] ").strip().lower()
    if answer in ("", "y", "yes"):
        for key, value in credentials.items():
            if set_credential(key, value):
                print(f"  Stored {key} in keychain")
            else:
                print(f"  Failed to store {key}")
    else:
        print("  Skipped keychain storage.")


def validate_credentials(client_id: str, secret: str, env: str) -> None:
    """Validate Plaid credentials by creating a test link token.

    Raises:
        UpstreamError: If Plaid rejects the request.
    """
    client = PlaidClient(client_id=client_id, secret=secret, environment=env)
    link_token = client.create_link_token()
    if not link_token:
        raise UpstreamError("No link_token in response")


def _prompt(label: str, env_key: str) -> str:
    """Prompt for a value, defaulting to the one already in backend/.env."""
    current = os.environ.get(env_key, "")
    if current:
        value = input(f"Enter your Plaid {label} [keep {current[:4]}...]: ").strip()
        return value or current
    return input(f"Enter your Plaid {label}: ").strip()


def main():
    """Prompt for credentials and validate them."""
    load_dotenv(os.path.join(os.path.dirname(__file__), "..", ".env"))

    print("Plaid API Setup")
    print("=" * 50)
    print()
    print("To get Plaid API credentials:")
    print("  1. Sign up at https://dashboard.plaid.com/")
    print("  2. Go to Developers > Keys")
    print("  3. Copy your client_id and secret")
    print()

    client_id = _prompt("client_id", "PLAID_CLIENT_ID")
    if not client_id:
        print("Error: No client_id provided")
        sys.exit(1)

    secret = _prompt("secret", "PLAID_SECRET")
    if not secret:
        print("Error: No secret provided")
        sys.exit(1)

    print()
    print("Choose environment:")
    print("  1. sandbox (for testing with fake data)")
    print("  2. production (for live use)")
    env_choice = input("Enter choice (1 or 2) [1]: ").strip() or "1"
    env = {"1": "sandbox", "2": "production"}.get(env_choice, "sandbox")

    print()
    print(f"Validating credentials against {env} environment...")

    try:
        validate_credentials(client_id, secret, env)
    except UpstreamError as e:
        print(f"Error: {e}")
        print()
        print("Common issues:")
        print("  - Incorrect client_id or secret")
        print("  - Wrong environment selected")
        print("  - Network connectivity issue")
        sys.exit(1)

    print()
    print("Success! Add the following to your .env file:")
    print()
    print(f"PLAID_CLIENT_ID={client_id}")
    print(f"PLAID_SECRET={secret}")
    print(f"PLAID_ENVIRONMENT={env}")

    _offer_keychain_store({
        "PLAID_CLIENT_ID": client_id,
        "PLAID_SECRET": secret,
    })


if __name__ == "__main__":
    main()
