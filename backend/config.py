"""Application configuration using pydantic-settings."""

import os
from typing import Any

from pydantic import field_validator
from pydantic.fields import FieldInfo
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from services.credential_manager import CREDENTIAL_KEYS, get_credential


class KeychainSettingsSource(PydanticBaseSettingsSource):
    """Load credential fields from the system keychain via ``keyring``.

    Only fields whose uppercase name appears in
    :data:`~services.credential_manager.CREDENTIAL_KEYS` are looked up.
    All other fields return ``None`` so the next source in the chain
    handles them.
    """

    def get_field_value(
        self, field: FieldInfo, field_name: str
    ) -> tuple[Any, str, bool]:
        env_name = field_name.upper()
        if env_name not in CREDENTIAL_KEYS:
            return None, field_name, False
        value = get_credential(env_name)
        return value, field_name, False

    def __call__(self) -> dict[str, Any]:
        d: dict[str, Any] = {}
        for field_name, field_info in self.settings_cls.model_fields.items():
            value, key, is_complex = self.get_field_value(field_info, field_name)
            if value is not None:
                d[key] = value
        return d


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            KeychainSettingsSource(settings_cls),
            env_settings,
            dotenv_settings,
            file_secret_settings,
        )

    # Database
    DATABASE_URL: str = "sqlite:///./expenses.db"

    # Plaid credentials
    PLAID_CLIENT_ID: str = ""
    PLAID_SECRET: str = ""
    PLAID_ENVIRONMENT: str = "sandbox"

    # Sync behaviour
    SYNC_LOCK_STALE_SECONDS: int = 900
    SYNC_MAX_PAGES: int = 0  # 0 = no ceiling

    # HTTP server
    SERVER_HOST: str = "0.0.0.0"
    SERVER_PORT: int = 8443
    TLS_CERT_FILE: str = ""
    TLS_KEY_FILE: str = ""

    @field_validator("PLAID_CLIENT_ID", "PLAID_SECRET", mode="before")
    @classmethod
    def resolve_env_reference(cls, v: str) -> str:
        """Resolve ``!NAME`` values from the environment variable ``NAME``.

        Lets a config file hold a pointer to a secret instead of the
        secret itself. The referenced variable must be set and non-empty.
        """
        if isinstance(v, str) and v.startswith("!"):
            env_name = v[1:]
            value = os.environ.get(env_name, "")
            if not value:
                raise ValueError(f"env var {env_name} undefined or empty")
            return value
        return v

    @field_validator("PLAID_ENVIRONMENT", mode="before")
    @classmethod
    def validate_plaid_environment(cls, v: str) -> str:
        """Only sandbox and production hosts exist in the Plaid SDK."""
        valid = {"sandbox", "production"}
        if not isinstance(v, str) or v.lower() not in valid:
            raise ValueError(f"unrecognized PLAID_ENVIRONMENT {v!r}, expected one of {valid}")
        return v.lower()

    @field_validator("SYNC_LOCK_STALE_SECONDS", "SYNC_MAX_PAGES")
    @classmethod
    def non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("must be >= 0")
        return v

    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate and normalize LOG_LEVEL to an uppercase Python logging level."""
        valid = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid:
            raise ValueError(f"LOG_LEVEL must be one of {valid}, got {v!r}")
        return v.upper()

    # App settings
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"


settings = Settings()
