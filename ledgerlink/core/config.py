"""
Application configuration models and helpers.

Centralizes settings management for the QuickBooks connection flow so the
FastAPI routes, the services and the record stores read a single
configuration surface.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

import os

from pydantic import AnyHttpUrl, Field, HttpUrl, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _load_env_file(path: str = ".env") -> None:
    """Best-effort load key=value pairs from a .env file without extra deps."""
    env_path = Path(path)
    if not env_path.exists():
        return
    for raw_line in env_path.read_text().splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        key, sep, value = line.partition("=")
        if not sep:
            continue
        key = key.strip()
        if not key or key in os.environ:
            continue
        os.environ[key] = value.strip().strip('"').strip("'")


_load_env_file()


def _split_list(value: str) -> tuple[str, ...]:
    """Split a comma- or whitespace-separated string into its parts."""
    return tuple(part for part in value.replace(",", " ").split() if part)


class QuickBooksSettings(BaseSettings):
    """Credentials and endpoints for the QuickBooks Online OAuth app."""

    client_id: str = Field(..., validation_alias="QBO_CLIENT_ID")
    client_secret: str = Field(..., validation_alias="QBO_CLIENT_SECRET")
    redirect_uri: AnyHttpUrl = Field(
        ...,
        validation_alias="QBO_REDIRECT_URI",
        description="Must match the redirect URI registered with Intuit exactly.",
    )
    environment: Literal["sandbox", "production"] = Field(
        "sandbox", validation_alias="QBO_ENVIRONMENT"
    )
    scope: str = Field(
        "com.intuit.quickbooks.accounting",
        validation_alias="QBO_SCOPES",
        description="Comma or space separated list of requested scopes.",
    )

    model_config = SettingsConfigDict(extra="ignore", populate_by_name=True)

    @property
    def scopes(self) -> tuple[str, ...]:
        return _split_list(self.scope)

    @property
    def api_base_url(self) -> str:
        if self.environment == "production":
            return "https://quickbooks.api.intuit.com/v3"
        return "https://sandbox-quickbooks.api.intuit.com/v3"


class OAuthSettings(BaseSettings):
    """OAuth flow configuration."""

    state_ttl_seconds: int = Field(900, validation_alias="OAUTH_STATE_TTL")
    success_redirect_delay_seconds: int = Field(
        2,
        validation_alias="OAUTH_SUCCESS_REDIRECT_DELAY",
        description="How long the success page stays visible before redirecting.",
    )
    refresh_leeway_seconds: int = Field(
        0,
        validation_alias="OAUTH_REFRESH_LEEWAY",
        description="Refresh access tokens this many seconds before they expire.",
    )

    model_config = SettingsConfigDict(extra="ignore", populate_by_name=True)

    @field_validator(
        "state_ttl_seconds", "success_redirect_delay_seconds", "refresh_leeway_seconds"
    )
    @classmethod
    def _non_negative(cls, value: int) -> int:
        if value < 0:
            raise ValueError("must not be negative")
        return value


class SecuritySettings(BaseSettings):
    """Security-related configuration."""

    token_encryption_secret: Optional[str] = Field(
        None,
        validation_alias="TOKEN_ENCRYPTION_SECRET",
        description=(
            "Secret used to derive the symmetric key for encrypting stored tokens."
        ),
    )
    previous_encryption_secrets: str = Field(
        "",
        validation_alias="TOKEN_ENCRYPTION_PREVIOUS_SECRETS",
        description="Comma separated secrets still accepted for decryption.",
    )

    model_config = SettingsConfigDict(extra="ignore", populate_by_name=True)

    @property
    def previous_secrets(self) -> tuple[str, ...]:
        return tuple(
            secret.strip()
            for secret in self.previous_encryption_secrets.split(",")
            if secret.strip()
        )


class StoreSettings(BaseSettings):
    """Selects and configures the record store holding credentials."""

    backend: Literal["sqlite", "dynamodb"] = Field("sqlite", validation_alias="STORE_BACKEND")
    sqlite_db_path: str = Field("data/ledgerlink.db", validation_alias="SQLITE_DB_PATH")
    region_name: str = Field("us-east-1", validation_alias="AWS_REGION")
    dynamodb_table_name: Optional[str] = Field(None, validation_alias="DYNAMODB_TABLE_NAME")

    model_config = SettingsConfigDict(extra="ignore", populate_by_name=True)


class AppSettings(BaseSettings):
    """Root settings object for the FastAPI application."""

    environment: str = Field("development", validation_alias="APP_ENV")
    log_level: str = Field("INFO", validation_alias="APP_LOG_LEVEL")
    frontend_base_url: Optional[HttpUrl] = Field(
        None,
        validation_alias="FRONTEND_BASE_URL",
        description="Base URL of the web app users return to after connecting.",
    )
    http_timeout_seconds: float = Field(15.0, validation_alias="HTTP_TIMEOUT_SECONDS")
    quickbooks: QuickBooksSettings = Field(default_factory=QuickBooksSettings)
    oauth: OAuthSettings = Field(default_factory=OAuthSettings)
    security: SecuritySettings = Field(default_factory=SecuritySettings)
    store: StoreSettings = Field(default_factory=StoreSettings)

    model_config = SettingsConfigDict(extra="ignore", populate_by_name=True)

    def frontend_url(self, path: str) -> str:
        """Join ``path`` onto the configured front-end base URL."""
        base = str(self.frontend_base_url).rstrip("/") if self.frontend_base_url else ""
        return f"{base}{path}"


@lru_cache()
def get_settings() -> AppSettings:
    """Return a cached settings object."""
    return AppSettings()  # type: ignore[call-arg]


__all__ = [
    "AppSettings",
    "OAuthSettings",
    "QuickBooksSettings",
    "SecuritySettings",
    "StoreSettings",
    "get_settings",
]
