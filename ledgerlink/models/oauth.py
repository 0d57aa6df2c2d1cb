"""
Domain models for the QuickBooks connection flow.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

PROVIDER = "quickbooks"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ConnectionIntent(BaseModel):
    """A pending connect attempt, scoped to one authorization redirect."""

    nonce: str
    state: str = Field(..., description="Signed state token sent to the provider.")
    target_client_id: str
    target_client_label: Optional[str] = None
    issued_at: datetime = Field(default_factory=utcnow)


class TokenGrant(BaseModel):
    """Token endpoint response reduced to the fields this service uses."""

    access_token: str = Field(..., min_length=1)
    refresh_token: Optional[str] = None
    expires_in: int = Field(..., gt=0)


class CredentialRecord(BaseModel):
    """Decrypted view of the OAuth credentials stored on a client record."""

    client_id: str
    provider_company_id: str
    access_token: str
    refresh_token: Optional[str] = Field(
        None, description="Absent when the provider granted no refresh token."
    )
    token_expires_at: datetime
    connected: bool = True
    updated_at: datetime = Field(default_factory=utcnow)

    def is_expired(self, *, now: datetime, leeway_seconds: int = 0) -> bool:
        return now.timestamp() >= self.token_expires_at.timestamp() - leeway_seconds

    @property
    def can_refresh(self) -> bool:
        return bool(self.refresh_token)


class ConnectionStatus(str, Enum):
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"


class ConnectionStatusRecord(BaseModel):
    """Per (client, provider) connection status, kept apart from the tokens."""

    client_id: str
    provider: str = PROVIDER
    status: ConnectionStatus
    connected_at: Optional[datetime] = None
    updated_at: datetime = Field(default_factory=utcnow)


class CallbackStatus(str, Enum):
    """Lifecycle of a single callback invocation."""

    IDLE = "idle"
    PROCESSING = "processing"
    SUCCESS = "success"
    ERROR = "error"


__all__ = [
    "PROVIDER",
    "CallbackStatus",
    "ConnectionIntent",
    "ConnectionStatus",
    "ConnectionStatusRecord",
    "CredentialRecord",
    "TokenGrant",
    "utcnow",
]
