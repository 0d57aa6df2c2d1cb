"""Request and response bodies for the OAuth and query endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class ConnectStartResponse(BaseModel):
    """Authorization URL and state issued when a connect flow starts."""

    authorization_url: str = Field(..., description="QuickBooks consent screen URL.")
    state: str = Field(..., description="Opaque anti-CSRF state token.")


class TokenExchangeRequest(_CamelModel):
    """Payload to exchange an authorization code for tokens."""

    code: str = Field(..., min_length=1)
    realm_id: str = Field(..., alias="realmId", min_length=1)
    redirect_uri: str = Field(..., alias="redirectUri", min_length=1)
    client_id: str = Field(..., alias="clientId", min_length=1)


class TokenExchangeResponse(_CamelModel):
    success: bool = True
    company_id: str = Field(..., alias="companyId")
    expires_at: datetime = Field(..., alias="expiresAt")


class TokenRefreshRequest(_CamelModel):
    refresh_token: str = Field(..., alias="refreshToken", min_length=1)
    company_id: str = Field(..., alias="companyId", min_length=1)


class TokenRefreshResponse(_CamelModel):
    success: bool = True
    access_token: str = Field(..., alias="accessToken")
    expires_at: datetime = Field(..., alias="expiresAt")


class QueryRequest(_CamelModel):
    """Provider-relative read request, e.g. ``companyinfo/123`` or ``query?query=...``."""

    company_id: str = Field(..., alias="companyId", min_length=1)
    query: str = Field(..., min_length=1)


class CallbackResult(_CamelModel):
    """Outcome of processing the provider redirect."""

    status: str
    message: str
    company_id: Optional[str] = Field(None, alias="companyId")
    expires_at: Optional[datetime] = Field(None, alias="expiresAt")
    redirect_to: str = Field(..., alias="redirectTo")
    redirect_delay_seconds: int = Field(0, alias="redirectDelaySeconds")


class ConnectionStatusResponse(_CamelModel):
    client_id: str = Field(..., alias="clientId")
    provider: str
    status: str
    connected_at: Optional[datetime] = Field(None, alias="connectedAt")
    updated_at: datetime = Field(..., alias="updatedAt")


class ErrorResponse(BaseModel):
    error: str


__all__ = [
    "CallbackResult",
    "ConnectStartResponse",
    "ConnectionStatusResponse",
    "ErrorResponse",
    "QueryRequest",
    "TokenExchangeRequest",
    "TokenExchangeResponse",
    "TokenRefreshRequest",
    "TokenRefreshResponse",
]
