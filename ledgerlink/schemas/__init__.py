"""Public schema exports."""

from .oauth import (
    CallbackResult,
    ConnectionStatusResponse,
    ConnectStartResponse,
    ErrorResponse,
    QueryRequest,
    TokenExchangeRequest,
    TokenExchangeResponse,
    TokenRefreshRequest,
    TokenRefreshResponse,
)

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
