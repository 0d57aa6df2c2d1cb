"""
Error taxonomy for the QuickBooks connection flow.

Every failure a handler can surface maps onto one of these kinds. Each carries
a human-readable message and the HTTP status the API responds with.
"""

from __future__ import annotations

from http import HTTPStatus


class LedgerLinkError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code: int = HTTPStatus.INTERNAL_SERVER_ERROR

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class SecurityError(LedgerLinkError):
    """The callback state does not match a flow this service initiated."""

    status_code = HTTPStatus.FORBIDDEN


class ProtocolError(LedgerLinkError):
    """Required OAuth or query parameters are missing or malformed."""

    status_code = HTTPStatus.BAD_REQUEST


class StateError(LedgerLinkError):
    """The pending connection intent lacks the target client."""

    status_code = HTTPStatus.BAD_REQUEST


class ConnectInitiationError(LedgerLinkError):
    """The authorization URL could not be built."""

    status_code = HTTPStatus.BAD_REQUEST


class TokenExchangeError(LedgerLinkError):
    """The authorization code could not be exchanged or the tokens not stored."""

    status_code = HTTPStatus.BAD_REQUEST


class TokenRefreshError(LedgerLinkError):
    """The refresh grant was rejected; the user has to reconnect."""

    status_code = HTTPStatus.UNAUTHORIZED


class UpstreamError(LedgerLinkError):
    """The QuickBooks data API rejected or failed a request."""

    status_code = HTTPStatus.BAD_GATEWAY


class NotFoundError(LedgerLinkError):
    """No credential or connection record exists for the identifier."""

    status_code = HTTPStatus.NOT_FOUND


class RecordStoreError(Exception):
    """A record store backend failed to read or write."""


class StaleRecordError(RecordStoreError):
    """A conditional write found the stored item changed since it was read."""


__all__ = [
    "ConnectInitiationError",
    "LedgerLinkError",
    "NotFoundError",
    "ProtocolError",
    "RecordStoreError",
    "SecurityError",
    "StaleRecordError",
    "StateError",
    "TokenExchangeError",
    "TokenRefreshError",
    "UpstreamError",
]
