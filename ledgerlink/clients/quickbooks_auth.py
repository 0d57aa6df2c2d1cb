"""
QuickBooks OAuth utilities.

These helpers build the consent redirect, sign the anti-CSRF state and talk to
the Intuit token endpoint for both grant types.
"""

from __future__ import annotations

import base64
import binascii
import hmac
import json
import logging
from hashlib import sha256
from typing import Any, Dict, Optional
from urllib.parse import urlencode

import httpx
from pydantic import ValidationError

from ledgerlink.core.config import QuickBooksSettings
from ledgerlink.core.errors import (
    ConnectInitiationError,
    SecurityError,
    TokenExchangeError,
    TokenRefreshError,
)
from ledgerlink.models.oauth import TokenGrant

logger = logging.getLogger(__name__)

_SIGNATURE_SIZE = 32


class OAuthStateEncoder:
    """Encode and decode OAuth state values to guard against tampering."""

    def __init__(self, secret_key: str) -> None:
        self._secret_key = secret_key.encode("utf-8")

    def encode(self, payload: Dict[str, Any]) -> str:
        serialized = json.dumps(payload, separators=(",", ":"), sort_keys=True).encode("utf-8")
        signature = hmac.new(self._secret_key, serialized, sha256).digest()
        return base64.urlsafe_b64encode(signature + serialized).decode("ascii")

    def decode(self, token: str) -> Dict[str, Any]:
        """Return the signed payload, raising ``SecurityError`` for anything forged."""
        try:
            decoded = base64.urlsafe_b64decode(token.encode("ascii"))
        except (binascii.Error, UnicodeEncodeError, ValueError) as exc:
            raise SecurityError("Invalid OAuth state - possible CSRF attack.") from exc

        signature, serialized = decoded[:_SIGNATURE_SIZE], decoded[_SIGNATURE_SIZE:]
        expected_signature = hmac.new(self._secret_key, serialized, sha256).digest()
        if len(signature) != _SIGNATURE_SIZE or not hmac.compare_digest(
            signature, expected_signature
        ):
            raise SecurityError("Invalid OAuth state signature - possible CSRF attack.")

        try:
            payload = json.loads(serialized)
        except ValueError as exc:
            raise SecurityError("Malformed OAuth state payload.") from exc
        if not isinstance(payload, dict):
            raise SecurityError("Malformed OAuth state payload.")
        return payload


class QuickBooksOAuthClient:
    """Build QuickBooks authorization URLs and call the token endpoint."""

    AUTH_BASE_URL = "https://appcenter.intuit.com/connect/oauth2"
    TOKEN_URL = "https://oauth.platform.intuit.com/oauth2/v1/tokens/bearer"

    def __init__(
        self,
        settings: QuickBooksSettings,
        *,
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._settings = settings
        self._timeout = timeout
        self._transport = transport

    @property
    def redirect_uri(self) -> str:
        return str(self._settings.redirect_uri)

    def build_authorization_url(self, state: str) -> str:
        """Construct the QuickBooks consent URL."""
        if not state:
            raise ConnectInitiationError("Cannot build an authorization URL without state.")
        if not self._settings.client_id:
            raise ConnectInitiationError("QuickBooks client id is not configured.")

        params = {
            "client_id": self._settings.client_id,
            "scope": " ".join(self._settings.scopes),
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            "access_type": "offline",
            "state": state,
        }
        return f"{self.AUTH_BASE_URL}?{urlencode(params)}"

    async def exchange_authorization_code(self, code: str, redirect_uri: str) -> TokenGrant:
        """Exchange a single-use authorization code for an access/refresh token pair."""
        payload = {
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": redirect_uri,
        }
        try:
            response = await self._post_token(payload)
        except httpx.HTTPError as exc:
            logger.warning("QuickBooks token exchange transport failure: %s", type(exc).__name__)
            raise TokenExchangeError(f"Token exchange failed: {exc.__class__.__name__}") from exc

        if not response.is_success:
            logger.error(
                "QuickBooks token exchange rejected (status=%s): %s",
                response.status_code,
                response.text,
            )
            raise TokenExchangeError(f"Token exchange failed: {response.reason_phrase}")

        try:
            return TokenGrant.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise TokenExchangeError(
                "Incomplete token payload returned from QuickBooks."
            ) from exc

    async def refresh_token(self, refresh_token: str) -> TokenGrant:
        """Obtain a new access token using a stored refresh token."""
        payload = {"grant_type": "refresh_token", "refresh_token": refresh_token}
        try:
            response = await self._post_token(payload)
        except httpx.HTTPError as exc:
            logger.warning("QuickBooks token refresh transport failure: %s", type(exc).__name__)
            raise TokenRefreshError(
                "Token refresh failed; reconnect QuickBooks to continue."
            ) from exc

        if not response.is_success:
            logger.error(
                "QuickBooks token refresh rejected (status=%s): %s",
                response.status_code,
                response.text,
            )
            raise TokenRefreshError(
                f"Token refresh failed ({response.reason_phrase}); "
                "reconnect QuickBooks to continue."
            )

        try:
            return TokenGrant.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise TokenRefreshError("Incomplete refresh payload returned from QuickBooks.") from exc

    async def _post_token(self, data: Dict[str, str]) -> httpx.Response:
        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            return await client.post(
                self.TOKEN_URL,
                data=data,
                auth=httpx.BasicAuth(self._settings.client_id, self._settings.client_secret),
                headers={"Accept": "application/json"},
            )


__all__ = ["OAuthStateEncoder", "QuickBooksOAuthClient"]
