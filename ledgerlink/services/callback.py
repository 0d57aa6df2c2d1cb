"""
Processes the redirect QuickBooks sends back after the consent screen.

The handler verifies the anti-CSRF state against the pending intent before
anything else, then hands the code to the token exchange. The intent is only
cleared once the exchange has succeeded or the state has been definitively
rejected.
"""

from __future__ import annotations

import hmac
import logging
from typing import Optional

from ledgerlink.clients import OAuthStateEncoder, QuickBooksOAuthClient
from ledgerlink.core.errors import (
    LedgerLinkError,
    ProtocolError,
    RecordStoreError,
    SecurityError,
    StateError,
)
from ledgerlink.models.oauth import CallbackStatus, ConnectionIntent
from ledgerlink.schemas import CallbackResult
from ledgerlink.services.intents import IntentStore
from ledgerlink.services.token_exchange import TokenExchangeService

logger = logging.getLogger(__name__)

SUCCESS_PATH = "/setup-completion?tab=integrations&connected=quickbooks"
RETRY_PATH = "/setup-completion?tab=integrations"

_CSRF_MESSAGE = "Invalid state parameter - possible CSRF attack."


class CallbackHandler:
    def __init__(
        self,
        *,
        oauth_client: QuickBooksOAuthClient,
        state_encoder: OAuthStateEncoder,
        intents: IntentStore,
        exchange_service: TokenExchangeService,
        success_url: str = SUCCESS_PATH,
        retry_url: str = RETRY_PATH,
        redirect_delay_seconds: int = 2,
    ) -> None:
        self._oauth = oauth_client
        self._encoder = state_encoder
        self._intents = intents
        self._exchange = exchange_service
        self._success_url = success_url
        self._retry_url = retry_url
        self._delay = redirect_delay_seconds
        self.status = CallbackStatus.IDLE

    async def process(
        self,
        *,
        code: Optional[str],
        state: Optional[str],
        realm_id: Optional[str],
        error: Optional[str] = None,
    ) -> CallbackResult:
        """Run the callback, raising the taxonomy error on any failure."""
        self.status = CallbackStatus.PROCESSING
        try:
            intent = self._verify_state(state)
            if error:
                raise ProtocolError(f"QuickBooks authorization was not granted: {error}")
            if not code or not realm_id:
                raise ProtocolError("Missing required OAuth parameters.")
            if not intent.target_client_id:
                raise StateError("Missing client ID from OAuth flow.")

            result = await self._exchange.exchange(
                code=code,
                company_id=realm_id,
                redirect_uri=self._oauth.redirect_uri,
                target_client_id=intent.target_client_id,
            )
        except LedgerLinkError as exc:
            self.status = CallbackStatus.ERROR
            logger.warning("OAuth callback failed: %s", exc.message)
            raise

        self._clear(intent)
        self.status = CallbackStatus.SUCCESS
        label = intent.target_client_label or "Client"
        return CallbackResult(
            status=self.status.value,
            message=f"{label} has been connected to QuickBooks",
            company_id=result.company_id,
            expires_at=result.expires_at,
            redirect_to=self._success_url,
            redirect_delay_seconds=self._delay,
        )

    def failure(self, exc: LedgerLinkError) -> CallbackResult:
        self.status = CallbackStatus.ERROR
        return CallbackResult(
            status=self.status.value,
            message=exc.message,
            redirect_to=self._retry_url,
        )

    def _verify_state(self, state: Optional[str]) -> ConnectionIntent:
        if not state:
            raise SecurityError(_CSRF_MESSAGE)

        payload = self._encoder.decode(state)
        nonce = payload.get("nonce")
        if not isinstance(nonce, str) or not nonce:
            raise SecurityError(_CSRF_MESSAGE)

        try:
            intent = self._intents.get(nonce)
        except RecordStoreError as exc:
            raise StateError("Could not read the pending QuickBooks connection.") from exc

        if intent is None:
            raise SecurityError(_CSRF_MESSAGE)
        if not hmac.compare_digest(intent.state.encode("utf-8"), state.encode("utf-8")):
            self._clear(intent)
            raise SecurityError(_CSRF_MESSAGE)
        return intent

    def _clear(self, intent: ConnectionIntent) -> None:
        try:
            self._intents.discard(intent.nonce)
        except RecordStoreError:
            logger.exception(
                "Could not clear connection intent for client %s", intent.target_client_id
            )


__all__ = ["CallbackHandler", "RETRY_PATH", "SUCCESS_PATH"]
