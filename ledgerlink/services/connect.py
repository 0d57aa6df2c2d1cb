"""Starts a QuickBooks connect flow for one client record."""

from __future__ import annotations

import logging
import secrets
from typing import Optional

from ledgerlink.clients import OAuthStateEncoder, QuickBooksOAuthClient
from ledgerlink.core.errors import ConnectInitiationError, RecordStoreError
from ledgerlink.models.oauth import ConnectionIntent, utcnow
from ledgerlink.schemas import ConnectStartResponse
from ledgerlink.services.intents import IntentStore

logger = logging.getLogger(__name__)


class ConnectInitiator:
    """Issue a signed state, remember the intent and build the consent URL."""

    def __init__(
        self,
        oauth_client: QuickBooksOAuthClient,
        state_encoder: OAuthStateEncoder,
        intents: IntentStore,
    ) -> None:
        self._oauth = oauth_client
        self._encoder = state_encoder
        self._intents = intents

    def begin(
        self, *, target_client_id: str, target_client_label: Optional[str] = None
    ) -> ConnectStartResponse:
        client_id = (target_client_id or "").strip()
        if not client_id:
            raise ConnectInitiationError("A client must be selected before connecting QuickBooks.")

        nonce = secrets.token_urlsafe(24)
        issued_at = utcnow()
        state = self._encoder.encode(
            {"nonce": nonce, "client_id": client_id, "issued_at": issued_at.isoformat()}
        )
        try:
            authorization_url = self._oauth.build_authorization_url(state)
        except (TypeError, ValueError) as exc:
            raise ConnectInitiationError("Failed to initiate QuickBooks connection.") from exc

        intent = ConnectionIntent(
            nonce=nonce,
            state=state,
            target_client_id=client_id,
            target_client_label=target_client_label,
            issued_at=issued_at,
        )
        try:
            self._intents.save(intent)
        except RecordStoreError as exc:
            raise ConnectInitiationError("Failed to initiate QuickBooks connection.") from exc

        logger.info("QuickBooks connect initiated for client %s", client_id)
        return ConnectStartResponse(authorization_url=authorization_url, state=state)


__all__ = ["ConnectInitiator"]
