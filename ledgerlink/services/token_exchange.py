"""Exchanges an authorization code for QuickBooks tokens and stores them."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from ledgerlink.clients import QuickBooksOAuthClient
from ledgerlink.core.errors import ProtocolError, RecordStoreError, TokenExchangeError
from ledgerlink.models.oauth import utcnow
from ledgerlink.services.credentials import CredentialRepository

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ExchangeResult:
    company_id: str
    expires_at: datetime


class TokenExchangeService:
    """Completes the authorization-code grant for a client record.

    Authorization codes are single use, so a failure here is never retried;
    the caller has to restart the connect flow.
    """

    def __init__(
        self,
        oauth_client: QuickBooksOAuthClient,
        repository: CredentialRepository,
    ) -> None:
        self._oauth = oauth_client
        self._repository = repository

    async def exchange(
        self,
        *,
        code: str,
        company_id: str,
        redirect_uri: str,
        target_client_id: str,
    ) -> ExchangeResult:
        if not code or not company_id or not redirect_uri or not target_client_id:
            raise ProtocolError("Missing required OAuth parameters.")

        logger.info(
            "OAuth exchange request for client %s (company %s)", target_client_id, company_id
        )
        grant = await self._oauth.exchange_authorization_code(code, redirect_uri)
        if not grant.refresh_token:
            # Code is already consumed; store what was granted.
            logger.warning(
                "QuickBooks granted no refresh token for company %s (expires_in=%s); "
                "storing access token only",
                company_id,
                grant.expires_in,
            )

        now = utcnow()
        expires_at = now + timedelta(seconds=grant.expires_in)
        try:
            self._repository.save_connection(
                client_id=target_client_id,
                company_id=company_id,
                access_token=grant.access_token,
                refresh_token=grant.refresh_token,
                expires_at=expires_at,
                now=now,
            )
        except RecordStoreError as exc:
            logger.error("Storing QuickBooks credentials for client %s failed", target_client_id)
            raise TokenExchangeError(f"Database error: {exc}") from exc

        logger.info("Token exchange successful for company %s", company_id)
        return ExchangeResult(company_id=company_id, expires_at=expires_at)


__all__ = ["ExchangeResult", "TokenExchangeService"]
