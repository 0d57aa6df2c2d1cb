"""Rotates stored QuickBooks credentials with the refresh-token grant."""

from __future__ import annotations

import hmac
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from ledgerlink.clients import QuickBooksOAuthClient
from ledgerlink.core.errors import (
    ProtocolError,
    RecordStoreError,
    StaleRecordError,
    TokenRefreshError,
)
from ledgerlink.models.oauth import utcnow
from ledgerlink.services.credentials import CredentialRepository

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class RefreshResult:
    access_token: str
    expires_at: datetime


class TokenRefreshService:
    def __init__(
        self,
        oauth_client: QuickBooksOAuthClient,
        repository: CredentialRepository,
    ) -> None:
        self._oauth = oauth_client
        self._repository = repository

    async def refresh(self, *, refresh_token: str, company_id: str) -> RefreshResult:
        """Trade ``refresh_token`` for a new access token and persist it.

        Only the refresh token currently stored for ``company_id`` is accepted.
        A rejected refresh means the refresh token is dead; ``TokenRefreshError``
        tells the user to reconnect rather than retrying.
        """
        if not refresh_token or not company_id:
            raise ProtocolError("refreshToken and companyId are required.")

        try:
            current = self._repository.get_by_company(company_id)
        except RecordStoreError as exc:
            raise TokenRefreshError(f"Could not load stored credentials: {exc}") from exc

        stored = current.refresh_token or ""
        if not stored or not hmac.compare_digest(
            refresh_token.encode("utf-8"), stored.encode("utf-8")
        ):
            logger.warning("Refresh token mismatch for QuickBooks company %s", company_id)
            raise TokenRefreshError(
                "Refresh token does not match the stored credentials; "
                "reconnect QuickBooks to continue."
            )

        grant = await self._oauth.refresh_token(refresh_token)
        now = utcnow()
        expires_at = now + timedelta(seconds=grant.expires_in)
        try:
            self._repository.update_tokens(
                current=current, grant=grant, expires_at=expires_at, now=now
            )
        except StaleRecordError as exc:
            logger.warning(
                "QuickBooks credentials for company %s changed during refresh", company_id
            )
            raise TokenRefreshError(
                "QuickBooks connection changed while refreshing; "
                "retry with the current credentials."
            ) from exc
        except RecordStoreError as exc:
            logger.error("Storing refreshed QuickBooks token for company %s failed", company_id)
            raise TokenRefreshError(
                "Refreshed token could not be stored; reconnect QuickBooks to continue."
            ) from exc

        logger.info(
            "Refreshed QuickBooks access token for company %s (refresh token %s)",
            company_id,
            "rotated" if grant.refresh_token else "kept",
        )
        return RefreshResult(access_token=grant.access_token, expires_at=expires_at)


__all__ = ["RefreshResult", "TokenRefreshService"]
