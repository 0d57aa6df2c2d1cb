"""Authenticated pass-through reads against the QuickBooks data API."""

from __future__ import annotations

import logging
from typing import Any

from ledgerlink.clients import QuickBooksAPIClient
from ledgerlink.core.errors import (
    ProtocolError,
    RecordStoreError,
    TokenRefreshError,
    UpstreamError,
)
from ledgerlink.models.oauth import utcnow
from ledgerlink.services.credentials import CredentialRepository
from ledgerlink.services.token_refresh import TokenRefreshService

logger = logging.getLogger(__name__)


def validate_query(query: str) -> str:
    """Reject anything that is not a path relative to the company resource."""
    cleaned = (query or "").strip()
    if not cleaned:
        raise ProtocolError("A QuickBooks query path is required.")
    if cleaned.startswith("/") or "://" in cleaned or "\\" in cleaned:
        raise ProtocolError("Query must be a path relative to the company resource.")
    if any(ord(char) < 32 for char in cleaned):
        raise ProtocolError("Query contains control characters.")
    path = cleaned.split("?", 1)[0]
    if any(segment in (".", "..") for segment in path.split("/")):
        raise ProtocolError("Query must not traverse outside the company resource.")
    return cleaned


def validate_company_id(company_id: str) -> str:
    cleaned = (company_id or "").strip()
    if not cleaned or not cleaned.replace("-", "").replace("_", "").isalnum():
        raise ProtocolError("companyId must be a QuickBooks realm identifier.")
    return cleaned


class QueryProxyService:
    """Refresh the access token when it has expired, then forward the read."""

    def __init__(
        self,
        repository: CredentialRepository,
        refresh_service: TokenRefreshService,
        api_client: QuickBooksAPIClient,
        *,
        refresh_leeway_seconds: int = 0,
    ) -> None:
        self._repository = repository
        self._refresh = refresh_service
        self._api = api_client
        self._leeway = refresh_leeway_seconds

    async def query(self, *, company_id: str, query: str) -> Any:
        company_id = validate_company_id(company_id)
        query = validate_query(query)

        try:
            credential = self._repository.get_by_company(company_id)
        except RecordStoreError as exc:
            raise UpstreamError(f"Credential store unavailable: {exc}") from exc

        access_token = credential.access_token
        if credential.is_expired(now=utcnow(), leeway_seconds=self._leeway):
            if not credential.can_refresh:
                raise TokenRefreshError(
                    "Access token expired and no refresh token is stored; "
                    "reconnect QuickBooks to continue."
                )
            logger.info("Access token for company %s expired; refreshing", company_id)
            refreshed = await self._refresh.refresh(
                refresh_token=credential.refresh_token, company_id=company_id
            )
            access_token = refreshed.access_token

        return await self._api.get(company_id=company_id, query=query, access_token=access_token)


__all__ = ["QueryProxyService", "validate_company_id", "validate_query"]
