"""
Thin wrapper around the QuickBooks Online accounting API.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from ledgerlink.core.config import QuickBooksSettings
from ledgerlink.core.errors import UpstreamError

logger = logging.getLogger(__name__)


class QuickBooksAPIClient:
    """Issue bearer-authenticated reads against a company's ledger."""

    def __init__(
        self,
        settings: QuickBooksSettings,
        *,
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._base_url = settings.api_base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport

    def resource_url(self, company_id: str, query: str) -> str:
        return f"{self._base_url}/company/{company_id}/{query}"

    async def get(self, *, company_id: str, query: str, access_token: str) -> Any:
        """GET ``query`` for the company and return the decoded JSON body."""
        url = self.resource_url(company_id, query)
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport
            ) as client:
                response = await client.get(
                    url,
                    headers={
                        "Authorization": f"Bearer {access_token}",
                        "Accept": "application/json",
                    },
                )
        except httpx.HTTPError as exc:
            logger.warning("QuickBooks API request failed for company %s: %s", company_id, exc)
            raise UpstreamError(f"QBO API error: {exc.__class__.__name__}") from exc

        if not response.is_success:
            logger.error(
                "QuickBooks API returned status=%s for company %s",
                response.status_code,
                company_id,
            )
            raise UpstreamError(f"QBO API error: {response.reason_phrase}")

        try:
            return response.json()
        except ValueError as exc:
            raise UpstreamError("QBO API returned a non-JSON response.") from exc


__all__ = ["QuickBooksAPIClient"]
