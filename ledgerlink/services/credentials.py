"""
Persistence of QuickBooks credentials and connection status.

A client's credential, its connection status and the company index that maps
a QuickBooks realm back to the client are separate items. Connecting writes
all three in one atomic batch so status never exists without credentials.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from ledgerlink.clients import RecordStore
from ledgerlink.core.errors import NotFoundError, StaleRecordError
from ledgerlink.models.oauth import (
    PROVIDER,
    ConnectionStatus,
    ConnectionStatusRecord,
    CredentialRecord,
    TokenGrant,
)
from ledgerlink.services.token_cipher import TokenCipherService

logger = logging.getLogger(__name__)


def _client_pk(client_id: str) -> str:
    return f"client#{client_id}"


def _company_pk(company_id: str) -> str:
    return f"company#{company_id}"


CREDENTIAL_SK = f"oauth#{PROVIDER}"
STATUS_SK = f"connection#{PROVIDER}"
INDEX_SK = f"index#{PROVIDER}"


class CredentialRepository:
    """Reads and writes credential, status and company index items."""

    def __init__(self, store: RecordStore, token_cipher: TokenCipherService) -> None:
        self._store = store
        self._cipher = token_cipher

    def save_connection(
        self,
        *,
        client_id: str,
        company_id: str,
        access_token: str,
        refresh_token: Optional[str],
        expires_at: datetime,
        now: datetime,
    ) -> CredentialRecord:
        """Overwrite the client's credentials and mark it connected, atomically."""
        if not access_token:
            raise ValueError("A connected credential requires an access token.")

        record = CredentialRecord(
            client_id=client_id,
            provider_company_id=company_id,
            access_token=access_token,
            refresh_token=refresh_token,
            token_expires_at=expires_at,
            connected=True,
            updated_at=now,
        )
        status = ConnectionStatusRecord(
            client_id=client_id,
            provider=PROVIDER,
            status=ConnectionStatus.CONNECTED,
            connected_at=now,
            updated_at=now,
        )
        self._store.put_items(
            [
                self._credential_item(record),
                {
                    "pk": _client_pk(client_id),
                    "sk": STATUS_SK,
                    **status.model_dump(mode="json"),
                },
                {
                    "pk": _company_pk(company_id),
                    "sk": INDEX_SK,
                    "client_id": client_id,
                    "updated_at": now.isoformat(),
                },
            ]
        )
        return record

    def get_credential(self, client_id: str) -> CredentialRecord:
        item = self._store.get_item(
            partition_key=_client_pk(client_id), sort_key=CREDENTIAL_SK
        )
        if not item:
            raise NotFoundError(f"No QuickBooks credentials stored for client {client_id}.")
        return self._to_record(item)

    def get_by_company(self, company_id: str) -> CredentialRecord:
        """Load the credential that currently owns ``company_id``."""
        index = self._store.get_item(partition_key=_company_pk(company_id), sort_key=INDEX_SK)
        if not index or not index.get("client_id"):
            raise NotFoundError(f"Client not found for QuickBooks company {company_id}.")

        try:
            record = self.get_credential(index["client_id"])
        except NotFoundError as exc:
            raise NotFoundError(
                f"Client not found for QuickBooks company {company_id}."
            ) from exc

        # The client may since have reconnected to a different company.
        if record.provider_company_id != company_id:
            raise NotFoundError(f"Client not found for QuickBooks company {company_id}.")
        return record

    def update_tokens(
        self,
        *,
        current: CredentialRecord,
        grant: TokenGrant,
        expires_at: datetime,
        now: datetime,
    ) -> CredentialRecord:
        """Store a refreshed access token; keep the old refresh token unless a new one came back.

        The write only lands if the stored credential is still the one ``current``
        was read from; a reconnect or another refresh in between raises
        ``StaleRecordError`` and leaves the newer credential untouched.
        """
        updated = current.model_copy(
            update={
                "access_token": grant.access_token,
                "refresh_token": grant.refresh_token or current.refresh_token,
                "token_expires_at": expires_at,
                "updated_at": now,
            }
        )
        written = self._store.put_item_if(
            self._credential_item(updated),
            expected={
                "provider_company_id": current.provider_company_id,
                "updated_at": current.updated_at.isoformat(),
            },
        )
        if not written:
            raise StaleRecordError(
                f"QuickBooks credentials for client {current.client_id} changed during refresh."
            )
        return updated

    def get_status(self, client_id: str) -> ConnectionStatusRecord:
        item = self._store.get_item(partition_key=_client_pk(client_id), sort_key=STATUS_SK)
        if not item:
            raise NotFoundError(f"No QuickBooks connection recorded for client {client_id}.")
        return ConnectionStatusRecord.model_validate(item)

    def _credential_item(self, record: CredentialRecord) -> Dict[str, Any]:
        return {
            "pk": _client_pk(record.client_id),
            "sk": CREDENTIAL_SK,
            "client_id": record.client_id,
            "provider": PROVIDER,
            "provider_company_id": record.provider_company_id,
            "access_token_encrypted": self._cipher.encrypt(record.access_token),
            "refresh_token_encrypted": (
                self._cipher.encrypt(record.refresh_token) if record.refresh_token else None
            ),
            "token_expires_at": record.token_expires_at.isoformat(),
            "connected": record.connected,
            "updated_at": record.updated_at.isoformat(),
        }

    def _to_record(self, item: Dict[str, Any]) -> CredentialRecord:
        client_id = item.get("client_id", "")
        try:
            access_token = self._cipher.decrypt(item["access_token_encrypted"])
            encrypted_refresh = item.get("refresh_token_encrypted")
            refresh_token = self._cipher.decrypt(encrypted_refresh) if encrypted_refresh else None
        except (KeyError, ValueError) as exc:
            logger.error("Stored QuickBooks credentials for client %s are unreadable", client_id)
            raise NotFoundError(
                "Stored QuickBooks credentials are unreadable; reconnect required."
            ) from exc

        return CredentialRecord(
            client_id=client_id,
            provider_company_id=item["provider_company_id"],
            access_token=access_token,
            refresh_token=refresh_token,
            token_expires_at=_parse_timestamp(item["token_expires_at"]),
            connected=bool(item.get("connected", False)),
            updated_at=_parse_timestamp(item["updated_at"]),
        )


def _parse_timestamp(raw: Optional[str]) -> datetime:
    parsed = datetime.fromisoformat(raw) if raw else datetime.fromtimestamp(0, timezone.utc)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


__all__ = ["CredentialRepository"]
