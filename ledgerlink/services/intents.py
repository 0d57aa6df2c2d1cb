"""Flow-scoped storage for pending QuickBooks connect attempts."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Optional

from ledgerlink.clients import RecordStore
from ledgerlink.models.oauth import PROVIDER, ConnectionIntent, utcnow

logger = logging.getLogger(__name__)

INTENT_PK = "oauth_intent"


def _intent_sk(nonce: str) -> str:
    return f"{PROVIDER}#{nonce}"


class IntentStore:
    """Keeps one record per authorization redirect, keyed by the state nonce.

    Each connect attempt gets its own slot, so a second attempt started before
    the first returns never overwrites it.
    """

    def __init__(self, store: RecordStore, *, ttl_seconds: int) -> None:
        self._store = store
        self._ttl = timedelta(seconds=ttl_seconds)

    def is_expired(self, issued_at: datetime, *, now: Optional[datetime] = None) -> bool:
        return (now or utcnow()) - issued_at > self._ttl

    def save(self, intent: ConnectionIntent) -> None:
        self.purge_expired()
        self._store.put_item(
            {
                "pk": INTENT_PK,
                "sk": _intent_sk(intent.nonce),
                **intent.model_dump(mode="json"),
            }
        )

    def get(self, nonce: str) -> Optional[ConnectionIntent]:
        """Return the live intent for ``nonce``; expired intents are dropped."""
        item = self._store.get_item(partition_key=INTENT_PK, sort_key=_intent_sk(nonce))
        if not item:
            return None
        intent = ConnectionIntent.model_validate(item)
        if self.is_expired(intent.issued_at):
            logger.info("Discarding expired connection intent for client %s", intent.target_client_id)
            self.discard(nonce)
            return None
        return intent

    def discard(self, nonce: str) -> None:
        self._store.delete_item(partition_key=INTENT_PK, sort_key=_intent_sk(nonce))

    def purge_expired(self) -> int:
        now = utcnow()
        removed = 0
        for item in self._store.list_items_with_prefix(
            partition_key=INTENT_PK, sort_key_prefix=f"{PROVIDER}#"
        ):
            intent = ConnectionIntent.model_validate(item)
            if self.is_expired(intent.issued_at, now=now):
                self.discard(intent.nonce)
                removed += 1
        return removed


__all__ = ["INTENT_PK", "IntentStore"]
