from __future__ import annotations

from datetime import datetime, timedelta, timezone
from urllib.parse import parse_qs, urlparse

import pytest

from ledgerlink.core.errors import ConnectInitiationError, RecordStoreError
from ledgerlink.models.oauth import ConnectionIntent
from ledgerlink.services.intents import INTENT_PK


def test_begin_returns_url_carrying_signed_state(harness) -> None:
    started = harness.initiator.begin(target_client_id="c1", target_client_label="Acme")

    params = parse_qs(urlparse(started.authorization_url).query)
    assert params["state"] == [started.state]

    payload = harness.encoder.decode(started.state)
    assert payload["client_id"] == "c1"

    intent = harness.intents.get(payload["nonce"])
    assert intent is not None
    assert intent.target_client_id == "c1"
    assert intent.target_client_label == "Acme"
    assert intent.state == started.state


def test_each_attempt_gets_a_fresh_state(harness) -> None:
    first = harness.initiator.begin(target_client_id="c1")
    second = harness.initiator.begin(target_client_id="c1")

    assert first.state != second.state
    assert harness.intents.get(harness.encoder.decode(first.state)["nonce"]) is not None
    assert harness.intents.get(harness.encoder.decode(second.state)["nonce"]) is not None


@pytest.mark.parametrize("client_id", ["", "   "])
def test_begin_requires_target_client(harness, client_id: str) -> None:
    with pytest.raises(ConnectInitiationError):
        harness.initiator.begin(target_client_id=client_id)


def test_begin_fails_when_intent_cannot_be_stored(harness, monkeypatch) -> None:
    def _broken_put(item) -> None:
        raise RecordStoreError("read-only database")

    monkeypatch.setattr(harness.store, "put_item", _broken_put)

    with pytest.raises(ConnectInitiationError):
        harness.initiator.begin(target_client_id="c1")


def test_saving_an_intent_purges_expired_ones(harness) -> None:
    stale = ConnectionIntent(
        nonce="stale",
        state="old-state",
        target_client_id="c9",
        issued_at=datetime.now(timezone.utc) - timedelta(hours=2),
    )
    harness.store.put_item(
        {"pk": INTENT_PK, "sk": "quickbooks#stale", **stale.model_dump(mode="json")}
    )

    harness.initiator.begin(target_client_id="c1")

    assert harness.store.get_item(partition_key=INTENT_PK, sort_key="quickbooks#stale") is None
