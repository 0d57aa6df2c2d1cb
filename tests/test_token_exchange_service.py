from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

import httpx
import pytest

try:
    from ._helpers import token_response
except Exception:  # pragma: no cover - fallback for direct execution
    from _helpers import token_response  # type: ignore

from ledgerlink.core.errors import (
    NotFoundError,
    ProtocolError,
    RecordStoreError,
    TokenExchangeError,
)
from ledgerlink.models.oauth import ConnectionStatus

REDIRECT_URI = "https://app.example.com/oauth/callback"


@pytest.mark.anyio
async def test_exchange_stores_credentials_and_marks_connected(harness) -> None:
    harness.provider.token_replies.append(token_response("at1", "rt1", 3600))

    before = datetime.now(timezone.utc)
    result = await harness.exchange.exchange(
        code="XYZ", company_id="R1", redirect_uri=REDIRECT_URI, target_client_id="c1"
    )
    after = datetime.now(timezone.utc)

    assert result.company_id == "R1"
    assert before + timedelta(seconds=3600) <= result.expires_at <= after + timedelta(seconds=3600)

    record = harness.repository.get_credential("c1")
    assert record.access_token == "at1"
    assert record.refresh_token == "rt1"
    assert record.provider_company_id == "R1"
    assert record.connected is True
    assert record.token_expires_at == result.expires_at
    assert record.token_expires_at - record.updated_at == timedelta(seconds=3600)

    status = harness.repository.get_status("c1")
    assert status.status is ConnectionStatus.CONNECTED
    assert status.provider == "quickbooks"

    assert harness.repository.get_by_company("R1").client_id == "c1"


@pytest.mark.anyio
async def test_tokens_are_encrypted_at_rest(harness) -> None:
    harness.provider.token_replies.append(token_response("at1", "rt1", 3600))

    await harness.exchange.exchange(
        code="XYZ", company_id="R1", redirect_uri=REDIRECT_URI, target_client_id="c1"
    )

    raw = harness.store.get_item(partition_key="client#c1", sort_key="oauth#quickbooks")
    assert "access_token" not in raw
    assert raw["access_token_encrypted"] != "at1"
    assert harness.cipher.decrypt(raw["refresh_token_encrypted"]) == "rt1"


@pytest.mark.anyio
async def test_provider_rejection_writes_nothing(harness) -> None:
    harness.provider.token_replies.append(httpx.Response(400, json={"error": "invalid_grant"}))

    with pytest.raises(TokenExchangeError):
        await harness.exchange.exchange(
            code="used-code", company_id="R1", redirect_uri=REDIRECT_URI, target_client_id="c1"
        )

    with pytest.raises(NotFoundError):
        harness.repository.get_credential("c1")
    with pytest.raises(NotFoundError):
        harness.repository.get_status("c1")


@pytest.mark.anyio
async def test_provider_rejection_keeps_previous_credentials(harness) -> None:
    harness.provider.token_replies.append(token_response("at1", "rt1", 3600))
    await harness.exchange.exchange(
        code="first", company_id="R1", redirect_uri=REDIRECT_URI, target_client_id="c1"
    )
    harness.provider.token_replies.append(httpx.Response(400, json={"error": "invalid_grant"}))

    with pytest.raises(TokenExchangeError):
        await harness.exchange.exchange(
            code="second", company_id="R1", redirect_uri=REDIRECT_URI, target_client_id="c1"
        )

    assert harness.repository.get_credential("c1").access_token == "at1"
    assert len(harness.provider.token_requests) == 2


@pytest.mark.anyio
async def test_store_failure_fails_whole_exchange(harness, monkeypatch) -> None:
    harness.provider.token_replies.append(token_response("at1", "rt1", 3600))

    def _broken_batch(items) -> None:
        raise RecordStoreError("disk full")

    monkeypatch.setattr(harness.store, "put_items", _broken_batch)

    with pytest.raises(TokenExchangeError) as excinfo:
        await harness.exchange.exchange(
            code="XYZ", company_id="R1", redirect_uri=REDIRECT_URI, target_client_id="c1"
        )

    assert "disk full" in excinfo.value.message
    with pytest.raises(NotFoundError):
        harness.repository.get_credential("c1")
    with pytest.raises(NotFoundError):
        harness.repository.get_status("c1")


@pytest.mark.anyio
async def test_exchange_without_refresh_token_keeps_access_token(harness, caplog) -> None:
    harness.provider.token_replies.append(token_response("at1", refresh_token=None))

    with caplog.at_level(logging.WARNING, logger="ledgerlink.services.token_exchange"):
        result = await harness.exchange.exchange(
            code="XYZ", company_id="R1", redirect_uri=REDIRECT_URI, target_client_id="c1"
        )

    assert result.company_id == "R1"
    record = harness.repository.get_credential("c1")
    assert record.access_token == "at1"
    assert record.refresh_token is None
    assert record.can_refresh is False
    assert harness.repository.get_status("c1").status is ConnectionStatus.CONNECTED
    assert "no refresh token" in caplog.text


@pytest.mark.anyio
async def test_exchange_requires_all_parameters(harness) -> None:
    with pytest.raises(ProtocolError):
        await harness.exchange.exchange(
            code="", company_id="R1", redirect_uri=REDIRECT_URI, target_client_id="c1"
        )
    assert harness.provider.requests == []


@pytest.mark.anyio
async def test_reconnecting_to_another_company_retires_old_index(harness) -> None:
    harness.provider.token_replies.append(token_response("at1", "rt1", 3600))
    await harness.exchange.exchange(
        code="one", company_id="R1", redirect_uri=REDIRECT_URI, target_client_id="c1"
    )
    harness.provider.token_replies.append(token_response("at2", "rt2", 3600))
    await harness.exchange.exchange(
        code="two", company_id="R2", redirect_uri=REDIRECT_URI, target_client_id="c1"
    )

    assert harness.repository.get_by_company("R2").access_token == "at2"
    with pytest.raises(NotFoundError):
        harness.repository.get_by_company("R1")
