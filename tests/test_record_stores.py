from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest
from botocore.exceptions import ClientError

from ledgerlink.clients import dynamodb as dynamodb_module
from ledgerlink.clients.sqlite_store import SQLiteStore
from ledgerlink.core.config import StoreSettings
from ledgerlink.core.errors import RecordStoreError


def test_put_items_writes_every_item(tmp_path: Path) -> None:
    store = SQLiteStore(str(tmp_path / "store.db"))

    store.put_items(
        [
            {"pk": "client#c1", "sk": "oauth#quickbooks", "value": 1},
            {"pk": "client#c1", "sk": "connection#quickbooks", "value": 2},
        ]
    )

    assert store.get_item(partition_key="client#c1", sort_key="oauth#quickbooks")["value"] == 1
    assert (
        store.get_item(partition_key="client#c1", sort_key="connection#quickbooks")["value"]
        == 2
    )


def test_put_items_rejects_batch_with_missing_keys(tmp_path: Path) -> None:
    store = SQLiteStore(str(tmp_path / "store.db"))

    with pytest.raises(ValueError):
        store.put_items([{"pk": "client#c1", "sk": "oauth#quickbooks"}, {"pk": "client#c1"}])

    assert store.get_item(partition_key="client#c1", sort_key="oauth#quickbooks") is None


def test_put_items_writes_nothing_when_an_item_cannot_be_serialized(tmp_path: Path) -> None:
    store = SQLiteStore(str(tmp_path / "store.db"))
    unserializable = {"pk": "client#c1", "sk": "connection#quickbooks", "value": object()}

    with pytest.raises(TypeError):
        store.put_items([{"pk": "client#c1", "sk": "oauth#quickbooks"}, unserializable])

    assert store.get_item(partition_key="client#c1", sort_key="oauth#quickbooks") is None


def test_list_items_with_prefix_treats_wildcards_literally(tmp_path: Path) -> None:
    store = SQLiteStore(str(tmp_path / "store.db"))
    store.put_items(
        [
            {"pk": "oauth_intent", "sk": "quickbooks#a"},
            {"pk": "oauth_intent", "sk": "quickbooksXa"},
            {"pk": "oauth_intent", "sk": "xero#a"},
        ]
    )

    items = store.list_items_with_prefix(
        partition_key="oauth_intent", sort_key_prefix="quickbooks#"
    )
    assert [item["sk"] for item in items] == ["quickbooks#a"]

    store.delete_item(partition_key="oauth_intent", sort_key="quickbooks#a")
    assert store.list_items_with_prefix(
        partition_key="oauth_intent", sort_key_prefix="quickbooks#"
    ) == []


def test_sqlite_errors_are_wrapped(tmp_path: Path) -> None:
    store = SQLiteStore(str(tmp_path / "store.db"))
    (tmp_path / "store.db").unlink()
    (tmp_path / "store.db").mkdir()

    with pytest.raises(RecordStoreError):
        store.get_item(partition_key="client#c1", sort_key="oauth#quickbooks")



def test_put_item_if_replaces_unchanged_item(tmp_path: Path) -> None:
    store = SQLiteStore(str(tmp_path / "store.db"))
    store.put_item({"pk": "client#c1", "sk": "oauth#quickbooks", "company": "R1", "v": 1})

    written = store.put_item_if(
        {"pk": "client#c1", "sk": "oauth#quickbooks", "company": "R1", "v": 2},
        expected={"company": "R1", "v": 1},
    )

    assert written is True
    assert store.get_item(partition_key="client#c1", sort_key="oauth#quickbooks")["v"] == 2


def test_put_item_if_leaves_changed_item_alone(tmp_path: Path) -> None:
    store = SQLiteStore(str(tmp_path / "store.db"))
    store.put_item({"pk": "client#c1", "sk": "oauth#quickbooks", "company": "R2", "v": 5})

    written = store.put_item_if(
        {"pk": "client#c1", "sk": "oauth#quickbooks", "company": "R1", "v": 2},
        expected={"company": "R1", "v": 1},
    )

    assert written is False
    item = store.get_item(partition_key="client#c1", sort_key="oauth#quickbooks")
    assert item["company"] == "R2"
    assert item["v"] == 5


def test_put_item_if_does_not_create_missing_item(tmp_path: Path) -> None:
    store = SQLiteStore(str(tmp_path / "store.db"))

    written = store.put_item_if(
        {"pk": "client#c1", "sk": "oauth#quickbooks", "v": 1}, expected={"v": 0}
    )

    assert written is False
    assert store.get_item(partition_key="client#c1", sort_key="oauth#quickbooks") is None

class _FakeTable:
    def __init__(self) -> None:
        self.items: dict[tuple[str, str], dict[str, Any]] = {}
        self.conditions: list[Any] = []
        self.condition_error: str | None = None

    def put_item(self, Item: dict[str, Any], ConditionExpression: Any = None) -> None:
        if ConditionExpression is not None:
            self.conditions.append(ConditionExpression)
            if self.condition_error:
                raise ClientError(
                    {"Error": {"Code": self.condition_error, "Message": "condition"}},
                    "PutItem",
                )
        self.items[(Item["pk"], Item["sk"])] = Item

    def get_item(self, Key: dict[str, str]) -> dict[str, Any]:
        item = self.items.get((Key["pk"], Key["sk"]))
        return {"Item": item} if item else {}

    def delete_item(self, Key: dict[str, str]) -> None:
        self.items.pop((Key["pk"], Key["sk"]), None)


class _FakeResource:
    def __init__(self, table: _FakeTable) -> None:
        self._table = table

    def Table(self, name: str) -> _FakeTable:
        return self._table


class _FakeLowLevelClient:
    def __init__(self, *, fail: bool = False) -> None:
        self.fail = fail
        self.transactions: list[list[dict[str, Any]]] = []

    def transact_write_items(self, TransactItems: list[dict[str, Any]]) -> None:
        if self.fail:
            raise ClientError(
                {"Error": {"Code": "TransactionCanceledException", "Message": "cancelled"}},
                "TransactWriteItems",
            )
        self.transactions.append(TransactItems)


@pytest.fixture
def fake_dynamodb(monkeypatch: pytest.MonkeyPatch):
    table = _FakeTable()
    client = _FakeLowLevelClient()
    monkeypatch.setattr(dynamodb_module.boto3, "resource", lambda *a, **kw: _FakeResource(table))
    monkeypatch.setattr(dynamodb_module.boto3, "client", lambda *a, **kw: client)
    settings = StoreSettings(STORE_BACKEND="dynamodb", DYNAMODB_TABLE_NAME="ledgerlink")
    return dynamodb_module.DynamoDBStore(settings), table, client


def test_dynamodb_store_requires_table_name() -> None:
    with pytest.raises(ValueError):
        dynamodb_module.DynamoDBStore(StoreSettings(STORE_BACKEND="dynamodb"))


def test_dynamodb_put_items_uses_single_typed_transaction(fake_dynamodb) -> None:
    store, _, client = fake_dynamodb

    store.put_items(
        [
            {"pk": "client#c1", "sk": "oauth#quickbooks", "connected": True},
            {"pk": "company#R1", "sk": "index#quickbooks", "client_id": "c1"},
        ]
    )

    assert len(client.transactions) == 1
    first = client.transactions[0][0]["Put"]
    assert first["TableName"] == "ledgerlink"
    assert first["Item"]["pk"] == {"S": "client#c1"}
    assert first["Item"]["connected"] == {"BOOL": True}


def test_dynamodb_transaction_failure_is_wrapped(fake_dynamodb) -> None:
    store, _, client = fake_dynamodb
    client.fail = True

    with pytest.raises(RecordStoreError):
        store.put_items([{"pk": "client#c1", "sk": "oauth#quickbooks"}])


def test_dynamodb_get_and_delete_item(fake_dynamodb) -> None:
    store, _, _ = fake_dynamodb
    store.put_item({"pk": "client#c1", "sk": "connection#quickbooks", "status": "connected"})

    item = store.get_item(partition_key="client#c1", sort_key="connection#quickbooks")
    assert item["status"] == "connected"

    store.delete_item(partition_key="client#c1", sort_key="connection#quickbooks")
    assert store.get_item(partition_key="client#c1", sort_key="connection#quickbooks") is None


def test_dynamodb_put_item_if_sends_condition(fake_dynamodb) -> None:
    store, table, _ = fake_dynamodb

    written = store.put_item_if(
        {"pk": "client#c1", "sk": "oauth#quickbooks", "v": 2}, expected={"v": 1}
    )

    assert written is True
    assert len(table.conditions) == 1
    assert table.items[("client#c1", "oauth#quickbooks")]["v"] == 2


def test_dynamodb_put_item_if_reports_failed_condition(fake_dynamodb) -> None:
    store, table, _ = fake_dynamodb
    table.condition_error = "ConditionalCheckFailedException"

    written = store.put_item_if(
        {"pk": "client#c1", "sk": "oauth#quickbooks", "v": 2}, expected={"v": 1}
    )

    assert written is False
    assert table.items == {}


def test_dynamodb_put_item_if_wraps_other_errors(fake_dynamodb) -> None:
    store, table, _ = fake_dynamodb
    table.condition_error = "ProvisionedThroughputExceededException"

    with pytest.raises(RecordStoreError):
        store.put_item_if({"pk": "client#c1", "sk": "oauth#quickbooks"}, expected={"v": 1})
