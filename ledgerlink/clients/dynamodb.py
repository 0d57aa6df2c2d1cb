"""
DynamoDB record store with the same (pk, sk) item interface as ``SQLiteStore``.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, Mapping, Optional

import boto3
from boto3.dynamodb.conditions import Attr, Key
from boto3.dynamodb.types import TypeSerializer
from botocore.exceptions import BotoCoreError, ClientError

from ledgerlink.core.config import StoreSettings
from ledgerlink.core.errors import RecordStoreError

# TransactWriteItems accepts at most 100 actions per call.
_MAX_TRANSACTION_ITEMS = 100


class DynamoDBStore:
    """CRUD operations for credential and connection records."""

    def __init__(self, settings: StoreSettings) -> None:
        if not settings.dynamodb_table_name:
            raise ValueError("DYNAMODB_TABLE_NAME is required for the dynamodb store backend")
        self._table_name = settings.dynamodb_table_name
        self._resource = boto3.resource("dynamodb", region_name=settings.region_name)
        self._table = self._resource.Table(self._table_name)
        self._client = boto3.client("dynamodb", region_name=settings.region_name)
        self._serializer = TypeSerializer()

    def put_item(self, item: Dict[str, Any]) -> None:
        """Put an item in the DynamoDB table."""
        try:
            self._table.put_item(Item=item)
        except (BotoCoreError, ClientError) as exc:
            raise RecordStoreError(f"DynamoDB put failed: {exc}") from exc

    def put_items(self, items: Iterable[Dict[str, Any]]) -> None:
        """Write all items atomically with a single TransactWriteItems call."""
        actions = [
            {
                "Put": {
                    "TableName": self._table_name,
                    "Item": {
                        key: self._serializer.serialize(value)
                        for key, value in item.items()
                    },
                }
            }
            for item in items
        ]
        if not actions:
            return
        if len(actions) > _MAX_TRANSACTION_ITEMS:
            raise ValueError("Too many items for a single DynamoDB transaction")
        try:
            self._client.transact_write_items(TransactItems=actions)
        except (BotoCoreError, ClientError) as exc:
            raise RecordStoreError(f"DynamoDB transaction failed: {exc}") from exc

    def put_item_if(self, item: Dict[str, Any], *, expected: Mapping[str, Any]) -> bool:
        """Conditional put; False when the stored item is missing or has changed."""
        condition = Attr("pk").exists()
        for key, value in expected.items():
            condition = condition & Attr(key).eq(value)
        try:
            self._table.put_item(Item=item, ConditionExpression=condition)
        except ClientError as exc:
            if exc.response.get("Error", {}).get("Code") == "ConditionalCheckFailedException":
                return False
            raise RecordStoreError(f"DynamoDB conditional put failed: {exc}") from exc
        except BotoCoreError as exc:
            raise RecordStoreError(f"DynamoDB conditional put failed: {exc}") from exc
        return True

    def get_item(self, *, partition_key: str, sort_key: str) -> Optional[Dict[str, Any]]:
        """Retrieve an item using its key."""
        try:
            response = self._table.get_item(Key={"pk": partition_key, "sk": sort_key})
        except (BotoCoreError, ClientError) as exc:
            raise RecordStoreError(f"DynamoDB get failed: {exc}") from exc
        return response.get("Item")

    def delete_item(self, *, partition_key: str, sort_key: str) -> None:
        try:
            self._table.delete_item(Key={"pk": partition_key, "sk": sort_key})
        except (BotoCoreError, ClientError) as exc:
            raise RecordStoreError(f"DynamoDB delete failed: {exc}") from exc

    def list_items_with_prefix(
        self, *, partition_key: str, sort_key_prefix: str
    ) -> list[Dict[str, Any]]:
        """Query items sharing a partition key whose sort key starts with a prefix."""
        condition = Key("pk").eq(partition_key) & Key("sk").begins_with(sort_key_prefix)
        items: list[Dict[str, Any]] = []
        kwargs: Dict[str, Any] = {"KeyConditionExpression": condition}
        try:
            while True:
                response = self._table.query(**kwargs)
                items.extend(response.get("Items", []))
                last_key = response.get("LastEvaluatedKey")
                if not last_key:
                    break
                kwargs["ExclusiveStartKey"] = last_key
        except (BotoCoreError, ClientError) as exc:
            raise RecordStoreError(f"DynamoDB query failed: {exc}") from exc
        return items


__all__ = ["DynamoDBStore"]
