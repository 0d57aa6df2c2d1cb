"""Expose constructed client wrappers."""

from typing import Union

from .dynamodb import DynamoDBStore
from .quickbooks_api import QuickBooksAPIClient
from .quickbooks_auth import OAuthStateEncoder, QuickBooksOAuthClient
from .sqlite_store import SQLiteStore

RecordStore = Union[SQLiteStore, DynamoDBStore]

__all__ = [
    "DynamoDBStore",
    "OAuthStateEncoder",
    "QuickBooksAPIClient",
    "QuickBooksOAuthClient",
    "RecordStore",
    "SQLiteStore",
]
