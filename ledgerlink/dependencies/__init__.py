"""Expose dependency helpers for FastAPI routers."""

from .clients import (
    get_callback_handler,
    get_connect_initiator,
    get_credential_repository,
    get_intent_store,
    get_oauth_state_encoder,
    get_query_proxy_service,
    get_quickbooks_api_client,
    get_quickbooks_oauth_client,
    get_record_store,
    get_token_cipher_service,
    get_token_exchange_service,
    get_token_refresh_service,
)
from .config import SettingsDependency, get_app_settings

__all__ = [
    "SettingsDependency",
    "get_app_settings",
    "get_callback_handler",
    "get_connect_initiator",
    "get_credential_repository",
    "get_intent_store",
    "get_oauth_state_encoder",
    "get_query_proxy_service",
    "get_quickbooks_api_client",
    "get_quickbooks_oauth_client",
    "get_record_store",
    "get_token_cipher_service",
    "get_token_exchange_service",
    "get_token_refresh_service",
]
