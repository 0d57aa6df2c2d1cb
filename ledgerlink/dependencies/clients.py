"""
Factory functions to provide shared clients and services as FastAPI dependencies.

Stateless clients are cached per process; the callback handler tracks the
status of a single invocation and is built per request.
"""

from functools import lru_cache

from ledgerlink.clients import (
    DynamoDBStore,
    OAuthStateEncoder,
    QuickBooksAPIClient,
    QuickBooksOAuthClient,
    RecordStore,
    SQLiteStore,
)
from ledgerlink.dependencies.config import get_app_settings
from ledgerlink.services import (
    CallbackHandler,
    ConnectInitiator,
    CredentialRepository,
    IntentStore,
    QueryProxyService,
    TokenCipherService,
    TokenExchangeService,
    TokenRefreshService,
)
from ledgerlink.services.callback import RETRY_PATH, SUCCESS_PATH


def _settings():
    """Internal helper to share the settings singleton with client factories."""
    return get_app_settings()


@lru_cache()
def get_oauth_state_encoder() -> OAuthStateEncoder:
    """Provide an OAuth state encoder keyed by the QuickBooks client secret."""
    return OAuthStateEncoder(secret_key=_settings().quickbooks.client_secret)


@lru_cache()
def get_quickbooks_oauth_client() -> QuickBooksOAuthClient:
    settings = _settings()
    return QuickBooksOAuthClient(settings.quickbooks, timeout=settings.http_timeout_seconds)


@lru_cache()
def get_quickbooks_api_client() -> QuickBooksAPIClient:
    settings = _settings()
    return QuickBooksAPIClient(settings.quickbooks, timeout=settings.http_timeout_seconds)


@lru_cache()
def get_record_store() -> RecordStore:
    """Provide the configured record store backend."""
    settings = _settings()
    if settings.store.backend == "dynamodb":
        return DynamoDBStore(settings.store)
    return SQLiteStore(settings.store.sqlite_db_path)


@lru_cache()
def get_token_cipher_service() -> TokenCipherService:
    """Provide symmetric encryption helper for token storage."""
    settings = _settings()
    secret = settings.security.token_encryption_secret or settings.quickbooks.client_secret
    return TokenCipherService(
        secret=secret, previous_secrets=settings.security.previous_secrets
    )


def get_credential_repository() -> CredentialRepository:
    return CredentialRepository(get_record_store(), get_token_cipher_service())


def get_intent_store() -> IntentStore:
    return IntentStore(get_record_store(), ttl_seconds=_settings().oauth.state_ttl_seconds)


def get_connect_initiator() -> ConnectInitiator:
    return ConnectInitiator(
        oauth_client=get_quickbooks_oauth_client(),
        state_encoder=get_oauth_state_encoder(),
        intents=get_intent_store(),
    )


def get_token_exchange_service() -> TokenExchangeService:
    return TokenExchangeService(
        oauth_client=get_quickbooks_oauth_client(),
        repository=get_credential_repository(),
    )


def get_token_refresh_service() -> TokenRefreshService:
    return TokenRefreshService(
        oauth_client=get_quickbooks_oauth_client(),
        repository=get_credential_repository(),
    )


def get_query_proxy_service() -> QueryProxyService:
    return QueryProxyService(
        repository=get_credential_repository(),
        refresh_service=get_token_refresh_service(),
        api_client=get_quickbooks_api_client(),
        refresh_leeway_seconds=_settings().oauth.refresh_leeway_seconds,
    )


def get_callback_handler() -> CallbackHandler:
    settings = _settings()
    return CallbackHandler(
        oauth_client=get_quickbooks_oauth_client(),
        state_encoder=get_oauth_state_encoder(),
        intents=get_intent_store(),
        exchange_service=get_token_exchange_service(),
        success_url=settings.frontend_url(SUCCESS_PATH),
        retry_url=settings.frontend_url(RETRY_PATH),
        redirect_delay_seconds=settings.oauth.success_redirect_delay_seconds,
    )


__all__ = [
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
