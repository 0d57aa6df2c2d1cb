"""Service layer exports."""

from .callback import CallbackHandler
from .connect import ConnectInitiator
from .credentials import CredentialRepository
from .intents import IntentStore
from .query_proxy import QueryProxyService
from .token_cipher import TokenCipherService
from .token_exchange import ExchangeResult, TokenExchangeService
from .token_refresh import RefreshResult, TokenRefreshService

__all__ = [
    "CallbackHandler",
    "ConnectInitiator",
    "CredentialRepository",
    "ExchangeResult",
    "IntentStore",
    "QueryProxyService",
    "RefreshResult",
    "TokenCipherService",
    "TokenExchangeService",
    "TokenRefreshService",
]
