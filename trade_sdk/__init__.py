"""Async Bybit / BingX REST clients with a shared connection pool and a client cache."""

__version__ = "0.1.0"

from trade_sdk.context import TradeContext, open_context
from trade_sdk.errors import (
    AuthError,
    ConfigError,
    ExchangeResponseError,
    HttpStatusError,
    SessionNotInitializedError,
    TradeSdkError,
)
from trade_sdk.logging_setup import setup_logging
from trade_sdk.services.bingx_client import BingxClient
from trade_sdk.services.bybit_client import BybitClient
from trade_sdk.services.cache import ClientsCache
from trade_sdk.services.client_caches import (
    BingxCacheKey,
    BingxClientsCache,
    BybitCacheKey,
    BybitClientsCache,
)
from trade_sdk.services.session import SharedSessionManager

__all__ = [
    "AuthError",
    "BingxCacheKey",
    "BingxClient",
    "BingxClientsCache",
    "BybitCacheKey",
    "BybitClient",
    "BybitClientsCache",
    "ClientsCache",
    "ConfigError",
    "ExchangeResponseError",
    "HttpStatusError",
    "SessionNotInitializedError",
    "SharedSessionManager",
    "TradeContext",
    "TradeSdkError",
    "open_context",
    "setup_logging",
]
