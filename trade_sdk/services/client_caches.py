"""Per-exchange client caches.

Each wraps a generic ``ClientsCache`` and builds its key through one
``make_key`` function with keyword fields, so ``get`` and ``add`` can never
disagree on field order.
"""

import asyncio
import logging
from typing import Generic, NamedTuple, TypeVar

from trade_sdk.services.bingx_client import BingxClient
from trade_sdk.services.bybit_client import BybitClient
from trade_sdk.services.cache import DEFAULT_LIFETIME_SECONDS, ClientsCache
from trade_sdk.services.session import SharedSessionManager

logger = logging.getLogger(__name__)

DEFAULT_RECV_WINDOW = 5000

K = TypeVar("K", bound=tuple)
C = TypeVar("C")


class BybitCacheKey(NamedTuple):
    api_key: str
    api_secret: str
    demo: bool
    testnet: bool


class BingxCacheKey(NamedTuple):
    api_key: str
    api_secret: str
    demo: bool


class _ExchangeClientsCache(Generic[K, C]):
    """Maintenance operations shared by the exchange caches."""

    def __init__(self, lifetime_seconds: float, **kwargs):
        kwargs.setdefault("name", type(self).__name__)
        self.entries: ClientsCache[K, C] = ClientsCache(lifetime_seconds, **kwargs)

    @property
    def lifetime(self) -> float:
        return self.entries.lifetime

    def configure(self, lifetime_seconds: float) -> None:
        self.entries.configure(lifetime_seconds)

    def cleanup_expired(self) -> int:
        return self.entries.cleanup_expired()

    def size(self) -> int:
        return self.entries.size()

    def clear(self) -> None:
        self.entries.clear()

    def create_cleanup_task(self, interval_seconds: float) -> asyncio.Task:
        return self.entries.create_cleanup_task(interval_seconds)


class BybitClientsCache(_ExchangeClientsCache[BybitCacheKey, BybitClient]):
    """Cache of ``BybitClient`` keyed by (api_key, api_secret, demo, testnet)."""

    def __init__(
        self,
        session: SharedSessionManager | None = None,
        lifetime_seconds: float = DEFAULT_LIFETIME_SECONDS,
        recv_window: int = DEFAULT_RECV_WINDOW,
        referral_id: str | None = None,
        **kwargs,
    ):
        super().__init__(lifetime_seconds, **kwargs)
        self.session = session
        self.recv_window = recv_window
        self.referral_id = referral_id

    @staticmethod
    def make_key(api_key: str, api_secret: str, *, demo: bool = False, testnet: bool = False) -> BybitCacheKey:
        return BybitCacheKey(api_key=api_key, api_secret=api_secret, demo=demo, testnet=testnet)

    def get_or_create(self, api_key: str, api_secret: str, *, demo: bool = False, testnet: bool = False) -> BybitClient:
        """Return the cached client for these credentials, building one on a miss.

        Construction errors (e.g. ``ConfigError``) propagate and nothing is cached.
        """
        key = self.make_key(api_key, api_secret, demo=demo, testnet=testnet)
        return self.entries.get_or_create(key, lambda: self._build(key))

    def get(self, api_key: str, api_secret: str, *, demo: bool = False, testnet: bool = False) -> BybitClient | None:
        return self.entries.get(self.make_key(api_key, api_secret, demo=demo, testnet=testnet))

    def add(
        self,
        client: BybitClient,
        api_key: str,
        api_secret: str,
        *,
        demo: bool = False,
        testnet: bool = False,
    ) -> None:
        self.entries.add(self.make_key(api_key, api_secret, demo=demo, testnet=testnet), client)

    def _build(self, key: BybitCacheKey) -> BybitClient:
        logger.debug("Creating Bybit client (demo=%s, testnet=%s)", key.demo, key.testnet)
        return BybitClient(
            api_key=key.api_key,
            api_secret=key.api_secret,
            testnet=key.testnet,
            demo=key.demo,
            recv_window=self.recv_window,
            referral_id=self.referral_id,
            session=self.session,
        )


class BingxClientsCache(_ExchangeClientsCache[BingxCacheKey, BingxClient]):
    """Cache of ``BingxClient`` keyed by (api_key, api_secret, demo)."""

    def __init__(
        self,
        session: SharedSessionManager | None = None,
        lifetime_seconds: float = DEFAULT_LIFETIME_SECONDS,
        recv_window: int = DEFAULT_RECV_WINDOW,
        **kwargs,
    ):
        super().__init__(lifetime_seconds, **kwargs)
        self.session = session
        self.recv_window = recv_window

    @staticmethod
    def make_key(api_key: str, api_secret: str, *, demo: bool = False) -> BingxCacheKey:
        return BingxCacheKey(api_key=api_key, api_secret=api_secret, demo=demo)

    def get_or_create(self, api_key: str, api_secret: str, *, demo: bool = False) -> BingxClient:
        key = self.make_key(api_key, api_secret, demo=demo)
        return self.entries.get_or_create(key, lambda: self._build(key))

    def get(self, api_key: str, api_secret: str, *, demo: bool = False) -> BingxClient | None:
        return self.entries.get(self.make_key(api_key, api_secret, demo=demo))

    def add(self, client: BingxClient, api_key: str, api_secret: str, *, demo: bool = False) -> None:
        self.entries.add(self.make_key(api_key, api_secret, demo=demo), client)

    def _build(self, key: BingxCacheKey) -> BingxClient:
        logger.debug("Creating BingX client (demo=%s)", key.demo)
        return BingxClient(
            api_key=key.api_key,
            api_secret=key.api_secret,
            demo=key.demo,
            recv_window=self.recv_window,
            session=self.session,
        )
