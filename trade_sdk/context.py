"""Composition root: one session manager plus the exchange client caches.

Applications create a single ``TradeContext`` at startup (or use
``open_context()``) and pass its caches to whatever needs exchange clients::

    async with open_context() as ctx:
        client = ctx.bybit.get_or_create(key, secret, testnet=True)
        await client.get_server_time()
"""

import asyncio
import logging
from contextlib import asynccontextmanager

from trade_sdk.config import Settings, get_settings
from trade_sdk.services.client_caches import BingxClientsCache, BybitClientsCache
from trade_sdk.services.session import SharedSessionManager

logger = logging.getLogger(__name__)


class TradeContext:
    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()
        self.session = SharedSessionManager(close_grace_seconds=self.settings.session_close_grace_seconds)
        self.bybit = BybitClientsCache(
            session=self.session,
            lifetime_seconds=self.settings.cache_lifetime_seconds,
            recv_window=self.settings.recv_window,
            referral_id=self.settings.bybit_referral_id,
        )
        self.bingx = BingxClientsCache(
            session=self.session,
            lifetime_seconds=self.settings.cache_lifetime_seconds,
            recv_window=self.settings.recv_window,
        )
        self._cleanup_tasks: list[asyncio.Task] = []

    @property
    def started(self) -> bool:
        return bool(self._cleanup_tasks)

    async def start(self) -> None:
        """Set up the shared session and start the cache cleanup loops."""
        if self.started:
            logger.warning("TradeContext already started")
            return
        if self.settings.use_shared_session:
            self.session.setup(self.settings.session_max_connections)
        interval = self.settings.cache_cleanup_interval_seconds
        self._cleanup_tasks = [
            self.bybit.create_cleanup_task(interval),
            self.bingx.create_cleanup_task(interval),
        ]
        logger.info("TradeContext started (cleanup every %ds)", interval)

    async def close(self) -> None:
        """Stop cleanup loops, drop cached clients and close the session."""
        for task in self._cleanup_tasks:
            task.cancel()
        for task in self._cleanup_tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._cleanup_tasks = []
        self.bybit.clear()
        self.bingx.clear()
        await self.session.close()
        logger.info("TradeContext closed")


@asynccontextmanager
async def open_context(settings: Settings | None = None):
    ctx = TradeContext(settings)
    await ctx.start()
    try:
        yield ctx
    finally:
        await ctx.close()
