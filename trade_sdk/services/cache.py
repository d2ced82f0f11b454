"""TTL cache of exchange client instances keyed by credentials.

Entries expire lazily: ``get()`` treats a stale entry as a miss but leaves it
in place, and only ``cleanup_expired()`` (usually from the background task)
removes it.  This keeps the read path on the shared lock.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable, Hashable
from typing import Generic, TypeVar

from trade_sdk.utils.locks import RWLock

logger = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)
C = TypeVar("C")

DEFAULT_LIFETIME_SECONDS = 600  # 10 minutes


class ClientsCache(Generic[K, C]):
    """Map of key → (client, expires_at) with a configurable lifetime.

    ``get_or_create`` is not atomic: two callers missing on the same key may
    both build a client, and the later ``add`` wins the cache slot.  Both
    callers still get a usable client.
    """

    def __init__(
        self,
        lifetime_seconds: float = DEFAULT_LIFETIME_SECONDS,
        *,
        clock: Callable[[], float] = time.monotonic,
        name: str | None = None,
    ):
        self.name = name or type(self).__name__
        self._clock = clock
        self._lifetime = float(lifetime_seconds)
        self._lock = RWLock()
        self._entries: dict[K, tuple[C, float]] = {}

    # ── Configuration ────────────────────────────────────────────────────

    @property
    def lifetime(self) -> float:
        return self._lifetime

    def configure(self, lifetime_seconds: float) -> None:
        """Set the lifetime for entries written from now on."""
        if lifetime_seconds < 0:
            raise ValueError("lifetime_seconds must be >= 0")
        self._lifetime = float(lifetime_seconds)
        logger.debug("%s: lifetime set to %.1fs", self.name, self._lifetime)

    # ── Access ───────────────────────────────────────────────────────────

    def get(self, key: K) -> C | None:
        """Return the cached client if present and not yet expired."""
        with self._lock.read():
            entry = self._entries.get(key)
            if entry is None:
                return None
            client, expires_at = entry
            if expires_at > self._clock():
                return client
            return None

    def add(self, key: K, client: C) -> None:
        """Cache *client* under *key*, replacing any existing entry."""
        expires_at = self._clock() + self._lifetime
        with self._lock.write():
            self._entries[key] = (client, expires_at)

    def get_or_create(self, key: K, create_fn: Callable[[], C]) -> C:
        """Return the cached client, building and caching one on a miss.

        Errors from *create_fn* propagate unchanged and nothing is cached.
        """
        client = self.get(key)
        if client is not None:
            return client
        client = create_fn()
        self.add(key, client)
        return client

    # ── Maintenance ──────────────────────────────────────────────────────

    def cleanup_expired(self) -> int:
        """Remove every expired entry and return how many were removed."""
        now = self._clock()
        with self._lock.write():
            expired = [k for k, (_, expires_at) in self._entries.items() if expires_at <= now]
            for k in expired:
                del self._entries[k]
        return len(expired)

    def size(self) -> int:
        with self._lock.read():
            return len(self._entries)

    def clear(self) -> None:
        with self._lock.write():
            self._entries.clear()

    def create_cleanup_task(self, interval_seconds: float) -> asyncio.Task:
        """Start a background loop calling ``cleanup_expired`` every *interval_seconds*.

        Must be called from a running event loop.  Stop it with
        ``task.cancel()``.
        """
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be > 0")
        return asyncio.create_task(
            self._cleanup_loop(interval_seconds),
            name=f"{self.name}-cleanup",
        )

    async def _cleanup_loop(self, interval_seconds: float) -> None:
        while True:
            await asyncio.sleep(interval_seconds)
            removed = self.cleanup_expired()
            if removed:
                logger.info("%s: cleaned %d entries", self.name, removed)
