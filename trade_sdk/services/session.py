"""Shared httpx.AsyncClient with a high-concurrency connection pool.

One manager is owned by the application (see ``trade_sdk.context``) and handed
to every exchange client that should reuse pooled TCP/TLS connections instead
of opening its own.  Clients built while the manager is not initialized fall
back to a private ``httpx.AsyncClient``.
"""

import asyncio
import logging
import socket
import threading

import httpx

from trade_sdk import __version__
from trade_sdk.errors import SessionNotInitializedError

logger = logging.getLogger(__name__)

DEFAULT_MAX_CONNECTIONS = 2000
KEEPALIVE_SECONDS = 60
REQUEST_TIMEOUT = 30.0
CLOSE_GRACE_SECONDS = 0.2

DEFAULT_HEADERS = {
    "Content-Type": "application/json",
    "Accept": "application/json",
    "Connection": "keep-alive",
    "User-Agent": f"trade-sdk/{__version__}",
}


def _socket_options() -> list[tuple[int, int, int]]:
    options = [
        (socket.SOL_SOCKET, socket.SO_KEEPALIVE, 1),
        (socket.IPPROTO_TCP, socket.TCP_NODELAY, 1),
    ]
    # Not every platform exposes the idle timer.
    if hasattr(socket, "TCP_KEEPIDLE"):
        options.append((socket.IPPROTO_TCP, socket.TCP_KEEPIDLE, KEEPALIVE_SECONDS))
    return options


def build_pooled_client(
    max_connections: int,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """Build the pooled client.  *transport* overrides the network layer (tests)."""
    if transport is None:
        transport = httpx.AsyncHTTPTransport(
            limits=httpx.Limits(
                max_connections=max_connections,
                max_keepalive_connections=max_connections // 2,
                keepalive_expiry=KEEPALIVE_SECONDS,
            ),
            http1=True,
            http2=False,
            socket_options=_socket_options(),
        )
    return httpx.AsyncClient(
        transport=transport,
        timeout=REQUEST_TIMEOUT,
        headers=DEFAULT_HEADERS,
    )


class SharedSessionManager:
    """Owner of the pooled client.

    ``is_initialized()`` reads an event flag without taking the lock, so the
    hot path used by client constructors never blocks.  ``setup()`` re-checks
    under the lock to close the window where two callers pass the fast check
    together.
    """

    def __init__(self, close_grace_seconds: float = CLOSE_GRACE_SECONDS):
        self.close_grace_seconds = close_grace_seconds
        self._lock = threading.Lock()
        self._initialized = threading.Event()
        self._client: httpx.AsyncClient | None = None
        self._max_connections = 0

    def setup(
        self,
        max_connections: int = DEFAULT_MAX_CONNECTIONS,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Create the pooled client.  Later calls are logged and ignored."""
        if self._initialized.is_set():
            logger.warning("Session already initialized - skipping setup")
            return

        with self._lock:
            if self._client is not None:
                logger.warning("Session already initialized - skipping setup")
                return

            logger.info("Initializing shared session with %d max connections", max_connections)
            self._client = build_pooled_client(max_connections, transport)
            self._max_connections = max_connections
            self._initialized.set()

        logger.info("Shared session initialized")

    def is_initialized(self) -> bool:
        return self._initialized.is_set()

    def get_client(self) -> httpx.AsyncClient:
        """Return the pooled client.  Raises if called before ``setup()``."""
        if not self._initialized.is_set():
            raise SessionNotInitializedError("Session not initialized - call setup() first")
        with self._lock:
            if self._client is None:
                raise SessionNotInitializedError("Session not initialized - call setup() first")
            return self._client

    async def close(self) -> None:
        """Drop the pooled client.

        Clients that already hold it keep a working reference; the short
        sleep only gives in-flight requests a chance to land and is not a
        completion barrier.
        """
        with self._lock:
            was_initialized = self._initialized.is_set()
            self._initialized.clear()
            client, self._client = self._client, None
            self._max_connections = 0

        if not was_initialized:
            logger.debug("Session already closed or not initialized")
            return

        if client is not None:
            logger.info("Closing shared session gracefully")
            await asyncio.sleep(self.close_grace_seconds)
            logger.info("Shared session closed")

    def max_connections(self) -> int:
        with self._lock:
            return self._max_connections if self._client is not None else 0
