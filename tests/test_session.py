"""Tests for the shared connection-pool session manager."""

import asyncio
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from trade_sdk.errors import SessionNotInitializedError
from trade_sdk.services.bybit_client import BybitClient
from trade_sdk.services.session import DEFAULT_HEADERS, SharedSessionManager


def _run(coro):
    """Run an async coroutine synchronously."""
    return asyncio.run(coro)


def _ok(request: httpx.Request) -> httpx.Response:
    return httpx.Response(200, json={"retCode": 0, "retMsg": "OK", "result": {}, "retExtInfo": {}, "time": 1})


@pytest.fixture()
def manager():
    return SharedSessionManager(close_grace_seconds=0)


# ── setup ────────────────────────────────────────────────────────────────────

class TestSetup:
    def test_uninitialized_by_default(self, manager):
        assert manager.is_initialized() is False
        assert manager.max_connections() == 0

    def test_get_client_before_setup_raises(self, manager):
        with pytest.raises(SessionNotInitializedError):
            manager.get_client()

    def test_not_initialized_error_is_runtime_error(self, manager):
        with pytest.raises(RuntimeError, match="setup"):
            manager.get_client()

    def test_setup_initializes(self, manager):
        manager.setup(100)
        assert manager.is_initialized() is True
        assert manager.max_connections() == 100
        assert isinstance(manager.get_client(), httpx.AsyncClient)

    def test_setup_is_idempotent(self, manager):
        manager.setup(100)
        first = manager.get_client()
        manager.setup(500)
        assert manager.max_connections() == 100
        assert manager.get_client() is first

    def test_get_client_returns_shared_instance(self, manager):
        manager.setup(10)
        assert manager.get_client() is manager.get_client()

    def test_default_headers(self, manager):
        manager.setup(10)
        headers = manager.get_client().headers
        for name, value in DEFAULT_HEADERS.items():
            assert headers[name] == value

    def test_independent_managers_do_not_interfere(self, manager):
        other = SharedSessionManager()
        manager.setup(10)
        assert other.is_initialized() is False


# ── close ────────────────────────────────────────────────────────────────────

class TestClose:
    def test_close_resets_state(self, manager):
        manager.setup(10)
        _run(manager.close())
        assert manager.is_initialized() is False
        assert manager.max_connections() == 0
        with pytest.raises(SessionNotInitializedError):
            manager.get_client()

    def test_close_waits_grace_period(self):
        manager = SharedSessionManager()
        manager.setup(10)
        with patch("trade_sdk.services.session.asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
            _run(manager.close())
        mock_sleep.assert_awaited_once_with(0.2)

    def test_close_is_idempotent(self):
        manager = SharedSessionManager()
        with patch("trade_sdk.services.session.asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
            _run(manager.close())
            manager.setup(10)
            _run(manager.close())
            _run(manager.close())
        assert mock_sleep.await_count == 1

    def test_setup_again_after_close(self, manager):
        manager.setup(10)
        first = manager.get_client()
        _run(manager.close())
        manager.setup(20)
        assert manager.max_connections() == 20
        assert manager.get_client() is not first


# ── Exchange clients and the pool ───────────────────────────────────────────

class TestClientsUsePool:
    def test_client_without_session_uses_private_pool(self):
        client = BybitClient("k", "s")
        assert client.uses_shared_session is False

    def test_client_with_uninitialized_session_falls_back(self, manager):
        client = BybitClient("k", "s", session=manager)
        assert client.is_shared_session_enabled() is False

    def test_client_with_initialized_session_shares_pool(self, manager):
        manager.setup(10)
        a = BybitClient("k1", "s1", session=manager)
        b = BybitClient("k2", "s2", session=manager)
        assert a.uses_shared_session and b.uses_shared_session
        assert a.client is b.client is manager.get_client()

    def test_existing_clients_keep_working_after_close(self, manager):
        manager.setup(10, transport=httpx.MockTransport(_ok))
        client = BybitClient("k", "s", session=manager)
        _run(manager.close())

        resp = _run(client.get_server_time())
        assert resp.ret_code == 0
        assert BybitClient("k", "s", session=manager).uses_shared_session is False

    def test_aclose_leaves_shared_pool_open(self, manager):
        manager.setup(10, transport=httpx.MockTransport(_ok))
        client = BybitClient("k", "s", session=manager)
        _run(client.aclose())
        assert manager.get_client().is_closed is False
