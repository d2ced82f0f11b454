"""Tests for the generic TTL client cache."""

import asyncio
import threading
import time

import pytest

from trade_sdk.services.cache import DEFAULT_LIFETIME_SECONDS, ClientsCache
from trade_sdk.utils.locks import RWLock


# ── Helpers ──────────────────────────────────────────────────────────────────

def _run(coro):
    """Run an async coroutine synchronously."""
    return asyncio.run(coro)


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class Client:
    """Stand-in for an exchange client; compared by identity."""


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def cache(clock):
    return ClientsCache(clock=clock)


# ── get / add / get_or_create ────────────────────────────────────────────────

class TestLookup:
    def test_default_lifetime(self, cache):
        assert cache.lifetime == DEFAULT_LIFETIME_SECONDS == 600

    def test_fresh_key_misses(self, cache):
        assert cache.get(("k1", "s1", False, False)) is None

    def test_hit_after_get_or_create_is_same_object(self, cache):
        key = ("k1", "s1", False, False)
        built = cache.get_or_create(key, Client)
        assert cache.get(key) is built

    def test_get_or_create_hit_does_not_rebuild(self, cache):
        key = ("k1", "s1", False, False)
        calls = []

        def build():
            calls.append(1)
            return Client()

        first = cache.get_or_create(key, build)
        second = cache.get_or_create(key, build)
        assert first is second
        assert len(calls) == 1

    def test_add_overwrites(self, cache):
        a, b = Client(), Client()
        cache.add("k", a)
        cache.add("k", b)
        assert cache.get("k") is b
        assert cache.size() == 1

    def test_keys_differing_only_in_demo_are_independent(self, cache):
        live = cache.get_or_create(("k", "s", False), Client)
        assert cache.get(("k", "s", True)) is None
        demo = cache.get_or_create(("k", "s", True), Client)
        assert demo is not live
        assert cache.size() == 2

    def test_create_failure_propagates_and_caches_nothing(self, cache):
        def boom():
            raise ValueError("bad config")

        with pytest.raises(ValueError, match="bad config"):
            cache.get_or_create("k", boom)
        assert cache.size() == 0
        assert cache.get("k") is None


# ── Expiry ───────────────────────────────────────────────────────────────────

class TestExpiry:
    def test_entry_expires_after_lifetime(self, cache, clock):
        cache.configure(1)
        client = Client()
        cache.add("k", client)
        assert cache.get("k") is client
        clock.advance(1.0)
        assert cache.get("k") is None

    def test_expired_miss_does_not_shrink_size(self, cache, clock):
        cache.configure(1)
        cache.add("k", Client())
        clock.advance(2)
        assert cache.get("k") is None
        assert cache.size() == 1

    def test_add_after_expiry_replaces_stale_entry(self, cache, clock):
        cache.configure(1)
        cache.add("k", Client())
        clock.advance(2)
        fresh = cache.get_or_create("k", Client)
        assert cache.get("k") is fresh
        assert cache.size() == 1

    def test_configure_only_affects_later_entries(self, cache, clock):
        cache.configure(10)
        early = Client()
        cache.add("early", early)
        cache.configure(1)
        cache.add("late", Client())
        clock.advance(5)
        assert cache.get("early") is early
        assert cache.get("late") is None

    def test_negative_lifetime_rejected(self, cache):
        with pytest.raises(ValueError):
            cache.configure(-1)

    def test_real_clock_expiry(self):
        cache = ClientsCache()
        cache.configure(1)
        client = Client()
        cache.add("k", client)
        assert cache.get("k") is client
        time.sleep(1.1)
        assert cache.get("k") is None


# ── cleanup_expired / size / clear ───────────────────────────────────────────

class TestMaintenance:
    def test_cleanup_removes_only_expired(self, cache, clock):
        cache.configure(1)
        for i in range(3):
            cache.add(f"old{i}", Client())
        clock.advance(5)
        cache.configure(600)
        for i in range(4):
            cache.add(f"new{i}", Client())

        assert cache.cleanup_expired() == 3
        assert cache.size() == 4
        assert cache.cleanup_expired() == 0

    def test_entry_expiring_exactly_now_is_removed(self, cache, clock):
        cache.configure(1)
        cache.add("k", Client())
        clock.advance(1)
        assert cache.cleanup_expired() == 1

    def test_clear_is_unconditional(self, cache, clock):
        cache.configure(1)
        cache.add("old", Client())
        clock.advance(5)
        cache.configure(600)
        cache.add("new", Client())
        cache.clear()
        assert cache.size() == 0
        assert cache.get("new") is None

    def test_evicted_client_stays_usable_by_holder(self, cache, clock):
        cache.configure(1)
        held = cache.get_or_create("k", Client)
        clock.advance(2)
        cache.cleanup_expired()
        assert isinstance(held, Client)
        assert cache.get_or_create("k", Client) is not held


# ── Background cleanup task ──────────────────────────────────────────────────

class TestCleanupTask:
    def test_task_evicts_and_can_be_cancelled(self, cache, clock):
        cache.configure(1)
        cache.add("k", Client())
        clock.advance(5)

        async def scenario():
            task = cache.create_cleanup_task(0.01)
            await asyncio.sleep(0.1)
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task
            return task

        task = _run(scenario())
        assert task.cancelled()
        assert cache.size() == 0

    def test_task_keeps_fresh_entries(self, cache):
        client = Client()
        cache.add("k", client)

        async def scenario():
            task = cache.create_cleanup_task(0.01)
            await asyncio.sleep(0.05)
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        _run(scenario())
        assert cache.get("k") is client

    def test_interval_must_be_positive(self, cache):
        async def scenario():
            cache.create_cleanup_task(0)

        with pytest.raises(ValueError):
            _run(scenario())


# ── Concurrency ──────────────────────────────────────────────────────────────

class TestConcurrency:
    def test_parallel_writers_leave_one_entry_per_key(self):
        cache = ClientsCache()
        keys = [f"key{i}" for i in range(20)]

        def worker():
            for k in keys:
                cache.get_or_create(k, Client)
                cache.get(k)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert cache.size() == len(keys)

    def test_readers_share_the_lock(self):
        lock = RWLock()
        barrier = threading.Barrier(2, timeout=2)
        errors = []

        def reader():
            with lock.read():
                try:
                    barrier.wait()
                except threading.BrokenBarrierError as exc:
                    errors.append(exc)

        threads = [threading.Thread(target=reader) for _ in range(2)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert errors == []

    def test_writer_excludes_readers(self):
        lock = RWLock()
        events = []
        lock.acquire_write()

        def reader():
            with lock.read():
                events.append("read")

        t = threading.Thread(target=reader)
        t.start()
        time.sleep(0.05)
        events.append("write-done")
        lock.release_write()
        t.join()
        assert events == ["write-done", "read"]
