# tests/test_cache.py
"""
Tests for the LRU + TTL element cache.
"""

import threading
import time

import pytest

from uiauto_adaptive.cache import ElementCache, default_liveness_probe
from uiauto_adaptive.config import CacheSettings
from uiauto_adaptive.exceptions import ConfigurationError
from uiauto_adaptive.locator import Locator

from .conftest import FakeHandle


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


A = Locator("id", "a")
B = Locator("id", "b")
C = Locator("id", "c")
D = Locator("id", "d")


class TestKeys:
    """Tests for locator fingerprints."""

    def test_equal_locators_share_a_key(self):
        first = ElementCache.generate_key("id", "login", {"text": "Go", "visible": True})
        second = ElementCache.generate_key("id", "login", {"visible": True, "text": "Go"})
        assert first == second

    def test_distinct_locators_have_distinct_keys(self):
        assert ElementCache.generate_key(A) != ElementCache.generate_key(B)
        assert ElementCache.generate_key("id", "a") != ElementCache.generate_key("xpath", "a")

    def test_tuple_and_locator_agree(self):
        assert ElementCache.generate_key(("id", "a")) == ElementCache.generate_key(A)

    def test_store_returns_key_usable_for_get(self):
        cache = ElementCache()
        handle = FakeHandle("a")
        key = cache.store(A, handle)
        assert key == A.key
        assert cache.get(key) is handle
        assert cache.get(A) is handle


class TestLRU:
    """Tests for capacity and eviction order."""

    def test_overflow_evicts_oldest(self):
        """max_size=3: storing A, B, C, D evicts A."""
        cache = ElementCache(max_size=3)
        handles = {loc: FakeHandle(loc.value) for loc in (A, B, C, D)}
        for loc in (A, B, C, D):
            cache.store(loc, handles[loc])

        assert cache.get(A) is None
        assert cache.get(B) is handles[B]
        assert cache.size == 3
        assert cache.statistics()["evictions"] == 1

    def test_get_refreshes_recency(self):
        cache = ElementCache(max_size=3)
        a, b, c, d = (FakeHandle(n) for n in "abcd")
        cache.store(A, a)
        cache.store(B, b)
        cache.store(C, c)

        assert cache.get(A) is a
        cache.store(D, d)

        assert cache.get(B) is None
        assert cache.get(A) is a
        assert cache.get(C) is c
        assert cache.get(D) is d

    def test_never_exceeds_max_size(self):
        cache = ElementCache(max_size=5)
        for i in range(50):
            cache.store(Locator("id", f"e{i}"), FakeHandle(str(i)))
            assert len(cache) <= 5

    def test_overwrite_does_not_grow(self):
        cache = ElementCache(max_size=2)
        first, second = FakeHandle("1"), FakeHandle("2")
        cache.store(A, first)
        cache.store(A, second)
        assert cache.size == 1
        assert cache.get(A) is second


class TestTTL:
    """Tests for time-to-live expiry."""

    def test_entry_expires_after_ttl(self):
        clock = FakeClock()
        cache = ElementCache(ttl=1.0, clock=clock)
        cache.store(A, FakeHandle("a"))

        clock.advance(1.1)

        assert cache.get(A) is None
        stats = cache.statistics()
        assert stats["expirations"] == 1
        assert stats["misses"] == 1
        assert cache.size == 0

    def test_hit_resets_ttl_clock(self):
        clock = FakeClock()
        cache = ElementCache(ttl=1.0, clock=clock)
        handle = FakeHandle("a")
        cache.store(A, handle)

        clock.advance(0.8)
        assert cache.get(A) is handle
        clock.advance(0.8)
        assert cache.get(A) is handle
        clock.advance(1.0)
        assert cache.get(A) is None

    def test_store_purges_expired_entries(self):
        clock = FakeClock()
        cache = ElementCache(ttl=1.0, clock=clock)
        cache.store(A, FakeHandle("a"))
        cache.store(B, FakeHandle("b"))
        clock.advance(2.0)

        cache.store(C, FakeHandle("c"))

        assert cache.size == 1
        assert cache.statistics()["expirations"] == 2

    def test_real_clock_expiry(self):
        """ttl=1: store, sleep 1.1s, get is a miss."""
        cache = ElementCache(ttl=1)
        key = cache.store(A, FakeHandle("a"))
        time.sleep(1.1)
        assert cache.get(key) is None


class TestLiveness:
    """Tests for stale handle detection."""

    def test_dead_handle_is_a_miss_and_evicted(self):
        cache = ElementCache()
        handle = FakeHandle("a")
        cache.store(A, handle)
        handle.alive = False

        assert cache.get(A) is None
        assert cache.size == 0

    def test_hidden_handle_is_still_alive(self):
        cache = ElementCache()
        handle = FakeHandle("a", displayed=False)
        cache.store(A, handle)
        assert cache.get(A) is handle

    def test_probe_exception_is_swallowed(self):
        def probe(handle):
            raise RuntimeError("driver hiccup")

        cache = ElementCache(liveness_probe=probe)
        cache.store(A, FakeHandle("a"))
        assert cache.get(A) is None

    def test_default_probe_prefers_exists(self):
        class WithExists:
            def exists(self):
                return False

            def is_displayed(self):
                return True

        assert default_liveness_probe(WithExists()) is False
        assert default_liveness_probe(None) is False
        assert default_liveness_probe(FakeHandle()) is True


class TestGetOrFind:
    """Tests for get_or_find."""

    def test_finder_called_once_while_entry_valid(self):
        cache = ElementCache()
        handle = FakeHandle("a")
        calls = []

        def finder():
            calls.append(1)
            return handle

        assert cache.get_or_find(A, finder) is handle
        assert cache.get_or_find(A, finder) is handle
        assert cache.get_or_find(A, finder) is handle
        assert len(calls) == 1

    def test_finder_exception_propagates_uncached(self):
        cache = ElementCache()

        def finder():
            raise LookupError("nothing")

        with pytest.raises(LookupError):
            cache.get_or_find(A, finder)

        assert cache.size == 0
        assert cache.statistics()["stores"] == 0

    def test_dead_result_returned_but_not_cached(self):
        cache = ElementCache()
        handle = FakeHandle("a")
        handle.alive = False

        assert cache.get_or_find(A, lambda: handle) is handle
        assert cache.size == 0

    def test_stale_entry_triggers_new_lookup(self):
        cache = ElementCache()
        old, new = FakeHandle("old"), FakeHandle("new")
        cache.store(A, old)
        old.alive = False

        assert cache.get_or_find(A, lambda: new) is new
        assert cache.get(A) is new

    def test_finder_runs_without_lock(self):
        """A finder that touches the cache itself must not deadlock."""
        cache = ElementCache()
        handle = FakeHandle("a")

        def finder():
            cache.statistics()
            cache.store(B, FakeHandle("b"))
            return handle

        assert cache.get_or_find(A, finder) is handle
        assert cache.size == 2


class TestMaintenance:
    """Tests for invalidate, clear, reset and statistics."""

    def test_invalidate(self):
        cache = ElementCache()
        cache.store(A, FakeHandle("a"))
        assert cache.invalidate(A) is True
        assert cache.invalidate(A) is False
        assert cache.get(A) is None

    def test_clear_keeps_statistics(self):
        cache = ElementCache()
        cache.store(A, FakeHandle("a"))
        cache.get(A)
        cache.clear()

        stats = cache.statistics()
        assert stats["size"] == 0
        assert stats["hits"] == 1
        assert stats["clears"] == 1

    def test_reset_zeroes_statistics(self):
        cache = ElementCache()
        cache.store(A, FakeHandle("a"))
        cache.get(A)
        cache.reset()

        stats = cache.statistics()
        assert stats["size"] == 0
        assert stats["hits"] == 0
        assert stats["stores"] == 0

    def test_hit_rate(self):
        cache = ElementCache()
        cache.store(A, FakeHandle("a"))
        cache.get(A)
        cache.get(B)
        cache.get(C)

        stats = cache.statistics()
        assert stats["hits"] == 1
        assert stats["misses"] == 2
        assert stats["hit_rate"] == 33.33

    def test_hit_rate_without_lookups(self):
        assert ElementCache().statistics()["hit_rate"] == 0.0

    def test_contains_does_not_touch_statistics(self):
        cache = ElementCache()
        cache.store(A, FakeHandle("a"))
        assert cache.contains(A) is True
        assert cache.contains(B) is False

        stats = cache.statistics()
        assert stats["hits"] == 0
        assert stats["misses"] == 0


class TestConstruction:
    """Tests for validation and settings."""

    @pytest.mark.parametrize("kwargs", [{"max_size": 0}, {"max_size": 2.5}, {"ttl": 0}, {"ttl": -1}])
    def test_invalid_parameters(self, kwargs):
        with pytest.raises(ConfigurationError):
            ElementCache(**kwargs)

    def test_from_settings(self):
        cache = ElementCache.from_settings(CacheSettings(max_size=7, ttl=3.0))
        assert cache.max_size == 7
        assert cache.ttl == 3.0


class TestConcurrency:
    """Tests for concurrent access."""

    def test_parallel_stores_respect_capacity(self):
        cache = ElementCache(max_size=10)
        errors = []

        def worker(n):
            try:
                for i in range(200):
                    loc = Locator("id", f"w{n}-{i % 20}")
                    cache.store(loc, FakeHandle(loc.value))
                    cache.get(loc)
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert not errors
        assert cache.size <= 10
        assert cache.statistics()["stores"] == 8 * 200
