# uiauto_adaptive/cache.py
"""
@file cache.py
@brief Bounded LRU + TTL cache of resolved element handles.

Handles are only referenced, never owned: the cache does not close, release or
refresh them. An entry disappears on explicit invalidation, on LRU eviction,
or when a lookup finds it expired or no longer alive.
"""

from __future__ import annotations

import logging
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Union

from .config import CacheSettings
from .exceptions import ConfigurationError
from .locator import Locator, LocatorLike, as_locator, fingerprint

log = logging.getLogger("uiauto_adaptive.cache")

LivenessProbe = Callable[[Any], bool]
KeyLike = Union[str, Locator, tuple]


@dataclass
class CacheEntry:
    """One cached handle; `last_access` drives both TTL and recency."""
    key: str
    handle: Any
    stored_at: float
    last_access: float


def default_liveness_probe(handle: Any) -> bool:
    """
    Cheap staleness check.

    Handles exposing `exists()` report liveness directly. Otherwise a
    successful `is_displayed()` call proves the handle is still attached;
    its boolean value is irrelevant since hidden elements are still alive.
    """
    if handle is None:
        return False
    exists = getattr(handle, "exists", None)
    if callable(exists):
        return bool(exists())
    displayed = getattr(handle, "is_displayed", None)
    if callable(displayed):
        displayed()
    return True


class ElementCache:
    """
    Maps locator fingerprints to handles with LRU eviction and TTL expiry.

    All bookkeeping happens under one lock. Liveness probes and finder calls
    run outside it so a slow remote call never blocks unrelated lookups.
    """

    def __init__(
        self,
        max_size: int = 50,
        ttl: float = 30.0,
        liveness_probe: Optional[LivenessProbe] = None,
        clock: Optional[Callable[[], float]] = None,
    ):
        """
        @param max_size Maximum number of live entries
        @param ttl Seconds an entry survives without being accessed
        @param liveness_probe Callable returning False (or raising) for stale handles
        @param clock Monotonic time source
        """
        if not isinstance(max_size, int) or max_size < 1:
            raise ConfigurationError("max_size", max_size, "must be an integer >= 1")
        if ttl <= 0:
            raise ConfigurationError("ttl", ttl, "must be > 0")
        self._max_size = max_size
        self._ttl = float(ttl)
        self._probe = liveness_probe or default_liveness_probe
        self._clock = clock or time.monotonic
        self._lock = threading.Lock()
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._stats = self._empty_stats()

    @classmethod
    def from_settings(cls, settings: CacheSettings, **kwargs: Any) -> ElementCache:
        return cls(max_size=settings.max_size, ttl=settings.ttl, **kwargs)

    @staticmethod
    def _empty_stats() -> Dict[str, int]:
        return {"hits": 0, "misses": 0, "stores": 0, "evictions": 0, "expirations": 0, "clears": 0}

    @property
    def max_size(self) -> int:
        return self._max_size

    @property
    def ttl(self) -> float:
        return self._ttl

    @property
    def size(self) -> int:
        with self._lock:
            return len(self._entries)

    def __len__(self) -> int:
        return self.size

    @staticmethod
    def generate_key(
        strategy: Union[str, LocatorLike],
        value: Any = None,
        options: Optional[Dict[str, Any]] = None,
    ) -> str:
        """Fingerprint for a Locator, a locator tuple, or strategy/value/options."""
        if isinstance(strategy, (Locator, tuple, list)):
            return as_locator(strategy).key
        return fingerprint(strategy, value, options)

    def _key_for(self, key: KeyLike) -> str:
        if isinstance(key, str):
            return key
        return as_locator(key).key

    def _is_alive(self, handle: Any) -> bool:
        try:
            return bool(self._probe(handle))
        except Exception:
            return False

    # --- Mutations (caller holds the lock) ---

    def _store_locked(self, key: str, handle: Any) -> None:
        now = self._clock()
        self._purge_expired_locked(now)

        self._entries[key] = CacheEntry(key=key, handle=handle, stored_at=now, last_access=now)
        self._entries.move_to_end(key)
        self._stats["stores"] += 1

        while len(self._entries) > self._max_size:
            evicted_key, _ = self._entries.popitem(last=False)
            self._stats["evictions"] += 1
            log.debug("Evicted LRU element %s...", evicted_key[:8])

    def _purge_expired_locked(self, now: float) -> None:
        expired = [k for k, e in self._entries.items() if now - e.last_access >= self._ttl]
        for k in expired:
            del self._entries[k]
            self._stats["expirations"] += 1
        if expired:
            log.debug("Cleaned up %d expired elements from cache", len(expired))

    def _drop_if_current(self, key: str, entry: CacheEntry) -> None:
        if self._entries.get(key) is entry:
            del self._entries[key]

    # --- Public API ---

    def store(self, locator: KeyLike, handle: Any) -> str:
        """
        Insert or overwrite the handle for a locator.

        @return The fingerprint key under which the handle is stored
        """
        key = self._key_for(locator)
        with self._lock:
            self._store_locked(key, handle)
        log.debug("Cached element with key %s...", key[:8])
        return key

    def get(self, key: KeyLike) -> Optional[Any]:
        """
        Return the cached handle, or None on a miss.

        Misses: absent key, TTL elapsed since last access, or a handle whose
        liveness probe fails. Expired and stale entries are evicted. A hit
        refreshes both the TTL clock and the recency order.
        """
        key = self._key_for(key)
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._stats["misses"] += 1
                return None
            if self._clock() - entry.last_access >= self._ttl:
                del self._entries[key]
                self._stats["expirations"] += 1
                self._stats["misses"] += 1
                return None

        alive = self._is_alive(entry.handle)

        with self._lock:
            if not alive:
                self._drop_if_current(key, entry)
                self._stats["misses"] += 1
                log.debug("Dropped stale element %s...", key[:8])
                return None
            if self._entries.get(key) is entry:
                entry.last_access = self._clock()
                self._entries.move_to_end(key)
            self._stats["hits"] += 1
            return entry.handle

    def contains(self, key: KeyLike) -> bool:
        """True if `get` would currently hit. Touches neither statistics nor recency."""
        key = self._key_for(key)
        with self._lock:
            entry = self._entries.get(key)
            if entry is None or self._clock() - entry.last_access >= self._ttl:
                return False
        return self._is_alive(entry.handle)

    def get_or_find(self, locator: KeyLike, finder: Callable[[], Any]) -> Any:
        """
        Return the cached handle or resolve, validate and cache a fresh one.

        `finder` runs without the lock held. If it raises, the exception
        propagates and nothing is cached. A handle that fails the liveness
        probe is returned to the caller but not cached.
        """
        key = self._key_for(locator)
        cached = self.get(key)
        if cached is not None:
            log.debug("Cache HIT for %s", locator)
            return cached

        log.debug("Cache MISS for %s", locator)
        handle = finder()

        if self._is_alive(handle):
            with self._lock:
                self._store_locked(key, handle)
        else:
            log.debug("Not caching %s: handle failed liveness probe", locator)
        return handle

    def invalidate(self, locator: KeyLike) -> bool:
        """Remove one entry. Returns True if something was removed."""
        key = self._key_for(locator)
        with self._lock:
            removed = self._entries.pop(key, None) is not None
        if removed:
            log.debug("Invalidated cache for %s", locator)
        return removed

    def clear(self) -> None:
        """Remove every entry; statistics are kept."""
        with self._lock:
            self._entries.clear()
            self._stats["clears"] += 1
        log.info("Element cache cleared")

    def reset(self) -> None:
        """Remove every entry and zero the statistics."""
        with self._lock:
            self._entries.clear()
            self._stats = self._empty_stats()
        log.info("Element cache reset")

    def statistics(self) -> Dict[str, Any]:
        with self._lock:
            stats = dict(self._stats)
            size = len(self._entries)
        total = stats["hits"] + stats["misses"]
        hit_rate = round(stats["hits"] / total * 100, 2) if total else 0.0
        return {
            "size": size,
            "max_size": self._max_size,
            "ttl": self._ttl,
            "hit_rate": hit_rate,
            **stats,
        }
