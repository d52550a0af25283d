"""Bounded least-recently-used cache of ranked result sets."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any, NamedTuple

from cachetools import LRUCache

from .errors import CacheCorruption
from .models import RankedResultSet

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 50


class CacheKey(NamedTuple):
    normalized_query: str
    kind_filter: str


class _EvictionTrackingLRUCache(LRUCache):
    """LRUCache that reports the keys it drops to stay within ``maxsize``."""

    def __init__(self, maxsize: int, on_evict: Callable[[Any], None]) -> None:
        super().__init__(maxsize=maxsize)
        self._on_evict = on_evict

    def popitem(self) -> tuple[Any, Any]:
        key, value = super().popitem()
        self._on_evict(key)
        return key, value


class SearchCache:
    """Capacity-bounded LRU cache.

    Entries never expire by age; they leave only through capacity eviction,
    corruption or ``clear()``.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self._capacity = capacity
        self._entries = self._new_store()
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    @property
    def capacity(self) -> int:
        return self._capacity

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def get(self, key: CacheKey) -> RankedResultSet | None:
        """Return the cached value and mark it most recently used, or None."""

        if key not in self._entries:
            self._misses += 1
            return None
        try:
            value = self._checked(key)
        except CacheCorruption as exc:
            logger.warning("search_cache_corrupt key=%s error=%s", key, exc)
            del self._entries[key]
            self._misses += 1
            return None
        self._hits += 1
        return value

    def set(self, key: CacheKey, value: RankedResultSet) -> None:
        self._entries[key] = value

    def clear(self) -> None:
        # A fresh store, since LRUCache.clear() drains through popitem().
        self._entries = self._new_store()

    def keys(self) -> list[CacheKey]:
        return list(self._entries.keys())

    def stats(self) -> dict[str, float | int]:
        total = self._hits + self._misses
        return {
            "size": len(self._entries),
            "capacity": self._capacity,
            "hits": self._hits,
            "misses": self._misses,
            "evictions": self._evictions,
            "hit_rate": round(self._hits / total, 3) if total else 0.0,
        }

    def _new_store(self) -> _EvictionTrackingLRUCache:
        return _EvictionTrackingLRUCache(self._capacity, self._record_eviction)

    def _record_eviction(self, key: Any) -> None:
        self._evictions += 1
        logger.debug("search_cache_evicted key=%s", key)

    def _checked(self, key: CacheKey) -> RankedResultSet:
        # Item access refreshes the key's recency.
        value = self._entries[key]
        if not isinstance(value, RankedResultSet):
            raise CacheCorruption(f"expected RankedResultSet, found {type(value).__name__}")
        return value
