"""
Timetable response cache.

Holds decoded PTV data in memory with per-entry expiry and least recently
used eviction. Stopping patterns live here for a few minutes and are shared
across planning requests; stop searches and route lists are kept for hours.
"""

from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Dict, List, Optional
import logging
import threading
import time

logger = logging.getLogger(__name__)


@dataclass
class CacheEntry:
    """A cached value and the wall-clock second it stops being served."""

    value: Any
    expires_at: float

    def is_stale(self, now: float) -> bool:
        return now > self.expires_at


class MemoryCache:
    """
    Bounded key/value store with TTL expiry.

    ``get`` is the only read path. It checks expiry and fetches the value
    under one lock acquisition, so a caller never sees an entry that expires
    between a membership test and the read.
    """

    def __init__(self, max_size: int = 1000, default_ttl: float = 300):
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self.max_size = max_size
        self.default_ttl = default_ttl
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._lock = threading.RLock()
        self._hits = 0
        self._misses = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def get(self, key: str) -> Optional[Any]:
        """Return the live value for ``key``, or None on a miss or expiry."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None and entry.is_stale(time.time()):
                self._entries.pop(key)
                entry = None

            if entry is None:
                self._misses += 1
                return None

            self._hits += 1
            self._entries.move_to_end(key)
            return entry.value

    def put(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        """
        Store ``value`` under ``key``.

        Args:
            key: Cache key, usually built with :class:`CacheKey`
            value: Value to store
            ttl: Lifetime in seconds; ``default_ttl`` when omitted
        """
        lifetime = self.default_ttl if ttl is None else ttl
        with self._lock:
            self._entries[key] = CacheEntry(value, time.time() + lifetime)
            self._entries.move_to_end(key)
            self._evict_overflow()

    def delete(self, key: str) -> bool:
        """Drop ``key``. Returns whether anything was removed."""
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        """Drop every entry and reset hit/miss counters."""
        with self._lock:
            self._entries.clear()
            self._hits = self._misses = 0

    def cleanup_expired(self) -> int:
        """Purge stale entries and return how many were dropped."""
        with self._lock:
            stale = self._stale_keys(time.time())
            for key in stale:
                del self._entries[key]

        if stale:
            logger.debug(f"Purged {len(stale)} stale cache entries")
        return len(stale)

    def get_stats(self) -> Dict[str, Any]:
        """Size, capacity and hit/miss figures for diagnostics."""
        with self._lock:
            lookups = self._hits + self._misses
            size = len(self._entries)
            return {
                'size': size,
                'max_size': self.max_size,
                'hits': self._hits,
                'misses': self._misses,
                'hit_rate': self._hits / lookups if lookups else 0,
                'utilization': size / self.max_size,
            }

    def _stale_keys(self, now: float) -> List[str]:
        return [key for key, entry in self._entries.items() if entry.is_stale(now)]

    def _evict_overflow(self) -> None:
        # Caller holds the lock. Front of the OrderedDict is least recently used.
        while len(self._entries) > self.max_size:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug(f"Evicted cache key: {evicted}")


class CacheKey:
    """Builders for the cache keys used by the API manager and services."""

    @staticmethod
    def pattern_key(run_id: str, service_type: str) -> str:
        """Key for one run's stopping pattern."""
        return f"pattern:{run_id}:{service_type}"

    @staticmethod
    def search_key(term: str, service_types: str) -> str:
        """Key for a stop search; the term is matched case-insensitively."""
        return f"search:{term.lower()}:{service_types}"

    @staticmethod
    def routes_key(service_type: str) -> str:
        """Key for a route listing."""
        return f"routes:{service_type}"
