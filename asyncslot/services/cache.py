"""
CacheStore - Keyed memo of successful operation results.

Features:
- Entries are stamped with the time they were stored
- Freshness is decided at read time against the caller's stale window
- Unbounded by default; optional oldest-entry eviction when max_size is set
- Thread-safe: every read and write holds a single lock
"""

import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from loguru import logger

from asyncslot.settings import global_settings


@dataclass(frozen=True)
class CacheEntry:
    """A single cache entry with metadata."""

    value: Any
    stored_at: datetime

    def age(self, now: datetime | None = None) -> timedelta:
        return (now or datetime.now()) - self.stored_at

    def is_fresh(self, stale_time: timedelta, now: datetime | None = None) -> bool:
        """Check if entry is still inside the stale window."""
        return self.age(now) < stale_time


class CacheStore:
    """
    Keyed store shared by operation controllers.

    The keyspace is flat and caller-controlled; callers are responsible for
    avoiding collisions. Entries are never mutated in place, only overwritten.

    Usage:
        cache = CacheStore()

        entry = cache.get("user-settings")
        if entry and entry.is_fresh(timedelta(minutes=5)):
            return entry.value

        value = await fetch_settings()
        cache.put("user-settings", value)
    """

    def __init__(self, max_size: int | None = None, debug: bool = False):
        self._memory: dict[str, CacheEntry] = {}
        self._max_size = max_size
        self._debug = debug
        self._lock = threading.Lock()
        self._stats = CacheStats()

    def get(self, key: str) -> CacheEntry | None:
        """Get the entry stored under key, fresh or not."""
        with self._lock:
            entry = self._memory.get(key)
            if entry is None:
                self._stats.misses += 1
                self._log(f"MISS: {key[:50]}")
                return None

            self._stats.hits += 1
            self._log(f"HIT: {key[:50]}")
            return entry

    def put(self, key: str, value: Any, now: datetime | None = None) -> CacheEntry:
        """Store value under key, replacing any previous entry."""
        entry = CacheEntry(value=value, stored_at=now or datetime.now())

        with self._lock:
            if (
                self._max_size is not None
                and len(self._memory) >= self._max_size
                and key not in self._memory
            ):
                self._evict_oldest()

            self._memory[key] = entry
            self._log(f"SET: {key[:50]}")

        return entry

    def delete(self, key: str) -> bool:
        """Delete a specific key from cache."""
        with self._lock:
            if key in self._memory:
                del self._memory[key]
                self._log(f"DELETE: {key[:50]}")
                return True
            return False

    def invalidate(self, pattern: str) -> int:
        """
        Invalidate all keys containing pattern.

        Returns:
            Number of entries invalidated
        """
        with self._lock:
            keys_to_delete = [k for k in self._memory if pattern in k]
            for key in keys_to_delete:
                del self._memory[key]

            if keys_to_delete:
                self._log(
                    f"INVALIDATE: {len(keys_to_delete)} entries matching '{pattern}'"
                )

            return len(keys_to_delete)

    def clear(self) -> None:
        """Clear all cache entries."""
        with self._lock:
            count = len(self._memory)
            self._memory.clear()
            self._log(f"CLEAR: {count} entries removed")

    def __len__(self) -> int:
        with self._lock:
            return len(self._memory)

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._memory

    def _evict_oldest(self) -> None:
        # caller holds the lock
        if not self._memory:
            return

        oldest_key = min(
            self._memory.keys(),
            key=lambda k: self._memory[k].stored_at,
        )
        del self._memory[oldest_key]
        self._stats.evictions += 1
        self._log(f"EVICT: {oldest_key[:50]}")

    def get_stats(self) -> "CacheStats":
        """Get cache statistics."""
        self._stats.size = len(self._memory)
        self._stats.max_size = self._max_size
        return self._stats

    def _log(self, message: str) -> None:
        """Log debug message if debug mode is enabled."""
        if self._debug:
            logger.debug(f"[CacheStore] {message}")


@dataclass
class CacheStats:
    """Cache statistics."""

    hits: int = 0
    misses: int = 0
    evictions: int = 0
    size: int = 0
    max_size: int | None = None

    @property
    def hit_rate(self) -> float:
        """Calculate cache hit rate."""
        total = self.hits + self.misses
        if total == 0:
            return 0.0
        return self.hits / total

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "hits": self.hits,
            "misses": self.misses,
            "evictions": self.evictions,
            "size": self.size,
            "max_size": self.max_size,
            "hit_rate": f"{self.hit_rate:.2%}",
        }


# Process-wide store used when a controller is not given one
_global_store: CacheStore | None = None


def get_cache_store() -> CacheStore:
    """Get the process-wide cache store."""
    global _global_store
    if _global_store is None:
        _global_store = CacheStore(
            max_size=global_settings.cache_max_size,
            debug=global_settings.debug,
        )
    return _global_store


def reset_cache_store() -> None:
    """Drop the process-wide cache store."""
    global _global_store
    _global_store = None
