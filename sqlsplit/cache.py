"""Cache for split results.

Entries are keyed on the options' ``cache_key()`` together with the script
text and hold the statements as a tuple. The cache is an LRU bounded by
``max_size`` whose entries expire ``ttl_seconds`` after they were stored.
"""

import threading
import time
from collections import OrderedDict
from typing import Any, Final, NamedTuple, Optional

from mypy_extensions import mypyc_attr

__all__ = ("DEFAULT_CACHE_TTL", "DEFAULT_RESULT_CACHE_SIZE", "CacheStats", "CachedSplit", "SplitResultCache")

DEFAULT_RESULT_CACHE_SIZE: Final[int] = 5000
DEFAULT_CACHE_TTL: Final[int] = 3600

SplitCacheKey = tuple[tuple[Any, ...], str]


class CachedSplit(NamedTuple):
    """Statements of one script and the monotonic time they stop being valid."""

    statements: "tuple[str, ...]"
    expires_at: "Optional[float]"


@mypyc_attr(allow_interpreted_subclasses=False)
class CacheStats:
    """Hit, miss and eviction counters."""

    __slots__ = ("evictions", "hits", "misses")

    def __init__(self) -> None:
        self.hits = 0
        self.misses = 0
        self.evictions = 0

    @property
    def hit_rate(self) -> float:
        """Hits as a percentage of lookups."""
        total = self.hits + self.misses
        return (self.hits / total * 100) if total > 0 else 0.0

    def reset(self) -> None:
        self.hits = 0
        self.misses = 0
        self.evictions = 0

    def as_dict(self) -> dict[str, Any]:
        return {"hits": self.hits, "misses": self.misses, "evictions": self.evictions, "hit_rate": self.hit_rate}

    def __repr__(self) -> str:
        return f"CacheStats(hits={self.hits}, misses={self.misses}, evictions={self.evictions})"


@mypyc_attr(allow_interpreted_subclasses=False)
class SplitResultCache:
    """Thread-safe LRU of split results with expiry.

    Args:
        max_size: Number of scripts kept before the least recently used is dropped.
        ttl_seconds: Lifetime of an entry, or ``None`` to keep entries until evicted.
    """

    __slots__ = ("_cache", "_lock", "_max_size", "_stats", "_ttl")

    def __init__(
        self, max_size: int = DEFAULT_RESULT_CACHE_SIZE, ttl_seconds: Optional[float] = DEFAULT_CACHE_TTL
    ) -> None:
        self._cache: OrderedDict[SplitCacheKey, CachedSplit] = OrderedDict()
        self._lock = threading.RLock()
        self._max_size = max_size
        self._ttl = ttl_seconds
        self._stats = CacheStats()

    def get(self, options_key: "tuple[Any, ...]", sql: str) -> "Optional[tuple[str, ...]]":
        """Statements cached for ``sql`` split with the given options, if still valid."""
        key = (options_key, sql)
        with self._lock:
            entry = self._cache.get(key)
            if entry is None:
                self._stats.misses += 1
                return None
            if entry.expires_at is not None and time.monotonic() > entry.expires_at:
                del self._cache[key]
                self._stats.misses += 1
                self._stats.evictions += 1
                return None
            self._cache.move_to_end(key)
            self._stats.hits += 1
            return entry.statements

    def put(self, options_key: "tuple[Any, ...]", sql: str, statements: "tuple[str, ...]") -> None:
        key = (options_key, sql)
        expires_at = None if self._ttl is None else time.monotonic() + self._ttl
        with self._lock:
            if key in self._cache:
                self._cache.move_to_end(key)
            elif len(self._cache) >= self._max_size:
                self._cache.popitem(last=False)
                self._stats.evictions += 1
            self._cache[key] = CachedSplit(statements, expires_at)

    def clear(self) -> None:
        """Drop every entry and reset the statistics."""
        with self._lock:
            self._cache.clear()
            self._stats.reset()

    @property
    def stats(self) -> CacheStats:
        return self._stats

    def __len__(self) -> int:
        return len(self._cache)
