"""In-memory TTL cache for analysis results.

Entries are keyed by the literal payload string (case and whitespace
sensitive). An entry is fresh for ``ttl_seconds`` after it was written;
stale entries read as missing and are dropped on that read. There is no
background sweep.

The clock is injectable so expiry can be tested without sleeping.
"""

import logging
import threading
import time
from typing import Any, Callable, Dict, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

RESULT_CACHE_TTL_SECONDS = 5 * 60


class CacheEntry:
    """Represents a cached value with timestamp."""

    __slots__ = ("value", "timestamp", "ttl_seconds")

    def __init__(self, value: Any, timestamp: float, ttl_seconds: Optional[int] = None):
        self.value = value
        self.timestamp = timestamp
        self.ttl_seconds = ttl_seconds

    def is_expired(self, default_ttl: int, now: float) -> bool:
        """Check if this entry has expired."""
        ttl = self.ttl_seconds if self.ttl_seconds is not None else default_ttl
        return now - self.timestamp >= ttl


class CacheManager:
    """
    Thread-safe memory cache with TTL.

    Usage:
        cache = CacheManager(ttl_seconds=300, namespace="scan")

        cache.set("https://example.com", result)
        cached = cache.get("https://example.com")

        result = await cache.get_or_fetch("key", fetch_async_fn)
    """

    def __init__(
        self,
        ttl_seconds: int = RESULT_CACHE_TTL_SECONDS,
        namespace: str = "",
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize cache manager.

        Args:
            ttl_seconds: Default TTL for cache entries
            namespace: Prefix for cache keys (e.g., "scan")
            clock: Returns the current time in seconds
        """
        self.ttl_seconds = ttl_seconds
        self.namespace = namespace
        self._clock = clock

        self._memory: Dict[str, CacheEntry] = {}
        self._lock = threading.RLock()

    def _make_key(self, key: str) -> str:
        """Generate full cache key with namespace."""
        if self.namespace:
            return f"{self.namespace}:{key}"
        return key

    def get(self, key: str) -> Optional[Any]:
        """
        Get cached value if exists and not expired.

        Args:
            key: Cache key (will be prefixed with namespace)

        Returns:
            Cached value or None if not found/expired
        """
        full_key = self._make_key(key)

        with self._lock:
            entry = self._memory.get(full_key)
            if entry is None:
                return None
            if not entry.is_expired(self.ttl_seconds, self._clock()):
                return entry.value
            # Expired - remove from memory
            del self._memory[full_key]

        return None

    def set(
        self,
        key: str,
        value: Any,
        ttl_seconds: Optional[int] = None,
    ) -> None:
        """
        Set cached value (last writer wins).

        Args:
            key: Cache key (will be prefixed with namespace)
            value: Value to cache
            ttl_seconds: Override default TTL for this entry
        """
        full_key = self._make_key(key)
        entry = CacheEntry(
            value=value,
            timestamp=self._clock(),
            ttl_seconds=ttl_seconds,
        )

        with self._lock:
            self._memory[full_key] = entry

    def delete(self, key: str) -> None:
        """Delete cached value."""
        full_key = self._make_key(key)

        with self._lock:
            self._memory.pop(full_key, None)

    def clear(self) -> None:
        """Clear all cached values in this namespace."""
        with self._lock:
            if self.namespace:
                prefix = f"{self.namespace}:"
                keys_to_delete = [k for k in self._memory if k.startswith(prefix)]
                for k in keys_to_delete:
                    del self._memory[k]
            else:
                self._memory.clear()

    async def get_or_fetch(
        self,
        key: str,
        fetch_fn: Callable[[], Any],
        ttl_seconds: Optional[int] = None,
    ) -> Any:
        """
        Get cached value or fetch and cache it.

        Args:
            key: Cache key
            fetch_fn: Async function to fetch value if not cached
            ttl_seconds: Override default TTL

        Returns:
            Cached or freshly fetched value
        """
        cached = self.get(key)
        if cached is not None:
            return cached

        value = await fetch_fn()
        self.set(key, value, ttl_seconds)
        return value

    def stats(self) -> Dict[str, Any]:
        """Get cache statistics."""
        with self._lock:
            return {
                "namespace": self.namespace,
                "ttl_seconds": self.ttl_seconds,
                "memory_entries": len(self._memory),
            }


def create_result_cache(
    ttl_seconds: int = RESULT_CACHE_TTL_SECONDS,
    clock: Callable[[], float] = time.time,
) -> CacheManager:
    """Create cache for scan results (memory-only)."""
    return CacheManager(
        ttl_seconds=ttl_seconds,
        namespace="scan",
        clock=clock,
    )
