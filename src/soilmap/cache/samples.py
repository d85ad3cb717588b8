"""In-memory TTL cache for fetched sample sets.

Keys are composed from region, layer and forecast window. Current-conditions
entries live 1 hour, forecast entries 2 hours (forecast data changes more
slowly). Expired entries are evicted lazily on access.

The cache is an explicit instance handed to whoever needs it, never a
module-level singleton.

Example:
    >>> cache = SampleCache()
    >>> key = SampleCache.make_key("North Kazakhstan Region", "moisture", 7)
    >>> cache.set(key, samples, ttl=FORECAST_TTL_SECONDS)
    >>> cache.get(key) is samples
    True
"""

import logging
import threading
import time
from collections import OrderedDict
from typing import Any, Callable, Hashable, Optional

from soilmap.cache.models import CacheEntry

logger = logging.getLogger(__name__)

CURRENT_TTL_SECONDS = 3600
FORECAST_TTL_SECONDS = 7200


class SampleCache:
    """Expiring key-value store for sample sets.

    Attributes:
        default_ttl: TTL in seconds used when set() is called without one
        max_entries: Optional capacity; oldest entries are evicted past it
    """

    def __init__(
        self,
        default_ttl: float = CURRENT_TTL_SECONDS,
        max_entries: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize cache.

        Args:
            default_ttl: Default time-to-live in seconds
            max_entries: Capacity bound (None = unbounded)
            clock: Monotonic time source, injectable for tests
        """
        self.default_ttl = default_ttl
        self.max_entries = max_entries
        self._clock = clock
        self._entries: "OrderedDict[Hashable, CacheEntry]" = OrderedDict()
        self._lock = threading.RLock()
        # key -> [lock, number of callers using it]
        self._key_locks: dict[Hashable, list] = {}

    @staticmethod
    def make_key(region: str, layer: str, days: int = 1) -> str:
        """Build the composite key for a region/layer/forecast-window."""
        window = "current" if days <= 1 else f"{days}d"
        return f"{region}:{layer}:{window}"

    def get(self, key: Hashable) -> Any:
        """Return the cached value, or None on miss or expiry."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                logger.debug(f"Cache MISS for {key}")
                return None

            if entry.is_expired(self._clock()):
                del self._entries[key]
                logger.debug(f"Cache EXPIRED for {key}")
                return None

            logger.debug(f"Cache HIT for {key}")
            return entry.value

    def set(self, key: Hashable, value: Any, ttl: Optional[float] = None) -> None:
        """Store a value for ``ttl`` seconds (default_ttl if omitted)."""
        now = self._clock()
        ttl = self.default_ttl if ttl is None else ttl

        with self._lock:
            self._entries.pop(key, None)
            self._entries[key] = CacheEntry(
                value=value,
                stored_at=now,
                expires_at=now + ttl,
            )

            if self.max_entries is not None:
                while len(self._entries) > self.max_entries:
                    evicted, _ = self._entries.popitem(last=False)
                    logger.debug(f"Cache capacity reached, evicted {evicted}")

    def has(self, key: Hashable) -> bool:
        """Check for a live entry (evicts it if expired)."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return False
            if entry.is_expired(self._clock()):
                del self._entries[key]
                return False
            return True

    def delete(self, key: Hashable) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def get_or_fetch(
        self,
        key: Hashable,
        fetch: Callable[[], Any],
        ttl: Optional[float] = None,
        cache_if: Optional[Callable[[Any], bool]] = None,
    ) -> Any:
        """Return the cached value or compute, store and return it.

        Concurrent callers for the same key wait on one fetch instead of
        issuing duplicate upstream requests. A fetch that returns None, or a
        value rejected by ``cache_if``, is returned but not cached.

        Args:
            key: Cache key
            fetch: Zero-argument callable producing the value
            ttl: TTL for the stored value
            cache_if: Predicate deciding whether a fresh value is stored

        Returns:
            Cached or freshly fetched value
        """
        cached = self.get(key)
        if cached is not None:
            return cached

        with self._lock:
            slot = self._key_locks.setdefault(key, [threading.Lock(), 0])
            slot[1] += 1

        try:
            with slot[0]:
                # Another caller may have filled the entry while we waited
                cached = self.get(key)
                if cached is not None:
                    return cached

                value = fetch()
                if value is not None and (cache_if is None or cache_if(value)):
                    self.set(key, value, ttl)
                return value
        finally:
            # Last caller out drops the per-key lock
            with self._lock:
                slot[1] -= 1
                if slot[1] == 0:
                    del self._key_locks[key]
