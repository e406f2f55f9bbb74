"""Time-to-live cache of external entity snapshots."""

import logging
import time
from collections import OrderedDict
from typing import Any, Awaitable, Callable, Generic, Optional, TypeVar

from src.domain.models import CacheEntry

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ResourceCache(Generic[T]):
    """Fetches and memoizes snapshots by key.

    A failed fetch (``None``) is never stored, so the next ``get`` retries.
    Expired entries are only dropped lazily, on reads and writes.
    """

    def __init__(
        self,
        fetch: Callable[[str], Awaitable[Optional[T]]],
        *,
        ttl_seconds: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
        last_known_size: int = 1024,
    ):
        """Initialize cache.

        Args:
            fetch: Coroutine function loading a value by key
            ttl_seconds: Lifetime of a cached value
            clock: Monotonic clock in seconds
            last_known_size: How many last-known values to remember
        """
        self._fetch = fetch
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._last_known: OrderedDict[str, T] = OrderedDict()
        self._last_known_size = last_known_size

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    def __len__(self) -> int:
        return len(self._entries)

    async def get(self, key: str) -> Optional[T]:
        """Get a fresh value, fetching it on miss or expiry."""
        now = self._clock()
        entry = self._entries.get(key)
        if entry is not None:
            if not entry.is_expired(now):
                return entry.value
            del self._entries[key]

        value = await self._fetch(key)
        if value is None:
            logger.debug(f"Fetch for {key} returned nothing, not caching")
            return None

        self._store(key, value)
        return value

    def prime(self, key: str, value: T) -> None:
        """Store a value obtained elsewhere (e.g. delivered with an event)."""
        self._store(key, value)

    def invalidate(self, key: str) -> bool:
        """Force the next ``get`` for key to re-fetch."""
        return self._entries.pop(key, None) is not None

    def last_known(self, key: str) -> Optional[T]:
        """Most recent value seen for key, even if expired or invalidated."""
        return self._last_known.get(key)

    def purge_expired(self) -> int:
        """Drop expired entries, return how many were removed."""
        now = self._clock()
        expired = [k for k, e in self._entries.items() if e.is_expired(now)]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def clear(self) -> None:
        self._entries.clear()
        self._last_known.clear()

    def _store(self, key: str, value: T) -> None:
        self.purge_expired()
        self._entries[key] = CacheEntry(
            key=key,
            value=value,
            expires_at=self._clock() + self._ttl,
        )
        self._last_known[key] = value
        self._last_known.move_to_end(key)
        while len(self._last_known) > self._last_known_size:
            self._last_known.popitem(last=False)
