"""Write-once caches for resource-manager lookups (SKU, creation date)."""

import asyncio
from datetime import datetime
from typing import Any, Awaitable, Callable, Generic, TypeVar

V = TypeVar("V")

_MISSING: Any = object()


class LookupCache(Generic[V]):
    """
    Cache keyed by exact resource identifier.

    Entries are immutable once set: a second writer for the same key gets the
    stored value back instead of overwriting it. A stored ``None`` means the
    lookup ran and found nothing (or failed), which stops repeated failing calls.
    """

    def __init__(self) -> None:
        self._entries: dict[str, V | None] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self.hits = 0
        self.misses = 0

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def pending_locks(self) -> int:
        return len(self._locks)

    def get(self, key: str) -> V | None:
        """Return the cached value, or None when absent or cached as unknown."""
        return self._entries.get(key)

    def set(self, key: str, value: V | None) -> V | None:
        """Store ``value`` unless the key is already set; return the stored value."""
        return self._entries.setdefault(key, value)

    async def get_or_compute(
        self, key: str, compute: Callable[[], Awaitable[V | None]]
    ) -> V | None:
        """
        Return the cached value for ``key``, computing it at most once.

        Concurrent callers for the same key wait on a per-key lock so only one
        of them performs the external call.

        Args:
            key: Resource identifier
            compute: Coroutine factory producing the value (None for unknown)

        Returns:
            Cached or freshly computed value
        """
        cached = self._entries.get(key, _MISSING)
        if cached is not _MISSING:
            self.hits += 1
            return cached

        lock = self._locks.setdefault(key, asyncio.Lock())
        async with lock:
            cached = self._entries.get(key, _MISSING)
            if cached is not _MISSING:
                self.hits += 1
                return cached

            self.misses += 1
            value = await compute()
            stored = self.set(key, value)

        # Later callers hit the stored entry before reaching the lock
        if self._locks.get(key) is lock:
            del self._locks[key]
        return stored

    def clear(self) -> None:
        """Drop every entry (used between test runs and on reconfiguration)."""
        self._entries.clear()
        self._locks.clear()
        self.hits = 0
        self.misses = 0


class ResourceLookupCache:
    """Pair of caches used by the resource classifier."""

    def __init__(self) -> None:
        self.skus: LookupCache[str] = LookupCache()
        self.creation_dates: LookupCache[datetime] = LookupCache()

    def clear(self) -> None:
        self.skus.clear()
        self.creation_dates.clear()
