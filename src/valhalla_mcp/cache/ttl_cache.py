from __future__ import annotations

import logging
import time
import typing as t
from collections import OrderedDict
from dataclasses import dataclass

import anyio

_logger = logging.getLogger(__name__)

V = t.TypeVar("V")


class TTLCache(t.Generic[V]):
    """Fingerprint-keyed cache with per-entry expiry.

    Expiry is checked lazily on every read, so an expired entry is never
    returned even if `sweep()` has not run. An optional `max_size` adds LRU
    eviction; by default the cache is unbounded.
    """

    def __init__(
        self,
        ttl_seconds: float = 300.0,
        max_size: t.Optional[int] = None,
        *,
        clock: t.Callable[[], float] = time.monotonic,
    ) -> None:
        self._store: "OrderedDict[str, tuple[float, V]]" = OrderedDict()
        self._ttl = ttl_seconds
        self._max_size = max_size
        self._clock = clock

    @property
    def default_ttl(self) -> float:
        return self._ttl

    def get(self, key: str) -> t.Optional[V]:
        item = self._store.get(key)
        if item is None:
            return None
        expires_at, value = item
        if expires_at <= self._clock():
            self._store.pop(key, None)
            return None
        if self._max_size is not None:
            # mark as recently used
            self._store.move_to_end(key)
        return value

    def set(self, key: str, value: V, ttl_seconds: t.Optional[float] = None) -> None:
        ttl = self._ttl if ttl_seconds is None else ttl_seconds
        self._store[key] = (self._clock() + ttl, value)
        self._store.move_to_end(key)
        if self._max_size is not None and len(self._store) > max(self._max_size, 0):
            # evict LRU
            self._store.popitem(last=False)

    def delete(self, key: str) -> bool:
        return self._store.pop(key, None) is not None

    def clear(self) -> None:
        self._store.clear()

    def size(self) -> int:
        return len(self._store)

    def sweep(self) -> int:
        """Drop every expired entry and return how many were removed."""
        now = self._clock()
        expired = [key for key, (expires_at, _) in self._store.items() if expires_at <= now]
        for key in expired:
            del self._store[key]
        return len(expired)

    def stats(self) -> t.Dict[str, t.Any]:
        return {
            "size": len(self._store),
            "default_ttl_seconds": self._ttl,
            "max_size": self._max_size,
        }


@dataclass
class CacheSet:
    """The per-category caches owned by one orchestrator."""

    route: TTLCache[t.Any]
    isochrone: TTLCache[t.Any]
    health: TTLCache[t.Any]

    @classmethod
    def create(
        cls,
        route_ttl_seconds: float = 300.0,
        isochrone_ttl_seconds: float = 600.0,
        health_ttl_seconds: float = 30.0,
        max_size: t.Optional[int] = None,
    ) -> "CacheSet":
        return cls(
            route=TTLCache(route_ttl_seconds, max_size),
            isochrone=TTLCache(isochrone_ttl_seconds, max_size),
            health=TTLCache(health_ttl_seconds, max_size),
        )

    def items(self) -> t.List[t.Tuple[str, TTLCache[t.Any]]]:
        return [("route", self.route), ("isochrone", self.isochrone), ("health", self.health)]

    def sweep(self) -> int:
        return sum(cache.sweep() for _, cache in self.items())

    def clear(self) -> None:
        for _, cache in self.items():
            cache.clear()


async def run_sweeper(caches: CacheSet, interval_seconds: float = 60.0) -> None:
    """Periodically remove expired entries until cancelled."""
    while True:
        await anyio.sleep(interval_seconds)
        removed = caches.sweep()
        if removed:
            _logger.debug("Cache sweep removed %d expired entries", removed)
