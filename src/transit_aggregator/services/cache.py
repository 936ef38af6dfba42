"""Per-resource TTL cache in front of every upstream call."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from transit_aggregator.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from transit_aggregator.config import Settings

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    value: T
    fetched_at: float
    ttl_seconds: float

    def is_fresh(self, now: float) -> bool:
        return now - self.fetched_at < self.ttl_seconds


@dataclass(frozen=True)
class TtlPolicy:
    """TTL in seconds for each class of upstream resource."""

    static: int = 3600
    bus_stops: int = 1800
    incidents: int = 300
    predictions: int = 30
    positions: int = 10

    @classmethod
    def from_settings(cls, settings: Settings) -> TtlPolicy:
        return cls(
            static=settings.cache_ttl_static_sec,
            bus_stops=settings.cache_ttl_bus_stops_sec,
            incidents=settings.cache_ttl_incidents_sec,
            predictions=settings.cache_ttl_predictions_sec,
            positions=settings.cache_ttl_positions_sec,
        )


class FreshnessCache:
    """Process-local map of resource key to the last fetched value.

    Expired entries are treated as absent and overwritten on refresh. There
    is no eviction beyond TTL since the key space is bounded (one key per
    feed or per queried endpoint). Concurrent refreshes of the same stale
    key each call the loader; the last one to finish wins.

    Usage:
        cache = FreshnessCache()
        stations = await cache.fetch("wmata:/Rail.svc/json/jStations", 3600, load)
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._entries: dict[str, CacheEntry[Any]] = {}

    async def fetch(
        self,
        key: str,
        ttl_seconds: float,
        loader: Callable[[], Awaitable[T]],
    ) -> T:
        """Return the fresh cached value for ``key`` or load and store a new one.

        Loader exceptions propagate and leave any existing entry untouched.
        """
        entry = self._entries.get(key)
        if entry is not None and entry.is_fresh(self._clock()):
            logger.debug("Cache hit", key=key)
            return entry.value

        logger.debug("Cache miss", key=key, expired=entry is not None)
        value = await loader()
        self.set(key, value, ttl_seconds)
        return value

    def get(self, key: str) -> Any | None:
        """Return the fresh value for ``key``, or None if absent or expired."""
        entry = self._entries.get(key)
        if entry is None or not entry.is_fresh(self._clock()):
            return None
        return entry.value

    def set(self, key: str, value: Any, ttl_seconds: float) -> None:
        self._entries[key] = CacheEntry(
            value=value, fetched_at=self._clock(), ttl_seconds=ttl_seconds
        )

    def invalidate(self, key: str) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.get(key) is not None

    def __len__(self) -> int:
        return len(self._entries)
