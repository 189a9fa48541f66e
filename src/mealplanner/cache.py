"""Time-limited key-value stores for generated plans and image URLs.

Plans are keyed by user and options, image URLs by meal id. Each store is a
plain object owned by whoever creates it; nothing here is module-level state.
"""

import time
from collections.abc import Callable
from typing import Generic, TypeVar

import structlog
from cachetools import TTLCache

logger = structlog.get_logger()

T = TypeVar("T")


class KeyValueStore(Generic[T]):
    """Insert, read, evict and clear values that expire ``ttl`` seconds after insertion.

    ``timer`` is handed to the underlying ``TTLCache`` so callers can control time.
    """

    def __init__(
        self,
        name: str,
        ttl: float,
        maxsize: int = 1024,
        timer: Callable[[], float] = time.monotonic,
    ) -> None:
        self.name = name
        self._entries: TTLCache[str, T] = TTLCache(maxsize=maxsize, ttl=ttl, timer=timer)
        self.logger = logger.bind(cache=name)

    @property
    def ttl(self) -> float:
        return self._entries.ttl

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def insert(self, key: str, value: T) -> None:
        self._entries[key] = value
        self.logger.debug("Cached value", key=key, size=len(self._entries))

    def get(self, key: str) -> T | None:
        """Return the value for ``key``, or None if absent or expired."""
        return self._entries.get(key)

    def evict(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    def expire(self) -> int:
        """Drop expired entries and return how many were dropped."""
        expired = self._entries.expire()
        if expired:
            self.logger.info("Evicted stale entries", count=len(expired))
        return len(expired)

    def clear(self) -> None:
        self._entries.clear()

    def keys(self) -> list[str]:
        return list(self._entries)

    def values(self) -> list[T]:
        return list(self._entries.values())
