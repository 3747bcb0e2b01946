"""In-memory bounded cache.

Single-owner key/value map with:
- a maximum entry count (oldest write evicted first)
- an optional TTL, checked on read against an injectable clock
- explicit invalidation of one key or all keys

Expired entries are not dropped on read; `get_entry(..., allow_stale=True)`
still returns them so callers can serve last-known-good data.
"""

from __future__ import annotations

import logging
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable, Generic, Hashable, Iterator, TypeVar

logger = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")

Clock = Callable[[], float]


@dataclass(slots=True, frozen=True)
class CacheEntry(Generic[V]):
    value: V
    stored_at: float

    def age(self, now: float) -> float:
        return now - self.stored_at


class BoundedCache(Generic[K, V]):
    """Bounded key/value map with optional TTL."""

    def __init__(
        self,
        max_entries: int = 1000,
        ttl_seconds: float | None = None,
        clock: Clock = time.time,
        name: str = "cache",
    ):
        if max_entries < 1:
            raise ValueError(f"max_entries must be positive, got {max_entries}")
        self.max_entries = max_entries
        self.ttl_seconds = ttl_seconds
        self.name = name
        self._clock = clock
        self._entries: OrderedDict[K, CacheEntry[V]] = OrderedDict()
        self._evictions = 0

    def is_expired(self, entry: CacheEntry[V]) -> bool:
        if self.ttl_seconds is None:
            return False
        return entry.age(self._clock()) >= self.ttl_seconds

    def get_entry(self, key: K, allow_stale: bool = False) -> CacheEntry[V] | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if not allow_stale and self.is_expired(entry):
            return None
        return entry

    def get(self, key: K, default: V | None = None) -> V | None:
        """Fresh value for key, or default when missing or expired."""
        entry = self.get_entry(key)
        return default if entry is None else entry.value

    def set(self, key: K, value: V) -> None:
        if key in self._entries:
            del self._entries[key]
        self._entries[key] = CacheEntry(value, self._clock())
        while len(self._entries) > self.max_entries:
            evicted, _ = self._entries.popitem(last=False)
            self._evictions += 1
            logger.debug("%s evicted %s (max %d)", self.name, evicted, self.max_entries)

    def invalidate(self, key: K | None = None) -> int:
        """Drop one key, or every key when key is None. Returns entries removed."""
        if key is None:
            count = len(self._entries)
            self._entries.clear()
            return count
        return 1 if self._entries.pop(key, None) is not None else 0

    def keys(self) -> list[K]:
        return list(self._entries.keys())

    def items(self) -> Iterator[tuple[K, V]]:
        for key, entry in list(self._entries.items()):
            yield key, entry.value

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def get_stats(self) -> dict:
        return {
            "name": self.name,
            "entries": len(self._entries),
            "max_entries": self.max_entries,
            "ttl_seconds": self.ttl_seconds,
            "evictions": self._evictions,
        }
