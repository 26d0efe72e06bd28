"""
Bounded in-memory store with TTL for Task Tamer.

Backs the motivation cache so long-lived sessions cannot grow without
limit:
- TTL (time-to-live) expiry per entry
- Maximum size limit
- LRU eviction when full (by access time, not creation time)

Lookups are synchronous: the store is owned by one conversation session
and never awaited on.
"""

from __future__ import annotations

import time
from collections import OrderedDict
from collections.abc import Callable, Hashable
from dataclasses import dataclass
from typing import Any


@dataclass
class StateEntry:
    """A stored value with its TTL bookkeeping."""

    value: Any
    created_at: float
    accessed_at: float
    ttl: float  # seconds


class BoundedStateStore:
    """
    Bounded key/value store with TTL and LRU eviction.

    Args:
        max_size: Maximum number of live entries
        default_ttl: Seconds an entry lives unless set() overrides it
        clock: Monotonic time source (tests inject a fake)
    """

    DEFAULT_TTL = 86400  # 1 day
    MAX_SIZE = 512

    def __init__(
        self,
        max_size: int = MAX_SIZE,
        default_ttl: float = DEFAULT_TTL,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_size <= 0:
            raise ValueError("max_size must be positive")
        # OrderedDict: first item is least recently used
        self._store: OrderedDict[Hashable, StateEntry] = OrderedDict()
        self._max_size = max_size
        self._default_ttl = default_ttl
        self._clock = clock

    @property
    def max_size(self) -> int:
        return self._max_size

    def set(self, key: Hashable, value: Any, ttl: float | None = None) -> None:
        """
        Store a value, evicting the least recently used entry when full.

        Args:
            key: Hashable key
            value: Value to store
            ttl: Time-to-live in seconds (uses default if None)
        """
        now = self._clock()
        self._cleanup_expired(now)

        if key in self._store:
            del self._store[key]
        elif len(self._store) >= self._max_size:
            self._evict_lru()

        self._store[key] = StateEntry(
            value=value,
            created_at=now,
            accessed_at=now,
            ttl=ttl if ttl is not None else self._default_ttl,
        )

    def get(self, key: Hashable) -> Any | None:
        """
        Get a value if it exists and is not expired.

        Returns:
            Value if found and not expired, None otherwise
        """
        entry = self._store.get(key)
        if entry is None:
            return None

        now = self._clock()
        if now - entry.created_at > entry.ttl:
            del self._store[key]
            return None

        entry.accessed_at = now
        self._store.move_to_end(key)
        return entry.value

    def __contains__(self, key: Hashable) -> bool:
        return self.get(key) is not None

    def delete(self, key: Hashable) -> bool:
        """Delete a key. Returns True if it was present."""
        return self._store.pop(key, None) is not None

    def clear(self) -> None:
        self._store.clear()

    def size(self) -> int:
        """Current number of live entries."""
        self._cleanup_expired(self._clock())
        return len(self._store)

    def _cleanup_expired(self, now: float) -> None:
        """Remove all expired entries."""
        expired = [
            key for key, entry in self._store.items()
            if now - entry.created_at > entry.ttl
        ]
        for key in expired:
            del self._store[key]

    def _evict_lru(self) -> None:
        if self._store:
            self._store.popitem(last=False)
