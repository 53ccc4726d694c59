"""Bounded in-memory cache with per-entry expiry."""

from __future__ import annotations

import time
from collections import OrderedDict
from typing import Callable, Generic, Hashable, Optional, TypeVar

V = TypeVar("V")


class TTLCache(Generic[V]):
    """Least-recently-used cache whose entries expire after a TTL.

    Instances are created by the dependency layer and passed to the services
    that need them, so their lifetime is explicit and tests can supply a fake
    clock.
    """

    def __init__(
        self,
        *,
        capacity: int = 1024,
        ttl_seconds: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self._capacity = capacity
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: OrderedDict[Hashable, tuple[float, V]] = OrderedDict()

    @property
    def capacity(self) -> int:
        return self._capacity

    def get(self, key: Hashable) -> Optional[V]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        expires_at, value = entry
        if self._clock() >= expires_at:
            del self._entries[key]
            return None
        self._entries.move_to_end(key)
        return value

    def set(self, key: Hashable, value: V, ttl: float | None = None) -> None:
        self._prune()
        expires_at = self._clock() + (ttl if ttl is not None else self._ttl)
        if key in self._entries:
            self._entries.move_to_end(key)
        self._entries[key] = (expires_at, value)
        while len(self._entries) > self._capacity:
            self._entries.popitem(last=False)

    def _prune(self) -> None:
        now = self._clock()
        expired = [key for key, (expires_at, _) in self._entries.items() if now >= expires_at]
        for key in expired:
            del self._entries[key]

    def __len__(self) -> int:
        self._prune()
        return len(self._entries)


__all__ = ["TTLCache"]
