"""
Read-through TTL cache for configuration snapshots.

Thread-safety: all bookkeeping happens under one lock. Loads run outside the
lock, and a load that started before an ``invalidate()`` is discarded instead
of being stored, so once an invalidation returns no reader can be handed a
snapshot fetched before it.
"""
import threading
import time
from typing import Any, Callable, Hashable, Optional


class SnapshotCache:

    def __init__(self, ttl_seconds: float = 300.0, clock: Callable[[], float] = time.monotonic):
        self._ttl = ttl_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._store: dict[Hashable, tuple[Any, float]] = {}
        self._generation = 0

    def get(self, key: Hashable) -> Optional[Any]:
        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if self._clock() >= expires_at:
                del self._store[key]
                return None
            return value

    def get_or_load(self, key: Hashable, loader: Callable[[], Any]) -> tuple[Any, bool]:
        """
        Return (value, hit). On a miss ``loader`` is called and its result
        cached unless the cache was invalidated while it ran.
        """
        with self._lock:
            entry = self._store.get(key)
            if entry is not None and self._clock() < entry[1]:
                return entry[0], True
            generation = self._generation

        value = loader()

        with self._lock:
            if generation == self._generation:
                self._store[key] = (value, self._clock() + self._ttl)
        return value, False

    def invalidate(self):
        with self._lock:
            self._store.clear()
            self._generation += 1

    @property
    def size(self) -> int:
        with self._lock:
            return len(self._store)
