"""In-memory cache store.

Entries live in a dict guarded by a lock. Expired entries are dropped on
read and by ``sweep``, which the owner calls as a janitor.
"""

import threading
import time
from collections.abc import Callable

from loguru import logger

from .base import CacheEntry, CacheStore


class MemoryCacheStore(CacheStore):
    """Process-local implementation of CacheStore."""

    def __init__(
        self,
        clock: Callable[[], float] = time.time,
        sweep_interval: float = 300.0,
    ):
        """Initialize an empty store.

        Args:
            clock: Time source returning seconds, injectable for tests
            sweep_interval: Minimum seconds between automatic sweeps on write

        """
        super().__init__(clock)
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.RLock()
        self._sweep_interval = sweep_interval
        self._last_sweep = self.now()

    def get(self, key: str) -> str | None:
        now = self.now()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.is_expired(now):
                del self._entries[key]
                return None
            return entry.value

    def set(self, key: str, value: str, ttl: float) -> None:
        now = self.now()
        with self._lock:
            self._entries[key] = CacheEntry(value=value, expires_at=now + ttl)
            if now - self._last_sweep >= self._sweep_interval:
                self._sweep_locked(now)

    def get_or_set(self, key: str, factory: Callable[[], str], ttl: float) -> str:
        with self._lock:
            existing = self.get(key)
            if existing is not None:
                return existing
            value = factory()
            self.set(key, value, ttl)
            return value

    def invalidate(self, key: str) -> bool:
        with self._lock:
            removed = self._entries.pop(key, None) is not None
        if removed:
            logger.debug("Invalidated cache key {}", key)
        return removed

    def invalidate_all(self, prefix: str = "") -> int:
        with self._lock:
            keys = [k for k in self._entries if k.startswith(prefix)]
            for key in keys:
                del self._entries[key]
        logger.debug("Invalidated {} cache entries with prefix '{}'", len(keys), prefix)
        return len(keys)

    def count(self, prefix: str = "") -> int:
        now = self.now()
        with self._lock:
            return sum(
                1
                for key, entry in self._entries.items()
                if key.startswith(prefix) and not entry.is_expired(now)
            )

    def sweep(self) -> int:
        with self._lock:
            return self._sweep_locked(self.now())

    def _sweep_locked(self, now: float) -> int:
        expired = [k for k, entry in self._entries.items() if entry.is_expired(now)]
        for key in expired:
            del self._entries[key]
        self._last_sweep = now
        if expired:
            logger.debug("Swept {} expired cache entries", len(expired))
        return len(expired)
