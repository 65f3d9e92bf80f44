"""
Abstract base class for expiring key-value stores.

Enables swapping between the in-memory store and the JSON file store.
"""

import time
from abc import ABC, abstractmethod
from collections.abc import Callable

from pydantic import BaseModel, Field


class CacheEntry(BaseModel):
    """A cached value with its absolute expiry time."""

    value: str = Field(description="Cached text")
    expires_at: float = Field(description="Unix timestamp after which the entry is gone")

    def is_expired(self, now: float) -> bool:
        """Return True once ``now`` is past the expiry time."""
        return now > self.expires_at


class CacheStore(ABC):
    """Abstract interface for expiring key-value stores.

    Implementations must be safe to share across concurrent callers. Writes
    are last-writer-wins.
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock

    def now(self) -> float:
        """Return the store's current time."""
        return self._clock()

    @abstractmethod
    def get(self, key: str) -> str | None:
        """
        Return the value for ``key`` or None if missing or expired.

        Args:
            key: Cache key
        """
        pass

    @abstractmethod
    def set(self, key: str, value: str, ttl: float) -> None:
        """
        Store ``value`` under ``key`` for ``ttl`` seconds, replacing any entry.

        Args:
            key: Cache key
            value: Text to cache
            ttl: Lifetime in seconds
        """
        pass

    @abstractmethod
    def get_or_set(self, key: str, factory: Callable[[], str], ttl: float) -> str:
        """Return the live value for ``key``, storing ``factory()`` first if absent."""
        pass

    @abstractmethod
    def invalidate(self, key: str) -> bool:
        """Delete ``key``. Returns True if an entry was removed."""
        pass

    @abstractmethod
    def invalidate_all(self, prefix: str = "") -> int:
        """Delete every key starting with ``prefix``. Returns the number removed."""
        pass

    @abstractmethod
    def count(self, prefix: str = "") -> int:
        """Return the number of live entries whose key starts with ``prefix``."""
        pass

    @abstractmethod
    def sweep(self) -> int:
        """Drop expired entries. Returns the number removed."""
        pass
