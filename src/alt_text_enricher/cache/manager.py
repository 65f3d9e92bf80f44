"""
Content-addressed response cache.

Keys are derived from the image bytes and modification time, never from the
image identifier, so a replaced file can never be served stale text.
"""

import hashlib
from pathlib import Path

from loguru import logger

from ..config import ConfigProvider
from .base import CacheStore

CACHE_PREFIX = "aat_img_"


def cache_key(data: bytes, mtime: float | int = 0) -> str:
    """
    Build the cache key for an image.

    Args:
        data: Raw image bytes
        mtime: Last-modified timestamp of the image

    Returns:
        Prefixed MD5 hex digest of the bytes followed by the mtime
    """
    digest = hashlib.md5()
    digest.update(data)
    digest.update(_format_mtime(mtime).encode())
    return CACHE_PREFIX + digest.hexdigest()


def _format_mtime(mtime: float | int) -> str:
    # 1700000000.0 and 1700000000 must produce the same key
    return str(int(mtime)) if float(mtime).is_integer() else repr(float(mtime))


class ResponseCache:
    """Cache of generated descriptions on top of any CacheStore.

    The TTL is read from the config provider on every write so operators can
    change it without rebuilding the service.
    """

    def __init__(self, store: CacheStore, config: ConfigProvider):
        self.store = store
        self._config = config

    def key_for(self, data: bytes, mtime: float | int = 0) -> str:
        """Return the cache key for image bytes and mtime."""
        return cache_key(data, mtime)

    def get(self, key: str) -> str | None:
        """Return the cached description for ``key`` if still valid."""
        value = self.store.get(key)
        if value is not None:
            logger.debug("Cache hit: {}", key)
        return value

    def set(self, key: str, value: str) -> None:
        """Cache ``value`` for the configured number of days."""
        ttl = self._config.get().cache_ttl_seconds
        self.store.set(key, value, ttl)
        logger.debug("Cached description under {} for {:.0f}s", key, ttl)

    def invalidate(self, key: str) -> bool:
        """Drop one entry. Hosts call this when an image is edited, replaced or deleted."""
        return self.store.invalidate(key)

    def invalidate_image(self, data: bytes, mtime: float | int = 0) -> bool:
        """Drop the entry for the given image bytes and mtime."""
        return self.invalidate(self.key_for(data, mtime))

    def invalidate_path(self, path: Path | str) -> bool:
        """Drop the entry for a local image file in its current state.

        Returns False if the file does not exist.
        """
        file_path = Path(path)
        if not file_path.is_file():
            logger.debug("Cannot invalidate missing file: {}", file_path)
            return False
        return self.invalidate_image(file_path.read_bytes(), file_path.stat().st_mtime)

    def clear(self) -> int:
        """Drop every cached description."""
        removed = self.store.invalidate_all(CACHE_PREFIX)
        logger.info("Cleared {} cached descriptions", removed)
        return removed

    def size(self) -> int:
        """Return the number of live cached descriptions."""
        return self.store.count(CACHE_PREFIX)
