"""
Response cache package.

Provides a factory function to create the configured cache store.
"""

from pathlib import Path

from .base import CacheEntry, CacheStore
from .file import JsonFileCacheStore
from .manager import CACHE_PREFIX, ResponseCache, cache_key
from .memory import MemoryCacheStore


def create_cache_store(
    backend: str = "memory",
    path: str | Path = "./data/alt_text_cache.json",
) -> CacheStore:
    """
    Factory function to create a cache store.

    Args:
        backend: Type of store ("memory" or "file")
        path: JSON file location for the file backend

    Returns:
        Configured CacheStore instance

    Raises:
        ValueError: If backend is not recognized
    """
    if backend == "memory":
        return MemoryCacheStore()
    elif backend == "file":
        return JsonFileCacheStore(path)
    else:
        raise ValueError(f"Unknown cache backend: {backend}")


__all__ = [
    "CACHE_PREFIX",
    "CacheEntry",
    "CacheStore",
    "JsonFileCacheStore",
    "MemoryCacheStore",
    "ResponseCache",
    "cache_key",
    "create_cache_store",
]
