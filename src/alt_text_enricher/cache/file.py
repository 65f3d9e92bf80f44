"""JSON file cache store.

Keeps the in-memory store's semantics and writes the whole table to disk
after every mutation, so cached descriptions survive between CLI runs.
"""

import json
import time
from collections.abc import Callable
from pathlib import Path

from loguru import logger
from pydantic import BaseModel, Field

from .base import CacheEntry
from .memory import MemoryCacheStore


class CacheFile(BaseModel):
    """On-disk layout of the cache table."""

    entries: dict[str, CacheEntry] = Field(default_factory=dict)


class JsonFileCacheStore(MemoryCacheStore):
    """CacheStore persisted to a single JSON file."""

    def __init__(
        self,
        path: Path | str,
        clock: Callable[[], float] = time.time,
        sweep_interval: float = 300.0,
    ):
        super().__init__(clock=clock, sweep_interval=sweep_interval)
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._entries = self._load()
        logger.debug("JsonFileCacheStore initialized: path={}, entries={}", self.path, len(self._entries))

    def _load(self) -> dict[str, CacheEntry]:
        if self.path.exists():
            try:
                data = json.loads(self.path.read_text())
                return CacheFile.model_validate(data).entries
            except Exception as e:
                logger.warning("Could not load cache file {}: {}", self.path, e)
        return {}

    def _save(self) -> None:
        with self._lock:
            payload = CacheFile(entries=dict(self._entries)).model_dump_json(indent=2)
            self.path.write_text(payload)

    def set(self, key: str, value: str, ttl: float) -> None:
        super().set(key, value, ttl)
        self._save()

    def invalidate(self, key: str) -> bool:
        removed = super().invalidate(key)
        if removed:
            self._save()
        return removed

    def invalidate_all(self, prefix: str = "") -> int:
        removed = super().invalidate_all(prefix)
        if removed:
            self._save()
        return removed

    def sweep(self) -> int:
        removed = super().sweep()
        if removed:
            self._save()
        return removed
