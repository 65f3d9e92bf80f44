"""Generation statistics.

An append-only audit log of every generation that produced text, with
read-side rollups for dashboards and the CLI. Persisted as JSON when a path
is given, otherwise kept in memory.
"""

import json
import threading
import uuid
from collections import Counter
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from pathlib import Path

from loguru import logger
from pydantic import BaseModel, Field

# Pricing used for cost estimates, USD per million tokens
INPUT_COST_PER_MILLION = 2.50
OUTPUT_COST_PER_MILLION = 10.00
# Typical split of billed tokens between prompt (image + instruction) and output
INPUT_TOKEN_SHARE = 0.7

TYPE_LABELS = {
    "upload": "Image upload",
    "manual": "Manual update",
    "batch": "Batch processing",
    "api": "REST API",
    "api_batch": "REST API batch",
    "cli": "Command line",
    "woocommerce": "Product image",
    "page_builder": "Page builder",
    "media_folder": "Media folder",
    "feedback": "Regenerated from feedback",
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class GenerationRecord(BaseModel):
    """One generation that reached a textual result."""

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    image_id: str
    generated_text: str
    tokens_used: int = 0
    generation_type: str
    timestamp: datetime
    applied: bool = False
    edited: bool = False
    edited_text: str | None = None


class RecentGeneration(BaseModel):
    """A recent record with its position among generations for the same image."""

    record: GenerationRecord
    update_number: int = Field(description="1 for the first generation of an image, 2 for the next, ...")


class GenerationStats(BaseModel):
    """Rollup of the statistics log."""

    count: int = 0
    total_tokens: int = 0
    counts_by_type: dict[str, int] = Field(default_factory=dict)
    applied: int = 0
    edited: int = 0
    average_tokens: float = 0.0
    estimated_cost: float = 0.0
    recent: list[RecentGeneration] = Field(default_factory=list)


class StatsFile(BaseModel):
    """On-disk layout of the statistics log."""

    records: list[GenerationRecord] = Field(default_factory=list)


def estimate_cost(total_tokens: int) -> float:
    """Estimate the USD cost of ``total_tokens`` billed tokens."""
    input_tokens = total_tokens * INPUT_TOKEN_SHARE
    output_tokens = total_tokens - input_tokens
    return (input_tokens / 1_000_000) * INPUT_COST_PER_MILLION + (
        output_tokens / 1_000_000
    ) * OUTPUT_COST_PER_MILLION


def type_label(generation_type: str) -> str:
    """Return a human-readable label for a generation type."""
    return TYPE_LABELS.get(generation_type, generation_type)


class StatisticsRecorder:
    """Durable audit log of generations."""

    def __init__(
        self,
        path: Path | str | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        """
        Initialize the recorder.

        Args:
            path: JSON file to persist to, or None to keep records in memory
            clock: Source of record timestamps, injectable for tests
        """
        self.path = Path(path) if path else None
        self._clock = clock
        self._lock = threading.Lock()
        self._records: list[GenerationRecord] = self._load()

    def _load(self) -> list[GenerationRecord]:
        if self.path and self.path.exists():
            try:
                data = json.loads(self.path.read_text())
                records = StatsFile.model_validate(data).records
                logger.debug("Loaded {} generation records from {}", len(records), self.path)
                return records
            except Exception as e:
                logger.warning("Could not load statistics from {}: {}", self.path, e)
        return []

    def _save(self) -> None:
        if self.path is None:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(StatsFile(records=self._records).model_dump_json(indent=2))

    def record(
        self,
        image_id: str,
        text: str,
        tokens: int,
        generation_type: str,
        applied: bool = False,
        edited: bool = False,
        edited_text: str | None = None,
    ) -> GenerationRecord:
        """Append one generation record and persist the log."""
        entry = GenerationRecord(
            image_id=image_id,
            generated_text=text,
            tokens_used=tokens,
            generation_type=str(generation_type),
            timestamp=self._clock(),
            applied=applied,
            edited=edited,
            edited_text=edited_text,
        )
        logger.debug(
            "Tracking generation stats: image_id={}, tokens={}, type={}",
            image_id,
            tokens,
            entry.generation_type,
        )
        with self._lock:
            self._records.append(entry)
            self._save()
        return entry

    def mark_applied(
        self, image_id: str, original_text: str, final_text: str
    ) -> GenerationRecord | None:
        """Mark the latest generation for an image as applied.

        Only the most recent record for ``image_id`` is considered, and only if
        it generated ``original_text`` and has not been applied yet.

        Returns:
            The updated record, or None if there was nothing to update

        """
        edited = final_text != original_text
        with self._lock:
            latest = None
            for entry in self._records:
                if entry.image_id == image_id and (
                    latest is None or entry.timestamp >= latest.timestamp
                ):
                    latest = entry
            if latest is None or latest.applied or latest.generated_text != original_text:
                return None
            latest.applied = True
            latest.edited = edited
            latest.edited_text = final_text if edited else None
            self._save()
        logger.debug("Marked generation {} applied (edited={})", latest.id, edited)
        return latest

    def records(self) -> list[GenerationRecord]:
        """Return a copy of all records in insertion order."""
        with self._lock:
            return list(self._records)

    def aggregate(self, recent: int = 10) -> GenerationStats:
        """Compute totals, per-type counts and the most recent generations."""
        records = self.records()
        total_tokens = sum(r.tokens_used for r in records)
        count = len(records)

        per_image: Counter[str] = Counter()
        numbered: list[RecentGeneration] = []
        for entry in sorted(records, key=lambda r: r.timestamp):
            per_image[entry.image_id] += 1
            numbered.append(RecentGeneration(record=entry, update_number=per_image[entry.image_id]))
        numbered.reverse()

        return GenerationStats(
            count=count,
            total_tokens=total_tokens,
            counts_by_type=dict(Counter(r.generation_type for r in records)),
            applied=sum(1 for r in records if r.applied),
            edited=sum(1 for r in records if r.edited),
            average_tokens=round(total_tokens / count, 2) if count else 0.0,
            estimated_cost=round(estimate_cost(total_tokens), 4),
            recent=numbered[: max(0, recent)],
        )

    def count_orphaned(self, exists: Callable[[str], bool]) -> int:
        """Count records whose image no longer exists according to ``exists``."""
        return sum(1 for r in self.records() if not exists(r.image_id))

    def cleanup_orphaned(self, exists: Callable[[str], bool]) -> int:
        """Delete records whose image no longer exists. Returns the number deleted."""
        with self._lock:
            kept = [r for r in self._records if exists(r.image_id)]
            removed = len(self._records) - len(kept)
            if removed:
                self._records = kept
                self._save()
        logger.info("Removed {} orphaned generation records", removed)
        return removed

    def prune_older_than(self, days: int) -> int:
        """Delete records older than ``days``. Returns the number deleted."""
        cutoff = self._clock() - timedelta(days=days)
        with self._lock:
            kept = [r for r in self._records if r.timestamp >= cutoff]
            removed = len(self._records) - len(kept)
            if removed:
                self._records = kept
                self._save()
        logger.info("Pruned {} generation records older than {} days", removed, days)
        return removed

    def clear(self) -> int:
        """Delete every record. Returns the number deleted."""
        with self._lock:
            removed = len(self._records)
            self._records = []
            self._save()
        logger.info("Cleared {} generation records", removed)
        return removed
