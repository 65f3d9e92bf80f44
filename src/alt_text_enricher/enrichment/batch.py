"""
Chunked batch enrichment.

Processes image references in list order, chunk by chunk, isolating every
per-item failure in the outcome map and pausing between chunks.
"""

from __future__ import annotations

import asyncio
from collections import Counter
from collections.abc import Sequence

from loguru import logger
from rich.console import Console
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskProgressColumn, TextColumn

from ..errors import EnrichmentError, InvalidInput
from ..images import ImageRef
from .models import GenerationOutcome, GenerationType
from .service import EnrichmentService

console = Console()

CANCELLED = "cancelled"


class BatchProcessor:
    """Fan a list of images out over the enrichment service."""

    def __init__(
        self,
        service: EnrichmentService,
        chunk_size: int = 10,
        max_batch_size: int = 50,
        chunk_delay: float = 2.0,
        mode: GenerationType | str = GenerationType.BATCH,
    ):
        """
        Initialize the batch processor.

        Args:
            service: Shared enrichment service
            chunk_size: Default number of images per chunk
            max_batch_size: Largest batch accepted; bigger batches are rejected
            chunk_delay: Seconds to pause between chunks
            mode: Generation type recorded for batch items
        """
        self.service = service
        self.chunk_size = chunk_size
        self.max_batch_size = max_batch_size
        self.chunk_delay = chunk_delay
        self.mode = mode

    def validate(self, image_refs: Sequence[ImageRef], chunk_size: int | None) -> int:
        """
        Check a batch request before any I/O.

        Returns:
            The effective chunk size

        Raises:
            InvalidInput: On an empty or oversized batch, duplicate ids,
                or a non-positive chunk size
        """
        size = self.chunk_size if chunk_size is None else chunk_size
        if not image_refs:
            raise InvalidInput("No images to process")
        if size <= 0:
            raise InvalidInput(f"Chunk size must be positive, got {size}")
        if len(image_refs) > self.max_batch_size:
            raise InvalidInput(
                f"Batch of {len(image_refs)} images exceeds the limit of {self.max_batch_size}"
            )
        counts = Counter(ref.id for ref in image_refs)
        duplicates = sorted(image_id for image_id, n in counts.items() if n > 1)
        if duplicates:
            raise InvalidInput(f"Duplicate image ids in batch: {', '.join(duplicates)}")
        return size

    async def process(
        self,
        image_refs: Sequence[ImageRef],
        chunk_size: int | None = None,
        cancel_event: asyncio.Event | None = None,
        show_progress: bool = False,
        mode: GenerationType | str | None = None,
    ) -> dict[str, GenerationOutcome]:
        """
        Generate alt text for every image in the batch.

        A failing item never stops the batch: its error is stored under its id
        and processing continues. Once ``cancel_event`` is set, the item in
        flight finishes and every remaining item is reported as cancelled.

        Args:
            image_refs: Images in processing order
            chunk_size: Images per chunk, defaults to the configured size
            cancel_event: Optional event requesting cooperative cancellation
            show_progress: Render a rich progress bar on the console
            mode: Generation type to record, defaults to the processor mode

        Returns:
            Mapping of image id to outcome

        Raises:
            InvalidInput: If the request as a whole is invalid
        """
        refs = list(image_refs)
        size = self.validate(refs, chunk_size)
        chunks = [refs[i : i + size] for i in range(0, len(refs), size)]
        results: dict[str, GenerationOutcome] = {}
        item_mode = mode or self.mode

        logger.info("Starting batch: {} images in {} chunks of {}", len(refs), len(chunks), size)

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TaskProgressColumn(),
            console=console,
            disable=not show_progress,
        ) as progress:
            task = progress.add_task("Generating alt text...", total=len(refs))

            for chunk_num, chunk in enumerate(chunks, 1):
                if chunk_num > 1 and self.chunk_delay > 0 and not _is_set(cancel_event):
                    logger.debug("Pausing {}s before chunk {}", self.chunk_delay, chunk_num)
                    await asyncio.sleep(self.chunk_delay)

                logger.debug("Processing chunk {}/{}", chunk_num, len(chunks))
                for ref in chunk:
                    if _is_set(cancel_event):
                        results[ref.id] = GenerationOutcome.failure(CANCELLED)
                    else:
                        results[ref.id] = await self._process_item(ref, item_mode)
                    progress.advance(task)

        failed = sum(1 for outcome in results.values() if not outcome.ok)
        logger.info("Batch complete: {} succeeded, {} failed", len(results) - failed, failed)
        return results

    async def _process_item(self, ref: ImageRef, mode: GenerationType | str) -> GenerationOutcome:
        try:
            result = await self.service.generate_detailed(ref, mode=mode)
        except EnrichmentError as e:
            return GenerationOutcome.failure(str(e))
        except Exception as e:
            logger.exception("Unexpected error generating alt text for {}", ref.id)
            return GenerationOutcome.failure(f"Unexpected error: {e}")
        return GenerationOutcome.from_result(result)


def _is_set(event: asyncio.Event | None) -> bool:
    return event is not None and event.is_set()
