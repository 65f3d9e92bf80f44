"""
Process-wide wiring of the enrichment core.

``create_enricher`` builds the shared configuration provider, rate limiter,
cache, statistics recorder, client, service and batch processor once. Hosts
keep the returned ``Enricher`` and call it from any request.
"""

import asyncio
from collections.abc import Iterable, Sequence

from loguru import logger

from ..cache import CacheStore, ResponseCache, create_cache_store
from ..config import ConfigProvider, Settings
from ..images import DefaultImageResolver, ImageRef, ImageResolver
from ..language import LanguageSync, detect_language_sync
from ..ratelimit import RateLimiter
from ..stats import StatisticsRecorder
from ..vision import VisionClient, create_vision_client
from .batch import BatchProcessor
from .models import AltTextSink, GenerationOutcome, GenerationType
from .service import EnrichmentService


class Enricher:
    """Inbound boundary of the enrichment core."""

    def __init__(
        self,
        config: ConfigProvider,
        rate_limiter: RateLimiter,
        cache: ResponseCache,
        stats: StatisticsRecorder,
        service: EnrichmentService,
        batch: BatchProcessor,
    ):
        self.config = config
        self.rate_limiter = rate_limiter
        self.cache = cache
        self.stats = stats
        self.service = service
        self.batch = batch

    async def generate_one(
        self,
        image_ref: ImageRef,
        mode: GenerationType | str = GenerationType.MANUAL,
        preview: bool = False,
    ) -> GenerationOutcome:
        """Describe one image; failures come back as ``GenerationOutcome.error``."""
        return await self.service.generate_one(image_ref, mode=mode, preview=preview)

    async def generate_batch(
        self,
        image_refs: Sequence[ImageRef],
        chunk_size: int | None = None,
        show_progress: bool = False,
        mode: GenerationType | str | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> dict[str, GenerationOutcome]:
        """Describe many images. Raises InvalidInput only for an invalid batch."""
        return await self.batch.process(
            image_refs,
            chunk_size=chunk_size,
            cancel_event=cancel_event,
            show_progress=show_progress,
            mode=mode,
        )

    def invalidate(self, key: str) -> bool:
        """Drop one cached description."""
        return self.cache.invalidate(key)

    @property
    def last_error(self) -> str | None:
        """Return the most recent single-image failure message."""
        return self.service.last_error


def create_enricher(
    app_settings: Settings,
    alt_text_sink: AltTextSink | None = None,
    language_adapters: Iterable[LanguageSync] = (),
    resolver: ImageResolver | None = None,
    client: VisionClient | None = None,
    cache_store: CacheStore | None = None,
    stats: StatisticsRecorder | None = None,
) -> Enricher:
    """
    Build the shared enrichment objects from settings.

    Args:
        app_settings: Application settings
        alt_text_sink: Host callback persisting alt text onto images
        language_adapters: Candidate language sync adapters in priority order
        resolver: Image resolver override
        client: Vision client override
        cache_store: Cache store override
        stats: Statistics recorder override

    Returns:
        A ready-to-use Enricher
    """
    config = ConfigProvider.from_settings(app_settings)
    rate_limiter = RateLimiter(config)

    store = cache_store or create_cache_store(app_settings.cache_backend, app_settings.cache_file)
    cache = ResponseCache(store, config)
    recorder = stats or StatisticsRecorder(app_settings.stats_file)

    service = EnrichmentService(
        config=config,
        client=client or create_vision_client(config, rate_limiter),
        cache=cache,
        resolver=resolver or DefaultImageResolver(timeout=app_settings.image_fetch_timeout),
        stats=recorder,
        language_sync=detect_language_sync(language_adapters, app_settings.language),
        alt_text_sink=alt_text_sink,
    )
    batch = BatchProcessor(
        service,
        chunk_size=app_settings.batch_chunk_size,
        max_batch_size=app_settings.batch_max_size,
        chunk_delay=app_settings.batch_chunk_delay,
    )

    logger.debug(
        "Enricher created: model={}, cache={}, rate_limit={}/{}s",
        app_settings.openai_model,
        app_settings.cache_backend,
        app_settings.rate_limit_calls,
        app_settings.rate_limit_window,
    )
    return Enricher(
        config=config,
        rate_limiter=rate_limiter,
        cache=cache,
        stats=recorder,
        service=service,
        batch=batch,
    )
