"""
Single-image enrichment.

Orchestrates one "describe this image" request: resolve bytes, check the
response cache, check configuration, call the vision client, then persist,
cache and record the result.
"""

import asyncio

from loguru import logger

from ..cache import ResponseCache
from ..config import ConfigProvider
from ..errors import ConfigError, EnrichmentError, InvalidInput, TransportError
from ..images import ImageRef, ImageResolver, ResolvedImage
from ..language import LanguageSync, NullLanguageSync
from ..prompts import build_feedback_instruction, build_instruction
from ..stats import StatisticsRecorder
from ..vision import Description, VisionClient
from .models import AltTextSink, GenerationOutcome, GenerationResult, GenerationType, mode_value


class EnrichmentService:
    """Generate alt text for one image at a time.

    All collaborators are injected and shared by reference. The service keeps
    only ``last_error``, the message of the most recent failure.
    """

    def __init__(
        self,
        config: ConfigProvider,
        client: VisionClient,
        cache: ResponseCache,
        resolver: ImageResolver,
        stats: StatisticsRecorder | None = None,
        language_sync: LanguageSync | None = None,
        alt_text_sink: AltTextSink | None = None,
        retry_backoff: float = 1.0,
    ):
        """
        Initialize the service.

        Args:
            config: Provider for the current configuration snapshot
            client: Vision client performing single-attempt requests
            cache: Content-addressed response cache
            resolver: Turns image references into bytes
            stats: Statistics recorder, or None to skip recording
            language_sync: Adapter propagating text to other locales
            alt_text_sink: Host callback persisting alt text onto the image
            retry_backoff: Base delay in seconds between transport retries
        """
        self._config = config
        self.client = client
        self.cache = cache
        self.resolver = resolver
        self.stats = stats
        self.language_sync = language_sync or NullLanguageSync()
        self.alt_text_sink = alt_text_sink
        self.retry_backoff = retry_backoff
        self.last_error: str | None = None

    async def generate(
        self,
        image_ref: ImageRef,
        mode: GenerationType | str = GenerationType.MANUAL,
        preview: bool = False,
    ) -> str:
        """
        Generate alt text for one image.

        Args:
            image_ref: Image to describe
            mode: Request origin, used only for statistics
            preview: Return the text without caching, persisting or recording it

        Returns:
            The alt text

        Raises:
            EnrichmentError: The most specific error for the failure
        """
        result = await self.generate_detailed(image_ref, mode=mode, preview=preview)
        return result.text

    async def generate_detailed(
        self,
        image_ref: ImageRef,
        mode: GenerationType | str = GenerationType.MANUAL,
        preview: bool = False,
    ) -> GenerationResult:
        """Like ``generate`` but also returns token usage and cache status."""
        try:
            return await self._generate(image_ref, mode_value(mode), preview)
        except EnrichmentError as e:
            self._fail(image_ref, e)
            raise

    async def generate_one(
        self,
        image_ref: ImageRef,
        mode: GenerationType | str = GenerationType.MANUAL,
        preview: bool = False,
    ) -> GenerationOutcome:
        """Generate alt text and report failures as an outcome instead of raising."""
        try:
            result = await self.generate_detailed(image_ref, mode=mode, preview=preview)
        except EnrichmentError as e:
            return GenerationOutcome.failure(str(e))
        return GenerationOutcome.from_result(result)

    async def _generate(self, image_ref: ImageRef, mode: str, preview: bool) -> GenerationResult:
        image = await self.resolver.resolve(image_ref)
        key = self.cache.key_for(image.data, image.mtime)

        if not preview:
            cached = self.cache.get(key)
            if cached is not None:
                logger.info("Using cached alt text for {}", image_ref.id)
                return GenerationResult(image_id=image_ref.id, text=cached, cached=True)

        cfg = self._config.get()
        if not cfg.credential:
            raise ConfigError("OpenAI API key is not configured")

        instruction = build_instruction(cfg.instruction_template, cfg.language_code)
        description = await self._describe(image, instruction, cfg.transport_retries)

        if preview:
            logger.info("Generated preview alt text for {}", image_ref.id)
            return GenerationResult(
                image_id=image_ref.id,
                text=description.text,
                tokens_used=description.tokens_used,
                preview=True,
            )

        self._persist(image_ref.id, description.text)
        self.cache.set(key, description.text)
        self._record(image_ref.id, description, mode)
        self._sync_languages(image_ref.id, description.text)

        logger.info(
            "Generated alt text for {} ({} tokens, mode={})",
            image_ref.id,
            description.tokens_used,
            mode,
        )
        return GenerationResult(
            image_id=image_ref.id,
            text=description.text,
            tokens_used=description.tokens_used,
        )

    async def _describe(self, image: ResolvedImage, instruction: str, retries: int) -> Description:
        attempt = 0
        while True:
            try:
                return await self.client.describe(
                    image.data,
                    instruction,
                    mime_type=image.mime_type,
                    source_url=image.ref.url,
                )
            except TransportError as e:
                if attempt >= retries:
                    raise
                delay = self.retry_backoff * 2**attempt
                attempt += 1
                logger.info("Transport error ({}), retry {}/{} in {}s", e, attempt, retries, delay)
                await asyncio.sleep(delay)

    async def regenerate_with_feedback(
        self,
        image_ref: ImageRef,
        improvement_type: str,
        custom_feedback: str = "",
        original_text: str = "",
    ) -> GenerationResult:
        """
        Generate an improved alt text based on user feedback.

        The result is recorded in the statistics as a ``feedback`` generation
        but is neither cached nor persisted until the user applies it.

        Args:
            image_ref: Image to describe
            improvement_type: Key of IMPROVEMENT_INSTRUCTIONS, or "custom"
            custom_feedback: Free-form feedback text
            original_text: The alt text being improved

        Raises:
            EnrichmentError: On any failure, including unknown improvement types
        """
        try:
            cfg = self._config.get()
            try:
                instruction = build_feedback_instruction(
                    cfg.instruction_template,
                    cfg.language_code,
                    improvement_type,
                    custom_feedback=custom_feedback,
                    original_text=original_text,
                )
            except ValueError as e:
                raise InvalidInput(str(e)) from e

            image = await self.resolver.resolve(image_ref)
            if not cfg.credential:
                raise ConfigError("OpenAI API key is not configured")

            logger.info(
                "Alt text regeneration requested for {}: improvement_type={}",
                image_ref.id,
                improvement_type,
            )
            description = await self._describe(image, instruction, cfg.transport_retries)
        except EnrichmentError as e:
            self._fail(image_ref, e)
            raise

        self._record(image_ref.id, description, GenerationType.FEEDBACK.value)
        return GenerationResult(
            image_id=image_ref.id,
            text=description.text,
            tokens_used=description.tokens_used,
            preview=True,
        )

    async def apply(
        self,
        image_id: str,
        text: str,
        original_text: str | None = None,
        tokens_used: int = 0,
        image_ref: ImageRef | None = None,
    ) -> None:
        """
        Apply reviewed alt text to an image.

        Persists ``text`` through the sink and marks the matching statistics
        record as applied. When the user edited the text and ``image_ref`` is
        given, the cached description for the image is invalidated.

        Args:
            image_id: Image the text belongs to
            text: Final alt text, possibly edited by the user
            original_text: Text that was generated, if different from ``text``
            tokens_used: Tokens spent, used when no record exists yet (preview flow)
            image_ref: Image reference used to locate the cache entry

        Raises:
            InvalidInput: If ``text`` is blank
            ImageSourceError: If ``image_ref`` cannot be resolved; nothing is written
            EnrichmentError: If the sink fails
        """
        if not text or not text.strip():
            raise InvalidInput("Missing alt text to apply")

        generated = original_text or text
        edited = text != generated

        stale_key = None
        if edited and image_ref is not None:
            image = await self.resolver.resolve(image_ref)
            stale_key = self.cache.key_for(image.data, image.mtime)

        self._persist(image_id, text)

        if self.stats is not None:
            try:
                if self.stats.mark_applied(image_id, generated, text) is None:
                    self.stats.record(
                        image_id,
                        generated,
                        tokens_used,
                        GenerationType.MANUAL.value,
                        applied=True,
                        edited=edited,
                        edited_text=text if edited else None,
                    )
            except Exception as e:
                logger.warning("Could not update statistics for {}: {}", image_id, e)

        if stale_key is not None:
            self.cache.invalidate(stale_key)

        logger.info("Applied alt text to {} (edited={})", image_id, edited)

    def invalidate(self, key: str) -> bool:
        """Drop a cached description. Hosts call this on image edit, replace or delete."""
        return self.cache.invalidate(key)

    def _fail(self, image_ref: ImageRef, error: EnrichmentError) -> None:
        self.last_error = str(error)
        logger.warning(
            "Alt text generation failed for {}: {} ({})",
            image_ref.id,
            error,
            type(error).__name__,
        )

    def _persist(self, image_id: str, text: str) -> None:
        if self.alt_text_sink is None:
            return
        try:
            self.alt_text_sink(image_id, text)
        except Exception as e:
            raise EnrichmentError(f"Failed to update alt text: {e}") from e

    def _record(self, image_id: str, description: Description, mode: str) -> None:
        if self.stats is None:
            return
        try:
            self.stats.record(image_id, description.text, description.tokens_used, mode)
        except Exception as e:
            logger.warning("Could not record statistics for {}: {}", image_id, e)

    def _sync_languages(self, image_id: str, text: str) -> None:
        try:
            self.language_sync.sync(image_id, text)
        except Exception as e:
            logger.warning("Language sync via {} failed for {}: {}", self.language_sync.name, image_id, e)
