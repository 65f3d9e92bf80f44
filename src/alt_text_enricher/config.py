"""Configuration management using pydantic-settings.

Loads from environment variables and .env file. The enrichment core never
reads ``Settings`` directly: it asks a ``ConfigProvider`` for the current
``EnrichmentConfig`` snapshot on every call, so values can be tuned live.
"""

import threading
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    Attributes:
        openai_api_key: Credential for the vision API.
        openai_model: Chat model used for image descriptions.
        api_base_url: Base URL of the chat-completions API.
        request_timeout: HTTP timeout for API calls in seconds.
        max_tokens: Cap on generated output tokens per request.
        cache_ttl_days: Days a generated description stays cached.
        cache_backend: Cache store type, either "memory" or "file".
        cache_path: JSON file used by the file cache backend.
        rate_limit_calls: Maximum API calls allowed per window.
        rate_limit_window: Rate limit window length in seconds.
        language: Target language code for generated text.
        instruction_template: Optional custom prompt with a {LANGUAGE} placeholder.
        inline_remote_images: Send remote images as data URIs instead of links.
        transport_retries: Extra attempts after a network-level failure.
        batch_chunk_size: Default number of images per batch chunk.
        batch_max_size: Maximum number of images accepted in one batch.
        batch_chunk_delay: Pause between batch chunks in seconds.
        stats_path: JSON file for generation statistics (empty for in-memory).
        image_fetch_timeout: HTTP timeout for remote image fetching in seconds.
        jpeg_quality: JPEG quality used when transcoding unsupported formats.
        host: Server bind address.
        port: Server bind port.
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_json: Output logs in JSON format for production.
        log_file: Optional log file path.

    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Vision API
    openai_api_key: str = ""
    openai_model: str = "gpt-4o"
    api_base_url: str = "https://api.openai.com/v1"
    request_timeout: float = 30.0
    max_tokens: int = 300

    # Response cache
    cache_ttl_days: int = 30
    cache_backend: str = "file"  # memory | file
    cache_path: str = "./data/alt_text_cache.json"

    # Rate limiting
    rate_limit_calls: int = 50
    rate_limit_window: float = 60.0

    # Prompting
    language: str = "en"
    instruction_template: str | None = None
    inline_remote_images: bool = True
    transport_retries: int = 0

    # Batch processing
    batch_chunk_size: int = 10
    batch_max_size: int = 50
    batch_chunk_delay: float = 2.0

    # Statistics
    stats_path: str = "./data/generation_stats.json"

    # Images
    image_fetch_timeout: int = 30
    jpeg_quality: int = 85

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    # Logging
    log_level: str = "INFO"
    log_json: bool = False
    log_file: str | None = None

    @property
    def cache_file(self) -> Path:
        """Return the cache file as a Path object.

        Returns:
            Path: Path to the JSON cache file.

        """
        return Path(self.cache_path)

    @property
    def stats_file(self) -> Path | None:
        """Return the statistics file as a Path object, or None for in-memory stats."""
        return Path(self.stats_path) if self.stats_path else None

    def to_enrichment_config(self) -> "EnrichmentConfig":
        """Build the typed configuration snapshot consumed by the enrichment core."""
        return EnrichmentConfig(
            credential=self.openai_api_key,
            model=self.openai_model,
            api_base_url=self.api_base_url,
            timeout=self.request_timeout,
            token_cap=self.max_tokens,
            cache_ttl_days=self.cache_ttl_days,
            rate_limit_per_window=self.rate_limit_calls,
            rate_limit_window=self.rate_limit_window,
            language_code=self.language,
            instruction_template=self.instruction_template,
            inline_remote_images=self.inline_remote_images,
            transport_retries=self.transport_retries,
            jpeg_quality=self.jpeg_quality,
        )


class EnrichmentConfig(BaseModel):
    """Immutable snapshot of the values the enrichment core reads per call."""

    model_config = ConfigDict(frozen=True)

    credential: str = Field(default="", repr=False, description="Vision API credential")
    model: str = "gpt-4o"
    api_base_url: str = "https://api.openai.com/v1"
    timeout: float = Field(default=30.0, gt=0)
    token_cap: int = Field(default=300, gt=0)
    cache_ttl_days: float = Field(default=30, ge=0)
    rate_limit_per_window: int = Field(default=50, ge=0)
    rate_limit_window: float = Field(default=60.0, gt=0)
    language_code: str = "en"
    instruction_template: str | None = None
    inline_remote_images: bool = True
    transport_retries: int = Field(default=0, ge=0)
    jpeg_quality: int = Field(default=85, ge=1, le=100)

    @property
    def cache_ttl_seconds(self) -> float:
        """Return the cache TTL in seconds."""
        return self.cache_ttl_days * 86400


class ConfigProvider:
    """Holds the current ``EnrichmentConfig`` and lets operators swap it live.

    Services keep a reference to the provider, never to a snapshot, and call
    ``get()`` whenever they need a value.
    """

    def __init__(self, config: EnrichmentConfig | None = None):
        self._config = config or EnrichmentConfig()
        self._lock = threading.Lock()

    @classmethod
    def from_settings(cls, app_settings: Settings) -> "ConfigProvider":
        """Create a provider seeded from application settings."""
        return cls(app_settings.to_enrichment_config())

    def get(self) -> EnrichmentConfig:
        """Return the current configuration snapshot."""
        with self._lock:
            return self._config

    def update(self, **changes) -> EnrichmentConfig:
        """Replace selected values and return the new snapshot.

        Raises:
            pydantic.ValidationError: If a changed value is invalid.

        """
        with self._lock:
            data = self._config.model_dump()
            data.update(changes)
            self._config = EnrichmentConfig.model_validate(data)
            return self._config


# Global settings instance
settings = Settings()
