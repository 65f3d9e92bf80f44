"""Pytest fixtures and configuration for alt-text-enricher tests.

This module provides shared fixtures for testing the rate limiter, caches,
vision client, enrichment service, batch processor and MCP server.
"""

import tempfile
from collections.abc import Generator
from io import BytesIO
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest
from PIL import Image

from alt_text_enricher.cache import MemoryCacheStore, ResponseCache
from alt_text_enricher.config import ConfigProvider, EnrichmentConfig
from alt_text_enricher.images import ImageRef, ImageResolver, ResolvedImage
from alt_text_enricher.stats import StatisticsRecorder
from alt_text_enricher.vision import Description, VisionClient


class FakeClock:
    """Manually advanced time source."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_image_bytes(image_format: str = "JPEG", color: str = "red", size=(100, 100)) -> bytes:
    """Render a solid-colour image with Pillow."""
    mode = "RGBA" if image_format in ("PNG", "WEBP") else "RGB"
    img = Image.new(mode, size, color=color)
    buffer = BytesIO()
    img.save(buffer, format=image_format)
    return buffer.getvalue()


# --- Helper Fixtures ---


@pytest.fixture
def make_image():
    """Return the image rendering helper."""
    return make_image_bytes


# --- Temporary Directory Fixtures ---


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmp:
        yield Path(tmp)


# --- Sample Data Fixtures ---


@pytest.fixture
def sample_image_bytes() -> bytes:
    """Create sample image bytes for testing."""
    # A simple 100x100 red JPEG
    return make_image_bytes("JPEG")


@pytest.fixture
def sample_bmp_bytes() -> bytes:
    """Create BMP image bytes, a format the vision API does not accept."""
    return make_image_bytes("BMP", color="blue")


@pytest.fixture
def sample_image_file(temp_dir: Path, sample_image_bytes: bytes) -> Path:
    """Write the sample JPEG to disk."""
    path = temp_dir / "photo.jpg"
    path.write_bytes(sample_image_bytes)
    return path


@pytest.fixture
def image_ref(sample_image_file: Path) -> ImageRef:
    """Create a reference to the sample JPEG on disk."""
    return ImageRef(id="img-1", path=str(sample_image_file))


# --- Core Object Fixtures ---


@pytest.fixture
def clock() -> FakeClock:
    """Create a controllable clock."""
    return FakeClock()


@pytest.fixture
def config_provider() -> ConfigProvider:
    """Create a config provider with a test credential."""
    return ConfigProvider(
        EnrichmentConfig(
            credential="test-api-key",
            rate_limit_per_window=5,
            rate_limit_window=60.0,
            cache_ttl_days=1,
        )
    )


@pytest.fixture
def response_cache(config_provider: ConfigProvider, clock: FakeClock) -> ResponseCache:
    """Create a response cache over an in-memory store."""
    return ResponseCache(MemoryCacheStore(clock=clock), config_provider)


@pytest.fixture
def stats_recorder() -> StatisticsRecorder:
    """Create an in-memory statistics recorder."""
    return StatisticsRecorder()


# --- Mock Provider Fixtures ---


@pytest.fixture
def mock_vision_client() -> VisionClient:
    """Create a mock vision client returning a fixed description."""
    client = MagicMock(spec=VisionClient)
    client.model_name = "mock-model"
    client.describe = AsyncMock(
        return_value=Description(text="A red square on a plain background", tokens_used=120)
    )
    return client


@pytest.fixture
def mock_resolver(sample_image_bytes: bytes) -> ImageResolver:
    """Create a resolver that returns the sample JPEG for any reference."""
    resolver = MagicMock(spec=ImageResolver)

    async def mock_resolve(ref: ImageRef) -> ResolvedImage:
        """Resolve every reference to the sample bytes."""
        return ResolvedImage(
            ref=ref,
            data=sample_image_bytes,
            mime_type="image/jpeg",
            mtime=1_700_000_000.0,
            width=100,
            height=100,
        )

    resolver.resolve = AsyncMock(side_effect=mock_resolve)
    return resolver


# --- Settings Override Fixtures ---


@pytest.fixture
def mock_settings(temp_dir: Path, monkeypatch):
    """Override settings with test values."""
    monkeypatch.setenv("OPENAI_API_KEY", "test-api-key")
    monkeypatch.setenv("CACHE_PATH", str(temp_dir / "cache.json"))
    monkeypatch.setenv("STATS_PATH", str(temp_dir / "stats.json"))
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")

    # Reload settings to pick up new env vars
    from alt_text_enricher.config import Settings

    return Settings()


# --- HTTP Mock Fixtures ---


@pytest.fixture
def mock_openai_response():
    """Create a mock chat-completions response."""
    return {
        "id": "chatcmpl-123",
        "object": "chat.completion",
        "model": "gpt-4o",
        "choices": [
            {
                "index": 0,
                "message": {"role": "assistant", "content": "  A red square on a plain background  "},
                "finish_reason": "stop",
            }
        ],
        "usage": {"prompt_tokens": 90, "completion_tokens": 30, "total_tokens": 120},
    }


# --- Enricher Fixtures ---


@pytest.fixture
def enricher(mock_vision_client, mock_resolver, stats_recorder, clock):
    """Create a fully wired enricher with mocked client and resolver."""
    from alt_text_enricher.config import Settings
    from alt_text_enricher.enrichment import create_enricher

    app_settings = Settings(
        openai_api_key="test-api-key",
        stats_path="",
        batch_chunk_delay=0,
    )
    return create_enricher(
        app_settings,
        resolver=mock_resolver,
        client=mock_vision_client,
        cache_store=MemoryCacheStore(clock=clock),
        stats=stats_recorder,
    )
