"""
Tests for configuration module.

Tests Settings defaults, the EnrichmentConfig snapshot, and live updates
through ConfigProvider.
"""

from pathlib import Path

import pytest
from pydantic import ValidationError

from alt_text_enricher.config import ConfigProvider, EnrichmentConfig, Settings


class TestSettings:
    """Test Settings class."""

    def test_default_values(self, monkeypatch):
        """Test that default values are set correctly."""
        # Clear env vars that might override defaults from .env file
        for name in (
            "OPENAI_MODEL",
            "CACHE_TTL_DAYS",
            "CACHE_BACKEND",
            "RATE_LIMIT_CALLS",
            "LANGUAGE",
        ):
            monkeypatch.delenv(name, raising=False)

        settings = Settings(openai_api_key="test-key")

        assert settings.openai_model == "gpt-4o"
        assert settings.cache_ttl_days == 30
        assert settings.cache_backend == "file"
        assert settings.rate_limit_calls == 50
        assert settings.rate_limit_window == 60.0
        assert settings.language == "en"
        assert settings.batch_chunk_size == 10
        assert settings.batch_max_size == 50
        assert settings.host == "0.0.0.0"
        assert settings.port == 8000
        assert settings.log_level == "INFO"
        assert settings.log_json is False

    def test_cache_file_property(self):
        """Test cache_file property returns Path object."""
        settings = Settings(openai_api_key="test-key", cache_path="./data/my-cache.json")

        assert isinstance(settings.cache_file, Path)
        assert str(settings.cache_file) == "data/my-cache.json"

    def test_stats_file_empty_means_memory(self):
        """Test an empty stats path disables the stats file."""
        settings = Settings(openai_api_key="test-key", stats_path="")

        assert settings.stats_file is None

    def test_env_override(self, monkeypatch):
        """Test environment variables override defaults."""
        monkeypatch.setenv("RATE_LIMIT_CALLS", "7")
        monkeypatch.setenv("LANGUAGE", "sv")

        settings = Settings()

        assert settings.rate_limit_calls == 7
        assert settings.language == "sv"

    def test_empty_api_key_allowed(self):
        """Test that empty API key is allowed (will fail at runtime)."""
        settings = Settings(openai_api_key="")

        assert settings.openai_api_key == ""

    def test_to_enrichment_config(self):
        """Test conversion to the core configuration snapshot."""
        settings = Settings(
            openai_api_key="secret",
            max_tokens=150,
            rate_limit_calls=10,
            language="de",
        )

        cfg = settings.to_enrichment_config()

        assert cfg.credential == "secret"
        assert cfg.token_cap == 150
        assert cfg.rate_limit_per_window == 10
        assert cfg.language_code == "de"


class TestEnrichmentConfig:
    """Test EnrichmentConfig snapshot."""

    def test_ttl_in_seconds(self):
        """Test TTL days are converted to seconds."""
        cfg = EnrichmentConfig(cache_ttl_days=2)

        assert cfg.cache_ttl_seconds == 2 * 86400

    def test_is_frozen(self):
        """Test snapshots cannot be mutated in place."""
        cfg = EnrichmentConfig()

        with pytest.raises(ValidationError):
            cfg.token_cap = 10

    def test_credential_hidden_from_repr(self):
        """Test the credential does not appear in repr."""
        cfg = EnrichmentConfig(credential="sk-very-secret")

        assert "sk-very-secret" not in repr(cfg)


class TestConfigProvider:
    """Test ConfigProvider live updates."""

    def test_update_replaces_snapshot(self):
        """Test update returns and stores a new snapshot."""
        provider = ConfigProvider()
        before = provider.get()

        after = provider.update(rate_limit_per_window=3)

        assert provider.get() is after
        assert after.rate_limit_per_window == 3
        assert before.rate_limit_per_window == 50

    def test_update_validates(self):
        """Test invalid values are rejected and the old snapshot kept."""
        provider = ConfigProvider()

        with pytest.raises(ValidationError):
            provider.update(timeout=0)

        assert provider.get().timeout == 30.0

    def test_from_settings(self):
        """Test provider seeded from settings."""
        provider = ConfigProvider.from_settings(Settings(openai_api_key="k", openai_model="gpt-x"))

        assert provider.get().model == "gpt-x"


class TestMockSettings:
    """Test settings loaded from a patched environment."""

    def test_env_paths(self, mock_settings, temp_dir):
        """Test file paths and key come from the environment."""
        assert mock_settings.openai_api_key == "test-api-key"
        assert mock_settings.cache_file == temp_dir / "cache.json"
        assert mock_settings.stats_file == temp_dir / "stats.json"
        assert mock_settings.log_level == "DEBUG"
