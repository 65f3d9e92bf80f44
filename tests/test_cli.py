"""Tests for CLI commands.

Tests serve, generate, batch, stats, cache-clear and info commands.
"""

import json
from unittest.mock import MagicMock, patch

import pytest
from typer.testing import CliRunner

from alt_text_enricher.cli import app
from alt_text_enricher.config import Settings
from alt_text_enricher.errors import ApiError
from alt_text_enricher.vision import Description

runner = CliRunner()


@pytest.fixture
def cli_enricher(enricher):
    """Run commands against the test enricher with an API key configured."""
    test_settings = Settings(openai_api_key="test-api-key", stats_path="", log_level="ERROR")
    with (
        patch("alt_text_enricher.cli.settings", test_settings),
        patch("alt_text_enricher.cli.create_enricher", return_value=enricher),
    ):
        yield enricher


@pytest.fixture
def no_api_key():
    """Run commands without an API key."""
    with patch(
        "alt_text_enricher.cli.settings",
        Settings(openai_api_key="", stats_path="", log_level="ERROR"),
    ):
        yield


class TestServeCommand:
    """Test serve command."""

    def test_serve_default_options(self):
        """Test serve command with default options."""
        with patch("alt_text_enricher.server.mcp") as mock_mcp:
            mock_mcp.run = MagicMock()

            result = runner.invoke(app, ["serve"])

            assert result.exit_code == 0
            mock_mcp.run.assert_called_once()
            call_kwargs = mock_mcp.run.call_args.kwargs
            assert call_kwargs["transport"] == "http"
            assert call_kwargs["path"] == "/mcp"

    def test_serve_custom_port(self):
        """Test serve command with custom port."""
        with patch("alt_text_enricher.server.mcp") as mock_mcp:
            mock_mcp.run = MagicMock()

            result = runner.invoke(app, ["serve", "--port", "9000"])

            assert result.exit_code == 0
            assert mock_mcp.run.call_args.kwargs["port"] == 9000

    def test_serve_warns_without_key(self, no_api_key):
        """Test serve warns when the API key is missing."""
        with patch("alt_text_enricher.server.mcp") as mock_mcp:
            mock_mcp.run = MagicMock()

            result = runner.invoke(app, ["serve"])

            assert result.exit_code == 0
            assert "OPENAI_API_KEY not set" in result.output


class TestGenerateCommand:
    """Test generate command."""

    def test_generate(self, cli_enricher, sample_image_file):
        """Test generating alt text for a file."""
        result = runner.invoke(app, ["generate", str(sample_image_file)])

        assert result.exit_code == 0
        assert "A red square on a plain background" in result.output
        assert "120 tokens" in result.output
        assert cli_enricher.stats.records()[0].generation_type == "cli"

    def test_generate_preview(self, cli_enricher, sample_image_file):
        """Test preview leaves the cache empty."""
        result = runner.invoke(app, ["generate", str(sample_image_file), "--preview"])

        assert result.exit_code == 0
        assert "preview" in result.output
        assert cli_enricher.cache.size() == 0

    def test_generate_language_override(self, cli_enricher, sample_image_file, mock_vision_client):
        """Test --language changes the instruction language."""
        result = runner.invoke(app, ["generate", str(sample_image_file), "--language", "fi"])

        assert result.exit_code == 0
        assert "Finnish" in mock_vision_client.describe.call_args.args[1]

    def test_generate_failure(self, cli_enricher, sample_image_file, mock_vision_client):
        """Test failures exit non-zero with the error."""
        mock_vision_client.describe.side_effect = ApiError("Invalid image", status_code=400)

        result = runner.invoke(app, ["generate", str(sample_image_file)])

        assert result.exit_code == 1
        assert "Invalid image" in result.output

    def test_generate_requires_key(self, no_api_key, sample_image_file):
        """Test generate refuses to run without an API key."""
        result = runner.invoke(app, ["generate", str(sample_image_file)])

        assert result.exit_code == 1
        assert "OPENAI_API_KEY not set" in result.output


@pytest.fixture
def file_cache_cli(temp_dir, mock_vision_client):
    """Run commands through the real enricher factory with the default file cache."""
    test_settings = Settings(
        openai_api_key="test-api-key",
        cache_path=str(temp_dir / "cache.json"),
        stats_path="",
        log_level="ERROR",
    )
    with (
        patch("alt_text_enricher.cli.settings", test_settings),
        patch(
            "alt_text_enricher.enrichment.enricher.create_vision_client",
            return_value=mock_vision_client,
        ),
    ):
        yield test_settings


class TestPersistentCache:
    """Test the CLI cache survives between invocations."""

    def test_second_run_served_from_cache(self, file_cache_cli, sample_image_file, mock_vision_client):
        """Test a repeated generate does not call the API again."""
        first = runner.invoke(app, ["generate", str(sample_image_file)])
        second = runner.invoke(app, ["generate", str(sample_image_file)])

        assert first.exit_code == 0
        assert second.exit_code == 0
        assert "(cached)" in second.output
        assert mock_vision_client.describe.await_count == 1

    def test_cache_clear_and_info_see_entries(self, file_cache_cli, sample_image_file):
        """Test info and cache-clear report entries written by earlier runs."""
        runner.invoke(app, ["generate", str(sample_image_file)])

        info = runner.invoke(app, ["info"])
        cleared = runner.invoke(app, ["cache-clear"])

        assert "Cached descriptions: 1" in info.output
        assert "Cleared 1 cached alt texts" in cleared.output

    def test_language_override_bypasses_warm_cache(
        self, file_cache_cli, sample_image_file, mock_vision_client
    ):
        """Test --language is honoured even when the image is already cached."""

        async def describe(data, instruction, **kwargs):
            if "Swedish" in instruction:
                return Description(text="En röd kvadrat", tokens_used=90)
            return Description(text="A red square", tokens_used=80)

        mock_vision_client.describe.side_effect = describe

        runner.invoke(app, ["generate", str(sample_image_file)])
        result = runner.invoke(app, ["generate", str(sample_image_file), "--language", "sv"])
        again = runner.invoke(app, ["generate", str(sample_image_file)])

        assert result.exit_code == 0
        assert "En röd kvadrat" in result.output
        assert "not cached" in result.output
        assert mock_vision_client.describe.await_count == 2
        # The configured-language entry is left untouched
        assert "A red square" in again.output
        assert "(cached)" in again.output

    def test_configured_language_uses_cache(self, file_cache_cli, sample_image_file, mock_vision_client):
        """Test passing the configured language keeps normal caching."""
        runner.invoke(app, ["generate", str(sample_image_file)])

        result = runner.invoke(app, ["generate", str(sample_image_file), "--language", "en"])

        assert "(cached)" in result.output
        assert mock_vision_client.describe.await_count == 1


class TestBatchCommand:
    """Test batch command."""

    def test_batch_json(self, cli_enricher):
        """Test JSON output contains every image."""
        result = runner.invoke(app, ["batch", "/a.jpg", "/b.jpg", "--output", "json"])

        assert result.exit_code == 0
        payload = json.loads(result.stdout)
        assert set(payload) == {"/a.jpg", "/b.jpg"}
        assert payload["/a.jpg"]["text"] == "A red square on a plain background"

    def test_batch_table(self, cli_enricher):
        """Test table output with summary line."""
        result = runner.invoke(app, ["batch", "/a.jpg", "/b.jpg"])

        assert result.exit_code == 0
        assert "Batch Results" in result.output
        assert "Succeeded: 2" in result.output

    def test_batch_with_failure_exits_nonzero(self, cli_enricher, mock_vision_client):
        """Test a batch with failures exits with status 1."""
        mock_vision_client.describe.side_effect = ApiError("denied", status_code=403)

        result = runner.invoke(app, ["batch", "/a.jpg", "--output", "json"])

        assert result.exit_code == 1
        assert json.loads(result.stdout)["/a.jpg"]["error"] == "denied"

    def test_batch_invalid_chunk_size(self, cli_enricher):
        """Test an invalid chunk size is rejected."""
        result = runner.invoke(app, ["batch", "/a.jpg", "--chunk-size", "0"])

        assert result.exit_code == 1
        assert "Chunk size" in result.output


class TestStatsCommand:
    """Test stats command."""

    def test_stats(self, cli_enricher, sample_image_file):
        """Test statistics tables after one generation."""
        runner.invoke(app, ["generate", str(sample_image_file)])

        result = runner.invoke(app, ["stats"])

        assert result.exit_code == 0
        assert "Alt Text Generation Statistics" in result.output
        assert "Command line" in result.output


class TestCacheClearCommand:
    """Test cache-clear command."""

    def test_cache_clear(self, cli_enricher, sample_image_file):
        """Test clearing the cache."""
        runner.invoke(app, ["generate", str(sample_image_file)])

        result = runner.invoke(app, ["cache-clear"])

        assert result.exit_code == 0
        assert "Cleared 1 cached alt texts" in result.output
        assert cli_enricher.cache.size() == 0


class TestInfoCommand:
    """Test info command."""

    def test_info_displays_settings(self, cli_enricher):
        """Test info command displays settings."""
        result = runner.invoke(app, ["info"])

        assert result.exit_code == 0
        assert "Alt Text Enricher Configuration" in result.output
        assert "test-api-key" not in result.output
        assert "Cached descriptions: 0" in result.output


class TestHelpOutput:
    """Test help output for commands."""

    def test_main_help(self):
        """Test main help output."""
        result = runner.invoke(app, ["--help"])

        assert result.exit_code == 0
        for command in ("serve", "generate", "batch", "stats", "cache-clear", "info"):
            assert command in result.output

    def test_batch_help(self):
        """Test batch command help."""
        result = runner.invoke(app, ["batch", "--help"])

        assert result.exit_code == 0
        assert "--chunk-size" in result.output
        assert "--output" in result.output


class TestVerboseFlag:
    """Test verbose flag on main command."""

    def test_verbose_flag_sets_debug(self):
        """Test that -v flag enables debug logging."""
        with patch("alt_text_enricher.server.mcp") as mock_mcp:
            mock_mcp.run = MagicMock()

            result = runner.invoke(app, ["-v", "serve"])

            assert result.exit_code == 0 or mock_mcp.run.called
