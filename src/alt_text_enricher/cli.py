"""
CLI for the Alt Text Enricher.

Commands:
- serve: Start the MCP server
- generate: Describe one image
- batch: Describe several images
- stats: Show generation statistics
- cache-clear: Drop every cached description
- info: Show configuration and status
"""

import asyncio
import json

import typer
from loguru import logger
from rich.console import Console
from rich.table import Table

from .config import settings
from .enrichment import GenerationType, create_enricher, summarize
from .errors import InvalidInput
from .images import ImageRef, format_support
from .logging import setup_logging
from .prompts import LANGUAGES, language_name
from .stats import type_label

app = typer.Typer(
    name="alt-text-enricher",
    help="Vision-model alt text generation with caching and batch support",
)
console = Console()


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
):
    """Alt Text Enricher - accessible image descriptions from a vision model."""
    log_level = "DEBUG" if verbose else settings.log_level
    setup_logging(level=log_level, json_output=settings.log_json, log_file=settings.log_file)
    logger.debug("CLI initialized with log level: {}", log_level)


def _require_api_key() -> None:
    if not settings.openai_api_key:
        logger.error("OPENAI_API_KEY not set - cannot generate alt text")
        console.print("[red]Error: OPENAI_API_KEY not set[/]")
        raise typer.Exit(1)


@app.command()
def serve(
    host: str = typer.Option(settings.host, "--host", "-h", help="Host to bind to"),
    port: int = typer.Option(settings.port, "--port", "-p", help="Port to bind to"),
):
    """Start the MCP server with Streamable HTTP transport."""
    from .server import mcp

    logger.info("Starting MCP server on {}:{}", host, port)
    console.print("[bold blue]Starting Alt Text Enricher MCP Server[/]")
    console.print(f"Host: {host}:{port}")
    console.print(f"MCP endpoint: http://{host}:{port}/mcp")
    console.print()

    if not settings.openai_api_key:
        logger.warning("OPENAI_API_KEY not set - tools will fail")
        console.print("[red]Warning: OPENAI_API_KEY not set. Tools will fail.[/]")

    mcp.run(transport="http", host=host, port=port, path="/mcp")


@app.command()
def generate(
    source: str = typer.Argument(..., help="Image file path or http(s) URL"),
    image_id: str | None = typer.Option(None, "--id", help="Identifier recorded in statistics"),
    preview: bool = typer.Option(False, "--preview", help="Do not cache or record the result"),
    language: str | None = typer.Option(None, "--language", "-l", help="Target language code"),
):
    """Generate alt text for a single image.

    A --language that differs from the configured language bypasses the
    cache, which is keyed on image content only.
    """
    _require_api_key()

    if language is not None and language not in LANGUAGES:
        console.print(f"[yellow]Unknown language code '{language}', sending it verbatim[/]")

    enricher = create_enricher(settings)
    override = language is not None and language != settings.language
    if override:
        enricher.config.update(language_code=language)

    try:
        ref = ImageRef.from_source(source, image_id)
    except ValueError as e:
        console.print(f"[red]Error: {e}[/]")
        raise typer.Exit(1) from e

    logger.info("Generating alt text for {}", ref.id)
    outcome = asyncio.run(
        enricher.generate_one(ref, mode=GenerationType.CLI, preview=preview or override)
    )

    if not outcome.ok:
        console.print(f"[red]Error: {outcome.error}[/]")
        raise typer.Exit(1)

    if override and not preview:
        logger.info("Language override {} for {}, result not cached", language, ref.id)
        enricher.stats.record(ref.id, outcome.text, outcome.tokens or 0, GenerationType.CLI.value)

    console.print(outcome.text)
    details = "cached" if outcome.cached else f"{outcome.tokens} tokens"
    if preview:
        details += ", preview"
    elif override:
        details += f", {language_name(language)}, not cached"
    console.print(f"[dim]({details})[/]")


@app.command()
def batch(
    sources: list[str] = typer.Argument(..., help="Image file paths or http(s) URLs"),
    chunk_size: int | None = typer.Option(
        None, "--chunk-size", "-c", help="Images per chunk (defaults to BATCH_CHUNK_SIZE)"
    ),
    output: str = typer.Option("table", "--output", "-o", help="Output format: table or json"),
):
    """Generate alt text for several images."""
    _require_api_key()
    enricher = create_enricher(settings)

    try:
        refs = [ImageRef.from_source(source) for source in sources]
        results = asyncio.run(
            enricher.generate_batch(refs, chunk_size=chunk_size, show_progress=output == "table")
        )
    except (InvalidInput, ValueError) as e:
        console.print(f"[red]Error: {e}[/]")
        raise typer.Exit(1) from e

    summary = summarize(results)
    logger.info(
        "Batch finished: {} succeeded, {} failed, {} tokens",
        len(summary.succeeded),
        len(summary.failed),
        summary.total_tokens,
    )

    if output == "json":
        payload = {image_id: outcome.model_dump() for image_id, outcome in results.items()}
        typer.echo(json.dumps(payload, indent=2))
    else:
        table = Table(title="Batch Results")
        table.add_column("Image", style="cyan")
        table.add_column("Alt Text / Error")
        table.add_column("Tokens", style="green")
        for image_id, outcome in results.items():
            if outcome.ok:
                tokens = "cached" if outcome.cached else str(outcome.tokens)
                table.add_row(image_id, outcome.text, tokens)
            else:
                table.add_row(image_id, f"[red]{outcome.error}[/]", "-")
        console.print(table)
        console.print(
            f"Succeeded: {len(summary.succeeded)}  Failed: {len(summary.failed)}  "
            f"Tokens: {summary.total_tokens}"
        )

    if summary.failed:
        raise typer.Exit(1)


@app.command()
def stats(
    recent: int = typer.Option(10, "--recent", "-r", help="Number of recent generations to show"),
):
    """Show alt text generation statistics."""
    enricher = create_enricher(settings)
    summary = enricher.stats.aggregate(recent=recent)
    logger.debug("Statistics: {} generations, {} tokens", summary.count, summary.total_tokens)

    console.print("[bold blue]Alt Text Generation Statistics[/]")

    table = Table(title="Totals")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Generated", str(summary.count))
    table.add_row("Applied", str(summary.applied))
    table.add_row("Edited", str(summary.edited))
    table.add_row("Total Tokens", f"{summary.total_tokens:,}")
    table.add_row("Average Tokens", str(summary.average_tokens))
    table.add_row("Estimated Cost (USD)", f"${summary.estimated_cost:.4f}")
    console.print(table)

    if summary.counts_by_type:
        by_type = Table(title="By Type")
        by_type.add_column("Type", style="cyan")
        by_type.add_column("Count", style="green")
        for generation_type, count in sorted(summary.counts_by_type.items()):
            by_type.add_row(type_label(generation_type), str(count))
        console.print(by_type)

    if summary.recent:
        recent_table = Table(title="Recent Generations")
        recent_table.add_column("Image", style="cyan")
        recent_table.add_column("#")
        recent_table.add_column("Type")
        recent_table.add_column("Alt Text")
        for item in summary.recent:
            entry = item.record
            recent_table.add_row(
                entry.image_id,
                str(item.update_number),
                type_label(entry.generation_type),
                entry.edited_text or entry.generated_text,
            )
        console.print(recent_table)


@app.command()
def cache_clear():
    """Remove every cached alt text."""
    enricher = create_enricher(settings)
    removed = enricher.cache.clear()
    logger.info("Cleared {} cached alt texts", removed)
    console.print(f"[green]Cleared {removed} cached alt texts[/]")


@app.command()
def info():
    """Show configuration and cache status."""
    logger.debug("Displaying configuration and status")
    console.print("[bold blue]Alt Text Enricher Configuration[/]")

    table = Table(title="Settings")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("OpenAI Model", settings.openai_model)
    table.add_row("OpenAI API Key", "***" if settings.openai_api_key else "[red]NOT SET[/]")
    table.add_row("API Base URL", settings.api_base_url)
    table.add_row("Language", f"{language_name(settings.language)} ({settings.language})")
    table.add_row("Cache Backend", settings.cache_backend)
    table.add_row("Cache TTL (days)", str(settings.cache_ttl_days))
    table.add_row("Rate Limit", f"{settings.rate_limit_calls} / {settings.rate_limit_window:g}s")
    table.add_row("Batch Chunk Size", str(settings.batch_chunk_size))
    table.add_row("Stats Path", settings.stats_path or "(in memory)")
    table.add_row("Server Host", settings.host)
    table.add_row("Server Port", str(settings.port))

    console.print(table)

    console.print("\n[bold]Cache Status[/]")
    try:
        enricher = create_enricher(settings)
        size = enricher.cache.size()
        logger.debug("Cache status: {} entries", size)
        console.print(f"Cached descriptions: {size}")
    except Exception as e:
        logger.error("Error accessing cache: {}", e)
        console.print(f"[red]Error accessing cache: {e}[/]")

    console.print("\n[bold]Image Format Support[/]")
    for name, supported in format_support().items():
        status = "[green]yes[/]" if supported else "[yellow]no[/]"
        console.print(f"{name.upper()}: {status}")


if __name__ == "__main__":
    app()
