"""
FastMCP server exposing alt text generation as tools.

The tools are thin wrappers over the shared ``Enricher``; every algorithmic
decision lives in the enrichment core.
"""

from __future__ import annotations

from typing import Any

from fastmcp import FastMCP
from loguru import logger

from .config import settings
from .enrichment import Enricher, GenerationType, create_enricher, summarize
from .errors import InvalidInput
from .images import ImageRef
from .stats import type_label

# Initialize lazily (on first tool call)
_enricher: Enricher | None = None


def get_enricher() -> Enricher:
    """Get or create the shared enricher."""
    global _enricher
    if _enricher is None:
        logger.debug("Initializing enricher: model={}", settings.openai_model)
        _enricher = create_enricher(settings)
        logger.info("Enricher initialized successfully")
    return _enricher


mcp = FastMCP(
    name="alt-text-enricher",
    instructions=(
        "Generates concise, accessible alt text for images using a vision model. "
        "Accepts local file paths or http(s) URLs. Results are cached by image "
        "content, and batch requests report per-image successes and failures."
    ),
)


def _ref(source: str, image_id: str | None = None) -> ImageRef:
    try:
        return ImageRef.from_source(source, image_id)
    except ValueError as e:
        raise InvalidInput(str(e)) from e


@mcp.tool()
async def generate_alt_text(
    source: str,
    image_id: str | None = None,
    preview: bool = False,
) -> dict[str, Any]:
    """
    Generate alt text for a single image.

    Args:
        source: Local file path or http(s) URL of the image
        image_id: Optional stable identifier (defaults to the source)
        preview: Return the text without caching or recording it

    Returns:
        {"success": true, "alt_text", "tokens_used", "cached"} or
        {"success": false, "message"}
    """
    logger.info("Generate request: source='{}', preview={}", source[:80], preview)
    enricher = get_enricher()
    try:
        ref = _ref(source, image_id)
    except InvalidInput as e:
        return {"success": False, "message": str(e)}
    outcome = await enricher.generate_one(ref, mode=GenerationType.API, preview=preview)

    if outcome.ok:
        return {
            "success": True,
            "alt_text": outcome.text,
            "tokens_used": outcome.tokens,
            "cached": outcome.cached,
        }
    return {"success": False, "message": outcome.error}


@mcp.tool()
async def generate_alt_text_batch(
    sources: list[str],
    chunk_size: int | None = None,
) -> dict[str, Any]:
    """
    Generate alt text for several images.

    A failure for one image does not stop the others. Retry only the ids
    listed under "failed".

    Args:
        sources: Local file paths or http(s) URLs
        chunk_size: Images per chunk (defaults to the server setting)

    Returns:
        Per-image results plus succeeded/failed id lists
    """
    logger.info("Batch request: {} images, chunk_size={}", len(sources), chunk_size)
    enricher = get_enricher()

    try:
        refs = [_ref(source) for source in sources]
        results = await enricher.generate_batch(
            refs, chunk_size=chunk_size, mode=GenerationType.API_BATCH
        )
    except InvalidInput as e:
        logger.info("Rejected batch request: {}", e)
        return {"success": False, "message": str(e)}

    summary = summarize(results)
    return {
        "success": True,
        "results": {image_id: outcome.model_dump() for image_id, outcome in results.items()},
        "succeeded": summary.succeeded,
        "failed": summary.failed,
        "total_tokens": summary.total_tokens,
    }


@mcp.tool()
async def get_generation_stats(recent: int = 10) -> str:
    """
    Summarize alt text generation statistics.

    Args:
        recent: Number of recent generations to list (0-50)

    Returns:
        Markdown summary of totals, per-type counts and recent generations
    """
    logger.info("Stats request: recent={}", recent)
    recent = max(0, min(50, recent))
    stats = get_enricher().stats.aggregate(recent=recent)

    response = "**Alt Text Generation Statistics**\n\n"
    response += f"Total generated: {stats.count}\n"
    response += f"Applied: {stats.applied}\n"
    response += f"Edited by users: {stats.edited}\n"
    response += f"Total tokens: {stats.total_tokens:,}\n"
    response += f"Average tokens/image: {stats.average_tokens}\n"
    response += f"Estimated cost (USD): ${stats.estimated_cost:.4f}\n"

    if stats.counts_by_type:
        response += "\n**By type:**\n"
        for generation_type, count in sorted(stats.counts_by_type.items()):
            response += f"- {type_label(generation_type)}: {count}\n"

    if stats.recent:
        response += "\n**Recent generations:**\n"
        for item in stats.recent:
            entry = item.record
            response += (
                f"- {entry.image_id} (#{item.update_number}, {entry.tokens_used} tokens): "
                f"{entry.generated_text}\n"
            )

    return response


@mcp.tool()
async def clear_alt_text_cache() -> str:
    """
    Remove every cached alt text so the next request regenerates it.

    Returns:
        Number of cleared entries
    """
    removed = get_enricher().cache.clear()
    logger.info("Cache cleared via tool: {} entries", removed)
    return f"Cleared {removed} cached alt texts."


def create_app():
    """Create the MCP application for deployment."""
    return mcp
