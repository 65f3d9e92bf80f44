"""
Alt Text Enricher.

Generates concise, accessibility-oriented alt text for images with a vision
model, with content-addressed caching, rate limiting, batch processing and
usage statistics.

Usage:
    # Describe one image
    alt-text-enricher generate photo.jpg

    # Describe several images
    alt-text-enricher batch a.jpg b.png https://example.com/c.webp

    # Start the MCP server
    alt-text-enricher serve
"""

__version__ = "0.1.0"

from .enrichment import Enricher, create_enricher
from .server import create_app, mcp

__all__ = [
    "Enricher",
    "create_app",
    "create_enricher",
    "mcp",
]
