"""
Enrichment package.

Single-image service, batch processor, and the wiring that shares them.
"""

from .batch import BatchProcessor
from .enricher import Enricher, create_enricher
from .models import (
    AltTextSink,
    BatchSummary,
    GenerationOutcome,
    GenerationResult,
    GenerationType,
    summarize,
)
from .service import EnrichmentService

__all__ = [
    "AltTextSink",
    "BatchProcessor",
    "BatchSummary",
    "Enricher",
    "EnrichmentService",
    "GenerationOutcome",
    "GenerationResult",
    "GenerationType",
    "create_enricher",
    "summarize",
]
