"""
Result models for enrichment calls.
"""

from collections.abc import Callable
from enum import Enum

from pydantic import BaseModel, Field

# Host callback persisting final alt text onto an image: (image_id, alt_text)
AltTextSink = Callable[[str, str], None]


class GenerationType(str, Enum):
    """Where a generation request came from. Used only for statistics."""

    MANUAL = "manual"
    UPLOAD = "upload"
    BATCH = "batch"
    API = "api"
    API_BATCH = "api_batch"
    CLI = "cli"
    WOOCOMMERCE = "woocommerce"
    PAGE_BUILDER = "page_builder"
    MEDIA_FOLDER = "media_folder"
    FEEDBACK = "feedback"


def mode_value(mode: "GenerationType | str") -> str:
    """Return the plain string for a generation mode."""
    return mode.value if isinstance(mode, GenerationType) else str(mode)


class GenerationResult(BaseModel):
    """A successful generation."""

    image_id: str
    text: str
    tokens_used: int = 0
    cached: bool = Field(default=False, description="Served from the response cache")
    preview: bool = Field(default=False, description="Not persisted or cached")


class GenerationOutcome(BaseModel):
    """Per-image outcome: either text and tokens, or an error reason."""

    text: str | None = None
    tokens: int | None = None
    error: str | None = None
    cached: bool = False

    @property
    def ok(self) -> bool:
        """Return True if the image got a description."""
        return self.error is None and self.text is not None

    @classmethod
    def from_result(cls, result: GenerationResult) -> "GenerationOutcome":
        return cls(text=result.text, tokens=result.tokens_used, cached=result.cached)

    @classmethod
    def failure(cls, reason: str) -> "GenerationOutcome":
        return cls(error=reason)


class BatchSummary(BaseModel):
    """Succeeded and failed ids of a batch, for selective retries."""

    succeeded: list[str] = Field(default_factory=list)
    failed: dict[str, str] = Field(default_factory=dict)
    total_tokens: int = 0

    @property
    def total(self) -> int:
        return len(self.succeeded) + len(self.failed)


def summarize(results: dict[str, GenerationOutcome]) -> BatchSummary:
    """Split a batch outcome map into succeeded and failed ids."""
    summary = BatchSummary()
    for image_id, outcome in results.items():
        if outcome.ok:
            summary.succeeded.append(image_id)
            summary.total_tokens += outcome.tokens or 0
        else:
            summary.failed[image_id] = outcome.error or "unknown"
    return summary
