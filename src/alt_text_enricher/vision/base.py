"""Abstract base class for vision description clients.

Enables swapping the OpenAI-compatible client for other providers or fakes.
"""

from abc import ABC, abstractmethod

from pydantic import BaseModel, Field


class Description(BaseModel):
    """Text generated for one image and the tokens it cost."""

    text: str = Field(description="Generated description")
    tokens_used: int = Field(default=0, ge=0, description="Total tokens billed for the request")


class VisionClient(ABC):
    """Abstract interface for single-attempt image description requests."""

    @abstractmethod
    async def describe(
        self,
        image_data: bytes,
        instruction: str,
        mime_type: str = "image/jpeg",
        source_url: str | None = None,
    ) -> Description:
        """Describe one image.

        Args:
            image_data: Raw image bytes
            instruction: Prompt text sent alongside the image
            mime_type: MIME type of ``image_data``
            source_url: Remote URL of the image, if it has one

        Returns:
            The generated description

        Raises:
            RateLimited: If the local rate window is full
            ApiError: If the API rejects the request
            TransportError: On network-level failures
            MalformedResponse: If the response lacks the expected text

        """
        pass

    @property
    @abstractmethod
    def model_name(self) -> str:
        """Return the model identifier."""
        pass
