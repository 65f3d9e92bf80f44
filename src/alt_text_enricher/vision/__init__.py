"""Vision client package.

Provides a factory function to create the configured vision client.
"""

from ..config import ConfigProvider
from ..ratelimit import RateLimiter
from .base import Description, VisionClient
from .openai import OpenAIVisionClient, build_request, parse_response


def create_vision_client(
    config: ConfigProvider,
    rate_limiter: RateLimiter,
    provider_type: str = "openai",
) -> VisionClient:
    """Create a vision client instance.

    Args:
        config: Shared configuration provider
        rate_limiter: Shared rate limiter
        provider_type: Type of provider (only "openai" and compatible APIs)

    Returns:
        Configured VisionClient instance

    Raises:
        ValueError: If provider_type is not recognized

    """
    if provider_type == "openai":
        return OpenAIVisionClient(config=config, rate_limiter=rate_limiter)
    else:
        raise ValueError(f"Unknown vision provider: {provider_type}")


__all__ = [
    "Description",
    "OpenAIVisionClient",
    "VisionClient",
    "build_request",
    "create_vision_client",
    "parse_response",
]
