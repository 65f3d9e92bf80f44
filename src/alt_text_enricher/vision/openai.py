"""OpenAI-compatible chat-completions vision client.

Sends one instruction plus one image per request and maps every failure to
a typed ``EnrichmentError``. Each call is a single attempt: retry policy
belongs to the caller.
"""

from typing import Any

import httpx
from loguru import logger

from ..config import ConfigProvider
from ..errors import ApiError, ConfigError, MalformedResponse, RateLimited, TransportError
from ..images.payload import image_url
from ..ratelimit import RateLimiter
from .base import Description, VisionClient


def build_request(model: str, instruction: str, url: str, max_tokens: int) -> dict[str, Any]:
    """Build the JSON body for a single-image description request."""
    return {
        "model": model,
        "messages": [
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": instruction},
                    {"type": "image_url", "image_url": {"url": url}},
                ],
            }
        ],
        "max_tokens": max_tokens,
    }


def parse_response(response: httpx.Response) -> Description:
    """Turn an HTTP response into a Description or raise the matching error.

    Raises:
        ApiError: For non-2xx responses
        MalformedResponse: For 2xx responses without usable text

    """
    if not response.is_success:
        raise ApiError(_error_message(response), status_code=response.status_code)

    try:
        data = response.json()
        content = data["choices"][0]["message"]["content"]
    except (ValueError, KeyError, IndexError, TypeError) as e:
        raise MalformedResponse(f"Unexpected response body: {e}") from e

    if not isinstance(content, str) or not content.strip():
        raise MalformedResponse("Response contained no description text")

    usage = data.get("usage") or {}
    tokens = usage.get("total_tokens", 0) if isinstance(usage, dict) else 0
    return Description(text=content.strip(), tokens_used=tokens if isinstance(tokens, int) else 0)


def _error_message(response: httpx.Response) -> str:
    try:
        message = response.json()["error"]["message"]
    except (ValueError, KeyError, TypeError):
        return "unknown"
    return message if isinstance(message, str) and message else "unknown"


class OpenAIVisionClient(VisionClient):
    """Vision client for the OpenAI chat-completions API.

    Consults the shared rate limiter before sending and records the call
    afterwards, whatever the outcome.
    """

    def __init__(self, config: ConfigProvider, rate_limiter: RateLimiter):
        """Initialize the client.

        Args:
            config: Provider for credential, model, timeout and token cap
            rate_limiter: Shared limiter gating every outbound call

        """
        self._config = config
        self._rate_limiter = rate_limiter
        logger.debug("Initialized vision client: model={}", config.get().model)

    @property
    def model_name(self) -> str:
        """Return the configured model name."""
        return self._config.get().model

    async def describe(
        self,
        image_data: bytes,
        instruction: str,
        mime_type: str = "image/jpeg",
        source_url: str | None = None,
    ) -> Description:
        cfg = self._config.get()
        if not cfg.credential:
            raise ConfigError("OpenAI API key is not configured")

        if not self._rate_limiter.can_proceed():
            raise RateLimited()

        endpoint = f"{cfg.api_base_url.rstrip('/')}/chat/completions"
        headers = {"Authorization": f"Bearer {cfg.credential}"}

        with image_url(
            image_data,
            mime_type,
            source_url=source_url,
            inline_remote=cfg.inline_remote_images,
            quality=cfg.jpeg_quality,
        ) as url:
            body = build_request(cfg.model, instruction, url, cfg.token_cap)
            logger.debug("Requesting description: model={}, max_tokens={}", cfg.model, cfg.token_cap)
            try:
                async with httpx.AsyncClient(timeout=cfg.timeout) as client:
                    response = await client.post(endpoint, json=body, headers=headers)
            except httpx.TimeoutException as e:
                logger.warning("Vision API request timed out after {}s", cfg.timeout)
                raise TransportError(f"Request timed out: {e}") from e
            except httpx.TransportError as e:
                logger.warning("Vision API transport error: {}", e)
                raise TransportError(f"Connection error: {e}") from e
            finally:
                self._rate_limiter.record_call()

        description = parse_response(response)
        logger.debug("Received description: {} tokens", description.tokens_used)
        return description
