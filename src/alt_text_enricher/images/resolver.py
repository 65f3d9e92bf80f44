"""
Image byte resolution.

Reads local files or fetches remote URLs and checks that the result is an
image Pillow can decode.
"""

import asyncio
from abc import ABC, abstractmethod
from email.utils import parsedate_to_datetime
from io import BytesIO
from pathlib import Path

import httpx
from loguru import logger
from PIL import Image as PILImage

from ..errors import ImageSourceError
from .base import ImageRef, ResolvedImage


class ImageResolver(ABC):
    """Abstract interface for turning an ImageRef into bytes."""

    @abstractmethod
    async def resolve(self, ref: ImageRef) -> ResolvedImage:
        """
        Read and identify the image behind ``ref``.

        Args:
            ref: Image reference to resolve

        Returns:
            ResolvedImage with bytes, MIME type and mtime

        Raises:
            ImageSourceError: If the bytes cannot be read or decoded
        """
        pass


def identify_image(data: bytes) -> tuple[str, int, int]:
    """
    Identify image bytes with Pillow.

    Args:
        data: Raw image bytes

    Returns:
        Tuple of (mime_type, width, height)

    Raises:
        ImageSourceError: If Pillow cannot decode the data
    """
    if not data:
        raise ImageSourceError("Image data is empty")
    try:
        with PILImage.open(BytesIO(data)) as img:
            img.verify()
            image_format = img.format
            width, height = img.size
    except Exception as e:
        raise ImageSourceError(f"Unrecognised or corrupt image data: {e}") from e

    mime_type = PILImage.MIME.get(image_format or "", "")
    if not mime_type:
        raise ImageSourceError(f"Unsupported image format: {image_format}")
    return mime_type, width, height


class DefaultImageResolver(ImageResolver):
    """Resolve local paths from disk and URLs over HTTP."""

    def __init__(self, timeout: float = 30, attempts: int = 3, backoff: float = 1.0):
        """
        Initialize the resolver.

        Args:
            timeout: HTTP request timeout in seconds
            attempts: Number of fetch attempts for remote images
            backoff: Base delay in seconds, doubled after each failed attempt
        """
        self.timeout = timeout
        self.attempts = max(1, attempts)
        self.backoff = backoff

    async def resolve(self, ref: ImageRef) -> ResolvedImage:
        if ref.path:
            data, mtime = self._read_local(Path(ref.path))
        else:
            data, mtime = await self._fetch(ref.url or "")

        mime_type, width, height = identify_image(data)
        if ref.mime_type and ref.mime_type != mime_type:
            logger.debug(
                "Declared type {} differs from detected {} for {}", ref.mime_type, mime_type, ref.id
            )

        logger.debug("Resolved image {}: {} bytes, type={}", ref.id, len(data), mime_type)
        return ResolvedImage(
            ref=ref,
            data=data,
            mime_type=mime_type,
            mtime=mtime,
            width=width,
            height=height,
        )

    def _read_local(self, path: Path) -> tuple[bytes, float]:
        if not path.is_file():
            raise ImageSourceError(f"Image not found or could not be read: {path}")
        try:
            return path.read_bytes(), path.stat().st_mtime
        except OSError as e:
            raise ImageSourceError(f"Could not read image {path}: {e}") from e

    async def _fetch(self, url: str) -> tuple[bytes, float]:
        for attempt in range(self.attempts):
            try:
                async with httpx.AsyncClient(timeout=self.timeout, follow_redirects=True) as client:
                    response = await client.get(url)
                    response.raise_for_status()
                    logger.debug("Fetched image: {} bytes from {}", len(response.content), url[:60])
                    return response.content, _last_modified(response)
            except httpx.HTTPError as e:
                if attempt == self.attempts - 1:
                    logger.warning(
                        "Failed to fetch image after {} attempts: {} - {}", self.attempts, url[:60], e
                    )
                    raise ImageSourceError(f"Failed to fetch image {url}: {e}") from e
                logger.debug("Fetch attempt {} failed, retrying: {}", attempt + 1, e)
                await asyncio.sleep(self.backoff * 2**attempt)
        raise ImageSourceError(f"Failed to fetch image {url}")


def _last_modified(response: httpx.Response) -> float:
    header = response.headers.get("last-modified")
    if not header:
        return 0.0
    try:
        return parsedate_to_datetime(header).timestamp()
    except (TypeError, ValueError):
        return 0.0
