"""
Image payload preparation for the vision API.

Formats the API accepts are sent as-is. Anything else (AVIF, BMP, TIFF, ...)
is transcoded to JPEG through a temporary file whose lifetime is exactly the
``with`` block that uses it.
"""

import base64
import os
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from io import BytesIO
from pathlib import Path

from loguru import logger
from PIL import Image as PILImage
from PIL import features

from ..errors import ImageSourceError

NATIVE_MIME_TYPES = frozenset({"image/jpeg", "image/png", "image/webp", "image/gif"})


def needs_transcoding(mime_type: str) -> bool:
    """Return True if the API cannot take ``mime_type`` directly."""
    return mime_type.lower() not in NATIVE_MIME_TYPES


def to_data_uri(data: bytes, mime_type: str) -> str:
    """Encode image bytes as a base64 data URI."""
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('utf-8')}"


def format_support() -> dict[str, bool]:
    """Report which optional image codecs this Pillow build can decode."""
    return {
        "avif": features.check("avif"),
        "webp": features.check("webp"),
        "jpeg": features.check("jpg"),
    }


@contextmanager
def transcoded_jpeg(data: bytes, quality: int = 85) -> Iterator[Path]:
    """
    Transcode image bytes to a temporary JPEG file.

    The file is removed when the block exits, whether it completes, raises,
    or is cancelled.

    Args:
        data: Source image bytes in any format Pillow can decode
        quality: JPEG quality (1-100)

    Yields:
        Path of the temporary JPEG file

    Raises:
        ImageSourceError: If the source cannot be decoded or re-encoded
    """
    fd, name = tempfile.mkstemp(suffix=".jpg", prefix="aat_")
    path = Path(name)
    try:
        with os.fdopen(fd, "wb") as handle:
            try:
                with PILImage.open(BytesIO(data)) as img:
                    _to_rgb(img).save(handle, format="JPEG", quality=quality, optimize=True)
            except Exception as e:
                raise ImageSourceError(f"Could not transcode image to JPEG: {e}") from e
        logger.debug("Transcoded image to temporary JPEG {}", path)
        yield path
    finally:
        path.unlink(missing_ok=True)
        logger.debug("Removed temporary JPEG {}", path)


def _to_rgb(img: PILImage.Image) -> PILImage.Image:
    if img.mode in ("RGBA", "LA") or (img.mode == "P" and "transparency" in img.info):
        rgba = img.convert("RGBA")
        background = PILImage.new("RGB", rgba.size, (255, 255, 255))
        background.paste(rgba, mask=rgba.getchannel("A"))
        return background
    if img.mode != "RGB":
        return img.convert("RGB")
    return img


@contextmanager
def image_url(
    data: bytes,
    mime_type: str,
    source_url: str | None = None,
    inline_remote: bool = True,
    quality: int = 85,
) -> Iterator[str]:
    """
    Yield the URL to put in the ``image_url`` part of a request.

    Remote images in a native format are linked directly unless
    ``inline_remote`` is set. Everything else becomes a data URI, transcoded
    to JPEG first when needed.

    Args:
        data: Image bytes
        mime_type: Detected MIME type of ``data``
        source_url: Original remote URL, if any
        inline_remote: Always send a data URI, even for remote images
        quality: JPEG quality used when transcoding
    """
    if not needs_transcoding(mime_type):
        if source_url and not inline_remote:
            yield source_url
        else:
            yield to_data_uri(data, mime_type)
        return

    logger.debug("Transcoding {} image to JPEG before sending", mime_type)
    with transcoded_jpeg(data, quality=quality) as jpeg_path:
        yield to_data_uri(jpeg_path.read_bytes(), "image/jpeg")
