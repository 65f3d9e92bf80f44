"""
Image handling package.

Provides image references, byte resolution, and API payload preparation.
"""

from .base import ImageRef, ResolvedImage
from .payload import NATIVE_MIME_TYPES, format_support, image_url, needs_transcoding
from .resolver import DefaultImageResolver, ImageResolver, identify_image

__all__ = [
    "DefaultImageResolver",
    "ImageRef",
    "ImageResolver",
    "NATIVE_MIME_TYPES",
    "ResolvedImage",
    "format_support",
    "identify_image",
    "image_url",
    "needs_transcoding",
]
