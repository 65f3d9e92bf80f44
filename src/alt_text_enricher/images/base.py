"""
Data models for image references.

Provides Pydantic models for images to enrich and their resolved bytes.
"""

from pydantic import BaseModel, Field, model_validator


class ImageRef(BaseModel):
    """An image to enrich: a stable identifier plus where to read its bytes."""

    id: str = Field(description="Opaque stable identifier used in results and statistics")
    path: str | None = Field(default=None, description="Local file path")
    url: str | None = Field(default=None, description="Remote http(s) URL")
    mime_type: str | None = Field(default=None, description="Declared MIME type, if known")

    @model_validator(mode="after")
    def _check_source(self) -> "ImageRef":
        if bool(self.path) == bool(self.url):
            raise ValueError("ImageRef needs exactly one of 'path' or 'url'")
        return self

    @classmethod
    def from_source(cls, source: str, image_id: str | None = None) -> "ImageRef":
        """Build a reference from a path or URL string, using it as the id if none is given."""
        if source.startswith(("http://", "https://")):
            return cls(id=image_id or source, url=source)
        return cls(id=image_id or source, path=source)

    @property
    def is_remote(self) -> bool:
        """Return True if the bytes come from a URL."""
        return self.url is not None

    @property
    def source(self) -> str:
        """Return the path or URL this reference points at."""
        return self.url or self.path or ""


class ResolvedImage(BaseModel):
    """Image bytes read from an ImageRef, with the detected MIME type."""

    ref: ImageRef
    data: bytes = Field(repr=False)
    mime_type: str = Field(description="MIME type detected from the bytes")
    mtime: float = Field(default=0.0, description="Last-modified timestamp, 0 if unknown")
    width: int | None = None
    height: int | None = None

    @property
    def size_bytes(self) -> int:
        """Return the size of the image data."""
        return len(self.data)
