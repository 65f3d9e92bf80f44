"""Typed errors raised by the enrichment core.

Every failure of a single enrichment surfaces as a subclass of
``EnrichmentError``. The ``retryable`` flag tells callers whether trying the
same request again later can succeed without operator action.
"""


class EnrichmentError(Exception):
    """Base class for all enrichment failures."""

    retryable: bool = False

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


class ConfigError(EnrichmentError):
    """The API credential or another required setting is missing or invalid."""


class RateLimited(EnrichmentError):
    """The local rate window is full; the request was not sent."""

    retryable = True

    def __init__(self, message: str = "Rate limit exceeded, try again later"):
        super().__init__(message)


class TransportError(EnrichmentError):
    """The request failed at the network level (connection, DNS, timeout)."""

    retryable = True


class ApiError(EnrichmentError):
    """The upstream API rejected the request."""

    def __init__(self, message: str = "unknown", status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code

    @property
    def retryable(self) -> bool:  # type: ignore[override]
        """Throttling and server-side failures may succeed on a later attempt."""
        return self.status_code == 429 or (
            self.status_code is not None and self.status_code >= 500
        )


class MalformedResponse(EnrichmentError):
    """A successful HTTP response did not contain the expected text field."""


class InvalidInput(EnrichmentError):
    """The caller supplied unusable input; nothing was sent upstream."""


class ImageSourceError(InvalidInput):
    """An image reference could not be resolved to decodable image bytes."""
