"""Multi-language propagation of generated alt text.

A host with a translation layer registers one ``LanguageSync`` adapter per
translation backend. ``detect_language_sync`` picks the first available
adapter once at startup; without one, propagation is a no-op.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable

from loguru import logger

# (image_id, language_code, alt_text)
LocaleWriter = Callable[[str, str, str], None]


class LanguageSync(ABC):
    """Capability to copy alt text to every locale of an image."""

    name: str = "base"

    @abstractmethod
    def is_available(self) -> bool:
        """Return True if the backing translation layer is present."""
        pass

    @abstractmethod
    def available_languages(self) -> list[str]:
        """Return the language codes alt text should be propagated to."""
        pass

    @abstractmethod
    def sync(self, image_id: str, alt_text: str) -> int:
        """Store ``alt_text`` for every available language. Returns the number written."""
        pass


class NullLanguageSync(LanguageSync):
    """Used when no translation layer is installed."""

    name = "none"

    def __init__(self, default_language: str = "en"):
        self.default_language = default_language

    def is_available(self) -> bool:
        return True

    def available_languages(self) -> list[str]:
        return [self.default_language]

    def sync(self, image_id: str, alt_text: str) -> int:
        return 0


class LocaleWriterSync(LanguageSync):
    """Propagate alt text through a host-supplied per-locale writer.

    Args:
        languages: Callable returning the host's active language codes
        writer: Callable storing alt text for one image and language
        name: Adapter name used in logs
        detect: Callable reporting whether the host layer is present

    """

    def __init__(
        self,
        languages: Callable[[], Iterable[str]],
        writer: LocaleWriter,
        name: str = "locale-writer",
        detect: Callable[[], bool] | None = None,
    ):
        self._languages = languages
        self._writer = writer
        self._detect = detect
        self.name = name

    def is_available(self) -> bool:
        return self._detect() if self._detect else True

    def available_languages(self) -> list[str]:
        return [code for code in self._languages() if code]

    def sync(self, image_id: str, alt_text: str) -> int:
        languages = self.available_languages()
        for code in languages:
            self._writer(image_id, code, alt_text)
        logger.debug("Synced alt text for {} to {} languages via {}", image_id, len(languages), self.name)
        return len(languages)


def detect_language_sync(
    adapters: Iterable[LanguageSync] = (),
    default_language: str = "en",
) -> LanguageSync:
    """Return the first available adapter, or a NullLanguageSync.

    Args:
        adapters: Candidate adapters in priority order
        default_language: Language reported by the null adapter

    """
    for adapter in adapters:
        try:
            if adapter.is_available():
                logger.info("Using language sync adapter: {}", adapter.name)
                return adapter
        except Exception as e:
            logger.warning("Language adapter {} detection failed: {}", adapter.name, e)
    logger.debug("No language sync adapter available")
    return NullLanguageSync(default_language)
