"""
Translation provider client for the Document Translation Service

Google Translate is reached through deep-translator. The provider rejects
requests longer than 5000 characters, so text is split on line boundaries
into chunks that stay below the configured limit and translated one chunk
at a time, in order. There is no retry: a failed call fails the whole
translation.
"""
import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional

from deep_translator import GoogleTranslator

from config import settings
from models.document import TranslationResult
from utils.exceptions import MissingInputError, TranslationServiceError, ValidationError
from utils.error_handlers import log_performance_metric

logger = logging.getLogger(__name__)

# Hard request limit enforced by the Google web endpoint
PROVIDER_MAX_CHARS = 5000


def _split_long_line(line: str, max_chars: int) -> List[str]:
    """Split a single line into pieces of at most max_chars, preferring word boundaries"""
    if len(line) <= max_chars:
        return [line]

    pieces: List[str] = []
    current = ""
    for word in line.split():
        while len(word) > max_chars:
            if current:
                pieces.append(current)
                current = ""
            pieces.append(word[:max_chars])
            word = word[max_chars:]
        if not word:
            continue
        candidate = f"{current} {word}" if current else word
        if len(candidate) > max_chars:
            pieces.append(current)
            current = word
        else:
            current = candidate
    if current:
        pieces.append(current)

    return pieces


def split_into_chunks(text: str, max_chars: int) -> List[str]:
    """
    Split text into chunks of at most max_chars characters.

    Lines are kept whole and packed greedily; a line longer than max_chars is
    broken on whitespace (or hard-split when a single word is too long).
    Whitespace-only chunks are dropped.

    Args:
        text: Text to split
        max_chars: Maximum chunk length

    Returns:
        Chunks in original order
    """
    if max_chars < 1:
        raise ValueError("max_chars must be positive")

    chunks: List[str] = []
    current: List[str] = []
    current_len = 0

    for line in text.split("\n"):
        for piece in _split_long_line(line, max_chars):
            added = len(piece) + (1 if current else 0)
            if current and current_len + added > max_chars:
                chunks.append("\n".join(current))
                current = []
                current_len = 0
                added = len(piece)
            current.append(piece)
            current_len += added

    if current:
        chunks.append("\n".join(current))

    return [chunk for chunk in chunks if chunk.strip()]


class TranslatorInterface(ABC):
    """Abstract interface for translation providers"""

    name: str = "base"

    @abstractmethod
    def translate(self, text: str, target_language: str) -> TranslationResult:
        """Translate text into target_language"""
        pass

    def get_info(self) -> Dict[str, Any]:
        return {"provider": self.name}


class GoogleTranslatorClient(TranslatorInterface):
    """Google Translate via deep-translator"""

    name = "google"

    def __init__(
        self,
        source_language: Optional[str] = None,
        max_chunk_chars: Optional[int] = None,
        translator_factory: Optional[Callable[..., Any]] = None
    ):
        """
        Initialize the client

        Args:
            source_language: Source language code, 'auto' to let the provider detect it
            max_chunk_chars: Largest chunk sent in one provider call
            translator_factory: Callable building a provider translator from
                (source=..., target=...); deep_translator.GoogleTranslator by default
        """
        self.source_language = source_language or settings.translation_source_language
        self.max_chunk_chars = min(
            max_chunk_chars or settings.translation_max_chunk_chars,
            PROVIDER_MAX_CHARS
        )
        self._translator_factory = translator_factory or GoogleTranslator

        logger.info(
            f"GoogleTranslatorClient initialized (source={self.source_language}, "
            f"max_chunk_chars={self.max_chunk_chars})"
        )

    def translate(self, text: str, target_language: str) -> TranslationResult:
        """
        Translate a block of text.

        Args:
            text: Text to translate
            target_language: Target language code, e.g. 'fr' or 'zu'

        Returns:
            TranslationResult with the translated text, lines re-joined in order

        Raises:
            TranslationServiceError: On any provider failure
        """
        if not target_language or not target_language.strip():
            raise MissingInputError("target", "No target language specified")
        if not text or not text.strip():
            raise ValidationError(
                message="Text to translate cannot be empty",
                field_name="q",
                validation_rule="non_empty"
            )

        target_language = target_language.strip()
        chunks = split_into_chunks(text, self.max_chunk_chars)
        start_time = time.time()

        try:
            translator = self._translator_factory(source=self.source_language, target=target_language)
            translated_chunks = []
            for index, chunk in enumerate(chunks):
                translated = translator.translate(chunk)
                if translated is None:
                    raise TranslationServiceError(
                        message=f"Translation provider returned no text for chunk {index + 1} of {len(chunks)}",
                        provider=self.name,
                        target_language=target_language
                    )
                translated_chunks.append(translated)
        except TranslationServiceError:
            raise
        except Exception as e:
            logger.error(f"Translation to '{target_language}' failed: {type(e).__name__}: {e}")
            raise TranslationServiceError(
                message="Translation provider request failed",
                provider=self.name,
                target_language=target_language,
                original_exception=e
            )

        duration_ms = int((time.time() - start_time) * 1000)
        log_performance_metric(
            "translation",
            duration_ms,
            {"target_language": target_language, "chunks": len(chunks), "characters": len(text)}
        )

        return TranslationResult(
            source_text=text,
            translated_text="\n".join(translated_chunks),
            target_language=target_language,
            provider=self.name,
            chunk_count=len(chunks)
        )

    def get_info(self) -> Dict[str, Any]:
        return {
            "provider": self.name,
            "source_language": self.source_language,
            "max_chunk_chars": self.max_chunk_chars
        }


# Factory function to create translator instances
def create_translator(provider: Optional[str] = None, **kwargs) -> TranslatorInterface:
    """
    Factory function to create translator instances

    Args:
        provider: Translation provider name ("google")
        **kwargs: Additional arguments for the translator

    Returns:
        Translator instance
    """
    provider = (provider or settings.translation_provider).lower()
    if provider == "google":
        return GoogleTranslatorClient(**kwargs)
    else:
        raise ValueError(f"Unsupported translation provider: {provider}")
