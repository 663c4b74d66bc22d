"""Input normalization shared by the trackers."""

import unicodedata

from backend.config import settings
from backend.exceptions import InvalidInputError


def normalize_word(word: str) -> str:
    """Normalize a word for keying: NFC, lower-cased, zero-width removed, stripped.

    Raises:
        InvalidInputError: If nothing is left after stripping.
    """
    if not isinstance(word, str):
        raise InvalidInputError("Word must be a string")
    normalized = unicodedata.normalize("NFC", word).lower()
    # Zero-width characters sneak in from copy-pasted web text
    for char in ["\u200b", "\u200c", "\u200d", "\ufeff"]:
        normalized = normalized.replace(char, "")
    normalized = normalized.strip()
    if not normalized:
        raise InvalidInputError("Word must not be empty")
    return normalized


def validate_language(language: str) -> str:
    """Return language if it is one of the supported language codes."""
    if not language:
        raise InvalidInputError("Language is required")
    if language not in settings.supported_languages:
        supported = ", ".join(settings.supported_languages)
        raise InvalidInputError(f"Unsupported language {language!r} (expected one of: {supported})")
    return language


def require_text(value: str | None, field_name: str) -> str:
    """Return value stripped, raising InvalidInputError when blank."""
    if value is None or not value.strip():
        raise InvalidInputError(f"{field_name} is required")
    return value.strip()


def validate_user_id(user_id: str) -> str:
    return require_text(user_id, "user_id")


def validate_limit(limit: int | None) -> int | None:
    if limit is not None and limit < 1:
        raise InvalidInputError(f"Limit must be positive, got {limit}")
    return limit
