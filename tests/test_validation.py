"""Tests for input normalization."""

import unicodedata

import pytest

from backend.exceptions import InvalidInputError
from backend.validation import normalize_word, validate_user_id


@pytest.mark.parametrize(
    "raw",
    ["mama", "Mama", " mama ", "MAMA\n", "ma\u200bma", "\ufeffmama", "mama\u200c\u200d"],
)
def test_variants_share_one_key(raw: str) -> None:
    assert normalize_word(raw) == "mama"


def test_decomposed_diacritics_are_composed() -> None:
    decomposed = unicodedata.normalize("NFD", "Mulțumesc")
    assert decomposed != "mulțumesc"
    assert normalize_word(decomposed) == "mulțumesc"


@pytest.mark.parametrize("raw", ["", "   ", "\u200b", " \ufeff "])
def test_empty_word_rejected(raw: str) -> None:
    with pytest.raises(InvalidInputError):
        normalize_word(raw)


def test_user_id_stripped() -> None:
    assert validate_user_id("  learner-1 ") == "learner-1"
    with pytest.raises(InvalidInputError):
        validate_user_id("  ")
