from __future__ import annotations

import re
import unicodedata
from typing import List


# Keep all unicode word characters and spaces; strip punctuation/symbols. Then remove underscores separately.
_NON_WORD_SPACE_PATTERN = re.compile(r"[^\w\s]", re.UNICODE)
_MULTISPACE_PATTERN = re.compile(r"\s+")
_APOSTROPHE_PATTERN = re.compile(r"['’`]")
# Filler words speech-to-text tends to carry over from "add this to my ... playlist"
_FILLER_TOKENS = {"the", "my", "playlist"}


def _strip_diacritics(text: str) -> str:
    normalized = unicodedata.normalize("NFKD", text)
    return "".join(c for c in normalized if not unicodedata.combining(c))


def normalize_phrase(value: str) -> str:
    """Fold a spoken phrase or playlist name into a comparable form.

    Lower-cases, strips diacritics and punctuation, spells out '&' and
    collapses whitespace. Apostrophes are dropped without splitting the word
    so "rock'n'roll" and "rocknroll" compare equal.
    """
    value = value or ""
    value = _strip_diacritics(value)
    value = value.lower()
    value = value.replace("&", " and ")
    value = _APOSTROPHE_PATTERN.sub("", value)
    value = _NON_WORD_SPACE_PATTERN.sub(" ", value)
    value = value.replace("_", " ")
    value = _MULTISPACE_PATTERN.sub(" ", value).strip()
    return value


def significant_tokens(value: str) -> List[str]:
    """Tokens of the normalized phrase with filler words removed.

    Falls back to every token when the phrase is made of filler only
    (a playlist literally named "My Playlist" must still be matchable).
    """
    tokens = normalize_phrase(value).split()
    kept = [tok for tok in tokens if tok not in _FILLER_TOKENS]
    return kept or tokens


def display_key(name: str) -> str:
    """Case-insensitive, whitespace-trimmed key used to order names for display."""
    return (name or "").strip().lower()
