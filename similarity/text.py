"""
similarity/text.py

String normalization and edit-distance similarity helpers.
"""

from __future__ import annotations

import re
import unicodedata

from rapidfuzz.distance import Levenshtein

_PUNCTUATION_RE = re.compile(r"[^\w\s]", re.UNICODE)
_NAME_PUNCTUATION_RE = re.compile(r"[^\w\s-]", re.UNICODE)
_WHITESPACE_RE = re.compile(r"\s+")
_ARTIST_SEPARATORS_RE = re.compile(r"[,;&]+|\s+and\s+", re.IGNORECASE)


def normalize_text(value: str | None) -> str:
    """
    Lowercase, strip punctuation, collapse whitespace and trim.
    """

    if not value:
        return ""
    text = unicodedata.normalize("NFKC", value).lower()
    text = _PUNCTUATION_RE.sub("", text)
    return _WHITESPACE_RE.sub(" ", text).strip()


def normalize_name(value: str | None) -> str:
    """
    Normalize a person name for exact comparison.

    Diacritics are folded (``Zoë`` -> ``zoe``) and hyphens are kept.
    """

    if not value:
        return ""
    decomposed = unicodedata.normalize("NFKD", value)
    folded = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    text = _NAME_PUNCTUATION_RE.sub("", folded.lower())
    return _WHITESPACE_RE.sub(" ", text).strip()


def text_similarity(left: str | None, right: str | None) -> float:
    """
    Character-level similarity ratio ``1 - editDistance / max(len)``.

    Both sides empty after normalization is a perfect match; exactly one side
    empty scores 0.0.
    """

    a = normalize_text(left)
    b = normalize_text(right)
    if not a and not b:
        return 1.0
    if not a or not b:
        return 0.0
    return float(Levenshtein.normalized_similarity(a, b))


def split_artist_names(value: str | None) -> list[str]:
    """
    Split a free-text creator field into individual names, preserving order.
    """

    if not value:
        return []
    names: list[str] = []
    seen: set[str] = set()
    for part in _ARTIST_SEPARATORS_RE.split(value):
        name = _WHITESPACE_RE.sub(" ", part).strip()
        key = normalize_name(name)
        if not key or key in seen:
            continue
        seen.add(key)
        names.append(name)
    return names


def artist_similarity(left: str | None, right: str | None) -> float:
    """
    Best pairwise name similarity across multi-artist fields.

    Returns 0.0 when either side has no names.
    """

    left_names = split_artist_names(left)
    right_names = split_artist_names(right)
    if not left_names or not right_names:
        return 0.0
    return max(text_similarity(a, b) for a in left_names for b in right_names)


def name_tokens(value: str | None, *, min_length: int = 3) -> list[str]:
    """
    Significant tokens of a normalized name, used for fragment lookups.
    """

    return [token for token in normalize_name(value).split(" ") if len(token) >= min_length]
