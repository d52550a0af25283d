"""Text canonicalisation helpers shared by scoring, matching and suggestions."""

from __future__ import annotations

import unicodedata

from .models import Highlight


def normalise_whitespace(value: str) -> str:
    """Collapse multiple whitespace characters into a single space."""

    return " ".join(value.split())


def normalise_text(text: str | None) -> str:
    """Canonicalise text for comparison.

    Lowercases, strips diacritics (NFD decomposition with combining marks
    removed), drops every character that is not a letter, digit or
    whitespace, then collapses and trims whitespace. ``None`` and empty
    input yield ``""``. Applying it twice gives the same result as once.
    """

    if not text:
        return ""
    decomposed = unicodedata.normalize("NFD", text.lower())
    kept = [
        char
        for char in decomposed
        if not unicodedata.combining(char) and (char.isalnum() or char.isspace())
    ]
    return normalise_whitespace("".join(kept))


def contains_normalised(haystack: str | None, normalized_query: str) -> bool:
    """Return True when the normalised haystack contains the query."""

    if not normalized_query:
        return False
    return normalized_query in normalise_text(haystack)


def highlight_term(text: str | None, term: str | None) -> Highlight | None:
    """Split ``text`` around the first case-insensitive occurrence of ``term``.

    Works on the raw strings: a term typed without accents will not be
    located in accented text even though normalisation treats them as equal.
    """

    if not text or not term:
        return None
    index = text.lower().find(term.lower())
    if index == -1:
        return None
    end = index + len(term)
    return Highlight(before=text[:index], match=text[index:end], after=text[end:])
