"""Autocomplete candidates derived from catalog names."""

from __future__ import annotations

from collections.abc import Iterable

from .models import Dish, Venue
from .text import normalise_text

DEFAULT_MIN_LENGTH = 2
DEFAULT_LIMIT = 8


class SuggestionGenerator:
    """Collects item names that extend the typed query."""

    def __init__(self, *, min_length: int = DEFAULT_MIN_LENGTH, limit: int = DEFAULT_LIMIT) -> None:
        self._min_length = min_length
        self._limit = limit

    def suggest(self, normalized_query: str, items: Iterable[Dish | Venue]) -> list[str]:
        if len(normalized_query) < self._min_length:
            return []
        # dict keeps first-seen order while deduplicating
        suggestions: dict[str, None] = {}
        for item in items:
            name = normalise_text(item.name)
            if normalized_query in name and name != normalized_query:
                suggestions.setdefault(item.name, None)
            if len(suggestions) >= self._limit:
                break
        return list(suggestions)[: self._limit]
