"""Typo-tolerant subsequence matching used as a fallback signal."""

from __future__ import annotations

from .text import normalise_text

DEFAULT_FUZZY_THRESHOLD = 0.70


class FuzzyMatcher:
    """Subsequence-coverage matcher.

    Walks the target once, advancing a cursor through the query each time the
    current characters agree. A target matches when the consumed share of the
    query reaches the threshold. This is not an edit distance: any long
    target that happens to contain the query letters in order matches, and a
    transposition ("ab" against "ba") still earns partial coverage.
    """

    def __init__(self, threshold: float = DEFAULT_FUZZY_THRESHOLD) -> None:
        if not 0 <= threshold <= 1:
            raise ValueError("threshold must be between 0 and 1")
        self.threshold = threshold

    @staticmethod
    def coverage(target: str | None, query: str | None) -> float:
        normalized_target = normalise_text(target)
        normalized_query = normalise_text(query)
        if not normalized_query:
            return 0.0
        cursor = 0
        for char in normalized_target:
            if cursor >= len(normalized_query):
                break
            if char == normalized_query[cursor]:
                cursor += 1
        return cursor / len(normalized_query)

    def matches(self, target: str | None, query: str | None) -> bool:
        if not normalise_text(query):
            return False
        return self.coverage(target, query) >= self.threshold
