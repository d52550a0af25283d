"""Exception hierarchy for the catalog search engine."""

from __future__ import annotations


class CatalogSearchError(Exception):
    """Base exception raised for catalog search failures."""


class QueryValidationError(CatalogSearchError):
    """Raised when a raw query fails the length or content checks."""

    def __init__(self, query: str | None, reason: str) -> None:
        super().__init__(f"Invalid query {query!r}: {reason}")
        self.query = query
        self.reason = reason


class SourceUnavailable(CatalogSearchError):
    """Raised when a single upstream call (venues, menu, remote search) fails."""

    def __init__(self, source: str, message: str) -> None:
        super().__init__(f"{source}: {message}")
        self.source = source


class AllSourcesExhausted(CatalogSearchError):
    """Raised when every candidate source failed for a search attempt."""

    def __init__(self, query: str, warnings: list[str] | None = None) -> None:
        super().__init__(f"All catalog sources failed for query {query!r}")
        self.query = query
        self.warnings = list(warnings or [])


class SearchSuperseded(CatalogSearchError):
    """Raised inside a search attempt once a newer attempt has replaced it."""


class CacheCorruption(CatalogSearchError):
    """Raised when a cached value fails its shape check."""
