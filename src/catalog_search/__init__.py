"""Core package for the catalog search engine."""

from .cache import CacheKey, SearchCache
from .config import ScoreWeights, Settings, get_settings
from .errors import (
    AllSourcesExhausted,
    CacheCorruption,
    CatalogSearchError,
    QueryValidationError,
    SourceUnavailable,
)
from .fuzzy import FuzzyMatcher
from .models import (
    Dish,
    RankedResultSet,
    RecentSearchEntry,
    ResultPage,
    ScoredResult,
    SearchFilters,
    Venue,
)
from .orchestrator import SearchOrchestrator, SearchState, validate_query
from .ranking import ResultRanker, apply_filters
from .scoring import RelevanceScorer
from .suggestions import SuggestionGenerator
from .text import highlight_term, normalise_text

__all__ = [
    "AllSourcesExhausted",
    "CacheCorruption",
    "CacheKey",
    "CatalogSearchError",
    "Dish",
    "FuzzyMatcher",
    "QueryValidationError",
    "RankedResultSet",
    "RecentSearchEntry",
    "RelevanceScorer",
    "ResultPage",
    "ResultRanker",
    "ScoreWeights",
    "ScoredResult",
    "SearchCache",
    "SearchFilters",
    "SearchOrchestrator",
    "SearchState",
    "Settings",
    "SourceUnavailable",
    "SuggestionGenerator",
    "Venue",
    "apply_filters",
    "get_settings",
    "highlight_term",
    "normalise_text",
    "validate_query",
]
