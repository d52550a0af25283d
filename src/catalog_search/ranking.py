"""Quality filtering, scoring, ordering and grouping of search candidates."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from .models import Dish, KindFilter, RankedResultSet, ScoredResult, SearchFilters, Venue
from .scoring import RelevanceScorer
from .text import normalise_text

logger = logging.getLogger(__name__)

DEFAULT_FEATURED_THRESHOLD = 80

_KIND_ORDER = {"dish": 0, "venue": 1}


def passes_quality_filter(item: Dish | Venue) -> bool:
    """Return True when the item is fit to be shown as a search result."""

    if not normalise_text(item.name):
        return False
    if isinstance(item, Venue):
        return not item.is_closed
    return item.available and item.price > 0


def _sort_key(result: ScoredResult) -> tuple[int, int, str]:
    return (-result.score, _KIND_ORDER[result.kind], result.name.lower())


class ResultRanker:
    """Turns raw candidates into an ordered, grouped result set."""

    def __init__(
        self,
        scorer: RelevanceScorer | None = None,
        *,
        featured_threshold: int = DEFAULT_FEATURED_THRESHOLD,
    ) -> None:
        self._scorer = scorer or RelevanceScorer()
        self._featured_threshold = featured_threshold

    @property
    def scorer(self) -> RelevanceScorer:
        return self._scorer

    def rank(
        self,
        items: Iterable[Dish | Venue],
        normalized_query: str,
        *,
        query: str = "",
        kind_filter: KindFilter = "all",
    ) -> RankedResultSet:
        seen: set[tuple[str, str]] = set()
        scored: list[ScoredResult] = []
        dropped = 0
        for item in items:
            key = (item.kind, item.id)
            if key in seen:
                continue
            seen.add(key)
            if not passes_quality_filter(item):
                dropped += 1
                continue
            score = self._scorer.score(item, normalized_query)
            scored.append(ScoredResult(item=item, score=score))

        if dropped:
            logger.debug("quality_filter_dropped count=%s query=%s", dropped, normalized_query)

        scored.sort(key=_sort_key)
        return RankedResultSet(
            query=query or normalized_query,
            normalized_query=normalized_query,
            kind_filter=kind_filter,
            results=scored,
            dishes=[result for result in scored if result.kind == "dish"],
            venues=[result for result in scored if result.kind == "venue"],
            featured=[result for result in scored if result.score >= self._featured_threshold],
        )


def matches_filters(item: Dish | Venue, filters: SearchFilters) -> bool:
    """Return True when the item satisfies every filter that is set.

    Venues carry no price, so any price bound excludes them.
    """

    if filters.category:
        wanted = normalise_text(filters.category)
        if isinstance(item, Venue):
            categories = (item.category, item.cuisine_type)
        else:
            categories = (item.category, item.category_id)
        if wanted not in {normalise_text(value) for value in categories}:
            return False
    if filters.venue_id is not None:
        owner = item.id if isinstance(item, Venue) else item.venue_id
        if owner != filters.venue_id:
            return False
    if filters.has_price_bounds:
        if isinstance(item, Venue):
            return False
        if filters.min_price is not None and item.price < filters.min_price:
            return False
        if filters.max_price is not None and item.price > filters.max_price:
            return False
    return True


def _price_key(result: ScoredResult, *, descending: bool) -> tuple[int, float]:
    if isinstance(result.item, Dish):
        return (0, -result.item.price if descending else result.item.price)
    return (1, 0.0)


def _rating_key(result: ScoredResult) -> tuple[int, float]:
    rating = result.item.rating
    return (1, 0.0) if rating is None else (0, -rating)


_SORT_KEYS = {
    "price_asc": lambda result: _price_key(result, descending=False),
    "price_desc": lambda result: _price_key(result, descending=True),
    "rating": _rating_key,
    "name": lambda result: result.name.lower(),
}


def apply_filters(result: RankedResultSet, filters: SearchFilters) -> RankedResultSet:
    """Narrow and reorder a ranked set, keeping its groupings consistent."""

    kept = [scored for scored in result.results if matches_filters(scored.item, filters)]
    sort_key = _SORT_KEYS.get(filters.sort_by)
    if sort_key is not None:
        # stable sort keeps relevance order among ties
        kept.sort(key=sort_key)
    featured = {(scored.kind, scored.item.id) for scored in result.featured}
    return result.model_copy(
        update={
            "results": kept,
            "dishes": [scored for scored in kept if scored.kind == "dish"],
            "venues": [scored for scored in kept if scored.kind == "venue"],
            "featured": [scored for scored in kept if (scored.kind, scored.item.id) in featured],
        }
    )
