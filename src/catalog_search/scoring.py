"""Additive relevance scoring for catalog items."""

from __future__ import annotations

from .config import ScoreWeights
from .models import Dish, Venue
from .text import normalise_text


class RelevanceScorer:
    """Scores a dish or venue against an already-normalised query.

    Name matches are tiered (exact, prefix, substring) and only the highest
    tier counts. Every other signal adds independently.
    """

    def __init__(self, weights: ScoreWeights | None = None) -> None:
        self._weights = weights or ScoreWeights()

    @property
    def weights(self) -> ScoreWeights:
        return self._weights

    def score(self, item: Dish | Venue, normalized_query: str) -> int:
        if not normalized_query:
            return 0
        if isinstance(item, Dish):
            return self._score_dish(item, normalized_query)
        if isinstance(item, Venue):
            return self._score_venue(item, normalized_query)
        raise TypeError(f"Unsupported catalog item: {type(item).__name__}")

    def _name_tier(self, name: str, query: str) -> int:
        normalised = normalise_text(name)
        if normalised == query:
            return self._weights.name_exact
        if normalised.startswith(query):
            return self._weights.name_prefix
        if query in normalised:
            return self._weights.name_contains
        return 0

    def _score_dish(self, dish: Dish, query: str) -> int:
        weights = self._weights
        score = self._name_tier(dish.name, query)
        if query in normalise_text(dish.description):
            score += weights.dish_description
        if query in normalise_text(dish.category):
            score += weights.dish_category
        if query in normalise_text(dish.venue_name):
            score += weights.dish_venue_name
        if dish.discount > 0:
            score += weights.dish_discount_bonus
        if dish.available:
            score += weights.dish_available_bonus
        return score

    def _score_venue(self, venue: Venue, query: str) -> int:
        weights = self._weights
        score = self._name_tier(venue.name, query)
        # category and cuisine share one signal, counted once
        if any(query in normalise_text(value) for value in (venue.category, venue.cuisine_type)):
            score += weights.venue_category
        if query in normalise_text(venue.description):
            score += weights.venue_description
        if venue.rating is not None and venue.rating >= weights.venue_rating_threshold:
            score += weights.venue_rating_bonus
        return score
