import pytest

from catalog_search.config import ScoreWeights
from catalog_search.models import Dish, Venue
from catalog_search.scoring import RelevanceScorer
from catalog_search.text import normalise_text


def make_dish(**overrides):
    payload = {
        "id": "d1",
        "name": "Margherita",
        "price": 10,
        "available": True,
    }
    payload.update(overrides)
    return Dish(**payload)


def make_venue(**overrides):
    payload = {"id": "v1", "name": "Bella Napoli"}
    payload.update(overrides)
    return Venue(**payload)


@pytest.mark.parametrize(
    ("name", "query"),
    [("Pizza", "pizza"), ("Açaí", "ACAI"), ("  Hot-Dog ", "hotdog")],
)
def test_exact_name_scores_at_least_100(name, query):
    scorer = RelevanceScorer()
    normalized = normalise_text(query)

    assert scorer.score(make_dish(name=name), normalized) >= 100
    assert scorer.score(make_venue(name=name), normalized) >= 100


def test_name_tiers_are_mutually_exclusive():
    scorer = RelevanceScorer()
    # available bonus (+5) applies to every dish below
    assert scorer.score(make_dish(name="Pizza"), "pizza") == 105
    assert scorer.score(make_dish(name="Pizza Margherita"), "pizza") == 85
    assert scorer.score(make_dish(name="Veggie Pizza"), "pizza") == 65
    assert scorer.score(make_dish(name="Lasagna"), "pizza") == 5


def test_dish_signals_are_additive():
    scorer = RelevanceScorer()
    dish = make_dish(
        name="Margherita Pizza",
        description="Classic pizza with basil",
        category="Pizza",
        discount=10,
        venue_name="Pizza Hut",
    )

    # contains 60 + description 30 + category 25 + venue 15 + discount 5 + available 5
    assert scorer.score(dish, "pizza") == 140


def test_unavailable_dish_loses_availability_bonus():
    scorer = RelevanceScorer()

    assert scorer.score(make_dish(name="Soup", available=False), "soup") == 100


def test_venue_signals():
    scorer = RelevanceScorer()
    venue = make_venue(
        name="Pizzaria Roma",
        category="Pizza",
        description="Wood-fired pizza",
        rating=4.7,
    )

    # prefix 80 + category 40 + description 20 + rating 10
    assert scorer.score(venue, "pizza") == 150


def test_venue_category_falls_back_to_cuisine_type():
    scorer = RelevanceScorer()
    venue = make_venue(name="Sakura", cuisine_type="Japonesa")

    assert scorer.score(venue, "japonesa") == 40


def test_venue_cuisine_counts_when_category_is_also_set():
    scorer = RelevanceScorer()
    venue = make_venue(name="Casa", category="Restaurante", cuisine_type="Italiana")

    assert scorer.score(venue, "italiana") == 40
    assert scorer.score(venue, "restaurante") == 40


def test_venue_category_signal_is_applied_once():
    scorer = RelevanceScorer()
    venue = make_venue(name="Casa", category="Pizza", cuisine_type="Pizza Napoletana")

    assert scorer.score(venue, "pizza") == 40


def test_venue_rating_below_threshold_has_no_bonus():
    scorer = RelevanceScorer()

    assert scorer.score(make_venue(name="Roma", rating=4.4), "roma") == 100
    assert scorer.score(make_venue(name="Roma", rating=4.5), "roma") == 110


def test_empty_query_scores_zero():
    scorer = RelevanceScorer()

    assert scorer.score(make_dish(discount=20), "") == 0
    assert scorer.score(make_venue(rating=5), "") == 0


def test_custom_weights_are_applied():
    scorer = RelevanceScorer(ScoreWeights(name_exact=7, dish_available_bonus=0))

    assert scorer.score(make_dish(name="Pizza"), "pizza") == 7
