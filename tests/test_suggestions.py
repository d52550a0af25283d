from catalog_search.models import Dish, Venue
from catalog_search.suggestions import SuggestionGenerator


def items():
    return [
        Dish(id="1", name="Pizza", price=10),
        Dish(id="2", name="Pizza Margherita", price=12),
        Venue(id="v1", name="Pizzaria Roma"),
        Dish(id="3", name="Pizza Margherita", price=14),
        Dish(id="4", name="Calzone", price=9),
        Dish(id="5", name="Mini Pizza", price=6),
    ]


def test_suggestions_extend_the_query_without_echoing_it():
    suggestions = SuggestionGenerator().suggest("pizza", items())

    assert suggestions == ["Pizza Margherita", "Pizzaria Roma", "Mini Pizza"]


def test_short_queries_yield_no_suggestions():
    assert SuggestionGenerator().suggest("p", items()) == []


def test_suggestions_respect_limit():
    suggestions = SuggestionGenerator(limit=2).suggest("pi", items())

    assert suggestions == ["Pizza", "Pizza Margherita"]


def test_suggestions_match_accent_insensitively():
    catalog = [Dish(id="1", name="Açaí na tigela", price=15)]

    assert SuggestionGenerator().suggest("acai", catalog) == ["Açaí na tigela"]
