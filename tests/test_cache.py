from catalog_search.cache import CacheKey, SearchCache
from catalog_search.models import RankedResultSet


def result_for(query):
    return RankedResultSet.empty(query, normalized_query=query)


def test_set_then_get_returns_value():
    cache = SearchCache()
    key = CacheKey("pizza", "all")
    value = result_for("pizza")

    cache.set(key, value)

    assert cache.get(key) is value
    assert cache.get(CacheKey("pizza", "dish")) is None


def test_least_recently_used_entry_is_evicted_at_capacity():
    cache = SearchCache(capacity=50)
    keys = [CacheKey(f"query{i}", "all") for i in range(51)]
    for key in keys:
        cache.set(key, result_for(key.normalized_query))

    assert len(cache) == 50
    assert keys[0] not in cache
    assert keys[50] in cache
    assert cache.stats()["evictions"] == 1


def test_get_refreshes_recency():
    cache = SearchCache(capacity=2)
    first, second, third = (CacheKey(q, "all") for q in ("a", "b", "c"))
    cache.set(first, result_for("a"))
    cache.set(second, result_for("b"))

    cache.get(first)
    cache.set(third, result_for("c"))

    assert first in cache
    assert second not in cache
    assert third in cache


def test_overwriting_existing_key_does_not_evict():
    cache = SearchCache(capacity=2)
    cache.set(CacheKey("a", "all"), result_for("a"))
    cache.set(CacheKey("b", "all"), result_for("b"))
    cache.set(CacheKey("a", "all"), result_for("a"))

    assert len(cache) == 2
    assert cache.stats()["evictions"] == 0


def test_corrupt_entry_is_treated_as_miss_and_evicted():
    cache = SearchCache()
    key = CacheKey("pizza", "all")
    cache.set(key, {"results": "not-a-result-set"})

    assert cache.get(key) is None
    assert key not in cache
    assert cache.stats()["misses"] == 1


def test_clear_and_stats():
    cache = SearchCache()
    key = CacheKey("pizza", "all")
    cache.set(key, result_for("pizza"))
    cache.get(key)
    cache.get(CacheKey("sushi", "all"))

    stats = cache.stats()
    assert stats["hits"] == 1
    assert stats["misses"] == 1
    assert stats["hit_rate"] == 0.5

    cache.clear()

    assert len(cache) == 0
    assert cache.get(key) is None


def test_clear_does_not_count_as_eviction():
    cache = SearchCache(capacity=3)
    for query in ("a", "b", "c"):
        cache.set(CacheKey(query, "all"), result_for(query))

    cache.clear()
    cache.set(CacheKey("d", "all"), result_for("d"))

    assert cache.stats()["evictions"] == 0
    assert cache.keys() == [CacheKey("d", "all")]
