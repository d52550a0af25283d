from catalog_search.metrics import (
    metrics_payload,
    record_fetch,
    record_search,
    record_source_call,
    reset_metrics_for_tests,
)


def test_metrics_payload_contains_recorded_values():
    reset_metrics_for_tests()

    record_search("dish", "hit", 0.002)
    record_source_call("catalog-api", "list_menu", outcome="error", duration_seconds=0.3)
    record_fetch(cache_hit=False, outcome="success", duration_seconds=0.05)

    payload, content_type = metrics_payload()

    assert content_type.startswith("text/plain")
    body = payload.decode()
    assert 'catalog_search_requests_total{kind="dish",outcome="hit"} 1.0' in body
    assert "catalog_source_calls_total" in body
    assert "list_menu" in body
    assert "catalog_http_fetch_total" in body


def test_reset_clears_previous_samples():
    reset_metrics_for_tests()
    record_search("all", "failed", 0.1)

    reset_metrics_for_tests()
    body = metrics_payload()[0].decode()

    assert 'outcome="failed"' not in body
