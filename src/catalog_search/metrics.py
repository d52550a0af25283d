"""Prometheus metrics helpers for the catalog search engine."""

from __future__ import annotations

import threading

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

_LOCK = threading.Lock()
_REGISTRY: CollectorRegistry | None = None

# Prometheus collectors (initialised lazily so tests can reset the registry)
_SEARCH_COUNTER: Counter
_SEARCH_LATENCY_SECONDS: Histogram
_SOURCE_CALL_COUNTER: Counter
_SOURCE_CALL_LATENCY_SECONDS: Histogram
_FETCH_COUNTER: Counter
_FETCH_LATENCY_SECONDS: Histogram


def _initialise_registry() -> None:
    global _REGISTRY
    global _SEARCH_COUNTER, _SEARCH_LATENCY_SECONDS
    global _SOURCE_CALL_COUNTER, _SOURCE_CALL_LATENCY_SECONDS
    global _FETCH_COUNTER, _FETCH_LATENCY_SECONDS

    registry = CollectorRegistry()

    _SEARCH_COUNTER = Counter(
        "catalog_search_requests_total",
        "Search attempts grouped by kind filter and outcome.",
        ["kind", "outcome"],
        registry=registry,
    )
    _SEARCH_LATENCY_SECONDS = Histogram(
        "catalog_search_latency_seconds",
        "Time from quiet period end to ranked results.",
        ["kind", "outcome"],
        registry=registry,
    )
    _SOURCE_CALL_COUNTER = Counter(
        "catalog_source_calls_total",
        "Catalog source calls grouped by operation and outcome.",
        ["source", "operation", "outcome"],
        registry=registry,
    )
    _SOURCE_CALL_LATENCY_SECONDS = Histogram(
        "catalog_source_call_seconds",
        "Latency of catalog source calls.",
        ["source", "operation"],
        registry=registry,
    )
    _FETCH_COUNTER = Counter(
        "catalog_http_fetch_total",
        "HTTP fetches executed against the catalog API.",
        ["outcome", "cache"],
        registry=registry,
    )
    _FETCH_LATENCY_SECONDS = Histogram(
        "catalog_http_fetch_seconds",
        "Latency of catalog HTTP fetches (cache hits are recorded as zero).",
        ["cache"],
        registry=registry,
    )

    _REGISTRY = registry


def _ensure_registry() -> None:
    if _REGISTRY is None:
        with _LOCK:
            if _REGISTRY is None:
                _initialise_registry()


def record_search(kind: str, outcome: str, duration_seconds: float) -> None:
    """Record a search attempt (hit, miss, empty, invalid, failed, superseded)."""

    _ensure_registry()
    _SEARCH_COUNTER.labels(kind=kind, outcome=outcome).inc()
    _SEARCH_LATENCY_SECONDS.labels(kind=kind, outcome=outcome).observe(duration_seconds)


def record_source_call(
    source: str,
    operation: str,
    *,
    outcome: str,
    duration_seconds: float,
) -> None:
    """Record one call made to a catalog source."""

    _ensure_registry()
    _SOURCE_CALL_COUNTER.labels(source=source, operation=operation, outcome=outcome).inc()
    _SOURCE_CALL_LATENCY_SECONDS.labels(source=source, operation=operation).observe(
        duration_seconds
    )


def record_fetch(*, cache_hit: bool, outcome: str, duration_seconds: float) -> None:
    """Record an HTTP fetch (live or cache)."""

    _ensure_registry()
    cache_label = "hit" if cache_hit else "miss"
    _FETCH_COUNTER.labels(outcome=outcome, cache=cache_label).inc()
    _FETCH_LATENCY_SECONDS.labels(cache=cache_label).observe(duration_seconds)


def metrics_payload() -> tuple[bytes, str]:
    """Return the Prometheus metrics payload and content type."""

    _ensure_registry()
    return generate_latest(_REGISTRY or CollectorRegistry()), CONTENT_TYPE_LATEST


def reset_metrics_for_tests() -> None:  # pragma: no cover - test utility
    """Reset the registry so tests can run with a clean state."""

    with _LOCK:
        _initialise_registry()
