"""Search entry point: validation, debouncing, source fallback, ranking and caching."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, TypeVar

from .cache import CacheKey, SearchCache
from .config import Settings
from .debounce import CancellationToken, Debouncer
from .errors import (
    AllSourcesExhausted,
    QueryValidationError,
    SearchSuperseded,
    SourceUnavailable,
)
from .fuzzy import FuzzyMatcher
from .health import SourceHealthMonitor
from .metrics import record_search, record_source_call
from .models import (
    KIND_FILTERS,
    Dish,
    KindFilter,
    RankedResultSet,
    RecentSearchEntry,
    ResultPage,
    SearchFilters,
    Venue,
)
from .ranking import ResultRanker, apply_filters, matches_filters
from .recent import InMemoryKeyValueStore, KeyValueStore, RecentSearchHistory
from .scoring import RelevanceScorer
from .sources.base import CatalogSource
from .suggestions import SuggestionGenerator
from .text import contains_normalised, normalise_text

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SearchState(str, Enum):
    IDLE = "idle"
    DEBOUNCING = "debouncing"
    FETCHING = "fetching"
    RANKING = "ranking"
    DONE = "done"
    FAILED = "failed"


@dataclass
class CandidatePool:
    """Everything fetched from the catalog for one attempt."""

    venues: list[Venue] = field(default_factory=list)
    dishes: list[Dish] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


def validate_query(raw_query: Any, *, max_length: int = 100) -> str:
    """Return the trimmed query or raise ``QueryValidationError``."""

    if not isinstance(raw_query, str):
        raise QueryValidationError(raw_query, "query must be a string")
    cleaned = raw_query.strip()
    if not cleaned:
        raise QueryValidationError(raw_query, "query is empty")
    if len(cleaned) > max_length:
        raise QueryValidationError(raw_query, f"query is longer than {max_length} characters")
    if not any(char.isalpha() for char in cleaned):
        raise QueryValidationError(raw_query, "query must contain at least one letter")
    return cleaned


def _venue_matches(venue: Venue, normalized_query: str) -> bool:
    return any(
        contains_normalised(value, normalized_query)
        for value in (venue.name, venue.category, venue.cuisine_type, venue.description)
    )


def _dish_matches(dish: Dish, normalized_query: str) -> bool:
    return any(
        contains_normalised(value, normalized_query)
        for value in (dish.name, dish.description, dish.category)
    )


def _matches_kind(item: Dish | Venue, kind_filter: KindFilter) -> bool:
    return kind_filter == "all" or item.kind == kind_filter


class SearchOrchestrator:
    """Owns the search cache, recent-search history and the attempt lifecycle.

    One instance serves one session. Each call to :meth:`search` supersedes
    the previous one: only the newest attempt may write the cache, the
    history or the state, and superseded attempts resolve to ``None``.
    """

    def __init__(
        self,
        source: CatalogSource,
        settings: Settings,
        *,
        store: KeyValueStore | None = None,
        monitor: SourceHealthMonitor | None = None,
        ranker: ResultRanker | None = None,
        fuzzy_matcher: FuzzyMatcher | None = None,
        suggester: SuggestionGenerator | None = None,
    ) -> None:
        self._source = source
        self._settings = settings
        self._ranker = ranker or ResultRanker(
            RelevanceScorer(settings.score_weights),
            featured_threshold=settings.featured_threshold,
        )
        self._fuzzy = fuzzy_matcher or FuzzyMatcher(settings.fuzzy_threshold)
        self._suggester = suggester or SuggestionGenerator(
            min_length=settings.suggestion_min_length,
            limit=settings.suggestion_limit,
        )
        self._cache = SearchCache(settings.cache_capacity)
        self._history = RecentSearchHistory(
            store if store is not None else InMemoryKeyValueStore(),
            key=settings.recent_search_key,
            limit=settings.recent_search_limit,
        )
        self._monitor = monitor or SourceHealthMonitor()
        self._debouncer = Debouncer(settings.debounce_seconds)
        self._fetch_semaphore = asyncio.Semaphore(settings.concurrency)
        self._known_items: dict[tuple[str, str], Dish | Venue] = {}
        self._state = SearchState.IDLE

    @property
    def state(self) -> SearchState:
        return self._state

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def cache(self) -> SearchCache:
        return self._cache

    @property
    def monitor(self) -> SourceHealthMonitor:
        return self._monitor

    async def initialise(self) -> None:
        """Prepare the source and restore the persisted recent searches."""

        await self._source.initialise()
        entries = self._history.load()
        logger.info(
            "search_orchestrator_initialised source=%s recent_searches=%s",
            self._source.source_id,
            len(entries),
        )

    async def shutdown(self) -> None:
        self._debouncer.cancel()
        await self._source.shutdown()

    # ------------------------------------------------------------------
    # Caller-facing API
    # ------------------------------------------------------------------

    async def search(
        self,
        raw_query: str,
        kind_filter: KindFilter = "all",
        *,
        immediate: bool = False,
    ) -> RankedResultSet | None:
        """Run a search for a typed query.

        Returns the ranked results, an empty result set for invalid input, or
        ``None`` when a newer call superseded this one. Raises
        ``AllSourcesExhausted`` when no catalog source could be reached.
        """

        if kind_filter not in KIND_FILTERS:
            raise ValueError(f"Unknown kind filter {kind_filter!r}")

        try:
            query = validate_query(raw_query, max_length=self._settings.query_max_length)
        except QueryValidationError as exc:
            logger.debug("search_rejected kind=%s reason=%s", kind_filter, exc.reason)
            self._debouncer.cancel()
            self._state = SearchState.IDLE
            record_search(kind_filter, "invalid", 0.0)
            raw = raw_query.strip() if isinstance(raw_query, str) else ""
            return RankedResultSet.empty(raw, kind_filter=kind_filter)

        token = self._debouncer.issue()
        if not immediate:
            self._set_state(token, SearchState.DEBOUNCING)
            if not await self._debouncer.settle(token):
                logger.debug("search_debounced query=%s", query)
                record_search(kind_filter, "superseded", 0.0)
                return None

        return await self._execute(token, query, kind_filter)

    async def submit(self, raw_query: str, kind_filter: KindFilter = "all") -> RankedResultSet | None:
        """Search now, skipping the debounce wait (explicit submission)."""

        return await self.search(raw_query, kind_filter, immediate=True)

    async def advanced_search(
        self,
        raw_query: str,
        filters: SearchFilters | None = None,
        kind_filter: KindFilter = "all",
        *,
        limit: int | None = None,
        offset: int = 0,
    ) -> ResultPage | None:
        """Search now, then narrow, reorder and page the ranked results.

        Filters are applied to the cached result set, so changing filters or
        pages for the same query does not refetch. Returns ``None`` when a
        newer search superseded this one.
        """

        page_size = limit if limit is not None else self._settings.page_size
        if page_size < 1:
            raise ValueError("limit must be at least 1")
        if offset < 0:
            raise ValueError("offset must not be negative")

        result = await self.submit(raw_query, kind_filter)
        if result is None:
            return None
        if filters is not None:
            result = apply_filters(result, filters)
        return result.paginate(offset=offset, limit=page_size)

    async def browse_category(
        self,
        category_id: str,
        filters: SearchFilters | None = None,
        *,
        limit: int | None = None,
        offset: int = 0,
    ) -> ResultPage:
        """List the dishes of one category, name-ordered.

        Uses the source's category listing when it has one, otherwise scans
        the aggregated menus for dishes whose category id or name matches.
        Raises ``AllSourcesExhausted`` when neither path can reach the catalog.
        """

        page_size = limit if limit is not None else self._settings.page_size
        start = time.perf_counter()
        warnings: list[str] = []
        dishes: list[Dish] | None = None
        source = f"category:{category_id}"

        if self._source.supports_category_listing:
            try:
                dishes = await self._call_source(
                    "list_category", lambda: self._source.list_category(category_id)
                )
            except SourceUnavailable as exc:
                logger.info("category_listing_failed category=%s error=%s", category_id, exc)
                warnings.append(str(exc))

        if dishes is None:
            pool = await self._collect_candidates(
                CancellationToken(), "dish", query=category_id, warnings=warnings
            )
            wanted = SearchFilters(category=category_id)
            dishes = [dish for dish in pool.dishes if matches_filters(dish, wanted)]
            source = "aggregate"

        self._remember(dishes)
        ranked = self._ranker.rank(dishes, "", query=category_id, kind_filter="dish")
        if filters is not None:
            ranked = apply_filters(ranked, filters)
        ranked = ranked.model_copy(
            update={
                "source": source,
                "warnings": warnings,
                "elapsed_ms": (time.perf_counter() - start) * 1000,
            }
        )
        logger.info(
            "category_browsed category=%s source=%s results=%s",
            category_id,
            source,
            ranked.total,
        )
        return ranked.paginate(offset=offset, limit=page_size)

    def suggestions(self, raw_query: str) -> list[str]:
        """Autocomplete names from the catalog items seen so far."""

        return self._suggester.suggest(normalise_text(raw_query), self._known_items.values())

    async def fetch_suggestions(self, raw_query: str) -> list[str]:
        """Autocomplete from the server, falling back to local catalog names.

        The local fallback loads the catalog first when nothing has been seen
        yet. An unreachable catalog yields no suggestions instead of an error.
        """

        if len(normalise_text(raw_query)) < self._settings.suggestion_min_length:
            return []

        if self._source.supports_remote_suggestions:
            query = raw_query.strip()
            try:
                names = await self._call_source(
                    "remote_suggestions", lambda: self._source.remote_suggestions(query)
                )
            except SourceUnavailable as exc:
                logger.info("remote_suggestions_failed error=%s", exc)
            else:
                if names:
                    return names[: self._settings.suggestion_limit]

        if not self._known_items:
            try:
                await self.load_catalog()
            except AllSourcesExhausted as exc:
                logger.warning("suggestion_catalog_unavailable error=%s", exc)
                return []
        return self.suggestions(raw_query)

    def recent_searches(self) -> list[RecentSearchEntry]:
        return self._history.entries

    def clear_recent_searches(self) -> None:
        self._history.clear()
        logger.info("recent_searches_cleared")

    async def clear_cache(self) -> None:
        """Drop cached result sets, remembered items and the source's payloads."""

        self._cache.clear()
        self._known_items.clear()
        await self._source.invalidate()
        logger.info("search_cache_cleared source=%s", self._source.source_id)

    async def load_catalog(self) -> int:
        """Fetch venues and menus up front so suggestions have material."""

        pool = await self._collect_candidates(CancellationToken(), "all", query="")
        return len(pool.venues) + len(pool.dishes)

    def status(self) -> dict[str, Any]:
        return {
            "state": self._state.value,
            "source": self._source.source_id,
            "cache": self._cache.stats(),
            "recent_searches": len(self._history.entries),
            "known_items": len(self._known_items),
            "health": self._monitor.summary(),
        }

    # ------------------------------------------------------------------
    # Attempt lifecycle
    # ------------------------------------------------------------------

    def _set_state(self, token: CancellationToken, state: SearchState) -> None:
        if self._debouncer.is_current(token):
            self._state = state

    async def _execute(
        self,
        token: CancellationToken,
        query: str,
        kind_filter: KindFilter,
    ) -> RankedResultSet | None:
        start = time.perf_counter()
        normalized = normalise_text(query)
        key = CacheKey(normalized, kind_filter)

        self._set_state(token, SearchState.FETCHING)
        cached = self._cache.get(key)
        if cached is not None:
            logger.info("search_cache_hit query=%s kind=%s", normalized, kind_filter)
            elapsed = time.perf_counter() - start
            self._history.record(query, kind_filter)
            self._set_state(token, SearchState.DONE)
            record_search(kind_filter, "hit", elapsed)
            return cached.model_copy(
                update={"query": query, "source": "cache", "elapsed_ms": elapsed * 1000}
            )

        try:
            result = await self._fetch_and_rank(token, query, normalized, kind_filter)
        except SearchSuperseded:
            logger.debug("search_discarded query=%s kind=%s", normalized, kind_filter)
            record_search(kind_filter, "superseded", time.perf_counter() - start)
            return None
        except AllSourcesExhausted:
            elapsed = time.perf_counter() - start
            if not self._debouncer.is_current(token):
                record_search(kind_filter, "superseded", elapsed)
                return None
            self._set_state(token, SearchState.FAILED)
            record_search(kind_filter, "failed", elapsed)
            logger.error("search_failed query=%s kind=%s", normalized, kind_filter)
            raise

        elapsed = time.perf_counter() - start
        if not self._debouncer.is_current(token):
            logger.debug("search_discarded query=%s kind=%s", normalized, kind_filter)
            record_search(kind_filter, "superseded", elapsed)
            return None

        result = result.model_copy(update={"elapsed_ms": elapsed * 1000})
        self._cache.set(key, result)
        self._history.record(query, kind_filter)
        self._set_state(token, SearchState.DONE)
        record_search(kind_filter, "miss" if result.results else "empty", elapsed)
        logger.info(
            "search_completed query=%s kind=%s source=%s results=%s warnings=%s",
            normalized,
            kind_filter,
            result.source,
            result.total,
            len(result.warnings),
        )
        return result

    async def _fetch_and_rank(
        self,
        token: CancellationToken,
        query: str,
        normalized: str,
        kind_filter: KindFilter,
    ) -> RankedResultSet:
        warnings: list[str] = []

        remote = await self._try_remote_endpoints(token, query, kind_filter, warnings)
        if remote is not None:
            endpoint, items = remote
            self._set_state(token, SearchState.RANKING)
            ranked = self._ranker.rank(
                items,
                normalized,
                query=query,
                kind_filter=kind_filter,
            )
            return ranked.model_copy(update={"source": f"remote:{endpoint}", "warnings": warnings})

        pool = await self._collect_candidates(token, kind_filter, query=query, warnings=warnings)
        self._set_state(token, SearchState.RANKING)

        candidates: list[Dish | Venue] = []
        if kind_filter != "venue":
            candidates.extend(dish for dish in pool.dishes if _dish_matches(dish, normalized))
        if kind_filter != "dish":
            candidates.extend(venue for venue in pool.venues if _venue_matches(venue, normalized))
        ranked = self._ranker.rank(candidates, normalized, query=query, kind_filter=kind_filter)
        source = "aggregate"

        if (
            ranked.is_empty
            and kind_filter != "venue"
            and len(normalized) >= self._settings.fuzzy_min_query_length
        ):
            fuzzy_candidates = [
                dish for dish in pool.dishes if self._fuzzy.matches(dish.name, normalized)
            ]
            if fuzzy_candidates:
                logger.info(
                    "search_fuzzy_fallback query=%s candidates=%s",
                    normalized,
                    len(fuzzy_candidates),
                )
                ranked = self._ranker.rank(
                    fuzzy_candidates, normalized, query=query, kind_filter=kind_filter
                )
                source = "fuzzy"

        return ranked.model_copy(update={"source": source, "warnings": pool.warnings})

    async def _try_remote_endpoints(
        self,
        token: CancellationToken,
        query: str,
        kind_filter: KindFilter,
        warnings: list[str],
    ) -> tuple[str, list[Dish | Venue]] | None:
        if not self._source.supports_remote_search:
            return None
        for endpoint in self._settings.search_endpoints:
            if token.cancelled:
                raise SearchSuperseded(query)
            try:
                items = await self._call_source(
                    "remote_search",
                    lambda endpoint=endpoint: self._source.remote_search(endpoint, query, kind_filter),
                )
            except SourceUnavailable as exc:
                logger.info("remote_search_failed endpoint=%s error=%s", endpoint, exc)
                warnings.append(str(exc))
                continue
            items = [item for item in items if _matches_kind(item, kind_filter)]
            if not items:
                logger.debug(
                    "remote_search_empty endpoint=%s query=%s kind=%s", endpoint, query, kind_filter
                )
                continue
            logger.info("remote_search_succeeded endpoint=%s results=%s", endpoint, len(items))
            self._remember(items)
            return endpoint, items
        if token.cancelled:
            raise SearchSuperseded(query)
        return None

    async def _collect_candidates(
        self,
        token: CancellationToken,
        kind_filter: KindFilter,
        *,
        query: str,
        warnings: list[str] | None = None,
    ) -> CandidatePool:
        pool = CandidatePool(warnings=warnings if warnings is not None else [])
        try:
            pool.venues = await self._call_source("list_venues", self._source.list_venues)
        except SourceUnavailable as exc:
            logger.error("venue_list_failed error=%s", exc)
            pool.warnings.append(str(exc))
            raise AllSourcesExhausted(query, pool.warnings) from exc
        if token.cancelled:
            raise SearchSuperseded(query)
        self._remember(pool.venues)

        if kind_filter != "venue":
            scanned = pool.venues[: self._settings.max_menu_venues]
            menus = await asyncio.gather(
                *(self._fetch_menu(token, venue, pool.warnings) for venue in scanned)
            )
            if token.cancelled:
                raise SearchSuperseded(query)
            for dishes in menus:
                pool.dishes.extend(dishes)
            self._remember(pool.dishes)
        return pool

    async def _fetch_menu(
        self,
        token: CancellationToken,
        venue: Venue,
        warnings: list[str],
    ) -> list[Dish]:
        async with self._fetch_semaphore:
            if token.cancelled:
                return []
            try:
                dishes = await self._call_source(
                    "list_menu", lambda: self._source.list_menu(venue.id)
                )
            except SourceUnavailable as exc:
                logger.warning("menu_fetch_failed venue=%s error=%s", venue.id, exc)
                warnings.append(f"venue {venue.id}: {exc}")
                return []
        return [
            dish.model_copy(update={"venue_id": venue.id, "venue_name": venue.name})
            for dish in dishes
        ]

    async def _call_source(self, operation: str, call: Callable[[], Awaitable[T]]) -> T:
        source_id = self._source.source_id
        timeout = self._settings.timeout_seconds
        start = time.perf_counter()
        try:
            result = await asyncio.wait_for(call(), timeout=timeout)
        except asyncio.TimeoutError as exc:
            error = SourceUnavailable(f"{source_id}:{operation}", f"timed out after {timeout}s")
            self._record_call(operation, start, error)
            raise error from exc
        except SourceUnavailable as exc:
            self._record_call(operation, start, exc)
            raise
        except Exception as exc:  # any collaborator failure counts against that source only
            error = SourceUnavailable(f"{source_id}:{operation}", str(exc) or type(exc).__name__)
            self._record_call(operation, start, error)
            raise error from exc
        self._record_call(operation, start, None)
        return result

    def _record_call(self, operation: str, start: float, error: Exception | None) -> None:
        duration = time.perf_counter() - start
        record_source_call(
            self._source.source_id,
            operation,
            outcome="error" if error else "success",
            duration_seconds=duration,
        )
        self._monitor.record_call(
            source_id=self._source.source_id,
            operation=operation,
            duration_ms=duration * 1000,
            success=error is None,
            error_message=str(error) if error else None,
        )

    def _remember(self, items: Iterable[Dish | Venue]) -> None:
        for item in items:
            self._known_items[(item.kind, item.id)] = item
