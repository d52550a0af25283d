"""Catalog source backed by the catalog/order HTTP API."""

from __future__ import annotations

import json
import logging
from typing import Any

import httpx
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from ..config import Settings
from ..errors import SourceUnavailable
from ..live_fetch import LiveFetchClient
from ..models import Dish, KindFilter, Venue
from .base import (
    CatalogSource,
    parse_dish,
    parse_items,
    parse_suggestions,
    parse_venue,
    unwrap_collection,
)

logger = logging.getLogger(__name__)

_REMOTE_KIND_PARAM = {"dish": "product", "venue": "restaurant"}


class HttpCatalogSource(CatalogSource):
    """Reads venues and menus from the REST API and proxies remote search."""

    source_id = "catalog-api"
    supports_remote_search = True
    supports_category_listing = True
    supports_remote_suggestions = True

    def __init__(
        self,
        settings: Settings,
        *,
        fetcher: LiveFetchClient | None = None,
    ) -> None:
        self._settings = settings
        self._fetcher = fetcher or LiveFetchClient(settings)

    @property
    def settings(self) -> Settings:
        return self._settings

    async def initialise(self) -> None:
        logger.info("catalog_source_initialised source=%s base_url=%s", self.source_id, self._fetcher.base_url)

    async def shutdown(self) -> None:
        await self._fetcher.close()

    async def invalidate(self) -> None:
        await self._fetcher.clear_cache()
        logger.info("catalog_source_invalidated source=%s", self.source_id)

    def _retrying(self) -> AsyncRetrying:
        return AsyncRetrying(
            wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
            stop=stop_after_attempt(self._settings.retry_attempts),
            retry=retry_if_exception_type((httpx.TransportError, httpx.HTTPStatusError)),
            reraise=True,
        )

    async def _get_json(
        self,
        path: str,
        params: dict[str, Any] | None = None,
        *,
        use_cache: bool = True,
        retry: bool = True,
    ) -> Any:
        try:
            if not retry:
                return await self._fetcher.fetch_json(path, params, use_cache=use_cache)
            async for attempt in self._retrying():
                with attempt:
                    return await self._fetcher.fetch_json(path, params, use_cache=use_cache)
        except httpx.HTTPStatusError as exc:
            raise SourceUnavailable(
                f"{self.source_id}:{path}", f"HTTP {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            raise SourceUnavailable(f"{self.source_id}:{path}", str(exc) or type(exc).__name__) from exc
        except json.JSONDecodeError as exc:
            raise SourceUnavailable(f"{self.source_id}:{path}", "response is not JSON") from exc
        raise SourceUnavailable(f"{self.source_id}:{path}", "no attempt was made")  # pragma: no cover

    async def list_venues(self) -> list[Venue]:
        path = self._settings.venues_path
        payload = await self._get_json(path)
        venues: list[Venue] = []
        for raw in unwrap_collection(payload, source=f"{self.source_id}:{path}"):
            venue = parse_venue(raw)
            if venue is not None:
                venues.append(venue)
        return venues

    async def _get_dishes(self, path: str) -> list[Dish]:
        payload = await self._get_json(path)
        dishes: list[Dish] = []
        for raw in unwrap_collection(payload, source=f"{self.source_id}:{path}"):
            dish = parse_dish(raw)
            if dish is not None:
                dishes.append(dish)
        return dishes

    async def remote_search(
        self,
        endpoint: str,
        query: str,
        kind_filter: KindFilter = "all",
    ) -> list[Dish | Venue]:
        # Deployments disagree on the parameter name, so send all three.
        params: dict[str, Any] = {"q": query, "search": query, "query": query}
        if kind_filter in _REMOTE_KIND_PARAM:
            params["type"] = _REMOTE_KIND_PARAM[kind_filter]
        payload = await self._get_json(endpoint, params, use_cache=False, retry=False)
        return parse_items(payload, source=f"{self.source_id}:{endpoint}")

    async def list_menu(self, venue_id: str) -> list[Dish]:
        return await self._get_dishes(self._settings.menu_path_template.format(venue_id=venue_id))

    async def list_category(self, category_id: str) -> list[Dish]:
        return await self._get_dishes(
            self._settings.category_path_template.format(category_id=category_id)
        )

    async def remote_suggestions(self, query: str) -> list[str]:
        path = self._settings.suggestions_path
        payload = await self._get_json(path, {"q": query}, use_cache=False, retry=False)
        return parse_suggestions(payload, source=f"{self.source_id}:{path}")
