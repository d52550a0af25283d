"""Catalog source abstraction and payload parsing at the source boundary."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any, Literal

from pydantic import ValidationError

from ..errors import SourceUnavailable
from ..models import Dish, KindFilter, Venue

logger = logging.getLogger(__name__)

_VENUE_TYPES = {"restaurant", "venue", "store"}


class CatalogSource(ABC):
    """Abstract base class defining the catalog collaborator interface."""

    source_id: str = "catalog"
    supports_remote_search: bool = False
    supports_category_listing: bool = False
    supports_remote_suggestions: bool = False

    async def initialise(self) -> None:
        """Perform any asynchronous setup required before serving requests."""

        return None

    @abstractmethod
    async def list_venues(self) -> list[Venue]:
        """Return every venue in the catalog."""

    @abstractmethod
    async def list_menu(self, venue_id: str) -> list[Dish]:
        """Return the dishes offered by one venue."""

    async def remote_search(
        self,
        endpoint: str,
        query: str,
        kind_filter: KindFilter = "all",
    ) -> list[Dish | Venue]:
        """Run a server-side search on ``endpoint``; unsupported by default."""

        raise SourceUnavailable(self.source_id, "remote search is not supported")

    async def list_category(self, category_id: str) -> list[Dish]:
        """Return the dishes filed under a category; unsupported by default."""

        raise SourceUnavailable(self.source_id, "category listing is not supported")

    async def remote_suggestions(self, query: str) -> list[str]:
        """Return server-side autocomplete names; unsupported by default."""

        raise SourceUnavailable(self.source_id, "remote suggestions are not supported")

    async def invalidate(self) -> None:
        """Drop any payloads the source keeps between calls."""

        return None

    async def shutdown(self) -> None:
        """Hook invoked during application shutdown to release resources."""

        return None


def unwrap_collection(payload: Any, *, source: str) -> list[Any]:
    """Return the item list from a bare list or a ``{"data": [...]}`` envelope."""

    if isinstance(payload, list):
        return payload
    if isinstance(payload, Mapping):
        for key in ("data", "results", "items"):
            value = payload.get(key)
            if isinstance(value, list):
                return value
            if isinstance(value, Mapping) and isinstance(value.get("data"), list):
                return value["data"]
    raise SourceUnavailable(source, f"malformed payload of type {type(payload).__name__}")


def parse_venue(payload: Any) -> Venue | None:
    if not isinstance(payload, Mapping):
        return None
    data = dict(payload)
    data["kind"] = "venue"
    try:
        return Venue.model_validate(data)
    except ValidationError as exc:
        logger.debug("venue_payload_skipped id=%r error=%s", payload.get("id"), exc)
        return None


def parse_dish(payload: Any, *, venue: Venue | None = None) -> Dish | None:
    if not isinstance(payload, Mapping):
        return None
    data = dict(payload)
    data["kind"] = "dish"
    owner = data.pop("restaurant", None)
    if isinstance(owner, Mapping):
        data.setdefault("venue_id", owner.get("id"))
        data.setdefault("venue_name", owner.get("name"))
    if data.get("venue_id") is None and data.get("restaurant_id") is not None:
        data["venue_id"] = data["restaurant_id"]
    if venue is not None:
        data["venue_id"] = venue.id
        data["venue_name"] = venue.name
    try:
        return Dish.model_validate(data)
    except ValidationError as exc:
        logger.debug("dish_payload_skipped id=%r error=%s", payload.get("id"), exc)
        return None


def parse_suggestions(payload: Any, *, source: str) -> list[str]:
    """Read suggestion names from plain strings or ``{"text"|"name": ...}`` rows."""

    names: list[str] = []
    for raw in unwrap_collection(payload, source=source):
        if isinstance(raw, str):
            value = raw
        elif isinstance(raw, Mapping):
            value = raw.get("text") or raw.get("name") or ""
        else:
            continue
        value = str(value).strip()
        if value and value not in names:
            names.append(value)
    return names


def parse_items(
    payload: Any,
    *,
    source: str,
    default_kind: Literal["dish", "venue"] = "dish",
) -> list[Dish | Venue]:
    """Validate a mixed result payload into catalog items, skipping bad rows."""

    items: list[Dish | Venue] = []
    for raw in unwrap_collection(payload, source=source):
        if not isinstance(raw, Mapping):
            continue
        kind = str(raw.get("type") or raw.get("kind") or default_kind).lower()
        item: Dish | Venue | None
        if kind in _VENUE_TYPES:
            item = parse_venue(raw)
        else:
            item = parse_dish(raw)
        if item is not None:
            items.append(item)
    return items
