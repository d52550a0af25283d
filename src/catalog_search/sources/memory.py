"""In-memory catalog source, optionally loaded from a JSON snapshot."""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

from ..errors import SourceUnavailable
from ..models import Dish, Venue
from .base import CatalogSource, parse_dish, parse_venue


class InMemoryCatalogSource(CatalogSource):
    """Serves a fixed set of venues and menus."""

    source_id = "memory"

    def __init__(
        self,
        venues: Iterable[Venue] = (),
        menus: Mapping[str, Iterable[Dish]] | None = None,
    ) -> None:
        self._venues: list[Venue] = list(venues)
        self._menus: dict[str, list[Dish]] = {
            str(venue_id): list(dishes) for venue_id, dishes in (menus or {}).items()
        }

    async def list_venues(self) -> list[Venue]:
        return list(self._venues)

    async def list_menu(self, venue_id: str) -> list[Dish]:
        if venue_id not in self._menus and not any(v.id == venue_id for v in self._venues):
            raise SourceUnavailable(f"{self.source_id}:menu", f"unknown venue {venue_id!r}")
        return list(self._menus.get(venue_id, []))

    def to_dict(self) -> dict[str, object]:
        return {
            "venues": [venue.model_dump(mode="json") for venue in self._venues],
            "menus": {
                venue_id: [dish.model_dump(mode="json") for dish in dishes]
                for venue_id, dishes in self._menus.items()
            },
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "InMemoryCatalogSource":
        venues = [
            venue
            for venue in (parse_venue(item) for item in payload.get("venues", []) or [])
            if venue is not None
        ]
        menus: dict[str, list[Dish]] = {}
        for venue_id, items in (payload.get("menus", {}) or {}).items():
            menus[str(venue_id)] = [
                dish for dish in (parse_dish(item) for item in items or []) if dish is not None
            ]
        return cls(venues, menus)

    @classmethod
    def from_json(cls, path: Path) -> "InMemoryCatalogSource":
        with path.open("r", encoding="utf-8") as handle:
            payload = json.load(handle)
        return cls.from_dict(payload)

    def save(self, path: Path) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8") as handle:
            json.dump(self.to_dict(), handle, ensure_ascii=False, indent=2)
