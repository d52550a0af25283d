"""Catalog source package."""

from .base import (
    CatalogSource,
    parse_dish,
    parse_items,
    parse_suggestions,
    parse_venue,
    unwrap_collection,
)
from .http_source import HttpCatalogSource
from .memory import InMemoryCatalogSource

__all__ = [
    "CatalogSource",
    "HttpCatalogSource",
    "InMemoryCatalogSource",
    "parse_dish",
    "parse_items",
    "parse_suggestions",
    "parse_venue",
    "unwrap_collection",
]
