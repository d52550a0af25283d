"""Application configuration utilities."""

from __future__ import annotations

from collections.abc import Sequence
from functools import lru_cache
from pathlib import Path
from typing import Annotated

from pydantic import AnyHttpUrl, BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

DEFAULT_SEARCH_ENDPOINTS = ("products/search", "search/products", "search")


def _default_data_dir() -> Path:
    module_root = Path(__file__).resolve().parents[2]
    if (module_root / "pyproject.toml").exists():
        return module_root / "data"
    return Path.home() / ".cache" / "catalog-search"


class ScoreWeights(BaseModel):
    """Signal weights used by the relevance scorer.

    The defaults are empirical and meant to be tuned against real query logs.
    """

    name_exact: int = Field(default=100, ge=0)
    name_prefix: int = Field(default=80, ge=0)
    name_contains: int = Field(default=60, ge=0)
    dish_category: int = Field(default=25, ge=0)
    dish_description: int = Field(default=30, ge=0)
    dish_venue_name: int = Field(default=15, ge=0)
    dish_discount_bonus: int = Field(default=5, ge=0)
    dish_available_bonus: int = Field(default=5, ge=0)
    venue_category: int = Field(default=40, ge=0)
    venue_description: int = Field(default=20, ge=0)
    venue_rating_bonus: int = Field(default=10, ge=0)
    venue_rating_threshold: float = Field(default=4.5, ge=0)


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables."""

    base_url: AnyHttpUrl = Field(
        default="http://localhost:2021/api/v1/",
        alias="CATALOG_BASE_URL",
        description="Base URL of the catalog/order API.",
    )
    data_dir: Path = Field(
        default_factory=_default_data_dir,
        alias="CATALOG_DATA_DIR",
        description="Directory used for the recent-search store.",
    )
    timeout_seconds: float = Field(
        default=10.0,
        alias="CATALOG_TIMEOUT",
        gt=0,
        description="Timeout in seconds applied to every catalog fetch.",
    )
    concurrency: int = Field(
        default=4,
        alias="CATALOG_CONCURRENCY",
        ge=1,
        description="Maximum number of concurrent catalog fetches.",
    )
    retry_attempts: int = Field(
        default=3,
        alias="CATALOG_RETRY_ATTEMPTS",
        ge=1,
        description="Attempts made for venue and menu fetches before giving up.",
    )
    fetch_cache_ttl_seconds: int = Field(
        default=30,
        alias="CATALOG_FETCH_CACHE_TTL",
        ge=0,
        description="TTL (seconds) of the HTTP response cache; 0 disables it.",
    )
    user_agent: str = Field(
        default="Catalog-Search/0.1",
        alias="CATALOG_USER_AGENT",
        description="User-Agent header presented to the catalog API.",
    )
    venues_path: str = Field(default="restaurants", alias="CATALOG_VENUES_PATH")
    menu_path_template: str = Field(
        default="restaurants/{venue_id}/products",
        alias="CATALOG_MENU_PATH",
    )
    category_path_template: str = Field(
        default="categories/{category_id}/products",
        alias="CATALOG_CATEGORY_PATH",
    )
    suggestions_path: str = Field(
        default="search/suggestions",
        alias="CATALOG_SUGGESTIONS_PATH",
        description="Server-side autocomplete endpoint; local suggestions are the fallback.",
    )
    search_endpoints: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: list(DEFAULT_SEARCH_ENDPOINTS),
        alias="SEARCH_ENDPOINTS",
        description="Comma-separated remote search endpoints, in preference order.",
    )
    debounce_seconds: float = Field(
        default=0.5,
        alias="SEARCH_DEBOUNCE_SECONDS",
        ge=0,
        description="Quiet period required before a typed query is executed.",
    )
    query_max_length: int = Field(default=100, alias="SEARCH_QUERY_MAX_LENGTH", ge=1)
    cache_capacity: int = Field(
        default=50,
        alias="SEARCH_CACHE_CAPACITY",
        ge=1,
        description="Number of ranked result sets kept in the LRU cache.",
    )
    max_menu_venues: int = Field(
        default=15,
        alias="SEARCH_MAX_MENU_VENUES",
        ge=0,
        description="Number of venues whose menus are scanned for a dish search.",
    )
    page_size: int = Field(
        default=20,
        alias="SEARCH_PAGE_SIZE",
        ge=1,
        description="Results per page when no explicit limit is given.",
    )
    featured_threshold: int = Field(default=80, alias="SEARCH_FEATURED_THRESHOLD", ge=0)
    fuzzy_threshold: float = Field(
        default=0.70,
        alias="SEARCH_FUZZY_THRESHOLD",
        ge=0,
        le=1,
        description="Fraction of query characters a fuzzy match must cover.",
    )
    fuzzy_min_query_length: int = Field(default=3, alias="SEARCH_FUZZY_MIN_LENGTH", ge=1)
    suggestion_min_length: int = Field(default=2, alias="SUGGESTION_MIN_LENGTH", ge=1)
    suggestion_limit: int = Field(default=8, alias="SUGGESTION_LIMIT", ge=1)
    recent_search_limit: int = Field(default=10, alias="RECENT_SEARCH_LIMIT", ge=1)
    recent_search_key: str = Field(default="recent_searches", alias="RECENT_SEARCH_KEY")
    score_weights: ScoreWeights = Field(default_factory=ScoreWeights, alias="SCORE_WEIGHTS")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_nested_delimiter="__",
        extra="ignore",
        case_sensitive=False,
        populate_by_name=True,
    )

    @field_validator("search_endpoints", mode="before")
    @classmethod
    def _split_endpoints(cls, value: Sequence[str] | str | None) -> list[str]:
        if value is None:
            return list(DEFAULT_SEARCH_ENDPOINTS)
        if isinstance(value, str):
            candidates = [item.strip() for item in value.split(",")]
            return [item.strip("/") for item in candidates if item]
        return [item.strip("/") for item in value if item and item.strip("/")]

    @property
    def recent_store_path(self) -> Path:
        return Path(self.data_dir) / "recent_searches.json"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached instance of application settings."""

    settings = Settings()
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    return settings
