"""Data models for catalog items and search results."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

KindFilter = Literal["all", "dish", "venue"]
KIND_FILTERS: tuple[str, ...] = ("all", "dish", "venue")
SortOrder = Literal["relevance", "price_asc", "price_desc", "rating", "name"]
SORT_ORDERS: tuple[str, ...] = ("relevance", "price_asc", "price_desc", "rating", "name")


def _coerce_id(value: Any) -> Any:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(int(value)) if float(value).is_integer() else str(value)
    return value


def _coerce_text(value: Any) -> Any:
    if value is None:
        return ""
    return value


class Dish(BaseModel):
    """A menu item offered by a venue."""

    kind: Literal["dish"] = "dish"
    id: str
    name: str = ""
    description: str | None = None
    category: str | None = None
    category_id: str | None = None
    price: float = 0.0
    discount: float = Field(default=0.0, description="Discount percentage.")
    available: bool = True
    rating: float | None = None
    venue_id: str | None = None
    venue_name: str | None = None

    @field_validator("id", "venue_id", "category_id", mode="before")
    @classmethod
    def _normalise_id(cls, value: Any) -> Any:
        return _coerce_id(value)

    @field_validator("name", mode="before")
    @classmethod
    def _normalise_name(cls, value: Any) -> Any:
        return _coerce_text(value)

    @field_validator("available", mode="before")
    @classmethod
    def _default_available(cls, value: Any) -> Any:
        # Absent availability means the dish is orderable.
        return True if value is None else value

    @field_validator("price", "discount", mode="before")
    @classmethod
    def _default_number(cls, value: Any) -> Any:
        return 0.0 if value in (None, "") else value


class Venue(BaseModel):
    """A restaurant listed in the catalog."""

    kind: Literal["venue"] = "venue"
    id: str
    name: str = ""
    category: str | None = None
    cuisine_type: str | None = None
    description: str | None = None
    rating: float | None = None
    status: str | None = None

    @field_validator("id", mode="before")
    @classmethod
    def _normalise_id(cls, value: Any) -> Any:
        return _coerce_id(value)

    @field_validator("name", mode="before")
    @classmethod
    def _normalise_name(cls, value: Any) -> Any:
        return _coerce_text(value)

    @property
    def is_closed(self) -> bool:
        return (self.status or "").strip().lower() == "closed"


CatalogItem = Annotated[Union[Dish, Venue], Field(discriminator="kind")]


class ScoredResult(BaseModel):
    """A catalog item paired with its relevance score for one search."""

    item: CatalogItem
    score: int = Field(ge=0)

    @property
    def kind(self) -> str:
        return self.item.kind

    @property
    def name(self) -> str:
        return self.item.name


class RankedResultSet(BaseModel):
    """Ordered search results plus their per-kind and featured groupings."""

    query: str = ""
    normalized_query: str = ""
    kind_filter: KindFilter = "all"
    results: list[ScoredResult] = Field(default_factory=list)
    dishes: list[ScoredResult] = Field(default_factory=list)
    venues: list[ScoredResult] = Field(default_factory=list)
    featured: list[ScoredResult] = Field(default_factory=list)
    source: str = Field(
        default="none",
        description="Where the results came from: cache, remote:<path>, aggregate, fuzzy or none.",
    )
    elapsed_ms: float = 0.0
    warnings: list[str] = Field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def is_empty(self) -> bool:
        return not self.results

    def plain_items(self) -> list[Dish | Venue]:
        """Return the ranked items without their scores."""

        return [result.item for result in self.results]

    @classmethod
    def empty(
        cls,
        query: str = "",
        *,
        normalized_query: str = "",
        kind_filter: KindFilter = "all",
    ) -> "RankedResultSet":
        return cls(query=query, normalized_query=normalized_query, kind_filter=kind_filter)

    def paginate(self, *, offset: int = 0, limit: int = 20) -> "ResultPage":
        """Slice the ordered results into one page."""

        if offset < 0:
            raise ValueError("offset must not be negative")
        if limit < 1:
            raise ValueError("limit must be at least 1")
        return ResultPage(
            query=self.query,
            kind_filter=self.kind_filter,
            items=self.results[offset : offset + limit],
            total=self.total,
            offset=offset,
            limit=limit,
            source=self.source,
            elapsed_ms=self.elapsed_ms,
            warnings=list(self.warnings),
        )


class SearchFilters(BaseModel):
    """Optional narrowing and ordering applied on top of a ranked search."""

    category: str | None = None
    venue_id: str | None = None
    min_price: float | None = Field(default=None, ge=0)
    max_price: float | None = Field(default=None, ge=0)
    sort_by: SortOrder = "relevance"

    @field_validator("venue_id", mode="before")
    @classmethod
    def _normalise_venue_id(cls, value: Any) -> Any:
        return _coerce_id(value)

    @model_validator(mode="after")
    def _check_price_range(self) -> "SearchFilters":
        if (
            self.min_price is not None
            and self.max_price is not None
            and self.min_price > self.max_price
        ):
            raise ValueError("min_price must not exceed max_price")
        return self

    @property
    def has_price_bounds(self) -> bool:
        return self.min_price is not None or self.max_price is not None


class ResultPage(BaseModel):
    """One page of an ordered result set."""

    query: str = ""
    kind_filter: KindFilter = "all"
    items: list[ScoredResult] = Field(default_factory=list)
    total: int = 0
    offset: int = 0
    limit: int = 20
    source: str = "none"
    elapsed_ms: float = 0.0
    warnings: list[str] = Field(default_factory=list)

    @property
    def has_more(self) -> bool:
        return self.offset + len(self.items) < self.total


class RecentSearchEntry(BaseModel):
    """A query the user executed, remembered for the recent-search list."""

    query: str
    kind_filter: KindFilter = Field(default="all", alias="kindFilter")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = ConfigDict(populate_by_name=True)

    @property
    def key(self) -> tuple[str, str]:
        return self.query, self.kind_filter


class Highlight(BaseModel):
    """The span of a result's text that matched the search term."""

    before: str
    match: str
    after: str
