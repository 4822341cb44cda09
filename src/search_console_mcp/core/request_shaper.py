from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal

Dimension = Literal["query", "page", "country", "device", "searchAppearance"]
FilterOperator = Literal[
    "equals",
    "contains",
    "notEquals",
    "notContains",
    "includingRegex",
    "excludingRegex",
]
SearchType = Literal["web", "image", "video", "news"]
AggregationType = Literal["auto", "byNewsShowcasePanel", "byProperty", "byPage"]

DIMENSIONS: tuple[str, ...] = ("query", "page", "country", "device", "searchAppearance")
FILTER_OPERATORS: tuple[str, ...] = (
    "equals",
    "contains",
    "notEquals",
    "notContains",
    "includingRegex",
    "excludingRegex",
)
# The API only supports exact matches on these dimensions.
EQUALS_ONLY_DIMENSIONS = frozenset({"country", "device"})

DEFAULT_ROW_LIMIT = 1000
MAX_ROW_LIMIT = 25000


@dataclass(frozen=True)
class DimensionFilter:
    dimension: str
    operator: str
    expression: str

    def to_body(self) -> dict[str, str]:
        return {
            "dimension": self.dimension,
            "operator": self.operator,
            "expression": self.expression,
        }


@dataclass(frozen=True)
class FilterGroup:
    filters: tuple[DimensionFilter, ...]
    group_type: str = "and"

    def to_body(self) -> dict[str, Any]:
        return {
            "groupType": self.group_type,
            "filters": [f.to_body() for f in self.filters],
        }


@dataclass(frozen=True)
class QueryDescriptor:
    site_url: str
    start_date: str
    end_date: str
    dimensions: tuple[str, ...] = ()
    search_type: str | None = None
    aggregation_type: str | None = None
    row_limit: int = DEFAULT_ROW_LIMIT
    filters: tuple[DimensionFilter, ...] = ()
    regex_filter: str | None = None

    @property
    def regex_applies(self) -> bool:
        return bool(self.regex_filter) and "query" in self.dimensions


@dataclass(frozen=True)
class WireQuery:
    site_url: str
    start_date: str
    end_date: str
    dimensions: tuple[str, ...]
    search_type: str | None
    aggregation_type: str | None
    row_limit: int
    filter_groups: tuple[FilterGroup, ...]

    def to_body(self) -> dict[str, Any]:
        body: dict[str, Any] = {
            "startDate": self.start_date,
            "endDate": self.end_date,
            "rowLimit": self.row_limit,
        }
        if self.dimensions:
            body["dimensions"] = list(self.dimensions)
        if self.search_type:
            body["type"] = self.search_type
        if self.aggregation_type:
            body["aggregationType"] = self.aggregation_type
        if self.filter_groups:
            body["dimensionFilterGroups"] = [g.to_body() for g in self.filter_groups]
        return body


def build_filters(
    *,
    page_filter: str | None = None,
    query_filter: str | None = None,
    country_filter: str | None = None,
    device_filter: str | None = None,
    operator: str = "equals",
) -> tuple[DimensionFilter, ...]:
    filters: list[DimensionFilter] = []
    if page_filter:
        filters.append(DimensionFilter("page", operator, page_filter))
    if query_filter:
        filters.append(DimensionFilter("query", operator, query_filter))
    if country_filter:
        filters.append(DimensionFilter("country", "equals", country_filter))
    if device_filter:
        filters.append(DimensionFilter("device", "equals", device_filter))
    return tuple(filters)


def _coerce_operator(item: DimensionFilter) -> DimensionFilter:
    if item.dimension in EQUALS_ONLY_DIMENSIONS and item.operator != "equals":
        return DimensionFilter(item.dimension, "equals", item.expression)
    return item


def shape(descriptor: QueryDescriptor) -> WireQuery:
    groups: list[FilterGroup] = []

    if descriptor.filters:
        groups.append(
            FilterGroup(tuple(_coerce_operator(f) for f in descriptor.filters))
        )

    if descriptor.regex_applies:
        groups.append(
            FilterGroup(
                (DimensionFilter("query", "includingRegex", descriptor.regex_filter or ""),)
            )
        )

    return WireQuery(
        site_url=descriptor.site_url,
        start_date=descriptor.start_date,
        end_date=descriptor.end_date,
        dimensions=tuple(descriptor.dimensions),
        search_type=descriptor.search_type,
        aggregation_type=descriptor.aggregation_type,
        row_limit=descriptor.row_limit,
        filter_groups=tuple(groups),
    )
