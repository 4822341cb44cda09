from __future__ import annotations

from datetime import date
from typing import Any, Iterable, Literal, Mapping, TypeVar

from pydantic import BaseModel, Field, ValidationError, ValidationInfo, field_validator

from search_console_mcp.core.quick_wins import QuickWinThresholds
from search_console_mcp.core.request_shaper import (
    DEFAULT_ROW_LIMIT,
    MAX_ROW_LIMIT,
    AggregationType,
    Dimension,
    FilterOperator,
    QueryDescriptor,
    SearchType,
    build_filters,
)

ModelT = TypeVar("ModelT", bound=BaseModel)

Device = Literal["DESKTOP", "MOBILE", "TABLET"]


def format_errors(errors: Iterable[Mapping[str, Any]]) -> str:
    """Collapse pydantic error entries into ``"Invalid arguments: field: reason, ..."``."""
    parts = []
    for error in errors:
        field = ".".join(str(p) for p in error.get("loc", ())) or "arguments"
        parts.append(f"{field}: {error.get('msg', 'invalid value')}")
    return "Invalid arguments: " + ", ".join(parts)


def parse_arguments(model: type[ModelT], data: dict[str, Any]) -> ModelT:
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise ValueError(format_errors(exc.errors())) from exc


def split_dimensions(value: Any) -> Any:
    if isinstance(value, str):
        return [item.strip() for item in value.split(",") if item.strip()]
    return value


class SiteArguments(BaseModel):
    site_url: str = Field(
        min_length=1,
        description=(
            "The site URL as defined in Search Console, e.g. sc-domain:example.com "
            "for domain properties or https://www.example.com/ for URL-prefix properties."
        ),
    )


class DateRangeArguments(SiteArguments):
    start_date: date = Field(description="Start date in YYYY-MM-DD format")
    end_date: date = Field(description="End date in YYYY-MM-DD format")

    @field_validator("end_date")
    @classmethod
    def end_not_before_start(cls, value: date, info: ValidationInfo) -> date:
        start = info.data.get("start_date")
        if start is not None and value < start:
            raise ValueError("must be on or after start_date")
        return value


class SearchAnalyticsArguments(DateRangeArguments):
    dimensions: list[Dimension] | None = None
    search_type: SearchType | None = None
    aggregation_type: AggregationType | None = None
    row_limit: int = Field(default=DEFAULT_ROW_LIMIT, ge=1, le=MAX_ROW_LIMIT)
    page_filter: str | None = None
    query_filter: str | None = None
    country_filter: str | None = Field(
        default=None, description="ISO 3166-1 alpha-3 country code, e.g. USA"
    )
    device_filter: Device | None = None
    filter_operator: FilterOperator = "equals"
    regex_filter: str | None = None

    @field_validator("dimensions", mode="before")
    @classmethod
    def comma_separated_dimensions(cls, value: Any) -> Any:
        return split_dimensions(value)

    def to_descriptor(self) -> QueryDescriptor:
        return QueryDescriptor(
            site_url=self.site_url,
            start_date=self.start_date.isoformat(),
            end_date=self.end_date.isoformat(),
            dimensions=tuple(self.dimensions or ()),
            search_type=self.search_type,
            aggregation_type=self.aggregation_type,
            row_limit=self.row_limit,
            filters=build_filters(
                page_filter=self.page_filter,
                query_filter=self.query_filter,
                country_filter=self.country_filter,
                device_filter=self.device_filter,
                operator=self.filter_operator,
            ),
            regex_filter=self.regex_filter,
        )


class QuickWinsThresholdArguments(BaseModel):
    min_impressions: float = Field(default=50, ge=0)
    max_ctr: float = Field(default=2.0, ge=0, le=100)
    position_range_min: float = Field(default=4, gt=0)
    position_range_max: float = Field(default=10, gt=0)

    def to_thresholds(self, **extra: float) -> QuickWinThresholds:
        return QuickWinThresholds(
            min_impressions=self.min_impressions,
            max_ctr=self.max_ctr,
            position_range_min=self.position_range_min,
            position_range_max=self.position_range_max,
            **extra,
        )


class EnhancedSearchAnalyticsArguments(SearchAnalyticsArguments):
    enable_quick_wins: bool = False
    quick_wins_thresholds: QuickWinsThresholdArguments | None = None

    def to_thresholds(self) -> QuickWinThresholds:
        if self.quick_wins_thresholds is None:
            return QuickWinThresholds()
        return self.quick_wins_thresholds.to_thresholds()


class QuickWinsDetectionArguments(DateRangeArguments, QuickWinsThresholdArguments):
    estimated_click_value: float = Field(default=1.0, ge=0)
    conversion_rate: float = Field(default=0.03, ge=0, le=1)

    def to_thresholds(self, **extra: float) -> QuickWinThresholds:
        extra.setdefault("estimated_click_value", self.estimated_click_value)
        extra.setdefault("conversion_rate", self.conversion_rate)
        return super().to_thresholds(**extra)


class IndexInspectArguments(SiteArguments):
    inspection_url: str = Field(
        min_length=1,
        description="Fully-qualified URL to inspect; must be under site_url.",
    )
    language_code: str = "en-US"


class ListSitemapsArguments(SiteArguments):
    sitemap_index: str | None = None


class SitemapArguments(SiteArguments):
    feedpath: str = Field(
        min_length=1,
        description="URL of the sitemap, e.g. https://www.example.com/sitemap.xml",
    )
