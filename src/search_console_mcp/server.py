from __future__ import annotations

import logging
import sys
from typing import Any

from dotenv import load_dotenv
from mcp.server.fastmcp import FastMCP

from search_console_mcp.config import (
    Settings,
    configure_logging,
    load_settings,
    require_service_account,
)
from search_console_mcp.connectors.gsc import GSCConnector
from search_console_mcp.core import analytics
from search_console_mcp.core.quick_wins import TARGET_CTR, QuickWinThresholds
from search_console_mcp.core.request_shaper import DEFAULT_ROW_LIMIT
from search_console_mcp.schemas import (
    EnhancedSearchAnalyticsArguments,
    IndexInspectArguments,
    ListSitemapsArguments,
    QuickWinsDetectionArguments,
    SearchAnalyticsArguments,
    SitemapArguments,
    parse_arguments,
)

logger = logging.getLogger(__name__)

mcp = FastMCP("search-console-mcp")
_gsc_connector: GSCConnector | None = None

TOOLS = (
    "list_sites",
    "search_analytics",
    "enhanced_search_analytics",
    "detect_quick_wins",
    "index_inspect",
    "list_sitemaps",
    "get_sitemap",
    "submit_sitemap",
)


def _get_settings() -> Settings:
    return load_settings()


def _get_gsc_connector() -> GSCConnector:
    global _gsc_connector
    if _gsc_connector is None:
        _gsc_connector = GSCConnector.from_service_account(_get_settings())
    return _gsc_connector


@mcp.tool()
def capabilities() -> dict[str, Any]:
    """Show available tools, row limits, and quick-win defaults."""
    settings = _get_settings()
    return {
        "row_limits": {
            "default": DEFAULT_ROW_LIMIT,
            "max": settings.max_row_limit,
            "quick_wins": settings.quick_wins_row_limit,
        },
        "quick_win_defaults": {**QuickWinThresholds().as_dict(), "targetCtr": TARGET_CTR},
        "tools": list(TOOLS),
    }


@mcp.tool()
async def list_sites() -> dict[str, Any]:
    """List all sites in Google Search Console."""
    return await _get_gsc_connector().list_sites()


@mcp.tool()
async def search_analytics(
    site_url: str,
    start_date: str,
    end_date: str,
    dimensions: str | list[str] | None = None,
    search_type: str | None = None,
    aggregation_type: str | None = None,
    row_limit: int = DEFAULT_ROW_LIMIT,
    page_filter: str | None = None,
    query_filter: str | None = None,
    country_filter: str | None = None,
    device_filter: str | None = None,
    filter_operator: str = "equals",
) -> dict[str, Any]:
    """Get search performance data from Google Search Console.

    dimensions: comma-separated or list of query, page, country, device, searchAppearance.
    filter_operator applies to page/query filters; country and device always match exactly.
    """
    args = parse_arguments(SearchAnalyticsArguments, locals())
    return await analytics.search_analytics(_get_gsc_connector(), args.to_descriptor())


@mcp.tool()
async def enhanced_search_analytics(
    site_url: str,
    start_date: str,
    end_date: str,
    dimensions: str | list[str] | None = None,
    search_type: str | None = None,
    aggregation_type: str | None = None,
    row_limit: int = DEFAULT_ROW_LIMIT,
    page_filter: str | None = None,
    query_filter: str | None = None,
    country_filter: str | None = None,
    device_filter: str | None = None,
    filter_operator: str = "equals",
    regex_filter: str | None = None,
    enable_quick_wins: bool = False,
    quick_wins_thresholds: dict[str, float] | None = None,
) -> dict[str, Any]:
    """Search analytics with up to 25,000 rows, regex query filters, and quick wins detection.

    regex_filter only applies when "query" is one of the dimensions.
    quick_wins_thresholds keys: min_impressions, max_ctr (percent), position_range_min,
    position_range_max.
    """
    args = parse_arguments(EnhancedSearchAnalyticsArguments, locals())
    return await analytics.enhanced_search_analytics(
        _get_gsc_connector(),
        args.to_descriptor(),
        enable_quick_wins=args.enable_quick_wins,
        thresholds=args.to_thresholds(),
    )


@mcp.tool()
async def detect_quick_wins(
    site_url: str,
    start_date: str,
    end_date: str,
    min_impressions: float = 50,
    max_ctr: float = 2.0,
    position_range_min: float = 4,
    position_range_max: float = 10,
    estimated_click_value: float = 1.0,
    conversion_rate: float = 0.03,
) -> dict[str, Any]:
    """Detect SEO quick wins: queries with many impressions, low CTR, and a position of 4-10."""
    args = parse_arguments(QuickWinsDetectionArguments, locals())
    return await analytics.detect_quick_wins(
        _get_gsc_connector(),
        args.site_url,
        args.start_date.isoformat(),
        args.end_date.isoformat(),
        args.to_thresholds(),
        row_limit=_get_settings().quick_wins_row_limit,
    )


@mcp.tool()
async def index_inspect(
    site_url: str,
    inspection_url: str,
    language_code: str = "en-US",
) -> dict[str, Any]:
    """Inspect a URL to see if it is indexed or can be indexed."""
    args = parse_arguments(IndexInspectArguments, locals())
    return await _get_gsc_connector().inspect_url(
        args.site_url,
        args.inspection_url,
        args.language_code,
    )


@mcp.tool()
async def list_sitemaps(site_url: str, sitemap_index: str | None = None) -> dict[str, Any]:
    """List sitemaps for a site in Google Search Console."""
    args = parse_arguments(ListSitemapsArguments, locals())
    return await _get_gsc_connector().list_sitemaps(args.site_url, args.sitemap_index)


@mcp.tool()
async def get_sitemap(site_url: str, feedpath: str) -> dict[str, Any]:
    """Get a sitemap for a site in Google Search Console."""
    args = parse_arguments(SitemapArguments, locals())
    return await _get_gsc_connector().get_sitemap(args.site_url, args.feedpath)


@mcp.tool()
async def submit_sitemap(site_url: str, feedpath: str) -> dict[str, Any]:
    """Submit a sitemap for a site in Google Search Console."""
    args = parse_arguments(SitemapArguments, locals())
    return await _get_gsc_connector().submit_sitemap(args.site_url, args.feedpath)


def main() -> None:
    global _gsc_connector
    load_dotenv()
    settings = _get_settings()
    configure_logging(settings.log_level)

    try:
        require_service_account(settings)
        _gsc_connector = GSCConnector.from_service_account(settings)
    except Exception:
        logger.exception("Search Console MCP server cannot start")
        sys.exit(1)

    logger.info("Search Console MCP server running on stdio")
    mcp.run()


if __name__ == "__main__":
    main()
