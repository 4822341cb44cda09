from __future__ import annotations

from typing import Any, Protocol

from search_console_mcp.core.quick_wins import QuickWinThresholds, detect
from search_console_mcp.core.request_shaper import (
    DEFAULT_ROW_LIMIT,
    MAX_ROW_LIMIT,
    QueryDescriptor,
    WireQuery,
    shape,
)


class AnalyticsClient(Protocol):
    async def search_analytics(self, wire_query: WireQuery) -> dict[str, Any]: ...


async def search_analytics(
    client: AnalyticsClient,
    descriptor: QueryDescriptor,
) -> dict[str, Any]:
    return await client.search_analytics(shape(descriptor))


async def enhanced_search_analytics(
    client: AnalyticsClient,
    descriptor: QueryDescriptor | None,
    *,
    enable_quick_wins: bool = False,
    thresholds: QuickWinThresholds | None = None,
) -> dict[str, Any]:
    """Run a search analytics query, optionally attaching quick-win candidates.

    The response is returned as is when quick wins are disabled or the query
    produced no rows.
    """
    if descriptor is None:
        raise ValueError("Query descriptor is required")

    result = await client.search_analytics(shape(descriptor))

    rows = result.get("rows")
    if not enable_quick_wins or not rows:
        return result

    quick_wins = [
        c.as_dict()
        for c in detect(rows, thresholds, dimensions=descriptor.dimensions or ("query", "page"))
    ]
    return {
        **result,
        "quickWins": quick_wins,
        "quickWinsCount": len(quick_wins),
        "enhancedFeatures": {
            "regexFilterApplied": descriptor.regex_applies,
            "quickWinsEnabled": True,
            "rowLimit": descriptor.row_limit or DEFAULT_ROW_LIMIT,
        },
    }


async def detect_quick_wins(
    client: AnalyticsClient,
    site_url: str,
    start_date: str,
    end_date: str,
    thresholds: QuickWinThresholds | None = None,
    *,
    row_limit: int = MAX_ROW_LIMIT,
) -> dict[str, Any]:
    thresholds = thresholds or QuickWinThresholds()
    descriptor = QueryDescriptor(
        site_url=site_url,
        start_date=start_date,
        end_date=end_date,
        dimensions=("query", "page"),
        row_limit=row_limit,
    )

    result = await enhanced_search_analytics(
        client,
        descriptor,
        enable_quick_wins=True,
        thresholds=thresholds,
    )
    if "quickWins" not in result:
        return {"message": "No data available for quick wins analysis"}

    return {
        "quickWins": result["quickWins"],
        "totalOpportunities": result["quickWinsCount"],
        "thresholds": thresholds.as_dict(),
        "analysis": "Quick wins detection completed",
    }
