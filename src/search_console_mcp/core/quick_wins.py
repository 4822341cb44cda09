from __future__ import annotations

import math
from dataclasses import asdict, dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable, Mapping, Sequence

# Click-through rate (percent) a page is assumed to reach once optimized.
TARGET_CTR = 5.0

NOT_AVAILABLE = "N/A"


def _number(value: Any) -> float:
    try:
        if value is None:
            return 0.0
        result = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(result):
        return 0.0
    return result


def _count(value: Any) -> int:
    return int(_number(value))


def round_half_up(value: float, places: int = 0) -> float:
    # Decimal(float) is exact, so ties are decided on the true binary value.
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(value).quantize(quantum, rounding=ROUND_HALF_UP))


@dataclass(frozen=True)
class AnalyticsRow:
    keys: tuple[str, ...]
    clicks: int = 0
    impressions: int = 0
    ctr: float = 0.0
    position: float = 0.0

    @classmethod
    def from_mapping(cls, row: Mapping[str, Any]) -> "AnalyticsRow":
        keys = row.get("keys") or ()
        return cls(
            keys=tuple(str(k) for k in keys),
            clicks=_count(row.get("clicks")),
            impressions=_count(row.get("impressions")),
            ctr=_number(row.get("ctr")),
            position=_number(row.get("position")),
        )


@dataclass(frozen=True)
class QuickWinThresholds:
    min_impressions: float = 50
    max_ctr: float = 2.0
    position_range_min: float = 4
    position_range_max: float = 10
    # Reserved for ROI estimates; detection ignores them.
    estimated_click_value: float = 1.0
    conversion_rate: float = 0.03

    def as_dict(self) -> dict[str, float]:
        return {
            "minImpressions": self.min_impressions,
            "maxCtr": self.max_ctr,
            "positionRangeMin": self.position_range_min,
            "positionRangeMax": self.position_range_max,
        }


@dataclass(frozen=True)
class QuickWinCandidate:
    query: str
    page: str
    current_position: float
    impressions: int
    current_clicks: int
    current_ctr: float
    potential_clicks: int
    additional_clicks: int
    opportunity: str
    optimization_note: str

    def as_dict(self) -> dict[str, Any]:
        data = asdict(self)
        return {
            "query": data["query"],
            "page": data["page"],
            "currentPosition": data["current_position"],
            "impressions": data["impressions"],
            "currentClicks": data["current_clicks"],
            "currentCtr": data["current_ctr"],
            "potentialClicks": data["potential_clicks"],
            "additionalClicks": data["additional_clicks"],
            "opportunity": data["opportunity"],
            "optimizationNote": data["optimization_note"],
        }


def _key_for(row: AnalyticsRow, dimensions: Sequence[str], dimension: str) -> str:
    if dimension not in dimensions:
        return NOT_AVAILABLE
    index = list(dimensions).index(dimension)
    if index >= len(row.keys) or not row.keys[index]:
        return NOT_AVAILABLE
    return row.keys[index]


def _is_candidate(row: AnalyticsRow, thresholds: QuickWinThresholds) -> bool:
    return (
        row.impressions >= thresholds.min_impressions
        and row.ctr * 100 <= thresholds.max_ctr
        and thresholds.position_range_min <= row.position <= thresholds.position_range_max
    )


def _to_candidate(row: AnalyticsRow, dimensions: Sequence[str]) -> QuickWinCandidate:
    position = round_half_up(row.position, 1)
    potential_clicks = int(round_half_up(row.impressions * TARGET_CTR / 100))
    additional_clicks = max(0, potential_clicks - row.clicks)

    return QuickWinCandidate(
        query=_key_for(row, dimensions, "query"),
        page=_key_for(row, dimensions, "page"),
        current_position=position,
        impressions=row.impressions,
        current_clicks=row.clicks,
        current_ctr=round_half_up(row.ctr * 100, 2),
        potential_clicks=potential_clicks,
        additional_clicks=additional_clicks,
        opportunity="High" if additional_clicks > 0 else "Low",
        optimization_note=f"Move from position {position:.1f} to improve CTR",
    )


def detect(
    rows: Iterable[AnalyticsRow | Mapping[str, Any]],
    thresholds: QuickWinThresholds | None = None,
    *,
    dimensions: Sequence[str] = ("query", "page"),
) -> list[QuickWinCandidate]:
    """Find low-CTR, mid-position rows and rank them by click upside.

    ``dimensions`` is the dimension order of the query that produced the rows;
    it decides which key slot holds the query and which holds the page.
    Rows with equal upside keep their input order.
    """
    thresholds = thresholds or QuickWinThresholds()
    candidates: list[QuickWinCandidate] = []

    for raw in rows:
        row = raw if isinstance(raw, AnalyticsRow) else AnalyticsRow.from_mapping(raw)
        if not _is_candidate(row, thresholds):
            continue
        candidates.append(_to_candidate(row, dimensions))

    candidates.sort(key=lambda c: c.additional_clicks, reverse=True)
    return candidates
