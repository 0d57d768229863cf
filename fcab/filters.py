from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Optional


@dataclass(frozen=True)
class MetricsThresholds:
    baseline_fallback: float = 4.5  # km/l, used when no mileage points exist
    drop_ratio: float = 0.8
    high_ratio: float = 0.6
    max_alerts: int = 5
    top_vendors: int = 6


@dataclass(frozen=True)
class DashboardFilters:
    selected_buses: List[str] = field(default_factory=list)
    selected_stations: List[str] = field(default_factory=list)
    date_from: Optional[str] = None
    date_to: Optional[str] = None
    recent_limit: int = 8
    table_limit: int = 6
    thresholds: MetricsThresholds = field(default_factory=MetricsThresholds)


def _as_str_list(values: Optional[Iterable[object]]) -> List[str]:
    if not values:
        return []
    return [str(v).strip() for v in values if v is not None and str(v).strip()]


def _as_limit(value: object, default: int) -> int:
    try:
        out = int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        out = default
    return max(1, min(200, out))


def normalize_filters(raw: Optional[dict]) -> DashboardFilters:
    raw = raw or {}
    t = raw.get("thresholds") or {}
    thresholds = MetricsThresholds(
        baseline_fallback=float(t.get("baseline_fallback", 4.5)),
        drop_ratio=float(t.get("drop_ratio", 0.8)),
        high_ratio=float(t.get("high_ratio", 0.6)),
        max_alerts=_as_limit(t.get("max_alerts", 5), 5),
        top_vendors=_as_limit(t.get("top_vendors", 6), 6),
    )
    return DashboardFilters(
        selected_buses=_as_str_list(raw.get("selected_buses")),
        selected_stations=_as_str_list(raw.get("selected_stations")),
        date_from=str(raw["date_from"]) if raw.get("date_from") else None,
        date_to=str(raw["date_to"]) if raw.get("date_to") else None,
        recent_limit=_as_limit(raw.get("recent_limit", 8), 8),
        table_limit=_as_limit(raw.get("table_limit", 6), 6),
        thresholds=thresholds,
    )
