from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict

import pandas as pd

from fcab.charts import bus_mileage_chart, to_vega_spec, vendor_spend_chart
from fcab.data import recent_fuel_logs
from fcab.filters import DashboardFilters
from fcab.metrics_fuel import compute_fuel_metrics


def compute_overview(filters: DashboardFilters, ctx: Dict[str, Any]) -> Dict[str, Any]:
    fuel_df: pd.DataFrame = ctx.get("filtered_fuel_logs", pd.DataFrame())
    expenses: pd.DataFrame = ctx.get("expenses", pd.DataFrame())
    invoices: pd.DataFrame = ctx.get("invoices", pd.DataFrame())
    pending = ctx.get("pending_counts", {}) or {}

    metrics = compute_fuel_metrics(fuel_df, filters.thresholds)

    charts: Dict[str, Any] = {}
    bus_chart = bus_mileage_chart(metrics.bus_mileage)
    if bus_chart is not None:
        charts["bus_mileage"] = to_vega_spec(bus_chart)
    vendor_chart = vendor_spend_chart(metrics.vendor_spend)
    if vendor_chart is not None:
        charts["vendor_spend"] = to_vega_spec(vendor_chart)

    recent = recent_fuel_logs(fuel_df, filters.recent_limit)

    return {
        "filters": asdict(filters),
        "kpis": {
            "total_fuel_spend": metrics.total_fuel_spend,
            "cost_per_km": metrics.cost_per_km,
            "avg_mileage": metrics.avg_mileage,
            "pending_approvals": int(pending.get("expenses", 0)) + int(pending.get("invoices", 0)),
        },
        "bus_mileage": metrics.bus_mileage,
        "vendor_spend": metrics.vendor_spend,
        "alerts": metrics.alerts,
        "recent_fuel_logs": recent.to_dict(orient="records"),
        "expenses": expenses.head(filters.table_limit).to_dict(orient="records"),
        "invoices": invoices.head(filters.table_limit).to_dict(orient="records"),
        "pending_counts": pending,
        "charts": charts,
    }
