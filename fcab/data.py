from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, Iterable, List, Optional

import pandas as pd

from fcab.filters import DashboardFilters, normalize_filters
from fcab.records import Expense, FuelLog, Invoice
from fcab.state import FleetState

FUEL_COLUMNS = {
    "id": "object",
    "bus_id": "object",
    "driver": "object",
    "station": "object",
    "liters": "float64",
    "price_per_liter": "float64",
    "total_cost": "float64",
    "odometer": "float64",
    "date": "object",
}
EXPENSE_COLUMNS = ["id", "driver", "amount", "category", "description", "date", "status"]
INVOICE_COLUMNS = ["id", "vendor", "invoice_number", "amount", "due_date", "status"]


def fuel_logs_frame(logs: Iterable[FuelLog]) -> pd.DataFrame:
    rows = [
        {
            "id": log.id,
            "bus_id": log.bus_id,
            "driver": log.driver,
            "station": log.station,
            "liters": log.liters,
            "price_per_liter": log.price_per_liter,
            "total_cost": log.total_cost,
            "odometer": log.odometer,
            "date": log.date,
        }
        for log in logs
    ]
    df = pd.DataFrame(rows, columns=list(FUEL_COLUMNS))
    return df.astype(FUEL_COLUMNS)


def expenses_frame(expenses: Iterable[Expense]) -> pd.DataFrame:
    return pd.DataFrame(
        [[e.id, e.driver, e.amount, e.category, e.description, e.date, e.status] for e in expenses],
        columns=EXPENSE_COLUMNS,
    )


def invoices_frame(invoices: Iterable[Invoice]) -> pd.DataFrame:
    return pd.DataFrame(
        [[i.id, i.vendor, i.invoice_number, i.amount, i.due_date, i.status] for i in invoices],
        columns=INVOICE_COLUMNS,
    )


def round_half_up(value: object, ndigits: int = 0) -> Optional[float]:
    if value is None or pd.isna(value):
        return None
    q = Decimal(10) ** -ndigits
    return float(Decimal(str(value)).quantize(q, rounding=ROUND_HALF_UP))


def format_inr(value: object, decimals: int = 0) -> str:
    if value is None or pd.isna(value):
        return "N/A"
    return f"₹ {round_half_up(value, decimals):,.{decimals}f}"


def format_currency_columns(df: pd.DataFrame, cols: Iterable[str], decimals: int = 0) -> pd.DataFrame:
    formatted = df.copy()
    for c in cols:
        if c in formatted.columns:
            formatted[c] = formatted[c].apply(lambda v: format_inr(v, decimals) if pd.notna(v) else "")
    return formatted


def _day_strings(values: pd.Series) -> pd.Series:
    parsed = pd.to_datetime(values, utc=True, errors="coerce", format="ISO8601")
    return parsed.dt.strftime("%Y-%m-%d").fillna("")


def filter_fuel_logs(df: pd.DataFrame, filters: DashboardFilters) -> pd.DataFrame:
    out = df
    if out.empty:
        return out
    if filters.selected_buses:
        out = out[out["bus_id"].isin(set(filters.selected_buses))]
    if filters.selected_stations:
        out = out[out["station"].isin(set(filters.selected_stations))]
    if filters.date_from or filters.date_to:
        days = _day_strings(out["date"])
        mask = days != ""
        if filters.date_from:
            mask &= days >= filters.date_from[:10]
        if filters.date_to:
            mask &= days <= filters.date_to[:10]
        out = out[mask]
    return out


def recent_fuel_logs(df: pd.DataFrame, limit: int = 8) -> pd.DataFrame:
    """Newest refuels first; rows with unparseable dates sort last."""
    if df.empty:
        return df
    ts = pd.to_datetime(df["date"], utc=True, errors="coerce", format="ISO8601")
    return (
        df.assign(_ts=ts)
        .sort_values("_ts", ascending=False, kind="mergesort", na_position="last")
        .drop(columns=["_ts"])
        .head(limit)
        .reset_index(drop=True)
    )


def prepare_context(filters: dict | DashboardFilters | None, state: FleetState) -> Dict[str, Any]:
    filt = filters if isinstance(filters, DashboardFilters) else normalize_filters(filters)

    fuel_df = fuel_logs_frame(state.fuel_logs)
    filtered_fuel = filter_fuel_logs(fuel_df, filt)

    buses: List[str] = sorted(fuel_df["bus_id"].dropna().astype(str).unique().tolist()) if not fuel_df.empty else []
    stations: List[str] = sorted(fuel_df["station"].dropna().astype(str).unique().tolist()) if not fuel_df.empty else []

    return {
        "filters": filt,
        "fuel_logs": fuel_df,
        "filtered_fuel_logs": filtered_fuel,
        "expenses": expenses_frame(state.expenses),
        "invoices": invoices_frame(state.invoices),
        "pending_counts": state.pending_counts(),
        "buses": buses,
        "stations": stations,
    }
