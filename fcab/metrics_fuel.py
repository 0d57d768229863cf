"""Fuel metrics: spend, mileage between refuels, and mileage-drop alerts.

Everything here is recomputed from the raw fuel log on each call. Mileage is
measured between consecutive odometer readings of the same bus, using the
liters recorded at the earlier refuel as the fuel burnt to cover that
distance.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Iterable, List, Union

import pandas as pd

from fcab.data import fuel_logs_frame
from fcab.filters import MetricsThresholds
from fcab.records import FuelLog

POINT_COLUMNS = ["bus_id", "date", "km", "liters", "mileage"]


@dataclass(frozen=True)
class FuelMetrics:
    total_fuel_spend: float = 0.0
    total_km: float = 0.0
    cost_per_km: float = 0.0
    avg_mileage: float = 0.0
    baseline: float = 0.0
    mileage_points: List[Dict[str, Any]] = field(default_factory=list)
    bus_mileage: List[Dict[str, Any]] = field(default_factory=list)
    vendor_spend: List[Dict[str, Any]] = field(default_factory=list)
    alerts: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def compute_mileage_points(df: pd.DataFrame) -> pd.DataFrame:
    if df.empty:
        return pd.DataFrame(columns=POINT_COLUMNS).astype({"km": "float64", "liters": "float64", "mileage": "float64"})

    ordered = df.sort_values("odometer", kind="mergesort")
    # Buses keep the order in which they first show up on the odometer-sorted log.
    ordered = ordered.assign(_bus_order=pd.factorize(ordered["bus_id"])[0]).sort_values("_bus_order", kind="mergesort")

    grouped = ordered.groupby("bus_id", sort=False)
    prev_odometer = grouped["odometer"].shift()
    prev_liters = grouped["liters"].shift()
    km = ordered["odometer"] - prev_odometer

    keep = (km > 0) & (prev_liters > 0)
    points = pd.DataFrame(
        {
            "bus_id": ordered["bus_id"],
            "date": ordered["date"],
            "km": km,
            "liters": prev_liters,
        }
    )[keep]
    points = points.assign(mileage=points["km"] / points["liters"])
    return points.reset_index(drop=True)[POINT_COLUMNS]


def compute_vendor_spend(df: pd.DataFrame, top_n: int = 6) -> pd.DataFrame:
    if df.empty:
        return pd.DataFrame(columns=["vendor", "amount"])
    return (
        df.groupby("station", sort=False)["total_cost"]
        .sum()
        .reset_index()
        .rename(columns={"station": "vendor", "total_cost": "amount"})
        .sort_values("amount", ascending=False, kind="mergesort")
        .head(top_n)
        .reset_index(drop=True)
    )


def compute_mileage_alerts(points: pd.DataFrame, baseline: float, thresholds: MetricsThresholds) -> List[Dict[str, Any]]:
    threshold = baseline * thresholds.drop_ratio
    flagged = points[points["mileage"] < threshold].tail(thresholds.max_alerts)
    alerts = []
    for row in flagged.itertuples(index=False):
        mileage = float(row.mileage)
        alerts.append(
            {
                "id": f"{row.bus_id}-{row.date}",
                "type": "mileage_drop",
                "message": f"Mileage drop on {row.bus_id}: {mileage:.2f} km/l (< {threshold:.1f} km/l)",
                "severity": "high" if mileage < baseline * thresholds.high_ratio else "medium",
                "date": row.date,
            }
        )
    return alerts


def compute_fuel_metrics(
    fuel_logs: Union[Iterable[FuelLog], pd.DataFrame],
    thresholds: MetricsThresholds = MetricsThresholds(),
) -> FuelMetrics:
    df = fuel_logs if isinstance(fuel_logs, pd.DataFrame) else fuel_logs_frame(fuel_logs)

    total_fuel_spend = float(df["total_cost"].sum()) if not df.empty else 0.0
    vendor_spend = compute_vendor_spend(df, thresholds.top_vendors)

    points = compute_mileage_points(df)
    avg_mileage = float(points["mileage"].mean()) if not points.empty else 0.0
    total_km = float(points["km"].sum()) if not points.empty else 0.0
    cost_per_km = total_fuel_spend / total_km if total_km > 0 else 0.0

    bus_mileage = (
        points.groupby("bus_id", sort=False)["mileage"].mean().reset_index()
        if not points.empty
        else pd.DataFrame(columns=["bus_id", "mileage"])
    )

    baseline = avg_mileage or thresholds.baseline_fallback
    alerts = compute_mileage_alerts(points, baseline, thresholds)

    return FuelMetrics(
        total_fuel_spend=total_fuel_spend,
        total_km=total_km,
        cost_per_km=cost_per_km,
        avg_mileage=avg_mileage,
        baseline=baseline,
        mileage_points=[
            {k: (float(v) if k in ("km", "liters", "mileage") else v) for k, v in rec.items()}
            for rec in points.to_dict(orient="records")
        ],
        bus_mileage=[{"bus_id": str(r["bus_id"]), "mileage": float(r["mileage"])} for r in bus_mileage.to_dict(orient="records")],
        vendor_spend=[{"vendor": str(r["vendor"]), "amount": float(r["amount"])} for r in vendor_spend.to_dict(orient="records")],
        alerts=alerts,
    )
