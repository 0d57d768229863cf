from __future__ import annotations

from typing import Any, Dict

import pandas as pd

STATUS_ORDER = {"pending": 0, "approved": 1, "paid": 1, "rejected": 2}


def _status_totals(df: pd.DataFrame) -> Dict[str, Dict[str, float]]:
    if df.empty:
        return {}
    totals = df.groupby("status")["amount"].agg(["count", "sum"]).reset_index()
    totals["rank"] = totals["status"].map(STATUS_ORDER).fillna(3)
    totals = totals.sort_values("rank")
    return {
        str(r["status"]): {"count": int(r["count"]), "amount": float(r["sum"])}
        for r in totals.to_dict(orient="records")
    }


def compute_approvals(ctx: Dict[str, Any]) -> Dict[str, Any]:
    expenses: pd.DataFrame = ctx.get("expenses", pd.DataFrame())
    invoices: pd.DataFrame = ctx.get("invoices", pd.DataFrame())
    pending = ctx.get("pending_counts", {}) or {}
    return {
        "pending_counts": {
            "expenses": int(pending.get("expenses", 0)),
            "invoices": int(pending.get("invoices", 0)),
        },
        "status_totals": {
            "expenses": _status_totals(expenses),
            "invoices": _status_totals(invoices),
        },
        "expenses": expenses.to_dict(orient="records"),
        "invoices": invoices.to_dict(orient="records"),
    }
