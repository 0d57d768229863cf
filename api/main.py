from __future__ import annotations

import logging
import math
from typing import Literal

import numpy as np
import pandas as pd
from fastapi import Depends, FastAPI
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from api.schemas import (
    DashboardFiltersModel,
    ExpenseDraftModel,
    ExpenseStatusModel,
    FuelLogDraftModel,
    InvoiceDraftModel,
    InvoiceStatusModel,
    MetaListResponse,
)
from fcab.data import expenses_frame, fuel_logs_frame, invoices_frame, prepare_context
from fcab.filters import DashboardFilters, normalize_filters
from fcab.metrics_approvals import compute_approvals
from fcab.metrics_overview import compute_overview
from fcab.state import FleetState


app = FastAPI(title="Fuel, Costs & Billing API", version="0.1.0")
logger = logging.getLogger(__name__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://127.0.0.1:3000", "http://localhost:8501"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_state() -> FleetState:
    """One state per running app; loaded lazily from the configured store."""
    state = getattr(app.state, "fleet", None)
    if state is None:
        state = FleetState.load()
        app.state.fleet = state
    return state


def _filters_from_model(model: DashboardFiltersModel) -> DashboardFilters:
    return normalize_filters(model.model_dump())


def _json(data: object) -> JSONResponse:
    """Return JSON with safe encoding for pandas/numpy objects."""

    def _safe_float(value: object) -> float | None:
        try:
            out = float(value)  # type: ignore[arg-type]
        except (TypeError, ValueError):
            return None
        if math.isnan(out) or math.isinf(out):
            return None
        return out

    return JSONResponse(
        content=jsonable_encoder(
            data,
            custom_encoder={
                type(pd.NA): lambda _: None,
                np.integer: int,
                float: _safe_float,
                np.floating: _safe_float,
                np.bool_: bool,
                np.ndarray: lambda arr: arr.tolist(),
                pd.Timestamp: lambda ts: ts.isoformat(),
            },
        )
    )


def _error(name: str, exc: Exception) -> JSONResponse:
    logger.exception("%s failed", name)
    return JSONResponse(status_code=500, content={"error": str(exc), "type": type(exc).__name__})


# ---------- meta ----------
@app.get("/meta/buses", response_model=MetaListResponse)
def meta_buses(state: FleetState = Depends(get_state)):
    try:
        ctx = prepare_context(None, state)
        return _json({"values": ctx["buses"]})
    except Exception as exc:
        return _error("meta_buses", exc)


@app.get("/meta/stations", response_model=MetaListResponse)
def meta_stations(state: FleetState = Depends(get_state)):
    try:
        ctx = prepare_context(None, state)
        return _json({"values": ctx["stations"]})
    except Exception as exc:
        return _error("meta_stations", exc)


# ---------- pages ----------
@app.post("/overview")
def overview(filters: DashboardFiltersModel, state: FleetState = Depends(get_state)):
    try:
        f = _filters_from_model(filters)
        ctx = prepare_context(f, state)
        return _json(compute_overview(f, ctx))
    except Exception as exc:
        return _error("overview", exc)


@app.get("/approvals")
def approvals(state: FleetState = Depends(get_state)):
    try:
        ctx = prepare_context(None, state)
        return _json(compute_approvals(ctx))
    except Exception as exc:
        return _error("approvals", exc)


# ---------- collections ----------
@app.get("/fuel-logs")
def list_fuel_logs(state: FleetState = Depends(get_state)):
    return _json([log.to_dict() for log in state.fuel_logs])


@app.post("/fuel-logs")
def create_fuel_log(draft: FuelLogDraftModel, state: FleetState = Depends(get_state)):
    entry = state.add_fuel_log(draft.model_dump(exclude_none=True))
    logger.info("fuel log %s added for %s", entry.id, entry.bus_id)
    return _json(entry.to_dict())


@app.get("/expenses")
def list_expenses(state: FleetState = Depends(get_state)):
    return _json([e.to_dict() for e in state.expenses])


@app.post("/expenses")
def create_expense(draft: ExpenseDraftModel, state: FleetState = Depends(get_state)):
    entry = state.add_expense(draft.model_dump(exclude_none=True))
    logger.info("expense %s added for %s", entry.id, entry.driver)
    return _json(entry.to_dict())


@app.post("/expenses/{expense_id}/status")
def set_expense_status(expense_id: str, body: ExpenseStatusModel, state: FleetState = Depends(get_state)):
    expenses = state.update_expense_status(expense_id, body.status)
    return _json([e.to_dict() for e in expenses])


@app.get("/invoices")
def list_invoices(state: FleetState = Depends(get_state)):
    return _json([i.to_dict() for i in state.invoices])


@app.post("/invoices")
def create_invoice(draft: InvoiceDraftModel, state: FleetState = Depends(get_state)):
    entry = state.add_invoice(draft.model_dump(exclude_none=True))
    logger.info("invoice %s added for %s", entry.id, entry.vendor)
    return _json(entry.to_dict())


@app.post("/invoices/{invoice_id}/status")
def set_invoice_status(invoice_id: str, body: InvoiceStatusModel, state: FleetState = Depends(get_state)):
    invoices = state.update_invoice_status(invoice_id, body.status)
    return _json([i.to_dict() for i in invoices])


# ---------- export ----------
@app.get("/export/{collection}")
def export_collection(
    collection: Literal["fuel-logs", "expenses", "invoices"],
    state: FleetState = Depends(get_state),
):
    if collection == "fuel-logs":
        export_df = fuel_logs_frame(state.fuel_logs)
    elif collection == "expenses":
        export_df = expenses_frame(state.expenses)
    else:
        export_df = invoices_frame(state.invoices)
    csv_bytes = export_df.to_csv(index=False).encode("utf-8")
    filename = f"{collection}.csv"
    return Response(content=csv_bytes, media_type="text/csv", headers={"Content-Disposition": f"attachment; filename={filename}"})
