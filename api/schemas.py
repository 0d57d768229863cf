from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, Field


class ThresholdsModel(BaseModel):
    baseline_fallback: float = 4.5
    drop_ratio: float = 0.8
    high_ratio: float = 0.6
    max_alerts: int = 5
    top_vendors: int = 6


class DashboardFiltersModel(BaseModel):
    selected_buses: List[str] = Field(default_factory=list)
    selected_stations: List[str] = Field(default_factory=list)
    date_from: Optional[str] = None
    date_to: Optional[str] = None
    recent_limit: int = 8
    table_limit: int = 6
    thresholds: ThresholdsModel = Field(default_factory=ThresholdsModel)


class FuelLogDraftModel(BaseModel):
    bus_id: str = Field(alias="busId")
    driver: str = ""
    station: str = ""
    liters: float
    price_per_liter: float = Field(alias="pricePerLiter")
    odometer: float
    date: Optional[str] = None

    model_config = {"populate_by_name": True}


class ExpenseDraftModel(BaseModel):
    driver: str = ""
    amount: float
    category: str = ""
    description: str = ""
    date: Optional[str] = None


class InvoiceDraftModel(BaseModel):
    vendor: str = ""
    invoice_number: str = Field(default="", alias="invoiceNumber")
    amount: float
    due_date: Optional[str] = Field(default=None, alias="dueDate")

    model_config = {"populate_by_name": True}


class ExpenseStatusModel(BaseModel):
    status: Literal["pending", "approved", "rejected"]


class InvoiceStatusModel(BaseModel):
    status: Literal["pending", "paid", "rejected"]


class MetaListResponse(BaseModel):
    values: List[str]
