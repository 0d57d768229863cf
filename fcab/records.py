from __future__ import annotations

import uuid
from dataclasses import dataclass, replace
from datetime import date, datetime, time, timezone
from typing import Any, Dict, Iterable, Literal, Mapping, Optional

ExpenseStatus = Literal["pending", "approved", "rejected"]
InvoiceStatus = Literal["pending", "paid", "rejected"]

EXPENSE_STATUSES = ("pending", "approved", "rejected")
INVOICE_STATUSES = ("pending", "paid", "rejected")


def new_id(existing: Iterable[str] = ()) -> str:
    taken = set(existing)
    while True:
        candidate = uuid.uuid4().hex[:10]
        if candidate not in taken:
            return candidate


def to_iso(value: object) -> str:
    """Normalize a date-ish value to an ISO-8601 UTC instant, e.g. 2025-01-05T00:00:00.000Z."""
    if isinstance(value, str):
        return value
    if isinstance(value, datetime):
        dt = value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    elif isinstance(value, date):
        dt = datetime.combine(value, time.min, tzinfo=timezone.utc)
    else:
        raise TypeError(f"Unsupported date value: {value!r}")
    dt = dt.astimezone(timezone.utc)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"


def _as_float(value: object, default: float = 0.0) -> float:
    if value is None or value == "":
        return default
    return float(value)


@dataclass(frozen=True)
class FuelLog:
    id: str
    bus_id: str
    driver: str
    station: str
    liters: float
    price_per_liter: float
    total_cost: float
    odometer: float
    date: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "busId": self.bus_id,
            "driver": self.driver,
            "station": self.station,
            "liters": self.liters,
            "pricePerLiter": self.price_per_liter,
            "totalCost": self.total_cost,
            "odometer": self.odometer,
            "date": self.date,
        }

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "FuelLog":
        return cls(
            id=str(raw["id"]),
            bus_id=str(raw.get("busId", "")),
            driver=str(raw.get("driver", "")),
            station=str(raw.get("station", "")),
            liters=_as_float(raw.get("liters")),
            price_per_liter=_as_float(raw.get("pricePerLiter")),
            total_cost=_as_float(raw.get("totalCost")),
            odometer=_as_float(raw.get("odometer")),
            date=str(raw.get("date", "")),
        )

    @classmethod
    def from_draft(cls, draft: Mapping[str, Any], *, id: str) -> "FuelLog":
        liters = _as_float(_draft_value(draft, "liters"))
        price = _as_float(_draft_value(draft, "price_per_liter", "pricePerLiter"))
        return cls(
            id=id,
            bus_id=str(_draft_value(draft, "bus_id", "busId") or ""),
            driver=str(_draft_value(draft, "driver") or ""),
            station=str(_draft_value(draft, "station") or ""),
            liters=liters,
            price_per_liter=price,
            total_cost=liters * price,
            odometer=_as_float(_draft_value(draft, "odometer")),
            date=to_iso(_draft_value(draft, "date") or datetime.now(timezone.utc)),
        )


@dataclass(frozen=True)
class Expense:
    id: str
    driver: str
    amount: float
    category: str
    description: str
    date: str
    status: ExpenseStatus = "pending"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "driver": self.driver,
            "amount": self.amount,
            "category": self.category,
            "description": self.description,
            "date": self.date,
            "status": self.status,
        }

    def with_status(self, status: str) -> "Expense":
        if status not in EXPENSE_STATUSES:
            raise ValueError(f"Unknown expense status: {status!r}")
        return replace(self, status=status)

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "Expense":
        return cls(
            id=str(raw["id"]),
            driver=str(raw.get("driver", "")),
            amount=_as_float(raw.get("amount")),
            category=str(raw.get("category", "")),
            description=str(raw.get("description", "")),
            date=str(raw.get("date", "")),
            status=raw.get("status", "pending"),
        )

    @classmethod
    def from_draft(cls, draft: Mapping[str, Any], *, id: str) -> "Expense":
        return cls(
            id=id,
            driver=str(_draft_value(draft, "driver") or ""),
            amount=_as_float(_draft_value(draft, "amount")),
            category=str(_draft_value(draft, "category") or ""),
            description=str(_draft_value(draft, "description") or ""),
            date=to_iso(_draft_value(draft, "date") or datetime.now(timezone.utc)),
        )


@dataclass(frozen=True)
class Invoice:
    id: str
    vendor: str
    invoice_number: str
    amount: float
    due_date: str
    status: InvoiceStatus = "pending"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "vendor": self.vendor,
            "invoiceNumber": self.invoice_number,
            "amount": self.amount,
            "dueDate": self.due_date,
            "status": self.status,
        }

    def with_status(self, status: str) -> "Invoice":
        if status not in INVOICE_STATUSES:
            raise ValueError(f"Unknown invoice status: {status!r}")
        return replace(self, status=status)

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "Invoice":
        return cls(
            id=str(raw["id"]),
            vendor=str(raw.get("vendor", "")),
            invoice_number=str(raw.get("invoiceNumber", "")),
            amount=_as_float(raw.get("amount")),
            due_date=str(raw.get("dueDate", "")),
            status=raw.get("status", "pending"),
        )

    @classmethod
    def from_draft(cls, draft: Mapping[str, Any], *, id: str) -> "Invoice":
        return cls(
            id=id,
            vendor=str(_draft_value(draft, "vendor") or ""),
            invoice_number=str(_draft_value(draft, "invoice_number", "invoiceNumber") or ""),
            amount=_as_float(_draft_value(draft, "amount")),
            due_date=to_iso(_draft_value(draft, "due_date", "dueDate") or datetime.now(timezone.utc)),
        )


def _draft_value(draft: Mapping[str, Any], *names: str) -> Optional[Any]:
    # Drafts arrive either snake_case (Python callers) or camelCase (stored/JSON shape).
    for name in names:
        if name in draft:
            return draft[name]
    return None
