"""Session state for the three collections and the operations that mutate them.

Every mutation updates the in-memory list first and then writes the whole
collection back to the store. The in-memory lists are authoritative for the
life of the session. Mutations on one state hold its lock, so threads sharing
a state never interleave two read-modify-write cycles.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional, TypeVar

from fcab.records import (
    EXPENSE_STATUSES,
    INVOICE_STATUSES,
    Expense,
    FuelLog,
    Invoice,
    new_id,
    to_iso,
)
from fcab.store import (
    EXPENSES_KEY,
    FUEL_LOGS_KEY,
    INVOICES_KEY,
    JsonFileStore,
    KeyValueStore,
    MalformedStoreError,
    load_collection,
    save_collection,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

# (bus, driver, station, liters, price/l, stored total, odometer, days ago)
_SAMPLE_ROWS = [
    ("BUS-101", "Amit", "HPCL", 55, 98.7, 5429, 120000, 12),
    ("BUS-102", "Ravi", "IOCL", 60, 99.2, 5952, 98000, 11),
    ("BUS-101", "Amit", "BPCL", 50, 99.9, 4995, 120210, 9),
    ("BUS-103", "Neha", "HPCL", 65, 98.3, 6389, 75210, 8),
    ("BUS-102", "Ravi", "Reliance", 58, 97.8, 5672, 98220, 7),
    ("BUS-101", "Amit", "HPCL", 52, 98.4, 5117, 120430, 5),
    ("BUS-103", "Neha", "IOCL", 62, 99.1, 6144, 75410, 3),
    ("BUS-102", "Ravi", "BPCL", 59, 99.6, 5886, 98410, 2),
    ("BUS-101", "Amit", "Reliance", 51, 98.2, 5008, 120640, 1),
]


def sample_fuel_logs(now: Optional[datetime] = None) -> List[FuelLog]:
    now = now or datetime.now(timezone.utc)
    rows: List[FuelLog] = []
    for bus_id, driver, station, liters, price, total, odometer, days_ago in _SAMPLE_ROWS:
        rows.append(
            FuelLog(
                id=new_id(r.id for r in rows),
                bus_id=bus_id,
                driver=driver,
                station=station,
                liters=float(liters),
                price_per_liter=price,
                total_cost=float(total),
                odometer=float(odometer),
                date=to_iso(now - timedelta(days=days_ago)),
            )
        )
    return rows


def _load_or_default(
    store: KeyValueStore,
    key: str,
    parse: Callable[[Mapping[str, Any]], T],
    default: Callable[[], List[T]],
) -> List[T]:
    try:
        raw = load_collection(store, key)
        if raw is not None:
            return [parse(item) for item in raw]
    except (MalformedStoreError, KeyError, TypeError, ValueError) as exc:
        logger.warning("could not load %s, falling back to defaults: %s", key, exc)
        return default()
    rows = default()
    save_collection(store, key, rows)
    logger.info("seeded %s with %d rows", key, len(rows))
    return rows


@dataclass
class FleetState:
    store: KeyValueStore
    fuel_logs: List[FuelLog] = field(default_factory=list)
    expenses: List[Expense] = field(default_factory=list)
    invoices: List[Invoice] = field(default_factory=list)
    _lock: threading.RLock = field(default_factory=threading.RLock, init=False, repr=False, compare=False)

    @classmethod
    def load(cls, store: Optional[KeyValueStore] = None) -> "FleetState":
        store = store if store is not None else JsonFileStore()
        return cls(
            store=store,
            fuel_logs=_load_or_default(store, FUEL_LOGS_KEY, FuelLog.from_dict, sample_fuel_logs),
            expenses=_load_or_default(store, EXPENSES_KEY, Expense.from_dict, list),
            invoices=_load_or_default(store, INVOICES_KEY, Invoice.from_dict, list),
        )

    # ---------- append ----------
    def add_fuel_log(self, draft: Mapping[str, Any]) -> FuelLog:
        with self._lock:
            entry = FuelLog.from_draft(draft, id=new_id(r.id for r in self.fuel_logs))
            self.fuel_logs = [*self.fuel_logs, entry]
            save_collection(self.store, FUEL_LOGS_KEY, self.fuel_logs)
        return entry

    def add_expense(self, draft: Mapping[str, Any]) -> Expense:
        with self._lock:
            entry = Expense.from_draft(draft, id=new_id(r.id for r in self.expenses))
            self.expenses = [*self.expenses, entry]
            save_collection(self.store, EXPENSES_KEY, self.expenses)
        return entry

    def add_invoice(self, draft: Mapping[str, Any]) -> Invoice:
        with self._lock:
            entry = Invoice.from_draft(draft, id=new_id(r.id for r in self.invoices))
            self.invoices = [*self.invoices, entry]
            save_collection(self.store, INVOICES_KEY, self.invoices)
        return entry

    # ---------- status ----------
    def update_expense_status(self, expense_id: str, status: str) -> List[Expense]:
        if status not in EXPENSE_STATUSES:
            raise ValueError(f"Unknown expense status: {status!r}")
        with self._lock:
            if not any(e.id == expense_id for e in self.expenses):
                return self.expenses
            self.expenses = [e.with_status(status) if e.id == expense_id else e for e in self.expenses]
            save_collection(self.store, EXPENSES_KEY, self.expenses)
            return self.expenses

    def update_invoice_status(self, invoice_id: str, status: str) -> List[Invoice]:
        if status not in INVOICE_STATUSES:
            raise ValueError(f"Unknown invoice status: {status!r}")
        with self._lock:
            if not any(i.id == invoice_id for i in self.invoices):
                return self.invoices
            self.invoices = [i.with_status(status) if i.id == invoice_id else i for i in self.invoices]
            save_collection(self.store, INVOICES_KEY, self.invoices)
            return self.invoices

    def pending_counts(self) -> Dict[str, int]:
        return {
            "expenses": sum(1 for e in self.expenses if e.status == "pending"),
            "invoices": sum(1 for i in self.invoices if i.status == "pending"),
        }
