import json
import threading
from datetime import date

import pytest

from fcab.records import FuelLog, to_iso
from fcab.state import FleetState, sample_fuel_logs
from fcab.store import EXPENSES_KEY, FUEL_LOGS_KEY, INVOICES_KEY, JsonFileStore, MemoryStore, load_collection

from tests.conftest import make_log


def test_add_fuel_log_derives_total_cost(state):
    entry = state.add_fuel_log(
        {"bus_id": "BUS-101", "driver": "Amit", "station": "HPCL", "liters": 42.5, "price_per_liter": 99.5, "odometer": 1000, "date": date(2025, 1, 5)}
    )
    assert entry.total_cost == pytest.approx(42.5 * 99.5)
    assert entry.date == "2025-01-05T00:00:00.000Z"
    assert load_collection(state.store, FUEL_LOGS_KEY) == [entry.to_dict()]


def test_add_accepts_camel_case_drafts(state):
    entry = state.add_fuel_log({"busId": "BUS-7", "liters": 10, "pricePerLiter": 2, "odometer": 5, "date": "2025-01-01T00:00:00.000Z"})
    assert entry.bus_id == "BUS-7"
    assert entry.total_cost == 20
    invoice = state.add_invoice({"vendor": "IOCL", "invoiceNumber": "INV-9", "amount": 10, "dueDate": "2025-03-01T00:00:00.000Z"})
    assert invoice.invoice_number == "INV-9"
    assert invoice.due_date == "2025-03-01T00:00:00.000Z"


def test_add_is_append_only_and_order_preserving(state):
    first = [state.add_expense({"driver": f"D{n}", "amount": n, "category": "Meals", "description": "", "date": "2025-01-01"}) for n in range(3)]
    before = list(state.expenses)
    new = state.add_expense({"driver": "Neha", "amount": -50, "category": "Tolls", "description": "refund", "date": "2025-01-02"})

    assert len(state.expenses) == len(before) + 1
    assert state.expenses[:3] == before == first
    assert state.expenses[-1] == new
    assert new.status == "pending"
    assert new.amount == -50
    assert len({e.id for e in state.expenses}) == 4


def test_add_invoice_defaults_to_pending(state):
    invoice = state.add_invoice({"vendor": "HPCL", "invoice_number": "INV-001", "amount": 12000, "due_date": date(2025, 2, 1)})
    assert invoice.status == "pending"
    assert state.pending_counts() == {"expenses": 0, "invoices": 1}


def test_update_status_replaces_only_status(state):
    a = state.add_expense({"driver": "A", "amount": 1, "date": "2025-01-01"})
    b = state.add_expense({"driver": "B", "amount": 2, "date": "2025-01-01"})
    updated = state.update_expense_status(a.id, "approved")

    assert [e.id for e in updated] == [a.id, b.id]
    assert updated[0].status == "approved"
    assert updated[0].driver == a.driver and updated[0].amount == a.amount
    assert updated[1] == b
    assert load_collection(state.store, EXPENSES_KEY)[0]["status"] == "approved"


def test_update_status_unknown_id_is_a_no_op(state):
    state.add_invoice({"vendor": "HPCL", "amount": 5, "due_date": "2025-01-01"})
    before = list(state.invoices)
    stored_before = state.store.get_item(INVOICES_KEY)

    assert state.update_invoice_status("missing", "paid") == before
    assert state.store.get_item(INVOICES_KEY) == stored_before



def test_update_status_unknown_id_leaves_stored_text_untouched():
    raw = (
        '[{"id": "e1", "driver": "A", "amount": 500, "category": "", "description": "",'
        ' "date": "2025-01-01", "status": "pending"}]'
    )
    store = MemoryStore({EXPENSES_KEY: raw})
    state = FleetState.load(store)

    state.update_expense_status("missing", "approved")
    assert store.get_item(EXPENSES_KEY) == raw


def test_update_status_unknown_id_keeps_malformed_slot():
    store = MemoryStore({FUEL_LOGS_KEY: "[]", EXPENSES_KEY: "[]", INVOICES_KEY: "[{broken"})
    state = FleetState.load(store)

    assert state.update_invoice_status("missing", "paid") == []
    assert store.get_item(INVOICES_KEY) == "[{broken"

def test_update_status_is_idempotent(state):
    inv = state.add_invoice({"vendor": "HPCL", "amount": 5, "due_date": "2025-01-01"})
    once = list(state.update_invoice_status(inv.id, "paid"))
    stored_once = state.store.get_item(INVOICES_KEY)
    twice = state.update_invoice_status(inv.id, "paid")
    assert twice == once
    assert state.store.get_item(INVOICES_KEY) == stored_once


def test_update_status_rejects_unknown_status(state):
    inv = state.add_invoice({"vendor": "HPCL", "amount": 5, "due_date": "2025-01-01"})
    with pytest.raises(ValueError):
        state.update_invoice_status(inv.id, "approved")
    with pytest.raises(ValueError):
        state.update_expense_status("anything", "paid")


def test_load_seeds_samples_only_when_slot_absent():
    store = MemoryStore()
    state = FleetState.load(store)

    assert len(state.fuel_logs) == 9
    assert state.expenses == [] and state.invoices == []
    assert load_collection(store, FUEL_LOGS_KEY) == [log.to_dict() for log in state.fuel_logs]
    assert load_collection(store, EXPENSES_KEY) == []

    # Second load reads the persisted seed back instead of seeding again.
    again = FleetState.load(store)
    assert again.fuel_logs == state.fuel_logs


def test_load_never_substitutes_samples_for_stored_logs():
    stored = [make_log("x1", "BUS-9", 10, 5)]
    store = MemoryStore({FUEL_LOGS_KEY: json.dumps([log.to_dict() for log in stored])})
    assert FleetState.load(store).fuel_logs == stored

    empty = MemoryStore({FUEL_LOGS_KEY: "[]"})
    assert FleetState.load(empty).fuel_logs == []


def test_load_falls_back_on_malformed_slot(caplog):
    store = MemoryStore({FUEL_LOGS_KEY: "[{broken", EXPENSES_KEY: "nope", INVOICES_KEY: "[]"})
    with caplog.at_level("WARNING"):
        state = FleetState.load(store)

    assert len(state.fuel_logs) == 9
    assert state.expenses == []
    assert "fcab:expenses" in caplog.text
    # The unreadable slot stays as-is until the next write.
    assert store.get_item(EXPENSES_KEY) == "nope"
    state.add_expense({"driver": "A", "amount": 1, "date": "2025-01-01"})
    assert len(load_collection(store, EXPENSES_KEY)) == 1


def test_sample_fuel_logs_keep_stored_totals():
    rows = sample_fuel_logs()
    assert [r.bus_id for r in rows[:3]] == ["BUS-101", "BUS-102", "BUS-101"]
    assert rows[0].total_cost == 5429
    assert len({r.id for r in rows}) == len(rows)
    assert all(r.date.endswith("Z") for r in rows)


def test_fuel_log_dict_uses_stored_field_names():
    log = make_log("a", "BUS-1", 100, 10)
    assert set(log.to_dict()) == {"id", "busId", "driver", "station", "liters", "pricePerLiter", "totalCost", "odometer", "date"}
    assert FuelLog.from_dict(log.to_dict()) == log


def test_to_iso_keeps_strings_and_formats_dates():
    assert to_iso("2025-01-01T10:00:00.000Z") == "2025-01-01T10:00:00.000Z"
    assert to_iso(date(2024, 12, 31)) == "2024-12-31T00:00:00.000Z"


def test_concurrent_adds_to_different_collections_keep_both(tmp_path):
    path = tmp_path / "store.json"
    for trial in range(20):
        state = FleetState.load(JsonFileStore(path))
        start = threading.Barrier(2)

        def add_expense():
            start.wait()
            state.add_expense({"driver": f"D{trial}", "amount": trial, "date": "2025-01-01"})

        def add_invoice():
            start.wait()
            state.add_invoice({"vendor": f"V{trial}", "amount": trial, "due_date": "2025-01-01"})

        workers = [threading.Thread(target=add_expense), threading.Thread(target=add_invoice)]
        for w in workers:
            w.start()
        for w in workers:
            w.join()

    reloaded = FleetState.load(JsonFileStore(path))
    assert [e.driver for e in reloaded.expenses] == [f"D{n}" for n in range(20)]
    assert [i.vendor for i in reloaded.invoices] == [f"V{n}" for n in range(20)]


def test_concurrent_adds_from_separate_stores_on_one_file(tmp_path):
    path = tmp_path / "store.json"
    FleetState.load(JsonFileStore(path))
    expenses_side = FleetState.load(JsonFileStore(path))
    invoices_side = FleetState.load(JsonFileStore(path))
    start = threading.Barrier(2)

    def add_expenses():
        start.wait()
        for n in range(15):
            expenses_side.add_expense({"driver": f"D{n}", "amount": n, "date": "2025-01-01"})

    def add_invoices():
        start.wait()
        for n in range(15):
            invoices_side.add_invoice({"vendor": f"V{n}", "amount": n, "due_date": "2025-01-01"})

    workers = [threading.Thread(target=add_expenses), threading.Thread(target=add_invoices)]
    for w in workers:
        w.start()
    for w in workers:
        w.join()

    reloaded = FleetState.load(JsonFileStore(path))
    assert len(reloaded.expenses) == 15
    assert len(reloaded.invoices) == 15
    assert len(reloaded.fuel_logs) == 9
