import pytest

from fcab.records import FuelLog
from fcab.state import FleetState
from fcab.store import EXPENSES_KEY, FUEL_LOGS_KEY, INVOICES_KEY, MemoryStore


def make_log(id, bus_id, odometer, liters, *, station="HPCL", price=100.0, total=None, date="2025-01-01T00:00:00.000Z"):
    return FuelLog(
        id=id,
        bus_id=bus_id,
        driver="Amit",
        station=station,
        liters=float(liters),
        price_per_liter=price,
        total_cost=float(total if total is not None else liters * price),
        odometer=float(odometer),
        date=date,
    )


@pytest.fixture
def empty_store():
    return MemoryStore({FUEL_LOGS_KEY: "[]", EXPENSES_KEY: "[]", INVOICES_KEY: "[]"})


@pytest.fixture
def state(empty_store):
    return FleetState.load(empty_store)
