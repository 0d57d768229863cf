import json

import pytest

from fcab.records import Expense, Invoice
from fcab.store import (
    EXPENSES_KEY,
    JsonFileStore,
    MalformedStoreError,
    MemoryStore,
    get_store_path,
    load_collection,
    save_collection,
)


def test_missing_slot_loads_as_none():
    assert load_collection(MemoryStore(), EXPENSES_KEY) is None


@pytest.mark.parametrize("items", [[], [Expense("e1", "Amit", 500.0, "Meals", "Lunch", "2025-01-01T00:00:00.000Z")]])
def test_round_trip(items):
    store = MemoryStore()
    save_collection(store, EXPENSES_KEY, items)
    loaded = load_collection(store, EXPENSES_KEY)
    assert loaded == [i.to_dict() for i in items]
    assert [Expense.from_dict(r) for r in loaded] == items


def test_save_overwrites_previous_content():
    store = MemoryStore()
    save_collection(store, EXPENSES_KEY, [{"id": "a"}, {"id": "b"}])
    save_collection(store, EXPENSES_KEY, [{"id": "c"}])
    assert load_collection(store, EXPENSES_KEY) == [{"id": "c"}]


def test_malformed_json_raises():
    store = MemoryStore({EXPENSES_KEY: "{not json"})
    with pytest.raises(MalformedStoreError) as err:
        load_collection(store, EXPENSES_KEY)
    assert err.value.key == EXPENSES_KEY


def test_non_array_raises():
    store = MemoryStore({EXPENSES_KEY: '{"id": "x"}'})
    with pytest.raises(MalformedStoreError):
        load_collection(store, EXPENSES_KEY)


def test_json_file_store_persists_slots(tmp_path):
    path = tmp_path / "store.json"
    store = JsonFileStore(path)
    invoice = Invoice("i1", "HPCL", "INV-001", 12000.0, "2025-02-01T00:00:00.000Z", "paid")
    save_collection(store, "fcab:invoices", [invoice])
    save_collection(store, EXPENSES_KEY, [])

    reopened = JsonFileStore(path)
    assert load_collection(reopened, "fcab:invoices") == [invoice.to_dict()]
    assert load_collection(reopened, EXPENSES_KEY) == []
    assert set(json.loads(path.read_text(encoding="utf-8"))) == {"fcab:invoices", EXPENSES_KEY}


def test_json_file_store_missing_file_is_empty(tmp_path):
    assert JsonFileStore(tmp_path / "nope.json").get_item(EXPENSES_KEY) is None


def test_json_file_store_recovers_on_write(tmp_path):
    path = tmp_path / "store.json"
    path.write_text("garbage", encoding="utf-8")
    store = JsonFileStore(path)
    with pytest.raises(MalformedStoreError):
        store.get_item(EXPENSES_KEY)
    save_collection(store, EXPENSES_KEY, [])
    assert load_collection(store, EXPENSES_KEY) == []


def test_store_path_from_env(tmp_path, monkeypatch):
    target = tmp_path / "custom.json"
    monkeypatch.setenv("FCAB_STORE_PATH", str(target))
    assert get_store_path() == target
    assert JsonFileStore().path == target
