from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

logger = logging.getLogger(__name__)

DATA_DIR = Path(__file__).resolve().parents[1]
DEFAULT_STORE_NAME = "fcab_store.json"

FUEL_LOGS_KEY = "fcab:fuelLogs"
EXPENSES_KEY = "fcab:expenses"
INVOICES_KEY = "fcab:invoices"

_FILE_LOCKS: Dict[str, threading.Lock] = {}
_FILE_LOCKS_GUARD = threading.Lock()


def _lock_for(path: Path) -> threading.Lock:
    key = str(path.resolve())
    with _FILE_LOCKS_GUARD:
        return _FILE_LOCKS.setdefault(key, threading.Lock())


class MalformedStoreError(ValueError):
    def __init__(self, key: str, reason: str):
        super().__init__(f"Stored value for {key!r} is malformed: {reason}")
        self.key = key
        self.reason = reason


def get_store_path() -> Path:
    """Read the store location from the environment on every call so tests can monkeypatch it."""
    raw = os.getenv("FCAB_STORE_PATH")
    return Path(raw) if raw else DATA_DIR / DEFAULT_STORE_NAME


class KeyValueStore:
    """Synchronous string slots, the local-storage contract."""

    def get_item(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set_item(self, key: str, value: str) -> None:
        raise NotImplementedError


class MemoryStore(KeyValueStore):
    def __init__(self, items: Optional[Dict[str, str]] = None):
        self._items: Dict[str, str] = dict(items or {})

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value


class JsonFileStore(KeyValueStore):
    """All slots in one JSON object file; every write rewrites the file."""

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path) if path is not None else get_store_path()
        self._lock = _lock_for(self.path)

    def _read_all(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        text = self.path.read_text(encoding="utf-8")
        if not text.strip():
            return {}
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise MalformedStoreError(str(self.path), str(exc)) from exc
        if not isinstance(data, dict):
            raise MalformedStoreError(str(self.path), "expected a JSON object of slots")
        return data

    def get_item(self, key: str) -> Optional[str]:
        value = self._read_all().get(key)
        if value is None:
            return None
        return value if isinstance(value, str) else json.dumps(value)

    def set_item(self, key: str, value: str) -> None:
        # Read-modify-write of the whole file; stores on the same path share one lock.
        with self._lock:
            self._write_slot(key, value)

    def _write_slot(self, key: str, value: str) -> None:
        try:
            items = self._read_all()
        except MalformedStoreError as exc:
            logger.warning("overwriting unreadable store file: %s", exc)
            items = {}
        items[key] = value
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=self.path.parent, prefix=".fcab-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(items, fh, ensure_ascii=False, indent=2)
            os.replace(tmp, self.path)
        except BaseException:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise


def load_collection(store: KeyValueStore, key: str) -> Optional[List[Dict[str, Any]]]:
    """Return the JSON array stored under ``key``, or None when nothing is stored."""
    raw = store.get_item(key)
    if raw is None:
        return None
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise MalformedStoreError(key, str(exc)) from exc
    if not isinstance(data, list):
        raise MalformedStoreError(key, f"expected a JSON array, got {type(data).__name__}")
    return data


def save_collection(store: KeyValueStore, key: str, items: Iterable[Any]) -> None:
    payload = [item.to_dict() if hasattr(item, "to_dict") else item for item in items]
    store.set_item(key, json.dumps(payload, ensure_ascii=False))
    logger.debug("persisted %d rows to %s", len(payload), key)
