"""
Ranking Snapshot Storage

Key-value store for the ranking snapshots the change tracker compares
against. Read-modify-write, last write wins, no locking.
"""

import copy
import json
from pathlib import Path

from piutop.utils import atomic_write_json, setup_logging

# --- Module Logger ---
logger = setup_logging(__name__)


class StoreError(Exception):
    """Snapshot could not be read or written"""
    pass


class SnapshotStore:
    """Interface of the key-value store used by the ranking change tracker."""

    def get_item(self, key: str):
        raise NotImplementedError

    def set_item(self, key: str, value) -> None:
        raise NotImplementedError


class MemoryStore(SnapshotStore):
    """In-process store; values are copied in and out."""

    def __init__(self, items: dict | None = None):
        self._items = copy.deepcopy(items) if items else {}

    def get_item(self, key: str):
        return copy.deepcopy(self._items.get(key))

    def set_item(self, key: str, value) -> None:
        self._items[key] = copy.deepcopy(value)


class JsonFileStore(SnapshotStore):
    """Store backed by a single JSON object on disk, written atomically."""

    def __init__(self, path: Path):
        self.path = path

    def _read(self) -> dict:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise StoreError(f"Cannot read snapshot store {self.path}: {e}")
        if not isinstance(data, dict):
            raise StoreError(f"Snapshot store {self.path} does not hold a JSON object")
        return data

    def get_item(self, key: str):
        return self._read().get(key)

    def set_item(self, key: str, value) -> None:
        data = self._read()
        data[key] = value
        try:
            atomic_write_json(data, self.path)
        except (OSError, TypeError, ValueError) as e:
            raise StoreError(f"Cannot write snapshot store {self.path}: {e}")
        logger.debug(f"Stored '{key}' in {self.path}")
