"""Synchronous key-value stores backing the draft.

The draft store only needs three operations (get_item, set_item, remove_item)
on string values, the same surface as browser localStorage. Two backends:

- MemoryStore: process-local dict, used in tests and short-lived sessions.
- JsonFileStore: a single JSON object on disk, so a draft survives restarts.

Backends raise StorageFailure for any I/O problem and for a file that cannot
be decoded on read. Writes replace an undecodable file.
"""

import json
import os
from pathlib import Path
from typing import Protocol

from src.scheduler.errors import StorageFailure
from src.scheduler.logging import get_logger

logger = get_logger(__name__)


class KeyValueStore(Protocol):
    def get_item(self, key: str) -> str | None: ...

    def set_item(self, key: str, value: str) -> None: ...

    def remove_item(self, key: str) -> None: ...


class MemoryStore:
    """Dict-backed store."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._items: dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    def __contains__(self, key: str) -> bool:
        return key in self._items


class JsonFileStore:
    """Store every key as a string entry of one JSON object on disk.

    Writes go to a temporary sibling file first and are moved into place, so a
    crash mid-write leaves the previous contents intact.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def _load(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise StorageFailure(f"Cannot read {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise StorageFailure(f"{self.path} does not hold a JSON object")
        return data

    def _load_for_write(self) -> dict[str, str]:
        # Writes replace a file that cannot be read back
        try:
            return self._load()
        except StorageFailure as e:
            logger.warning("store_file_reset", path=str(self.path), error=str(e))
            return {}

    def _dump(self, data: dict[str, str]) -> None:
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
            os.replace(tmp, self.path)
        except OSError as e:
            raise StorageFailure(f"Cannot write {self.path}: {e}") from e

    def get_item(self, key: str) -> str | None:
        value = self._load().get(key)
        return value if isinstance(value, str) else None

    def set_item(self, key: str, value: str) -> None:
        data = self._load_for_write()
        data[key] = value
        self._dump(data)
        logger.debug("store_item_written", path=str(self.path), key=key, size=len(value))

    def remove_item(self, key: str) -> None:
        try:
            data = self._load()
        except StorageFailure as e:
            logger.warning("store_file_reset", path=str(self.path), error=str(e))
            self._dump({})
            return
        if key not in data:
            return
        del data[key]
        self._dump(data)
        logger.debug("store_item_removed", path=str(self.path), key=key)
