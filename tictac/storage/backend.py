"""
Key-Value Backends - Where persisted records live.

The stores above this layer only ever read and write whole JSON strings
under a key. Two backends:
- MemoryStore: process-local dict (tests, server default)
- FileStore: one JSON file per key under a directory

Design decisions:
- Simple file-based storage, no database
- Writes go to a temp file then replace, so a reader never sees half a record
"""

from __future__ import annotations
from abc import ABC, abstractmethod
import hashlib
import logging
import os
from pathlib import Path
import re

logger = logging.getLogger(__name__)


class KeyValueStore(ABC):
    """Abstract string store keyed by record name."""

    @abstractmethod
    def get(self, key: str) -> str | None:
        """Return the stored value, or None if absent."""
        pass

    @abstractmethod
    def set(self, key: str, value: str):
        pass

    @abstractmethod
    def delete(self, key: str):
        """Remove a key. Missing keys are ignored."""
        pass

    def keys(self) -> list[str]:
        return []


class MemoryStore(KeyValueStore):
    def __init__(self):
        self._data: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str):
        self._data[key] = value

    def delete(self, key: str):
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._data)


_SAFE_KEY = re.compile(r"[^A-Za-z0-9._-]")


class FileStore(KeyValueStore):
    """
    File-based store.

    Usage:
        store = FileStore("~/.tictac")
        store.set("tictac.current_game", record_json)
        raw = store.get("tictac.current_game")
    """

    def __init__(self, data_dir: str | Path | None = None):
        if data_dir is None:
            data_dir = Path.home() / ".tictac"
        self.data_dir = Path(data_dir).expanduser()

        # Ensure data directory exists
        self.data_dir.mkdir(parents=True, exist_ok=True)

    def get(self, key: str) -> str | None:
        path = self._get_path(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def set(self, key: str, value: str):
        path = self._get_path(key)
        tmp = path.with_suffix(".tmp")
        tmp.write_text(value, encoding="utf-8")
        os.replace(tmp, path)
        logger.debug("Wrote %s (%d bytes)", path, len(value))

    def delete(self, key: str):
        self._get_path(key).unlink(missing_ok=True)

    def keys(self) -> list[str]:
        """
        List stored file stems.

        Keys that needed escaping come back in their escaped form.
        """
        return [f.stem for f in self.data_dir.glob("*.json")]

    def clear(self):
        for f in self.data_dir.glob("*.json"):
            f.unlink(missing_ok=True)

    def _get_path(self, key: str) -> Path:
        """Map a key to a file name; unsafe keys get a hash suffix."""
        safe = _SAFE_KEY.sub("_", key)
        if safe != key:
            safe = f"{safe}_{hashlib.sha256(key.encode('utf-8')).hexdigest()[:8]}"
        return self.data_dir / f"{safe}.json"
