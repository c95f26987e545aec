from __future__ import annotations

import json
import logging
import threading
from pathlib import Path
from typing import Any, Dict, Optional

from testdash.services.errors import LocalPersistenceError

LOGGER = logging.getLogger("testdash.kv")


class JsonFileKeyValueStore:
    """Persistent key-value document backed by a single JSON file.

    Plays the part browser local storage plays for the dashboard: every entity
    type owns one key holding a JSON array. The document is loaded once and
    rewritten in full on every ``set``. Writes are synchronised via an
    internal lock and read-modify-write cycles can be serialised per key with
    :meth:`lock`.
    """

    def __init__(self, path: Path) -> None:
        self._path = path
        self._lock = threading.Lock()
        self._key_locks: Dict[str, threading.RLock] = {}
        self._state = self._load()

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> Dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            with self._path.open("r", encoding="utf-8") as handle:
                state = json.load(handle)
        except (OSError, ValueError) as exc:
            LOGGER.warning("Ignoring unreadable storage document %s: %s", self._path, exc)
            return {}
        if not isinstance(state, dict):
            LOGGER.warning("Ignoring storage document %s: top level is not an object", self._path)
            return {}
        return state

    def _persist(self, state: Dict[str, Any]) -> None:
        try:
            payload = json.dumps(state, indent=2, sort_keys=True)
        except (TypeError, ValueError) as exc:
            raise LocalPersistenceError(f"Failed to serialize storage document: {exc}") from exc
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
            tmp_path.write_text(payload, encoding="utf-8")
            tmp_path.replace(self._path)
        except OSError as exc:
            raise LocalPersistenceError(f"Failed to write {self._path}: {exc}") from exc

    def lock(self, key: str) -> threading.RLock:
        with self._lock:
            return self._key_locks.setdefault(key, threading.RLock())

    def has(self, key: str) -> bool:
        return key in self._state

    def get(self, key: str) -> Optional[Any]:
        value = self._state.get(key)
        if value is None:
            return None
        # Callers receive a private copy, as if freshly parsed from storage.
        return json.loads(json.dumps(value))

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            candidate = dict(self._state)
            candidate[key] = value
            self._persist(candidate)
            self._state = json.loads(json.dumps(candidate))
