from __future__ import annotations

import json
import logging
from pathlib import Path
from threading import Lock
from typing import Any, Iterable

from errors import StorageUnavailable

logger = logging.getLogger(__name__)

Key = tuple  # tuple of str | int parts


def _sort_key(key: Key) -> tuple:
    # ints sort before strings, like ordered key-value stores do
    return tuple((0, part) if isinstance(part, int) else (1, str(part)) for part in key)


class KeyValueStore:
    """Thread-safe key-value store with tuple keys and an atomic counter.

    With a path, every mutation is written through to a JSON file and a failed
    write leaves the in-memory state untouched. Without one the store lives in
    memory only.
    """

    def __init__(self, path: Path | None = None) -> None:
        self.path = path
        self._lock = Lock()
        self._data: dict[Key, Any] = self._load()

    def get(self, key: Key) -> Any | None:
        with self._lock:
            return self._data.get(tuple(key))

    def set(self, key: Key, value: Any) -> None:
        key = tuple(key)
        with self._lock:
            previous = self._data.get(key)
            self._data[key] = value
            self._commit(lambda: self._restore(key, previous))

    def list(self, prefix: Iterable) -> list[tuple[Key, Any]]:
        """Entries under ``prefix`` in key order, as a point-in-time snapshot."""
        prefix = tuple(prefix)
        with self._lock:
            entries = [(k, v) for k, v in self._data.items() if k[: len(prefix)] == prefix]
        return sorted(entries, key=lambda entry: _sort_key(entry[0]))

    def atomic_sum(self, key: Key, amount: int = 1) -> int:
        """Add ``amount`` to the counter at ``key`` and return the new value."""
        key = tuple(key)
        with self._lock:
            previous = self._data.get(key)
            value = int(previous or 0) + amount
            self._data[key] = value
            self._commit(lambda: self._restore(key, previous))
            return value

    def delete_many(self, keys: Iterable[Key]) -> int:
        """Delete all ``keys`` in one step. Either all go or none do."""
        keys = [tuple(k) for k in keys]
        with self._lock:
            removed = {k: self._data.pop(k) for k in keys if k in self._data}

            def undo() -> None:
                self._data.update(removed)

            self._commit(undo)
            return len(removed)

    def _restore(self, key: Key, previous: Any | None) -> None:
        if previous is None:
            self._data.pop(key, None)
        else:
            self._data[key] = previous

    def _commit(self, undo) -> None:
        if self.path is None:
            return
        try:
            self._save()
        except OSError as e:
            undo()
            logger.error("Could not write store to %s: %s", self.path, e)
            raise StorageUnavailable("storage is unavailable, try again") from e

    def _load(self) -> dict[Key, Any]:
        if self.path is None or not self.path.exists():
            return {}
        try:
            payload = json.loads(self.path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as e:
            logger.warning("Could not load store from %s: %s", self.path, e)
            return {}
        return {tuple(entry["key"]): entry["value"] for entry in payload.get("entries", [])}

    def _save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = {
            "entries": [
                {"key": list(k), "value": v}
                for k, v in sorted(self._data.items(), key=lambda item: _sort_key(item[0]))
            ]
        }
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        tmp.replace(self.path)
