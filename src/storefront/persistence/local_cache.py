"""Local fallback cache: a process-durable key-value store of JSON snapshots.

Each key holds one whole JSON-compatible value (a cart snapshot, a collection
of order rows, ...). Values live in memory for the life of the process; when a
directory is configured every key is also written to ``<key>.json`` there so
it survives restarts.

Callers keep to their own key namespace (``cart:`` for the cart store,
``collection:`` for the persistence adapter).
"""

import json
import os
from pathlib import Path
from typing import Any

from storefront.exceptions import PersistenceError


class LocalCache:
    def __init__(self, directory: str | Path | None = None) -> None:
        self._data: dict[str, str] = {}
        self._directory = Path(directory) if directory else None
        if self._directory is not None:
            self._directory.mkdir(parents=True, exist_ok=True)

    def _path_for(self, key: str) -> Path:
        return self._directory / f"{key.replace(':', '__')}.json"

    def get(self, key: str, default: Any = None) -> Any:
        """Return a fresh copy of the value stored under ``key``."""
        raw = self._data.get(key)
        if raw is None and self._directory is not None:
            path = self._path_for(key)
            if path.exists():
                try:
                    raw = path.read_text(encoding="utf-8")
                except OSError as exc:
                    raise PersistenceError(f"Cannot read local cache key {key}: {exc}") from exc
                self._data[key] = raw

        if raw is None:
            return default
        return json.loads(raw)

    def set(self, key: str, value: Any) -> None:
        try:
            raw = json.dumps(value)
        except (TypeError, ValueError) as exc:
            raise PersistenceError(f"Value for {key} is not JSON serializable: {exc}") from exc

        if self._directory is not None:
            path = self._path_for(key)
            tmp_path = path.with_suffix(".tmp")
            try:
                tmp_path.write_text(raw, encoding="utf-8")
                os.replace(tmp_path, path)
            except OSError as exc:
                raise PersistenceError(f"Cannot write local cache key {key}: {exc}") from exc

        self._data[key] = raw

    def remove(self, key: str) -> None:
        self._data.pop(key, None)
        if self._directory is not None:
            path = self._path_for(key)
            if path.exists():
                path.unlink()
