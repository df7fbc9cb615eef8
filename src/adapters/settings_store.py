"""JSON file settings store.

Implements the core ConfigProvider contract with a flat key/value JSON file,
the same shape a host's per-plugin settings storage exposes.
"""

from __future__ import annotations

import json
import os
from typing import Any


class JsonSettingsStore:
    """Key/value settings persisted as a single JSON object."""

    def __init__(self, path: str) -> None:
        self._path = path

    def _load(self) -> dict[str, Any]:
        if not os.path.exists(self._path):
            return {}
        with open(self._path, "r", encoding="utf-8") as handle:
            data = json.load(handle)
        if not isinstance(data, dict):
            raise ValueError(f"Settings file must hold a JSON object: {self._path}")
        return data

    def _save(self, data: dict[str, Any]) -> None:
        directory = os.path.dirname(self._path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        # Write to a sibling file first so readers never see a partial object.
        tmp_path = f"{self._path}.tmp"
        with open(tmp_path, "w", encoding="utf-8") as handle:
            json.dump(data, handle, indent=2, sort_keys=True)
        os.replace(tmp_path, self._path)

    def get(self, key: str) -> Any:
        """Return the stored value for ``key`` or None."""

        return self._load().get(key)

    def all(self) -> dict[str, Any]:
        return self._load()

    def set(self, key: str, value: Any) -> None:
        data = self._load()
        data[key] = value
        self._save(data)

    def update(self, values: dict[str, Any]) -> None:
        """Persist several values in one write."""

        data = self._load()
        data.update(values)
        self._save(data)

    def clear(self) -> None:
        """Remove every stored setting."""

        if os.path.exists(self._path):
            os.remove(self._path)
