from __future__ import annotations

import json
import logging
import threading
from pathlib import Path
from typing import Any, cast

LOGGER = logging.getLogger("mytube.client.local_storage")

SEARCH_HISTORY_KEY = "mytube_search_history"
SKIPPED_VIDEOS_KEY = "mytube_skipped_videos"


class LocalKeyValueStore:
    """String key-value pairs kept in a single JSON file.

    Values are stored as strings, so callers serialize structured values
    themselves. A missing or unreadable file reads as empty.
    """

    def __init__(self, path: Path) -> None:
        self._path = path
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def get_item(self, key: str) -> str | None:
        with self._lock:
            value = self._read_all().get(key)
        return value if isinstance(value, str) else None

    def set_item(self, key: str, value: str) -> None:
        with self._lock:
            data = self._read_all()
            data[key] = value
            self._write_all(data)

    def remove_item(self, key: str) -> None:
        with self._lock:
            data = self._read_all()
            if key not in data:
                return
            del data[key]
            self._write_all(data)

    def get_json_list(self, key: str) -> list[str]:
        raw_value = self.get_item(key)
        if raw_value is None:
            return []
        try:
            parsed = json.loads(raw_value)
        except json.JSONDecodeError:
            LOGGER.warning("local storage value is not valid json key=%s", key)
            return []
        if not isinstance(parsed, list):
            return []
        return [item for item in cast(list[object], parsed) if isinstance(item, str)]

    def set_json_list(self, key: str, values: list[str]) -> None:
        self.set_item(key, json.dumps(values, ensure_ascii=False))

    def _read_all(self) -> dict[str, Any]:
        if not self._path.exists():
            return {}
        raw = self._path.read_text(encoding="utf-8")
        if not raw.strip():
            return {}
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError:
            LOGGER.warning("local storage file is corrupt path=%s", self._path)
            return {}
        if not isinstance(parsed, dict):
            return {}
        return cast(dict[str, Any], parsed)

    def _write_all(self, data: dict[str, Any]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        temp_path = self._path.with_suffix(f"{self._path.suffix}.tmp")
        temp_path.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")
        temp_path.replace(self._path)
