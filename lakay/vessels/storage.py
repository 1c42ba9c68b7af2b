"""
Quota-bounded key/value storage.

Mirrors the browser local storage contract the vessel manager was written
against: string keys, string values, and a hard size budget that makes
writes fail rather than evict.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Iterator, Optional

from lakay.errors import QuotaExceededError


def entry_size(key: str, value: str) -> int:
    """Bytes charged against the quota for one entry."""
    return len(key.encode("utf-8")) + len(value.encode("utf-8"))


class KeyValueStorage:
    """
    Base storage: an in-memory dict with a quota.

    Subclasses persist ``self._data`` by overriding ``_flush``.
    """

    def __init__(self, quota_bytes: Optional[int] = None):
        self.quota_bytes = quota_bytes
        self._data: dict[str, str] = {}

    def get_item(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set_item(self, key: str, value: str) -> None:
        """
        Store a value.

        Raises:
            QuotaExceededError: if the write would put storage over quota.
                Nothing is changed in that case.
        """
        value = str(value)
        if self.quota_bytes is not None:
            current = self.used_bytes()
            if key in self._data:
                current -= entry_size(key, self._data[key])
            if current + entry_size(key, value) > self.quota_bytes:
                raise QuotaExceededError(
                    f"Setting '{key}' exceeded the storage quota "
                    f"({self.quota_bytes} bytes)"
                )
        self._data[key] = value
        self._flush()

    def remove_item(self, key: str) -> None:
        if self._data.pop(key, None) is not None:
            self._flush()

    def keys(self) -> list[str]:
        return list(self._data.keys())

    def clear(self) -> None:
        self._data.clear()
        self._flush()

    def used_bytes(self) -> int:
        return sum(entry_size(k, v) for k, v in self._data.items())

    def __contains__(self, key: str) -> bool:
        return key in self._data

    def __iter__(self) -> Iterator[str]:
        return iter(self.keys())

    def __len__(self) -> int:
        return len(self._data)

    def _flush(self) -> None:
        pass


class MemoryStorage(KeyValueStorage):
    """Non-persistent storage, used by tests and one-off CLI runs."""


class FileStorage(KeyValueStorage):
    """Storage persisted as a single JSON object on disk."""

    def __init__(self, path: Path, quota_bytes: Optional[int] = None):
        super().__init__(quota_bytes)
        self.path = Path(path)
        if self.path.exists():
            with open(self.path, "r", encoding="utf-8") as f:
                loaded = json.load(f)
            self._data = {str(k): str(v) for k, v in loaded.items()}

    def _flush(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(self._data, f)
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise
