"""
Session-scoped TTL cache for read-mostly gateway queries.

Only the daily insight and destination alerts are cached; planning and
translation results must always reflect the current input.  Entries expire at
``now + ttl`` and are evicted lazily on the next read (no background sweep).

The cache is best effort: a storage failure is logged and treated as a miss,
never surfaced as an operation failure.

Key: ResultCache over a pluggable CacheStorage (MemoryStorage for tests and
single processes, SessionFileStorage for a per-session store removed on close).
"""

from __future__ import annotations

import json
import shutil
import tempfile
import time
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol

from wayfarer.observability.logging import get_logger
from wayfarer.observability.telemetry import counter

logger = get_logger(__name__)

# Storage failures that degrade to a cache miss instead of an operation failure.
STORAGE_ERRORS: tuple[type[Exception], ...] = (OSError, ValueError, KeyError, TypeError)


@dataclass
class CacheEntry:
    """Cache entry with value and expiry timestamp."""

    value: Any
    expires_at: float

    def to_dict(self) -> dict[str, Any]:
        return {"value": self.value, "expires_at": self.expires_at}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CacheEntry:
        return cls(value=data["value"], expires_at=float(data["expires_at"]))


class CacheStorage(Protocol):
    """Key/value backend for ResultCache."""

    def read(self, key: str) -> CacheEntry | None: ...

    def write(self, key: str, entry: CacheEntry) -> None: ...

    def delete(self, key: str) -> None: ...

    def clear(self) -> None: ...


class MemoryStorage:
    """Dict-backed storage; lives as long as the owning process."""

    def __init__(self) -> None:
        self._entries: dict[str, CacheEntry] = {}

    def read(self, key: str) -> CacheEntry | None:
        return self._entries.get(key)

    def write(self, key: str, entry: CacheEntry) -> None:
        self._entries[key] = entry

    def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


class SessionFileStorage:
    """
    JSON file in a private temporary directory, one per session.

    clear() removes the directory, which ends the session; values must be
    JSON-serializable (pydantic results are stored as dumped dicts).
    """

    def __init__(self, directory: Path | None = None) -> None:
        self._owns_directory = directory is None
        self.directory = Path(directory or tempfile.mkdtemp(prefix="wayfarer-session-"))
        self.path = self.directory / "cache.json"

    def _load(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        with self.path.open(encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError("session cache file is not a JSON object")
        return data

    def _dump(self, data: dict[str, Any]) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(".tmp")
        with tmp_path.open("w", encoding="utf-8") as f:
            json.dump(data, f)
        tmp_path.replace(self.path)

    def read(self, key: str) -> CacheEntry | None:
        raw = self._load().get(key)
        return CacheEntry.from_dict(raw) if raw is not None else None

    def write(self, key: str, entry: CacheEntry) -> None:
        data = self._load()
        data[key] = entry.to_dict()
        self._dump(data)

    def delete(self, key: str) -> None:
        data = self._load()
        if data.pop(key, None) is not None:
            self._dump(data)

    def clear(self) -> None:
        if self._owns_directory:
            shutil.rmtree(self.directory, ignore_errors=True)
        elif self.path.exists():
            self.path.unlink()


class ResultCache:
    """TTL cache with lazy expiry over a pluggable storage backend."""

    def __init__(
        self,
        storage: CacheStorage | None = None,
        name: str = "results",
        clock: Callable[[], float] = time.time,
    ) -> None:
        """
        Args:
            storage: Backend; defaults to MemoryStorage.
            name: Cache name for telemetry counters (cache.<name>.*).
            clock: Time source in seconds, injectable for tests.
        """
        self.storage: CacheStorage = storage if storage is not None else MemoryStorage()
        self.name = name
        self._clock = clock

    def get(self, key: str) -> Any | None:
        """Return the cached value, or None when missing, expired, or unreadable."""
        try:
            entry = self.storage.read(key)
        except STORAGE_ERRORS as e:
            counter(f"cache.{self.name}.error")
            logger.warning("Cache read failed for %s: %s", key, e)
            return None

        if entry is None:
            counter(f"cache.{self.name}.miss")
            return None

        if self._clock() > entry.expires_at:
            counter(f"cache.{self.name}.expired")
            self._delete_quietly(key)
            return None

        counter(f"cache.{self.name}.hit")
        return entry.value

    def set(self, key: str, value: Any, ttl_seconds: float) -> None:
        """
        Store value until ``now + ttl_seconds``.

        Side Effects:
            - Writes to storage; failures (e.g. quota exceeded) are logged and dropped
        """
        entry = CacheEntry(value=value, expires_at=self._clock() + ttl_seconds)
        try:
            self.storage.write(key, entry)
        except STORAGE_ERRORS as e:
            counter(f"cache.{self.name}.error")
            logger.warning("Cache write failed for %s: %s", key, e)
            return
        counter(f"cache.{self.name}.write")

    def invalidate(self, key: str) -> None:
        self._delete_quietly(key)

    def clear(self) -> None:
        try:
            self.storage.clear()
        except STORAGE_ERRORS as e:
            logger.warning("Cache clear failed: %s", e)

    def close(self) -> None:
        """End the session: everything cached so far is dropped."""
        self.clear()

    def _delete_quietly(self, key: str) -> None:
        try:
            self.storage.delete(key)
        except STORAGE_ERRORS as e:
            logger.warning("Cache delete failed for %s: %s", key, e)
