"""
Key/value storage tiers.

Each backend stores opaque strings under string keys and raises
StorageError subclasses on failure. PersistentStore composes an ordered
list of backends and is the only caller.

- MemoryBackend: session-scoped tier, lives as long as the process.
- JsonFileBackend: durable tier, one JSON file per key.
"""

from __future__ import annotations

import errno
import os
import tempfile
from pathlib import Path
from typing import Protocol
from urllib.parse import quote, unquote

from quiz_engine.errors import StorageError, StorageQuotaExceededError, StorageUnavailableError


class StorageBackend(Protocol):
    """Protocol for a storage tier."""

    name: str

    def get(self, key: str) -> str | None:
        ...

    def put(self, key: str, value: str) -> None:
        ...

    def remove(self, key: str) -> None:
        ...

    def keys(self) -> list[str]:
        ...


class MemoryBackend:
    """
    In-process tier with an optional byte quota.

    Args:
        name: Tier name used in logs and by the reconciler
        quota_bytes: Total key+value size allowed; None for unbounded
    """

    def __init__(self, name: str = "session", quota_bytes: int | None = None):
        self.name = name
        self.quota_bytes = quota_bytes
        self.enabled = True
        self._data: dict[str, str] = {}

    def _check_enabled(self) -> None:
        if not self.enabled:
            raise StorageUnavailableError(f"{self.name} storage is disabled")

    def usage_bytes(self) -> int:
        return sum(len(k) + len(v) for k, v in self._data.items())

    def get(self, key: str) -> str | None:
        self._check_enabled()
        return self._data.get(key)

    def put(self, key: str, value: str) -> None:
        self._check_enabled()
        if self.quota_bytes is not None:
            current = self.usage_bytes() - (len(key) + len(self._data[key]) if key in self._data else 0)
            if current + len(key) + len(value) > self.quota_bytes:
                raise StorageQuotaExceededError(
                    f"{self.name} storage quota of {self.quota_bytes} bytes exceeded"
                )
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._check_enabled()
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        self._check_enabled()
        return list(self._data)


class JsonFileBackend:
    """
    Durable tier: each key is one file under ``directory``.

    Files are written to a temporary name and renamed into place so a
    crash never leaves a half-written entry.
    """

    SUFFIX = ".json"

    def __init__(self, directory: Path, name: str = "local"):
        self.directory = Path(directory).expanduser()
        self.name = name

    def _path(self, key: str) -> Path:
        return self.directory / f"{quote(key, safe='')}{self.SUFFIX}"

    def get(self, key: str) -> str | None:
        path = self._path(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StorageError(f"Could not read {path}: {e}") from e

    def put(self, key: str, value: str) -> None:
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageUnavailableError(f"Storage directory {self.directory} unavailable: {e}") from e

        path = self._path(key)
        try:
            fd, tmp_name = tempfile.mkstemp(dir=self.directory, suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(value)
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            if e.errno in (errno.ENOSPC, getattr(errno, "EDQUOT", errno.ENOSPC)):
                raise StorageQuotaExceededError(f"No space left writing {path}") from e
            raise StorageError(f"Could not write {path}: {e}") from e

    def remove(self, key: str) -> None:
        try:
            self._path(key).unlink(missing_ok=True)
        except OSError as e:
            raise StorageError(f"Could not remove {key}: {e}") from e

    def keys(self) -> list[str]:
        if not self.directory.exists():
            return []
        try:
            return [
                unquote(path.name[: -len(self.SUFFIX)])
                for path in self.directory.glob(f"*{self.SUFFIX}")
            ]
        except OSError as e:
            raise StorageError(f"Could not list {self.directory}: {e}") from e
