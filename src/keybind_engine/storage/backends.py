"""Durable key-value stores the persistence gateway writes into."""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Dict, Optional, Protocol, Union

from keybind_engine.runtime.telemetry import record_event


class StorageError(RuntimeError):
    """Raised by stores when the underlying medium cannot be read or written."""

    def __init__(self, message: str, *, key: str | None = None) -> None:
        super().__init__(message)
        self.key = key


class UnreadableFileError(StorageError):
    """Raised when a store file exists but its content cannot be decoded."""


class KeyValueStore(Protocol):
    """String-to-string store; ``get`` returns ``None`` for missing keys."""

    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: str) -> None:
        ...

    def delete(self, key: str) -> None:
        ...


class MemoryKeyValueStore:
    """Process-local store, used for ephemeral sessions and tests."""

    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)


class FileKeyValueStore:
    """Single JSON object file mapping keys to string values.

    Writes go to a temporary sibling file which then replaces the existing file,
    so a crash mid-write leaves the previous content intact. A file whose
    content cannot be decoded is moved to ``<name>.corrupt`` by the next write,
    which then starts from an empty object.
    """

    def __init__(
        self,
        path: Union[str, os.PathLike[str]],
        *,
        logger_name: str | None = None,
    ) -> None:
        self.path = Path(path).expanduser()
        self._logger_name = logger_name

    @property
    def quarantine_path(self) -> Path:
        return self.path.with_name(f"{self.path.name}.corrupt")

    def get(self, key: str) -> Optional[str]:
        value = self._read_all().get(key)
        if value is not None and not isinstance(value, str):
            raise StorageError(f"Value for '{key}' is not a string", key=key)
        return value

    def set(self, key: str, value: str) -> None:
        data = self._read_for_update()
        data[key] = value
        self._write_all(data)

    def delete(self, key: str) -> None:
        data = self._read_for_update()
        if data.pop(key, None) is not None:
            self._write_all(data)

    def _read_all(self) -> Dict[str, object]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, encoding="utf-8") as handle:
                text = handle.read()
        except OSError as exc:
            raise StorageError(f"Failed to read {self.path}: {exc}") from exc
        except UnicodeDecodeError as exc:
            raise UnreadableFileError(f"{self.path} is not UTF-8: {exc}") from exc
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise UnreadableFileError(f"Failed to parse {self.path}: {exc}") from exc
        if not isinstance(data, dict):
            raise UnreadableFileError(f"{self.path} does not contain a JSON object")
        return data

    def _read_for_update(self) -> Dict[str, object]:
        try:
            return self._read_all()
        except UnreadableFileError as exc:
            self._quarantine(str(exc))
            return {}

    def _quarantine(self, reason: str) -> None:
        target = self.quarantine_path
        try:
            os.replace(self.path, target)
        except OSError as exc:
            raise StorageError(f"Failed to move {self.path} aside: {exc}") from exc
        record_event(
            "storage.file_quarantined",
            level="warning",
            data={"path": str(self.path), "moved_to": str(target), "error": reason},
            logger_name=self._logger_name,
        )

    def _write_all(self, data: Dict[str, object]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.path.name}.", dir=self.path.parent
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    json.dump(data, handle, indent=2, sort_keys=True)
                os.replace(tmp_name, self.path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as exc:
            raise StorageError(f"Failed to write {self.path}: {exc}") from exc


__all__ = [
    "FileKeyValueStore",
    "KeyValueStore",
    "MemoryKeyValueStore",
    "StorageError",
    "UnreadableFileError",
]
