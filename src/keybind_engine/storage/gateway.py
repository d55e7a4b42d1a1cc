"""Persistence boundary: nothing raised below this module escapes it."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from keybind_engine.runtime.telemetry import record_event, span
from keybind_engine.sets.models import RegistrySnapshot

from .backends import KeyValueStore, StorageError
from .codec import CURRENT_SCHEMA_VERSION, SchemaError, decode_document, encode_document
from .migrations import migrate

DEFAULT_DOCUMENT_KEY = "keybind_engine.registry"

_DECODE_ERRORS = (SchemaError, StorageError, ValueError, TypeError, KeyError)


class LoadStatus(str, Enum):
    LOADED = "loaded"
    FRESH = "fresh"
    CORRUPT = "corrupt"


@dataclass(frozen=True, slots=True)
class LoadResult:
    """Outcome of ``PersistenceGateway.load``.

    ``snapshot`` is ``None`` for fresh installs and unreadable data alike;
    ``status`` tells the two apart.
    """

    status: LoadStatus
    snapshot: Optional[RegistrySnapshot] = None
    stored_version: Optional[int] = None
    migrations: tuple[str, ...] = field(default_factory=tuple)
    error: Optional[str] = None


class PersistenceGateway:
    """Reads and writes the registry document in a key-value store."""

    def __init__(
        self,
        store: KeyValueStore,
        *,
        document_key: str = DEFAULT_DOCUMENT_KEY,
        logger_name: str | None = None,
    ) -> None:
        self._store = store
        self._document_key = document_key
        self._logger_name = logger_name

    @property
    def document_key(self) -> str:
        return self._document_key

    def load(self) -> LoadResult:
        with span(
            "storage::load",
            logger_name=self._logger_name,
            component="storage",
            metadata={"key": self._document_key},
        ) as handle:
            try:
                raw = self._store.get(self._document_key)
            except StorageError as exc:
                return self._corrupt(None, str(exc))

            if raw is None:
                handle.add_metadata("status", LoadStatus.FRESH)
                return LoadResult(status=LoadStatus.FRESH)

            stored_version: Optional[int] = None
            try:
                document = json.loads(raw)
                if isinstance(document, dict):
                    version = document.get("schemaVersion")
                    stored_version = version if isinstance(version, int) else None
                migrated, applied = migrate(document)
                snapshot = decode_document(migrated)
            except (json.JSONDecodeError, *_DECODE_ERRORS) as exc:
                return self._corrupt(raw, str(exc), stored_version)

            handle.add_metadata("status", LoadStatus.LOADED)
            handle.add_metadata("sets", len(snapshot.sets))
            if applied:
                record_event(
                    "storage.migrated",
                    data={
                        "from_version": stored_version,
                        "to_version": CURRENT_SCHEMA_VERSION,
                        "steps": list(applied),
                    },
                    logger_name=self._logger_name,
                )
            return LoadResult(
                status=LoadStatus.LOADED,
                snapshot=snapshot,
                stored_version=stored_version,
                migrations=tuple(applied),
            )

    def save(self, snapshot: RegistrySnapshot) -> bool:
        """Write the snapshot; failures are logged and reported as ``False``."""

        with span(
            "storage::save",
            logger_name=self._logger_name,
            component="storage",
            metadata={"key": self._document_key, "sets": len(snapshot.sets)},
        ):
            try:
                payload = json.dumps(encode_document(snapshot))
                self._store.set(self._document_key, payload)
            except (StorageError, TypeError, ValueError) as exc:
                record_event(
                    "storage.save_failed",
                    level="error",
                    data={"key": self._document_key, "error": str(exc)},
                    logger_name=self._logger_name,
                )
                return False
            return True

    def clear(self) -> bool:
        try:
            self._store.delete(self._document_key)
        except StorageError as exc:
            record_event(
                "storage.clear_failed",
                level="error",
                data={"key": self._document_key, "error": str(exc)},
                logger_name=self._logger_name,
            )
            return False
        return True

    def _corrupt(
        self, raw: Optional[str], reason: str, stored_version: Optional[int] = None
    ) -> LoadResult:
        record_event(
            "storage.load_failed",
            level="error",
            data={"key": self._document_key, "error": reason},
            logger_name=self._logger_name,
        )
        if raw is not None:
            self._backup(raw)
        return LoadResult(
            status=LoadStatus.CORRUPT, stored_version=stored_version, error=reason
        )

    def _backup(self, raw: str) -> None:
        backup_key = f"{self._document_key}.corrupt"
        try:
            self._store.set(backup_key, raw)
        except StorageError as exc:
            record_event(
                "storage.backup_failed",
                level="warning",
                data={"key": backup_key, "error": str(exc)},
                logger_name=self._logger_name,
            )


__all__ = [
    "DEFAULT_DOCUMENT_KEY",
    "LoadResult",
    "LoadStatus",
    "PersistenceGateway",
]
