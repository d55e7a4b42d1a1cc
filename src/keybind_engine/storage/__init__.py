"""Persistence of keybind sets: stores, document codec, migrations, gateway."""

from .backends import (
    FileKeyValueStore,
    KeyValueStore,
    MemoryKeyValueStore,
    StorageError,
    UnreadableFileError,
)
from .codec import CURRENT_SCHEMA_VERSION, SchemaError, decode_document, encode_document
from .gateway import DEFAULT_DOCUMENT_KEY, LoadResult, LoadStatus, PersistenceGateway
from .migrations import MIGRATIONS, migrate

__all__ = [
    "CURRENT_SCHEMA_VERSION",
    "DEFAULT_DOCUMENT_KEY",
    "FileKeyValueStore",
    "KeyValueStore",
    "LoadResult",
    "LoadStatus",
    "MIGRATIONS",
    "MemoryKeyValueStore",
    "PersistenceGateway",
    "SchemaError",
    "StorageError",
    "UnreadableFileError",
    "decode_document",
    "encode_document",
    "migrate",
]
