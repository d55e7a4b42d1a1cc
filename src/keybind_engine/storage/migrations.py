"""Forward migrations for the persisted registry document.

Document versions:

1. single namespace; each action holds at most one ``keyMapping`` and
   bindings are keyed by the bare key code (no modifiers)
2. single namespace with modifier-aware ``keyMappings`` keyed ``code:tag``;
   entries use ``keyCode`` / ``modifierSet``
3. ``keybindSets`` wrapper around version 2 namespaces
4. current shape: entries use ``inputCode`` / ``modifierCombination`` and
   each set stores them under ``bindings``

Every migration takes the document of version ``n`` and returns a new
document of version ``n + 1``. Inputs are never mutated, and a migration
applied to data that already has the newer shape leaves it unchanged.
"""

from __future__ import annotations

import copy
from typing import Any, Callable, Dict, List, Mapping, Tuple

from .codec import CURRENT_SCHEMA_VERSION, SchemaError

Document = Dict[str, Any]
Migration = Callable[[Mapping[str, Any]], Document]

LEGACY_SET_ID = "default"
LEGACY_SET_NAME = "Default"
LEGACY_TIMESTAMP = "1970-01-01T00:00:00+00:00"


def _bump(document: Mapping[str, Any], version: int) -> Document:
    migrated = copy.deepcopy(dict(document))
    migrated["schemaVersion"] = version
    return migrated


def _with_modifier(entry: Mapping[str, Any]) -> Dict[str, Any]:
    updated = dict(entry)
    updated.setdefault("modifierSet", "none")
    return updated


def migration_001_modifier_aware_mappings(document: Mapping[str, Any]) -> Document:
    migrated = _bump(document, 2)

    mappings: List[List[Any]] = []
    for key, entry in migrated.get("keyMappings", []):
        if isinstance(entry, Mapping) and "modifierSet" not in entry:
            entry = _with_modifier(entry)
            key = f"{key}:none"
        mappings.append([key, entry])
    migrated["keyMappings"] = mappings

    for action in migrated.get("actions", []):
        single = action.pop("keyMapping", None)
        if "keyMappings" in action:
            continue
        action["keyMappings"] = [["none", _with_modifier(single)]] if single else []
    return migrated


def migration_002_keybind_sets(document: Mapping[str, Any]) -> Document:
    migrated = _bump(document, 3)
    if "keybindSets" in migrated:
        return migrated

    legacy_set = {
        "id": LEGACY_SET_ID,
        "name": LEGACY_SET_NAME,
        "createdAt": LEGACY_TIMESTAMP,
        "lastModified": LEGACY_TIMESTAMP,
        "actions": migrated.pop("actions", []),
        "keyMappings": migrated.pop("keyMappings", []),
        "colorGroups": migrated.pop("colorGroups", []),
    }
    migrated["keybindSets"] = [legacy_set]
    migrated["selectedKeybindSetId"] = LEGACY_SET_ID
    return migrated


def _rename_entry(entry: Mapping[str, Any]) -> Dict[str, Any]:
    renamed = dict(entry)
    if "inputCode" not in renamed and "keyCode" in renamed:
        renamed["inputCode"] = renamed.pop("keyCode")
    if "modifierCombination" not in renamed:
        renamed["modifierCombination"] = renamed.pop("modifierSet", "none")
    renamed.pop("modifierSet", None)
    renamed.pop("keyCode", None)
    return renamed


def migration_003_binding_field_names(document: Mapping[str, Any]) -> Document:
    migrated = _bump(document, 4)
    for keybind_set in migrated.get("keybindSets", []):
        legacy = keybind_set.pop("keyMappings", None)
        if "bindings" not in keybind_set:
            keybind_set["bindings"] = legacy or []
        bindings = []
        for _key, entry in keybind_set["bindings"]:
            renamed = _rename_entry(entry)
            tag = f"{renamed['inputCode']}:{renamed['modifierCombination']}"
            bindings.append([tag, renamed])
        keybind_set["bindings"] = bindings

        for action in keybind_set.get("actions", []):
            action["keyMappings"] = [
                [tag, _rename_entry(entry)]
                for tag, entry in action.get("keyMappings", [])
            ]
    return migrated


MIGRATIONS: List[Tuple[int, str, Migration]] = [
    (1, "modifier-aware key mappings", migration_001_modifier_aware_mappings),
    (2, "keybind set namespaces", migration_002_keybind_sets),
    (3, "binding entry field names", migration_003_binding_field_names),
]


def document_version(document: Mapping[str, Any]) -> int:
    if not isinstance(document, Mapping):
        raise SchemaError("Document root must be an object")
    version = document.get("schemaVersion", 1)
    if isinstance(version, bool) or not isinstance(version, int) or version < 1:
        raise SchemaError(f"Invalid schema version {version!r}")
    return version


def migrate(
    document: Mapping[str, Any],
    migrations: List[Tuple[int, str, Migration]] = MIGRATIONS,
) -> Tuple[Document, List[str]]:
    """Bring ``document`` up to the current version.

    Returns the migrated document and the descriptions of the applied steps.
    """

    version = document_version(document)
    if version > CURRENT_SCHEMA_VERSION:
        raise SchemaError(
            f"Document version {version} is newer than supported "
            f"{CURRENT_SCHEMA_VERSION}"
        )

    current: Document = dict(document)
    applied: List[str] = []
    try:
        for source_version, description, migration in sorted(
            migrations, key=lambda item: item[0]
        ):
            if source_version < version:
                continue
            current = migration(current)
            applied.append(description)
    except (AttributeError, KeyError, TypeError, ValueError) as exc:
        raise SchemaError(f"Migration failed at version {version}: {exc}") from exc
    return current, applied


__all__ = [
    "MIGRATIONS",
    "Migration",
    "document_version",
    "migrate",
    "migration_001_modifier_aware_mappings",
    "migration_002_keybind_sets",
    "migration_003_binding_field_names",
]
