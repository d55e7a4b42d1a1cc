"""Conversion between registry snapshots and the persisted JSON document."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping

from keybind_engine.keymaps import (
    Action,
    BindingEntry,
    ColorGroup,
    DeviceType,
    SlotKey,
    format_color,
)
from keybind_engine.modifiers import ModifierCombination
from keybind_engine.sets.models import KeybindSet, RegistrySnapshot

CURRENT_SCHEMA_VERSION = 4


class SchemaError(ValueError):
    """Raised when a stored document does not have the expected shape."""


def slot_tag(slot: SlotKey) -> str:
    return f"{slot.input_code}:{slot.combination.value}"


def _format_timestamp(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


def _parse_timestamp(raw: Any) -> datetime:
    if not isinstance(raw, str):
        raise SchemaError(f"Expected ISO-8601 timestamp, got {raw!r}")
    text = raw.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError as exc:
        raise SchemaError(f"Invalid timestamp {raw!r}") from exc
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def encode_entry(entry: BindingEntry) -> Dict[str, Any]:
    return {
        "inputCode": entry.input_code,
        "deviceType": entry.device_type.value,
        "displayName": entry.display_name,
        "modifierCombination": entry.modifier_combination.value,
        "actionId": entry.action_id,
    }


def decode_entry(raw: Any) -> BindingEntry:
    if not isinstance(raw, Mapping):
        raise SchemaError(f"Binding entry must be an object, got {raw!r}")
    combination = raw.get("modifierCombination", ModifierCombination.NONE.value)
    if not isinstance(combination, str):
        raise SchemaError(f"Invalid modifier combination {combination!r}")
    try:
        return BindingEntry(
            input_code=str(raw["inputCode"]),
            device_type=DeviceType(raw.get("deviceType", DeviceType.KEYBOARD.value)),
            display_name=str(raw.get("displayName", raw["inputCode"])),
            modifier_combination=ModifierCombination.parse(combination),
            action_id=str(raw["actionId"]),
        )
    except (KeyError, ValueError) as exc:
        raise SchemaError(f"Invalid binding entry {raw!r}: {exc}") from exc


def _encode_group(group: ColorGroup) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "id": group.id,
        "name": group.name,
        "color": format_color(group.color),
    }
    if group.is_default:
        payload["isDefault"] = True
    return payload


def _decode_group(raw: Any) -> ColorGroup:
    if not isinstance(raw, Mapping):
        raise SchemaError(f"Color group must be an object, got {raw!r}")
    try:
        return ColorGroup(
            id=str(raw["id"]),
            name=str(raw.get("name", "")),
            color=raw["color"],
            is_default=bool(raw.get("isDefault", False)),
        )
    except (KeyError, ValueError) as exc:
        raise SchemaError(f"Invalid color group {raw!r}: {exc}") from exc


def _encode_action(action: Action) -> Dict[str, Any]:
    return {
        "id": action.id,
        "name": action.name,
        "colorGroupId": action.color_group_id,
        "keyMappings": [
            [slot.combination.value, encode_entry(entry)]
            for slot, entry in action.key_mappings.items()
        ],
    }


def encode_set(keybind_set: KeybindSet) -> Dict[str, Any]:
    return {
        "id": keybind_set.id,
        "name": keybind_set.name,
        "createdAt": _format_timestamp(keybind_set.created_at),
        "lastModified": _format_timestamp(keybind_set.last_modified),
        "colorGroups": [_encode_group(group) for group in keybind_set.color_groups],
        "actions": [_encode_action(action) for action in keybind_set.actions],
        "bindings": [
            [slot_tag(slot), encode_entry(entry)]
            for slot, entry in keybind_set.bindings.items()
        ],
    }


def decode_set(raw: Any) -> KeybindSet:
    """Rebuild one set; ``key_mappings`` are re-derived from ``bindings``.

    Bindings without an action, or whose action no longer exists, are dropped.
    """

    if not isinstance(raw, Mapping):
        raise SchemaError(f"Keybind set must be an object, got {raw!r}")
    try:
        set_id = str(raw["id"])
        raw_actions = list(raw.get("actions", []))
        raw_bindings = list(raw.get("bindings", []))
    except (KeyError, TypeError) as exc:
        raise SchemaError(f"Invalid keybind set {raw!r}: {exc}") from exc

    bindings: Dict[SlotKey, BindingEntry] = {}
    for pair in raw_bindings:
        if not isinstance(pair, (list, tuple)) or len(pair) != 2:
            raise SchemaError(f"Binding pair must be [key, entry], got {pair!r}")
        if isinstance(pair[1], Mapping) and not pair[1].get("actionId"):
            continue
        entry = decode_entry(pair[1])
        bindings[entry.slot] = entry

    owned: Dict[str, Dict[SlotKey, BindingEntry]] = {}
    for slot, entry in bindings.items():
        owned.setdefault(entry.action_id, {})[slot] = entry

    actions: List[Action] = []
    for item in raw_actions:
        if not isinstance(item, Mapping) or "id" not in item:
            raise SchemaError(f"Invalid action {item!r}")
        action_id = str(item["id"])
        actions.append(
            Action(
                id=action_id,
                name=str(item.get("name", "")),
                color_group_id=str(item.get("colorGroupId", "")),
                key_mappings=owned.get(action_id, {}),
            )
        )
    known = {action.id for action in actions}

    return KeybindSet(
        id=set_id,
        name=str(raw.get("name", "")),
        created_at=_parse_timestamp(raw.get("createdAt")),
        last_modified=_parse_timestamp(raw.get("lastModified")),
        actions=tuple(actions),
        bindings={
            slot: entry for slot, entry in bindings.items() if entry.action_id in known
        },
        color_groups=tuple(_decode_group(group) for group in raw.get("colorGroups", [])),
    )


def encode_document(snapshot: RegistrySnapshot) -> Dict[str, Any]:
    return {
        "schemaVersion": CURRENT_SCHEMA_VERSION,
        "keybindSets": [encode_set(item) for item in snapshot.sets],
        "selectedKeybindSetId": snapshot.selected_id,
    }


def decode_document(document: Any) -> RegistrySnapshot:
    if not isinstance(document, Mapping):
        raise SchemaError("Document root must be an object")
    version = document.get("schemaVersion")
    if version != CURRENT_SCHEMA_VERSION:
        raise SchemaError(
            f"Expected schema version {CURRENT_SCHEMA_VERSION}, got {version!r}"
        )
    raw_sets = document.get("keybindSets")
    if not isinstance(raw_sets, list):
        raise SchemaError("'keybindSets' must be a list")
    selected = document.get("selectedKeybindSetId")
    return RegistrySnapshot(
        sets=tuple(decode_set(item) for item in raw_sets),
        selected_id=str(selected) if selected is not None else None,
    )


__all__ = [
    "CURRENT_SCHEMA_VERSION",
    "SchemaError",
    "decode_document",
    "decode_entry",
    "decode_set",
    "encode_document",
    "encode_entry",
    "encode_set",
    "slot_tag",
]
