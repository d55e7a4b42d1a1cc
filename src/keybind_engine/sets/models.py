"""Keybind set records and the registry snapshot handed to storage."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Mapping, Optional

from keybind_engine.keymaps import Action, BindingEntry, ColorGroup, SlotKey


@dataclass(frozen=True, slots=True)
class KeybindSet:
    """Independent namespace of actions, bindings and color groups."""

    id: str
    name: str
    created_at: datetime
    last_modified: datetime
    actions: tuple[Action, ...] = ()
    bindings: Mapping[SlotKey, BindingEntry] = field(default_factory=dict)
    color_groups: tuple[ColorGroup, ...] = ()

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("keybind set id cannot be empty")
        object.__setattr__(self, "actions", tuple(self.actions))
        object.__setattr__(self, "color_groups", tuple(self.color_groups))
        object.__setattr__(self, "bindings", MappingProxyType(dict(self.bindings)))

    def __hash__(self) -> int:
        return hash((self.id, self.name, self.last_modified))


@dataclass(frozen=True, slots=True)
class RegistrySnapshot:
    """Everything the persistence layer stores for one installation."""

    sets: tuple[KeybindSet, ...]
    selected_id: Optional[str] = None

    def get(self, set_id: Optional[str]) -> Optional[KeybindSet]:
        for keybind_set in self.sets:
            if keybind_set.id == set_id:
                return keybind_set
        return None


__all__ = ["KeybindSet", "RegistrySnapshot"]
