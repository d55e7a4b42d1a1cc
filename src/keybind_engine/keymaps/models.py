"""Dataclasses describing actions, color groups and binding entries."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Mapping, NamedTuple, Union

from keybind_engine.modifiers import ModifierCombination

_HEX_COLOR = re.compile(r"^#?([0-9a-fA-F]{6})$")

FALLBACK_COLOR = 0xCCCCCC
DEFAULT_GROUP_COLOR = 0x2196F3


def parse_color(value: Union[str, int]) -> int:
    """Normalize ``"#rrggbb"`` strings or ints to a 24-bit RGB int."""

    if isinstance(value, bool):
        raise ValueError(f"Invalid color {value!r}")
    if isinstance(value, int):
        if not 0 <= value <= 0xFFFFFF:
            raise ValueError(f"Color {value:#x} is outside the 24-bit range")
        return value
    match = _HEX_COLOR.match(str(value).strip())
    if not match:
        raise ValueError(f"Invalid color {value!r}; expected '#RRGGBB'")
    return int(match.group(1), 16)


def format_color(value: int) -> str:
    return f"#{value:06x}"


class DeviceType(str, Enum):
    KEYBOARD = "keyboard"
    MOUSE = "mouse"


class SlotKey(NamedTuple):
    """Composite key of the binding store: one input under one combination."""

    input_code: str
    combination: ModifierCombination


@dataclass(frozen=True, slots=True)
class BindingEntry:
    """Assignment of one physical input, under one combination, to one action."""

    input_code: str
    device_type: DeviceType
    display_name: str
    modifier_combination: ModifierCombination
    action_id: str

    def __post_init__(self) -> None:
        if not self.input_code:
            raise ValueError("input_code cannot be empty")
        if not self.action_id:
            raise ValueError("binding action_id cannot be empty")
        object.__setattr__(self, "device_type", DeviceType(self.device_type))
        object.__setattr__(
            self,
            "modifier_combination",
            ModifierCombination.parse(self.modifier_combination),
        )

    @property
    def slot(self) -> SlotKey:
        return SlotKey(self.input_code, self.modifier_combination)


@dataclass(frozen=True, slots=True)
class ColorGroup:
    """Named color tagging one or more actions."""

    id: str
    name: str
    color: int
    is_default: bool = False

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("color group id cannot be empty")
        object.__setattr__(self, "color", parse_color(self.color))

    @property
    def hex(self) -> str:
        return format_color(self.color)


@dataclass(frozen=True, slots=True)
class Action:
    """User-named command that inputs can be bound to.

    ``key_mappings`` mirrors the binding store entries owned by this action.
    It is rebuilt from the store after every binding change and is never
    edited directly.
    """

    id: str
    name: str
    color_group_id: str
    key_mappings: Mapping[SlotKey, BindingEntry] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("action id cannot be empty")
        object.__setattr__(
            self, "key_mappings", MappingProxyType(dict(self.key_mappings))
        )

    @property
    def is_mapped(self) -> bool:
        return bool(self.key_mappings)

    def __hash__(self) -> int:
        return hash((self.id, self.name, self.color_group_id))


__all__ = [
    "Action",
    "BindingEntry",
    "ColorGroup",
    "DeviceType",
    "SlotKey",
    "DEFAULT_GROUP_COLOR",
    "FALLBACK_COLOR",
    "format_color",
    "parse_color",
]
