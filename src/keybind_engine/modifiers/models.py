"""Modifier flags, canonical combinations, and raw input events."""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Mapping, Tuple, Union


class Modifier(str, Enum):
    """One logical modifier, regardless of which side was pressed."""

    CTRL = "ctrl"
    ALT = "alt"
    SHIFT = "shift"

    @property
    def key_codes(self) -> Tuple[str, str]:
        return MODIFIER_KEY_CODES[self]


class ModifierCombination(str, Enum):
    """Canonical tag for the set of effectively held modifiers."""

    NONE = "none"
    CTRL = "ctrl"
    ALT = "alt"
    SHIFT = "shift"
    CTRL_ALT = "ctrl+alt"
    CTRL_SHIFT = "ctrl+shift"
    ALT_SHIFT = "alt+shift"
    CTRL_ALT_SHIFT = "ctrl+alt+shift"

    @classmethod
    def from_flags(
        cls, *, ctrl: bool = False, alt: bool = False, shift: bool = False
    ) -> "ModifierCombination":
        if ctrl and alt and shift:
            return cls.CTRL_ALT_SHIFT
        if ctrl and alt:
            return cls.CTRL_ALT
        if ctrl and shift:
            return cls.CTRL_SHIFT
        if alt and shift:
            return cls.ALT_SHIFT
        if ctrl:
            return cls.CTRL
        if alt:
            return cls.ALT
        if shift:
            return cls.SHIFT
        return cls.NONE

    @classmethod
    def parse(cls, tag: Union[str, "ModifierCombination"]) -> "ModifierCombination":
        if isinstance(tag, ModifierCombination):
            return tag
        try:
            return cls(str(tag).strip().lower())
        except ValueError as exc:
            raise ValueError(f"Unknown modifier combination '{tag}'") from exc

    @property
    def modifiers(self) -> Tuple[Modifier, ...]:
        if self is ModifierCombination.NONE:
            return ()
        return tuple(Modifier(part) for part in self.value.split("+"))


MODIFIER_KEY_CODES: Mapping[Modifier, Tuple[str, str]] = {
    Modifier.CTRL: ("ControlLeft", "ControlRight"),
    Modifier.ALT: ("AltLeft", "AltRight"),
    Modifier.SHIFT: ("ShiftLeft", "ShiftRight"),
}

# physical key code -> ModifierPhysicalState field
_CODE_TO_FIELD: Mapping[str, str] = {
    "ControlLeft": "ctrl_left",
    "ControlRight": "ctrl_right",
    "AltLeft": "alt_left",
    "AltRight": "alt_right",
    "ShiftLeft": "shift_left",
    "ShiftRight": "shift_right",
}


def is_modifier_code(code: str) -> bool:
    return code in _CODE_TO_FIELD


@dataclass(frozen=True, slots=True)
class ModifierPhysicalState:
    """Left/right state of the six physical modifier keys."""

    ctrl_left: bool = False
    ctrl_right: bool = False
    alt_left: bool = False
    alt_right: bool = False
    shift_left: bool = False
    shift_right: bool = False

    @property
    def ctrl(self) -> bool:
        return self.ctrl_left or self.ctrl_right

    @property
    def alt(self) -> bool:
        return self.alt_left or self.alt_right

    @property
    def shift(self) -> bool:
        return self.shift_left or self.shift_right

    @property
    def combination(self) -> ModifierCombination:
        return ModifierCombination.from_flags(
            ctrl=self.ctrl, alt=self.alt, shift=self.shift
        )

    def with_key(self, code: str, pressed: bool) -> "ModifierPhysicalState":
        """Return the state after ``code`` changed; unknown codes are ignored."""

        field_name = _CODE_TO_FIELD.get(code)
        if field_name is None:
            return self
        return replace(self, **{field_name: pressed})


@dataclass(frozen=True, slots=True)
class KeyTransition:
    """Press or release of a keyboard key or mouse button."""

    code: str
    pressed: bool

    def __post_init__(self) -> None:
        if not self.code:
            raise ValueError("code cannot be empty")


@dataclass(frozen=True, slots=True)
class FocusChanged:
    """Host window gained or lost input focus."""

    focused: bool


InputEvent = Union[KeyTransition, FocusChanged]


__all__ = [
    "Modifier",
    "ModifierCombination",
    "ModifierPhysicalState",
    "KeyTransition",
    "FocusChanged",
    "InputEvent",
    "MODIFIER_KEY_CODES",
    "is_modifier_code",
]
