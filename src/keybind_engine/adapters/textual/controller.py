"""Bridges Textual key/focus events into the engine and engine state into UI hooks."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, List, Mapping, Optional, Tuple

from keybind_engine.engine import KeybindEngine
from keybind_engine.keymaps import Action, BindingEntry, ColorGroup, DeviceType, SlotKey
from keybind_engine.modifiers import Modifier, ModifierCombination
from keybind_engine.runtime.observable import Unsubscribe
from keybind_engine.sets import KeybindSet


def _noop(*_args, **_kwargs) -> None:  # pragma: no cover - default hook
    return None


# Textual key names that differ from the platform-neutral code
_NAMED_KEYS: Dict[str, str] = {
    "escape": "Escape",
    "enter": "Enter",
    "tab": "Tab",
    "space": "Space",
    "backspace": "Backspace",
    "delete": "Delete",
    "insert": "Insert",
    "home": "Home",
    "end": "End",
    "pageup": "PageUp",
    "pagedown": "PageDown",
    "up": "ArrowUp",
    "down": "ArrowDown",
    "left": "ArrowLeft",
    "right": "ArrowRight",
    "minus": "Minus",
    "equals_sign": "Equal",
    "comma": "Comma",
    "full_stop": "Period",
    "slash": "Slash",
    "backslash": "Backslash",
    "semicolon": "Semicolon",
    "apostrophe": "Quote",
    "grave_accent": "Backquote",
    "left_square_bracket": "BracketLeft",
    "right_square_bracket": "BracketRight",
}

_MODIFIER_PREFIXES: Dict[str, Modifier] = {
    "ctrl": Modifier.CTRL,
    "alt": Modifier.ALT,
    "meta": Modifier.ALT,
    "shift": Modifier.SHIFT,
}


def translate_key(key: str) -> Optional[Tuple[str, str, Tuple[Modifier, ...]]]:
    """Map a Textual key name to ``(code, display name, held modifiers)``.

    Returns ``None`` for keys without a platform-neutral code.
    """

    parts = key.split("+")
    name = parts[-1]
    modifiers: List[Modifier] = []
    for prefix in parts[:-1]:
        modifier = _MODIFIER_PREFIXES.get(prefix.lower())
        if modifier is None:
            return None
        if modifier not in modifiers:
            modifiers.append(modifier)

    if len(name) == 1 and name.isalpha():
        if name.isupper() and Modifier.SHIFT not in modifiers:
            modifiers.append(Modifier.SHIFT)
        return f"Key{name.upper()}", name.upper(), tuple(modifiers)
    if len(name) == 1 and name.isdigit():
        return f"Digit{name}", name, tuple(modifiers)
    lowered = name.lower()
    if lowered.startswith("f") and lowered[1:].isdigit():
        return lowered.upper(), lowered.upper(), tuple(modifiers)
    code = _NAMED_KEYS.get(lowered)
    if code is None:
        return None
    return code, code, tuple(modifiers)


@dataclass(slots=True)
class KeybindUIHooks:
    """Callbacks the adapter invokes with the latest engine state."""

    update_bindings: Callable[[Mapping[SlotKey, BindingEntry]], None]
    update_actions: Callable[[Tuple[Action, ...]], None] = _noop
    update_color_groups: Callable[[Tuple[ColorGroup, ...]], None] = _noop
    update_selected_action: Callable[[Optional[Action]], None] = _noop
    update_combination: Callable[[ModifierCombination], None] = _noop
    update_sets: Callable[[Tuple[KeybindSet, ...]], None] = _noop
    update_status: Callable[[str], None] = _noop
    log: Callable[[str], None] = _noop


class TextualKeybindAdapter:
    """Feeds Textual input into a ``KeybindEngine`` and relays its streams.

    Textual reports a key together with its modifiers but no separate
    modifier presses, so each key is replayed as synthetic left-side
    modifier presses around the key itself.
    """

    def __init__(self, engine: KeybindEngine, hooks: KeybindUIHooks) -> None:
        self.engine = engine
        self.hooks = hooks
        self._subscriptions: List[Unsubscribe] = [
            engine.bindings.subscribe(hooks.update_bindings),
            engine.actions.subscribe(hooks.update_actions),
            engine.color_groups.subscribe(hooks.update_color_groups),
            engine.selected_action.subscribe(hooks.update_selected_action),
            engine.effective_combination.subscribe(hooks.update_combination),
            engine.keybind_sets.subscribe(hooks.update_sets),
        ]

    def handle_textual_key(self, key: str) -> Optional[BindingEntry]:
        """Resolve a Textual key; returns the matching binding, if any."""

        translated = translate_key(key)
        if translated is None:
            self._log("key -> untranslated", key=key)
            return None
        code, _display, modifiers = translated
        self._press_modifiers(modifiers, True)
        try:
            entry = self.engine.key_transition(code, True)
            self.engine.key_transition(code, False)
        finally:
            self._press_modifiers(modifiers, False)

        action = self.engine.get_action(entry.action_id) if entry else None
        self.hooks.update_status(f"{code} -> {action.name}" if action else f"{code} -> unbound")
        self._log("key ->", key=key, code=code, action=action.id if action else None)
        return entry

    def bind_textual_key(self, key: str) -> Mapping[SlotKey, BindingEntry]:
        """Bind a Textual key (with its modifiers) to the selected action."""

        translated = translate_key(key)
        if translated is None:
            return {}
        code, display, modifiers = translated
        self._press_modifiers(modifiers, True)
        try:
            owned = self.engine.bind(code, DeviceType.KEYBOARD, display)
        finally:
            self._press_modifiers(modifiers, False)
        self._log("bind ->", key=key, code=code, slots=len(owned))
        return owned

    def handle_focus(self, focused: bool) -> None:
        self.engine.focus_changed(focused)
        self._log("focus ->", focused=focused)

    def close(self) -> None:
        for unsubscribe in self._subscriptions:
            unsubscribe()
        self._subscriptions.clear()

    def _press_modifiers(self, modifiers: Tuple[Modifier, ...], pressed: bool) -> None:
        for modifier in modifiers:
            self.engine.tracker.key_transition(modifier.key_codes[0], pressed)

    def _log(self, prefix: str, **fields: object) -> None:
        parts = [prefix]
        parts.extend(f"{key}={value!r}" for key, value in fields.items() if value is not None)
        parts.append(f"combination={self.engine.effective_combination.value.value!r}")
        self.hooks.log(" ".join(parts))


__all__ = ["KeybindUIHooks", "TextualKeybindAdapter", "translate_key"]
