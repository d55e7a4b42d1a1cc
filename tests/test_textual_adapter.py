from __future__ import annotations

from typing import List

from keybind_engine.adapters.textual import (
    KeybindUIHooks,
    TextualKeybindAdapter,
    translate_key,
)
from keybind_engine.engine import KeybindEngine
from keybind_engine.keymaps import DeviceType, SlotKey
from keybind_engine.modifiers import Modifier, ModifierCombination
from keybind_engine.sets import KeybindSetRegistry


def make_engine() -> KeybindEngine:
    return KeybindEngine(KeybindSetRegistry())


def test_translate_key_maps_textual_names_to_codes() -> None:
    assert translate_key("a") == ("KeyA", "A", ())
    assert translate_key("A") == ("KeyA", "A", (Modifier.SHIFT,))
    assert translate_key("ctrl+s") == ("KeyS", "S", (Modifier.CTRL,))
    assert translate_key("7") == ("Digit7", "7", ())
    assert translate_key("f5") == ("F5", "F5", ())
    assert translate_key("shift+up") == ("ArrowUp", "ArrowUp", (Modifier.SHIFT,))
    assert translate_key("exclamation_mark") is None
    assert translate_key("super+a") is None


def test_adapter_resolves_keys_and_reports_status() -> None:
    engine = make_engine()
    save = engine.add_action("Save")
    engine.bind("KeyS", DeviceType.KEYBOARD, "S", ModifierCombination.CTRL, action_id=save.id)
    statuses: List[str] = []
    combos: List[ModifierCombination] = []
    hooks = KeybindUIHooks(
        update_bindings=lambda bindings: None,
        update_combination=combos.append,
        update_status=statuses.append,
    )
    adapter = TextualKeybindAdapter(engine, hooks)

    hit = adapter.handle_textual_key("ctrl+s")
    miss = adapter.handle_textual_key("s")

    assert hit is not None and hit.action_id == save.id
    assert miss is None
    assert statuses == ["KeyS -> Save", "KeyS -> unbound"]
    assert ModifierCombination.CTRL in combos
    assert engine.effective_combination.value is ModifierCombination.NONE


def test_adapter_binds_keys_with_their_modifiers() -> None:
    engine = make_engine()
    jump = engine.add_action("Jump")
    engine.select_action(jump.id)
    snapshots: List[int] = []
    hooks = KeybindUIHooks(update_bindings=lambda bindings: snapshots.append(len(bindings)))
    adapter = TextualKeybindAdapter(engine, hooks)

    owned = adapter.bind_textual_key("B")

    assert set(owned) == {SlotKey("KeyB", ModifierCombination.SHIFT)}
    assert snapshots == [0, 1]
    assert adapter.bind_textual_key("exclamation_mark") == {}


def test_adapter_emits_log_lines_and_stops_after_close() -> None:
    engine = make_engine()
    jump = engine.add_action("Jump")
    logs: List[str] = []
    snapshots: List[int] = []
    hooks = KeybindUIHooks(
        update_bindings=lambda bindings: snapshots.append(len(bindings)),
        log=logs.append,
    )
    adapter = TextualKeybindAdapter(engine, hooks)

    adapter.handle_textual_key("x")
    adapter.handle_focus(False)
    adapter.close()
    engine.bind("KeyX", DeviceType.KEYBOARD, "X", action_id=jump.id)

    assert any(line.startswith("key ->") for line in logs)
    assert any(line.startswith("focus ->") for line in logs)
    assert snapshots == [0]
