from __future__ import annotations

import itertools
import random
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Mapping, Optional

from keybind_engine.config import EngineSettings
from keybind_engine.engine import KeybindEngine
from keybind_engine.keymaps import FALLBACK_COLOR, BindingEntry, DeviceType, SlotKey
from keybind_engine.modifiers import KeyTransition, ModifierCombination
from keybind_engine.sets import KeybindSetRegistry
from keybind_engine.storage import MemoryKeyValueStore, PersistenceGateway

NONE = ModifierCombination.NONE
SHIFT = ModifierCombination.SHIFT
CTRL = ModifierCombination.CTRL
KEYBOARD = DeviceType.KEYBOARD


def make_engine(
    store: Optional[MemoryKeyValueStore] = None,
) -> tuple[KeybindEngine, PersistenceGateway]:
    counter = itertools.count(1)

    def ids() -> str:
        return f"id{next(counter)}"

    gateway = PersistenceGateway(store if store is not None else MemoryKeyValueStore())
    registry = KeybindSetRegistry(
        gateway=gateway,
        id_factory=ids,
        clock=lambda: datetime(2024, 5, 1, tzinfo=timezone.utc),
    )
    return KeybindEngine(registry, id_factory=ids), gateway


def default_group_id(engine: KeybindEngine) -> str:
    group = engine.action_registry.default_color_group()
    assert group is not None
    return group.id


def assert_consistent(engine: KeybindEngine) -> None:
    bindings = engine.bindings.value
    mirrored = 0
    for slot, entry in bindings.items():
        owners = [
            action for action in engine.actions.value if slot in action.key_mappings
        ]
        assert len(owners) == 1
        assert owners[0].id == entry.action_id
        assert owners[0].key_mappings[slot] == entry
    for action in engine.actions.value:
        mirrored += len(action.key_mappings)
    assert mirrored == len(bindings)


def test_bind_shift_and_delete_scenario() -> None:
    engine, _gateway = make_engine()
    group_id = default_group_id(engine)
    assert engine.color_groups.value[0].hex == "#2196f3"

    jump = engine.add_action("Jump", group_id)
    assert not jump.is_mapped

    engine.bind("KeyA", KEYBOARD, "A", NONE, action_id=jump.id)
    assert engine.resolve("KeyA", NONE).action_id == jump.id

    engine.key_transition("ShiftLeft", True)
    assert engine.effective_combination.value is SHIFT
    assert engine.resolve("KeyA") is None

    engine.bind("KeyA", KEYBOARD, "A", SHIFT, action_id=jump.id)
    assert engine.resolve("KeyA", SHIFT).action_id == jump.id
    assert engine.resolve("KeyA", NONE).action_id == jump.id
    assert_consistent(engine)

    engine.delete_action(jump.id)

    assert engine.resolve("KeyA", NONE) is None
    assert engine.resolve("KeyA", SHIFT) is None
    assert jump.id not in {action.id for action in engine.actions.value}
    assert_consistent(engine)


def test_key_press_resolves_under_effective_combination() -> None:
    engine, _gateway = make_engine()
    fire = engine.add_action("Fire")
    engine.bind("KeyF", KEYBOARD, "F", CTRL, action_id=fire.id)

    engine.handle_event(KeyTransition("ControlRight", True))
    hit = engine.handle_event(KeyTransition("KeyF", True))
    release = engine.handle_event(KeyTransition("KeyF", False))

    assert hit is not None and hit.action_id == fire.id
    assert release is None
    assert engine.resolve_action("KeyF", CTRL) == engine.get_action(fire.id)


def test_bound_modifier_key_does_not_shift_other_lookups() -> None:
    engine, _gateway = make_engine()
    crouch = engine.add_action("Crouch")
    jump = engine.add_action("Jump")
    engine.bind("KeyX", KEYBOARD, "X", NONE, action_id=jump.id)

    engine.key_transition("ControlLeft", True)
    assert engine.effective_combination.value is CTRL
    assert engine.raw_combination.value is CTRL

    engine.bind("ControlLeft", KEYBOARD, "Left Ctrl", NONE, action_id=crouch.id)

    assert engine.effective_combination.value is NONE
    assert engine.raw_combination.value is CTRL
    assert engine.key_transition("ControlLeft", True).action_id == crouch.id
    assert engine.key_transition("KeyX", True).action_id == jump.id


def test_rebinding_taken_slot_evicts_only_that_slot() -> None:
    engine, _gateway = make_engine()
    jump = engine.add_action("Jump")
    dash = engine.add_action("Dash")
    engine.bind("KeyA", KEYBOARD, "A", NONE, action_id=jump.id)
    engine.bind("KeyA", KEYBOARD, "A", SHIFT, action_id=jump.id)
    engine.bind("KeyB", KEYBOARD, "B", NONE, action_id=jump.id)

    owned = engine.bind("KeyA", KEYBOARD, "A", NONE, action_id=dash.id)

    assert set(owned) == {SlotKey("KeyA", NONE)}
    assert set(engine.get_action(jump.id).key_mappings) == {
        SlotKey("KeyA", SHIFT),
        SlotKey("KeyB", NONE),
    }
    assert_consistent(engine)


def test_bind_without_selected_action_is_ignored() -> None:
    engine, _gateway = make_engine()
    engine.add_action("Jump")
    seen: List[Mapping[SlotKey, BindingEntry]] = []
    engine.bindings.subscribe(seen.append, replay=False)

    assert engine.bind("KeyA", KEYBOARD, "A") == {}
    assert seen == []
    assert engine.bindings.value == {}


def test_bind_defaults_to_selected_action_and_current_combination() -> None:
    engine, _gateway = make_engine()
    jump = engine.add_action("Jump")
    assert engine.select_action(jump.id) is not None
    engine.key_transition("ShiftRight", True)

    engine.bind("Mouse1", DeviceType.MOUSE, "Right click")

    entry = engine.resolve("Mouse1", SHIFT)
    assert entry is not None and entry.action_id == jump.id
    assert entry.device_type is DeviceType.MOUSE
    assert engine.selected_action.value.key_mappings == {entry.slot: entry}


def test_select_action_ignores_unknown_ids() -> None:
    engine, _gateway = make_engine()
    jump = engine.add_action("Jump")
    engine.select_action(jump.id)

    assert engine.select_action("missing") is None
    assert engine.selected_action.value.id == jump.id

    engine.select_action(None)
    assert engine.selected_action.value is None


def test_deleting_selected_action_clears_selection() -> None:
    engine, _gateway = make_engine()
    jump = engine.add_action("Jump")
    engine.select_action(jump.id)

    engine.delete_action(jump.id)

    assert engine.selected_action.value is None
    assert engine.bind("KeyA", KEYBOARD, "A") == {}


def test_unbind_and_clear_helpers_keep_views_in_sync() -> None:
    engine, _gateway = make_engine()
    jump = engine.add_action("Jump")
    engine.select_action(jump.id)
    engine.map_key("KeyA", KEYBOARD, "A")
    engine.bind("KeyA", KEYBOARD, "A", SHIFT)
    engine.bind("KeyS", KEYBOARD, "S", NONE)

    assert engine.clear_key("KeyA") == jump.id
    assert engine.unbind("KeyA", NONE) is None
    assert_consistent(engine)

    removed = engine.clear_action_bindings(jump.id)

    assert {entry.input_code for entry in removed} == {"KeyA", "KeyS"}
    assert engine.bindings.value == {}
    assert not engine.get_action(jump.id).is_mapped


def test_observers_see_store_actions_and_storage_in_step() -> None:
    engine, gateway = make_engine()
    jump = engine.add_action("Jump")
    checks: List[bool] = []

    def on_bindings(bindings: Mapping[SlotKey, BindingEntry]) -> None:
        action = engine.get_action(jump.id)
        stored = gateway.load().snapshot.get(engine.registry.selected_id)
        checks.append(
            dict(action.key_mappings) == dict(bindings)
            and dict(stored.bindings) == dict(bindings)
        )

    engine.bindings.subscribe(on_bindings, replay=False)
    engine.bind("KeyA", KEYBOARD, "A", NONE, action_id=jump.id)
    engine.unbind("KeyA", NONE)

    assert checks == [True, True]


def test_switching_sets_does_not_bleed_content() -> None:
    engine, _gateway = make_engine()
    first_id = engine.registry.selected_id
    jump = engine.add_action("Jump")
    engine.bind("KeyA", KEYBOARD, "A", NONE, action_id=jump.id)
    engine.add_color_group("Combat", "#ff0000")
    before = (
        engine.actions.value,
        engine.bindings.value,
        engine.color_groups.value,
    )

    second = engine.create_set("Racing")
    assert engine.registry.selected_id == second.id
    assert engine.actions.value == ()
    assert engine.bindings.value == {}
    assert [group.name for group in engine.color_groups.value] == ["Default"]
    engine.add_action("Brake")

    engine.select_set(first_id)

    after = (
        engine.actions.value,
        engine.bindings.value,
        engine.color_groups.value,
    )
    assert after == before
    assert engine.resolve("KeyA", NONE).action_id == jump.id


def test_set_swap_clears_selected_action() -> None:
    engine, _gateway = make_engine()
    jump = engine.add_action("Jump")
    engine.select_action(jump.id)

    engine.create_set("Other")

    assert engine.selected_action.value is None


def test_deleting_active_set_swaps_to_survivor() -> None:
    engine, _gateway = make_engine()
    first_id = engine.registry.selected_id
    engine.add_action("Jump")
    second = engine.create_set("Second")

    assert engine.delete_set(second.id) is True

    assert engine.registry.selected_id == first_id
    assert [action.name for action in engine.actions.value] == ["Jump"]
    assert engine.delete_set(first_id) is False


def test_deleted_color_group_falls_back_to_neutral_color() -> None:
    engine, _gateway = make_engine()
    group = engine.add_color_group("Combat", "#ff0000")
    fire = engine.add_action("Fire", group.id)

    engine.delete_color_group(group.id)

    action = engine.get_action(fire.id)
    assert action.color_group_id == group.id
    assert engine.get_action_color(action) == FALLBACK_COLOR


def test_focus_loss_drops_held_modifiers() -> None:
    engine, _gateway = make_engine()
    engine.key_transition("AltLeft", True)
    engine.key_transition("ShiftLeft", True)
    assert engine.effective_combination.value is ModifierCombination.ALT_SHIFT

    engine.focus_changed(False)

    assert engine.effective_combination.value is NONE
    assert engine.modifier_state.value.alt is False


def test_update_action_publishes_new_list() -> None:
    engine, _gateway = make_engine()
    jump = engine.add_action("Jump")
    names: List[List[str]] = []
    engine.actions.subscribe(
        lambda actions: names.append([action.name for action in actions]),
        replay=False,
    )

    engine.update_action(jump.id, name="Leap")

    assert names == [["Leap"]]
    assert engine.update_action("missing", name="x") is None


def test_open_reloads_persisted_bindings() -> None:
    store = MemoryKeyValueStore()
    settings = EngineSettings()
    engine = KeybindEngine.open(settings, store=store)
    jump = engine.add_action("Jump")
    engine.bind("KeyJ", KEYBOARD, "J", NONE, action_id=jump.id)

    reopened = KeybindEngine.open(settings, store=store)

    assert reopened.resolve("KeyJ", NONE).action_id == jump.id
    assert reopened.get_action(jump.id).is_mapped
    assert_consistent(reopened)


def test_edits_persist_after_corrupt_storage_file(tmp_path: Path) -> None:
    path = tmp_path / "registry.json"
    path.write_text("[broken", encoding="utf-8")
    settings = EngineSettings(storage_path=path)

    engine = KeybindEngine.open(settings)
    jump = engine.add_action("Jump")
    engine.bind("KeyJ", KEYBOARD, "J", NONE, action_id=jump.id)

    reopened = KeybindEngine.open(settings)

    assert reopened.resolve("KeyJ", NONE).action_id == jump.id
    assert path.with_name("registry.json.corrupt").read_text(encoding="utf-8") == "[broken"


def test_random_bind_and_unbind_sequence_stays_consistent() -> None:
    engine, _gateway = make_engine()
    action_ids = [engine.add_action(name).id for name in ("Jump", "Dash", "Fire")]
    codes = ["KeyA", "KeyB", "ShiftLeft", "Mouse0"]
    combinations = list(ModifierCombination)
    rng = random.Random(1234)

    for _ in range(200):
        code = rng.choice(codes)
        combination = rng.choice(combinations)
        roll = rng.random()
        if roll < 0.6:
            engine.bind(
                code, KEYBOARD, code, combination, action_id=rng.choice(action_ids)
            )
        elif roll < 0.9:
            engine.unbind(code, combination)
        else:
            engine.clear_action_bindings(rng.choice(action_ids))
        assert_consistent(engine)
        assert engine.bindings.value == engine.binding_store.snapshot()
