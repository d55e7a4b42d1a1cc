from __future__ import annotations

import itertools
from datetime import datetime, timedelta, timezone
from typing import Iterator, List, Optional

from keybind_engine.keymaps import DEFAULT_GROUP_COLOR, Action
from keybind_engine.sets import Clock, KeybindSet, KeybindSetRegistry
from keybind_engine.storage import MemoryKeyValueStore, PersistenceGateway

EPOCH = datetime(2024, 1, 1, tzinfo=timezone.utc)


def make_clock() -> Clock:
    ticks: Iterator[int] = itertools.count()
    return lambda: EPOCH + timedelta(seconds=next(ticks))


def make_registry(
    gateway: Optional[PersistenceGateway] = None,
) -> KeybindSetRegistry:
    counter = itertools.count(1)
    return KeybindSetRegistry(
        gateway=gateway,
        id_factory=lambda: f"id{next(counter)}",
        clock=make_clock(),
    )


def test_empty_registry_creates_default_set_with_default_group() -> None:
    registry = make_registry()

    assert len(registry.sets) == 1
    default = registry.selected_set
    assert default is not None
    assert default.name == "Default"
    assert registry.selected_id == default.id
    (group,) = default.color_groups
    assert group.is_default
    assert group.name == "Default"
    assert group.color == DEFAULT_GROUP_COLOR


def test_create_set_selects_it() -> None:
    registry = make_registry()
    selections: List[Optional[KeybindSet]] = []
    registry.selected.subscribe(selections.append, replay=False)

    created = registry.create_set("Racing")

    assert registry.selected_id == created.id
    assert selections[-1] == created
    assert [item.name for item in registry.sets] == ["Default", "Racing"]


def test_rename_set_ignores_unknown_ids_and_blank_names() -> None:
    registry = make_registry()
    default = registry.selected_set

    assert registry.rename_set("missing", "Name") is None
    assert registry.rename_set(default.id, "   ") is None

    renamed = registry.rename_set(default.id, "Shooter")

    assert renamed is not None and renamed.name == "Shooter"
    assert renamed.last_modified > default.last_modified
    assert renamed.created_at == default.created_at


def test_last_set_cannot_be_deleted() -> None:
    registry = make_registry()

    assert registry.delete_set(registry.selected_id) is False
    assert len(registry.sets) == 1


def test_deleting_selected_set_selects_first_survivor() -> None:
    registry = make_registry()
    first = registry.selected_set
    registry.create_set("Second")
    third = registry.create_set("Third")

    assert registry.delete_set(third.id) is True

    assert registry.selected_id == first.id
    assert registry.get_set(third.id) is None


def test_deleting_unselected_set_keeps_selection() -> None:
    registry = make_registry()
    first = registry.selected_set
    second = registry.create_set("Second")

    registry.select_set(first.id)
    assert registry.delete_set(second.id) is True

    assert registry.selected_id == first.id


def test_select_set_ignores_unknown_ids() -> None:
    registry = make_registry()
    current = registry.selected_id

    assert registry.select_set("missing") is None
    assert registry.selected_id == current


def test_update_active_set_only_touches_selected_set() -> None:
    registry = make_registry()
    first = registry.selected_set
    second = registry.create_set("Second")
    action = Action(id="a1", name="Jump", color_group_id="")

    updated = registry.update_active_set([action], {}, second.color_groups)

    assert updated is not None and updated.actions == (action,)
    assert registry.get_set(first.id).actions == ()
    assert updated.last_modified > second.last_modified


def test_every_mutation_is_persisted() -> None:
    store = MemoryKeyValueStore()
    gateway = PersistenceGateway(store)
    registry = make_registry(gateway)
    created = registry.create_set("Racing")

    reloaded = KeybindSetRegistry.load(gateway)

    assert [item.id for item in reloaded.sets] == [item.id for item in registry.sets]
    assert reloaded.selected_id == created.id


def test_load_from_empty_storage_yields_default_set() -> None:
    gateway = PersistenceGateway(MemoryKeyValueStore())

    registry = KeybindSetRegistry.load(gateway)

    assert [item.name for item in registry.sets] == ["Default"]
    assert gateway.load().snapshot is not None
