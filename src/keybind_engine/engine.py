"""Engine facade over modifier tracking and the persisted active keybind set."""

from __future__ import annotations

from typing import Iterable, Mapping, Optional, Union

from keybind_engine.config import EngineSettings
from keybind_engine.keymaps import (
    FALLBACK_COLOR,
    Action,
    ActionRegistry,
    BindingEntry,
    BindingStore,
    ColorGroup,
    DeviceType,
    IdFactory,
    SlotKey,
    generate_id,
)
from keybind_engine.modifiers import (
    FocusChanged,
    InputEvent,
    KeyTransition,
    ModifierCombination,
    ModifierPhysicalState,
    ModifierTracker,
)
from keybind_engine.runtime.observable import ObservableValue
from keybind_engine.runtime.telemetry import record_event, span
from keybind_engine.sets import KeybindSet, KeybindSetRegistry
from keybind_engine.storage import FileKeyValueStore, KeyValueStore, PersistenceGateway


class KeybindEngine:
    """Single entry point for hosts: input events in, resolved bindings out.

    The action registry and binding store are views over the selected keybind
    set. Every mutation updates them, rebuilds the affected ``key_mappings``,
    writes the set back through the registry (which persists it) and only
    then publishes the new values to observers.
    """

    def __init__(
        self,
        registry: KeybindSetRegistry,
        *,
        tracker: Optional[ModifierTracker] = None,
        id_factory: IdFactory = generate_id,
        fallback_color: int = FALLBACK_COLOR,
        logger_name: str | None = None,
    ) -> None:
        self.registry = registry
        self.tracker = tracker or ModifierTracker(logger_name=logger_name)
        self._id_factory = id_factory
        self._fallback_color = fallback_color
        self._logger_name = logger_name
        self._selected_action_id: Optional[str] = None

        self.actions: ObservableValue[tuple[Action, ...]] = ObservableValue(())
        self.color_groups: ObservableValue[tuple[ColorGroup, ...]] = ObservableValue(())
        self.bindings: ObservableValue[Mapping[SlotKey, BindingEntry]] = (
            ObservableValue({})
        )
        self.selected_action: ObservableValue[Optional[Action]] = ObservableValue(None)
        self.selected_device: ObservableValue[DeviceType] = ObservableValue(
            DeviceType.KEYBOARD
        )
        self.effective_combination: ObservableValue[ModifierCombination] = (
            ObservableValue(ModifierCombination.NONE)
        )

        self._action_registry, self._store = self._build_views(registry.selected_set)
        self.tracker.state.subscribe(
            lambda _state: self._refresh_effective(), replay=False
        )
        self._publish()

    @classmethod
    def open(
        cls,
        settings: Optional[EngineSettings] = None,
        *,
        store: Optional[KeyValueStore] = None,
        logger_name: str | None = None,
        **kwargs: object,
    ) -> "KeybindEngine":
        """Load (or initialize) persisted keybind sets and build an engine."""

        settings = settings or EngineSettings.from_env()
        backend = (
            store
            if store is not None
            else FileKeyValueStore(settings.storage_path, logger_name=logger_name)
        )
        gateway = PersistenceGateway(
            backend, document_key=settings.document_key, logger_name=logger_name
        )
        registry = KeybindSetRegistry.load(
            gateway,
            default_set_name=settings.default_set_name,
            default_group_name=settings.default_group_name,
            default_group_color=settings.default_group_color,
            logger_name=logger_name,
        )
        return cls(
            registry,
            fallback_color=settings.fallback_color,
            logger_name=logger_name,
            **kwargs,  # type: ignore[arg-type]
        )

    # -- views -----------------------------------------------------------

    @property
    def action_registry(self) -> ActionRegistry:
        return self._action_registry

    @property
    def binding_store(self) -> BindingStore:
        return self._store

    @property
    def modifier_state(self) -> ObservableValue[ModifierPhysicalState]:
        return self.tracker.state

    @property
    def raw_combination(self) -> ObservableValue[ModifierCombination]:
        return self.tracker.combination

    @property
    def keybind_sets(self) -> ObservableValue[tuple[KeybindSet, ...]]:
        return self.registry.keybind_sets

    @property
    def selected_set(self) -> ObservableValue[Optional[KeybindSet]]:
        return self.registry.selected

    def get_action(self, action_id: Optional[str]) -> Optional[Action]:
        return self._action_registry.get_action(action_id)

    def get_color_group(self, group_id: Optional[str]) -> Optional[ColorGroup]:
        return self._action_registry.get_color_group(group_id)

    def get_action_color(self, action: Action) -> int:
        return self._action_registry.get_action_color(action)

    # -- input -----------------------------------------------------------

    def handle_event(self, event: InputEvent) -> Optional[BindingEntry]:
        if isinstance(event, FocusChanged):
            self.focus_changed(event.focused)
            return None
        if isinstance(event, KeyTransition):
            return self.key_transition(event.code, event.pressed)
        raise TypeError(f"Unsupported input event {event!r}")

    def key_transition(self, code: str, pressed: bool) -> Optional[BindingEntry]:
        """Feed one transition; on press, return the binding it resolves to."""

        self.tracker.key_transition(code, pressed)
        if not pressed:
            return None
        return self.resolve(code)

    def focus_changed(self, focused: bool) -> None:
        self.tracker.focus_changed(focused)

    def resolve(
        self, input_code: str, combination: Optional[ModifierCombination] = None
    ) -> Optional[BindingEntry]:
        """Look up ``input_code`` under ``combination`` or the effective one."""

        target = (
            self.effective_combination.value
            if combination is None
            else ModifierCombination.parse(combination)
        )
        return self._store.lookup(input_code, target)

    def resolve_action(
        self, input_code: str, combination: Optional[ModifierCombination] = None
    ) -> Optional[Action]:
        entry = self.resolve(input_code, combination)
        return self._action_registry.get_action(entry.action_id) if entry else None

    # -- selection -------------------------------------------------------

    def select_action(self, action_id: Optional[str]) -> Optional[Action]:
        if action_id is None:
            self._selected_action_id = None
            self.selected_action.set(None)
            return None
        action = self._action_registry.get_action(action_id)
        if action is None:
            return None
        self._selected_action_id = action.id
        self.selected_action.set(action)
        return action

    def select_device(self, device_type: DeviceType) -> None:
        self.selected_device.set_if_changed(DeviceType(device_type))

    # -- actions and color groups ----------------------------------------

    def add_action(self, name: str, color_group_id: Optional[str] = None) -> Action:
        if color_group_id is None:
            default_group = self._action_registry.default_color_group()
            color_group_id = default_group.id if default_group else ""
        action = self._action_registry.add_action(name, color_group_id)
        self._commit()
        return action

    def update_action(self, action_id: str, **changes: object) -> Optional[Action]:
        updated = self._action_registry.update_action(action_id, **changes)
        if updated is not None:
            self._commit()
        return updated

    def delete_action(self, action_id: str) -> Optional[Action]:
        removed = self._action_registry.delete_action(action_id)
        if removed is None:
            return None
        self._store.unbind_action(action_id)
        if self._selected_action_id == action_id:
            self._selected_action_id = None
        self._commit()
        return removed

    def add_color_group(self, name: str, color: Union[str, int]) -> ColorGroup:
        group = self._action_registry.add_color_group(name, color)
        self._commit()
        return group

    def update_color_group(self, group_id: str, **changes: object) -> Optional[ColorGroup]:
        updated = self._action_registry.update_color_group(group_id, **changes)
        if updated is not None:
            self._commit()
        return updated

    def delete_color_group(self, group_id: str) -> Optional[ColorGroup]:
        removed = self._action_registry.delete_color_group(group_id)
        if removed is not None:
            self._commit()
        return removed

    # -- bindings --------------------------------------------------------

    def bind(
        self,
        input_code: str,
        device_type: DeviceType,
        display_name: str,
        combination: Optional[ModifierCombination] = None,
        *,
        action_id: Optional[str] = None,
    ) -> Mapping[SlotKey, BindingEntry]:
        """Bind an input to ``action_id`` (default: the selected action).

        ``combination`` defaults to the current effective combination.
        Returns every slot the action owns afterwards.
        """

        target = (
            self.effective_combination.value
            if combination is None
            else ModifierCombination.parse(combination)
        )
        with span(
            "engine::bind",
            logger_name=self._logger_name,
            component="engine",
            metadata={"input_code": input_code, "combination": target},
        ) as handle:
            action = self._action_registry.get_action(
                action_id if action_id is not None else self._selected_action_id
            )
            if action is None:
                handle.cancel("no_action")
                return {}
            previous = self._store.lookup(input_code, target)
            owned = self._store.bind(
                input_code, device_type, display_name, target, action.id
            )
            affected = {action.id}
            if previous is not None:
                affected.add(previous.action_id)
            self._resync(affected)
            self._commit()
            return owned

    def unbind(
        self, input_code: str, combination: Optional[ModifierCombination] = None
    ) -> Optional[str]:
        target = (
            self.effective_combination.value
            if combination is None
            else ModifierCombination.parse(combination)
        )
        action_id = self._store.unbind(input_code, target)
        if action_id is not None:
            self._resync({action_id})
            self._commit()
        return action_id

    def map_key(
        self, input_code: str, device_type: DeviceType, display_name: str
    ) -> Mapping[SlotKey, BindingEntry]:
        return self.bind(
            input_code, device_type, display_name, ModifierCombination.NONE
        )

    def clear_key(self, input_code: str) -> Optional[str]:
        return self.unbind(input_code, ModifierCombination.NONE)

    def clear_action_bindings(self, action_id: str) -> tuple[BindingEntry, ...]:
        if self._action_registry.get_action(action_id) is None:
            return ()
        removed = self._store.unbind_action(action_id)
        self._resync({action_id})
        self._commit()
        return removed

    # -- keybind sets ----------------------------------------------------

    def create_set(self, name: str) -> KeybindSet:
        created = self.registry.create_set(name)
        self._swap_views()
        return created

    def rename_set(self, set_id: str, new_name: str) -> Optional[KeybindSet]:
        return self.registry.rename_set(set_id, new_name)

    def delete_set(self, set_id: str) -> bool:
        previous = self.registry.selected_id
        deleted = self.registry.delete_set(set_id)
        if deleted and self.registry.selected_id != previous:
            self._swap_views()
        return deleted

    def select_set(self, set_id: str) -> Optional[KeybindSet]:
        previous = self.registry.selected_id
        selected = self.registry.select_set(set_id)
        if selected is not None and selected.id != previous:
            self._swap_views()
        return selected

    # -- internals -------------------------------------------------------

    def _build_views(
        self, keybind_set: Optional[KeybindSet]
    ) -> tuple[ActionRegistry, BindingStore]:
        actions: Iterable[Action] = keybind_set.actions if keybind_set else ()
        groups: Iterable[ColorGroup] = keybind_set.color_groups if keybind_set else ()
        entries: Iterable[BindingEntry] = (
            keybind_set.bindings.values() if keybind_set else ()
        )
        action_registry = ActionRegistry(
            actions,
            groups,
            id_factory=self._id_factory,
            fallback_color=self._fallback_color,
            logger_name=self._logger_name,
        )
        store = BindingStore(entries, logger_name=self._logger_name)
        for action in action_registry.actions:
            action_registry.sync_key_mappings(action.id, store.entries_for(action.id))
        return action_registry, store

    def _swap_views(self) -> None:
        selected = self.registry.selected_set
        self._action_registry, self._store = self._build_views(selected)
        self._selected_action_id = None
        record_event(
            "engine.set_swapped",
            data={"set_id": selected.id if selected else None},
            logger_name=self._logger_name,
        )
        self._publish()

    def _resync(self, action_ids: Iterable[str]) -> None:
        for action_id in action_ids:
            self._action_registry.sync_key_mappings(
                action_id, self._store.entries_for(action_id)
            )

    def _commit(self) -> None:
        self.registry.update_active_set(
            self._action_registry.actions,
            self._store.snapshot(),
            self._action_registry.color_groups,
        )
        self._publish()

    def _publish(self) -> None:
        self.actions.set_if_changed(self._action_registry.actions)
        self.color_groups.set_if_changed(self._action_registry.color_groups)
        self.bindings.set_if_changed(self._store.snapshot())
        self.selected_action.set_if_changed(
            self._action_registry.get_action(self._selected_action_id)
        )
        self._refresh_effective()

    def _refresh_effective(self) -> None:
        self.effective_combination.set_if_changed(
            self.tracker.effective_combination(self._store.is_modifier_key_bound)
        )


__all__ = ["KeybindEngine"]
