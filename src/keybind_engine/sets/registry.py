"""Registry of independently persisted keybind sets."""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Callable, Dict, Iterable, Mapping, Optional

from keybind_engine.keymaps import (
    DEFAULT_GROUP_COLOR,
    Action,
    BindingEntry,
    ColorGroup,
    IdFactory,
    SlotKey,
    generate_id,
)
from keybind_engine.runtime.observable import ObservableValue
from keybind_engine.runtime.telemetry import record_event, span

from .models import KeybindSet, RegistrySnapshot

if TYPE_CHECKING:  # pragma: no cover
    from keybind_engine.storage.gateway import PersistenceGateway

Clock = Callable[[], datetime]

DEFAULT_SET_NAME = "Default"
DEFAULT_GROUP_NAME = "Default"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class KeybindSetRegistry:
    """Owns every keybind set and tracks which one is selected.

    At least one set always exists: an empty registry is repaired by creating
    the default set. Each mutation is written through to the gateway before
    observers hear about it.
    """

    def __init__(
        self,
        sets: Iterable[KeybindSet] = (),
        selected_id: Optional[str] = None,
        *,
        gateway: Optional["PersistenceGateway"] = None,
        id_factory: IdFactory = generate_id,
        clock: Clock = utc_now,
        default_set_name: str = DEFAULT_SET_NAME,
        default_group_name: str = DEFAULT_GROUP_NAME,
        default_group_color: int = DEFAULT_GROUP_COLOR,
        logger_name: str | None = None,
    ) -> None:
        self._sets: Dict[str, KeybindSet] = {item.id: item for item in sets}
        self._gateway = gateway
        self._id_factory = id_factory
        self._clock = clock
        self._default_set_name = default_set_name
        self._default_group_name = default_group_name
        self._default_group_color = default_group_color
        self._logger_name = logger_name

        if selected_id not in self._sets:
            selected_id = next(iter(self._sets), None)
        self._selected_id = selected_id

        self.keybind_sets: ObservableValue[tuple[KeybindSet, ...]] = ObservableValue(
            tuple(self._sets.values())
        )
        self.selected: ObservableValue[Optional[KeybindSet]] = ObservableValue(
            self._sets.get(selected_id) if selected_id else None
        )

        if not self._sets:
            self.create_set(self._default_set_name)

    @classmethod
    def load(
        cls, gateway: "PersistenceGateway", **kwargs: object
    ) -> "KeybindSetRegistry":
        """Build a registry from storage; fresh or unreadable data yields the default set."""

        result = gateway.load()
        snapshot = result.snapshot or RegistrySnapshot(sets=())
        return cls(
            snapshot.sets,
            snapshot.selected_id,
            gateway=gateway,
            **kwargs,  # type: ignore[arg-type]
        )

    @property
    def sets(self) -> tuple[KeybindSet, ...]:
        return tuple(self._sets.values())

    @property
    def selected_id(self) -> Optional[str]:
        return self._selected_id

    @property
    def selected_set(self) -> Optional[KeybindSet]:
        if self._selected_id is None:
            return None
        return self._sets.get(self._selected_id)

    def get_set(self, set_id: str) -> Optional[KeybindSet]:
        return self._sets.get(set_id)

    def snapshot(self) -> RegistrySnapshot:
        return RegistrySnapshot(sets=self.sets, selected_id=self._selected_id)

    def create_set(self, name: str) -> KeybindSet:
        with span(
            "keybind_sets::create",
            logger_name=self._logger_name,
            component="keybind_sets",
            metadata={"name": name},
        ) as handle:
            now = self._clock()
            new_set = KeybindSet(
                id=self._fresh_id(),
                name=name,
                created_at=now,
                last_modified=now,
                color_groups=(
                    ColorGroup(
                        id=self._fresh_id(),
                        name=self._default_group_name,
                        color=self._default_group_color,
                        is_default=True,
                    ),
                ),
            )
            self._sets[new_set.id] = new_set
            self._selected_id = new_set.id
            handle.add_metadata("set_id", new_set.id)
            self._commit()
            return new_set

    def rename_set(self, set_id: str, new_name: str) -> Optional[KeybindSet]:
        with span(
            "keybind_sets::rename",
            logger_name=self._logger_name,
            component="keybind_sets",
            metadata={"set_id": set_id},
        ) as handle:
            current = self._sets.get(set_id)
            if current is None:
                handle.cancel("unknown_set")
                return None
            if not new_name.strip():
                handle.cancel("blank_name")
                return None
            renamed = replace(current, name=new_name, last_modified=self._clock())
            self._sets[set_id] = renamed
            self._commit()
            return renamed

    def delete_set(self, set_id: str) -> bool:
        """Delete a set unless it is the last one; selection moves to the first survivor."""

        with span(
            "keybind_sets::delete",
            logger_name=self._logger_name,
            component="keybind_sets",
            metadata={"set_id": set_id},
        ) as handle:
            if set_id not in self._sets:
                handle.cancel("unknown_set")
                return False
            if len(self._sets) <= 1:
                handle.cancel("last_set")
                return False
            del self._sets[set_id]
            was_selected = set_id == self._selected_id
            if was_selected:
                self._selected_id = next(iter(self._sets))
            self._commit()
            return True

    def select_set(self, set_id: str) -> Optional[KeybindSet]:
        with span(
            "keybind_sets::select",
            logger_name=self._logger_name,
            component="keybind_sets",
            metadata={"set_id": set_id},
        ) as handle:
            target = self._sets.get(set_id)
            if target is None:
                handle.cancel("unknown_set")
                return None
            if set_id == self._selected_id:
                return target
            self._selected_id = set_id
            self._commit()
            return target

    def update_active_set(
        self,
        actions: Iterable[Action],
        bindings: Mapping[SlotKey, BindingEntry],
        color_groups: Iterable[ColorGroup],
    ) -> Optional[KeybindSet]:
        """Store the active view back into the selected set's record."""

        with span(
            "keybind_sets::update_active",
            logger_name=self._logger_name,
            component="keybind_sets",
            metadata={"set_id": self._selected_id},
        ) as handle:
            current = self.selected_set
            if current is None:
                handle.cancel("no_selection")
                return None
            updated = replace(
                current,
                actions=tuple(actions),
                bindings=dict(bindings),
                color_groups=tuple(color_groups),
                last_modified=self._clock(),
            )
            self._sets[current.id] = updated
            self._commit()
            return updated

    def _commit(self) -> None:
        if self._gateway is not None and not self._gateway.save(self.snapshot()):
            record_event(
                "keybind_sets.save_failed",
                level="warning",
                data={"selected_id": self._selected_id},
                logger_name=self._logger_name,
            )
        self.keybind_sets.set(self.sets)
        self.selected.set(self.selected_set)

    def _fresh_id(self) -> str:
        taken = set(self._sets)
        for keybind_set in self._sets.values():
            taken.update(group.id for group in keybind_set.color_groups)
        candidate = self._id_factory()
        while candidate in taken:
            candidate = self._id_factory()
        return candidate


__all__ = [
    "DEFAULT_GROUP_NAME",
    "DEFAULT_SET_NAME",
    "Clock",
    "KeybindSetRegistry",
    "utc_now",
]
