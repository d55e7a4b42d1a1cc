"""Actions and color groups of the active keybind set."""

from __future__ import annotations

import uuid
from dataclasses import replace
from typing import Callable, Dict, Iterable, Mapping, Optional, Union

from keybind_engine.runtime.telemetry import span

from .models import (
    FALLBACK_COLOR,
    Action,
    BindingEntry,
    ColorGroup,
    SlotKey,
    parse_color,
)

IdFactory = Callable[[], str]

_IMMUTABLE_ACTION_FIELDS = frozenset({"id", "key_mappings"})


def generate_id() -> str:
    return uuid.uuid4().hex[:16]


class ActionRegistry:
    """Ordered actions plus the color groups they reference.

    Actions point at color groups by id only. Deleting a group leaves those
    references dangling; ``get_action_color`` falls back to neutral gray.
    """

    def __init__(
        self,
        actions: Iterable[Action] = (),
        color_groups: Iterable[ColorGroup] = (),
        *,
        id_factory: IdFactory = generate_id,
        fallback_color: int = FALLBACK_COLOR,
        logger_name: str | None = None,
    ) -> None:
        self._actions: Dict[str, Action] = {action.id: action for action in actions}
        self._groups: Dict[str, ColorGroup] = {
            group.id: group for group in color_groups
        }
        self._id_factory = id_factory
        self._fallback_color = fallback_color
        self._logger_name = logger_name

    @property
    def actions(self) -> tuple[Action, ...]:
        return tuple(self._actions.values())

    @property
    def color_groups(self) -> tuple[ColorGroup, ...]:
        return tuple(self._groups.values())

    def get_action(self, action_id: Optional[str]) -> Optional[Action]:
        if action_id is None:
            return None
        return self._actions.get(action_id)

    def add_action(self, name: str, color_group_id: str) -> Action:
        with span(
            "actions::add",
            logger_name=self._logger_name,
            component="actions",
            metadata={"color_group_id": color_group_id},
        ) as handle:
            action = Action(
                id=self._fresh_id(self._actions), name=name, color_group_id=color_group_id
            )
            self._actions[action.id] = action
            handle.add_metadata("action_id", action.id)
            return action

    def update_action(self, action_id: str, **changes: object) -> Optional[Action]:
        """Replace the given fields in place; unknown ids are ignored."""

        frozen = _IMMUTABLE_ACTION_FIELDS.intersection(changes)
        if frozen:
            raise ValueError(f"Action fields {sorted(frozen)} cannot be updated")
        with span(
            "actions::update",
            logger_name=self._logger_name,
            component="actions",
            metadata={"action_id": action_id, "fields": sorted(changes)},
        ) as handle:
            current = self._actions.get(action_id)
            if current is None:
                handle.cancel("unknown_action")
                return None
            updated = replace(current, **changes)
            self._actions[action_id] = updated
            return updated

    def delete_action(self, action_id: str) -> Optional[Action]:
        with span(
            "actions::delete",
            logger_name=self._logger_name,
            component="actions",
            metadata={"action_id": action_id},
        ) as handle:
            removed = self._actions.pop(action_id, None)
            if removed is None:
                handle.cancel("unknown_action")
                return None
            return replace(removed, key_mappings={})

    def sync_key_mappings(
        self, action_id: str, mappings: Mapping[SlotKey, BindingEntry]
    ) -> Optional[Action]:
        """Rebuild the mirrored ``key_mappings`` of one action from the store."""

        current = self._actions.get(action_id)
        if current is None:
            return None
        updated = replace(current, key_mappings=mappings)
        self._actions[action_id] = updated
        return updated

    def get_color_group(self, group_id: Optional[str]) -> Optional[ColorGroup]:
        if group_id is None:
            return None
        return self._groups.get(group_id)

    def default_color_group(self) -> Optional[ColorGroup]:
        for group in self._groups.values():
            if group.is_default:
                return group
        return next(iter(self._groups.values()), None)

    def add_color_group(self, name: str, color: Union[str, int]) -> ColorGroup:
        with span(
            "actions::add_color_group",
            logger_name=self._logger_name,
            component="actions",
        ):
            group = ColorGroup(
                id=self._fresh_id(self._groups), name=name, color=parse_color(color)
            )
            self._groups[group.id] = group
            return group

    def update_color_group(self, group_id: str, **changes: object) -> Optional[ColorGroup]:
        if "id" in changes:
            raise ValueError("Color group id cannot be updated")
        if "color" in changes:
            changes["color"] = parse_color(changes["color"])  # type: ignore[arg-type]
        with span(
            "actions::update_color_group",
            logger_name=self._logger_name,
            component="actions",
            metadata={"group_id": group_id},
        ) as handle:
            current = self._groups.get(group_id)
            if current is None:
                handle.cancel("unknown_group")
                return None
            updated = replace(current, **changes)
            self._groups[group_id] = updated
            return updated

    def delete_color_group(self, group_id: str) -> Optional[ColorGroup]:
        with span(
            "actions::delete_color_group",
            logger_name=self._logger_name,
            component="actions",
            metadata={"group_id": group_id},
        ) as handle:
            removed = self._groups.pop(group_id, None)
            if removed is None:
                handle.cancel("unknown_group")
                return None
            orphans = sum(
                1 for action in self._actions.values() if action.color_group_id == group_id
            )
            handle.add_metadata("orphaned_actions", orphans)
            return removed

    def get_action_color(self, action: Action) -> int:
        group = self._groups.get(action.color_group_id)
        return group.color if group else self._fallback_color

    def _fresh_id(self, taken: Mapping[str, object]) -> str:
        candidate = self._id_factory()
        while candidate in taken:
            candidate = self._id_factory()
        return candidate


__all__ = ["ActionRegistry", "IdFactory", "generate_id"]
