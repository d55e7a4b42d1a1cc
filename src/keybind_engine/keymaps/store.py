"""Binding store keyed by (input code, modifier combination)."""

from __future__ import annotations

from typing import Dict, Iterable, Iterator, Mapping, Optional

from keybind_engine.modifiers import Modifier, ModifierCombination
from keybind_engine.runtime.telemetry import span

from .models import BindingEntry, DeviceType, SlotKey


class BindingStore:
    """Owns every binding entry of one keybind set.

    Each slot holds at most one entry; an action may own any number of
    slots. ``_action_index`` mirrors the slot table by action id.
    """

    def __init__(
        self,
        entries: Iterable[BindingEntry] = (),
        *,
        logger_name: str | None = None,
    ) -> None:
        self._entries: Dict[SlotKey, BindingEntry] = {}
        self._action_index: Dict[str, set[SlotKey]] = {}
        self._logger_name = logger_name
        self._revision = 0
        for entry in entries:
            self._insert(entry)

    def revision(self) -> int:
        return self._revision

    def bind(
        self,
        input_code: str,
        device_type: DeviceType,
        display_name: str,
        modifier_combination: ModifierCombination,
        action_id: Optional[str],
    ) -> Mapping[SlotKey, BindingEntry]:
        """Assign a slot to ``action_id`` and return all slots it now owns.

        The previous occupant of the slot, if any, is evicted. Other slots of
        either action are left alone. Without an action this is a no-op.
        """

        combination = ModifierCombination.parse(modifier_combination)
        with span(
            "bindings::bind",
            logger_name=self._logger_name,
            component="bindings",
            metadata={"input_code": input_code, "combination": combination},
        ) as handle:
            if not action_id:
                handle.cancel("no_action")
                return {}

            entry = BindingEntry(
                input_code=input_code,
                device_type=device_type,
                display_name=display_name,
                modifier_combination=combination,
                action_id=action_id,
            )
            evicted = self._remove(entry.slot)
            if evicted is not None:
                handle.add_metadata("evicted_action", evicted.action_id)
            self._insert(entry)
            self._touch()
            return self.entries_for(action_id)

    def unbind(
        self, input_code: str, modifier_combination: ModifierCombination
    ) -> Optional[str]:
        """Clear one slot; returns the action that owned it."""

        slot = SlotKey(input_code, ModifierCombination.parse(modifier_combination))
        with span(
            "bindings::unbind",
            logger_name=self._logger_name,
            component="bindings",
            metadata={"input_code": input_code, "combination": slot.combination},
        ) as handle:
            removed = self._remove(slot)
            if removed is None:
                handle.cancel("empty_slot")
                return None
            self._touch()
            return removed.action_id

    def unbind_action(self, action_id: str) -> tuple[BindingEntry, ...]:
        with span(
            "bindings::unbind_action",
            logger_name=self._logger_name,
            component="bindings",
            metadata={"action_id": action_id},
        ) as handle:
            slots = tuple(self._action_index.get(action_id, ()))
            removed = tuple(
                entry for entry in (self._remove(slot) for slot in slots) if entry
            )
            handle.add_metadata("removed", len(removed))
            if removed:
                self._touch()
            return removed

    def lookup(
        self, input_code: str, modifier_combination: ModifierCombination
    ) -> Optional[BindingEntry]:
        return self._entries.get(
            SlotKey(input_code, ModifierCombination.parse(modifier_combination))
        )

    def entries_for(self, action_id: str) -> Mapping[SlotKey, BindingEntry]:
        return {
            slot: self._entries[slot]
            for slot in sorted(self._action_index.get(action_id, ()))
        }

    def action_ids(self) -> frozenset[str]:
        return frozenset(self._action_index)

    def is_input_bound(self, input_code: str) -> bool:
        return any(
            SlotKey(input_code, combination) in self._entries
            for combination in ModifierCombination
        )

    def is_modifier_key_bound(self, modifier: Modifier) -> bool:
        """True when either physical key of ``modifier`` owns any slot."""

        return any(self.is_input_bound(code) for code in modifier.key_codes)

    def snapshot(self) -> Mapping[SlotKey, BindingEntry]:
        return dict(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[BindingEntry]:
        return iter(tuple(self._entries.values()))

    def __contains__(self, slot: object) -> bool:
        return slot in self._entries

    def _insert(self, entry: BindingEntry) -> None:
        slot = entry.slot
        self._remove(slot)
        self._entries[slot] = entry
        self._action_index.setdefault(entry.action_id, set()).add(slot)

    def _remove(self, slot: SlotKey) -> Optional[BindingEntry]:
        entry = self._entries.pop(slot, None)
        if entry is None:
            return None
        owned = self._action_index.get(entry.action_id)
        if owned is not None:
            owned.discard(slot)
            if not owned:
                self._action_index.pop(entry.action_id, None)
        return entry

    def _touch(self) -> None:
        self._revision += 1


__all__ = ["BindingStore"]
