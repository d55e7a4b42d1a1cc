"""State machine deriving modifier combinations from raw key transitions."""

from __future__ import annotations

from typing import Callable, Optional

from keybind_engine.runtime.observable import ObservableValue
from keybind_engine.runtime.telemetry import record_event

from .models import (
    FocusChanged,
    InputEvent,
    KeyTransition,
    Modifier,
    ModifierCombination,
    ModifierPhysicalState,
    is_modifier_code,
)

ModifierBoundPredicate = Callable[[Modifier], bool]


class ModifierTracker:
    """Tracks the six physical modifier keys and publishes the derived combination.

    The physical state is the only source of truth. Every transition builds a
    new ``ModifierPhysicalState`` and recomputes the combination from it.
    Focus changes in either direction reset to "nothing held" because the
    real key state cannot be observed across them.
    """

    def __init__(self, *, logger_name: str | None = None) -> None:
        self._logger_name = logger_name
        self.state: ObservableValue[ModifierPhysicalState] = ObservableValue(
            ModifierPhysicalState()
        )
        self.combination: ObservableValue[ModifierCombination] = ObservableValue(
            ModifierCombination.NONE
        )

    @property
    def physical_state(self) -> ModifierPhysicalState:
        return self.state.value

    @property
    def raw_combination(self) -> ModifierCombination:
        return self.combination.value

    def handle(self, event: InputEvent) -> bool:
        """Apply an input event; returns ``True`` when modifier state was touched."""

        if isinstance(event, FocusChanged):
            self.focus_changed(event.focused)
            return True
        if isinstance(event, KeyTransition):
            return self.key_transition(event.code, event.pressed)
        raise TypeError(f"Unsupported input event {event!r}")

    def key_transition(self, code: str, pressed: bool) -> bool:
        if not is_modifier_code(code):
            return False
        self._apply(self.physical_state.with_key(code, pressed))
        return True

    def focus_changed(self, focused: bool) -> None:
        record_event(
            "modifiers.focus_reset",
            level="debug",
            data={"focused": focused},
            logger_name=self._logger_name,
        )
        self.reset()

    def reset(self) -> None:
        self._apply(ModifierPhysicalState())

    def effective_combination(
        self, is_modifier_key_bound: Optional[ModifierBoundPredicate] = None
    ) -> ModifierCombination:
        """Combination used for resolving other keys.

        A modifier whose own physical key carries a binding does not
        contribute, so that key can act as a plain input without shifting
        every other lookup into its modifier layer.
        """

        state = self.physical_state
        if is_modifier_key_bound is None:
            return state.combination

        contributing = {
            modifier
            for modifier in state.combination.modifiers
            if not is_modifier_key_bound(modifier)
        }
        return ModifierCombination.from_flags(
            ctrl=Modifier.CTRL in contributing,
            alt=Modifier.ALT in contributing,
            shift=Modifier.SHIFT in contributing,
        )

    def _apply(self, new_state: ModifierPhysicalState) -> None:
        self.state.set(new_state)
        self.combination.set_if_changed(new_state.combination)


__all__ = ["ModifierTracker", "ModifierBoundPredicate"]
