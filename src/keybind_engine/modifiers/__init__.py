"""Modifier key tracking and canonical modifier combinations."""

from .models import (
    MODIFIER_KEY_CODES,
    FocusChanged,
    InputEvent,
    KeyTransition,
    Modifier,
    ModifierCombination,
    ModifierPhysicalState,
    is_modifier_code,
)
from .tracker import ModifierBoundPredicate, ModifierTracker

__all__ = [
    "MODIFIER_KEY_CODES",
    "FocusChanged",
    "InputEvent",
    "KeyTransition",
    "Modifier",
    "ModifierBoundPredicate",
    "ModifierCombination",
    "ModifierPhysicalState",
    "ModifierTracker",
    "is_modifier_code",
]
