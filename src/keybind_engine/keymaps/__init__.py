"""Actions, color groups and the binding store of a keybind set."""

from .models import (
    DEFAULT_GROUP_COLOR,
    FALLBACK_COLOR,
    Action,
    BindingEntry,
    ColorGroup,
    DeviceType,
    SlotKey,
    format_color,
    parse_color,
)
from .actions import ActionRegistry, IdFactory, generate_id
from .store import BindingStore

__all__ = [
    "DEFAULT_GROUP_COLOR",
    "FALLBACK_COLOR",
    "Action",
    "ActionRegistry",
    "BindingEntry",
    "BindingStore",
    "ColorGroup",
    "DeviceType",
    "IdFactory",
    "SlotKey",
    "format_color",
    "generate_id",
    "parse_color",
]
