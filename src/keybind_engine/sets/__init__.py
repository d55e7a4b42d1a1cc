"""Keybind sets: independent binding namespaces and their registry."""

from .models import KeybindSet, RegistrySnapshot
from .registry import (
    DEFAULT_GROUP_NAME,
    DEFAULT_SET_NAME,
    Clock,
    KeybindSetRegistry,
    utc_now,
)

__all__ = [
    "DEFAULT_GROUP_NAME",
    "DEFAULT_SET_NAME",
    "Clock",
    "KeybindSet",
    "KeybindSetRegistry",
    "RegistrySnapshot",
    "utc_now",
]
