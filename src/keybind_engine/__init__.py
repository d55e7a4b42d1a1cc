"""Keybinding resolution engine: modifier tracking, binding stores, keybind sets."""

__all__ = [
    "adapters",
    "config",
    "engine",
    "keymaps",
    "modifiers",
    "runtime",
    "sets",
    "storage",
]

__version__ = "0.1.0"
