"""Textual host: key/focus translation and a minimal status app."""

from .controller import KeybindUIHooks, TextualKeybindAdapter, translate_key

__all__ = ["KeybindUIHooks", "TextualKeybindAdapter", "translate_key"]
