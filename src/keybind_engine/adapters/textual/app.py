"""Executable Textual app that resolves key presses against the active keybind set."""

from __future__ import annotations

import argparse
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Mapping, Optional, Sequence, Tuple

from textual import events
from textual.app import App, ComposeResult
from textual.containers import Vertical
from textual.widgets import Footer, Header, Static

from keybind_engine.config import EngineSettings
from keybind_engine.engine import KeybindEngine
from keybind_engine.keymaps import Action, BindingEntry, SlotKey
from keybind_engine.modifiers import ModifierCombination
from keybind_engine.runtime import telemetry
from keybind_engine.sets import KeybindSet
from keybind_engine.storage import MemoryKeyValueStore

from .controller import KeybindUIHooks, TextualKeybindAdapter


@dataclass
class UIState:
    bindings_text: str = ""
    status_text: str = ""
    combination: ModifierCombination = ModifierCombination.NONE
    set_names: Tuple[str, ...] = ()


class KeybindEngineApp(App[None]):
    """Shows the active bindings and which action each key press resolves to."""

    CSS = """
	Screen {
		layout: vertical;
	}

	#bindings-view {
		height: 1fr;
		border: round $accent;
		padding: 1 1;
		overflow: auto;
	}

	#status-line {
		height: 1;
		background: $surface-darken-1;
		padding: 0 1;
	}
	"""

    BINDINGS = [
        ("ctrl+q", "quit", "Quit"),
    ]

    def __init__(self, engine: KeybindEngine) -> None:
        super().__init__()
        self.engine = engine
        self.adapter: TextualKeybindAdapter | None = None
        self._state = UIState()
        self._bindings_widget: Static | None = None
        self._status_widget: Static | None = None

    def compose(self) -> ComposeResult:
        yield Header(show_clock=True)
        with Vertical(id="bindings-area"):
            self._bindings_widget = Static("", id="bindings-view")
            yield self._bindings_widget
        self._status_widget = Static("", id="status-line")
        yield self._status_widget
        yield Footer()

    def on_mount(self) -> None:
        hooks = KeybindUIHooks(
            update_bindings=self._update_bindings,
            update_combination=self._update_combination,
            update_sets=self._update_sets,
            update_status=self._update_status,
        )
        self.adapter = TextualKeybindAdapter(self.engine, hooks)

    def on_unmount(self) -> None:
        if self.adapter:
            self.adapter.close()
            self.adapter = None

    def on_key(self, event: events.Key) -> None:
        if not self.adapter or event.key == "ctrl+q":
            return
        self.adapter.handle_textual_key(event.key)
        event.stop()

    def on_app_blur(self, _event: events.AppBlur) -> None:
        if self.adapter:
            self.adapter.handle_focus(False)

    def on_app_focus(self, _event: events.AppFocus) -> None:
        if self.adapter:
            self.adapter.handle_focus(True)

    def _update_bindings(self, bindings: Mapping[SlotKey, BindingEntry]) -> None:
        lines = []
        for slot, entry in sorted(bindings.items()):
            action: Optional[Action] = self.engine.get_action(entry.action_id)
            label = action.name if action else entry.action_id
            lines.append(f"{entry.display_name:<12} [{slot.combination.value}] -> {label}")
        self._state.bindings_text = "\n".join(lines) or "(no bindings)"
        if self._bindings_widget:
            self._bindings_widget.update(self._state.bindings_text)

    def _update_combination(self, combination: ModifierCombination) -> None:
        self._state.combination = combination
        self.sub_title = f"modifiers: {combination.value}"

    def _update_sets(self, sets: Tuple[KeybindSet, ...]) -> None:
        self._state.set_names = tuple(item.name for item in sets)
        selected = self.engine.registry.selected_set
        self.title = f"keybind set: {selected.name}" if selected else "keybind sets"

    def _update_status(self, status: str) -> None:
        self._state.status_text = status
        if self._status_widget:
            self._status_widget.update(status)


def _parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Resolve key presses against saved keybind sets."
    )
    parser.add_argument(
        "--storage",
        type=Path,
        default=None,
        help="Registry file (default: KEYBIND_ENGINE_STORAGE_PATH or ~/.keybind_engine)",
    )
    parser.add_argument(
        "--memory",
        action="store_true",
        help="Keep everything in memory; nothing is written to disk",
    )
    parser.add_argument(
        "--set",
        dest="set_name",
        default=None,
        help="Select the keybind set with this name on startup",
    )
    parser.add_argument(
        "--log-preset",
        choices=("development", "production", "performance"),
        default=None,
        help="telelog preset to use instead of the environment configuration",
    )
    return parser.parse_args(argv)


def build_engine(args: argparse.Namespace) -> KeybindEngine:
    settings = EngineSettings.from_env()
    if args.storage is not None:
        settings = replace(settings, storage_path=args.storage)
    store = MemoryKeyValueStore() if args.memory else None
    engine = KeybindEngine.open(settings, store=store)
    if args.set_name:
        match = next(
            (item for item in engine.registry.sets if item.name == args.set_name), None
        )
        if match is not None:
            engine.select_set(match.id)
    return engine


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = _parse_args(argv)
    if args.log_preset:
        telemetry.configure(preset=args.log_preset)
    KeybindEngineApp(build_engine(args)).run()


if __name__ == "__main__":  # pragma: no cover - manual demo
    main()
