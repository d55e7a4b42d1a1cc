from __future__ import annotations

from pathlib import Path

from keybind_engine.config import DEFAULT_STORAGE_PATH, EngineSettings
from keybind_engine.keymaps import DEFAULT_GROUP_COLOR, FALLBACK_COLOR
from keybind_engine.runtime.observable import ObservableValue


def test_settings_default_without_environment() -> None:
    settings = EngineSettings.from_env({})

    assert settings == EngineSettings()
    assert settings.storage_path == DEFAULT_STORAGE_PATH
    assert settings.default_group_color == DEFAULT_GROUP_COLOR
    assert settings.fallback_color == FALLBACK_COLOR


def test_settings_read_prefixed_variables() -> None:
    settings = EngineSettings.from_env(
        {
            "KEYBIND_ENGINE_STORAGE_PATH": "/tmp/keys.json",
            "KEYBIND_ENGINE_DEFAULT_SET_NAME": "Main",
            "KEYBIND_ENGINE_DEFAULT_GROUP_COLOR": "#00ff00",
            "KEYBIND_ENGINE_FALLBACK_COLOR": "not-a-color",
        }
    )

    assert settings.storage_path == Path("/tmp/keys.json")
    assert settings.default_set_name == "Main"
    assert settings.default_group_color == 0x00FF00
    assert settings.fallback_color == FALLBACK_COLOR


def test_observable_replays_latest_value_and_unsubscribes() -> None:
    channel = ObservableValue(1)
    seen: list[int] = []

    unsubscribe = channel.subscribe(seen.append)
    assert channel.set_if_changed(1) is False
    channel.set(2)
    unsubscribe()
    channel.set(3)

    assert seen == [1, 2]
    assert channel.value == 3
