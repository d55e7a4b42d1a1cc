"""Environment-driven settings for building an engine."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from keybind_engine.keymaps import DEFAULT_GROUP_COLOR, FALLBACK_COLOR, parse_color
from keybind_engine.sets import DEFAULT_GROUP_NAME, DEFAULT_SET_NAME
from keybind_engine.storage import DEFAULT_DOCUMENT_KEY

ENV_PREFIX = "KEYBIND_ENGINE_"
DEFAULT_STORAGE_PATH = Path("~/.keybind_engine/registry.json")


def _env_color(env: Mapping[str, str], name: str, fallback: int) -> int:
    raw = env.get(f"{ENV_PREFIX}{name}")
    if raw is None:
        return fallback
    try:
        return parse_color(raw)
    except ValueError:
        return fallback


@dataclass(frozen=True)
class EngineSettings:
    storage_path: Path = DEFAULT_STORAGE_PATH
    document_key: str = DEFAULT_DOCUMENT_KEY
    default_set_name: str = DEFAULT_SET_NAME
    default_group_name: str = DEFAULT_GROUP_NAME
    default_group_color: int = DEFAULT_GROUP_COLOR
    fallback_color: int = FALLBACK_COLOR

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "EngineSettings":
        source = os.environ if env is None else env

        def text(name: str, default: str) -> str:
            value = source.get(f"{ENV_PREFIX}{name}", "").strip()
            return value or default

        return cls(
            storage_path=Path(text("STORAGE_PATH", str(DEFAULT_STORAGE_PATH))),
            document_key=text("DOCUMENT_KEY", DEFAULT_DOCUMENT_KEY),
            default_set_name=text("DEFAULT_SET_NAME", DEFAULT_SET_NAME),
            default_group_name=text("DEFAULT_GROUP_NAME", DEFAULT_GROUP_NAME),
            default_group_color=_env_color(
                source, "DEFAULT_GROUP_COLOR", DEFAULT_GROUP_COLOR
            ),
            fallback_color=_env_color(source, "FALLBACK_COLOR", FALLBACK_COLOR),
        )


__all__ = ["DEFAULT_STORAGE_PATH", "ENV_PREFIX", "EngineSettings"]
