"""Engine settings loaded from a JSON file and ``MODAL_ENGINE_*`` variables."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from modal_engine.errors import SettingsError

ENV_PREFIX = "MODAL_ENGINE_"
DEFAULT_MAX_REPEAT = 10_000


@dataclass(slots=True)
class EngineSettings:
    """User settings consumed by ``KeyEngine``.

    ``keybindings`` is the raw tree handed to the keymap compiler; ``None``
    leaves the current keymap untouched.
    """

    keybindings: Optional[Mapping[str, object]] = None
    start_in_normal_mode: bool = True
    max_repeat: int = DEFAULT_MAX_REPEAT

    @classmethod
    def from_mapping(cls, data: Mapping[str, object]) -> "EngineSettings":
        keybindings = data.get("keybindings")
        if keybindings is not None and not isinstance(keybindings, Mapping):
            raise SettingsError("'keybindings' must be an object")

        start_normal = data.get("startInNormalMode", True)
        if not isinstance(start_normal, bool):
            raise SettingsError("'startInNormalMode' must be a boolean")

        max_repeat = data.get("maxRepeat", DEFAULT_MAX_REPEAT)
        if isinstance(max_repeat, bool) or not isinstance(max_repeat, int) or max_repeat < 1:
            raise SettingsError("'maxRepeat' must be a positive integer")

        return cls(
            keybindings=keybindings,
            start_in_normal_mode=start_normal,
            max_repeat=max_repeat,
        )


def _env_bool(name: str) -> Optional[bool]:
    raw = os.getenv(f"{ENV_PREFIX}{name}")
    if raw is None:
        return None
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str) -> Optional[int]:
    raw = os.getenv(f"{ENV_PREFIX}{name}")
    if raw is None:
        return None
    try:
        return int(raw)
    except ValueError as exc:
        raise SettingsError(f"{ENV_PREFIX}{name} must be an integer") from exc


def read_settings_file(path: Path) -> Mapping[str, object]:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise SettingsError(f"Cannot read settings: {exc}", path=str(path)) from exc
    except json.JSONDecodeError as exc:
        raise SettingsError(
            f"Malformed settings at line {exc.lineno}: {exc.msg}", path=str(path)
        ) from exc
    if not isinstance(data, dict):
        raise SettingsError("Settings must be a JSON object", path=str(path))
    return data


def load_settings(path: str | Path | None = None) -> EngineSettings:
    """Build settings from ``path`` (or ``MODAL_ENGINE_CONFIG``) plus env overrides.

    Without a file the defaults are used.
    """

    source = path if path is not None else os.getenv(f"{ENV_PREFIX}CONFIG")
    data: Mapping[str, object] = read_settings_file(Path(source)) if source else {}
    settings = EngineSettings.from_mapping(data)

    start_normal = _env_bool("START_IN_NORMAL_MODE")
    if start_normal is not None:
        settings.start_in_normal_mode = start_normal
    max_repeat = _env_int("MAX_REPEAT")
    if max_repeat is not None:
        if max_repeat < 1:
            raise SettingsError(f"{ENV_PREFIX}MAX_REPEAT must be positive")
        settings.max_repeat = max_repeat
    return settings


__all__ = ["EngineSettings", "load_settings", "read_settings_file"]
