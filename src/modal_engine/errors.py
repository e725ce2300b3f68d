"""Error taxonomy shared by the validator, dispatcher, evaluator, and host seam."""

from __future__ import annotations

from typing import Sequence


class ModalEngineError(RuntimeError):
    """Base class for every error the engine reports."""


class ConfigValidationError(ModalEngineError):
    """A malformed entry found while compiling keybindings.

    These are collected rather than raised; ``path`` locates the entry inside
    the configuration tree (``/g/j``).
    """

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"{path or '/'}: {reason}")
        self.path = path or "/"
        self.reason = reason


class UndefinedBindingError(ModalEngineError):
    """A keystroke with no entry in the active keymap."""

    def __init__(self, keys: Sequence[str]) -> None:
        self.keys = tuple(keys)
        super().__init__(f"Undefined key binding: {' - '.join(self.keys)}")


class ExpressionEvaluationError(ModalEngineError):
    """A condition, argument, or repeat expression that failed to evaluate."""

    def __init__(self, source: str, reason: str) -> None:
        super().__init__(f"Evaluation error in {source!r}: {reason}")
        self.source = source
        self.reason = reason


class RepeatLimitError(ModalEngineError):
    """A repeat loop stopped at the configured iteration limit."""

    def __init__(self, command: str, limit: int) -> None:
        super().__init__(f"Repeat of '{command}' stopped after {limit} iterations")
        self.command = command
        self.limit = limit


class HostCommandError(ModalEngineError):
    """A command invocation that raised."""

    def __init__(self, command: str, reason: str) -> None:
        super().__init__(f"Command '{command}' failed: {reason}")
        self.command = command
        self.reason = reason


class SettingsError(ModalEngineError, ValueError):
    """Unreadable or malformed settings file."""

    def __init__(self, message: str, *, path: str | None = None) -> None:
        super().__init__(message)
        self.path = path


__all__ = [
    "ModalEngineError",
    "ConfigValidationError",
    "UndefinedBindingError",
    "ExpressionEvaluationError",
    "HostCommandError",
    "RepeatLimitError",
    "SettingsError",
]
