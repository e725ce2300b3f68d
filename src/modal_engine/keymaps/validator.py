"""Compile a raw keybinding tree into resolved actions and keymaps."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Tuple

from modal_engine.errors import ConfigValidationError
from modal_engine.runtime.telemetry import span

from .models import (
    Action,
    Command,
    CommandSequence,
    Conditional,
    Keymap,
    Parameterized,
)

RESERVED_KEYS = frozenset({"id", "help"})
PARAMETERIZED_KEYS = frozenset({"command", "args", "repeat"})


def expand_key_pattern(pattern: str) -> Tuple[str, ...]:
    """Expand ``a``, ``a-z`` or ``a,b,d-f`` into individual characters.

    A single character is always literal, so ``,`` and ``-`` can be bound
    directly. Raises ``ValueError`` for anything else that is not a list of
    single characters and ``x-y`` ranges.
    """

    if len(pattern) == 1:
        return (pattern,)
    if not pattern:
        raise ValueError('Invalid key binding: ""')
    # A whole-pattern range may use "," as an endpoint, e.g. ",-.".
    if len(pattern) == 3 and pattern[1] == "-":
        return _expand_range(pattern)

    keys: List[str] = []
    for part in pattern.split(","):
        if len(part) == 1:
            keys.append(part)
        elif len(part) == 3 and part[1] == "-":
            keys.extend(_expand_range(part))
        else:
            raise ValueError(f'Invalid key binding: "{pattern}"')
    return tuple(dict.fromkeys(keys))


def _expand_range(part: str) -> Tuple[str, ...]:
    first, last = ord(part[0]), ord(part[2])
    if first > last:
        raise ValueError(f'Invalid key range: "{part}"')
    return tuple(chr(code) for code in range(first, last + 1))


@dataclass(frozen=True, slots=True)
class CompileResult:
    """Outcome of compiling a keybinding tree.

    ``keymap`` is only set when there were no errors.
    """

    keymap: Optional[Keymap]
    errors: Tuple[ConfigValidationError, ...] = ()

    @property
    def ok(self) -> bool:
        return not self.errors

    @property
    def error_count(self) -> int:
        return len(self.errors)


class KeymapCompiler:
    """Depth-first validator that resolves numeric keymap references."""

    def __init__(self, *, logger_name: str | None = None) -> None:
        self._logger_name = logger_name
        self._keymaps_by_id: Dict[int, Keymap] = {}
        self._errors: List[ConfigValidationError] = []

    def compile(self, raw: object) -> CompileResult:
        self._keymaps_by_id = {}
        self._errors = []
        with span(
            "keymaps::compile",
            logger_name=self._logger_name,
            component="keymaps",
        ) as handle:
            root: Optional[Keymap] = None
            if isinstance(raw, Mapping) and not _is_command_shape(raw):
                root = self._compile_keymap(raw, "")
            else:
                self._error("", "Invalid configuration structure")

            handle.add_metadata("errors", len(self._errors))
            handle.add_metadata("keymap_ids", sorted(self._keymaps_by_id))
            errors = tuple(self._errors)
            return CompileResult(keymap=None if errors else root, errors=errors)

    def _error(self, path: str, reason: str) -> None:
        self._errors.append(ConfigValidationError(path, reason))

    def _compile_keymap(self, node: Mapping[object, object], path: str) -> Keymap:
        keymap = Keymap()

        keymap_id = node.get("id")
        if keymap_id is not None:
            if isinstance(keymap_id, int) and not isinstance(keymap_id, bool):
                keymap.id = keymap_id
                self._keymaps_by_id[keymap_id] = keymap
            else:
                self._error(f"{path}/id", f"Keymap id must be an integer: {keymap_id!r}")

        help_text = node.get("help")
        if help_text is not None:
            if isinstance(help_text, str):
                keymap.help = help_text
            else:
                self._error(f"{path}/help", "Keymap help must be a string")

        for key, value in node.items():
            if key in RESERVED_KEYS:
                continue
            entry_path = f"{path}/{key}"
            if not isinstance(key, str):
                self._error(entry_path, f"Invalid key binding: {key!r}")
                continue
            try:
                keys = expand_key_pattern(key)
            except ValueError as exc:
                self._error(entry_path, str(exc))
                continue
            target = self._compile_action(value, entry_path)
            if target is None:
                continue
            for char in keys:
                keymap.bind(char, target)
        return keymap

    def _compile_action(self, node: object, path: str) -> Optional[Action]:
        if isinstance(node, bool):
            self._error(path, f"Invalid action: {node!r}")
            return None
        if isinstance(node, int):
            target = self._keymaps_by_id.get(node)
            if target is None:
                self._error(path, f"Undefined keymap id: {node}")
            return target
        if isinstance(node, str):
            if not node:
                self._error(path, "Command name cannot be empty")
                return None
            return Command(node)
        if isinstance(node, (list, tuple)):
            return self._compile_sequence(node, path)
        if isinstance(node, Mapping):
            if "condition" in node:
                return self._compile_conditional(node, path)
            if "command" in node:
                return self._compile_parameterized(node, path)
            return self._compile_keymap(node, path)
        self._error(path, f"Invalid action: {node!r}")
        return None

    def _compile_sequence(self, node: object, path: str) -> Optional[Action]:
        actions: List[Action] = []
        failed = False
        for index, item in enumerate(node):  # type: ignore[arg-type]
            action = self._compile_action(item, f"{path}[{index}]")
            if action is None:
                failed = True
            else:
                actions.append(action)
        if failed:
            return None
        return CommandSequence(tuple(actions))

    def _compile_conditional(
        self, node: Mapping[object, object], path: str
    ) -> Optional[Action]:
        condition = node.get("condition")
        if not isinstance(condition, str) or not condition.strip():
            self._error(f"{path}/condition", "Condition must be a non-empty string")
            return None
        branches: Dict[str, Action] = {}
        failed = False
        for key, value in node.items():
            if key == "condition":
                continue
            branch = self._compile_action(value, f"{path}/{key}")
            if branch is None:
                failed = True
            else:
                branches[str(key)] = branch
        if failed:
            return None
        return Conditional(condition=condition, branches=branches)

    def _compile_parameterized(
        self, node: Mapping[object, object], path: str
    ) -> Optional[Action]:
        command = node.get("command")
        if not isinstance(command, str) or not command:
            self._error(f"{path}/command", "Command must be a non-empty string")
            return None

        unknown = [str(key) for key in node if key not in PARAMETERIZED_KEYS]
        if unknown:
            self._error(path, f"Unknown command properties: {', '.join(unknown)}")
            return None

        args = node.get("args")
        if args is not None and not isinstance(args, (str, Mapping, list, tuple)):
            self._error(f"{path}/args", "Arguments must be an object, array or string")
            return None
        if isinstance(args, tuple):
            args = list(args)

        repeat = node.get("repeat")
        if repeat is not None and (
            isinstance(repeat, bool) or not isinstance(repeat, (int, str))
        ):
            self._error(f"{path}/repeat", "Repeat must be an integer or a string")
            return None

        return Parameterized(command=command, args=args, repeat=repeat)


def _is_command_shape(node: Mapping[object, object]) -> bool:
    return "condition" in node or "command" in node


def compile_keymap(raw: object, *, logger_name: str | None = None) -> CompileResult:
    """Compile ``raw`` with a fresh ``KeymapCompiler``."""

    return KeymapCompiler(logger_name=logger_name).compile(raw)


__all__ = [
    "CompileResult",
    "KeymapCompiler",
    "compile_keymap",
    "expand_key_pattern",
]
