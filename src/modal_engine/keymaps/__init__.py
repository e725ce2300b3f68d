"""Action grammar and keybinding compiler."""

from .models import (
    Action,
    Command,
    CommandSequence,
    Conditional,
    Keymap,
    Parameterized,
)
from .validator import CompileResult, KeymapCompiler, compile_keymap, expand_key_pattern

__all__ = [
    "Action",
    "Command",
    "CommandSequence",
    "Conditional",
    "Keymap",
    "Parameterized",
    "CompileResult",
    "KeymapCompiler",
    "compile_keymap",
    "expand_key_pattern",
]
