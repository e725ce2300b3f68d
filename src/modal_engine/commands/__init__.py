"""Engine-handled commands and their registry."""

from .builtins import Bookmark
from .defaults import DEFAULT_COMMANDS, load_default_commands
from .registry import CommandHandler, CommandRef, CommandRegistry

__all__ = [
    "Bookmark",
    "CommandHandler",
    "CommandRef",
    "CommandRegistry",
    "DEFAULT_COMMANDS",
    "load_default_commands",
]
