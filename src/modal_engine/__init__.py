"""Modal keystroke engine: keymap compilation, dispatch, and incremental search."""

__all__ = [
    "actions",
    "adapters",
    "commands",
    "config",
    "engine",
    "errors",
    "host",
    "keymaps",
    "runtime",
    "search",
]

__version__ = "0.1.0"
