"""Built-in ``modal.*`` commands registered with every engine by default."""

from __future__ import annotations

from typing import Sequence

from . import builtins
from .registry import CommandRef, CommandRegistry

DEFAULT_COMMANDS: tuple[CommandRef, ...] = (
    CommandRef(
        id="modal.search",
        handler=builtins.search,
        description="Start an incremental search",
    ),
    CommandRef(
        id="modal.acceptSearch",
        handler=builtins.accept_search,
        description="Accept the running search",
    ),
    CommandRef(
        id="modal.cancelSearch",
        handler=builtins.cancel_search,
        description="Cancel the running search",
    ),
    CommandRef(
        id="modal.deleteCharFromSearch",
        handler=builtins.delete_char_from_search,
        description="Remove the last character of the search query",
    ),
    CommandRef(
        id="modal.nextMatch",
        handler=builtins.next_match,
        description="Jump to the next match of the last search",
    ),
    CommandRef(
        id="modal.previousMatch",
        handler=builtins.previous_match,
        description="Jump to the previous match of the last search",
    ),
    CommandRef(
        id="modal.toggle",
        handler=builtins.toggle,
        description="Switch between normal and insert mode",
    ),
    CommandRef(
        id="modal.enterNormal",
        handler=builtins.enter_normal,
        description="Enter normal mode",
    ),
    CommandRef(
        id="modal.enterInsert",
        handler=builtins.enter_insert,
        description="Enter insert mode",
    ),
    CommandRef(
        id="modal.toggleSelection",
        handler=builtins.toggle_selection,
        description="Toggle selection mode",
    ),
    CommandRef(
        id="modal.cancelSelection",
        handler=builtins.cancel_selection,
        description="Leave selection mode and collapse selections",
    ),
    CommandRef(
        id="modal.defineBookmark",
        handler=builtins.define_bookmark,
        description="Remember the cursor position",
    ),
    CommandRef(
        id="modal.goToBookmark",
        handler=builtins.go_to_bookmark,
        description="Move the cursor to a remembered position",
    ),
)


def load_default_commands(
    registry: CommandRegistry,
    *,
    replace: bool = False,
    include: Sequence[str] | None = None,
    exclude: Sequence[str] | None = None,
) -> CommandRegistry:
    """Register the built-in commands, optionally filtered by id."""

    allowed = set(include) if include else None
    excluded = set(exclude or ())
    for command in DEFAULT_COMMANDS:
        if allowed is not None and command.id not in allowed:
            continue
        if command.id in excluded:
            continue
        registry.register(command, replace=replace)
    return registry


__all__ = ["DEFAULT_COMMANDS", "load_default_commands"]
