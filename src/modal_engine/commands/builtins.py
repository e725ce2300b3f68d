"""Handlers for the ``modal.*`` commands the engine runs itself."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Mapping, Optional

from modal_engine.host.protocol import Position, Selection

if TYPE_CHECKING:  # pragma: no cover
    from modal_engine.engine.key_engine import KeyEngine


@dataclass(frozen=True, slots=True)
class Bookmark:
    """A remembered cursor position and the file it was taken in."""

    file_name: Optional[str]
    position: Position


def search(engine: "KeyEngine", args: object) -> None:
    """Start a search, or feed a captured keystroke to the live one."""

    if isinstance(args, str):
        engine.search.advance(args)
        return
    if args is not None and not isinstance(args, Mapping):
        raise ValueError("search arguments must be an object")
    engine.search.start(args)


def accept_search(engine: "KeyEngine", args: object) -> None:
    del args
    engine.search.accept()


def cancel_search(engine: "KeyEngine", args: object) -> None:
    del args
    engine.search.cancel()


def delete_char_from_search(engine: "KeyEngine", args: object) -> None:
    del args
    engine.search.delete_char()


def next_match(engine: "KeyEngine", args: object) -> None:
    del args
    engine.search.next_match()


def previous_match(engine: "KeyEngine", args: object) -> None:
    del args
    engine.search.previous_match()


def enter_normal(engine: "KeyEngine", args: object) -> None:
    del args
    engine.search.cancel()
    cancel_selection(engine, None)
    engine.set_normal_mode(True)


def enter_insert(engine: "KeyEngine", args: object) -> None:
    del args
    engine.search.cancel()
    engine.set_normal_mode(False)


def toggle(engine: "KeyEngine", args: object) -> None:
    if engine.normal_mode:
        enter_insert(engine, args)
    else:
        enter_normal(engine, args)


def toggle_selection(engine: "KeyEngine", args: object) -> None:
    if engine.selecting:
        cancel_selection(engine, args)
    else:
        engine.set_selecting(True)


def cancel_selection(engine: "KeyEngine", args: object) -> None:
    del args
    engine.set_selecting(False)
    host = engine.host
    selections = host.selections
    if any(not selection.is_empty for selection in selections):
        host.replace_selections([selection.collapsed() for selection in selections])


def define_bookmark(engine: "KeyEngine", args: object) -> None:
    index = _bookmark_index(args)
    host = engine.host
    selections = host.selections
    if not selections:
        return
    engine.bookmarks[index] = Bookmark(host.file_name, selections[0].active)


def go_to_bookmark(engine: "KeyEngine", args: object) -> None:
    index = _bookmark_index(args)
    host = engine.host
    bookmark = engine.bookmarks.get(index)
    if bookmark is None:
        host.show_warning(f"Bookmark {index} is not defined")
        return
    if bookmark.file_name != host.file_name:
        host.show_warning(f"Bookmark {index} belongs to {bookmark.file_name}")
        return
    host.replace_selections([Selection.caret(bookmark.position)])
    host.reveal_selection()


def _bookmark_index(args: object) -> int:
    value = args.get("bookmark", 0) if isinstance(args, Mapping) else 0
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError("'bookmark' must be an integer")
    return value


__all__ = [
    "Bookmark",
    "search",
    "accept_search",
    "cancel_search",
    "delete_char_from_search",
    "next_match",
    "previous_match",
    "enter_normal",
    "enter_insert",
    "toggle",
    "toggle_selection",
    "cancel_selection",
    "define_bookmark",
    "go_to_bookmark",
]
