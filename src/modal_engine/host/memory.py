"""In-process ``EditorHost`` used by tests and headless integrations."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from modal_engine.errors import HostCommandError

from .document import TextDocument
from .protocol import Position, Selection

CommandHandler = Callable[["InMemoryEditor", object], object]


@dataclass(frozen=True, slots=True)
class Notification:
    level: str
    message: str


class InMemoryEditor:
    """Multi-cursor editor over a ``TextDocument``.

    A handful of cursor commands are built in (``cursorLeft``,
    ``cursorRight``, ``cursorUp``, ``cursorDown``, ``cursorHome``,
    ``cursorEnd``, ``type``, ``deleteLeft``, ``cancelSelection``); tests add
    more with ``register_command``. Every invocation is recorded in
    ``calls`` and every notice in ``notifications``.
    """

    def __init__(
        self,
        text: str = "",
        *,
        file_name: Optional[str] = "untitled",
        selections: Optional[Sequence[Selection]] = None,
    ) -> None:
        self.document = TextDocument.from_text(text)
        self._file_name = file_name
        self._selections: List[Selection] = list(
            selections or [Selection.caret(Position(0, 0))]
        )
        self._commands: Dict[str, CommandHandler] = dict(_BUILTIN_COMMANDS)
        self.calls: List[Tuple[str, object]] = []
        self.notifications: List[Notification] = []
        self.reveal_count = 0

    # -- EditorHost -------------------------------------------------------

    @property
    def file_name(self) -> Optional[str]:
        return self._file_name

    @property
    def selections(self) -> Sequence[Selection]:
        return tuple(self._selections)

    def replace_selections(self, selections: Sequence[Selection]) -> None:
        if not selections:
            raise ValueError("at least one selection is required")
        self._selections = [
            Selection(self.document.clamp(sel.anchor), self.document.clamp(sel.active))
            for sel in selections
        ]

    def reveal_selection(self) -> None:
        self.reveal_count += 1

    def get_text(self) -> str:
        return self.document.text

    def offset_at(self, position: Position) -> int:
        return self.document.offset_at(position)

    def position_at(self, offset: int) -> Position:
        return self.document.position_at(offset)

    def line_at(self, line: int) -> str:
        return self.document.get_line(line)

    def execute_command(self, name: str, args: object = None) -> object:
        self.calls.append((name, args))
        handler = self._commands.get(name)
        if handler is None:
            raise HostCommandError(name, "command not found")
        return handler(self, args)

    def show_info(self, message: str) -> None:
        self.notifications.append(Notification("info", message))

    def show_warning(self, message: str) -> None:
        self.notifications.append(Notification("warning", message))

    def show_error(self, message: str) -> None:
        self.notifications.append(Notification("error", message))

    # -- helpers ----------------------------------------------------------

    def register_command(self, name: str, handler: CommandHandler) -> None:
        self._commands[name] = handler

    def set_cursor(self, offset: int) -> None:
        self._selections = [Selection.caret(self.position_at(offset))]

    def selection_offsets(self) -> List[Tuple[int, int]]:
        """``(start, end)`` offsets of every selection, in order."""

        return [
            (self.offset_at(sel.start), self.offset_at(sel.end))
            for sel in self._selections
        ]

    def calls_to(self, name: str) -> List[object]:
        return [args for called, args in self.calls if called == name]

    def messages(self, level: str) -> List[str]:
        return [note.message for note in self.notifications if note.level == level]

    def move_cursors(self, delta: int, *, select: bool = False) -> None:
        moved = []
        for sel in self._selections:
            offset = self.offset_at(sel.active) + delta
            target = self.position_at(offset)
            moved.append(Selection(sel.anchor if select else target, target))
        self._selections = moved

    def move_lines(self, delta: int, *, select: bool = False) -> None:
        moved = []
        for sel in self._selections:
            target = self.document.clamp(
                Position(sel.active.line + delta, sel.active.character)
            )
            moved.append(Selection(sel.anchor if select else target, target))
        self._selections = moved

    def insert(self, text: str) -> None:
        # Edits apply back to front so earlier offsets stay valid.
        spans = sorted(self.selection_offsets(), reverse=True)
        for start, end in spans:
            self.document = self.document.replace(start, end, text)
        shift = 0
        carets = []
        for start, end in sorted(spans):
            carets.append(Selection.caret(self.position_at(start + shift + len(text))))
            shift += len(text) - (end - start)
        self._selections = carets


def _option(args: object, key: str, default: object = None) -> object:
    if isinstance(args, Mapping):
        return args.get(key, default)
    return default


def _cursor_left(editor: InMemoryEditor, args: object) -> None:
    editor.move_cursors(-1, select=bool(_option(args, "select", False)))


def _cursor_right(editor: InMemoryEditor, args: object) -> None:
    editor.move_cursors(1, select=bool(_option(args, "select", False)))


def _cursor_up(editor: InMemoryEditor, args: object) -> None:
    editor.move_lines(-1, select=bool(_option(args, "select", False)))


def _cursor_down(editor: InMemoryEditor, args: object) -> None:
    editor.move_lines(1, select=bool(_option(args, "select", False)))


def _cursor_home(editor: InMemoryEditor, args: object) -> None:
    del args
    editor.replace_selections(
        [Selection.caret(Position(sel.active.line, 0)) for sel in editor.selections]
    )


def _cursor_end(editor: InMemoryEditor, args: object) -> None:
    del args
    editor.replace_selections(
        [
            Selection.caret(
                Position(sel.active.line, len(editor.line_at(sel.active.line)))
            )
            for sel in editor.selections
        ]
    )


def _type(editor: InMemoryEditor, args: object) -> None:
    text = _option(args, "text")
    if not isinstance(text, str):
        raise HostCommandError("type", "missing 'text' argument")
    editor.insert(text)


def _delete_left(editor: InMemoryEditor, args: object) -> None:
    del args
    if all(sel.is_empty for sel in editor.selections):
        editor.move_cursors(-1, select=True)
    editor.insert("")


def _cancel_selection(editor: InMemoryEditor, args: object) -> None:
    del args
    editor.replace_selections([sel.collapsed() for sel in editor.selections])


_BUILTIN_COMMANDS: Dict[str, CommandHandler] = {
    "cursorLeft": _cursor_left,
    "cursorRight": _cursor_right,
    "cursorUp": _cursor_up,
    "cursorDown": _cursor_down,
    "cursorHome": _cursor_home,
    "cursorEnd": _cursor_end,
    "type": _type,
    "deleteLeft": _delete_left,
    "cancelSelection": _cancel_selection,
}


__all__ = ["InMemoryEditor", "Notification", "CommandHandler"]
