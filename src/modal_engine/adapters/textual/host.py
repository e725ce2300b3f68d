"""``EditorHost`` implementation backed by a Textual ``TextArea``."""

from __future__ import annotations

import re
from typing import Callable, Mapping, Optional, Sequence

try:  # pragma: no cover - exercised only with textual installed
    from textual.widgets import TextArea
    from textual.widgets.text_area import Selection as TextSelection
except ModuleNotFoundError as exc:  # pragma: no cover - friendly error for missing dep
    raise RuntimeError(
        "Install the 'textual' package to use modal_engine.adapters.textual.host"
    ) from exc

from modal_engine.errors import HostCommandError
from modal_engine.host.document import TextDocument
from modal_engine.host.protocol import Position, Selection

Notify = Callable[[str, str], None]

# Editor command names that differ from the TextArea action they map to.
_ACTION_ALIASES = {
    "cursorHome": "cursor_line_start",
    "cursorEnd": "cursor_line_end",
}

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def action_name(command: str) -> str:
    """``cursorWordLeft`` -> ``cursor_word_left``."""

    alias = _ACTION_ALIASES.get(command)
    if alias is not None:
        return alias
    return _CAMEL_BOUNDARY.sub("_", command).lower()


class TextAreaHost:
    """Single-cursor host over a ``TextArea``.

    Host commands resolve to the widget's ``action_*`` methods (mapping
    arguments become keyword arguments), plus ``type`` and
    ``cancelSelection``. Notifications go through ``notify(message,
    severity)`` using Textual's severity names.
    """

    def __init__(
        self,
        text_area: TextArea,
        *,
        file_name: Optional[str] = None,
        notify: Notify | None = None,
    ) -> None:
        self.text_area = text_area
        self._file_name = file_name
        self._notify = notify

    @property
    def file_name(self) -> Optional[str]:
        return self._file_name

    @property
    def selections(self) -> Sequence[Selection]:
        current = self.text_area.selection
        return (Selection(Position(*current.start), Position(*current.end)),)

    def replace_selections(self, selections: Sequence[Selection]) -> None:
        if not selections:
            raise ValueError("at least one selection is required")
        primary = selections[0]
        document = self._document()
        anchor = document.clamp(primary.anchor)
        active = document.clamp(primary.active)
        self.text_area.selection = TextSelection(
            (anchor.line, anchor.character), (active.line, active.character)
        )

    def reveal_selection(self) -> None:
        self.text_area.scroll_cursor_visible()

    def get_text(self) -> str:
        return self.text_area.text

    def offset_at(self, position: Position) -> int:
        return self._document().offset_at(position)

    def position_at(self, offset: int) -> Position:
        return self._document().position_at(offset)

    def line_at(self, line: int) -> str:
        return self._document().get_line(line)

    def execute_command(self, name: str, args: object = None) -> object:
        if name == "type":
            return self._type(args)
        if name == "cancelSelection":
            self.replace_selections([sel.collapsed() for sel in self.selections])
            return None
        action = getattr(self.text_area, f"action_{action_name(name)}", None)
        if action is None:
            raise HostCommandError(name, "command not found")
        if isinstance(args, Mapping):
            return action(**args)
        if args is None:
            return action()
        return action(args)

    def show_info(self, message: str) -> None:
        self._send(message, "information")

    def show_warning(self, message: str) -> None:
        self._send(message, "warning")

    def show_error(self, message: str) -> None:
        self._send(message, "error")

    def _send(self, message: str, severity: str) -> None:
        if self._notify is not None:
            self._notify(message, severity)

    def _type(self, args: object) -> None:
        text = args.get("text") if isinstance(args, Mapping) else None
        if not isinstance(text, str):
            raise HostCommandError("type", "missing 'text' argument")
        current = self.text_area.selection
        start, end = sorted((current.start, current.end))
        result = self.text_area.replace(text, start, end, maintain_selection_offset=False)
        self.text_area.selection = TextSelection.cursor(result.end_location)

    def _document(self) -> TextDocument:
        return TextDocument.from_text(self.text_area.text)


__all__ = ["TextAreaHost", "action_name"]
