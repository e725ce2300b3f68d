"""Host editor boundary: positions, selections, and the ``EditorHost`` protocol."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, Sequence


@dataclass(frozen=True, slots=True, order=True)
class Position:
    """Zero-based line/character location."""

    line: int
    character: int


@dataclass(frozen=True, slots=True)
class Selection:
    """Anchor/active pair; ``active`` is where the cursor is drawn."""

    anchor: Position
    active: Position

    @classmethod
    def caret(cls, position: Position) -> "Selection":
        return cls(position, position)

    @property
    def start(self) -> Position:
        return min(self.anchor, self.active)

    @property
    def end(self) -> Position:
        return max(self.anchor, self.active)

    @property
    def is_empty(self) -> bool:
        return self.anchor == self.active

    @property
    def is_reversed(self) -> bool:
        return self.active < self.anchor

    def collapsed(self) -> "Selection":
        return Selection(self.active, self.active)


class EditorHost(Protocol):
    """Capabilities the engine needs from the editor hosting it."""

    @property
    def file_name(self) -> str | None:
        ...

    @property
    def selections(self) -> Sequence[Selection]:
        """Current selections, primary first."""
        ...

    def replace_selections(self, selections: Sequence[Selection]) -> None:
        ...

    def reveal_selection(self) -> None:
        ...

    def get_text(self) -> str:
        ...

    def offset_at(self, position: Position) -> int:
        ...

    def position_at(self, offset: int) -> Position:
        ...

    def line_at(self, line: int) -> str:
        ...

    def execute_command(self, name: str, args: object = None) -> object:
        """Run a host command; raising signals failure."""
        ...

    def show_info(self, message: str) -> None:
        ...

    def show_warning(self, message: str) -> None:
        ...

    def show_error(self, message: str) -> None:
        ...


__all__ = ["EditorHost", "Position", "Selection"]
