"""Line-based text document with offset/position conversion."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Sequence

from .protocol import Position


@dataclass(slots=True)
class TextDocument:
    """Text stored as a list of lines joined by ``\\n``.

    Positions and offsets are clamped into the document the way editors do,
    so callers can probe past either end without raising.
    """

    _lines: List[str] = field(default_factory=lambda: [""])
    version: int = 0

    @classmethod
    def from_text(cls, text: str) -> "TextDocument":
        return cls(_lines=text.split("\n"))

    @property
    def text(self) -> str:
        return "\n".join(self._lines)

    @property
    def line_count(self) -> int:
        return len(self._lines)

    def snapshot(self) -> Sequence[str]:
        return tuple(self._lines)

    def get_line(self, index: int) -> str:
        return self._lines[index]

    def clamp(self, position: Position) -> Position:
        line = max(0, min(position.line, self.line_count - 1))
        character = max(0, min(position.character, len(self._lines[line])))
        return Position(line, character)

    def offset_at(self, position: Position) -> int:
        position = self.clamp(position)
        offset = 0
        for index in range(position.line):
            offset += len(self._lines[index]) + 1  # newline
        return offset + position.character

    def position_at(self, offset: int) -> Position:
        offset = max(0, offset)
        running = 0
        for row, line in enumerate(self._lines):
            if offset <= running + len(line):
                return Position(row, offset - running)
            running += len(line) + 1
        last = self.line_count - 1
        return Position(last, len(self._lines[last]))

    def replace(self, start: int, end: int, text: str) -> "TextDocument":
        """Return a new document with ``[start:end)`` replaced by ``text``."""

        current = self.text
        updated = current[:start] + text + current[end:]
        return TextDocument(_lines=updated.split("\n"), version=self.version + 1)


__all__ = ["TextDocument"]
