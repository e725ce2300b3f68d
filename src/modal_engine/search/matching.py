"""Offset-level text matching used by incremental search."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True, slots=True)
class Match:
    start: int
    end: int
    wrapped: bool = False


def fold_case(text: str) -> str:
    """Lower-case ``text`` without changing its length.

    Characters whose lower-case form is longer than one code point are kept
    as-is so offsets in the folded text line up with the original.
    """

    return "".join(_fold_char(char) for char in text)


def _fold_char(char: str) -> str:
    lowered = char.lower()
    return lowered if len(lowered) == 1 else char


def find_match(
    text: str,
    query: str,
    origin: int,
    *,
    backwards: bool = False,
    case_sensitive: bool = False,
    wrap_around: bool = False,
) -> Optional[Match]:
    """Locate ``query`` relative to ``origin``.

    Forward searches return the first match starting at or after ``origin``;
    backward searches the last match starting at or before it. With
    ``wrap_around`` a miss is retried over the whole text from the opposite
    end and the result is flagged ``wrapped``.
    """

    if not query:
        return None
    if not case_sensitive:
        text = fold_case(text)
        query = fold_case(query)

    if backwards:
        start = text.rfind(query, 0, origin + len(query)) if origin >= 0 else -1
        if start < 0 and wrap_around:
            start = text.rfind(query)
            if start >= 0:
                return Match(start, start + len(query), wrapped=True)
    else:
        start = text.find(query, max(origin, 0))
        if start < 0 and wrap_around:
            start = text.find(query)
            if start >= 0:
                return Match(start, start + len(query), wrapped=True)

    if start < 0:
        return None
    return Match(start, start + len(query))


__all__ = ["Match", "find_match", "fold_case"]
