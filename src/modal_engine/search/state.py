"""Search arguments and per-search state."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Optional, Tuple

from modal_engine.host.protocol import Selection

_BOOL_OPTIONS = {
    "backwards": "backwards",
    "caseSensitive": "case_sensitive",
    "wrapAround": "wrap_around",
    "selectTillMatch": "select_till_match",
}

_HOOK_OPTIONS = {
    "typeBeforeNextMatch": "type_before_next_match",
    "typeAfterNextMatch": "type_after_next_match",
    "typeBeforePreviousMatch": "type_before_previous_match",
    "typeAfterPreviousMatch": "type_after_previous_match",
    "typeAfterAccept": "type_after_accept",
}


@dataclass(frozen=True, slots=True)
class SearchArgs:
    """Options given to ``modal.search``.

    Hook options are key strings typed through the keymap at the matching
    point of the search.
    """

    backwards: bool = False
    case_sensitive: bool = False
    wrap_around: bool = False
    accept_after: Optional[int] = None
    select_till_match: bool = False
    type_before_next_match: Optional[str] = None
    type_after_next_match: Optional[str] = None
    type_before_previous_match: Optional[str] = None
    type_after_previous_match: Optional[str] = None
    type_after_accept: Optional[str] = None

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, object]]) -> "SearchArgs":
        """Parse camelCase arguments; raises ``ValueError`` on bad input."""

        if not data:
            return cls()
        known = set(_BOOL_OPTIONS) | set(_HOOK_OPTIONS) | {"acceptAfter"}
        unknown = sorted(str(key) for key in data if key not in known)
        if unknown:
            raise ValueError(f"Unknown search arguments: {', '.join(unknown)}")

        values: dict[str, object] = {}
        for option, attr in _BOOL_OPTIONS.items():
            if option in data:
                value = data[option]
                if not isinstance(value, bool):
                    raise ValueError(f"'{option}' must be a boolean")
                values[attr] = value
        for option, attr in _HOOK_OPTIONS.items():
            value = data.get(option)
            if value is not None:
                if not isinstance(value, str):
                    raise ValueError(f"'{option}' must be a string of keys")
                values[attr] = value

        accept_after = data.get("acceptAfter")
        if accept_after is not None:
            if (
                isinstance(accept_after, bool)
                or not isinstance(accept_after, int)
                or accept_after < 1
            ):
                raise ValueError("'acceptAfter' must be a positive integer")
            values["accept_after"] = accept_after
        return cls(**values)  # type: ignore[arg-type]


@dataclass(slots=True)
class SearchState:
    """Query and anchors of one search, from start until accept or cancel."""

    args: SearchArgs
    anchors: Tuple[Selection, ...]
    query: str = ""
    backwards: bool = False

    def __post_init__(self) -> None:
        self.backwards = self.args.backwards

    @property
    def status(self) -> str:
        flags = ("B" if self.backwards else "F") + ("S" if self.args.case_sensitive else "")
        return f"SEARCH [{flags}]: {self.query}"


__all__ = ["SearchArgs", "SearchState"]
