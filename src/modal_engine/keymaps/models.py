"""Dataclasses describing compiled actions and keymaps."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import ClassVar, Dict, Mapping, Optional, Tuple, Union


@dataclass(frozen=True, slots=True)
class Command:
    """Invoke a named command without arguments."""

    kind: ClassVar[str] = "command"

    name: str

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("command name cannot be empty")


@dataclass(frozen=True, slots=True)
class CommandSequence:
    """Run each action in order."""

    kind: ClassVar[str] = "sequence"

    actions: Tuple["Action", ...] = ()


@dataclass(frozen=True, slots=True)
class Conditional:
    """Pick a branch by the stringified result of ``condition``."""

    kind: ClassVar[str] = "conditional"

    condition: str
    branches: Mapping[str, "Action"] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "branches", MappingProxyType(dict(self.branches)))


@dataclass(frozen=True, slots=True)
class Parameterized:
    """Invoke ``command`` with literal or evaluated args, possibly repeated.

    ``args`` is a literal mapping/list, an expression string, or ``None``.
    ``repeat`` is a literal count, an expression string, or ``None``.
    """

    kind: ClassVar[str] = "parameterized"

    command: str
    args: object = None
    repeat: Union[int, str, None] = None

    @property
    def evaluates_args(self) -> bool:
        return isinstance(self.args, str)


@dataclass(eq=False, slots=True)
class Keymap:
    """Single-character bindings, compared by identity.

    Several keys may point to the same ``Keymap`` object (ranges, numeric
    back-references), which is how recursive keymaps stay finite.
    """

    kind: ClassVar[str] = "keymap"

    bindings: Dict[str, "Action"] = field(default_factory=dict)
    id: Optional[int] = None
    help: Optional[str] = None

    def lookup(self, key: str) -> Optional["Action"]:
        return self.bindings.get(key)

    def bind(self, key: str, action: "Action") -> None:
        if len(key) != 1:
            raise ValueError(f"keymap keys are single characters, got {key!r}")
        self.bindings[key] = action

    @property
    def keys(self) -> Tuple[str, ...]:
        return tuple(self.bindings)

    def __repr__(self) -> str:
        return f"Keymap(id={self.id!r}, keys={''.join(self.bindings)!r})"


Action = Union[Command, CommandSequence, Conditional, Parameterized, Keymap]


__all__ = [
    "Action",
    "Command",
    "CommandSequence",
    "Conditional",
    "Parameterized",
    "Keymap",
]
