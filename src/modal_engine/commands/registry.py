"""Registry of commands the engine handles itself instead of the host."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Dict, Iterator, Optional

from modal_engine.runtime.telemetry import span

if TYPE_CHECKING:  # pragma: no cover
    from modal_engine.engine.key_engine import KeyEngine

CommandHandler = Callable[["KeyEngine", object], object]


@dataclass(frozen=True, slots=True)
class CommandRef:
    """Named engine command and its handler."""

    id: str
    handler: CommandHandler
    description: str = ""

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("CommandRef id cannot be empty")
        if not callable(self.handler):
            raise TypeError("handler must be callable")

    def __call__(self, engine: "KeyEngine", args: object = None) -> object:
        return self.handler(engine, args)


class CommandRegistry:
    """Owns engine command references, keyed by command name."""

    def __init__(self, *, logger_name: str | None = None) -> None:
        self._commands: Dict[str, CommandRef] = {}
        self._logger_name = logger_name

    def register(self, command: CommandRef, *, replace: bool = False) -> CommandRef:
        with span(
            "commands::register",
            logger_name=self._logger_name,
            component="commands",
            metadata={"command_id": command.id},
        ):
            if not replace and command.id in self._commands:
                raise ValueError(f"Command '{command.id}' already registered")
            self._commands[command.id] = command
            return command

    def unregister(self, command_id: str) -> Optional[CommandRef]:
        return self._commands.pop(command_id, None)

    def get(self, command_id: str) -> Optional[CommandRef]:
        return self._commands.get(command_id)

    def __contains__(self, command_id: object) -> bool:
        return command_id in self._commands

    def __iter__(self) -> Iterator[CommandRef]:
        return iter(self._commands.values())

    def ids(self) -> tuple[str, ...]:
        return tuple(sorted(self._commands))


__all__ = ["CommandHandler", "CommandRef", "CommandRegistry"]
