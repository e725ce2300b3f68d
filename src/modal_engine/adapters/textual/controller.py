"""Textual-facing controller that routes widget keys into a ``KeyEngine``."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Optional

from modal_engine.engine import KeyEngine
from modal_engine.runtime import bus as events


def _noop(*_args, **_kwargs) -> None:  # pragma: no cover - default hook
    return None


@dataclass(slots=True)
class TextualUIHooks:
    """Callbacks invoked by the adapter to update Textual widgets."""

    update_status: Callable[[str], None] = _noop
    show_help: Callable[[str], None] = _noop
    handle_event: Callable[[str, object | None], None] = _noop
    log: Callable[[str], None] = _noop


_FORWARDED_EVENTS = (
    events.MODE_SWITCH,
    events.KEYMAP_PENDING,
    events.KEYMAP_RESET,
    events.SEARCH_START,
    events.SEARCH_UPDATE,
    events.SEARCH_ACCEPT,
    events.SEARCH_CANCEL,
    events.SELECTION_TOGGLE,
)


class TextualModalAdapter:
    """Decides which Textual keys the engine consumes.

    ``handle_textual_key`` returns ``False`` for keys the widget should
    process itself: everything typed in insert mode, and non-character keys
    (arrows, page up, ...) in normal mode.
    """

    def __init__(self, engine: KeyEngine, hooks: TextualUIHooks) -> None:
        self.engine = engine
        self.hooks = hooks
        for event in _FORWARDED_EVENTS:
            engine.bus.subscribe(
                event, lambda payload, name=event: self._handle_event(name, payload)
            )
        self._refresh()

    @property
    def status_text(self) -> str:
        engine = self.engine
        search_status = engine.search.status_text
        if search_status is not None:
            return search_status
        label = "NORMAL" if engine.normal_mode else "INSERT"
        if engine.selection_mode:
            label += " (SELECT)"
        if engine.pending_keys:
            label += "  " + " - ".join(engine.pending_keys)
        return label

    def handle_textual_key(self, key: str, *, character: Optional[str] = None) -> bool:
        self._log_state("key ->", key=key, character=character)
        consumed = self._route(key, character)
        self._refresh()
        self._log_state("result <-", consumed=consumed)
        return consumed

    def _route(self, key: str, character: Optional[str]) -> bool:
        engine = self.engine
        if key == "escape":
            if engine.search.active:
                engine.run_command("modal.cancelSearch")
            elif engine.active is not engine.root:
                engine.reset()
            else:
                engine.run_command("modal.enterNormal")
            return True

        if engine.search.active:
            if key == "backspace":
                engine.run_command("modal.deleteCharFromSearch")
            elif key == "enter":
                engine.handle_key("\n")
            elif _is_printable(character):
                engine.handle_key(character)  # type: ignore[arg-type]
            return True

        if not engine.normal_mode:
            return False
        if key == "enter":
            engine.handle_key("\n")
            return True
        if _is_printable(character):
            engine.handle_key(character)  # type: ignore[arg-type]
            return True
        return False

    def _handle_event(self, name: str, payload: object | None) -> None:
        self._log_state("event ->", event=name, payload=payload)
        self.hooks.handle_event(name, payload)
        self._refresh()

    def _refresh(self) -> None:
        self.hooks.update_status(self.status_text)
        self.hooks.show_help(self.engine.help_text or "")

    def _log_state(self, prefix: str, **fields: object) -> None:
        snapshot = self._state_metadata()
        snapshot.update({k: v for k, v in fields.items() if v is not None})
        parts = [prefix]
        for key, value in snapshot.items():
            parts.append(f"{key}={value!r}")
        self.hooks.log(" ".join(parts))

    def _state_metadata(self) -> Dict[str, object]:
        engine = self.engine
        return {
            "mode": "normal" if engine.normal_mode else "insert",
            "pending": "".join(engine.pending_keys),
            "searching": engine.search.active,
            "capturing": engine.capturing,
        }


def _is_printable(character: Optional[str]) -> bool:
    return character is not None and len(character) == 1 and character.isprintable()


__all__ = ["TextualModalAdapter", "TextualUIHooks"]
