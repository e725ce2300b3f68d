"""Event bus that lets host adapters follow engine transitions."""

from __future__ import annotations

from typing import Callable, Dict, List

MODE_SWITCH = "mode.switch"
KEYMAP_PENDING = "keymap.pending"
KEYMAP_RESET = "keymap.reset"
SEARCH_START = "search.start"
SEARCH_UPDATE = "search.update"
SEARCH_ACCEPT = "search.accept"
SEARCH_CANCEL = "search.cancel"
SELECTION_TOGGLE = "selection.toggle"

Callback = Callable[[object], None]


class EngineBus:
    """Synchronous publish/subscribe keyed by event name."""

    def __init__(self) -> None:
        self._subscribers: Dict[str, List[Callback]] = {}

    def subscribe(self, event: str, callback: Callback) -> None:
        self._subscribers.setdefault(event, []).append(callback)

    def unsubscribe(self, event: str, callback: Callback) -> None:
        callbacks = self._subscribers.get(event)
        if callbacks and callback in callbacks:
            callbacks.remove(callback)

    def emit(self, event: str, payload: object | None = None) -> None:
        for callback in list(self._subscribers.get(event, [])):
            callback(payload)


__all__ = [
    "EngineBus",
    "MODE_SWITCH",
    "KEYMAP_PENDING",
    "KEYMAP_RESET",
    "SEARCH_START",
    "SEARCH_UPDATE",
    "SEARCH_ACCEPT",
    "SEARCH_CANCEL",
    "SELECTION_TOGGLE",
]
