"""Executable Textual app that edits a file through the modal engine."""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import Mapping, Optional, Sequence

try:  # pragma: no cover - imported only when demo is run
    from textual import events
    from textual.app import App, ComposeResult
    from textual.widgets import Footer, Header, Static, TextArea
except ModuleNotFoundError as exc:  # pragma: no cover - friendly error for missing dep
    raise RuntimeError(
        "Install the 'textual' package to use modal_engine.adapters.textual.app"
    ) from exc

from modal_engine.config import EngineSettings, load_settings
from modal_engine.engine import KeyEngine
from modal_engine.errors import SettingsError
from modal_engine.runtime import telemetry

from .controller import TextualModalAdapter, TextualUIHooks
from .host import TextAreaHost

# Used when the settings carry no keybindings of their own.
DEFAULT_KEYBINDINGS: Mapping[str, object] = {
    "h": "cursorLeft",
    "j": "cursorDown",
    "k": "cursorUp",
    "l": "cursorRight",
    "0": "cursorHome",
    "$": "cursorEnd",
    "i": "modal.enterInsert",
    "a": ["cursorRight", "modal.enterInsert"],
    "v": "modal.toggleSelection",
    "/": "modal.search",
    "?": {"command": "modal.search", "args": {"backwards": True}},
    "n": "modal.nextMatch",
    "N": "modal.previousMatch",
    "m": {"command": "modal.defineBookmark", "args": {"bookmark": 0}},
    "'": {"command": "modal.goToBookmark", "args": {"bookmark": 0}},
    "1-9": {
        "id": 1,
        "help": "count: 0-9 continue, h/j/k/l move",
        "0-9": 1,
        "h": {"command": "cursorLeft", "repeat": "int(__keySeq[:-1])"},
        "j": {"command": "cursorDown", "repeat": "int(__keySeq[:-1])"},
        "k": {"command": "cursorUp", "repeat": "int(__keySeq[:-1])"},
        "l": {"command": "cursorRight", "repeat": "int(__keySeq[:-1])"},
    },
    "g": {
        "help": "g: g first line, e end of line",
        "g": {"command": "cursorUp", "repeat": "__line"},
        "e": {"command": "cursorRight", "repeat": "__char != ''"},
    },
}


class ModalTextArea(TextArea):
    """``TextArea`` that lets the adapter consume keys before the widget."""

    adapter: Optional[TextualModalAdapter] = None

    async def _on_key(self, event: events.Key) -> None:
        adapter = self.adapter
        if adapter is not None and adapter.handle_textual_key(
            event.key, character=event.character
        ):
            event.stop()
            event.prevent_default()
            return
        await super()._on_key(event)


class ModalEditorApp(App[None]):
    """Minimal Textual editor with modal keybindings."""

    CSS = """
	Screen {
		layout: vertical;
	}

	#editor {
		height: 1fr;
	}

	#status-line {
		height: 1;
		background: $surface-darken-1;
		padding: 0 1;
	}

	#help-line {
		height: 1;
		background: $surface-darken-2;
		padding: 0 1;
	}
	"""

    BINDINGS = [
        ("ctrl+q", "quit", "Quit"),
    ]

    def __init__(
        self,
        *,
        settings: EngineSettings | None = None,
        path: Path | None = None,
    ) -> None:
        super().__init__()
        self._settings = settings or EngineSettings()
        self._path = path
        self.engine: KeyEngine | None = None
        self.adapter: TextualModalAdapter | None = None
        self._editor: ModalTextArea | None = None
        self._status_widget: Static | None = None
        self._help_widget: Static | None = None

    def compose(self) -> ComposeResult:
        text = ""
        if self._path is not None and self._path.exists():
            text = self._path.read_text(encoding="utf-8")
        yield Header(show_clock=True)
        self._editor = ModalTextArea(text, id="editor")
        yield self._editor
        self._status_widget = Static("", id="status-line")
        self._help_widget = Static("", id="help-line")
        yield self._status_widget
        yield self._help_widget
        yield Footer()

    def on_mount(self) -> None:
        assert self._editor is not None
        host = TextAreaHost(
            self._editor,
            file_name=str(self._path) if self._path else None,
            notify=self._notify,
        )
        settings = self._settings
        if settings.keybindings is None:
            settings.keybindings = DEFAULT_KEYBINDINGS
        self.engine = KeyEngine(host, settings=settings)
        self.adapter = TextualModalAdapter(
            self.engine,
            TextualUIHooks(
                update_status=self._update_status,
                show_help=self._show_help,
                log=self._log_line,
            ),
        )
        self._editor.adapter = self.adapter
        self._editor.focus()

    def _notify(self, message: str, severity: str) -> None:
        self.notify(message, severity=severity)  # type: ignore[arg-type]

    def _update_status(self, status: str) -> None:
        if self._status_widget:
            self._status_widget.update(status)

    def _show_help(self, text: str) -> None:
        if self._help_widget:
            self._help_widget.update(text)

    def _log_line(self, line: str) -> None:
        telemetry.record_event("textual.adapter", level="debug", data={"line": line})


def _parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Edit a file with modal keybindings.")
    parser.add_argument(
        "--config",
        default=None,
        help="JSON settings file (default: $MODAL_ENGINE_CONFIG)",
    )
    parser.add_argument("path", nargs="?", default=None, help="File to open")
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> None:  # pragma: no cover - manual demo
    args = _parse_args(argv)
    try:
        settings = load_settings(args.config)
    except SettingsError as exc:
        location = f" ({exc.path})" if exc.path else ""
        raise SystemExit(f"modal-engine: {exc}{location}") from exc
    path = Path(args.path) if args.path else None
    ModalEditorApp(settings=settings, path=path).run()


if __name__ == "__main__":  # pragma: no cover - manual demo
    main()
