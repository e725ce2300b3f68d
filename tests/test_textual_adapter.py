from __future__ import annotations

from dataclasses import dataclass
from typing import List, Tuple

import pytest

from modal_engine.adapters.textual import TextualModalAdapter, TextualUIHooks
from modal_engine.config import EngineSettings
from modal_engine.engine import KeyEngine
from modal_engine.host import InMemoryEditor, Position

BINDINGS = {
    "j": "cursorDown",
    "i": "modal.enterInsert",
    "/": "modal.search",
    "1-9": {"id": 1, "help": "count", "0-9": 1, "j": {"command": "cursorDown", "repeat": "int(__keySeq[:-1])"}},
}


@dataclass
class Recorded:
    statuses: List[str]
    help: List[str]
    events: List[Tuple[str, object]]
    logs: List[str]


def make_adapter(text: str = "abc foo\nline two\nline three") -> Tuple[TextualModalAdapter, KeyEngine, InMemoryEditor, Recorded]:
    editor = InMemoryEditor(text)
    engine = KeyEngine(editor, settings=EngineSettings(keybindings=BINDINGS))
    recorded = Recorded(statuses=[], help=[], events=[], logs=[])
    hooks = TextualUIHooks(
        update_status=recorded.statuses.append,
        show_help=recorded.help.append,
        handle_event=lambda name, payload: recorded.events.append((name, payload)),
        log=recorded.logs.append,
    )
    return TextualModalAdapter(engine, hooks), engine, editor, recorded


def test_normal_mode_consumes_characters() -> None:
    adapter, _, editor, recorded = make_adapter()

    assert adapter.handle_textual_key("j", character="j") is True

    assert editor.selections[0].active == Position(1, 0)
    assert recorded.statuses[-1] == "NORMAL"
    assert any(line.startswith("key ->") for line in recorded.logs)


def test_navigation_keys_fall_through_in_normal_mode() -> None:
    adapter, _, editor, _ = make_adapter()

    assert adapter.handle_textual_key("down") is False
    assert editor.calls == []


def test_insert_mode_leaves_typing_to_the_widget() -> None:
    adapter, engine, _, recorded = make_adapter()
    adapter.handle_textual_key("i", character="i")

    assert adapter.handle_textual_key("x", character="x") is False
    assert recorded.statuses[-1] == "INSERT"
    assert ("mode.switch", "insert") in recorded.events

    assert adapter.handle_textual_key("escape") is True
    assert engine.normal_mode


def test_pending_keys_show_in_status_and_help() -> None:
    adapter, engine, _, recorded = make_adapter()

    adapter.handle_textual_key("2", character="2")

    assert recorded.statuses[-1] == "NORMAL  2"
    assert recorded.help[-1] == "count"

    adapter.handle_textual_key("escape")

    assert engine.active is engine.root
    assert recorded.help[-1] == ""


def test_search_keys_are_routed_to_the_search() -> None:
    adapter, engine, editor, recorded = make_adapter()

    for key in "/fo":
        adapter.handle_textual_key(key, character=key)
    assert adapter.status_text == "SEARCH [F]: fo"
    adapter.handle_textual_key("o", character="o")
    adapter.handle_textual_key("backspace")
    assert engine.search.query == "fo"
    adapter.handle_textual_key("o", character="o")
    adapter.handle_textual_key("enter")

    assert not engine.search.active
    assert editor.selection_offsets() == [(4, 7)]
    assert recorded.statuses[-1] == "NORMAL"


def test_escape_cancels_search() -> None:
    adapter, engine, editor, _ = make_adapter()
    for key in "/foo":
        adapter.handle_textual_key(key, character=key)

    adapter.handle_textual_key("escape")

    assert not engine.search.active
    assert editor.selection_offsets() == [(0, 0)]


class FakeTextArea:
    """Just enough of ``TextArea`` for ``TextAreaHost``."""

    def __init__(self, text: str, selection: object) -> None:
        self.text = text
        self.selection = selection
        self.scrolled = 0
        self.moves: List[bool] = []

    def scroll_cursor_visible(self) -> None:
        self.scrolled += 1

    def action_cursor_right(self, select: bool = False) -> None:
        self.moves.append(select)

    def replace(self, insert: str, start, end, *, maintain_selection_offset: bool = True):
        lines = self.text.split("\n")
        offsets = [sum(len(line) + 1 for line in lines[:row]) + col for row, col in (start, end)]
        self.text = self.text[: offsets[0]] + insert + self.text[offsets[1] :]
        end_offset = offsets[0] + len(insert)
        prefix = self.text[:end_offset].split("\n")
        return _EditResult((len(prefix) - 1, len(prefix[-1])))


@dataclass
class _EditResult:
    end_location: Tuple[int, int]


def make_host(text: str = "hello\nworld"):
    pytest.importorskip("textual")
    from textual.widgets.text_area import Selection as TextSelection

    from modal_engine.adapters.textual.host import TextAreaHost

    notes: List[Tuple[str, str]] = []
    area = FakeTextArea(text, TextSelection((0, 1), (1, 2)))
    host = TextAreaHost(
        area,  # type: ignore[arg-type]
        file_name="demo.txt",
        notify=lambda message, severity: notes.append((severity, message)),
    )
    return host, area, notes


def test_text_area_host_reports_selection_and_offsets() -> None:
    host, _, _ = make_host()

    selection = host.selections[0]

    assert (selection.anchor, selection.active) == (Position(0, 1), Position(1, 2))
    assert host.offset_at(Position(1, 2)) == 8
    assert host.position_at(8) == Position(1, 2)
    assert host.line_at(1) == "world"
    assert host.file_name == "demo.txt"


def test_text_area_host_runs_actions_and_type() -> None:
    host, area, notes = make_host()

    host.execute_command("cursorRight", {"select": True})
    host.execute_command("type", {"text": "X"})
    host.reveal_selection()
    host.show_warning("careful")

    assert area.moves == [True]
    assert area.text == "hXrld"
    assert tuple(area.selection.end) == (0, 2)
    assert area.scrolled == 1
    assert notes == [("warning", "careful")]


def test_text_area_host_rejects_unknown_commands() -> None:
    from modal_engine.errors import HostCommandError

    host, _, _ = make_host()

    with pytest.raises(HostCommandError):
        host.execute_command("launchRockets")


def test_action_names_follow_textual_convention() -> None:
    pytest.importorskip("textual")
    from modal_engine.adapters.textual.host import action_name

    assert action_name("cursorWordLeft") == "cursor_word_left"
    assert action_name("cursorHome") == "cursor_line_start"
    assert action_name("undo") == "undo"
