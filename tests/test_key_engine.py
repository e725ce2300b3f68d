from __future__ import annotations

from typing import List, Mapping, Optional, Tuple

import pytest

from modal_engine.commands import Bookmark, CommandRef
from modal_engine.config import EngineSettings
from modal_engine.engine import KeyEngine
from modal_engine.host import InMemoryEditor, Position
from modal_engine.keymaps import Keymap
from modal_engine.runtime import bus as events

TWENTY_LINES = "\n".join(f"line {index}" for index in range(20))

COUNT_BINDINGS: Mapping[str, object] = {
    "1-9": {
        "id": 1,
        "help": "count",
        "0-9": 1,
        "j": {"command": "cursorDown", "repeat": "int(__keySeq[:-1])"},
    },
    "j": "cursorDown",
}


def make_engine(
    bindings: Optional[Mapping[str, object]] = None,
    *,
    text: str = TWENTY_LINES,
    start_in_normal_mode: bool = True,
    max_repeat: int = 10_000,
) -> Tuple[KeyEngine, InMemoryEditor]:
    editor = InMemoryEditor(text, file_name="notes.txt")
    settings = EngineSettings(
        keybindings=bindings,
        start_in_normal_mode=start_in_normal_mode,
        max_repeat=max_repeat,
    )
    return KeyEngine(editor, settings=settings), editor


def press(engine: KeyEngine, keys: str) -> List[bool]:
    return [engine.handle_key(key) for key in keys]


def test_recursive_count_keymap_repeats_command() -> None:
    engine, editor = make_engine(COUNT_BINDINGS)

    results = press(engine, "12j")

    assert results == [False, False, True]
    assert editor.selections[0].active == Position(12, 0)
    assert engine.pending_keys == []
    assert engine.active is engine.root


def test_pending_state_and_help_text() -> None:
    engine, _ = make_engine(COUNT_BINDINGS)

    engine.handle_key("3")

    assert engine.pending_keys == ["3"]
    assert engine.help_text == "count"
    assert isinstance(engine.active, Keymap)


def test_undefined_binding_warns_and_resets() -> None:
    engine, editor = make_engine(COUNT_BINDINGS)

    assert press(engine, "1x") == [False, True]

    assert editor.messages("warning") == ["Undefined key binding: 1 - x"]
    assert engine.active is engine.root
    assert engine.pending_keys == []


def test_undefined_root_key() -> None:
    engine, editor = make_engine(COUNT_BINDINGS)

    assert engine.handle_key("q") is True

    assert editor.messages("warning") == ["Undefined key binding: q"]


def test_invalid_keybindings_keep_the_previous_root() -> None:
    engine, editor = make_engine(COUNT_BINDINGS)
    root = engine.root

    result = engine.load_keymaps({"a": True, "b": 99})

    assert result.error_count == 2
    assert engine.root is root
    assert editor.messages("error") == [
        "Found 2 error(s) in keybindings; keeping the previous configuration"
    ]


def test_invalid_initial_keybindings_leave_an_empty_root() -> None:
    engine, editor = make_engine({"a": True})

    assert engine.root.keys == ()
    assert len(editor.messages("error")) == 1


def test_failed_command_is_reported_and_sequence_continues() -> None:
    engine, editor = make_engine({"a": ["missingCommand", "cursorRight"]})

    engine.handle_key("a")

    assert editor.messages("error") == [
        "Command 'missingCommand' failed: command not found"
    ]
    assert editor.selection_offsets() == [(1, 1)]
    assert engine.last_command == "cursorRight"


def test_keymap_inside_sequence_becomes_active() -> None:
    engine, editor = make_engine({"a": ["cursorRight", {"b": "cursorLeft"}]})

    assert engine.handle_key("a") is False
    assert editor.selection_offsets() == [(1, 1)]
    assert engine.handle_key("b") is True
    assert editor.selection_offsets() == [(0, 0)]


def test_keymap_early_in_sequence_does_not_stay_active() -> None:
    engine, editor = make_engine(
        {"a": [{"b": "cursorLeft"}, "cursorRight"], "x": "cursorDown"}
    )

    assert engine.handle_key("a") is True
    assert engine.active is engine.root
    assert engine.pending_keys == []

    engine.handle_key("x")

    assert editor.calls_to("cursorDown") == [None]
    assert editor.messages("warning") == []


@pytest.mark.parametrize("repeat", ["1e999", "-1e999", "float('nan')"])
def test_non_finite_repeat_is_reported_and_skipped(repeat: str) -> None:
    engine, editor = make_engine(
        {"j": {"command": "cursorDown", "repeat": repeat}, "k": "cursorUp"}
    )

    assert engine.handle_key("j") is True
    engine.handle_key("k")

    assert editor.calls_to("cursorDown") == []
    assert editor.calls_to("cursorUp") == [None]
    assert len(editor.messages("error")) == 1
    assert "not finite" in editor.messages("error")[0]


def test_failed_dispatch_drops_queued_keys() -> None:
    engine, editor = make_engine(
        {"a": ["feed", {"z": "cursorLeft"}], "b": "cursorRight"}
    )
    editor.register_command("feed", lambda _ed, _args: engine.handle_key("b"))
    failures: List[object] = []

    def fail_once(payload: object) -> None:
        if not failures:
            failures.append(payload)
            raise RuntimeError("subscriber failed")

    engine.bus.subscribe(events.KEYMAP_PENDING, fail_once)

    with pytest.raises(RuntimeError):
        engine.handle_key("a")

    assert engine.active is engine.root
    assert engine.pending_keys == []
    assert editor.calls_to("cursorRight") == []

    engine.handle_key("b")

    assert editor.calls_to("cursorRight") == [None]


def test_capture_forwards_keys_to_last_command() -> None:
    captured: List[object] = []

    def capture(engine: KeyEngine, args: object) -> None:
        if args is None:
            engine.begin_capture()
        else:
            captured.append(args)

    engine, _ = make_engine({"c": "test.capture", "x": "cursorRight"})
    engine.commands.register(CommandRef("test.capture", capture))

    press(engine, "cxy")
    engine.end_capture()
    engine.handle_key("x")

    assert captured == ["x", "y"]
    assert engine.last_command == "cursorRight"


def test_keys_arriving_mid_dispatch_are_queued() -> None:
    engine, editor = make_engine({"a": "feed", "b": "cursorRight"})
    nested: List[bool] = []
    editor.register_command("feed", lambda _ed, _args: nested.append(engine.handle_key("b")))

    engine.handle_key("a")

    assert nested == [False]
    assert [name for name, _ in editor.calls] == ["feed", "cursorRight"]


def test_insert_mode_types_keys() -> None:
    engine, editor = make_engine({"i": "modal.enterInsert"}, text="", start_in_normal_mode=False)

    press(engine, "hi")

    assert editor.get_text() == "hi"
    assert engine.run_command("modal.enterNormal")
    assert engine.normal_mode


def test_mode_switch_events() -> None:
    engine, _ = make_engine({"i": "modal.enterInsert"})
    modes: List[object] = []
    engine.bus.subscribe(events.MODE_SWITCH, modes.append)

    engine.handle_key("i")
    engine.run_command("modal.toggle")

    assert modes == ["insert", "normal"]


def test_selection_mode_feeds_conditions() -> None:
    bindings = {
        "v": "modal.toggleSelection",
        "l": {
            "condition": "__selecting",
            "true": {"command": "cursorRight", "args": {"select": True}},
            "false": "cursorRight",
        },
    }
    engine, editor = make_engine(bindings)

    press(engine, "vll")

    assert engine.selecting
    assert editor.selection_offsets() == [(0, 2)]

    engine.handle_key("v")

    assert not engine.selecting
    assert editor.selection_offsets() == [(2, 2)]


def test_bookmarks_round_trip() -> None:
    bindings = {
        "m": {"command": "modal.defineBookmark", "args": {"bookmark": 1}},
        "'": {"command": "modal.goToBookmark", "args": {"bookmark": 1}},
        "l": "cursorRight",
    }
    engine, editor = make_engine(bindings)
    editor.set_cursor(3)

    press(engine, "mll'")

    assert editor.selection_offsets() == [(3, 3)]
    assert engine.bookmarks[1] == Bookmark("notes.txt", Position(0, 3))


def test_bookmark_from_another_document_warns() -> None:
    engine, editor = make_engine({"'": "modal.goToBookmark"})
    engine.bookmarks[0] = Bookmark("other.txt", Position(4, 0))

    engine.handle_key("'")

    assert editor.messages("warning") == ["Bookmark 0 belongs to other.txt"]
    assert editor.selection_offsets() == [(0, 0)]


def test_expression_context_reflects_primary_cursor() -> None:
    engine, editor = make_engine(None, text="ab\ncd")
    editor.set_cursor(2)

    context = engine.expression_context(False, ("x",))

    assert (context.line, context.col, context.char) == (0, 2, "")
    assert context.file == "notes.txt"
    assert context.keys == ("x",)


def test_apply_settings_updates_repeat_limit() -> None:
    engine, editor = make_engine(None)

    engine.apply_settings(
        EngineSettings(
            keybindings={"j": {"command": "cursorDown", "repeat": 50}}, max_repeat=3
        )
    )
    engine.handle_key("j")

    assert editor.selections[0].active == Position(3, 0)
    assert editor.messages("warning") == ["Repeat of 'cursorDown' stopped after 3 iterations"]
