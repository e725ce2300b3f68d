from __future__ import annotations

from typing import List, Sequence, Tuple

from modal_engine.actions import ActionExecutor, ExpressionContext
from modal_engine.errors import (
    ExpressionEvaluationError,
    ModalEngineError,
    RepeatLimitError,
)
from modal_engine.keymaps import (
    Command,
    CommandSequence,
    Conditional,
    Keymap,
    Parameterized,
)


class Recorder:
    """Command runner that records calls and fails on request."""

    def __init__(self, failing: Sequence[str] = ()) -> None:
        self.calls: List[Tuple[str, object]] = []
        self.failing = set(failing)
        self.reported: List[ModalEngineError] = []
        self.entered: List[Keymap] = []
        self.line = 0

    def run(self, name: str, args: object) -> bool:
        self.calls.append((name, args))
        if name == "cursorDown":
            self.line += 1
        return name not in self.failing

    def context(self, selecting: bool, keys: Sequence[str]) -> ExpressionContext:
        return ExpressionContext(line=self.line, selecting=selecting, keys=tuple(keys))

    def names(self) -> List[str]:
        return [name for name, _ in self.calls]


def make_executor(recorder: Recorder, *, max_repeat: int = 10_000) -> ActionExecutor:
    return ActionExecutor(
        run_command=recorder.run,
        enter_keymap=recorder.entered.append,
        make_context=recorder.context,
        report=recorder.reported.append,
        max_repeat=max_repeat,
    )


def test_sequence_runs_in_order() -> None:
    recorder = Recorder()
    action = CommandSequence((Command("a"), Command("b"), Command("c")))

    make_executor(recorder).execute(action, selecting=False)

    assert recorder.names() == ["a", "b", "c"]


def test_failed_command_does_not_stop_enclosing_sequence() -> None:
    recorder = Recorder(failing=["b"])
    action = CommandSequence(
        (Command("a"), Parameterized(command="b", repeat=5), Command("c"))
    )

    make_executor(recorder).execute(action, selecting=False)

    assert recorder.names() == ["a", "b", "c"]


def test_numeric_repeat_runs_exactly_n_times() -> None:
    recorder = Recorder()
    action = Parameterized(command="cursorDown", args={"select": False}, repeat="3")

    make_executor(recorder).execute(action, selecting=False)

    assert recorder.calls == [("cursorDown", {"select": False})] * 3


def test_repeat_below_one_still_runs_once() -> None:
    recorder = Recorder()

    make_executor(recorder).execute(
        Parameterized(command="x", repeat=0), selecting=False
    )

    assert recorder.names() == ["x"]


def test_repeat_from_pending_keys() -> None:
    recorder = Recorder()
    action = Parameterized(command="cursorDown", repeat="int(__keySeq[:-1])")

    make_executor(recorder).execute(action, selecting=False, keys=("1", "2", "j"))

    assert len(recorder.calls) == 12


def test_boolean_repeat_is_a_post_condition() -> None:
    recorder = Recorder()
    action = Parameterized(command="cursorDown", repeat="__line < 4")

    make_executor(recorder).execute(action, selecting=False)

    assert recorder.line == 4
    assert len(recorder.calls) == 4


def test_false_post_condition_runs_once() -> None:
    recorder = Recorder()

    make_executor(recorder).execute(
        Parameterized(command="x", repeat="false"), selecting=False
    )

    assert recorder.names() == ["x"]


def test_repeat_limit_is_reported() -> None:
    recorder = Recorder()
    executor = make_executor(recorder, max_repeat=5)

    executor.execute(Parameterized(command="x", repeat="true"), selecting=False)
    executor.execute(Parameterized(command="y", repeat=50), selecting=False)

    assert recorder.names() == ["x"] * 5 + ["y"] * 5
    assert [type(error) for error in recorder.reported] == [
        RepeatLimitError,
        RepeatLimitError,
    ]


def test_conditional_picks_branch_by_result() -> None:
    recorder = Recorder()
    action = Conditional(
        condition="__selecting",
        branches={"true": Command("extend"), "false": Command("move")},
    )
    executor = make_executor(recorder)

    executor.execute(action, selecting=True)
    executor.execute(action, selecting=False)

    assert recorder.names() == ["extend", "move"]


def test_conditional_without_matching_branch_is_a_noop() -> None:
    recorder = Recorder()
    action = Conditional(condition="__line + 2", branches={"3": Command("x")})

    make_executor(recorder).execute(action, selecting=False)

    assert recorder.calls == []
    assert recorder.reported == []


def test_evaluated_args_are_passed_to_the_command() -> None:
    recorder = Recorder()
    action = Parameterized(command="type", args="{'text': __keySeq}")

    make_executor(recorder).execute(action, selecting=False, keys=("a", "b"))

    assert recorder.calls == [("type", {"text": "ab"})]


def test_evaluation_error_skips_only_that_action() -> None:
    recorder = Recorder()
    action = CommandSequence(
        (Parameterized(command="x", args="nope("), Command("after"))
    )

    make_executor(recorder).execute(action, selecting=False)

    assert recorder.names() == ["after"]
    assert isinstance(recorder.reported[0], ExpressionEvaluationError)


def test_keymap_action_is_entered() -> None:
    recorder = Recorder()
    keymap = Keymap({"x": Command("x")})

    make_executor(recorder).execute(CommandSequence((Command("a"), keymap)), selecting=False)

    assert recorder.entered == [keymap]


def test_every_step_returns_to_root_first() -> None:
    recorder = Recorder()
    resets: List[str] = []
    keymap = Keymap({"x": Command("x")})
    executor = ActionExecutor(
        run_command=recorder.run,
        enter_keymap=lambda entered: resets.append("enter"),
        make_context=recorder.context,
        report=recorder.reported.append,
        return_to_root=lambda: resets.append("root"),
    )

    executor.execute(CommandSequence((keymap, Command("a"))), selecting=False)

    assert resets == ["root", "root", "enter", "root"]
    assert recorder.names() == ["a"]


def test_non_finite_repeat_count_is_an_evaluation_error() -> None:
    recorder = Recorder()
    action = CommandSequence(
        (Parameterized(command="cursorDown", repeat="1e999"), Command("after"))
    )

    make_executor(recorder).execute(action, selecting=False)

    assert recorder.names() == ["after"]
    assert isinstance(recorder.reported[0], ExpressionEvaluationError)
    assert "not finite" in recorder.reported[0].reason
