"""Interpreter for compiled actions."""

from __future__ import annotations

import math
from typing import Callable, Mapping, Optional, Sequence

from modal_engine.errors import (
    ExpressionEvaluationError,
    ModalEngineError,
    RepeatLimitError,
)
from modal_engine.keymaps.models import (
    Action,
    Command,
    CommandSequence,
    Conditional,
    Keymap,
    Parameterized,
)
from modal_engine.runtime import telemetry

from .evaluator import ExpressionContext, ExpressionEvaluator, branch_key

RunCommand = Callable[[str, object], bool]
ContextFactory = Callable[[bool, Sequence[str]], ExpressionContext]
Reporter = Callable[[ModalEngineError], None]


class ActionExecutor:
    """Runs actions against a command runner.

    ``run_command`` returns ``False`` when the call failed (it reports the
    failure itself). A failure stops the action it belongs to, never the
    sequence around it.
    """

    def __init__(
        self,
        *,
        run_command: RunCommand,
        enter_keymap: Callable[[Keymap], None],
        make_context: ContextFactory,
        report: Reporter,
        evaluator: Optional[ExpressionEvaluator] = None,
        max_repeat: int = 10_000,
        return_to_root: Optional[Callable[[], None]] = None,
        logger_name: str | None = None,
    ) -> None:
        if max_repeat < 1:
            raise ValueError("max_repeat must be positive")
        self._run_command = run_command
        self._enter_keymap = enter_keymap
        self._return_to_root = return_to_root
        self._make_context = make_context
        self._report = report
        self.evaluator = evaluator or ExpressionEvaluator()
        self.max_repeat = max_repeat
        self._logger_name = logger_name

    def execute(
        self, action: Action, *, selecting: bool, keys: Sequence[str] = ()
    ) -> None:
        """Run ``action``; every step starts back at the root keymap."""

        keys = tuple(keys)
        if self._return_to_root is not None:
            self._return_to_root()
        if isinstance(action, Command):
            self._run_command(action.name, None)
        elif isinstance(action, CommandSequence):
            for sub_action in action.actions:
                self.execute(sub_action, selecting=selecting, keys=keys)
        elif isinstance(action, Conditional):
            self._execute_conditional(action, selecting, keys)
        elif isinstance(action, Parameterized):
            self._execute_parameterized(action, selecting, keys)
        elif isinstance(action, Keymap):
            self._enter_keymap(action)
        else:  # pragma: no cover - exhaustive over Action
            raise TypeError(f"unknown action {action!r}")

    def _evaluate(self, source: str, selecting: bool, keys: Sequence[str]) -> object:
        return self.evaluator.evaluate(source, self._make_context(selecting, keys))

    def _execute_conditional(
        self, action: Conditional, selecting: bool, keys: Sequence[str]
    ) -> None:
        try:
            result = self._evaluate(action.condition, selecting, keys)
        except ExpressionEvaluationError as exc:
            self._report(exc)
            return
        key = branch_key(result)
        branch = action.branches.get(key)
        telemetry.record_event(
            "action.conditional",
            level="debug",
            data={"condition": action.condition, "result": key, "taken": branch is not None},
            logger_name=self._logger_name,
        )
        if branch is not None:
            self.execute(branch, selecting=selecting, keys=keys)

    def _execute_parameterized(
        self, action: Parameterized, selecting: bool, keys: Sequence[str]
    ) -> None:
        try:
            args = self._resolve_args(action, selecting, keys)
            count = self._resolve_count(action, selecting, keys)
        except ExpressionEvaluationError as exc:
            self._report(exc)
            return

        with telemetry.span(
            "actions::parameterized",
            logger_name=self._logger_name,
            component="actions",
            metadata={"command": action.command, "repeat": action.repeat},
        ) as handle:
            if count is not None:
                if count > self.max_repeat:
                    handle.cancel("max_repeat")
                    self._report(RepeatLimitError(action.command, self.max_repeat))
                    count = self.max_repeat
                handle.add_metadata("count", count)
                for _ in range(count):
                    if not self._run_command(action.command, args):
                        return
                return

            condition = str(action.repeat)
            runs = 0
            while True:
                if not self._run_command(action.command, args):
                    return
                runs += 1
                try:
                    again = self._evaluate(condition, selecting, keys)
                except ExpressionEvaluationError as exc:
                    self._report(exc)
                    return
                if not again:
                    handle.add_metadata("count", runs)
                    return
                if runs >= self.max_repeat:
                    handle.cancel("max_repeat")
                    self._report(RepeatLimitError(action.command, self.max_repeat))
                    return

    def _resolve_args(
        self, action: Parameterized, selecting: bool, keys: Sequence[str]
    ) -> object:
        if action.args is None:
            return None
        if isinstance(action.args, str):
            return self._evaluate(action.args, selecting, keys)
        if isinstance(action.args, Mapping):
            return dict(action.args)
        return action.args

    def _resolve_count(
        self, action: Parameterized, selecting: bool, keys: Sequence[str]
    ) -> Optional[int]:
        """Number of runs, or ``None`` when ``repeat`` is a post-condition."""

        repeat = action.repeat
        if repeat is None:
            return 1
        if isinstance(repeat, int):
            return max(1, repeat)
        value = self._evaluate(repeat, selecting, keys)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return None
        if not math.isfinite(value):
            raise ExpressionEvaluationError(repeat, f"repeat count {value!r} is not finite")
        return max(1, int(value))


__all__ = ["ActionExecutor"]
