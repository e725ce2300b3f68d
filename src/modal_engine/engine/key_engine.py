"""Keystroke state machine tying keymaps, the executor, and search together."""

from __future__ import annotations

from collections import deque
from typing import Deque, Dict, Iterable, List, Optional, Sequence

from modal_engine.actions import ActionExecutor, ExpressionContext, ExpressionEvaluator
from modal_engine.commands import Bookmark, CommandRegistry, load_default_commands
from modal_engine.config import EngineSettings
from modal_engine.errors import (
    HostCommandError,
    ModalEngineError,
    RepeatLimitError,
    UndefinedBindingError,
)
from modal_engine.host.protocol import EditorHost
from modal_engine.keymaps import Action, CompileResult, Keymap, KeymapCompiler
from modal_engine.runtime import bus as events
from modal_engine.runtime import telemetry
from modal_engine.runtime.bus import EngineBus
from modal_engine.search import SearchEngine

_WARNINGS = (UndefinedBindingError, RepeatLimitError)


class KeyEngine:
    """Consumes keystrokes one at a time and dispatches the bound actions.

    The engine is idle at the root keymap or mid-sequence in a nested one.
    While a command holds the capture (search does) keystrokes skip the
    keymap and go to that command instead. In insert mode keystrokes are
    typed into the host.
    """

    def __init__(
        self,
        host: EditorHost,
        *,
        settings: EngineSettings | None = None,
        commands: CommandRegistry | None = None,
        bus: EngineBus | None = None,
        logger_name: str | None = None,
        load_defaults: bool = True,
    ) -> None:
        self.host = host
        self.settings = settings or EngineSettings()
        self.bus = bus or EngineBus()
        self._logger_name = logger_name or "modal_engine.engine"
        self.logger = telemetry.get_logger(self._logger_name)
        self.commands = commands or CommandRegistry(logger_name="modal_engine.commands")
        if load_defaults and commands is None:
            load_default_commands(self.commands)

        self.root = Keymap()
        self.active = self.root
        self.pending_keys: List[str] = []
        self.last_command: Optional[str] = None
        self.normal_mode = self.settings.start_in_normal_mode
        self.bookmarks: Dict[int, Bookmark] = {}

        self._selecting = False
        self._capturing = False
        self._capture_command: Optional[str] = None
        self._bypass_capture = 0
        self._queue: Deque[str] = deque()
        self._dispatching = False

        self.evaluator = ExpressionEvaluator()
        self.executor = ActionExecutor(
            run_command=self.run_command,
            enter_keymap=self._enter_keymap,
            make_context=self.expression_context,
            report=self._report,
            evaluator=self.evaluator,
            max_repeat=self.settings.max_repeat,
            return_to_root=self._return_to_root,
            logger_name="modal_engine.actions",
        )
        self.search = SearchEngine(self, logger_name="modal_engine.search")

        if self.settings.keybindings is not None:
            self.load_keymaps(self.settings.keybindings)

    # -- configuration ----------------------------------------------------

    def load_keymaps(self, raw: object) -> CompileResult:
        """Compile ``raw`` and install it as the root keymap.

        With any diagnostic the current root stays in place and the number of
        problems is reported to the host.
        """

        result = KeymapCompiler(logger_name="modal_engine.keymaps").compile(raw)
        if result.keymap is None:
            for error in result.errors:
                telemetry.record_event(
                    "keymaps.invalid",
                    level="warning",
                    data={"path": error.path, "reason": error.reason},
                    logger_name=self._logger_name,
                )
            self.host.show_error(
                f"Found {result.error_count} error(s) in keybindings; "
                "keeping the previous configuration"
            )
            return result

        self.root = result.keymap
        self.reset()
        telemetry.record_event(
            "keymaps.loaded",
            data={"keys": "".join(self.root.keys)},
            logger_name=self._logger_name,
        )
        return result

    def apply_settings(self, settings: EngineSettings) -> Optional[CompileResult]:
        self.settings = settings
        self.executor.max_repeat = settings.max_repeat
        if settings.keybindings is None:
            return None
        return self.load_keymaps(settings.keybindings)

    # -- state ------------------------------------------------------------

    @property
    def help_text(self) -> Optional[str]:
        return self.active.help

    @property
    def capturing(self) -> bool:
        return self._capturing

    @property
    def selecting(self) -> bool:
        if self._selecting:
            return True
        return any(not selection.is_empty for selection in self.host.selections)

    @property
    def selection_mode(self) -> bool:
        """The explicit selection flag, ignoring the host's selections."""

        return self._selecting

    def set_selecting(self, enabled: bool) -> None:
        if self._selecting == enabled:
            return
        self._selecting = enabled
        self.bus.emit(events.SELECTION_TOGGLE, enabled)

    def set_normal_mode(self, enabled: bool) -> None:
        if self.normal_mode == enabled:
            return
        self.normal_mode = enabled
        self.reset()
        mode = "normal" if enabled else "insert"
        telemetry.record_event(
            "mode.switch", data={"mode": mode}, logger_name=self._logger_name
        )
        self.bus.emit(events.MODE_SWITCH, mode)

    def begin_capture(self, command: str | None = None) -> None:
        """Route keystrokes to ``command`` (default: the last command run)."""

        self._capturing = True
        self._capture_command = command

    def end_capture(self) -> None:
        self._capturing = False
        self._capture_command = None

    def reset(self) -> None:
        self.active = self.root
        self.pending_keys.clear()
        self.bus.emit(events.KEYMAP_RESET, None)

    # -- keystrokes -------------------------------------------------------

    def handle_key(self, key: str) -> bool:
        """Process one keystroke.

        Returns ``True`` when the engine is back at the root keymap, i.e. the
        keystroke completed or abandoned a sequence. A keystroke that arrives
        while another is still being processed is queued and ``False`` is
        returned; it runs as soon as the current one finishes.
        """

        if self._dispatching:
            self._queue.append(key)
            return False
        self._dispatching = True
        try:
            done = self._dispatch(key)
            while self._queue:
                self._dispatch(self._queue.popleft())
        except Exception:
            self._abandon()
            raise
        finally:
            self._dispatching = False
        return done

    def type_keys(self, keys: Iterable[str]) -> None:
        """Feed ``keys`` through the keymap now, even while capturing."""

        if not self._dispatching:
            self._dispatching = True
            try:
                self._type(keys)
                while self._queue:
                    self._dispatch(self._queue.popleft())
            except Exception:
                self._abandon()
                raise
            finally:
                self._dispatching = False
            return
        self._type(keys)

    def _abandon(self) -> None:
        """Drop queued keys and any half-typed sequence after a failure."""

        self._queue.clear()
        self._return_to_root()

    def _type(self, keys: Iterable[str]) -> None:
        self._bypass_capture += 1
        try:
            for key in keys:
                self._dispatch(key)
        finally:
            self._bypass_capture -= 1

    def _dispatch(self, key: str) -> bool:
        with telemetry.span(
            "engine::handle_key",
            logger_name=self._logger_name,
            component="engine",
            metadata={"key": key},
        ):
            if self._capturing and not self._bypass_capture:
                command = self._capture_command or self.last_command
                if command is not None:
                    self.run_command(command, key)
                return True

            if not self.normal_mode:
                self.run_command("type", {"text": key})
                return True

            self.pending_keys.append(key)
            action = self.active.lookup(key)
            if action is None:
                self._report(UndefinedBindingError(self.pending_keys))
                self.reset()
                return True
            if isinstance(action, Keymap):
                self._enter_keymap(action)
                return False
            self.execute(action)
            return self.active is self.root

    def execute(self, action: Action, *, selecting: bool | None = None) -> None:
        """Run ``action`` with the pending keys as its key context."""

        keys = tuple(self.pending_keys)
        if selecting is None:
            selecting = self.selecting
        self.executor.execute(action, selecting=selecting, keys=keys)
        if self.active is self.root:
            self.reset()

    def _return_to_root(self) -> None:
        self.active = self.root
        self.pending_keys.clear()

    def _enter_keymap(self, keymap: Keymap) -> None:
        self.active = keymap
        self.bus.emit(events.KEYMAP_PENDING, keymap)

    # -- commands ---------------------------------------------------------

    def run_command(self, name: str, args: object = None) -> bool:
        """Run an engine command, or the host's command of that name.

        Any failure is reported and turned into a ``False`` result.
        """

        command = self.commands.get(name)
        try:
            with telemetry.span(
                "engine::command",
                logger_name=self._logger_name,
                component="engine",
                metadata={"command": name},
            ):
                if command is not None:
                    command(self, args)
                else:
                    self.host.execute_command(name, args)
        except HostCommandError as exc:
            self._report(exc)
            return False
        except Exception as exc:
            self._report(HostCommandError(name, str(exc) or type(exc).__name__))
            return False
        self.last_command = name
        return True

    def expression_context(
        self, selecting: bool, keys: Sequence[str]
    ) -> ExpressionContext:
        host = self.host
        selections = host.selections
        if not selections:
            return ExpressionContext(
                file=host.file_name, selecting=selecting, keys=tuple(keys)
            )
        primary = selections[0]
        cursor = primary.active
        line_text = host.line_at(cursor.line)
        char = line_text[cursor.character] if cursor.character < len(line_text) else ""
        text = host.get_text()
        selected = text[host.offset_at(primary.start) : host.offset_at(primary.end)]
        return ExpressionContext(
            file=host.file_name,
            line=cursor.line,
            col=cursor.character,
            char=char,
            selection=selected,
            selecting=selecting,
            keys=tuple(keys),
        )

    def _report(self, error: ModalEngineError) -> None:
        warning = isinstance(error, _WARNINGS)
        if warning:
            self.host.show_warning(str(error))
        else:
            self.host.show_error(str(error))
        telemetry.record_event(
            "engine.error",
            level="warning" if warning else "error",
            data={"type": type(error).__name__, "message": str(error)},
            logger_name=self._logger_name,
        )


__all__ = ["KeyEngine"]
