"""Incremental multi-cursor search driven through the engine's capture mode."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, List, Mapping, Optional, Sequence, Union

from modal_engine.runtime import bus as events
from modal_engine.host.protocol import Position, Selection
from modal_engine.runtime import telemetry

from .matching import Match, find_match
from .state import SearchArgs, SearchState

if TYPE_CHECKING:  # pragma: no cover
    from modal_engine.engine.key_engine import KeyEngine

SEARCH_COMMAND = "modal.search"
ACCEPT_KEYS = frozenset({"\n", "\r"})


@dataclass(frozen=True, slots=True)
class _Target:
    """Where one cursor's search starts and what it falls back to."""

    origin: int
    till_anchor: Position
    current: Selection


class SearchEngine:
    """Idle -> Searching -> Accepted/Cancelled -> Idle.

    While searching the engine forwards every keystroke to
    ``modal.search``, which lands in ``advance`` (or ``accept`` for a
    newline). The last accepted search stays available to ``next_match``
    and ``previous_match``.
    """

    def __init__(self, engine: "KeyEngine", *, logger_name: str | None = None) -> None:
        self._engine = engine
        self._logger_name = logger_name
        self._live: Optional[SearchState] = None
        self._last: Optional[SearchState] = None

    @property
    def active(self) -> bool:
        return self._live is not None

    @property
    def state(self) -> Optional[SearchState]:
        return self._live or self._last

    @property
    def query(self) -> str:
        state = self.state
        return state.query if state else ""

    @property
    def status_text(self) -> Optional[str]:
        return self._live.status if self._live else None

    # -- transitions ------------------------------------------------------

    def start(self, args: Union[SearchArgs, Mapping[str, object], None] = None) -> None:
        parsed = args if isinstance(args, SearchArgs) else SearchArgs.from_mapping(args)
        engine = self._engine
        if not engine.normal_mode:
            engine.set_normal_mode(True)
        self._live = SearchState(args=parsed, anchors=tuple(engine.host.selections))
        engine.begin_capture(SEARCH_COMMAND)
        self._event("start", backwards=parsed.backwards, cursors=len(self._live.anchors))
        engine.bus.emit(events.SEARCH_START, self._live)

    def advance(self, text: str) -> None:
        for char in text:
            state = self._live
            if state is None:
                return
            if char in ACCEPT_KEYS:
                self.accept()
                return
            state.query += char
            with telemetry.span(
                "search::advance",
                logger_name=self._logger_name,
                component="search",
                metadata={"query": state.query},
            ):
                self._apply(state, self._anchor_targets(state))
            self._engine.bus.emit(events.SEARCH_UPDATE, state)
            accept_after = state.args.accept_after
            if accept_after is not None and len(state.query) >= accept_after:
                self.accept()

    def accept(self) -> None:
        state = self._live
        if state is None:
            return
        self._live = None
        self._last = state
        self._engine.end_capture()
        self._event("accept", query=state.query)
        self._engine.bus.emit(events.SEARCH_ACCEPT, state)
        if state.args.type_after_accept:
            self._engine.type_keys(state.args.type_after_accept)

    def cancel(self) -> None:
        state = self._live
        if state is None:
            return
        self._live = None
        self._engine.end_capture()
        host = self._engine.host
        host.replace_selections([Selection.caret(anchor.active) for anchor in state.anchors])
        host.reveal_selection()
        self._event("cancel", query=state.query)
        self._engine.bus.emit(events.SEARCH_CANCEL, state)

    def delete_char(self) -> None:
        state = self._live
        if state is None or not state.query:
            return
        state.query = state.query[:-1]
        host = self._engine.host
        if state.query:
            self._apply(state, self._anchor_targets(state))
        else:
            host.replace_selections(state.anchors)
            host.reveal_selection()
        self._engine.bus.emit(events.SEARCH_UPDATE, state)

    def next_match(self) -> None:
        state = self.state
        if state is None or not state.query:
            return
        self._jump(
            state,
            before=state.args.type_before_next_match,
            after=state.args.type_after_next_match,
        )

    def previous_match(self) -> None:
        state = self.state
        if state is None or not state.query:
            return
        state.backwards = not state.backwards
        try:
            self._jump(
                state,
                before=state.args.type_before_previous_match,
                after=state.args.type_after_previous_match,
            )
        finally:
            state.backwards = not state.backwards

    # -- matching ---------------------------------------------------------

    def _jump(self, state: SearchState, *, before: Optional[str], after: Optional[str]) -> None:
        if before:
            self._engine.type_keys(before)
        with telemetry.span(
            "search::jump",
            logger_name=self._logger_name,
            component="search",
            metadata={"query": state.query, "backwards": state.backwards},
        ):
            self._apply(state, self._selection_targets(state))
        if after:
            self._engine.type_keys(after)

    def _anchor_targets(self, state: SearchState) -> List[_Target]:
        host = self._engine.host
        current = list(host.selections)
        targets = []
        for index, anchor in enumerate(state.anchors):
            offset = host.offset_at(anchor.active)
            targets.append(
                _Target(
                    origin=offset - 1 if state.backwards else offset,
                    till_anchor=anchor.active,
                    current=current[index] if index < len(current) else anchor,
                )
            )
        return targets

    def _selection_targets(self, state: SearchState) -> List[_Target]:
        host = self._engine.host
        till = state.args.select_till_match
        targets = []
        for selection in host.selections:
            start = host.offset_at(selection.start)
            end = host.offset_at(selection.end)
            if state.backwards:
                origin = start - len(state.query) - 1 if till else start - 1
            else:
                origin = end + 1 if till else end
            targets.append(
                _Target(origin=origin, till_anchor=selection.anchor, current=selection)
            )
        return targets

    def _apply(self, state: SearchState, targets: Sequence[_Target]) -> None:
        host = self._engine.host
        text = host.get_text()
        results: List[Selection] = []
        missing = wrapped = 0
        for target in targets:
            match = find_match(
                text,
                state.query,
                target.origin,
                backwards=state.backwards,
                case_sensitive=state.args.case_sensitive,
                wrap_around=state.args.wrap_around,
            )
            if match is None:
                missing += 1
                results.append(target.current)
                continue
            if match.wrapped:
                wrapped += 1
            results.append(self._select(state, match, target.till_anchor))

        if results:
            host.replace_selections(results)
            host.reveal_selection()
        if missing:
            host.show_warning(f'Search: "{state.query}" not found')
        elif wrapped:
            host.show_info("Search wrapped around")

    def _select(self, state: SearchState, match: Match, till_anchor: Position) -> Selection:
        host = self._engine.host
        start = host.position_at(match.start)
        end = host.position_at(match.end)
        # A match lies after its origin unless exactly one of "backwards" and
        # "wrapped" holds.
        after = match.wrapped == state.backwards
        if state.args.select_till_match:
            return Selection(till_anchor, start if after else end)
        if after:
            return Selection(start, end)
        return Selection(end, start)

    def _event(self, name: str, **data: object) -> None:
        telemetry.record_event(f"search.{name}", data=data, logger_name=self._logger_name)


__all__ = ["SearchEngine", "SEARCH_COMMAND"]
