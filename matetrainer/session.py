"""
TrainerSession — everything around the state machine that a trainer UI needs.

Owns one long-lived PuzzleStateMachine and wires it to the puzzle set, the
(optional) engine, a timer, the two-step hint reveal, per-puzzle resume
state and the progress store. The CLI and the WebSocket handler both drive a
TrainerSession; neither talks to the state machine directly.

Engine ownership stays with the caller: close() disposes the state machine
only.

Usage:
    session = TrainerSession(puzzles, engine=engine, progress=store,
                             on_change=redraw)
    session.start()
    await session.make_move("a1", "a8")
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Literal, Sequence

from matetrainer.engine import UciEngine
from matetrainer.engine.errors import EngineError
from matetrainer.events import FeedbackEvent, PuzzleCompleteEvent, PuzzleFailedEvent
from matetrainer.models import Move, PromotionPiece, PuzzleRecord, PuzzleSnapshot, ResumeState
from matetrainer.progress import (
    DerivedStats,
    ProgressStore,
    build_completion_update,
    build_failure_update,
    build_hint_update,
    compute_stats,
)
from matetrainer.puzzle import OPPONENT_DELAY, PuzzleStateMachine
from matetrainer.puzzle_set import get_puzzle_by_id
from matetrainer.strategies import (
    EngineStrategy,
    PuzzleStrategy,
    RecordedSolutionStrategy,
    create_strategy,
)
from matetrainer.timer import PuzzleTimer

logger = logging.getLogger(__name__)

HintStep = Literal[0, 1, 2]


@dataclass(frozen=True)
class SessionState:
    """Resumable per-puzzle state kept while the user browses other puzzles."""

    resume: ResumeState
    timer_ms: int
    timer_running: bool
    hint_step: HintStep = 0
    hint_move: Move | None = None


class TrainerSession:
    def __init__(
        self,
        puzzles: Sequence[PuzzleRecord],
        engine: UciEngine | None = None,
        progress: ProgressStore | None = None,
        *,
        on_change: Callable[[], None] | None = None,
        on_feedback: Callable[[FeedbackEvent], None] | None = None,
        on_puzzle_failed: Callable[[PuzzleFailedEvent], None] | None = None,
        on_puzzle_complete: Callable[[PuzzleCompleteEvent], None] | None = None,
        opponent_delay: float = OPPONENT_DELAY,
        engine_depth: int | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if not puzzles:
            raise ValueError("TrainerSession needs at least one puzzle")
        self._puzzles = sorted(puzzles, key=lambda p: p.id)
        self._engine = engine
        self._progress = progress
        self._engine_depth = engine_depth

        self._on_change = on_change
        self._on_feedback = on_feedback
        self._on_puzzle_failed = on_puzzle_failed
        self._on_puzzle_complete = on_puzzle_complete

        self._machine = PuzzleStateMachine(
            on_change=self._handle_change,
            on_feedback=self._handle_feedback,
            opponent_delay=opponent_delay,
        )
        self._timer = PuzzleTimer(clock)
        self._sessions: dict[int, SessionState] = {}
        self._current: PuzzleRecord | None = None

        self._hint_step: HintStep = 0
        self._hint_move: Move | None = None
        self._hint_loading = False
        self._hint_request_id = 0

        self._hydrating = False
        self._prev_phase = "loading"
        self._prev_failed = False

    # ------------------------------------------------------------------ #
    # State                                                                #
    # ------------------------------------------------------------------ #

    @property
    def machine(self) -> PuzzleStateMachine:
        return self._machine

    @property
    def timer(self) -> PuzzleTimer:
        return self._timer

    @property
    def puzzles(self) -> list[PuzzleRecord]:
        return list(self._puzzles)

    @property
    def current_puzzle(self) -> PuzzleRecord | None:
        return self._current

    @property
    def current_puzzle_id(self) -> int | None:
        return self._current.id if self._current else None

    @property
    def progress(self) -> ProgressStore | None:
        return self._progress

    @property
    def hint_step(self) -> HintStep:
        return self._hint_step

    @property
    def hint_move(self) -> Move | None:
        return self._hint_move

    @property
    def is_hint_loading(self) -> bool:
        return self._hint_loading

    @property
    def uses_engine(self) -> bool:
        return isinstance(self._machine.strategy, EngineStrategy)

    @property
    def is_first_puzzle(self) -> bool:
        return self._current is None or self._current.id == self._puzzles[0].id

    @property
    def is_last_puzzle(self) -> bool:
        return self._current is None or self._current.id == self._puzzles[-1].id

    @property
    def is_at_initial_state(self) -> bool:
        if self._current is None:
            return True
        return (
            self._machine.position == self._current.start_position
            and not self._machine.history
            and self._machine.pending_record is None
            and not self._machine.is_failed
        )

    def snapshot(self) -> PuzzleSnapshot:
        return self._machine.snapshot()

    def promotion_options(self, from_square: str, to_square: str) -> list[PromotionPiece]:
        return self._machine.promotion_options(from_square, to_square)

    def stats(self) -> DerivedStats:
        if self._progress is None:
            return compute_stats({})
        return self._progress.stats()

    def session_state(self, puzzle_id: int) -> SessionState | None:
        return self._sessions.get(puzzle_id)

    # ------------------------------------------------------------------ #
    # Navigation                                                           #
    # ------------------------------------------------------------------ #

    def start(self) -> None:
        """Load the puzzle the progress store points at, or the first one."""
        wanted = self._progress.current_puzzle_id if self._progress else self._puzzles[0].id
        if get_puzzle_by_id(self._puzzles, wanted) is None:
            wanted = self._puzzles[0].id
        self.load(wanted)

    def load(self, puzzle_id: int) -> None:
        """
        Switch to *puzzle_id*, rejoining it where it was left if it was
        visited earlier in this session.

        Raises:
            KeyError: no puzzle with that id.
        """
        record = get_puzzle_by_id(self._puzzles, puzzle_id)
        if record is None:
            raise KeyError(f"Unknown puzzle id: {puzzle_id}")

        self._persist_current()
        restored = self._sessions.get(puzzle_id)
        resume = restored.resume if restored else None
        strategy = create_strategy(
            record,
            self._engine,
            initial_index=resume.plies_played if resume else 0,
            depth=self._engine_depth,
        )
        logger.info(
            "Loading puzzle #%d (mate in %d), strategy=%s",
            record.id, record.mate_depth, type(strategy).__name__,
        )

        self._current = record
        if self._progress is not None:
            self._progress.current_puzzle_id = record.id
        self._hydrate(record, strategy, resume)

        complete = self._machine.phase == "complete"
        if restored is not None:
            self._timer.hydrate(restored.timer_ms, restored.timer_running and not complete)
            self._hint_step = 0 if complete else restored.hint_step
            self._hint_move = None if complete else restored.hint_move
        else:
            self._timer.hydrate(0, not complete)
            self._hint_step, self._hint_move = 0, None
        self._notify()

    def next_puzzle(self) -> None:
        index = self._current_index()
        if index < len(self._puzzles) - 1:
            self.load(self._puzzles[index + 1].id)

    def previous_puzzle(self) -> None:
        index = self._current_index()
        if index > 0:
            self.load(self._puzzles[index - 1].id)

    def go_to(self, puzzle_id: int) -> None:
        """Jump to *puzzle_id*, clamped to the ids in the puzzle set."""
        clamped = max(self._puzzles[0].id, min(self._puzzles[-1].id, puzzle_id))
        if self._current is not None and clamped == self._current.id:
            return
        self.load(clamped)

    def reset(self) -> None:
        """Restart the current puzzle from its start position. The clock keeps running."""
        if self._current is None or self.is_at_initial_state:
            return
        record = self._current
        strategy = create_strategy(record, self._engine, depth=self._engine_depth)
        logger.info("Resetting puzzle #%d", record.id)
        self._hydrate(record, strategy, None)
        self._timer.start()
        self._notify()

    # ------------------------------------------------------------------ #
    # Play                                                                 #
    # ------------------------------------------------------------------ #

    async def make_move(
        self,
        from_square: str,
        to_square: str,
        promotion: PromotionPiece | None = None,
    ) -> None:
        self._clear_hint()
        try:
            await self._machine.make_move(from_square, to_square, promotion)
        except EngineError as exc:
            logger.warning(
                "Engine failed judging %s%s (%s); continuing with the recorded solution",
                from_square, to_square, exc,
            )
            self._fall_back_to_solution()
            await self._machine.make_move(from_square, to_square, promotion)

    async def request_hint(self) -> None:
        """
        Advance the hint reveal: fetch a suggestion and show its origin
        square, then show its destination, then play it.
        """
        if self._current is None or self._machine.phase == "complete" or self._hint_loading:
            return

        if self._hint_step == 2 and self._hint_move is not None:
            move = self._hint_move
            await self.make_move(move.from_square, move.to_square, move.promotion)
            return

        if self._hint_step == 1 and self._hint_move is not None:
            self._hint_step = 2
            self._notify()
            return

        self._hint_request_id += 1
        request_id = self._hint_request_id
        puzzle_id = self._current.id
        self._hint_loading = True
        self._notify()

        suggestion: Move | None = None
        try:
            suggestion = await self._machine.suggest_move()
        except EngineError as exc:
            logger.warning("Hint request failed: %s", exc)

        if request_id != self._hint_request_id:
            logger.debug("Dropping stale hint for puzzle #%d", puzzle_id)
            return
        self._hint_loading = False
        if suggestion is None:
            self._notify()
            return

        self._hint_move = suggestion
        self._hint_step = 1
        if self._progress is not None:
            self._progress.update(puzzle_id, build_hint_update(self._progress.get(puzzle_id)))
        self._notify()

    def close(self) -> None:
        self._persist_current()
        self._hint_request_id += 1
        self._machine.dispose()
        self._timer.stop()

    # ------------------------------------------------------------------ #
    # Internals                                                            #
    # ------------------------------------------------------------------ #

    def _hydrate(
        self,
        record: PuzzleRecord,
        strategy: PuzzleStrategy,
        resume: ResumeState | None,
    ) -> None:
        self._hint_request_id += 1
        self._hint_loading = False
        self._hydrating = True
        try:
            self._machine.load_puzzle(record, strategy, resume)
        finally:
            self._hydrating = False
        self._prev_phase = self._machine.phase
        self._prev_failed = self._machine.is_failed

    def _fall_back_to_solution(self) -> None:
        assert self._current is not None
        resume = self._machine.resume_state()
        strategy = RecordedSolutionStrategy(
            self._current.solution_moves,
            initial_index=resume.plies_played if resume else 0,
        )
        self._hydrate(self._current, strategy, resume)
        self._notify()

    def _persist_current(self) -> None:
        if self._current is None:
            return
        resume = self._machine.resume_state()
        if resume is None:
            return
        complete = resume.phase == "complete"
        self._sessions[self._current.id] = SessionState(
            resume=resume,
            timer_ms=self._timer.elapsed_ms,
            timer_running=self._timer.is_running and not complete,
            hint_step=0 if complete else self._hint_step,
            hint_move=None if complete else self._hint_move,
        )

    def _current_index(self) -> int:
        if self._current is None:
            return 0
        return next(i for i, p in enumerate(self._puzzles) if p.id == self._current.id)

    def _clear_hint(self) -> None:
        self._hint_request_id += 1
        self._hint_step = 0
        self._hint_move = None
        self._hint_loading = False

    def _handle_feedback(self, event: FeedbackEvent) -> None:
        if self._on_feedback is not None:
            self._on_feedback(event)

    def _handle_change(self) -> None:
        if self._hydrating:
            return
        self._observe_transitions()
        self._notify()

    def _observe_transitions(self) -> None:
        if self._current is None:
            return
        puzzle_id = self._current.id
        phase = self._machine.phase
        failed = self._machine.is_failed

        if failed and not self._prev_failed:
            elapsed = self._timer.elapsed_ms
            logger.info("Puzzle #%d failed after %d ms", puzzle_id, elapsed)
            if self._progress is not None:
                self._progress.update(puzzle_id, build_failure_update(self._progress.get(puzzle_id)))
            if self._on_puzzle_failed is not None:
                self._on_puzzle_failed(PuzzleFailedEvent(puzzle_id=puzzle_id, time_ms=elapsed))
        self._prev_failed = failed

        if phase == "complete" and self._prev_phase != "complete":
            final_ms = self._timer.stop()
            success = not failed
            logger.info("Puzzle #%d complete: success=%s in %d ms", puzzle_id, success, final_ms)
            self._hint_step, self._hint_move = 0, None
            if self._progress is not None:
                self._progress.update(
                    puzzle_id,
                    build_completion_update(self._progress.get(puzzle_id), success, final_ms),
                )
            if self._on_puzzle_complete is not None:
                self._on_puzzle_complete(
                    PuzzleCompleteEvent(puzzle_id=puzzle_id, time_ms=final_ms, success=success)
                )
        self._prev_phase = phase

    def _notify(self) -> None:
        if self._on_change is not None:
            self._on_change()
