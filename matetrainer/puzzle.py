"""
Puzzle state machine — the core orchestrator of one puzzle attempt.

This module is UI-agnostic. It never prints and has no Rich/FastAPI
dependencies; consumers re-read snapshot() whenever on_change fires and
receive judged moves through on_feedback.

Phases:
    loading → playing → validating → opponent_turn → playing … → complete

Once a move is judged incorrect the failure flag sticks for the rest of the
attempt and the puzzle continues as free play: no more judging, but the
position stays playable to the end.

Every await (strategy calls and the presentation delay before an opponent
reply) captures the generation counter first and re-checks it on resume.
load_puzzle() and dispose() bump the generation, so any continuation that
wakes up afterwards is a silent no-op.

Usage:
    machine = PuzzleStateMachine(on_change=render, on_feedback=flash)
    machine.load_puzzle(record, create_strategy(record, engine))
    await machine.make_move("e2", "e4")
"""

from __future__ import annotations

import asyncio
import copy
import logging
from typing import Callable

from matetrainer.board import ChessBoard
from matetrainer.engine.errors import EngineError, IllegalReply
from matetrainer.events import Color, FeedbackEvent, FeedbackKind, Phase
from matetrainer.models import (
    Move,
    MoveRecord,
    OpponentMove,
    PromotionPiece,
    PuzzleRecord,
    PuzzleSnapshot,
    ResumeState,
    UserMove,
)
from matetrainer.strategies.base import PuzzleStrategy

logger = logging.getLogger(__name__)

OPPONENT_DELAY = 0.4  # seconds between a judged move and the opponent's reply


class PuzzleStateMachine:
    """Drives one puzzle at a time; a single instance is reused across puzzles."""

    def __init__(
        self,
        on_change: Callable[[], None] | None = None,
        on_feedback: Callable[[FeedbackEvent], None] | None = None,
        opponent_delay: float = OPPONENT_DELAY,
    ) -> None:
        self._on_change = on_change
        self._on_feedback = on_feedback
        self._opponent_delay = opponent_delay

        self._board: ChessBoard | None = None
        self._strategy: PuzzleStrategy | None = None
        self._puzzle: PuzzleRecord | None = None
        self._generation = 0
        self._feedback_sequence = 0
        self._user_move_count = 0

        self._phase: Phase = "loading"
        self._is_failed = False
        self._history: list[MoveRecord] = []
        self._pending: MoveRecord | None = None
        self._last_move: tuple[str, str] | None = None
        self._feedback_event: FeedbackEvent | None = None

        # Position just before the move currently being validated/answered.
        self._fen_before_move: str | None = None
        self._last_move_before: tuple[str, str] | None = None

        self._delay_handle: asyncio.TimerHandle | None = None
        self._delay_future: asyncio.Future[None] | None = None

    # ------------------------------------------------------------------ #
    # State queries                                                        #
    # ------------------------------------------------------------------ #

    @property
    def phase(self) -> Phase:
        return self._phase

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def position(self) -> str:
        return self._board.fen if self._board else ""

    @property
    def orientation(self) -> Color:
        return self._puzzle.orientation if self._puzzle else "white"

    @property
    def turn(self) -> Color:
        return self._board.turn if self._board else "white"

    @property
    def is_failed(self) -> bool:
        return self._is_failed

    @property
    def is_check(self) -> bool:
        return self._board.is_check if self._board else False

    @property
    def history(self) -> tuple[MoveRecord, ...]:
        return tuple(self._history)

    @property
    def pending_record(self) -> MoveRecord | None:
        return self._pending

    @property
    def last_move(self) -> tuple[str, str] | None:
        return self._last_move

    @property
    def puzzle(self) -> PuzzleRecord | None:
        return self._puzzle

    @property
    def strategy(self) -> PuzzleStrategy | None:
        return self._strategy

    @property
    def feedback_event(self) -> FeedbackEvent | None:
        return self._feedback_event

    @property
    def plies_applied(self) -> int:
        return self._board.ply_count if self._board else 0

    @property
    def is_interactive(self) -> bool:
        if self._phase != "playing" or self._strategy is None:
            return False
        if self._is_failed and self._strategy.free_play_both_sides:
            return True
        return self.turn == self.orientation

    def destinations(self) -> dict[str, list[str]]:
        return self._board.legal_destinations() if self._board else {}

    def promotion_options(self, from_square: str, to_square: str) -> list[PromotionPiece]:
        return self._board.promotion_options(from_square, to_square) if self._board else []

    def snapshot(self) -> PuzzleSnapshot:
        return PuzzleSnapshot(
            phase=self._phase,
            position=self.position,
            orientation=self.orientation,
            turn=self.turn,
            destinations=self.destinations(),
            last_move=self._last_move,
            is_failed=self._is_failed,
            is_interactive=self.is_interactive,
            is_check=self.is_check,
            history=tuple(self._history),
            pending=copy.deepcopy(self._pending),
            puzzle=self._puzzle,
            feedback=self._feedback_event,
        )

    def resume_state(self) -> ResumeState | None:
        """
        State to hand back to load_puzzle() when rejoining this attempt.

        A move still being validated or answered is not persisted: the
        resumed attempt restarts from the position before it.
        """
        if self._board is None or self._phase == "loading":
            return None
        if self._phase in ("validating", "opponent_turn") and self._fen_before_move:
            return ResumeState(
                position=self._fen_before_move,
                phase="playing",
                is_failed=self._is_failed,
                history=copy.deepcopy(tuple(self._history)),
                last_move=self._last_move_before,
            )
        return ResumeState(
            position=self._board.fen,
            phase="complete" if self._phase == "complete" else "playing",
            is_failed=self._is_failed,
            history=copy.deepcopy(tuple(self._history)),
            pending=copy.deepcopy(self._pending),
            last_move=self._last_move,
        )

    # ------------------------------------------------------------------ #
    # Public operations                                                    #
    # ------------------------------------------------------------------ #

    def load_puzzle(
        self,
        record: PuzzleRecord,
        strategy: PuzzleStrategy,
        resume: ResumeState | None = None,
    ) -> None:
        """Start (or rejoin) *record*, orphaning any in-flight work of the previous one."""
        self._clear_delay()
        self._generation += 1
        self._puzzle = record
        self._strategy = strategy
        self._feedback_event = None
        self._fen_before_move = None
        self._last_move_before = None

        if resume is None:
            self._board = ChessBoard(record.start_position)
            self._phase = "playing"
            self._is_failed = False
            self._history = []
            self._pending = None
            self._last_move = None
            self._user_move_count = 0
        else:
            self._board = ChessBoard(resume.position)
            self._phase = resume.phase
            self._is_failed = resume.is_failed
            self._history = list(copy.deepcopy(resume.history))
            self._pending = copy.deepcopy(resume.pending)
            self._last_move = resume.last_move
            self._user_move_count = len(self._history) + (1 if self._pending else 0)

        logger.info(
            "Loaded puzzle #%d (mate in %d, generation %d, resumed=%s)",
            record.id, record.mate_depth, self._generation, resume is not None,
        )
        self._notify()

    async def make_move(
        self,
        from_square: str,
        to_square: str,
        promotion: PromotionPiece | None = None,
    ) -> None:
        """
        Play a user move. Silently ignored unless the phase is "playing" and
        the move is legal.

        Raises:
            EngineError: the strategy could not judge the move, or answered it
                with an illegal reply (IllegalReply). The move has been taken
                back and the phase is "playing" again.
        """
        if self._phase != "playing" or self._board is None or self._strategy is None:
            logger.debug("make_move blocked: phase=%s", self._phase)
            return

        gen = self._generation
        board = self._board
        strategy = self._strategy
        resolved = promotion or self._auto_promote(from_square, to_square)
        fen_before = board.fen
        san = board.apply_move(from_square, to_square, resolved)
        if san is None:
            return

        logger.debug(
            "make_move: %s (%s-%s) failed=%s", san, from_square, to_square, self._is_failed
        )
        self._fen_before_move = fen_before
        self._last_move_before = self._last_move
        self._last_move = (from_square, to_square)

        if self._is_failed:
            await self._handle_free_play_move(san, gen)
            return

        self._user_move_count += 1
        record = MoveRecord(
            ordinal=len(self._history) + 1,
            user_move=UserMove(notation=san, was_correct=None),
        )
        self._pending = record

        if board.is_checkmate:
            record.user_move.was_correct = True
            self._emit_feedback("correct")
            self._finalize_record()
            self._phase = "complete"
            self._notify()
            return

        self._phase = "validating"
        self._notify()

        assert self._puzzle is not None
        remaining = self._puzzle.mate_depth - self._user_move_count
        user_move = Move(from_square, to_square, resolved)  # type: ignore[arg-type]
        try:
            result = await strategy.validate_move(board.fen, user_move, remaining)
        except EngineError:
            if gen != self._generation:
                logger.debug("Validation failed for a stale generation; ignoring")
                return
            self._user_move_count -= 1
            self._take_back_move()
            raise

        if gen != self._generation:
            logger.debug("Stale validation result (generation %d != %d)", gen, self._generation)
            return

        record.user_move.was_correct = result.is_correct
        if result.is_correct:
            self._emit_feedback("correct")
        else:
            self._is_failed = True
            self._emit_feedback("incorrect")

        if result.opponent_reply is not None:
            self._phase = "opponent_turn"
            self._notify()
            await self._presentation_delay()
            if gen != self._generation:
                return
            if not self._apply_opponent_move(result.opponent_reply):
                self._user_move_count -= 1
                self._reject_reply(result.opponent_reply)
            return

        if not board.has_legal_moves:
            self._finalize_record()
            self._phase = "complete"
        else:
            # With both sides in human hands a reply will still come; keep the record open.
            if not (self._is_failed and strategy.free_play_both_sides):
                self._finalize_record()
            self._phase = "playing"
        self._notify()

    async def suggest_move(self) -> Move | None:
        """Best move for the side to move, for hints. Reads only; mutates nothing."""
        if self._phase != "playing" or self._board is None or self._strategy is None:
            return None
        gen = self._generation
        move = await self._strategy.get_opponent_move(self._board.fen)
        if gen != self._generation:
            return None
        return move

    def dispose(self) -> None:
        """Orphan all in-flight work and release the delay timer. Idempotent."""
        self._clear_delay()
        self._generation += 1

    # ------------------------------------------------------------------ #
    # Free play (after failure)                                            #
    # ------------------------------------------------------------------ #

    async def _handle_free_play_move(self, san: str, gen: int) -> None:
        assert self._board is not None and self._strategy is not None
        board = self._board
        strategy = self._strategy

        if strategy.free_play_both_sides:
            self._handle_free_play_both_sides(san)
            return

        self._pending = MoveRecord(
            ordinal=len(self._history) + 1,
            user_move=UserMove(notation=san, was_correct=False),
        )

        if not board.has_legal_moves:
            self._finalize_record()
            self._phase = "complete"
            self._notify()
            return

        self._phase = "opponent_turn"
        self._notify()

        try:
            reply = await strategy.get_opponent_move(board.fen)
        except EngineError:
            if gen != self._generation:
                return
            self._take_back_move()
            raise

        if gen != self._generation:
            return

        logger.debug("Free-play opponent reply: %s", reply)
        if reply is not None:
            await self._presentation_delay()
            if gen != self._generation:
                return
            if not self._apply_opponent_move(reply):
                self._reject_reply(reply)
        else:
            self._finalize_record()
            self._phase = "playing" if board.has_legal_moves else "complete"
            self._notify()

    def _handle_free_play_both_sides(self, san: str) -> None:
        assert self._board is not None
        side_just_moved: Color = "black" if self._board.turn == "white" else "white"

        if side_just_moved == self.orientation:
            self._pending = MoveRecord(
                ordinal=len(self._history) + 1,
                user_move=UserMove(notation=san, was_correct=False),
            )
            if not self._board.has_legal_moves:
                self._finalize_record()
                self._phase = "complete"
        else:
            if self._pending is not None:
                self._pending.opponent_move = OpponentMove(notation=san)
                self._finalize_record()
            else:
                logger.debug("Opponent-side move %s with no open record", san)
            if not self._board.has_legal_moves:
                self._phase = "complete"

        self._notify()

    # ------------------------------------------------------------------ #
    # Helpers                                                              #
    # ------------------------------------------------------------------ #

    def _apply_opponent_move(self, move: Move) -> bool:
        """Play *move* for the opponent; False, and nothing changed, if it is illegal."""
        assert self._board is not None
        san = self._board.apply_move(move.from_square, move.to_square, move.promotion)
        if san is None:
            logger.warning("Opponent reply %s is not legal in %s", move, self._board.fen)
            return False
        self._last_move = (move.from_square, move.to_square)
        if self._pending is not None:
            self._pending.opponent_move = OpponentMove(notation=san)

        self._finalize_record()
        self._phase = "playing" if self._board.has_legal_moves else "complete"
        self._notify()
        return True

    def _reject_reply(self, move: Move) -> None:
        """Take the user's ply back and report the strategy's illegal reply."""
        assert self._board is not None
        position = self._board.fen
        self._take_back_move()
        raise IllegalReply(f"Opponent reply {move} is not legal in {position}")

    def _take_back_move(self) -> None:
        """Undo the user's ply after the strategy failed to answer for it."""
        assert self._board is not None
        self._board.undo()
        self._pending = None
        self._last_move = self._last_move_before
        self._fen_before_move = None
        self._phase = "playing"
        self._notify()

    def _auto_promote(self, from_square: str, to_square: str) -> PromotionPiece | None:
        assert self._board is not None
        if self._board.move_to_san(from_square, to_square) is not None:
            return None
        if self._board.move_to_san(from_square, to_square, "q") is not None:
            return "q"
        return None

    def _finalize_record(self) -> None:
        if self._pending is not None:
            self._history.append(self._pending)
            self._pending = None
        self._fen_before_move = None

    async def _presentation_delay(self) -> None:
        if self._opponent_delay <= 0:
            return
        loop = asyncio.get_running_loop()
        future: asyncio.Future[None] = loop.create_future()
        self._delay_future = future
        self._delay_handle = loop.call_later(self._opponent_delay, _resolve, future)
        try:
            await future
        finally:
            if self._delay_future is future:
                self._delay_future = None
                self._delay_handle = None

    def _clear_delay(self) -> None:
        if self._delay_handle is not None:
            self._delay_handle.cancel()
            self._delay_handle = None
        if self._delay_future is not None:
            # Wake the waiter so it can notice the new generation and return.
            _resolve(self._delay_future)
            self._delay_future = None

    def _emit_feedback(self, kind: FeedbackKind) -> None:
        self._feedback_sequence += 1
        self._feedback_event = FeedbackEvent(sequence_id=self._feedback_sequence, kind=kind)
        if self._on_feedback is not None:
            self._on_feedback(self._feedback_event)

    def _notify(self) -> None:
        if self._on_change is not None:
            self._on_change()


def _resolve(future: asyncio.Future[None]) -> None:
    if not future.done():
        future.set_result(None)
