"""Scripted stand-ins shared by the engine, strategy and session tests."""

from __future__ import annotations

import asyncio

from matetrainer.engine.transport import CloseHandler, LineHandler, LineTransport
from matetrainer.models import Move, PuzzleRecord
from matetrainer.puzzle_set import parse_moves
from matetrainer.strategies.base import MoveValidation


class ScriptedTransport(LineTransport):
    """In-memory engine: records commands, acknowledges the handshake on request."""

    def __init__(self, *, auto_ack: bool = True, fail_start: bool = False) -> None:
        self.sent: list[str] = []
        self.closed = False
        self.waited_closed = False
        self._auto_ack = auto_ack
        self._fail_start = fail_start
        self._on_line: LineHandler | None = None
        self._on_close: CloseHandler | None = None

    async def start(self, on_line: LineHandler, on_close: CloseHandler | None = None) -> None:
        if self._fail_start:
            raise OSError("no such engine")
        self._on_line = on_line
        self._on_close = on_close

    def send(self, command: str) -> None:
        self.sent.append(command)
        if not self._auto_ack:
            return
        loop = asyncio.get_running_loop()
        if command == "uci":
            loop.call_soon(self.emit, "uciok")
        elif command == "isready":
            loop.call_soon(self.emit, "readyok")

    def close(self) -> None:
        self.closed = True

    async def wait_closed(self) -> None:
        self.waited_closed = True

    def emit(self, line: str) -> None:
        assert self._on_line is not None
        self._on_line(line)

    def die(self) -> None:
        assert self._on_close is not None
        self._on_close()


class GatedStrategy:
    """Strategy whose validate_move blocks until release() is called."""

    free_play_both_sides = True

    def __init__(self, result: MoveValidation | None = None, error: Exception | None = None) -> None:
        self.result = result or MoveValidation(is_correct=True)
        self.error = error
        self.calls = 0
        self._gate = asyncio.Event()

    def release(self) -> None:
        self._gate.set()

    async def validate_move(self, position: str, user_move: Move, remaining_mate_depth: int) -> MoveValidation:
        self.calls += 1
        await self._gate.wait()
        if self.error is not None:
            raise self.error
        return self.result

    async def get_opponent_move(self, position: str) -> Move | None:
        await self._gate.wait()
        if self.error is not None:
            raise self.error
        return None


async def wait_until(predicate, attempts: int = 200) -> None:
    """Yield to the loop until predicate() holds."""
    for _ in range(attempts):
        if predicate():
            return
        await asyncio.sleep(0)
    raise AssertionError("condition never became true")


def make_puzzle(puzzle_id: int, side: str, depth: int, fen: str, moves: str) -> PuzzleRecord:
    return PuzzleRecord(
        id=puzzle_id,
        side_to_move=side,  # type: ignore[arg-type]
        mate_depth=depth,
        start_position=fen,
        solution_moves=parse_moves(moves),
    )


MATE_IN_ONE = make_puzzle(1, "white", 1, "6k1/5ppp/8/8/8/8/8/R5K1 w - - 0 1", "a1-a8")
BLACK_MATE_IN_ONE = make_puzzle(2, "black", 1, "r5k1/8/8/8/8/8/5PPP/6K1 b - - 0 1", "a8-a1")
MATE_IN_TWO = make_puzzle(
    3, "white", 2, "3r3k/6pp/8/8/8/8/R4PPP/R5K1 w - - 0 1", "a2-a8;d8-a8;a1-a8"
)
QUEEN_MATE = make_puzzle(4, "white", 1, "4k3/8/3K4/8/7Q/8/8/8 w - - 0 1", "h4-e7")
PROMOTION_MATE = make_puzzle(5, "white", 1, "7k/P5pp/8/8/8/8/6PP/6K1 w - - 0 1", "a7-a8q")

ALL_PUZZLES = [MATE_IN_ONE, BLACK_MATE_IN_ONE, MATE_IN_TWO, QUEEN_MATE, PROMOTION_MATE]
