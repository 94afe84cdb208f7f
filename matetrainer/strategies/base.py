"""
Puzzle strategy contract and the validation result it produces.

A strategy is the state machine's source of truth for correctness. The two
implementations share no state, only this shape, so the contract is a
structural Protocol rather than a base class: anything with these two
coroutines and the free_play_both_sides flag can drive a puzzle.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from matetrainer.models import Move


@dataclass(frozen=True)
class MoveValidation:
    is_correct: bool
    opponent_reply: Move | None = None


@runtime_checkable
class PuzzleStrategy(Protocol):
    # True: once failed, the human plays both sides of the free-play
    # continuation. False: the strategy keeps supplying the opponent's moves.
    free_play_both_sides: bool

    async def validate_move(
        self,
        position: str,
        user_move: Move,
        remaining_mate_depth: int,
    ) -> MoveValidation:
        """
        Judge *user_move*, already applied to reach *position*.

        remaining_mate_depth counts the user moves still available after this
        one to finish the mate. The returned opponent_reply, if any, is played
        on the board by the state machine.
        """
        ...

    async def get_opponent_move(self, position: str) -> Move | None:
        """Best move for the side to move in *position*, or None if there is none."""
        ...
