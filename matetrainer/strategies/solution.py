"""RecordedSolutionStrategy — judges moves against the puzzle's stored solution line."""

from __future__ import annotations

import logging
from typing import Sequence

from matetrainer.models import Move
from matetrainer.strategies.base import MoveValidation

logger = logging.getLogger(__name__)


class RecordedSolutionStrategy:
    """
    Walks the solution sequence user move, reply, user move, ...

    initial_index lets a resumed session pick up mid-line: it is the number of
    plies already played from the start position.
    """

    free_play_both_sides = True

    def __init__(self, solution: Sequence[Move], initial_index: int = 0) -> None:
        self._solution = tuple(solution)
        self._index = initial_index

    @property
    def index(self) -> int:
        return self._index

    async def validate_move(
        self,
        position: str,
        user_move: Move,
        remaining_mate_depth: int,
    ) -> MoveValidation:
        expected = self._expected()
        is_correct = expected is not None and expected.matches(user_move)
        self._index += 1

        logger.debug(
            "validate_move: user=%s expected=%s correct=%s",
            user_move, expected, is_correct,
        )
        if not is_correct:
            return MoveValidation(is_correct=False)

        reply = self._expected()
        if reply is not None:
            self._index += 1
        return MoveValidation(is_correct=True, opponent_reply=reply)

    async def get_opponent_move(self, position: str) -> Move | None:
        return self._expected()

    def _expected(self) -> Move | None:
        if 0 <= self._index < len(self._solution):
            return self._solution[self._index]
        return None
