"""
EngineStrategy — delegates correctness and the opponent's replies to the engine.

A user move is correct iff, analysing the position after it (opponent to
move), the engine reports a forced mate against the opponent within the user
moves still available. A centipawn score, however large, means the announced
mate is gone.
"""

from __future__ import annotations

import logging
from typing import Protocol

from matetrainer.engine.errors import EngineError
from matetrainer.models import Move
from matetrainer.strategies.base import MoveValidation
from matetrainer.uci import AnalysisResult

logger = logging.getLogger(__name__)


class Analyzer(Protocol):
    async def analyze(self, position: str, depth: int | None = None) -> AnalysisResult: ...


def is_forced_mate(result: AnalysisResult, remaining_mate_depth: int) -> bool:
    score = result.score
    if score is None or score.kind != "mate":
        return False
    # Scores are from the side to move (the opponent): negative means it gets mated.
    return score.value < 0 and abs(score.value) <= remaining_mate_depth


class EngineStrategy:
    free_play_both_sides = False

    def __init__(self, engine: Analyzer, depth: int | None = None) -> None:
        self._engine = engine
        self._depth = depth

    async def validate_move(
        self,
        position: str,
        user_move: Move,
        remaining_mate_depth: int,
    ) -> MoveValidation:
        result = await self._analyze(position)
        is_correct = is_forced_mate(result, remaining_mate_depth)
        logger.info(
            "validate_move: %s correct=%s score=%s reply=%s remaining=%d",
            user_move, is_correct, result.score, result.best_move, remaining_mate_depth,
        )
        return MoveValidation(is_correct=is_correct, opponent_reply=result.best_move)

    async def get_opponent_move(self, position: str) -> Move | None:
        result = await self._analyze(position)
        logger.info("get_opponent_move: best_move=%s", result.best_move)
        return result.best_move

    async def _analyze(self, position: str) -> AnalysisResult:
        try:
            return await self._engine.analyze(position, self._depth)
        except EngineError as exc:
            logger.warning("Engine analysis failed for %s: %s", position, exc)
            raise
