"""
Strategy factory.

create_strategy() is the single entry point for choosing how a puzzle is
judged: live engine analysis when a ready engine is available, otherwise the
puzzle's recorded solution.
"""

from __future__ import annotations

from matetrainer.engine import UciEngine
from matetrainer.models import PuzzleRecord
from matetrainer.strategies.base import MoveValidation, PuzzleStrategy
from matetrainer.strategies.engine import Analyzer, EngineStrategy, is_forced_mate
from matetrainer.strategies.solution import RecordedSolutionStrategy

__all__ = [
    "MoveValidation",
    "PuzzleStrategy",
    "Analyzer",
    "EngineStrategy",
    "RecordedSolutionStrategy",
    "is_forced_mate",
    "create_strategy",
]


def create_strategy(
    record: PuzzleRecord,
    engine: UciEngine | None = None,
    initial_index: int = 0,
    depth: int | None = None,
) -> PuzzleStrategy:
    """
    Pick the strategy for *record*.

    initial_index is the number of plies already played when rejoining a
    puzzle; only the recorded-solution strategy needs it.
    """
    if engine is not None and engine.is_ready:
        return EngineStrategy(engine, depth=depth)
    return RecordedSolutionStrategy(record.solution_moves, initial_index=initial_index)
