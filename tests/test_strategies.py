import unittest

from fakes import MATE_IN_TWO, PROMOTION_MATE, ScriptedTransport

from matetrainer.engine import EngineError, UciEngine
from matetrainer.models import Move
from matetrainer.strategies import (
    EngineStrategy,
    PuzzleStrategy,
    RecordedSolutionStrategy,
    create_strategy,
    is_forced_mate,
)
from matetrainer.uci import AnalysisResult, AnalysisScore


def _result(kind: str | None, value: int = 0, best: str | None = None) -> AnalysisResult:
    return AnalysisResult(
        best_move=Move.from_uci(best) if best else None,
        score=AnalysisScore(kind, value) if kind else None,  # type: ignore[arg-type]
    )


class _FakeAnalyzer:
    def __init__(self, *results: AnalysisResult, error: Exception | None = None) -> None:
        self._results = list(results)
        self._error = error
        self.calls: list[tuple[str, int | None]] = []

    async def analyze(self, position: str, depth: int | None = None) -> AnalysisResult:
        self.calls.append((position, depth))
        if self._error is not None:
            raise self._error
        return self._results.pop(0)


class ForcedMateRuleTests(unittest.TestCase):
    def test_mate_against_side_to_move_within_depth(self) -> None:
        self.assertTrue(is_forced_mate(_result("mate", -1), 1))
        self.assertTrue(is_forced_mate(_result("mate", -1), 2))
        self.assertTrue(is_forced_mate(_result("mate", -2), 2))

    def test_mate_too_slow(self) -> None:
        self.assertFalse(is_forced_mate(_result("mate", -3), 2))

    def test_mate_for_side_to_move_is_wrong(self) -> None:
        self.assertFalse(is_forced_mate(_result("mate", 2), 3))

    def test_centipawn_scores_are_never_correct(self) -> None:
        self.assertFalse(is_forced_mate(_result("cp", -5000), 2))
        self.assertFalse(is_forced_mate(_result("cp", 5000), 2))

    def test_missing_score_is_wrong(self) -> None:
        self.assertFalse(is_forced_mate(_result(None), 2))


class RecordedSolutionStrategyTests(unittest.IsolatedAsyncioTestCase):
    async def test_correct_move_returns_scripted_reply(self) -> None:
        strategy = RecordedSolutionStrategy(MATE_IN_TWO.solution_moves)
        result = await strategy.validate_move("fen", Move("a2", "a8"), 1)

        self.assertTrue(result.is_correct)
        self.assertEqual(result.opponent_reply, Move("d8", "a8"))
        self.assertEqual(strategy.index, 2)

        final = await strategy.validate_move("fen", Move("a1", "a8"), 0)
        self.assertTrue(final.is_correct)
        self.assertIsNone(final.opponent_reply)
        self.assertEqual(strategy.index, 3)

    async def test_wrong_move_advances_one_ply_without_reply(self) -> None:
        strategy = RecordedSolutionStrategy(MATE_IN_TWO.solution_moves)
        result = await strategy.validate_move("fen", Move("h2", "h3"), 1)

        self.assertFalse(result.is_correct)
        self.assertIsNone(result.opponent_reply)
        self.assertEqual(strategy.index, 1)

    async def test_promotion_must_match_when_recorded(self) -> None:
        strategy = RecordedSolutionStrategy(PROMOTION_MATE.solution_moves)
        wrong = await strategy.validate_move("fen", Move("a7", "a8", "r"), 0)
        self.assertFalse(wrong.is_correct)

        strategy = RecordedSolutionStrategy(PROMOTION_MATE.solution_moves)
        right = await strategy.validate_move("fen", Move("a7", "a8", "q"), 0)
        self.assertTrue(right.is_correct)

    async def test_unrecorded_promotion_is_ignored(self) -> None:
        strategy = RecordedSolutionStrategy((Move("a2", "a8"),))
        result = await strategy.validate_move("fen", Move("a2", "a8", "q"), 0)
        self.assertTrue(result.is_correct)

    async def test_get_opponent_move_reads_current_index(self) -> None:
        strategy = RecordedSolutionStrategy(MATE_IN_TWO.solution_moves, initial_index=2)
        self.assertEqual(await strategy.get_opponent_move("fen"), Move("a1", "a8"))
        strategy = RecordedSolutionStrategy(MATE_IN_TWO.solution_moves, initial_index=3)
        self.assertIsNone(await strategy.get_opponent_move("fen"))

    async def test_exhausted_solution_is_incorrect(self) -> None:
        strategy = RecordedSolutionStrategy(MATE_IN_TWO.solution_moves, initial_index=3)
        result = await strategy.validate_move("fen", Move("a1", "a8"), 0)
        self.assertFalse(result.is_correct)


class EngineStrategyTests(unittest.IsolatedAsyncioTestCase):
    async def test_forced_mate_is_correct_and_best_move_is_reply(self) -> None:
        analyzer = _FakeAnalyzer(_result("mate", -1, "d8a8"))
        strategy = EngineStrategy(analyzer, depth=9)

        result = await strategy.validate_move("after-fen", Move("a2", "a8"), 1)

        self.assertTrue(result.is_correct)
        self.assertEqual(result.opponent_reply, Move("d8", "a8"))
        self.assertEqual(analyzer.calls, [("after-fen", 9)])

    async def test_non_mating_move_is_incorrect_but_still_answered(self) -> None:
        strategy = EngineStrategy(_FakeAnalyzer(_result("cp", 400, "h7h6")))
        result = await strategy.validate_move("fen", Move("h2", "h3"), 1)
        self.assertFalse(result.is_correct)
        self.assertEqual(result.opponent_reply, Move("h7", "h6"))

    async def test_get_opponent_move_returns_best_move(self) -> None:
        strategy = EngineStrategy(_FakeAnalyzer(_result("cp", 0, "e7e5")))
        self.assertEqual(await strategy.get_opponent_move("fen"), Move("e7", "e5"))

    async def test_engine_failure_propagates(self) -> None:
        strategy = EngineStrategy(_FakeAnalyzer(error=EngineError("gone")))
        with self.assertRaises(EngineError):
            await strategy.validate_move("fen", Move("a2", "a8"), 1)

    def test_only_recorded_strategy_allows_both_sides_in_free_play(self) -> None:
        self.assertFalse(EngineStrategy(_FakeAnalyzer()).free_play_both_sides)
        self.assertTrue(RecordedSolutionStrategy(()).free_play_both_sides)

    def test_both_satisfy_protocol(self) -> None:
        self.assertIsInstance(EngineStrategy(_FakeAnalyzer()), PuzzleStrategy)
        self.assertIsInstance(RecordedSolutionStrategy(()), PuzzleStrategy)


class CreateStrategyTests(unittest.IsolatedAsyncioTestCase):
    async def test_without_engine_uses_recorded_solution(self) -> None:
        strategy = create_strategy(MATE_IN_TWO, None, initial_index=2)
        self.assertIsInstance(strategy, RecordedSolutionStrategy)
        assert isinstance(strategy, RecordedSolutionStrategy)
        self.assertEqual(strategy.index, 2)

    async def test_engine_not_ready_uses_recorded_solution(self) -> None:
        engine = UciEngine(ScriptedTransport())
        self.assertIsInstance(create_strategy(MATE_IN_TWO, engine), RecordedSolutionStrategy)

    async def test_ready_engine_is_used(self) -> None:
        engine = UciEngine(ScriptedTransport())
        await engine.initialize()
        try:
            self.assertIsInstance(create_strategy(MATE_IN_TWO, engine), EngineStrategy)
        finally:
            engine.dispose()
