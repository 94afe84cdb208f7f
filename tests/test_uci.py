import unittest

from matetrainer.models import Move
from matetrainer.uci import (
    AnalysisScore,
    BestMove,
    parse_best_move,
    parse_info_line,
    uci_to_move,
)


class ParseBestMoveTests(unittest.TestCase):
    def test_plain_bestmove(self) -> None:
        self.assertEqual(parse_best_move("bestmove e2e4"), BestMove("e2e4", None))

    def test_bestmove_with_ponder(self) -> None:
        self.assertEqual(parse_best_move("bestmove e2e4 ponder e7e5"), BestMove("e2e4", "e7e5"))

    def test_bestmove_none_means_no_move(self) -> None:
        best = parse_best_move("bestmove (none)")
        self.assertIsNotNone(best)
        assert best is not None
        self.assertIsNone(best.move)

    def test_other_lines_are_not_bestmove(self) -> None:
        self.assertIsNone(parse_best_move("info depth 10 score cp 20"))
        self.assertIsNone(parse_best_move("readyok"))


class ParseInfoLineTests(unittest.TestCase):
    def test_mate_score_and_pv(self) -> None:
        info = parse_info_line("info depth 12 seldepth 3 multipv 1 score mate -2 nodes 100 pv d8a8 a1a8")
        assert info is not None
        self.assertEqual(info.depth, 12)
        self.assertEqual(info.score, AnalysisScore("mate", -2))
        self.assertEqual(info.pv, ("d8a8", "a1a8"))

    def test_cp_score(self) -> None:
        info = parse_info_line("info depth 8 score cp -35 nodes 2000 pv e7e5")
        assert info is not None
        self.assertEqual(info.score, AnalysisScore("cp", -35))

    def test_info_without_score(self) -> None:
        info = parse_info_line("info depth 4 currmove e2e4 currmovenumber 1")
        assert info is not None
        self.assertIsNone(info.score)
        self.assertEqual(info.pv, ())

    def test_info_without_depth_is_ignored(self) -> None:
        self.assertIsNone(parse_info_line("info string NNUE evaluation enabled"))

    def test_non_info_lines_are_ignored(self) -> None:
        self.assertIsNone(parse_info_line("bestmove e2e4"))
        self.assertIsNone(parse_info_line("id name Stockfish"))


class UciToMoveTests(unittest.TestCase):
    def test_promotion_is_kept(self) -> None:
        self.assertEqual(uci_to_move("a7a8q"), Move("a7", "a8", "q"))

    def test_unknown_promotion_letter_is_dropped(self) -> None:
        self.assertEqual(uci_to_move("a7a8x"), Move("a7", "a8"))
