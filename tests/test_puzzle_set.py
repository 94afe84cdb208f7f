import json
import tempfile
import unittest
from pathlib import Path

from matetrainer.models import Move
from matetrainer.puzzle_set import (
    PuzzleSetError,
    get_puzzle_by_id,
    load_puzzles,
    mate_depth_from_type,
    parse_move,
    parse_moves,
)

_ENTRY = {
    "problemid": 7,
    "first": "Black to Move",
    "type": "Mate in One",
    "fen": "r5k1/8/8/8/8/8/5PPP/6K1 b - - 0 1",
    "moves": "a8-a1",
}


class ParseMoveTests(unittest.TestCase):
    def test_plain_and_promotion(self) -> None:
        self.assertEqual(parse_move("e2-e4"), Move("e2", "e4"))
        self.assertEqual(parse_move("e7-e8q"), Move("e7", "e8", "q"))

    def test_sequence(self) -> None:
        self.assertEqual(
            parse_moves("a2-a8;d8-a8;a1-a8"),
            (Move("a2", "a8"), Move("d8", "a8"), Move("a1", "a8")),
        )

    def test_malformed_moves_raise(self) -> None:
        for raw in ("e2e4", "i2-e4", "e2-e9", "e7-e8k", "e7-e8qq", ""):
            with self.subTest(raw=raw), self.assertRaises(PuzzleSetError):
                parse_move(raw)

    def test_mate_depth_from_type(self) -> None:
        self.assertEqual(mate_depth_from_type("Mate in One"), 1)
        self.assertEqual(mate_depth_from_type("Mate in Three"), 3)
        with self.assertRaises(PuzzleSetError):
            mate_depth_from_type("Mate in Four")


class LoadPuzzlesTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.path = Path(self._tmp.name) / "problems.json"

    def _write(self, data: object) -> None:
        self.path.write_text(json.dumps(data), encoding="utf-8")

    def test_loads_and_sorts_by_id(self) -> None:
        self._write({"problems": [_ENTRY, {**_ENTRY, "problemid": 2, "first": "White to Move",
                                           "type": "Mate in Two"}]})
        puzzles = load_puzzles(self.path)

        self.assertEqual([p.id for p in puzzles], [2, 7])
        black = get_puzzle_by_id(puzzles, 7)
        assert black is not None
        self.assertEqual(black.side_to_move, "black")
        self.assertEqual(black.orientation, "black")
        self.assertEqual(black.mate_depth, 1)
        self.assertEqual(black.solution_moves, (Move("a8", "a1"),))
        self.assertIsNone(get_puzzle_by_id(puzzles, 99))

    def test_missing_file(self) -> None:
        with self.assertRaises(FileNotFoundError):
            load_puzzles(self.path)

    def test_invalid_json(self) -> None:
        self.path.write_text("{not json", encoding="utf-8")
        with self.assertRaises(PuzzleSetError):
            load_puzzles(self.path)

    def test_missing_field(self) -> None:
        entry = dict(_ENTRY)
        del entry["fen"]
        self._write({"problems": [entry]})
        with self.assertRaises(PuzzleSetError):
            load_puzzles(self.path)

    def test_duplicate_ids(self) -> None:
        self._write({"problems": [_ENTRY, _ENTRY]})
        with self.assertRaises(PuzzleSetError):
            load_puzzles(self.path)

    def test_empty_problem_list(self) -> None:
        self._write({"problems": []})
        with self.assertRaises(PuzzleSetError):
            load_puzzles(self.path)

    def test_bundled_puzzle_file(self) -> None:
        bundled = Path(__file__).parent.parent / "data" / "problems.json"
        puzzles = load_puzzles(bundled)
        self.assertEqual([p.id for p in puzzles], [1, 2, 3, 4, 5])
        self.assertEqual(puzzles[2].mate_depth, 2)
