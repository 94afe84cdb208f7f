import json
import tempfile
import unittest
from pathlib import Path

from matetrainer.progress import (
    ProgressStore,
    PuzzleProgress,
    build_completion_update,
    build_failure_update,
    build_hint_update,
    compute_stats,
)


class ProgressUpdateTests(unittest.TestCase):
    def test_failure_update(self) -> None:
        self.assertEqual(build_failure_update(None), {"status": "fail", "fail_count": 1})
        prev = PuzzleProgress(fail_count=2)
        self.assertEqual(build_failure_update(prev)["fail_count"], 3)

    def test_completion_update_counts_attempts(self) -> None:
        update = build_completion_update(None, True, 4200)
        self.assertEqual(
            update,
            {"status": "success", "time_ms": 4200, "attempts": 1, "success_count": 1, "fail_count": 0},
        )
        prev = PuzzleProgress(status="fail", attempts=1, fail_count=1)
        update = build_completion_update(prev, False, 900)
        self.assertEqual(update["status"], "fail")
        self.assertEqual(update["attempts"], 2)
        self.assertEqual(update["success_count"], 0)
        self.assertEqual(update["fail_count"], 1)

    def test_hint_update(self) -> None:
        self.assertEqual(build_hint_update(PuzzleProgress(hint_count=4)), {"hint_count": 5})

    def test_compute_stats(self) -> None:
        stats = compute_stats({
            1: PuzzleProgress(status="success", time_ms=1000, hint_count=1),
            2: PuzzleProgress(status="success", time_ms=3000),
            3: PuzzleProgress(status="fail", time_ms=500, hint_count=2),
            4: PuzzleProgress(),
        })
        self.assertEqual(stats.total_attempted, 3)
        self.assertEqual(stats.total_solved, 2)
        self.assertAlmostEqual(stats.success_rate, 2 / 3)
        self.assertEqual(stats.average_solve_time_ms, 2000)
        self.assertEqual(stats.total_hints_used, 3)

    def test_compute_stats_empty(self) -> None:
        stats = compute_stats({})
        self.assertEqual(stats.success_rate, 0.0)
        self.assertIsNone(stats.average_solve_time_ms)


class ProgressStoreTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.path = Path(self._tmp.name) / "progress.json"

    def test_missing_file_gives_defaults(self) -> None:
        store = ProgressStore(self.path)
        self.assertEqual(store.current_puzzle_id, 1)
        self.assertEqual(store.puzzles, {})
        self.assertFalse(self.path.exists())

    def test_save_and_load_round_trip(self) -> None:
        store = ProgressStore(self.path)
        store.current_puzzle_id = 3
        store.update(3, build_completion_update(None, True, 1234))
        store.update(3, build_hint_update(store.get(3)))

        reloaded = ProgressStore(self.path)
        self.assertEqual(reloaded.current_puzzle_id, 3)
        entry = reloaded.get(3)
        assert entry is not None
        self.assertEqual(entry.status, "success")
        self.assertEqual(entry.time_ms, 1234)
        self.assertEqual(entry.hint_count, 1)
        self.assertEqual(reloaded.stats().total_solved, 1)

    def test_corrupt_file_gives_defaults(self) -> None:
        self.path.write_text("{bad json", encoding="utf-8")
        self.assertEqual(ProgressStore(self.path).puzzles, {})

    def test_unknown_version_gives_defaults(self) -> None:
        self.path.write_text(
            json.dumps({"version": 99, "data": {"current_puzzle_id": 5, "puzzles": {}}}),
            encoding="utf-8",
        )
        self.assertEqual(ProgressStore(self.path).current_puzzle_id, 1)

    def test_clear(self) -> None:
        store = ProgressStore(self.path)
        store.update(1, build_failure_update(None))
        store.clear()
        self.assertEqual(ProgressStore(self.path).puzzles, {})
