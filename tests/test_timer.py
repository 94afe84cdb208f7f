import unittest

from matetrainer.timer import PuzzleTimer, format_time


class _Clock:
    def __init__(self) -> None:
        self.now = 100.0

    def __call__(self) -> float:
        return self.now


class PuzzleTimerTests(unittest.TestCase):
    def setUp(self) -> None:
        self.clock = _Clock()
        self.timer = PuzzleTimer(self.clock)

    def test_accumulates_across_pauses(self) -> None:
        self.timer.start()
        self.clock.now += 1.5
        self.assertEqual(self.timer.elapsed_ms, 1500)
        self.assertEqual(self.timer.stop(), 1500)
        self.assertFalse(self.timer.is_running)

        self.clock.now += 10
        self.assertEqual(self.timer.elapsed_ms, 1500)

        self.timer.start()
        self.clock.now += 0.5
        self.assertEqual(self.timer.stop(), 2000)

    def test_start_twice_does_not_restart(self) -> None:
        self.timer.start()
        self.clock.now += 1
        self.timer.start()
        self.clock.now += 1
        self.assertEqual(self.timer.elapsed_ms, 2000)

    def test_reset(self) -> None:
        self.timer.start()
        self.clock.now += 3
        self.timer.reset()
        self.assertEqual(self.timer.elapsed_ms, 0)
        self.assertFalse(self.timer.is_running)

    def test_hydrate_resumes_from_saved_reading(self) -> None:
        self.timer.hydrate(4000, running=True)
        self.clock.now += 1
        self.assertEqual(self.timer.elapsed_ms, 5000)

        self.timer.hydrate(7000, running=False)
        self.clock.now += 1
        self.assertEqual(self.timer.elapsed_ms, 7000)
        self.assertFalse(self.timer.is_running)

    def test_format_time(self) -> None:
        self.assertEqual(format_time(0), "00:00")
        self.assertEqual(format_time(61_999), "01:01")
        self.assertEqual(format_time(3_600_000), "60:00")
