"""Pausable elapsed-time clock for a single puzzle attempt."""

from __future__ import annotations

import time
from typing import Callable


class PuzzleTimer:
    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._started_at: float | None = None
        self._accumulated_ms = 0

    @property
    def elapsed_ms(self) -> int:
        if self._started_at is None:
            return self._accumulated_ms
        return self._accumulated_ms + int((self._clock() - self._started_at) * 1000)

    @property
    def is_running(self) -> bool:
        return self._started_at is not None

    def start(self) -> None:
        if self._started_at is None:
            self._started_at = self._clock()

    def stop(self) -> int:
        """Pause the clock and return the total elapsed milliseconds."""
        if self._started_at is not None:
            self._accumulated_ms = self.elapsed_ms
            self._started_at = None
        return self._accumulated_ms

    def reset(self) -> None:
        self._started_at = None
        self._accumulated_ms = 0

    def hydrate(self, elapsed_ms: int, running: bool) -> None:
        """Restore a saved reading, optionally resuming the clock from it."""
        self._accumulated_ms = max(0, int(elapsed_ms))
        self._started_at = self._clock() if running else None

    @property
    def formatted(self) -> str:
        return format_time(self.elapsed_ms)


def format_time(ms: int) -> str:
    total_seconds = ms // 1000
    minutes, seconds = divmod(total_seconds, 60)
    return f"{minutes:02d}:{seconds:02d}"
