"""Local progress store: per-puzzle results kept in a JSON file.

The file is versioned; a missing, corrupt or out-of-date file simply yields
fresh defaults.
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, field, replace
from pathlib import Path
from typing import Any, Literal

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1

PuzzleStatus = Literal["unattempted", "success", "fail"]


@dataclass
class PuzzleProgress:
    status: PuzzleStatus = "unattempted"
    time_ms: int | None = None
    attempts: int = 0
    success_count: int = 0
    fail_count: int = 0
    hint_count: int = 0


@dataclass(frozen=True)
class DerivedStats:
    total_attempted: int
    total_solved: int
    success_rate: float
    average_solve_time_ms: float | None
    total_hints_used: int


@dataclass
class Progress:
    current_puzzle_id: int = 1
    puzzles: dict[int, PuzzleProgress] = field(default_factory=dict)


def build_failure_update(previous: PuzzleProgress | None) -> dict[str, Any]:
    return {
        "status": "fail",
        "fail_count": (previous.fail_count if previous else 0) + 1,
    }


def build_completion_update(
    previous: PuzzleProgress | None,
    was_success: bool,
    final_ms: int,
) -> dict[str, Any]:
    return {
        "status": "success" if was_success else "fail",
        "time_ms": final_ms,
        "attempts": (previous.attempts if previous else 0) + 1,
        "success_count": (previous.success_count if previous else 0) + (1 if was_success else 0),
        "fail_count": previous.fail_count if previous else 0,
    }


def build_hint_update(previous: PuzzleProgress | None) -> dict[str, Any]:
    return {"hint_count": (previous.hint_count if previous else 0) + 1}


def compute_stats(puzzles: dict[int, PuzzleProgress]) -> DerivedStats:
    entries = list(puzzles.values())
    attempted = [p for p in entries if p.status != "unattempted"]
    solved = [p for p in entries if p.status == "success"]
    solve_times = [p.time_ms for p in solved if p.time_ms is not None]

    return DerivedStats(
        total_attempted=len(attempted),
        total_solved=len(solved),
        success_rate=len(solved) / len(attempted) if attempted else 0.0,
        average_solve_time_ms=sum(solve_times) / len(solve_times) if solve_times else None,
        total_hints_used=sum(p.hint_count for p in entries),
    )


class ProgressStore:
    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._progress = self._load()

    @property
    def path(self) -> Path:
        return self._path

    @property
    def current_puzzle_id(self) -> int:
        return self._progress.current_puzzle_id

    @current_puzzle_id.setter
    def current_puzzle_id(self, puzzle_id: int) -> None:
        self._progress.current_puzzle_id = puzzle_id
        self.save()

    @property
    def puzzles(self) -> dict[int, PuzzleProgress]:
        return dict(self._progress.puzzles)

    def get(self, puzzle_id: int) -> PuzzleProgress | None:
        return self._progress.puzzles.get(puzzle_id)

    def update(self, puzzle_id: int, changes: dict[str, Any]) -> PuzzleProgress:
        """Merge *changes* into the puzzle's entry and persist."""
        current = self._progress.puzzles.get(puzzle_id) or PuzzleProgress()
        updated = replace(current, **changes)
        self._progress.puzzles[puzzle_id] = updated
        self.save()
        return updated

    def stats(self) -> DerivedStats:
        return compute_stats(self._progress.puzzles)

    def clear(self) -> None:
        self._progress = Progress()
        self.save()

    def save(self) -> None:
        payload = {
            "version": SCHEMA_VERSION,
            "data": {
                "current_puzzle_id": self._progress.current_puzzle_id,
                "puzzles": {
                    str(puzzle_id): asdict(entry)
                    for puzzle_id, entry in sorted(self._progress.puzzles.items())
                },
            },
        }
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(json.dumps(payload, indent=2), encoding="utf-8")

    def _load(self) -> Progress:
        if not self._path.exists():
            return Progress()
        try:
            stored = json.loads(self._path.read_text(encoding="utf-8"))
            if stored.get("version") != SCHEMA_VERSION:
                logger.warning("Ignoring progress file %s (unknown version)", self._path)
                return Progress()
            data = stored["data"]
            return Progress(
                current_puzzle_id=max(1, int(data.get("current_puzzle_id", 1))),
                puzzles={
                    int(puzzle_id): PuzzleProgress(**entry)
                    for puzzle_id, entry in data.get("puzzles", {}).items()
                },
            )
        except (json.JSONDecodeError, KeyError, TypeError, ValueError, AttributeError) as exc:
            logger.warning("Ignoring unreadable progress file %s: %s", self._path, exc)
            return Progress()
