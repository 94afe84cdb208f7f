"""
Puzzle-set loader — reads the problems JSON file into PuzzleRecord values.

File format:
    {"problems": [
        {"problemid": 1, "first": "White to Move", "type": "Mate in One",
         "fen": "...", "moves": "a1-a8"},
        ...
    ]}

Solution moves are "from-to" pairs separated by ";", with an optional
promotion letter after the destination square ("e7-e8q").
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Sequence

from matetrainer.events import Color
from matetrainer.models import PROMOTION_PIECES, Move, PuzzleRecord, is_valid_square

logger = logging.getLogger(__name__)

MOVE_SEPARATOR = ";"

_MATE_DEPTHS = {
    "Mate in One": 1,
    "Mate in Two": 2,
    "Mate in Three": 3,
}

_SIDES: dict[str, Color] = {
    "White to Move": "white",
    "Black to Move": "black",
}


class PuzzleSetError(ValueError):
    """The problems file (or one entry in it) is malformed."""


def parse_move(raw: str) -> Move:
    """Parse "e2-e4" / "e7-e8q"."""
    from_part, sep, to_part = raw.strip().partition("-")
    if not sep:
        raise PuzzleSetError(f"Invalid move format (missing '-'): {raw!r}")
    if not is_valid_square(from_part):
        raise PuzzleSetError(f"Invalid 'from' square {from_part!r} in move {raw!r}")

    to_square = to_part[:2]
    if not is_valid_square(to_square):
        raise PuzzleSetError(f"Invalid 'to' square {to_square!r} in move {raw!r}")
    if len(to_part) > 3:
        raise PuzzleSetError(f"Invalid 'to' portion {to_part!r} in move {raw!r}")

    promotion = to_part[2] if len(to_part) == 3 else None
    if promotion is not None and promotion not in PROMOTION_PIECES:
        raise PuzzleSetError(f"Invalid promotion piece {promotion!r} in move {raw!r}")

    return Move(from_part, to_square, promotion)  # type: ignore[arg-type]


def parse_moves(raw: str) -> tuple[Move, ...]:
    return tuple(parse_move(part) for part in raw.split(MOVE_SEPARATOR))


def mate_depth_from_type(puzzle_type: str) -> int:
    try:
        return _MATE_DEPTHS[puzzle_type]
    except KeyError:
        raise PuzzleSetError(f"Unknown puzzle type: {puzzle_type!r}") from None


def parse_puzzle(raw: dict[str, Any]) -> PuzzleRecord:
    try:
        puzzle_id = raw["problemid"]
        first = raw["first"]
        fen = raw["fen"]
        moves = raw["moves"]
        puzzle_type = raw["type"]
    except (KeyError, TypeError) as exc:
        raise PuzzleSetError(f"Puzzle entry is missing a field: {exc}") from exc

    if not isinstance(puzzle_id, int) or isinstance(puzzle_id, bool) or puzzle_id <= 0:
        raise PuzzleSetError(f"problemid must be a positive integer, got {puzzle_id!r}")
    if first not in _SIDES:
        raise PuzzleSetError(f"Puzzle #{puzzle_id}: unknown side to move {first!r}")
    if not isinstance(fen, str) or not fen.strip():
        raise PuzzleSetError(f"Puzzle #{puzzle_id}: fen must be a non-empty string")
    if not isinstance(moves, str) or not moves.strip():
        raise PuzzleSetError(f"Puzzle #{puzzle_id}: moves must be a non-empty string")

    return PuzzleRecord(
        id=puzzle_id,
        side_to_move=_SIDES[first],
        mate_depth=mate_depth_from_type(puzzle_type),
        start_position=fen.strip(),
        solution_moves=parse_moves(moves),
    )


def load_puzzles(path: str | Path) -> list[PuzzleRecord]:
    """
    Load every puzzle in *path*, ordered by id.

    Raises:
        FileNotFoundError: the file does not exist.
        PuzzleSetError: the file is not valid JSON or an entry is malformed.
    """
    puzzle_path = Path(path)
    if not puzzle_path.exists():
        raise FileNotFoundError(f"Puzzle file not found: {puzzle_path.resolve()}")

    try:
        data = json.loads(puzzle_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise PuzzleSetError(f"{puzzle_path}: invalid JSON ({exc})") from exc

    problems = data.get("problems") if isinstance(data, dict) else None
    if not isinstance(problems, list) or not problems:
        raise PuzzleSetError(f"{puzzle_path}: expected a non-empty 'problems' list")

    puzzles = sorted((parse_puzzle(raw) for raw in problems), key=lambda p: p.id)
    ids = [p.id for p in puzzles]
    if len(set(ids)) != len(ids):
        raise PuzzleSetError(f"{puzzle_path}: duplicate problemid values")

    logger.info("Loaded %d puzzles from %s", len(puzzles), puzzle_path)
    return puzzles


def get_puzzle_by_id(puzzles: Sequence[PuzzleRecord], puzzle_id: int) -> PuzzleRecord | None:
    return next((p for p in puzzles if p.id == puzzle_id), None)
