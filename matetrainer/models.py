"""
Domain types shared by the rules facade, the strategies and the state machine.

Moves travel through the app as Move values (square names plus an optional
promotion letter); positions are plain FEN strings and are compared as strings.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal

from matetrainer.events import Color, FeedbackEvent, Phase

PromotionPiece = Literal["q", "r", "b", "n"]
PROMOTION_PIECES: tuple[PromotionPiece, ...] = ("q", "r", "b", "n")

FILES = "abcdefgh"
RANKS = "12345678"


def is_valid_square(square: str) -> bool:
    return len(square) == 2 and square[0] in FILES and square[1] in RANKS


@dataclass(frozen=True)
class Move:
    from_square: str
    to_square: str
    promotion: PromotionPiece | None = None

    def uci(self) -> str:
        return f"{self.from_square}{self.to_square}{self.promotion or ''}"

    @classmethod
    def from_uci(cls, text: str) -> Move:
        """Parse "e2e4" / "a7a8q". An unknown promotion letter is dropped."""
        promo = text[4] if len(text) > 4 else None
        return cls(
            from_square=text[0:2],
            to_square=text[2:4],
            promotion=promo if promo in PROMOTION_PIECES else None,  # type: ignore[arg-type]
        )

    def matches(self, other: Move) -> bool:
        """
        True if *other* is the same move as this expected one.

        The promotion is only compared when this move specifies one.
        """
        return (
            self.from_square == other.from_square
            and self.to_square == other.to_square
            and (self.promotion is None or self.promotion == other.promotion)
        )

    def __str__(self) -> str:
        return self.uci()


@dataclass(frozen=True)
class PuzzleRecord:
    """One mate-in-N puzzle. Immutable once loaded."""

    id: int
    side_to_move: Color
    mate_depth: int
    start_position: str
    solution_moves: tuple[Move, ...]

    @property
    def orientation(self) -> Color:
        return self.side_to_move


@dataclass
class UserMove:
    notation: str
    was_correct: bool | None  # None while the move is still being judged


@dataclass
class OpponentMove:
    notation: str


@dataclass
class MoveRecord:
    """A user move plus, once it arrives, the opponent's reply."""

    ordinal: int
    user_move: UserMove
    opponent_move: OpponentMove | None = None

    @property
    def ply_count(self) -> int:
        return 1 + (1 if self.opponent_move else 0)

    def to_dict(self) -> dict[str, Any]:
        return {
            "ordinal": self.ordinal,
            "user_move": {
                "notation": self.user_move.notation,
                "was_correct": self.user_move.was_correct,
            },
            "opponent_move": (
                {"notation": self.opponent_move.notation} if self.opponent_move else None
            ),
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> MoveRecord:
        user = raw["user_move"]
        opponent = raw.get("opponent_move")
        return cls(
            ordinal=int(raw["ordinal"]),
            user_move=UserMove(
                notation=str(user["notation"]),
                was_correct=user.get("was_correct"),
            ),
            opponent_move=OpponentMove(notation=str(opponent["notation"])) if opponent else None,
        )


def count_plies(history: list[MoveRecord] | tuple[MoveRecord, ...]) -> int:
    return sum(record.ply_count for record in history)


@dataclass(frozen=True)
class ResumeState:
    """Serializable state-machine snapshot used to rejoin an in-progress puzzle."""

    position: str
    phase: Literal["playing", "complete"]
    is_failed: bool
    history: tuple[MoveRecord, ...] = ()
    pending: MoveRecord | None = None
    last_move: tuple[str, str] | None = None

    @property
    def plies_played(self) -> int:
        return count_plies(self.history) + (self.pending.ply_count if self.pending else 0)

    def to_dict(self) -> dict[str, Any]:
        return {
            "position": self.position,
            "phase": self.phase,
            "is_failed": self.is_failed,
            "history": [record.to_dict() for record in self.history],
            "pending": self.pending.to_dict() if self.pending else None,
            "last_move": list(self.last_move) if self.last_move else None,
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> ResumeState:
        phase = raw.get("phase", "playing")
        if phase not in ("playing", "complete"):
            raise ValueError(f"Cannot resume into phase {phase!r}")
        last_move = raw.get("last_move")
        pending = raw.get("pending")
        return cls(
            position=str(raw["position"]),
            phase=phase,
            is_failed=bool(raw.get("is_failed", False)),
            history=tuple(MoveRecord.from_dict(r) for r in raw.get("history", [])),
            pending=MoveRecord.from_dict(pending) if pending else None,
            last_move=(str(last_move[0]), str(last_move[1])) if last_move else None,
        )


@dataclass(frozen=True)
class PuzzleSnapshot:
    """Read model handed to UIs after every change notification."""

    phase: Phase
    position: str
    orientation: Color
    turn: Color
    destinations: dict[str, list[str]]
    last_move: tuple[str, str] | None
    is_failed: bool
    is_interactive: bool
    is_check: bool
    history: tuple[MoveRecord, ...]
    pending: MoveRecord | None
    puzzle: PuzzleRecord | None
    feedback: FeedbackEvent | None = None
