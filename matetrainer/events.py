"""
Typed event dataclasses — the shared language between the puzzle state machine,
the session layer and any consumer (CLI, WebSocket handler, tests).

All events are frozen (immutable) so they're safe to pass across async
boundaries and can be serialized to JSON via dataclasses.asdict().
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal

Color = Literal["white", "black"]
Phase = Literal["loading", "playing", "validating", "opponent_turn", "complete"]
FeedbackKind = Literal["correct", "incorrect"]


@dataclass(frozen=True)
class FeedbackEvent:
    """Fired once per judged move. sequence_id strictly increases per state machine."""

    sequence_id: int
    kind: FeedbackKind


@dataclass(frozen=True)
class PuzzleFailedEvent:
    """Fired by the session the first time the failure flag flips for a puzzle."""

    puzzle_id: int
    time_ms: int


@dataclass(frozen=True)
class PuzzleCompleteEvent:
    puzzle_id: int
    time_ms: int
    success: bool
    timestamp: datetime = field(default_factory=datetime.now)


# Union type for consumers that handle every session-level event
SessionEvent = FeedbackEvent | PuzzleFailedEvent | PuzzleCompleteEvent
