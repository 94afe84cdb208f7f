"""
UCI response parsing — pure functions, no I/O.

The engine adapter feeds every line the engine prints through these helpers.
They never raise on unexpected input: a line that isn't what the caller asked
about simply parses to None.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Literal, NamedTuple

from matetrainer.models import Move

ScoreKind = Literal["mate", "cp"]

_DEPTH_RE = re.compile(r"\bdepth\s+(\d+)")
_MATE_RE = re.compile(r"\bscore\s+mate\s+(-?\d+)")
_CP_RE = re.compile(r"\bscore\s+cp\s+(-?\d+)")
_BESTMOVE_RE = re.compile(r"^bestmove\s+(\S+)(?:\s+ponder\s+(\S+))?")

NO_MOVE = "(none)"


@dataclass(frozen=True)
class AnalysisScore:
    kind: ScoreKind
    value: int  # signed, from the point of view of the side to move


@dataclass(frozen=True)
class InfoLine:
    depth: int
    score: AnalysisScore | None
    pv: tuple[str, ...] = ()


class BestMove(NamedTuple):
    """Terminal search line. move is None for "bestmove (none)"."""

    move: str | None
    ponder: str | None = None


@dataclass(frozen=True)
class AnalysisResult:
    best_move: Move | None
    score: AnalysisScore | None
    principal_variation: tuple[Move, ...] = field(default_factory=tuple)
    depth: int = 0


def parse_best_move(line: str) -> BestMove | None:
    """
    Parse a bestmove line.

    Returns None if the line isn't a bestmove line at all, and
    BestMove(move=None) for "bestmove (none)" (checkmate / stalemate).
    """
    if not line.startswith("bestmove"):
        return None
    match = _BESTMOVE_RE.match(line)
    if match is None or match.group(1) == NO_MOVE:
        return BestMove(move=None)
    return BestMove(move=match.group(1), ponder=match.group(2))


def parse_info_line(line: str) -> InfoLine | None:
    """Parse an "info" line that reports a search depth; None otherwise."""
    if not line.startswith("info "):
        return None

    depth_match = _DEPTH_RE.search(line)
    if depth_match is None:
        return None

    score: AnalysisScore | None = None
    mate_match = _MATE_RE.search(line)
    cp_match = _CP_RE.search(line)
    if mate_match:
        score = AnalysisScore(kind="mate", value=int(mate_match.group(1)))
    elif cp_match:
        score = AnalysisScore(kind="cp", value=int(cp_match.group(1)))

    pv_index = line.find(" pv ")
    pv = tuple(line[pv_index + 4:].split()) if pv_index >= 0 else ()

    return InfoLine(depth=int(depth_match.group(1)), score=score, pv=pv)


def uci_to_move(uci: str) -> Move:
    return Move.from_uci(uci)
