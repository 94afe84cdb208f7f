"""
Board rendering for the terminal and the web backend.

ASCII is drawn from the puzzle side's point of view, with rank and file
labels. SVG comes straight from python-chess.
"""

from __future__ import annotations

import chess
import chess.svg

from matetrainer.events import Color

_LAST_MOVE_FILL = "#cdd26a"


def render_ascii(fen: str, orientation: Color = "white") -> str:
    """Oriented ASCII board: puzzle side at the bottom, '.' for empty squares."""
    board = chess.Board(fen)
    ranks = range(7, -1, -1) if orientation == "white" else range(8)
    files = range(8) if orientation == "white" else range(7, -1, -1)

    lines = []
    for rank in ranks:
        cells = []
        for file in files:
            piece = board.piece_at(chess.square(file, rank))
            cells.append(piece.symbol() if piece else ".")
        lines.append(f"{rank + 1} {' '.join(cells)}")
    lines.append("  " + " ".join(chess.FILE_NAMES[f] for f in files))
    return "\n".join(lines)


def render_svg(
    fen: str,
    orientation: Color = "white",
    last_move: tuple[str, str] | None = None,
    size: int = 400,
) -> str:
    """SVG string of the board, last move highlighted."""
    board = chess.Board(fen)
    fill: dict[chess.Square, str] = {}
    if last_move is not None:
        for square in last_move:
            fill[chess.parse_square(square)] = _LAST_MOVE_FILL
    return chess.svg.board(
        board=board,
        orientation=chess.WHITE if orientation == "white" else chess.BLACK,
        fill=fill,
        size=size,
    )
