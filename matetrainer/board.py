"""
Thin facade over python-chess Board — the rules adapter.

Provides the exact interface the puzzle state machine needs without leaking
python-chess internals into the rest of the codebase (easier to unit-test and
swap out). Moves go in as square names and come out as SAN strings; an
illegal move is reported as None, never as an exception.
"""

from __future__ import annotations

import chess

from matetrainer.events import Color
from matetrainer.models import PROMOTION_PIECES, PromotionPiece


class ChessBoard:
    """Facade over chess.Board for one puzzle attempt."""

    def __init__(self, fen: str) -> None:
        self._board = chess.Board(fen)

    # ------------------------------------------------------------------ #
    # State queries                                                        #
    # ------------------------------------------------------------------ #

    @property
    def fen(self) -> str:
        return self._board.fen()

    @property
    def turn(self) -> Color:
        return "white" if self._board.turn == chess.WHITE else "black"

    @property
    def is_check(self) -> bool:
        return self._board.is_check()

    @property
    def is_checkmate(self) -> bool:
        return self._board.is_checkmate()

    @property
    def has_legal_moves(self) -> bool:
        return any(self._board.generate_legal_moves())

    @property
    def ply_count(self) -> int:
        """Plies applied since this board was created."""
        return len(self._board.move_stack)

    def legal_destinations(self) -> dict[str, list[str]]:
        """Map each origin square to the squares it can legally reach."""
        dests: dict[str, list[str]] = {}
        for move in self._board.legal_moves:
            origin = chess.square_name(move.from_square)
            target = chess.square_name(move.to_square)
            targets = dests.setdefault(origin, [])
            if target not in targets:
                targets.append(target)
        return dests

    def promotion_options(self, from_square: str, to_square: str) -> list[PromotionPiece]:
        """Promotion pieces available for from→to, in q/r/b/n order."""
        found: set[str] = set()
        for move in self._board.legal_moves:
            if (
                chess.square_name(move.from_square) == from_square
                and chess.square_name(move.to_square) == to_square
                and move.promotion is not None
            ):
                found.add(chess.piece_symbol(move.promotion))
        return [piece for piece in PROMOTION_PIECES if piece in found]

    # ------------------------------------------------------------------ #
    # Move application                                                    #
    # ------------------------------------------------------------------ #

    def move_to_san(
        self, from_square: str, to_square: str, promotion: str | None = None
    ) -> str | None:
        """SAN for the move if it is legal here, without applying it."""
        move = self._parse(from_square, to_square, promotion)
        if move is None or move not in self._board.legal_moves:
            return None
        return self._board.san(move)

    def apply_move(
        self, from_square: str, to_square: str, promotion: str | None = None
    ) -> str | None:
        """Apply a move. Returns its SAN string, or None if it is not legal."""
        move = self._parse(from_square, to_square, promotion)
        if move is None or move not in self._board.legal_moves:
            return None
        san = self._board.san(move)
        self._board.push(move)
        return san

    def undo(self) -> None:
        """Take back the most recently applied ply."""
        self._board.pop()

    @staticmethod
    def _parse(from_square: str, to_square: str, promotion: str | None) -> chess.Move | None:
        try:
            promo_type = chess.PIECE_SYMBOLS.index(promotion) if promotion else None
            return chess.Move(
                chess.parse_square(from_square),
                chess.parse_square(to_square),
                promotion=promo_type,
            )
        except ValueError:
            return None
