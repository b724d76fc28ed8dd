"""Board-decided game states: check, stalemate and dead positions."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pgnsieve.core.enums import Color, PieceType
from pgnsieve.core.move_generator import MoveGenerator
from pgnsieve.core.types import is_light_square

if TYPE_CHECKING:
    from pgnsieve.core.position import Position

# Halfmove-clock thresholds for the fifty- and seventy-five-move rules.
FIFTY_MOVE_PLIES = 100
SEVENTY_FIVE_MOVE_PLIES = 150


class Rules:
    """Static rule-checker that operates on a :class:`Position`."""

    @staticmethod
    def is_in_check(position: Position) -> bool:
        return MoveGenerator(position).is_in_check(position.side_to_move)

    @staticmethod
    def is_stalemate(position: Position) -> bool:
        gen = MoveGenerator(position)
        return not gen.is_in_check(position.side_to_move) and not gen.has_legal_move()

    @staticmethod
    def is_insufficient_material(position: Position) -> bool:
        """Neither side can mate: bare kings, one minor piece, or bishops
        of the same square colour facing each other."""
        board = position.board
        pieces = board.all_pieces_bitboard(Color.WHITE) | board.all_pieces_bitboard(
            Color.BLACK
        )
        count = pieces.bit_count()
        if count == 2:
            return True
        if count == 3:
            return any(
                board.has_piece(color, kind)
                for color in Color
                for kind in (PieceType.KNIGHT, PieceType.BISHOP)
            )
        if count == 4:
            white = board.pieces(Color.WHITE, PieceType.BISHOP)
            black = board.pieces(Color.BLACK, PieceType.BISHOP)
            if len(white) == 1 and len(black) == 1:
                return is_light_square(white[0]) == is_light_square(black[0])
        return False
