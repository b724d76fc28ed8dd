"""Chess primitives the replay is built on: board, position, moves and notation.

Quick start::

    from pgnsieve.core import Position, parse_san, position_from_fen, STARTING_FEN

    pos = position_from_fen(STARTING_FEN)
    pos.make_move(parse_san(pos, "e4"))
    print(hex(pos.fingerprint()))
"""

from pgnsieve.core.board import Board
from pgnsieve.core.enums import CastlingRights, Color, MoveFlag, PieceType
from pgnsieve.core.move import NULL_MOVE, Move
from pgnsieve.core.move_generator import MoveGenerator
from pgnsieve.core.notation import (
    STARTING_FEN,
    move_to_lalg,
    move_to_san,
    parse_san,
    position_from_fen,
    position_to_epd,
    position_to_fen,
)
from pgnsieve.core.piece import Piece
from pgnsieve.core.position import Position
from pgnsieve.core.rules import Rules
from pgnsieve.core.types import (
    Square,
    file_of,
    make_square,
    parse_square,
    rank_of,
    square_name,
)

__all__ = [
    # Enums / flags
    "CastlingRights",
    "Color",
    "MoveFlag",
    "PieceType",
    # Types / helpers
    "Square",
    "file_of",
    "make_square",
    "parse_square",
    "rank_of",
    "square_name",
    # Domain objects
    "Board",
    "Move",
    "NULL_MOVE",
    "MoveGenerator",
    "Piece",
    "Position",
    "Rules",
    # Notation
    "STARTING_FEN",
    "move_to_lalg",
    "move_to_san",
    "parse_san",
    "position_from_fen",
    "position_to_epd",
    "position_to_fen",
]
