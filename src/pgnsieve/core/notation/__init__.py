"""Notation package: FEN / EPD / SAN parsing and serialization."""

from pgnsieve.core.notation.fen import (
    STARTING_FEN,
    infer_castling,
    position_from_fen,
    position_to_epd,
    position_to_fen,
)
from pgnsieve.core.notation.san import (
    NULL_MOVE_TOKENS,
    check_suffix,
    move_to_lalg,
    move_to_san,
    parse_san,
    strip_san,
)

__all__ = [
    "STARTING_FEN",
    "NULL_MOVE_TOKENS",
    "infer_castling",
    "position_from_fen",
    "position_to_epd",
    "position_to_fen",
    "check_suffix",
    "move_to_lalg",
    "move_to_san",
    "parse_san",
    "strip_san",
]
