"""FEN / EPD parsing and serialization."""

from __future__ import annotations

from pgnsieve.core.board import Board
from pgnsieve.core.enums import CastlingRights, Color, PieceType
from pgnsieve.core.piece import Piece
from pgnsieve.core.position import Position
from pgnsieve.core.types import Square, parse_square, rank_of, square_name

STARTING_FEN = "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq - 0 1"

# Right -> (king square, rook square) it needs.
_CASTLING_HOMES: dict[CastlingRights, tuple[Square, Square]] = {
    CastlingRights.WHITE_KINGSIDE: (4, 7),
    CastlingRights.WHITE_QUEENSIDE: (4, 0),
    CastlingRights.BLACK_KINGSIDE: (60, 63),
    CastlingRights.BLACK_QUEENSIDE: (60, 56),
}


def position_from_fen(fen: str) -> Position:
    """Parse a FEN string into a :class:`Position`."""
    parts = fen.split()
    if not (4 <= len(parts) <= 6):
        raise ValueError(f"Invalid FEN (need 4-6 fields): {fen!r}")

    placement, side_part, castling_part, ep_part = parts[:4]

    board = Board.from_placement(placement)
    for color in Color:
        if board.count(color, PieceType.KING) != 1:
            raise ValueError(f"Invalid FEN (needs one {color} king): {fen!r}")

    if side_part == "w":
        side = Color.WHITE
    elif side_part == "b":
        side = Color.BLACK
    else:
        raise ValueError(f"Invalid FEN side-to-move field: {side_part!r}")

    castling = CastlingRights.from_fen(castling_part)

    ep: Square | None = None
    if ep_part != "-":
        ep = parse_square(ep_part)
        expected_ep_rank = 5 if side == Color.WHITE else 2
        if rank_of(ep) != expected_ep_rank:
            raise ValueError(
                f"Invalid FEN en-passant square for side-to-move: {ep_part!r}"
            )

    halfmove = 0
    fullmove = 1
    try:
        if len(parts) > 4:
            halfmove = int(parts[4])
        if len(parts) > 5:
            fullmove = int(parts[5])
    except ValueError:
        raise ValueError(f"Invalid FEN clocks: {fen!r}") from None
    if halfmove < 0:
        raise ValueError(f"Invalid FEN halfmove clock: {parts[4]!r}")
    if fullmove < 1:
        raise ValueError(f"Invalid FEN fullmove number: {parts[5]!r}")

    return Position(board, side, castling, ep, halfmove, fullmove)


def position_to_fen(pos: Position) -> str:
    """Serialise a :class:`Position` to FEN."""
    return f"{position_to_epd(pos)} {pos.halfmove_clock} {pos.fullmove_number}"


def position_to_epd(pos: Position) -> str:
    """The first four FEN fields, as used by EPD records."""
    ep_str = square_name(pos.en_passant) if pos.en_passant is not None else "-"
    return (
        f"{pos.board.placement()} {pos.side_to_move.fen} {pos.castling.fen} {ep_str}"
    )


def infer_castling(board: Board) -> CastlingRights:
    """Castling rights consistent with kings and rooks on their home squares."""
    rights = CastlingRights.NONE
    for right, (king_sq, rook_sq) in _CASTLING_HOMES.items():
        color = Color.WHITE if king_sq < 8 else Color.BLACK
        if board[king_sq] == Piece(color, PieceType.KING) and board[rook_sq] == Piece(
            color, PieceType.ROOK
        ):
            rights |= right
    return rights
