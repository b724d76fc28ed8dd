"""SAN (Standard Algebraic Notation) conversion and parsing.

Recorded games are rarely pristine, so :func:`parse_san` is lenient: it
ignores check and annotation suffixes, accepts ``0-0`` for ``O-O``,
promotions written without ``=`` and redundant disambiguation. Output is
always canonical.
"""

from __future__ import annotations

import re

from pgnsieve.core.enums import MoveFlag, PieceType
from pgnsieve.core.move import NULL_MOVE, Move
from pgnsieve.core.move_generator import MoveGenerator
from pgnsieve.core.position import Position
from pgnsieve.core.types import file_of, parse_square, rank_of, square_name

NULL_MOVE_TOKENS = frozenset({"--", "Z0"})

_SAN_RE = re.compile(
    r"^(?P<piece>[KQRBNP])?"
    r"(?P<file>[a-h])?(?P<rank>[1-8])?"
    r"(?P<capture>[x:])?"
    r"(?P<to>[a-h][1-8])"
    r"(?:=?(?P<promo>[QRBNqrbn]))?$"
)
_CASTLING_TOKENS: dict[str, MoveFlag] = {
    "O-O": MoveFlag.CASTLE_KINGSIDE,
    "0-0": MoveFlag.CASTLE_KINGSIDE,
    "O-O-O": MoveFlag.CASTLE_QUEENSIDE,
    "0-0-0": MoveFlag.CASTLE_QUEENSIDE,
}


def strip_san(san: str) -> str:
    """Drop check, mate and annotation suffixes from a SAN token."""
    return san.rstrip("+#!?")


def move_to_san(position: Position, move: Move, *, suffix: bool = True) -> str:
    """Convert a legal *move* to SAN given the *position* before the move."""
    if move.is_null:
        return "--"

    board = position.board
    piece = board[move.from_sq]
    assert piece is not None

    if move.flag == MoveFlag.CASTLE_KINGSIDE:
        san = "O-O"
    elif move.flag == MoveFlag.CASTLE_QUEENSIDE:
        san = "O-O-O"
    else:
        san = ""
        is_capture = board[move.to_sq] is not None or move.flag == MoveFlag.EN_PASSANT

        if piece.piece_type == PieceType.PAWN:
            if is_capture:
                san += chr(ord("a") + file_of(move.from_sq))
        else:
            san += piece.piece_type.letter
            rivals = [
                m.from_sq
                for m in MoveGenerator(position).legal_moves_to(
                    move.to_sq, piece.piece_type
                )
                if m.from_sq != move.from_sq
            ]
            if rivals:
                same_file = any(file_of(sq) == file_of(move.from_sq) for sq in rivals)
                same_rank = any(rank_of(sq) == rank_of(move.from_sq) for sq in rivals)
                if not same_file:
                    san += chr(ord("a") + file_of(move.from_sq))
                elif not same_rank:
                    san += str(rank_of(move.from_sq) + 1)
                else:
                    san += square_name(move.from_sq)

        if is_capture:
            san += "x"

        san += square_name(move.to_sq)

        if move.flag == MoveFlag.PROMOTION and move.promotion is not None:
            san += "=" + move.promotion.letter

    if suffix:
        san += check_suffix(position, move)
    return san


def check_suffix(position: Position, move: Move) -> str:
    """``+``, ``#`` or nothing, depending on what *move* does to the opponent."""
    position.make_move(move)
    try:
        gen_after = MoveGenerator(position)
        if not gen_after.is_in_check(position.side_to_move):
            return ""
        return "+" if gen_after.has_legal_move() else "#"
    finally:
        position.unmake_move(move)


def move_to_lalg(position: Position, move: Move) -> str:
    """Long algebraic notation, e.g. ``e2e4`` or ``e7e8Q``."""
    if move.is_null:
        return "--"
    text = f"{square_name(move.from_sq)}{square_name(move.to_sq)}"
    if move.promotion is not None:
        text += move.promotion.letter
    return text


def parse_san(position: Position, san: str, *, allow_null: bool = False) -> Move:
    """Parse a SAN string into a :class:`Move` given the current *position*."""
    clean = strip_san(san.strip())
    if clean.endswith("e.p."):
        clean = clean[:-4]

    if clean in NULL_MOVE_TOKENS:
        if not allow_null:
            raise ValueError(f"Null move not allowed: {san}")
        return NULL_MOVE

    gen = MoveGenerator(position)

    castling_flag = _CASTLING_TOKENS.get(clean)
    if castling_flag is not None:
        castle = gen.castling_move(castling_flag)
        if castle is None:
            raise ValueError(f"Illegal move: {san}")
        return castle

    match = _SAN_RE.match(clean)
    if match is None:
        raise ValueError(f"Unrecognised move: {san}")

    piece_letter = match["piece"]
    piece_type = PieceType.from_letter(piece_letter) if piece_letter else PieceType.PAWN
    to_sq = parse_square(match["to"])
    from_file = ord(match["file"]) - ord("a") if match["file"] else None
    from_rank = int(match["rank"]) - 1 if match["rank"] else None
    promotion = PieceType.from_letter(match["promo"]) if match["promo"] else None

    candidates = [
        m
        for m in gen.legal_moves_to(to_sq, piece_type)
        if m.promotion == promotion
        and (from_file is None or file_of(m.from_sq) == from_file)
        and (from_rank is None or rank_of(m.from_sq) == from_rank)
    ]

    if len(candidates) == 1:
        return candidates[0]
    if not candidates:
        raise ValueError(f"Illegal move: {san}")
    raise ValueError(f"Ambiguous move: {san}")
