"""64-bit position keys and the fingerprints derived from them.

A full key XORs one random word per piece on its square, one for Black to
move, one per castling-rights state and one per en-passant target. The
*fingerprint* drops the rights words and keeps placement plus side to
move; duplicate detection, positional search and the ECO table all compare
fingerprints unless rights were asked for.

Keys come from a fixed splitmix64 stream, so fingerprints are stable
across runs and can be written out as ``HashCode`` values.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Final

from pgnsieve.core.enums import CastlingRights, Color
from pgnsieve.core.piece import Piece
from pgnsieve.core.types import Square

if TYPE_CHECKING:
    from pgnsieve.core.board import Board

_SEED: Final = 0xA5B3C7D9E1F23412
_MASK_64: Final = 0xFFFFFFFFFFFFFFFF

# Layout of the key stream.
_PIECE_WORDS: Final = 2 * 6 * 64
_SIDE_WORD: Final = _PIECE_WORDS
_CASTLING_WORDS: Final = _SIDE_WORD + 1
_EN_PASSANT_WORDS: Final = _CASTLING_WORDS + 16
_WORD_COUNT: Final = _EN_PASSANT_WORDS + 64


def _splitmix64(state: int) -> int:
    z = (state + 0x9E3779B97F4A7C15) & _MASK_64
    z = ((z ^ (z >> 30)) * 0xBF58476D1CE4E5B9) & _MASK_64
    z = ((z ^ (z >> 27)) * 0x94D049BB133111EB) & _MASK_64
    return z ^ (z >> 31)


_WORDS: Final = tuple(_splitmix64(_SEED + i) for i in range(_WORD_COUNT))


def piece_key(piece: Piece, sq: Square) -> int:
    return _WORDS[(int(piece.color) * 6 + int(piece.piece_type) - 1) * 64 + sq]


def side_to_move_key() -> int:
    """XOR-ed in while Black is to move."""
    return _WORDS[_SIDE_WORD]


def castling_key(castling: CastlingRights) -> int:
    return _WORDS[_CASTLING_WORDS + (int(castling) & 0xF)]


def en_passant_key(ep_square: Square) -> int:
    return _WORDS[_EN_PASSANT_WORDS + ep_square]


def rights_key(castling: CastlingRights, en_passant: Square | None) -> int:
    """The part of a full key that a fingerprint leaves out."""
    key = castling_key(castling)
    if en_passant is not None:
        key ^= en_passant_key(en_passant)
    return key


def placement_key(board: Board, side_to_move: Color) -> int:
    """Fingerprint computed from scratch: pieces plus side to move."""
    key = side_to_move_key() if side_to_move == Color.BLACK else 0
    for sq in range(64):
        piece = board[sq]
        if piece is not None:
            key ^= piece_key(piece, sq)
    return key


def strip_rights(
    key: int, castling: CastlingRights, en_passant: Square | None
) -> int:
    """Turn a full key into the fingerprint of the same position."""
    return key ^ rights_key(castling, en_passant)
