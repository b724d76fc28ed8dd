"""Board - piece placement on an 8x8 board."""

from __future__ import annotations

from pgnsieve.core.enums import Color, PieceType
from pgnsieve.core.piece import Piece
from pgnsieve.core.types import Square, make_square

_PIECE_TYPE_COUNT = 6
_COLOR_COUNT = 2
_INITIAL_PLACEMENT = "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR"


class Board:
    """Mutable 64-square board with incremental piece indexes."""

    __slots__ = ("_squares", "_piece_bitboards", "_color_bitboards", "_king_squares")

    def __init__(self) -> None:
        self._squares: list[Piece | None] = [None] * 64
        # [color][piece_type-1] -> bitboard of occupied squares.
        self._piece_bitboards: list[list[int]] = [
            [0] * _PIECE_TYPE_COUNT for _ in range(_COLOR_COUNT)
        ]
        # [color] -> bitboard of all occupied squares for that color.
        self._color_bitboards: list[int] = [0] * _COLOR_COUNT
        # [color] -> king square cache (None if king missing).
        self._king_squares: list[Square | None] = [None] * _COLOR_COUNT

    @staticmethod
    def _squares_from_bitboard(bitboard: int) -> list[Square]:
        squares: list[Square] = []
        while bitboard:
            lsb = bitboard & -bitboard
            squares.append(lsb.bit_length() - 1)
            bitboard ^= lsb
        return squares

    # -- Element access -----------------------------------------------------

    def __getitem__(self, sq: Square) -> Piece | None:
        return self._squares[sq]

    def __setitem__(self, sq: Square, piece: Piece | None) -> None:
        old_piece = self._squares[sq]
        if old_piece == piece:
            return

        mask = 1 << sq

        if old_piece is not None:
            old_color_idx = int(old_piece.color)
            self._piece_bitboards[old_color_idx][old_piece.piece_type - 1] &= ~mask
            self._color_bitboards[old_color_idx] &= ~mask
            if (
                old_piece.piece_type == PieceType.KING
                and self._king_squares[old_color_idx] == sq
            ):
                self._king_squares[old_color_idx] = None

        self._squares[sq] = piece

        if piece is None:
            return

        color_idx = int(piece.color)
        self._piece_bitboards[color_idx][piece.piece_type - 1] |= mask
        self._color_bitboards[color_idx] |= mask
        if piece.piece_type == PieceType.KING:
            self._king_squares[color_idx] = sq

    def is_empty(self, sq: Square) -> bool:
        return self._squares[sq] is None

    # -- Query helpers ------------------------------------------------------

    def pieces(self, color: Color, piece_type: PieceType) -> list[Square]:
        """Squares occupied by *color*'s *piece_type*."""
        return self._squares_from_bitboard(self.pieces_bitboard(color, piece_type))

    def pieces_bitboard(self, color: Color, piece_type: PieceType) -> int:
        """Bitboard of squares occupied by *color*'s *piece_type*."""
        return self._piece_bitboards[int(color)][piece_type - 1]

    def has_piece(self, color: Color, piece_type: PieceType) -> bool:
        """Whether *color* has at least one piece of *piece_type*."""
        return bool(self.pieces_bitboard(color, piece_type))

    def count(self, color: Color, piece_type: PieceType) -> int:
        """Number of *color*'s pieces of *piece_type* on the board."""
        return self.pieces_bitboard(color, piece_type).bit_count()

    def all_pieces_bitboard(self, color: Color) -> int:
        """Bitboard of all squares occupied by *color*."""
        return self._color_bitboards[int(color)]

    def king_square(self, color: Color) -> Square:
        """Return the single king square for *color*."""
        sq = self._king_squares[int(color)]
        if sq is None:
            raise ValueError(f"No {color.name} king on board")
        return sq

    # -- Mutation / copying -------------------------------------------------

    def copy(self) -> Board:
        b = Board()
        b._squares = self._squares.copy()
        b._piece_bitboards = [row.copy() for row in self._piece_bitboards]
        b._color_bitboards = self._color_bitboards.copy()
        b._king_squares = self._king_squares.copy()
        return b

    # -- FEN placement ------------------------------------------------------

    def placement(self) -> str:
        """Piece-placement field of a FEN string (rank 8 first)."""
        rows: list[str] = []
        for rank in range(7, -1, -1):
            empty = 0
            row = ""
            for file in range(8):
                piece = self._squares[make_square(file, rank)]
                if piece is None:
                    empty += 1
                    continue
                if empty:
                    row += str(empty)
                    empty = 0
                row += str(piece)
            if empty:
                row += str(empty)
            rows.append(row)
        return "/".join(rows)

    @classmethod
    def from_placement(cls, placement: str) -> Board:
        """Build a board from the piece-placement field of a FEN string."""
        ranks = placement.split("/")
        if len(ranks) != 8:
            raise ValueError(f"Invalid FEN board (must contain 8 ranks): {placement!r}")
        board = cls()
        for rank_idx, rank_text in enumerate(ranks):
            rank = 7 - rank_idx
            file = 0
            for ch in rank_text:
                if ch.isdigit():
                    step = int(ch)
                    if not (1 <= step <= 8):
                        raise ValueError(f"Invalid FEN digit {ch!r}: {placement!r}")
                    file += step
                else:
                    if file >= 8:
                        raise ValueError(f"Invalid FEN rank width: {placement!r}")
                    board[make_square(file, rank)] = Piece.from_char(ch)
                    file += 1
                if file > 8:
                    raise ValueError(f"Invalid FEN rank width: {placement!r}")
            if file != 8:
                raise ValueError(f"Invalid FEN rank width: {placement!r}")
        return board

    @classmethod
    def initial(cls) -> Board:
        """Standard starting position."""
        return cls.from_placement(_INITIAL_PLACEMENT)

    # -- Dunder helpers -----------------------------------------------------

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Board):
            return NotImplemented
        return self._squares == other._squares
