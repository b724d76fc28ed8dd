"""Core enumerations and flags for the chess domain."""

from __future__ import annotations

from enum import IntEnum, IntFlag, auto


class Color(IntEnum):
    """Side color."""

    WHITE = 0
    BLACK = 1

    @property
    def opposite(self) -> Color:
        return Color(1 - self.value)

    @property
    def fen(self) -> str:
        """Side-to-move field of a FEN string."""
        return "w" if self == Color.WHITE else "b"

    def __str__(self) -> str:
        return self.name.lower()


class PieceType(IntEnum):
    """Chess piece types ordered by conventional value."""

    PAWN = 1
    KNIGHT = 2
    BISHOP = 3
    ROOK = 4
    QUEEN = 5
    KING = 6

    @property
    def letter(self) -> str:
        """English upper-case piece letter, e.g. ``N`` for a knight."""
        return _PIECE_LETTERS[self]

    @classmethod
    def from_letter(cls, letter: str) -> PieceType:
        """Parse an English piece letter (either case)."""
        try:
            return _LETTER_PIECES[letter.upper()]
        except KeyError:
            raise ValueError(f"Invalid piece letter: {letter!r}") from None


_PIECE_LETTERS: dict[PieceType, str] = {
    PieceType.PAWN: "P",
    PieceType.KNIGHT: "N",
    PieceType.BISHOP: "B",
    PieceType.ROOK: "R",
    PieceType.QUEEN: "Q",
    PieceType.KING: "K",
}
_LETTER_PIECES: dict[str, PieceType] = {v: k for k, v in _PIECE_LETTERS.items()}


class MoveFlag(IntEnum):
    """Special move classification."""

    NORMAL = 0
    DOUBLE_PAWN = 1
    EN_PASSANT = 2
    CASTLE_KINGSIDE = 3
    CASTLE_QUEENSIDE = 4
    PROMOTION = 5
    NULL = 6


class CastlingRights(IntFlag):
    """Bitmask for castling availability."""

    NONE = 0
    WHITE_KINGSIDE = auto()
    WHITE_QUEENSIDE = auto()
    BLACK_KINGSIDE = auto()
    BLACK_QUEENSIDE = auto()

    WHITE_BOTH = WHITE_KINGSIDE | WHITE_QUEENSIDE
    BLACK_BOTH = BLACK_KINGSIDE | BLACK_QUEENSIDE
    ALL = WHITE_BOTH | BLACK_BOTH

    @property
    def fen(self) -> str:
        """Castling field of a FEN string (``-`` when empty)."""
        text = "".join(
            char for right, char in _CASTLING_CHARS if self & right
        )
        return text or "-"

    @classmethod
    def from_fen(cls, field: str) -> CastlingRights:
        """Parse the castling field of a FEN string."""
        rights = cls.NONE
        if field == "-":
            return rights
        seen: set[str] = set()
        lookup = {char: right for right, char in _CASTLING_CHARS}
        for char in field:
            right = lookup.get(char)
            if right is None or char in seen:
                raise ValueError(f"Invalid FEN castling field: {field!r}")
            seen.add(char)
            rights |= right
        return rights


_CASTLING_CHARS: tuple[tuple[CastlingRights, str], ...] = (
    (CastlingRights.WHITE_KINGSIDE, "K"),
    (CastlingRights.WHITE_QUEENSIDE, "Q"),
    (CastlingRights.BLACK_KINGSIDE, "k"),
    (CastlingRights.BLACK_QUEENSIDE, "q"),
)
