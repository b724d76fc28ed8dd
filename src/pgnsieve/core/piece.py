"""Piece value object."""

from __future__ import annotations

from dataclasses import dataclass

from pgnsieve.core.enums import Color, PieceType


@dataclass(frozen=True, slots=True)
class Piece:
    """Immutable value object representing a chess piece."""

    color: Color
    piece_type: PieceType

    # ── Serialisation ────────────────────────────────────────────────────

    def __str__(self) -> str:
        """FEN character (uppercase = white, lowercase = black)."""
        letter = self.piece_type.letter
        return letter if self.color == Color.WHITE else letter.lower()

    @classmethod
    def from_char(cls, char: str) -> Piece:
        """Create piece from FEN character, e.g. 'N' → white knight."""
        if len(char) != 1 or not char.isalpha():
            raise ValueError(f"Invalid piece character: {char!r}")
        piece_type = PieceType.from_letter(char)
        color = Color.WHITE if char.isupper() else Color.BLACK
        return _PIECES[(color, piece_type)]


# Pieces are immutable, so every square can share one instance per kind.
_PIECES: dict[tuple[Color, PieceType], Piece] = {
    (color, piece_type): Piece(color, piece_type)
    for color in Color
    for piece_type in PieceType
}
