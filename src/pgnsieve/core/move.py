"""Move value object (UCI-style representation)."""

from __future__ import annotations

from dataclasses import dataclass

from pgnsieve.core.enums import MoveFlag, PieceType
from pgnsieve.core.types import Square, square_name


@dataclass(frozen=True, slots=True)
class Move:
    """Immutable value object representing a single half-move.

    A null move (``--`` in PGN) has flag :attr:`MoveFlag.NULL` and meaningless
    squares; use :data:`NULL_MOVE` rather than building one by hand.
    """

    from_sq: Square
    to_sq: Square
    flag: MoveFlag = MoveFlag.NORMAL
    promotion: PieceType | None = None

    @property
    def is_null(self) -> bool:
        return self.flag == MoveFlag.NULL

    @property
    def is_underpromotion(self) -> bool:
        return self.promotion is not None and self.promotion != PieceType.QUEEN

    # ── Display ──────────────────────────────────────────────────────────

    def __str__(self) -> str:
        if self.is_null:
            return "0000"
        base = f"{square_name(self.from_sq)}{square_name(self.to_sq)}"
        if self.promotion is not None:
            base += self.promotion.letter.lower()
        return base

    @property
    def uci(self) -> str:
        """UCI long-algebraic notation."""
        return str(self)


NULL_MOVE = Move(0, 0, MoveFlag.NULL)
