"""Per-ply records produced by replaying a game."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field

from pgnsieve.core import zobrist
from pgnsieve.core.enums import CastlingRights, Color
from pgnsieve.core.move import Move
from pgnsieve.core.types import Square, square_name
from pgnsieve.errors import IllegalMove
from pgnsieve.pgn.models import Game, MoveNode


@dataclass(frozen=True, slots=True)
class PositionSnapshot:
    """Everything the matcher and formatter need to know about one position."""

    ply: int
    placement: str
    side_to_move: Color
    castling: CastlingRights
    en_passant: Square | None
    halfmove_clock: int
    fullmove_number: int
    zobrist: int
    repetition_count: int = 1
    is_check: bool = False
    is_mate: bool = False
    is_stalemate: bool = False
    is_insufficient: bool = False

    @property
    def epd(self) -> str:
        ep = square_name(self.en_passant) if self.en_passant is not None else "-"
        return f"{self.placement} {self.side_to_move.fen} {self.castling.fen} {ep}"

    @property
    def fen(self) -> str:
        return f"{self.epd} {self.halfmove_clock} {self.fullmove_number}"

    def fingerprint(self, include_rights: bool = False) -> int:
        if include_rights:
            return self.zobrist
        return zobrist.strip_rights(self.zobrist, self.castling, self.en_passant)

    def expanded_board(self) -> str:
        """Ranks 8 to 1 joined by ``/``, one character per square, ``_`` empty."""
        return "".join(
            "_" * int(ch) if ch.isdigit() else ch for ch in self.placement
        )


@dataclass(slots=True)
class PlyRecord:
    node: MoveNode
    move: Move
    san: str
    lalg: str
    snapshot: PositionSnapshot
    variations: list[SimulatedLine] = field(default_factory=list)

    @property
    def ply(self) -> int:
        return self.snapshot.ply


@dataclass(slots=True)
class SimulatedLine:
    """A replayed move list: the mainline or one variation.

    ``initial`` is the position before the first move of the line. It is
    ``None`` only when the game's starting position could not be set up.
    """

    initial: PositionSnapshot | None
    plies: list[PlyRecord] = field(default_factory=list)
    error: IllegalMove | None = None

    @property
    def final(self) -> PositionSnapshot | None:
        return self.plies[-1].snapshot if self.plies else self.initial

    def snapshots(self) -> Iterator[PositionSnapshot]:
        if self.initial is not None:
            yield self.initial
        for record in self.plies:
            yield record.snapshot


@dataclass(slots=True)
class SimulatedGame:
    game: Game
    mainline: SimulatedLine
    error: IllegalMove | None = None

    @property
    def complete(self) -> bool:
        return self.error is None

    @property
    def plies(self) -> list[PlyRecord]:
        return self.mainline.plies

    @property
    def initial(self) -> PositionSnapshot | None:
        return self.mainline.initial

    @property
    def final(self) -> PositionSnapshot | None:
        return self.mainline.final

    def fingerprints(self, include_rights: bool = False) -> list[int]:
        """Initial position plus every mainline ply."""
        return [s.fingerprint(include_rights) for s in self.mainline.snapshots()]

    def lines(self) -> Iterator[tuple[list[PlyRecord], SimulatedLine]]:
        """Every line with the mainline plies that lead to it.

        Yields ``(prefix, line)`` where *prefix* is the list of plies played
        before ``line.initial``. The mainline comes first with an empty
        prefix.
        """
        stack: list[tuple[list[PlyRecord], SimulatedLine]] = [([], self.mainline)]
        while stack:
            prefix, line = stack.pop()
            yield prefix, line
            for index, record in enumerate(line.plies):
                for variation in reversed(record.variations):
                    stack.append((prefix + line.plies[:index], variation))
