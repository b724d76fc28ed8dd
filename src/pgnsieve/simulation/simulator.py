"""Replays a parsed game on a board, ply by ply."""

from __future__ import annotations

import logging
from dataclasses import replace

from pgnsieve.core.move import NULL_MOVE, Move
from pgnsieve.core.move_generator import MoveGenerator
from pgnsieve.core.notation import (
    STARTING_FEN,
    move_to_lalg,
    move_to_san,
    parse_san,
    position_from_fen,
)
from pgnsieve.core.position import Position
from pgnsieve.core.rules import Rules
from pgnsieve.errors import IllegalMove
from pgnsieve.pgn.models import Game, MoveNode
from pgnsieve.simulation.models import (
    PlyRecord,
    PositionSnapshot,
    SimulatedGame,
    SimulatedLine,
)

_LOGGER = logging.getLogger(__name__)

# (position, snapshot before the first move, moves, line record, is_mainline)
_Pending = tuple[Position, PositionSnapshot, list[MoveNode], SimulatedLine, bool]


def initial_position(game: Game) -> Position:
    """Starting position from the ``FEN`` tag, or the standard one.

    A ``FEN`` tag is honoured unless ``SetUp`` is explicitly ``"0"``.
    Raises ``ValueError`` for an invalid FEN.
    """
    fen = game.tags.get("FEN")
    if fen is None or game.tags.get("SetUp") == "0":
        fen = STARTING_FEN
    return position_from_fen(fen)


def snapshot(position: Position, ply: int) -> PositionSnapshot:
    return PositionSnapshot(
        ply=ply,
        placement=position.board.placement(),
        side_to_move=position.side_to_move,
        castling=position.castling,
        en_passant=position.en_passant,
        halfmove_clock=position.halfmove_clock,
        fullmove_number=position.fullmove_number,
        zobrist=position.zobrist_hash,
        repetition_count=position.repetition_count(),
        is_check=Rules.is_in_check(position),
    )


class BoardSimulator:
    """Replays the mainline and every variation of a :class:`Game`.

    Variations are replayed on copies of the position before the move they
    replace, so they never disturb the line they branch from. Replay of a
    line stops at its first illegal move; the first error found, mainline
    first, becomes the game's error.
    """

    __slots__ = ("allow_null_moves",)

    def __init__(self, allow_null_moves: bool = False) -> None:
        self.allow_null_moves = allow_null_moves

    def simulate(self, game: Game) -> SimulatedGame:
        try:
            start = initial_position(game)
        except ValueError as exc:
            error = IllegalMove(
                f"invalid FEN tag: {exc}", game.provenance, ply=0, san=""
            )
            return SimulatedGame(game, SimulatedLine(None, error=error), error)

        initial = snapshot(start, 0)
        mainline = SimulatedLine(initial)
        work: list[_Pending] = [(start, initial, game.moves, mainline, True)]
        first_error: IllegalMove | None = None

        while work:
            position, before, nodes, line, is_mainline = work.pop()
            self._replay(game, position, before, nodes, line, is_mainline, work)
            if line.error is not None and (first_error is None or is_mainline):
                first_error = line.error

        if first_error is not None:
            _LOGGER.debug("%s: %s", game.provenance, first_error.message)
        return SimulatedGame(game, mainline, first_error)

    def _replay(
        self,
        game: Game,
        position: Position,
        before: PositionSnapshot,
        nodes: list[MoveNode],
        line: SimulatedLine,
        is_mainline: bool,
        work: list[_Pending],
    ) -> None:
        for node in nodes:
            ply = before.ply + 1
            branches: list[SimulatedLine] = []
            for variation in node.variations:
                branch = SimulatedLine(before)
                branches.append(branch)
                work.append((position.copy(), before, variation.moves, branch, False))

            try:
                move = self._resolve(position, node, ply, is_mainline)
            except ValueError as exc:
                line.error = IllegalMove(
                    f"{exc} at ply {ply}", game.provenance, ply=ply, san=node.text
                )
                # Branches of an unplayable move are dropped with it.
                del work[len(work) - len(branches) :]
                return

            san = move_to_san(position, move, suffix=False)
            lalg = move_to_lalg(position, move)
            position.make_move(move)
            after = snapshot(position, ply)
            if after.is_check:
                mated = not MoveGenerator(position).has_legal_move()
                san += "#" if mated else "+"
                after = replace(after, is_mate=mated)

            line.plies.append(PlyRecord(node, move, san, lalg, after, branches))
            before = after

        self._classify_final(position, line)

    def _resolve(
        self, position: Position, node: MoveNode, ply: int, is_mainline: bool
    ) -> Move:
        if not node.is_null:
            return parse_san(position, node.text)
        if ply == 1:
            raise ValueError("Null move as the first move of the game")
        if is_mainline and not self.allow_null_moves:
            raise ValueError(f"Null move not allowed: {node.text}")
        return NULL_MOVE

    @staticmethod
    def _classify_final(position: Position, line: SimulatedLine) -> None:
        final = line.final
        if final is None or final.is_mate:
            return
        updated = replace(
            final,
            is_stalemate=Rules.is_stalemate(position),
            is_insufficient=Rules.is_insufficient_material(position),
        )
        if line.plies:
            line.plies[-1].snapshot = updated
        else:
            line.initial = updated
