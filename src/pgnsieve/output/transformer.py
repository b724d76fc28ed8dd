"""Edits applied to a copy of a game before it is formatted.

The transformer never touches the parsed game. It returns one or more
``(game, simulated)`` pairs whose move trees line up ply for ply, which is
what the formatter relies on.
"""

from __future__ import annotations

from dataclasses import replace

from pgnsieve.config import FormatOptions
from pgnsieve.core.board import Board
from pgnsieve.core.enums import CastlingRights
from pgnsieve.core.notation import infer_castling
from pgnsieve.matching.duplicates import GameSignature
from pgnsieve.matching.matcher import MatchOutcome, expected_result
from pgnsieve.pgn.models import (
    SEVEN_TAG_ROSTER,
    Game,
    MoveNode,
    ResultToken,
    iter_nodes,
)
from pgnsieve.simulation.models import SimulatedGame
from pgnsieve.simulation.simulator import BoardSimulator

# Tags needed to replay a game; kept even when not asked for.
_SETUP_TAGS = ("SetUp", "FEN")


class Transformer:
    """Applies the editing options of a :class:`FormatOptions`."""

    __slots__ = ("options", "_simulator")

    def __init__(self, options: FormatOptions) -> None:
        self.options = options
        # Games reaching here already replayed once; split lines may carry
        # null moves from variations onto their mainline.
        self._simulator = BoardSimulator(allow_null_moves=True)

    def transform(
        self, game: Game, simulated: SimulatedGame, outcome: MatchOutcome | None = None
    ) -> list[tuple[Game, SimulatedGame]]:
        if game.is_broken or not simulated.complete:
            # Broken games are written out as they were read.
            return [(game, simulated)]

        opts = self.options
        if opts.split_variations:
            pieces = split_lines(game)
            # Lines after the first are not the game that was matched.
            outcomes = [outcome] + [None] * (len(pieces) - 1)
            return [
                self._edit(piece, self._simulator.simulate(piece), piece_outcome)
                for piece, piece_outcome in zip(pieces, outcomes)
            ]
        return [self._edit(game.copy(), simulated, outcome)]

    # ── Editing ──────────────────────────────────────────────────────────

    def _edit(
        self, game: Game, simulated: SimulatedGame, outcome: MatchOutcome | None
    ) -> tuple[Game, SimulatedGame]:
        opts = self.options
        self._strip(game)

        if outcome is not None:
            if outcome.duplicate_of is not None and opts.keep_comments:
                game.prefix_comments.insert(
                    0, f"First found in: {outcome.duplicate_of}"
                )
            if opts.add_match_comments:
                self._add_match_comments(game, outcome.match_plies)
        if opts.add_fen_comments or opts.add_hashcode_comments:
            self._add_position_comments(game, simulated)

        restructured = False
        if opts.drop_ply_number:
            self._drop_plies(game, simulated, opts.drop_ply_number)
            restructured = True
        limit = opts.output_ply_limit
        if limit is not None and len(game.moves) > limit:
            del game.moves[limit:]
            game.result = ResultToken.UNKNOWN
            game.tags["Result"] = ResultToken.UNKNOWN.value
            restructured = True
        if restructured:
            simulated = self._simulator.simulate(game)

        self._add_tags(game, simulated, outcome)
        self._filter_tags(game)
        return game, simulated

    def _strip(self, game: Game) -> None:
        opts = self.options
        if opts.keep_comments and opts.keep_variations and opts.keep_nags:
            return
        if not opts.keep_comments:
            game.prefix_comments.clear()
        for node, _ in list(iter_nodes(game.moves)):
            if not opts.keep_comments:
                node.comments.clear()
                for variation in node.variations:
                    variation.prefix_comments.clear()
                    variation.suffix_comments.clear()
            if not opts.keep_nags:
                node.nags.clear()
            if not opts.keep_variations:
                node.variations.clear()

    def _add_match_comments(self, game: Game, plies: tuple[int, ...]) -> None:
        comment = self.options.match_comment
        for ply in plies:
            if ply == 0:
                game.prefix_comments.append(comment)
            elif ply <= len(game.moves):
                game.moves[ply - 1].comments.append(comment)

    def _add_position_comments(self, game: Game, simulated: SimulatedGame) -> None:
        opts = self.options
        for node, record in zip(game.moves, simulated.plies):
            if opts.add_fen_comments:
                node.comments.append(f'"{record.snapshot.fen}"')
            if opts.add_hashcode_comments:
                node.comments.append(f"{record.snapshot.fingerprint():016x}")

    @staticmethod
    def _drop_plies(game: Game, simulated: SimulatedGame, count: int) -> None:
        count = min(count, len(simulated.plies))
        if count == 0:
            return
        start = simulated.plies[count - 1].snapshot
        del game.moves[:count]
        game.tags["SetUp"] = "1"
        game.tags["FEN"] = start.fen

    def _add_tags(
        self, game: Game, simulated: SimulatedGame, outcome: MatchOutcome | None
    ) -> None:
        opts = self.options
        tags = game.tags

        if opts.fix_result_tags:
            final = simulated.final
            decided = expected_result(final) if final is not None else None
            if decided is not None:
                game.result = ResultToken(decided)
            tags["Result"] = game.result.value

        if opts.add_fen_castling and "FEN" in tags:
            fields = tags["FEN"].split()
            if len(fields) >= 3 and fields[2] == "-":
                board = Board.from_placement(fields[0])
                rights = infer_castling(board)
                if rights != CastlingRights.NONE:
                    fields[2] = rights.fen
                    tags["FEN"] = " ".join(fields)

        if opts.add_eco_tags and outcome is not None and outcome.eco is not None:
            tags.update(outcome.eco.tags())
        if opts.add_hashcode_tag:
            signature = GameSignature.of(simulated)
            tags["HashCode"] = signature.hexdigest
        if opts.add_match_label_tag and outcome is not None and outcome.labels:
            tags["MatchLabel"] = ",".join(outcome.labels)
        if opts.add_ply_count:
            tags["PlyCount"] = str(len(game.moves))
        if opts.add_total_ply_count:
            tags["TotalPlyCount"] = str(sum(1 for _ in iter_nodes(game.moves)))

    def _filter_tags(self, game: Game) -> None:
        opts = self.options
        wanted: tuple[str, ...] | None = None
        if opts.seven_tag_roster:
            wanted = SEVEN_TAG_ROSTER
        elif opts.only_output_wanted_tags:
            wanted = opts.only_output_wanted_tags
        keep = set(wanted) | set(_SETUP_TAGS) if wanted is not None else None
        game.tags = {
            name: value
            for name, value in game.tags.items()
            if (keep is None or name in keep) and name not in opts.dropped_tags
        }


def split_lines(game: Game) -> list[Game]:
    """Each line of *game* as a game of its own, mainline first.

    A variation becomes the moves leading up to it followed by the
    variation's moves; its result is ``*``.
    """
    games: list[Game] = []
    stack: list[tuple[list[MoveNode], list[MoveNode], bool]] = [([], game.moves, True)]
    while stack:
        prefix, moves, is_mainline = stack.pop()
        line = [_bare(node) for node in prefix + moves]
        piece = Game(
            tags=dict(game.tags),
            moves=line,
            prefix_comments=list(game.prefix_comments),
            result=game.result if is_mainline else ResultToken.UNKNOWN,
            provenance=game.provenance,
        )
        if not is_mainline:
            piece.tags["Result"] = ResultToken.UNKNOWN.value
        games.append(piece)
        for index in reversed(range(len(moves))):
            for variation in reversed(moves[index].variations):
                stack.append((prefix + moves[:index], variation.moves, False))
    return games


def _bare(node: MoveNode) -> MoveNode:
    return replace(
        node, comments=list(node.comments), nags=list(node.nags), variations=[]
    )
