"""Combines every predicate of a :class:`MatchCriteria` into one verdict."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import StrEnum

from pgnsieve.core.enums import Color
from pgnsieve.core.rules import FIFTY_MOVE_PLIES, SEVENTY_FIVE_MOVE_PLIES
from pgnsieve.errors import GameError, InconsistentResult, LookupMiss, MalformedRecord
from pgnsieve.matching.criteria import MatchCriteria
from pgnsieve.matching.duplicates import CorpusIndex, GameSignature
from pgnsieve.matching.eco import EcoEntry, EcoTable
from pgnsieve.matching.material import match_material
from pgnsieve.matching.moves import match_move_sequences
from pgnsieve.matching.positions import match_fen_patterns, match_positions
from pgnsieve.matching.tags import match_tags
from pgnsieve.pgn.models import Game, Provenance
from pgnsieve.simulation.models import PositionSnapshot, SimulatedGame

_LOGGER = logging.getLogger(__name__)


class Verdict(StrEnum):
    MATCH = "match"
    NO_MATCH = "no-match"
    BROKEN = "broken"


@dataclass(frozen=True, slots=True)
class MatchOutcome:
    """What the matcher decided about one game.

    ``match_plies`` are the mainline plies where a move, position, pattern or
    material predicate was satisfied; ``0`` is the starting position.
    """

    verdict: Verdict
    duplicate_of: Provenance | None = None
    signature: GameSignature | None = None
    labels: tuple[str, ...] = ()
    eco: EcoEntry | None = None
    eco_missed: bool = False
    match_plies: tuple[int, ...] = ()
    error: GameError | None = None

    @property
    def is_duplicate(self) -> bool:
        return self.duplicate_of is not None


def expected_result(final: PositionSnapshot) -> str | None:
    """Result implied by a final position, if the board decides one."""
    if final.is_mate:
        return "1-0" if final.side_to_move == Color.BLACK else "0-1"
    if final.is_stalemate:
        return "1/2-1/2"
    return None


class Matcher:
    """Evaluates games against a fixed set of criteria.

    Cheap predicates that only need tags run before the ones that look at
    replayed positions. ``negate`` inverts the content predicates, but a game
    outside the ply bounds or the set-up filter never matches.
    """

    __slots__ = ("criteria", "eco_table", "classify_eco", "reject_inconsistent_results")

    def __init__(
        self,
        criteria: MatchCriteria,
        *,
        eco_table: EcoTable | None = None,
        classify_eco: bool = False,
        reject_inconsistent_results: bool = False,
    ) -> None:
        self.criteria = criteria
        self.eco_table = eco_table
        self.classify_eco = classify_eco
        self.reject_inconsistent_results = reject_inconsistent_results

    def evaluate(
        self, game: Game, simulated: SimulatedGame, index: CorpusIndex | None = None
    ) -> MatchOutcome:
        """Verdict for *game*; *index* is only read, never updated."""
        if game.is_broken:
            reason = game.broken_reason or "broken record"
            return MatchOutcome(
                Verdict.BROKEN, error=MalformedRecord(reason, game.provenance)
            )
        if simulated.error is not None:
            return MatchOutcome(Verdict.BROKEN, error=simulated.error)

        criteria = self.criteria
        eco, eco_missed = self._classify(simulated)

        if not self._within_filters(game, simulated):
            return MatchOutcome(Verdict.NO_MATCH, eco=eco, eco_missed=eco_missed)

        if criteria.check_results and not self._result_consistent(game, simulated):
            message = (
                f"Result {game.tags.get('Result')!r} contradicts the final position"
            )
            error = InconsistentResult(message, game.provenance)
            if self.reject_inconsistent_results:
                return MatchOutcome(Verdict.BROKEN, error=error)
            _LOGGER.info("%s", error)
            return MatchOutcome(Verdict.NO_MATCH, eco=eco, eco_missed=eco_missed)

        labels: list[str] = []
        plies: list[int] = []
        matched = self._content_matches(game, simulated, eco, labels, plies)
        if criteria.negate:
            matched = not matched
            labels.clear()
            plies.clear()
        if not matched:
            return MatchOutcome(Verdict.NO_MATCH, eco=eco, eco_missed=eco_missed)

        signature = None
        duplicate_of = None
        if index is not None:
            signature = GameSignature.of(simulated, criteria.include_rights)
            duplicate_of = index.find(signature)

        return MatchOutcome(
            Verdict.MATCH,
            duplicate_of=duplicate_of,
            signature=signature,
            labels=tuple(labels),
            eco=eco,
            eco_missed=eco_missed,
            match_plies=tuple(sorted(set(plies))),
        )

    # ── Predicates ───────────────────────────────────────────────────────

    def _classify(self, simulated: SimulatedGame) -> tuple[EcoEntry | None, bool]:
        wanted = self.classify_eco or bool(self.criteria.eco_ranges)
        if self.eco_table is None or not wanted:
            return None, False
        try:
            return self.eco_table.classify(simulated), False
        except LookupMiss as exc:
            _LOGGER.debug("%s", exc)
            return None, True

    def _within_filters(self, game: Game, simulated: SimulatedGame) -> bool:
        criteria = self.criteria
        has_fen = "FEN" in game.tags
        if criteria.setup_only and not has_fen:
            return False
        if criteria.no_setup and has_fen:
            return False
        if criteria.has_ply_bounds:
            low, high = criteria.ply_bounds
            count = len(simulated.plies)
            if count < low or (high is not None and count > high):
                return False
        return True

    @staticmethod
    def _result_consistent(game: Game, simulated: SimulatedGame) -> bool:
        final = simulated.final
        if final is None:
            return True
        expected = expected_result(final)
        return expected is None or game.tags.get("Result", expected) == expected

    def _content_matches(
        self,
        game: Game,
        simulated: SimulatedGame,
        eco: EcoEntry | None,
        labels: list[str],
        plies: list[int],
    ) -> bool:
        criteria = self.criteria

        if criteria.commented_only and not game.has_comments():
            return False
        if criteria.tags and not match_tags(
            criteria.tags,
            game.tags,
            anywhere=criteria.tag_match_anywhere,
            use_soundex=criteria.use_soundex,
        ):
            return False
        if criteria.eco_ranges:
            code = eco.eco if eco is not None else game.tags.get("ECO", "")
            if not any(r.contains(code) for r in criteria.eco_ranges):
                return False

        if criteria.move_sequences:
            found = match_move_sequences(
                criteria.move_sequences,
                simulated,
                permutations=criteria.match_permutations,
                search_variations=criteria.search_variations,
                startply=criteria.startply,
            )
            if found is None:
                return False
            plies.append(found)

        if criteria.positions:
            hit = match_positions(
                criteria.positions,
                simulated,
                depth=criteria.depth_of_positional_search,
                include_rights=criteria.include_rights,
                search_variations=criteria.search_variations,
            )
            if hit is None:
                return False
            plies.append(hit[1])

        if criteria.fen_patterns:
            pattern_hit = match_fen_patterns(
                criteria.fen_patterns,
                simulated,
                depth=criteria.depth_of_positional_search,
                search_variations=criteria.search_variations,
            )
            if pattern_hit is None:
                return False
            labels.append(pattern_hit[0])
            plies.append(pattern_hit[1])

        if criteria.materials:
            material_ply = match_material(criteria.materials, simulated)
            if material_ply is None:
                return False
            plies.append(material_ply)

        if not self._ending_matches(simulated):
            return False

        # Hits inside variations are reported as ply -1.
        plies[:] = [ply for ply in plies if ply >= 0]
        return True

    def _ending_matches(self, simulated: SimulatedGame) -> bool:
        criteria = self.criteria
        final = simulated.final
        if final is None:
            return False
        if criteria.match_checkmate and not final.is_mate:
            return False
        if criteria.match_stalemate and not final.is_stalemate:
            return False
        if criteria.match_insufficient and not final.is_insufficient:
            return False
        if criteria.match_underpromotion and not any(
            record.move.is_underpromotion for record in simulated.plies
        ):
            return False

        snapshots: list[PositionSnapshot] = []
        if criteria.counts_clocks:
            snapshots = list(simulated.mainline.snapshots())
        if criteria.match_repetition and not any(
            s.repetition_count >= 3 for s in snapshots
        ):
            return False
        if criteria.match_fifty_move and not any(
            s.halfmove_clock >= FIFTY_MOVE_PLIES for s in snapshots
        ):
            return False
        if criteria.match_seventy_five_move and not any(
            s.halfmove_clock >= SEVENTY_FIVE_MOVE_PLIES for s in snapshots
        ):
            return False
        return True
