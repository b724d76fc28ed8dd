"""The per-game pipeline: simulate, match, route and format.

All state that outlives one game lives in a :class:`RunContext`, which is
passed in explicitly. Games must be fed in source order because the
duplicate index and the game-number windows depend on it.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from enum import StrEnum

from pgnsieve.config import RunConfig
from pgnsieve.matching.duplicates import CorpusIndex, GameSignature
from pgnsieve.matching.eco import EcoTable
from pgnsieve.matching.matcher import Matcher, MatchOutcome, Verdict
from pgnsieve.output.formatter import GameFormatter
from pgnsieve.output.transformer import Transformer
from pgnsieve.pgn.models import Game
from pgnsieve.simulation.simulator import BoardSimulator

_LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class Counters:
    """Run totals; each game bumps them once, after its verdict."""

    processed: int = 0
    matched: int = 0
    non_matching: int = 0
    broken: int = 0
    duplicates: int = 0
    eco_misses: int = 0


class Sink(StrEnum):
    MATCHED = "matched"
    NON_MATCHING = "non-matching"
    DUPLICATES = "duplicates"
    DISCARD = "discard"


@dataclass(frozen=True, slots=True)
class Route:
    """Where a game goes.

    ``index`` is the game's 1-based position within its sink and
    ``file_number`` the output file it belongs to when the sink is split
    every ``games_per_file`` games. Both are 0 for discarded games.
    """

    sink: Sink
    index: int = 0
    file_number: int = 0

    @property
    def is_discarded(self) -> bool:
        return self.sink == Sink.DISCARD


DISCARDED = Route(Sink.DISCARD)


class RunContext:
    """Configuration plus everything that carries over from game to game.

    Validates the configuration on construction, so a conflicting option
    fails before the first game is read.
    """

    __slots__ = (
        "config",
        "eco_table",
        "index",
        "counters",
        "finished",
        "_sink_counts",
        "_match_candidates",
    )

    def __init__(self, config: RunConfig, eco_table: EcoTable | None = None) -> None:
        self.config = config.validate()
        self.eco_table = eco_table
        self.index: CorpusIndex | None = (
            CorpusIndex(config.criteria.fuzzy_match_depth)
            if config.detect_duplicates
            else None
        )
        self.counters = Counters()
        self.finished = False
        self._sink_counts: dict[Sink, int] = {}
        self._match_candidates = 0

    def route_to(self, sink: Sink) -> Route:
        if sink == Sink.DISCARD:
            return DISCARDED
        count = self._sink_counts.get(sink, 0) + 1
        self._sink_counts[sink] = count
        per_file = self.config.run.games_per_file
        file_number = (count - 1) // per_file + 1 if per_file else 1
        return Route(sink, count, file_number)

    def next_match_candidate(self) -> int:
        self._match_candidates += 1
        return self._match_candidates


@dataclass(frozen=True, slots=True)
class ProcessedGame:
    """A game, the matcher's verdict on it and its formatted records.

    ``records`` holds one entry per output game; there are several when
    variations are split out. It is empty for discarded games.
    """

    game: Game
    outcome: MatchOutcome
    route: Route
    records: tuple[str, ...] = ()

    @property
    def text(self) -> str:
        return "".join(self.records)


class Pipeline:
    """Runs games through every stage against one :class:`RunContext`."""

    __slots__ = ("context", "simulator", "matcher", "transformer", "formatter")

    def __init__(self, context: RunContext) -> None:
        config = context.config
        self.context = context
        self.simulator = BoardSimulator(allow_null_moves=config.parse.allow_null_moves)
        self.matcher = Matcher(
            config.criteria,
            eco_table=context.eco_table,
            classify_eco=config.format.add_eco_tags,
            reject_inconsistent_results=config.parse.reject_inconsistent_results,
        )
        self.transformer = Transformer(config.format)
        self.formatter = GameFormatter(config.format)

    def run(self, games: Iterable[Game]) -> Iterator[ProcessedGame]:
        """Process *games* in order until they run out or a limit is reached."""
        for game in games:
            if self.context.finished:
                break
            yield self.process(game)

    def register_check_game(self, game: Game) -> None:
        """Seed the duplicate index with *game* without counting or output."""
        index = self.context.index
        if index is None or game.is_broken:
            return
        simulated = self.simulator.simulate(game)
        if not simulated.complete:
            _LOGGER.warning("%s", simulated.error)
            return
        include_rights = self.context.config.criteria.include_rights
        index.add(GameSignature.of(simulated, include_rights), game.provenance)

    def process(self, game: Game) -> ProcessedGame:
        context = self.context
        counters = context.counters
        counters.processed += 1

        simulated = self.simulator.simulate(game)
        outcome = self.matcher.evaluate(game, simulated, context.index)
        if outcome.eco_missed:
            counters.eco_misses += 1

        sink = self._decide(game, outcome)
        route = context.route_to(sink)
        if sink == Sink.MATCHED:
            counters.matched += 1
        self._check_limits()

        records: tuple[str, ...] = ()
        if not route.is_discarded:
            records = tuple(
                self.formatter.format(piece, piece_simulated)
                for piece, piece_simulated in self.transformer.transform(
                    game, simulated, outcome
                )
            )
        return ProcessedGame(game, outcome, route, records)

    # ── Routing ──────────────────────────────────────────────────────────

    def _decide(self, game: Game, outcome: MatchOutcome) -> Sink:
        context = self.context
        counters = context.counters
        run = context.config.run

        if outcome.verdict == Verdict.BROKEN:
            counters.broken += 1
            if game.is_broken:
                # The reader has already reported it.
                _LOGGER.debug("%s", outcome.error)
            else:
                _LOGGER.warning("%s", outcome.error)
            if context.config.parse.keep_broken_games and run.non_matching_wanted:
                return Sink.NON_MATCHING
            return Sink.DISCARD

        if outcome.verdict == Verdict.NO_MATCH:
            counters.non_matching += 1
            return Sink.NON_MATCHING if run.non_matching_wanted else Sink.DISCARD

        # Duplicate status is settled before the game-number windows, so a
        # game outside them still registers as the original.
        if outcome.is_duplicate:
            counters.duplicates += 1
            _LOGGER.debug("%s duplicates %s", game.provenance, outcome.duplicate_of)
        elif context.index is not None and outcome.signature is not None:
            context.index.add(outcome.signature, game.provenance)

        if counters.processed < run.first_game_number:
            return Sink.DISCARD
        candidate = context.next_match_candidate()
        if run.select_only and not _in_ranges(candidate, run.select_only):
            return Sink.DISCARD
        if _in_ranges(candidate, run.skip_matching):
            return Sink.DISCARD

        if outcome.is_duplicate:
            if run.suppress_duplicates:
                counters.non_matching += 1
                return Sink.NON_MATCHING if run.non_matching_wanted else Sink.DISCARD
            if run.duplicates_wanted:
                return Sink.DUPLICATES
        elif run.suppress_originals:
            return Sink.DISCARD

        return Sink.DISCARD if run.suppress_matched else Sink.MATCHED

    def _check_limits(self) -> None:
        context = self.context
        run = context.config.run
        counters = context.counters
        if run.game_limit and counters.processed >= run.game_limit:
            _LOGGER.info("Stopping after %d games", counters.processed)
            context.finished = True
        elif run.maximum_matches and counters.matched >= run.maximum_matches:
            _LOGGER.info("Stopping after %d matches", counters.matched)
            context.finished = True


def _in_ranges(number: int, ranges: tuple[tuple[int, int], ...]) -> bool:
    return any(low <= number <= high for low, high in ranges)
