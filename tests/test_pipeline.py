"""Tests for per-game routing and run totals."""

import pytest

from conftest import FOOLS_MATE, OPEN_GAME, QUEENS_GAME, make_pgn
from pgnsieve.config import FormatOptions, RunConfig, RunOptions
from pgnsieve.errors import ConfigurationConflict
from pgnsieve.matching.criteria import MatchCriteria, parse_tag_criterion
from pgnsieve.matching.matcher import Verdict
from pgnsieve.pgn.parser import GameReader, ParseOptions
from pgnsieve.pipeline import Pipeline, RunContext, Sink

WHITE_ALPHA = MatchCriteria(tags=(parse_tag_criterion('White "Alpha"'),))
ILLEGAL = make_pgn("1. e4 e5 2. Ke3 Nc6 *")


def _pipeline(**sections) -> Pipeline:
    return Pipeline(RunContext(RunConfig(**sections)))


@pytest.fixture
def process():
    """Run a fresh pipeline over *text*; returns the pipeline and its results."""

    def run(text: str, **sections):
        pipeline = _pipeline(**sections)
        options = sections.get("parse", ParseOptions())
        games = GameReader.from_string(text, options=options)
        return pipeline, list(pipeline.run(games))

    return run


def _sinks(results) -> list[Sink]:
    return [processed.route.sink for processed in results]


class TestRouting:
    def test_everything_matches_without_criteria(self, process) -> None:
        pipeline, results = process(OPEN_GAME + QUEENS_GAME + FOOLS_MATE)
        assert _sinks(results) == [Sink.MATCHED] * 3
        assert [p.route.index for p in results] == [1, 2, 3]
        assert results[0].text == OPEN_GAME + "\n"
        counters = pipeline.context.counters
        assert (counters.processed, counters.matched) == (3, 3)

    def test_non_matching_discarded(self, process) -> None:
        pipeline, results = process(
            OPEN_GAME + QUEENS_GAME + FOOLS_MATE, criteria=WHITE_ALPHA
        )
        assert _sinks(results) == [Sink.MATCHED, Sink.DISCARD, Sink.DISCARD]
        assert results[1].outcome.verdict == Verdict.NO_MATCH
        assert results[1].records == ()
        assert pipeline.context.counters.non_matching == 2

    def test_non_matching_wanted(self, process) -> None:
        _, results = process(
            OPEN_GAME + QUEENS_GAME + FOOLS_MATE,
            criteria=WHITE_ALPHA,
            run=RunOptions(non_matching_wanted=True),
        )
        assert _sinks(results) == [Sink.MATCHED, Sink.NON_MATCHING, Sink.NON_MATCHING]
        assert [p.route.index for p in results] == [1, 1, 2]
        assert "Gamma" in results[1].text

    def test_suppress_matched(self, process) -> None:
        pipeline, results = process(OPEN_GAME, run=RunOptions(suppress_matched=True))
        assert _sinks(results) == [Sink.DISCARD]
        assert pipeline.context.counters.matched == 0

    def test_several_records_per_game(self, process) -> None:
        text = make_pgn("1. e4 e5 (1... c5) 2. Nf3 *")
        _, results = process(text, format=FormatOptions(split_variations=True))
        assert len(results[0].records) == 2


class TestBrokenGames:
    def test_illegal_move_counted_and_dropped(self, process) -> None:
        pipeline, results = process(ILLEGAL + OPEN_GAME)
        assert _sinks(results) == [Sink.DISCARD, Sink.MATCHED]
        assert results[0].outcome.verdict == Verdict.BROKEN
        counters = pipeline.context.counters
        assert (counters.processed, counters.broken, counters.matched) == (2, 1, 1)

    def test_kept_broken_game_goes_to_non_matching(self, process) -> None:
        pipeline, results = process(
            ILLEGAL,
            parse=ParseOptions(keep_broken_games=True),
            run=RunOptions(non_matching_wanted=True),
        )
        assert _sinks(results) == [Sink.NON_MATCHING]
        assert "2. Ke3 Nc6 *" in results[0].text
        counters = pipeline.context.counters
        assert (counters.broken, counters.matched) == (1, 0)

    def test_kept_broken_game_without_non_matching_sink(self, process) -> None:
        _, results = process(ILLEGAL, parse=ParseOptions(keep_broken_games=True))
        assert _sinks(results) == [Sink.DISCARD]

    def test_kept_broken_game_is_not_a_match(self, process) -> None:
        text = make_pgn("1. e4 (1. d4 d5 2. c4 *") + make_pgn("1. e4 e5 *")
        pipeline, results = process(
            text,
            parse=ParseOptions(keep_broken_games=True),
            run=RunOptions(maximum_matches=1),
        )
        assert _sinks(results) == [Sink.DISCARD, Sink.MATCHED]
        counters = pipeline.context.counters
        assert (counters.processed, counters.matched, counters.broken) == (2, 1, 1)

    def test_malformed_record(self, process) -> None:
        text = make_pgn("1. e4 (1. d4 d5 2. c4 *") + OPEN_GAME
        pipeline, results = process(text)
        assert results[0].game.is_broken
        assert _sinks(results) == [Sink.DISCARD, Sink.MATCHED]
        assert pipeline.context.counters.broken == 1


class TestDuplicates:
    CORPUS = OPEN_GAME + QUEENS_GAME + OPEN_GAME

    def test_detected(self, process) -> None:
        criteria = MatchCriteria(detect_duplicates=True)
        pipeline, results = process(self.CORPUS, criteria=criteria)
        assert results[2].outcome.duplicate_of == results[0].game.provenance
        assert _sinks(results) == [Sink.MATCHED] * 3
        assert f"First found in: {results[0].game.provenance}" in results[2].text
        assert pipeline.context.counters.duplicates == 1

    def test_not_detected_by_default(self, process) -> None:
        pipeline, results = process(self.CORPUS)
        assert results[2].outcome.duplicate_of is None
        assert pipeline.context.index is None

    def test_duplicates_sink(self, process) -> None:
        _, results = process(self.CORPUS, run=RunOptions(duplicates_wanted=True))
        assert _sinks(results) == [Sink.MATCHED, Sink.MATCHED, Sink.DUPLICATES]

    def test_suppress_duplicates(self, process) -> None:
        run = RunOptions(suppress_duplicates=True)
        pipeline, results = process(self.CORPUS, run=run)
        assert _sinks(results) == [Sink.MATCHED, Sink.MATCHED, Sink.DISCARD]
        assert pipeline.context.counters.matched == 2

    def test_suppressed_duplicates_go_to_non_matching(self, process) -> None:
        run = RunOptions(suppress_duplicates=True, non_matching_wanted=True)
        pipeline, results = process(self.CORPUS, run=run)
        assert _sinks(results) == [Sink.MATCHED, Sink.MATCHED, Sink.NON_MATCHING]
        assert "First found in: " in " ".join(results[2].text.split())
        counters = pipeline.context.counters
        assert (counters.matched, counters.non_matching) == (2, 1)

    def test_game_before_first_number_still_original(self, process) -> None:
        run = RunOptions(suppress_duplicates=True, first_game_number=2)
        pipeline, results = process(OPEN_GAME + OPEN_GAME, run=run)
        assert _sinks(results) == [Sink.DISCARD, Sink.DISCARD]
        assert results[1].outcome.is_duplicate
        assert results[1].outcome.duplicate_of == results[0].game.provenance
        assert pipeline.context.counters.duplicates == 1

    def test_skipped_game_still_original(self, process) -> None:
        run = RunOptions(duplicates_wanted=True, skip_matching=((1, 1),))
        _, results = process(OPEN_GAME + OPEN_GAME, run=run)
        assert _sinks(results) == [Sink.DISCARD, Sink.DUPLICATES]

    @pytest.mark.parametrize("depth", [0, 1, 2, 3])
    @pytest.mark.parametrize("swapped", [False, True])
    def test_exactly_one_original_per_pair(
        self, process, depth: int, swapped: bool
    ) -> None:
        first = OPEN_GAME
        second = make_pgn("1. e4 e5 2. Nf3 Nc6 3. Bb5 a6 1-0", Result="1-0")
        if depth:
            second = make_pgn("1. e4 e5 2. Nf3 Nc6 3. Bb5 a5 1-0", Result="1-0")
        if swapped:
            first, second = second, first
        criteria = MatchCriteria(detect_duplicates=True, fuzzy_match_depth=depth)
        pipeline, results = process(first + second, criteria=criteria)
        assert [p.outcome.is_duplicate for p in results] == [False, True]
        assert results[1].outcome.duplicate_of == results[0].game.provenance
        assert pipeline.context.counters.duplicates == 1

    def test_suppress_originals(self, process) -> None:
        _, results = process(self.CORPUS, run=RunOptions(suppress_originals=True))
        assert _sinks(results) == [Sink.DISCARD, Sink.DISCARD, Sink.MATCHED]

    def test_check_game_seeds_index(self, parse_game, parse_games) -> None:
        pipeline = _pipeline(criteria=MatchCriteria(detect_duplicates=True))
        check = parse_game(OPEN_GAME)
        pipeline.register_check_game(check)
        (processed,) = pipeline.run(parse_games(OPEN_GAME))
        assert processed.outcome.duplicate_of == check.provenance
        assert pipeline.context.counters.processed == 1


class TestLimits:
    def test_game_limit(self, process) -> None:
        pipeline, results = process(
            OPEN_GAME + QUEENS_GAME + FOOLS_MATE, run=RunOptions(game_limit=2)
        )
        assert len(results) == 2
        assert pipeline.context.finished

    def test_maximum_matches(self, process) -> None:
        _, results = process(
            QUEENS_GAME + OPEN_GAME + OPEN_GAME,
            criteria=WHITE_ALPHA,
            run=RunOptions(maximum_matches=1),
        )
        assert _sinks(results) == [Sink.DISCARD, Sink.MATCHED]

    def test_first_game_number(self, process) -> None:
        pipeline, results = process(
            OPEN_GAME + QUEENS_GAME + FOOLS_MATE, run=RunOptions(first_game_number=2)
        )
        assert _sinks(results) == [Sink.DISCARD, Sink.MATCHED, Sink.MATCHED]
        assert pipeline.context.counters.matched == 2

    def test_select_only_counts_matches(self, process) -> None:
        _, results = process(
            QUEENS_GAME + OPEN_GAME + OPEN_GAME,
            criteria=WHITE_ALPHA,
            run=RunOptions(select_only=((2, 2),)),
        )
        assert _sinks(results) == [Sink.DISCARD, Sink.DISCARD, Sink.MATCHED]

    def test_skip_matching(self, process) -> None:
        _, results = process(
            OPEN_GAME + QUEENS_GAME + FOOLS_MATE,
            run=RunOptions(skip_matching=((1, 2),)),
        )
        assert _sinks(results) == [Sink.DISCARD, Sink.DISCARD, Sink.MATCHED]

    def test_games_per_file(self, process) -> None:
        _, results = process(
            OPEN_GAME + QUEENS_GAME + FOOLS_MATE, run=RunOptions(games_per_file=2)
        )
        assert [p.route.file_number for p in results] == [1, 1, 2]


class TestRunContext:
    def test_conflicting_options_fail_early(self) -> None:
        run = RunOptions(suppress_duplicates=True, suppress_originals=True)
        with pytest.raises(ConfigurationConflict):
            RunContext(RunConfig(run=run))

    def test_discarded_games_have_no_index(self) -> None:
        context = RunContext(RunConfig())
        assert context.route_to(Sink.DISCARD).index == 0
        assert context.route_to(Sink.MATCHED).index == 1
        assert context.route_to(Sink.MATCHED).index == 2
