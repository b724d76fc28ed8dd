"""Tests for game editing ahead of output."""

import pytest

from conftest import FOOLS_MATE, OPEN_GAME, make_pgn
from pgnsieve.config import FormatOptions
from pgnsieve.matching.duplicates import GameSignature
from pgnsieve.matching.eco import EcoEntry
from pgnsieve.matching.matcher import MatchOutcome, Verdict
from pgnsieve.output.transformer import Transformer, split_lines
from pgnsieve.pgn.models import Provenance, ResultToken

BRANCHED = make_pgn(
    "{Start} 1. e4 {centre} e5 $2 (1... c5 2. Nf3 (2. c3) d6) (1... e6) 2. Nf3 1-0",
    Result="1-0",
)


@pytest.fixture
def transform(parse_game, simulate):
    def run(text: str, outcome: MatchOutcome | None = None, **options):
        game = parse_game(text)
        simulated = simulate(game)
        return Transformer(FormatOptions(**options)).transform(game, simulated, outcome)

    return run


@pytest.fixture
def edited(transform):
    """The single game produced by a transformation."""

    def run(text: str, outcome: MatchOutcome | None = None, **options):
        pairs = transform(text, outcome, **options)
        assert len(pairs) == 1
        return pairs[0]

    return run


def _texts(game) -> list[str]:
    return [node.text for node in game.moves]


class TestStripping:
    def test_everything_kept_by_default(self, edited) -> None:
        game, _ = edited(BRANCHED)
        assert game.prefix_comments == ["Start"]
        assert game.moves[0].comments == ["centre"]
        assert game.moves[1].nags == [2]
        assert len(game.moves[1].variations) == 2

    def test_strip_all(self, edited) -> None:
        game, _ = edited(
            BRANCHED, keep_comments=False, keep_nags=False, keep_variations=False
        )
        assert game.prefix_comments == []
        for node in game.moves:
            assert not node.comments and not node.nags and not node.variations
        assert _texts(game) == ["e4", "e5", "Nf3"]

    def test_comments_inside_variations(self, edited) -> None:
        text = make_pgn("1. e4 ({a} 1. d4 {b}) {c} e5 *")
        game, _ = edited(text, keep_comments=False)
        variation = game.moves[0].variations[0]
        assert variation.prefix_comments == []
        assert variation.suffix_comments == []
        assert variation.moves[0].comments == []

    def test_parsed_game_untouched(self, parse_game, simulate) -> None:
        game = parse_game(BRANCHED)
        Transformer(FormatOptions(keep_comments=False)).transform(game, simulate(game))
        assert game.prefix_comments == ["Start"]
        assert game.moves[0].comments == ["centre"]


class TestComments:
    def test_first_found_in(self, edited) -> None:
        outcome = MatchOutcome(
            Verdict.MATCH, duplicate_of=Provenance("a.pgn", 1, 9, 1)
        )
        game, _ = edited(OPEN_GAME, outcome)
        assert game.prefix_comments == ["First found in: a.pgn:1-9 (game 1)"]

    def test_first_found_in_needs_comments(self, edited) -> None:
        outcome = MatchOutcome(
            Verdict.MATCH, duplicate_of=Provenance("a.pgn", 1, 9, 1)
        )
        game, _ = edited(OPEN_GAME, outcome, keep_comments=False)
        assert game.prefix_comments == []

    def test_match_comments(self, edited) -> None:
        outcome = MatchOutcome(Verdict.MATCH, match_plies=(0, 2))
        game, _ = edited(OPEN_GAME, outcome, add_match_comments=True)
        assert game.prefix_comments == ["MATCH"]
        assert game.moves[1].comments == ["MATCH"]
        assert game.moves[0].comments == []

    def test_custom_match_comment(self, edited) -> None:
        outcome = MatchOutcome(Verdict.MATCH, match_plies=(1,))
        game, _ = edited(
            OPEN_GAME, outcome, add_match_comments=True, match_comment="here"
        )
        assert game.moves[0].comments == ["here"]

    def test_fen_comments(self, edited) -> None:
        game, _ = edited(make_pgn("1. e4 *"), add_fen_comments=True)
        assert game.moves[0].comments == [
            '"rnbqkbnr/pppppppp/8/8/4P3/8/PPPP1PPP/RNBQKBNR b KQkq e3 0 1"'
        ]

    def test_hashcode_comments(self, edited) -> None:
        game, simulated = edited(make_pgn("1. e4 e5 *"), add_hashcode_comments=True)
        key = simulated.plies[1].snapshot.fingerprint()
        assert game.moves[1].comments == [f"{key:016x}"]


class TestRestructuring:
    def test_drop_plies(self, edited) -> None:
        game, simulated = edited(OPEN_GAME, drop_ply_number=2)
        assert _texts(game) == ["Nf3", "Nc6", "Bb5", "a6"]
        assert game.tags["SetUp"] == "1"
        assert game.tags["FEN"] == (
            "rnbqkbnr/pppp1ppp/8/4p3/4P3/8/PPPP1PPP/RNBQKBNR w KQkq e6 0 2"
        )
        assert simulated.complete
        assert [record.san for record in simulated.plies] == _texts(game)

    def test_output_ply_limit(self, edited) -> None:
        game, simulated = edited(OPEN_GAME, output_ply_limit=3)
        assert _texts(game) == ["e4", "e5", "Nf3"]
        assert game.result == ResultToken.UNKNOWN
        assert game.tags["Result"] == "*"
        assert len(simulated.plies) == 3

    def test_ply_limit_not_reached(self, edited) -> None:
        game, _ = edited(OPEN_GAME, output_ply_limit=10)
        assert game.result == ResultToken.WHITE_WINS
        assert len(game.moves) == 6


class TestTags:
    def test_fix_result(self, edited) -> None:
        text = make_pgn("1. f3 e5 2. g4 Qh4# 1-0", Result="1-0")
        game, _ = edited(text, fix_result_tags=True)
        assert game.result == ResultToken.BLACK_WINS
        assert game.tags["Result"] == "0-1"

    def test_fix_result_leaves_undecided_games(self, edited) -> None:
        game, _ = edited(OPEN_GAME, fix_result_tags=True)
        assert game.tags["Result"] == "1-0"

    def test_fen_castling(self, edited) -> None:
        fen = "r3k2r/8/8/8/8/8/8/R3K2R w - - 0 1"
        text = make_pgn("1. Kf1 *", SetUp="1", FEN=fen)
        game, _ = edited(text, add_fen_castling=True)
        assert game.tags["FEN"] == "r3k2r/8/8/8/8/8/8/R3K2R w KQkq - 0 1"

    def test_fen_castling_kept_when_given(self, edited) -> None:
        fen = "r3k2r/8/8/8/8/8/8/R3K2R w K - 0 1"
        text = make_pgn("1. Kf1 *", SetUp="1", FEN=fen)
        game, _ = edited(text, add_fen_castling=True)
        assert game.tags["FEN"] == fen

    def test_eco_tags(self, edited) -> None:
        outcome = MatchOutcome(Verdict.MATCH, eco=EcoEntry("C60", "Ruy Lopez"))
        game, _ = edited(OPEN_GAME, outcome, add_eco_tags=True)
        assert game.tags["ECO"] == "C60"
        assert game.tags["Opening"] == "Ruy Lopez"

    def test_hashcode_tag(self, edited) -> None:
        game, simulated = edited(FOOLS_MATE, add_hashcode_tag=True)
        assert game.tags["HashCode"] == GameSignature.of(simulated).hexdigest

    def test_match_label(self, edited) -> None:
        outcome = MatchOutcome(Verdict.MATCH, labels=("pin", "fork"))
        game, _ = edited(OPEN_GAME, outcome, add_match_label_tag=True)
        assert game.tags["MatchLabel"] == "pin,fork"

    def test_ply_counts(self, edited) -> None:
        game, _ = edited(BRANCHED, add_ply_count=True, add_total_ply_count=True)
        assert game.tags["PlyCount"] == "3"
        assert game.tags["TotalPlyCount"] == "8"

    def test_seven_tag_roster_keeps_setup(self, edited) -> None:
        fen = "rnbqkbnr/pppppppp/8/8/4P3/8/PPPP1PPP/RNBQKBNR b KQkq e3 0 1"
        text = make_pgn("1... e5 *", SetUp="1", FEN=fen, ECO="C20", White="W")
        game, _ = edited(text, seven_tag_roster=True)
        assert set(game.tags) == {"Result", "SetUp", "FEN", "White"}

    def test_wanted_tags(self, edited) -> None:
        game, _ = edited(OPEN_GAME, only_output_wanted_tags=("White", "Black"))
        assert game.tags == {"White": "Alpha", "Black": "Beta"}

    def test_dropped_tags(self, edited) -> None:
        game, _ = edited(OPEN_GAME, dropped_tags=("Site", "Round"))
        assert "Site" not in game.tags
        assert "Round" not in game.tags
        assert game.tags["Event"] == "Club"


class TestSplitLines:
    def test_every_line(self, parse_game) -> None:
        pieces = split_lines(parse_game(BRANCHED))
        assert [_texts(piece) for piece in pieces] == [
            ["e4", "e5", "Nf3"],
            ["e4", "c5", "Nf3", "d6"],
            ["e4", "c5", "c3"],
            ["e4", "e6"],
        ]

    def test_results(self, parse_game) -> None:
        pieces = split_lines(parse_game(BRANCHED))
        assert pieces[0].result == ResultToken.WHITE_WINS
        assert all(piece.result == ResultToken.UNKNOWN for piece in pieces[1:])
        assert all(piece.tags["Result"] == "*" for piece in pieces[1:])

    def test_lines_have_no_variations(self, parse_game) -> None:
        for piece in split_lines(parse_game(BRANCHED)):
            assert all(not node.variations for node in piece.moves)

    def test_transform_splits(self, transform) -> None:
        outcome = MatchOutcome(Verdict.MATCH, labels=("x",))
        pairs = transform(
            BRANCHED, outcome, split_variations=True, add_match_label_tag=True
        )
        assert len(pairs) == 4
        assert all(simulated.complete for _, simulated in pairs)
        assert pairs[0][0].tags["MatchLabel"] == "x"
        assert "MatchLabel" not in pairs[1][0].tags
        assert [r.san for r in pairs[3][1].plies] == ["e4", "e6"]


class TestBrokenGames:
    def test_incomplete_replay_passes_through(self, parse_game, simulate) -> None:
        game = parse_game(make_pgn("1. e4 e5 2. Ke3 Nc6 *"))
        simulated = simulate(game)
        pairs = Transformer(FormatOptions(keep_comments=False)).transform(
            game, simulated
        )
        assert len(pairs) == 1
        assert pairs[0][0] is game
        assert pairs[0][1] is simulated
