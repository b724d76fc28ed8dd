"""Tests for parsing match criteria."""

import pytest

from pgnsieve.core.notation import STARTING_FEN, position_from_fen
from pgnsieve.errors import ConfigurationError
from pgnsieve.matching.criteria import (
    MatchCriteria,
    Occurrence,
    PieceRequirement,
    TagOperator,
    normalise_san,
    parse_eco_range,
    parse_fen_pattern,
    parse_material,
    parse_move_sequence,
    parse_tag_criterion,
    position_target_from_fen,
    position_target_from_hex,
    position_target_from_moves,
)

E4_BOARD = (
    "rnbqkbnr/pppppppp/________/________/____P___/________/PPPP_PPP/RNBQKBNR"
)


class TestNormaliseSan:
    @pytest.mark.parametrize(
        ("san", "expected"),
        [
            ("Nxf3+", "Nf3"),
            ("0-0", "O-O"),
            ("O-O-O#", "O-O-O"),
            ("e8=Q", "e8Q"),
            ("Pe4", "e4"),
            ("exd6e.p.", "ed6"),
            ("Qh4!?", "Qh4"),
        ],
    )
    def test_spellings(self, san: str, expected: str) -> None:
        assert normalise_san(san) == expected


class TestMoveSequence:
    def test_tokens(self) -> None:
        seq = parse_move_sequence("1. e4 e5 2. Nf3|Nc3 !Nc6 *")
        assert len(seq.moves) == 5
        assert seq.moves[0].alternatives == ("e4",)
        assert seq.moves[2].alternatives == ("Nf3", "Nc3")
        assert seq.moves[3].negated
        assert seq.moves[4].is_wildcard
        assert not seq.black_first

    def test_black_first(self) -> None:
        seq = parse_move_sequence("1... e5 2. Nf3")
        assert seq.black_first
        assert [m.alternatives for m in seq.moves] == [("e5",), ("Nf3",)]

    def test_glued_move_numbers(self) -> None:
        seq = parse_move_sequence("1.d4 Nf6 2.c4")
        assert [m.alternatives[0] for m in seq.moves] == ["d4", "Nf6", "c4"]

    def test_negated_token(self) -> None:
        token = parse_move_sequence("!Nc6").moves[0]
        assert token.matches("Nf6")
        assert not token.matches("Nc6")
        assert not token.matches("Nxc6")

    @pytest.mark.parametrize("text", ["", "   ", "1.", "1. e4 |"])
    def test_invalid(self, text: str) -> None:
        with pytest.raises(ConfigurationError):
            parse_move_sequence(text)


class TestTagCriterion:
    def test_plain_value(self) -> None:
        criterion = parse_tag_criterion('White "Fischer, Robert J."')
        assert criterion.tag == "White"
        assert criterion.value == "Fischer, Robert J."
        assert criterion.operator == TagOperator.EQUAL

    @pytest.mark.parametrize(
        ("text", "operator", "value"),
        [
            ('WhiteElo >= "2500"', TagOperator.GREATER_EQUAL, "2500"),
            ('Date < "1990.01.01"', TagOperator.LESS, "1990.01.01"),
            ("Result <> 1-0", TagOperator.NOT_EQUAL, "1-0"),
            ('Event =~ "^World"', TagOperator.REGEX, "^World"),
        ],
    )
    def test_operators(self, text: str, operator: TagOperator, value: str) -> None:
        criterion = parse_tag_criterion(text)
        assert criterion.operator == operator
        assert criterion.value == value

    def test_escaped_quotes(self) -> None:
        assert parse_tag_criterion(r'Event "The \"Big\" One"').value == 'The "Big" One'

    def test_invalid_regex(self) -> None:
        with pytest.raises(ConfigurationError, match="regular expression"):
            parse_tag_criterion('Event =~ "("')

    def test_missing_tag_name(self) -> None:
        with pytest.raises(ConfigurationError):
            parse_tag_criterion('"value only"')


class TestEcoRange:
    def test_range(self) -> None:
        eco = parse_eco_range("B20-B99")
        assert eco.contains("B33")
        assert not eco.contains("C00")

    def test_prefix(self) -> None:
        eco = parse_eco_range("C4")
        assert eco.contains("C45")
        assert not eco.contains("C50")

    @pytest.mark.parametrize("text", ["Z00", "B99-B20", "B1234"])
    def test_invalid(self, text: str) -> None:
        with pytest.raises(ConfigurationError):
            parse_eco_range(text)


class TestPositionTargets:
    def test_from_fen(self) -> None:
        target = position_target_from_fen(STARTING_FEN)
        assert target.fingerprint == position_from_fen(STARTING_FEN).fingerprint()
        assert target.min_depth == 0

    def test_invalid_fen(self) -> None:
        with pytest.raises(ConfigurationError):
            position_target_from_fen("8/8/8 w - - 0 1")

    def test_from_moves(self) -> None:
        target = position_target_from_moves("1. e4 e5")
        pos = position_from_fen(
            "rnbqkbnr/pppp1ppp/8/4p3/4P3/8/PPPP1PPP/RNBQKBNR w KQkq e6 0 2"
        )
        assert target.fingerprint == pos.fingerprint()
        assert target.min_depth == 10

    def test_illegal_move_line(self) -> None:
        with pytest.raises(ConfigurationError, match="position line"):
            position_target_from_moves("1. e5")

    def test_from_hex(self) -> None:
        assert position_target_from_hex("0x1f").fingerprint == 31
        assert position_target_from_hex("ABCDEF").fingerprint == 0xABCDEF

    def test_invalid_hex(self) -> None:
        with pytest.raises(ConfigurationError):
            position_target_from_hex("xyz")


class TestFenPattern:
    def test_exact_board(self) -> None:
        pattern = parse_fen_pattern("rnbqkbnr/pppppppp/8/8/4P3/8/PPPP1PPP/RNBQKBNR")
        assert pattern.regex.fullmatch(E4_BOARD)

    def test_wildcards(self) -> None:
        assert parse_fen_pattern("*/*/*/*/????P???/*/*/*").regex.fullmatch(E4_BOARD)
        assert parse_fen_pattern("*/*/*/*/4A3/*/*/*").regex.fullmatch(E4_BOARD)
        assert not parse_fen_pattern("*/*/*/*/4a3/*/*/*").regex.fullmatch(E4_BOARD)

    def test_square_sets(self) -> None:
        assert parse_fen_pattern("*/*/*/*/4[Pp]3/*/*/*").regex.fullmatch(E4_BOARD)
        assert not parse_fen_pattern("*/*/*/*/4[^P]3/*/*/*").regex.fullmatch(
            E4_BOARD
        )

    def test_label_defaults_to_board(self) -> None:
        assert parse_fen_pattern("*/*/*/*/*/*/*/* w").label == "*/*/*/*/*/*/*/*"
        assert parse_fen_pattern("*/*/*/*/*/*/*/*", "any").label == "any"

    def test_inverse(self) -> None:
        pattern = parse_fen_pattern("*/*/*/*/4P3/*/*/*", include_inverse=True)
        board = (
            "rnbqkbnr/pppp_ppp/________/____p___/________/________/PPPPPPPP/RNBQKBNR"
        )
        assert not pattern.regex.fullmatch(board)
        assert pattern.inverse_regex is not None
        assert pattern.inverse_regex.fullmatch(board)

    @pytest.mark.parametrize(
        "text",
        [
            "*/*/*/*/*/*/*",
            "*/*/*/*/*/*/*/X",
            "*/*/*/*/[Pp/*/*/*",
            "[]/*/*/*/*/*/*/*",
        ],
    )
    def test_invalid(self, text: str) -> None:
        with pytest.raises(ConfigurationError):
            parse_fen_pattern(text)


class TestMaterial:
    def test_two_sides(self) -> None:
        criterion = parse_material("KQ KR")
        assert criterion.white == (PieceRequirement("K", 1), PieceRequirement("Q", 1))
        assert criterion.black == (PieceRequirement("K", 1), PieceRequirement("R", 1))
        assert criterion.depth == 2

    def test_depth_and_occurrences(self) -> None:
        criterion = parse_material("3 KP2+ KL")
        assert criterion.depth == 3
        assert criterion.white[1] == PieceRequirement("P", 2, Occurrence.AT_LEAST)
        assert criterion.black[1].letter == "L"

    def test_black_defaults_to_bare_king(self) -> None:
        assert parse_material("KQ").black == (PieceRequirement("K", 1),)

    @pytest.mark.parametrize("text", ["", "K Q R", "KZ K", "3"])
    def test_invalid(self, text: str) -> None:
        with pytest.raises(ConfigurationError):
            parse_material(text)


class TestPlyBounds:
    def test_move_bounds(self) -> None:
        criteria = MatchCriteria(lower_move_bound=3, upper_move_bound=5)
        assert criteria.ply_bounds == (5, 10)
        assert criteria.has_ply_bounds

    def test_tightest_bound_wins(self) -> None:
        criteria = MatchCriteria(
            minply=7, lower_move_bound=3, maxply=12, upper_move_bound=5
        )
        assert criteria.ply_bounds == (7, 10)

    def test_unbounded(self) -> None:
        assert MatchCriteria().ply_bounds == (0, None)
        assert not MatchCriteria().has_ply_bounds
