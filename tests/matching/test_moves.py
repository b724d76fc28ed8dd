"""Tests for move-sequence matching."""

from conftest import OPEN_GAME, make_pgn
from pgnsieve.matching.criteria import parse_move_sequence
from pgnsieve.matching.moves import find_sequence, match_move_sequences


class TestFindSequence:
    def test_opening_moves(self, parse_game, simulate) -> None:
        plies = simulate(parse_game(OPEN_GAME)).plies
        assert find_sequence(parse_move_sequence("1. e4 e5"), plies) == 2

    def test_later_in_game(self, parse_game, simulate) -> None:
        plies = simulate(parse_game(OPEN_GAME)).plies
        assert find_sequence(parse_move_sequence("Nf3 Nc6"), plies) == 4

    def test_white_starts_unless_marked(self, parse_game, simulate) -> None:
        plies = simulate(parse_game(OPEN_GAME)).plies
        assert find_sequence(parse_move_sequence("e5 Nf3"), plies) is None
        assert find_sequence(parse_move_sequence("1... e5 2. Nf3"), plies) == 3

    def test_wildcard_and_alternatives(self, parse_game, simulate) -> None:
        plies = simulate(parse_game(OPEN_GAME)).plies
        assert find_sequence(parse_move_sequence("e4 * Nc3|Nf3"), plies) == 3

    def test_negation(self, parse_game, simulate) -> None:
        plies = simulate(parse_game(OPEN_GAME)).plies
        assert find_sequence(parse_move_sequence("e4 !c5"), plies) == 2
        assert find_sequence(parse_move_sequence("e4 !e5"), plies) is None

    def test_capture_spelling_ignored(self, parse_game, simulate) -> None:
        game = parse_game(make_pgn("1. e4 d5 2. exd5 *"))
        plies = simulate(game).plies
        assert find_sequence(parse_move_sequence("e4 d5 ed5"), plies) == 3

    def test_permutations(self, parse_game, simulate) -> None:
        plies = simulate(parse_game(OPEN_GAME)).plies
        target = parse_move_sequence("1. Nf3 Nc6 2. e4 e5")
        assert find_sequence(target, plies) is None
        assert find_sequence(target, plies, permutations=True) == 4

    def test_permutations_keep_sides_apart(self, parse_game, simulate) -> None:
        plies = simulate(parse_game(OPEN_GAME)).plies
        target = parse_move_sequence("1. e5 e4")
        assert find_sequence(target, plies, permutations=True) is None

    def test_startply(self, parse_game, simulate) -> None:
        plies = simulate(parse_game(OPEN_GAME)).plies
        target = parse_move_sequence("1. e4 e5")
        assert find_sequence(target, plies, startply=2) is None
        target = parse_move_sequence("Bb5")
        assert find_sequence(target, plies, startply=3) == 5

    def test_longer_than_game(self, parse_game, simulate) -> None:
        plies = simulate(parse_game(make_pgn("1. e4 *"))).plies
        assert find_sequence(parse_move_sequence("e4 e5"), plies) is None


class TestVariations:
    GAME = make_pgn("1. e4 e5 (1... c5 2. Nf3 d6) 2. Nc3 *")

    def test_mainline_only_by_default(self, parse_game, simulate) -> None:
        simulated = simulate(parse_game(self.GAME))
        sequences = (parse_move_sequence("1. e4 c5"),)
        assert match_move_sequences(sequences, simulated) is None

    def test_variation_hit_is_off_mainline(self, parse_game, simulate) -> None:
        simulated = simulate(parse_game(self.GAME))
        sequences = (parse_move_sequence("1. e4 c5 2. Nf3"),)
        found = match_move_sequences(sequences, simulated, search_variations=True)
        assert found == -1

    def test_mainline_hit_reports_ply(self, parse_game, simulate) -> None:
        simulated = simulate(parse_game(self.GAME))
        sequences = (parse_move_sequence("d4"), parse_move_sequence("e5 Nc3"))
        found = match_move_sequences(sequences, simulated, search_variations=True)
        assert found is None
        sequences = (parse_move_sequence("1... e5 2. Nc3"),)
        assert match_move_sequences(sequences, simulated) == 3
