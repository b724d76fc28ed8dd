"""Shared pytest fixtures used across the test suite."""

from __future__ import annotations

from collections.abc import Callable

import pytest

from pgnsieve.pgn.models import Game
from pgnsieve.pgn.parser import GameReader, ParseOptions
from pgnsieve.simulation.models import SimulatedGame
from pgnsieve.simulation.simulator import BoardSimulator

OPEN_GAME = """[Event "Club"]
[Site "Home"]
[Date "2024.03.01"]
[Round "1"]
[White "Alpha"]
[Black "Beta"]
[Result "1-0"]

1. e4 e5 2. Nf3 Nc6 3. Bb5 a6 1-0
"""

QUEENS_GAME = """[Event "Club"]
[Site "Home"]
[Date "2024.03.02"]
[Round "2"]
[White "Gamma"]
[Black "Delta"]
[Result "0-1"]

1. d4 d5 2. c4 e6 0-1
"""

FOOLS_MATE = """[Event "Blitz"]
[White "Loser"]
[Black "Winner"]
[Result "0-1"]

1. f3 e5 2. g4 Qh4# 0-1
"""


def make_pgn(movetext: str, **tags: str) -> str:
    """A record with *tags* (Result defaults to ``*``) and *movetext*."""
    tags.setdefault("Result", "*")
    header = "".join(f'[{name} "{value}"]\n' for name, value in tags.items())
    return f"{header}\n{movetext}\n"


@pytest.fixture
def parse_games() -> Callable[..., list[Game]]:
    """Parse PGN text into games; keyword arguments become ParseOptions."""

    def parse(text: str, **options: bool) -> list[Game]:
        return list(GameReader.from_string(text, options=ParseOptions(**options)))

    return parse


@pytest.fixture
def parse_game(parse_games: Callable[..., list[Game]]) -> Callable[..., Game]:
    def parse(text: str, **options: bool) -> Game:
        games = parse_games(text, **options)
        assert len(games) == 1
        return games[0]

    return parse


@pytest.fixture
def simulate() -> Callable[..., SimulatedGame]:
    def run(game: Game, allow_null_moves: bool = False) -> SimulatedGame:
        return BoardSimulator(allow_null_moves=allow_null_moves).simulate(game)

    return run
