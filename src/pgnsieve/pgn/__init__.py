"""PGN records: data model, lexer and resumable parser."""

from pgnsieve.pgn.lexer import Lexer, Token, TokenKind
from pgnsieve.pgn.models import (
    SEVEN_TAG_ROSTER,
    Game,
    MoveNode,
    Provenance,
    ResultToken,
    Variation,
    iter_nodes,
)
from pgnsieve.pgn.parser import GameReader, ParseOptions

__all__ = [
    # Model
    "SEVEN_TAG_ROSTER",
    "Game",
    "MoveNode",
    "Provenance",
    "ResultToken",
    "Variation",
    "iter_nodes",
    # Parsing
    "GameReader",
    "ParseOptions",
    "Lexer",
    "Token",
    "TokenKind",
]
