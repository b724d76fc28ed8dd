"""Output: game editing, line wrapping and formatting."""

from pgnsieve.output.formatter import GameFormatter, escape_tag_value
from pgnsieve.output.lines import LineWriter
from pgnsieve.output.transformer import Transformer, split_lines

__all__ = [
    "GameFormatter",
    "LineWriter",
    "Transformer",
    "escape_tag_value",
    "split_lines",
]
