"""Game records as parsed from PGN: tags plus a tree of move nodes."""

from __future__ import annotations

import copy
from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import StrEnum

SEVEN_TAG_ROSTER: tuple[str, ...] = (
    "Event",
    "Site",
    "Date",
    "Round",
    "White",
    "Black",
    "Result",
)


class ResultToken(StrEnum):
    """Terminating result of a game or variation."""

    WHITE_WINS = "1-0"
    BLACK_WINS = "0-1"
    DRAW = "1/2-1/2"
    UNKNOWN = "*"


@dataclass(frozen=True, slots=True)
class Provenance:
    """Where a record came from."""

    source: str
    first_line: int
    last_line: int
    sequence: int

    def __str__(self) -> str:
        lines = f"{self.first_line}-{self.last_line}"
        return f"{self.source}:{lines} (game {self.sequence})"


@dataclass(slots=True)
class MoveNode:
    """One half-move as written, with its annotations and alternatives."""

    text: str
    is_null: bool = False
    comments: list[str] = field(default_factory=list)
    nags: list[int] = field(default_factory=list)
    variations: list[Variation] = field(default_factory=list)


@dataclass(slots=True)
class Variation:
    """An alternative line replacing the move it is attached to."""

    moves: list[MoveNode] = field(default_factory=list)
    prefix_comments: list[str] = field(default_factory=list)
    suffix_comments: list[str] = field(default_factory=list)
    result: ResultToken | None = None


@dataclass(slots=True)
class Game:
    """A parsed game record.

    Tag order is kept for output. ``broken_reason`` is set on best-effort
    partial games salvaged from malformed records.
    """

    tags: dict[str, str] = field(default_factory=dict)
    moves: list[MoveNode] = field(default_factory=list)
    prefix_comments: list[str] = field(default_factory=list)
    result: ResultToken = ResultToken.UNKNOWN
    provenance: Provenance = Provenance("<memory>", 0, 0, 0)
    broken_reason: str | None = None

    @property
    def is_broken(self) -> bool:
        return self.broken_reason is not None

    @property
    def ply_count(self) -> int:
        return len(self.moves)

    @property
    def start_fen(self) -> str | None:
        """Initial position from the FEN tag, if any."""
        return self.tags.get("FEN")

    def copy(self) -> Game:
        """Deep copy, for transformations that must not touch the original."""
        return copy.deepcopy(self)

    def has_comments(self) -> bool:
        """Whether any comment appears anywhere in the game."""
        if self.prefix_comments:
            return True
        return any(node.comments for node, _ in iter_nodes(self.moves))


def iter_nodes(moves: list[MoveNode]) -> Iterator[tuple[MoveNode, int]]:
    """Every node in *moves* and its variations with its nesting depth.

    Walks with an explicit stack so deeply nested variations cannot exhaust
    the interpreter's recursion limit.
    """
    stack: list[tuple[Iterator[MoveNode], int]] = [(iter(moves), 0)]
    while stack:
        nodes, depth = stack[-1]
        node = next(nodes, None)
        if node is None:
            stack.pop()
            continue
        yield node, depth
        for variation in reversed(node.variations):
            stack.append((iter(variation.moves), depth + 1))
