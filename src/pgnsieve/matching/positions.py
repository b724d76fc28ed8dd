"""Positional matching: fingerprint targets and FEN board patterns."""

from __future__ import annotations

from collections.abc import Iterator, Sequence

from pgnsieve.matching.criteria import FenPattern, PositionTarget
from pgnsieve.simulation.models import PositionSnapshot, SimulatedGame


def searched_positions(
    simulated: SimulatedGame, *, search_variations: bool = False
) -> Iterator[tuple[PositionSnapshot, bool]]:
    """Positions of the game, each flagged with whether it is on the mainline."""
    for _, line in simulated.lines():
        on_mainline = line is simulated.mainline
        snapshots = line.snapshots()
        if not on_mainline:
            # The branch point already belongs to the parent line.
            next(snapshots, None)
        for snap in snapshots:
            yield snap, on_mainline
        if not search_variations:
            return


def _depth_limit(depth: int, target: PositionTarget) -> int | None:
    if depth == 0:
        return None
    return max(depth, target.min_depth)


def match_positions(
    targets: Sequence[PositionTarget],
    simulated: SimulatedGame,
    *,
    depth: int = 0,
    include_rights: bool = False,
    search_variations: bool = False,
) -> tuple[PositionTarget, int] | None:
    """First target reached, with its ply (``-1`` when off the mainline)."""
    by_key: dict[int, list[PositionTarget]] = {}
    for target in targets:
        by_key.setdefault(target.fingerprint, []).append(target)

    for snap, on_mainline in searched_positions(
        simulated, search_variations=search_variations
    ):
        for target in by_key.get(snap.fingerprint(include_rights), ()):
            limit = _depth_limit(depth, target)
            if limit is None or snap.ply <= limit:
                return target, snap.ply if on_mainline else -1
    return None


def match_fen_patterns(
    patterns: Sequence[FenPattern],
    simulated: SimulatedGame,
    *,
    depth: int = 0,
    search_variations: bool = False,
) -> tuple[str, int] | None:
    """Label of the first pattern matching a position, with its ply.

    A match of a pattern's inverse (colours swapped, board mirrored) is
    labelled with an ``I`` suffix.
    """
    for snap, on_mainline in searched_positions(
        simulated, search_variations=search_variations
    ):
        if depth and snap.ply > depth:
            continue
        board = snap.expanded_board()
        ply = snap.ply if on_mainline else -1
        for pattern in patterns:
            if pattern.regex.fullmatch(board):
                return pattern.label, ply
            inverse = pattern.inverse_regex
            if inverse is not None and inverse.fullmatch(board):
                return pattern.label + "I", ply
    return None
