"""Move-sequence matching against replayed lines."""

from __future__ import annotations

from collections.abc import Sequence

from pgnsieve.core.enums import Color
from pgnsieve.matching.criteria import MoveSequence, MoveToken
from pgnsieve.simulation.models import PlyRecord, SimulatedGame


def _mover(record: PlyRecord) -> Color:
    return record.snapshot.side_to_move.opposite


def _in_order(tokens: Sequence[MoveToken], window: Sequence[PlyRecord]) -> bool:
    return all(token.matches(record.san) for token, record in zip(tokens, window))


def _assignable(tokens: list[MoveToken], sans: list[str]) -> bool:
    """Whether every token can be paired with a distinct move it matches."""
    if not tokens:
        return True
    token = tokens[0]
    for index, san in enumerate(sans):
        rest = sans[:index] + sans[index + 1 :]
        if token.matches(san) and _assignable(tokens[1:], rest):
            return True
    return False


def _permuted(
    tokens: Sequence[MoveToken], window: Sequence[PlyRecord], first: Color
) -> bool:
    """Token *i* belongs to the side that plays ply *i* of an aligned window;
    within each side the order is free."""
    by_colour: dict[Color, tuple[list[MoveToken], list[str]]] = {
        Color.WHITE: ([], []),
        Color.BLACK: ([], []),
    }
    for offset, (token, record) in enumerate(zip(tokens, window)):
        colour = first if offset % 2 == 0 else first.opposite
        by_colour[colour][0].append(token)
        by_colour[_mover(record)][1].append(record.san)
    return all(_assignable(toks, sans) for toks, sans in by_colour.values())


def find_sequence(
    sequence: MoveSequence,
    plies: Sequence[PlyRecord],
    *,
    permutations: bool = False,
    startply: int = 1,
) -> int | None:
    """Ply number of the last move of the first matching window, or ``None``.

    The first target move must be played by White, or by Black when the
    target starts with ``N...``. Windows starting before *startply* are
    skipped.
    """
    tokens = sequence.moves
    size = len(tokens)
    first = Color.BLACK if sequence.black_first else Color.WHITE

    for start in range(len(plies) - size + 1):
        head = plies[start]
        if head.ply < startply or _mover(head) != first:
            continue
        window = plies[start : start + size]
        if _in_order(tokens, window) or (
            permutations and _permuted(tokens, window, first)
        ):
            return window[-1].ply
    return None


def match_move_sequences(
    sequences: Sequence[MoveSequence],
    simulated: SimulatedGame,
    *,
    permutations: bool = False,
    search_variations: bool = False,
    startply: int = 1,
) -> int | None:
    """Ply where any of *sequences* matches; ``-1`` for a match off the mainline."""
    for prefix, line in simulated.lines():
        plies = prefix + line.plies
        for sequence in sequences:
            found = find_sequence(
                sequence, plies, permutations=permutations, startply=startply
            )
            if found is not None:
                return found if line is simulated.mainline else -1
        if not search_variations:
            break
    return None
