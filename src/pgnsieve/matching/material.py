"""Material balance matching."""

from __future__ import annotations

from collections import Counter
from collections.abc import Callable, Iterable, Sequence

from pgnsieve.matching.criteria import MaterialCriterion, Occurrence, PieceRequirement
from pgnsieve.simulation.models import PositionSnapshot, SimulatedGame

# Piece letters that must be absent unless a requirement mentions them.
_CONSTRAINED = "QRBNP"


def material(placement: str) -> tuple[Counter[str], Counter[str]]:
    """White and black piece counts by upper-case letter, with ``L`` for minors."""
    white: Counter[str] = Counter()
    black: Counter[str] = Counter()
    for ch in placement:
        if ch.isupper():
            white[ch] += 1
        elif ch.isalpha():
            black[ch.upper()] += 1
    for side in (white, black):
        side["L"] = side["B"] + side["N"]
    return white, black


_OCCURRENCE_TESTS: dict[Occurrence, Callable[[int, int, int], bool]] = {
    Occurrence.EXACTLY: lambda own, opp, n: own == n,
    Occurrence.AT_LEAST: lambda own, opp, n: own >= n,
    Occurrence.AT_MOST: lambda own, opp, n: own <= n,
    Occurrence.ANY: lambda own, opp, n: True,
    Occurrence.AT_MOST_ONE: lambda own, opp, n: own <= 1,
    Occurrence.SAME_AS_OPPONENT: lambda own, opp, n: own == opp,
    Occurrence.DIFFERENT_FROM_OPPONENT: lambda own, opp, n: own != opp,
    Occurrence.FEWER_THAN_OPPONENT: lambda own, opp, n: own + n <= opp,
    Occurrence.FEWER_OR_EQUAL: lambda own, opp, n: own + n == opp,
    Occurrence.MORE_THAN_OPPONENT: lambda own, opp, n: own - n >= opp,
    Occurrence.MORE_OR_EQUAL: lambda own, opp, n: own - n == opp,
}


def _requirement_holds(req: PieceRequirement, own: int, opp: int) -> bool:
    return _OCCURRENCE_TESTS[req.occurrence](own, opp, req.count)


def side_matches(
    requirements: Sequence[PieceRequirement], own: Counter[str], opp: Counter[str]
) -> bool:
    mentioned = {req.letter for req in requirements}
    if "L" in mentioned:
        mentioned |= {"B", "N"}
    if any(own[letter] for letter in _CONSTRAINED if letter not in mentioned):
        return False
    return all(
        _requirement_holds(req, own[req.letter], opp[req.letter])
        for req in requirements
    )


def balance_matches(criterion: MaterialCriterion, placement: str) -> bool:
    white, black = material(placement)
    if side_matches(criterion.white, white, black) and side_matches(
        criterion.black, black, white
    ):
        return True
    return criterion.both_colours and (
        side_matches(criterion.white, black, white)
        and side_matches(criterion.black, white, black)
    )


def first_sustained(
    criterion: MaterialCriterion, snapshots: Iterable[PositionSnapshot]
) -> int | None:
    """Ply at which the balance has held for ``depth + 1`` consecutive positions."""
    run = 0
    for snap in snapshots:
        if balance_matches(criterion, snap.placement):
            run += 1
            if run > criterion.depth:
                return snap.ply
        else:
            run = 0
    return None


def match_material(
    criteria: Sequence[MaterialCriterion], simulated: SimulatedGame
) -> int | None:
    for criterion in criteria:
        found = first_sustained(criterion, simulated.mainline.snapshots())
        if found is not None:
            return found
    return None
