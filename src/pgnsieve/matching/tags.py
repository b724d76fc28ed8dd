"""Tag criteria: comparison operators, pseudo tags and Soundex."""

from __future__ import annotations

import operator
import re
from collections.abc import Callable, Mapping, Sequence
from typing import Any

from pgnsieve.matching.criteria import TagCriterion, TagOperator

PSEUDO_TAGS: dict[str, tuple[str, ...]] = {
    "Player": ("White", "Black"),
    "Elo": ("WhiteElo", "BlackElo"),
}
NAME_TAGS = frozenset({"White", "Black", "Player", "Annotator"})

_SOUNDEX_CODES: dict[str, str] = {
    **dict.fromkeys("BFPV", "1"),
    **dict.fromkeys("CGJKQSXZ", "2"),
    **dict.fromkeys("DT", "3"),
    "L": "4",
    **dict.fromkeys("MN", "5"),
    "R": "6",
}


def soundex(name: str) -> str:
    """American Soundex code, e.g. ``R163`` for Robert and Rupert.

    Non-letters are ignored; an empty name gives an empty code.
    """
    letters = [c for c in name.upper() if "A" <= c <= "Z"]
    if not letters:
        return ""
    code = letters[0]
    last = _SOUNDEX_CODES.get(letters[0], "")
    for ch in letters[1:]:
        digit = _SOUNDEX_CODES.get(ch, "")
        if digit and digit != last:
            code += digit
            if len(code) == 4:
                break
        # H and W do not separate letters with the same code; vowels do.
        if ch not in "HW":
            last = digit
    return code.ljust(4, "0")


def _as_number(text: str) -> float | None:
    try:
        return float(text)
    except ValueError:
        return None


def _ordered(actual: str, wanted: str) -> tuple[float, float] | tuple[str, str]:
    a, w = _as_number(actual), _as_number(wanted)
    if a is not None and w is not None:
        return a, w
    return actual, wanted


_ORDERINGS: dict[TagOperator, Callable[[Any, Any], bool]] = {
    TagOperator.LESS: operator.lt,
    TagOperator.LESS_EQUAL: operator.le,
    TagOperator.GREATER: operator.gt,
    TagOperator.GREATER_EQUAL: operator.ge,
}


def value_matches(
    criterion: TagCriterion,
    actual: str,
    *,
    anywhere: bool = False,
    use_soundex: bool = False,
) -> bool:
    """Compare one tag value against *criterion*."""
    wanted = criterion.value
    op = criterion.operator

    if op == TagOperator.REGEX:
        return re.search(wanted, actual) is not None
    if op in _ORDERINGS:
        a, w = _ordered(actual, wanted)
        return _ORDERINGS[op](a, w)

    a, w = _ordered(actual, wanted)
    if isinstance(a, float):
        equal = a == w
    elif use_soundex and criterion.tag in NAME_TAGS:
        equal = soundex(actual) == soundex(wanted)
    elif anywhere:
        equal = wanted in actual
    else:
        equal = actual == wanted
    return equal if op == TagOperator.EQUAL else not equal


def criterion_matches(
    criterion: TagCriterion,
    tags: Mapping[str, str],
    *,
    anywhere: bool = False,
    use_soundex: bool = False,
) -> bool:
    names = PSEUDO_TAGS.get(criterion.tag, (criterion.tag,))
    return any(
        name in tags
        and value_matches(
            criterion, tags[name], anywhere=anywhere, use_soundex=use_soundex
        )
        for name in names
    )


def match_tags(
    criteria: Sequence[TagCriterion],
    tags: Mapping[str, str],
    *,
    anywhere: bool = False,
    use_soundex: bool = False,
) -> bool:
    """Criteria on the same tag are alternatives; different tags must all hold."""
    groups: dict[str, list[TagCriterion]] = {}
    for criterion in criteria:
        groups.setdefault(criterion.tag, []).append(criterion)
    return all(
        any(
            criterion_matches(c, tags, anywhere=anywhere, use_soundex=use_soundex)
            for c in group
        )
        for group in groups.values()
    )
