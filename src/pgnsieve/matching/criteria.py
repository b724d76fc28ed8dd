"""Match criteria records and the parsers that build them from text.

Every record here is immutable. Criteria are parsed once, before the first
game is read, and errors surface as :class:`ConfigurationError`.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import StrEnum

from pgnsieve.core.notation import STARTING_FEN, parse_san, position_from_fen, strip_san
from pgnsieve.errors import ConfigurationError

_MOVE_NUMBER_RE = re.compile(r"^(\d+)(\.+)(.*)$")
_TAG_CRITERION_RE = re.compile(
    r'^\s*([A-Za-z0-9_]+)\s*(=~|<=|>=|<>|=|<|>)?\s*(?:"((?:[^"\\]|\\.)*)"|(\S.*?))\s*$'
)
_ECO_CODE_RE = re.compile(r"^[A-E](\d\d?)?$")
_MATERIAL_PIECE_RE = re.compile(r"([KQRBNPL])(\d?)(<=|>=|[+\-*?=#<>])?")
_HEX_RE = re.compile(r"^(?:0[xX])?[0-9a-fA-F]{1,16}$")

# Extra plies searched past a move-line position target.
POSITION_LINE_SLACK = 8


class TagOperator(StrEnum):
    EQUAL = "="
    NOT_EQUAL = "<>"
    LESS = "<"
    LESS_EQUAL = "<="
    GREATER = ">"
    GREATER_EQUAL = ">="
    REGEX = "=~"


class Occurrence(StrEnum):
    """How a piece count in a material pattern is compared."""

    EXACTLY = ""
    AT_LEAST = "+"
    AT_MOST = "-"
    ANY = "*"
    AT_MOST_ONE = "?"
    SAME_AS_OPPONENT = "="
    DIFFERENT_FROM_OPPONENT = "#"
    FEWER_THAN_OPPONENT = "<"
    FEWER_OR_EQUAL = "<="
    MORE_THAN_OPPONENT = ">"
    MORE_OR_EQUAL = ">="


# ── Records ──────────────────────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class TagCriterion:
    tag: str
    value: str
    operator: TagOperator = TagOperator.EQUAL


@dataclass(frozen=True, slots=True)
class MoveToken:
    """One position in a target move sequence.

    An empty ``alternatives`` tuple is the ``*`` wildcard. ``negated`` turns
    the token into "any move except these".
    """

    alternatives: tuple[str, ...] = ()
    negated: bool = False

    @property
    def is_wildcard(self) -> bool:
        return not self.alternatives

    def matches(self, san: str) -> bool:
        if self.is_wildcard:
            return True
        hit = normalise_san(san) in self.alternatives
        return hit != self.negated


@dataclass(frozen=True, slots=True)
class MoveSequence:
    text: str
    moves: tuple[MoveToken, ...]
    black_first: bool = False


@dataclass(frozen=True, slots=True)
class PositionTarget:
    """A position to look for, identified by its fingerprint.

    ``min_depth`` is the least number of plies that must be searched for the
    target to be reachable at all.
    """

    fingerprint: int
    label: str
    min_depth: int = 0


@dataclass(frozen=True, slots=True)
class FenPattern:
    label: str
    text: str
    regex: re.Pattern[str]
    inverse_regex: re.Pattern[str] | None = None


@dataclass(frozen=True, slots=True)
class PieceRequirement:
    letter: str
    count: int
    occurrence: Occurrence = Occurrence.EXACTLY


@dataclass(frozen=True, slots=True)
class MaterialCriterion:
    text: str
    white: tuple[PieceRequirement, ...]
    black: tuple[PieceRequirement, ...]
    depth: int = 2
    both_colours: bool = False


@dataclass(frozen=True, slots=True)
class EcoRange:
    low: str
    high: str

    def contains(self, eco: str) -> bool:
        return (
            eco[: len(self.low)] >= self.low and eco[: len(self.high)] <= self.high
        )


@dataclass(frozen=True, slots=True)
class MatchCriteria:
    """Every predicate a game may be tested against.

    Defaults describe an inactive predicate, so ``MatchCriteria()`` matches
    every game that parses and replays cleanly.
    """

    move_sequences: tuple[MoveSequence, ...] = ()
    match_permutations: bool = True
    search_variations: bool = False
    startply: int = 1

    positions: tuple[PositionTarget, ...] = ()
    depth_of_positional_search: int = 0
    include_rights: bool = False
    fen_patterns: tuple[FenPattern, ...] = ()
    materials: tuple[MaterialCriterion, ...] = ()

    tags: tuple[TagCriterion, ...] = ()
    tag_match_anywhere: bool = False
    use_soundex: bool = False
    check_results: bool = False
    eco_ranges: tuple[EcoRange, ...] = ()

    detect_duplicates: bool = False
    fuzzy_match_depth: int = 0

    minply: int | None = None
    maxply: int | None = None
    lower_move_bound: int | None = None
    upper_move_bound: int | None = None

    match_checkmate: bool = False
    match_stalemate: bool = False
    match_insufficient: bool = False
    match_underpromotion: bool = False
    match_repetition: bool = False
    match_fifty_move: bool = False
    match_seventy_five_move: bool = False

    setup_only: bool = False
    no_setup: bool = False
    commented_only: bool = False
    negate: bool = False

    @property
    def ply_bounds(self) -> tuple[int, int | None]:
        """Inclusive ply-count window combining ply and full-move bounds.

        A move bound of *n* covers the plies of White's and Black's *n*-th
        move, so the lower bound starts at White's move and the upper ends
        at Black's.
        """
        low = 0
        high: int | None = None
        if self.minply is not None:
            low = self.minply
        if self.lower_move_bound is not None:
            low = max(low, 2 * (self.lower_move_bound - 1) + 1)
        if self.maxply is not None:
            high = self.maxply
        if self.upper_move_bound is not None:
            upper = 2 * self.upper_move_bound
            high = upper if high is None else min(high, upper)
        return low, high

    @property
    def has_ply_bounds(self) -> bool:
        return any(
            bound is not None
            for bound in (
                self.minply,
                self.maxply,
                self.lower_move_bound,
                self.upper_move_bound,
            )
        )

    @property
    def counts_clocks(self) -> bool:
        """Whether repetition or move-rule counts have to be inspected."""
        return (
            self.match_repetition
            or self.match_fifty_move
            or self.match_seventy_five_move
        )


# ── Parsers ──────────────────────────────────────────────────────────────


def normalise_san(san: str) -> str:
    """Reduce a SAN token to a form where spelling variants compare equal."""
    text = strip_san(san.strip())
    if text.endswith("e.p."):
        text = text[:-4]
    text = text.replace("0", "O").replace("=", "").replace("x", "").replace(":", "")
    if len(text) > 1 and text[0] == "P":
        text = text[1:]
    return text


def _movetext_tokens(text: str) -> tuple[list[str], bool]:
    """Split movetext into move tokens; report a leading ``N...`` marker."""
    tokens: list[str] = []
    black_first = False
    for raw in text.split():
        match = _MOVE_NUMBER_RE.match(raw)
        if match is not None:
            if not tokens and match.group(2).startswith("..."):
                black_first = True
            raw = match.group(3)
            if not raw:
                continue
        tokens.append(raw)
    return tokens, black_first


def parse_move_sequence(text: str) -> MoveSequence:
    """Parse a target such as ``1. e4 e5 2. Nf3|Nc3 !Nc6 *``."""
    tokens, black_first = _movetext_tokens(text)
    if not tokens:
        raise ConfigurationError(f"Empty move sequence: {text!r}")

    moves: list[MoveToken] = []
    for token in tokens:
        if token == "*":
            moves.append(MoveToken())
            continue
        negated = token.startswith("!")
        body = token[1:] if negated else token
        alternatives = tuple(normalise_san(alt) for alt in body.split("|") if alt)
        if not alternatives:
            raise ConfigurationError(f"Invalid move {token!r} in {text!r}")
        moves.append(MoveToken(alternatives, negated))
    return MoveSequence(text=text.strip(), moves=tuple(moves), black_first=black_first)


def parse_tag_criterion(text: str) -> TagCriterion:
    """Parse ``Tag "value"`` or ``Tag op "value"``."""
    match = _TAG_CRITERION_RE.match(text)
    if match is None:
        raise ConfigurationError(f"Invalid tag criterion: {text!r}")
    tag, op, quoted, bare = match.groups()
    value = bare
    if quoted is not None:
        value = quoted.replace('\\"', '"').replace("\\\\", "\\")
    operator = TagOperator(op) if op else TagOperator.EQUAL
    if operator == TagOperator.REGEX:
        try:
            re.compile(value)
        except re.error as exc:
            raise ConfigurationError(
                f"Invalid regular expression {value!r}: {exc}"
            ) from exc
    return TagCriterion(tag=tag, value=value, operator=operator)


def parse_eco_range(text: str) -> EcoRange:
    """``B20-B99`` or a single code or prefix such as ``C4``."""
    low, _, high = text.strip().partition("-")
    high = high or low
    for code in (low, high):
        if not _ECO_CODE_RE.match(code):
            raise ConfigurationError(f"Invalid ECO code {code!r} in {text!r}")
    if low > high:
        raise ConfigurationError(f"Empty ECO range: {text!r}")
    return EcoRange(low, high)


def position_target_from_fen(
    fen: str, *, include_rights: bool = False
) -> PositionTarget:
    try:
        position = position_from_fen(fen)
    except ValueError as exc:
        raise ConfigurationError(str(exc)) from exc
    return PositionTarget(position.fingerprint(include_rights), fen.strip())


def position_target_from_moves(
    text: str, *, include_rights: bool = False
) -> PositionTarget:
    """The position reached by playing *text* from the initial position."""
    tokens, _ = _movetext_tokens(text)
    position = position_from_fen(STARTING_FEN)
    for token in tokens:
        try:
            position.make_move(parse_san(position, token))
        except ValueError as exc:
            raise ConfigurationError(f"{exc} in position line {text!r}") from exc
    return PositionTarget(
        position.fingerprint(include_rights),
        text.strip(),
        min_depth=len(tokens) + POSITION_LINE_SLACK,
    )


def position_target_from_hex(text: str) -> PositionTarget:
    if not _HEX_RE.match(text.strip()):
        raise ConfigurationError(f"Invalid fingerprint: {text!r}")
    return PositionTarget(int(text.strip(), 16), text.strip())


# ── FEN patterns ─────────────────────────────────────────────────────────

_PATTERN_CLASSES: dict[str, str] = {
    "?": "[^/]",
    "!": "[^_/]",
    "*": "[^/]*",
    "A": "[KQRBNP]",
    "a": "[kqrbnp]",
    "M": "[QRBN]",
    "m": "[qrbn]",
    "_": "_",
}


def _compile_rank(rank: str, source: str) -> str:
    out: list[str] = []
    i = 0
    while i < len(rank):
        ch = rank[i]
        if ch in "KQRBNPkqrbnp":
            out.append(ch)
        elif ch in "12345678":
            out.append(f"_{{{ch}}}")
        elif ch in _PATTERN_CLASSES:
            out.append(_PATTERN_CLASSES[ch])
        elif ch == "[":
            end = rank.find("]", i)
            if end < 0:
                raise ConfigurationError(f"Unterminated square set in {source!r}")
            members = rank[i + 1 : end]
            negate = members.startswith("^")
            if negate:
                members = members[1:]
            if not members or any(c not in "KQRBNPkqrbnp_" for c in members):
                raise ConfigurationError(f"Invalid square set in {source!r}")
            out.append(f"[{'^/' if negate else ''}{members}]")
            i = end
        else:
            raise ConfigurationError(
                f"Invalid character {ch!r} in FEN pattern {source!r}"
            )
        i += 1
    return "".join(out)


def _compile_pattern(ranks: list[str], source: str) -> re.Pattern[str]:
    return re.compile("/".join(_compile_rank(rank, source) for rank in ranks))


def _invert_rank(rank: str) -> str:
    return rank.swapcase()


def parse_fen_pattern(
    text: str, label: str = "", *, include_inverse: bool = False
) -> FenPattern:
    """Compile a board pattern written rank by rank from the eighth rank."""
    board = text.split()[0] if text.split() else ""
    ranks = board.split("/")
    if len(ranks) != 8:
        raise ConfigurationError(f"FEN pattern needs 8 ranks: {text!r}")
    regex = _compile_pattern(ranks, text)
    inverse = None
    if include_inverse:
        inverse = _compile_pattern([_invert_rank(r) for r in reversed(ranks)], text)
    return FenPattern(
        label=label or board, text=board, regex=regex, inverse_regex=inverse
    )


# ── Material ─────────────────────────────────────────────────────────────


def _parse_side(text: str, source: str) -> tuple[PieceRequirement, ...]:
    requirements: list[PieceRequirement] = []
    pos = 0
    while pos < len(text):
        match = _MATERIAL_PIECE_RE.match(text, pos)
        if match is None:
            raise ConfigurationError(f"Invalid material description {source!r}")
        letter, digits, suffix = match.groups()
        requirements.append(
            PieceRequirement(
                letter, int(digits) if digits else 1, Occurrence(suffix or "")
            )
        )
        pos = match.end()
    return tuple(requirements)


def parse_material(text: str, *, both_colours: bool = False) -> MaterialCriterion:
    """Parse ``[depth] WHITE [BLACK]``, e.g. ``KQ KR`` or ``3 KP2+ KL``."""
    fields = text.split()
    depth = 2
    if fields and fields[0].isdigit():
        depth = int(fields.pop(0))
    if not 1 <= len(fields) <= 2:
        raise ConfigurationError(f"Invalid material description {text!r}")
    white = _parse_side(fields[0], text)
    black = _parse_side(fields[1], text) if len(fields) == 2 else (
        PieceRequirement("K", 1),
    )
    return MaterialCriterion(
        text=text.strip(),
        white=white,
        black=black,
        depth=depth,
        both_colours=both_colours,
    )
