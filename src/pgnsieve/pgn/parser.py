"""PGN record parser.

:class:`GameReader` turns a stream of text lines into :class:`Game` records,
one record per call. Variations are parsed with an explicit stack of open
move lists, so nesting depth is bounded only by memory.
"""

from __future__ import annotations

import io
import itertools
import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field

from pgnsieve.errors import InconsistentResult, MalformedRecord
from pgnsieve.pgn.lexer import SUFFIX_NAGS, Lexer, Token, TokenKind
from pgnsieve.pgn.models import Game, MoveNode, Provenance, ResultToken, Variation

_LOGGER = logging.getLogger(__name__)

_MISSING_RESULTS = frozenset({"", "?"})


@dataclass(frozen=True, slots=True)
class ParseOptions:
    allow_nested_comments: bool = False
    allow_null_moves: bool = False
    keep_broken_games: bool = False
    reject_inconsistent_results: bool = False


@dataclass(slots=True)
class _Frame:
    """An open move list: the mainline or one variation."""

    moves: list[MoveNode]
    variation: Variation | None = None
    # Variation closed most recently in this list, until the next move.
    closed: Variation | None = None


@dataclass(slots=True)
class _Record:
    game: Game
    stack: list[_Frame] = field(default_factory=list)
    first_line: int = 0
    # The lexer already sits at the start of the next record.
    at_boundary: bool = False


class GameReader:
    """Reads consecutive game records from *stream*.

    :meth:`read_game` raises :class:`MalformedRecord` or
    :class:`InconsistentResult` for a bad record, with ``partial`` holding
    what was read, and leaves the reader positioned at the next record.
    Iterating the reader never raises: bad records are yielded as partial
    games with ``broken_reason`` set.
    """

    def __init__(
        self,
        stream: Iterable[str],
        source: str = "<stream>",
        options: ParseOptions | None = None,
        *,
        sequence: Iterator[int] | None = None,
    ) -> None:
        self.source = source
        self.options = options if options is not None else ParseOptions()
        self._lexer = Lexer(
            stream, allow_nested_comments=self.options.allow_nested_comments
        )
        self._sequence = sequence if sequence is not None else itertools.count(1)

    @classmethod
    def from_string(
        cls, text: str, source: str = "<string>", options: ParseOptions | None = None
    ) -> GameReader:
        return cls(io.StringIO(text), source, options)

    def __iter__(self) -> Iterator[Game]:
        while True:
            try:
                game = self.read_game()
            except (MalformedRecord, InconsistentResult) as exc:
                _LOGGER.warning("%s", exc)
                if exc.partial is not None:
                    yield exc.partial
                continue
            if game is None:
                return
            yield game

    # ── Records ──────────────────────────────────────────────────────────

    def read_game(self) -> Game | None:
        """Parse the next record; ``None`` at end of stream."""
        while True:
            record = _Record(Game())
            try:
                token = self._lexer.next_token()
                if token.kind == TokenKind.EOF:
                    return None
                record.first_line = token.line
                self._parse_record(record, token)
            except MalformedRecord as exc:
                if not record.game.tags and not _has_moves(record):
                    # Stray text between records.
                    _LOGGER.debug("%s: skipping junk: %s", self.source, exc.message)
                    self._lexer.skip_record()
                    continue
                raise self._broken(record, exc) from None
            return self._finish(record)

    def _parse_record(self, record: _Record, token: Token) -> None:
        game = record.game
        lexer = self._lexer

        while token.kind == TokenKind.TAG:
            game.tags[token.text] = token.value
            token = lexer.next_token()

        record.stack.append(_Frame(game.moves))
        stack = record.stack

        while True:
            frame = stack[-1]
            kind = token.kind

            if kind == TokenKind.MOVE or kind == TokenKind.NULL_MOVE:
                is_null = kind == TokenKind.NULL_MOVE
                if is_null and len(stack) == 1 and not self.options.allow_null_moves:
                    raise MalformedRecord(f"null move on line {token.line}")
                node = MoveNode(token.text, is_null=is_null)
                if token.value:
                    node.nags.append(SUFFIX_NAGS[token.value])
                frame.moves.append(node)
                frame.closed = None

            elif kind == TokenKind.COMMENT:
                self._attach_comment(record, frame, token.text)

            elif kind == TokenKind.NAG:
                if not frame.moves:
                    raise MalformedRecord(f"NAG before any move on line {token.line}")
                frame.moves[-1].nags.append(int(token.text))

            elif kind == TokenKind.RAV_START:
                if not frame.moves:
                    raise MalformedRecord(
                        f"variation before any move on line {token.line}"
                    )
                variation = Variation()
                frame.moves[-1].variations.append(variation)
                frame.closed = None
                stack.append(_Frame(variation.moves, variation))

            elif kind == TokenKind.RAV_END:
                if len(stack) == 1:
                    raise MalformedRecord(f"unbalanced ')' on line {token.line}")
                closed = stack.pop()
                stack[-1].closed = closed.variation

            elif kind == TokenKind.RESULT:
                result = ResultToken(token.text)
                if frame.variation is not None:
                    frame.variation.result = result
                else:
                    game.result = result
                    return

            elif kind == TokenKind.TAG or kind == TokenKind.EOF:
                if kind == TokenKind.TAG:
                    lexer.push_back(token)
                record.at_boundary = True
                if len(stack) > 1:
                    raise MalformedRecord("unterminated variation")
                raise MalformedRecord("missing result token")

            token = lexer.next_token()

    @staticmethod
    def _attach_comment(record: _Record, frame: _Frame, text: str) -> None:
        if frame.closed is not None:
            frame.closed.suffix_comments.append(text)
        elif frame.moves:
            frame.moves[-1].comments.append(text)
        elif frame.variation is not None:
            frame.variation.prefix_comments.append(text)
        else:
            record.game.prefix_comments.append(text)

    # ── Finishing ────────────────────────────────────────────────────────

    def _provenance(self, record: _Record) -> Provenance:
        return Provenance(
            self.source,
            record.first_line,
            self._lexer.line_number,
            next(self._sequence),
        )

    def _broken(self, record: _Record, exc: MalformedRecord) -> MalformedRecord:
        game = record.game
        game.provenance = self._provenance(record)
        game.broken_reason = exc.message
        if not record.at_boundary:
            self._lexer.skip_record()
        return MalformedRecord(exc.message, game.provenance, partial=game)

    def _finish(self, record: _Record) -> Game:
        game = record.game
        game.provenance = self._provenance(record)
        tags = game.tags

        declared = tags.get("Result")
        if declared == "1/2":
            declared = tags["Result"] = ResultToken.DRAW.value
        if declared is None or declared.strip() in _MISSING_RESULTS:
            tags["Result"] = game.result.value
        elif declared != game.result.value:
            message = (
                f"Result tag {declared!r} contradicts result token "
                f"{game.result.value!r}"
            )
            if self.options.reject_inconsistent_results:
                game.broken_reason = message
                raise InconsistentResult(message, game.provenance, partial=game)
            _LOGGER.info("%s: %s", game.provenance, message)
        return game


def _has_moves(record: _Record) -> bool:
    return bool(record.game.moves or record.game.prefix_comments)
