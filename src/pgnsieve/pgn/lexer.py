"""Tokenizer for PGN text, one token at a time with line tracking."""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum, auto

from pgnsieve.errors import MalformedRecord


class TokenKind(Enum):
    TAG = auto()
    MOVE_NUMBER = auto()
    MOVE = auto()
    NULL_MOVE = auto()
    NAG = auto()
    COMMENT = auto()
    RAV_START = auto()
    RAV_END = auto()
    RESULT = auto()
    EOF = auto()


@dataclass(frozen=True, slots=True)
class Token:
    """A lexical unit.

    For ``TAG`` tokens ``text`` is the tag name and ``value`` the unescaped
    value; for ``MOVE`` tokens ``value`` is a trailing ``!``/``?`` annotation.
    """

    kind: TokenKind
    text: str
    line: int
    value: str = ""


RESULT_TOKENS = frozenset({"1-0", "0-1", "1/2-1/2", "*"})

SUFFIX_NAGS: dict[str, int] = {"!": 1, "?": 2, "!!": 3, "??": 4, "!?": 5, "?!": 6}

_TAG_RE = re.compile(r'\[\s*([A-Za-z0-9_]+)\s+"((?:[^"\\]|\\.)*)"\s*\]')
_MOVE_NUMBER_RE = re.compile(r"^(\d+)(\.*)")
_MOVE_RE = re.compile(
    r"^(?P<move>(?:[KQRBNP]?[a-h]?[1-8]?[x:]?[a-h][1-8](?:=?[QRBNqrbn])?"
    r"|O-O(?:-O)?|0-0(?:-0)?)(?:e\.p\.)?[+#]*)"
    r"(?P<annotation>[!?]{1,2})?[+#]?$"
)
_NULL_MOVE_RE = re.compile(r"^(?P<move>--|Z0)[+#]?(?P<annotation>[!?]{1,2})?$")
_SYMBOL_END = frozenset(" \t\r\n\f\v{}();[]$")
_UNESCAPE_RE = re.compile(r"\\(.)")


class Lexer:
    """Splits a stream of lines into :class:`Token` values.

    The lexer never looks more than one line ahead, so it can sit on top of
    an arbitrarily large stream. :meth:`skip_record` discards input up to the
    next line that opens a tag pair, which is how the parser resynchronises
    after a malformed record.
    """

    __slots__ = ("_lines", "_text", "_pos", "line_number", "_pushed", "_allow_nested")

    def __init__(
        self, lines: Iterable[str], *, allow_nested_comments: bool = False
    ) -> None:
        self._lines = iter(lines)
        self._text = ""
        self._pos = 0
        self.line_number = 0
        self._pushed: list[Token] = []
        self._allow_nested = allow_nested_comments

    # -- Line handling ------------------------------------------------------

    def _next_line(self) -> bool:
        line = next(self._lines, None)
        if line is None:
            self._text = ""
            self._pos = 0
            return False
        if self.line_number == 0:
            line = line.lstrip("\ufeff")
        self.line_number += 1
        self._text = line.rstrip("\r\n")
        self._pos = 0
        # Lines starting with '%' are escape lines and carry no PGN data.
        if self._text.startswith("%"):
            self._pos = len(self._text)
        return True

    def skip_record(self) -> None:
        """Drop the rest of the current record and any pushed-back tokens."""
        self._pushed.clear()
        while self._next_line():
            if self._text.lstrip().startswith("["):
                return

    # -- Tokens -------------------------------------------------------------

    def push_back(self, token: Token) -> None:
        self._pushed.append(token)

    def next_token(self) -> Token:
        if self._pushed:
            return self._pushed.pop()

        while True:
            if self._pos >= len(self._text):
                if not self._next_line():
                    return Token(TokenKind.EOF, "", self.line_number)
                continue

            ch = self._text[self._pos]
            if ch.isspace():
                self._pos += 1
                continue

            line = self.line_number
            if ch == "[":
                return self._read_tag()
            if ch == "{":
                return Token(TokenKind.COMMENT, self._read_brace_comment(), line)
            if ch == ";":
                text = self._text[self._pos + 1 :]
                self._pos = len(self._text)
                return Token(TokenKind.COMMENT, " ".join(text.split()), line)
            if ch == "(":
                self._pos += 1
                return Token(TokenKind.RAV_START, "(", line)
            if ch == ")":
                self._pos += 1
                return Token(TokenKind.RAV_END, ")", line)
            if ch == "}":
                raise MalformedRecord(f"unexpected '}}' on line {line}")
            if ch == "]":
                raise MalformedRecord(f"unexpected ']' on line {line}")
            if ch == "$":
                return self._read_nag()

            token = self._read_symbol()
            if token is not None:
                return token

    def _read_tag(self) -> Token:
        line = self.line_number
        match = _TAG_RE.match(self._text, self._pos)
        if match is None:
            raise MalformedRecord(f"invalid tag pair on line {line}")
        raw_value = match.group(2)
        if any(ord(c) < 32 and c != "\t" for c in raw_value):
            raise MalformedRecord(f"illegal character in tag value on line {line}")
        self._pos = match.end()
        value = _UNESCAPE_RE.sub(r"\1", raw_value)
        return Token(TokenKind.TAG, match.group(1), line, value)

    def _read_brace_comment(self) -> str:
        start_line = self.line_number
        parts: list[str] = []
        depth = 1
        self._pos += 1
        while True:
            if self._pos >= len(self._text):
                if not self._next_line():
                    raise MalformedRecord(
                        f"unterminated comment starting on line {start_line}"
                    )
                parts.append(" ")
                continue
            ch = self._text[self._pos]
            self._pos += 1
            if ch == "{":
                if not self._allow_nested:
                    raise MalformedRecord(
                        f"nested comment on line {self.line_number}"
                    )
                depth += 1
            elif ch == "}":
                depth -= 1
                if depth == 0:
                    return " ".join("".join(parts).split())
            parts.append(ch)

    def _read_nag(self) -> Token:
        line = self.line_number
        end = self._pos + 1
        while end < len(self._text) and self._text[end].isdigit():
            end += 1
        digits = self._text[self._pos + 1 : end]
        if not digits:
            raise MalformedRecord(f"'$' without a number on line {line}")
        self._pos = end
        return Token(TokenKind.NAG, digits, line)

    def _read_symbol(self) -> Token | None:
        line = self.line_number
        end = self._pos
        while end < len(self._text) and self._text[end] not in _SYMBOL_END:
            end += 1
        symbol = self._text[self._pos : end]
        self._pos = end

        if symbol in RESULT_TOKENS:
            return Token(TokenKind.RESULT, symbol, line)
        if symbol == "1/2":
            return Token(TokenKind.RESULT, "1/2-1/2", line)

        if symbol == "e.p.":
            return None

        null = _NULL_MOVE_RE.match(symbol)
        if null is not None:
            annotation = null["annotation"] or ""
            return Token(TokenKind.NULL_MOVE, null["move"], line, annotation)

        move = _MOVE_RE.match(symbol)
        if move is not None:
            return Token(TokenKind.MOVE, move["move"], line, move["annotation"] or "")

        number = _MOVE_NUMBER_RE.match(symbol)
        if number is not None:
            rest = symbol[number.end() :]
            if rest and not number.group(2):
                raise MalformedRecord(f"unrecognised token {symbol!r} on line {line}")
            # Re-read whatever is glued to the move number, as in "1.e4".
            self._pos -= len(rest)
            return Token(TokenKind.MOVE_NUMBER, number.group(0), line)

        raise MalformedRecord(f"unrecognised token {symbol!r} on line {line}")
