"""Tests for the PGN tokenizer."""

import io

import pytest

from pgnsieve.errors import MalformedRecord
from pgnsieve.pgn.lexer import Lexer, Token, TokenKind


def _tokens(text: str, **kwargs: bool) -> list[Token]:
    lexer = Lexer(io.StringIO(text), **kwargs)
    tokens = []
    while True:
        token = lexer.next_token()
        tokens.append(token)
        if token.kind == TokenKind.EOF:
            return tokens


def _kinds(text: str) -> list[TokenKind]:
    return [t.kind for t in _tokens(text)]


class TestTokens:
    def test_full_record(self) -> None:
        text = '[Event "x"]\n1. e4 {c} e5!? $3 (1... c5) 1-0\n'
        assert _kinds(text) == [
            TokenKind.TAG,
            TokenKind.MOVE_NUMBER,
            TokenKind.MOVE,
            TokenKind.COMMENT,
            TokenKind.MOVE,
            TokenKind.NAG,
            TokenKind.RAV_START,
            TokenKind.MOVE_NUMBER,
            TokenKind.MOVE,
            TokenKind.RAV_END,
            TokenKind.RESULT,
            TokenKind.EOF,
        ]

    def test_move_number_glued_to_move(self) -> None:
        tokens = _tokens("1.e4 1...e5")
        assert [(t.kind, t.text) for t in tokens[:4]] == [
            (TokenKind.MOVE_NUMBER, "1."),
            (TokenKind.MOVE, "e4"),
            (TokenKind.MOVE_NUMBER, "1..."),
            (TokenKind.MOVE, "e5"),
        ]

    def test_suffix_annotation_split_off(self) -> None:
        token = _tokens("e5!?")[0]
        assert token.text == "e5"
        assert token.value == "!?"

    def test_check_suffix_kept(self) -> None:
        assert _tokens("Qh4#")[0].text == "Qh4#"

    def test_castling_with_zeros(self) -> None:
        assert _tokens("0-0-0")[0].kind == TokenKind.MOVE

    def test_null_moves(self) -> None:
        tokens = _tokens("-- Z0")
        assert [t.kind for t in tokens[:2]] == [TokenKind.NULL_MOVE] * 2
        assert tokens[0].text == "--"

    def test_en_passant_marker_ignored(self) -> None:
        tokens = _tokens("exd6 e.p. Nf3")
        assert [t.text for t in tokens[:2]] == ["exd6", "Nf3"]

    def test_line_numbers(self) -> None:
        tokens = _tokens("e4\n\ne5")
        assert tokens[0].line == 1
        assert tokens[1].line == 3

    @pytest.mark.parametrize("text", ["1-0", "0-1", "1/2-1/2", "*"])
    def test_results(self, text: str) -> None:
        token = _tokens(text)[0]
        assert token.kind == TokenKind.RESULT
        assert token.text == text

    def test_short_draw_result(self) -> None:
        token = _tokens("1/2")[0]
        assert token.kind == TokenKind.RESULT
        assert token.text == "1/2-1/2"


class TestTags:
    def test_name_and_value(self) -> None:
        token = _tokens('[White "Kasparov, G."]')[0]
        assert token.kind == TokenKind.TAG
        assert token.text == "White"
        assert token.value == "Kasparov, G."

    def test_escapes_removed(self) -> None:
        token = _tokens(r'[Event "The \"Big\" One \\ 2"]')[0]
        assert token.value == 'The "Big" One \\ 2'

    def test_control_character_rejected(self) -> None:
        with pytest.raises(MalformedRecord, match="illegal character"):
            _tokens('[Event "a\x01b"]')

    def test_invalid_tag_pair(self) -> None:
        with pytest.raises(MalformedRecord, match="invalid tag pair"):
            _tokens("[Event unquoted]")


class TestComments:
    def test_multiline_comment_whitespace_collapsed(self) -> None:
        token = _tokens("{one\n   two}")[0]
        assert token.kind == TokenKind.COMMENT
        assert token.text == "one two"

    def test_rest_of_line_comment(self) -> None:
        tokens = _tokens("e4 ; a  remark\ne5")
        assert tokens[1].kind == TokenKind.COMMENT
        assert tokens[1].text == "a remark"
        assert tokens[2].text == "e5"

    def test_nested_comment_rejected_by_default(self) -> None:
        with pytest.raises(MalformedRecord, match="nested comment"):
            _tokens("{a {b} c}")

    def test_nested_comment_allowed(self) -> None:
        token = _tokens("{a {b} c}", allow_nested_comments=True)[0]
        assert token.text == "a {b} c"

    def test_unterminated_comment(self) -> None:
        with pytest.raises(MalformedRecord, match="unterminated comment"):
            _tokens("e4 {never closed\n")

    def test_stray_closing_brace(self) -> None:
        with pytest.raises(MalformedRecord, match="unexpected"):
            _tokens("e4 }")


class TestStreamHandling:
    def test_escape_lines_skipped(self) -> None:
        tokens = _tokens("% exported by a tool\ne4")
        assert tokens[0].kind == TokenKind.MOVE
        assert tokens[0].line == 2

    def test_byte_order_mark_stripped(self) -> None:
        token = _tokens('\ufeff[Event "x"]')[0]
        assert token.kind == TokenKind.TAG

    def test_nag_needs_digits(self) -> None:
        with pytest.raises(MalformedRecord, match="without a number"):
            _tokens("e4 $")

    def test_unrecognised_token(self) -> None:
        with pytest.raises(MalformedRecord, match="unrecognised token"):
            _tokens("e4 hello")

    def test_push_back(self) -> None:
        lexer = Lexer(io.StringIO("e4 e5"))
        first = lexer.next_token()
        lexer.push_back(first)
        assert lexer.next_token() is first
        assert lexer.next_token().text == "e5"

    def test_skip_record_stops_at_next_tag_line(self) -> None:
        lexer = Lexer(io.StringIO('e4 junk\nmore junk\n[Event "next"]\n'))
        lexer.skip_record()
        token = lexer.next_token()
        assert token.kind == TokenKind.TAG
        assert token.value == "next"
