"""
Tests for the Tokenizer and the TokenStream interface.
"""
from __future__ import annotations

import pytest

from foamdict.errors import ParseError, UnexpectedEndOfStream
from foamdict.lexer.tokenizer import ListTokenStream, Tokenizer, classify_lexeme, tokenize
from foamdict.models import Token, TokenKind


def kinds(text):
    return [t.kind for t in tokenize(text)]


def values(text):
    return [t.value for t in tokenize(text)]


# ─────────────────────────────────────────────────────────────────────────────
# Lexical classes
# ─────────────────────────────────────────────────────────────────────────────


class TestTokenKinds:
    def test_simple_statement(self):
        assert kinds("a 1;") == [TokenKind.WORD, TokenKind.NUMBER, TokenKind.END_STATEMENT]

    def test_integer_and_float(self):
        tokens = tokenize("1 -2 3.5 1e-05 .5 +4")
        assert [t.value for t in tokens] == [1, -2, 3.5, 1e-05, 0.5, 4]
        assert isinstance(tokens[0].value, int)
        assert isinstance(tokens[2].value, float)

    def test_word_that_looks_numeric_prefix(self):
        assert tokenize("1abc")[0] == Token.word("1abc")

    def test_string_with_escapes(self):
        tokens = tokenize(r'"say \"hi\" \\ now"')
        assert tokens == [Token.string('say "hi" \\ now')]

    def test_punctuation(self):
        assert values("( ) { } [ ] ,") == ["(", ")", "{", "}", "[", "]", ","]
        assert set(kinds("( ) { } [ ] ,")) == {TokenKind.PUNCTUATION}

    def test_variable_forms(self):
        tokens = tokenize("$a ${b/c} $../d $!e/f")
        assert all(t.kind is TokenKind.VARIABLE for t in tokens)
        assert [t.value for t in tokens] == ["a", "b/c", "../d", "!e/f"]

    def test_directive(self):
        tokens = tokenize('#include "file"')
        assert tokens[0] == Token.directive("include")
        assert tokens[1] == Token.string("file")

    def test_word_keeps_balanced_parentheses(self):
        tokens = tokenize("div(phi,U) Gauss linear;")
        assert tokens[0] == Token.word("div(phi,U)")
        assert tokens[1] == Token.word("Gauss")

    def test_list_is_split_into_punctuation(self):
        assert values("(1 0 0)") == ["(", 1, 0, 0, ")"]

    def test_word_stops_at_semicolon(self):
        assert values("uniform;") == ["uniform", ";"]

    def test_classify_lexeme(self):
        assert classify_lexeme("42").kind is TokenKind.NUMBER
        assert classify_lexeme("4.2e1").value == 42.0
        assert classify_lexeme("true").kind is TokenKind.WORD


# ─────────────────────────────────────────────────────────────────────────────
# Comments and line tracking
# ─────────────────────────────────────────────────────────────────────────────


class TestCommentsAndLines:
    def test_line_comment_skipped(self):
        assert values("a 1; // trailing words\nb 2;") == ["a", 1, ";", "b", 2, ";"]

    def test_block_comment_skipped(self):
        assert values("a /* x\ny */ 1;") == ["a", 1, ";"]

    def test_line_numbers(self):
        tokens = tokenize("a 1;\n\nb\n2;")
        assert [t.line for t in tokens] == [1, 1, 1, 3, 4, 4]

    def test_block_comment_advances_lines(self):
        tokens = tokenize("/* one\ntwo\nthree */ a;")
        assert tokens[0].line == 3

    def test_multiline_string_advances_lines(self):
        tokens = tokenize('a "x\ny"; b;')
        assert tokens[1].value == "x\ny"
        assert tokens[3].line == 2

    def test_unterminated_string(self):
        with pytest.raises(UnexpectedEndOfStream):
            tokenize('a "open')

    def test_unterminated_comment(self):
        with pytest.raises(UnexpectedEndOfStream):
            tokenize("a /* never closed")

    def test_empty_variable_name(self):
        with pytest.raises(ParseError):
            tokenize("a $;")

    def test_empty_directive_name(self):
        with pytest.raises(ParseError):
            tokenize("# x")


# ─────────────────────────────────────────────────────────────────────────────
# Stream interface
# ─────────────────────────────────────────────────────────────────────────────


class TestTokenStream:
    def test_read_until_end(self):
        stream = Tokenizer("a b")
        assert stream.read() == Token.word("a")
        assert stream.read() == Token.word("b")
        assert stream.read() is None

    def test_expect_at_end_raises(self):
        stream = Tokenizer("")
        with pytest.raises(UnexpectedEndOfStream):
            stream.expect("keyword")

    def test_push_back(self):
        stream = Tokenizer("a b")
        first = stream.read()
        stream.push_back(first)
        assert stream.read() == first
        assert stream.read() == Token.word("b")

    def test_double_push_back_rejected(self):
        stream = Tokenizer("a")
        token = stream.read()
        stream.push_back(token)
        with pytest.raises(RuntimeError):
            stream.push_back(token)

    def test_line_tracks_last_token(self):
        stream = Tokenizer("a\n\nb")
        stream.read()
        assert stream.line == 1
        stream.read()
        assert stream.line == 3

    def test_eof_does_not_consume(self):
        stream = Tokenizer("a")
        assert not stream.eof()
        assert stream.read() == Token.word("a")
        assert stream.eof()

    def test_list_stream(self):
        stream = ListTokenStream([Token.word("x"), Token.number(1)])
        assert list(stream) == [Token.word("x"), Token.number(1)]

    def test_from_file(self, tmp_path):
        path = tmp_path / "dict"
        path.write_text("a 1;\n", encoding="utf-8")
        stream = Tokenizer.from_file(path)
        assert stream.name == str(path)
        assert [t.value for t in stream] == ["a", 1, ";"]


class TestTokenModel:
    def test_equality_ignores_line(self):
        assert Token.word("a", 1) == Token.word("a", 7)

    def test_text_rendering(self):
        assert Token.string('a"b').text == '"a\\"b"'
        assert Token.number(3).text == "3"
        assert Token.number(0.5).text == "0.5"
        assert Token.variable("a/b").text == "$a/b"
        assert Token.variable("odd-name").text == "${odd-name}"
        assert Token.directive("calc").text == "#calc"
        assert Token.end_statement().text == ";"
