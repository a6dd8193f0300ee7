# tests/test_lexer.py
"""Tests for the tolerant Java lexer."""

import pytest

from javacheck.errors import ErrorPhase
from javacheck.lexer import Lexer, TokenKind, tokenize


def kinds(text):
    return [t.kind for t in tokenize(text)]


def lexemes(text):
    return [t.lexeme for t in tokenize(text) if t.kind is not TokenKind.EOF]


class TestTokenKinds:

    def test_declaration(self):
        assert kinds("int x = 42;") == [
            TokenKind.KEYWORD, TokenKind.IDENT, TokenKind.OP,
            TokenKind.INT, TokenKind.SEP, TokenKind.EOF,
        ]

    @pytest.mark.parametrize("text,kind", [
        ("42", TokenKind.INT),
        ("0x1F", TokenKind.INT),
        ("0b101", TokenKind.INT),
        ("10L", TokenKind.LONG),
        ("1.5", TokenKind.DOUBLE),
        ("2f", TokenKind.FLOAT),
        ("3d", TokenKind.DOUBLE),
        ("1e10", TokenKind.DOUBLE),
        (".5", TokenKind.DOUBLE),
    ])
    def test_numbers(self, text, kind):
        assert kinds(text)[0] is kind

    def test_literal_words(self):
        assert kinds("true false null")[:3] == [
            TokenKind.TRUE, TokenKind.FALSE, TokenKind.NULL,
        ]

    def test_string_and_char(self):
        toks = tokenize('"a\\"b" \'c\'')
        assert toks[0].kind is TokenKind.STRING
        assert toks[0].lexeme == '"a\\"b"'
        assert toks[1].kind is TokenKind.CHAR

    def test_text_block(self):
        toks = tokenize('String s = """\n  hi\n  """;')
        assert toks[3].kind is TokenKind.TEXT_BLOCK
        assert toks[4].line == 3

    def test_operators_are_greedy(self):
        assert lexemes("a >>>= b >> c") == ["a", ">>>=", "b", ">>", "c"]

    def test_varargs_is_one_token(self):
        assert "..." in lexemes("String... args")


class TestPositions:

    def test_line_and_column_are_one_based(self):
        toks = tokenize("a\n  b")
        assert (toks[0].line, toks[0].column) == (1, 1)
        assert (toks[1].line, toks[1].column) == (2, 3)

    def test_block_comment_advances_lines(self):
        toks = tokenize("/* one\n two */ x")
        assert toks[0].lexeme == "x"
        assert toks[0].line == 2

    def test_token_indices_are_sequential(self):
        toks = tokenize("a + b;")
        assert [t.index for t in toks] == list(range(len(toks)))


class TestComments:

    def test_comments_are_collected_not_tokens(self):
        lexer = Lexer("int a; // trailing\n/* block */ int b;")
        toks = list(lexer)
        assert all("trailing" not in t.lexeme for t in toks)
        assert [c.text for c in lexer.comments] == ["// trailing", "/* block */"]

    def test_comment_span(self):
        lexer = Lexer("x; // note")
        list(lexer)
        assert lexer.comments[0].span.line == 1
        assert lexer.comments[0].span.column == 4


class TestLexicalErrors:

    def test_unterminated_string_is_recovered_at_line_end(self):
        lexer = Lexer('String s = "abc;\nint y;')
        toks = list(lexer)
        errors = [t for t in toks if t.kind is TokenKind.ERROR]
        assert len(errors) == 1
        assert errors[0].message == "unterminated string literal"
        assert [t.lexeme for t in toks if t.line == 2][:2] == ["int", "y"]
        assert lexer.issues[0].phase is ErrorPhase.LEXICAL

    def test_invalid_character(self):
        lexer = Lexer("int # x;")
        toks = list(lexer)
        assert any(t.kind is TokenKind.ERROR and "#" in t.message for t in toks)
        assert len(lexer.issues) == 1

    def test_unterminated_block_comment(self):
        lexer = Lexer("int x; /* never closed")
        toks = list(lexer)
        assert toks[-2].kind is TokenKind.ERROR
        assert toks[-1].kind is TokenKind.EOF


class TestRestartable:

    def test_iterating_twice_gives_same_tokens(self):
        lexer = Lexer("class A { int x; }")
        first = [(t.kind, t.lexeme) for t in lexer]
        second = [(t.kind, t.lexeme) for t in lexer]
        assert first == second

    def test_always_ends_with_eof(self):
        assert tokenize("")[-1].kind is TokenKind.EOF
