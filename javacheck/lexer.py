"""
javacheck/lexer.py
══════════════════

Java lexer: source text → lazy, restartable stream of :class:`Token`.

Every token carries its 1-based line and column, its 0-based character
offset and its index in the stream.  Comments are skipped but their
spans and text are kept on :attr:`Lexer.comments` so that inline
suppression comments and error positions stay accurate.

The lexer never raises.  Malformed input produces ``ERROR`` tokens:

  • unterminated string / char literal → one ERROR token, scanning
    resumes at the next line boundary
  • unterminated block comment          → one ERROR token, then EOF
  • invalid character                   → one ERROR token for it

Usage
─────
    >>> lx = Lexer('int x = 1;')
    >>> [t.lexeme for t in lx]
    ['int', 'x', '=', '1', ';', '']
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterator, List, Optional, Tuple

from javacheck.errors import ErrorPhase, Issue, SourceSpan


# ═════════════════════════════════════════════════════════════════════════
#  TOKEN MODEL
# ═════════════════════════════════════════════════════════════════════════

class TokenKind(Enum):
    IDENT = "ident"
    KEYWORD = "keyword"
    INT = "int"
    LONG = "long"
    FLOAT = "float"
    DOUBLE = "double"
    CHAR = "char"
    STRING = "string"
    TEXT_BLOCK = "text_block"
    TRUE = "true"
    FALSE = "false"
    NULL = "null"
    OP = "op"
    SEP = "sep"
    ERROR = "error"
    EOF = "eof"


@dataclass(frozen=True, slots=True)
class Token:
    """A single lexeme with its position. Immutable, produced in source order."""

    kind: TokenKind
    lexeme: str
    line: int
    column: int
    offset: int
    index: int
    message: str = ""  # only set on ERROR tokens

    @property
    def span(self) -> SourceSpan:
        return SourceSpan.from_token(self)

    def is_op(self, *ops: str) -> bool:
        return self.kind in (TokenKind.OP, TokenKind.SEP) and self.lexeme in ops

    def is_keyword(self, *words: str) -> bool:
        return self.kind is TokenKind.KEYWORD and self.lexeme in words

    def __repr__(self) -> str:
        return f"Token({self.kind.name}, {self.lexeme!r}, {self.line}:{self.column})"


@dataclass(frozen=True, slots=True)
class Comment:
    text: str
    span: SourceSpan


# Reserved words of the Java grammar.  The rule engine only cares about a
# subset (class/interface/abstract/static/visibility/void/return/new/
# extends/implements) but the parser needs the full list to tell names
# from keywords.
KEYWORDS: frozenset[str] = frozenset({
    "abstract", "assert", "boolean", "break", "byte", "case", "catch",
    "char", "class", "const", "continue", "default", "do", "double",
    "else", "enum", "extends", "final", "finally", "float", "for", "goto",
    "if", "implements", "import", "instanceof", "int", "interface", "long",
    "native", "new", "package", "private", "protected", "public",
    "return", "short", "static", "strictfp", "super", "switch",
    "synchronized", "this", "throw", "throws", "transient", "try", "void",
    "volatile", "while",
})

LITERAL_WORDS: dict[str, TokenKind] = {
    "true": TokenKind.TRUE,
    "false": TokenKind.FALSE,
    "null": TokenKind.NULL,
}

# Longest first so that greedy matching picks ``>>>=`` before ``>>``.
OPERATORS: Tuple[str, ...] = (
    ">>>=",
    "<<=", ">>=", ">>>", "...",
    "->", "::", "++", "--", "&&", "||", "==", "!=", "<=", ">=",
    "+=", "-=", "*=", "/=", "%=", "&=", "|=", "^=", "<<", ">>",
    "+", "-", "*", "/", "%", "=", "<", ">", "!", "~", "?", ":",
    "&", "|", "^", "@",
)

SEPARATORS: frozenset[str] = frozenset("(){}[];,.")


# ═════════════════════════════════════════════════════════════════════════
#  LEXER
# ═════════════════════════════════════════════════════════════════════════

class Lexer:
    """
    Restartable lazy tokenizer.

    Iterating a ``Lexer`` re-scans the text from the start each time, so
    the token stream can be consumed more than once.  ``comments`` and
    ``issues`` describe the most recent complete scan.
    """

    def __init__(self, text: str) -> None:
        self.text = text
        self.comments: List[Comment] = []
        self.issues: List[Issue] = []

    def __iter__(self) -> Iterator[Token]:
        return self._scan()

    # ── scanning state helpers ──────────────────────────────────────

    def _scan(self) -> Iterator[Token]:
        text = self.text
        n = len(text)
        pos = 0
        line = 1
        line_start = 0
        index = 0
        comments: List[Comment] = []
        issues: List[Issue] = []

        def make(kind: TokenKind, start: int, end: int, sline: int, scol: int,
                 message: str = "") -> Token:
            nonlocal index
            tok = Token(kind, text[start:end], sline, scol, start, index, message)
            index += 1
            return tok

        while pos < n:
            ch = text[pos]

            # ── whitespace ───────────────────────────────────────────
            if ch == "\n":
                pos += 1
                line += 1
                line_start = pos
                continue
            if ch in " \t\r\f":
                pos += 1
                continue

            col = pos - line_start + 1

            # ── comments ─────────────────────────────────────────────
            if text.startswith("//", pos):
                end = text.find("\n", pos)
                if end < 0:
                    end = n
                comments.append(Comment(
                    text[pos:end],
                    SourceSpan(line, col, line, col + (end - pos)),
                ))
                pos = end
                continue
            if text.startswith("/*", pos):
                end = text.find("*/", pos + 2)
                if end < 0:
                    tok = make(TokenKind.ERROR, pos, n, line, col,
                               "unterminated block comment")
                    issues.append(Issue(ErrorPhase.LEXICAL, tok.message, tok.span))
                    yield tok
                    pos = n
                    break
                end += 2
                body = text[pos:end]
                sline, scol = line, col
                newlines = body.count("\n")
                if newlines:
                    line += newlines
                    line_start = pos + body.rfind("\n") + 1
                comments.append(Comment(
                    body, SourceSpan(sline, scol, line, end - line_start + 1),
                ))
                pos = end
                continue

            # ── identifiers / keywords ───────────────────────────────
            if ch.isalpha() or ch in "_$":
                end = pos + 1
                while end < n and (text[end].isalnum() or text[end] in "_$"):
                    end += 1
                word = text[pos:end]
                if word in KEYWORDS:
                    kind = TokenKind.KEYWORD
                else:
                    kind = LITERAL_WORDS.get(word, TokenKind.IDENT)
                yield make(kind, pos, end, line, col)
                pos = end
                continue

            # ── numbers ──────────────────────────────────────────────
            if ch.isdigit() or (ch == "." and pos + 1 < n and text[pos + 1].isdigit()):
                end, kind = _scan_number(text, pos)
                yield make(kind, pos, end, line, col)
                pos = end
                continue

            # ── text blocks ──────────────────────────────────────────
            if text.startswith('"""', pos):
                end = text.find('"""', pos + 3)
                if end < 0:
                    end = _line_end(text, pos)
                    tok = make(TokenKind.ERROR, pos, end, line, col,
                               "unterminated text block")
                    issues.append(Issue(ErrorPhase.LEXICAL, tok.message, tok.span))
                    yield tok
                    pos = end
                    continue
                end += 3
                tok = make(TokenKind.TEXT_BLOCK, pos, end, line, col)
                yield tok
                body = text[pos:end]
                newlines = body.count("\n")
                if newlines:
                    line += newlines
                    line_start = pos + body.rfind("\n") + 1
                pos = end
                continue

            # ── string / char literals ───────────────────────────────
            if ch in "\"'":
                end = _scan_quoted(text, pos, ch)
                if end is None:
                    end = _line_end(text, pos)
                    what = "string" if ch == '"' else "character"
                    tok = make(TokenKind.ERROR, pos, end, line, col,
                               f"unterminated {what} literal")
                    issues.append(Issue(ErrorPhase.LEXICAL, tok.message, tok.span))
                    yield tok
                    pos = end  # resynchronise at the line boundary
                    continue
                kind = TokenKind.STRING if ch == '"' else TokenKind.CHAR
                yield make(kind, pos, end, line, col)
                pos = end
                continue

            # ── separators / operators ───────────────────────────────
            if ch in SEPARATORS and not text.startswith("...", pos):
                yield make(TokenKind.SEP, pos, pos + 1, line, col)
                pos += 1
                continue
            op = _match_operator(text, pos)
            if op is not None:
                yield make(TokenKind.OP, pos, pos + len(op), line, col)
                pos += len(op)
                continue

            # ── anything else ────────────────────────────────────────
            tok = make(TokenKind.ERROR, pos, pos + 1, line, col,
                       f"invalid character {ch!r}")
            issues.append(Issue(ErrorPhase.LEXICAL, tok.message, tok.span))
            yield tok
            pos += 1

        yield make(TokenKind.EOF, n, n, line, n - line_start + 1)
        self.comments = comments
        self.issues = issues


def _line_end(text: str, pos: int) -> int:
    end = text.find("\n", pos)
    return len(text) if end < 0 else end


def _scan_quoted(text: str, pos: int, quote: str) -> Optional[int]:
    """Return the end offset of a quoted literal, or None if unterminated."""
    i = pos + 1
    n = len(text)
    while i < n:
        c = text[i]
        if c == "\\":
            i += 2
            continue
        if c == "\n":
            return None
        if c == quote:
            return i + 1
        i += 1
    return None


def _scan_number(text: str, pos: int) -> Tuple[int, TokenKind]:
    n = len(text)
    i = pos
    if text.startswith(("0x", "0X"), pos):
        i += 2
        while i < n and (text[i] in "0123456789abcdefABCDEF_"):
            i += 1
        if i < n and text[i] in "lL":
            return i + 1, TokenKind.LONG
        return i, TokenKind.INT
    if text.startswith(("0b", "0B"), pos):
        i += 2
        while i < n and text[i] in "01_":
            i += 1
        if i < n and text[i] in "lL":
            return i + 1, TokenKind.LONG
        return i, TokenKind.INT

    is_float = False
    while i < n and (text[i].isdigit() or text[i] == "_"):
        i += 1
    if i < n and text[i] == "." and not text.startswith("..", i):
        # ``1.foo()`` is not valid Java anyway; treat the dot as fractional.
        is_float = True
        i += 1
        while i < n and (text[i].isdigit() or text[i] == "_"):
            i += 1
    if i < n and text[i] in "eE":
        j = i + 1
        if j < n and text[j] in "+-":
            j += 1
        if j < n and text[j].isdigit():
            is_float = True
            i = j
            while i < n and text[i].isdigit():
                i += 1
    if i < n and text[i] in "fF":
        return i + 1, TokenKind.FLOAT
    if i < n and text[i] in "dD":
        return i + 1, TokenKind.DOUBLE
    if i < n and text[i] in "lL" and not is_float:
        return i + 1, TokenKind.LONG
    return i, (TokenKind.DOUBLE if is_float else TokenKind.INT)


def _match_operator(text: str, pos: int) -> Optional[str]:
    for op in OPERATORS:
        if text.startswith(op, pos):
            return op
    return None


def tokenize(text: str) -> List[Token]:
    """Materialise the full token list (EOF-terminated) for *text*."""
    return list(Lexer(text))


__all__ = [
    "TokenKind",
    "Token",
    "Comment",
    "Lexer",
    "KEYWORDS",
    "tokenize",
]
