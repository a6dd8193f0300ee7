# javacheck/errors.py
"""
javacheck Error Types and Source Spans

This module provides the error handling infrastructure shared by every
stage of the javacheck pipeline (lexer → parser → symbol table →
resolver → rule engine → reporter).

Architecture Overview:
─────────────────────
┌─────────────────────────────────────────────────────────────────────────────┐
│                          Error Taxonomy                                     │
├─────────────────────────────────────────────────────────────────────────────┤
│  Recorded as values (never raised across a stage boundary):                 │
│  ├── Issue(LEXICAL)     - unterminated literal, invalid character           │
│  ├── Issue(SYNTAX)      - unexpected token, resynchronised region           │
│  └── Issue(RESOLUTION)  - unresolved name or type (evidence, not fatal)     │
│                                                                             │
│  Raised (caught at the unit boundary by ``javacheck.pipeline``):            │
│  JavacheckError (base)                                                      │
│  ├── ParseError            - local grammar violation (parser-internal)      │
│  ├── UnitTooMalformedError - recovery budget exhausted for one unit         │
│  ├── InternalFault         - an invariant of a stage was violated           │
│  └── ConfigError           - invalid configuration file or option           │
└─────────────────────────────────────────────────────────────────────────────┘

Nothing in this module is fatal to a batch run: the pipeline converts
``UnitTooMalformedError`` and ``InternalFault`` into a single diagnostic
for the offending unit and moves on.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, unique
from typing import Any, Optional


# ═══════════════════════════════════════════════════════════════════════════════
# SOURCE LOCATION TYPES
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True, slots=True)
class SourceSpan:
    """
    A span of source text with 1-based start and end positions.

    ``token_index`` is the index of the first token of the span in the
    unit's token stream (``-1`` when the span was synthesised).  It is
    the only link from a tree node back to the token stream.
    """

    line: int = 0
    column: int = 0
    end_line: int = 0
    end_column: int = 0
    token_index: int = -1

    def __post_init__(self) -> None:
        # Normalize: if end not specified, use start
        if self.end_line == 0:
            object.__setattr__(self, "end_line", self.line)
        if self.end_column == 0:
            object.__setattr__(self, "end_column", self.column)

    @classmethod
    def from_token(cls, token: Any) -> "SourceSpan":
        """Create a span covering exactly one token."""
        lines = token.lexeme.split("\n")
        if len(lines) > 1:
            end_line = token.line + len(lines) - 1
            end_column = len(lines[-1]) + 1
        else:
            end_line = token.line
            end_column = token.column + max(len(token.lexeme), 1)
        return cls(
            line=token.line,
            column=token.column,
            end_line=end_line,
            end_column=end_column,
            token_index=token.index,
        )

    @classmethod
    def between(cls, first: Any, last: Any) -> "SourceSpan":
        """Create a span from the start of *first* to the end of *last* (tokens)."""
        start = cls.from_token(first)
        end = cls.from_token(last)
        if (end.end_line, end.end_column) < (start.line, start.column):
            return start
        return cls(
            line=start.line,
            column=start.column,
            end_line=end.end_line,
            end_column=end.end_column,
            token_index=start.token_index,
        )

    @classmethod
    def merge(cls, *spans: "SourceSpan") -> "SourceSpan":
        """Merge multiple spans into one that covers all of them."""
        real = [s for s in spans if s.line > 0]
        if not real:
            return cls()
        first = min(real, key=lambda s: (s.line, s.column))
        last = max(real, key=lambda s: (s.end_line, s.end_column))
        return cls(
            line=first.line,
            column=first.column,
            end_line=last.end_line,
            end_column=last.end_column,
            token_index=first.token_index,
        )

    @property
    def start(self) -> tuple[int, int]:
        return (self.line, self.column)

    def contains_line(self, line: int) -> bool:
        return self.line <= line <= self.end_line

    def __str__(self) -> str:
        if self.line == 0:
            return "<unknown location>"
        if self.column > 0:
            return f"{self.line}:{self.column}"
        return str(self.line)

    def to_range_string(self) -> str:
        """Get a string representation showing the full range."""
        start = str(self)
        if (self.end_line, self.end_column) > (self.line, self.column):
            return f"{start}-{self.end_line}:{self.end_column}"
        return start

    def to_json(self) -> dict[str, int]:
        return {
            "line": self.line,
            "column": self.column,
            "end_line": self.end_line,
            "end_column": self.end_column,
        }


#: Sentinel for nodes synthesised without a source position.
NO_SPAN = SourceSpan()


# ═══════════════════════════════════════════════════════════════════════════════
# NON-FATAL ISSUES
# ═══════════════════════════════════════════════════════════════════════════════

@unique
class ErrorPhase(Enum):
    """Pipeline stage where an issue or error originated."""

    LEXICAL = "lexical"        # Tokenization
    SYNTAX = "syntax"          # Parsing
    RESOLUTION = "resolution"  # Symbol table / name binding
    RULE = "rule"              # Rule engine
    INTERNAL = "internal"      # Invariant violations


@dataclass(frozen=True, slots=True)
class Issue:
    """
    A recoverable problem found by a pipeline stage.

    Issues are values: the stage that finds one records it and keeps
    going.  The pipeline turns lexical and syntax issues into
    diagnostics once the unit has been analysed.
    """

    phase: ErrorPhase
    message: str
    span: SourceSpan = NO_SPAN

    def __str__(self) -> str:
        return f"{self.span}: {self.phase.value}: {self.message}"


# ═══════════════════════════════════════════════════════════════════════════════
# EXCEPTION CLASSES
# ═══════════════════════════════════════════════════════════════════════════════

class JavacheckError(Exception):
    """
    Base exception for all javacheck errors.

    Carries an optional source span so that a caught error can still be
    reported at the right position.
    """

    phase: ErrorPhase = ErrorPhase.INTERNAL

    def __init__(
        self,
        message: str,
        span: Optional[SourceSpan] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.span = span or NO_SPAN
        self.cause = cause

    def to_issue(self) -> Issue:
        return Issue(phase=self.phase, message=self.message, span=self.span)

    def __str__(self) -> str:
        if self.span.line:
            return f"{self.span}: {self.message}"
        return self.message


class ParseError(JavacheckError):
    """
    An unexpected token at a specific position.

    Raised inside the parser and caught by its resynchronisation logic;
    it never escapes :func:`javacheck.parser.parse`.
    """

    phase = ErrorPhase.SYNTAX

    def __init__(
        self,
        message: str,
        span: Optional[SourceSpan] = None,
        expected: str = "",
        found: str = "",
    ) -> None:
        super().__init__(message, span)
        self.expected = expected
        self.found = found


class UnitTooMalformedError(JavacheckError):
    """The parser exhausted its recovery budget (count or time) for one unit."""

    phase = ErrorPhase.SYNTAX

    def __init__(
        self,
        message: str,
        span: Optional[SourceSpan] = None,
        recoveries: int = 0,
    ) -> None:
        super().__init__(message, span)
        self.recoveries = recoveries


class InternalFault(JavacheckError):
    """
    A resolver or rule invariant was violated.

    The unit being analysed is marked inconclusive; analysis of other
    units continues.
    """

    phase = ErrorPhase.INTERNAL


class ConfigError(JavacheckError):
    """Invalid configuration file contents or command-line option."""

    phase = ErrorPhase.INTERNAL


__all__ = [
    "SourceSpan",
    "NO_SPAN",
    "ErrorPhase",
    "Issue",
    "JavacheckError",
    "ParseError",
    "UnitTooMalformedError",
    "InternalFault",
    "ConfigError",
]
