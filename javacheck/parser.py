"""javacheck/parser.py – Tolerant recursive-descent parser for Java units.

Consumes the token stream of :mod:`javacheck.lexer` and builds one
:class:`~javacheck.ast.CompilationUnit`.

Design principles
-----------------
* **Recursive descent, precedence climbing** for expressions; binary
  operators follow the usual Java precedence table, assignment and the
  conditional operator associate to the right.
* **Tolerant of malformed signatures** – ``Name(`` without a type is a
  :class:`~javacheck.ast.ConstructorDecl` only when ``Name`` is the
  enclosing type; otherwise it becomes a :class:`~javacheck.ast.MethodDecl`
  with ``return_type=None``.  Deciding what such a member *meant* is the
  rule engine's job.
* **Local recovery** – a grammar violation inside a block or a type body
  skips to the next ``;`` (consumed) or ``}`` (left in place) at the same
  nesting depth and leaves an ``ErrorStmt`` / ``ErrorMember`` behind.
  Every recovery is recorded as an :class:`~javacheck.errors.Issue`.
* **Bounded recovery** – after ``max_recoveries`` recoveries, or once the
  optional time budget is spent, :class:`UnitTooMalformedError` is raised
  for the whole unit.
* **Speculation** – local-variable declarations, casts and lambdas are
  recognised by trying the declaration grammar and rewinding on failure.

Public API
----------
``parse(text, *, max_recoveries=64, time_budget=None) -> ParseResult``
    Parse a complete unit.

``parse_expression(text) -> Expr``
    Parse a standalone expression (useful for tests).
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, FrozenSet, List, Optional, Tuple, TypeVar

from javacheck import ast as A
from javacheck.errors import (
    Issue,
    ParseError,
    SourceSpan,
    UnitTooMalformedError,
)
from javacheck.lexer import Comment, Lexer, Token, TokenKind

_log = logging.getLogger("javacheck.parser")

T = TypeVar("T")

DEFAULT_MAX_RECOVERIES = 64

PRIMITIVES: FrozenSet[str] = frozenset({
    "boolean", "byte", "char", "short", "int", "long", "float", "double",
})

MODIFIERS: FrozenSet[str] = frozenset({
    "public", "protected", "private", "static", "abstract", "final",
    "native", "synchronized", "transient", "volatile", "strictfp",
    "default",
})

ASSIGN_OPS: FrozenSet[str] = frozenset({
    "=", "+=", "-=", "*=", "/=", "%=", "&=", "|=", "^=",
    "<<=", ">>=", ">>>=",
})

BINARY_PRECEDENCE = {
    "||": 1,
    "&&": 2,
    "|": 3,
    "^": 4,
    "&": 5,
    "==": 6, "!=": 6,
    "<": 7, ">": 7, "<=": 7, ">=": 7, "instanceof": 7,
    "<<": 8, ">>": 8, ">>>": 8,
    "+": 9, "-": 9,
    "*": 10, "/": 10, "%": 10,
}

_LITERAL_KINDS = {
    TokenKind.INT: "int",
    TokenKind.LONG: "long",
    TokenKind.FLOAT: "float",
    TokenKind.DOUBLE: "double",
    TokenKind.CHAR: "char",
    TokenKind.STRING: "String",
    TokenKind.TEXT_BLOCK: "String",
    TokenKind.TRUE: "boolean",
    TokenKind.FALSE: "boolean",
    TokenKind.NULL: "null",
}

# Tokens that may follow ``(RefType)`` for the parenthesis to be a cast.
_CAST_FOLLOWERS_KW = frozenset({"this", "super", "new"})
_CAST_FOLLOWERS_OP = frozenset({"(", "!", "~"})


@dataclass
class ParseResult:
    """Everything the parser learned about one unit."""

    unit: A.CompilationUnit
    tokens: List[Token]
    comments: List[Comment]
    issues: List[Issue] = field(default_factory=list)
    recoveries: int = 0


# ═══════════════════════════════════════════════════════════════════════
#  Parser
# ═══════════════════════════════════════════════════════════════════════

class Parser:
    """Single-use parser over one unit's token stream."""

    def __init__(
        self,
        text: str,
        *,
        max_recoveries: int = DEFAULT_MAX_RECOVERIES,
        time_budget: Optional[float] = None,
    ) -> None:
        lexer = Lexer(text)
        self.all_tokens: List[Token] = list(lexer)
        self.comments: List[Comment] = list(lexer.comments)
        self.issues: List[Issue] = list(lexer.issues)
        self.tokens: List[Token] = [
            t for t in self.all_tokens if t.kind is not TokenKind.ERROR
        ]
        self.pos = 0
        self.recoveries = 0
        self.max_recoveries = max_recoveries
        self._deadline = (
            time.monotonic() + time_budget if time_budget is not None else None
        )
        # (position, original token) for every ``>>`` split while closing
        # type arguments, so speculation can undo them.
        self._splits: List[Tuple[int, Token]] = []

    # ── token access ─────────────────────────────────────────────────

    def _peek(self, k: int = 0) -> Token:
        i = self.pos + k
        if i >= len(self.tokens):
            return self.tokens[-1]
        return self.tokens[i]

    def _prev(self) -> Token:
        return self.tokens[self.pos - 1] if self.pos else self.tokens[0]

    def _advance(self) -> Token:
        tok = self._peek()
        if tok.kind is not TokenKind.EOF:
            self.pos += 1
        return tok

    def _at(self, *ops: str) -> bool:
        return self._peek().is_op(*ops)

    def _at_kw(self, *words: str) -> bool:
        return self._peek().is_keyword(*words)

    def _at_eof(self) -> bool:
        return self._peek().kind is TokenKind.EOF

    def _accept(self, op: str) -> bool:
        if self._at(op):
            self._advance()
            return True
        return False

    def _error(self, expected: str) -> ParseError:
        tok = self._peek()
        found = "end of input" if tok.kind is TokenKind.EOF else repr(tok.lexeme)
        return ParseError(
            f"expected {expected} but found {found}",
            tok.span,
            expected=expected,
            found=tok.lexeme,
        )

    def _expect(self, op: str) -> Token:
        if not self._at(op):
            raise self._error(repr(op))
        return self._advance()

    def _expect_kw(self, word: str) -> Token:
        if not self._at_kw(word):
            raise self._error(repr(word))
        return self._advance()

    def _expect_ident(self) -> Token:
        if self._peek().kind is not TokenKind.IDENT:
            raise self._error("identifier")
        return self._advance()

    def _span(self, start: Token) -> SourceSpan:
        return SourceSpan.between(start, self._prev())

    # ── speculation ──────────────────────────────────────────────────

    def _mark(self) -> Tuple[int, int]:
        return self.pos, len(self._splits)

    def _reset(self, mark: Tuple[int, int]) -> None:
        pos, nsplits = mark
        while len(self._splits) > nsplits:
            where, original = self._splits.pop()
            self.tokens[where] = original
        self.pos = pos

    def _speculate(self, fn: Callable[[], T]) -> Optional[T]:
        """Run *fn*; on ParseError rewind and return None."""
        mark = self._mark()
        try:
            return fn()
        except ParseError:
            self._reset(mark)
            return None

    # ── recovery ─────────────────────────────────────────────────────

    def _check_budget(self) -> None:
        if self._deadline is not None and time.monotonic() > self._deadline:
            raise UnitTooMalformedError(
                "time budget exhausted while parsing",
                self._peek().span,
                recoveries=self.recoveries,
            )

    def _resync(self, err: ParseError, start: int) -> Tuple[str, SourceSpan]:
        """Skip to the next boundary and return the skipped text and span."""
        self.recoveries += 1
        self.issues.append(err.to_issue())
        _log.debug("recovering from %s (recovery %d)", err, self.recoveries)
        if self.recoveries > self.max_recoveries:
            raise UnitTooMalformedError(
                f"gave up after {self.max_recoveries} recoveries",
                err.span,
                recoveries=self.recoveries,
            )
        self._check_budget()

        depth = 0
        while not self._at_eof():
            tok = self._peek()
            if tok.is_op("{"):
                depth += 1
            elif tok.is_op("}"):
                if depth == 0:
                    break
                depth -= 1
                if depth == 0:
                    self._advance()
                    break
            elif tok.is_op(";") and depth == 0:
                self._advance()
                break
            self._advance()
        if self.pos == start and not self._at("}") and not self._at_eof():
            self._advance()

        skipped = self.tokens[start:self.pos]
        if skipped:
            span = SourceSpan.between(skipped[0], skipped[-1])
        else:
            span = err.span
        return " ".join(t.lexeme for t in skipped), span

    # ═════════════════════════════════════════════════════════════════
    #  Compilation unit and declarations
    # ═════════════════════════════════════════════════════════════════

    def parse_unit(self) -> A.CompilationUnit:
        first = self._peek()
        package: Optional[str] = None
        imports: List[A.ImportDecl] = []
        types: List[A.TypeDecl] = []

        self._skip_annotations()
        if self._at_kw("package"):
            self._advance()
            package = self._qualified_name()
            self._expect(";")

        while self._at_kw("import"):
            start = self.pos
            try:
                imports.append(self._import_decl())
            except ParseError as err:
                self._resync(err, start)

        while not self._at_eof():
            start = self.pos
            if self._accept(";"):
                continue
            try:
                if self._at("}"):
                    raise self._error("type declaration")
                modifiers = self._modifiers()
                types.append(self._type_decl(modifiers, self.tokens[start]))
            except ParseError as err:
                self._resync(err, start)
                if self.pos == start and self._at("}"):
                    self._advance()

        return A.CompilationUnit(
            package=package,
            imports=tuple(imports),
            types=tuple(types),
            span=SourceSpan.between(first, self._prev()),
        )

    def _qualified_name(self) -> str:
        parts = [self._expect_ident().lexeme]
        while self._at(".") and self._peek(1).kind is TokenKind.IDENT:
            self._advance()
            parts.append(self._advance().lexeme)
        return ".".join(parts)

    def _import_decl(self) -> A.ImportDecl:
        start = self._expect_kw("import")
        static = False
        if self._at_kw("static"):
            self._advance()
            static = True
        name = self._qualified_name()
        wildcard = False
        if self._at(".") and self._peek(1).is_op("*"):
            self._advance()
            self._advance()
            wildcard = True
        self._expect(";")
        return A.ImportDecl(name, static, wildcard, span=self._span(start))

    def _skip_annotations(self) -> None:
        while self._at("@") and not self._peek(1).is_keyword("interface"):
            self._advance()
            self._qualified_name()
            if self._at("("):
                self._skip_balanced("(", ")")

    def _skip_balanced(self, open_: str, close: str) -> None:
        self._expect(open_)
        depth = 1
        while depth and not self._at_eof():
            tok = self._advance()
            if tok.is_op(open_):
                depth += 1
            elif tok.is_op(close):
                depth -= 1
        if depth:
            raise self._error(repr(close))

    def _modifiers(self) -> FrozenSet[str]:
        mods = set()
        while True:
            tok = self._peek()
            if tok.is_op("@") and not self._peek(1).is_keyword("interface"):
                self._skip_annotations()
            elif tok.kind is TokenKind.KEYWORD and tok.lexeme in MODIFIERS:
                mods.add(self._advance().lexeme)
            elif tok.kind is TokenKind.IDENT and tok.lexeme == "sealed" \
                    and self._peek(1).kind is TokenKind.KEYWORD:
                self._advance()
            elif tok.kind is TokenKind.IDENT and tok.lexeme == "non" \
                    and self._peek(1).is_op("-") and self._peek(2).lexeme == "sealed":
                # non-sealed lexes as ``non - sealed``
                for _ in range(3):
                    self._advance()
            else:
                break
        return frozenset(mods)

    def _at_type_decl_start(self) -> bool:
        return self._at_kw("class", "interface", "enum") or (
            self._at("@") and self._peek(1).is_keyword("interface")
        )

    def _type_decl(self, modifiers: FrozenSet[str], start: Token) -> A.TypeDecl:
        if not self._at_type_decl_start():
            raise self._error("'class', 'interface' or 'enum'")
        self._accept("@")
        keyword = self._advance().lexeme
        kind = A.TypeKind(keyword)
        name_tok = self._expect_ident()
        self._skip_type_params()

        superclass: Optional[A.TypeRef] = None
        interfaces: List[A.TypeRef] = []
        if self._at_kw("extends"):
            self._advance()
            if kind is A.TypeKind.INTERFACE:
                interfaces.extend(self._type_list())
            else:
                superclass = self._parse_type()
        if self._at_kw("implements"):
            self._advance()
            interfaces.extend(self._type_list())
        if self._peek().kind is TokenKind.IDENT and self._peek().lexeme == "permits":
            self._advance()
            self._type_list()

        if kind is A.TypeKind.ENUM:
            members = self._enum_body(name_tok.lexeme)
        else:
            members = self._class_body(name_tok.lexeme)
        return A.TypeDecl(
            name=name_tok.lexeme,
            kind=kind,
            modifiers=modifiers,
            superclass=superclass,
            interfaces=tuple(interfaces),
            members=tuple(members),
            span=self._span(start),
            name_span=name_tok.span,
        )

    def _type_list(self) -> List[A.TypeRef]:
        types = [self._parse_type()]
        while self._accept(","):
            types.append(self._parse_type())
        return types

    def _skip_type_params(self) -> None:
        if not self._at("<"):
            return
        self._advance()
        depth = 1
        while depth and not self._at_eof():
            if self._at("<"):
                depth += 1
                self._advance()
            elif self._peek().kind is TokenKind.OP and self._peek().lexeme.startswith(">"):
                self._close_angle()
                depth -= 1
            else:
                self._advance()

    def _close_brace(self) -> None:
        """Consume ``}``; a brace missing at end of input is only an issue."""
        if self._at_eof():
            self.recoveries += 1
            self.issues.append(self._error("'}'").to_issue())
            return
        self._expect("}")

    def _class_body(self, type_name: str) -> List[A.Node]:
        self._expect("{")
        members = self._members_until_close(type_name)
        self._close_brace()
        return members

    def _members_until_close(self, type_name: str) -> List[A.Node]:
        members: List[A.Node] = []
        while not self._at("}") and not self._at_eof():
            self._check_budget()
            start = self.pos
            if self._accept(";"):
                continue
            try:
                members.append(self._member(type_name))
            except ParseError as err:
                text, span = self._resync(err, start)
                members.append(A.ErrorMember(text, span=span))
        return members

    def _enum_body(self, type_name: str) -> List[A.Node]:
        self._expect("{")
        members: List[A.Node] = []
        while not self._at(";", "}") and not self._at_eof():
            self._skip_annotations()
            name_tok = self._expect_ident()
            args: Tuple[A.Node, ...] = ()
            body: Optional[Tuple[A.Node, ...]] = None
            if self._at("("):
                args = self._arguments()
            if self._at("{"):
                body = tuple(self._class_body(""))
            members.append(A.EnumConstant(
                name_tok.lexeme, args, body, span=self._span(name_tok),
            ))
            if not self._accept(","):
                break
        if self._accept(";"):
            members.extend(self._members_until_close(type_name))
        self._close_brace()
        return members

    def _member(self, type_name: str) -> A.Node:
        start = self._peek()
        if self._at("{"):
            body = self._block()
            return A.Initializer(False, body, span=self._span(start))
        if self._at_kw("static") and self._peek(1).is_op("{"):
            self._advance()
            body = self._block()
            return A.Initializer(True, body, span=self._span(start))

        modifiers = self._modifiers()
        if self._at_type_decl_start():
            return self._type_decl(modifiers, start)
        self._skip_type_params()

        # ``Name(`` with no type in front of it
        if self._peek().kind is TokenKind.IDENT and self._peek(1).is_op("("):
            name_tok = self._advance()
            if name_tok.lexeme == type_name:
                params, throws, body = self._callable_rest()
                if body is None:
                    raise self._error("constructor body")
                return A.ConstructorDecl(
                    modifiers, name_tok.lexeme, params, throws, body,
                    span=self._span(start), name_span=name_tok.span,
                )
            params, throws, body = self._callable_rest()
            return A.MethodDecl(
                modifiers, None, name_tok.lexeme, params, throws, body,
                span=self._span(start), name_span=name_tok.span,
            )

        type_ref = self._parse_type(allow_void=True)
        name_tok = self._expect_ident()
        if self._at("("):
            params, throws, body = self._callable_rest()
            return A.MethodDecl(
                modifiers, type_ref, name_tok.lexeme, params, throws, body,
                span=self._span(start), name_span=name_tok.span,
            )
        if type_ref.name == "void" and not type_ref.dims:
            raise self._error("'('")
        declarators = self._declarators(name_tok)
        self._expect(";")
        return A.FieldDecl(modifiers, type_ref, tuple(declarators), span=self._span(start))

    def _callable_rest(
        self,
    ) -> Tuple[Tuple[A.Param, ...], Tuple[A.TypeRef, ...], Optional[A.Block]]:
        params = self._params()
        self._dims()  # legacy ``int f()[]``
        throws: List[A.TypeRef] = []
        if self._at_kw("throws"):
            self._advance()
            throws = self._type_list()
        if self._at_kw("default"):
            # annotation element default value
            self._advance()
            self._element_value()
        if self._accept(";"):
            return params, tuple(throws), None
        return params, tuple(throws), self._block()

    def _element_value(self) -> None:
        if self._at("{"):
            self._skip_balanced("{", "}")
        else:
            self._parse_ternary()

    def _params(self) -> Tuple[A.Param, ...]:
        self._expect("(")
        params: List[A.Param] = []
        if not self._at(")"):
            params.append(self._param())
            while self._accept(","):
                params.append(self._param())
        self._expect(")")
        return tuple(params)

    def _param(self) -> A.Param:
        start = self._peek()
        modifiers = self._modifiers()
        type_ref = self._parse_type()
        varargs = False
        if self._accept("..."):
            varargs = True
            type_ref = type_ref.with_dims(1)
        if self._at_kw("this"):
            name = self._advance().lexeme
        else:
            name = self._expect_ident().lexeme
        type_ref = type_ref.with_dims(self._dims())
        return A.Param(modifiers, type_ref, name, varargs, span=self._span(start))

    def _declarators(self, first_name: Token) -> List[A.VarDeclarator]:
        declarators = [self._declarator_rest(first_name)]
        while self._accept(","):
            declarators.append(self._declarator_rest(self._expect_ident()))
        return declarators

    def _declarator_rest(self, name_tok: Token) -> A.VarDeclarator:
        dims = self._dims()
        init = None
        if self._accept("="):
            init = self._var_init()
        return A.VarDeclarator(name_tok.lexeme, dims, init, span=self._span(name_tok))

    def _var_init(self) -> A.Node:
        if self._at("{"):
            return self._array_init()
        return self._parse_expression()

    # ═════════════════════════════════════════════════════════════════
    #  Types
    # ═════════════════════════════════════════════════════════════════

    def _parse_type(self, allow_void: bool = False) -> A.TypeRef:
        self._skip_annotations()
        start = self._peek()
        args: Tuple[A.TypeRef, ...] = ()
        if start.kind is TokenKind.KEYWORD and (
            start.lexeme in PRIMITIVES or (allow_void and start.lexeme == "void")
        ):
            self._advance()
            name = start.lexeme
        else:
            parts = [self._expect_ident().lexeme]
            args = self._type_args()
            while self._at(".") and self._peek(1).kind is TokenKind.IDENT:
                self._advance()
                parts.append(self._advance().lexeme)
                args = self._type_args()
            name = ".".join(parts)
        dims = self._dims()
        return A.TypeRef(name, args, dims, span=self._span(start))

    def _type_args(self) -> Tuple[A.TypeRef, ...]:
        if not self._at("<"):
            return ()
        self._advance()
        args: List[A.TypeRef] = []
        if self._at(">"):  # diamond
            self._advance()
            return ()
        while True:
            if self._at("?"):
                q = self._advance()
                bound: Tuple[A.TypeRef, ...] = ()
                if self._at_kw("extends", "super"):
                    self._advance()
                    bound = (self._parse_type(),)
                args.append(A.TypeRef("?", bound, 0, span=self._span(q)))
            else:
                args.append(self._parse_type())
            if not self._accept(","):
                break
        self._close_angle()
        return tuple(args)

    def _close_angle(self) -> None:
        tok = self._peek()
        if tok.is_op(">"):
            self._advance()
            return
        if tok.kind is TokenKind.OP and tok.lexeme.startswith(">"):
            rest = Token(
                TokenKind.OP, tok.lexeme[1:], tok.line, tok.column + 1,
                tok.offset + 1, tok.index,
            )
            self._splits.append((self.pos, tok))
            self.tokens[self.pos] = rest
            return
        raise self._error("'>'")

    def _dims(self) -> int:
        dims = 0
        while self._at("[") and self._peek(1).is_op("]"):
            self._advance()
            self._advance()
            dims += 1
        return dims

    # ═════════════════════════════════════════════════════════════════
    #  Statements
    # ═════════════════════════════════════════════════════════════════

    def _block(self) -> A.Block:
        start = self._expect("{")
        statements = self._statements_until(lambda: self._at("}"))
        self._close_brace()
        return A.Block(tuple(statements), span=self._span(start))

    def _statements_until(self, stop: Callable[[], bool]) -> List[A.Node]:
        statements: List[A.Node] = []
        while not stop() and not self._at("}") and not self._at_eof():
            self._check_budget()
            start = self.pos
            try:
                statements.append(self._block_statement())
            except ParseError as err:
                text, span = self._resync(err, start)
                statements.append(A.ErrorStmt(text, span=span))
        return statements

    def _block_statement(self) -> A.Node:
        start = self._peek()
        if self._at_type_decl_start() or (
            self._at_kw("abstract", "final", "static")
            and self._is_local_class_ahead()
        ):
            modifiers = self._modifiers()
            decl = self._type_decl(modifiers, start)
            return A.LocalClassDecl(decl, span=self._span(start))
        if self._at("@") or self._at_kw("final"):
            modifiers = self._modifiers()
            if self._at_type_decl_start():
                decl = self._type_decl(modifiers, start)
                return A.LocalClassDecl(decl, span=self._span(start))
            return self._local_var_decl(modifiers, start, terminated=True)
        if self._looks_like_local_var():
            return self._local_var_decl(frozenset(), start, terminated=True)
        return self._statement()

    def _is_local_class_ahead(self) -> bool:
        k = 0
        while self._peek(k).kind is TokenKind.KEYWORD and self._peek(k).lexeme in MODIFIERS:
            k += 1
        return self._peek(k).is_keyword("class", "interface", "enum")

    def _looks_like_local_var(self) -> bool:
        tok = self._peek()
        if tok.kind is TokenKind.KEYWORD:
            return tok.lexeme in PRIMITIVES and not self._peek(1).is_op(".")
        if tok.kind is not TokenKind.IDENT:
            return False
        mark = self._mark()
        try:
            self._parse_type()
            nxt = self._peek()
            return nxt.kind is TokenKind.IDENT and (
                self._peek(1).is_op("=", ";", ",", "[", ":")
            )
        except ParseError:
            return False
        finally:
            self._reset(mark)

    def _local_var_decl(
        self, modifiers: FrozenSet[str], start: Token, *, terminated: bool,
    ) -> A.LocalVarDecl:
        type_ref = self._parse_type()
        declarators = self._declarators(self._expect_ident())
        if terminated:
            self._expect(";")
        return A.LocalVarDecl(
            modifiers, type_ref, tuple(declarators), span=self._span(start),
        )

    def _statement(self) -> A.Node:
        tok = self._peek()
        if tok.is_op("{"):
            return self._block()
        if tok.is_op(";"):
            self._advance()
            return A.EmptyStmt(span=tok.span)
        if tok.kind is TokenKind.KEYWORD:
            handler = getattr(self, f"_stmt_{tok.lexeme}", None)
            if handler is not None:
                return handler()
            if tok.lexeme in ("this", "super") and self._peek(1).is_op("("):
                self._advance()
                args = self._arguments()
                self._expect(";")
                return A.ConstructorCall(tok.lexeme, args, span=self._span(tok))
        if tok.kind is TokenKind.IDENT and self._peek(1).is_op(":"):
            self._advance()
            self._advance()
            body = self._statement()
            return A.LabeledStmt(tok.lexeme, body, span=self._span(tok))
        if tok.kind is TokenKind.IDENT and tok.lexeme == "yield" \
                and not self._peek(1).is_op("=", "(", "."):
            self._advance()
            value = self._parse_expression()
            self._expect(";")
            return A.YieldStmt(value, span=self._span(tok))
        expr = self._parse_expression()
        self._expect(";")
        return A.ExprStmt(expr, span=self._span(tok))

    def _paren_expr(self) -> A.Node:
        self._expect("(")
        expr = self._parse_expression()
        self._expect(")")
        return expr

    def _stmt_if(self) -> A.Node:
        start = self._advance()
        cond = self._paren_expr()
        then = self._statement()
        otherwise = None
        if self._at_kw("else"):
            self._advance()
            otherwise = self._statement()
        return A.IfStmt(cond, then, otherwise, span=self._span(start))

    def _stmt_while(self) -> A.Node:
        start = self._advance()
        cond = self._paren_expr()
        body = self._statement()
        return A.WhileStmt(cond, body, span=self._span(start))

    def _stmt_do(self) -> A.Node:
        start = self._advance()
        body = self._statement()
        self._expect_kw("while")
        cond = self._paren_expr()
        self._expect(";")
        return A.DoStmt(body, cond, span=self._span(start))

    def _stmt_for(self) -> A.Node:
        start = self._advance()
        self._expect("(")
        init: List[A.Node] = []
        if not self._at(";"):
            decl_start = self._peek()
            modifiers = self._modifiers()
            if modifiers or self._looks_like_local_var():
                type_ref = self._parse_type()
                name_tok = self._expect_ident()
                if self._accept(":"):
                    var = A.Param(modifiers, type_ref, name_tok.lexeme,
                                  span=self._span(decl_start))
                    iterable = self._parse_expression()
                    self._expect(")")
                    body = self._statement()
                    return A.ForEachStmt(var, iterable, body, span=self._span(start))
                declarators = self._declarators(name_tok)
                init.append(A.LocalVarDecl(
                    modifiers, type_ref, tuple(declarators),
                    span=self._span(decl_start),
                ))
            else:
                for expr in self._expression_list():
                    init.append(A.ExprStmt(expr, span=expr.span))
        self._expect(";")
        cond = None if self._at(";") else self._parse_expression()
        self._expect(";")
        update: Tuple[A.Node, ...] = ()
        if not self._at(")"):
            update = tuple(self._expression_list())
        self._expect(")")
        body = self._statement()
        return A.ForStmt(tuple(init), cond, update, body, span=self._span(start))

    def _expression_list(self) -> List[A.Node]:
        exprs = [self._parse_expression()]
        while self._accept(","):
            exprs.append(self._parse_expression())
        return exprs

    def _stmt_return(self) -> A.Node:
        start = self._advance()
        value = None if self._at(";") else self._parse_expression()
        self._expect(";")
        return A.ReturnStmt(value, span=self._span(start))

    def _stmt_break(self) -> A.Node:
        start = self._advance()
        label = self._advance().lexeme if self._peek().kind is TokenKind.IDENT else None
        self._expect(";")
        return A.BreakStmt(label, span=self._span(start))

    def _stmt_continue(self) -> A.Node:
        start = self._advance()
        label = self._advance().lexeme if self._peek().kind is TokenKind.IDENT else None
        self._expect(";")
        return A.ContinueStmt(label, span=self._span(start))

    def _stmt_throw(self) -> A.Node:
        start = self._advance()
        expr = self._parse_expression()
        self._expect(";")
        return A.ThrowStmt(expr, span=self._span(start))

    def _stmt_synchronized(self) -> A.Node:
        start = self._advance()
        lock = self._paren_expr()
        body = self._block()
        return A.SyncStmt(lock, body, span=self._span(start))

    def _stmt_assert(self) -> A.Node:
        start = self._advance()
        cond = self._parse_expression()
        message = None
        if self._accept(":"):
            message = self._parse_expression()
        self._expect(";")
        return A.AssertStmt(cond, message, span=self._span(start))

    def _stmt_try(self) -> A.Node:
        start = self._advance()
        resources: List[A.Node] = []
        if self._accept("("):
            while not self._at(")"):
                res_start = self._peek()
                modifiers = self._modifiers()
                if modifiers or self._looks_like_local_var():
                    resources.append(self._local_var_decl(
                        modifiers, res_start, terminated=False,
                    ))
                else:
                    resources.append(self._parse_expression())
                if not self._accept(";"):
                    break
            self._expect(")")
        body = self._block()
        catches: List[A.CatchClause] = []
        while self._at_kw("catch"):
            catch_tok = self._advance()
            self._expect("(")
            self._modifiers()
            types = [self._parse_type()]
            while self._accept("|"):
                types.append(self._parse_type())
            name = self._expect_ident().lexeme
            self._expect(")")
            catch_body = self._block()
            catches.append(A.CatchClause(
                tuple(types), name, catch_body, span=self._span(catch_tok),
            ))
        finally_block = None
        if self._at_kw("finally"):
            self._advance()
            finally_block = self._block()
        if not catches and finally_block is None and not resources:
            raise self._error("'catch' or 'finally'")
        return A.TryStmt(
            tuple(resources), body, tuple(catches), finally_block,
            span=self._span(start),
        )

    def _stmt_switch(self) -> A.Node:
        start = self._advance()
        selector = self._paren_expr()
        cases = self._switch_body()
        return A.SwitchStmt(selector, tuple(cases), span=self._span(start))

    def _switch_body(self) -> List[A.SwitchCase]:
        self._expect("{")
        cases: List[A.SwitchCase] = []
        while not self._at("}") and not self._at_eof():
            case_tok = self._peek()
            labels: List[A.Node] = []
            is_default = False
            if self._at_kw("default"):
                self._advance()
                is_default = True
            elif self._at_kw("case"):
                self._advance()
                labels.append(self._case_label())
                while self._accept(","):
                    if self._at_kw("default"):
                        self._advance()
                        is_default = True
                    else:
                        labels.append(self._case_label())
            else:
                raise self._error("'case' or 'default'")

            if self._accept("->"):
                if self._at("{"):
                    body: List[A.Node] = [self._block()]
                elif self._at_kw("throw"):
                    body = [self._stmt_throw()]
                else:
                    expr_tok = self._peek()
                    expr = self._parse_expression()
                    self._expect(";")
                    body = [A.ExprStmt(expr, span=self._span(expr_tok))]
                arrow = True
            else:
                self._expect(":")
                body = self._statements_until(lambda: self._at_kw("case", "default"))
                arrow = False
            cases.append(A.SwitchCase(
                tuple(labels), is_default, tuple(body), arrow,
                span=self._span(case_tok),
            ))
        self._expect("}")
        return cases

    def _case_label(self) -> A.Node:
        # Labels stop before ``->``, so no lambda check here.
        return self._parse_ternary()

    # ═════════════════════════════════════════════════════════════════
    #  Expressions
    # ═════════════════════════════════════════════════════════════════

    def _parse_expression(self) -> A.Node:
        if self._is_lambda_start():
            return self._lambda()
        start = self._peek()
        lhs = self._parse_ternary()
        tok = self._peek()
        if tok.kind is TokenKind.OP and tok.lexeme in ASSIGN_OPS:
            self._advance()
            value = self._parse_expression()
            return A.Assign(tok.lexeme, lhs, value, span=self._span(start))
        return lhs

    def _is_lambda_start(self) -> bool:
        tok = self._peek()
        if tok.kind is TokenKind.IDENT:
            return self._peek(1).is_op("->")
        if not tok.is_op("("):
            return False
        depth = 0
        k = 0
        while True:
            t = self._peek(k)
            if t.kind is TokenKind.EOF:
                return False
            if t.is_op("("):
                depth += 1
            elif t.is_op(")"):
                depth -= 1
                if depth == 0:
                    return self._peek(k + 1).is_op("->")
            k += 1

    def _lambda(self) -> A.Node:
        start = self._peek()
        params: List[A.Param] = []
        if start.kind is TokenKind.IDENT:
            self._advance()
            params.append(A.Param(frozenset(), None, start.lexeme, span=start.span))
        else:
            self._expect("(")
            while not self._at(")"):
                p_start = self._peek()
                if p_start.kind is TokenKind.IDENT and self._peek(1).is_op(",", ")"):
                    self._advance()
                    params.append(A.Param(frozenset(), None, p_start.lexeme,
                                          span=p_start.span))
                else:
                    params.append(self._param())
                if not self._accept(","):
                    break
            self._expect(")")
        self._expect("->")
        body = self._block() if self._at("{") else self._parse_expression()
        return A.Lambda(tuple(params), body, span=self._span(start))

    def _parse_ternary(self) -> A.Node:
        start = self._peek()
        cond = self._parse_binary(1)
        if not self._accept("?"):
            return cond
        then = self._parse_expression()
        self._expect(":")
        if self._is_lambda_start():
            otherwise = self._lambda()
        else:
            otherwise = self._parse_ternary()
        return A.Conditional(cond, then, otherwise, span=self._span(start))

    def _parse_binary(self, min_prec: int) -> A.Node:
        start = self._peek()
        left = self._parse_unary()
        while True:
            tok = self._peek()
            if tok.is_keyword("instanceof"):
                op = "instanceof"
            elif tok.kind is TokenKind.OP and tok.lexeme in BINARY_PRECEDENCE:
                op = tok.lexeme
            else:
                break
            prec = BINARY_PRECEDENCE[op]
            if prec < min_prec:
                break
            self._advance()
            if op == "instanceof":
                self._modifiers()
                type_ref = self._parse_type()
                binding = None
                if self._peek().kind is TokenKind.IDENT:
                    binding = self._advance().lexeme
                left = A.InstanceOf(left, type_ref, binding, span=self._span(start))
                continue
            right = self._parse_binary(prec + 1)
            left = A.Binary(op, left, right, span=self._span(start))
        return left

    def _parse_unary(self) -> A.Node:
        tok = self._peek()
        if tok.kind is TokenKind.OP and tok.lexeme in ("++", "--", "+", "-", "!", "~"):
            self._advance()
            operand = self._parse_unary()
            return A.Unary(tok.lexeme, operand, False, span=self._span(tok))
        if tok.is_op("("):
            type_ref = self._speculate(self._cast_prefix)
            if type_ref is not None:
                if self._is_lambda_start():
                    operand = self._lambda()
                else:
                    operand = self._parse_unary()
                return A.Cast(type_ref, operand, span=self._span(tok))
        return self._parse_postfix()

    def _cast_prefix(self) -> A.TypeRef:
        """Consume ``(Type)`` when it can only be a cast."""
        self._expect("(")
        type_ref = self._parse_type()
        while self._accept("&"):
            self._parse_type()
        self._expect(")")
        nxt = self._peek()
        primitive = type_ref.name in PRIMITIVES and not type_ref.dims
        if not primitive:
            follows = (
                nxt.kind in _LITERAL_KINDS
                or nxt.kind is TokenKind.IDENT
                or (nxt.kind is TokenKind.KEYWORD and nxt.lexeme in _CAST_FOLLOWERS_KW)
                or nxt.is_op(*_CAST_FOLLOWERS_OP)
            )
            if not follows:
                raise self._error("cast operand")
        return type_ref

    def _parse_postfix(self) -> A.Node:
        start = self._peek()
        expr = self._parse_primary()
        while True:
            tok = self._peek()
            if tok.is_op("."):
                self._advance()
                if self._at("<"):
                    self._type_args()
                nxt = self._peek()
                if nxt.is_keyword("class"):
                    self._advance()
                    expr = A.ClassLiteral(
                        A.TypeRef(_dotted(expr), span=expr.span), span=self._span(start),
                    )
                elif nxt.is_keyword("this"):
                    self._advance()
                    expr = A.This(_dotted(expr), span=self._span(start))
                elif nxt.is_keyword("new"):
                    expr = self._creator()
                elif nxt.kind is TokenKind.IDENT or nxt.is_keyword("super"):
                    name_tok = self._advance()
                    if self._at("("):
                        args = self._arguments()
                        expr = A.MethodCall(
                            expr, name_tok.lexeme, args,
                            span=self._span(start), name_span=name_tok.span,
                        )
                    else:
                        expr = A.FieldAccess(
                            expr, name_tok.lexeme,
                            span=self._span(start), name_span=name_tok.span,
                        )
                else:
                    raise self._error("member name")
            elif tok.is_op("["):
                if self._peek(1).is_op("]"):
                    # ``T[].class`` or ``T[]::new``
                    type_ref = A.TypeRef(_dotted(expr), (), self._dims(), span=expr.span)
                    if self._accept("::"):
                        name = self._advance().lexeme
                        expr = A.MethodRef(type_ref, name, span=self._span(start))
                    else:
                        self._expect(".")
                        self._expect_kw("class")
                        expr = A.ClassLiteral(type_ref, span=self._span(start))
                    continue
                self._advance()
                index = self._parse_expression()
                self._expect("]")
                expr = A.ArrayAccess(expr, index, span=self._span(start))
            elif tok.is_op("++", "--"):
                self._advance()
                expr = A.Unary(tok.lexeme, expr, True, span=self._span(start))
            elif tok.is_op("::"):
                self._advance()
                name_tok = self._advance()
                expr = A.MethodRef(expr, name_tok.lexeme, span=self._span(start))
            else:
                return expr

    def _parse_primary(self) -> A.Node:
        tok = self._peek()
        kind = _LITERAL_KINDS.get(tok.kind)
        if kind is not None:
            self._advance()
            return A.Literal(kind, tok.lexeme, span=tok.span)
        if tok.kind is TokenKind.IDENT:
            self._advance()
            if self._at("("):
                args = self._arguments()
                return A.MethodCall(
                    None, tok.lexeme, args, span=self._span(tok), name_span=tok.span,
                )
            return A.Name(tok.lexeme, span=tok.span)
        if tok.is_op("("):
            self._advance()
            expr = self._parse_expression()
            self._expect(")")
            return expr
        if tok.is_keyword("this"):
            self._advance()
            return A.This(None, span=tok.span)
        if tok.is_keyword("super"):
            self._advance()
            return A.Super(span=tok.span)
        if tok.is_keyword("new"):
            return self._creator()
        if tok.is_keyword("switch"):
            return self._switch_expression()
        if tok.kind is TokenKind.KEYWORD and (tok.lexeme in PRIMITIVES or tok.lexeme == "void"):
            type_ref = self._parse_type(allow_void=True)
            if self._accept("::"):
                name = self._advance().lexeme
                return A.MethodRef(type_ref, name, span=self._span(tok))
            self._expect(".")
            self._expect_kw("class")
            return A.ClassLiteral(type_ref, span=self._span(tok))
        raise self._error("expression")

    def _switch_expression(self) -> A.Node:
        start = self._advance()
        selector = self._paren_expr()
        cases = self._switch_body()
        return A.SwitchExpr(selector, tuple(cases), span=self._span(start))

    def _arguments(self) -> Tuple[A.Node, ...]:
        self._expect("(")
        args: List[A.Node] = []
        if not self._at(")"):
            args = self._expression_list()
        self._expect(")")
        return tuple(args)

    def _creator(self) -> A.Node:
        start = self._expect_kw("new")
        if self._at("<"):
            self._type_args()
        self._skip_annotations()
        type_start = self._peek()
        if type_start.kind is TokenKind.KEYWORD and type_start.lexeme in PRIMITIVES:
            self._advance()
            base = A.TypeRef(type_start.lexeme, span=type_start.span)
        else:
            parts = [self._expect_ident().lexeme]
            args = self._type_args()
            while self._at(".") and self._peek(1).kind is TokenKind.IDENT:
                self._advance()
                parts.append(self._advance().lexeme)
                args = self._type_args()
            base = A.TypeRef(".".join(parts), args, span=self._span(type_start))

        if self._at("["):
            dim_exprs: List[A.Node] = []
            dims = 0
            while self._at("["):
                self._advance()
                if self._accept("]"):
                    dims += 1
                    continue
                if dims > len(dim_exprs):
                    raise self._error("']'")
                dim_exprs.append(self._parse_expression())
                self._expect("]")
                dims += 1
            init = self._array_init() if self._at("{") else None
            if not dim_exprs and init is None:
                raise self._error("array dimension or initializer")
            return A.NewArray(
                base.with_dims(dims), tuple(dim_exprs), init, span=self._span(start),
            )

        args = self._arguments()
        body: Optional[Tuple[A.Node, ...]] = None
        if self._at("{"):
            body = tuple(self._class_body(""))
        return A.NewObject(base, args, body, span=self._span(start))

    def _array_init(self) -> A.ArrayInit:
        start = self._expect("{")
        elements: List[A.Node] = []
        while not self._at("}"):
            elements.append(self._var_init())
            if not self._accept(","):
                break
        self._expect("}")
        return A.ArrayInit(tuple(elements), span=self._span(start))


def _dotted(expr: A.Node) -> str:
    """Reconstruct a dotted name from ``Name``/``FieldAccess`` chains."""
    if isinstance(expr, A.Name):
        return expr.name
    if isinstance(expr, A.FieldAccess):
        return f"{_dotted(expr.target)}.{expr.name}"
    raise ParseError("expected a type name", expr.span)


# ═══════════════════════════════════════════════════════════════════════
#  Public entry points
# ═══════════════════════════════════════════════════════════════════════

def parse(
    text: str,
    *,
    max_recoveries: int = DEFAULT_MAX_RECOVERIES,
    time_budget: Optional[float] = None,
) -> ParseResult:
    """Parse one unit of Java source.

    Parameters
    ----------
    text : str
        The unit's source text.
    max_recoveries : int
        Number of local recoveries tolerated before the unit is abandoned.
    time_budget : float, optional
        Seconds the parser may spend on this unit.

    Raises
    ------
    UnitTooMalformedError
        When either limit is exceeded.
    """
    parser = Parser(text, max_recoveries=max_recoveries, time_budget=time_budget)
    unit = parser.parse_unit()
    _log.debug(
        "parsed %d types, %d issues, %d recoveries",
        len(unit.types), len(parser.issues), parser.recoveries,
    )
    return ParseResult(
        unit=unit,
        tokens=parser.all_tokens,
        comments=parser.comments,
        issues=parser.issues,
        recoveries=parser.recoveries,
    )


def parse_expression(text: str) -> A.Node:
    """Parse a standalone expression; raises :class:`ParseError` on trailing input."""
    parser = Parser(text)
    expr = parser._parse_expression()
    if not parser._at_eof():
        raise parser._error("end of input")
    return expr


__all__ = [
    "Parser",
    "ParseResult",
    "parse",
    "parse_expression",
    "DEFAULT_MAX_RECOVERIES",
    "PRIMITIVES",
    "BINARY_PRECEDENCE",
]
