"""javacheck/ast.py – Syntax tree definitions for analysed Java units.

The parser produces a tree of these nodes; every later stage reads it.

Design invariants
-----------------
* Every node is a frozen dataclass (immutable after construction).
* Nodes that carry children use tuples, never lists, so the parent
  exclusively owns its child sequence.
* Nodes compare and hash by identity (``eq=False``): the resolver and
  the rule engine key side tables on node objects, and two textually
  identical sub-expressions at different positions are different nodes.
* Every node records a :class:`~javacheck.errors.SourceSpan`; there are
  no parent back-pointers.  ``span.token_index`` indexes the original
  token stream.
* A method whose return type is missing carries ``return_type=None``.
  That marker, not a separate node kind, is how malformed signatures
  reach the rule engine.

Module layout
-------------
§1  Base node and type references
§2  Declarations
§3  Statements
§4  Expressions
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, FrozenSet, Optional, Tuple, Union

from javacheck.errors import NO_SPAN, SourceSpan


# ════════════════════════════════════════════════════════════════════════
# §1  Base node and type references
# ════════════════════════════════════════════════════════════════════════

def _snake(name: str) -> str:
    out = []
    for i, ch in enumerate(name):
        if ch.isupper() and i:
            out.append("_")
        out.append(ch.lower())
    return "".join(out)


class Node:
    """Common base of all syntax nodes."""

    __slots__ = ()
    _visit_name: str = "visit_node"

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        cls._visit_name = "visit_" + _snake(cls.__name__)

    def accept(self, visitor: Any) -> Any:
        """Dispatch to ``visitor.visit_<snake_case_class_name>``."""
        method = getattr(visitor, self._visit_name, None)
        if method is None:
            return visitor.generic_visit(self)
        return method(self)


@dataclass(frozen=True, slots=True, eq=False)
class TypeRef(Node):
    """A written type: ``int``, ``String[]``, ``java.util.List<String>``.

    ``name`` is the dotted name as written; ``dims`` counts array
    brackets.  Wildcards are ``TypeRef("?")``.
    """

    name: str
    args: Tuple["TypeRef", ...] = ()
    dims: int = 0
    span: SourceSpan = field(default=NO_SPAN, repr=False)

    @property
    def simple_name(self) -> str:
        return self.name.rsplit(".", 1)[-1]

    @property
    def erasure(self) -> str:
        """Type without generic arguments, e.g. ``List[]`` → ``List[]``."""
        return self.simple_name + "[]" * self.dims

    def with_dims(self, extra: int) -> "TypeRef":
        if not extra:
            return self
        return TypeRef(self.name, self.args, self.dims + extra, self.span)

    def display(self) -> str:
        if self.name == "?":
            return "?" + "".join(" extends " + a.display() for a in self.args)
        text = self.name
        if self.args:
            text += "<" + ", ".join(a.display() for a in self.args) + ">"
        return text + "[]" * self.dims


class TypeKind(Enum):
    CLASS = "class"
    INTERFACE = "interface"
    ENUM = "enum"


# ════════════════════════════════════════════════════════════════════════
# §2  Declarations
# ════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True, slots=True, eq=False)
class ImportDecl(Node):
    name: str
    static: bool = False
    wildcard: bool = False
    span: SourceSpan = field(default=NO_SPAN, repr=False)

    @property
    def simple_name(self) -> str:
        return self.name.rsplit(".", 1)[-1]


@dataclass(frozen=True, slots=True, eq=False)
class CompilationUnit(Node):
    """Root of one analysed unit (one source file)."""

    package: Optional[str]
    imports: Tuple[ImportDecl, ...]
    types: Tuple["TypeDecl", ...]
    span: SourceSpan = field(default=NO_SPAN, repr=False)


@dataclass(frozen=True, slots=True, eq=False)
class TypeDecl(Node):
    """A class, interface or enum declaration.

    The supertype is kept by name only; the symbol table resolves it
    lazily once every type of the unit is registered.
    """

    name: str
    kind: TypeKind
    modifiers: FrozenSet[str]
    superclass: Optional[TypeRef]
    interfaces: Tuple[TypeRef, ...]
    members: Tuple[Node, ...]
    span: SourceSpan = field(default=NO_SPAN, repr=False)
    name_span: SourceSpan = field(default=NO_SPAN, repr=False)

    @property
    def is_abstract(self) -> bool:
        return self.kind is TypeKind.INTERFACE or "abstract" in self.modifiers

    @property
    def is_interface(self) -> bool:
        return self.kind is TypeKind.INTERFACE


@dataclass(frozen=True, slots=True, eq=False)
class VarDeclarator(Node):
    """One ``name [= init]`` of a field or local declaration."""

    name: str
    dims: int = 0
    init: Optional["Expr"] = None
    span: SourceSpan = field(default=NO_SPAN, repr=False)


@dataclass(frozen=True, slots=True, eq=False)
class FieldDecl(Node):
    modifiers: FrozenSet[str]
    type: TypeRef
    declarators: Tuple[VarDeclarator, ...]
    span: SourceSpan = field(default=NO_SPAN, repr=False)

    @property
    def is_static(self) -> bool:
        return "static" in self.modifiers


@dataclass(frozen=True, slots=True, eq=False)
class Param(Node):
    """A formal parameter. ``type`` is None for untyped lambda parameters."""

    modifiers: FrozenSet[str]
    type: Optional[TypeRef]
    name: str
    varargs: bool = False
    span: SourceSpan = field(default=NO_SPAN, repr=False)


@dataclass(frozen=True, slots=True, eq=False)
class MethodDecl(Node):
    """A method. ``return_type is None`` marks a missing return type."""

    modifiers: FrozenSet[str]
    return_type: Optional[TypeRef]
    name: str
    params: Tuple[Param, ...]
    throws: Tuple[TypeRef, ...]
    body: Optional["Block"]
    span: SourceSpan = field(default=NO_SPAN, repr=False)
    name_span: SourceSpan = field(default=NO_SPAN, repr=False)

    @property
    def is_static(self) -> bool:
        return "static" in self.modifiers

    @property
    def missing_return_type(self) -> bool:
        return self.return_type is None

    @property
    def is_void(self) -> bool:
        return self.return_type is not None and self.return_type.name == "void" \
            and not self.return_type.dims


@dataclass(frozen=True, slots=True, eq=False)
class ConstructorDecl(Node):
    modifiers: FrozenSet[str]
    name: str
    params: Tuple[Param, ...]
    throws: Tuple[TypeRef, ...]
    body: "Block"
    span: SourceSpan = field(default=NO_SPAN, repr=False)
    name_span: SourceSpan = field(default=NO_SPAN, repr=False)


@dataclass(frozen=True, slots=True, eq=False)
class Initializer(Node):
    """``static { ... }`` or an instance initializer block."""

    static: bool
    body: "Block"
    span: SourceSpan = field(default=NO_SPAN, repr=False)


@dataclass(frozen=True, slots=True, eq=False)
class EnumConstant(Node):
    name: str
    args: Tuple["Expr", ...] = ()
    body: Optional[Tuple[Node, ...]] = None
    span: SourceSpan = field(default=NO_SPAN, repr=False)


@dataclass(frozen=True, slots=True, eq=False)
class ErrorMember(Node):
    """Tokens skipped while resynchronising inside a type body."""

    text: str
    span: SourceSpan = field(default=NO_SPAN, repr=False)


# ════════════════════════════════════════════════════════════════════════
# §3  Statements
# ════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True, slots=True, eq=False)
class Block(Node):
    statements: Tuple[Node, ...]
    span: SourceSpan = field(default=NO_SPAN, repr=False)


@dataclass(frozen=True, slots=True, eq=False)
class LocalVarDecl(Node):
    modifiers: FrozenSet[str]
    type: TypeRef
    declarators: Tuple[VarDeclarator, ...]
    span: SourceSpan = field(default=NO_SPAN, repr=False)


@dataclass(frozen=True, slots=True, eq=False)
class LocalClassDecl(Node):
    decl: TypeDecl
    span: SourceSpan = field(default=NO_SPAN, repr=False)


@dataclass(frozen=True, slots=True, eq=False)
class ExprStmt(Node):
    expr: "Expr"
    span: SourceSpan = field(default=NO_SPAN, repr=False)


@dataclass(frozen=True, slots=True, eq=False)
class IfStmt(Node):
    cond: "Expr"
    then: Node
    otherwise: Optional[Node] = None
    span: SourceSpan = field(default=NO_SPAN, repr=False)


@dataclass(frozen=True, slots=True, eq=False)
class WhileStmt(Node):
    cond: "Expr"
    body: Node
    span: SourceSpan = field(default=NO_SPAN, repr=False)


@dataclass(frozen=True, slots=True, eq=False)
class DoStmt(Node):
    body: Node
    cond: "Expr"
    span: SourceSpan = field(default=NO_SPAN, repr=False)


@dataclass(frozen=True, slots=True, eq=False)
class ForStmt(Node):
    init: Tuple[Node, ...]
    cond: Optional["Expr"]
    update: Tuple["Expr", ...]
    body: Node
    span: SourceSpan = field(default=NO_SPAN, repr=False)


@dataclass(frozen=True, slots=True, eq=False)
class ForEachStmt(Node):
    var: Param
    iterable: "Expr"
    body: Node
    span: SourceSpan = field(default=NO_SPAN, repr=False)


@dataclass(frozen=True, slots=True, eq=False)
class ReturnStmt(Node):
    value: Optional["Expr"] = None
    span: SourceSpan = field(default=NO_SPAN, repr=False)


@dataclass(frozen=True, slots=True, eq=False)
class YieldStmt(Node):
    """``yield v;`` handing a value out of a switch expression arm."""

    value: "Expr"
    span: SourceSpan = field(default=NO_SPAN, repr=False)


@dataclass(frozen=True, slots=True, eq=False)
class BreakStmt(Node):
    label: Optional[str] = None
    span: SourceSpan = field(default=NO_SPAN, repr=False)


@dataclass(frozen=True, slots=True, eq=False)
class ContinueStmt(Node):
    label: Optional[str] = None
    span: SourceSpan = field(default=NO_SPAN, repr=False)


@dataclass(frozen=True, slots=True, eq=False)
class ThrowStmt(Node):
    expr: "Expr"
    span: SourceSpan = field(default=NO_SPAN, repr=False)


@dataclass(frozen=True, slots=True, eq=False)
class CatchClause(Node):
    types: Tuple[TypeRef, ...]
    name: str
    body: Block
    span: SourceSpan = field(default=NO_SPAN, repr=False)


@dataclass(frozen=True, slots=True, eq=False)
class TryStmt(Node):
    resources: Tuple[Node, ...]
    body: Block
    catches: Tuple[CatchClause, ...]
    finally_block: Optional[Block] = None
    span: SourceSpan = field(default=NO_SPAN, repr=False)


@dataclass(frozen=True, slots=True, eq=False)
class SwitchCase(Node):
    """One ``case``/``default`` group. ``labels`` is empty for ``default``."""

    labels: Tuple["Expr", ...]
    is_default: bool
    body: Tuple[Node, ...]
    arrow: bool = False
    span: SourceSpan = field(default=NO_SPAN, repr=False)


@dataclass(frozen=True, slots=True, eq=False)
class SwitchStmt(Node):
    selector: "Expr"
    cases: Tuple[SwitchCase, ...]
    span: SourceSpan = field(default=NO_SPAN, repr=False)

    @property
    def has_default(self) -> bool:
        return any(c.is_default for c in self.cases)


@dataclass(frozen=True, slots=True, eq=False)
class LabeledStmt(Node):
    label: str
    body: Node
    span: SourceSpan = field(default=NO_SPAN, repr=False)


@dataclass(frozen=True, slots=True, eq=False)
class SyncStmt(Node):
    lock: "Expr"
    body: Block
    span: SourceSpan = field(default=NO_SPAN, repr=False)


@dataclass(frozen=True, slots=True, eq=False)
class AssertStmt(Node):
    cond: "Expr"
    message: Optional["Expr"] = None
    span: SourceSpan = field(default=NO_SPAN, repr=False)


@dataclass(frozen=True, slots=True, eq=False)
class ConstructorCall(Node):
    """Explicit ``this(...)`` or ``super(...)`` at the start of a body."""

    kind: str
    args: Tuple["Expr", ...]
    span: SourceSpan = field(default=NO_SPAN, repr=False)


@dataclass(frozen=True, slots=True, eq=False)
class EmptyStmt(Node):
    span: SourceSpan = field(default=NO_SPAN, repr=False)


@dataclass(frozen=True, slots=True, eq=False)
class ErrorStmt(Node):
    """Tokens skipped while resynchronising inside a block."""

    text: str
    span: SourceSpan = field(default=NO_SPAN, repr=False)


# ════════════════════════════════════════════════════════════════════════
# §4  Expressions
# ════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True, slots=True, eq=False)
class Literal(Node):
    """``kind`` is one of int, long, float, double, char, String, boolean, null."""

    kind: str
    value: str
    span: SourceSpan = field(default=NO_SPAN, repr=False)


@dataclass(frozen=True, slots=True, eq=False)
class Name(Node):
    """A bare identifier in expression position."""

    name: str
    span: SourceSpan = field(default=NO_SPAN, repr=False)


@dataclass(frozen=True, slots=True, eq=False)
class This(Node):
    qualifier: Optional[str] = None
    span: SourceSpan = field(default=NO_SPAN, repr=False)


@dataclass(frozen=True, slots=True, eq=False)
class Super(Node):
    span: SourceSpan = field(default=NO_SPAN, repr=False)


@dataclass(frozen=True, slots=True, eq=False)
class FieldAccess(Node):
    target: "Expr"
    name: str
    span: SourceSpan = field(default=NO_SPAN, repr=False)
    name_span: SourceSpan = field(default=NO_SPAN, repr=False)


@dataclass(frozen=True, slots=True, eq=False)
class MethodCall(Node):
    """``target.name(args)``; ``target`` is None for an unqualified call."""

    target: Optional["Expr"]
    name: str
    args: Tuple["Expr", ...]
    span: SourceSpan = field(default=NO_SPAN, repr=False)
    name_span: SourceSpan = field(default=NO_SPAN, repr=False)


@dataclass(frozen=True, slots=True, eq=False)
class NewObject(Node):
    """``new T(args)``; ``body`` holds the members of an anonymous class."""

    type: TypeRef
    args: Tuple["Expr", ...]
    body: Optional[Tuple[Node, ...]] = None
    span: SourceSpan = field(default=NO_SPAN, repr=False)


@dataclass(frozen=True, slots=True, eq=False)
class ArrayInit(Node):
    elements: Tuple["Expr", ...]
    span: SourceSpan = field(default=NO_SPAN, repr=False)


@dataclass(frozen=True, slots=True, eq=False)
class NewArray(Node):
    """``new T[n][]`` or ``new T[] {…}``. ``type`` includes every dimension."""

    type: TypeRef
    dim_exprs: Tuple["Expr", ...]
    init: Optional[ArrayInit] = None
    span: SourceSpan = field(default=NO_SPAN, repr=False)


@dataclass(frozen=True, slots=True, eq=False)
class ArrayAccess(Node):
    array: "Expr"
    index: "Expr"
    span: SourceSpan = field(default=NO_SPAN, repr=False)


@dataclass(frozen=True, slots=True, eq=False)
class Unary(Node):
    op: str
    operand: "Expr"
    postfix: bool = False
    span: SourceSpan = field(default=NO_SPAN, repr=False)


@dataclass(frozen=True, slots=True, eq=False)
class Binary(Node):
    op: str
    left: "Expr"
    right: "Expr"
    span: SourceSpan = field(default=NO_SPAN, repr=False)


@dataclass(frozen=True, slots=True, eq=False)
class Assign(Node):
    op: str
    target: "Expr"
    value: "Expr"
    span: SourceSpan = field(default=NO_SPAN, repr=False)


@dataclass(frozen=True, slots=True, eq=False)
class Conditional(Node):
    cond: "Expr"
    then: "Expr"
    otherwise: "Expr"
    span: SourceSpan = field(default=NO_SPAN, repr=False)


@dataclass(frozen=True, slots=True, eq=False)
class SwitchExpr(Node):
    selector: "Expr"
    cases: Tuple[SwitchCase, ...]
    span: SourceSpan = field(default=NO_SPAN, repr=False)

    @property
    def has_default(self) -> bool:
        return any(c.is_default for c in self.cases)


@dataclass(frozen=True, slots=True, eq=False)
class Cast(Node):
    type: TypeRef
    expr: "Expr"
    span: SourceSpan = field(default=NO_SPAN, repr=False)


@dataclass(frozen=True, slots=True, eq=False)
class InstanceOf(Node):
    expr: "Expr"
    type: TypeRef
    binding: Optional[str] = None
    span: SourceSpan = field(default=NO_SPAN, repr=False)


@dataclass(frozen=True, slots=True, eq=False)
class Lambda(Node):
    params: Tuple[Param, ...]
    body: Node
    span: SourceSpan = field(default=NO_SPAN, repr=False)


@dataclass(frozen=True, slots=True, eq=False)
class MethodRef(Node):
    target: Node
    name: str
    span: SourceSpan = field(default=NO_SPAN, repr=False)


@dataclass(frozen=True, slots=True, eq=False)
class ClassLiteral(Node):
    type: TypeRef
    span: SourceSpan = field(default=NO_SPAN, repr=False)


@dataclass(frozen=True, slots=True, eq=False)
class ErrorExpr(Node):
    text: str
    span: SourceSpan = field(default=NO_SPAN, repr=False)


Expr = Union[
    Literal, Name, This, Super, FieldAccess, MethodCall, NewObject,
    ArrayInit, NewArray, ArrayAccess, Unary, Binary, Assign, Conditional,
    SwitchExpr, Cast, InstanceOf, Lambda, MethodRef, ClassLiteral, ErrorExpr,
]

#: Member declarations that introduce a callable body.
CALLABLES = (MethodDecl, ConstructorDecl)

#: Node classes that introduce a new block scope.
SCOPED_STATEMENTS = (
    Block, ForStmt, ForEachStmt, CatchClause, TryStmt, Lambda, SwitchStmt, SwitchExpr,
)


__all__ = [
    "Node", "TypeRef", "TypeKind",
    "ImportDecl", "CompilationUnit", "TypeDecl", "VarDeclarator",
    "FieldDecl", "Param", "MethodDecl", "ConstructorDecl", "Initializer",
    "EnumConstant", "ErrorMember",
    "Block", "LocalVarDecl", "LocalClassDecl", "ExprStmt", "IfStmt",
    "WhileStmt", "DoStmt", "ForStmt", "ForEachStmt", "ReturnStmt", "YieldStmt",
    "BreakStmt", "ContinueStmt", "ThrowStmt", "CatchClause", "TryStmt",
    "SwitchCase", "SwitchStmt", "LabeledStmt", "SyncStmt", "AssertStmt",
    "ConstructorCall", "EmptyStmt", "ErrorStmt",
    "Literal", "Name", "This", "Super", "FieldAccess", "MethodCall",
    "NewObject", "ArrayInit", "NewArray", "ArrayAccess", "Unary",
    "Binary", "Assign", "Conditional", "SwitchExpr", "Cast", "InstanceOf", "Lambda",
    "MethodRef", "ClassLiteral", "ErrorExpr", "Expr",
    "CALLABLES", "SCOPED_STATEMENTS",
]
