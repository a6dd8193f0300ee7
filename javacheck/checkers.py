"""
javacheck/checkers.py
═════════════════════

Rule engine: one checker per defect category, each an independent pass
over a :class:`~javacheck.resolver.ResolvedUnit`.

Architecture
────────────

  ┌─────────────────────────────────────────────────────────┐
  │                   CheckerRunner                         │
  │  ┌──────────────┐  ┌──────────────┐  ┌──────────────┐  │
  │  │ MissingReturn│  │ VisitPrivate │  │ LossyConver- │  │
  │  │ TypeChecker  │  │   Checker    │  │ sionChecker  │ …│
  │  └──────┬───────┘  └──────┬───────┘  └──────┬───────┘  │
  │         │                 │                  │          │
  │  ┌──────▼─────────────────▼──────────────────▼───────┐  │
  │  │        Shared, read-only evidence                 │  │
  │  │  bindings │ expression types │ ref. contexts      │  │
  │  │  variable accesses (computed once per unit)       │  │
  │  └──────────────────────────┬────────────────────────┘  │
  │                             │                           │
  │  ┌──────────────────────────▼────────────────────────┐  │
  │  │           SuppressionManager                      │  │
  │  │  // javacheck-suppress  │  global (CLI / config)  │  │
  │  └───────────────────────────────────────────────────┘  │
  └─────────────────────────────────────────────────────────┘

Each Checker follows a four-phase lifecycle:

  1. **configure()**        — read options
  2. **collect_evidence()** — walk the resolved unit, gather suspicious sites
  3. **diagnose()**         — turn evidence into Diagnostics
  4. **report()**           — return Diagnostics filtered by suppressions

Checkers never read each other's output, so they may run in any order or
concurrently (``parallel=True`` on the runner).
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from collections import defaultdict
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import (
    Any,
    ClassVar,
    Dict,
    FrozenSet,
    Iterator,
    List,
    Optional,
    Sequence,
    Set,
    Tuple,
    Type,
)

from javacheck import ast as A
from javacheck import typeinfo as T
from javacheck.diagnostics import (
    Category,
    Confidence,
    Diagnostic,
    Severity,
    SuppressionManager,
)
from javacheck.errors import SourceSpan
from javacheck.resolver import (
    EXPRESSION_NODES,
    ExternalOpaque,
    Resolved,
    ResolvedUnit,
    Unresolved,
    arm_values,
    is_applicable,
)
from javacheck.symbols import Symbol, SymbolKind
from javacheck.visitor import children, find_all

_log = logging.getLogger("javacheck.checkers")


# ═════════════════════════════════════════════════════════════════════════
#  PART 1 — CHECKER BASE CLASS
# ═════════════════════════════════════════════════════════════════════════

class Checker(ABC):
    """
    Abstract base class for all checkers.

    Lifecycle
    ─────────
      1. ``configure(ctx)``        — receive context, read options
      2. ``collect_evidence(ctx)`` — walk the resolved unit
      3. ``diagnose(ctx)``         — correlate evidence into diagnostics
      4. ``report(ctx)``           — return final diagnostics

    Subclass Contract
    ─────────────────
      - Override ``name``, ``description``, ``categories``
      - Implement ``collect_evidence()`` and ``diagnose()``
      - Optionally override ``configure()``
    """

    name: ClassVar[str] = "base-checker"
    description: ClassVar[str] = ""
    categories: ClassVar[FrozenSet[Category]] = frozenset()
    default_severity: ClassVar[Severity] = Severity.ERROR

    def __init__(self) -> None:
        self._diagnostics: List[Diagnostic] = []

    @property
    def diagnostics(self) -> List[Diagnostic]:
        return list(self._diagnostics)

    def configure(self, ctx: CheckerContext) -> None:
        """Called before evidence collection. Default does nothing."""

    @abstractmethod
    def collect_evidence(self, ctx: CheckerContext) -> None:
        ...

    @abstractmethod
    def diagnose(self, ctx: CheckerContext) -> None:
        ...

    def report(self, ctx: CheckerContext) -> List[Diagnostic]:
        """Return final diagnostics, filtered by suppressions."""
        return ctx.suppressions.filter_diagnostics(self._diagnostics)

    def _emit(
        self,
        category: Category,
        message: str,
        span: SourceSpan,
        symbol: str = "",
        confidence: Confidence = Confidence.HIGH,
        anchor: Optional[A.Node] = None,
        severity: Optional[Severity] = None,
    ) -> None:
        """Helper to create and store a diagnostic."""
        self._diagnostics.append(Diagnostic(
            category=category,
            message=message,
            severity=severity or self.default_severity,
            span=span,
            symbol=symbol,
            rule=self.name,
            confidence=confidence,
            anchor=anchor,
        ))

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} '{self.name}'>"


@dataclass
class CheckerContext:
    """
    Shared context passed to every checker of one unit.

    Attributes
    ----------
    resolved     : ResolvedUnit — tree, symbol table, bindings, types
    label        : unit label, for messages only
    suppressions : SuppressionManager
    analyses     : pre-computed evidence shared by checkers (keyed by name)
    options      : user-provided options dict
    stats        : mutable dict for timing / counting statistics
    """
    resolved: ResolvedUnit
    label: str = "<unit>"
    suppressions: SuppressionManager = field(default_factory=SuppressionManager)
    analyses: Dict[str, Any] = field(default_factory=dict)
    options: Dict[str, Any] = field(default_factory=dict)
    stats: Dict[str, Any] = field(default_factory=dict)

    @property
    def unit(self) -> A.CompilationUnit:
        return self.resolved.unit

    def get_analysis(self, name: str) -> Any:
        """Retrieve a pre-computed analysis result by name."""
        return self.analyses.get(name)

    def set_analysis(self, name: str, result: Any) -> None:
        self.analyses[name] = result

    def get_option(self, key: str, default: Any = None) -> Any:
        return self.options.get(key, default)

    def accesses(self) -> List["VariableAccess"]:
        """Variable reads and writes in source order (see :func:`collect_accesses`)."""
        found = self.analyses.get("accesses")
        if found is None:
            found = collect_accesses(self.resolved)
        return found


# ═════════════════════════════════════════════════════════════════════════
#  PART 2 — CHECKER REGISTRY
# ═════════════════════════════════════════════════════════════════════════

class CheckerRegistry:
    """
    Registry of available checkers with discovery and filtering.

    Usage
    -----
    >>> registry = CheckerRegistry()
    >>> registry.register(VisitPrivateChecker)
    >>> checkers = registry.get_enabled()
    >>> checkers = registry.filter_by_category(Category.VISIT_PRIVATE)
    """

    def __init__(self) -> None:
        self._checkers: Dict[str, Type[Checker]] = {}
        self._disabled: Set[str] = set()

    def register(self, checker_cls: Type[Checker]) -> None:
        self._checkers[checker_cls.name] = checker_cls

    def unregister(self, name: str) -> None:
        self._checkers.pop(name, None)

    def disable(self, name: str) -> None:
        """Disable a registered checker, by rule name or category slug."""
        self._disabled.add(name)

    def enable(self, name: str) -> None:
        self._disabled.discard(name)

    def is_enabled(self, checker_cls: Type[Checker]) -> bool:
        if checker_cls.name in self._disabled:
            return False
        return not any(c.value in self._disabled for c in checker_cls.categories)

    def get_all(self) -> List[Type[Checker]]:
        return list(self._checkers.values())

    def get_enabled(self) -> List[Type[Checker]]:
        return [cls for cls in self._checkers.values() if self.is_enabled(cls)]

    def get_by_name(self, name: str) -> Optional[Type[Checker]]:
        return self._checkers.get(name)

    def filter_by_category(self, category: Category) -> List[Type[Checker]]:
        """Return checkers that can produce *category*."""
        return [
            cls for cls in self._checkers.values()
            if category in cls.categories
        ]

    def copy(self) -> "CheckerRegistry":
        other = CheckerRegistry()
        other._checkers = dict(self._checkers)
        other._disabled = set(self._disabled)
        return other

    @property
    def names(self) -> List[str]:
        return sorted(self._checkers.keys())


# ═════════════════════════════════════════════════════════════════════════
#  PART 3 — SHARED EVIDENCE AND TRAVERSAL HELPERS
# ═════════════════════════════════════════════════════════════════════════

_VARIABLE_KINDS = frozenset({
    SymbolKind.LOCAL, SymbolKind.PARAMETER, SymbolKind.FIELD,
    SymbolKind.ENUM_CONSTANT,
})
_LOOPS = (A.WhileStmt, A.DoStmt, A.ForStmt, A.ForEachStmt)
_BREAK_TARGETS = _LOOPS + (A.SwitchStmt,)


@dataclass(frozen=True)
class VariableAccess:
    """One reference to a variable symbol."""
    node: A.Node
    symbol: Symbol
    read: bool
    write: bool

    @property
    def position(self) -> Tuple[int, int]:
        return self.node.span.start


def collect_accesses(resolved: ResolvedUnit) -> List[VariableAccess]:
    """
    Classify every variable reference as a read, a write, or both.

    ``x = …`` writes; ``x += …``, ``x++`` read and write; everything
    else reads.  Returned in source order.
    """
    assigned: Dict[A.Node, str] = {}
    stepped: Set[A.Node] = set()
    for node in find_all(resolved.unit, A.Assign, A.Unary):
        if isinstance(node, A.Assign):
            assigned[node.target] = node.op
        elif node.op in ("++", "--"):
            stepped.add(node.operand)

    out: List[VariableAccess] = []
    for node, binding in resolved.references():
        if not isinstance(node, (A.Name, A.FieldAccess)):
            continue
        if not isinstance(binding, Resolved) or binding.symbol.kind not in _VARIABLE_KINDS:
            continue
        if node in assigned:
            plain = assigned[node] == "="
            out.append(VariableAccess(node, binding.symbol, read=not plain, write=True))
        elif node in stepped:
            out.append(VariableAccess(node, binding.symbol, read=True, write=True))
        else:
            out.append(VariableAccess(node, binding.symbol, read=True, write=False))
    return out


def _span(node: A.Node) -> SourceSpan:
    """Name span of a member reference or declaration, else the node span."""
    name_span = getattr(node, "name_span", None)
    if name_span is not None and name_span.line > 0:
        return name_span
    return node.span


def _walk_own(node: A.Node) -> Iterator[A.Node]:
    """Pre-order walk that does not enter lambdas, local or anonymous classes."""
    stack: List[A.Node] = [node]
    while stack:
        current = stack.pop()
        yield current
        if current is not node and isinstance(current, (A.Lambda, A.LocalClassDecl)):
            continue
        if isinstance(current, A.NewObject) and current.body is not None:
            kids: List[A.Node] = list(current.args)
        else:
            kids = list(children(current))
        stack.extend(reversed(kids))


def _returns(body: Optional[A.Node]) -> List[A.ReturnStmt]:
    if body is None:
        return []
    return [n for n in _walk_own(body) if isinstance(n, A.ReturnStmt)]


def _is_true(cond: Optional[A.Node]) -> bool:
    return cond is None or (
        isinstance(cond, A.Literal) and cond.kind == "boolean" and cond.value == "true"
    )


def _is_int_constant(expr: A.Node) -> bool:
    if isinstance(expr, A.Unary) and expr.op in ("-", "+", "~"):
        return _is_int_constant(expr.operand)
    return isinstance(expr, A.Literal) and expr.kind in ("int", "char")


def _breaks_out(body: A.Node, label: Optional[str] = None) -> bool:
    """Whether *body* holds a ``break`` leaving the statement that owns it."""

    def visit(node: A.Node, nested: bool) -> bool:
        if isinstance(node, A.BreakStmt):
            if label is None:
                return node.label is None and not nested
            return node.label == label
        if isinstance(node, (A.Lambda, A.LocalClassDecl)) or isinstance(node, EXPRESSION_NODES):
            return False
        inner = nested or isinstance(node, _BREAK_TARGETS)
        return any(visit(child, inner) for child in children(node))

    return visit(body, False)


def can_complete_normally(node: A.Node) -> bool:
    """
    Conservative reachability: whether execution can fall off the end of
    *node*.

    ``while (true)`` / ``for (;;)`` complete only through a ``break``; an
    ``if`` without ``else`` and a ``switch`` without ``default`` always
    may complete.
    """
    if isinstance(node, A.Block):
        return all(can_complete_normally(s) for s in node.statements)
    if isinstance(node, (A.ReturnStmt, A.ThrowStmt, A.YieldStmt)):
        return False
    if isinstance(node, A.IfStmt):
        if node.otherwise is None:
            return True
        return can_complete_normally(node.then) or can_complete_normally(node.otherwise)
    if isinstance(node, A.WhileStmt):
        return not _is_true(node.cond) or _breaks_out(node.body)
    if isinstance(node, A.ForStmt):
        return not _is_true(node.cond) or _breaks_out(node.body)
    if isinstance(node, A.DoStmt):
        if _breaks_out(node.body):
            return True
        return not _is_true(node.cond) and can_complete_normally(node.body)
    if isinstance(node, A.LabeledStmt):
        return can_complete_normally(node.body) or _breaks_out(node.body, node.label)
    if isinstance(node, A.SyncStmt):
        return can_complete_normally(node.body)
    if isinstance(node, A.TryStmt):
        if node.finally_block is not None and not can_complete_normally(node.finally_block):
            return False
        return can_complete_normally(node.body) or any(
            can_complete_normally(c.body) for c in node.catches
        )
    if isinstance(node, A.SwitchStmt):
        return _switch_completes(node)
    return True


def _switch_completes(node: A.SwitchStmt) -> bool:
    if not any(case.is_default for case in node.cases):
        return True
    if any(_breaks_out(s) for case in node.cases for s in case.body):
        return True
    if any(case.arrow for case in node.cases):
        return any(
            all(can_complete_normally(s) for s in case.body) for case in node.cases
        )
    return all(can_complete_normally(s) for s in node.cases[-1].body)


def _member_owner(resolved: ResolvedUnit, member: A.Node) -> Optional[Symbol]:
    sym = resolved.table.symbol_of.get(member)
    return sym.owner if sym is not None else None


def _callables(resolved: ResolvedUnit) -> Iterator[Tuple[A.Node, Optional[Symbol]]]:
    """Every method and constructor with its enclosing type symbol."""
    for member in find_all(resolved.unit, A.MethodDecl, A.ConstructorDecl):
        yield member, _member_owner(resolved, member)


def _arg_types(resolved: ResolvedUnit, args: Sequence[A.Node]) -> List[Optional[str]]:
    return [resolved.type_of(a) for a in args]


def _display_args(types: Sequence[Optional[str]]) -> str:
    return ",".join(t or "?" for t in types) or "no arguments"


# ═════════════════════════════════════════════════════════════════════════
#  PART 4 — SIGNATURE CHECKERS
# ═════════════════════════════════════════════════════════════════════════
#
#  A method declared without a return type is one defect seen three ways:
#
#      returns a value          →  missing-return-type
#      looks like a constructor →  illegal-constructor-name
#      returns nothing          →  missing-void
#
#  The reporter keeps one of them per declaration (priority order).

@dataclass
class _Untyped:
    decl: A.MethodDecl
    owner: Symbol
    returns_value: bool
    constructor_evidence: str


def _untyped_methods(ctx: CheckerContext) -> List[_Untyped]:
    cached = ctx.get_analysis("untyped-methods")
    if cached is not None:
        return cached
    resolved = ctx.resolved
    found: List[_Untyped] = []
    for decl in find_all(resolved.unit, A.MethodDecl):
        if decl.return_type is not None:
            continue
        owner = _member_owner(resolved, decl)
        if owner is None:
            continue
        found.append(_Untyped(
            decl=decl,
            owner=owner,
            returns_value=any(r.value is not None for r in _returns(decl.body)),
            constructor_evidence=_constructor_evidence(resolved, decl),
        ))
    return found


def _constructor_evidence(resolved: ResolvedUnit, decl: A.MethodDecl) -> str:
    """Why *decl* looks like a misnamed constructor, or ``""``."""
    if resolved.table.local_type(decl.name) is None:
        for new in find_all(resolved.unit, A.NewObject):
            if new.type.simple_name == decl.name and len(new.args) == len(decl.params):
                return f"instantiated as 'new {decl.name}(...)'"
    body = decl.body
    if body is None or not body.statements:
        return ""
    field_writes = 0
    delegates = False
    for stmt in body.statements:
        if isinstance(stmt, A.ConstructorCall):
            delegates = True
        elif isinstance(stmt, A.ExprStmt):
            expr = stmt.expr
            if isinstance(expr, A.Assign):
                binding = resolved.bindings.get(expr.target)
                if isinstance(binding, Resolved) and binding.symbol.kind is SymbolKind.FIELD:
                    field_writes += 1
        elif not isinstance(stmt, (A.LocalVarDecl, A.EmptyStmt)):
            return ""
    if delegates:
        return "body starts with a super(...) or this(...) call"
    if field_writes:
        return "body only initialises fields"
    return ""


class MissingReturnTypeChecker(Checker):
    """A method without a return type whose body returns a value."""

    name: ClassVar[str] = "missing-return-type"
    description: ClassVar[str] = "Method declared without a return type"
    categories: ClassVar[FrozenSet[Category]] = frozenset({Category.MISSING_RETURN_TYPE})

    def __init__(self) -> None:
        super().__init__()
        self._suspects: List[_Untyped] = []

    def collect_evidence(self, ctx: CheckerContext) -> None:
        self._suspects = [
            u for u in _untyped_methods(ctx)
            if u.returns_value or (u.decl.body is None and not u.constructor_evidence)
        ]

    def diagnose(self, ctx: CheckerContext) -> None:
        for u in self._suspects:
            self._emit(
                Category.MISSING_RETURN_TYPE,
                f"invalid method declaration; return type required for '{u.decl.name}'",
                _span(u.decl),
                symbol=u.decl.name,
                anchor=u.decl,
            )


class IllegalConstructorNameChecker(Checker):
    """A constructor-shaped member whose name differs from its class."""

    name: ClassVar[str] = "illegal-constructor-name"
    description: ClassVar[str] = "Constructor name does not match the enclosing class"
    categories: ClassVar[FrozenSet[Category]] = frozenset({Category.ILLEGAL_CONSTRUCTOR_NAME})

    def __init__(self) -> None:
        super().__init__()
        self._suspects: List[_Untyped] = []

    def collect_evidence(self, ctx: CheckerContext) -> None:
        self._suspects = [u for u in _untyped_methods(ctx) if u.constructor_evidence]

    def diagnose(self, ctx: CheckerContext) -> None:
        for u in self._suspects:
            self._emit(
                Category.ILLEGAL_CONSTRUCTOR_NAME,
                f"constructor '{u.decl.name}' does not match class name "
                f"'{u.owner.name}' ({u.constructor_evidence})",
                _span(u.decl),
                symbol=u.decl.name,
                confidence=Confidence.LOW,
                anchor=u.decl,
            )


class MissingVoidChecker(Checker):
    """A method without a return type that never returns a value."""

    name: ClassVar[str] = "missing-void"
    description: ClassVar[str] = "Method returning nothing is missing 'void'"
    categories: ClassVar[FrozenSet[Category]] = frozenset({Category.MISSING_VOID})

    def __init__(self) -> None:
        super().__init__()
        self._suspects: List[_Untyped] = []

    def collect_evidence(self, ctx: CheckerContext) -> None:
        self._suspects = [
            u for u in _untyped_methods(ctx)
            if u.decl.body is not None and not u.returns_value
        ]

    def diagnose(self, ctx: CheckerContext) -> None:
        for u in self._suspects:
            self._emit(
                Category.MISSING_VOID,
                f"invalid method declaration; '{u.decl.name}' returns no value "
                "and needs return type 'void'",
                _span(u.decl),
                symbol=u.decl.name,
                confidence=Confidence.MEDIUM if u.constructor_evidence else Confidence.HIGH,
                anchor=u.decl,
            )


# ═════════════════════════════════════════════════════════════════════════
#  PART 5 — REFERENCE CHECKERS
# ═════════════════════════════════════════════════════════════════════════

class VisitPrivateChecker(Checker):
    """
    Private members reached from outside their top-level type.

    Nested types share private access with their enclosing type, so the
    comparison is between outermost types.
    """

    name: ClassVar[str] = "visit-private"
    description: ClassVar[str] = "Access to a private member from another class"
    categories: ClassVar[FrozenSet[Category]] = frozenset({Category.VISIT_PRIVATE})

    def __init__(self) -> None:
        super().__init__()
        self._violations: List[Tuple[A.Node, Symbol, Optional[Symbol]]] = []

    def collect_evidence(self, ctx: CheckerContext) -> None:
        resolved = ctx.resolved
        for node, binding in resolved.references():
            if not isinstance(binding, Resolved):
                continue
            sym = binding.symbol
            if not sym.is_member or not sym.is_private or sym.owner is None:
                continue
            context = resolved.context(node)
            here = context.type_sym.top_level if context and context.type_sym else None
            if here is not sym.owner.top_level:
                self._violations.append((node, sym, context.type_sym if context else None))

    def diagnose(self, ctx: CheckerContext) -> None:
        for node, sym, where in self._violations:
            owner = sym.owner.name if sym.owner is not None else "?"
            place = f" (accessed from {where.name})" if where is not None else ""
            self._emit(
                Category.VISIT_PRIVATE,
                f"{sym.name} has private access in {owner}{place}",
                _span(node),
                symbol=sym.name,
            )


class StringAccessByIndexChecker(Checker):
    """
    Strings treated as arrays of numbers:

      s[i]                          — a String indexed like an array
      Integer.parseInt(s.charAt(i)) — a char handed to a String parser
      (int) s.charAt(i)             — a character code taken for a digit
    """

    name: ClassVar[str] = "string-access-by-index"
    description: ClassVar[str] = "String indexed or converted as if it were numeric"
    categories: ClassVar[FrozenSet[Category]] = frozenset({Category.STRING_ACCESS_BY_INDEX})

    def __init__(self) -> None:
        super().__init__()
        self._sites: List[Tuple[A.Node, str]] = []

    def collect_evidence(self, ctx: CheckerContext) -> None:
        resolved = ctx.resolved
        for node in find_all(resolved.unit, A.ArrayAccess, A.MethodCall, A.Cast):
            if isinstance(node, A.ArrayAccess):
                if resolved.type_of(node.array) == "String":
                    self._sites.append((node, "array required, but String found"))
            elif isinstance(node, A.MethodCall):
                target = node.target
                if (
                    isinstance(target, A.Name)
                    and (target.name, node.name) in T.STRING_PARSERS
                    and node.args
                    and resolved.type_of(node.args[0]) == "char"
                ):
                    self._sites.append((
                        node,
                        f"incompatible types: char cannot be converted to String "
                        f"in {target.name}.{node.name}",
                    ))
            elif (
                node.type.dims == 0
                and node.type.name in ("int", "long", "short", "byte")
                and _is_char_at(resolved, node.expr)
            ):
                self._sites.append((
                    node,
                    f"character code of a String used as {node.type.name} digit",
                ))

    def diagnose(self, ctx: CheckerContext) -> None:
        for node, message in self._sites:
            self._emit(
                Category.STRING_ACCESS_BY_INDEX, message, node.span,
                confidence=Confidence.HIGH if isinstance(node, A.ArrayAccess)
                else Confidence.MEDIUM,
            )


def _is_char_at(resolved: ResolvedUnit, expr: A.Node) -> bool:
    return (
        isinstance(expr, A.MethodCall)
        and expr.name == "charAt"
        and expr.target is not None
        and resolved.type_of(expr.target) == "String"
    )


class UninitializedVariableChecker(Checker):
    """
    Reads with no assignment before them.

    Locals: the first access in source order is a read.  Fields: instance
    fields declared without initialiser, never assigned anywhere in the
    unit, and owned by a type whose whole supertype chain is local.
    """

    name: ClassVar[str] = "use-uninitialized-instance-variable"
    description: ClassVar[str] = "Variable read before it is ever assigned"
    categories: ClassVar[FrozenSet[Category]] = frozenset({
        Category.USE_UNINITIALIZED_INSTANCE_VARIABLE,
    })

    def __init__(self) -> None:
        super().__init__()
        self._reads: List[VariableAccess] = []

    def collect_evidence(self, ctx: CheckerContext) -> None:
        by_symbol: Dict[Symbol, List[VariableAccess]] = defaultdict(list)
        for access in ctx.accesses():
            by_symbol[access.symbol].append(access)
        table = ctx.resolved.table
        for sym, accesses in by_symbol.items():
            if sym.has_initializer:
                continue
            if sym.kind is SymbolKind.LOCAL:
                first = accesses[0]
                if first.read:
                    self._reads.append(first)
            elif sym.kind is SymbolKind.FIELD:
                if sym.is_static or any(a.write for a in accesses):
                    continue
                if sym.owner is None or not table.is_fully_local(sym.owner):
                    continue
                self._reads.append(accesses[0])

    def diagnose(self, ctx: CheckerContext) -> None:
        for access in self._reads:
            sym = access.symbol
            what = "field" if sym.kind is SymbolKind.FIELD else "variable"
            self._emit(
                Category.USE_UNINITIALIZED_INSTANCE_VARIABLE,
                f"{what} {sym.name} might not have been initialized",
                access.node.span,
                symbol=sym.name,
                confidence=Confidence.MEDIUM if sym.kind is SymbolKind.FIELD
                else Confidence.HIGH,
            )


class UndeclaredVariableChecker(Checker):
    """Names that resolve to nothing and have no external fallback."""

    name: ClassVar[str] = "use-undeclared-variable"
    description: ClassVar[str] = "Reference to an undeclared variable"
    categories: ClassVar[FrozenSet[Category]] = frozenset({Category.USE_UNDECLARED_VARIABLE})

    def __init__(self) -> None:
        super().__init__()
        self._missing: List[Tuple[A.Node, Unresolved]] = []

    def collect_evidence(self, ctx: CheckerContext) -> None:
        for node, binding in ctx.resolved.references():
            if isinstance(node, (A.Name, A.FieldAccess)) and isinstance(binding, Unresolved):
                self._missing.append((node, binding))

    def diagnose(self, ctx: CheckerContext) -> None:
        for node, binding in self._missing:
            self._emit(
                Category.USE_UNDECLARED_VARIABLE,
                f"cannot find symbol: variable {binding.name}",
                _span(node),
                symbol=binding.name,
            )


class _StaticContextChecker(Checker):
    """Instance members reached from a static context."""

    member_kind: ClassVar[SymbolKind] = SymbolKind.FIELD
    category: ClassVar[Category] = Category.ACCESS_NON_STATIC_VARIABLE
    noun: ClassVar[str] = "variable"

    def __init__(self) -> None:
        super().__init__()
        self._sites: List[Tuple[A.Node, str]] = []

    def collect_evidence(self, ctx: CheckerContext) -> None:
        for node, binding in ctx.resolved.references():
            if (
                isinstance(binding, Resolved)
                and binding.from_static
                and binding.symbol.kind is self.member_kind
                and not binding.symbol.is_static
            ):
                self._sites.append((node, binding.symbol.name))

    def diagnose(self, ctx: CheckerContext) -> None:
        for node, name in self._sites:
            self._emit(
                self.category,
                f"non-static {self.noun} {name} cannot be referenced from a static context",
                _span(node),
                symbol=name,
            )


class NonStaticVariableChecker(_StaticContextChecker):
    """
    Instance fields, ``this``/``super`` and inner-class instantiation
    used from static methods, static initialisers or static field
    initialisers.
    """

    name: ClassVar[str] = "access-non-static-variable"
    description: ClassVar[str] = "Instance variable referenced from a static context"
    categories: ClassVar[FrozenSet[Category]] = frozenset({Category.ACCESS_NON_STATIC_VARIABLE})

    def collect_evidence(self, ctx: CheckerContext) -> None:
        super().collect_evidence(ctx)
        resolved = ctx.resolved
        for node in find_all(resolved.unit, A.This, A.Super, A.NewObject):
            if isinstance(node, A.NewObject):
                binding = resolved.bindings.get(node)
                if isinstance(binding, Resolved) and binding.from_static:
                    self._sites.append((node, "this"))
                continue
            context = resolved.context(node)
            if context is not None and context.static:
                self._sites.append((node, "this" if isinstance(node, A.This) else "super"))
        self._sites.sort(key=lambda site: site[0].span.start)


class NonStaticMethodChecker(_StaticContextChecker):
    name: ClassVar[str] = "access-non-static-method"
    description: ClassVar[str] = "Instance method called from a static context"
    categories: ClassVar[FrozenSet[Category]] = frozenset({Category.ACCESS_NON_STATIC_METHOD})
    member_kind: ClassVar[SymbolKind] = SymbolKind.METHOD
    category: ClassVar[Category] = Category.ACCESS_NON_STATIC_METHOD
    noun: ClassVar[str] = "method"


class BadInvocationChecker(Checker):
    """
    Call sites that cannot be invoked as written:

      - argument count or types match no overload (methods, ``new``,
        ``this(...)``/``super(...)``)
      - a call to a name that is no method (``x()`` on a field, unknown
        method of a local type)
      - a method used as a field (``s.length`` on a String)
      - a field called as a method (``arr.length()``)
    """

    name: ClassVar[str] = "bad-invocation"
    description: ClassVar[str] = "Call that matches no declared method or constructor"
    categories: ClassVar[FrozenSet[Category]] = frozenset({Category.BAD_INVOCATION})

    def __init__(self) -> None:
        super().__init__()
        self._sites: List[Tuple[A.Node, str, str]] = []

    def _add(self, node: A.Node, message: str, symbol: str = "") -> None:
        self._sites.append((node, message, symbol))

    def collect_evidence(self, ctx: CheckerContext) -> None:
        resolved = ctx.resolved
        for node, binding in resolved.references():
            if isinstance(node, A.MethodCall):
                self._call(resolved, node, binding)
            elif isinstance(node, (A.Name, A.FieldAccess)):
                if isinstance(binding, Resolved) and binding.symbol.kind is SymbolKind.METHOD:
                    self._add(node, f"method {binding.symbol.name} used without parentheses",
                              binding.symbol.name)
                elif (
                    isinstance(binding, ExternalOpaque)
                    and binding.member_kind is SymbolKind.METHOD
                    and isinstance(node, A.FieldAccess)
                ):
                    self._add(node, f"{binding.name} is a method and needs parentheses",
                              binding.name)
        for node in find_all(resolved.unit, A.NewObject, A.ConstructorCall):
            self._construction(resolved, node)
        self._sites.sort(key=lambda site: site[0].span.start)

    def _call(self, resolved: ResolvedUnit, node: A.MethodCall, binding: Any) -> None:
        if isinstance(binding, Unresolved):
            self._add(node, f"cannot find symbol: method {node.name}"
                      f"({_display_args(_arg_types(resolved, node.args))})", node.name)
        elif isinstance(binding, ExternalOpaque):
            if binding.member_kind is SymbolKind.FIELD:
                self._add(node, f"{node.name} is a field, not a method", node.name)
        elif binding.symbol.kind is not SymbolKind.METHOD:
            self._add(node, f"{node.name} is not a method", node.name)
        else:
            args = _arg_types(resolved, node.args)
            candidates = binding.candidates or (binding.symbol,)
            if not any(_applicable(resolved, c, args) for c in candidates):
                self._add(node, _mismatch("method", binding.symbol, args), node.name)

    def _construction(self, resolved: ResolvedUnit, node: A.Node) -> None:
        binding = resolved.bindings.get(node)
        if not isinstance(binding, Resolved):
            return
        args = _arg_types(resolved, node.args)
        sym = binding.symbol
        if sym.kind is SymbolKind.CONSTRUCTOR:
            candidates = binding.candidates or (sym,)
            if not any(_applicable(resolved, c, args) for c in candidates):
                self._add(node, _mismatch("constructor", sym, args), sym.name)
        elif sym.kind is SymbolKind.TYPE and args:
            if sym.type_kind is A.TypeKind.ENUM:
                return
            self._add(node, f"constructor {sym.name} in class {sym.name} cannot be "
                      f"applied to given types; found: {_display_args(args)}", sym.name)

    def diagnose(self, ctx: CheckerContext) -> None:
        for node, message, symbol in self._sites:
            self._emit(Category.BAD_INVOCATION, message, _span(node), symbol=symbol)


def _applicable(resolved: ResolvedUnit, sym: Symbol, args: Sequence[Optional[str]]) -> bool:
    return is_applicable(sym, args, resolved.table.is_subtype, resolved.normalize)


def _mismatch(what: str, sym: Symbol, args: Sequence[Optional[str]]) -> str:
    owner = sym.owner.name if sym.owner is not None else "?"
    required = ",".join(p or "?" for p in sym.params) or "no arguments"
    return (
        f"{what} {sym.name} in class {owner} cannot be applied to given types; "
        f"required: {required}; found: {_display_args(args)}"
    )


# ═════════════════════════════════════════════════════════════════════════
#  PART 6 — VALUE CHECKERS
# ═════════════════════════════════════════════════════════════════════════

class LossyConversionChecker(Checker):
    """
    Implicit numeric narrowing in initialisers, plain assignments and
    return statements.

    Integer constants assigned to ``byte``/``short``/``char`` are
    compile-time narrowing and exempt; compound assignments cast
    implicitly and are exempt too.  Each arm of a switch expression is
    checked against the target on its own.
    """

    name: ClassVar[str] = "lossy-conversion"
    description: ClassVar[str] = "Possible lossy numeric conversion"
    categories: ClassVar[FrozenSet[Category]] = frozenset({Category.LOSSY_CONVERSION})

    def __init__(self) -> None:
        super().__init__()
        self._sites: List[Tuple[A.Node, str, str]] = []

    def _check(self, value: Optional[A.Node], target: Optional[str],
               resolved: ResolvedUnit) -> None:
        if value is None or target is None:
            return
        if isinstance(value, A.ArrayInit):
            element = T.element_type(target) if T.is_array(target) else None
            for item in value.elements:
                self._check(item, element, resolved)
            return
        if isinstance(value, A.SwitchExpr):
            for case in value.cases:
                for arm in arm_values(case):
                    self._check(arm, target, resolved)
            return
        source = resolved.type_of(value)
        if not T.is_narrowing(target, source):
            return
        if _is_int_constant(value) and T.unbox(target) in ("byte", "short", "char"):
            return
        self._sites.append((value, source or "?", target))

    def collect_evidence(self, ctx: CheckerContext) -> None:
        resolved = ctx.resolved
        table = resolved.table
        for node in find_all(resolved.unit, A.VarDeclarator, A.Assign, A.ReturnStmt):
            if isinstance(node, A.VarDeclarator):
                sym = table.symbol_of.get(node)
                if sym is not None and sym.type_name is not None:
                    self._check(node.init, resolved.normalize(sym.type_name), resolved)
            elif isinstance(node, A.Assign):
                if node.op == "=":
                    self._check(node.value, resolved.type_of(node.target), resolved)
            else:
                context = resolved.context(node)
                method = context.callable if context is not None else None
                if isinstance(method, A.MethodDecl) and method.return_type is not None:
                    self._check(node.value, resolved.declared_type(method.return_type),
                                resolved)
        self._sites.sort(key=lambda site: site[0].span.start)

    def diagnose(self, ctx: CheckerContext) -> None:
        for node, source, target in self._sites:
            self._emit(
                Category.LOSSY_CONVERSION,
                f"incompatible types: possible lossy conversion from {source} to {target}",
                node.span,
            )


class IncompatibleReturnTypesChecker(Checker):
    """
    ``return`` statements that disagree with the declared return type:
    a value in a ``void`` method or constructor, a bare ``return;`` in a
    value method, or a non-convertible value.  Numeric narrowing is left
    to the lossy-conversion rule.
    """

    name: ClassVar[str] = "incompatible-return-types"
    description: ClassVar[str] = "Returned value does not match the declared return type"
    categories: ClassVar[FrozenSet[Category]] = frozenset({Category.INCOMPATIBLE_RETURN_TYPES})

    def __init__(self) -> None:
        super().__init__()
        self._sites: List[Tuple[A.ReturnStmt, A.Node, str]] = []

    def collect_evidence(self, ctx: CheckerContext) -> None:
        resolved = ctx.resolved
        for ret in find_all(resolved.unit, A.ReturnStmt):
            context = resolved.context(ret)
            method = context.callable if context is not None else None
            if isinstance(method, A.ConstructorDecl):
                if ret.value is not None:
                    self._sites.append((ret, method, "incompatible types: unexpected return value"))
                continue
            if not isinstance(method, A.MethodDecl) or method.return_type is None:
                continue
            if method.is_void:
                if ret.value is not None:
                    self._sites.append((ret, method, "incompatible types: unexpected return value"))
            elif ret.value is None:
                self._sites.append((ret, method, "missing return value"))
            else:
                target = resolved.declared_type(method.return_type)
                source = resolved.type_of(ret.value)
                if not resolved.assignable(target, source):
                    self._sites.append((
                        ret, method,
                        f"incompatible types: {source} cannot be converted to {target}",
                    ))

    def diagnose(self, ctx: CheckerContext) -> None:
        for ret, method, message in self._sites:
            self._emit(
                Category.INCOMPATIBLE_RETURN_TYPES, message, ret.span,
                symbol=getattr(method, "name", ""), anchor=method,
            )


class MissingReturnValueChecker(Checker):
    """
    Value methods with a path that ends without returning a value:
    a bare ``return;`` or a body that can complete normally.
    """

    name: ClassVar[str] = "missing-return-value"
    description: ClassVar[str] = "Method may exit without returning a value"
    categories: ClassVar[FrozenSet[Category]] = frozenset({Category.MISSING_RETURN_VALUE})

    def __init__(self) -> None:
        super().__init__()
        self._sites: List[Tuple[A.Node, A.MethodDecl, str]] = []

    def collect_evidence(self, ctx: CheckerContext) -> None:
        for method in find_all(ctx.unit, A.MethodDecl):
            if method.return_type is None or method.is_void or method.body is None:
                continue
            for ret in _returns(method.body):
                if ret.value is None:
                    self._sites.append((ret, method, "missing return value"))
            if can_complete_normally(method.body):
                self._sites.append((method, method, "missing return statement"))

    def diagnose(self, ctx: CheckerContext) -> None:
        for node, method, message in self._sites:
            span = node.span if isinstance(node, A.ReturnStmt) else _closing_brace(method)
            self._emit(
                Category.MISSING_RETURN_VALUE, f"{message} in method {method.name}", span,
                symbol=method.name, anchor=method,
            )


def _closing_brace(method: A.MethodDecl) -> SourceSpan:
    body = method.body.span if method.body is not None else method.span
    if body.end_line <= 0:
        return _span(method)
    return SourceSpan(body.end_line, max(body.end_column - 1, 1), body.end_line, body.end_column)


class InheritanceCycleChecker(Checker):
    name: ClassVar[str] = "inheritance-cycle"
    description: ClassVar[str] = "Cyclic extends chain"
    categories: ClassVar[FrozenSet[Category]] = frozenset({Category.INHERITANCE_CYCLE})

    def collect_evidence(self, ctx: CheckerContext) -> None:
        pass

    def diagnose(self, ctx: CheckerContext) -> None:
        for sym, ring in ctx.resolved.cycles:
            chain = " -> ".join(ring + (ring[0],))
            node = sym.node if sym.node is not None else ctx.unit
            self._emit(
                Category.INHERITANCE_CYCLE,
                f"cyclic inheritance involving {sym.name}: {chain}",
                _span(node),
                symbol=sym.name,
            )


# ═════════════════════════════════════════════════════════════════════════
#  PART 7 — CHECKER RUNNER
# ═════════════════════════════════════════════════════════════════════════

# Default registry with all built-in checkers, in taxonomy order
_DEFAULT_REGISTRY = CheckerRegistry()
_DEFAULT_REGISTRY.register(MissingReturnTypeChecker)
_DEFAULT_REGISTRY.register(MissingVoidChecker)
_DEFAULT_REGISTRY.register(VisitPrivateChecker)
_DEFAULT_REGISTRY.register(StringAccessByIndexChecker)
_DEFAULT_REGISTRY.register(UninitializedVariableChecker)
_DEFAULT_REGISTRY.register(LossyConversionChecker)
_DEFAULT_REGISTRY.register(BadInvocationChecker)
_DEFAULT_REGISTRY.register(UndeclaredVariableChecker)
_DEFAULT_REGISTRY.register(NonStaticVariableChecker)
_DEFAULT_REGISTRY.register(IncompatibleReturnTypesChecker)
_DEFAULT_REGISTRY.register(IllegalConstructorNameChecker)
_DEFAULT_REGISTRY.register(MissingReturnValueChecker)
_DEFAULT_REGISTRY.register(NonStaticMethodChecker)
_DEFAULT_REGISTRY.register(InheritanceCycleChecker)


def default_registry() -> CheckerRegistry:
    """A fresh copy of the built-in registry."""
    return _DEFAULT_REGISTRY.copy()


@dataclass
class CheckerRunResults:
    """
    Aggregate results from running the checkers on one unit.

    Attributes
    ----------
    diagnostics            : All diagnostics from all checkers
    diagnostics_by_checker : Diagnostics grouped by checker name
    stats                  : Timing statistics
    checker_names          : Names of checkers that were run
    faults                 : Names of checkers that raised
    """
    diagnostics: List[Diagnostic] = field(default_factory=list)
    diagnostics_by_checker: Dict[str, List[Diagnostic]] = field(
        default_factory=lambda: defaultdict(list)
    )
    stats: Dict[str, Any] = field(default_factory=dict)
    checker_names: List[str] = field(default_factory=list)
    faults: List[str] = field(default_factory=list)

    @property
    def inconclusive(self) -> bool:
        return bool(self.faults)

    @property
    def error_count(self) -> int:
        return sum(1 for d in self.diagnostics if d.severity is Severity.ERROR)

    @property
    def warning_count(self) -> int:
        return sum(1 for d in self.diagnostics if d.severity is Severity.WARNING)

    @property
    def total_count(self) -> int:
        return len(self.diagnostics)

    def by_category(self, category: Category) -> List[Diagnostic]:
        return [d for d in self.diagnostics if d.category is category]

    def summary(self) -> str:
        """Human-readable summary."""
        lines = [
            f"Checker run complete: {self.total_count} diagnostics "
            f"({self.error_count} errors, {self.warning_count} warnings)",
        ]
        for name in self.checker_names:
            count = len(self.diagnostics_by_checker.get(name, []))
            elapsed = self.stats.get(f"{name}_elapsed_ms", 0)
            lines.append(f"  {name}: {count} findings ({elapsed:.1f}ms)")
        return "\n".join(lines)


class CheckerRunner:
    """
    Runs a suite of checkers against one resolved unit.

    Usage
    -----
    >>> runner = CheckerRunner()
    >>> results = runner.run(resolved, label="Test.java")
    >>> print(results.summary())

    >>> results = runner.run(resolved, checkers=["visit-private"])

    Parameters for constructor
    ─────────────────────────
    registry     : CheckerRegistry — source of checker classes
    suppressions : SuppressionManager — global suppressions
    options      : dict — per-checker configuration
    parallel     : run the checkers of one unit on a thread pool
    """

    def __init__(
        self,
        registry: Optional[CheckerRegistry] = None,
        suppressions: Optional[SuppressionManager] = None,
        options: Optional[Dict[str, Any]] = None,
        parallel: bool = False,
    ) -> None:
        self.registry = registry or _DEFAULT_REGISTRY
        self.suppressions = suppressions or SuppressionManager()
        self.options = options or {}
        self.parallel = parallel

    def run(
        self,
        resolved: ResolvedUnit,
        label: str = "<unit>",
        comments: Sequence[Any] = (),
        checkers: Optional[Sequence[str]] = None,
    ) -> CheckerRunResults:
        """
        Run checkers against a single resolved unit.

        Parameters
        ----------
        resolved : ResolvedUnit
        label    : unit label for messages
        comments : lexer comments, scanned for inline suppressions
        checkers : names of checkers to run (None = all enabled)
        """
        results = CheckerRunResults()

        suppressions = self.suppressions.copy()
        suppressions.load_inline_suppressions(comments)

        ctx = CheckerContext(
            resolved=resolved,
            label=label,
            suppressions=suppressions,
            options=self.options,
        )
        # Shared evidence is computed before any checker runs and only
        # read afterwards.
        ctx.set_analysis("accesses", collect_accesses(resolved))
        ctx.set_analysis("untyped-methods", _untyped_methods(ctx))

        if checkers is not None:
            checker_classes: List[Type[Checker]] = []
            for name in checkers:
                cls = self.registry.get_by_name(name)
                if cls is not None:
                    checker_classes.append(cls)
        else:
            checker_classes = self.registry.get_enabled()

        if self.parallel and len(checker_classes) > 1:
            with ThreadPoolExecutor(max_workers=min(8, len(checker_classes))) as pool:
                outcomes = list(pool.map(lambda cls: _run_one(cls, ctx), checker_classes))
        else:
            outcomes = [_run_one(cls, ctx) for cls in checker_classes]

        for cls, (diags, elapsed_ms, failed) in zip(checker_classes, outcomes):
            results.checker_names.append(cls.name)
            results.diagnostics.extend(diags)
            results.diagnostics_by_checker[cls.name] = diags
            results.stats[f"{cls.name}_elapsed_ms"] = elapsed_ms
            if failed:
                results.faults.append(cls.name)
        return results


def _run_one(cls: Type[Checker], ctx: CheckerContext) -> Tuple[List[Diagnostic], float, bool]:
    """One checker through its lifecycle; a raising checker yields a fault diagnostic."""
    checker = cls()
    t0 = time.monotonic()
    failed = False
    try:
        checker.configure(ctx)
        checker.collect_evidence(ctx)
        checker.diagnose(ctx)
        diags = checker.report(ctx)
    except Exception as exc:
        _log.debug("checker %s failed on %s", cls.name, ctx.label, exc_info=True)
        failed = True
        diags = [Diagnostic(
            category=Category.INTERNAL_FAULT,
            message=f"rule '{cls.name}' failed: {exc}",
            rule=cls.name,
        )]
    return diags, (time.monotonic() - t0) * 1000.0, failed


# ═════════════════════════════════════════════════════════════════════════
#  PART 8 — PUBLIC API
# ═════════════════════════════════════════════════════════════════════════

__all__ = [
    "Checker",
    "CheckerContext",
    "CheckerRegistry",
    "CheckerRunner",
    "CheckerRunResults",
    "VariableAccess",
    "collect_accesses",
    "can_complete_normally",
    "default_registry",
    "MissingReturnTypeChecker",
    "MissingVoidChecker",
    "IllegalConstructorNameChecker",
    "VisitPrivateChecker",
    "StringAccessByIndexChecker",
    "UninitializedVariableChecker",
    "LossyConversionChecker",
    "BadInvocationChecker",
    "UndeclaredVariableChecker",
    "NonStaticVariableChecker",
    "NonStaticMethodChecker",
    "IncompatibleReturnTypesChecker",
    "MissingReturnValueChecker",
    "InheritanceCycleChecker",
]
