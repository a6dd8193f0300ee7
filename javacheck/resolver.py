"""
javacheck Resolver

Binds every identifier reference and call site of one unit against its
(frozen) symbol table:

1. Name binding – every ``Name``, ``FieldAccess``, ``MethodCall`` and
   ``MethodRef`` ends in exactly one of :class:`Resolved`,
   :class:`Unresolved` or :class:`ExternalOpaque`.
2. Expression typing – every expression gets a type string, or ``None``
   when the type is unknown.
3. Reference contexts – the enclosing type, callable and static-ness of
   every reference and ``return`` statement, so that rules never walk
   the scope chain themselves.

Lookup order for a simple name (first match wins)::

    block … → method parameters → type members (own, then inherited
    along the extends chain and interfaces) → enclosing types … →
    opaque fallback (external superclass / interface / library name)

Resolution never mutates the symbol table.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Callable, Dict, FrozenSet, Iterator, List, NamedTuple, Optional, Sequence, Set, Tuple, Union

from javacheck import ast as A
from javacheck import typeinfo as T
from javacheck.errors import ErrorPhase, InternalFault, Issue
from javacheck.symbols import (
    MEMBER_VARIABLE_KINDS,
    METHOD_KINDS,
    TYPE_KINDS,
    Scope,
    ScopeKind,
    Symbol,
    SymbolKind,
    SymbolTable,
    build_symbol_table,
)
from javacheck.visitor import children, find_all

_log = logging.getLogger("javacheck.resolver")


# ============================================================================
# PART 1 — BINDINGS
# ============================================================================


@dataclass(frozen=True, slots=True)
class Resolved:
    """
    A reference bound to a declared symbol.

    ``candidates`` holds every overload considered for a call site,
    ``via`` the type whose members supplied the symbol, and
    ``from_static`` is set when an instance member was reached from a
    static context (unqualified, or through a type name).
    """

    symbol: Symbol
    candidates: Tuple[Symbol, ...] = ()
    via: Optional[Symbol] = None
    from_static: bool = False


@dataclass(frozen=True, slots=True)
class Unresolved:
    name: str
    reason: str = ""


@dataclass(frozen=True, slots=True)
class ExternalOpaque:
    """
    A reference assumed valid because it reaches outside the unit.

    ``member_kind`` is set when the library member is known, e.g.
    ``String.length`` is a METHOD and an array's ``length`` a FIELD.
    """

    name: str
    member_kind: Optional[SymbolKind] = None
    denotes_type: bool = False
    reason: str = ""


Binding = Union[Resolved, Unresolved, ExternalOpaque]

#: Node classes that always receive a binding.
REFERENCE_NODES = (A.Name, A.FieldAccess, A.MethodCall, A.MethodRef)

EXPRESSION_NODES = (
    A.Literal, A.Name, A.This, A.Super, A.FieldAccess, A.MethodCall,
    A.NewObject, A.ArrayInit, A.NewArray, A.ArrayAccess, A.Unary, A.Binary,
    A.Assign, A.Conditional, A.SwitchExpr, A.Cast, A.InstanceOf, A.Lambda,
    A.MethodRef, A.ClassLiteral, A.ErrorExpr,
)

_LOCAL_KINDS: FrozenSet[SymbolKind] = frozenset({SymbolKind.LOCAL, SymbolKind.PARAMETER})
_TYPE_PARAMETER = re.compile(r"^[A-Z][0-9]?$")


class RefContext(NamedTuple):
    """Where a reference occurs."""

    type_sym: Optional[Symbol]
    callable: Optional[A.Node]
    static: bool
    scope: Scope


def is_applicable(
    sym: Symbol,
    arg_types: Sequence[Optional[str]],
    subtype: Optional[T.SubtypeCheck] = None,
    normalize: Optional[Callable[[Optional[str]], Optional[str]]] = None,
) -> bool:
    """Whether a call with *arg_types* can invoke method/constructor *sym*.

    *normalize* maps declared parameter types before comparison (e.g. to
    drop type parameters to unknown).
    """

    def accepts(param: Optional[str], arg: Optional[str]) -> bool:
        if normalize is not None:
            param = normalize(param)
        if T.is_narrowing(param, arg):
            return False
        return T.assignable(param, arg, subtype)

    params = sym.params
    if sym.varargs and params:
        fixed = params[:-1]
        if len(arg_types) < len(fixed):
            return False
        if not all(accepts(p, a) for p, a in zip(fixed, arg_types)):
            return False
        rest = arg_types[len(fixed):]
        if len(rest) == 1 and accepts(params[-1], rest[0]):
            return True
        element = T.element_type(params[-1])
        return all(accepts(element, a) for a in rest)
    if len(params) != len(arg_types):
        return False
    return all(accepts(p, a) for p, a in zip(params, arg_types))


# ============================================================================
# PART 2 — RESOLVED UNIT
# ============================================================================


@dataclass
class ResolvedUnit:
    """Everything the rule engine reads. Never mutated after resolution."""

    unit: A.CompilationUnit
    table: SymbolTable
    bindings: Dict[A.Node, Binding] = field(default_factory=dict)
    types: Dict[A.Node, Optional[str]] = field(default_factory=dict)
    contexts: Dict[A.Node, RefContext] = field(default_factory=dict)
    inferred: Dict[Symbol, Optional[str]] = field(default_factory=dict)
    issues: List[Issue] = field(default_factory=list)
    cycles: List[Tuple[Symbol, Tuple[str, ...]]] = field(default_factory=list)

    def binding(self, node: A.Node) -> Binding:
        try:
            return self.bindings[node]
        except KeyError:
            raise InternalFault("reference left unbound", node.span) from None

    def type_of(self, node: Optional[A.Node]) -> Optional[str]:
        if node is None:
            return None
        return self.types.get(node)

    def context(self, node: A.Node) -> Optional[RefContext]:
        return self.contexts.get(node)

    def normalize(self, t: Optional[str]) -> Optional[str]:
        """Drop type-parameter names such as ``T`` or ``E[]`` to unknown."""
        if t is None:
            return None
        base = t.split("[", 1)[0]
        if _TYPE_PARAMETER.match(base) and self.table.local_type(base) is None:
            return None
        return t

    def variable_type(self, sym: Symbol) -> Optional[str]:
        if sym.type_name is None:
            return self.inferred.get(sym)
        return self.normalize(sym.type_name)

    def declared_type(self, t: Optional[A.TypeRef]) -> Optional[str]:
        if t is None or t.name == "var":
            return None
        return self.normalize(t.erasure)

    def assignable(self, target: Optional[str], source: Optional[str]) -> bool:
        return T.assignable(self.normalize(target), self.normalize(source),
                            self.table.is_subtype)

    def callable_symbol(self, node: Optional[A.Node]) -> Optional[Symbol]:
        if node is None:
            return None
        return self.table.symbol_of.get(node)

    def references(self) -> Iterator[Tuple[A.Node, Binding]]:
        """``(node, binding)`` pairs in source order."""
        ordered = sorted(
            self.bindings.items(),
            key=lambda item: (item[0].span.line, item[0].span.column),
        )
        yield from ordered


# ============================================================================
# PART 3 — RESOLVER
# ============================================================================


class _Frame(NamedTuple):
    scope: Scope
    type_sym: Optional[Symbol]
    callable: Optional[A.Node]
    static: bool


class _Qualifier(NamedTuple):
    """Classification of the target of ``target.name``."""

    kind: str                       # type | value | super | opaque | unresolved
    type_sym: Optional[Symbol] = None
    type_name: Optional[str] = None
    reason: str = ""


def _is_type_like(name: str) -> bool:
    return name[:1].isupper() or name in T.JAVA_LANG_CLASSES


def _common_type(a: Optional[str], b: Optional[str]) -> Optional[str]:
    """Type of a value that is either *a* or *b*, when it can be told."""
    if a == b:
        return a
    if T.is_numeric(a) and T.is_numeric(b):
        return T.binary_promotion(a, b)
    if a == "null":
        return b
    if b == "null":
        return a
    return None


def arm_values(case: A.SwitchCase) -> List[A.Node]:
    """Expressions a switch expression arm can produce."""
    if case.arrow and len(case.body) == 1 and isinstance(case.body[0], A.ExprStmt):
        return [case.body[0].expr]
    values: List[A.Node] = []
    stack: List[A.Node] = list(reversed(case.body))
    while stack:
        node = stack.pop()
        if isinstance(node, A.YieldStmt):
            values.append(node.value)
        elif not isinstance(node, EXPRESSION_NODES + (A.LocalClassDecl,)):
            stack.extend(reversed(list(children(node))))
    return values


class Resolver:
    """Binds the references of one unit. Use :func:`resolve`."""

    def __init__(self, table: SymbolTable) -> None:
        self.table = table
        self.unit = table.unit
        self.out = ResolvedUnit(unit=self.unit, table=table)
        self._static_imports: Set[str] = {
            i.simple_name for i in self.unit.imports if i.static and not i.wildcard
        }
        self._wildcard_static = any(i.static and i.wildcard for i in self.unit.imports)

    def resolve(self) -> ResolvedUnit:
        self.out.cycles = self._find_cycles()
        for decl in self.unit.types:
            self._type_decl(decl)
        for node in find_all(self.unit, *REFERENCE_NODES):
            if node not in self.out.bindings:
                raise InternalFault(f"reference {node!r} left unbound", node.span)
        _log.debug(
            "resolved %d references (%d unresolved)",
            len(self.out.bindings),
            sum(1 for b in self.out.bindings.values() if isinstance(b, Unresolved)),
        )
        return self.out

    # ── helpers ──────────────────────────────────────────────────────

    def _bind(self, node: A.Node, binding: Binding, frame: _Frame) -> None:
        self.out.bindings[node] = binding
        self.out.contexts[node] = RefContext(
            frame.type_sym, frame.callable, frame.static, frame.scope,
        )
        if isinstance(binding, Unresolved):
            self.out.issues.append(Issue(
                ErrorPhase.RESOLUTION,
                f"cannot resolve symbol '{binding.name}'",
                node.span,
            ))

    def _value_type(self, binding: Binding) -> Optional[str]:
        if isinstance(binding, Resolved):
            sym = binding.symbol
            if sym.kind in _LOCAL_KINDS or sym.kind in MEMBER_VARIABLE_KINDS:
                return self.out.variable_type(sym)
        return None

    def _return_type(self, binding: Binding) -> Optional[str]:
        if isinstance(binding, Resolved) and binding.symbol.kind is SymbolKind.METHOD:
            return self.out.normalize(binding.symbol.type_name)
        return None

    def _select(self, candidates: Sequence[Symbol],
                arg_types: Sequence[Optional[str]]) -> Symbol:
        for sym in candidates:
            if is_applicable(sym, arg_types, self.table.is_subtype, self.out.normalize):
                return sym
        for sym in candidates:
            if len(sym.params) == len(arg_types):
                return sym
        return candidates[0]

    # ── cycles ───────────────────────────────────────────────────────

    def _find_cycles(self) -> List[Tuple[Symbol, Tuple[str, ...]]]:
        """Each extends-cycle once, at the first declared type on it."""
        types = sorted(
            (s for s in self.table.iter_symbols()
             if s.kind is SymbolKind.TYPE and not s.anonymous),
            key=lambda s: s.position,
        )
        reported: Set[FrozenSet[str]] = set()
        cycles: List[Tuple[Symbol, Tuple[str, ...]]] = []
        for sym in types:
            path = [sym.name]
            current = sym
            while current.superclass is not None:
                sup = self.table.local_type(current.superclass)
                if sup is None:
                    break
                if sup.name in path:
                    ring = tuple(path[path.index(sup.name):])
                    key = frozenset(ring)
                    if sym.name in ring and key not in reported:
                        reported.add(key)
                        cycles.append((sym, ring))
                    break
                path.append(sup.name)
                current = sup
        return cycles

    # ── declarations ─────────────────────────────────────────────────

    def _type_decl(self, decl: A.TypeDecl) -> None:
        scope = self.table.scope_of[decl]
        self._members(decl.members, _Frame(scope, scope.owner, None, False))

    def _members(self, members: Sequence[A.Node], frame: _Frame) -> None:
        type_sym = frame.type_sym
        interface = type_sym is not None and type_sym.type_kind is A.TypeKind.INTERFACE
        for member in members:
            if isinstance(member, A.FieldDecl):
                inner = frame._replace(static=member.is_static or interface, callable=None)
                for d in member.declarators:
                    if d.init is not None:
                        self._expr(d.init, inner)
            elif isinstance(member, (A.MethodDecl, A.ConstructorDecl)):
                static = isinstance(member, A.MethodDecl) and member.is_static
                inner = _Frame(self.table.scope_of[member], type_sym, member, static)
                if member.body is not None:
                    self._stmt(member.body, inner)
            elif isinstance(member, A.Initializer):
                inner = _Frame(self.table.scope_of[member], type_sym, member, member.static)
                self._stmt(member.body, inner)
            elif isinstance(member, A.EnumConstant):
                for arg in member.args:
                    self._expr(arg, frame._replace(static=True))
                if member.body is not None:
                    anon = self.table.scope_of[member]
                    self._members(member.body, _Frame(anon, anon.owner, None, False))
            elif isinstance(member, A.TypeDecl):
                self._type_decl(member)

    # ── statements ───────────────────────────────────────────────────

    def _stmt(self, node: A.Node, frame: _Frame) -> None:
        scope = self.table.scope_of.get(node)
        if scope is not None:
            frame = frame._replace(scope=scope)

        if isinstance(node, A.LocalVarDecl):
            for d in node.declarators:
                if d.init is not None:
                    self._expr(d.init, frame)
                if node.type.name == "var":
                    sym = self.table.symbol_of[d]
                    self.out.inferred[sym] = self.out.type_of(d.init)
        elif isinstance(node, A.LocalClassDecl):
            self._type_decl(node.decl)
        elif isinstance(node, A.ForEachStmt):
            iterable = self._expr(node.iterable, frame)
            if node.var.type is None or node.var.type.name == "var":
                sym = self.table.symbol_of[node.var]
                self.out.inferred[sym] = T.element_type(iterable)
            self._stmt(node.body, frame)
        elif isinstance(node, A.ReturnStmt):
            self.out.contexts[node] = RefContext(
                frame.type_sym, frame.callable, frame.static, frame.scope,
            )
            if node.value is not None:
                self._expr(node.value, frame)
        elif isinstance(node, A.ConstructorCall):
            arg_types = [self._expr(a, frame) for a in node.args]
            self._constructor_call(node, frame, arg_types)
        elif isinstance(node, A.SwitchStmt):
            selector = self._expr(node.selector, frame)
            for case in node.cases:
                for label in case.labels:
                    self._case_label(label, selector, frame)
                for stmt in case.body:
                    self._stmt(stmt, frame)
        elif isinstance(node, EXPRESSION_NODES):
            self._expr(node, frame)
        else:
            for child in children(node):
                if isinstance(child, A.TypeRef):
                    continue
                if isinstance(child, EXPRESSION_NODES):
                    self._expr(child, frame)
                else:
                    self._stmt(child, frame)

    def _case_label(self, label: A.Node, selector: Optional[str], frame: _Frame) -> None:
        if not isinstance(label, A.Name):
            self._expr(label, frame)
            return
        binding: Binding = self._lookup_variable(label.name, frame, label.span.start)
        if not isinstance(binding, Resolved):
            enum = self.table.local_type(selector)
            look = None
            if enum is not None:
                look = self.table.find_members(enum, label.name, MEMBER_VARIABLE_KINDS)
            if look is not None and look.found:
                binding = Resolved(look.symbols[0], via=look.declaring)
            elif enum is None or enum.type_kind is not A.TypeKind.ENUM:
                binding = ExternalOpaque(label.name, reason="case label of external enum")
        self._bind(label, binding, frame)
        self.out.types[label] = selector

    def _constructor_call(self, node: A.ConstructorCall, frame: _Frame,
                          arg_types: List[Optional[str]]) -> None:
        owner = frame.type_sym
        target: Optional[Symbol] = owner
        if node.kind == "super":
            target = self.table.local_type(owner.superclass) if owner is not None else None
        if target is None or target.members is None:
            self.out.bindings[node] = ExternalOpaque(node.kind, reason="external superclass")
        else:
            ctors = target.members.lookup_local(target.name, [SymbolKind.CONSTRUCTOR])
            if ctors:
                self.out.bindings[node] = Resolved(
                    self._select(ctors, arg_types), tuple(ctors), target,
                )
            else:
                self.out.bindings[node] = Resolved(target)
        self.out.contexts[node] = RefContext(
            frame.type_sym, frame.callable, frame.static, frame.scope,
        )

    # ── name lookup ──────────────────────────────────────────────────

    def _lookup_variable(self, name: str, frame: _Frame,
                         position: Tuple[int, int]) -> Binding:
        crossed_static = frame.static and frame.scope.kind is ScopeKind.TYPE
        opaque_reason: Optional[str] = None
        scope: Optional[Scope] = frame.scope
        while scope is not None:
            if scope.kind is ScopeKind.TYPE and scope.owner is not None:
                look = self.table.find_members(scope.owner, name, MEMBER_VARIABLE_KINDS)
                if look.found:
                    return Resolved(look.symbols[0], via=look.declaring,
                                    from_static=crossed_static)
                if look.opaque and opaque_reason is None:
                    opaque_reason = look.reason
                if scope.owner.is_static:
                    crossed_static = True
            elif scope.kind is not ScopeKind.FILE:
                found = scope.lookup_local(name, _LOCAL_KINDS, before=position)
                if found:
                    return Resolved(found[-1])
                if scope.kind is ScopeKind.METHOD and scope.static:
                    crossed_static = True
            scope = scope.parent
        if opaque_reason is not None:
            return ExternalOpaque(name, reason=opaque_reason)
        if name in self._static_imports or self._wildcard_static:
            return ExternalOpaque(name, reason="static import")
        return Unresolved(name, "cannot find symbol")

    def _lookup_methods(self, name: str, frame: _Frame,
                        arg_types: Sequence[Optional[str]],
                        position: Tuple[int, int]) -> Binding:
        crossed_static = frame.static and frame.scope.kind is ScopeKind.TYPE
        opaque_reason: Optional[str] = None
        scope: Optional[Scope] = frame.scope
        while scope is not None:
            if scope.kind is ScopeKind.TYPE and scope.owner is not None:
                look = self.table.find_members(scope.owner, name, METHOD_KINDS)
                if look.found:
                    chosen = self._select(look.symbols, arg_types)
                    return Resolved(chosen, look.symbols, look.declaring,
                                    from_static=crossed_static)
                if look.opaque and opaque_reason is None:
                    opaque_reason = look.reason
                if scope.owner.is_static:
                    crossed_static = True
            elif scope.kind is ScopeKind.METHOD and scope.static:
                crossed_static = True
            scope = scope.parent
        if opaque_reason is not None:
            return ExternalOpaque(name, reason=opaque_reason)
        if name in self._static_imports or self._wildcard_static:
            return ExternalOpaque(name, reason="static import")
        variable = self._lookup_variable(name, frame, position)
        if isinstance(variable, Resolved):
            return variable
        return Unresolved(name, f"no method named '{name}'")

    def _lookup_type(self, name: str) -> Optional[Binding]:
        sym = self.table.type_named(name)
        if sym is not None:
            return Resolved(sym)
        if _is_type_like(name):
            return ExternalOpaque(name, denotes_type=True, reason="external type")
        if name in self.table.package_roots:
            return ExternalOpaque(name, reason="package")
        return None

    # ── qualifiers and members ───────────────────────────────────────

    def _qualifier(self, target: A.Node, frame: _Frame) -> _Qualifier:
        if isinstance(target, A.Super):
            sup = self.table.local_type(self._expr(target, frame))
            if sup is None:
                return _Qualifier("opaque", reason="external superclass")
            return _Qualifier("super", sup, sup.name)
        if isinstance(target, A.This):
            sym = self._this_symbol(target, frame)
            self._expr(target, frame)
            if sym is None:
                return _Qualifier("opaque", reason="unknown enclosing type")
            return _Qualifier("value", sym, sym.name)
        if isinstance(target, A.Name):
            binding = self._name(target, frame, qualifier=True)
        elif isinstance(target, A.FieldAccess):
            binding = self._field_access(target, frame, qualifier=True)
        else:
            t = self._expr(target, frame)
            return self._value_qualifier(t)

        if isinstance(binding, Resolved):
            sym = binding.symbol
            if sym.kind is SymbolKind.TYPE:
                return _Qualifier("type", sym, sym.name)
            if sym.kind is SymbolKind.EXTERNAL_TYPE:
                return _Qualifier("type", None, sym.name)
            return self._value_qualifier(self._value_type(binding))
        if isinstance(binding, ExternalOpaque):
            if binding.denotes_type:
                return _Qualifier("type", None, binding.name)
            return _Qualifier("opaque", reason=binding.reason)
        return _Qualifier("unresolved", reason=binding.reason)

    def _value_qualifier(self, t: Optional[str]) -> _Qualifier:
        local = self.table.local_type(t) if t is not None and not T.is_array(t) else None
        return _Qualifier("value", local, t)

    def _member(
        self,
        q: _Qualifier,
        name: str,
        kinds: FrozenSet[SymbolKind],
        arg_types: Optional[Sequence[Optional[str]]] = None,
    ) -> Tuple[Binding, Optional[str]]:
        """Bind ``q.name``; *arg_types* is given for method calls."""
        if q.kind == "opaque":
            return ExternalOpaque(name, reason=q.reason), None
        if q.kind == "unresolved":
            return ExternalOpaque(name, reason="qualifier is unresolved"), None
        if q.type_sym is None:
            return self._library_member(q, name, arg_types)

        look = self.table.find_members(q.type_sym, name, kinds)
        if look.found:
            if arg_types is not None:
                chosen = self._select(look.symbols, arg_types)
                candidates = look.symbols
            else:
                chosen, candidates = look.symbols[0], ()
            from_static = (
                q.kind == "type"
                and chosen.kind in (SymbolKind.FIELD, SymbolKind.METHOD)
                and not chosen.is_static
            )
            binding: Binding = Resolved(chosen, candidates, look.declaring, from_static)
            if arg_types is not None:
                return binding, self._return_type(binding)
            return binding, self._value_type(binding)
        if look.opaque:
            return ExternalOpaque(name, reason=look.reason), None
        other = MEMBER_VARIABLE_KINDS if arg_types is not None else METHOD_KINDS
        cross = self.table.find_members(q.type_sym, name, other)
        if cross.found:
            return Resolved(cross.symbols[0], via=cross.declaring), None
        return Unresolved(name, f"no member '{name}' in {q.type_sym.name}"), None

    def _library_member(
        self, q: _Qualifier, name: str,
        arg_types: Optional[Sequence[Optional[str]]],
    ) -> Tuple[Binding, Optional[str]]:
        call = arg_types is not None
        t = q.type_name
        if q.kind == "type":
            owner = t or ""
            if call:
                known, rtype = T.static_method_type(owner, name, arg_types or ())
                kind = SymbolKind.METHOD if known else None
                return ExternalOpaque(name, kind, reason=f"member of {owner}"), rtype
            ftype = T.STATIC_FIELDS.get((T.base_name(owner) or owner, name))
            if ftype is not None:
                return ExternalOpaque(name, SymbolKind.FIELD, reason=f"member of {owner}"), ftype
            return ExternalOpaque(name, denotes_type=_is_type_like(name),
                                  reason=f"member of {owner}"), None
        if t is None:
            return ExternalOpaque(name, reason="receiver of unknown type"), None
        if T.is_array(t):
            if name in T.ARRAY_FIELDS:
                return (ExternalOpaque(name, SymbolKind.FIELD, reason="array member"),
                        None if call else T.ARRAY_FIELDS[name])
            if call and name == "clone":
                return ExternalOpaque(name, SymbolKind.METHOD, reason="array member"), t
            if call and name in T.OBJECT_METHODS:
                return ExternalOpaque(name, SymbolKind.METHOD), T.OBJECT_METHODS[name]
            return ExternalOpaque(name, reason="array member"), None
        if t in T.PRIMITIVE_TYPES:
            return ExternalOpaque(name, reason=f"member of primitive {t}"), None
        known, rtype = T.instance_method_type(t, name)
        if known:
            return ExternalOpaque(name, SymbolKind.METHOD, reason=f"member of {t}"), (
                rtype if call else None
            )
        return ExternalOpaque(name, reason=f"member of {t}"), None

    def _super_name(self, frame: _Frame) -> Optional[str]:
        if frame.type_sym is None:
            return None
        return frame.type_sym.superclass

    def _this_symbol(self, node: A.This, frame: _Frame) -> Optional[Symbol]:
        if node.qualifier is not None:
            return self.table.local_type(node.qualifier)
        return frame.type_sym

    # ── expressions ──────────────────────────────────────────────────

    def _expr(self, node: A.Node, frame: _Frame) -> Optional[str]:
        t = self._expr_type(node, frame)
        self.out.types[node] = t
        return t

    def _name(self, node: A.Name, frame: _Frame, qualifier: bool = False) -> Binding:
        binding = self._lookup_variable(node.name, frame, node.span.start)
        if qualifier and not isinstance(binding, Resolved):
            alternative = self._lookup_type(node.name)
            if alternative is not None:
                binding = alternative
        elif isinstance(binding, Unresolved):
            method = self._lookup_methods(node.name, frame, (), node.span.start)
            if isinstance(method, Resolved):
                binding = method
        self._bind(node, binding, frame)
        self.out.types[node] = self._value_type(binding)
        return binding

    def _field_access(self, node: A.FieldAccess, frame: _Frame,
                      qualifier: bool = False) -> Binding:
        q = self._qualifier(node.target, frame)
        kinds = MEMBER_VARIABLE_KINDS | TYPE_KINDS if qualifier else MEMBER_VARIABLE_KINDS
        binding, t = self._member(q, node.name, kinds)
        if (
            qualifier
            and isinstance(binding, ExternalOpaque)
            and q.kind == "opaque"
            and _is_type_like(node.name)
        ):
            binding = ExternalOpaque(node.name, denotes_type=True, reason=binding.reason)
        self._bind(node, binding, frame)
        self.out.types[node] = t
        return binding

    def _method_call(self, node: A.MethodCall, frame: _Frame) -> Optional[str]:
        if node.target is None:
            arg_types = [self._expr(a, frame) for a in node.args]
            binding = self._lookup_methods(node.name, frame, arg_types, node.span.start)
            self._bind(node, binding, frame)
            return self._return_type(binding)
        q = self._qualifier(node.target, frame)
        arg_types = [self._expr(a, frame) for a in node.args]
        binding, rtype = self._member(q, node.name, METHOD_KINDS, arg_types)
        self._bind(node, binding, frame)
        return self.out.normalize(rtype)

    def _new_object(self, node: A.NewObject, frame: _Frame) -> Optional[str]:
        arg_types = [self._expr(a, frame) for a in node.args]
        name = node.type.simple_name
        local = self.table.local_type(name)
        if local is not None and local.members is not None:
            inner = (
                frame.static
                and local.owner is not None
                and not local.is_static
                and local.scope.kind is ScopeKind.TYPE
            )
            ctors = local.members.lookup_local(name, [SymbolKind.CONSTRUCTOR])
            if ctors:
                binding: Binding = Resolved(
                    self._select(ctors, arg_types), tuple(ctors), local, inner,
                )
            else:
                binding = Resolved(local, from_static=inner)
        else:
            binding = ExternalOpaque(name, denotes_type=True, reason="external type")
        self.out.bindings[node] = binding
        self.out.contexts[node] = RefContext(
            frame.type_sym, frame.callable, frame.static, frame.scope,
        )
        if node.body is not None:
            anon = self.table.scope_of[node]
            self._members(node.body, _Frame(anon, anon.owner, None, False))
        return self.out.normalize(name)

    def _method_ref(self, node: A.MethodRef, frame: _Frame) -> None:
        target = node.target
        if isinstance(target, A.TypeRef):
            q = self._value_qualifier(target.erasure)
        elif isinstance(target, (A.Name, A.FieldAccess, A.This, A.Super)):
            q = self._qualifier(target, frame)
        else:
            q = self._value_qualifier(self._expr(target, frame))
        binding: Binding = ExternalOpaque(node.name, reason="method reference")
        if q.type_sym is not None and node.name != "new":
            look = self.table.find_members(q.type_sym, node.name, METHOD_KINDS)
            if look.found:
                binding = Resolved(look.symbols[0], look.symbols, look.declaring)
        self._bind(node, binding, frame)

    def _expr_type(self, node: A.Node, frame: _Frame) -> Optional[str]:
        if isinstance(node, A.Literal):
            return node.kind
        if isinstance(node, A.Name):
            return self._value_type(self._name(node, frame))
        if isinstance(node, A.FieldAccess):
            self._field_access(node, frame)
            return self.out.types.get(node)
        if isinstance(node, A.MethodCall):
            return self._method_call(node, frame)
        if isinstance(node, A.NewObject):
            return self._new_object(node, frame)
        if isinstance(node, A.This):
            self.out.contexts[node] = RefContext(
                frame.type_sym, frame.callable, frame.static, frame.scope,
            )
            sym = self._this_symbol(node, frame)
            if sym is None:
                return None
            return sym.type_name if sym.anonymous else sym.name
        if isinstance(node, A.Super):
            self.out.contexts[node] = RefContext(
                frame.type_sym, frame.callable, frame.static, frame.scope,
            )
            return self._super_name(frame)
        if isinstance(node, A.ArrayAccess):
            array = self._expr(node.array, frame)
            self._expr(node.index, frame)
            return T.element_type(array) if T.is_array(array) else None
        if isinstance(node, A.ArrayInit):
            for element in node.elements:
                self._expr(element, frame)
            return None
        if isinstance(node, A.NewArray):
            for dim in node.dim_exprs:
                self._expr(dim, frame)
            if node.init is not None:
                self._expr(node.init, frame)
            return self.out.normalize(node.type.erasure)
        if isinstance(node, A.Unary):
            operand = self._expr(node.operand, frame)
            if node.op == "!":
                return "boolean"
            if node.op in ("++", "--"):
                return operand
            return T.unary_promotion(operand)
        if isinstance(node, A.Binary):
            return self._binary(node, frame)
        if isinstance(node, A.Assign):
            target = self._expr(node.target, frame)
            self._expr(node.value, frame)
            return target
        if isinstance(node, A.Conditional):
            self._expr(node.cond, frame)
            return _common_type(self._expr(node.then, frame), self._expr(node.otherwise, frame))
        if isinstance(node, A.SwitchExpr):
            return self._switch_expr(node, frame)
        if isinstance(node, A.Cast):
            self._expr(node.expr, frame)
            return self.out.normalize(node.type.erasure)
        if isinstance(node, A.InstanceOf):
            self._expr(node.expr, frame)
            return "boolean"
        if isinstance(node, A.Lambda):
            inner = frame._replace(scope=self.table.scope_of[node], callable=node)
            if isinstance(node.body, A.Block):
                self._stmt(node.body, inner)
            else:
                self._expr(node.body, inner)
            return None
        if isinstance(node, A.MethodRef):
            self._method_ref(node, frame)
            return None
        if isinstance(node, A.ClassLiteral):
            return "Class"
        if isinstance(node, A.ErrorExpr):
            return None
        raise InternalFault(f"unexpected expression node {type(node).__name__}", node.span)

    def _switch_expr(self, node: A.SwitchExpr, frame: _Frame) -> Optional[str]:
        selector = self._expr(node.selector, frame)
        inner = frame._replace(scope=self.table.scope_of.get(node, frame.scope))
        for case in node.cases:
            for label in case.labels:
                self._case_label(label, selector, inner)
            for stmt in case.body:
                self._stmt(stmt, inner)
        arms = [self.out.types.get(v) for case in node.cases for v in arm_values(case)]
        if not arms:
            return None
        result = arms[0]
        for t in arms[1:]:
            result = _common_type(result, t)
        return result

    def _binary(self, node: A.Binary, frame: _Frame) -> Optional[str]:
        left = self._expr(node.left, frame)
        right = self._expr(node.right, frame)
        op = node.op
        if op == "+" and (left == "String" or right == "String"):
            return "String"
        if op in ("+", "-", "*", "/", "%"):
            return T.binary_promotion(left, right)
        if op in ("<<", ">>", ">>>"):
            return T.unary_promotion(left)
        if op in ("&", "|", "^"):
            if T.unbox(left) == "boolean" and T.unbox(right) == "boolean":
                return "boolean"
            return T.binary_promotion(left, right)
        return "boolean"


# ============================================================================
# PART 4 — PUBLIC API
# ============================================================================


def resolve(unit: A.CompilationUnit, table: Optional[SymbolTable] = None) -> ResolvedUnit:
    """
    Resolve every reference of *unit*.

    Parameters
    ----------
    unit:
        The parsed compilation unit.
    table:
        A symbol table already built for *unit*; built here when omitted.
    """
    if table is None:
        table = build_symbol_table(unit)
    return Resolver(table).resolve()


__all__ = [
    "Resolved",
    "Unresolved",
    "ExternalOpaque",
    "Binding",
    "RefContext",
    "ResolvedUnit",
    "Resolver",
    "REFERENCE_NODES",
    "EXPRESSION_NODES",
    "is_applicable",
    "arm_values",
    "resolve",
]
