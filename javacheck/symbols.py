"""
javacheck Symbol Table

Registers every declaration of one compilation unit with its scope,
static-ness and visibility, in two passes:

1. **Type pass** – every class, interface and enum (top-level and member
   types) is registered before anything else, so that forward references
   such as ``TeamLeader extends ProductionWorker extends Employee``
   resolve regardless of declaration order.
2. **Member pass** – fields, methods, constructors, enum constants,
   parameters and locals are registered in their scopes; local and
   anonymous classes are registered where they occur.

Types that are referenced but never declared (library and framework
types) are registered as opaque ``EXTERNAL_TYPE`` symbols in the file
scope.  Once built, every scope is frozen: the table is read-only during
resolution and rule evaluation.

Scope chain::

    FILE ─┬─ TYPE (class body) ─┬─ METHOD (parameters) ── BLOCK ── BLOCK …
          │                     └─ TYPE (member class) …
          └─ TYPE …
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, Iterable, Iterator, List, Optional, Set, Tuple

from javacheck import ast as A
from javacheck.errors import InternalFault
from javacheck.typeinfo import JAVA_LANG_CLASSES, OBJECT_METHODS, PRIMITIVE_TYPES, base_name
from javacheck.visitor import children, find_all

_log = logging.getLogger("javacheck.symbols")


# ============================================================================
# PART 1 — SYMBOLS
# ============================================================================


class SymbolKind(Enum):
    TYPE = "type"
    EXTERNAL_TYPE = "external-type"
    FIELD = "field"
    METHOD = "method"
    CONSTRUCTOR = "constructor"
    PARAMETER = "parameter"
    LOCAL = "local"
    ENUM_CONSTANT = "enum-constant"


VARIABLE_KINDS: FrozenSet[SymbolKind] = frozenset({
    SymbolKind.FIELD, SymbolKind.PARAMETER, SymbolKind.LOCAL,
    SymbolKind.ENUM_CONSTANT,
})
MEMBER_VARIABLE_KINDS: FrozenSet[SymbolKind] = frozenset({
    SymbolKind.FIELD, SymbolKind.ENUM_CONSTANT,
})
TYPE_KINDS: FrozenSet[SymbolKind] = frozenset({
    SymbolKind.TYPE, SymbolKind.EXTERNAL_TYPE,
})
METHOD_KINDS: FrozenSet[SymbolKind] = frozenset({SymbolKind.METHOD})


@dataclass(frozen=True, slots=True, eq=False)
class Symbol:
    """
    Resolved identity of one declared entity.

    ``type_name`` is the declared type as a string (the return type for
    methods); ``None`` marks an unknown type, e.g. a method whose return
    type is missing or a ``var`` local.  ``owner`` is the enclosing type
    symbol of a member (a relation, not ownership).
    """

    name: str
    kind: SymbolKind
    scope: "Scope"
    type_name: Optional[str] = None
    modifiers: FrozenSet[str] = frozenset()
    node: Optional[A.Node] = None
    owner: Optional["Symbol"] = None
    params: Tuple[Optional[str], ...] = ()
    varargs: bool = False
    position: Tuple[int, int] = (0, 0)
    has_initializer: bool = False
    # TYPE symbols only
    members: Optional["Scope"] = None
    superclass: Optional[str] = None
    interfaces: Tuple[str, ...] = ()
    type_kind: Optional[A.TypeKind] = None
    anonymous: bool = False

    @property
    def is_static(self) -> bool:
        return "static" in self.modifiers

    @property
    def is_private(self) -> bool:
        return "private" in self.modifiers

    @property
    def is_protected(self) -> bool:
        return "protected" in self.modifiers

    @property
    def is_external(self) -> bool:
        return self.kind is SymbolKind.EXTERNAL_TYPE

    @property
    def is_member(self) -> bool:
        return self.kind in (
            SymbolKind.FIELD, SymbolKind.METHOD, SymbolKind.CONSTRUCTOR,
            SymbolKind.ENUM_CONSTANT,
        )

    @property
    def top_level(self) -> Optional["Symbol"]:
        """Outermost enclosing type (the symbol itself for a top-level type)."""
        current: Optional[Symbol] = self if self.kind is SymbolKind.TYPE else self.owner
        while current is not None and current.owner is not None:
            current = current.owner
        return current

    def signature(self) -> str:
        if self.kind in (SymbolKind.METHOD, SymbolKind.CONSTRUCTOR):
            params = ", ".join(p or "?" for p in self.params)
            return f"{self.name}({params})"
        return self.name

    def describe(self) -> str:
        return f"{self.kind.value} '{self.signature()}'"

    def __repr__(self) -> str:
        return f"Symbol({self.kind.name}, {self.signature()!r})"


# ============================================================================
# PART 2 — SCOPES
# ============================================================================


class ScopeKind(Enum):
    FILE = "file"
    TYPE = "type"
    METHOD = "method"
    BLOCK = "block"


class Scope:
    """
    A lexical scope: identifier → declarations, chained to its parent.

    Methods may be overloaded, so a name maps to a list.  After
    :meth:`freeze` any further :meth:`define` is an internal fault.
    """

    def __init__(
        self,
        kind: ScopeKind,
        parent: Optional[Scope] = None,
        node: Optional[A.Node] = None,
        static: bool = False,
    ) -> None:
        self.kind = kind
        self.parent = parent
        self.node = node
        self.static = static
        self.owner: Optional[Symbol] = None  # TYPE scopes: the type symbol
        self._symbols: Dict[str, List[Symbol]] = {}
        self._children: List[Scope] = []
        self.frozen = False
        if parent is not None:
            parent._children.append(self)

    def define(self, symbol: Symbol) -> None:
        if self.frozen:
            raise InternalFault(f"define {symbol.describe()} in frozen {self.kind.value} scope")
        if symbol.scope is not self:
            raise InternalFault(f"{symbol.describe()} registered outside its declaring scope")
        self._symbols.setdefault(symbol.name, []).append(symbol)

    def lookup_local(
        self,
        name: str,
        kinds: Optional[Iterable[SymbolKind]] = None,
        before: Optional[Tuple[int, int]] = None,
    ) -> List[Symbol]:
        """Symbols named *name* in this scope only.

        Locals declared after *before* (a ``(line, column)`` position) are
        not yet visible and are left out.
        """
        found = self._symbols.get(name, [])
        if kinds is not None:
            wanted = set(kinds)
            found = [s for s in found if s.kind in wanted]
        if before is not None:
            found = [
                s for s in found
                if s.kind is not SymbolKind.LOCAL or s.position <= before
            ]
        return found

    def lookup(
        self,
        name: str,
        kinds: Optional[Iterable[SymbolKind]] = None,
        before: Optional[Tuple[int, int]] = None,
    ) -> List[Symbol]:
        """Search this scope and its parents (no inheritance)."""
        scope: Optional[Scope] = self
        while scope is not None:
            found = scope.lookup_local(name, kinds, before)
            if found:
                return found
            scope = scope.parent
        return []

    def symbols(self) -> Iterator[Symbol]:
        for group in self._symbols.values():
            yield from group

    @property
    def children(self) -> Tuple["Scope", ...]:
        return tuple(self._children)

    def enclosing(self, kind: ScopeKind) -> Optional["Scope"]:
        scope: Optional[Scope] = self
        while scope is not None and scope.kind is not kind:
            scope = scope.parent
        return scope

    def freeze(self) -> None:
        self.frozen = True
        for child in self._children:
            child.freeze()

    def __repr__(self) -> str:
        owner = f" {self.owner.name}" if self.owner is not None else ""
        return f"<Scope {self.kind.value}{owner} ({len(self._symbols)} names)>"


# ============================================================================
# PART 3 — SYMBOL TABLE
# ============================================================================


@dataclass(frozen=True)
class SupertypeChain:
    """Result of walking a type's ``extends`` chain."""

    types: Tuple[Symbol, ...]          # local supertypes, nearest first
    external: Optional[str] = None     # first external superclass, if any
    cycle: bool = False


@dataclass(frozen=True)
class MemberLookup:
    """Result of looking a member up in a type and its supertypes."""

    symbols: Tuple[Symbol, ...] = ()
    declaring: Optional[Symbol] = None
    opaque: bool = False
    reason: str = ""

    @property
    def found(self) -> bool:
        return bool(self.symbols)


def _is_constant_name(name: str) -> bool:
    return name.upper() == name and any(c.isalpha() for c in name)


class SymbolTable:
    """All scopes and symbols of one unit. Read-only once built."""

    def __init__(self, unit: A.CompilationUnit) -> None:
        self.unit = unit
        self.file_scope = Scope(ScopeKind.FILE, node=unit)
        self.scope_of: Dict[A.Node, Scope] = {}
        self.symbol_of: Dict[A.Node, Symbol] = {}
        self.local_types: Dict[str, List[Symbol]] = {}
        self.externals: Dict[str, Symbol] = {}
        self.package_roots: Set[str] = {"java", "javax", "android", "org", "com"}

    # ── queries ──────────────────────────────────────────────────────

    def local_type(self, name: Optional[str]) -> Optional[Symbol]:
        simple = base_name(name)
        if simple is None:
            return None
        found = self.local_types.get(simple)
        return found[0] if found else None

    def type_named(self, name: Optional[str]) -> Optional[Symbol]:
        simple = base_name(name)
        if simple is None:
            return None
        return self.local_type(simple) or self.externals.get(simple)

    def is_fully_local(self, type_sym: Symbol) -> bool:
        """True when nothing about *type_sym*'s members is unknown."""
        if type_sym.kind is not SymbolKind.TYPE:
            return False
        chain = self.supertypes(type_sym)
        if chain.external is not None or chain.cycle:
            return False
        return not any(
            self.local_type(i) is None
            for t in (type_sym,) + chain.types for i in t.interfaces
        )

    def supertypes(self, type_sym: Symbol) -> SupertypeChain:
        """Walk the ``extends`` chain; a repeated type name ends the walk."""
        visited = {type_sym.name}
        chain: List[Symbol] = []
        current = type_sym
        while current.superclass is not None:
            sup = self.local_type(current.superclass)
            if sup is None:
                return SupertypeChain(tuple(chain), external=current.superclass)
            if sup.name in visited:
                return SupertypeChain(tuple(chain), cycle=True)
            visited.add(sup.name)
            chain.append(sup)
            current = sup
        return SupertypeChain(tuple(chain))

    def all_interfaces(self, type_sym: Symbol) -> Tuple[List[Symbol], List[str]]:
        """Local interface symbols and external interface names of a type."""
        local: List[Symbol] = []
        external: List[str] = []
        seen: Set[str] = set()
        pending = [type_sym] + list(self.supertypes(type_sym).types)
        while pending:
            current = pending.pop(0)
            for name in current.interfaces:
                if name in seen:
                    continue
                seen.add(name)
                sym = self.local_type(name)
                if sym is None:
                    external.append(name)
                else:
                    local.append(sym)
                    pending.append(sym)
        return local, external

    def is_subtype(self, sub: str, sup: str) -> Optional[bool]:
        """Subtype test for local class types; None when it cannot tell."""
        sub_sym = self.local_type(sub)
        if sub_sym is None:
            return None
        if base_name(sub) == base_name(sup):
            return True
        chain = self.supertypes(sub_sym)
        names = {t.name for t in chain.types}
        local_ifaces, external_ifaces = self.all_interfaces(sub_sym)
        names.update(t.name for t in local_ifaces)
        names.update(external_ifaces)
        if chain.external is not None:
            names.add(chain.external)
        if base_name(sup) in names:
            return True
        if chain.external is not None or chain.cycle:
            return None
        return False

    def find_members(
        self,
        type_sym: Symbol,
        name: str,
        kinds: FrozenSet[SymbolKind],
    ) -> MemberLookup:
        """Look *name* up in *type_sym*, its superclasses and interfaces."""
        if type_sym.kind is SymbolKind.EXTERNAL_TYPE:
            return MemberLookup(opaque=True, reason=f"member of external type {type_sym.name}")
        if type_sym.members is not None:
            found = type_sym.members.lookup_local(name, kinds)
            if found:
                return MemberLookup(tuple(found), type_sym)
        chain = self.supertypes(type_sym)
        for sup in chain.types:
            if sup.members is None:
                continue
            found = sup.members.lookup_local(name, kinds)
            if found:
                return MemberLookup(tuple(found), sup)
        local_ifaces, external_ifaces = self.all_interfaces(type_sym)
        for iface in local_ifaces:
            if iface.members is None:
                continue
            found = iface.members.lookup_local(name, kinds)
            if found:
                return MemberLookup(tuple(found), iface)

        if chain.external is not None:
            return MemberLookup(opaque=True, reason=f"inherited from {chain.external}")
        if chain.cycle:
            return MemberLookup(opaque=True, reason="inheritance cycle")
        if external_ifaces and _is_constant_name(name) and SymbolKind.FIELD in kinds:
            return MemberLookup(opaque=True, reason=f"constant of {external_ifaces[0]}")
        if SymbolKind.METHOD in kinds and name in OBJECT_METHODS:
            return MemberLookup(opaque=True, reason="java.lang.Object member")
        return MemberLookup()

    def iter_symbols(self) -> Iterator[Symbol]:
        stack = [self.file_scope]
        while stack:
            scope = stack.pop()
            yield from scope.symbols()
            stack.extend(scope.children)

    def freeze(self) -> None:
        self.file_scope.freeze()


# ============================================================================
# PART 4 — TWO-PASS BUILDER
# ============================================================================


def _type_string(t: Optional[A.TypeRef], extra_dims: int = 0) -> Optional[str]:
    if t is None or t.name == "var":
        return None
    return t.simple_name + "[]" * (t.dims + extra_dims)


def _position(node: A.Node) -> Tuple[int, int]:
    return (node.span.line, node.span.column)


class SymbolTableBuilder:
    """Builds a :class:`SymbolTable` for one compilation unit."""

    def __init__(self, unit: A.CompilationUnit) -> None:
        self.unit = unit
        self.table = SymbolTable(unit)
        self._anonymous = 0

    def build(self) -> SymbolTable:
        table = self.table
        for imp in self.unit.imports:
            table.package_roots.add(imp.name.split(".", 1)[0])

        # pass 1: every type name, in any order
        for decl in self.unit.types:
            self._declare_type(decl, table.file_scope, owner=None)

        # pass 2: members, bodies, local and anonymous classes
        for decl in self.unit.types:
            self._populate_type(decl)

        self._register_externals()
        table.freeze()
        _log.debug(
            "symbol table: %d local types, %d external types",
            sum(len(v) for v in table.local_types.values()), len(table.externals),
        )
        return table

    # ── pass 1 ───────────────────────────────────────────────────────

    def _declare_type(
        self, decl: A.TypeDecl, scope: Scope, owner: Optional[Symbol],
    ) -> Symbol:
        modifiers = set(decl.modifiers)
        if owner is not None and (
            decl.kind is not A.TypeKind.CLASS
            or (owner.type_kind is A.TypeKind.INTERFACE)
        ):
            modifiers.add("static")
        superclass = decl.superclass.simple_name if decl.superclass else None
        if decl.kind is A.TypeKind.ENUM and superclass is None:
            superclass = "Enum"
        members = Scope(ScopeKind.TYPE, parent=scope, node=decl)
        sym = Symbol(
            name=decl.name,
            kind=SymbolKind.TYPE,
            scope=scope,
            type_name=decl.name,
            modifiers=frozenset(modifiers),
            node=decl,
            owner=owner,
            position=_position(decl),
            members=members,
            superclass=superclass,
            interfaces=tuple(t.simple_name for t in decl.interfaces),
            type_kind=decl.kind,
        )
        members.owner = sym
        scope.define(sym)
        self.table.scope_of[decl] = members
        self.table.symbol_of[decl] = sym
        self.table.local_types.setdefault(decl.name, []).append(sym)
        for member in decl.members:
            if isinstance(member, A.TypeDecl):
                self._declare_type(member, members, owner=sym)
        return sym

    # ── pass 2 ───────────────────────────────────────────────────────

    def _populate_type(self, decl: A.TypeDecl) -> None:
        sym = self.table.symbol_of[decl]
        self._populate_members(decl.members, self.table.scope_of[decl], sym)

    def _populate_members(
        self, members: Iterable[A.Node], scope: Scope, type_sym: Symbol,
    ) -> None:
        interface = type_sym.type_kind is A.TypeKind.INTERFACE
        for member in members:
            if isinstance(member, A.FieldDecl):
                mods = set(member.modifiers)
                if interface:
                    mods.update(("public", "static", "final"))
                for d in member.declarators:
                    s = Symbol(
                        name=d.name,
                        kind=SymbolKind.FIELD,
                        scope=scope,
                        type_name=_type_string(member.type, d.dims),
                        modifiers=frozenset(mods),
                        node=d,
                        owner=type_sym,
                        position=_position(d),
                        has_initializer=d.init is not None,
                    )
                    scope.define(s)
                    self.table.symbol_of[d] = s
                    if d.init is not None:
                        self._visit(d.init, scope)
            elif isinstance(member, A.MethodDecl):
                mods = set(member.modifiers)
                if interface:
                    mods.add("public")
                    if member.body is None:
                        mods.add("abstract")
                s = Symbol(
                    name=member.name,
                    kind=SymbolKind.METHOD,
                    scope=scope,
                    type_name=_type_string(member.return_type),
                    modifiers=frozenset(mods),
                    node=member,
                    owner=type_sym,
                    params=tuple(_type_string(p.type) for p in member.params),
                    varargs=bool(member.params) and member.params[-1].varargs,
                    position=_position(member),
                )
                scope.define(s)
                self.table.symbol_of[member] = s
                self._populate_callable(member, scope, member.is_static)
            elif isinstance(member, A.ConstructorDecl):
                s = Symbol(
                    name=member.name,
                    kind=SymbolKind.CONSTRUCTOR,
                    scope=scope,
                    type_name=type_sym.name,
                    modifiers=member.modifiers,
                    node=member,
                    owner=type_sym,
                    params=tuple(_type_string(p.type) for p in member.params),
                    varargs=bool(member.params) and member.params[-1].varargs,
                    position=_position(member),
                )
                scope.define(s)
                self.table.symbol_of[member] = s
                self._populate_callable(member, scope, False)
            elif isinstance(member, A.Initializer):
                mscope = Scope(ScopeKind.METHOD, parent=scope, node=member,
                               static=member.static)
                self.table.scope_of[member] = mscope
                self._block(member.body, mscope)
            elif isinstance(member, A.EnumConstant):
                s = Symbol(
                    name=member.name,
                    kind=SymbolKind.ENUM_CONSTANT,
                    scope=scope,
                    type_name=type_sym.name,
                    modifiers=frozenset({"public", "static", "final"}),
                    node=member,
                    owner=type_sym,
                    position=_position(member),
                    has_initializer=True,
                )
                scope.define(s)
                self.table.symbol_of[member] = s
                for arg in member.args:
                    self._visit(arg, scope)
                if member.body is not None:
                    self._anonymous_type(member, member.body, type_sym.name, scope, type_sym)
            elif isinstance(member, A.TypeDecl):
                self._populate_type(member)

    def _populate_callable(self, node: A.Node, type_scope: Scope, static: bool) -> None:
        mscope = Scope(ScopeKind.METHOD, parent=type_scope, node=node, static=static)
        self.table.scope_of[node] = mscope
        for p in node.params:  # type: ignore[attr-defined]
            self._define_param(p, mscope)
        body = node.body  # type: ignore[attr-defined]
        if body is not None:
            self._block(body, mscope)

    def _define_param(self, p: A.Param, scope: Scope) -> None:
        s = Symbol(
            name=p.name,
            kind=SymbolKind.PARAMETER,
            scope=scope,
            type_name=_type_string(p.type),
            modifiers=p.modifiers,
            node=p,
            owner=self._enclosing_type(scope),
            position=_position(p),
            has_initializer=True,
        )
        scope.define(s)
        self.table.symbol_of[p] = s

    def _define_local(self, d: A.VarDeclarator, t: A.TypeRef,
                      modifiers: FrozenSet[str], scope: Scope) -> None:
        s = Symbol(
            name=d.name,
            kind=SymbolKind.LOCAL,
            scope=scope,
            type_name=_type_string(t, d.dims),
            modifiers=modifiers,
            node=d,
            owner=self._enclosing_type(scope),
            position=_position(d),
            has_initializer=d.init is not None,
        )
        scope.define(s)
        self.table.symbol_of[d] = s

    @staticmethod
    def _enclosing_type(scope: Scope) -> Optional[Symbol]:
        type_scope = scope.enclosing(ScopeKind.TYPE)
        return type_scope.owner if type_scope is not None else None

    def _anonymous_type(
        self, node: A.Node, members: Tuple[A.Node, ...], supertype: str,
        scope: Scope, owner: Optional[Symbol],
    ) -> None:
        self._anonymous += 1
        tscope = Scope(ScopeKind.TYPE, parent=scope, node=node)
        local = self.table.local_type(supertype)
        is_iface = local is not None and local.type_kind is A.TypeKind.INTERFACE
        sym = Symbol(
            name=f"<anonymous {supertype} #{self._anonymous}>",
            kind=SymbolKind.TYPE,
            scope=scope,
            type_name=supertype,
            node=node,
            owner=owner,
            position=_position(node),
            members=tscope,
            superclass=None if is_iface else supertype,
            interfaces=(supertype,) if is_iface else (),
            type_kind=A.TypeKind.CLASS,
            anonymous=True,
        )
        tscope.owner = sym
        scope.define(sym)
        self.table.scope_of[node] = tscope
        self._populate_members(members, tscope, sym)

    # ── statements and expressions ───────────────────────────────────

    def _block(self, block: A.Block, parent: Scope) -> None:
        scope = Scope(ScopeKind.BLOCK, parent=parent, node=block)
        self.table.scope_of[block] = scope
        for stmt in block.statements:
            self._visit(stmt, scope)

    def _visit(self, node: A.Node, scope: Scope) -> None:
        if isinstance(node, A.Block):
            self._block(node, scope)
        elif isinstance(node, A.LocalVarDecl):
            for d in node.declarators:
                if d.init is not None:
                    self._visit(d.init, scope)
                self._define_local(d, node.type, node.modifiers, scope)
        elif isinstance(node, A.LocalClassDecl):
            owner = self._enclosing_type(scope)
            self._declare_type(node.decl, scope, owner=owner)
            self._populate_type(node.decl)
        elif isinstance(node, A.ForStmt):
            fscope = Scope(ScopeKind.BLOCK, parent=scope, node=node)
            self.table.scope_of[node] = fscope
            for child in children(node):
                self._visit(child, fscope)
        elif isinstance(node, A.ForEachStmt):
            self._visit(node.iterable, scope)
            fscope = Scope(ScopeKind.BLOCK, parent=scope, node=node)
            self.table.scope_of[node] = fscope
            self._define_param(node.var, fscope)
            self._visit(node.body, fscope)
        elif isinstance(node, A.TryStmt):
            rscope = Scope(ScopeKind.BLOCK, parent=scope, node=node)
            self.table.scope_of[node] = rscope
            for res in node.resources:
                self._visit(res, rscope)
            self._block(node.body, rscope)
            for clause in node.catches:
                cscope = Scope(ScopeKind.BLOCK, parent=scope, node=clause)
                self.table.scope_of[clause] = cscope
                s = Symbol(
                    name=clause.name,
                    kind=SymbolKind.PARAMETER,
                    scope=cscope,
                    type_name=_type_string(clause.types[0]) if len(clause.types) == 1 else None,
                    node=clause,
                    owner=self._enclosing_type(scope),
                    position=_position(clause),
                    has_initializer=True,
                )
                cscope.define(s)
                self.table.symbol_of[clause] = s
                self._block(clause.body, cscope)
            if node.finally_block is not None:
                self._block(node.finally_block, scope)
        elif isinstance(node, (A.SwitchStmt, A.SwitchExpr)):
            self._visit(node.selector, scope)
            sscope = Scope(ScopeKind.BLOCK, parent=scope, node=node)
            self.table.scope_of[node] = sscope
            for case in node.cases:
                for child in children(case):
                    self._visit(child, sscope)
        elif isinstance(node, A.Lambda):
            lscope = Scope(ScopeKind.BLOCK, parent=scope, node=node)
            self.table.scope_of[node] = lscope
            for p in node.params:
                self._define_param(p, lscope)
            self._visit(node.body, lscope)
        elif isinstance(node, A.InstanceOf):
            self._visit(node.expr, scope)
            if node.binding is not None:
                s = Symbol(
                    name=node.binding,
                    kind=SymbolKind.LOCAL,
                    scope=scope,
                    type_name=_type_string(node.type),
                    node=node,
                    owner=self._enclosing_type(scope),
                    position=_position(node),
                    has_initializer=True,
                )
                scope.define(s)
                self.table.symbol_of[node] = s
        elif isinstance(node, A.NewObject):
            for arg in node.args:
                self._visit(arg, scope)
            if node.body is not None:
                self._anonymous_type(
                    node, node.body, node.type.simple_name, scope,
                    self._enclosing_type(scope),
                )
        else:
            for child in children(node):
                self._visit(child, scope)

    # ── externals ────────────────────────────────────────────────────

    def _register_externals(self) -> None:
        table = self.table
        names: List[str] = []
        for imp in self.unit.imports:
            if not imp.wildcard and not imp.static:
                names.append(imp.simple_name)
        for ref in find_all(self.unit, A.TypeRef):
            if ref.name in ("?", "var") or ref.name in PRIMITIVE_TYPES:
                continue
            names.append(ref.simple_name)
        for name in names:
            if name in table.local_types or name in table.externals:
                continue
            sym = Symbol(
                name=name,
                kind=SymbolKind.EXTERNAL_TYPE,
                scope=table.file_scope,
                type_name=name,
            )
            table.file_scope.define(sym)
            table.externals[name] = sym


def build_symbol_table(unit: A.CompilationUnit) -> SymbolTable:
    """Run both builder passes over *unit* and return the frozen table."""
    return SymbolTableBuilder(unit).build()


def is_known_external_type(name: str) -> bool:
    return name in JAVA_LANG_CLASSES


__all__ = [
    "SymbolKind",
    "Symbol",
    "ScopeKind",
    "Scope",
    "SupertypeChain",
    "MemberLookup",
    "SymbolTable",
    "SymbolTableBuilder",
    "build_symbol_table",
    "is_known_external_type",
    "VARIABLE_KINDS",
    "MEMBER_VARIABLE_KINDS",
    "TYPE_KINDS",
    "METHOD_KINDS",
]
