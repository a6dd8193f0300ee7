# tests/test_symbols.py
"""Tests for the two-pass symbol table builder."""

import pytest

from javacheck import ast as A
from javacheck.errors import InternalFault
from javacheck.parser import parse
from javacheck.symbols import (
    Scope,
    ScopeKind,
    Symbol,
    SymbolKind,
    build_symbol_table,
)
from javacheck.visitor import find_all
from tests.conftest import CLEAN_UNIT, NON_STATIC_VARIABLE, VISIT_PRIVATE


def table_for(text):
    unit = parse(text).unit
    return unit, build_symbol_table(unit)


class TestTypePass:

    def test_forward_superclass_reference(self):
        _, table = table_for(
            "class C extends B {}\nclass B extends A {}\nclass A {}"
        )
        chain = table.supertypes(table.local_type("C"))
        assert [t.name for t in chain.types] == ["B", "A"]
        assert chain.external is None
        assert not chain.cycle

    def test_inheritance_cycle_ends_the_walk(self):
        _, table = table_for("class A extends B {}\nclass B extends A {}")
        chain = table.supertypes(table.local_type("A"))
        assert chain.cycle

    def test_external_superclass(self):
        _, table = table_for("class Window extends JFrame {}")
        chain = table.supertypes(table.local_type("Window"))
        assert chain.external == "JFrame"
        assert not table.is_fully_local(table.local_type("Window"))

    def test_member_types_are_registered(self):
        _, table = table_for("class Outer { static class Inner {} interface Cb {} }")
        inner = table.local_type("Inner")
        assert inner.owner.name == "Outer"
        assert inner.is_static
        assert table.local_type("Cb").is_static

    def test_enum_extends_enum(self):
        _, table = table_for("enum Color { RED }")
        assert table.local_type("Color").superclass == "Enum"


class TestMemberPass:

    def test_fields_and_methods(self):
        _, table = table_for(CLEAN_UNIT)
        inv = table.local_type("Inventory")
        names = sorted(s.name for s in inv.members.symbols())
        assert names == ["Inventory", "add", "items", "limit", "main", "size"]
        add = inv.members.lookup_local("add")[0]
        assert add.kind is SymbolKind.METHOD
        assert add.type_name == "boolean"
        assert add.params == ("String",)

    def test_instance_field_is_not_static(self):
        _, table = table_for(NON_STATIC_VARIABLE)
        cells = table.local_type("Slide").members.lookup_local("cells")[0]
        assert cells.kind is SymbolKind.FIELD
        assert not cells.is_static
        assert cells.has_initializer

    def test_interface_fields_are_constants(self):
        _, table = table_for("interface Limits { int MAX = 3; }")
        field = table.local_type("Limits").members.lookup_local("MAX")[0]
        assert field.is_static
        assert "final" in field.modifiers

    def test_missing_return_type_has_no_type_name(self):
        _, table = table_for("class A { public f() { } }")
        method = table.local_type("A").members.lookup_local("f")[0]
        assert method.type_name is None

    def test_locals_and_parameters(self):
        unit, table = table_for("class A { void f(int n) { int x; int y = n; } }")
        method = unit.types[0].members[0]
        params = table.scope_of[method].lookup_local("n")
        assert params[0].kind is SymbolKind.PARAMETER
        assert params[0].has_initializer
        block = table.scope_of[method.body]
        x, y = block.lookup_local("x")[0], block.lookup_local("y")[0]
        assert x.kind is SymbolKind.LOCAL
        assert not x.has_initializer
        assert y.has_initializer

    def test_local_not_visible_before_declaration(self):
        unit, table = table_for("class A { void f() {\n int a = 1;\n int b = 2;\n } }")
        block = table.scope_of[unit.types[0].members[0].body]
        assert block.lookup_local("b", before=(2, 1)) == []
        assert block.lookup_local("a", before=(3, 1))

    def test_anonymous_class(self):
        _, table = table_for(
            "class A { void f() { Runnable r = new Runnable() { public void run() {} }; } }"
        )
        anon = [s for s in table.iter_symbols() if s.kind is SymbolKind.TYPE and s.anonymous]
        assert len(anon) == 1
        assert anon[0].superclass == "Runnable"
        assert anon[0].members.lookup_local("run")


class TestLookup:

    def test_private_field_found_in_superclass(self):
        _, table = table_for(VISIT_PRIVATE)
        found = table.find_members(
            table.local_type("TeamLeader"), "rateOfPay", frozenset({SymbolKind.FIELD}),
        )
        assert found.found
        assert found.declaring.name == "ProductionWorker"
        assert found.symbols[0].is_private

    def test_member_of_external_type_is_opaque(self):
        _, table = table_for("class A { String s; }")
        found = table.find_members(
            table.type_named("String"), "length", frozenset({SymbolKind.METHOD}),
        )
        assert found.opaque
        assert not found.found

    def test_object_methods_are_opaque(self):
        _, table = table_for("class A {}")
        found = table.find_members(
            table.local_type("A"), "toString", frozenset({SymbolKind.METHOD}),
        )
        assert found.opaque

    def test_unknown_member(self):
        _, table = table_for("class A {}")
        found = table.find_members(
            table.local_type("A"), "nothing", frozenset({SymbolKind.FIELD}),
        )
        assert not found.found
        assert not found.opaque

    def test_is_subtype(self):
        _, table = table_for(VISIT_PRIVATE)
        assert table.is_subtype("TeamLeader", "ProductionWorker") is True
        assert table.is_subtype("ProductionWorker", "TeamLeader") is False
        assert table.is_subtype("String", "Object") is None


class TestExternals:

    def test_imported_and_referenced_types(self):
        _, table = table_for(CLEAN_UNIT)
        assert {"ArrayList", "List", "String"} <= set(table.externals)
        assert table.type_named("List").is_external
        assert "Inventory" not in table.externals


class TestFrozenScopes:

    def test_define_after_build_is_an_internal_fault(self):
        _, table = table_for("class A {}")
        scope = table.file_scope
        sym = Symbol(name="B", kind=SymbolKind.TYPE, scope=scope)
        with pytest.raises(InternalFault):
            scope.define(sym)

    def test_define_outside_declaring_scope(self):
        outer = Scope(ScopeKind.FILE)
        inner = Scope(ScopeKind.BLOCK, parent=outer)
        with pytest.raises(InternalFault):
            inner.define(Symbol(name="x", kind=SymbolKind.LOCAL, scope=outer))

    def test_every_declaration_has_a_symbol(self):
        unit, table = table_for(CLEAN_UNIT)
        for decl in find_all(unit, A.MethodDecl, A.ConstructorDecl, A.VarDeclarator, A.Param):
            assert decl in table.symbol_of
