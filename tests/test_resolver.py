# tests/test_resolver.py
"""Tests for name binding, expression typing and reference contexts."""

import pytest

from javacheck import ast as A
from javacheck.errors import ErrorPhase
from javacheck.resolver import (
    REFERENCE_NODES,
    ExternalOpaque,
    Resolved,
    Unresolved,
    resolve,
)
from javacheck.parser import parse
from javacheck.symbols import SymbolKind
from javacheck.visitor import find_all
from tests.conftest import (
    CLEAN_UNIT,
    DEFECT_SAMPLES,
    LOSSY_CONVERSION,
    NON_STATIC_METHOD,
    NON_STATIC_VARIABLE,
    NON_STATIC_VARIABLE_FIXED,
    UNDECLARED_VARIABLE,
    VISIT_PRIVATE,
    resolve_source,
)


def names(resolved, name):
    return [n for n in find_all(resolved.unit, A.Name) if n.name == name]


def calls(resolved, name):
    return [n for n in find_all(resolved.unit, A.MethodCall) if n.name == name]


class TestTotality:

    @pytest.mark.parametrize("sample", [CLEAN_UNIT] + [s for s, _ in DEFECT_SAMPLES])
    def test_every_reference_is_bound(self, sample):
        resolved = resolve_source(sample)
        for node in find_all(resolved.unit, *REFERENCE_NODES):
            assert isinstance(
                resolved.binding(node), (Resolved, Unresolved, ExternalOpaque),
            )

    def test_references_come_in_source_order(self):
        resolved = resolve_source(CLEAN_UNIT)
        positions = [(n.span.line, n.span.column) for n, _ in resolved.references()]
        assert positions == sorted(positions)

    def test_table_is_not_modified(self):
        unit = parse(CLEAN_UNIT).unit
        resolved = resolve(unit)
        before = sorted(s.name for s in resolved.table.iter_symbols())
        resolve(unit, resolved.table)
        assert sorted(s.name for s in resolved.table.iter_symbols()) == before


class TestBinding:

    def test_library_type_is_opaque(self):
        resolved = resolve_source(NON_STATIC_VARIABLE)
        system = resolved.binding(names(resolved, "System")[0])
        assert isinstance(system, ExternalOpaque)
        assert system.denotes_type

    def test_library_call_is_opaque(self):
        resolved = resolve_source(NON_STATIC_VARIABLE)
        assert isinstance(resolved.binding(calls(resolved, "println")[0]), ExternalOpaque)

    def test_instance_field_from_static_method(self):
        resolved = resolve_source(NON_STATIC_VARIABLE)
        binding = resolved.binding(names(resolved, "cells")[0])
        assert isinstance(binding, Resolved)
        assert binding.symbol.kind is SymbolKind.FIELD
        assert binding.from_static

    def test_static_field_from_static_method(self):
        resolved = resolve_source(NON_STATIC_VARIABLE_FIXED)
        binding = resolved.binding(names(resolved, "cells")[0])
        assert binding.symbol.is_static

    def test_instance_method_from_static_method(self):
        resolved = resolve_source(NON_STATIC_METHOD)
        binding = resolved.binding(calls(resolved, "square")[0])
        assert isinstance(binding, Resolved)
        assert binding.symbol.kind is SymbolKind.METHOD
        assert binding.from_static

    def test_private_field_of_superclass(self):
        resolved = resolve_source(VISIT_PRIVATE)
        ref = names(resolved, "rateOfPay")[-1]
        binding = resolved.binding(ref)
        assert binding.symbol.is_private
        assert binding.via.name == "ProductionWorker"
        assert resolved.context(ref).type_sym.name == "TeamLeader"

    def test_undeclared_name(self):
        resolved = resolve_source(UNDECLARED_VARIABLE)
        binding = resolved.binding(names(resolved, "PI_VALUE")[0])
        assert isinstance(binding, Unresolved)
        assert resolved.issues[0].phase is ErrorPhase.RESOLUTION
        assert "PI_VALUE" in resolved.issues[0].message

    def test_parameter_shadows_field(self):
        resolved = resolve_source(CLEAN_UNIT)
        limits = [resolved.binding(n) for n in names(resolved, "limit")]
        kinds = {b.symbol.kind for b in limits}
        assert SymbolKind.PARAMETER in kinds
        assert SymbolKind.FIELD in kinds

    def test_this_qualified_field(self):
        resolved = resolve_source(CLEAN_UNIT)
        access = [n for n in find_all(resolved.unit, A.FieldAccess) if n.name == "limit"][0]
        assert resolved.binding(access).symbol.kind is SymbolKind.FIELD

    def test_static_import(self):
        resolved = resolve_source(
            "import static java.lang.Math.PI;\nclass A { double f() { return PI; } }"
        )
        binding = resolved.binding(names(resolved, "PI")[0])
        assert isinstance(binding, ExternalOpaque)
        assert binding.reason == "static import"

    def test_inherited_from_external_superclass(self):
        resolved = resolve_source(
            'class Win extends JFrame { void f() { setTitle("x"); } }'
        )
        assert isinstance(resolved.binding(calls(resolved, "setTitle")[0]), ExternalOpaque)
        assert resolved.issues == []

    def test_overload_selection(self):
        resolved = resolve_source(
            "class A {\n"
            "  void f(int x) {}\n"
            "  void f(String s) {}\n"
            '  void g() { f("x"); }\n'
            "}"
        )
        binding = resolved.binding(calls(resolved, "f")[0])
        assert binding.symbol.params == ("String",)
        assert len(binding.candidates) == 2


class TestTyping:

    def test_numeric_promotion(self):
        resolved = resolve_source(LOSSY_CONVERSION)
        division = [b for b in find_all(resolved.unit, A.Binary) if b.op == "/"][0]
        assert resolved.type_of(division) == "double"
        assert resolved.type_of(division.left) == "int"

    def test_string_concatenation(self):
        resolved = resolve_source('class A { String f(int n) { return "n=" + n; } }')
        concat = next(find_all(resolved.unit, A.Binary))
        assert resolved.type_of(concat) == "String"

    def test_array_length(self):
        resolved = resolve_source("class A { int f(int[] xs) { return xs.length; } }")
        access = next(find_all(resolved.unit, A.FieldAccess))
        assert resolved.type_of(access) == "int"

    def test_array_element(self):
        resolved = resolve_source("class A { String f(String[] xs) { return xs[0]; } }")
        access = next(find_all(resolved.unit, A.ArrayAccess))
        assert resolved.type_of(access) == "String"

    def test_var_local_is_inferred(self):
        resolved = resolve_source("class A { void f() { var n = 1.5; double d = n; } }")
        ref = names(resolved, "n")[0]
        assert resolved.type_of(ref) == "double"


class TestContexts:

    def test_return_statement_context(self):
        resolved = resolve_source(LOSSY_CONVERSION)
        ret = next(find_all(resolved.unit, A.ReturnStmt))
        ctx = resolved.context(ret)
        assert isinstance(ctx.callable, A.MethodDecl)
        assert ctx.callable.name == "mean"
        assert ctx.static

    def test_inheritance_cycle_reported_once(self):
        resolved = resolve_source("class A extends B {}\nclass B extends A {}")
        assert len(resolved.cycles) == 1
        sym, ring = resolved.cycles[0]
        assert sym.name == "A"
        assert set(ring) == {"A", "B"}
