# tests/test_checkers.py
"""Tests for the rule checkers, the registry and the runner."""

from typing import ClassVar, FrozenSet

import pytest

from javacheck import ast as A
from javacheck.checkers import (
    Checker,
    CheckerRegistry,
    CheckerRunner,
    LossyConversionChecker,
    VisitPrivateChecker,
    can_complete_normally,
    default_registry,
)
from javacheck.diagnostics import Category, Confidence, SuppressionManager
from javacheck.parser import parse
from javacheck.visitor import find_all
from tests.conftest import (
    BAD_INVOCATION,
    DEFECT_SAMPLES,
    ILLEGAL_CONSTRUCTOR,
    ILLEGAL_CONSTRUCTOR_FIXED,
    INCOMPATIBLE_RETURN,
    LOSSY_CONVERSION,
    MISSING_RETURN_TYPE,
    MISSING_RETURN_VALUE,
    MISSING_VOID,
    NON_STATIC_METHOD,
    NON_STATIC_VARIABLE,
    NON_STATIC_VARIABLE_FIXED,
    STRING_INDEX,
    UNDECLARED_VARIABLE,
    UNINITIALIZED_LOCAL,
    VISIT_PRIVATE,
    resolve_source,
    run_rules,
)


def cats(diags):
    return [d.category for d in diags]


def body_of(source):
    """Body of the first method of ``class A``."""
    return parse("class A { int f(boolean c, int k) { %s } }" % source).unit.types[0].members[0].body


# ═══════════════════════════════════════════════════════════════════════════
#  SIGNATURE RULES
# ═══════════════════════════════════════════════════════════════════════════

class TestSignatureRules:

    def test_missing_return_type(self):
        diags = run_rules(MISSING_RETURN_TYPE, "missing-return-type")
        assert len(diags) == 1
        assert diags[0].symbol == "someName"
        assert (diags[0].span.line, diags[0].span.column) == (2, 12)

    def test_returning_method_is_not_missing_void(self):
        assert run_rules(MISSING_RETURN_TYPE, "missing-void") == []

    def test_missing_void(self):
        diags = run_rules(MISSING_VOID)
        assert cats(diags) == [Category.MISSING_VOID]
        assert diags[0].confidence is Confidence.HIGH

    def test_misnamed_constructor_is_seen_two_ways(self):
        diags = run_rules(ILLEGAL_CONSTRUCTOR, "illegal-constructor-name", "missing-void")
        assert set(cats(diags)) == {Category.ILLEGAL_CONSTRUCTOR_NAME, Category.MISSING_VOID}
        assert diags[0].anchor is diags[1].anchor
        assert "Bicycle" in diags[0].message

    def test_constructor_evidence_from_instantiation(self):
        diags = run_rules(
            "class Shop {\n"
            "    Item(int price) { }\n"
            "    void f() { Object o = new Item(3); }\n"
            "}\n",
            "illegal-constructor-name",
        )
        assert len(diags) == 1
        assert "new Item" in diags[0].message

    def test_constructor_name_finding_is_heuristic(self):
        diags = run_rules(ILLEGAL_CONSTRUCTOR, "illegal-constructor-name")
        assert diags[0].confidence is Confidence.LOW

    def test_real_constructor_is_quiet(self):
        assert run_rules(ILLEGAL_CONSTRUCTOR_FIXED) == []


# ═══════════════════════════════════════════════════════════════════════════
#  REFERENCE RULES
# ═══════════════════════════════════════════════════════════════════════════

class TestReferenceRules:

    def test_visit_private(self):
        diags = run_rules(VISIT_PRIVATE)
        assert cats(diags) == [Category.VISIT_PRIVATE]
        assert diags[0].symbol == "rateOfPay"
        assert diags[0].span.line == 15
        assert "TeamLeader" in diags[0].message

    def test_nested_class_shares_private_access(self):
        text = "class Outer {\n  private int x;\n  class Inner { int f() { return x; } }\n}\n"
        assert run_rules(text, "visit-private") == []

    def test_undeclared_variable(self):
        diags = run_rules(UNDECLARED_VARIABLE)
        assert cats(diags) == [Category.USE_UNDECLARED_VARIABLE]
        assert diags[0].symbol == "PI_VALUE"

    def test_names_inside_switch_expression_arms(self):
        text = (
            "class A {\n"
            "    int f(int d) {\n"
            "        return switch (d) {\n"
            "            case 1 -> limit;\n"
            "            default -> { int k = d; yield k; }\n"
            "        };\n"
            "    }\n"
            "}\n"
        )
        diags = run_rules(text, "use-undeclared-variable")
        assert len(diags) == 1
        assert diags[0].symbol == "limit"
        assert diags[0].span.line == 4

    def test_non_static_variable(self):
        diags = run_rules(NON_STATIC_VARIABLE)
        assert cats(diags) == [Category.ACCESS_NON_STATIC_VARIABLE]
        assert diags[0].symbol == "cells"

    def test_static_variable_is_fine(self):
        assert run_rules(NON_STATIC_VARIABLE_FIXED) == []

    def test_this_in_static_method(self):
        diags = run_rules(
            "class A { int x; static void f() { this.x = 1; } }",
            "access-non-static-variable",
        )
        assert len(diags) == 1
        assert diags[0].symbol == "this"

    def test_non_static_method(self):
        diags = run_rules(NON_STATIC_METHOD)
        assert cats(diags) == [Category.ACCESS_NON_STATIC_METHOD]
        assert diags[0].symbol == "square"


# ═══════════════════════════════════════════════════════════════════════════
#  VALUE AND CALL RULES
# ═══════════════════════════════════════════════════════════════════════════

class TestValueRules:

    def test_string_indexed_like_array(self):
        diags = run_rules(STRING_INDEX)
        assert cats(diags) == [Category.STRING_ACCESS_BY_INDEX]
        assert diags[0].span.line == 5

    def test_char_passed_to_parser(self):
        diags = run_rules(
            "class A { int f(String s) { return Integer.parseInt(s.charAt(0)); } }",
            "string-access-by-index",
        )
        assert len(diags) == 1
        assert diags[0].confidence is Confidence.MEDIUM

    def test_uninitialized_local(self):
        diags = run_rules(UNINITIALIZED_LOCAL)
        assert cats(diags) == [Category.USE_UNINITIALIZED_INSTANCE_VARIABLE]
        assert diags[0].symbol == "total"
        assert diags[0].span.line == 5

    def test_assigned_local_is_fine(self):
        text = "class A { int f() { int t; t = 2; return t; } }"
        assert run_rules(text, "use-uninitialized-instance-variable") == []

    def test_unassigned_instance_field(self):
        text = "class Counter {\n    int total;\n    void show() { System.out.println(total); }\n}\n"
        diags = run_rules(text, "use-uninitialized-instance-variable")
        assert len(diags) == 1
        assert diags[0].symbol == "total"

    def test_unassigned_static_field_is_fine(self):
        text = "class Counter {\n    static int total;\n    static void show() { System.out.println(total); }\n}\n"
        assert run_rules(text, "use-uninitialized-instance-variable") == []

    def test_lossy_conversion(self):
        diags = run_rules(LOSSY_CONVERSION)
        assert cats(diags) == [Category.LOSSY_CONVERSION]
        assert "from double to int" in diags[0].message

    @pytest.mark.parametrize("stmt", [
        "byte b = 10;",
        "int x = 0; x += 1.5;",
        "long l = 3;",
        "double d = 1;",
    ])
    def test_conversions_that_lose_nothing(self, stmt):
        assert run_rules("class A { void f() { %s } }" % stmt, "lossy-conversion") == []

    def test_lossy_return(self):
        diags = run_rules("class A { int f(long v) { return v; } }", "lossy-conversion")
        assert "from long to int" in diags[0].message

    def test_lossy_switch_expression_arm(self):
        text = (
            "class A {\n"
            "    int f(int d) {\n"
            "        int r = switch (d) {\n"
            "            case 1 -> 2.5;\n"
            "            default -> 2;\n"
            "        };\n"
            "        return r;\n"
            "    }\n"
            "}\n"
        )
        diags = run_rules(text, "lossy-conversion")
        assert len(diags) == 1
        assert "from double to int" in diags[0].message
        assert diags[0].span.line == 4

    def test_switch_expression_type_follows_its_arms(self):
        resolved = resolve_source(
            "class A { void f(int d) { double r = switch (d) { case 1 -> 2.5; default -> 2; }; } }"
        )
        switch = next(find_all(resolved.unit, A.SwitchExpr))
        assert resolved.type_of(switch) == "double"

    def test_bad_invocation(self):
        diags = run_rules(BAD_INVOCATION)
        assert cats(diags) == [Category.BAD_INVOCATION]
        assert diags[0].symbol == "greet"
        assert "required: String,int" in diags[0].message

    def test_constructor_arity(self):
        diags = run_rules(
            "class P { P(int a) { } static void f() { new P(); } }", "bad-invocation",
        )
        assert len(diags) == 1
        assert "constructor P" in diags[0].message

    def test_method_used_as_field(self):
        diags = run_rules(
            "class A { int f(String s) { return s.length; } }", "bad-invocation",
        )
        assert len(diags) == 1
        assert "needs parentheses" in diags[0].message

    def test_incompatible_return(self):
        diags = run_rules(INCOMPATIBLE_RETURN)
        assert cats(diags) == [Category.INCOMPATIBLE_RETURN_TYPES]
        assert "String cannot be converted to int" in diags[0].message

    def test_value_returned_from_void(self):
        diags = run_rules("class A { void f() { return 1; } }", "incompatible-return-types")
        assert diags[0].message == "incompatible types: unexpected return value"

    def test_missing_return_value(self):
        diags = run_rules(MISSING_RETURN_VALUE)
        assert cats(diags) == [Category.MISSING_RETURN_VALUE]
        assert "missing return statement" in diags[0].message
        assert diags[0].span.line == 8

    def test_infinite_loop_needs_no_return(self):
        text = "class A { int f() { while (true) { } } }"
        assert run_rules(text, "missing-return-value") == []

    def test_inheritance_cycle(self):
        diags = run_rules("class A extends B {}\nclass B extends A {}")
        assert cats(diags) == [Category.INHERITANCE_CYCLE]


class TestCompletion:

    @pytest.mark.parametrize("source,completes", [
        ("return 1;", False),
        ("if (c) return 1;", True),
        ("if (c) return 1; else return 2;", False),
        ("while (true) { }", False),
        ("while (true) { break; }", True),
        ("for (;;) { }", False),
        ("throw new RuntimeException();", False),
        ("switch (k) { case 1: return 1; default: return 2; }", False),
        ("switch (k) { case 1: return 1; }", True),
        ("try { return 1; } finally { }", False),
        ("try { return 1; } catch (Exception e) { }", True),
        ("out: while (true) { while (true) { break out; } }", True),
    ])
    def test_can_complete_normally(self, source, completes):
        assert can_complete_normally(body_of(source)) is completes


# ═══════════════════════════════════════════════════════════════════════════
#  REGISTRY AND RUNNER
# ═══════════════════════════════════════════════════════════════════════════

class _ExplodingChecker(Checker):
    name: ClassVar[str] = "exploding"
    description: ClassVar[str] = "always raises"
    categories: ClassVar[FrozenSet[Category]] = frozenset()

    def collect_evidence(self, ctx):
        pass

    def diagnose(self, ctx):
        raise RuntimeError("boom")


class TestRegistry:

    def test_default_registry_has_every_rule(self):
        registry = default_registry()
        assert len(registry.names) == 14
        assert "visit-private" in registry.names

    def test_default_registry_is_a_copy(self):
        registry = default_registry()
        registry.disable("visit-private")
        assert default_registry().is_enabled(VisitPrivateChecker)

    def test_disable_by_name_or_category(self):
        registry = default_registry()
        registry.disable("lossy-conversion")
        assert LossyConversionChecker not in registry.get_enabled()
        registry.enable("lossy-conversion")
        assert LossyConversionChecker in registry.get_enabled()

    def test_filter_by_category(self):
        found = default_registry().filter_by_category(Category.VISIT_PRIVATE)
        assert found == [VisitPrivateChecker]

    def test_disabled_rule_does_not_run(self):
        registry = default_registry()
        registry.disable("lossy-conversion")
        results = CheckerRunner(registry=registry).run(resolve_source(LOSSY_CONVERSION))
        assert results.diagnostics == []
        assert "lossy-conversion" not in results.checker_names


class TestRunner:

    def test_rule_isolation(self):
        assert cats(run_rules(LOSSY_CONVERSION, "lossy-conversion")) == [Category.LOSSY_CONVERSION]
        assert run_rules(LOSSY_CONVERSION, "visit-private") == []

    def test_unknown_rule_name_is_ignored(self):
        assert run_rules(LOSSY_CONVERSION, "no-such-rule") == []

    @pytest.mark.parametrize("sample,category", DEFECT_SAMPLES, ids=lambda v: getattr(v, "value", None))
    def test_parallel_matches_sequential(self, sample, category):
        resolved = resolve_source(sample)
        sequential = CheckerRunner().run(resolved).diagnostics
        parallel = CheckerRunner(parallel=True).run(resolved).diagnostics
        assert parallel == sequential
        assert category in cats(sequential)

    def test_faulting_checker_becomes_internal_fault(self):
        registry = CheckerRegistry()
        registry.register(_ExplodingChecker)
        registry.register(LossyConversionChecker)
        results = CheckerRunner(registry=registry).run(resolve_source(LOSSY_CONVERSION))
        assert results.faults == ["exploding"]
        assert results.inconclusive
        assert set(cats(results.diagnostics)) == {
            Category.INTERNAL_FAULT, Category.LOSSY_CONVERSION,
        }

    def test_summary(self):
        results = CheckerRunner().run(resolve_source(LOSSY_CONVERSION))
        text = results.summary()
        assert text.startswith("Checker run complete: 1 diagnostics")
        assert "lossy-conversion: 1 findings" in text


class TestSuppression:

    def test_comment_on_line_before(self):
        text = LOSSY_CONVERSION.replace(
            "        int result",
            "        // javacheck-suppress lossy-conversion\n        int result",
        )
        assert run_rules(text) == []

    def test_comment_on_same_line(self):
        text = LOSSY_CONVERSION.replace("/ 2.0;", "/ 2.0; // javacheck-suppress *")
        assert run_rules(text) == []

    def test_comment_for_other_category(self):
        text = LOSSY_CONVERSION.replace("/ 2.0;", "/ 2.0; // javacheck-suppress visit-private")
        assert cats(run_rules(text)) == [Category.LOSSY_CONVERSION]

    def test_global_suppression(self):
        runner = CheckerRunner(suppressions=SuppressionManager(["lossy-conversion"]))
        assert runner.run(resolve_source(LOSSY_CONVERSION)).diagnostics == []

    def test_alias_is_canonicalised(self):
        manager = SuppressionManager(["incomp-return-types"])
        assert manager.global_suppressions == frozenset({"incompatible-return-types"})
