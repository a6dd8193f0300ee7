# tests/test_reporter.py
"""Tests for conflict resolution, ordering, verdicts and report rendering."""

import io
import json

from javacheck.diagnostics import Category, Diagnostic
from javacheck.errors import SourceSpan
from javacheck.reporter import (
    CLEAN,
    DEFAULT_PRIORITY,
    INCONCLUSIVE,
    BatchSummary,
    Reporter,
    order_diagnostics,
    rank,
    render_text,
    resolve_conflicts,
    verdict,
    write_reports,
)


def diag(category, line=1, column=1, anchor=None, message="m"):
    return Diagnostic(
        category=category,
        message=message,
        span=SourceSpan(line, column),
        anchor=anchor,
    )


class TestConflicts:

    def test_missing_return_type_beats_constructor_name(self):
        decl = object()
        kept = resolve_conflicts([
            diag(Category.ILLEGAL_CONSTRUCTOR_NAME, anchor=decl),
            diag(Category.MISSING_RETURN_TYPE, anchor=decl),
        ])
        assert [d.category for d in kept] == [Category.MISSING_RETURN_TYPE]

    def test_custom_priority(self):
        decl = object()
        priority = (Category.ILLEGAL_CONSTRUCTOR_NAME, Category.MISSING_RETURN_TYPE)
        kept = resolve_conflicts([
            diag(Category.MISSING_RETURN_TYPE, anchor=decl),
            diag(Category.ILLEGAL_CONSTRUCTOR_NAME, anchor=decl),
        ], priority)
        assert [d.category for d in kept] == [Category.ILLEGAL_CONSTRUCTOR_NAME]

    def test_return_group(self):
        decl = object()
        kept = resolve_conflicts([
            diag(Category.INCOMPATIBLE_RETURN_TYPES, anchor=decl),
            diag(Category.MISSING_RETURN_VALUE, anchor=decl),
        ])
        assert [d.category for d in kept] == [Category.MISSING_RETURN_VALUE]

    def test_different_declarations_do_not_conflict(self):
        kept = resolve_conflicts([
            diag(Category.MISSING_RETURN_TYPE, anchor=object()),
            diag(Category.ILLEGAL_CONSTRUCTOR_NAME, anchor=object()),
        ])
        assert len(kept) == 2

    def test_groups_are_independent(self):
        decl = object()
        kept = resolve_conflicts([
            diag(Category.MISSING_RETURN_TYPE, anchor=decl),
            diag(Category.MISSING_RETURN_VALUE, anchor=decl),
        ])
        assert len(kept) == 2

    def test_unanchored_and_ungrouped_pass_through(self):
        items = [
            diag(Category.MISSING_RETURN_TYPE),
            diag(Category.MISSING_VOID),
            diag(Category.LOSSY_CONVERSION, anchor=object()),
        ]
        assert resolve_conflicts(items) == items

    def test_rank_falls_back_to_taxonomy_order(self):
        assert rank(Category.MISSING_RETURN_TYPE) == 0
        assert rank(Category.VISIT_PRIVATE) < rank(Category.LOSSY_CONVERSION)
        assert rank(Category.LOSSY_CONVERSION) >= len(DEFAULT_PRIORITY)


class TestOrdering:

    def test_sorted_by_position_then_category(self):
        items = [
            diag(Category.LOSSY_CONVERSION, line=3),
            diag(Category.VISIT_PRIVATE, line=1, column=5),
            diag(Category.BAD_INVOCATION, line=1, column=5),
        ]
        ordered = order_diagnostics(items)
        assert [d.category for d in ordered] == [
            Category.BAD_INVOCATION,
            Category.VISIT_PRIVATE,
            Category.LOSSY_CONVERSION,
        ]

    def test_duplicates_are_collapsed(self):
        items = [diag(Category.MISSING_VOID, line=2)] * 3
        assert len(order_diagnostics(items)) == 1

    def test_same_place_different_messages_are_kept(self):
        items = [
            diag(Category.MISSING_VOID, message="a"),
            diag(Category.MISSING_VOID, message="b"),
        ]
        assert len(order_diagnostics(items)) == 2


class TestVerdict:

    def test_clean(self):
        assert verdict([]) == CLEAN

    def test_strongest_category(self):
        items = [diag(Category.LOSSY_CONVERSION), diag(Category.MISSING_VOID)]
        assert verdict(items) == "missing-void"

    def test_inconclusive_on_fault(self):
        items = [diag(Category.MISSING_VOID), diag(Category.INTERNAL_FAULT)]
        assert verdict(items) == INCONCLUSIVE

    def test_inconclusive_flag(self):
        assert verdict([], inconclusive=True) == INCONCLUSIVE


class TestUnitReport:

    def build(self):
        return Reporter().build("Test.java", [
            diag(Category.LOSSY_CONVERSION, line=4, column=9, message="possible lossy conversion"),
        ])

    def test_json(self):
        data = json.loads(self.build().to_json_str())
        assert data["unit"] == "Test.java"
        assert data["verdict"] == "lossy-conversion"
        assert data["diagnostics"][0]["line"] == 4
        assert "anchor" not in data["diagnostics"][0]

    def test_gcc_format(self):
        assert self.build().to_gcc_format() == (
            "Test.java:4:9: error: possible lossy conversion [lossy-conversion]"
        )

    def test_plain_text_equals_gcc_format(self):
        report = self.build()
        assert render_text(report, colour=False) == report.to_gcc_format()

    def test_coloured_text_keeps_content(self):
        text = render_text(self.build(), colour=True)
        assert "possible lossy conversion" in text
        assert "[lossy-conversion]" in text

    def test_summary_line(self):
        assert self.build().summary_line() == "Test.java: lossy-conversion (1 diagnostic)"

    def test_has(self):
        report = self.build()
        assert report.has(Category.LOSSY_CONVERSION)
        assert not report.inconclusive

    def test_write_reports_formats(self):
        report = self.build()
        for fmt, expected in (
            ("summary", "Test.java: lossy-conversion (1 diagnostic)\n"),
            ("text", report.to_gcc_format() + "\n"),
        ):
            stream = io.StringIO()
            write_reports([report], fmt, stream)
            assert stream.getvalue() == expected
        stream = io.StringIO()
        write_reports([report], "json", stream)
        assert json.loads(stream.getvalue())["verdict"] == "lossy-conversion"

    def test_clean_report_writes_no_text(self):
        stream = io.StringIO()
        write_reports([Reporter().build("A.java", [])], "text", stream)
        assert stream.getvalue() == ""


class TestBatchSummary:

    def test_counts(self):
        reporter = Reporter()
        reports = [
            reporter.build("A.java", []),
            reporter.build("B.java", [diag(Category.MISSING_VOID)]),
            reporter.build("C.java", [diag(Category.INTERNAL_FAULT)]),
        ]
        summary = BatchSummary.of(reports, elapsed_s=1.0)
        assert summary.units == 3
        assert summary.clean == 1
        assert summary.inconclusive == 1
        assert summary.by_category["missing-void"] == 1
        data = summary.to_dict()
        assert data["verdicts"] == {"clean": 1, "inconclusive": 1, "missing-void": 1}

    def test_text(self):
        summary = BatchSummary.of([
            Reporter().build("B.java", [diag(Category.MISSING_VOID, line=2)]),
        ])
        text = summary.to_text()
        assert text.startswith("1 units analysed")
        assert "missing-void" in text
