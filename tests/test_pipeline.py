# tests/test_pipeline.py
"""End-to-end tests of the per-unit pipeline."""

import pytest

from javacheck.config import AnalysisConfig
from javacheck.diagnostics import Category
from javacheck.pipeline import analyze_file, analyze_source
from javacheck.reporter import CLEAN, INCONCLUSIVE
from tests.conftest import (
    CLEAN_UNIT,
    DEFECT_SAMPLES,
    ILLEGAL_CONSTRUCTOR,
    ILLEGAL_CONSTRUCTOR_FIXED,
    LOSSY_CONVERSION,
    MISSING_RETURN_TYPE,
    MISSING_RETURN_TYPE_FIXED,
    NON_STATIC_VARIABLE_FIXED,
    analyze,
    categories,
)


class TestDetection:

    @pytest.mark.parametrize(
        "sample,category", DEFECT_SAMPLES, ids=[c.value for _, c in DEFECT_SAMPLES],
    )
    def test_sample_verdict(self, sample, category):
        report = analyze(sample)
        assert report.has(category)
        assert report.verdict == category.value

    @pytest.mark.parametrize("sample", [
        CLEAN_UNIT,
        MISSING_RETURN_TYPE_FIXED,
        ILLEGAL_CONSTRUCTOR_FIXED,
        NON_STATIC_VARIABLE_FIXED,
    ])
    def test_corrected_units_are_clean(self, sample):
        report = analyze(sample)
        assert report.verdict == CLEAN
        assert report.diagnostics == []

    def test_one_signature_finding_per_declaration(self):
        report = analyze(ILLEGAL_CONSTRUCTOR)
        assert categories(report) == [Category.ILLEGAL_CONSTRUCTOR_NAME]

    def test_position_of_missing_return_type(self):
        diag = analyze(MISSING_RETURN_TYPE).diagnostics[0]
        assert (diag.span.line, diag.span.column) == (2, 12)


class TestDeterminism:

    def test_analysis_is_repeatable(self, pipeline):
        first = pipeline.analyze(LOSSY_CONVERSION, "A.java").report
        second = pipeline.analyze(LOSSY_CONVERSION, "A.java").report
        assert first.to_dict() == second.to_dict()

    def test_fresh_pipeline_matches_shared_one(self, pipeline):
        shared = pipeline.analyze(CLEAN_UNIT, "Sample.java").report
        assert shared.to_dict() == analyze(CLEAN_UNIT).to_dict()


class TestMalformedInput:

    def test_recovery_budget_exhausted(self):
        text = "class A {\n" + "    = = ;\n" * 5 + "}\n"
        report = analyze(text, AnalysisConfig(max_recoveries=2))
        assert report.verdict == INCONCLUSIVE
        assert report.has(Category.UNIT_TOO_MALFORMED)

    def test_time_budget_exhausted(self):
        report = analyze(CLEAN_UNIT, AnalysisConfig(time_budget=0.0))
        assert categories(report) == [Category.UNIT_TOO_MALFORMED]
        assert report.verdict == INCONCLUSIVE
        assert "time budget" in report.diagnostics[0].message

    def test_unparsable_region_is_reported(self):
        report = analyze("class A {\n    int = ;\n    void ok() { }\n}\n")
        assert report.has(Category.UNPARSABLE_REGION)
        assert report.verdict != INCONCLUSIVE

    def test_lexical_error_is_reported(self):
        report = analyze("class A {\n    int x = 1; #\n}\n")
        lexical = [d for d in report.diagnostics if d.category is Category.LEXICAL_ERROR]
        assert lexical and lexical[0].span.line == 2

    def test_empty_unit(self):
        report = analyze("")
        assert report.verdict == CLEAN


class TestConfiguration:

    def test_global_suppression(self):
        report = analyze(LOSSY_CONVERSION, AnalysisConfig(suppress=frozenset({"lossy-conversion"})))
        assert report.verdict == CLEAN

    def test_disabled_rule(self):
        config = AnalysisConfig(disabled_rules=frozenset({"lossy-conversion"}))
        assert analyze(LOSSY_CONVERSION, config).verdict == CLEAN

    def test_inline_suppression(self):
        text = LOSSY_CONVERSION.replace(
            "        int result",
            "        // javacheck-suppress lossy-conversion\n        int result",
        )
        assert analyze(text).verdict == CLEAN

    def test_priority_changes_the_verdict(self):
        config = AnalysisConfig(priority=(Category.MISSING_VOID,))
        assert analyze(ILLEGAL_CONSTRUCTOR, config).verdict == "missing-void"

    def test_parallel_rules_give_the_same_report(self):
        config = AnalysisConfig(parallel_rules=True)
        for sample, _ in DEFECT_SAMPLES:
            assert analyze(sample, config).to_dict() == analyze(sample).to_dict()


class TestFiles:

    def test_analyze_file_uses_path_as_label(self, tmp_path):
        path = tmp_path / "Test.java"
        path.write_text(MISSING_RETURN_TYPE)
        report = analyze_file(path)
        assert report.label == str(path)
        assert report.verdict == "missing-return-type"

    def test_undecodable_bytes_are_replaced(self, tmp_path):
        path = tmp_path / "Odd.java"
        path.write_bytes(b"class Odd { String s = \"\xff\"; }\n")
        assert analyze_file(path).verdict == CLEAN

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(OSError):
            analyze_file(tmp_path / "Absent.java")

    def test_analyze_source_default_label(self):
        assert analyze_source(CLEAN_UNIT).label == "<unit>"
