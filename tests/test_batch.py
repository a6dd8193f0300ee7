# tests/test_batch.py
"""Tests for dataset labels, directory batches and evaluation."""

import json

from javacheck.batch import Evaluation, discover, evaluate, run_batch, score
from javacheck.diagnostics import Category
from javacheck.labels import FileRole, GroundTruth, category_from_path, label_for, read_position, role_of
from javacheck.reporter import Reporter
from tests.conftest import MISSING_RETURN_TYPE, MISSING_RETURN_TYPE_FIXED, analyze


class TestLabels:

    def test_role_prefixes(self):
        assert role_of("x/[E]Test.java") is FileRole.ERRONEOUS
        assert role_of("x/[C]Test.java") is FileRole.CORRECTED
        assert role_of("x/[P]Test.txt") is FileRole.POSITION
        assert role_of("x/Test.java") is FileRole.UNLABELED

    def test_category_from_directory(self):
        path = "data/Java/10-incomp-return-types/4/[E]A.java"
        assert category_from_path(path) is Category.INCOMPATIBLE_RETURN_TYPES

    def test_unknown_category_directory(self):
        assert category_from_path("data/99-not-a-category/1/[E]A.java") is None
        assert category_from_path("src/A.java") is None

    def test_label_for_erroneous_unit(self, dataset):
        truth = label_for(dataset / "01-missing-return-type" / "1" / "[E]Test.java")
        assert truth.category is Category.MISSING_RETURN_TYPE
        assert truth.role is FileRole.ERRONEOUS
        assert truth.example == "1"
        assert truth.position == (2, 12)
        assert truth.expects_defect

    def test_corrected_unit_has_no_position(self, dataset):
        truth = label_for(dataset / "01-missing-return-type" / "1" / "[C]Test.java")
        assert truth.role is FileRole.CORRECTED
        assert truth.position is None
        assert not truth.expects_defect

    def test_position_file_without_numbers(self, tmp_path):
        path = tmp_path / "[P]A.txt"
        path.write_text("no position here\n")
        assert read_position(path) is None


class TestDiscover:

    def test_position_files_are_not_units(self, dataset):
        names = [p.name for p in discover(dataset)]
        assert names == ["[C]Test.java", "[E]Test.java", "[C]Slide.java", "[E]Slide.java"]

    def test_single_file(self, dataset):
        path = dataset / "01-missing-return-type" / "1" / "[E]Test.java"
        assert discover(path) == [path]

    def test_suffixes(self, dataset):
        assert discover(dataset, suffixes=(".txt",)) == []


class TestScore:

    def truth(self, role=FileRole.ERRONEOUS, position=None):
        return GroundTruth(Category.MISSING_RETURN_TYPE, role, "1", position)

    def test_hit_on_reported_line(self):
        result = score(analyze(MISSING_RETURN_TYPE), self.truth(position=(2, 12)))
        assert result.hit
        assert result.position_hit is True
        assert not result.miss

    def test_hit_on_other_line(self):
        result = score(analyze(MISSING_RETURN_TYPE), self.truth(position=(5, 1)))
        assert result.hit
        assert result.position_hit is False

    def test_miss(self):
        result = score(analyze(MISSING_RETURN_TYPE_FIXED), self.truth())
        assert result.miss
        assert result.position_hit is None

    def test_false_positive(self):
        result = score(analyze(MISSING_RETURN_TYPE), self.truth(role=FileRole.CORRECTED))
        assert result.false_positive

    def test_unlabelled_reports_are_counted(self):
        report = Reporter().build("Loose.java", [])
        evaluation = evaluate([report], {"Loose.java": None})
        assert evaluation.unlabelled == 1
        assert evaluation.scores == []
        assert evaluation.passed


class TestRunBatch:

    def test_summary(self, dataset):
        result = run_batch(dataset)
        assert result.summary.units == 4
        assert result.summary.clean == 2
        assert result.evaluation is None
        assert not result.faulted

    def test_evaluation_passes(self, dataset):
        evaluation = run_batch(dataset, evaluate_labels=True).evaluation
        assert isinstance(evaluation, Evaluation)
        assert evaluation.passed
        assert evaluation.hits == 2
        assert len(evaluation.erroneous) == 2
        assert evaluation.position_hits == 1
        assert evaluation.false_positives == []
        assert evaluation.per_category() == {
            "access-non-static-variable": (1, 1),
            "missing-return-type": (1, 1),
        }

    def test_evaluation_reports_misses(self, dataset):
        erroneous = dataset / "11-access-non-static-variable" / "1" / "[E]Slide.java"
        erroneous.write_text(
            (dataset / "11-access-non-static-variable" / "1" / "[C]Slide.java").read_text()
        )
        evaluation = run_batch(dataset, evaluate_labels=True).evaluation
        assert not evaluation.passed
        assert [s.label for s in evaluation.misses] == [str(erroneous)]
        assert "MISS" in evaluation.to_text()

    def test_reports_come_in_discovery_order(self, dataset):
        result = run_batch(dataset)
        assert [r.label for r in result.reports] == [str(p) for p in discover(dataset)]

    def test_worker_processes_give_the_same_reports(self, dataset):
        sequential = run_batch(dataset, jobs=1)
        pooled = run_batch(dataset, jobs=2)
        assert [r.to_dict() for r in pooled.reports] == [r.to_dict() for r in sequential.reports]
        assert pooled.summary.units == 4

    def test_reports_have_no_anchors(self, dataset):
        result = run_batch(dataset)
        assert all(d.anchor is None for r in result.reports for d in r.diagnostics)

    def test_json(self, dataset):
        data = json.loads(run_batch(dataset, evaluate_labels=True).to_json_str())
        assert data["summary"]["units"] == 4
        assert data["evaluation"]["passed"] is True
