"""
javacheck/batch.py
══════════════════

Batch analysis over a directory tree, and evaluation against the
dataset's ground-truth labels.

Every source file is one independent unit.  With ``jobs > 1`` units are
spread over a process pool; each worker builds its own pipeline, so no
mutable state is shared between units.  Reports come back in discovery
order whatever the completion order was.
"""

from __future__ import annotations

import dataclasses
import json
import logging
import time
from concurrent.futures import ProcessPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from javacheck.config import AnalysisConfig
from javacheck.diagnostics import Category, Diagnostic
from javacheck.labels import FileRole, GroundTruth, label_for, role_of
from javacheck.pipeline import Pipeline, read_unit
from javacheck.reporter import INCONCLUSIVE, BatchSummary, UnitReport

_log = logging.getLogger("javacheck.batch")


# ═════════════════════════════════════════════════════════════════════════
#  DISCOVERY
# ═════════════════════════════════════════════════════════════════════════

def discover(root: Union[str, Path], suffixes: Sequence[str] = (".java",)) -> List[Path]:
    """
    All units under *root*, sorted.  A file given directly is returned
    as-is; compiler position files (``[P]...``) are never units.
    """
    root = Path(root)
    if root.is_file():
        return [root]
    found = [
        p for p in root.rglob("*")
        if p.is_file() and p.suffix in suffixes and role_of(p) is not FileRole.POSITION
    ]
    return sorted(found)


# ═════════════════════════════════════════════════════════════════════════
#  WORKER
# ═════════════════════════════════════════════════════════════════════════

_WORKER_PIPELINE: Optional[Pipeline] = None


def _pipeline(config: AnalysisConfig) -> Pipeline:
    global _WORKER_PIPELINE
    if _WORKER_PIPELINE is None or _WORKER_PIPELINE.config != config:
        _WORKER_PIPELINE = Pipeline(config)
    return _WORKER_PIPELINE


def _detach(report: UnitReport) -> UnitReport:
    """Drop tree anchors so the report can cross a process boundary."""
    report.diagnostics = [dataclasses.replace(d, anchor=None) for d in report.diagnostics]
    return report


def _analyze_path(path: Path, config: AnalysisConfig) -> UnitReport:
    try:
        text = read_unit(path)
    except OSError as exc:
        _log.warning("cannot read %s: %s", path, exc)
        return UnitReport(
            label=str(path),
            verdict=INCONCLUSIVE,
            diagnostics=[Diagnostic(
                category=Category.INTERNAL_FAULT,
                message=f"cannot read unit: {exc.strerror or exc}",
                rule="batch",
            )],
        )
    return _detach(_pipeline(config).analyze(text, str(path)).report)


# ═════════════════════════════════════════════════════════════════════════
#  EVALUATION
# ═════════════════════════════════════════════════════════════════════════

@dataclass
class UnitScore:
    """Outcome of one labelled unit."""
    label: str
    truth: GroundTruth
    verdict: str
    hit: bool
    position_hit: Optional[bool] = None

    @property
    def false_positive(self) -> bool:
        return self.truth.role is FileRole.CORRECTED and self.hit

    @property
    def miss(self) -> bool:
        return self.truth.expects_defect and not self.hit


@dataclass
class Evaluation:
    """
    Scores of a labelled batch.

    The run passes when every erroneous unit carries at least one
    diagnostic of its expected category.
    """
    scores: List[UnitScore] = field(default_factory=list)
    unlabelled: int = 0

    @property
    def erroneous(self) -> List[UnitScore]:
        return [s for s in self.scores if s.truth.expects_defect]

    @property
    def hits(self) -> int:
        return sum(1 for s in self.erroneous if s.hit)

    @property
    def misses(self) -> List[UnitScore]:
        return [s for s in self.scores if s.miss]

    @property
    def position_hits(self) -> int:
        return sum(1 for s in self.erroneous if s.position_hit)

    @property
    def false_positives(self) -> List[UnitScore]:
        return [s for s in self.scores if s.false_positive]

    @property
    def passed(self) -> bool:
        return not self.misses

    def per_category(self) -> Dict[str, Tuple[int, int]]:
        """category → (hits, erroneous units)"""
        table: Dict[str, List[int]] = {}
        for s in self.erroneous:
            row = table.setdefault(s.truth.category.value, [0, 0])
            row[0] += int(s.hit)
            row[1] += 1
        return {k: (v[0], v[1]) for k, v in sorted(table.items())}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "erroneous": len(self.erroneous),
            "hits": self.hits,
            "position_hits": self.position_hits,
            "misses": [s.label for s in self.misses],
            "false_positives": [s.label for s in self.false_positives],
            "unlabelled": self.unlabelled,
            "categories": {k: {"hits": h, "units": n} for k, (h, n) in self.per_category().items()},
            "passed": self.passed,
        }

    def to_text(self) -> str:
        total = len(self.erroneous)
        lines = [f"evaluation: {self.hits}/{total} erroneous units detected, "
                 f"{self.position_hits} on the reported line, "
                 f"{len(self.false_positives)} false positives"]
        for slug, (hits, units) in self.per_category().items():
            lines.append(f"  {slug:<40} {hits:>4}/{units:<4}")
        for s in self.misses:
            lines.append(f"  MISS {s.label}: expected {s.truth.category.value}, got {s.verdict}")
        return "\n".join(lines)


def score(report: UnitReport, truth: GroundTruth) -> UnitScore:
    hit = report.has(truth.category)
    position_hit = None
    if truth.position is not None and truth.expects_defect:
        line = truth.position[0]
        position_hit = any(
            d.category is truth.category and d.span.line <= line <= max(d.span.end_line, d.span.line)
            for d in report.diagnostics
        )
    return UnitScore(report.label, truth, report.verdict, hit, position_hit)


def evaluate(
    reports: Iterable[UnitReport],
    truths: Dict[str, Optional[GroundTruth]],
) -> Evaluation:
    """Score *reports* against *truths* (keyed by report label)."""
    evaluation = Evaluation()
    for report in reports:
        truth = truths.get(report.label)
        if truth is None:
            evaluation.unlabelled += 1
            continue
        evaluation.scores.append(score(report, truth))
    return evaluation


# ═════════════════════════════════════════════════════════════════════════
#  BATCH RUN
# ═════════════════════════════════════════════════════════════════════════

@dataclass
class BatchResult:
    reports: List[UnitReport]
    summary: BatchSummary
    evaluation: Optional[Evaluation] = None

    @property
    def faulted(self) -> bool:
        return any(r.has(Category.INTERNAL_FAULT) for r in self.reports)

    def to_json_str(self) -> str:
        data: Dict[str, Any] = {"summary": self.summary.to_dict()}
        if self.evaluation is not None:
            data["evaluation"] = self.evaluation.to_dict()
        return json.dumps(data, indent=2)


def run_batch(
    root: Union[str, Path],
    config: Optional[AnalysisConfig] = None,
    evaluate_labels: bool = False,
    jobs: Optional[int] = None,
) -> BatchResult:
    """
    Analyse every unit under *root*.

    Parameters
    ----------
    root:
        Directory to walk, or a single file.
    config:
        Analysis settings; defaults when omitted.
    evaluate_labels:
        Score the reports against the directory-name labels.
    jobs:
        Worker processes; ``config.jobs`` when omitted.
    """
    config = config or AnalysisConfig()
    jobs = jobs or config.jobs
    paths = discover(root, config.suffixes)
    _log.info("analysing %d units under %s with %d job(s)", len(paths), root, jobs)

    t0 = time.monotonic()
    if jobs > 1 and len(paths) > 1:
        with ProcessPoolExecutor(max_workers=jobs) as pool:
            reports = list(pool.map(_analyze_path, paths, [config] * len(paths), chunksize=8))
    else:
        reports = [_analyze_path(p, config) for p in paths]
    summary = BatchSummary.of(reports, elapsed_s=time.monotonic() - t0)

    evaluation = None
    if evaluate_labels:
        truths = {str(p): label_for(p) for p in paths}
        evaluation = evaluate(reports, truths)
    return BatchResult(reports, summary, evaluation)


__all__ = [
    "discover",
    "UnitScore",
    "Evaluation",
    "score",
    "evaluate",
    "BatchResult",
    "run_batch",
]
