"""
javacheck/pipeline.py
═════════════════════

Per-unit analysis pipeline::

    text ─► tokens ─► tree ─► symbol table ─► resolved tree ─► diagnostics
            (lexer)  (parser)   (symbols)       (resolver)     (checkers,
                                                                reporter)

Stages run strictly in sequence; each consumes the complete output of
the previous one.  Nothing that goes wrong inside one unit escapes this
module: malformed input and internal faults are turned into diagnostics
and the unit's report is marked ``inconclusive`` where appropriate.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Union

from javacheck.checkers import CheckerRunner, CheckerRunResults
from javacheck.config import AnalysisConfig
from javacheck.diagnostics import Category, Diagnostic, Severity
from javacheck.errors import NO_SPAN, ErrorPhase, Issue, JavacheckError, UnitTooMalformedError
from javacheck.parser import ParseResult, parse
from javacheck.reporter import Reporter, UnitReport
from javacheck.resolver import ResolvedUnit, resolve
from javacheck.symbols import build_symbol_table

_log = logging.getLogger("javacheck.pipeline")


@dataclass
class UnitAnalysis:
    """Every intermediate product of one unit, for callers that need more than the report."""
    report: UnitReport
    parsed: Optional[ParseResult] = None
    resolved: Optional[ResolvedUnit] = None
    run: Optional[CheckerRunResults] = None
    infrastructure: List[Diagnostic] = field(default_factory=list)


def _issue_diagnostic(issue: Issue) -> Diagnostic:
    if issue.phase is ErrorPhase.LEXICAL:
        category = Category.LEXICAL_ERROR
    else:
        category = Category.UNPARSABLE_REGION
    return Diagnostic(
        category=category,
        message=issue.message,
        severity=Severity.WARNING,
        span=issue.span,
        rule="parser",
    )


class Pipeline:
    """
    Analyse units with one fixed configuration.

    The checker registry, suppressions and reporter are built once and
    shared by every unit; each unit still gets fresh checker instances.
    """

    def __init__(self, config: Optional[AnalysisConfig] = None) -> None:
        self.config = config or AnalysisConfig()
        self.runner = CheckerRunner(
            registry=self.config.registry(),
            suppressions=self.config.suppressions(),
            parallel=self.config.parallel_rules,
        )
        self.reporter = Reporter(self.config.priority)

    def analyze(self, text: str, label: str = "<unit>") -> UnitAnalysis:
        t0 = time.monotonic()
        infra: List[Diagnostic] = []
        issues: List[Issue] = []
        inconclusive = False
        parsed: Optional[ParseResult] = None
        resolved: Optional[ResolvedUnit] = None
        run: Optional[CheckerRunResults] = None

        try:
            parsed = parse(
                text,
                max_recoveries=self.config.max_recoveries,
                time_budget=self.config.time_budget,
            )
        except UnitTooMalformedError as exc:
            _log.info("%s: %s", label, exc.message)
            issues.append(exc.to_issue())
            infra.append(Diagnostic(
                category=Category.UNIT_TOO_MALFORMED,
                message=f"unit too malformed to analyze: {exc.message}",
                span=exc.span,
                rule="parser",
            ))
        except Exception as exc:
            inconclusive = True
            infra.append(self._fault(label, "parser", exc))

        if parsed is not None:
            issues.extend(parsed.issues)
            infra.extend(_issue_diagnostic(i) for i in parsed.issues)
            try:
                table = build_symbol_table(parsed.unit)
                resolved = resolve(parsed.unit, table)
                issues.extend(resolved.issues)
            except Exception as exc:
                inconclusive = True
                infra.append(self._fault(label, "resolver", exc))

        if resolved is not None and parsed is not None:
            try:
                run = self.runner.run(resolved, label=label, comments=parsed.comments)
                inconclusive = inconclusive or run.inconclusive
            except Exception as exc:
                inconclusive = True
                infra.append(self._fault(label, "rule engine", exc))

        diagnostics = infra + (run.diagnostics if run is not None else [])
        report = self.reporter.build(
            label,
            diagnostics,
            issues=issues,
            inconclusive=inconclusive,
            elapsed_ms=(time.monotonic() - t0) * 1000.0,
        )
        _log.debug("%s: %s in %.1fms", label, report.verdict, report.elapsed_ms)
        return UnitAnalysis(report, parsed, resolved, run, infra)

    @staticmethod
    def _fault(label: str, stage: str, exc: Exception) -> Diagnostic:
        _log.debug("%s: internal fault in %s", label, stage, exc_info=True)
        _log.warning("%s: internal fault in %s: %s", label, stage, exc)
        return Diagnostic(
            category=Category.INTERNAL_FAULT,
            message=f"internal fault in {stage}: {exc}",
            span=exc.span if isinstance(exc, JavacheckError) else NO_SPAN,
            rule=stage,
        )


# ═════════════════════════════════════════════════════════════════════════
#  PUBLIC API
# ═════════════════════════════════════════════════════════════════════════

def analyze_source(
    text: str,
    label: str = "<unit>",
    config: Optional[AnalysisConfig] = None,
) -> UnitReport:
    """
    Analyse one unit of Java source.

    Parameters
    ----------
    text:
        The unit's source text.
    label:
        Identifying label, used only for reporting.
    config:
        Analysis settings; defaults when omitted.
    """
    return Pipeline(config).analyze(text, label).report


def read_unit(path: Union[str, Path]) -> str:
    """Read a source file; undecodable bytes are replaced."""
    return Path(path).read_text(encoding="utf-8", errors="replace")


def analyze_file(
    path: Union[str, Path],
    config: Optional[AnalysisConfig] = None,
    label: Optional[str] = None,
) -> UnitReport:
    """Analyse the file at *path*; raises ``OSError`` when it cannot be read."""
    return analyze_source(read_unit(path), label or str(path), config)


__all__ = [
    "UnitAnalysis",
    "Pipeline",
    "analyze_source",
    "analyze_file",
    "read_unit",
]
