"""
javacheck/reporter.py
═════════════════════

Diagnostic reporter: turns the raw output of the rule engine into one
stable, ordered report per unit, and aggregates reports of a batch.

Pipeline
────────

    raw diagnostics ─► resolve conflicts ─► dedupe + order ─► verdict
                       (per declaration,    (line, column,
                        priority order)      category)

Output formats
──────────────
  • JSON    : one object per unit (``UnitReport.to_json_str``)
  • text    : GCC-style lines ``label:line:col: severity: message [category]``,
              coloured with termcolor on a terminal
  • summary : one line per unit; batch totals per category
"""

from __future__ import annotations

import json
import sys
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Sequence, TextIO, Tuple

from termcolor import colored

from javacheck.diagnostics import DEFECT_CATEGORIES, Category, Diagnostic, Severity
from javacheck.errors import Issue


# ═════════════════════════════════════════════════════════════════════════
#  CONFLICT GROUPS AND PRIORITY
# ═════════════════════════════════════════════════════════════════════════

#: Categories that describe the same defect of one declaration.
CONFLICT_GROUPS: Dict[str, FrozenSet[Category]] = {
    "signature": frozenset({
        Category.MISSING_RETURN_TYPE,
        Category.ILLEGAL_CONSTRUCTOR_NAME,
        Category.MISSING_VOID,
    }),
    "return": frozenset({
        Category.MISSING_RETURN_VALUE,
        Category.INCOMPATIBLE_RETURN_TYPES,
    }),
}

DEFAULT_PRIORITY: Tuple[Category, ...] = (
    Category.MISSING_RETURN_TYPE,
    Category.ILLEGAL_CONSTRUCTOR_NAME,
    Category.MISSING_VOID,
    Category.MISSING_RETURN_VALUE,
    Category.INCOMPATIBLE_RETURN_TYPES,
)

#: Verdicts that are not a category.
CLEAN = "clean"
INCONCLUSIVE = "inconclusive"

_INCONCLUSIVE_CATEGORIES = frozenset({Category.INTERNAL_FAULT, Category.UNIT_TOO_MALFORMED})


def rank(category: Category, priority: Sequence[Category] = DEFAULT_PRIORITY) -> int:
    """Lower is stronger: configured priority first, then taxonomy order."""
    if category in priority:
        return list(priority).index(category)
    return len(priority) + list(Category).index(category)


def _group_of(category: Category) -> Optional[str]:
    for name, members in CONFLICT_GROUPS.items():
        if category in members:
            return name
    return None


def resolve_conflicts(
    diagnostics: Iterable[Diagnostic],
    priority: Sequence[Category] = DEFAULT_PRIORITY,
) -> List[Diagnostic]:
    """
    Within each conflict group, keep only the strongest category per
    anchor declaration.  Diagnostics without an anchor or outside every
    group pass through unchanged.
    """
    diagnostics = list(diagnostics)
    best: Dict[Tuple[str, int], int] = {}
    for d in diagnostics:
        group = _group_of(d.category)
        if group is None or d.anchor is None:
            continue
        key = (group, id(d.anchor))
        r = rank(d.category, priority)
        if key not in best or r < best[key]:
            best[key] = r

    kept: List[Diagnostic] = []
    for d in diagnostics:
        group = _group_of(d.category)
        if group is not None and d.anchor is not None:
            if rank(d.category, priority) != best[(group, id(d.anchor))]:
                continue
        kept.append(d)
    return kept


def order_diagnostics(diagnostics: Iterable[Diagnostic]) -> List[Diagnostic]:
    """Collapse duplicates and sort by (line, column, category)."""
    seen = set()
    unique: List[Diagnostic] = []
    for d in diagnostics:
        if d.identity in seen:
            continue
        seen.add(d.identity)
        unique.append(d)
    return sorted(unique, key=lambda d: (d.sort_key, d.message))


def verdict(
    diagnostics: Sequence[Diagnostic],
    priority: Sequence[Category] = DEFAULT_PRIORITY,
    inconclusive: bool = False,
) -> str:
    """``clean``, ``inconclusive`` or the slug of the strongest category present."""
    if inconclusive or any(d.category in _INCONCLUSIVE_CATEGORIES for d in diagnostics):
        return INCONCLUSIVE
    if not diagnostics:
        return CLEAN
    strongest = min((d.category for d in diagnostics), key=lambda c: rank(c, priority))
    return strongest.value


# ═════════════════════════════════════════════════════════════════════════
#  UNIT REPORT
# ═════════════════════════════════════════════════════════════════════════

@dataclass
class UnitReport:
    """
    Final, ordered result for one unit.

    Attributes
    ----------
    label        : Identifying label (usually the path)
    verdict      : ``clean``, ``inconclusive`` or a category slug
    diagnostics  : Ordered diagnostics
    issues       : Non-fatal lexical / syntax / resolution issues
    elapsed_ms   : Analysis time
    """
    label: str
    verdict: str
    diagnostics: List[Diagnostic] = field(default_factory=list)
    issues: List[Issue] = field(default_factory=list)
    elapsed_ms: float = 0.0

    @property
    def inconclusive(self) -> bool:
        return self.verdict == INCONCLUSIVE

    @property
    def categories(self) -> FrozenSet[Category]:
        return frozenset(d.category for d in self.diagnostics)

    def has(self, category: Category) -> bool:
        return category in self.categories

    def to_dict(self) -> Dict[str, Any]:
        return {
            "unit": self.label,
            "verdict": self.verdict,
            "diagnostics": [d.to_dict() for d in self.diagnostics],
            "issues": len(self.issues),
        }

    def to_json_str(self, indent: Optional[int] = None) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    def to_gcc_format(self) -> str:
        return "\n".join(d.to_gcc_format(self.label) for d in self.diagnostics)

    def summary_line(self) -> str:
        n = len(self.diagnostics)
        return f"{self.label}: {self.verdict} ({n} diagnostic{'s' if n != 1 else ''})"


class Reporter:
    """
    Builds :class:`UnitReport` objects with a fixed priority order.

    Usage
    -----
    >>> reporter = Reporter(priority=DEFAULT_PRIORITY)
    >>> report = reporter.build("Test.java", results.diagnostics)
    >>> print(report.to_json_str())
    """

    def __init__(self, priority: Sequence[Category] = DEFAULT_PRIORITY) -> None:
        self.priority: Tuple[Category, ...] = tuple(priority)

    def build(
        self,
        label: str,
        diagnostics: Iterable[Diagnostic],
        issues: Sequence[Issue] = (),
        inconclusive: bool = False,
        elapsed_ms: float = 0.0,
    ) -> UnitReport:
        kept = order_diagnostics(resolve_conflicts(diagnostics, self.priority))
        return UnitReport(
            label=label,
            verdict=verdict(kept, self.priority, inconclusive),
            diagnostics=kept,
            issues=list(issues),
            elapsed_ms=elapsed_ms,
        )


# ═════════════════════════════════════════════════════════════════════════
#  RENDERING
# ═════════════════════════════════════════════════════════════════════════

_SEVERITY_COLOUR = {Severity.ERROR: "red", Severity.WARNING: "yellow"}


def render_text(report: UnitReport, colour: bool = False) -> str:
    """GCC-style lines for one unit, optionally coloured."""
    if not colour:
        return report.to_gcc_format()
    lines = []
    for d in report.diagnostics:
        where = colored(f"{report.label}:{d.span.line}:{d.span.column}:", attrs=["bold"])
        sev = colored(f"{d.severity.value}:", _SEVERITY_COLOUR[d.severity], attrs=["bold"])
        tag = colored(f"[{d.category.value}]", "cyan")
        lines.append(f"{where} {sev} {d.message} {tag}")
    return "\n".join(lines)


def write_reports(
    reports: Iterable[UnitReport],
    fmt: str = "text",
    stream: TextIO = sys.stdout,
    colour: Optional[bool] = None,
) -> None:
    """Write *reports* in ``json``, ``text`` or ``summary`` format."""
    use_colour = colour if colour is not None else hasattr(stream, "isatty") and stream.isatty()
    for report in reports:
        if fmt == "json":
            stream.write(report.to_json_str() + "\n")
        elif fmt == "summary":
            stream.write(report.summary_line() + "\n")
        else:
            text = render_text(report, use_colour)
            if text:
                stream.write(text + "\n")
    stream.flush()


# ═════════════════════════════════════════════════════════════════════════
#  BATCH SUMMARY
# ═════════════════════════════════════════════════════════════════════════

@dataclass
class BatchSummary:
    """Aggregate counts over the units of a batch run."""
    units: int = 0
    clean: int = 0
    inconclusive: int = 0
    by_category: Counter = field(default_factory=Counter)
    by_verdict: Counter = field(default_factory=Counter)
    elapsed_s: float = 0.0

    def add(self, report: UnitReport) -> None:
        self.units += 1
        self.by_verdict[report.verdict] += 1
        if report.verdict == CLEAN:
            self.clean += 1
        elif report.inconclusive:
            self.inconclusive += 1
        for d in report.diagnostics:
            self.by_category[d.category.value] += 1

    @classmethod
    def of(cls, reports: Iterable[UnitReport], elapsed_s: float = 0.0) -> "BatchSummary":
        summary = cls(elapsed_s=elapsed_s)
        for report in reports:
            summary.add(report)
        return summary

    def to_dict(self) -> Dict[str, Any]:
        return {
            "units": self.units,
            "clean": self.clean,
            "inconclusive": self.inconclusive,
            "categories": dict(sorted(self.by_category.items())),
            "verdicts": dict(sorted(self.by_verdict.items())),
            "elapsed_s": round(self.elapsed_s, 3),
        }

    def to_json_str(self) -> str:
        return json.dumps(self.to_dict(), indent=2)

    def to_text(self) -> str:
        lines = [
            f"{self.units} units analysed in {self.elapsed_s:.2f}s: "
            f"{self.clean} clean, {self.inconclusive} inconclusive",
        ]
        order = [c.value for c in DEFECT_CATEGORIES] + sorted(
            k for k in self.by_category if k not in {c.value for c in DEFECT_CATEGORIES}
        )
        for slug in order:
            count = self.by_category.get(slug, 0)
            if count:
                lines.append(f"  {slug:<40} {count:>5}")
        return "\n".join(lines)


__all__ = [
    "CONFLICT_GROUPS",
    "DEFAULT_PRIORITY",
    "CLEAN",
    "INCONCLUSIVE",
    "rank",
    "resolve_conflicts",
    "order_diagnostics",
    "verdict",
    "UnitReport",
    "Reporter",
    "render_text",
    "write_reports",
    "BatchSummary",
]
