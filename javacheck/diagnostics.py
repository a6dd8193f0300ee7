"""
javacheck/diagnostics.py
════════════════════════

Diagnostic model shared by the rule engine, the pipeline and the
reporter.

  Category            — the defect taxonomy (one value per dataset label)
                        plus the infrastructure categories the pipeline
                        emits for malformed units and internal faults
  Severity, Confidence
  Diagnostic          — one finding: category, message, span, symbol
  SuppressionManager  — ``// javacheck-suppress <category>`` comments and
                        global suppressions
"""

from __future__ import annotations

import json
import re
from collections import defaultdict
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Set, Tuple

from javacheck.errors import NO_SPAN, SourceSpan


# ═════════════════════════════════════════════════════════════════════════
#  PART 1 — CATEGORIES
# ═════════════════════════════════════════════════════════════════════════

class Category(Enum):
    """Defect categories, in the dataset's taxonomy order."""

    MISSING_RETURN_TYPE = "missing-return-type"
    MISSING_VOID = "missing-void"
    VISIT_PRIVATE = "visit-private"
    STRING_ACCESS_BY_INDEX = "string-access-by-index"
    USE_UNINITIALIZED_INSTANCE_VARIABLE = "use-uninitialized-instance-variable"
    LOSSY_CONVERSION = "lossy-conversion"
    BAD_INVOCATION = "bad-invocation"
    USE_UNDECLARED_VARIABLE = "use-undeclared-variable"
    ACCESS_NON_STATIC_VARIABLE = "access-non-static-variable"
    INCOMPATIBLE_RETURN_TYPES = "incompatible-return-types"
    ILLEGAL_CONSTRUCTOR_NAME = "illegal-constructor-name"
    MISSING_RETURN_VALUE = "missing-return-value"
    ACCESS_NON_STATIC_METHOD = "access-non-static-method"

    # infrastructure
    LEXICAL_ERROR = "lexical-error"
    UNPARSABLE_REGION = "unparsable-region"
    UNIT_TOO_MALFORMED = "unit-too-malformed"
    INHERITANCE_CYCLE = "inheritance-cycle"
    INTERNAL_FAULT = "internal-fault"

    @property
    def is_defect(self) -> bool:
        return self not in INFRASTRUCTURE_CATEGORIES

    @classmethod
    def from_slug(cls, slug: str) -> "Category":
        """``Category`` for a slug, accepting dataset aliases.

        Raises ``ValueError`` for unknown slugs.
        """
        text = slug.strip().lower().replace("_", "-")
        text = CATEGORY_ALIASES.get(text, text)
        return cls(text)

    def __str__(self) -> str:
        return self.value


INFRASTRUCTURE_CATEGORIES: FrozenSet[Category] = frozenset({
    Category.LEXICAL_ERROR,
    Category.UNPARSABLE_REGION,
    Category.UNIT_TOO_MALFORMED,
    Category.INHERITANCE_CYCLE,
    Category.INTERNAL_FAULT,
})

DEFECT_CATEGORIES: Tuple[Category, ...] = tuple(
    c for c in Category if c not in INFRASTRUCTURE_CATEGORIES
)

CATEGORY_ALIASES: Dict[str, str] = {
    "incomp-return-types": "incompatible-return-types",
    "incompatible-return-type": "incompatible-return-types",
    "use-uninitialized-variable": "use-uninitialized-instance-variable",
}


class Severity(Enum):
    ERROR = "error"
    WARNING = "warning"


class Confidence(Enum):
    """
    HIGH   — the trigger condition is matched exactly
    MEDIUM — the trigger relies on inferred types or construction order
    LOW    — heuristic evidence (e.g. constructor-shaped body)
    """
    HIGH = auto()
    MEDIUM = auto()
    LOW = auto()


# ═════════════════════════════════════════════════════════════════════════
#  PART 2 — DIAGNOSTIC
# ═════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Diagnostic:
    """
    A single finding.

    Attributes
    ----------
    category   : Category
    message    : Human-readable description (never contains positions)
    severity   : Severity
    span       : Primary source span, 1-based
    symbol     : Name of the offending symbol, if any
    rule       : Name of the rule that produced it
    confidence : Confidence
    anchor     : Declaration node the finding belongs to; used for
                 conflict resolution, never serialised
    """

    category: Category
    message: str
    severity: Severity = Severity.ERROR
    span: SourceSpan = NO_SPAN
    symbol: str = ""
    rule: str = ""
    confidence: Confidence = Confidence.HIGH
    anchor: Optional[Any] = field(default=None, compare=False, hash=False, repr=False)

    @property
    def sort_key(self) -> Tuple[int, int, str]:
        return (self.span.line, self.span.column, self.category.value)

    @property
    def identity(self) -> Tuple[str, SourceSpan, str]:
        """Two diagnostics with the same identity are duplicates."""
        return (self.category.value, self.span, self.message)

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "category": self.category.value,
            "severity": self.severity.value,
            "message": self.message,
            "line": self.span.line,
            "column": self.span.column,
            "end_line": self.span.end_line,
            "end_column": self.span.end_column,
        }
        if self.symbol:
            result["symbol"] = self.symbol
        if self.rule:
            result["rule"] = self.rule
        return result

    def to_json_str(self) -> str:
        return json.dumps(self.to_dict())

    def to_gcc_format(self, label: str = "<unit>") -> str:
        """GCC-style line: ``label:line:col: severity: message [category]``."""
        return (
            f"{label}:{self.span.line}:{self.span.column}: "
            f"{self.severity.value}: {self.message} [{self.category.value}]"
        )


# ═════════════════════════════════════════════════════════════════════════
#  PART 3 — SUPPRESSION MANAGER
# ═════════════════════════════════════════════════════════════════════════

_INLINE = re.compile(r"javacheck-suppress\s+([\w\-*]+(?:[\s,]+[\w\-*]+)*)")


class SuppressionManager:
    """
    Manages diagnostic suppressions from two sources.

    Sources:
      1. Inline comments:  ``// javacheck-suppress lossy-conversion``
         (several categories separated by spaces or commas, or ``*``);
         applies to the comment's line and the line after it.
      2. Global suppressions (command line or config file)

    Usage
    -----
    >>> sm = SuppressionManager()
    >>> sm.add_global_suppression("string-access-by-index")
    >>> sm.load_inline_suppressions(parse_result.comments)
    >>> kept = sm.filter_diagnostics(diagnostics)
    """

    def __init__(self, global_suppressions: Iterable[str] = ()) -> None:
        # line → categories suppressed on that line
        self._inline: Dict[int, Set[str]] = defaultdict(set)
        self._global: Set[str] = set()
        for slug in global_suppressions:
            self.add_global_suppression(slug)

    def load_inline_suppressions(self, comments: Iterable[Any]) -> None:
        """Scan comment records (``.text`` and ``.span``) for suppress markers."""
        for comment in comments:
            match = _INLINE.search(comment.text)
            if match is None:
                continue
            ids = [s for s in re.split(r"[\s,]+", match.group(1)) if s]
            for line in range(comment.span.line, comment.span.end_line + 2):
                self._inline[line].update(_canonical(i) for i in ids)

    def add_global_suppression(self, category: str) -> None:
        self._global.add(_canonical(category))

    @property
    def global_suppressions(self) -> FrozenSet[str]:
        return frozenset(self._global)

    def is_suppressed(self, diag: Diagnostic) -> bool:
        cid = diag.category.value
        if cid in self._global or "*" in self._global:
            return True
        ids = self._inline.get(diag.span.line, set())
        return cid in ids or "*" in ids

    def filter_diagnostics(self, diagnostics: Iterable[Diagnostic]) -> List[Diagnostic]:
        """Return only non-suppressed diagnostics."""
        return [d for d in diagnostics if not self.is_suppressed(d)]

    def copy(self) -> "SuppressionManager":
        """A manager with the same global suppressions and no inline ones."""
        return SuppressionManager(self._global)


def _canonical(slug: str) -> str:
    if slug == "*":
        return slug
    try:
        return Category.from_slug(slug).value
    except ValueError:
        return slug


__all__ = [
    "Category",
    "INFRASTRUCTURE_CATEGORIES",
    "DEFECT_CATEGORIES",
    "CATEGORY_ALIASES",
    "Severity",
    "Confidence",
    "Diagnostic",
    "SuppressionManager",
]
