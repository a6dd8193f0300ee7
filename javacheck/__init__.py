"""javacheck — static detection of common Java compile-time defects.

Each source file is analysed as an independent unit through a strictly
sequential pipeline:

    lexer → parser → symbol table → resolver → rule engine → reporter

Submodules
----------
errors
    ``SourceSpan``, non-fatal ``Issue`` records and the exception
    hierarchy rooted at ``JavacheckError``.
lexer, parser, ast, visitor, unparse
    Tolerant front end: tokens, a recovering recursive-descent parser,
    the syntax tree, traversal helpers, and source / S-expression dumps.
symbols, typeinfo, resolver
    Declarations and scopes, the primitive type lattice, and name,
    member and overload resolution.
diagnostics, checkers, reporter
    The defect taxonomy, one rule per defect category, and conflict
    resolution plus output formats.
config, pipeline, labels, batch, main
    Configuration, per-unit orchestration, dataset labels, batch runs
    with evaluation, and the command-line interface.

Quick start
-----------
>>> from javacheck import analyze_source
>>> report = analyze_source(open("Test.java").read(), "Test.java")
>>> report.verdict
'missing-return-type'
"""

from __future__ import annotations

__version__ = "0.1.0"

from javacheck.config import AnalysisConfig, load_config
from javacheck.diagnostics import Category, Diagnostic, Severity
from javacheck.pipeline import analyze_file, analyze_source
from javacheck.reporter import UnitReport

__all__ = [
    "__version__",
    "AnalysisConfig",
    "load_config",
    "Category",
    "Diagnostic",
    "Severity",
    "analyze_source",
    "analyze_file",
    "UnitReport",
]
