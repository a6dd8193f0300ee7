"""javacheck/main.py — command-line interface.

Usage examples
--------------
    # Analyse single units
    javacheck check Test.java Bicycle.java --format json

    # Analyse a dataset tree and score it against its directory labels
    javacheck batch data/Java --evaluate --jobs 4

    # Dump the syntax tree of a unit (debugging aid)
    javacheck parse Test.java --format sexp

    # List the registered rules
    javacheck rules

Exit codes
----------
    0   Success.
    1   Evaluation found an erroneous unit without its expected diagnostic.
    2   Infrastructure failure: bad config, unreadable input, internal fault.

The module doubles as ``python -m javacheck`` via ``javacheck/__main__.py``.
"""

from __future__ import annotations

import argparse
import logging
import sys
import textwrap
from pathlib import Path
from typing import List, Optional, Sequence

from javacheck import __version__
from javacheck.batch import run_batch
from javacheck.config import ENV_VAR, AnalysisConfig, load_config
from javacheck.diagnostics import Category
from javacheck.errors import ConfigError, JavacheckError
from javacheck.pipeline import Pipeline, read_unit
from javacheck.reporter import UnitReport, rank, write_reports

_log = logging.getLogger("javacheck")

LOG_FORMAT = "%(asctime)s [%(levelname)-5.5s] %(name)s: %(message)s"

EXIT_OK = 0
EXIT_MISS = 1
EXIT_FAILURE = 2


def _setup_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG
    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        datefmt="%H:%M:%S",
        stream=sys.stderr,
    )


def _config(args: argparse.Namespace) -> AnalysisConfig:
    """File config with command-line overrides applied."""
    config = load_config(args.config)
    suppress = getattr(args, "suppress", None)
    if suppress:
        try:
            extra = frozenset(Category.from_slug(s).value for s in suppress)
        except ValueError as exc:
            raise ConfigError(f"--suppress: {exc}") from exc
        config = config.replace(suppress=config.suppress | extra)
    disable = getattr(args, "disable", None)
    if disable:
        config = config.replace(disabled_rules=config.disabled_rules | frozenset(disable))
    return config.replace(
        jobs=getattr(args, "jobs", None),
        parallel_rules=getattr(args, "parallel_rules", None) or None,
        max_recoveries=getattr(args, "max_recoveries", None),
    )


def _faulted(reports: Sequence[UnitReport]) -> bool:
    return any(r.has(Category.INTERNAL_FAULT) for r in reports)


# ═══════════════════════════════════════════════════════════════════════════
# COMMANDS
# ═══════════════════════════════════════════════════════════════════════════

def cmd_check(args: argparse.Namespace) -> int:
    """Handle the 'check' command: analyse the named units."""
    config = _config(args)
    pipeline = Pipeline(config)
    reports: List[UnitReport] = []
    failed = False
    for name in args.files:
        try:
            text = read_unit(name)
        except OSError as exc:
            _log.error("cannot read %s: %s", name, exc.strerror or exc)
            failed = True
            continue
        reports.append(pipeline.analyze(text, name).report)

    write_reports(reports, fmt=args.format, stream=sys.stdout)
    if failed or _faulted(reports):
        return EXIT_FAILURE
    return EXIT_OK


def cmd_batch(args: argparse.Namespace) -> int:
    """Handle the 'batch' command: walk a tree, optionally evaluate."""
    root = Path(args.directory)
    if not root.exists():
        _log.error("no such file or directory: %s", root)
        return EXIT_FAILURE
    config = _config(args)
    result = run_batch(root, config, evaluate_labels=args.evaluate, jobs=config.jobs)

    if args.output:
        with open(args.output, "w", encoding="utf-8") as fh:
            write_reports(result.reports, fmt="json", stream=fh, colour=False)
        _log.info("wrote %d unit reports to %s", len(result.reports), args.output)
    elif args.format != "summary":
        write_reports(result.reports, fmt=args.format, stream=sys.stdout)

    sys.stdout.write(result.summary.to_text() + "\n")
    if result.evaluation is not None:
        sys.stdout.write(result.evaluation.to_text() + "\n")
        if not result.evaluation.passed:
            return EXIT_MISS
    if result.faulted:
        return EXIT_FAILURE
    return EXIT_OK


def cmd_parse(args: argparse.Namespace) -> int:
    """Handle the 'parse' command: dump tokens, tree or re-emitted source."""
    from javacheck.parser import parse
    from javacheck.unparse import dump_sexp, unparse

    try:
        text = read_unit(args.file)
    except OSError as exc:
        _log.error("cannot read %s: %s", args.file, exc.strerror or exc)
        return EXIT_FAILURE
    try:
        result = parse(text)
    except JavacheckError as exc:
        _log.error("%s:%d:%d: %s", args.file, exc.span.line, exc.span.column, exc.message)
        return EXIT_FAILURE

    if args.format == "tokens":
        for tok in result.tokens:
            sys.stdout.write(f"{tok.line}:{tok.column}\t{tok.kind.value}\t{tok.lexeme!r}\n")
    elif args.format == "source":
        sys.stdout.write(unparse(result.unit))
    else:
        sys.stdout.write(dump_sexp(result.unit) + "\n")
    for issue in result.issues:
        sys.stderr.write(f"{args.file}:{issue.span.line}:{issue.span.column}: "
                         f"{issue.phase.value}: {issue.message}\n")
    return EXIT_OK


def cmd_rules(args: argparse.Namespace) -> int:
    """Handle the 'rules' command: list the registered rules and the conflict priority."""
    config = _config(args)
    registry = config.registry()
    for checker_cls in registry.get_all():
        state = "" if registry.is_enabled(checker_cls) else " (disabled)"
        cats = ", ".join(sorted(c.value for c in checker_cls.categories))
        sys.stdout.write(f"{checker_cls.name}{state}\n    [{cats}] {checker_cls.description}\n")
    order = " > ".join(c.value for c in config.priority)
    sys.stdout.write(f"\nconflict priority: {order}\n")
    if rank(Category.ILLEGAL_CONSTRUCTOR_NAME, config.priority) < \
            rank(Category.MISSING_VOID, config.priority):
        sys.stdout.write(
            "    a constructor-shaped method named unlike its class is reported as\n"
            "    illegal-constructor-name; put (priority missing-void) in the config\n"
            "    file to report it as missing-void instead\n"
        )
    return EXIT_OK


# ═══════════════════════════════════════════════════════════════════════════
# ARGUMENT PARSER
# ═══════════════════════════════════════════════════════════════════════════

def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the javacheck CLI."""
    parser = argparse.ArgumentParser(
        prog="javacheck",
        description="Static detection of common Java compile-time defects.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent(f"""\
            examples:
              %(prog)s check Test.java
              %(prog)s check src/*.java --format json
              %(prog)s batch data/Java --evaluate --jobs 4
              %(prog)s parse Test.java --format source
              %(prog)s rules

            The config file may also be named by ${ENV_VAR}.
        """),
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "-v", "--verbose", action="count", default=0,
        help="Increase log verbosity (-v info, -vv debug)",
    )
    parser.add_argument("--config", metavar="PATH", help="S-expression config file")

    subparsers = parser.add_subparsers(
        dest="command",
        title="commands",
        metavar="<command>",
    )

    # ── shared analysis options ─────────────────────────────────────────

    analysis = argparse.ArgumentParser(add_help=False)
    analysis.add_argument(
        "--suppress", nargs="+", metavar="CATEGORY",
        help="Suppress diagnostics of these categories",
    )
    analysis.add_argument(
        "--disable", nargs="+", metavar="RULE",
        help="Do not run these rules (rule names or categories)",
    )
    analysis.add_argument(
        "--parallel-rules", action="store_true",
        help="Run the rules of each unit on a thread pool",
    )
    analysis.add_argument(
        "--max-recoveries", type=int, metavar="N",
        help="Parser recoveries tolerated per unit",
    )

    # ── check ───────────────────────────────────────────────────────────

    p_check = subparsers.add_parser(
        "check", parents=[analysis],
        help="Analyse source files",
    )
    p_check.add_argument("files", nargs="+", metavar="FILE")
    p_check.add_argument(
        "--format", choices=("text", "json", "summary"), default="text",
        help="Output format (default: text)",
    )
    p_check.set_defaults(func=cmd_check)

    # ── batch ───────────────────────────────────────────────────────────

    p_batch = subparsers.add_parser(
        "batch", parents=[analysis],
        help="Analyse every unit under a directory",
    )
    p_batch.add_argument("directory", metavar="DIR")
    p_batch.add_argument(
        "--evaluate", action="store_true",
        help="Score results against the dataset's directory labels",
    )
    p_batch.add_argument("-j", "--jobs", type=int, metavar="N", help="Worker processes")
    p_batch.add_argument("-o", "--output", metavar="PATH", help="Write JSON unit reports here")
    p_batch.add_argument(
        "--format", choices=("text", "json", "summary"), default="summary",
        help="Per-unit output on stdout (default: summary only)",
    )
    p_batch.set_defaults(func=cmd_batch)

    # ── parse ───────────────────────────────────────────────────────────

    p_parse = subparsers.add_parser("parse", help="Dump the parse of one file")
    p_parse.add_argument("file", metavar="FILE")
    p_parse.add_argument(
        "--format", choices=("sexp", "source", "tokens"), default="sexp",
        help="Dump format (default: sexp)",
    )
    p_parse.set_defaults(func=cmd_parse)

    # ── rules ───────────────────────────────────────────────────────────

    p_rules = subparsers.add_parser("rules", help="List the registered rules")
    p_rules.set_defaults(func=cmd_rules)

    return parser


# ═══════════════════════════════════════════════════════════════════════════
# MAIN
# ═══════════════════════════════════════════════════════════════════════════

def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point for the javacheck CLI.

    Parameters
    ----------
    argv : sequence of str, optional
        Command-line arguments. Defaults to sys.argv[1:].

    Returns
    -------
    int
        Exit code (0 = success, 1 = evaluation miss, 2 = failure).
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    _setup_logging(args.verbose)

    if args.command is None:
        parser.print_help()
        return EXIT_OK

    try:
        return args.func(args)
    except KeyboardInterrupt:
        sys.stderr.write("\nInterrupted.\n")
        return 130
    except ConfigError as exc:
        _log.error("%s", exc.message)
        return EXIT_FAILURE
    except OSError as exc:
        _log.error("%s", exc)
        return EXIT_FAILURE


if __name__ == "__main__":
    sys.exit(main())
