"""
javacheck/config.py
═══════════════════

Analysis configuration: dataclass defaults, an S-expression config file
read with :mod:`sexpdata`, and command-line overrides.

File format (one form)::

    (javacheck
      (priority missing-void missing-return-type)
      (disable string-access-by-index)
      (suppress lossy-conversion)
      (max-recoveries 32)
      (time-budget 2.5)
      (parallel-rules true)
      (jobs 4)
      (suffixes ".java"))

Lookup order: ``--config PATH``, then ``$JAVACHECK_CONFIG``, then the
defaults.  Unknown keys and unknown categories raise :class:`ConfigError`.
"""

from __future__ import annotations

import dataclasses
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, FrozenSet, List, Mapping, Optional, Tuple, Union

import sexpdata
from sexpdata import Symbol

from javacheck.checkers import CheckerRegistry, default_registry
from javacheck.diagnostics import Category, SuppressionManager
from javacheck.errors import ConfigError
from javacheck.reporter import DEFAULT_PRIORITY

_log = logging.getLogger("javacheck.config")

ENV_VAR = "JAVACHECK_CONFIG"


@dataclass(frozen=True)
class AnalysisConfig:
    """
    Settings for one analysis run.

    Attributes
    ----------
    priority       : Conflict-resolution order (strongest first)
    disabled_rules : Rule names or category slugs that are not run
    suppress       : Category slugs suppressed globally
    max_recoveries : Parser recovery cap per unit
    time_budget    : Per-unit parse budget in seconds (None = unlimited)
    parallel_rules : Run the rules of one unit on a thread pool
    jobs           : Worker processes for batch runs
    suffixes       : File suffixes picked up by the directory walk
    """
    priority: Tuple[Category, ...] = DEFAULT_PRIORITY
    disabled_rules: FrozenSet[str] = frozenset()
    suppress: FrozenSet[str] = frozenset()
    max_recoveries: int = 64
    time_budget: Optional[float] = None
    parallel_rules: bool = False
    jobs: int = 1
    suffixes: Tuple[str, ...] = (".java",)

    def replace(self, **changes: Any) -> "AnalysisConfig":
        """Copy with *changes* applied; ``None`` values are ignored."""
        return dataclasses.replace(
            self, **{k: v for k, v in changes.items() if v is not None}
        )

    def registry(self) -> CheckerRegistry:
        registry = default_registry()
        for name in self.disabled_rules:
            registry.disable(name)
        return registry

    def suppressions(self) -> SuppressionManager:
        return SuppressionManager(sorted(self.suppress))

    def to_sexp(self) -> str:
        """Serialise back to the config file format."""
        form: List[Any] = [Symbol("javacheck")]
        form.append([Symbol("priority")] + [Symbol(c.value) for c in self.priority])
        if self.disabled_rules:
            form.append([Symbol("disable")] + [Symbol(r) for r in sorted(self.disabled_rules)])
        if self.suppress:
            form.append([Symbol("suppress")] + [Symbol(s) for s in sorted(self.suppress)])
        form.append([Symbol("max-recoveries"), self.max_recoveries])
        if self.time_budget is not None:
            form.append([Symbol("time-budget"), self.time_budget])
        form.append([Symbol("parallel-rules"), Symbol("true" if self.parallel_rules else "false")])
        form.append([Symbol("jobs"), self.jobs])
        form.append([Symbol("suffixes")] + list(self.suffixes))
        return sexpdata.dumps(form)


# ═════════════════════════════════════════════════════════════════════════
#  S-EXPRESSION HELPERS
# ═════════════════════════════════════════════════════════════════════════

def _symbol_text(s: Symbol) -> str:
    value = getattr(s, "value", None)
    return value() if callable(value) else str(s)


def _sym_name(s: Any) -> str:
    if isinstance(s, Symbol):
        return _symbol_text(s)
    raise ConfigError(f"expected symbol, got {type(s).__name__}: {s!r}")


def _atom_text(s: Any) -> str:
    """Symbol or string atom as text."""
    if isinstance(s, Symbol):
        return _symbol_text(s)
    if isinstance(s, str):
        return s
    raise ConfigError(f"expected a name, got {s!r}")


def _single(key: str, args: List[Any]) -> Any:
    if len(args) != 1:
        raise ConfigError(f"({key} ...) takes exactly one value, got {len(args)}")
    return args[0]


def _category(text: str) -> Category:
    try:
        return Category.from_slug(text)
    except ValueError:
        raise ConfigError(f"unknown category '{text}'") from None


def _positive_int(key: str, args: List[Any]) -> int:
    value = _single(key, args)
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ConfigError(f"({key} ...) must be a positive integer, got {value!r}")
    return value


def _budget(key: str, args: List[Any]) -> Optional[float]:
    value = _single(key, args)
    if isinstance(value, Symbol) and _symbol_text(value) == "nil":
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
        raise ConfigError(f"({key} ...) must be a positive number or nil, got {value!r}")
    return float(value)


def _boolean(key: str, args: List[Any]) -> bool:
    value = _single(key, args)
    name = _sym_name(value) if isinstance(value, Symbol) else None
    if name in ("true", "t", "yes"):
        return True
    if name in ("false", "nil", "no"):
        return False
    raise ConfigError(f"({key} ...) must be true or false, got {value!r}")


def _priority(key: str, args: List[Any]) -> Tuple[Category, ...]:
    cats = tuple(_category(_atom_text(a)) for a in args)
    if len(set(cats)) != len(cats):
        raise ConfigError(f"({key} ...) lists a category twice")
    return cats


def _slugs(key: str, args: List[Any]) -> FrozenSet[str]:
    return frozenset(_category(_atom_text(a)).value for a in args)


def _suffixes(key: str, args: List[Any]) -> Tuple[str, ...]:
    if not args:
        raise ConfigError(f"({key} ...) needs at least one suffix")
    return tuple(_atom_text(a) for a in args)


#: config key → (field name, converter)
_KEYS: Dict[str, Tuple[str, Callable[[str, List[Any]], Any]]] = {
    "priority": ("priority", _priority),
    "disable": ("disabled_rules", _slugs),
    "suppress": ("suppress", _slugs),
    "max-recoveries": ("max_recoveries", _positive_int),
    "time-budget": ("time_budget", _budget),
    "parallel-rules": ("parallel_rules", _boolean),
    "jobs": ("jobs", _positive_int),
    "suffixes": ("suffixes", _suffixes),
}


# ═════════════════════════════════════════════════════════════════════════
#  LOADING
# ═════════════════════════════════════════════════════════════════════════

def parse_config(text: str, source: str = "<config>") -> AnalysisConfig:
    """Parse config file *text* into an :class:`AnalysisConfig`."""
    try:
        forms = sexpdata.loads(text, nil=None, true=None, false=None)
    except Exception as exc:
        raise ConfigError(f"{source}: not a valid S-expression: {exc}", cause=exc) from exc

    if not isinstance(forms, list) or not forms or _sym_name(forms[0]) != "javacheck":
        raise ConfigError(f"{source}: expected a (javacheck ...) form")

    values: Dict[str, Any] = {}
    for entry in forms[1:]:
        if not isinstance(entry, list) or not entry:
            raise ConfigError(f"{source}: expected (key value ...), got {entry!r}")
        key = _sym_name(entry[0])
        if key not in _KEYS:
            raise ConfigError(f"{source}: unknown key '{key}'")
        field_name, convert = _KEYS[key]
        try:
            values[field_name] = convert(key, entry[1:])
        except ConfigError as exc:
            raise ConfigError(f"{source}: {exc.message}") from exc
    _log.debug("config %s: %s", source, sorted(values))
    return AnalysisConfig(**values)


def load_config(
    path: Optional[Union[str, Path]] = None,
    env: Optional[Mapping[str, str]] = None,
) -> AnalysisConfig:
    """
    Load the configuration.

    Parameters
    ----------
    path:
        Explicit config file (``--config``); wins over the environment.
    env:
        Environment mapping, ``os.environ`` by default.
    """
    env = os.environ if env is None else env
    if path is None:
        path = env.get(ENV_VAR) or None
    if path is None:
        return AnalysisConfig()
    p = Path(path)
    try:
        text = p.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"cannot read config file {p}: {exc.strerror}", cause=exc) from exc
    _log.info("using config file %s", p)
    return parse_config(text, str(p))


__all__ = [
    "ENV_VAR",
    "AnalysisConfig",
    "parse_config",
    "load_config",
]
