"""
javacheck/labels.py
═══════════════════

Ground-truth label source for evaluation runs.

The dataset encodes the expected defect in its directory names::

    data/Java/01-missing-return-type/3/[E]Test.java     erroneous input
    data/Java/01-missing-return-type/3/[C]Test.java     corrected input
    data/Java/01-missing-return-type/3/[P]Test.txt      compiler position

Labels are read only by the evaluator; detection never looks at them.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional, Tuple, Union

from javacheck.diagnostics import Category

_log = logging.getLogger("javacheck.labels")

CATEGORY_DIR = re.compile(r"^(\d+)-(.+)$")
_ROLE_PREFIX = re.compile(r"^\[([ECP])\]")
_INTS = re.compile(r"\d+")


class FileRole(Enum):
    ERRONEOUS = "E"
    CORRECTED = "C"
    POSITION = "P"
    UNLABELED = ""


@dataclass(frozen=True)
class GroundTruth:
    """
    Expected outcome of one unit.

    Attributes
    ----------
    category : Category the erroneous version must be flagged with
    role     : Whether the file is the erroneous or corrected version
    example  : Example folder the file belongs to
    position : (line, column) reported by the compiler, when known
    """
    category: Category
    role: FileRole
    example: str
    position: Optional[Tuple[int, int]] = None

    @property
    def expects_defect(self) -> bool:
        return self.role in (FileRole.ERRONEOUS, FileRole.UNLABELED)


def category_from_path(path: Union[str, Path]) -> Optional[Category]:
    """Category of the nearest ``NN-slug`` ancestor, or None."""
    for parent in Path(path).parents:
        match = CATEGORY_DIR.match(parent.name)
        if match is None:
            continue
        try:
            return Category.from_slug(match.group(2))
        except ValueError:
            _log.debug("directory %s names no known category", parent)
            return None
    return None


def role_of(path: Union[str, Path]) -> FileRole:
    match = _ROLE_PREFIX.match(Path(path).name)
    if match is None:
        return FileRole.UNLABELED
    return FileRole(match.group(1))


def read_position(path: Union[str, Path]) -> Optional[Tuple[int, int]]:
    """First two integers on the first line of a ``[P]`` file."""
    try:
        with open(path, encoding="utf-8", errors="replace") as fh:
            first = fh.readline()
    except OSError as exc:
        _log.warning("cannot read position file %s: %s", path, exc)
        return None
    numbers = [int(n) for n in _INTS.findall(first)]
    if len(numbers) < 2:
        return None
    return numbers[0], numbers[1]


def label_for(path: Union[str, Path]) -> Optional[GroundTruth]:
    """
    Ground truth for the unit at *path*, or None when the path is not
    under a recognised category directory.
    """
    path = Path(path)
    category = category_from_path(path)
    if category is None:
        return None
    role = role_of(path)
    position = None
    if role is not FileRole.CORRECTED:
        for sibling in sorted(path.parent.glob("[[]P[]]*")):
            position = read_position(sibling)
            if position is not None:
                break
    return GroundTruth(category, role, path.parent.name, position)


__all__ = [
    "CATEGORY_DIR",
    "FileRole",
    "GroundTruth",
    "category_from_path",
    "role_of",
    "read_position",
    "label_for",
]
