"""
javacheck/visitor.py
====================

Visitor infrastructure for javacheck syntax trees.

Provides:
- ``children`` — generic child iteration over any node
- ``walk`` / ``find_all`` — pre-order traversal helpers
- ``ASTVisitor`` — base class with ``visit_<node>`` dispatch
- ``DepthFirstVisitor`` — traversal with ``enter`` / ``leave`` hooks
"""

from __future__ import annotations

from dataclasses import fields
from typing import Any, Dict, Iterator, Tuple, Type, TypeVar

from javacheck import ast as A

__all__ = [
    "children",
    "walk",
    "find_all",
    "ASTVisitor",
    "DepthFirstVisitor",
]

T = TypeVar("T", bound=A.Node)

# Per-class cache of the field names that may hold child nodes.
_CHILD_FIELDS: Dict[Type[A.Node], Tuple[str, ...]] = {}


def _child_fields(cls: Type[A.Node]) -> Tuple[str, ...]:
    names = _CHILD_FIELDS.get(cls)
    if names is None:
        names = tuple(
            f.name for f in fields(cls)
            if f.name not in ("span", "name_span", "modifiers")
        )
        _CHILD_FIELDS[cls] = names
    return names


def children(node: A.Node) -> Iterator[A.Node]:
    """Yield the direct child nodes of *node* in source order."""
    for name in _child_fields(type(node)):
        value = getattr(node, name)
        if isinstance(value, A.Node):
            yield value
        elif isinstance(value, tuple):
            for item in value:
                if isinstance(item, A.Node):
                    yield item


def walk(node: A.Node) -> Iterator[A.Node]:
    """Pre-order traversal of *node* and all of its descendants."""
    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        stack.extend(reversed(list(children(current))))


def find_all(node: A.Node, *types: Type[T]) -> Iterator[T]:
    """Yield every descendant of *node* (inclusive) that is one of *types*."""
    for n in walk(node):
        if isinstance(n, types):
            yield n  # type: ignore[misc]


class ASTVisitor:
    """Base class for javacheck tree visitors.

    ``visit`` dispatches to ``visit_<snake_case_class_name>`` when the
    subclass defines it, otherwise to ``generic_visit``, which does
    nothing.  Subclasses override the methods they care about.
    """

    def visit(self, node: A.Node) -> Any:
        """Dispatch to the appropriate visit method."""
        return node.accept(self)

    def generic_visit(self, node: A.Node) -> Any:
        """Called when no specific visitor method exists."""
        return None


class DepthFirstVisitor(ASTVisitor):
    """Visitor that traverses all children in depth-first order.

    Override ``enter`` / ``leave`` for pre/post-order processing; a
    ``visit_X`` override that still wants the subtree traversed must
    call ``self.generic_visit(node)`` itself.
    """

    def generic_visit(self, node: A.Node) -> Any:
        self.enter(node)
        for child in children(node):
            self.visit(child)
        self.leave(node)
        return None

    def enter(self, node: A.Node) -> None:
        """Called before visiting children."""

    def leave(self, node: A.Node) -> None:
        """Called after visiting children."""
