"""javacheck/unparse.py – Turn syntax trees back into text.

Two renderings are provided:

``unparse(unit) -> str``
    Pretty-printed Java source.  Parentheses are re-inserted from operator
    precedence, so re-parsing the output yields an equivalent tree and the
    same diagnostic set (positions aside).

``dump_sexp(node) -> str``
    A structural S-expression dump (via :mod:`sexpdata`) used by
    ``javacheck parse --format sexp`` and handy when debugging the parser.
"""

from __future__ import annotations

from dataclasses import fields
from enum import Enum
from typing import Any, List

import sexpdata
from sexpdata import Symbol

from javacheck import ast as A
from javacheck.parser import BINARY_PRECEDENCE, PRIMITIVES

__all__ = ["JavaUnparser", "unparse", "to_sexp", "dump_sexp"]

_MODIFIER_ORDER = (
    "public", "protected", "private", "abstract", "default", "static",
    "final", "transient", "volatile", "synchronized", "native", "strictfp",
)

# Printing precedence: higher binds tighter.
_PREC_ASSIGN = 1
_PREC_TERNARY = 2
_PREC_UNARY = 13
_PREC_POSTFIX = 14
_BINARY_OFFSET = 2


def _binary_prec(op: str) -> int:
    return BINARY_PRECEDENCE[op] + _BINARY_OFFSET


class JavaUnparser:
    """Render a :class:`~javacheck.ast.CompilationUnit` as Java source."""

    indent_unit = "    "

    def __init__(self) -> None:
        self._indent: int = 0
        self._parts: List[str] = []

    def _emit(self, s: str) -> None:
        self._parts.append(s)

    def _line(self, s: str) -> None:
        self._parts.append(self.indent_unit * self._indent + s + "\n")

    # ── declarations ─────────────────────────────────────────────────

    def unparse_unit(self, unit: A.CompilationUnit) -> str:
        self._parts = []
        if unit.package:
            self._line(f"package {unit.package};")
            self._line("")
        for imp in unit.imports:
            static = "static " if imp.static else ""
            star = ".*" if imp.wildcard else ""
            self._line(f"import {static}{imp.name}{star};")
        if unit.imports:
            self._line("")
        for i, decl in enumerate(unit.types):
            if i:
                self._line("")
            self._type_decl(decl)
        return "".join(self._parts)

    def _type_decl(self, decl: A.TypeDecl) -> None:
        header = _mods(decl.modifiers) + f"{decl.kind.value} {decl.name}"
        if decl.superclass is not None:
            header += f" extends {self._type(decl.superclass)}"
        if decl.interfaces:
            word = "extends" if decl.is_interface else "implements"
            header += f" {word} " + ", ".join(self._type(t) for t in decl.interfaces)
        self._line(header + " {")
        self._indent += 1
        self._members(decl.members, enum=decl.kind is A.TypeKind.ENUM)
        self._indent -= 1
        self._line("}")

    def _members(self, members: Any, enum: bool = False) -> None:
        constants = [m for m in members if isinstance(m, A.EnumConstant)]
        rest = [m for m in members if not isinstance(m, A.EnumConstant)]
        if enum:
            for i, const in enumerate(constants):
                sep = "," if i < len(constants) - 1 else ";"
                self._enum_constant(const, sep)
            if not constants:
                self._line(";")
        for member in rest:
            self._member(member)

    def _enum_constant(self, const: A.EnumConstant, sep: str) -> None:
        text = const.name
        if const.args:
            text += "(" + self._args(const.args) + ")"
        if const.body is None:
            self._line(text + sep)
            return
        self._line(text + " {")
        self._indent += 1
        self._members(const.body)
        self._indent -= 1
        self._line("}" + sep)

    def _member(self, member: A.Node) -> None:
        if isinstance(member, A.FieldDecl):
            self._line(
                _mods(member.modifiers) + self._type(member.type) + " "
                + self._declarators(member.declarators) + ";"
            )
        elif isinstance(member, A.MethodDecl):
            rtype = self._type(member.return_type) + " " if member.return_type else ""
            self._callable(
                _mods(member.modifiers) + rtype + member.name,
                member.params, member.throws, member.body,
            )
        elif isinstance(member, A.ConstructorDecl):
            self._callable(
                _mods(member.modifiers) + member.name,
                member.params, member.throws, member.body,
            )
        elif isinstance(member, A.Initializer):
            self._block_header("static" if member.static else "", member.body)
        elif isinstance(member, A.TypeDecl):
            self._type_decl(member)
        elif isinstance(member, A.ErrorMember):
            self._line(member.text)
        else:
            raise TypeError(f"cannot unparse member {type(member).__name__}")

    def _callable(self, head: str, params: Any, throws: Any, body: Any) -> None:
        text = head + "(" + ", ".join(self._param(p) for p in params) + ")"
        if throws:
            text += " throws " + ", ".join(self._type(t) for t in throws)
        if body is None:
            self._line(text + ";")
        else:
            self._block_header(text, body)

    def _param(self, p: A.Param) -> str:
        if p.type is None:
            return p.name
        if p.varargs:
            return _mods(p.modifiers) + self._type(p.type.with_dims(-1)) + "... " + p.name
        return _mods(p.modifiers) + self._type(p.type) + " " + p.name

    def _declarators(self, declarators: Any) -> str:
        parts = []
        for d in declarators:
            text = d.name + "[]" * d.dims
            if d.init is not None:
                text += " = " + self._expr(d.init, _PREC_ASSIGN)
            parts.append(text)
        return ", ".join(parts)

    def _type(self, t: A.TypeRef) -> str:
        return t.display()

    # ── statements ───────────────────────────────────────────────────

    def _block_header(self, head: str, block: A.Block) -> None:
        self._line((head + " {") if head else "{")
        self._indent += 1
        for stmt in block.statements:
            self._stmt(stmt)
        self._indent -= 1
        self._line("}")

    def _body(self, head: str, stmt: A.Node) -> None:
        if isinstance(stmt, A.Block):
            self._block_header(head, stmt)
        else:
            self._line(head)
            self._indent += 1
            self._stmt(stmt)
            self._indent -= 1

    def _stmt(self, s: A.Node) -> None:
        if isinstance(s, A.Block):
            self._block_header("", s)
        elif isinstance(s, A.LocalVarDecl):
            self._line(self._local_var(s) + ";")
        elif isinstance(s, A.LocalClassDecl):
            self._type_decl(s.decl)
        elif isinstance(s, A.ExprStmt):
            self._line(self._expr(s.expr, _PREC_ASSIGN) + ";")
        elif isinstance(s, A.IfStmt):
            self._body(f"if ({self._expr(s.cond)})", s.then)
            if s.otherwise is not None:
                self._body("else", s.otherwise)
        elif isinstance(s, A.WhileStmt):
            self._body(f"while ({self._expr(s.cond)})", s.body)
        elif isinstance(s, A.DoStmt):
            self._body("do", s.body)
            self._line(f"while ({self._expr(s.cond)});")
        elif isinstance(s, A.ForStmt):
            init = ", ".join(
                self._local_var(i) if isinstance(i, A.LocalVarDecl)
                else self._expr(i.expr)
                for i in s.init
            )
            cond = self._expr(s.cond) if s.cond is not None else ""
            update = ", ".join(self._expr(u) for u in s.update)
            self._body(f"for ({init}; {cond}; {update})", s.body)
        elif isinstance(s, A.ForEachStmt):
            var = _mods(s.var.modifiers) + self._type(s.var.type) + " " + s.var.name
            self._body(f"for ({var} : {self._expr(s.iterable)})", s.body)
        elif isinstance(s, A.ReturnStmt):
            if s.value is None:
                self._line("return;")
            else:
                self._line(f"return {self._expr(s.value)};")
        elif isinstance(s, A.BreakStmt):
            self._line("break" + (f" {s.label}" if s.label else "") + ";")
        elif isinstance(s, A.ContinueStmt):
            self._line("continue" + (f" {s.label}" if s.label else "") + ";")
        elif isinstance(s, A.ThrowStmt):
            self._line(f"throw {self._expr(s.expr)};")
        elif isinstance(s, A.YieldStmt):
            self._line(f"yield {self._expr(s.value)};")
        elif isinstance(s, A.TryStmt):
            head = "try"
            if s.resources:
                head += " (" + "; ".join(
                    self._local_var(r) if isinstance(r, A.LocalVarDecl) else self._expr(r)
                    for r in s.resources
                ) + ")"
            self._block_header(head, s.body)
            for c in s.catches:
                types = " | ".join(self._type(t) for t in c.types)
                self._block_header(f"catch ({types} {c.name})", c.body)
            if s.finally_block is not None:
                self._block_header("finally", s.finally_block)
        elif isinstance(s, A.SwitchStmt):
            self._line(f"switch ({self._expr(s.selector)}) {{")
            self._indent += 1
            for case in s.cases:
                self._switch_case(case)
            self._indent -= 1
            self._line("}")
        elif isinstance(s, A.LabeledStmt):
            self._line(f"{s.label}:")
            self._stmt(s.body)
        elif isinstance(s, A.SyncStmt):
            self._block_header(f"synchronized ({self._expr(s.lock)})", s.body)
        elif isinstance(s, A.AssertStmt):
            msg = f" : {self._expr(s.message)}" if s.message is not None else ""
            self._line(f"assert {self._expr(s.cond)}{msg};")
        elif isinstance(s, A.ConstructorCall):
            self._line(f"{s.kind}({self._args(s.args)});")
        elif isinstance(s, A.EmptyStmt):
            self._line(";")
        elif isinstance(s, A.ErrorStmt):
            self._line(s.text)
        else:
            raise TypeError(f"cannot unparse statement {type(s).__name__}")

    def _switch_case(self, case: A.SwitchCase) -> None:
        labels = ", ".join(self._expr(l, _PREC_TERNARY) for l in case.labels)
        if case.is_default:
            head = "default" if not labels else f"case {labels}, default"
        else:
            head = f"case {labels}"
        if case.arrow:
            self._line(head + " ->")
        else:
            self._line(head + ":")
        self._indent += 1
        for stmt in case.body:
            self._stmt(stmt)
        self._indent -= 1

    def _local_var(self, decl: A.LocalVarDecl) -> str:
        return (
            _mods(decl.modifiers) + self._type(decl.type) + " "
            + self._declarators(decl.declarators)
        )

    # ── expressions ──────────────────────────────────────────────────

    def _args(self, args: Any) -> str:
        return ", ".join(self._expr(a) for a in args)

    def _expr(self, e: A.Node, min_prec: int = 0) -> str:
        text, prec = self._expr_prec(e)
        if prec < min_prec:
            return f"({text})"
        return text

    def _expr_prec(self, e: A.Node) -> tuple:
        if isinstance(e, A.Literal):
            return e.value, _PREC_POSTFIX
        if isinstance(e, A.Name):
            return e.name, _PREC_POSTFIX
        if isinstance(e, A.This):
            return (f"{e.qualifier}.this" if e.qualifier else "this"), _PREC_POSTFIX
        if isinstance(e, A.Super):
            return "super", _PREC_POSTFIX
        if isinstance(e, A.FieldAccess):
            return f"{self._expr(e.target, _PREC_POSTFIX)}.{e.name}", _PREC_POSTFIX
        if isinstance(e, A.MethodCall):
            prefix = "" if e.target is None else self._expr(e.target, _PREC_POSTFIX) + "."
            return f"{prefix}{e.name}({self._args(e.args)})", _PREC_POSTFIX
        if isinstance(e, A.NewObject):
            text = f"new {self._type(e.type)}({self._args(e.args)})"
            if e.body is not None:
                text += " " + self._anonymous_body(e.body)
            return text, _PREC_POSTFIX
        if isinstance(e, A.NewArray):
            base = A.TypeRef(e.type.name, e.type.args).display()
            dims = "".join(f"[{self._expr(d)}]" for d in e.dim_exprs)
            dims += "[]" * (e.type.dims - len(e.dim_exprs))
            text = f"new {base}{dims}"
            if e.init is not None:
                text += " " + self._expr(e.init)
            return text, _PREC_POSTFIX
        if isinstance(e, A.ArrayInit):
            return "{" + ", ".join(self._expr(x) for x in e.elements) + "}", _PREC_POSTFIX
        if isinstance(e, A.ArrayAccess):
            return f"{self._expr(e.array, _PREC_POSTFIX)}[{self._expr(e.index)}]", _PREC_POSTFIX
        if isinstance(e, A.Unary):
            if e.postfix:
                return self._expr(e.operand, _PREC_POSTFIX) + e.op, _PREC_POSTFIX
            operand = self._expr(e.operand, _PREC_UNARY)
            if operand[:1] in ("+", "-") and e.op[-1] == operand[0]:
                operand = " " + operand
            return e.op + operand, _PREC_UNARY
        if isinstance(e, A.Binary):
            prec = _binary_prec(e.op)
            left = self._expr(e.left, prec)
            right = self._expr(e.right, prec + 1)
            return f"{left} {e.op} {right}", prec
        if isinstance(e, A.InstanceOf):
            prec = _binary_prec("instanceof")
            text = f"{self._expr(e.expr, prec)} instanceof {self._type(e.type)}"
            if e.binding:
                text += f" {e.binding}"
            return text, prec
        if isinstance(e, A.Assign):
            target = self._expr(e.target, _PREC_POSTFIX)
            return f"{target} {e.op} {self._expr(e.value, _PREC_ASSIGN)}", _PREC_ASSIGN
        if isinstance(e, A.Conditional):
            cond = self._expr(e.cond, _PREC_TERNARY + 1)
            then = self._expr(e.then, _PREC_ASSIGN)
            otherwise = self._expr(e.otherwise, _PREC_TERNARY)
            return f"{cond} ? {then} : {otherwise}", _PREC_TERNARY
        if isinstance(e, A.SwitchExpr):
            head = f"switch ({self._expr(e.selector)}) "
            return head + self._switch_block(e.cases), _PREC_POSTFIX
        if isinstance(e, A.Cast):
            min_prec = _PREC_UNARY
            primitive = e.type.name in PRIMITIVES and not e.type.dims
            if not primitive and isinstance(e.expr, A.Unary) and not e.expr.postfix \
                    and e.expr.op in ("+", "-", "++", "--"):
                min_prec = _PREC_POSTFIX + 1
            return f"({self._type(e.type)}) {self._expr(e.expr, min_prec)}", _PREC_UNARY
        if isinstance(e, A.Lambda):
            return self._lambda(e), _PREC_ASSIGN
        if isinstance(e, A.MethodRef):
            if isinstance(e.target, A.TypeRef):
                target = self._type(e.target)
            else:
                target = self._expr(e.target, _PREC_POSTFIX)
            return f"{target}::{e.name}", _PREC_POSTFIX
        if isinstance(e, A.ClassLiteral):
            return f"{self._type(e.type)}.class", _PREC_POSTFIX
        if isinstance(e, A.ErrorExpr):
            return e.text, _PREC_POSTFIX
        raise TypeError(f"cannot unparse expression {type(e).__name__}")

    def _lambda(self, e: A.Lambda) -> str:
        if len(e.params) == 1 and e.params[0].type is None:
            params = e.params[0].name
        else:
            params = "(" + ", ".join(self._param(p) for p in e.params) + ")"
        if isinstance(e.body, A.Block):
            return f"{params} -> " + self._nested_block(e.body)
        return f"{params} -> {self._expr(e.body, _PREC_ASSIGN)}"

    def _nested_block(self, block: A.Block) -> str:
        sub = JavaUnparser()
        sub._indent = self._indent + 1
        for stmt in block.statements:
            sub._stmt(stmt)
        return "{\n" + "".join(sub._parts) + self.indent_unit * self._indent + "}"

    def _switch_block(self, cases: Any) -> str:
        sub = JavaUnparser()
        sub._indent = self._indent + 1
        for case in cases:
            sub._switch_case(case)
        return "{\n" + "".join(sub._parts) + self.indent_unit * self._indent + "}"

    def _anonymous_body(self, members: Any) -> str:
        sub = JavaUnparser()
        sub._indent = self._indent + 1
        sub._members(members)
        return "{\n" + "".join(sub._parts) + self.indent_unit * self._indent + "}"


def _mods(modifiers: Any) -> str:
    ordered = [m for m in _MODIFIER_ORDER if m in modifiers]
    return "".join(m + " " for m in ordered)


def unparse(unit: A.CompilationUnit) -> str:
    """Pretty-print *unit* as Java source."""
    if not isinstance(unit, A.CompilationUnit):
        raise TypeError(f"Cannot unparse {type(unit).__name__}")
    return JavaUnparser().unparse_unit(unit)


# ═══════════════════════════════════════════════════════════════════════
#  S-expression dump
# ═══════════════════════════════════════════════════════════════════════

def _kebab(name: str) -> str:
    out = []
    for i, ch in enumerate(name):
        if ch.isupper() and i:
            out.append("-")
        out.append(ch.lower())
    return "".join(out)


def _sexp_value(value: Any) -> Any:
    if isinstance(value, A.Node):
        return to_sexp(value)
    if value is None:
        return Symbol("nil")
    if isinstance(value, bool):
        return Symbol("true" if value else "false")
    if isinstance(value, Enum):
        return Symbol(value.value)
    if isinstance(value, frozenset):
        return [Symbol(m) for m in sorted(value)]
    if isinstance(value, tuple):
        return [_sexp_value(v) for v in value]
    return value


def to_sexp(node: A.Node) -> list:
    """Convert a node into nested lists of :class:`sexpdata.Symbol` and atoms."""
    out: list = [Symbol(_kebab(type(node).__name__))]
    span = getattr(node, "span", None)
    if span is not None and span.line:
        out.extend([Symbol(":at"), str(span)])
    for f in fields(node):
        if f.name in ("span", "name_span"):
            continue
        value = getattr(node, f.name)
        if value is None or value == () or value == frozenset():
            continue
        out.extend([Symbol(":" + f.name.replace("_", "-")), _sexp_value(value)])
    return out


def dump_sexp(node: A.Node) -> str:
    """Render *node* as an S-expression string."""
    return sexpdata.dumps(to_sexp(node))
