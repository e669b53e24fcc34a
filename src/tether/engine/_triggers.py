"""Trigger collection: which (owner, member) pairs an expression reads."""

from __future__ import annotations

from dataclasses import dataclass

from tether.model.expressions import (
    BinaryExpr,
    CallExpr,
    Expression,
    IndexExpr,
    MemberAccessExpr,
    UnaryExpr,
)


@dataclass(frozen=True)
class Trigger:
    """A member access whose change invalidates a dependent expression.

    ``owner_expr`` is kept unevaluated; the live owner is resolved each
    time the binding (re)subscribes.
    """

    owner_expr: Expression
    member: str


def collect_triggers(expr: Expression) -> list[Trigger]:
    """List every trigger of *expr*, outermost owner first.

    ``a.b.c`` yields ``(a, b)`` then ``(a.b, c)``: replacing any link of
    the path changes the value.
    """
    triggers: list[Trigger] = []
    _collect(expr, triggers)
    return triggers


def _collect(expr: Expression, triggers: list[Trigger]) -> None:
    if isinstance(expr, MemberAccessExpr):
        _collect(expr.owner, triggers)
        triggers.append(Trigger(owner_expr=expr.owner, member=expr.member))
    elif isinstance(expr, BinaryExpr):
        _collect(expr.left, triggers)
        _collect(expr.right, triggers)
    elif isinstance(expr, CallExpr):
        # The callee is not a dependency, only its arguments
        for arg in expr.args:
            _collect(arg, triggers)
    elif isinstance(expr, UnaryExpr):
        _collect(expr.operand, triggers)
    elif isinstance(expr, IndexExpr):
        _collect(expr.owner, triggers)
        _collect(expr.index, triggers)
