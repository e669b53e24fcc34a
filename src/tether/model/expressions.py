"""Expression tree nodes consumed by the binding engine.

Trees are immutable.  A formula is either a ``BinaryExpr`` with
``op=EQ`` (one binding) or a chain of ``AND_ALSO`` nodes joining
several of them.  Everything below an ``==`` is an ordinary value
expression.
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


class BinaryOp(str, Enum):
    EQ = "EQ"
    AND_ALSO = "AND_ALSO"
    OR_ELSE = "OR_ELSE"
    ADD = "ADD"
    SUB = "SUB"
    MUL = "MUL"
    DIV = "DIV"
    FLOOR_DIV = "FLOOR_DIV"
    MOD = "MOD"
    POW = "POW"
    NE = "NE"
    LT = "LT"
    LE = "LE"
    GT = "GT"
    GE = "GE"


class UnaryOp(str, Enum):
    NEG = "NEG"
    POS = "POS"
    NOT = "NOT"


class ExpressionNode(BaseModel):
    """Base of all expression nodes."""

    model_config = ConfigDict(frozen=True)


class ConstantExpr(ExpressionNode):
    """A constant value, held by reference (objects keep their identity)."""

    kind: Literal["constant"] = "constant"
    value: Any = None


class MemberAccessExpr(ExpressionNode):
    """Member access: owner.member (or owner[member] for mappings)."""

    kind: Literal["member_access"] = "member_access"
    owner: Expression
    member: str


class CallExpr(ExpressionNode):
    """Call of whatever *function* evaluates to, with positional args."""

    kind: Literal["call"] = "call"
    function: Expression
    args: list[Expression] = []


class BinaryExpr(ExpressionNode):
    kind: Literal["binary"] = "binary"
    op: BinaryOp
    left: Expression
    right: Expression


class UnaryExpr(ExpressionNode):
    kind: Literal["unary"] = "unary"
    op: UnaryOp
    operand: Expression


class IndexExpr(ExpressionNode):
    """Subscript: owner[index]."""

    kind: Literal["index"] = "index"
    owner: Expression
    index: Expression


Expression = Annotated[
    Union[
        ConstantExpr,
        MemberAccessExpr,
        CallExpr,
        BinaryExpr,
        UnaryExpr,
        IndexExpr,
    ],
    Field(discriminator="kind"),
]

# Rebuild models with recursive Expression references.
MemberAccessExpr.model_rebuild()
CallExpr.model_rebuild()
BinaryExpr.model_rebuild()
UnaryExpr.model_rebuild()
IndexExpr.model_rebuild()


# ---------------------------------------------------------------------------
# Construction shorthands
# ---------------------------------------------------------------------------

def const(value: Any) -> ConstantExpr:
    return ConstantExpr(value=value)


def member(owner: Expression | Any, name: str) -> MemberAccessExpr:
    """``owner.name``; a non-expression *owner* is wrapped in a constant."""
    if not isinstance(owner, ExpressionNode):
        owner = ConstantExpr(value=owner)
    return MemberAccessExpr(owner=owner, member=name)


def path(root: Any, dotted: str) -> MemberAccessExpr:
    """``path(obj, "a.b.c")`` -> nested member accesses rooted at *obj*."""
    names = dotted.split(".")
    expr: Expression = ConstantExpr(value=root)
    for name in names:
        expr = MemberAccessExpr(owner=expr, member=name)
    return expr


def call(function: Expression | Any, *args: Expression) -> CallExpr:
    if not isinstance(function, ExpressionNode):
        function = ConstantExpr(value=function)
    return CallExpr(function=function, args=list(args))


def eq(left: Expression, right: Expression) -> BinaryExpr:
    return BinaryExpr(op=BinaryOp.EQ, left=left, right=right)


def and_also(*parts: Expression) -> Expression:
    """Left-fold *parts* into a chain of ``AND_ALSO`` nodes."""
    if not parts:
        raise ValueError("and_also() needs at least one operand")
    result = parts[0]
    for part in parts[1:]:
        result = BinaryExpr(op=BinaryOp.AND_ALSO, left=result, right=part)
    return result
