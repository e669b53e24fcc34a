"""Evaluator: tree-walking interpreter for expression trees.

Constants and member accesses are walked directly; operators and calls
are applied to the evaluated operands.  Attribute lookups go through
``getattr`` and mapping owners are indexed by key, matching how
``_accessors`` resolves writable endpoints.
"""

from __future__ import annotations

import operator
from collections.abc import Callable, Mapping

from tether.model.expressions import (
    BinaryExpr,
    BinaryOp,
    CallExpr,
    ConstantExpr,
    Expression,
    IndexExpr,
    MemberAccessExpr,
    UnaryExpr,
    UnaryOp,
)


class EvaluationError(Exception):
    """An expression could not be evaluated against the live object graph."""


_BINOP_FUNCS: dict[BinaryOp, Callable[[object, object], object]] = {
    BinaryOp.EQ: operator.eq,
    BinaryOp.NE: operator.ne,
    BinaryOp.LT: operator.lt,
    BinaryOp.LE: operator.le,
    BinaryOp.GT: operator.gt,
    BinaryOp.GE: operator.ge,
    BinaryOp.ADD: operator.add,
    BinaryOp.SUB: operator.sub,
    BinaryOp.MUL: operator.mul,
    BinaryOp.DIV: operator.truediv,
    BinaryOp.FLOOR_DIV: operator.floordiv,
    BinaryOp.MOD: operator.mod,
    BinaryOp.POW: operator.pow,
}

_UNARY_FUNCS: dict[UnaryOp, Callable[[object], object]] = {
    UnaryOp.NEG: operator.neg,
    UnaryOp.POS: operator.pos,
    UnaryOp.NOT: operator.not_,
}


def read_member(owner: object, name: str) -> object:
    """Read *name* from *owner*: by key for mappings, by attribute otherwise."""
    if owner is None:
        raise EvaluationError(f"Cannot read member '{name}' of None")
    if isinstance(owner, Mapping):
        try:
            return owner[name]
        except KeyError:
            raise EvaluationError(
                f"Member '{name}' not found. Available: {sorted(map(str, owner))}"
            ) from None
    try:
        return getattr(owner, name)
    except (AttributeError, ValueError) as e:
        # ValueError: an empty closure cell
        raise EvaluationError(
            f"Cannot read member '{name}' on {type(owner).__name__}: {e}"
        ) from e


class Evaluator:
    """Evaluates expression nodes to concrete values.

    Subclasses may extend ``_EXPR_DISPATCH`` to evaluate additional node
    kinds; unknown kinds raise ``EvaluationError``.
    """

    def evaluate(self, expr: Expression) -> object:
        handler = self._EXPR_DISPATCH.get(expr.kind)
        if handler is None:
            raise EvaluationError(f"Unsupported expression kind: {expr.kind}")
        return handler(self, expr)

    def _eval_constant(self, expr: ConstantExpr) -> object:
        return expr.value

    def _eval_member_access(self, expr: MemberAccessExpr) -> object:
        owner = self.evaluate(expr.owner)
        return read_member(owner, expr.member)

    def _eval_call(self, expr: CallExpr) -> object:
        function = self.evaluate(expr.function)
        if not callable(function):
            raise EvaluationError(
                f"Cannot call object of type {type(function).__name__}"
            )
        args = [self.evaluate(a) for a in expr.args]
        try:
            return function(*args)
        except Exception as e:
            name = getattr(function, "__qualname__", repr(function))
            raise EvaluationError(f"Call to {name} failed: {e!r}") from e

    def _eval_binary(self, expr: BinaryExpr) -> object:
        # Python short-circuit semantics for and/or
        if expr.op == BinaryOp.AND_ALSO:
            left = self.evaluate(expr.left)
            return self.evaluate(expr.right) if left else left
        if expr.op == BinaryOp.OR_ELSE:
            left = self.evaluate(expr.left)
            return left if left else self.evaluate(expr.right)

        func = _BINOP_FUNCS.get(expr.op)
        if func is None:
            raise EvaluationError(f"Unsupported binary op: {expr.op}")
        left = self.evaluate(expr.left)
        right = self.evaluate(expr.right)
        try:
            return func(left, right)
        except Exception as e:
            raise EvaluationError(
                f"{expr.op.value} failed on {type(left).__name__} and "
                f"{type(right).__name__}: {e}"
            ) from e

    def _eval_unary(self, expr: UnaryExpr) -> object:
        operand = self.evaluate(expr.operand)
        func = _UNARY_FUNCS.get(expr.op)
        if func is None:
            raise EvaluationError(f"Unsupported unary op: {expr.op}")
        try:
            return func(operand)
        except Exception as e:
            raise EvaluationError(
                f"{expr.op.value} failed on {type(operand).__name__}: {e}"
            ) from e

    def _eval_index(self, expr: IndexExpr) -> object:
        owner = self.evaluate(expr.owner)
        index = self.evaluate(expr.index)
        try:
            return owner[index]
        except (LookupError, TypeError) as e:
            raise EvaluationError(
                f"Cannot index {type(owner).__name__} with {index!r}: {e}"
            ) from e

    # Expression dispatch table
    _EXPR_DISPATCH: dict[str, Callable[[Evaluator, Expression], object]] = {
        "constant": _eval_constant,
        "member_access": _eval_member_access,
        "call": _eval_call,
        "binary": _eval_binary,
        "unary": _eval_unary,
        "index": _eval_index,
    }


default_evaluator = Evaluator()
