"""tether binding engine — declarative two-way synchronization.

Entry point::

    from tether.engine import create
    from tether.model.expressions import eq, and_also, member

    binding = create(and_also(
        eq(member(p1, "age"), member(p2, "age")),
        eq(member(p1, "name"), member(p2, "name")),
    ))
    ...
    binding.unbind()
"""

from __future__ import annotations

from tether.model.expressions import BinaryExpr, BinaryOp, Expression

from ._accessors import Accessor, accessor_for, resolve_accessor
from ._bindings import (
    Binding,
    CompositeBinding,
    EqualityBinding,
    NullBinding,
    set_value,
)
from ._errors import ErrorChannel, ErrorKind, errors, report_error
from ._evaluator import EvaluationError, Evaluator
from ._registry import (
    CONVENTION_EVENTS,
    CallbackHandle,
    SubscriptionRegistry,
    get_registry,
    notify_member_changed,
    reset_registry,
)
from ._triggers import Trigger, collect_triggers


def create(
    formula: Expression,
    *,
    registry: SubscriptionRegistry | None = None,
    evaluator: Evaluator | None = None,
) -> Binding:
    """Create the bindings described by *formula*.

    Parameters
    ----------
    formula
        An equality (``BinaryExpr`` with ``op=EQ``) or a conjunction
        (``AND_ALSO``) of equalities.  Conjuncts are bound left to right
        in authored order, each fully initialized before the next.
    registry
        Subscription registry to use (default: the process-wide one).
    evaluator
        Evaluator to use (default: the shared one).

    Returns
    -------
    Binding
        An ``EqualityBinding``, a ``CompositeBinding`` for conjunctions,
        or a ``NullBinding`` if *formula* is not a supported formula
        (the problem is reported on the error channel).
    """
    binding = _bind_expression(formula, registry, evaluator)
    if binding is None:
        return NullBinding()
    return binding


def _split_conjunction(expr: BinaryExpr) -> list[Expression]:
    """Flatten a left-leaning AND_ALSO chain into authored order."""
    parts: list[Expression] = []
    node: Expression | None = expr
    while node is not None:
        parts.append(node.right)
        left = node.left
        if isinstance(left, BinaryExpr) and left.op == BinaryOp.AND_ALSO:
            node = left
        else:
            parts.append(left)
            node = None
    parts.reverse()
    return parts


def _bind_expression(
    expr: Expression,
    registry: SubscriptionRegistry | None,
    evaluator: Evaluator | None,
) -> Binding | None:
    if isinstance(expr, BinaryExpr) and expr.op == BinaryOp.AND_ALSO:
        return CompositeBinding(
            _bind_expression(part, registry, evaluator)
            for part in _split_conjunction(expr)
        )

    if isinstance(expr, BinaryExpr) and expr.op == BinaryOp.EQ:
        return EqualityBinding(
            expr.left, expr.right, registry=registry, evaluator=evaluator,
        )

    kind = expr.op.value if isinstance(expr, BinaryExpr) else expr.kind
    report_error(
        ErrorKind.UNSUPPORTED_FORMULA,
        f"Only equality bindings are supported, got {kind}",
    )
    return None


__all__ = [
    "Accessor",
    "Binding",
    "CallbackHandle",
    "CompositeBinding",
    "CONVENTION_EVENTS",
    "EqualityBinding",
    "ErrorChannel",
    "ErrorKind",
    "EvaluationError",
    "Evaluator",
    "NullBinding",
    "SubscriptionRegistry",
    "Trigger",
    "accessor_for",
    "collect_triggers",
    "create",
    "errors",
    "get_registry",
    "notify_member_changed",
    "report_error",
    "reset_registry",
    "resolve_accessor",
    "set_value",
]
