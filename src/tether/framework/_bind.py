"""Python front-end for the binding engine.

Write formulas as ordinary Python::

    binding = bind(lambda: person1.age == person2.age and person1.name == person2.name)

or as a string with explicit names::

    binding = bind("left == right", form)
"""

from __future__ import annotations

import ast
from collections.abc import Callable, Mapping
from types import FunctionType
from typing import Any, Union

from tether.engine import (
    Binding,
    Evaluator,
    SubscriptionRegistry,
    create,
    get_registry,
)
from tether.engine._evaluator import default_evaluator
from tether.model.expressions import Expression, MemberAccessExpr, ExpressionNode

from ._compilation_helpers import _build_compile_context, _parse_formula_source
from ._compiler import ASTCompiler, CompileContext, CompileError

Formula = Union[Expression, str, Callable[[], Any]]


def compile_formula(func: Callable[[], Any]) -> Expression:
    """Compile a zero-argument lambda (or single-return ``def``) to a tree."""
    if not isinstance(func, FunctionType):
        raise TypeError(
            f"compile_formula() expects a lambda or function, got {type(func).__name__}"
        )
    context_name = f"{func.__qualname__}()"
    node, offset = _parse_formula_source(func, context_name)
    ctx = _build_compile_context(func, offset)
    return ASTCompiler(ctx).compile_expression(node)


def compile_source(source: str, namespace: Mapping[str, Any]) -> Expression:
    """Compile an expression string whose names resolve in *namespace*."""
    try:
        tree = ast.parse(source.strip(), mode="eval")
    except SyntaxError as e:
        raise CompileError(f"Syntax error in formula {source!r}: {e.msg}") from e
    ctx = CompileContext(scopes=[namespace], source_file="<formula>")
    return ASTCompiler(ctx).compile_expression(tree.body)


def _to_expression(formula: Formula, namespace: Mapping[str, Any] | None) -> Expression:
    if isinstance(formula, ExpressionNode):
        return formula
    if isinstance(formula, str):
        return compile_source(formula, namespace if namespace is not None else {})
    return compile_formula(formula)


def bind(
    formula: Formula,
    namespace: Mapping[str, Any] | None = None,
    *,
    registry: SubscriptionRegistry | None = None,
    evaluator: Evaluator | None = None,
    **names: Any,
) -> Binding:
    """Create bindings from a lambda, a source string, or an expression tree.

    Parameters
    ----------
    formula
        ``lambda: a.x == b.x``, ``"a.x == b.x"`` or an expression tree.
    namespace
        For string formulas: the mapping names resolve in.  Names bound
        directly in it are writable endpoints.
    registry, evaluator
        Passed through to ``tether.engine.create``.
    **names
        For string formulas without *namespace*: the names to resolve.
    """
    if isinstance(formula, str) and namespace is None:
        namespace = dict(names)
    elif names:
        raise TypeError("keyword names are only accepted with a string formula")
    expr = _to_expression(formula, namespace)
    return create(expr, registry=registry, evaluator=evaluator)


def notify(
    member_expr: Callable[[], Any] | Expression,
    *,
    registry: SubscriptionRegistry | None = None,
    evaluator: Evaluator | None = None,
) -> bool:
    """Announce that the member in ``lambda: model.member`` has changed.

    Raises the owner's ``property_changed`` event when it has one (so
    every observer learns of the change, not just bindings).  Otherwise
    invalidates the member in *registry* directly; pass the registry the
    bindings were created with.

    Returns True if a ``property_changed`` event was raised.
    """
    expr = member_expr if isinstance(member_expr, ExpressionNode) else compile_formula(member_expr)
    if not isinstance(expr, MemberAccessExpr):
        raise CompileError(
            f"notify() expects a member access like 'lambda: model.member', got {expr.kind}"
        )

    owner = (evaluator or default_evaluator).evaluate(expr.owner)
    if owner is None:
        raise ValueError(f"Cannot notify '{expr.member}': its owner is None")

    on_changed = getattr(owner, "on_property_changed", None)
    if callable(on_changed):
        on_changed(expr.member)
        return True
    emit = getattr(getattr(owner, "property_changed", None), "emit", None)
    if callable(emit):
        emit(expr.member)
        return True

    (registry or get_registry()).invalidate(owner, expr.member, 0)
    return False
