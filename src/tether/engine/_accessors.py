"""Accessor resolution: the live (owner, member) view of a member access.

An accessor is recomputed for every read and write because the owner
sub-expression may itself change between evaluations (``a.b.c`` after
``a.b`` was replaced).
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Mapping, MutableMapping
from dataclasses import dataclass

from tether.model.expressions import Expression, MemberAccessExpr

from ._evaluator import EvaluationError, Evaluator, read_member

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Accessor:
    """Read/write view of ``owner.member`` at one point in time."""

    owner: object
    member: str
    can_read: bool
    can_write: bool

    def read(self) -> object:
        return read_member(self.owner, self.member)

    def write(self, value: object) -> bool:
        """Store *value*; returns False if the owner refused it."""
        if not self.can_write:
            return False
        try:
            if isinstance(self.owner, MutableMapping):
                self.owner[self.member] = value
            else:
                setattr(self.owner, self.member, value)
        except (AttributeError, LookupError, TypeError, ValueError) as e:
            logger.debug(
                "Write of %s.%s refused: %s",
                type(self.owner).__name__, self.member, e,
            )
            return False
        return True


def _is_readable(owner: object, name: str) -> bool:
    try:
        read_member(owner, name)
    except EvaluationError:
        return False
    return True


def _attribute_capabilities(owner: object, name: str) -> tuple[bool, bool]:
    can_read = _is_readable(owner, name)
    static = inspect.getattr_static(type(owner), name, None)
    if isinstance(static, property):
        return can_read, static.fset is not None
    if static is not None and hasattr(type(static), "__set__"):
        return can_read, True
    # Plain instance attribute: needs an instance dict (or a slot)
    return can_read, hasattr(owner, "__dict__") or isinstance(owner, type)


def accessor_for(owner: object, name: str) -> Accessor:
    """Build the accessor for *name* on an already evaluated *owner*."""
    if owner is None:
        return Accessor(owner=None, member=name, can_read=False, can_write=False)
    if isinstance(owner, Mapping):
        return Accessor(
            owner=owner,
            member=name,
            can_read=name in owner,
            can_write=isinstance(owner, MutableMapping),
        )
    can_read, can_write = _attribute_capabilities(owner, name)
    return Accessor(owner=owner, member=name, can_read=can_read, can_write=can_write)


def resolve_accessor(expr: Expression, evaluator: Evaluator) -> Accessor | None:
    """Resolve *expr* to an accessor, or None if it is not a member access.

    The owner sub-expression is evaluated, so ``EvaluationError`` from a
    broken path propagates to the caller.
    """
    if not isinstance(expr, MemberAccessExpr):
        return None
    owner = evaluator.evaluate(expr.owner)
    return accessor_for(owner, expr.member)
