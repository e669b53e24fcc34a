"""Bindings: equality synchronization between two expressions.

An ``EqualityBinding`` keeps ``left`` and ``right`` equal.  At
construction the right side wins (its value is written into the left)
unless the left is not writable, in which case the left side wins.
Afterwards, whichever side is notified as changed is re-evaluated and,
if its value differs from the last consistent value, written into the
other side.

Echo suppression: every write a binding performs is tagged with a
change id allocated from the binding's own counter.  The write
invalidates the target member, which calls back into the same binding;
a callback carrying one of the binding's in-flight ids is ignored.
Other bindings on the same member see the write as an ordinary change.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable

from tether.model.expressions import Expression, MemberAccessExpr

from ._accessors import resolve_accessor
from ._errors import ErrorKind, report_error
from ._evaluator import EvaluationError, Evaluator, default_evaluator
from ._registry import CallbackHandle, SubscriptionRegistry, get_registry
from ._triggers import Trigger, collect_triggers

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------

def set_value(
    expr: Expression,
    value: object,
    change_id: int,
    *,
    registry: SubscriptionRegistry | None = None,
    evaluator: Evaluator | None = None,
) -> bool:
    """Write *value* into the location *expr* denotes.

    Only a member access with a writable member on a non-None owner can
    be written.  A successful write invalidates the member with
    *change_id*; a rejected one is reported and returns False.
    """
    registry = registry or get_registry()
    evaluator = evaluator or default_evaluator

    if not isinstance(expr, MemberAccessExpr):
        report_error(ErrorKind.WRITE_REJECTED, f"Cannot write to a {expr.kind} expression")
        return False

    try:
        accessor = resolve_accessor(expr, evaluator)
    except EvaluationError as e:
        report_error(
            ErrorKind.WRITE_REJECTED,
            f"Cannot resolve the owner of '{expr.member}': {e}",
        )
        return False

    if accessor.owner is None:
        report_error(
            ErrorKind.WRITE_REJECTED,
            f"Cannot write member '{expr.member}' of None",
        )
        return False

    if not accessor.write(value):
        report_error(
            ErrorKind.WRITE_REJECTED,
            f"Member '{expr.member}' on {type(accessor.owner).__name__} is not writable",
        )
        return False

    registry.invalidate(accessor.owner, expr.member, change_id)
    return True


def _differs(value: object, cached: object) -> bool:
    if value is None and cached is None:
        return False
    if value is None or cached is None:
        return True
    if value is cached:
        return False
    try:
        return bool(value != cached)
    except (TypeError, ValueError):
        # No usable equality: treat as a change
        return True


# ---------------------------------------------------------------------------
# Binding classes
# ---------------------------------------------------------------------------

class Binding:
    """A live synchronization created by ``create()``.

    ``unbind()`` is final: it cannot be undone, and calling it again is a
    no-op.
    """

    def unbind(self) -> None:
        pass


class NullBinding(Binding):
    """Returned for formulas that produce no synchronization at all."""

    def __repr__(self) -> str:
        return "NullBinding()"


class _Subscription:
    """A trigger plus the callback currently registered for it."""

    __slots__ = ("trigger", "owner", "handle")

    def __init__(self, trigger: Trigger) -> None:
        self.trigger = trigger
        self.owner: object = None
        self.handle: CallbackHandle | None = None


class EqualityBinding(Binding):
    """Two-way binding between the expressions *left* and *right*.

    Parameters
    ----------
    left, right : Expression
        The two sides.  A side that is not a member access is read-only:
        values only ever flow out of it.
    registry : SubscriptionRegistry, optional
        Defaults to the process-wide registry.
    evaluator : Evaluator, optional
        Defaults to the shared ``Evaluator`` instance.
    """

    def __init__(
        self,
        left: Expression,
        right: Expression,
        *,
        registry: SubscriptionRegistry | None = None,
        evaluator: Evaluator | None = None,
    ) -> None:
        self.left = left
        self.right = right
        self.registry = registry or get_registry()
        self.evaluator = evaluator or default_evaluator

        self.cached_value: object = None
        self.next_change_id = 1
        self.active_change_ids: set[int] = set()
        self.unbound = False

        self._initialize()
        self.next_change_id += 1

        self.left_triggers = [_Subscription(t) for t in collect_triggers(left)]
        self.right_triggers = [_Subscription(t) for t in collect_triggers(right)]

        self._subscribe(self.left_triggers, self._on_left_changed)
        self._subscribe(self.right_triggers, self._on_right_changed)

    def __repr__(self) -> str:
        state = "unbound" if self.unbound else "bound"
        return f"EqualityBinding({self.left.kind} == {self.right.kind}, {state})"

    # -----------------------------------------------------------------------
    # Initialization
    # -----------------------------------------------------------------------

    def _initialize(self) -> None:
        """Write right into left, or failing that, left into right."""
        for source, target in ((self.right, self.left), (self.left, self.right)):
            try:
                value = self.evaluator.evaluate(source)
            except EvaluationError as e:
                report_error(ErrorKind.EVALUATION_FAILED, str(e))
                continue
            self.cached_value = value
            if self._set_value(target, value, self.next_change_id):
                return
        logger.debug("No initial assignment possible for %r", self)

    def _set_value(self, expr: Expression, value: object, change_id: int) -> bool:
        return set_value(
            expr, value, change_id,
            registry=self.registry, evaluator=self.evaluator,
        )

    # -----------------------------------------------------------------------
    # Subscriptions
    # -----------------------------------------------------------------------

    def _owner_of(self, trigger: Trigger) -> object:
        try:
            return self.evaluator.evaluate(trigger.owner_expr)
        except EvaluationError:
            # Broken path link: nothing to watch until it is repaired
            return None

    def _attach(self, sub: _Subscription, callback: Callable[[int], None]) -> None:
        sub.owner = self._owner_of(sub.trigger)
        if sub.owner is not None:
            sub.handle = self.registry.add_callback(sub.owner, sub.trigger.member, callback)

    def _detach(self, sub: _Subscription) -> None:
        if sub.handle is not None:
            self.registry.remove_callback(sub.handle)
        sub.handle = None
        sub.owner = None

    def _subscribe(self, subs: list[_Subscription], callback: Callable[[int], None]) -> None:
        for sub in subs:
            self._attach(sub, callback)

    def _refresh(self, subs: list[_Subscription], callback: Callable[[int], None]) -> None:
        """Move subscriptions whose owner object was replaced."""
        for sub in subs:
            owner = self._owner_of(sub.trigger)
            if owner is not sub.owner:
                self._detach(sub)
                self._attach(sub, callback)

    def _refresh_all(self) -> None:
        self._refresh(self.left_triggers, self._on_left_changed)
        self._refresh(self.right_triggers, self._on_right_changed)

    # -----------------------------------------------------------------------
    # Propagation
    # -----------------------------------------------------------------------

    def _on_left_changed(self, change_id: int) -> None:
        self._on_side_changed(self.left, self.right, change_id)

    def _on_right_changed(self, change_id: int) -> None:
        self._on_side_changed(self.right, self.left, change_id)

    def _on_side_changed(self, expr: Expression, dependent: Expression, cause_id: int) -> None:
        if self.unbound or cause_id in self.active_change_ids:
            return

        self._refresh_all()

        try:
            value = self.evaluator.evaluate(expr)
        except EvaluationError as e:
            report_error(ErrorKind.EVALUATION_FAILED, str(e))
            return

        if not _differs(value, self.cached_value):
            return

        self.cached_value = value

        change_id = self.next_change_id
        self.next_change_id += 1
        self.active_change_ids.add(change_id)
        try:
            self._set_value(dependent, value, change_id)
        finally:
            self.active_change_ids.discard(change_id)

        if not self.unbound:
            self._refresh_all()

    # -----------------------------------------------------------------------
    # Teardown
    # -----------------------------------------------------------------------

    def unbind(self) -> None:
        if self.unbound:
            return
        self.unbound = True
        for sub in self.left_triggers + self.right_triggers:
            self._detach(sub)


class CompositeBinding(Binding):
    """Several bindings made from one conjunction, unbound together."""

    def __init__(self, bindings: Iterable[Binding | None]) -> None:
        self.bindings: list[Binding] = [b for b in bindings if b is not None]

    def __repr__(self) -> str:
        return f"CompositeBinding({self.bindings!r})"

    def unbind(self) -> None:
        for binding in self.bindings:
            binding.unbind()
        self.bindings.clear()
