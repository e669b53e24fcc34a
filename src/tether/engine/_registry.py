"""Subscription registry: per-(object, member) listener bookkeeping.

Every binding that depends on ``owner.member`` registers a callback
here.  The registry keeps exactly one ``ListenerEntry`` per key and
that entry owns the single host-side subscription (a
``property_changed`` event or one of the convention events), created
when the first callback arrives and torn down when the last one leaves.

Keys use the *identity* of the owner.  Each entry holds a strong
reference to its owner, so an ``id()`` cannot be recycled while the key
is in use.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from ._protocols import EventSource, SupportsPropertyChanged

logger = logging.getLogger(__name__)

ChangeCallback = Callable[[int], None]

# Probed in order after property_changed; "{member}" is substituted.
CONVENTION_EVENTS: tuple[str, ...] = (
    "{member}_changed",
    "editing_did_end",
    "value_changed",
    "changed",
)


class CallbackHandle:
    """One registered callback for ``owner.member``."""

    __slots__ = ("owner", "member", "callback", "active")

    def __init__(self, owner: object, member: str, callback: ChangeCallback) -> None:
        if member is None:
            raise ValueError("member must not be None")
        if not callable(callback):
            raise TypeError(
                f"callback must be callable, got {type(callback).__name__}"
            )
        self.owner = owner
        self.member = member
        self.callback = callback
        self.active = True

    def notify(self, change_id: int) -> None:
        self.callback(change_id)

    def __repr__(self) -> str:
        state = "active" if self.active else "removed"
        return f"CallbackHandle({type(self.owner).__name__}.{self.member}, {state})"


class ListenerEntry:
    """All callbacks for one key plus the host subscription feeding them."""

    def __init__(self, registry: SubscriptionRegistry, owner: object, member: str) -> None:
        self.registry = registry
        self.owner = owner
        self.member = member
        self.handles: list[CallbackHandle] = []
        self.capability: str | None = None
        self._source: EventSource | None = None
        self._handler: Callable[..., None] | None = None

    # -----------------------------------------------------------------------
    # Host subscription
    # -----------------------------------------------------------------------

    def attach(self, convention_events: tuple[str, ...]) -> None:
        """Wire the first change-notification capability found on the owner."""
        if self.owner is None:
            return

        if isinstance(self.owner, SupportsPropertyChanged) and isinstance(
            self.owner.property_changed, EventSource
        ):
            self._subscribe(
                "property_changed",
                self.owner.property_changed,
                self._handle_property_changed,
            )
            return

        for template in convention_events:
            name = template.format(member=self.member)
            source = getattr(self.owner, name, None)
            if isinstance(source, EventSource):
                self._subscribe(name, source, self._handle_any_event)
                return

        logger.debug(
            "No change notification found for %s.%s",
            type(self.owner).__name__, self.member,
        )

    def _subscribe(self, name: str, source: EventSource, handler: Callable[..., None]) -> None:
        source.subscribe(handler)
        self.capability = name
        self._source = source
        self._handler = handler
        logger.debug("Added handler for %s on %r", name, self.owner)

    def detach(self) -> None:
        if self._source is None:
            return
        self._source.unsubscribe(self._handler)
        logger.debug("Removed handler for %s on %r", self.capability, self.owner)
        self._source = None
        self._handler = None
        self.capability = None

    def _handle_property_changed(self, name: str, *_args: object) -> None:
        if name == self.member:
            self.registry.invalidate(self.owner, self.member)

    def _handle_any_event(self, *_args: object, **_kwargs: object) -> None:
        self.registry.invalidate(self.owner, self.member)

    # -----------------------------------------------------------------------
    # Callbacks
    # -----------------------------------------------------------------------

    def notify(self, change_id: int) -> None:
        """Run every live callback, in registration order."""
        for handle in list(self.handles):
            # Removed by an earlier callback of this same pass
            if handle.active:
                handle.notify(change_id)


class SubscriptionRegistry:
    """Process-scoped map of ``(owner identity, member)`` -> ``ListenerEntry``.

    Parameters
    ----------
    convention_events : tuple[str, ...]
        Event attribute names probed, in order, on owners without a
        ``property_changed`` event.  ``"{member}"`` is replaced by the
        member name.
    """

    def __init__(self, convention_events: tuple[str, ...] = CONVENTION_EVENTS) -> None:
        self.convention_events = tuple(convention_events)
        self._entries: dict[tuple[int, str], ListenerEntry] = {}

    def add_callback(self, owner: object, member: str, on_change: ChangeCallback) -> CallbackHandle:
        handle = CallbackHandle(owner, member, on_change)
        key = (id(owner), member)
        entry = self._entries.get(key)
        if entry is None:
            entry = ListenerEntry(self, owner, member)
            self._entries[key] = entry
            entry.attach(self.convention_events)
        entry.handles.append(handle)
        return handle

    def remove_callback(self, handle: CallbackHandle) -> None:
        if not handle.active:
            return
        handle.active = False
        key = (id(handle.owner), handle.member)
        entry = self._entries.get(key)
        if entry is None:
            return
        try:
            entry.handles.remove(handle)
        except ValueError:
            return
        if not entry.handles:
            entry.detach()
            del self._entries[key]

    def invalidate(self, owner: object, member: str, change_id: int = 0) -> None:
        """Tell every callback on ``owner.member`` that it changed."""
        if member is None:
            raise ValueError("member must not be None")
        entry = self._entries.get((id(owner), member))
        if entry is not None and entry.owner is owner:
            entry.notify(change_id)

    # -----------------------------------------------------------------------
    # Introspection / shutdown
    # -----------------------------------------------------------------------

    def entry_for(self, owner: object, member: str) -> ListenerEntry | None:
        entry = self._entries.get((id(owner), member))
        if entry is not None and entry.owner is owner:
            return entry
        return None

    def __contains__(self, key: tuple[object, str]) -> bool:
        owner, member = key
        return self.entry_for(owner, member) is not None

    def entry_count(self) -> int:
        return len(self._entries)

    def clear(self) -> None:
        """Unsubscribe from every host event and drop all entries."""
        for entry in self._entries.values():
            for handle in entry.handles:
                handle.active = False
            entry.detach()
        self._entries.clear()


_registry: SubscriptionRegistry | None = None


def get_registry() -> SubscriptionRegistry:
    """The process-wide registry, created on first use."""
    global _registry
    if _registry is None:
        _registry = SubscriptionRegistry()
    return _registry


def reset_registry() -> SubscriptionRegistry:
    """Clear the process-wide registry and start a fresh one."""
    global _registry
    if _registry is not None:
        _registry.clear()
    _registry = SubscriptionRegistry()
    return _registry


def notify_member_changed(owner: object, member: str) -> None:
    """Manually invalidate ``owner.member`` for objects without events."""
    get_registry().invalidate(owner, member, 0)
