"""Change-notification capabilities an object can opt into.

These ``@runtime_checkable`` protocols replace probing by reflection
with explicit ``isinstance`` tests.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Protocol, runtime_checkable


@runtime_checkable
class EventSource(Protocol):
    """Anything handlers can be attached to and detached from."""

    def subscribe(self, handler: Callable[..., object]) -> None: ...

    def unsubscribe(self, handler: Callable[..., object]) -> None: ...


@runtime_checkable
class SupportsPropertyChanged(Protocol):
    """An object whose ``property_changed`` handlers receive the member name."""

    property_changed: EventSource
