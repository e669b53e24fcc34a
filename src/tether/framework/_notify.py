"""Notifying objects: the change-notification side of plain Python classes.

Declare events and observable members on a class::

    class Person(Observable):
        age = notifying(42)
        name = notifying("Mustermann")

    class Slider:
        value_changed = event()

``Observable`` gives every instance a ``property_changed`` event whose
handlers receive the changed member name; ``notifying()`` members emit
it on assignment when the value actually changes.  Any ``Event`` named
after one of the convention events (``<member>_changed``,
``value_changed``, ...) is picked up by the binding engine as well.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any


class Event:
    """Multicast event: an ordered list of handlers.

    Supports ``subscribe``/``unsubscribe`` and the ``+=``/``-=`` shorthand.
    """

    __slots__ = ("_handlers",)

    def __init__(self) -> None:
        self._handlers: list[Callable[..., object]] = []

    def subscribe(self, handler: Callable[..., object]) -> None:
        if not callable(handler):
            raise TypeError(
                f"event handler must be callable, got {type(handler).__name__}"
            )
        self._handlers.append(handler)

    def unsubscribe(self, handler: Callable[..., object]) -> None:
        """Remove one registration of *handler*; unknown handlers are ignored."""
        if handler in self._handlers:
            self._handlers.remove(handler)

    def emit(self, *args: Any, **kwargs: Any) -> None:
        for handler in list(self._handlers):
            handler(*args, **kwargs)

    def __iadd__(self, handler: Callable[..., object]) -> Event:
        self.subscribe(handler)
        return self

    def __isub__(self, handler: Callable[..., object]) -> Event:
        self.unsubscribe(handler)
        return self

    def __len__(self) -> int:
        return len(self._handlers)

    def __repr__(self) -> str:
        return f"Event(handlers={len(self._handlers)})"


class event:
    """Class-level declaration of a per-instance ``Event``.

    The ``Event`` is created on first access and cached in the instance
    ``__dict__``.
    """

    def __init__(self) -> None:
        self.name: str | None = None

    def __set_name__(self, owner: type, name: str) -> None:
        self.name = name

    def __get__(self, obj: object, objtype: type | None = None) -> Any:
        if obj is None:
            return self
        ev = Event()
        obj.__dict__[self.name] = ev
        return ev


class Observable:
    """Mixin providing a ``property_changed`` event."""

    property_changed = event()

    def on_property_changed(self, name: str) -> None:
        self.property_changed.emit(name)


_MISSING = object()


class notifying:
    """A stored member that raises ``property_changed`` when it changes.

    The owning class should derive from ``Observable`` (or otherwise
    provide ``on_property_changed``).  Assigning an equal value is
    silent.
    """

    def __init__(self, default: Any = None) -> None:
        self.default = default
        self.name: str | None = None

    def __set_name__(self, owner: type, name: str) -> None:
        self.name = name

    def __get__(self, obj: object, objtype: type | None = None) -> Any:
        if obj is None:
            return self
        return obj.__dict__.get(self.name, self.default)

    def __set__(self, obj: object, value: Any) -> None:
        old = obj.__dict__.get(self.name, _MISSING)
        if old is _MISSING:
            old = self.default
        obj.__dict__[self.name] = value
        if old is value or old == value:
            return
        on_changed = getattr(obj, "on_property_changed", None)
        if on_changed is not None:
            on_changed(self.name)
