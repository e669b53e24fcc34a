"""Shared test helpers and model classes for the tether test suite."""

import pytest

from tether.engine import errors, reset_registry
from tether.framework import Observable, event, notifying


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def registry():
    """A fresh process-wide registry for every test."""
    reg = reset_registry()
    yield reg
    reset_registry()


@pytest.fixture
def reported():
    """Messages broadcast on the error channel during the test."""
    messages: list[str] = []
    errors.subscribe(messages.append)
    yield messages
    errors.unsubscribe(messages.append)


# ---------------------------------------------------------------------------
# Model classes
# ---------------------------------------------------------------------------

class NotifyingModel(Observable):
    """Plain attributes; changes are announced by hand."""

    def set_property_changed(self, name):
        self.on_property_changed(name)


class Person(NotifyingModel):
    def __init__(self):
        self.age = 42
        self.name = "Mustermann"


class Foo(Observable):
    a = notifying(0)
    b = notifying(0)


class Bar:
    def __init__(self):
        self.c = 0


class Adder:
    @staticmethod
    def add(a, b):
        return a + b


class Counter(Observable):
    """Announces every assignment and counts them."""

    def __init__(self, value=0):
        self._value = value
        self.writes = 0

    @property
    def value(self):
        return self._value

    @value.setter
    def value(self, v):
        self.writes += 1
        self._value = v
        self.on_property_changed("value")


class Widget:
    """Convention-event notifier without property_changed."""

    value_changed = event()

    def __init__(self, value=None):
        self.value = value

    def set_value(self, value):
        self.value = value
        self.value_changed.emit(self, value)


class Plain:
    """No change notification at all."""

    def __init__(self, **kwargs):
        self.__dict__.update(kwargs)
