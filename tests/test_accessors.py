"""Tests for accessor resolution and writes."""

from dataclasses import dataclass

import pytest

from conftest import Adder, Counter, Plain

from tether.engine import EvaluationError, Evaluator, accessor_for, resolve_accessor
from tether.model.expressions import call, const, member, path


class ReadOnly:
    @property
    def value(self):
        return 1


class Slotted:
    __slots__ = ("x",)

    def __init__(self):
        self.x = 0


@dataclass(frozen=True)
class Point:
    x: int
    y: int


class TestAccessorFor:
    def test_plain_attribute(self):
        acc = accessor_for(Plain(x=1), "x")
        assert acc.can_read and acc.can_write

    def test_missing_attribute_is_writable(self):
        acc = accessor_for(Plain(), "later")
        assert not acc.can_read
        assert acc.can_write

    def test_read_only_property(self):
        acc = accessor_for(ReadOnly(), "value")
        assert acc.can_read
        assert not acc.can_write
        assert acc.write(5) is False

    def test_settable_property(self):
        counter = Counter(1)
        acc = accessor_for(counter, "value")
        assert acc.can_write
        assert acc.write(9) is True
        assert counter.value == 9
        assert counter.writes == 1

    def test_slots(self):
        obj = Slotted()
        acc = accessor_for(obj, "x")
        assert acc.can_write
        assert acc.write(3)
        assert obj.x == 3

    def test_frozen_dataclass_refuses(self):
        pt = Point(1, 2)
        assert accessor_for(pt, "x").write(5) is False
        assert pt.x == 1

    def test_class_owner(self):
        acc = accessor_for(Adder, "add")
        assert acc.can_read
        assert acc.read()(1, 2) == 3

    def test_closure_cell(self):
        value = 1
        cell = (lambda: value).__closure__[0]
        acc = accessor_for(cell, "cell_contents")
        assert acc.can_read and acc.can_write
        assert acc.write(2)
        assert value == 2

    def test_empty_closure_cell(self):
        def f():
            return later

        acc = accessor_for(f.__closure__[0], "cell_contents")
        assert not acc.can_read
        assert acc.can_write
        with pytest.raises(EvaluationError, match="Cannot read member 'cell_contents'"):
            acc.read()
        later = 1
        assert acc.read() == later

    def test_none_owner(self):
        acc = accessor_for(None, "x")
        assert not acc.can_read
        assert not acc.can_write
        assert acc.write(1) is False


class TestMappingOwner:
    def test_dict(self):
        data = {"x": 1}
        acc = accessor_for(data, "x")
        assert acc.can_read and acc.can_write
        assert acc.read() == 1
        assert acc.write(2)
        assert data == {"x": 2}

    def test_missing_key(self):
        acc = accessor_for({}, "x")
        assert not acc.can_read
        assert acc.can_write

    def test_read_only_mapping(self):
        from types import MappingProxyType
        acc = accessor_for(MappingProxyType({"x": 1}), "x")
        assert acc.can_read
        assert not acc.can_write


class TestResolveAccessor:
    def test_member_access(self):
        root = Plain(child=Plain(x=7))
        acc = resolve_accessor(path(root, "child.x"), Evaluator())
        assert acc.owner is root.child
        assert acc.member == "x"
        assert acc.read() == 7

    def test_not_a_member_access(self):
        assert resolve_accessor(const(1), Evaluator()) is None
        assert resolve_accessor(call(len, const("ab")), Evaluator()) is None

    def test_broken_path_raises(self):
        with pytest.raises(EvaluationError):
            resolve_accessor(path(Plain(), "missing.x"), Evaluator())

    def test_none_link(self):
        acc = resolve_accessor(member(member(Plain(child=None), "child"), "x"), Evaluator())
        assert acc.owner is None
        assert not acc.can_write
