"""Tests for equality bindings: initialization, propagation, teardown."""

from conftest import Counter, Foo, Person, Plain, Widget

from tether.engine import (
    CompositeBinding,
    EqualityBinding,
    NullBinding,
    SubscriptionRegistry,
    notify_member_changed,
    set_value,
)
from tether.framework import Observable, notifying
from tether.model.expressions import BinaryExpr, BinaryOp, call, const, member, path


class Address(Observable):
    city = notifying("")


class Customer(Observable):
    address = notifying(None)


class Form(Observable):
    city = notifying("")


def _concat(left, right):
    return BinaryExpr(op=BinaryOp.ADD, left=left, right=right)


# ---------------------------------------------------------------------------
# set_value
# ---------------------------------------------------------------------------

class TestSetValue:
    def test_writes_and_invalidates(self, registry):
        obj = Plain(x=1)
        seen = []
        registry.add_callback(obj, "x", seen.append)
        assert set_value(member(obj, "x"), 5, 9) is True
        assert obj.x == 5
        assert seen == [9]

    def test_non_member_rejected(self, reported):
        assert set_value(const(1), 5, 1) is False
        assert reported == ["WriteRejected: Cannot write to a constant expression"]

    def test_none_owner_rejected(self, reported):
        holder = Plain(child=None)
        assert set_value(path(holder, "child.x"), 5, 1) is False
        assert reported[0].startswith("WriteRejected: Cannot write member 'x' of None")

    def test_broken_path_rejected(self, reported):
        assert set_value(path(Plain(), "missing.x"), 5, 1) is False
        assert reported[0].startswith("WriteRejected: Cannot resolve the owner of 'x'")

    def test_read_only_rejected(self, reported):
        class ReadOnly:
            @property
            def value(self):
                return 1

        assert set_value(member(ReadOnly(), "value"), 5, 1) is False
        assert "is not writable" in reported[0]

    def test_explicit_registry(self):
        reg = SubscriptionRegistry()
        obj = Plain(x=1)
        seen = []
        reg.add_callback(obj, "x", seen.append)
        set_value(member(obj, "x"), 2, 4, registry=reg)
        assert seen == [4]


# ---------------------------------------------------------------------------
# Initialization
# ---------------------------------------------------------------------------

class TestInitialization:
    def test_right_into_left(self):
        p1, p2 = Person(), Person()
        p2.age = 10
        EqualityBinding(member(p1, "age"), member(p2, "age"))
        assert p1.age == 10

    def test_left_into_right_when_left_read_only(self, reported):
        target = Plain(text="old")
        EqualityBinding(const("fixed"), member(target, "text"))
        assert target.text == "fixed"
        assert reported == ["WriteRejected: Cannot write to a constant expression"]

    def test_none_value_copied(self):
        left, right = Plain(x="set"), Plain(x=None)
        EqualityBinding(member(left, "x"), member(right, "x"))
        assert left.x is None

    def test_unreadable_right_reports(self, reported):
        left = Plain(x=1)
        right = Plain()
        EqualityBinding(member(left, "x"), member(right, "x"))
        assert any(m.startswith("EvaluationFailed:") for m in reported)
        assert right.x == 1

    def test_nothing_possible(self, reported):
        binding = EqualityBinding(const(1), const(2))
        assert binding.left_triggers == []
        assert binding.right_triggers == []
        assert len(reported) == 2

    def test_change_ids_start_after_init(self):
        binding = EqualityBinding(member(Plain(x=1), "x"), member(Plain(x=2), "x"))
        assert binding.next_change_id == 2
        assert binding.active_change_ids == set()


# ---------------------------------------------------------------------------
# Propagation
# ---------------------------------------------------------------------------

class TestPropagation:
    def test_both_directions(self):
        a, b = Foo(), Foo()
        b.a = 1
        EqualityBinding(member(a, "a"), member(b, "a"))
        assert a.a == 1
        a.a = 2
        assert b.a == 2
        b.a = 3
        assert a.a == 3

    def test_plain_objects_need_notification(self):
        a, b = Plain(x=1), Plain(x=2)
        EqualityBinding(member(a, "x"), member(b, "x"))
        b.x = 7
        assert a.x == 2
        notify_member_changed(b, "x")
        assert a.x == 7

    def test_convention_event_owner(self):
        w = Widget("start")
        target = Plain(text=None)
        EqualityBinding(member(target, "text"), member(w, "value"))
        w.set_value("next")
        assert target.text == "next"

    def test_no_oscillation(self):
        a, b = Counter(1), Counter(2)
        EqualityBinding(member(a, "value"), member(b, "value"))
        assert a.value == 2
        assert a.writes == 1
        b.value = 5
        assert a.value == 5
        assert a.writes == 2
        assert b.writes == 1

    def test_no_op_suppression(self):
        a, b = Counter(1), Counter(2)
        EqualityBinding(member(a, "value"), member(b, "value"))
        b.value = 2
        assert a.writes == 1

    def test_cached_value_tracks_last_sync(self):
        a, b = Foo(), Foo()
        binding = EqualityBinding(member(a, "a"), member(b, "a"))
        b.a = 11
        assert binding.cached_value == 11

    def test_complex_endpoint(self, reported):
        person = Person()
        label = Foo()
        EqualityBinding(member(label, "a"), _concat(member(person, "name"), const(" Hello World")))
        assert label.a == "Mustermann Hello World"

        person.name = "Musterfrau"
        person.set_property_changed("name")
        assert label.a == "Musterfrau Hello World"

        label.a = "typed"
        assert reported == [
            "WriteRejected: Cannot write to a binary expression",
        ]
        assert person.name == "Musterfrau"

    def test_both_sides_complex(self, reported):
        a, b = Foo(), Foo()
        EqualityBinding(
            _concat(member(a, "a"), const(1)),
            _concat(member(b, "a"), const(1)),
        )
        b.a = 5
        assert a.a == 0
        assert reported
        assert all(m.startswith("WriteRejected:") for m in reported)

    def test_call_endpoint(self):
        foo, bar = Foo(), Foo()
        EqualityBinding(member(bar, "a"), call(max, member(foo, "a"), member(foo, "b")))
        foo.b = 4
        assert bar.a == 4
        foo.a = 9
        assert bar.a == 9

    def test_evaluation_failure_reported(self, reported):
        source = Foo()
        target = Foo()
        EqualityBinding(member(target, "a"), _concat(member(source, "a"), const(1)))
        source.a = "text"
        assert reported[-1].startswith("EvaluationFailed: ADD failed")
        assert target.a == 1


class TestNestedPath:
    def test_owner_replacement_moves_subscription(self, registry):
        first = Address()
        first.city = "Berlin"
        second = Address()
        second.city = "Hamburg"
        customer = Customer()
        customer.address = first
        form = Form()

        EqualityBinding(member(form, "city"), path(customer, "address.city"))
        assert form.city == "Berlin"

        customer.address = second
        assert form.city == "Hamburg"
        assert (first, "city") not in registry
        assert (second, "city") in registry

        first.city = "Munich"
        assert form.city == "Hamburg"
        second.city = "Bremen"
        assert form.city == "Bremen"

    def test_write_through_replaced_owner(self):
        first, second = Address(), Address()
        customer = Customer()
        customer.address = first
        form = Form()
        EqualityBinding(member(form, "city"), path(customer, "address.city"))

        customer.address = second
        form.city = "Köln"
        assert second.city == "Köln"
        assert first.city == ""

    def test_none_link_then_repaired(self, registry, reported):
        customer = Customer()
        form = Form()
        form.city = "Essen"
        EqualityBinding(path(customer, "address.city"), member(form, "city"))
        assert (customer, "address") in registry

        address = Address()
        customer.address = address
        form.city = "Bonn"
        assert address.city == "Bonn"


class TestSharedKeys:
    def test_independent_bindings_on_one_member(self):
        x, y, z = Foo(), Foo(), Foo()
        EqualityBinding(member(x, "a"), member(y, "a"))
        EqualityBinding(member(z, "a"), member(x, "a"))
        y.a = 5
        assert x.a == 5
        assert z.a == 5

    def test_chain_stays_reactive(self):
        a, b, c = Foo(), Foo(), Foo()
        EqualityBinding(member(a, "a"), member(b, "a"))
        EqualityBinding(member(b, "a"), member(c, "a"))
        c.a = 8
        assert b.a == 8
        assert a.a == 8
        a.a = 1
        assert b.a == 1
        assert c.a == 1


# ---------------------------------------------------------------------------
# Teardown
# ---------------------------------------------------------------------------

class TestUnbind:
    def test_unbind_stops_propagation(self, registry):
        a, b = Foo(), Foo()
        binding = EqualityBinding(member(a, "a"), member(b, "a"))
        binding.unbind()
        b.a = 4
        assert a.a == 0
        assert binding.unbound
        assert registry.entry_count() == 0
        assert len(a.property_changed) == 0
        assert len(b.property_changed) == 0

    def test_double_unbind(self, registry):
        binding = EqualityBinding(member(Foo(), "a"), member(Foo(), "a"))
        binding.unbind()
        binding.unbind()
        assert registry.entry_count() == 0

    def test_other_binding_survives(self, registry):
        x, y, z = Foo(), Foo(), Foo()
        first = EqualityBinding(member(x, "a"), member(y, "a"))
        EqualityBinding(member(z, "a"), member(y, "a"))
        first.unbind()
        y.a = 3
        assert z.a == 3
        assert x.a == 0

    def test_unbind_from_callback(self):
        b = Foo()
        holder = {}

        class Killer(Observable):
            a = notifying(0)

            def on_property_changed(self, name):
                holder["binding"].unbind()
                super().on_property_changed(name)

        killer = Killer()
        holder["binding"] = EqualityBinding(member(killer, "a"), member(b, "a"))
        b.a = 6
        assert killer.a == 6
        b.a = 7
        assert killer.a == 6


class TestComposite:
    def test_drops_none(self):
        composite = CompositeBinding([None, NullBinding()])
        assert len(composite.bindings) == 1

    def test_unbind_all(self, registry):
        a, b = Foo(), Foo()
        composite = CompositeBinding([
            EqualityBinding(member(a, "a"), member(b, "a")),
            EqualityBinding(member(a, "b"), member(b, "b")),
        ])
        composite.unbind()
        assert composite.bindings == []
        assert registry.entry_count() == 0

    def test_null_binding_unbind(self):
        NullBinding().unbind()
