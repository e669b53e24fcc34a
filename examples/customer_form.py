"""A customer edit form kept in sync with its model.

Demonstrates:
  - notifying() members raising property_changed
  - A conjunction of equalities bound in one call
  - A computed (read-only) endpoint
  - A nested path whose owner is replaced while bound
  - A widget exposing a convention event instead of property_changed
"""

import logging

from tether.framework import Observable, bind, event, notifying
from tether.engine import errors


# =========================================================================
# Model
# =========================================================================

class Address(Observable):
    street = notifying("")
    city   = notifying("")


class Customer(Observable):
    first_name = notifying("")
    last_name  = notifying("")
    address    = notifying(None)


# =========================================================================
# View
# =========================================================================

class TextBox:
    """Stand-in for a toolkit text field."""

    value_changed = event()

    def __init__(self):
        self.value = ""

    def type(self, text):
        self.value = text
        self.value_changed.emit(self, text)


class Form(Observable):
    title = notifying("")


# =========================================================================
# Wiring
# =========================================================================

if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    errors.subscribe(lambda message: print(f"  ! {message}"))

    home = Address()
    home.street, home.city = "Hauptstr. 1", "Berlin"
    customer = Customer()
    customer.first_name, customer.last_name = "Erika", "Mustermann"
    customer.address = home

    first_box, last_box, city_box = TextBox(), TextBox(), TextBox()
    form = Form()

    binding = bind(lambda: first_box.value == customer.first_name
                   and last_box.value == customer.last_name
                   and city_box.value == customer.address.city)
    title = bind(lambda: form.title == customer.first_name + " " + customer.last_name)

    print(f"initial:   {first_box.value!r} {last_box.value!r} {city_box.value!r}")
    print(f"title:     {form.title!r}")

    last_box.type("Musterfrau")
    print(f"typed:     customer.last_name={customer.last_name!r}, title={form.title!r}")

    office = Address()
    office.city = "Hamburg"
    customer.address = office
    print(f"moved:     city box={city_box.value!r}")

    city_box.type("Bremen")
    print(f"edited:    office.city={office.city!r}, home.city={home.city!r}")

    print("writing into the computed title:")
    form.title = "Someone Else"

    binding.unbind()
    title.unbind()
    customer.first_name = "Max"
    print(f"unbound:   first box={first_box.value!r}")
