"""Shared BDD fixtures and step definitions for the marketplace."""

import pytest
from marketplace import services
from marketplace.errors import (
    AlreadyCancelled,
    AlreadyTerminal,
    BelowMinimum,
    Forbidden,
    InsufficientBalance,
    InvalidTransition,
)
from protean.exceptions import ValidationError
from pytest_bdd import given, parsers, then

# Map error name strings to classes for Then steps
_ERROR_CLASSES = {
    "InvalidTransition": InvalidTransition,
    "Forbidden": Forbidden,
    "AlreadyTerminal": AlreadyTerminal,
    "AlreadyCancelled": AlreadyCancelled,
    "InsufficientBalance": InsufficientBalance,
    "BelowMinimum": BelowMinimum,
    "ValidationError": ValidationError,
}

ADDRESS = {"name": "Asha", "address": "12 MG Road", "city": "Bengaluru", "pincode": "560001"}


@pytest.fixture()
def error():
    """Container for the error raised by the last When step."""
    return {"exc": None}


def place(payment_method, lines):
    """Place an order with one line per (vendor_id, amount)."""
    return services.place_order(
        customer_id="cust-001",
        items=[
            {"product_id": f"prod-{i}", "unit_price": amount, "quantity": 1, "vendor_id": vendor_id}
            for i, (vendor_id, amount) in enumerate(lines, start=1)
        ],
        shipping_address=ADDRESS,
        payment_method=payment_method,
    )


def ship(order_id):
    services.transition(order_id, "confirmed", "vendor")
    services.transition(order_id, "processing", "vendor")
    services.transition(order_id, "shipped", "vendor", delivery_payment=40.0, estimated_delivery_minutes=30)


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(
    parsers.cfparse('a "{payment_method}" order with {first:g} from "{vendor_a}" and {second:g} from "{vendor_b}"'),
    target_fixture="order_id",
)
def _(payment_method, first, vendor_a, second, vendor_b):
    order = place(payment_method, [(vendor_a, float(first)), (vendor_b, float(second))])
    return str(order.id)


@given("the order has been shipped")
def _(order_id):
    ship(order_id)


@given(parsers.cfparse('vendor "{vendor_id}" has earned {amount:g} from a delivered order'))
def _(vendor_id, amount):
    order = place("upi", [(vendor_id, float(amount))])
    ship(order.id)
    services.transition(order.id, "delivered", "delivery")


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('vendor "{vendor_id}" has {available:g} available and {pending:g} pending'))
def _(vendor_id, available, pending):
    wallet = services.get_wallet(vendor_id)
    assert wallet["available"] == float(available)
    assert wallet["pending"] == float(pending)


@then(parsers.cfparse('the {action} is rejected as "{error_name}"'))
def _(error, action, error_name):
    assert error["exc"] is not None, f"Expected the {action} to be rejected"
    assert isinstance(error["exc"], _ERROR_CLASSES[error_name]), f"Got {type(error['exc']).__name__}"
