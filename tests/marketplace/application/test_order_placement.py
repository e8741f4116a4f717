"""Application tests for order placement — numbering and vendor credits."""

import json
from datetime import UTC, datetime

import pytest
from marketplace import services
from marketplace.order.order import Order
from marketplace.order.placement import PlaceOrder, PlacementResult
from marketplace.order.transitions import OrderStatus
from marketplace.wallet.wallet import TransactionKind, TransactionStatus
from protean import current_domain
from protean.exceptions import ValidationError

ADDRESS = {"name": "Asha", "address": "12 MG Road", "city": "Bengaluru", "pincode": "560001"}


def _items():
    return [
        {"product_id": "p1", "title": "Kurta", "unit_price": 200.0, "quantity": 1, "vendor_id": "vendor-1"},
        {"product_id": "p2", "title": "Dupatta", "unit_price": 300.0, "quantity": 1, "vendor_id": "vendor-1"},
        {"product_id": "p3", "title": "Lamp", "unit_price": 500.0, "quantity": 1, "vendor_id": "vendor-2"},
    ]


def _place(payment_method="upi", items=None, **kwargs):
    return services.place_order(
        customer_id="cust-001",
        items=items if items is not None else _items(),
        shipping_address=ADDRESS,
        payment_method=payment_method,
        **kwargs,
    )


class TestPlaceOrderCommand:
    def test_command_returns_placement_result(self):
        result = current_domain.process(
            PlaceOrder(
                customer_id="cust-001",
                items=json.dumps(_items()),
                shipping_address=json.dumps(ADDRESS),
                payment_method="card",
            ),
            asynchronous=False,
        )
        assert isinstance(result, PlacementResult)
        order = current_domain.repository_for(Order).get(result.order_id)
        assert order.status == OrderStatus.PENDING.value
        assert order.order_number == result.order_number

    def test_command_reports_vendor_credits(self):
        result = current_domain.process(
            PlaceOrder(
                customer_id="cust-001",
                items=json.dumps(_items()),
                shipping_address=json.dumps(ADDRESS),
                payment_method="card",
            ),
            asynchronous=False,
        )
        credits = {m.vendor_id: m.amount for m in result.movements}
        assert credits == {"vendor-1": 500.0, "vendor-2": 500.0}


class TestOrderNumbers:
    def test_first_order_of_the_year(self):
        order = _place()
        assert order.order_number == f"ORD-{datetime.now(UTC).year}-001"

    def test_numbers_increase(self):
        numbers = [_place().order_number for _ in range(3)]
        year = datetime.now(UTC).year
        assert numbers == [f"ORD-{year}-001", f"ORD-{year}-002", f"ORD-{year}-003"]


class TestVendorCredits:
    def test_prepaid_order_credits_each_vendor(self):
        order = _place("upi")

        v1 = services.get_wallet("vendor-1")
        v2 = services.get_wallet("vendor-2")
        assert v1["pending"] == 500.0
        assert v2["pending"] == 500.0
        assert v1["available"] == 0.0

        page = services.list_transactions("vendor-1")
        assert page["total"] == 1
        credit = page["transactions"][0]
        assert credit.kind == TransactionKind.CREDIT.value
        assert credit.status == TransactionStatus.PENDING.value
        assert credit.order_id == str(order.id)
        assert credit.description == f"Order {order.order_number} payment received"

    def test_cod_order_credits_nobody(self):
        _place("cod")
        assert services.get_wallet("vendor-1")["pending"] == 0.0
        assert services.list_transactions("vendor-1")["total"] == 0

    def test_credits_accumulate_across_orders(self):
        _place("card")
        _place("wallet")
        assert services.get_wallet("vendor-1")["pending"] == 1000.0
        assert services.list_transactions("vendor-1")["total"] == 2

    def test_only_present_vendors_are_credited(self):
        _place("upi", items=[_items()[2]])
        assert services.get_wallet("vendor-2")["pending"] == 500.0
        assert services.get_wallet("vendor-1")["pending"] == 0.0


class TestPlacementValidation:
    def test_empty_basket_rejected(self):
        with pytest.raises(ValidationError):
            _place(items=[])

    def test_rejected_order_credits_nobody(self):
        with pytest.raises(ValidationError):
            _place("upi", discount=5000.0)
        assert services.get_wallet("vendor-1")["pending"] == 0.0

    def test_unknown_payment_method_rejected(self):
        with pytest.raises(ValidationError):
            _place("barter")

    def test_non_numeric_quantity_is_a_validation_error(self):
        items = _items()
        items[0]["quantity"] = "two"
        with pytest.raises(ValidationError) as exc:
            _place("upi", items=items)
        assert "items" in exc.value.messages
        assert services.get_wallet("vendor-2")["pending"] == 0.0

    def test_non_numeric_price_is_a_validation_error(self):
        items = _items()
        items[2]["unit_price"] = "five hundred"
        with pytest.raises(ValidationError):
            _place("card", items=items)
