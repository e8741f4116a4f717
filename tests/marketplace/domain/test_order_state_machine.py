"""Tests for Order transitions — timeline bookkeeping, extras and terminal states."""

import pytest
from marketplace.errors import AlreadyCancelled, AlreadyTerminal, Forbidden, InvalidTransition
from marketplace.order.events import DeliveryPartnerAssigned, OrderCancelled, OrderShipped
from marketplace.order.order import Order
from marketplace.order.transitions import OrderStatus
from protean.exceptions import ValidationError

ADDRESS = {"address": "12 MG Road", "city": "Bengaluru", "pincode": "560001"}


def _make_order(payment_method="upi"):
    order = Order.place(
        order_number="ORD-2026-001",
        customer_id="cust-001",
        items_data=[
            {"product_id": "prod-1", "title": "Saree", "unit_price": 100.0, "quantity": 1, "vendor_id": "vendor-a"}
        ],
        shipping_address=ADDRESS,
        payment_method=payment_method,
    )
    order._events.clear()
    return order


def _order_at_state(target, payment_method="upi"):
    """Create an order and advance it along the main path to ``target``."""
    order = _make_order(payment_method)
    steps = [
        (OrderStatus.CONFIRMED, lambda o: o.transition("confirmed", "vendor")),
        (OrderStatus.PROCESSING, lambda o: o.transition("processing", "vendor")),
        (
            OrderStatus.SHIPPED,
            lambda o: o.transition("shipped", "vendor", delivery_payment=40.0, estimated_delivery_minutes=30),
        ),
        (OrderStatus.OUT_FOR_DELIVERY, lambda o: o.transition("out_for_delivery", "delivery")),
        (OrderStatus.DELIVERED, lambda o: o.transition("delivered", "delivery")),
    ]
    if target == OrderStatus.PENDING:
        return order
    for status, step in steps:
        step(order)
        order._events.clear()
        if status == target:
            return order
    raise AssertionError(f"Unreachable status {target}")


def _completed(order):
    return [entry.completed for entry in order.ordered_timeline()]


class TestTimeline:
    def test_confirm_completes_second_stage(self):
        order = _order_at_state(OrderStatus.CONFIRMED)
        assert _completed(order) == [True, True, False, False, False]

    def test_processing_keeps_timeline_at_confirmed(self):
        order = _order_at_state(OrderStatus.PROCESSING)
        assert _completed(order) == [True, True, False, False, False]

    def test_shipped_completes_three_stages(self):
        order = _order_at_state(OrderStatus.SHIPPED)
        assert _completed(order) == [True, True, True, False, False]

    def test_delivered_completes_everything(self):
        order = _order_at_state(OrderStatus.DELIVERED)
        assert _completed(order) == [True] * 5
        assert all(entry.completed_at is not None for entry in order.timeline)

    def test_direct_delivery_fills_skipped_stage(self):
        order = _order_at_state(OrderStatus.SHIPPED)
        order.transition("delivered", "admin")
        assert _completed(order) == [True] * 5
        out_for_delivery = order.ordered_timeline()[3]
        assert out_for_delivery.completed_at == order.delivered_at

    def test_earlier_timestamps_are_never_rewritten(self):
        order = _order_at_state(OrderStatus.CONFIRMED)
        placed_at = order.ordered_timeline()[0].completed_at
        confirmed_at = order.ordered_timeline()[1].completed_at

        order.transition("processing", "vendor")
        order.transition("shipped", "vendor", delivery_payment=40.0, estimated_delivery_minutes=30)

        assert order.ordered_timeline()[0].completed_at == placed_at
        assert order.ordered_timeline()[1].completed_at == confirmed_at

    def test_cancellation_leaves_timeline_alone(self):
        order = _order_at_state(OrderStatus.CONFIRMED)
        before = [(e.completed, e.completed_at) for e in order.ordered_timeline()]
        order.transition("cancelled", "customer", reason="Changed my mind")
        after = [(e.completed, e.completed_at) for e in order.ordered_timeline()]
        assert before == after


class TestShipping:
    def test_ship_records_delivery_terms(self):
        order = _order_at_state(OrderStatus.SHIPPED)
        assert order.delivery_payment == 40.0
        assert order.estimated_delivery_minutes == 30

    def test_ship_raises_event_with_terms(self):
        order = _order_at_state(OrderStatus.PROCESSING)
        order.transition("shipped", "vendor", delivery_payment=55.5, estimated_delivery_minutes=45)
        event = order._events[-1]
        assert isinstance(event, OrderShipped)
        assert event.delivery_payment == 55.5
        assert event.estimated_delivery_minutes == 45

    @pytest.mark.parametrize(
        "payment,minutes",
        [
            (None, 30),
            (0, 30),
            (-5.0, 30),
            (float("nan"), 30),
            (float("inf"), 30),
            ("forty", 30),
            (40.0, None),
            (40.0, 0),
            (40.0, -10),
            (40.0, float("nan")),
        ],
    )
    def test_ship_requires_positive_terms(self, payment, minutes):
        order = _order_at_state(OrderStatus.PROCESSING)
        with pytest.raises(ValidationError):
            order.transition("shipped", "vendor", delivery_payment=payment, estimated_delivery_minutes=minutes)
        assert order.status == OrderStatus.PROCESSING.value
        assert order._events == []
        assert _completed(order) == [True, True, False, False, False]


class TestDelivery:
    def test_delivered_at_is_stamped(self):
        order = _order_at_state(OrderStatus.DELIVERED)
        assert order.delivered_at is not None
        assert order.is_terminal

    def test_vendor_cannot_deliver(self):
        order = _order_at_state(OrderStatus.OUT_FOR_DELIVERY)
        with pytest.raises(Forbidden):
            order.transition("delivered", "vendor")
        assert order.status == OrderStatus.OUT_FOR_DELIVERY.value

    def test_delivered_order_cannot_move(self):
        order = _order_at_state(OrderStatus.DELIVERED)
        with pytest.raises(AlreadyTerminal):
            order.transition("out_for_delivery", "admin")


class TestCancellation:
    def test_cancel_records_reason_and_actor(self):
        order = _order_at_state(OrderStatus.PROCESSING)
        order.transition("cancelled", "vendor", reason="Out of stock")
        assert order.status == OrderStatus.CANCELLED.value
        assert order.cancellation_reason == "Out of stock"
        assert order.cancelled_by == "vendor"
        assert isinstance(order._events[-1], OrderCancelled)

    def test_prepaid_cancellation_requests_refund(self):
        order = _order_at_state(OrderStatus.PENDING, payment_method="card")
        order.transition("cancelled", "customer")
        assert order.refund_status == "requested"

    def test_cod_cancellation_has_no_refund(self):
        order = _order_at_state(OrderStatus.PENDING, payment_method="cod")
        order.transition("cancelled", "customer")
        assert order.refund_status is None

    def test_cancel_after_shipping_is_invalid(self):
        order = _order_at_state(OrderStatus.SHIPPED)
        with pytest.raises(InvalidTransition):
            order.transition("cancelled", "admin")
        assert order.status == OrderStatus.SHIPPED.value

    def test_second_cancel_is_rejected(self):
        order = _order_at_state(OrderStatus.PENDING)
        order.transition("cancelled", "customer")
        with pytest.raises(AlreadyCancelled):
            order.transition("cancelled", "customer")


class TestDeliveryPartner:
    def test_admin_assigns_before_shipping(self):
        order = _order_at_state(OrderStatus.CONFIRMED)
        order.assign_delivery_partner("rider-1", "admin")
        assert order.delivery_partner_id == "rider-1"
        assert isinstance(order._events[-1], DeliveryPartnerAssigned)

    def test_partner_accepts_shipped_order(self):
        order = _order_at_state(OrderStatus.SHIPPED)
        order.assign_delivery_partner("rider-1", "delivery")
        assert order.delivery_partner_id == "rider-1"

    def test_partner_cannot_accept_unshipped_order(self):
        order = _order_at_state(OrderStatus.PROCESSING)
        with pytest.raises(InvalidTransition):
            order.assign_delivery_partner("rider-1", "delivery")

    def test_partner_cannot_take_accepted_order(self):
        order = _order_at_state(OrderStatus.SHIPPED)
        order.assign_delivery_partner("rider-1", "delivery")
        with pytest.raises(InvalidTransition):
            order.assign_delivery_partner("rider-2", "delivery")

    def test_vendor_cannot_assign(self):
        order = _order_at_state(OrderStatus.SHIPPED)
        with pytest.raises(Forbidden):
            order.assign_delivery_partner("rider-1", "vendor")

    def test_no_assignment_after_delivery(self):
        order = _order_at_state(OrderStatus.DELIVERED)
        with pytest.raises(AlreadyTerminal):
            order.assign_delivery_partner("rider-1", "admin")
