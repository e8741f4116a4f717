"""Vendor orders — each vendor's slice of the orders it sells into.

One row per (order, vendor). A multi-vendor order shows up once for every
vendor in it, carrying only that vendor's subtotal and item count, while the
status follows the order as a whole.
"""

import json
from collections import defaultdict

from protean.core.projector import on
from protean.fields import DateTime, Float, Identifier, Integer, String
from protean.utils.globals import current_domain

from marketplace.domain import marketplace
from marketplace.order.events import (
    DeliveryPartnerAssigned,
    OrderCancelled,
    OrderConfirmed,
    OrderDelivered,
    OrderOutForDelivery,
    OrderPlaced,
    OrderProcessing,
    OrderShipped,
)
from marketplace.order.order import Order
from marketplace.order.transitions import OrderStatus


def vendor_order_id(order_id, vendor_id) -> str:
    return f"{order_id}:{vendor_id}"


@marketplace.projection
class VendorOrder:
    vendor_order_id = String(identifier=True, required=True, max_length=100)
    vendor_id = Identifier(required=True)
    order_id = Identifier(required=True)
    order_number = String(max_length=50)
    customer_id = Identifier()
    status = String(required=True, max_length=30)
    payment_method = String(max_length=20)
    vendor_subtotal = Float(default=0.0)
    vendor_items_count = Integer(default=0)
    delivery_partner_id = Identifier()
    placed_at = DateTime()
    updated_at = DateTime()


@marketplace.projector(projector_for=VendorOrder, aggregates=[Order])
class VendorOrderProjector:
    @on(OrderPlaced)
    def on_order_placed(self, event):
        items = json.loads(event.items) if isinstance(event.items, str) else []
        subtotals = defaultdict(float)
        counts = defaultdict(int)
        for item in items:
            subtotals[item["vendor_id"]] += item["unit_price"] * item["quantity"]
            counts[item["vendor_id"]] += item["quantity"]

        repo = current_domain.repository_for(VendorOrder)
        for vendor_id in sorted(subtotals):
            repo.add(
                VendorOrder(
                    vendor_order_id=vendor_order_id(event.order_id, vendor_id),
                    vendor_id=vendor_id,
                    order_id=event.order_id,
                    order_number=event.order_number,
                    customer_id=event.customer_id,
                    status=OrderStatus.PENDING.value,
                    payment_method=event.payment_method,
                    vendor_subtotal=round(subtotals[vendor_id], 2),
                    vendor_items_count=counts[vendor_id],
                    placed_at=event.placed_at,
                    updated_at=event.placed_at,
                )
            )

    def _rows(self, order_id):
        repo = current_domain.repository_for(VendorOrder)
        return repo, repo._dao.query.filter(order_id=str(order_id)).all().items

    def _update_status(self, order_id, status, updated_at):
        repo, rows = self._rows(order_id)
        for row in rows:
            row.status = status
            row.updated_at = updated_at
            repo.add(row)

    @on(OrderConfirmed)
    def on_order_confirmed(self, event):
        self._update_status(event.order_id, OrderStatus.CONFIRMED.value, event.confirmed_at)

    @on(OrderProcessing)
    def on_order_processing(self, event):
        self._update_status(event.order_id, OrderStatus.PROCESSING.value, event.started_at)

    @on(OrderShipped)
    def on_order_shipped(self, event):
        self._update_status(event.order_id, OrderStatus.SHIPPED.value, event.shipped_at)

    @on(OrderOutForDelivery)
    def on_order_out_for_delivery(self, event):
        self._update_status(event.order_id, OrderStatus.OUT_FOR_DELIVERY.value, event.dispatched_at)

    @on(OrderDelivered)
    def on_order_delivered(self, event):
        self._update_status(event.order_id, OrderStatus.DELIVERED.value, event.delivered_at)

    @on(OrderCancelled)
    def on_order_cancelled(self, event):
        self._update_status(event.order_id, OrderStatus.CANCELLED.value, event.cancelled_at)

    @on(DeliveryPartnerAssigned)
    def on_delivery_partner_assigned(self, event):
        repo, rows = self._rows(event.order_id)
        for row in rows:
            row.delivery_partner_id = event.delivery_partner_id
            row.updated_at = event.assigned_at
            repo.add(row)
