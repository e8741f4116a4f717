"""Order aggregate (Event Sourced) — the core of the marketplace domain.

The Order aggregate uses event sourcing: all state changes are captured as
domain events, and the current state is rebuilt by replaying events via
@apply decorators. Every status change also completes the matching prefix of
the five-stage customer timeline, using the event's own timestamp so replay
reproduces exactly the same history.

State Machine (7 states, see ``marketplace.order.transitions``):
    pending → confirmed → processing → shipped → out_for_delivery → delivered
    shipped → delivered
    cancelled (from pending, confirmed, processing)

Each line item is tagged with the vendor that owns it; money movements for
those vendors are driven by the command handlers, not by the aggregate.
"""

import json
import math
from datetime import UTC, datetime
from enum import Enum
from uuid import uuid4

from protean import apply
from protean.exceptions import ValidationError
from protean.fields import (
    Boolean,
    DateTime,
    Float,
    HasMany,
    Identifier,
    Integer,
    String,
    ValueObject,
)

from marketplace.domain import marketplace
from marketplace.errors import AlreadyTerminal, Forbidden, InvalidTransition
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
from marketplace.order.transitions import (
    STAGE_INDEX,
    TERMINAL_STATES,
    TIMELINE_STAGES,
    ActorRole,
    OrderStatus,
    assert_transition,
    parse_role,
    parse_status,
)


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class PaymentMethod(Enum):
    UPI = "upi"
    CARD = "card"
    WALLET = "wallet"
    COD = "cod"


class RefundStatus(Enum):
    REQUESTED = "requested"


def _number(value, cast=float):
    """``value`` coerced with ``cast``, or None when it is not a finite number."""
    try:
        number = cast(value)
    except (TypeError, ValueError, OverflowError):
        return None
    if isinstance(number, float) and not math.isfinite(number):
        return None
    return number


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@marketplace.value_object(part_of="Order")
class ShippingAddress:
    """Where the order goes, captured at checkout.

    A snapshot: later edits to the customer's address book never reach an
    existing order.
    """

    name = String(max_length=100)
    phone = String(max_length=20)
    address = String(required=True, max_length=255)
    city = String(required=True, max_length=100)
    state = String(max_length=100)
    pincode = String(required=True, max_length=10)


@marketplace.value_object(part_of="Order")
class OrderPricing:
    """Money fields derived once at placement and never recalculated."""

    subtotal = Float(default=0.0)
    discount = Float(default=0.0)
    shipping_fee = Float(default=0.0)
    tax = Float(default=0.0)
    total = Float(default=0.0)


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@marketplace.entity(part_of="Order")
class OrderItem:
    """A line item priced at checkout and owned by exactly one vendor."""

    product_id = Identifier(required=True)
    title = String(max_length=255)
    unit_price = Float(required=True, min_value=0.0)
    quantity = Integer(required=True, min_value=1)
    vendor_id = Identifier(required=True)


@marketplace.entity(part_of="Order")
class TimelineEntry:
    """One of the five customer-facing progress milestones."""

    stage = String(required=True, max_length=50)
    position = Integer(required=True, min_value=0)
    completed = Boolean(default=False)
    completed_at = DateTime()


# ---------------------------------------------------------------------------
# Aggregate Root (Event Sourced)
# ---------------------------------------------------------------------------
@marketplace.aggregate(is_event_sourced=True)
class Order:
    order_number = String(max_length=50)
    customer_id = Identifier(required=True)
    items = HasMany(OrderItem)
    timeline = HasMany(TimelineEntry)
    shipping_address = ValueObject(ShippingAddress)
    payment_method = String(choices=PaymentMethod, default=PaymentMethod.UPI.value)
    pricing = ValueObject(OrderPricing)
    status = String(choices=OrderStatus, default=OrderStatus.PENDING.value)
    delivery_partner_id = Identifier()
    delivery_payment = Float(default=0.0)
    estimated_delivery_minutes = Integer()
    delivered_at = DateTime()
    cancellation_reason = String(max_length=500)
    cancelled_by = String(max_length=50)
    refund_status = String(max_length=50)
    placed_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def place(
        cls,
        order_number,
        customer_id,
        items_data,
        shipping_address,
        payment_method,
        discount=0.0,
        shipping_fee=0.0,
        tax=0.0,
    ):
        """Create a new order from checkout data.

        Prices in ``items_data`` are the catalogue prices captured at
        checkout; they are stored, never re-fetched. All state is established
        by the OrderPlaced event's @apply handler.

        Args:
            order_number: Human-readable number from the order sequence.
            customer_id: The customer placing the order.
            items_data: List of dicts with product_id, title, unit_price,
                        quantity and vendor_id.
            shipping_address: Dict with name, phone, address, city, state, pincode.
            payment_method: One of upi, card, wallet, cod.
        """
        if not items_data:
            raise ValidationError({"items": ["Order must contain at least one item"]})

        errors = {}
        items_with_ids = []
        for index, item in enumerate(items_data):
            if not item.get("vendor_id"):
                errors.setdefault("items", []).append(f"Item {index} has no vendor")
            if not item.get("product_id"):
                errors.setdefault("items", []).append(f"Item {index} has no product")

            quantity = _number(item.get("quantity"), int)
            unit_price = _number(item.get("unit_price"))
            if quantity is None or quantity < 1:
                errors.setdefault("items", []).append(f"Item {index} quantity must be a whole number of at least 1")
            if unit_price is None or unit_price < 0:
                errors.setdefault("items", []).append(f"Item {index} price must be a non-negative number")

            if not errors:
                # Pre-generate item IDs for deterministic replay
                items_with_ids.append(
                    {
                        "id": str(uuid4()),
                        "product_id": str(item["product_id"]),
                        "title": item.get("title") or "",
                        "unit_price": round(unit_price, 2),
                        "quantity": quantity,
                        "vendor_id": str(item["vendor_id"]),
                    }
                )

        if payment_method not in {m.value for m in PaymentMethod}:
            errors.setdefault("payment_method", []).append(f"Unsupported payment method {payment_method}")

        charges = {}
        for name, value in (("discount", discount), ("shipping_fee", shipping_fee), ("tax", tax)):
            charges[name] = _number(value or 0.0)
            if charges[name] is None or charges[name] < 0:
                errors.setdefault(name, []).append(f"{name} must be a non-negative number")
        if errors:
            raise ValidationError(errors)

        subtotal = round(sum(i["unit_price"] * i["quantity"] for i in items_with_ids), 2)
        total = round(subtotal - charges["discount"] + charges["shipping_fee"] + charges["tax"], 2)
        if total < 0:
            raise ValidationError({"total": [f"Order total cannot be negative ({total})"]})

        order = cls._create_new()
        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                order_number=order_number,
                customer_id=str(customer_id),
                items=json.dumps(items_with_ids),
                shipping_address=json.dumps(shipping_address),
                payment_method=payment_method,
                subtotal=subtotal,
                discount=charges["discount"],
                shipping_fee=charges["shipping_fee"],
                tax=charges["tax"],
                total=total,
                placed_at=datetime.now(UTC),
            )
        )
        return order

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    @property
    def is_cash_on_delivery(self):
        return self.payment_method == PaymentMethod.COD.value

    @property
    def is_terminal(self):
        return OrderStatus(self.status) in TERMINAL_STATES

    def ordered_timeline(self):
        return sorted(self.timeline or [], key=lambda entry: entry.position)

    # -------------------------------------------------------------------
    # Lifecycle transitions
    # -------------------------------------------------------------------
    def transition(
        self,
        target_status,
        actor_role,
        delivery_payment=None,
        estimated_delivery_minutes=None,
        reason=None,
    ):
        """Move the order to ``target_status`` on behalf of ``actor_role``.

        Every check runs before the event is raised, so a rejected request
        leaves the aggregate untouched.
        """
        target = parse_status(target_status)
        role = parse_role(actor_role)
        assert_transition(OrderStatus(self.status), target, role)

        if target == OrderStatus.CONFIRMED:
            self.confirm(role)
        elif target == OrderStatus.PROCESSING:
            self.mark_processing(role)
        elif target == OrderStatus.SHIPPED:
            self.ship(role, delivery_payment, estimated_delivery_minutes)
        elif target == OrderStatus.OUT_FOR_DELIVERY:
            self.mark_out_for_delivery(role)
        elif target == OrderStatus.DELIVERED:
            self.deliver(role)
        elif target == OrderStatus.CANCELLED:
            self.cancel(role, reason)

    def confirm(self, actor_role):
        actor_role = parse_role(actor_role)
        assert_transition(OrderStatus(self.status), OrderStatus.CONFIRMED, actor_role)
        self.raise_(
            OrderConfirmed(
                order_id=str(self.id),
                actor_role=actor_role.value,
                confirmed_at=datetime.now(UTC),
            )
        )

    def mark_processing(self, actor_role):
        actor_role = parse_role(actor_role)
        assert_transition(OrderStatus(self.status), OrderStatus.PROCESSING, actor_role)
        self.raise_(
            OrderProcessing(
                order_id=str(self.id),
                actor_role=actor_role.value,
                started_at=datetime.now(UTC),
            )
        )

    def ship(self, actor_role, delivery_payment, estimated_delivery_minutes):
        """Hand the order over for delivery. Courier pay and ETA are mandatory."""
        actor_role = parse_role(actor_role)
        assert_transition(OrderStatus(self.status), OrderStatus.SHIPPED, actor_role)

        errors = {}
        payment = _number(delivery_payment)
        minutes = _number(estimated_delivery_minutes)
        if payment is None or payment <= 0:
            errors["delivery_payment"] = ["Delivery payment must be a positive amount"]
        if minutes is None or minutes <= 0:
            errors["estimated_delivery_minutes"] = ["Estimated delivery time must be a positive number of minutes"]
        if errors:
            raise ValidationError(errors)

        self.raise_(
            OrderShipped(
                order_id=str(self.id),
                actor_role=actor_role.value,
                delivery_payment=round(payment, 2),
                estimated_delivery_minutes=int(minutes),
                shipped_at=datetime.now(UTC),
            )
        )

    def mark_out_for_delivery(self, actor_role):
        actor_role = parse_role(actor_role)
        assert_transition(OrderStatus(self.status), OrderStatus.OUT_FOR_DELIVERY, actor_role)
        self.raise_(
            OrderOutForDelivery(
                order_id=str(self.id),
                actor_role=actor_role.value,
                dispatched_at=datetime.now(UTC),
            )
        )

    def deliver(self, actor_role):
        actor_role = parse_role(actor_role)
        assert_transition(OrderStatus(self.status), OrderStatus.DELIVERED, actor_role)
        self.raise_(
            OrderDelivered(
                order_id=str(self.id),
                actor_role=actor_role.value,
                delivered_at=datetime.now(UTC),
            )
        )

    def cancel(self, actor_role, reason=None):
        """Cancel the order. Paid orders record a refund request for the customer."""
        actor_role = parse_role(actor_role)
        assert_transition(OrderStatus(self.status), OrderStatus.CANCELLED, actor_role)
        self.raise_(
            OrderCancelled(
                order_id=str(self.id),
                reason=reason,
                cancelled_by=actor_role.value,
                refund_requested=not self.is_cash_on_delivery,
                cancelled_at=datetime.now(UTC),
            )
        )

    # -------------------------------------------------------------------
    # Delivery partner
    # -------------------------------------------------------------------
    def assign_delivery_partner(self, delivery_partner_id, actor_role):
        """Attach a delivery partner.

        Admins may assign at any non-terminal status. A delivery partner may
        only accept a shipped order nobody has accepted yet.
        """
        role = parse_role(actor_role)
        current = OrderStatus(self.status)

        if current in TERMINAL_STATES:
            raise AlreadyTerminal({"status": [f"Order is already {current.value}"]})

        if role == ActorRole.DELIVERY:
            if current != OrderStatus.SHIPPED:
                raise InvalidTransition({"status": ["Only shipped orders can be accepted for delivery"]})
            if self.delivery_partner_id:
                raise InvalidTransition({"delivery_partner_id": ["Order already accepted by another partner"]})
        elif role != ActorRole.ADMIN:
            raise Forbidden({"role": [f"A {role.value} cannot assign delivery partners"]})

        self.raise_(
            DeliveryPartnerAssigned(
                order_id=str(self.id),
                delivery_partner_id=str(delivery_partner_id),
                assigned_by=role.value,
                assigned_at=datetime.now(UTC),
            )
        )

    # -------------------------------------------------------------------
    # Timeline helper
    # -------------------------------------------------------------------
    def _complete_timeline(self, status, at):
        """Complete every stage up to the one ``status`` maps to.

        Stages that already carry a timestamp keep it; a transition never
        rewrites history.
        """
        last = STAGE_INDEX[status]
        for entry in self.timeline or []:
            if entry.position <= last:
                entry.completed = True
                if entry.completed_at is None:
                    entry.completed_at = at

    # -------------------------------------------------------------------
    # @apply methods: rebuild state during event replay
    # -------------------------------------------------------------------
    @apply
    def _on_order_placed(self, event: OrderPlaced):
        self.id = event.order_id
        self.order_number = event.order_number
        self.customer_id = event.customer_id
        self.payment_method = event.payment_method
        self.status = OrderStatus.PENDING.value
        self.placed_at = event.placed_at
        self.updated_at = event.placed_at

        # Reconstruct items from JSON (includes IDs for deterministic replay)
        items_data = json.loads(event.items) if isinstance(event.items, str) else []
        self.items = [OrderItem(**item_data) for item_data in items_data]

        address_data = json.loads(event.shipping_address) if isinstance(event.shipping_address, str) else {}
        if address_data:
            self.shipping_address = ShippingAddress(**address_data)

        self.pricing = OrderPricing(
            subtotal=event.subtotal,
            discount=event.discount or 0.0,
            shipping_fee=event.shipping_fee or 0.0,
            tax=event.tax or 0.0,
            total=event.total,
        )

        self.timeline = [
            TimelineEntry(
                stage=stage.value,
                position=position,
                completed=position == 0,
                completed_at=event.placed_at if position == 0 else None,
            )
            for position, stage in enumerate(TIMELINE_STAGES)
        ]

    @apply
    def _on_order_confirmed(self, event: OrderConfirmed):
        self.status = OrderStatus.CONFIRMED.value
        self._complete_timeline(OrderStatus.CONFIRMED, event.confirmed_at)
        self.updated_at = event.confirmed_at

    @apply
    def _on_order_processing(self, event: OrderProcessing):
        self.status = OrderStatus.PROCESSING.value
        self._complete_timeline(OrderStatus.PROCESSING, event.started_at)
        self.updated_at = event.started_at

    @apply
    def _on_order_shipped(self, event: OrderShipped):
        self.status = OrderStatus.SHIPPED.value
        self.delivery_payment = event.delivery_payment
        self.estimated_delivery_minutes = event.estimated_delivery_minutes
        self._complete_timeline(OrderStatus.SHIPPED, event.shipped_at)
        self.updated_at = event.shipped_at

    @apply
    def _on_order_out_for_delivery(self, event: OrderOutForDelivery):
        self.status = OrderStatus.OUT_FOR_DELIVERY.value
        self._complete_timeline(OrderStatus.OUT_FOR_DELIVERY, event.dispatched_at)
        self.updated_at = event.dispatched_at

    @apply
    def _on_order_delivered(self, event: OrderDelivered):
        self.status = OrderStatus.DELIVERED.value
        self.delivered_at = event.delivered_at
        self._complete_timeline(OrderStatus.DELIVERED, event.delivered_at)
        self.updated_at = event.delivered_at

    @apply
    def _on_order_cancelled(self, event: OrderCancelled):
        self.status = OrderStatus.CANCELLED.value
        self.cancellation_reason = event.reason
        self.cancelled_by = event.cancelled_by
        if event.refund_requested:
            self.refund_status = RefundStatus.REQUESTED.value
        self.updated_at = event.cancelled_at

    @apply
    def _on_delivery_partner_assigned(self, event: DeliveryPartnerAssigned):
        self.delivery_partner_id = event.delivery_partner_id
        self.updated_at = event.assigned_at
