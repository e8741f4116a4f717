"""Domain events for the Order aggregate.

All events are versioned, immutable facts representing state changes.
Events are persisted to the event store and used for:
- Rebuilding aggregate state via @apply (event sourcing), including the
  five-stage timeline whose timestamps come from these events
- Updating the vendor order projection
"""

from protean.fields import Boolean, DateTime, Float, Identifier, Integer, String, Text

from marketplace.domain import marketplace


@marketplace.event(part_of="Order")
class OrderPlaced:
    """A paid (or cash-on-delivery) checkout produced a new order."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    customer_id = Identifier(required=True)
    items = Text(required=True)  # JSON: list of item dicts, each tagged with vendor_id
    shipping_address = Text(required=True)  # JSON: address dict
    payment_method = String(required=True)
    subtotal = Float(required=True)
    discount = Float()
    shipping_fee = Float()
    tax = Float()
    total = Float(required=True)
    placed_at = DateTime(required=True)


@marketplace.event(part_of="Order")
class OrderConfirmed:
    """A vendor or admin accepted the order."""

    __version__ = 1

    order_id = Identifier(required=True)
    actor_role = String(required=True)
    confirmed_at = DateTime(required=True)


@marketplace.event(part_of="Order")
class OrderProcessing:
    """The vendor started preparing the order."""

    __version__ = 1

    order_id = Identifier(required=True)
    actor_role = String(required=True)
    started_at = DateTime(required=True)


@marketplace.event(part_of="Order")
class OrderShipped:
    """The vendor handed the order over for delivery, setting courier pay and ETA."""

    __version__ = 1

    order_id = Identifier(required=True)
    actor_role = String(required=True)
    delivery_payment = Float(required=True)
    estimated_delivery_minutes = Integer(required=True)
    shipped_at = DateTime(required=True)


@marketplace.event(part_of="Order")
class OrderOutForDelivery:
    """The delivery partner picked the order up."""

    __version__ = 1

    order_id = Identifier(required=True)
    actor_role = String(required=True)
    dispatched_at = DateTime(required=True)


@marketplace.event(part_of="Order")
class OrderDelivered:
    """The order reached the customer. Terminal."""

    __version__ = 1

    order_id = Identifier(required=True)
    actor_role = String(required=True)
    delivered_at = DateTime(required=True)


@marketplace.event(part_of="Order")
class OrderCancelled:
    """The order was cancelled before shipment. Terminal."""

    __version__ = 1

    order_id = Identifier(required=True)
    reason = String(max_length=500)
    cancelled_by = String(required=True)
    refund_requested = Boolean(default=False)
    cancelled_at = DateTime(required=True)


@marketplace.event(part_of="Order")
class DeliveryPartnerAssigned:
    """A delivery partner was attached to the order."""

    __version__ = 1

    order_id = Identifier(required=True)
    delivery_partner_id = Identifier(required=True)
    assigned_by = String(required=True)
    assigned_at = DateTime(required=True)
