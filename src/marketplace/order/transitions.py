"""Order state machine — statuses, actor roles, and the transition table.

Everything here is pure: no I/O and no aggregate access, so permission logic
lives in exactly one place and can be tested exhaustively.

    pending → confirmed → processing → shipped → out_for_delivery → delivered
                                          shipped ───────────────→ delivered
    {pending, confirmed, processing} → cancelled

``delivered`` and ``cancelled`` are terminal.
"""

from enum import Enum

from protean.exceptions import ValidationError

from marketplace.errors import AlreadyCancelled, AlreadyTerminal, Forbidden, InvalidTransition


class OrderStatus(Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    OUT_FOR_DELIVERY = "out_for_delivery"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class ActorRole(Enum):
    CUSTOMER = "customer"
    VENDOR = "vendor"
    ADMIN = "admin"
    DELIVERY = "delivery"


class TimelineStage(Enum):
    PLACED = "placed"
    CONFIRMED = "confirmed"
    SHIPPED = "shipped"
    OUT_FOR_DELIVERY = "out_for_delivery"
    DELIVERED = "delivered"


# Fixed display order of the five timeline stages
TIMELINE_STAGES = [
    TimelineStage.PLACED,
    TimelineStage.CONFIRMED,
    TimelineStage.SHIPPED,
    TimelineStage.OUT_FOR_DELIVERY,
    TimelineStage.DELIVERED,
]

# Index of the last timeline stage that is complete once an order reaches a status.
# Cancellation has no entry: it never touches the timeline.
STAGE_INDEX = {
    OrderStatus.PENDING: 0,
    OrderStatus.CONFIRMED: 1,
    OrderStatus.PROCESSING: 1,
    OrderStatus.SHIPPED: 2,
    OrderStatus.OUT_FOR_DELIVERY: 3,
    OrderStatus.DELIVERED: 4,
}

TERMINAL_STATES = {OrderStatus.DELIVERED, OrderStatus.CANCELLED}

CANCELLABLE_STATES = {
    OrderStatus.PENDING,
    OrderStatus.CONFIRMED,
    OrderStatus.PROCESSING,
}

_ALL_ROLES = frozenset(ActorRole)
_SELLER_SIDE = frozenset({ActorRole.VENDOR, ActorRole.ADMIN})
_COURIER_SIDE = frozenset({ActorRole.DELIVERY, ActorRole.ADMIN})

# (from, to) → roles allowed to drive the edge
_TRANSITIONS = {
    (OrderStatus.PENDING, OrderStatus.CONFIRMED): _SELLER_SIDE,
    (OrderStatus.CONFIRMED, OrderStatus.PROCESSING): _SELLER_SIDE,
    (OrderStatus.PROCESSING, OrderStatus.SHIPPED): _SELLER_SIDE,
    (OrderStatus.SHIPPED, OrderStatus.OUT_FOR_DELIVERY): _COURIER_SIDE,
    (OrderStatus.SHIPPED, OrderStatus.DELIVERED): _COURIER_SIDE,
    (OrderStatus.OUT_FOR_DELIVERY, OrderStatus.DELIVERED): _COURIER_SIDE,
    (OrderStatus.PENDING, OrderStatus.CANCELLED): _ALL_ROLES - {ActorRole.DELIVERY},
    (OrderStatus.CONFIRMED, OrderStatus.CANCELLED): _ALL_ROLES - {ActorRole.DELIVERY},
    (OrderStatus.PROCESSING, OrderStatus.CANCELLED): _ALL_ROLES - {ActorRole.DELIVERY},
}


def is_allowed(from_status: OrderStatus, to_status: OrderStatus, role: ActorRole) -> bool:
    """Return True when ``role`` may move an order from ``from_status`` to ``to_status``."""
    return role in _TRANSITIONS.get((from_status, to_status), frozenset())


def allowed_targets(from_status: OrderStatus, role: ActorRole) -> list[OrderStatus]:
    """Statuses ``role`` can move an order to from ``from_status``, in lifecycle order."""
    return [status for status in OrderStatus if is_allowed(from_status, status, role)]


def assert_transition(from_status: OrderStatus, to_status: OrderStatus, role: ActorRole) -> None:
    """Raise the typed rejection for an illegal request, or return silently."""
    edge = f"{from_status.value} to {to_status.value}"

    if to_status == OrderStatus.CANCELLED:
        if from_status == OrderStatus.CANCELLED:
            raise AlreadyCancelled({"status": ["Order is already cancelled"]})
        if from_status not in CANCELLABLE_STATES:
            raise InvalidTransition({"status": [f"Cannot cancel order in {from_status.value} state"]})
        if not is_allowed(from_status, to_status, role):
            raise Forbidden({"role": [f"A {role.value} cannot cancel an order"]})
        return

    if from_status in TERMINAL_STATES:
        raise AlreadyTerminal({"status": [f"Order is already {from_status.value}"]})

    if from_status == to_status:
        raise InvalidTransition({"status": [f"Order is already {from_status.value}"]})

    if to_status == OrderStatus.DELIVERED and role == ActorRole.VENDOR:
        raise Forbidden({"role": ["Vendors cannot mark orders as delivered"]})

    if (from_status, to_status) not in _TRANSITIONS:
        raise InvalidTransition({"status": [f"Cannot transition from {edge}"]})

    if not is_allowed(from_status, to_status, role):
        raise Forbidden({"role": [f"A {role.value} cannot move an order from {edge}"]})


def parse_status(value) -> OrderStatus:
    try:
        return OrderStatus(value)
    except ValueError:
        raise ValidationError({"status": [f"Unknown order status {value!r}"]}) from None


def parse_role(value) -> ActorRole:
    try:
        return ActorRole(value)
    except ValueError:
        raise ValidationError({"role": [f"Unknown actor role {value!r}"]}) from None
