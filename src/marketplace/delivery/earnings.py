"""PartnerEarnings aggregate (Event Sourced) — what each delivery partner earned.

A partner earns the order's delivery payment, fixed when the order shipped,
at the moment the order is delivered. The earning is immediate: there is no
pending stage as there is for vendor revenue. Vendor balances are never
touched by it.

At most one earning is recorded per order.
"""

from datetime import UTC, datetime
from uuid import uuid4

import structlog
from protean import apply
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import DateTime, Float, HasMany, Identifier, Integer
from protean.utils.globals import current_domain

from marketplace.delivery.events import DeliveryEarningRecorded, PartnerEarningsOpened
from marketplace.domain import marketplace

logger = structlog.get_logger(__name__)


@marketplace.entity(part_of="PartnerEarnings")
class EarningEntry:
    order_id = Identifier(required=True)
    amount = Float(required=True, min_value=0.0)
    earned_at = DateTime()


@marketplace.aggregate(is_event_sourced=True)
class PartnerEarnings:
    delivery_partner_id = Identifier(identifier=True, required=True)
    total_earned = Float(default=0.0, min_value=0.0)
    deliveries_completed = Integer(default=0, min_value=0)
    entries = HasMany(EarningEntry)
    opened_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def open(cls, delivery_partner_id):
        earnings = cls(delivery_partner_id=str(delivery_partner_id))
        earnings.raise_(
            PartnerEarningsOpened(
                delivery_partner_id=str(delivery_partner_id),
                opened_at=datetime.now(UTC),
            )
        )
        return earnings

    def earning_for(self, order_id):
        return next((e for e in (self.entries or []) if str(e.order_id) == str(order_id)), None)

    def history(self):
        """Entries newest first."""
        return sorted(self.entries or [], key=lambda e: e.earned_at)[::-1]

    def record_delivery(self, order_id, amount):
        """Record the delivery payment for ``order_id``.

        Returns the new entry, or None when the order was already paid out.
        """
        if amount is None or amount <= 0:
            raise ValidationError({"amount": ["Delivery earning must be positive"]})
        if self.earning_for(order_id) is not None:
            return None

        amount = round(float(amount), 2)
        entry_id = str(uuid4())
        self.raise_(
            DeliveryEarningRecorded(
                delivery_partner_id=str(self.delivery_partner_id),
                entry_id=entry_id,
                order_id=str(order_id),
                amount=amount,
                new_total_earned=round(self.total_earned + amount, 2),
                new_deliveries_completed=(self.deliveries_completed or 0) + 1,
                earned_at=datetime.now(UTC),
            )
        )
        return self.earning_for(order_id)

    @apply
    def _on_opened(self, event: PartnerEarningsOpened):
        self.delivery_partner_id = event.delivery_partner_id
        self.total_earned = 0.0
        self.deliveries_completed = 0
        self.opened_at = event.opened_at
        self.updated_at = event.opened_at

    @apply
    def _on_delivery_earning_recorded(self, event: DeliveryEarningRecorded):
        self.total_earned = event.new_total_earned
        self.deliveries_completed = event.new_deliveries_completed
        self.add_entries(
            EarningEntry(
                id=event.entry_id,
                order_id=event.order_id,
                amount=event.amount,
                earned_at=event.earned_at,
            )
        )
        self.updated_at = event.earned_at


def find_earnings(delivery_partner_id) -> PartnerEarnings | None:
    try:
        return current_domain.repository_for(PartnerEarnings).get(str(delivery_partner_id))
    except ObjectNotFoundError:
        return None


def record_delivery_earning(delivery_partner_id, order_id, amount):
    """Stage the partner's earning for a delivered order in the current unit of work.

    Callers must hold the partner's lock around the enclosing command.
    """
    earnings = find_earnings(delivery_partner_id) or PartnerEarnings.open(delivery_partner_id)
    entry = earnings.record_delivery(amount=amount, order_id=order_id)
    if entry is None:
        logger.warning(
            "Delivery earning already recorded",
            delivery_partner_id=str(delivery_partner_id),
            order_id=str(order_id),
        )
        return None

    current_domain.repository_for(PartnerEarnings).add(earnings)
    logger.info(
        "Delivery earning recorded",
        delivery_partner_id=str(delivery_partner_id),
        order_id=str(order_id),
        amount=entry.amount,
        total_earned=earnings.total_earned,
    )
    return entry
