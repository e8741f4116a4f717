"""Domain events for the PartnerEarnings aggregate."""

from protean.fields import DateTime, Float, Identifier, Integer

from marketplace.domain import marketplace


@marketplace.event(part_of="PartnerEarnings")
class PartnerEarningsOpened:
    __version__ = 1

    delivery_partner_id = Identifier(required=True)
    opened_at = DateTime(required=True)


@marketplace.event(part_of="PartnerEarnings")
class DeliveryEarningRecorded:
    """The partner delivered an order and earned its delivery payment."""

    __version__ = 1

    delivery_partner_id = Identifier(required=True)
    entry_id = Identifier(required=True)
    order_id = Identifier(required=True)
    amount = Float(required=True)
    new_total_earned = Float(required=True)
    new_deliveries_completed = Integer(required=True)
    earned_at = DateTime(required=True)
