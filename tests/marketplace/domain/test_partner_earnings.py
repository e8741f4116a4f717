"""Tests for the PartnerEarnings aggregate."""

import pytest
from marketplace.delivery.earnings import PartnerEarnings
from marketplace.delivery.events import DeliveryEarningRecorded, PartnerEarningsOpened
from protean.exceptions import ValidationError


def _earnings():
    earnings = PartnerEarnings.open("rider-7")
    earnings._events.clear()
    return earnings


class TestOpening:
    def test_new_partner_has_earned_nothing(self):
        earnings = PartnerEarnings.open("rider-7")
        assert earnings.delivery_partner_id == "rider-7"
        assert earnings.total_earned == 0.0
        assert earnings.deliveries_completed == 0
        assert isinstance(earnings._events[0], PartnerEarningsOpened)


class TestRecordDelivery:
    def test_delivery_payment_is_earned_immediately(self):
        earnings = _earnings()
        entry = earnings.record_delivery(order_id="ord-1", amount=40.0)
        assert entry.order_id == "ord-1"
        assert entry.amount == 40.0
        assert earnings.total_earned == 40.0
        assert earnings.deliveries_completed == 1
        assert isinstance(earnings._events[-1], DeliveryEarningRecorded)

    def test_same_order_is_paid_once(self):
        earnings = _earnings()
        earnings.record_delivery(order_id="ord-1", amount=40.0)
        assert earnings.record_delivery(order_id="ord-1", amount=40.0) is None
        assert earnings.total_earned == 40.0
        assert len(earnings._events) == 1

    def test_history_is_newest_first(self):
        earnings = _earnings()
        earnings.record_delivery(order_id="ord-1", amount=40.0)
        earnings.record_delivery(order_id="ord-2", amount=25.5)
        assert [e.order_id for e in earnings.history()] == ["ord-2", "ord-1"]
        assert earnings.total_earned == 65.5

    @pytest.mark.parametrize("amount", [None, 0, -10.0])
    def test_amount_must_be_positive(self, amount):
        earnings = _earnings()
        with pytest.raises(ValidationError):
            earnings.record_delivery(order_id="ord-1", amount=amount)
        assert earnings.deliveries_completed == 0
