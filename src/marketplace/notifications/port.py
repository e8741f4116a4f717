"""Notification dispatcher port — abstract interface for outbound notices.

The marketplace core only says *that* something happened to an order or a
wallet. Wording, channels and delivery belong to whatever adapter is plugged
in here.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


class NotificationType:
    ORDER_STATUS_CHANGED = "order_status_changed"
    WALLET_CREDITED = "wallet_credited"
    WALLET_RELEASED = "wallet_released"
    WALLET_DEBITED = "wallet_debited"
    WITHDRAWAL_REQUESTED = "withdrawal_requested"
    PARTNER_EARNING_RECORDED = "partner_earning_recorded"


@dataclass(frozen=True)
class Notification:
    """A single fire-and-forget notice."""

    type: str
    order_id: str | None = None
    vendor_id: str | None = None
    delivery_partner_id: str | None = None
    status: str | None = None
    amount: float | None = None
    description: str | None = None


class NotificationDispatcher(ABC):
    """Abstract notification dispatch interface."""

    @abstractmethod
    def dispatch(self, notification: Notification) -> None:
        """Hand the notification to the delivery channel.

        May raise; callers treat every failure as non-fatal.
        """
        ...
