"""Per-user state tracking for Locust load test scenarios.

Each Locust user instance maintains its own state — no cross-user sharing.
State tracks entity IDs returned by creation endpoints so follow-up
operations can reference them.
"""

from dataclasses import dataclass, field


@dataclass
class OrderState:
    """Tracks state for a single order lifecycle."""

    order_id: str | None = None
    order_number: str | None = None
    payment_method: str | None = None
    vendor_ids: list[str] = field(default_factory=list)
    delivery_partner_id: str | None = None
    current_status: str = "pending"


@dataclass
class WalletState:
    """Tracks state for a vendor wallet journey."""

    vendor_id: str | None = None
    available: float = 0.0
    withdrawals: int = 0
