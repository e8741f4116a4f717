"""Order status transitions — command and handler.

One command drives every edge of the order state machine. Edges with money
attached move it in the same unit of work as the status change:

    → delivered   release each vendor's pending credit (prepaid orders only)
                  and pay the assigned delivery partner's delivery payment
    → cancelled   reverse each vendor's still-pending credit

If any wallet operation fails the unit of work is discarded and the order
keeps its previous status.
"""

from dataclasses import dataclass, field

import structlog
from protean import handle
from protean.fields import Float, Identifier, Integer, String
from protean.utils.globals import current_domain

from marketplace.delivery.earnings import record_delivery_earning
from marketplace.domain import marketplace
from marketplace.order.order import Order
from marketplace.order.split import vendor_ids
from marketplace.order.transitions import OrderStatus
from marketplace.wallet import ledger
from marketplace.wallet.ledger import LedgerMovement

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class TransitionResult:
    order_id: str
    from_status: str
    to_status: str
    movements: list[LedgerMovement] = field(default_factory=list)
    partner_earning: float = 0.0


@marketplace.command(part_of="Order")
class TransitionOrder:
    order_id = Identifier(required=True)
    target_status = String(required=True, max_length=30)
    actor_role = String(required=True, max_length=20)
    delivery_payment = Float()  # Required when shipping
    estimated_delivery_minutes = Integer()  # Required when shipping
    reason = String(max_length=500)


@marketplace.command_handler(part_of=Order)
class TransitionOrderHandler:
    @handle(TransitionOrder)
    def transition_order(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        from_status = order.status

        order.transition(
            command.target_status,
            command.actor_role,
            delivery_payment=command.delivery_payment,
            estimated_delivery_minutes=command.estimated_delivery_minutes,
            reason=command.reason,
        )
        repo.add(order)

        movements = []
        partner_earning = 0.0
        if order.status == OrderStatus.DELIVERED.value:
            if not order.is_cash_on_delivery:
                movements = self._release_vendor_shares(order)
            partner_earning = self._pay_delivery_partner(order)
        elif order.status == OrderStatus.CANCELLED.value:
            movements = self._reverse_vendor_credits(order)

        logger.info(
            "Order status changed",
            order_id=str(order.id),
            from_status=from_status,
            to_status=order.status,
            actor_role=command.actor_role,
            wallet_movements=len(movements),
            partner_earning=partner_earning,
        )
        return TransitionResult(
            order_id=str(order.id),
            from_status=from_status,
            to_status=order.status,
            movements=movements,
            partner_earning=partner_earning,
        )

    def _release_vendor_shares(self, order):
        movements = []
        for vendor_id in vendor_ids(order):
            released = ledger.release(vendor_id, str(order.id))
            if released > 0:
                movements.append(
                    LedgerMovement(
                        kind="release",
                        vendor_id=vendor_id,
                        order_id=str(order.id),
                        amount=released,
                        description=f"Order {order.order_number} delivered",
                    )
                )
        return movements

    def _reverse_vendor_credits(self, order):
        movements = []
        description = f"Order {order.order_number} cancelled"
        for vendor_id in vendor_ids(order):
            transaction = ledger.reverse_credit(vendor_id, str(order.id), description=description)
            if transaction is not None:
                movements.append(
                    LedgerMovement(
                        kind="debit",
                        vendor_id=vendor_id,
                        order_id=str(order.id),
                        amount=transaction.amount,
                        description=description,
                    )
                )
        return movements

    def _pay_delivery_partner(self, order):
        if not order.delivery_partner_id or not order.delivery_payment:
            return 0.0
        entry = record_delivery_earning(order.delivery_partner_id, str(order.id), order.delivery_payment)
        return entry.amount if entry else 0.0
