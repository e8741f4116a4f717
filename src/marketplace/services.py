"""Entry points into the marketplace core.

Every write goes through a Protean command processed synchronously, wrapped
in the per-key locks it needs. Notifications go out only after the unit of
work has committed, and their failures are logged and dropped.

Business-rule rejections (``ValidationError``, ``ObjectNotFoundError`` and
``MarketplaceError`` subclasses) reach the caller unchanged. Anything else
escaping a write is treated as a storage failure: it is logged with full
detail and re-raised as ``StorageError``, which callers may retry.
"""

import json
import math
from contextlib import contextmanager
from datetime import UTC, datetime

import structlog
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.utils.globals import current_domain

from marketplace import locks
from marketplace.delivery.earnings import find_earnings
from marketplace.errors import MarketplaceError, StorageError
from marketplace.notifications import Notification, NotificationType, notify
from marketplace.order.assignment import AssignDeliveryPartner
from marketplace.order.order import Order
from marketplace.order.placement import PlaceOrder
from marketplace.order.split import vendor_ids
from marketplace.order.transition import TransitionOrder
from marketplace.order.transitions import OrderStatus
from marketplace.projections.vendor_orders import VendorOrder
from marketplace.wallet.ledger import LedgerMovement
from marketplace.wallet.wallet import TransactionKind, TransactionStatus, VendorWallet
from marketplace.wallet.withdrawal import RequestWithdrawal

logger = structlog.get_logger(__name__)

RECENT_TRANSACTIONS = 5

_MOVEMENT_NOTIFICATIONS = {
    "credit": NotificationType.WALLET_CREDITED,
    "release": NotificationType.WALLET_RELEASED,
    "debit": NotificationType.WALLET_DEBITED,
    "withdrawal": NotificationType.WITHDRAWAL_REQUESTED,
}


@contextmanager
def _storage_guard(operation, **context):
    try:
        yield
    except (ValidationError, ObjectNotFoundError, MarketplaceError):
        raise
    except StorageError:
        raise
    except Exception as exc:
        logger.exception("Storage failure", operation=operation, error=str(exc), **context)
        raise StorageError() from exc


def _notify_movements(movements: list[LedgerMovement]) -> None:
    for movement in movements:
        notify(
            Notification(
                type=_MOVEMENT_NOTIFICATIONS[movement.kind],
                order_id=movement.order_id,
                vendor_id=movement.vendor_id,
                amount=movement.amount,
                description=movement.description,
            )
        )


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------
def place_order(
    customer_id,
    items,
    shipping_address,
    payment_method,
    discount=0.0,
    shipping_fee=0.0,
    tax=0.0,
) -> Order:
    """Record a checked-out basket as a pending order and credit its vendors."""
    year = datetime.now(UTC).year
    vendors = [item.get("vendor_id") for item in items or [] if item.get("vendor_id")]

    with _storage_guard("place_order", customer_id=str(customer_id)):
        with locks.hold(locks.sequence_key(year), *locks.vendor_keys(vendors)):
            result = current_domain.process(
                PlaceOrder(
                    customer_id=customer_id,
                    items=json.dumps(items or []),
                    shipping_address=json.dumps(shipping_address or {}),
                    payment_method=payment_method,
                    discount=discount,
                    shipping_fee=shipping_fee,
                    tax=tax,
                ),
                asynchronous=False,
            )
        order = current_domain.repository_for(Order).get(result.order_id)

    _notify_movements(result.movements)
    return order


def get_order(order_id) -> Order:
    """Load an order, raising ``ObjectNotFoundError`` for unknown ids."""
    with _storage_guard("get_order", order_id=str(order_id)):
        return current_domain.repository_for(Order).get(str(order_id))


def transition(
    order_id,
    target_status,
    actor_role,
    delivery_payment=None,
    estimated_delivery_minutes=None,
    reason=None,
) -> Order:
    """Move an order along its lifecycle, applying any wallet effects atomically.

    The order lock is taken first and the order read under it, so the vendor
    and delivery partner locks that follow match what the handler will touch.
    All of them are held until the unit of work has committed.
    """
    with _storage_guard("transition", order_id=str(order_id), target_status=target_status):
        with locks.hold(locks.order_key(order_id)):
            order = current_domain.repository_for(Order).get(str(order_id))
            keys = locks.vendor_keys(vendor_ids(order))
            if order.delivery_partner_id:
                keys.append(locks.partner_key(order.delivery_partner_id))

            with locks.hold(*keys):
                result = current_domain.process(
                    TransitionOrder(
                        order_id=str(order_id),
                        target_status=target_status,
                        actor_role=actor_role,
                        delivery_payment=delivery_payment,
                        estimated_delivery_minutes=estimated_delivery_minutes,
                        reason=reason,
                    ),
                    asynchronous=False,
                )
        order = current_domain.repository_for(Order).get(str(order_id))

    notify(
        Notification(
            type=NotificationType.ORDER_STATUS_CHANGED,
            order_id=result.order_id,
            status=result.to_status,
            description=f"Order {order.order_number} is now {result.to_status}",
        )
    )
    _notify_movements(result.movements)
    if result.partner_earning:
        notify(
            Notification(
                type=NotificationType.PARTNER_EARNING_RECORDED,
                order_id=result.order_id,
                delivery_partner_id=str(order.delivery_partner_id),
                amount=result.partner_earning,
                description=f"Delivery of order {order.order_number}",
            )
        )
    return order


def assign_delivery_partner(order_id, delivery_partner_id, actor_role) -> Order:
    """Assign (admin) or accept (delivery partner) an order for delivery."""
    with _storage_guard("assign_delivery_partner", order_id=str(order_id)):
        with locks.hold(locks.order_key(order_id)):
            current_domain.process(
                AssignDeliveryPartner(
                    order_id=str(order_id),
                    delivery_partner_id=delivery_partner_id,
                    actor_role=actor_role,
                ),
                asynchronous=False,
            )
        return current_domain.repository_for(Order).get(str(order_id))


def list_vendor_orders(vendor_id, status=None) -> list[VendorOrder]:
    """The vendor's slice of every order it sells into, newest first."""
    if status is not None and status not in {s.value for s in OrderStatus}:
        raise ValidationError({"status": [f"Unknown order status {status!r}"]})

    with _storage_guard("list_vendor_orders", vendor_id=str(vendor_id)):
        filters = {"vendor_id": str(vendor_id)}
        if status:
            filters["status"] = status
        rows = current_domain.repository_for(VendorOrder)._dao.query.filter(**filters).all().items
    return sorted(rows, key=lambda row: row.placed_at, reverse=True)


# ---------------------------------------------------------------------------
# Wallets
# ---------------------------------------------------------------------------
def _find_wallet(vendor_id) -> VendorWallet | None:
    try:
        return current_domain.repository_for(VendorWallet).get(str(vendor_id))
    except ObjectNotFoundError:
        return None


def get_wallet(vendor_id) -> dict:
    """Current balances. A vendor that has never been credited reads as all zeros."""
    with _storage_guard("get_wallet", vendor_id=str(vendor_id)):
        wallet = _find_wallet(vendor_id)

    if wallet is None:
        return {
            "vendor_id": str(vendor_id),
            "available": 0.0,
            "pending": 0.0,
            "lifetime_earned": 0.0,
            "lifetime_withdrawn": 0.0,
        }
    return {
        "vendor_id": str(wallet.vendor_id),
        "available": wallet.available,
        "pending": wallet.pending,
        "lifetime_earned": wallet.lifetime_earned,
        "lifetime_withdrawn": wallet.lifetime_withdrawn,
    }


def list_transactions(vendor_id, kind=None, status=None, order_id=None, page=1, limit=20) -> dict:
    """Page through a vendor's ledger, newest first."""
    if kind is not None and kind not in {k.value for k in TransactionKind}:
        raise ValidationError({"kind": [f"Unknown transaction kind {kind!r}"]})
    if status is not None and status not in {s.value for s in TransactionStatus}:
        raise ValidationError({"status": [f"Unknown transaction status {status!r}"]})
    if page < 1 or limit < 1:
        raise ValidationError({"page": ["Page and limit must be at least 1"]})

    with _storage_guard("list_transactions", vendor_id=str(vendor_id)):
        wallet = _find_wallet(vendor_id)

    transactions = wallet.history() if wallet else []
    if kind:
        transactions = [t for t in transactions if t.kind == kind]
    if status:
        transactions = [t for t in transactions if t.status == status]
    if order_id:
        transactions = [t for t in transactions if str(t.order_id) == str(order_id)]

    total = len(transactions)
    start = (page - 1) * limit
    return {
        "transactions": transactions[start : start + limit],
        "total": total,
        "page": page,
        "pages": math.ceil(total / limit) if total else 0,
    }


def wallet_summary(vendor_id) -> dict:
    """Balances plus the recent activity a vendor dashboard shows."""
    with _storage_guard("wallet_summary", vendor_id=str(vendor_id)):
        wallet = _find_wallet(vendor_id)

    history = wallet.history() if wallet else []
    earned = sum(
        t.amount
        for t in history
        if t.kind == TransactionKind.CREDIT.value and t.status == TransactionStatus.COMPLETED.value
    )
    spent = sum(
        t.amount
        for t in history
        if t.kind in (TransactionKind.DEBIT.value, TransactionKind.REFUND_DEBIT.value, TransactionKind.WITHDRAWAL.value)
    )
    return {
        "wallet": get_wallet(vendor_id),
        "recent_transactions": history[:RECENT_TRANSACTIONS],
        "pending_withdrawals": [
            t
            for t in history
            if t.kind == TransactionKind.WITHDRAWAL.value and t.status == TransactionStatus.PENDING.value
        ],
        "total_credits": round(earned, 2),
        "total_debits": round(spent, 2),
    }


def request_withdrawal(vendor_id, amount, destination: dict) -> dict:
    """Reserve ``amount`` of the available balance for payout."""
    destination = destination or {}
    with _storage_guard("request_withdrawal", vendor_id=str(vendor_id)):
        with locks.hold(locks.vendor_key(vendor_id)):
            movement = current_domain.process(
                RequestWithdrawal(
                    vendor_id=str(vendor_id),
                    amount=amount,
                    method=destination.get("method"),
                    upi_id=destination.get("upi_id"),
                    account_holder_name=destination.get("account_holder_name"),
                    account_number=destination.get("account_number"),
                    ifsc_code=destination.get("ifsc_code"),
                    bank_name=destination.get("bank_name"),
                    mobile_number=destination.get("mobile_number"),
                ),
                asynchronous=False,
            )

    _notify_movements([movement])
    return get_wallet(vendor_id)


# ---------------------------------------------------------------------------
# Delivery partners
# ---------------------------------------------------------------------------
def get_partner_earnings(delivery_partner_id) -> dict:
    """What a delivery partner has earned, newest delivery first."""
    with _storage_guard("get_partner_earnings", delivery_partner_id=str(delivery_partner_id)):
        earnings = find_earnings(delivery_partner_id)

    if earnings is None:
        return {
            "delivery_partner_id": str(delivery_partner_id),
            "total_earned": 0.0,
            "deliveries_completed": 0,
            "entries": [],
        }
    return {
        "delivery_partner_id": str(earnings.delivery_partner_id),
        "total_earned": earnings.total_earned,
        "deliveries_completed": earnings.deliveries_completed,
        "entries": earnings.history(),
    }
