"""FastAPI routes for the Marketplace domain: orders, vendor views, wallets
and delivery partner earnings.

The caller's role arrives in the ``X-Actor-Role`` header; authentication has
already happened upstream, so it is taken at face value here.
"""

from fastapi import APIRouter, Header

from marketplace import services
from marketplace.api.schemas import (
    AssignDeliveryPartnerRequest,
    EarningEntryResponse,
    OrderItemSchema,
    OrderResponse,
    PartnerEarningsResponse,
    PlaceOrderRequest,
    PricingSchema,
    ShippingAddressSchema,
    TimelineEntrySchema,
    TransactionPageResponse,
    TransactionResponse,
    TransitionOrderRequest,
    VendorOrderResponse,
    WalletResponse,
    WalletSummaryResponse,
    WithdrawalRequest,
)


def _order_response(order) -> OrderResponse:
    address = order.shipping_address
    return OrderResponse(
        order_id=str(order.id),
        order_number=order.order_number,
        customer_id=str(order.customer_id),
        status=order.status,
        payment_method=order.payment_method,
        items=[
            OrderItemSchema(
                product_id=str(item.product_id),
                title=item.title,
                unit_price=item.unit_price,
                quantity=item.quantity,
                vendor_id=str(item.vendor_id),
            )
            for item in order.items
        ],
        shipping_address=ShippingAddressSchema(
            name=address.name,
            phone=address.phone,
            address=address.address,
            city=address.city,
            state=address.state,
            pincode=address.pincode,
        )
        if address
        else None,
        pricing=PricingSchema(
            subtotal=order.pricing.subtotal,
            discount=order.pricing.discount,
            shipping_fee=order.pricing.shipping_fee,
            tax=order.pricing.tax,
            total=order.pricing.total,
        ),
        timeline=[
            TimelineEntrySchema(stage=entry.stage, completed=entry.completed, completed_at=entry.completed_at)
            for entry in order.ordered_timeline()
        ],
        delivery_partner_id=str(order.delivery_partner_id) if order.delivery_partner_id else None,
        delivery_payment=order.delivery_payment,
        estimated_delivery_minutes=order.estimated_delivery_minutes,
        delivered_at=order.delivered_at,
        cancellation_reason=order.cancellation_reason,
        cancelled_by=order.cancelled_by,
        refund_status=order.refund_status,
        placed_at=order.placed_at,
    )


def _transaction_response(transaction) -> TransactionResponse:
    return TransactionResponse(
        transaction_ref=transaction.transaction_ref,
        order_id=str(transaction.order_id) if transaction.order_id else None,
        amount=transaction.amount,
        kind=transaction.kind,
        status=transaction.status,
        balance_after=transaction.balance_after,
        description=transaction.description,
        payout_method=transaction.payout_method,
        created_at=transaction.created_at,
    )


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.post("", status_code=201, response_model=OrderResponse)
async def place_order(body: PlaceOrderRequest) -> OrderResponse:
    """Record a checked-out basket as a new pending order."""
    order = services.place_order(
        customer_id=body.customer_id,
        items=[item.model_dump() for item in body.items],
        shipping_address=body.shipping_address.model_dump(),
        payment_method=body.payment_method,
        discount=body.discount,
        shipping_fee=body.shipping_fee,
        tax=body.tax,
    )
    return _order_response(order)


@order_router.get("/{order_id}", response_model=OrderResponse)
async def get_order(order_id: str) -> OrderResponse:
    return _order_response(services.get_order(order_id))


@order_router.put("/{order_id}/status", response_model=OrderResponse)
async def transition_order(
    order_id: str,
    body: TransitionOrderRequest,
    x_actor_role: str = Header(...),
) -> OrderResponse:
    """Move an order to a new status on behalf of the calling role."""
    order = services.transition(
        order_id,
        body.status,
        x_actor_role,
        delivery_payment=body.delivery_payment,
        estimated_delivery_minutes=body.estimated_delivery_minutes,
        reason=body.reason,
    )
    return _order_response(order)


@order_router.put("/{order_id}/assign", response_model=OrderResponse)
async def assign_delivery_partner(
    order_id: str,
    body: AssignDeliveryPartnerRequest,
    x_actor_role: str = Header(...),
) -> OrderResponse:
    """Assign a delivery partner (admin) or accept the order (delivery partner)."""
    order = services.assign_delivery_partner(order_id, body.delivery_partner_id, x_actor_role)
    return _order_response(order)


# ---------------------------------------------------------------------------
# Vendor Router
# ---------------------------------------------------------------------------
vendor_router = APIRouter(prefix="/vendors", tags=["vendors"])


@vendor_router.get("/{vendor_id}/orders", response_model=list[VendorOrderResponse])
async def list_vendor_orders(vendor_id: str, status: str | None = None) -> list[VendorOrderResponse]:
    rows = services.list_vendor_orders(vendor_id, status=status)
    return [
        VendorOrderResponse(
            order_id=str(row.order_id),
            order_number=row.order_number,
            customer_id=str(row.customer_id) if row.customer_id else None,
            status=row.status,
            payment_method=row.payment_method,
            vendor_subtotal=row.vendor_subtotal,
            vendor_items_count=row.vendor_items_count,
            delivery_partner_id=str(row.delivery_partner_id) if row.delivery_partner_id else None,
            placed_at=row.placed_at,
        )
        for row in rows
    ]


# ---------------------------------------------------------------------------
# Wallet Router
# ---------------------------------------------------------------------------
wallet_router = APIRouter(prefix="/wallets", tags=["wallets"])


@wallet_router.get("/{vendor_id}", response_model=WalletResponse)
async def get_wallet(vendor_id: str) -> WalletResponse:
    return WalletResponse(**services.get_wallet(vendor_id))


@wallet_router.get("/{vendor_id}/transactions", response_model=TransactionPageResponse)
async def list_transactions(
    vendor_id: str,
    kind: str | None = None,
    status: str | None = None,
    order_id: str | None = None,
    page: int = 1,
    limit: int = 20,
) -> TransactionPageResponse:
    result = services.list_transactions(
        vendor_id, kind=kind, status=status, order_id=order_id, page=page, limit=limit
    )
    return TransactionPageResponse(
        transactions=[_transaction_response(t) for t in result["transactions"]],
        total=result["total"],
        page=result["page"],
        pages=result["pages"],
    )


@wallet_router.get("/{vendor_id}/summary", response_model=WalletSummaryResponse)
async def wallet_summary(vendor_id: str) -> WalletSummaryResponse:
    summary = services.wallet_summary(vendor_id)
    return WalletSummaryResponse(
        wallet=WalletResponse(**summary["wallet"]),
        recent_transactions=[_transaction_response(t) for t in summary["recent_transactions"]],
        pending_withdrawals=[_transaction_response(t) for t in summary["pending_withdrawals"]],
        total_credits=summary["total_credits"],
        total_debits=summary["total_debits"],
    )


@wallet_router.post("/{vendor_id}/withdrawals", status_code=201, response_model=WalletResponse)
async def request_withdrawal(vendor_id: str, body: WithdrawalRequest) -> WalletResponse:
    """Reserve part of the available balance for payout."""
    destination = body.model_dump(exclude={"amount"})
    return WalletResponse(**services.request_withdrawal(vendor_id, body.amount, destination))


# ---------------------------------------------------------------------------
# Delivery Partner Router
# ---------------------------------------------------------------------------
partner_router = APIRouter(prefix="/delivery-partners", tags=["delivery-partners"])


@partner_router.get("/{delivery_partner_id}/earnings", response_model=PartnerEarningsResponse)
async def get_partner_earnings(delivery_partner_id: str) -> PartnerEarningsResponse:
    earnings = services.get_partner_earnings(delivery_partner_id)
    return PartnerEarningsResponse(
        delivery_partner_id=earnings["delivery_partner_id"],
        total_earned=earnings["total_earned"],
        deliveries_completed=earnings["deliveries_completed"],
        entries=[
            EarningEntryResponse(order_id=str(entry.order_id), amount=entry.amount, earned_at=entry.earned_at)
            for entry in earnings["entries"]
        ],
    )
