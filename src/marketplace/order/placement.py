"""Order placement — command and handler.

Checkout hands over an already-paid (or cash-on-delivery) basket. The handler
assigns the next order number, records the order and, for prepaid orders,
parks each vendor's share in that vendor's pending balance, all in one unit
of work.
"""

import json
from dataclasses import dataclass, field

import structlog
from protean import handle
from protean.fields import Float, Identifier, String, Text
from protean.utils.globals import current_domain

from marketplace.domain import marketplace
from marketplace.order.order import Order, PaymentMethod
from marketplace.order.sequence import next_order_number
from marketplace.order.split import vendor_ids, vendor_share, vendor_subtotal
from marketplace.wallet import ledger
from marketplace.wallet.ledger import LedgerMovement

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class PlacementResult:
    order_id: str
    order_number: str
    movements: list[LedgerMovement] = field(default_factory=list)


@marketplace.command(part_of="Order")
class PlaceOrder:
    customer_id = Identifier(required=True)
    items = Text(required=True)  # JSON: list of item dicts, each with vendor_id
    shipping_address = Text(required=True)  # JSON: address dict
    payment_method = String(required=True, max_length=20)
    discount = Float(default=0.0)
    shipping_fee = Float(default=0.0)
    tax = Float(default=0.0)


@marketplace.command_handler(part_of=Order)
class PlaceOrderHandler:
    @handle(PlaceOrder)
    def place_order(self, command):
        items_data = json.loads(command.items) if isinstance(command.items, str) else command.items
        shipping_address = (
            json.loads(command.shipping_address)
            if isinstance(command.shipping_address, str)
            else command.shipping_address
        )

        order = Order.place(
            order_number=next_order_number(),
            customer_id=command.customer_id,
            items_data=items_data,
            shipping_address=shipping_address,
            payment_method=command.payment_method,
            discount=command.discount,
            shipping_fee=command.shipping_fee,
            tax=command.tax,
        )
        current_domain.repository_for(Order).add(order)

        movements = []
        if command.payment_method != PaymentMethod.COD.value:
            for vendor_id in vendor_ids(order):
                amount = vendor_share(vendor_subtotal(order, vendor_id))
                description = f"Order {order.order_number} payment received"
                if ledger.credit(vendor_id, amount, order_id=str(order.id), description=description):
                    movements.append(
                        LedgerMovement(
                            kind="credit",
                            vendor_id=vendor_id,
                            order_id=str(order.id),
                            amount=amount,
                            description=description,
                        )
                    )

        logger.info(
            "Order placed",
            order_id=str(order.id),
            order_number=order.order_number,
            payment_method=order.payment_method,
            total=order.pricing.total,
            vendors=len(vendor_ids(order)),
        )
        return PlacementResult(order_id=str(order.id), order_number=order.order_number, movements=movements)
