"""Pydantic request/response schemas for the Marketplace API.

These are external contracts (anti-corruption layer) — separate from
internal Protean commands.
"""

from datetime import datetime

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Shared sub-models
# ---------------------------------------------------------------------------
class OrderItemSchema(BaseModel):
    product_id: str
    title: str | None = None
    unit_price: float = Field(ge=0)
    quantity: int = Field(ge=1)
    vendor_id: str


class ShippingAddressSchema(BaseModel):
    name: str | None = None
    phone: str | None = None
    address: str
    city: str
    state: str | None = None
    pincode: str


class TimelineEntrySchema(BaseModel):
    stage: str
    completed: bool
    completed_at: datetime | None = None


class PricingSchema(BaseModel):
    subtotal: float
    discount: float
    shipping_fee: float
    tax: float
    total: float


# ---------------------------------------------------------------------------
# Order Request Schemas
# ---------------------------------------------------------------------------
class PlaceOrderRequest(BaseModel):
    customer_id: str
    items: list[OrderItemSchema]
    shipping_address: ShippingAddressSchema
    payment_method: str
    discount: float = Field(default=0.0, ge=0)
    shipping_fee: float = Field(default=0.0, ge=0)
    tax: float = Field(default=0.0, ge=0)

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "customer_id": "cust-001",
                    "items": [
                        {
                            "product_id": "prod-001",
                            "title": "Handloom Saree",
                            "unit_price": 1200.0,
                            "quantity": 1,
                            "vendor_id": "vendor-001",
                        }
                    ],
                    "shipping_address": {
                        "name": "Asha",
                        "phone": "9876543210",
                        "address": "12 MG Road",
                        "city": "Bengaluru",
                        "state": "KA",
                        "pincode": "560001",
                    },
                    "payment_method": "upi",
                }
            ]
        }
    }


class TransitionOrderRequest(BaseModel):
    status: str
    delivery_payment: float | None = None
    estimated_delivery_minutes: int | None = None
    reason: str | None = None


class AssignDeliveryPartnerRequest(BaseModel):
    delivery_partner_id: str


# ---------------------------------------------------------------------------
# Wallet Request Schemas
# ---------------------------------------------------------------------------
class WithdrawalRequest(BaseModel):
    amount: float
    method: str  # upi, bank_transfer, paytm, phonepe, googlepay
    upi_id: str | None = None
    account_holder_name: str | None = None
    account_number: str | None = None
    ifsc_code: str | None = None
    bank_name: str | None = None
    mobile_number: str | None = None


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------
class OrderResponse(BaseModel):
    order_id: str
    order_number: str
    customer_id: str
    status: str
    payment_method: str
    items: list[OrderItemSchema]
    shipping_address: ShippingAddressSchema | None = None
    pricing: PricingSchema
    timeline: list[TimelineEntrySchema]
    delivery_partner_id: str | None = None
    delivery_payment: float | None = None
    estimated_delivery_minutes: int | None = None
    delivered_at: datetime | None = None
    cancellation_reason: str | None = None
    cancelled_by: str | None = None
    refund_status: str | None = None
    placed_at: datetime | None = None


class VendorOrderResponse(BaseModel):
    order_id: str
    order_number: str | None = None
    customer_id: str | None = None
    status: str
    payment_method: str | None = None
    vendor_subtotal: float
    vendor_items_count: int
    delivery_partner_id: str | None = None
    placed_at: datetime | None = None


class WalletResponse(BaseModel):
    vendor_id: str
    available: float
    pending: float
    lifetime_earned: float
    lifetime_withdrawn: float


class TransactionResponse(BaseModel):
    transaction_ref: str
    order_id: str | None = None
    amount: float
    kind: str
    status: str
    balance_after: float
    description: str | None = None
    payout_method: str | None = None
    created_at: datetime | None = None


class TransactionPageResponse(BaseModel):
    transactions: list[TransactionResponse]
    total: int
    page: int
    pages: int


class WalletSummaryResponse(BaseModel):
    wallet: WalletResponse
    recent_transactions: list[TransactionResponse]
    pending_withdrawals: list[TransactionResponse]
    total_credits: float
    total_debits: float


class EarningEntryResponse(BaseModel):
    order_id: str
    amount: float
    earned_at: datetime | None = None


class PartnerEarningsResponse(BaseModel):
    delivery_partner_id: str
    total_earned: float
    deliveries_completed: int
    entries: list[EarningEntryResponse]
