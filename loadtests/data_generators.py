"""Faker-based data generators for Locust load test scenarios.

Each generator produces payloads that pass the marketplace's validation rules
and match the exact field names expected by the API's Pydantic request schemas.
"""

import random
import uuid

from faker import Faker

fake = Faker("en_IN")

# A small fixed vendor pool so wallets accumulate across journeys and
# concurrent requests contend on the same vendor locks.
VENDOR_POOL = [f"vendor-lt-{n:02d}" for n in range(1, 11)]

PREPAID_METHODS = ["upi", "card", "wallet"]


def unique_customer_id() -> str:
    return f"cust-lt-{uuid.uuid4().hex[:8]}"


def shipping_address() -> dict:
    """Generate a ShippingAddressSchema payload."""
    return {
        "name": fake.name()[:100],
        "phone": f"9{random.randint(100000000, 999999999)}",
        "address": fake.street_address()[:255],
        "city": fake.city()[:100],
        "state": fake.state()[:100],
        "pincode": f"{random.randint(110000, 855999)}",
    }


def order_item(vendor_id: str | None = None) -> dict:
    """Generate an OrderItemSchema payload."""
    return {
        "product_id": f"prod-lt-{uuid.uuid4().hex[:8]}",
        "title": fake.word().capitalize()[:200],
        "unit_price": round(random.uniform(99.0, 2499.0), 2),
        "quantity": random.randint(1, 3),
        "vendor_id": vendor_id or random.choice(VENDOR_POOL),
    }


def order_data(payment_method: str | None = None, vendor_count: int | None = None) -> dict:
    """Generate a PlaceOrderRequest payload spread across one or more vendors."""
    vendor_count = vendor_count or random.randint(1, 3)
    vendors = random.sample(VENDOR_POOL, vendor_count)
    items = [order_item(vendor_id) for vendor_id in vendors for _ in range(random.randint(1, 2))]
    return {
        "customer_id": unique_customer_id(),
        "items": items,
        "shipping_address": shipping_address(),
        "payment_method": payment_method or random.choice(PREPAID_METHODS + ["cod"]),
        "discount": 0.0,
        "shipping_fee": random.choice([0.0, 40.0]),
        "tax": 0.0,
    }


def shipping_terms() -> dict:
    """Generate the extra fields a move to shipped needs."""
    return {
        "status": "shipped",
        "delivery_payment": round(random.uniform(30.0, 120.0), 2),
        "estimated_delivery_minutes": random.choice([30, 45, 60, 90]),
    }


def cancellation_reason() -> str:
    return random.choice(
        [
            "Ordered by mistake",
            "Found a better price",
            "Delivery is taking too long",
            "Item out of stock",
        ]
    )


def withdrawal_data(amount: float) -> dict:
    """Generate a WithdrawalRequest payload for a random payout method."""
    method = random.choice(["upi", "bank_transfer", "paytm"])
    payload = {"amount": amount, "method": method}
    if method == "upi":
        payload["upi_id"] = f"{fake.user_name()[:20]}@upi"
    elif method == "bank_transfer":
        payload.update(
            {
                "account_holder_name": fake.name()[:100],
                "account_number": f"{random.randint(10**11, 10**12 - 1)}",
                "ifsc_code": f"HDFC0{random.randint(100000, 999999)}",
                "bank_name": "HDFC Bank",
            }
        )
    else:
        payload["mobile_number"] = f"9{random.randint(100000000, 999999999)}"
    return payload
