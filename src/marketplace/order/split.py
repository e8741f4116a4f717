"""Per-vendor view of a multi-vendor order.

Pure helpers: they read an order's line items and never touch storage, so the
same numbers come out whether they run during placement, delivery or a
projection rebuild.
"""

import os


def _commission_rate() -> float:
    return float(os.environ.get("MARKETPLACE_COMMISSION_RATE", "0.0"))


# Share of every vendor subtotal the platform keeps
PLATFORM_COMMISSION_RATE = _commission_rate()


def vendor_ids(order) -> list[str]:
    """Distinct vendors present in the order, sorted for stable lock ordering."""
    return sorted({str(item.vendor_id) for item in order.items or []})


def vendor_items(order, vendor_id) -> list:
    """Line items owned by ``vendor_id``, in the order they were placed."""
    return [item for item in order.items or [] if str(item.vendor_id) == str(vendor_id)]


def vendor_subtotal(order, vendor_id) -> float:
    """Gross revenue of ``vendor_id`` in the order, before commission."""
    return round(sum(item.unit_price * item.quantity for item in vendor_items(order, vendor_id)), 2)


def vendor_share(gross: float, rate: float | None = None) -> float:
    """What the vendor is owed once the platform commission is taken out."""
    if rate is None:
        rate = PLATFORM_COMMISSION_RATE
    return round(gross * (1 - rate), 2)
