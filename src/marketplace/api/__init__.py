from marketplace.api.errors import register_error_handlers
from marketplace.api.routes import order_router, partner_router, vendor_router, wallet_router

__all__ = ["order_router", "partner_router", "vendor_router", "wallet_router", "register_error_handlers"]
