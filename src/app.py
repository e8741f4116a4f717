"""Marketplace FastAPI application.

Web server that processes marketplace commands synchronously via HTTP. Every
request that targets the marketplace runs inside the marketplace domain
context.

Usage:
    uvicorn src.app:app --host 0.0.0.0 --port 8000 --reload
"""

import os

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# The domain is initialized at module level so uvicorn workers share it.
# PROTEAN_ENV controls which config overlay is applied:
#   - unset/"test" → event_processing = "sync"  (projectors fire in UoW)
#   - "production" → event_processing = "async" (projectors fire via Engine)
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from marketplace.domain import marketplace  # noqa: E402
from marketplace.utils.logging import configure_logging  # noqa: E402

configure_logging(log_dir=os.environ.get("MARKETPLACE_LOG_DIR"))
marketplace.init()

_DOMAIN_PREFIXES = ("/orders", "/vendors", "/wallets", "/delivery-partners")


# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Marketplace API",
    description="Multi-vendor order lifecycle and vendor wallet ledger",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def domain_context_middleware(request: Request, call_next):
    """Push the marketplace domain context for marketplace routes."""
    if request.url.path.startswith(_DOMAIN_PREFIXES):
        with marketplace.domain_context():
            response = await call_next(request)
        return response
    # Not a marketplace route, pass through (health check, docs, etc.)
    return await call_next(request)


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
from marketplace.api import (  # noqa: E402
    order_router,
    partner_router,
    register_error_handlers,
    vendor_router,
    wallet_router,
)

app.include_router(order_router)
app.include_router(vendor_router)
app.include_router(wallet_router)
app.include_router(partner_router)
register_error_handlers(app)


# ---------------------------------------------------------------------------
# Health / root
# ---------------------------------------------------------------------------
@app.get("/health")
async def health():
    return JSONResponse(
        content={
            "status": "ok",
            "domains": {"marketplace": {"name": marketplace.name}},
        }
    )
