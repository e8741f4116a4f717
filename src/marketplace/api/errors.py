"""Map marketplace errors onto HTTP responses.

Protean's own exceptions (``ValidationError`` → 400, ``ObjectNotFoundError``
→ 404) are handled by ``protean.integrations.fastapi``; this adds the
business-rule and storage errors raised by the marketplace core.
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from protean.integrations.fastapi import register_exception_handlers

from marketplace.errors import MarketplaceError, StorageError

logger = structlog.get_logger(__name__)


async def _marketplace_error(request: Request, exc: MarketplaceError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.messages, "reason": exc.reason},
    )


async def _storage_error(request: Request, exc: StorageError) -> JSONResponse:
    logger.warning("Storage error returned to client", path=request.url.path)
    return JSONResponse(status_code=503, content={"error": "Please try again"})


def register_error_handlers(app: FastAPI) -> None:
    register_exception_handlers(app)
    app.add_exception_handler(MarketplaceError, _marketplace_error)
    app.add_exception_handler(StorageError, _storage_error)
