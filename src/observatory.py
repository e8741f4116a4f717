"""Marketplace Observatory — real-time message flow observability.

Uses Protean's built-in Observatory server to provide a live dashboard,
Prometheus metrics, and REST API for the order and wallet event streams.

Usage:
    uvicorn src.observatory:app --host 0.0.0.0 --port 9000
"""

from marketplace.domain import marketplace
from protean.server.observatory import create_observatory_app

marketplace.init()

app = create_observatory_app(
    domains=[marketplace],
    title="Marketplace Observatory",
)
