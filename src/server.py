"""Protean Engine runner for the marketplace domain.

Starts Engine workers that process events asynchronously when the domain runs
with ``event_processing = "async"`` (the production overlay):
- OutboxProcessor: polls the outbox table, publishes events to Redis Streams
- StreamSubscriptions: reads Redis Streams, invokes the vendor order projector

Usage:
    PROTEAN_ENV=production python src/server.py
    PROTEAN_ENV=production python src/server.py --log-dir /var/log/marketplace
"""

import argparse
import asyncio

from protean.server.engine import Engine

from marketplace.utils.logging import configure_logging


def _get_domain():
    """Import and initialize the marketplace domain."""
    from marketplace.domain import marketplace

    marketplace.init()
    return marketplace


async def run():
    engine = Engine(_get_domain())
    await engine.run()


def main():
    parser = argparse.ArgumentParser(description="Marketplace Engine runner")
    parser.add_argument("--log-dir", help="Also write rotating log files to this directory")
    args = parser.parse_args()

    configure_logging(log_dir=args.log_dir)
    asyncio.run(run())


if __name__ == "__main__":
    main()
