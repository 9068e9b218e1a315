"""Protean Engine runner for the storefront domains.

Starts Engine workers that process events asynchronously: the ordering
engine publishes the events its aggregates raise, and the notifications
engine subscribes to ``ordering::order`` to send order confirmations.

Usage:
    python src/server.py                          # Run both domain engines
    python src/server.py --domain notifications   # Run only the notifications engine
"""

import argparse
import asyncio

from protean.server.engine import Engine

from ordering.utils.logging import configure_logging

DOMAINS = ["ordering", "notifications"]


def _get_domain(name):
    """Import and initialize a domain by name."""
    if name == "ordering":
        from ordering.domain import ordering

        ordering.init()
        return ordering
    elif name == "notifications":
        from notifications.domain import notifications

        notifications.init()
        return notifications
    else:
        raise ValueError(f"Unknown domain: {name}")


async def run(domain_names):
    engines = [Engine(_get_domain(name)) for name in domain_names]
    await asyncio.gather(*(engine.run() for engine in engines))


def main():
    parser = argparse.ArgumentParser(description="Storefront Engine runner")
    parser.add_argument(
        "--domain",
        choices=DOMAINS,
        help="Run a single domain engine (default: run all)",
    )
    args = parser.parse_args()

    configure_logging()
    asyncio.run(run([args.domain] if args.domain else DOMAINS))


if __name__ == "__main__":
    main()
