"""Protean Engine runner for Dropcart Dispatch.

Starts the Engine that processes events asynchronously when the domain runs
with ``event_processing = "async"`` (the production overlay):
- OutboxProcessor: polls the outbox table, publishes events to Redis Streams
- StreamSubscriptions: reads Redis Streams, invokes projectors and event handlers

Usage:
    python src/server.py
    python src/server.py --test-mode   # drain pending messages and exit
"""

import argparse
import asyncio

from protean.server.engine import Engine


def _get_domain():
    from dispatch.domain import dispatch

    dispatch.init()
    return dispatch


async def run(test_mode: bool = False):
    engine = Engine(_get_domain(), test_mode=test_mode)
    await engine.run()


def main():
    parser = argparse.ArgumentParser(description="Dropcart Dispatch Engine runner")
    parser.add_argument(
        "--test-mode",
        action="store_true",
        help="Process pending messages once and exit",
    )
    args = parser.parse_args()

    asyncio.run(run(test_mode=args.test_mode))


if __name__ == "__main__":
    main()
