"""Dropcart Dispatch Observatory — real-time message flow observability.

Uses Protean's built-in Observatory server to provide a live dashboard,
Prometheus metrics, and REST API for monitoring the event pipeline.

In production the dispatch domain processes events asynchronously, so the
dashboard shows the ``dispatch::order`` stream feeding its event handlers
and read-model projectors. Lag on that stream is how long customers,
vendors and partners wait for a status change to reach them.

Usage:
    uvicorn src.observatory:app --host 0.0.0.0 --port 9000
"""

from dispatch.domain import dispatch
from protean.server.observatory import create_observatory_app

dispatch.init()

app = create_observatory_app(
    domains=[dispatch],
    title="Dropcart Dispatch Observatory",
)
