"""Polling fallback for clients that cannot hold a push subscription.

``PollingWatcher`` re-reads a snapshot on an interval and reports only the
entities whose revision moved since the last poll.
"""

import asyncio
import os
from collections.abc import Callable, Iterable

import structlog
from protean.utils.globals import current_domain

from dispatch.order.order import Order
from dispatch.sync.feed import ChangeCallback, ChangeNotification, RevisionTracker
from dispatch.sync.notifier import notifications_for

logger = structlog.get_logger(__name__)

DEFAULT_POLL_INTERVAL = 5.0


def poll_interval() -> float:
    return float(os.environ.get("DISPATCH_POLL_INTERVAL", DEFAULT_POLL_INTERVAL))


_ORDER_FIELDS = ("customer_id", "vendor_id")


def order_snapshot(entity_type: str = "order", **filters) -> Callable[[], list[ChangeNotification]]:
    """Build a fetch function over the orders matching ``filters`` (e.g. vendor_id=...).

    Customer and vendor filters narrow the query; any other filter, such as
    ``partner_id``, is matched against the notification attributes. Delivery
    request snapshots cover every attempt, so a partner whose request was
    declined or cancelled still sees its final status.
    """
    query_filters = {key: value for key, value in filters.items() if key in _ORDER_FIELDS}

    def fetch() -> list[ChangeNotification]:
        repo = current_domain.repository_for(Order)
        query = repo._dao.query.filter(**query_filters) if query_filters else repo._dao.query
        notifications = []
        for order in query.all().items:
            requests = list(order.delivery_requests or []) if entity_type == "delivery_request" else None
            notifications.extend(
                n
                for n in notifications_for(order, requests=requests)
                if n.entity_type == entity_type and n.matches(filters)
            )
        return notifications

    return fetch


class PollingWatcher:
    def __init__(
        self,
        fetch: Callable[[], Iterable[ChangeNotification]],
        on_change: ChangeCallback,
        interval: float | None = None,
        tracker: RevisionTracker | None = None,
    ):
        self.fetch = fetch
        self.on_change = on_change
        self.interval = interval if interval is not None else poll_interval()
        self.tracker = tracker or RevisionTracker()

    def poll_once(self) -> int:
        """Fetch once and report new revisions. Returns the number reported."""
        reported = 0
        for notification in self.fetch():
            if not self.tracker.is_new(notification):
                continue
            try:
                self.on_change(notification)
            except Exception as exc:
                logger.error(
                    "Polling subscriber failed",
                    entity_type=notification.entity_type,
                    entity_id=notification.entity_id,
                    error=str(exc),
                )
                continue
            reported += 1
        return reported

    async def run(self, stop: asyncio.Event) -> None:
        """Poll until ``stop`` is set."""
        logger.info("Polling watcher started", interval=self.interval)
        while not stop.is_set():
            self.poll_once()
            try:
                await asyncio.wait_for(stop.wait(), timeout=self.interval)
            except TimeoutError:
                continue
        logger.info("Polling watcher stopped")
