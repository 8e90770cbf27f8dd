"""Change feed — in-process push notifications for lifecycle changes.

Clients subscribe per entity type and receive a ``ChangeNotification`` each
time an order or delivery request changes. Notifications are hints to
refresh: a subscriber reloads the record before deciding anything, and
``RevisionTracker`` drops notifications it has already seen so a refresh is
idempotent.
"""

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import datetime

import structlog

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class ChangeNotification:
    entity_type: str  # "order" or "delivery_request"
    entity_id: str
    revision: int
    status: str
    event_type: str | None = None
    attributes: Mapping[str, str | None] = field(default_factory=dict)
    occurred_at: datetime | None = None

    def matches(self, filters: Mapping[str, str] | None) -> bool:
        if not filters:
            return True
        return all(str(self.attributes.get(key)) == str(value) for key, value in filters.items())


ChangeCallback = Callable[[ChangeNotification], None]


@dataclass
class _Subscription:
    entity_type: str
    on_change: ChangeCallback
    filters: Mapping[str, str] | None = None


class ChangeFeed:
    """Fan-out of notifications to subscribers of an entity type.

    A failing subscriber is logged and skipped; the others still receive
    the notification.
    """

    def __init__(self):
        self._subscriptions: list[_Subscription] = []

    def subscribe(
        self,
        entity_type: str,
        on_change: ChangeCallback,
        filters: Mapping[str, str] | None = None,
    ) -> Callable[[], None]:
        """Register ``on_change`` and return a callable that unsubscribes it."""
        subscription = _Subscription(entity_type, on_change, dict(filters) if filters else None)
        self._subscriptions.append(subscription)

        def unsubscribe() -> None:
            if subscription in self._subscriptions:
                self._subscriptions.remove(subscription)

        return unsubscribe

    def publish(self, notification: ChangeNotification) -> int:
        """Deliver ``notification`` and return how many subscribers received it."""
        delivered = 0
        for subscription in list(self._subscriptions):
            if subscription.entity_type != notification.entity_type:
                continue
            if not notification.matches(subscription.filters):
                continue
            try:
                subscription.on_change(notification)
            except Exception as exc:
                logger.error(
                    "Change subscriber failed",
                    entity_type=notification.entity_type,
                    entity_id=notification.entity_id,
                    revision=notification.revision,
                    error=str(exc),
                )
                continue
            delivered += 1
        return delivered

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)


class RevisionTracker:
    """Remembers the newest revision seen per entity."""

    def __init__(self):
        self._seen: dict[tuple[str, str], int] = {}

    def is_new(self, notification: ChangeNotification) -> bool:
        """Record the notification and report whether it is newer than anything seen."""
        key = (notification.entity_type, notification.entity_id)
        last = self._seen.get(key)
        if last is not None and notification.revision <= last:
            return False
        self._seen[key] = notification.revision
        return True

    def last_revision(self, entity_type: str, entity_id: str) -> int | None:
        return self._seen.get((entity_type, entity_id))

    def forget(self, entity_type: str, entity_id: str) -> None:
        self._seen.pop((entity_type, entity_id), None)


_feed_instance = None


def get_change_feed() -> ChangeFeed:
    """Return the process-wide change feed (singleton)."""
    global _feed_instance
    if _feed_instance is None:
        _feed_instance = ChangeFeed()
    return _feed_instance


def reset_change_feed():
    """Drop all subscriptions (useful for testing)."""
    global _feed_instance
    _feed_instance = None
