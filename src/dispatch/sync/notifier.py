"""Publishes every Order lifecycle event to the change feed.

The order is reloaded so the notification carries the state as persisted,
including who the order belongs to. Subscribers filter on those attributes.
Delivery request notifications describe the request the event names, which
after a decline is no longer the order's current one.
"""

import structlog
from protean.utils.globals import current_domain
from protean.utils.mixins import handle

from dispatch.domain import dispatch
from dispatch.order.events import (
    DeliveryPartnerAssigned,
    DeliveryRequestAccepted,
    DeliveryRequestDismissed,
    DeliveryRequestRejected,
    OrderApproved,
    OrderArchived,
    OrderCancelled,
    OrderDelivered,
    OrderOutForDelivery,
    OrderPaid,
    OrderPickedUp,
    OrderPlaced,
    OrderRejectedByVendor,
)
from dispatch.order.order import DeliveryRequest, Order
from dispatch.sync.feed import ChangeNotification, get_change_feed

logger = structlog.get_logger(__name__)


def _request_notification(
    request: DeliveryRequest, attributes: dict, revision: int, event_type, occurred_at
) -> ChangeNotification:
    return ChangeNotification(
        entity_type="delivery_request",
        entity_id=str(request.id),
        revision=revision,
        status=request.status,
        event_type=event_type,
        attributes={
            **attributes,
            "request_id": str(request.id),
            "partner_id": str(request.partner_id),
            "request_status": request.status,
            "attempt": str(request.attempt),
        },
        occurred_at=occurred_at,
    )


def notifications_for(
    order: Order,
    event_type: str | None = None,
    occurred_at=None,
    requests: list[DeliveryRequest] | None = None,
    request_revision: int | None = None,
) -> list[ChangeNotification]:
    """Order notification, plus one per delivery request in ``requests``.

    ``requests`` defaults to the order's current request, if it has one.
    """
    current = order.current_request
    if requests is None:
        requests = [current] if current is not None else []
    attributes = {
        "order_id": str(order.id),
        "customer_id": str(order.customer_id),
        "vendor_id": str(order.vendor_id),
        "partner_id": str(current.partner_id) if current else None,
        "request_status": current.status if current else None,
        "dispatch_state": order.dispatch_state.value,
        "archived": str(bool(order.archived)).lower(),
    }
    notifications = [
        ChangeNotification(
            entity_type="order",
            entity_id=str(order.id),
            revision=order.revision,
            status=order.delivery_status,
            event_type=event_type,
            attributes=attributes,
            occurred_at=occurred_at,
        )
    ]
    revision = request_revision if request_revision is not None else order.revision
    for request in requests:
        notifications.append(_request_notification(request, attributes, revision, event_type, occurred_at))
    return notifications


@dispatch.event_handler(part_of=Order, stream_category="dispatch::order")
class ChangeNotifier:
    @handle(OrderPlaced)
    def on_order_placed(self, event):
        self._publish(event)

    @handle(OrderPaid)
    def on_order_paid(self, event):
        self._publish(event)

    @handle(OrderApproved)
    def on_order_approved(self, event):
        self._publish(event)

    @handle(OrderRejectedByVendor)
    def on_order_rejected(self, event):
        self._publish(event)

    @handle(DeliveryPartnerAssigned)
    def on_partner_assigned(self, event):
        self._publish(event)

    @handle(DeliveryRequestAccepted)
    def on_request_accepted(self, event):
        self._publish(event)

    @handle(DeliveryRequestRejected)
    def on_request_rejected(self, event):
        self._publish(event)

    @handle(OrderPickedUp)
    def on_picked_up(self, event):
        self._publish(event)

    @handle(OrderOutForDelivery)
    def on_out_for_delivery(self, event):
        self._publish(event)

    @handle(OrderDelivered)
    def on_delivered(self, event):
        self._publish(event)

    @handle(OrderCancelled)
    def on_cancelled(self, event):
        self._publish(event)

    @handle(OrderArchived)
    def on_archived(self, event):
        self._publish(event)

    @handle(DeliveryRequestDismissed)
    def on_request_dismissed(self, event):
        self._publish(event)

    def _publish(self, event) -> None:
        order = current_domain.repository_for(Order).get(str(event.order_id))
        event_type = event.__class__.__name__
        requests, request_revision = None, None
        request_id = getattr(event, "request_id", None)
        if request_id:
            requests = [order.find_request(str(request_id))]
            request_revision = event.revision

        feed = get_change_feed()
        for notification in notifications_for(
            order, event_type=event_type, requests=requests, request_revision=request_revision
        ):
            feed.publish(notification)
        logger.debug("Change published", order_id=str(order.id), event_type=event_type, revision=order.revision)
