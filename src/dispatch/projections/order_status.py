"""Order status — one row per order for customer and vendor order lists.

The view is a disposable cache. Each event carries the order revision it
produced, and older revisions are ignored, so replays and out-of-order
delivery leave the newest state in place.
"""

from protean.core.projector import on
from protean.exceptions import ObjectNotFoundError
from protean.fields import Boolean, DateTime, Float, Identifier, Integer, String
from protean.utils.globals import current_domain

from dispatch.domain import dispatch
from dispatch.engine.statuses import OrderStatus, RequestStatus, status_label, timeline_position
from dispatch.engine.transitions import dispatch_state
from dispatch.order.events import (
    DeliveryPartnerAssigned,
    DeliveryRequestAccepted,
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
from dispatch.order.order import Order


@dispatch.projection
class OrderStatusView:
    order_id = Identifier(identifier=True, required=True)
    customer_id = Identifier(required=True)
    vendor_id = Identifier(required=True)
    delivery_status = String(required=True)
    status_label = String()
    timeline_step = Integer(default=0)
    dispatch_state = String()
    request_id = Identifier()
    request_status = String()
    partner_id = Identifier()
    item_count = Integer(default=0)
    final_amount = Float(default=0.0)
    payment_status = String()
    archived = Boolean(default=False)
    revision = Integer(default=0)
    placed_at = DateTime()
    updated_at = DateTime()


def _load(order_id):
    try:
        return current_domain.repository_for(OrderStatusView).get(str(order_id))
    except ObjectNotFoundError:
        return None


def _refresh(view, event, occurred_at, **changes):
    """Apply a lifecycle event if it is newer than what the view holds."""
    if view is None or event.revision <= (view.revision or 0):
        return
    for field, value in changes.items():
        setattr(view, field, value)
    view.delivery_status = event.delivery_status
    if getattr(event, "request_status", None) is not None:
        view.request_status = event.request_status
    view.status_label = status_label(event.delivery_status)
    view.timeline_step = timeline_position(event.delivery_status)
    view.dispatch_state = dispatch_state(
        OrderStatus(view.delivery_status),
        RequestStatus(view.request_status) if view.request_status else None,
    ).value
    view.revision = event.revision
    view.updated_at = occurred_at
    current_domain.repository_for(OrderStatusView).add(view)


@dispatch.projector(projector_for=OrderStatusView, aggregates=[Order])
class OrderStatusProjector:
    @on(OrderPlaced)
    def on_order_placed(self, event):
        if _load(event.order_id) is not None:
            return
        current_domain.repository_for(OrderStatusView).add(
            OrderStatusView(
                order_id=event.order_id,
                customer_id=event.customer_id,
                vendor_id=event.vendor_id,
                delivery_status=event.delivery_status,
                status_label=status_label(event.delivery_status),
                timeline_step=timeline_position(event.delivery_status),
                dispatch_state=dispatch_state(OrderStatus(event.delivery_status), None).value,
                item_count=event.item_count,
                final_amount=event.final_amount,
                payment_status=event.payment_status,
                revision=event.revision,
                placed_at=event.placed_at,
                updated_at=event.placed_at,
            )
        )

    @on(OrderPaid)
    def on_order_paid(self, event):
        view = _load(event.order_id)
        if view is None:
            return
        view.payment_status = "paid"
        view.revision = max(view.revision or 0, event.revision)
        current_domain.repository_for(OrderStatusView).add(view)

    @on(OrderApproved)
    def on_order_approved(self, event):
        _refresh(_load(event.order_id), event, event.approved_at)

    @on(OrderRejectedByVendor)
    def on_order_rejected(self, event):
        _refresh(_load(event.order_id), event, event.rejected_at)

    @on(DeliveryPartnerAssigned)
    def on_partner_assigned(self, event):
        _refresh(
            _load(event.order_id),
            event,
            event.assigned_at,
            request_id=event.request_id,
            partner_id=event.partner_id,
        )

    @on(DeliveryRequestAccepted)
    def on_request_accepted(self, event):
        _refresh(_load(event.order_id), event, event.accepted_at)

    @on(DeliveryRequestRejected)
    def on_request_rejected(self, event):
        _refresh(_load(event.order_id), event, event.rejected_at)

    @on(OrderPickedUp)
    def on_picked_up(self, event):
        _refresh(_load(event.order_id), event, event.picked_up_at)

    @on(OrderOutForDelivery)
    def on_out_for_delivery(self, event):
        _refresh(_load(event.order_id), event, event.departed_at)

    @on(OrderDelivered)
    def on_delivered(self, event):
        _refresh(_load(event.order_id), event, event.delivered_at)

    @on(OrderCancelled)
    def on_cancelled(self, event):
        _refresh(_load(event.order_id), event, event.cancelled_at)

    @on(OrderArchived)
    def on_archived(self, event):
        view = _load(event.order_id)
        if view is None:
            return
        view.archived = True
        view.revision = max(view.revision or 0, event.revision)
        view.updated_at = event.archived_at
        current_domain.repository_for(OrderStatusView).add(view)
