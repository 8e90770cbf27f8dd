"""Partner queue — one row per delivery request for the partner dashboard."""

from protean.core.projector import on
from protean.exceptions import ObjectNotFoundError
from protean.fields import Boolean, DateTime, Float, Identifier, Integer, String
from protean.utils.globals import current_domain

from dispatch.domain import dispatch
from dispatch.engine.statuses import status_label
from dispatch.order.events import (
    DeliveryPartnerAssigned,
    DeliveryRequestAccepted,
    DeliveryRequestDismissed,
    DeliveryRequestRejected,
    OrderCancelled,
    OrderDelivered,
    OrderOutForDelivery,
    OrderPickedUp,
    OrderRejectedByVendor,
)
from dispatch.order.order import Order


@dispatch.projection
class PartnerQueueView:
    request_id = Identifier(identifier=True, required=True)
    order_id = Identifier(required=True)
    partner_id = Identifier(required=True)
    vendor_id = Identifier()
    customer_id = Identifier()
    status = String(required=True)
    status_label = String()
    attempt = Integer(default=1)
    distance_km = Float()
    hidden = Boolean(default=False)
    revision = Integer(default=0)
    assigned_at = DateTime()
    updated_at = DateTime()


def _update_status(request_id, status, revision, occurred_at):
    if not request_id or not status:
        return
    repo = current_domain.repository_for(PartnerQueueView)
    try:
        view = repo.get(str(request_id))
    except ObjectNotFoundError:
        return
    if revision <= (view.revision or 0):
        return
    view.status = status
    view.status_label = status_label(status)
    view.revision = revision
    view.updated_at = occurred_at
    repo.add(view)


@dispatch.projector(projector_for=PartnerQueueView, aggregates=[Order])
class PartnerQueueProjector:
    @on(DeliveryPartnerAssigned)
    def on_partner_assigned(self, event):
        current_domain.repository_for(PartnerQueueView).add(
            PartnerQueueView(
                request_id=event.request_id,
                order_id=event.order_id,
                partner_id=event.partner_id,
                vendor_id=event.vendor_id,
                customer_id=event.customer_id,
                status=event.request_status,
                status_label=status_label(event.request_status),
                attempt=event.attempt,
                distance_km=event.distance_km,
                revision=event.revision,
                assigned_at=event.assigned_at,
                updated_at=event.assigned_at,
            )
        )

    @on(DeliveryRequestAccepted)
    def on_request_accepted(self, event):
        _update_status(event.request_id, event.request_status, event.revision, event.accepted_at)

    @on(DeliveryRequestRejected)
    def on_request_rejected(self, event):
        _update_status(event.request_id, event.request_status, event.revision, event.rejected_at)

    @on(OrderPickedUp)
    def on_picked_up(self, event):
        _update_status(event.request_id, event.request_status, event.revision, event.picked_up_at)

    @on(OrderOutForDelivery)
    def on_out_for_delivery(self, event):
        _update_status(event.request_id, event.request_status, event.revision, event.departed_at)

    @on(OrderDelivered)
    def on_delivered(self, event):
        _update_status(event.request_id, event.request_status, event.revision, event.delivered_at)

    @on(OrderCancelled)
    def on_cancelled(self, event):
        _update_status(event.request_id, event.request_status, event.revision, event.cancelled_at)

    @on(OrderRejectedByVendor)
    def on_order_rejected(self, event):
        _update_status(event.request_id, event.request_status, event.revision, event.rejected_at)

    @on(DeliveryRequestDismissed)
    def on_request_dismissed(self, event):
        repo = current_domain.repository_for(PartnerQueueView)
        try:
            view = repo.get(str(event.request_id))
        except ObjectNotFoundError:
            return
        view.hidden = True
        view.updated_at = event.dismissed_at
        repo.add(view)
