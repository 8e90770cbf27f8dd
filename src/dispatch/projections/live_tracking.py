"""Live tracking — the latest known partner position per order.

Positions replace each other by ``recorded_at``; a late-arriving older fix
never moves the marker backwards. Tracking starts when the order goes out
for delivery and stops when it is delivered or cancelled.
"""

from protean.core.projector import on
from protean.exceptions import ObjectNotFoundError
from protean.fields import Boolean, DateTime, Float, Identifier
from protean.utils.globals import current_domain

from dispatch.domain import dispatch
from dispatch.order.events import OrderCancelled, OrderDelivered, OrderOutForDelivery
from dispatch.order.order import Order
from dispatch.tracking.position import PartnerPosition, PositionRecorded


@dispatch.projection
class LiveTrackingView:
    order_id = Identifier(identifier=True, required=True)
    partner_id = Identifier()
    latitude = Float()
    longitude = Float()
    recorded_at = DateTime()
    is_live = Boolean(default=False)
    started_at = DateTime()
    stopped_at = DateTime()


def _load(order_id):
    try:
        return current_domain.repository_for(LiveTrackingView).get(str(order_id))
    except ObjectNotFoundError:
        return None


def _stop(order_id, stopped_at):
    view = _load(order_id)
    if view is None or not view.is_live:
        return
    view.is_live = False
    view.stopped_at = stopped_at
    current_domain.repository_for(LiveTrackingView).add(view)


@dispatch.projector(projector_for=LiveTrackingView, aggregates=[Order, PartnerPosition])
class LiveTrackingProjector:
    @on(OrderOutForDelivery)
    def on_out_for_delivery(self, event):
        view = _load(event.order_id) or LiveTrackingView(order_id=event.order_id)
        view.partner_id = event.partner_id
        view.is_live = True
        view.started_at = event.departed_at
        current_domain.repository_for(LiveTrackingView).add(view)

    @on(PositionRecorded)
    def on_position_recorded(self, event):
        view = _load(event.order_id) or LiveTrackingView(order_id=event.order_id, is_live=True)
        if view.recorded_at is not None and event.recorded_at <= view.recorded_at:
            return
        view.partner_id = event.partner_id
        view.latitude = event.latitude
        view.longitude = event.longitude
        view.recorded_at = event.recorded_at
        current_domain.repository_for(LiveTrackingView).add(view)

    @on(OrderDelivered)
    def on_delivered(self, event):
        _stop(event.order_id, event.delivered_at)

    @on(OrderCancelled)
    def on_cancelled(self, event):
        _stop(event.order_id, event.cancelled_at)
