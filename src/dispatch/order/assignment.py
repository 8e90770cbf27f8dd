"""Delivery partner assignment — command, handler and the resolver call.

Assignment runs automatically after approval and after a partner declines,
and a vendor can retry it on demand. A second assignment on an order that
already has an active request is a conflict, never a duplicate request.
"""

import structlog
from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from dispatch.assignment import get_resolver
from dispatch.domain import dispatch
from dispatch.order.order import DeliveryRequest, Order
from dispatch.shared.lookup import load
from dispatch.vendor.vendor import Vendor

logger = structlog.get_logger(__name__)


@dispatch.command(part_of="Order")
class AssignDeliveryPartner:
    """Ask the resolver for the nearest partner and create a delivery request."""

    order_id = Identifier(required=True)
    expected_status = String(max_length=50)


def assign_nearest_partner(order: Order) -> DeliveryRequest:
    """Resolve the nearest partner for ``order`` and record the assignment.

    Raises ConflictError when the order is not assignable and
    DependencyUnavailable when the vendor has no location or nobody is free.
    The caller persists the order.
    """
    vendor = load(Vendor, str(order.vendor_id))
    origin = vendor.location

    candidate = None
    if origin is not None:
        candidate = get_resolver().find_nearest(origin, exclude=order.partner_ids_tried())

    request = order.assign_partner(
        candidate.partner_id if candidate else None,
        vendor_location_known=origin is not None,
        distance_km=candidate.distance_km if candidate else None,
    )
    logger.info(
        "Delivery partner assigned",
        order_id=str(order.id),
        partner_id=str(request.partner_id),
        attempt=request.attempt,
        distance_km=request.distance_km,
    )
    return request


@dispatch.command_handler(part_of=Order)
class AssignmentHandler:
    @handle(AssignDeliveryPartner)
    def assign_delivery_partner(self, command):
        order = load(Order, command.order_id)
        order.ensure_status(command.expected_status)
        request = assign_nearest_partner(order)
        current_domain.repository_for(Order).add(order)
        return str(request.partner_id)
