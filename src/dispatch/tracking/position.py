"""Tracking recorder — GPS fixes reported by a partner while delivering.

Positions are accepted only while the order's current delivery request is
out for delivery, and only from the partner holding that request. Each fix
is appended; readers take the newest one per order.
"""

from datetime import UTC, datetime

import structlog
from protean import handle
from protean.fields import DateTime, Float, Identifier
from protean.utils.globals import current_domain

from dispatch.domain import dispatch
from dispatch.engine.errors import AuthorizationError, ConflictError
from dispatch.engine.statuses import RequestStatus
from dispatch.order.order import Order
from dispatch.shared.coordinates import Coordinates
from dispatch.shared.lookup import load

logger = structlog.get_logger(__name__)


@dispatch.event(part_of="PartnerPosition")
class PositionRecorded:
    __version__ = 1

    position_id = Identifier(required=True)
    order_id = Identifier(required=True)
    partner_id = Identifier(required=True)
    latitude = Float(required=True)
    longitude = Float(required=True)
    recorded_at = DateTime(required=True)


@dispatch.aggregate
class PartnerPosition:
    order_id = Identifier(required=True)
    partner_id = Identifier(required=True)
    latitude = Float(required=True, min_value=-90.0, max_value=90.0)
    longitude = Float(required=True, min_value=-180.0, max_value=180.0)
    recorded_at = DateTime(required=True)

    @classmethod
    def record(cls, order_id: str, partner_id: str, point: Coordinates, recorded_at: datetime | None = None):
        recorded_at = recorded_at or datetime.now(UTC)
        if recorded_at.tzinfo is None:
            recorded_at = recorded_at.replace(tzinfo=UTC)
        position = cls(
            order_id=order_id,
            partner_id=partner_id,
            latitude=point.latitude,
            longitude=point.longitude,
            recorded_at=recorded_at,
        )
        position.raise_(
            PositionRecorded(
                position_id=str(position.id),
                order_id=order_id,
                partner_id=partner_id,
                latitude=point.latitude,
                longitude=point.longitude,
                recorded_at=recorded_at,
            )
        )
        return position


@dispatch.command(part_of="PartnerPosition")
class RecordPosition:
    order_id = Identifier(required=True)
    partner_id = Identifier(required=True)
    latitude = Float(required=True)
    longitude = Float(required=True)
    recorded_at = DateTime()


def ensure_trackable(order: Order, partner_id: str) -> None:
    request = order.current_request
    if request is None or request.status != RequestStatus.OUT_FOR_DELIVERY.value:
        raise ConflictError("order is not out for delivery")
    if str(request.partner_id) != str(partner_id):
        raise AuthorizationError("order already assigned to another partner")


@dispatch.command_handler(part_of=PartnerPosition)
class TrackingHandler:
    @handle(RecordPosition)
    def record_position(self, command):
        order = load(Order, command.order_id)
        ensure_trackable(order, command.partner_id)

        position = PartnerPosition.record(
            order_id=command.order_id,
            partner_id=command.partner_id,
            point=Coordinates(latitude=command.latitude, longitude=command.longitude),
            recorded_at=command.recorded_at,
        )
        current_domain.repository_for(PartnerPosition).add(position)
        logger.debug("Partner position recorded", order_id=command.order_id, partner_id=command.partner_id)
        return str(position.id)
