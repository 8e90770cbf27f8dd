"""Partner response audit trail.

Every accept or decline of a delivery request is appended to an audit
record. The record is written after the lifecycle change has committed; a
failed write is logged and never undoes the partner's response.
"""

from datetime import UTC, datetime
from enum import Enum

import structlog
from protean.fields import DateTime, Identifier, String
from protean.utils.globals import current_domain
from protean.utils.mixins import handle

from dispatch.domain import dispatch
from dispatch.order.events import DeliveryRequestAccepted, DeliveryRequestRejected

logger = structlog.get_logger(__name__)


class ResponseAction(Enum):
    ACCEPTED = "accepted"
    REJECTED = "rejected"


@dispatch.aggregate
class DeliveryPartnerResponse:
    request_id = Identifier(required=True)
    order_id = Identifier(required=True)
    partner_id = Identifier(required=True)
    action = String(required=True, max_length=20, choices=ResponseAction)
    responded_at = DateTime(default=lambda: datetime.now(UTC))


@dispatch.event_handler(part_of=DeliveryPartnerResponse, stream_category="dispatch::order")
class PartnerResponseRecorder:
    """Appends an audit record when a partner answers a delivery request."""

    @handle(DeliveryRequestAccepted)
    def on_request_accepted(self, event: DeliveryRequestAccepted) -> None:
        self._record(event, ResponseAction.ACCEPTED, event.accepted_at)

    @handle(DeliveryRequestRejected)
    def on_request_rejected(self, event: DeliveryRequestRejected) -> None:
        self._record(event, ResponseAction.REJECTED, event.rejected_at)

    def _record(self, event, action: ResponseAction, responded_at) -> None:
        try:
            current_domain.repository_for(DeliveryPartnerResponse).add(
                DeliveryPartnerResponse(
                    request_id=str(event.request_id),
                    order_id=str(event.order_id),
                    partner_id=str(event.partner_id),
                    action=action.value,
                    responded_at=responded_at,
                )
            )
        except Exception as exc:
            logger.error(
                "Failed to record partner response",
                order_id=str(event.order_id),
                request_id=str(event.request_id),
                action=action.value,
                error=str(exc),
            )
            return

        logger.info(
            "Partner response recorded",
            order_id=str(event.order_id),
            request_id=str(event.request_id),
            action=action.value,
        )


def responses_for(order_id: str) -> list[DeliveryPartnerResponse]:
    repo = current_domain.repository_for(DeliveryPartnerResponse)
    records = repo._dao.query.filter(order_id=str(order_id)).all().items
    return sorted(records, key=lambda r: r.responded_at)
