"""Automatic assignment — reacts to approvals and partner declines.

When no partner can be found the order simply stays approved; the vendor
dashboard shows it as waiting for a partner and the vendor may retry.
"""

import structlog
from protean.utils.globals import current_domain
from protean.utils.mixins import handle

from dispatch.domain import dispatch
from dispatch.engine.errors import ConflictError, DependencyUnavailable, NotFoundError
from dispatch.order.assignment import assign_nearest_partner
from dispatch.order.events import DeliveryRequestRejected, OrderApproved
from dispatch.order.order import Order
from dispatch.shared.lookup import load

logger = structlog.get_logger(__name__)


@dispatch.event_handler(part_of=Order, stream_category="dispatch::order")
class AutoAssignmentHandler:
    """Tries to hand approved orders to the nearest delivery partner."""

    @handle(OrderApproved)
    def on_order_approved(self, event: OrderApproved) -> None:
        self._try_assign(str(event.order_id), trigger="approved")

    @handle(DeliveryRequestRejected)
    def on_request_rejected(self, event: DeliveryRequestRejected) -> None:
        self._try_assign(str(event.order_id), trigger="partner_declined")

    def _try_assign(self, order_id: str, trigger: str) -> None:
        repo = current_domain.repository_for(Order)
        try:
            order = load(Order, order_id)
            assign_nearest_partner(order)
        except DependencyUnavailable as exc:
            logger.warning(
                "Order left waiting for a delivery partner",
                order_id=order_id,
                trigger=trigger,
                reason=exc.reason,
            )
            return
        except (ConflictError, NotFoundError) as exc:
            logger.info(
                "Automatic assignment skipped",
                order_id=order_id,
                trigger=trigger,
                reason=exc.reason,
            )
            return

        repo.add(order)
