"""Order cancellation — by the owning customer before pickup, or by an admin."""

from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from dispatch.domain import dispatch
from dispatch.engine.statuses import ActorRole
from dispatch.engine.transitions import Actor
from dispatch.order.order import Order
from dispatch.shared.lookup import load


@dispatch.command(part_of="Order")
class CancelOrder:
    order_id = Identifier(required=True)
    actor_role = String(required=True, max_length=50, choices=ActorRole)
    actor_id = Identifier()
    reason = String(max_length=500)
    expected_status = String(max_length=50)


@dispatch.command_handler(part_of=Order)
class CancellationHandler:
    @handle(CancelOrder)
    def cancel_order(self, command):
        order = load(Order, command.order_id)
        order.ensure_status(command.expected_status)
        order.cancel(Actor(ActorRole(command.actor_role), command.actor_id), command.reason)
        current_domain.repository_for(Order).add(order)
