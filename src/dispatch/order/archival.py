"""Archival — hide finished orders and finished delivery requests from dashboards.

Archiving never changes a status; it only removes the record from its
owner's default list.
"""

from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from dispatch.domain import dispatch
from dispatch.engine.statuses import ActorRole
from dispatch.engine.transitions import Actor
from dispatch.order.order import Order
from dispatch.shared.lookup import load


@dispatch.command(part_of="Order")
class ArchiveOrder:
    order_id = Identifier(required=True)
    actor_role = String(required=True, max_length=50, choices=ActorRole)
    actor_id = Identifier()


@dispatch.command(part_of="Order")
class DismissDeliveryRequest:
    order_id = Identifier(required=True)
    request_id = Identifier(required=True)
    partner_id = Identifier(required=True)


@dispatch.command_handler(part_of=Order)
class ArchivalHandler:
    @handle(ArchiveOrder)
    def archive_order(self, command):
        order = load(Order, command.order_id)
        order.archive(Actor(ActorRole(command.actor_role), command.actor_id))
        current_domain.repository_for(Order).add(order)

    @handle(DismissDeliveryRequest)
    def dismiss_request(self, command):
        order = load(Order, command.order_id)
        order.dismiss_request(command.partner_id, command.request_id)
        current_domain.repository_for(Order).add(order)
