"""Delivery partner response — accept or decline an assigned request.

Both commands name the request the partner was shown. If the order has since
moved on to another request, or the request is no longer in the status the
partner saw, the command is rejected as a conflict.
"""

from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from dispatch.domain import dispatch
from dispatch.order.order import Order
from dispatch.shared.lookup import load


@dispatch.command(part_of="Order")
class AcceptDeliveryRequest:
    order_id = Identifier(required=True)
    request_id = Identifier(required=True)
    partner_id = Identifier(required=True)
    expected_status = String(max_length=50)


@dispatch.command(part_of="Order")
class DeclineDeliveryRequest:
    order_id = Identifier(required=True)
    request_id = Identifier(required=True)
    partner_id = Identifier(required=True)
    expected_status = String(max_length=50)


@dispatch.command_handler(part_of=Order)
class PartnerResponseHandler:
    @handle(AcceptDeliveryRequest)
    def accept_request(self, command):
        order = load(Order, command.order_id)
        order.ensure_current_request(command.request_id, command.expected_status)
        order.accept_request(command.partner_id)
        current_domain.repository_for(Order).add(order)

    @handle(DeclineDeliveryRequest)
    def decline_request(self, command):
        order = load(Order, command.order_id)
        order.ensure_current_request(command.request_id, command.expected_status)
        order.decline_request(command.partner_id)
        current_domain.repository_for(Order).add(order)
