"""Delivery progression — pickup, departure and hand-over by the assigned partner."""

from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from dispatch.domain import dispatch
from dispatch.order.order import Order
from dispatch.shared.lookup import load


@dispatch.command(part_of="Order")
class MarkPickedUp:
    order_id = Identifier(required=True)
    request_id = Identifier(required=True)
    partner_id = Identifier(required=True)
    expected_status = String(max_length=50)


@dispatch.command(part_of="Order")
class MarkOutForDelivery:
    order_id = Identifier(required=True)
    request_id = Identifier(required=True)
    partner_id = Identifier(required=True)
    expected_status = String(max_length=50)


@dispatch.command(part_of="Order")
class MarkDelivered:
    order_id = Identifier(required=True)
    request_id = Identifier(required=True)
    partner_id = Identifier(required=True)
    expected_status = String(max_length=50)


@dispatch.command_handler(part_of=Order)
class DeliveryProgressHandler:
    @handle(MarkPickedUp)
    def mark_picked_up(self, command):
        order = load(Order, command.order_id)
        order.ensure_current_request(command.request_id, command.expected_status)
        order.mark_picked_up(command.partner_id)
        current_domain.repository_for(Order).add(order)

    @handle(MarkOutForDelivery)
    def mark_out_for_delivery(self, command):
        order = load(Order, command.order_id)
        order.ensure_current_request(command.request_id, command.expected_status)
        order.mark_out_for_delivery(command.partner_id)
        current_domain.repository_for(Order).add(order)

    @handle(MarkDelivered)
    def mark_delivered(self, command):
        order = load(Order, command.order_id)
        order.ensure_current_request(command.request_id, command.expected_status)
        order.mark_delivered(command.partner_id)
        current_domain.repository_for(Order).add(order)
