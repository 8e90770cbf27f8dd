"""Vendor review — approve or reject a pending order."""

from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from dispatch.domain import dispatch
from dispatch.order.order import Order
from dispatch.shared.lookup import load


@dispatch.command(part_of="Order")
class ApproveOrder:
    order_id = Identifier(required=True)
    vendor_id = Identifier(required=True)
    expected_status = String(max_length=50)


@dispatch.command(part_of="Order")
class RejectOrder:
    order_id = Identifier(required=True)
    vendor_id = Identifier(required=True)
    reason = String(max_length=500)
    expected_status = String(max_length=50)


@dispatch.command_handler(part_of=Order)
class VendorReviewHandler:
    @handle(ApproveOrder)
    def approve_order(self, command):
        order = load(Order, command.order_id)
        order.ensure_status(command.expected_status)
        order.approve(command.vendor_id)
        current_domain.repository_for(Order).add(order)

    @handle(RejectOrder)
    def reject_order(self, command):
        order = load(Order, command.order_id)
        order.ensure_status(command.expected_status)
        order.reject(command.vendor_id, command.reason)
        current_domain.repository_for(Order).add(order)
