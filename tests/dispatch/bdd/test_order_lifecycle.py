"""BDD tests for the order lifecycle."""

from dispatch.engine.errors import LifecycleError
from pytest_bdd import parsers, scenarios, when

scenarios("features/order_lifecycle.feature")


@when(parsers.cfparse('vendor "{vendor_id}" approves the order'), target_fixture="order")
def approve(order, vendor_id):
    order.approve(vendor_id)
    return order


@when(parsers.cfparse('vendor "{vendor_id}" rejects the order because "{reason}"'), target_fixture="order")
def reject(order, vendor_id, reason):
    order.reject(vendor_id, reason)
    return order


@when(parsers.cfparse('partner "{partner_id}" is assigned to the order'), target_fixture="order")
def assign(order, partner_id, error):
    try:
        order.assign_partner(partner_id, vendor_location_known=True, distance_km=0.9)
    except LifecycleError as exc:
        error["exc"] = exc
    return order


@when("no partner can be found for the order", target_fixture="order")
def assign_nobody(order, error):
    try:
        order.assign_partner(None, vendor_location_known=True)
    except LifecycleError as exc:
        error["exc"] = exc
    return order


@when(parsers.cfparse('partner "{partner_id}" accepts the request'), target_fixture="order")
def accept(order, partner_id):
    order.accept_request(partner_id)
    return order


@when(parsers.cfparse('partner "{partner_id}" picks up the order'), target_fixture="order")
def pick_up(order, partner_id):
    order.mark_picked_up(partner_id)
    return order


@when(parsers.cfparse('partner "{partner_id}" leaves for delivery'), target_fixture="order")
def depart(order, partner_id):
    order.mark_out_for_delivery(partner_id)
    return order


@when(parsers.cfparse('partner "{partner_id}" delivers the order'), target_fixture="order")
def deliver(order, partner_id):
    order.mark_delivered(partner_id)
    return order
