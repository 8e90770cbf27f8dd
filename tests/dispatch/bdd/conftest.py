"""Shared BDD fixtures and step definitions for the dispatch lifecycle."""

import pytest
from dispatch.engine.errors import LifecycleError
from dispatch.order.events import (
    DeliveryPartnerAssigned,
    DeliveryRequestAccepted,
    DeliveryRequestRejected,
    OrderApproved,
    OrderArchived,
    OrderCancelled,
    OrderDelivered,
    OrderOutForDelivery,
    OrderPickedUp,
    OrderRejectedByVendor,
)
from dispatch.order.order import Order
from pytest_bdd import given, parsers, then

_ORDER_EVENT_CLASSES = {
    "OrderApproved": OrderApproved,
    "OrderRejectedByVendor": OrderRejectedByVendor,
    "DeliveryPartnerAssigned": DeliveryPartnerAssigned,
    "DeliveryRequestAccepted": DeliveryRequestAccepted,
    "DeliveryRequestRejected": DeliveryRequestRejected,
    "OrderPickedUp": OrderPickedUp,
    "OrderOutForDelivery": OrderOutForDelivery,
    "OrderDelivered": OrderDelivered,
    "OrderCancelled": OrderCancelled,
    "OrderArchived": OrderArchived,
}

_DEFAULT_ITEMS = [
    {"product_id": "prod-ragi", "product_name": "Ragi Flour", "unit_price": 90.0, "quantity": 2},
    {"product_id": "prod-ghee", "product_name": "Desi Ghee", "unit_price": 450.0, "quantity": 1},
]


def _placed_order():
    return Order.place(customer_id="cust-1", vendor_id="vend-1", items_data=_DEFAULT_ITEMS)


@pytest.fixture()
def error():
    """Container for the lifecycle error a step ran into."""
    return {"exc": None}


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given("a pending order", target_fixture="order")
def pending_order():
    order = _placed_order()
    order._events.clear()
    return order


@given("an approved order", target_fixture="order")
def approved_order():
    order = _placed_order()
    order.approve("vend-1")
    order._events.clear()
    return order


@given(parsers.cfparse('an order assigned to partner "{partner_id}"'), target_fixture="order")
def assigned_order(partner_id):
    order = _placed_order()
    order.approve("vend-1")
    order.assign_partner(partner_id, vendor_location_known=True, distance_km=1.2)
    order._events.clear()
    return order


@given(parsers.cfparse('an order picked up by partner "{partner_id}"'), target_fixture="order")
def picked_up_order(partner_id):
    order = _placed_order()
    order.approve("vend-1")
    order.assign_partner(partner_id, vendor_location_known=True, distance_km=1.2)
    order.accept_request(partner_id)
    order.mark_picked_up(partner_id)
    order._events.clear()
    return order


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the order status is "{status}"'))
def order_status_is(order, status):
    assert order.delivery_status == status


@then(parsers.cfparse('the delivery request status is "{status}"'))
def request_status_is(order, status):
    assert order.current_request is not None
    assert order.current_request.status == status


@then(parsers.cfparse('the dispatch state is "{state}"'))
def dispatch_state_is(order, state):
    assert order.dispatch_state.value == state


@then("the order has no delivery request")
def order_has_no_request(order):
    assert not order.delivery_requests


@then(parsers.cfparse("the order has {count:d} delivery request"))
@then(parsers.cfparse("the order has {count:d} delivery requests"))
def order_has_n_requests(order, count):
    assert len(order.delivery_requests) == count


@then(parsers.cfparse('the current request belongs to partner "{partner_id}"'))
def current_request_belongs_to(order, partner_id):
    assert str(order.current_request.partner_id) == partner_id


@then(parsers.cfparse('the action fails because "{reason}"'))
def action_fails(error, reason):
    assert error["exc"] is not None, "Expected a lifecycle error but none was raised"
    assert isinstance(error["exc"], LifecycleError)
    assert error["exc"].reason == reason


@then(parsers.cfparse("a {event_type} event is raised"))
def order_event_raised(order, event_type):
    event_cls = _ORDER_EVENT_CLASSES[event_type]
    assert any(
        isinstance(e, event_cls) for e in order._events
    ), f"No {event_type} event found. Events: {[type(e).__name__ for e in order._events]}"
