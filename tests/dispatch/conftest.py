import json
import os

import pytest

from dispatch.address.management import AddAddress
from dispatch.order.checkout import PlaceOrder
from dispatch.order.order import Order
from dispatch.order.partner_response import AcceptDeliveryRequest
from dispatch.order.progress import MarkOutForDelivery, MarkPickedUp
from dispatch.order.vendor_review import ApproveOrder
from dispatch.partner.registration import (
    RegisterDeliveryPartner,
    SetPartnerAvailability,
    UpdatePartnerLocation,
    VerifyDeliveryPartner,
)
from dispatch.vendor.registration import RegisterVendor

# Bengaluru: vendor in the centre, customer a few kilometres south-east
VENDOR_POINT = (12.9716, 77.5946)
CUSTOMER_POINT = (12.9352, 77.6245)


@pytest.fixture(scope="session")
def _dispatch_domain(request):
    """Initialize the dispatch domain once per session."""
    os.environ["PROTEAN_ENV"] = request.config.option.env

    from dispatch.domain import dispatch

    dispatch.init()
    return dispatch


@pytest.fixture(scope="session", autouse=True)
def setup_db(_dispatch_domain):
    from dispatch.utils.db import drop_db, setup_db

    setup_db(_dispatch_domain)

    yield

    drop_db(_dispatch_domain)


@pytest.fixture(autouse=True)
def run_around_tests(_dispatch_domain):
    """Push domain context before each test, cleanup after."""
    from dispatch.assignment import reset_resolver
    from dispatch.sync.feed import reset_change_feed

    reset_resolver()
    reset_change_feed()
    ctx = _dispatch_domain.domain_context()
    ctx.push()

    yield

    from protean import current_domain

    for _, provider in current_domain.providers.items():
        provider._data_reset()

    for _, broker in current_domain.brokers.items():
        broker._data_reset()

    current_domain.event_store.store._data_reset()
    ctx.pop()
    reset_resolver()
    reset_change_feed()


@pytest.fixture()
def fake_resolver(monkeypatch):
    """Swap the nearest-partner resolver for the deterministic fake."""
    from dispatch.assignment import get_resolver, reset_resolver

    monkeypatch.setenv("ASSIGNMENT_RESOLVER", "fake")
    reset_resolver()
    return get_resolver()


class DispatchWorld:
    """Builds vendors, partners, addresses and orders through domain commands."""

    def __init__(self, domain):
        self.domain = domain

    def process(self, command):
        return self.domain.process(command, asynchronous=False)

    def vendor(self, point=VENDOR_POINT, business_name="Fresh Basket"):
        latitude, longitude = point if point else (None, None)
        return self.process(
            RegisterVendor(
                owner_id="owner-1",
                business_name=business_name,
                latitude=latitude,
                longitude=longitude,
            )
        )

    def partner(self, point, full_name="Ravi Kumar", verified=True, online=True):
        partner_id = self.process(
            RegisterDeliveryPartner(user_id=f"user-{full_name}", full_name=full_name, vehicle_type="scooter")
        )
        if verified:
            self.process(VerifyDeliveryPartner(partner_id=partner_id))
        if point is not None:
            self.process(UpdatePartnerLocation(partner_id=partner_id, latitude=point[0], longitude=point[1]))
        if verified and online:
            self.process(SetPartnerAvailability(partner_id=partner_id, is_active=True))
        return partner_id

    def address(self, customer_id="cust-1", point=CUSTOMER_POINT):
        return self.process(
            AddAddress(
                customer_id=customer_id,
                full_address="42 MG Road, Indiranagar",
                city="Bengaluru",
                state="Karnataka",
                pincode="560038",
                phone="+91-98450-00000",
                latitude=point[0],
                longitude=point[1],
            )
        )

    def place(self, vendor_id, customer_id="cust-1", address_id=None, items=None, **kwargs):
        address_id = address_id or self.address(customer_id)
        items = items or [
            {"product_id": "prod-1", "product_name": "Alphonso Mangoes", "unit_price": 240.0, "quantity": 2},
            {"product_id": "prod-2", "product_name": "Filter Coffee", "unit_price": 120.0, "quantity": 1},
        ]
        return self.process(
            PlaceOrder(
                customer_id=customer_id,
                vendor_id=vendor_id,
                address_id=address_id,
                items=json.dumps(items),
                **kwargs,
            )
        )

    def order(self, order_id) -> Order:
        return self.domain.repository_for(Order).get(order_id)

    def approve(self, order_id, vendor_id):
        self.process(ApproveOrder(order_id=order_id, vendor_id=vendor_id))
        return self.order(order_id)

    def accept(self, order_id, partner_id):
        request = self.order(order_id).current_request
        self.process(AcceptDeliveryRequest(order_id=order_id, request_id=str(request.id), partner_id=partner_id))
        return str(request.id)

    def walk_to_out_for_delivery(self, order_id, vendor_id, partner_id):
        """Approve (auto-assigns), accept, pick up and depart."""
        self.approve(order_id, vendor_id)
        request_id = self.accept(order_id, partner_id)
        self.process(MarkPickedUp(order_id=order_id, request_id=request_id, partner_id=partner_id))
        self.process(MarkOutForDelivery(order_id=order_id, request_id=request_id, partner_id=partner_id))
        return request_id


@pytest.fixture()
def world(_dispatch_domain):
    return DispatchWorld(_dispatch_domain)


@pytest.fixture()
def vendor_id(world):
    return world.vendor()


@pytest.fixture()
def partner_id(world):
    # About 1.2 km from the vendor
    return world.partner((12.9800, 77.6020), full_name="Ravi Kumar")
