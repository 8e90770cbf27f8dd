"""Integration tests for the Dispatch API endpoints via TestClient."""

import pytest
from dispatch.api.errors import register_error_handlers
from dispatch.api.routes import routers
from fastapi import FastAPI
from fastapi.testclient import TestClient
from protean.exceptions import ExpectedVersionError


@pytest.fixture()
def client():
    app = FastAPI()
    for router in routers:
        app.include_router(router)
    register_error_handlers(app)
    return TestClient(app)


def _as(role, actor_id=None):
    headers = {"X-Actor-Role": role}
    if actor_id:
        headers["X-Actor-Id"] = actor_id
    return headers


def _vendor(client, latitude=12.9716, longitude=77.5946):
    response = client.post(
        "/vendors",
        json={"business_name": "Fresh Basket", "latitude": latitude, "longitude": longitude},
        headers=_as("vendor", "owner-1"),
    )
    assert response.status_code == 201
    return response.json()["vendor_id"]


def _partner(client, latitude=12.9800, longitude=77.6020, name="Ravi Kumar"):
    response = client.post(
        "/partners",
        json={"full_name": name, "vehicle_type": "scooter"},
        headers=_as("delivery_partner", f"user-{name}"),
    )
    assert response.status_code == 201
    partner_id = response.json()["partner_id"]
    assert client.put(f"/partners/{partner_id}/verify", headers=_as("admin")).status_code == 200
    me = _as("delivery_partner", partner_id)
    assert (
        client.put(
            f"/partners/{partner_id}/location", json={"latitude": latitude, "longitude": longitude}, headers=me
        ).status_code
        == 200
    )
    assert client.put(f"/partners/{partner_id}/availability", json={"is_active": True}, headers=me).status_code == 200
    return partner_id


def _address(client, customer_id="cust-1"):
    response = client.post(
        "/addresses",
        json={
            "full_address": "42 MG Road, Indiranagar",
            "city": "Bengaluru",
            "pincode": "560038",
            "latitude": 12.9352,
            "longitude": 77.6245,
        },
        headers=_as("customer", customer_id),
    )
    assert response.status_code == 201
    return response.json()["address_id"]


def _place(client, vendor_id, customer_id="cust-1"):
    address_id = _address(client, customer_id)
    response = client.post(
        "/orders",
        json={
            "vendor_id": vendor_id,
            "address_id": address_id,
            "items": [{"product_id": "prod-1", "product_name": "Ragi Flour", "unit_price": 90.0, "quantity": 2}],
            "payment_method": "upi",
        },
        headers=_as("customer", customer_id),
    )
    assert response.status_code == 201
    return response.json()["order_id"]


def _order(client, order_id, headers=None):
    response = client.get(f"/orders/{order_id}", headers=headers or _as("admin"))
    assert response.status_code == 200
    return response.json()


class TestOrderLifecycleApi:
    def test_happy_path(self, client):
        vendor_id = _vendor(client)
        partner_id = _partner(client)
        order_id = _place(client, vendor_id)
        vendor = _as("vendor", vendor_id)
        partner = _as("delivery_partner", partner_id)

        order = _order(client, order_id, _as("customer", "cust-1"))
        assert order["delivery_status"] == "pending"
        assert order["status_label"] == "Pending"
        assert order["final_amount"] == 180.0

        response = client.put(f"/orders/{order_id}/approve", json={"expected_status": "pending"}, headers=vendor)
        assert response.status_code == 200

        order = _order(client, order_id, vendor)
        assert order["delivery_status"] == "assigned"
        assert order["dispatch_state"] == "awaiting_partner"
        request_id = order["current_request"]["request_id"]
        assert order["current_request"]["partner_id"] == partner_id

        base = f"/orders/{order_id}/requests/{request_id}"
        assert client.put(f"{base}/accept", json={"expected_status": "assigned"}, headers=partner).status_code == 200
        assert client.put(f"{base}/pickup", json={}, headers=partner).status_code == 200
        assert client.put(f"{base}/depart", json={}, headers=partner).status_code == 200

        response = client.post(
            f"/tracking/{order_id}/positions", json={"latitude": 12.95, "longitude": 77.61}, headers=partner
        )
        assert response.status_code == 201
        tracking = client.get(f"/tracking/{order_id}", headers=_as("customer", "cust-1")).json()
        assert tracking["is_live"] is True
        assert tracking["latitude"] == 12.95

        assert client.put(f"{base}/deliver", json={}, headers=partner).status_code == 200
        order = _order(client, order_id)
        assert order["delivery_status"] == "delivered"
        assert order["current_request"]["status"] == "delivered"
        assert order["timeline_step"] == 5

    def test_delivery_request_endpoint(self, client):
        vendor_id = _vendor(client)
        partner_id = _partner(client)
        order_id = _place(client, vendor_id)
        client.put(f"/orders/{order_id}/approve", json={}, headers=_as("vendor", vendor_id))

        response = client.get(f"/orders/{order_id}/delivery-request", headers=_as("delivery_partner", partner_id))
        assert response.status_code == 200
        assert response.json()["status"] == "assigned"
        assert response.json()["attempt"] == 1

    def test_pay(self, client):
        vendor_id = _vendor(client)
        order_id = _place(client, vendor_id)
        response = client.put(f"/orders/{order_id}/pay", json={"payment_method": "card"}, headers=_as("customer", "cust-1"))
        assert response.status_code == 200
        assert _order(client, order_id)["payment_status"] == "paid"


class TestErrorMapping:
    def test_stale_status_is_409(self, client):
        vendor_id = _vendor(client)
        order_id = _place(client, vendor_id)
        vendor = _as("vendor", vendor_id)
        client.put(f"/orders/{order_id}/approve", json={}, headers=vendor)

        response = client.put(f"/orders/{order_id}/approve", json={"expected_status": "pending"}, headers=vendor)

        assert response.status_code == 409
        assert response.json() == {"error": "conflict", "reason": "order status changed from pending to approved"}

    def test_other_partner_is_403(self, client):
        vendor_id = _vendor(client)
        _partner(client)
        intruder = _partner(client, latitude=13.05, longitude=77.65, name="Intruder")
        order_id = _place(client, vendor_id)
        client.put(f"/orders/{order_id}/approve", json={}, headers=_as("vendor", vendor_id))
        request_id = _order(client, order_id)["current_request"]["request_id"]

        response = client.put(
            f"/orders/{order_id}/requests/{request_id}/accept",
            json={},
            headers=_as("delivery_partner", intruder),
        )

        assert response.status_code == 403
        assert response.json()["error"] == "authorization"

    def test_unknown_order_is_404(self, client):
        response = client.get("/orders/ord-missing", headers=_as("admin"))
        assert response.status_code == 404
        assert response.json() == {"error": "not_found", "reason": "order ord-missing not found"}

    def test_no_partner_is_503(self, client):
        vendor_id = _vendor(client)
        order_id = _place(client, vendor_id)
        vendor = _as("vendor", vendor_id)
        client.put(f"/orders/{order_id}/approve", json={}, headers=vendor)

        response = client.put(f"/orders/{order_id}/assign", json={"expected_status": "approved"}, headers=vendor)

        assert response.status_code == 503
        assert response.json() == {"error": "dependency_unavailable", "reason": "no delivery partner available"}

    def test_customer_cannot_approve(self, client):
        vendor_id = _vendor(client)
        order_id = _place(client, vendor_id)
        response = client.put(f"/orders/{order_id}/approve", json={}, headers=_as("customer", "cust-1"))
        assert response.status_code == 403

    def test_system_role_is_refused(self, client):
        response = client.get("/orders", headers=_as("system", "resolver"))
        assert response.status_code == 403
        assert response.json()["reason"] == "system role is internal"

    def test_actor_id_required(self, client):
        response = client.get("/orders", headers=_as("customer"))
        assert response.status_code == 403

    def test_domain_validation_is_400(self, client):
        vendor_id = _vendor(client)
        address_id = _address(client)
        response = client.post(
            "/orders",
            json={
                "vendor_id": vendor_id,
                "address_id": address_id,
                "items": [{"product_id": "p", "product_name": "Salt", "unit_price": 20.0, "quantity": 1}],
                "discount": 50.0,
            },
            headers=_as("customer", "cust-1"),
        )
        assert response.status_code == 400
        assert response.json()["error"] == "validation"
        assert "discount" in response.json()["messages"]

    def test_customer_cannot_view_other_customers_order(self, client):
        vendor_id = _vendor(client)
        order_id = _place(client, vendor_id)
        response = client.get(f"/orders/{order_id}", headers=_as("customer", "cust-2"))
        assert response.status_code == 403


class TestOrderLists:
    def test_customer_list_hides_archived(self, client):
        vendor_id = _vendor(client)
        kept = _place(client, vendor_id)
        archived = _place(client, vendor_id)
        customer = _as("customer", "cust-1")
        client.put(f"/orders/{archived}/cancel", json={"reason": "Duplicate"}, headers=customer)
        assert client.put(f"/orders/{archived}/archive", headers=customer).status_code == 200

        listed = client.get("/orders", headers=customer).json()
        assert [o["order_id"] for o in listed] == [kept]

        listed = client.get("/orders", params={"include_archived": True}, headers=customer).json()
        assert {o["order_id"] for o in listed} == {kept, archived}

    def test_vendor_list(self, client):
        vendor_id = _vendor(client)
        other_vendor = _vendor(client, latitude=12.90, longitude=77.50)
        mine = _place(client, vendor_id)
        _place(client, other_vendor, customer_id="cust-2")

        listed = client.get("/orders", headers=_as("vendor", vendor_id)).json()
        assert [o["order_id"] for o in listed] == [mine]
        assert listed[0]["dispatch_state"] == "awaiting_vendor"

    def test_partner_queue(self, client):
        vendor_id = _vendor(client)
        partner_id = _partner(client)
        order_id = _place(client, vendor_id)
        client.put(f"/orders/{order_id}/approve", json={}, headers=_as("vendor", vendor_id))
        partner = _as("delivery_partner", partner_id)

        queue = client.get(f"/partners/{partner_id}/queue", headers=partner).json()
        assert len(queue) == 1
        assert queue[0]["order_id"] == order_id
        assert queue[0]["status"] == "assigned"

        request_id = queue[0]["request_id"]
        client.put(f"/orders/{order_id}/requests/{request_id}/decline", json={}, headers=partner)
        assert client.put(f"/orders/{order_id}/requests/{request_id}/dismiss", headers=partner).status_code == 200

        assert client.get(f"/partners/{partner_id}/queue", headers=partner).json() == []

    def test_partner_cannot_read_another_queue(self, client):
        partner_id = _partner(client)
        response = client.get(f"/partners/{partner_id}/queue", headers=_as("delivery_partner", "someone-else"))
        assert response.status_code == 403


class TestAddressApi:
    def test_list_and_set_default(self, client):
        first = _address(client)
        second = _address(client)
        customer = _as("customer", "cust-1")

        assert client.put(f"/addresses/{second}/default", headers=customer).status_code == 200

        addresses = {a["address_id"]: a for a in client.get("/addresses", headers=customer).json()}
        assert addresses[second]["is_default"] is True
        assert addresses[first]["is_default"] is False

    def test_update(self, client):
        address_id = _address(client)
        customer = _as("customer", "cust-1")
        response = client.put(f"/addresses/{address_id}", json={"label": "Parents"}, headers=customer)
        assert response.status_code == 200
        addresses = client.get("/addresses", headers=customer).json()
        assert addresses[0]["label"] == "Parents"


class TestVendorActivationApi:
    def test_admin_closes_and_reopens_vendor(self, client):
        vendor_id = _vendor(client)
        address_id = _address(client)
        order = {
            "vendor_id": vendor_id,
            "address_id": address_id,
            "items": [{"product_id": "prod-1", "product_name": "Ragi Flour", "unit_price": 90.0, "quantity": 1}],
        }

        response = client.put(f"/vendors/{vendor_id}/active", json={"is_active": False}, headers=_as("admin"))
        assert response.status_code == 200
        assert response.json() == {"status": "inactive"}
        response = client.post("/orders", json=order, headers=_as("customer", "cust-1"))
        assert response.status_code == 400

        response = client.put(f"/vendors/{vendor_id}/active", json={"is_active": True}, headers=_as("admin"))
        assert response.json() == {"status": "active"}
        assert client.post("/orders", json=order, headers=_as("customer", "cust-1")).status_code == 201

    def test_vendor_cannot_change_own_activation(self, client):
        vendor_id = _vendor(client)
        response = client.put(
            f"/vendors/{vendor_id}/active", json={"is_active": False}, headers=_as("vendor", vendor_id)
        )
        assert response.status_code == 403

    def test_unknown_vendor_is_404(self, client):
        response = client.put("/vendors/ven-missing/active", json={"is_active": False}, headers=_as("admin"))
        assert response.status_code == 404


class TestCallerIdentity:
    def test_partner_acts_with_registration_user_id(self, client):
        vendor_id = _vendor(client)
        me = _as("delivery_partner", "user-asha")
        response = client.post("/partners", json={"full_name": "Asha Rao", "vehicle_type": "bike"}, headers=me)
        partner_id = response.json()["partner_id"]
        client.put(f"/partners/{partner_id}/verify", headers=_as("admin"))

        location = {"latitude": 12.9800, "longitude": 77.6020}
        assert client.put(f"/partners/{partner_id}/location", json=location, headers=me).status_code == 200
        assert client.put(f"/partners/{partner_id}/availability", json={"is_active": True}, headers=me).status_code == 200

        order_id = _place(client, vendor_id)
        client.put(f"/orders/{order_id}/approve", json={}, headers=_as("vendor", vendor_id))
        order = _order(client, order_id, me)
        assert order["current_request"]["partner_id"] == partner_id

        request_id = order["current_request"]["request_id"]
        response = client.put(f"/orders/{order_id}/requests/{request_id}/accept", json={}, headers=me)
        assert response.status_code == 200

    def test_vendor_acts_with_registration_owner_id(self, client):
        _partner(client)
        owner = _as("vendor", "owner-zen")
        response = client.post(
            "/vendors",
            json={"business_name": "Zen Greens", "latitude": 12.9716, "longitude": 77.5946},
            headers=owner,
        )
        vendor_id = response.json()["vendor_id"]
        order_id = _place(client, vendor_id)

        response = client.put(f"/orders/{order_id}/approve", json={"expected_status": "pending"}, headers=owner)

        assert response.status_code == 200
        assert _order(client, order_id, owner)["vendor_id"] == vendor_id

    def test_ambiguous_owner_id_is_not_resolved(self, client):
        first = _vendor(client)
        _vendor(client)
        order_id = _place(client, first)

        response = client.put(f"/orders/{order_id}/approve", json={}, headers=_as("vendor", "owner-1"))

        assert response.status_code == 403


class TestVersionConflictMapping:
    def test_expected_version_error_is_409(self):
        app = FastAPI()

        @app.put("/orders/{order_id}/approve")
        async def racing_write(order_id: str):
            raise ExpectedVersionError(f"Wrong expected version: 2 (Aggregate: Order({order_id}), Version: 3)")

        register_error_handlers(app)
        response = TestClient(app).put("/orders/ord-1/approve")

        assert response.status_code == 409
        assert response.json() == {"error": "conflict", "reason": "changed by another request, reload and retry"}
