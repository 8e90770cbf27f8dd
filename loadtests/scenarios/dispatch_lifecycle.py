"""Dispatch load test scenarios.

Two stateful SequentialTaskSet journeys: the full delivery of one order
from checkout to doorstep, and an order the customer cancels after a
partner has been assigned.
"""

import random

from locust import HttpUser, SequentialTaskSet, between, task

from loadtests.data_generators import (
    address_data,
    location_data,
    order_data,
    partner_data,
    unique_customer_id,
    vendor_data,
)
from loadtests.helpers.response import extract_error_detail
from loadtests.helpers.state import OrderJourneyState


def _as(role: str, actor_id: str | None = None) -> dict:
    headers = {"X-Actor-Role": role}
    if actor_id:
        headers["X-Actor-Id"] = actor_id
    return headers


class _DispatchJourney(SequentialTaskSet):
    """Shared setup: a vendor, an online partner, a customer address and a pending order."""

    def on_start(self):
        self.state = OrderJourneyState(customer_id=unique_customer_id())

    def _fail(self, resp, action):
        resp.failure(f"{action} failed: {resp.status_code} - {extract_error_detail(resp)}")
        self.interrupt()

    def register_vendor(self):
        with self.client.post(
            "/vendors",
            json=vendor_data(),
            headers=_as("vendor", f"owner-{self.state.customer_id}"),
            catch_response=True,
            name="POST /vendors",
        ) as resp:
            if resp.status_code == 201:
                self.state.vendor_id = resp.json()["vendor_id"]
            else:
                self._fail(resp, "Register vendor")

    def bring_partner_online(self):
        with self.client.post(
            "/partners",
            json=partner_data(),
            headers=_as("delivery_partner", f"user-{self.state.customer_id}"),
            catch_response=True,
            name="POST /partners",
        ) as resp:
            if resp.status_code != 201:
                self._fail(resp, "Register partner")
                return
            self.state.partner_id = resp.json()["partner_id"]

        partner_id = self.state.partner_id
        me = _as("delivery_partner", partner_id)
        for method, path, name, payload, headers in (
            ("put", f"/partners/{partner_id}/verify", "PUT /partners/{id}/verify", {}, _as("admin")),
            ("put", f"/partners/{partner_id}/location", "PUT /partners/{id}/location", location_data(), me),
            ("put", f"/partners/{partner_id}/availability", "PUT /partners/{id}/availability", {"is_active": True}, me),
        ):
            with self.client.request(
                method, path, json=payload, headers=headers, catch_response=True, name=name
            ) as resp:
                if resp.status_code != 200:
                    self._fail(resp, name)

    def save_address(self):
        with self.client.post(
            "/addresses",
            json=address_data(),
            headers=_as("customer", self.state.customer_id),
            catch_response=True,
            name="POST /addresses",
        ) as resp:
            if resp.status_code == 201:
                self.state.address_id = resp.json()["address_id"]
            else:
                self._fail(resp, "Save address")

    def place_order(self):
        with self.client.post(
            "/orders",
            json=order_data(self.state.vendor_id, self.state.address_id),
            headers=_as("customer", self.state.customer_id),
            catch_response=True,
            name="POST /orders",
        ) as resp:
            if resp.status_code == 201:
                self.state.order_id = resp.json()["order_id"]
            else:
                self._fail(resp, "Place order")

    def approve_order(self):
        with self.client.put(
            f"/orders/{self.state.order_id}/approve",
            json={"expected_status": "pending"},
            headers=_as("vendor", self.state.vendor_id),
            catch_response=True,
            name="PUT /orders/{id}/approve",
        ) as resp:
            if resp.status_code != 200:
                self._fail(resp, "Approve order")

    def load_assignment(self):
        """Read back which partner the resolver picked; it may be another user's partner."""
        with self.client.get(
            f"/orders/{self.state.order_id}",
            headers=_as("vendor", self.state.vendor_id),
            catch_response=True,
            name="GET /orders/{id}",
        ) as resp:
            if resp.status_code != 200:
                self._fail(resp, "Get order")
                return
            body = resp.json()
            self.state.current_status = body["delivery_status"]
            request = body.get("current_request")
            if not request or request["status"] != "assigned":
                resp.failure(f"No partner assigned (dispatch state {body.get('dispatch_state')})")
                self.interrupt()
                return
            self.state.request_id = request["request_id"]
            self.state.assigned_partner_id = request["partner_id"]

    def partner_step(self, action, expected_status=None):
        payload = {"expected_status": expected_status} if expected_status else {}
        with self.client.put(
            f"/orders/{self.state.order_id}/requests/{self.state.request_id}/{action}",
            json=payload,
            headers=_as("delivery_partner", self.state.assigned_partner_id),
            catch_response=True,
            name=f"PUT /orders/{{id}}/requests/{{id}}/{action}",
        ) as resp:
            if resp.status_code != 200:
                self._fail(resp, f"Partner {action}")


class OrderDeliveryJourney(_DispatchJourney):
    """Register -> Place -> Approve -> Accept -> Pick up -> Depart -> Track -> Deliver.

    The happy path through every order and delivery request status.
    """

    @task
    def setup_vendor(self):
        self.register_vendor()

    @task
    def setup_partner(self):
        self.bring_partner_online()

    @task
    def setup_address(self):
        self.save_address()

    @task
    def checkout(self):
        self.place_order()

    @task
    def vendor_approves(self):
        self.approve_order()

    @task
    def check_assignment(self):
        self.load_assignment()

    @task
    def partner_accepts(self):
        self.partner_step("accept", expected_status="assigned")

    @task
    def partner_picks_up(self):
        self.partner_step("pickup")

    @task
    def partner_departs(self):
        self.partner_step("depart")
        self.state.current_status = "out_for_delivery"

    @task
    def send_positions(self):
        for _ in range(random.randint(2, 5)):
            with self.client.post(
                f"/tracking/{self.state.order_id}/positions",
                json=location_data(3.0),
                headers=_as("delivery_partner", self.state.assigned_partner_id),
                catch_response=True,
                name="POST /tracking/{id}/positions",
            ) as resp:
                if resp.status_code == 201:
                    self.state.positions_sent += 1
                else:
                    resp.failure(f"Record position failed: {resp.status_code} - {extract_error_detail(resp)}")

    @task
    def customer_tracks(self):
        with self.client.get(
            f"/tracking/{self.state.order_id}",
            headers=_as("customer", self.state.customer_id),
            catch_response=True,
            name="GET /tracking/{id}",
        ) as resp:
            if resp.status_code != 200:
                resp.failure(f"Get tracking failed: {resp.status_code} - {extract_error_detail(resp)}")

    @task
    def partner_delivers(self):
        self.partner_step("deliver")
        self.state.current_status = "delivered"

    @task
    def done(self):
        self.interrupt()


class OrderCancellationJourney(_DispatchJourney):
    """Register -> Place -> Approve -> Customer cancels -> Archive."""

    @task
    def setup_vendor(self):
        self.register_vendor()

    @task
    def setup_partner(self):
        self.bring_partner_online()

    @task
    def setup_address(self):
        self.save_address()

    @task
    def checkout(self):
        self.place_order()

    @task
    def vendor_approves(self):
        self.approve_order()

    @task
    def customer_cancels(self):
        with self.client.put(
            f"/orders/{self.state.order_id}/cancel",
            json={"reason": "Ordered by mistake"},
            headers=_as("customer", self.state.customer_id),
            catch_response=True,
            name="PUT /orders/{id}/cancel",
        ) as resp:
            if resp.status_code == 200:
                self.state.current_status = "cancelled"
            else:
                self._fail(resp, "Cancel order")

    @task
    def customer_archives(self):
        with self.client.put(
            f"/orders/{self.state.order_id}/archive",
            headers=_as("customer", self.state.customer_id),
            catch_response=True,
            name="PUT /orders/{id}/archive",
        ) as resp:
            if resp.status_code != 200:
                resp.failure(f"Archive order failed: {resp.status_code} - {extract_error_detail(resp)}")

    @task
    def done(self):
        self.interrupt()


class DispatchLifecycleUser(HttpUser):
    """Mixed dispatch traffic: mostly deliveries, some cancellations."""

    tasks = {OrderDeliveryJourney: 4, OrderCancellationJourney: 1}
    wait_time = between(0.5, 2.0)
