"""Application tests for vendor review — ApproveOrder and RejectOrder."""

import pytest
from dispatch.engine.errors import AuthorizationError, ConflictError
from dispatch.engine.statuses import DispatchState
from dispatch.order.vendor_review import ApproveOrder, RejectOrder


class TestApproveOrder:
    def test_approval_without_partners_waits(self, world, vendor_id):
        order_id = world.place(vendor_id)
        order = world.approve(order_id, vendor_id)
        assert order.delivery_status == "approved"
        assert order.current_request is None
        assert order.dispatch_state == DispatchState.NO_PARTNER_AVAILABLE

    def test_approval_auto_assigns_nearest_partner(self, world, vendor_id, partner_id):
        order_id = world.place(vendor_id)
        order = world.approve(order_id, vendor_id)
        assert order.delivery_status == "assigned"
        assert str(order.current_request.partner_id) == partner_id
        assert order.current_request.status == "assigned"
        assert order.dispatch_state == DispatchState.AWAITING_PARTNER

    def test_other_vendor_cannot_approve(self, world, vendor_id):
        other_vendor = world.vendor(business_name="Corner Store")
        order_id = world.place(vendor_id)
        with pytest.raises(AuthorizationError):
            world.process(ApproveOrder(order_id=order_id, vendor_id=other_vendor))

    def test_stale_expected_status(self, world, vendor_id):
        order_id = world.place(vendor_id)
        world.approve(order_id, vendor_id)
        with pytest.raises(ConflictError) as exc:
            world.process(ApproveOrder(order_id=order_id, vendor_id=vendor_id, expected_status="pending"))
        assert exc.value.reason == "order status changed from pending to approved"


class TestRejectOrder:
    def test_reject_pending(self, world, vendor_id):
        order_id = world.place(vendor_id)
        world.process(RejectOrder(order_id=order_id, vendor_id=vendor_id, reason="Out of stock"))
        order = world.order(order_id)
        assert order.delivery_status == "rejected_by_vendor"
        assert order.rejection_reason == "Out of stock"

    def test_reject_withdraws_assigned_request(self, world, vendor_id, partner_id):
        order_id = world.place(vendor_id)
        world.approve(order_id, vendor_id)
        world.process(RejectOrder(order_id=order_id, vendor_id=vendor_id, expected_status="assigned"))
        order = world.order(order_id)
        assert order.delivery_status == "rejected_by_vendor"
        assert order.current_request.status == "cancelled"

    def test_cannot_reject_after_partner_accepted(self, world, vendor_id, partner_id):
        order_id = world.place(vendor_id)
        world.approve(order_id, vendor_id)
        world.accept(order_id, partner_id)
        with pytest.raises(ConflictError):
            world.process(RejectOrder(order_id=order_id, vendor_id=vendor_id))
        assert world.order(order_id).current_request.status == "accepted"
