"""Application tests for pickup, departure and delivery."""

import pytest
from dispatch.engine.errors import AuthorizationError, ConflictError
from dispatch.order.progress import MarkDelivered, MarkOutForDelivery, MarkPickedUp


class TestDeliveryProgress:
    def test_pickup(self, world, vendor_id, partner_id):
        order_id = world.place(vendor_id)
        world.approve(order_id, vendor_id)
        request_id = world.accept(order_id, partner_id)

        world.process(MarkPickedUp(order_id=order_id, request_id=request_id, partner_id=partner_id))

        order = world.order(order_id)
        assert order.delivery_status == "picked_up"
        assert order.current_request.status == "picked_up"
        assert order.current_request.picked_up_at is not None

    def test_full_delivery(self, world, vendor_id, partner_id):
        order_id = world.place(vendor_id)
        request_id = world.walk_to_out_for_delivery(order_id, vendor_id, partner_id)

        world.process(
            MarkDelivered(
                order_id=order_id,
                request_id=request_id,
                partner_id=partner_id,
                expected_status="out_for_delivery",
            )
        )

        order = world.order(order_id)
        assert order.delivery_status == "delivered"
        assert order.current_request.status == "delivered"
        assert order.current_request.delivered_at is not None

    def test_cannot_depart_before_pickup(self, world, vendor_id, partner_id):
        order_id = world.place(vendor_id)
        world.approve(order_id, vendor_id)
        request_id = world.accept(order_id, partner_id)

        with pytest.raises(ConflictError) as exc:
            world.process(MarkOutForDelivery(order_id=order_id, request_id=request_id, partner_id=partner_id))
        assert exc.value.reason == "request not in picked_up state"

    def test_other_partner_cannot_pick_up(self, world, vendor_id, partner_id):
        other = world.partner((13.05, 77.65), full_name="Other")
        order_id = world.place(vendor_id)
        world.approve(order_id, vendor_id)
        request_id = world.accept(order_id, partner_id)

        with pytest.raises(AuthorizationError):
            world.process(MarkPickedUp(order_id=order_id, request_id=request_id, partner_id=other))
