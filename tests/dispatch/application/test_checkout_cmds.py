"""Application tests for checkout — PlaceOrder and MarkOrderPaid."""

import pytest
from dispatch.address.management import UpdateAddress
from dispatch.engine.errors import AuthorizationError, ConflictError, NotFoundError
from dispatch.order.checkout import MarkOrderPaid
from dispatch.vendor.registration import SetVendorActive
from protean.exceptions import ValidationError


class TestPlaceOrder:
    def test_places_pending_order(self, world, vendor_id):
        order_id = world.place(vendor_id, discount=100.0, payment_method="upi")
        order = world.order(order_id)
        assert order.delivery_status == "pending"
        assert order.payment_status == "pending"
        assert order.final_amount == 500.0
        assert order.revision == 1
        assert len(order.items) == 2

    def test_snapshots_delivery_address(self, world, vendor_id):
        address_id = world.address("cust-1")
        order_id = world.place(vendor_id, address_id=address_id)
        order = world.order(order_id)
        assert order.delivery_address.city == "Bengaluru"
        assert order.delivery_address.pincode == "560038"
        assert order.delivery_address.coordinates.latitude == pytest.approx(12.9352)

    def test_later_address_edit_does_not_move_order(self, world, vendor_id):
        address_id = world.address("cust-1")
        order_id = world.place(vendor_id, address_id=address_id)

        world.process(UpdateAddress(address_id=address_id, customer_id="cust-1", city="Mysuru", pincode="570001"))

        order = world.order(order_id)
        assert order.delivery_address.city == "Bengaluru"
        assert order.delivery_address.pincode == "560038"

    def test_ordering_for_someone_else(self, world, vendor_id):
        order_id = world.place(vendor_id, drop_latitude=12.9141, drop_longitude=74.8560)
        order = world.order(order_id)
        assert order.ordered_for_someone_else is True
        assert order.drop_location.latitude == pytest.approx(12.9141)

    def test_cannot_use_another_customers_address(self, world, vendor_id):
        address_id = world.address("cust-2")
        with pytest.raises(AuthorizationError):
            world.place(vendor_id, customer_id="cust-1", address_id=address_id)

    def test_unknown_vendor(self, world):
        with pytest.raises(NotFoundError) as exc:
            world.place("vend-missing")
        assert exc.value.reason == "vendor vend-missing not found"

    def test_unknown_address(self, world, vendor_id):
        with pytest.raises(NotFoundError):
            world.place(vendor_id, address_id="addr-missing")

    def test_inactive_vendor_rejects_orders(self, world, vendor_id):
        world.process(SetVendorActive(vendor_id=vendor_id, is_active=False))

        with pytest.raises(ValidationError) as exc:
            world.place(vendor_id)
        assert "not accepting orders" in str(exc.value)

    def test_reopened_vendor_accepts_orders(self, world, vendor_id):
        world.process(SetVendorActive(vendor_id=vendor_id, is_active=False))
        world.process(SetVendorActive(vendor_id=vendor_id, is_active=True))

        order_id = world.place(vendor_id)

        assert world.order(order_id).delivery_status == "pending"

    def test_discount_above_subtotal(self, world, vendor_id):
        with pytest.raises(ValidationError):
            world.place(vendor_id, discount=10_000.0)


class TestMarkOrderPaid:
    def test_marks_paid(self, world, vendor_id):
        order_id = world.place(vendor_id)
        world.process(MarkOrderPaid(order_id=order_id, payment_method="card"))
        order = world.order(order_id)
        assert order.payment_status == "paid"
        assert order.payment_method == "card"
        assert order.revision == 2

    def test_paying_twice_conflicts(self, world, vendor_id):
        order_id = world.place(vendor_id)
        world.process(MarkOrderPaid(order_id=order_id))
        with pytest.raises(ConflictError):
            world.process(MarkOrderPaid(order_id=order_id))
