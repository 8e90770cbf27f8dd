"""Checkout — place an order and record its payment.

The chosen address is copied onto the order at checkout, so later edits to
the address book never change where a placed order goes.
"""

import json

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Float, Identifier, String, Text
from protean.utils.globals import current_domain

from dispatch.address.address import Address
from dispatch.domain import dispatch
from dispatch.engine.errors import AuthorizationError
from dispatch.order.order import DeliveryAddress, Order
from dispatch.shared.coordinates import coordinates_or_none
from dispatch.shared.lookup import load
from dispatch.vendor.vendor import Vendor


@dispatch.command(part_of="Order")
class PlaceOrder:
    """Check out a customer's cart with one vendor."""

    customer_id = Identifier(required=True)
    vendor_id = Identifier(required=True)
    address_id = Identifier(required=True)
    items = Text(required=True)  # JSON list of item dicts
    discount = Float(default=0.0)
    payment_method = String(max_length=50)
    drop_latitude = Float()  # set both when ordering for someone else
    drop_longitude = Float()


@dispatch.command(part_of="Order")
class MarkOrderPaid:
    order_id = Identifier(required=True)
    payment_method = String(max_length=50)


def snapshot_address(address: Address) -> DeliveryAddress:
    return DeliveryAddress(
        label=address.label,
        full_address=address.full_address,
        city=address.city,
        state=address.state,
        pincode=address.pincode,
        phone=address.phone,
        coordinates=address.coordinates,
    )


@dispatch.command_handler(part_of=Order)
class CheckoutHandler:
    @handle(PlaceOrder)
    def place_order(self, command):
        address = load(Address, command.address_id)
        if str(address.customer_id) != str(command.customer_id):
            raise AuthorizationError("address belongs to another customer")

        vendor = load(Vendor, command.vendor_id)
        if not vendor.is_active:
            raise ValidationError({"vendor_id": ["Vendor is not accepting orders"]})

        items_data = json.loads(command.items) if isinstance(command.items, str) else command.items
        order = Order.place(
            customer_id=command.customer_id,
            vendor_id=command.vendor_id,
            items_data=items_data,
            delivery_address=snapshot_address(address),
            address_id=command.address_id,
            discount=command.discount or 0.0,
            payment_method=command.payment_method,
            alternate_drop=coordinates_or_none(command.drop_latitude, command.drop_longitude),
        )
        current_domain.repository_for(Order).add(order)
        return str(order.id)

    @handle(MarkOrderPaid)
    def mark_order_paid(self, command):
        order = load(Order, command.order_id)
        order.mark_paid(command.payment_method)
        current_domain.repository_for(Order).add(order)
