"""Address book — commands and handler.

A customer always has exactly one default address once they have any: the
first address becomes the default, and choosing a new default clears the
previous one.
"""

from protean import handle
from protean.fields import Boolean, Float, Identifier, String
from protean.utils.globals import current_domain

from dispatch.address.address import Address
from dispatch.domain import dispatch
from dispatch.engine.errors import AuthorizationError
from dispatch.shared.coordinates import coordinates_or_none
from dispatch.shared.lookup import load


@dispatch.command(part_of="Address")
class AddAddress:
    customer_id = Identifier(required=True)
    full_address = String(required=True, max_length=500)
    city = String(required=True, max_length=100)
    pincode = String(required=True, max_length=20)
    label = String(max_length=50)
    state = String(max_length=100)
    phone = String(max_length=20)
    latitude = Float()
    longitude = Float()
    is_default = Boolean(default=False)


@dispatch.command(part_of="Address")
class UpdateAddress:
    address_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    full_address = String(max_length=500)
    city = String(max_length=100)
    pincode = String(max_length=20)
    label = String(max_length=50)
    state = String(max_length=100)
    phone = String(max_length=20)
    latitude = Float()
    longitude = Float()


@dispatch.command(part_of="Address")
class SetDefaultAddress:
    address_id = Identifier(required=True)
    customer_id = Identifier(required=True)


def _owned(address_id: str, customer_id: str) -> Address:
    address = load(Address, address_id)
    if str(address.customer_id) != str(customer_id):
        raise AuthorizationError("address belongs to another customer")
    return address


def _customer_addresses(customer_id: str) -> list[Address]:
    repo = current_domain.repository_for(Address)
    return repo._dao.query.filter(customer_id=str(customer_id)).all().items


@dispatch.command_handler(part_of=Address)
class AddressBookHandler:
    @handle(AddAddress)
    def add_address(self, command):
        repo = current_domain.repository_for(Address)
        existing = _customer_addresses(command.customer_id)
        make_default = command.is_default or not existing

        if make_default:
            for other in existing:
                if other.is_default:
                    other.clear_default()
                    repo.add(other)

        address = Address.add(
            customer_id=command.customer_id,
            full_address=command.full_address,
            city=command.city,
            pincode=command.pincode,
            label=command.label,
            state=command.state,
            phone=command.phone,
            coordinates=coordinates_or_none(command.latitude, command.longitude),
            is_default=make_default,
        )
        repo.add(address)
        return str(address.id)

    @handle(UpdateAddress)
    def update_address(self, command):
        address = _owned(command.address_id, command.customer_id)
        address.update(
            full_address=command.full_address,
            city=command.city,
            pincode=command.pincode,
            label=command.label,
            state=command.state,
            phone=command.phone,
            coordinates=coordinates_or_none(command.latitude, command.longitude),
        )
        current_domain.repository_for(Address).add(address)

    @handle(SetDefaultAddress)
    def set_default_address(self, command):
        repo = current_domain.repository_for(Address)
        address = _owned(command.address_id, command.customer_id)
        for other in _customer_addresses(command.customer_id):
            if other.is_default and str(other.id) != str(address.id):
                other.clear_default()
                repo.add(other)
        address.make_default()
        repo.add(address)
