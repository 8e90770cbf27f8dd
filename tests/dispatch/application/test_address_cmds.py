"""Application tests for the customer address book."""

import pytest
from dispatch.address.address import Address
from dispatch.address.management import AddAddress, SetDefaultAddress, UpdateAddress
from dispatch.engine.errors import AuthorizationError
from protean import current_domain


def _addresses(customer_id):
    return current_domain.repository_for(Address)._dao.query.filter(customer_id=customer_id).all().items


def _default_ids(customer_id):
    return [str(a.id) for a in _addresses(customer_id) if a.is_default]


class TestAddAddress:
    def test_first_address_becomes_default(self, world):
        address_id = world.address("cust-1")
        assert _default_ids("cust-1") == [address_id]

    def test_second_address_is_not_default(self, world):
        first = world.address("cust-1")
        world.address("cust-1")
        assert _default_ids("cust-1") == [first]

    def test_explicit_default_replaces_previous(self, world):
        world.address("cust-1")
        office = world.process(
            AddAddress(
                customer_id="cust-1",
                label="Work",
                full_address="Level 5, Embassy Tech Village",
                city="Bengaluru",
                pincode="560103",
                is_default=True,
            )
        )
        assert _default_ids("cust-1") == [office]

    def test_coordinates_are_kept(self, world):
        address_id = world.address("cust-1", point=(12.93, 77.62))
        address = current_domain.repository_for(Address).get(address_id)
        assert address.coordinates.latitude == 12.93


class TestUpdateAddress:
    def test_updates_only_given_fields(self, world):
        address_id = world.address("cust-1")
        world.process(UpdateAddress(address_id=address_id, customer_id="cust-1", phone="+91-80-2222-3333"))
        address = current_domain.repository_for(Address).get(address_id)
        assert address.phone == "+91-80-2222-3333"
        assert address.city == "Bengaluru"

    def test_other_customer_cannot_update(self, world):
        address_id = world.address("cust-1")
        with pytest.raises(AuthorizationError):
            world.process(UpdateAddress(address_id=address_id, customer_id="cust-2", city="Chennai"))


class TestSetDefaultAddress:
    def test_switches_default(self, world):
        world.address("cust-1")
        second = world.address("cust-1")
        world.process(SetDefaultAddress(address_id=second, customer_id="cust-1"))
        assert _default_ids("cust-1") == [second]

    def test_other_customers_are_untouched(self, world):
        other = world.address("cust-2")
        mine = world.address("cust-1")
        world.process(SetDefaultAddress(address_id=mine, customer_id="cust-1"))
        assert _default_ids("cust-2") == [other]
