"""Address book — delivery addresses owned by a customer.

Orders copy the chosen address at checkout, so editing or removing an
address never changes where an already placed order is delivered.
"""

from datetime import UTC, datetime

from protean.fields import Boolean, DateTime, Identifier, String, ValueObject

from dispatch.domain import dispatch
from dispatch.shared.coordinates import Coordinates


@dispatch.event(part_of="Address")
class AddressAdded:
    __version__ = 1

    address_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    label = String()
    city = String()
    pincode = String()
    is_default = Boolean()
    added_at = DateTime(required=True)


@dispatch.event(part_of="Address")
class AddressUpdated:
    __version__ = 1

    address_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    updated_at = DateTime(required=True)


@dispatch.event(part_of="Address")
class DefaultAddressChanged:
    __version__ = 1

    address_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    changed_at = DateTime(required=True)


@dispatch.aggregate
class Address:
    customer_id = Identifier(required=True)
    label = String(max_length=50, default="Home")
    full_address = String(required=True, max_length=500)
    city = String(required=True, max_length=100)
    state = String(max_length=100)
    pincode = String(required=True, max_length=20)
    phone = String(max_length=20)
    coordinates = ValueObject(Coordinates)
    is_default = Boolean(default=False)
    created_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def add(
        cls,
        customer_id: str,
        full_address: str,
        city: str,
        pincode: str,
        label: str | None = None,
        state: str | None = None,
        phone: str | None = None,
        coordinates: Coordinates | None = None,
        is_default: bool = False,
    ):
        now = datetime.now(UTC)
        address = cls(
            customer_id=customer_id,
            label=label or "Home",
            full_address=full_address,
            city=city,
            state=state,
            pincode=pincode,
            phone=phone,
            coordinates=coordinates,
            is_default=is_default,
            created_at=now,
            updated_at=now,
        )
        address.raise_(
            AddressAdded(
                address_id=str(address.id),
                customer_id=customer_id,
                label=address.label,
                city=city,
                pincode=pincode,
                is_default=is_default,
                added_at=now,
            )
        )
        return address

    def update(self, **changes) -> None:
        """Apply the given field changes. ``None`` values are ignored."""
        for field, value in changes.items():
            if value is not None:
                setattr(self, field, value)
        now = datetime.now(UTC)
        self.updated_at = now
        self.raise_(
            AddressUpdated(
                address_id=str(self.id),
                customer_id=str(self.customer_id),
                updated_at=now,
            )
        )

    def make_default(self) -> None:
        now = datetime.now(UTC)
        self.is_default = True
        self.updated_at = now
        self.raise_(
            DefaultAddressChanged(
                address_id=str(self.id),
                customer_id=str(self.customer_id),
                changed_at=now,
            )
        )

    def clear_default(self) -> None:
        self.is_default = False
        self.updated_at = datetime.now(UTC)
