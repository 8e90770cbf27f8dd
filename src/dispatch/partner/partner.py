"""DeliveryPartner aggregate — a courier who accepts and delivers orders.

Only active, verified partners with a known location are candidates for
assignment. Partners keep their own location and availability current.
"""

from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, Identifier, String, ValueObject

from dispatch.domain import dispatch
from dispatch.shared.coordinates import Coordinates


class VehicleType(Enum):
    BICYCLE = "bicycle"
    MOTORCYCLE = "motorcycle"
    SCOOTER = "scooter"
    CAR = "car"
    VAN = "van"


@dispatch.event(part_of="DeliveryPartner")
class DeliveryPartnerRegistered:
    __version__ = 1

    partner_id = Identifier(required=True)
    user_id = Identifier(required=True)
    full_name = String(required=True)
    vehicle_type = String()
    registered_at = DateTime(required=True)


@dispatch.event(part_of="DeliveryPartner")
class DeliveryPartnerVerified:
    __version__ = 1

    partner_id = Identifier(required=True)
    verified_at = DateTime(required=True)


@dispatch.event(part_of="DeliveryPartner")
class PartnerAvailabilityChanged:
    __version__ = 1

    partner_id = Identifier(required=True)
    is_active = Boolean(required=True)
    changed_at = DateTime(required=True)


@dispatch.event(part_of="DeliveryPartner")
class PartnerLocationUpdated:
    __version__ = 1

    partner_id = Identifier(required=True)
    latitude = Float(required=True)
    longitude = Float(required=True)
    updated_at = DateTime(required=True)


@dispatch.aggregate
class DeliveryPartner:
    user_id = Identifier(required=True)
    full_name = String(required=True, max_length=255)
    phone = String(max_length=20)
    vehicle_type = String(max_length=20, choices=VehicleType)
    vehicle_number = String(max_length=20)
    is_verified = Boolean(default=False)
    is_active = Boolean(default=False)
    location = ValueObject(Coordinates)
    location_updated_at = DateTime()
    registered_at = DateTime()

    @classmethod
    def register(
        cls,
        user_id: str,
        full_name: str,
        phone: str | None = None,
        vehicle_type: str | None = None,
        vehicle_number: str | None = None,
    ):
        now = datetime.now(UTC)
        partner = cls(
            user_id=user_id,
            full_name=full_name,
            phone=phone,
            vehicle_type=vehicle_type,
            vehicle_number=vehicle_number,
            registered_at=now,
        )
        partner.raise_(
            DeliveryPartnerRegistered(
                partner_id=str(partner.id),
                user_id=user_id,
                full_name=full_name,
                vehicle_type=vehicle_type,
                registered_at=now,
            )
        )
        return partner

    @property
    def is_assignable(self) -> bool:
        return bool(self.is_active and self.is_verified and self.location is not None)

    def verify(self) -> None:
        if self.is_verified:
            return
        self.is_verified = True
        self.raise_(DeliveryPartnerVerified(partner_id=str(self.id), verified_at=datetime.now(UTC)))

    def set_availability(self, is_active: bool) -> None:
        if is_active and not self.is_verified:
            raise ValidationError({"is_active": ["Only verified partners can go online"]})
        self.is_active = is_active
        self.raise_(
            PartnerAvailabilityChanged(
                partner_id=str(self.id),
                is_active=is_active,
                changed_at=datetime.now(UTC),
            )
        )

    def move_to(self, location: Coordinates) -> None:
        now = datetime.now(UTC)
        self.location = location
        self.location_updated_at = now
        self.raise_(
            PartnerLocationUpdated(
                partner_id=str(self.id),
                latitude=location.latitude,
                longitude=location.longitude,
                updated_at=now,
            )
        )
