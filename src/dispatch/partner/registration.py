"""Delivery partner onboarding, availability and location — commands and handler."""

from protean import handle
from protean.fields import Boolean, Float, Identifier, String
from protean.utils.globals import current_domain

from dispatch.domain import dispatch
from dispatch.partner.partner import DeliveryPartner
from dispatch.shared.coordinates import Coordinates
from dispatch.shared.lookup import load


@dispatch.command(part_of="DeliveryPartner")
class RegisterDeliveryPartner:
    user_id = Identifier(required=True)
    full_name = String(required=True, max_length=255)
    phone = String(max_length=20)
    vehicle_type = String(max_length=20)
    vehicle_number = String(max_length=20)


@dispatch.command(part_of="DeliveryPartner")
class VerifyDeliveryPartner:
    """Admin marks the partner's documents as checked."""

    partner_id = Identifier(required=True)


@dispatch.command(part_of="DeliveryPartner")
class SetPartnerAvailability:
    partner_id = Identifier(required=True)
    is_active = Boolean(required=True)


@dispatch.command(part_of="DeliveryPartner")
class UpdatePartnerLocation:
    partner_id = Identifier(required=True)
    latitude = Float(required=True)
    longitude = Float(required=True)


@dispatch.command_handler(part_of=DeliveryPartner)
class DeliveryPartnerHandler:
    @handle(RegisterDeliveryPartner)
    def register_partner(self, command):
        partner = DeliveryPartner.register(
            user_id=command.user_id,
            full_name=command.full_name,
            phone=command.phone,
            vehicle_type=command.vehicle_type,
            vehicle_number=command.vehicle_number,
        )
        current_domain.repository_for(DeliveryPartner).add(partner)
        return str(partner.id)

    @handle(VerifyDeliveryPartner)
    def verify_partner(self, command):
        partner = load(DeliveryPartner, command.partner_id, "delivery partner")
        partner.verify()
        current_domain.repository_for(DeliveryPartner).add(partner)

    @handle(SetPartnerAvailability)
    def set_availability(self, command):
        partner = load(DeliveryPartner, command.partner_id, "delivery partner")
        partner.set_availability(command.is_active)
        current_domain.repository_for(DeliveryPartner).add(partner)

    @handle(UpdatePartnerLocation)
    def update_location(self, command):
        partner = load(DeliveryPartner, command.partner_id, "delivery partner")
        partner.move_to(Coordinates(latitude=command.latitude, longitude=command.longitude))
        current_domain.repository_for(DeliveryPartner).add(partner)
