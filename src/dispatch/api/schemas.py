"""Pydantic API schemas for the Dispatch domain.

These are the external API contracts, kept separate from domain commands.
The API layer translates between these schemas and domain commands.
"""

from datetime import datetime

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------
class OrderItemRequest(BaseModel):
    product_id: str
    product_name: str
    unit_price: float = Field(ge=0)
    quantity: int = Field(ge=1)


class PlaceOrderRequest(BaseModel):
    vendor_id: str
    address_id: str
    items: list[OrderItemRequest]
    discount: float = 0.0
    payment_method: str | None = None
    drop_latitude: float | None = None
    drop_longitude: float | None = None


class PayOrderRequest(BaseModel):
    payment_method: str | None = None


class TransitionRequest(BaseModel):
    """Body for lifecycle commands; ``expected_status`` is the status the caller last saw."""

    expected_status: str | None = None


class ReasonRequest(TransitionRequest):
    reason: str | None = None


class RegisterPartnerRequest(BaseModel):
    full_name: str
    phone: str | None = None
    vehicle_type: str | None = None
    vehicle_number: str | None = None


class AvailabilityRequest(BaseModel):
    is_active: bool


class VendorActivationRequest(BaseModel):
    is_active: bool


class LocationRequest(BaseModel):
    latitude: float
    longitude: float


class RegisterVendorRequest(BaseModel):
    business_name: str
    phone: str | None = None
    latitude: float | None = None
    longitude: float | None = None


class AddressRequest(BaseModel):
    full_address: str
    city: str
    pincode: str
    label: str | None = None
    state: str | None = None
    phone: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    is_default: bool = False


class UpdateAddressRequest(BaseModel):
    full_address: str | None = None
    city: str | None = None
    pincode: str | None = None
    label: str | None = None
    state: str | None = None
    phone: str | None = None
    latitude: float | None = None
    longitude: float | None = None


class RecordPositionRequest(LocationRequest):
    recorded_at: datetime | None = None


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------
class StatusResponse(BaseModel):
    status: str


class OrderIdResponse(BaseModel):
    order_id: str


class PartnerIdResponse(BaseModel):
    partner_id: str


class VendorIdResponse(BaseModel):
    vendor_id: str


class AddressIdResponse(BaseModel):
    address_id: str


class PositionIdResponse(BaseModel):
    position_id: str


class PointResponse(BaseModel):
    latitude: float
    longitude: float


class OrderItemResponse(BaseModel):
    product_id: str
    product_name: str
    unit_price: float
    quantity: int


class DeliveryRequestResponse(BaseModel):
    request_id: str
    partner_id: str
    status: str
    status_label: str
    attempt: int
    distance_km: float | None = None
    assigned_at: datetime | None = None
    responded_at: datetime | None = None
    picked_up_at: datetime | None = None
    delivered_at: datetime | None = None


class OrderResponse(BaseModel):
    order_id: str
    customer_id: str
    vendor_id: str
    delivery_status: str
    status_label: str
    timeline_step: int
    dispatch_state: str
    subtotal: float
    discount: float
    final_amount: float
    payment_status: str
    ordered_for_someone_else: bool
    drop_location: PointResponse | None = None
    archived: bool
    revision: int
    items: list[OrderItemResponse]
    current_request: DeliveryRequestResponse | None = None


class OrderSummaryResponse(BaseModel):
    order_id: str
    customer_id: str
    vendor_id: str
    delivery_status: str
    status_label: str | None = None
    dispatch_state: str | None = None
    request_status: str | None = None
    partner_id: str | None = None
    final_amount: float | None = None
    archived: bool = False
    revision: int = 0


class PartnerQueueItemResponse(BaseModel):
    request_id: str
    order_id: str
    status: str
    status_label: str | None = None
    attempt: int
    distance_km: float | None = None
    assigned_at: datetime | None = None


class TrackingResponse(BaseModel):
    order_id: str
    partner_id: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    recorded_at: datetime | None = None
    is_live: bool


class AddressResponse(BaseModel):
    address_id: str
    label: str | None = None
    full_address: str
    city: str
    state: str | None = None
    pincode: str
    phone: str | None = None
    is_default: bool
    location: PointResponse | None = None
