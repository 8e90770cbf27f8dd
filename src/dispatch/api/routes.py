"""FastAPI routes for the Dispatch domain.

Authentication is handled upstream; the gateway forwards the caller's role
and id in the ``X-Actor-Role`` and ``X-Actor-Id`` headers.
"""

import json

from fastapi import APIRouter, Depends, Header
from protean.utils.globals import current_domain

from dispatch.address.address import Address
from dispatch.address.management import AddAddress, SetDefaultAddress, UpdateAddress
from dispatch.api.schemas import (
    AddressIdResponse,
    AddressRequest,
    AddressResponse,
    AvailabilityRequest,
    DeliveryRequestResponse,
    LocationRequest,
    OrderIdResponse,
    OrderItemResponse,
    OrderResponse,
    OrderSummaryResponse,
    PartnerIdResponse,
    PartnerQueueItemResponse,
    PayOrderRequest,
    PlaceOrderRequest,
    PointResponse,
    PositionIdResponse,
    ReasonRequest,
    RecordPositionRequest,
    RegisterPartnerRequest,
    RegisterVendorRequest,
    StatusResponse,
    TrackingResponse,
    TransitionRequest,
    UpdateAddressRequest,
    VendorActivationRequest,
    VendorIdResponse,
)
from dispatch.engine.errors import AuthorizationError, NotFoundError
from dispatch.engine.statuses import ActorRole, status_label, timeline_position
from dispatch.engine.transitions import Actor
from dispatch.order.archival import ArchiveOrder, DismissDeliveryRequest
from dispatch.order.assignment import AssignDeliveryPartner
from dispatch.order.cancellation import CancelOrder
from dispatch.order.checkout import MarkOrderPaid, PlaceOrder
from dispatch.order.order import DeliveryRequest, Order
from dispatch.order.partner_response import AcceptDeliveryRequest, DeclineDeliveryRequest
from dispatch.order.progress import MarkDelivered, MarkOutForDelivery, MarkPickedUp
from dispatch.order.vendor_review import ApproveOrder, RejectOrder
from dispatch.partner.partner import DeliveryPartner
from dispatch.partner.registration import (
    RegisterDeliveryPartner,
    SetPartnerAvailability,
    UpdatePartnerLocation,
    VerifyDeliveryPartner,
)
from dispatch.projections.live_tracking import LiveTrackingView
from dispatch.projections.order_status import OrderStatusView
from dispatch.projections.partner_queue import PartnerQueueView
from dispatch.shared.lookup import load
from dispatch.tracking.position import RecordPosition
from dispatch.vendor.registration import RegisterVendor, SetVendorActive, UpdateVendorLocation
from dispatch.vendor.vendor import Vendor


# ---------------------------------------------------------------------------
# Caller identity
# ---------------------------------------------------------------------------
# Vendors and partners register with their gateway user id. Afterwards they
# may send either that user id or the vendor/partner id; the user id is
# resolved to the aggregate id when it names exactly one registration.
_REGISTRATIONS = {
    ActorRole.VENDOR: (Vendor, "owner_id"),
    ActorRole.DELIVERY_PARTNER: (DeliveryPartner, "user_id"),
}


def resolve_actor_id(role: ActorRole, actor_id: str | None) -> str | None:
    if actor_id is None or role not in _REGISTRATIONS:
        return actor_id
    aggregate_cls, field_name = _REGISTRATIONS[role]
    repo = current_domain.repository_for(aggregate_cls)
    matches = repo._dao.query.filter(**{field_name: actor_id}).all().items
    if len(matches) == 1:
        return str(matches[0].id)
    return actor_id


async def current_actor(
    x_actor_role: str = Header(...),
    x_actor_id: str | None = Header(default=None),
) -> Actor:
    try:
        role = ActorRole(x_actor_role)
    except ValueError as exc:
        raise AuthorizationError(f"unknown role {x_actor_role}") from exc
    if role == ActorRole.SYSTEM:
        raise AuthorizationError("system role is internal")
    if role != ActorRole.ADMIN and not x_actor_id:
        raise AuthorizationError("actor id is required")
    return Actor(role, resolve_actor_id(role, x_actor_id))


def _require(actor: Actor, action: str, *roles: ActorRole) -> None:
    if actor.role not in roles:
        raise AuthorizationError(f"{actor.role.value} may not {action}")


def _require_self(actor: Actor, owner_id, action: str) -> None:
    if actor.role != ActorRole.ADMIN and str(owner_id) != str(actor.actor_id):
        raise AuthorizationError(f"{actor.role.value} may not {action} for someone else")


# ---------------------------------------------------------------------------
# Response builders
# ---------------------------------------------------------------------------
def _point(coordinates) -> PointResponse | None:
    if coordinates is None:
        return None
    return PointResponse(latitude=coordinates.latitude, longitude=coordinates.longitude)


def _request_response(request: DeliveryRequest | None) -> DeliveryRequestResponse | None:
    if request is None:
        return None
    return DeliveryRequestResponse(
        request_id=str(request.id),
        partner_id=str(request.partner_id),
        status=request.status,
        status_label=status_label(request.status),
        attempt=request.attempt,
        distance_km=request.distance_km,
        assigned_at=request.assigned_at,
        responded_at=request.responded_at,
        picked_up_at=request.picked_up_at,
        delivered_at=request.delivered_at,
    )


def _order_response(order: Order) -> OrderResponse:
    return OrderResponse(
        order_id=str(order.id),
        customer_id=str(order.customer_id),
        vendor_id=str(order.vendor_id),
        delivery_status=order.delivery_status,
        status_label=status_label(order.delivery_status),
        timeline_step=timeline_position(order.delivery_status),
        dispatch_state=order.dispatch_state.value,
        subtotal=order.subtotal,
        discount=order.discount,
        final_amount=order.final_amount,
        payment_status=order.payment_status,
        ordered_for_someone_else=bool(order.ordered_for_someone_else),
        drop_location=_point(order.drop_location),
        archived=bool(order.archived),
        revision=order.revision,
        items=[
            OrderItemResponse(
                product_id=str(item.product_id),
                product_name=item.product_name,
                unit_price=item.unit_price,
                quantity=item.quantity,
            )
            for item in (order.items or [])
        ],
        current_request=_request_response(order.current_request),
    )


def _can_view(order: Order, actor: Actor) -> bool:
    if actor.role == ActorRole.ADMIN:
        return True
    if actor.role == ActorRole.CUSTOMER:
        return str(order.customer_id) == actor.actor_id
    if actor.role == ActorRole.VENDOR:
        return str(order.vendor_id) == actor.actor_id
    return any(str(r.partner_id) == actor.actor_id for r in (order.delivery_requests or []))


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.post("", status_code=201, response_model=OrderIdResponse)
async def place_order(body: PlaceOrderRequest, actor: Actor = Depends(current_actor)) -> OrderIdResponse:
    """Check out a cart into a pending order."""
    _require(actor, "place an order", ActorRole.CUSTOMER)
    command = PlaceOrder(
        customer_id=actor.actor_id,
        vendor_id=body.vendor_id,
        address_id=body.address_id,
        items=json.dumps([item.model_dump() for item in body.items]),
        discount=body.discount,
        payment_method=body.payment_method,
        drop_latitude=body.drop_latitude,
        drop_longitude=body.drop_longitude,
    )
    result = current_domain.process(command, asynchronous=False)
    return OrderIdResponse(order_id=result)


@order_router.get("", response_model=list[OrderSummaryResponse])
async def list_orders(
    include_archived: bool = False,
    actor: Actor = Depends(current_actor),
) -> list[OrderSummaryResponse]:
    """Orders of the calling customer or vendor, newest first."""
    _require(actor, "list orders", ActorRole.CUSTOMER, ActorRole.VENDOR, ActorRole.ADMIN)
    query = current_domain.repository_for(OrderStatusView)._dao.query
    if actor.role == ActorRole.CUSTOMER:
        query = query.filter(customer_id=actor.actor_id)
    elif actor.role == ActorRole.VENDOR:
        query = query.filter(vendor_id=actor.actor_id)
    views = [v for v in query.all().items if include_archived or not v.archived]
    views.sort(key=lambda v: v.placed_at, reverse=True)
    return [
        OrderSummaryResponse(
            order_id=str(v.order_id),
            customer_id=str(v.customer_id),
            vendor_id=str(v.vendor_id),
            delivery_status=v.delivery_status,
            status_label=v.status_label,
            dispatch_state=v.dispatch_state,
            request_status=v.request_status,
            partner_id=str(v.partner_id) if v.partner_id else None,
            final_amount=v.final_amount,
            archived=bool(v.archived),
            revision=v.revision or 0,
        )
        for v in views
    ]


@order_router.get("/{order_id}", response_model=OrderResponse)
async def get_order(order_id: str, actor: Actor = Depends(current_actor)) -> OrderResponse:
    order = load(Order, order_id)
    if not _can_view(order, actor):
        raise AuthorizationError(f"{actor.role.value} may not view this order")
    return _order_response(order)


@order_router.get("/{order_id}/delivery-request", response_model=DeliveryRequestResponse)
async def get_delivery_request(order_id: str, actor: Actor = Depends(current_actor)) -> DeliveryRequestResponse:
    order = load(Order, order_id)
    if not _can_view(order, actor):
        raise AuthorizationError(f"{actor.role.value} may not view this order")
    if order.current_request is None:
        raise NotFoundError(f"order {order_id} has no delivery request")
    return _request_response(order.current_request)


@order_router.put("/{order_id}/pay", response_model=StatusResponse)
async def pay_order(order_id: str, body: PayOrderRequest, actor: Actor = Depends(current_actor)) -> StatusResponse:
    _require(actor, "pay for an order", ActorRole.CUSTOMER, ActorRole.ADMIN)
    order = load(Order, order_id)
    _require_self(actor, order.customer_id, "pay")
    current_domain.process(MarkOrderPaid(order_id=order_id, payment_method=body.payment_method), asynchronous=False)
    return StatusResponse(status="paid")


@order_router.put("/{order_id}/approve", response_model=StatusResponse)
async def approve_order(
    order_id: str, body: TransitionRequest, actor: Actor = Depends(current_actor)
) -> StatusResponse:
    _require(actor, "approve an order", ActorRole.VENDOR)
    command = ApproveOrder(order_id=order_id, vendor_id=actor.actor_id, expected_status=body.expected_status)
    current_domain.process(command, asynchronous=False)
    return StatusResponse(status="approved")


@order_router.put("/{order_id}/reject", response_model=StatusResponse)
async def reject_order(order_id: str, body: ReasonRequest, actor: Actor = Depends(current_actor)) -> StatusResponse:
    _require(actor, "reject an order", ActorRole.VENDOR)
    command = RejectOrder(
        order_id=order_id,
        vendor_id=actor.actor_id,
        reason=body.reason,
        expected_status=body.expected_status,
    )
    current_domain.process(command, asynchronous=False)
    return StatusResponse(status="rejected_by_vendor")


@order_router.put("/{order_id}/assign", response_model=PartnerIdResponse)
async def assign_partner(
    order_id: str, body: TransitionRequest, actor: Actor = Depends(current_actor)
) -> PartnerIdResponse:
    """Retry nearest-partner assignment for an approved order."""
    _require(actor, "assign a delivery partner", ActorRole.VENDOR, ActorRole.ADMIN)
    order = load(Order, order_id)
    _require_self(actor, order.vendor_id, "assign a delivery partner")
    command = AssignDeliveryPartner(order_id=order_id, expected_status=body.expected_status)
    partner_id = current_domain.process(command, asynchronous=False)
    return PartnerIdResponse(partner_id=partner_id)


def _partner_command(command_cls, order_id, request_id, body, actor):
    _require(actor, "act on a delivery request", ActorRole.DELIVERY_PARTNER)
    command = command_cls(
        order_id=order_id,
        request_id=request_id,
        partner_id=actor.actor_id,
        expected_status=body.expected_status,
    )
    current_domain.process(command, asynchronous=False)


@order_router.put("/{order_id}/requests/{request_id}/accept", response_model=StatusResponse)
async def accept_request(
    order_id: str, request_id: str, body: TransitionRequest, actor: Actor = Depends(current_actor)
) -> StatusResponse:
    _partner_command(AcceptDeliveryRequest, order_id, request_id, body, actor)
    return StatusResponse(status="accepted")


@order_router.put("/{order_id}/requests/{request_id}/decline", response_model=StatusResponse)
async def decline_request(
    order_id: str, request_id: str, body: TransitionRequest, actor: Actor = Depends(current_actor)
) -> StatusResponse:
    _partner_command(DeclineDeliveryRequest, order_id, request_id, body, actor)
    return StatusResponse(status="rejected_by_partner")


@order_router.put("/{order_id}/requests/{request_id}/pickup", response_model=StatusResponse)
async def mark_picked_up(
    order_id: str, request_id: str, body: TransitionRequest, actor: Actor = Depends(current_actor)
) -> StatusResponse:
    _partner_command(MarkPickedUp, order_id, request_id, body, actor)
    return StatusResponse(status="picked_up")


@order_router.put("/{order_id}/requests/{request_id}/depart", response_model=StatusResponse)
async def mark_out_for_delivery(
    order_id: str, request_id: str, body: TransitionRequest, actor: Actor = Depends(current_actor)
) -> StatusResponse:
    _partner_command(MarkOutForDelivery, order_id, request_id, body, actor)
    return StatusResponse(status="out_for_delivery")


@order_router.put("/{order_id}/requests/{request_id}/deliver", response_model=StatusResponse)
async def mark_delivered(
    order_id: str, request_id: str, body: TransitionRequest, actor: Actor = Depends(current_actor)
) -> StatusResponse:
    _partner_command(MarkDelivered, order_id, request_id, body, actor)
    return StatusResponse(status="delivered")


@order_router.put("/{order_id}/requests/{request_id}/dismiss", response_model=StatusResponse)
async def dismiss_request(order_id: str, request_id: str, actor: Actor = Depends(current_actor)) -> StatusResponse:
    _require(actor, "dismiss a delivery request", ActorRole.DELIVERY_PARTNER)
    command = DismissDeliveryRequest(order_id=order_id, request_id=request_id, partner_id=actor.actor_id)
    current_domain.process(command, asynchronous=False)
    return StatusResponse(status="dismissed")


@order_router.put("/{order_id}/cancel", response_model=StatusResponse)
async def cancel_order(order_id: str, body: ReasonRequest, actor: Actor = Depends(current_actor)) -> StatusResponse:
    command = CancelOrder(
        order_id=order_id,
        actor_role=actor.role.value,
        actor_id=actor.actor_id,
        reason=body.reason,
        expected_status=body.expected_status,
    )
    current_domain.process(command, asynchronous=False)
    return StatusResponse(status="cancelled")


@order_router.put("/{order_id}/archive", response_model=StatusResponse)
async def archive_order(order_id: str, actor: Actor = Depends(current_actor)) -> StatusResponse:
    command = ArchiveOrder(order_id=order_id, actor_role=actor.role.value, actor_id=actor.actor_id)
    current_domain.process(command, asynchronous=False)
    return StatusResponse(status="archived")


# ---------------------------------------------------------------------------
# Partner Router
# ---------------------------------------------------------------------------
partner_router = APIRouter(prefix="/partners", tags=["partners"])


@partner_router.post("", status_code=201, response_model=PartnerIdResponse)
async def register_partner(
    body: RegisterPartnerRequest,
    actor: Actor = Depends(current_actor),
    x_actor_id: str | None = Header(default=None),
) -> PartnerIdResponse:
    _require(actor, "register as a delivery partner", ActorRole.DELIVERY_PARTNER, ActorRole.ADMIN)
    command = RegisterDeliveryPartner(
        user_id=x_actor_id,
        full_name=body.full_name,
        phone=body.phone,
        vehicle_type=body.vehicle_type,
        vehicle_number=body.vehicle_number,
    )
    result = current_domain.process(command, asynchronous=False)
    return PartnerIdResponse(partner_id=result)


@partner_router.put("/{partner_id}/verify", response_model=StatusResponse)
async def verify_partner(partner_id: str, actor: Actor = Depends(current_actor)) -> StatusResponse:
    _require(actor, "verify a delivery partner", ActorRole.ADMIN)
    current_domain.process(VerifyDeliveryPartner(partner_id=partner_id), asynchronous=False)
    return StatusResponse(status="verified")


@partner_router.put("/{partner_id}/availability", response_model=StatusResponse)
async def set_availability(
    partner_id: str, body: AvailabilityRequest, actor: Actor = Depends(current_actor)
) -> StatusResponse:
    _require(actor, "change availability", ActorRole.DELIVERY_PARTNER, ActorRole.ADMIN)
    _require_self(actor, partner_id, "change availability")
    current_domain.process(SetPartnerAvailability(partner_id=partner_id, is_active=body.is_active), asynchronous=False)
    return StatusResponse(status="online" if body.is_active else "offline")


@partner_router.put("/{partner_id}/location", response_model=StatusResponse)
async def update_partner_location(
    partner_id: str, body: LocationRequest, actor: Actor = Depends(current_actor)
) -> StatusResponse:
    _require(actor, "update a partner location", ActorRole.DELIVERY_PARTNER)
    _require_self(actor, partner_id, "update a location")
    command = UpdatePartnerLocation(partner_id=partner_id, latitude=body.latitude, longitude=body.longitude)
    current_domain.process(command, asynchronous=False)
    return StatusResponse(status="location_updated")


@partner_router.get("/{partner_id}/queue", response_model=list[PartnerQueueItemResponse])
async def partner_queue(
    partner_id: str,
    include_hidden: bool = False,
    actor: Actor = Depends(current_actor),
) -> list[PartnerQueueItemResponse]:
    """Delivery requests offered to the partner, newest first."""
    _require(actor, "view a partner queue", ActorRole.DELIVERY_PARTNER, ActorRole.ADMIN)
    _require_self(actor, partner_id, "view a queue")
    repo = current_domain.repository_for(PartnerQueueView)
    views = [v for v in repo._dao.query.filter(partner_id=partner_id).all().items if include_hidden or not v.hidden]
    views.sort(key=lambda v: v.assigned_at, reverse=True)
    return [
        PartnerQueueItemResponse(
            request_id=str(v.request_id),
            order_id=str(v.order_id),
            status=v.status,
            status_label=v.status_label,
            attempt=v.attempt,
            distance_km=v.distance_km,
            assigned_at=v.assigned_at,
        )
        for v in views
    ]


# ---------------------------------------------------------------------------
# Vendor Router
# ---------------------------------------------------------------------------
vendor_router = APIRouter(prefix="/vendors", tags=["vendors"])


@vendor_router.post("", status_code=201, response_model=VendorIdResponse)
async def register_vendor(
    body: RegisterVendorRequest,
    actor: Actor = Depends(current_actor),
    x_actor_id: str | None = Header(default=None),
) -> VendorIdResponse:
    _require(actor, "register a vendor", ActorRole.VENDOR, ActorRole.ADMIN)
    command = RegisterVendor(
        owner_id=x_actor_id or "admin",
        business_name=body.business_name,
        phone=body.phone,
        latitude=body.latitude,
        longitude=body.longitude,
    )
    result = current_domain.process(command, asynchronous=False)
    return VendorIdResponse(vendor_id=result)


@vendor_router.put("/{vendor_id}/location", response_model=StatusResponse)
async def update_vendor_location(
    vendor_id: str, body: LocationRequest, actor: Actor = Depends(current_actor)
) -> StatusResponse:
    _require(actor, "update a vendor location", ActorRole.VENDOR, ActorRole.ADMIN)
    _require_self(actor, vendor_id, "update a location")
    command = UpdateVendorLocation(vendor_id=vendor_id, latitude=body.latitude, longitude=body.longitude)
    current_domain.process(command, asynchronous=False)
    return StatusResponse(status="location_updated")


@vendor_router.put("/{vendor_id}/active", response_model=StatusResponse)
async def set_vendor_active(
    vendor_id: str, body: VendorActivationRequest, actor: Actor = Depends(current_actor)
) -> StatusResponse:
    """Open or close a vendor for new orders."""
    _require(actor, "change vendor activation", ActorRole.ADMIN)
    current_domain.process(SetVendorActive(vendor_id=vendor_id, is_active=body.is_active), asynchronous=False)
    return StatusResponse(status="active" if body.is_active else "inactive")


# ---------------------------------------------------------------------------
# Address Router
# ---------------------------------------------------------------------------
address_router = APIRouter(prefix="/addresses", tags=["addresses"])


@address_router.post("", status_code=201, response_model=AddressIdResponse)
async def add_address(body: AddressRequest, actor: Actor = Depends(current_actor)) -> AddressIdResponse:
    _require(actor, "add an address", ActorRole.CUSTOMER)
    command = AddAddress(customer_id=actor.actor_id, **body.model_dump())
    result = current_domain.process(command, asynchronous=False)
    return AddressIdResponse(address_id=result)


@address_router.get("", response_model=list[AddressResponse])
async def list_addresses(actor: Actor = Depends(current_actor)) -> list[AddressResponse]:
    _require(actor, "list addresses", ActorRole.CUSTOMER)
    repo = current_domain.repository_for(Address)
    addresses = repo._dao.query.filter(customer_id=actor.actor_id).all().items
    return [
        AddressResponse(
            address_id=str(a.id),
            label=a.label,
            full_address=a.full_address,
            city=a.city,
            state=a.state,
            pincode=a.pincode,
            phone=a.phone,
            is_default=bool(a.is_default),
            location=_point(a.coordinates),
        )
        for a in addresses
    ]


@address_router.put("/{address_id}", response_model=StatusResponse)
async def update_address(
    address_id: str, body: UpdateAddressRequest, actor: Actor = Depends(current_actor)
) -> StatusResponse:
    _require(actor, "update an address", ActorRole.CUSTOMER)
    command = UpdateAddress(address_id=address_id, customer_id=actor.actor_id, **body.model_dump())
    current_domain.process(command, asynchronous=False)
    return StatusResponse(status="updated")


@address_router.put("/{address_id}/default", response_model=StatusResponse)
async def set_default_address(address_id: str, actor: Actor = Depends(current_actor)) -> StatusResponse:
    _require(actor, "change the default address", ActorRole.CUSTOMER)
    current_domain.process(
        SetDefaultAddress(address_id=address_id, customer_id=actor.actor_id),
        asynchronous=False,
    )
    return StatusResponse(status="default_set")


# ---------------------------------------------------------------------------
# Tracking Router
# ---------------------------------------------------------------------------
tracking_router = APIRouter(prefix="/tracking", tags=["tracking"])


@tracking_router.post("/{order_id}/positions", status_code=201, response_model=PositionIdResponse)
async def record_position(
    order_id: str, body: RecordPositionRequest, actor: Actor = Depends(current_actor)
) -> PositionIdResponse:
    _require(actor, "report a position", ActorRole.DELIVERY_PARTNER)
    command = RecordPosition(
        order_id=order_id,
        partner_id=actor.actor_id,
        latitude=body.latitude,
        longitude=body.longitude,
        recorded_at=body.recorded_at,
    )
    result = current_domain.process(command, asynchronous=False)
    return PositionIdResponse(position_id=result)


@tracking_router.get("/{order_id}", response_model=TrackingResponse)
async def latest_position(order_id: str, actor: Actor = Depends(current_actor)) -> TrackingResponse:
    order = load(Order, order_id)
    if not _can_view(order, actor):
        raise AuthorizationError(f"{actor.role.value} may not track this order")
    view = current_domain.repository_for(LiveTrackingView)._dao.query.filter(order_id=order_id).all().first
    if view is None:
        raise NotFoundError(f"no tracking for order {order_id}")
    return TrackingResponse(
        order_id=str(view.order_id),
        partner_id=str(view.partner_id) if view.partner_id else None,
        latitude=view.latitude,
        longitude=view.longitude,
        recorded_at=view.recorded_at,
        is_live=bool(view.is_live),
    )


routers = [order_router, partner_router, vendor_router, address_router, tracking_router]
