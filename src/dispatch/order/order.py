"""Order aggregate (CQRS) — the core of the dispatch domain.

The Order owns its delivery requests, so the order status and the status of
the current delivery request are always written in one repository call and
can never be observed out of step. Every transition is decided by the
lifecycle engine; the aggregate only applies the outcome.

State Machine (order / current request):
    pending/- → approved/- → assigned/assigned → approved/accepted →
    picked_up/picked_up → out_for_delivery/out_for_delivery → delivered/delivered
    assigned/assigned → approved/rejected_by_partner → assigned/assigned (next attempt)
    {pending, approved, assigned} → rejected_by_vendor
    any non-terminal → cancelled
"""

import json
from datetime import UTC, datetime
from enum import Enum

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import (
    Boolean,
    DateTime,
    Float,
    HasMany,
    Identifier,
    Integer,
    String,
    ValueObject,
)

from dispatch.domain import dispatch
from dispatch.engine.errors import AuthorizationError, ConflictError, NotFoundError
from dispatch.engine.statuses import (
    ACTIVE_REQUEST_STATUSES,
    TERMINAL_REQUEST_STATUSES,
    Action,
    ActorRole,
    OrderStatus,
    RequestStatus,
)
from dispatch.engine.transitions import (
    Actor,
    LifecycleState,
    SideEffect,
    Transition,
    decide,
    dispatch_state as state_for_dashboard,
    ensure_allowed,
    is_consistent,
)
from dispatch.order.events import (
    DeliveryPartnerAssigned,
    DeliveryRequestAccepted,
    DeliveryRequestDismissed,
    DeliveryRequestRejected,
    OrderApproved,
    OrderArchived,
    OrderCancelled,
    OrderDelivered,
    OrderOutForDelivery,
    OrderPaid,
    OrderPickedUp,
    OrderPlaced,
    OrderRejectedByVendor,
)
from dispatch.shared.coordinates import Coordinates


class PaymentStatus(Enum):
    PENDING = "pending"
    PAID = "paid"


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@dispatch.value_object(part_of="Order")
class DeliveryAddress:
    """Copy of the customer's address taken at checkout.

    Later edits to the address book never move an order that is already placed.
    """

    label = String(max_length=50)
    full_address = String(required=True, max_length=500)
    city = String(required=True, max_length=100)
    state = String(max_length=100)
    pincode = String(required=True, max_length=20)
    phone = String(max_length=20)
    coordinates = ValueObject(Coordinates)


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@dispatch.entity(part_of="Order")
class OrderItem:
    """A product line captured at checkout."""

    product_id = Identifier(required=True)
    product_name = String(required=True, max_length=255)
    unit_price = Float(required=True, min_value=0.0)
    quantity = Integer(required=True, min_value=1)

    @property
    def line_total(self) -> float:
        return round(self.unit_price * self.quantity, 2)


@dispatch.entity(part_of="Order")
class DeliveryRequest:
    """One attempt at handing the order to a delivery partner.

    An order collects a request per assignment attempt; the one with the
    highest ``attempt`` is the current request.
    """

    partner_id = Identifier(required=True)
    vendor_id = Identifier(required=True)
    attempt = Integer(required=True, min_value=1)
    status = String(
        max_length=50,
        choices=RequestStatus,
        default=RequestStatus.ASSIGNED.value,
    )
    distance_km = Float()
    assigned_at = DateTime()
    responded_at = DateTime()
    picked_up_at = DateTime()
    delivered_at = DateTime()
    hidden_by_partner = Boolean(default=False)

    @property
    def is_active(self) -> bool:
        return RequestStatus(self.status) in ACTIVE_REQUEST_STATUSES


# ---------------------------------------------------------------------------
# Aggregate Root (CQRS)
# ---------------------------------------------------------------------------
@dispatch.aggregate
class Order:
    customer_id = Identifier(required=True)
    vendor_id = Identifier(required=True)
    address_id = Identifier()
    delivery_address = ValueObject(DeliveryAddress)
    items = HasMany(OrderItem)
    delivery_requests = HasMany(DeliveryRequest)
    subtotal = Float(default=0.0, min_value=0.0)
    discount = Float(default=0.0, min_value=0.0)
    final_amount = Float(default=0.0, min_value=0.0)
    payment_method = String(max_length=50)
    payment_status = String(
        max_length=20,
        choices=PaymentStatus,
        default=PaymentStatus.PENDING.value,
    )
    delivery_status = String(
        max_length=50,
        choices=OrderStatus,
        default=OrderStatus.PENDING.value,
    )
    ordered_for_someone_else = Boolean(default=False)
    alternate_drop = ValueObject(Coordinates)
    rejection_reason = String(max_length=500)
    cancellation_reason = String(max_length=500)
    archived = Boolean(default=False)
    revision = Integer(default=0)
    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Invariants
    # -------------------------------------------------------------------
    @invariant.post
    def order_and_request_status_agree(self):
        request = self.current_request
        request_status = RequestStatus(request.status) if request else None
        if not is_consistent(OrderStatus(self.delivery_status), request_status):
            raise ValidationError(
                {
                    "delivery_status": [
                        f"Order status {self.delivery_status} does not match "
                        f"request status {request_status.value if request_status else 'none'}"
                    ]
                }
            )

    @invariant.post
    def at_most_one_active_request(self):
        active = [r for r in (self.delivery_requests or []) if r.is_active]
        if len(active) > 1:
            raise ValidationError({"delivery_requests": ["An order can have only one active delivery request"]})

    @invariant.post
    def alternate_drop_only_for_someone_else(self):
        if self.ordered_for_someone_else and self.alternate_drop is None:
            raise ValidationError({"alternate_drop": ["A drop location is required when ordering for someone else"]})
        if self.alternate_drop is not None and not self.ordered_for_someone_else:
            raise ValidationError({"alternate_drop": ["A drop location is only used when ordering for someone else"]})

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def place(
        cls,
        customer_id: str,
        vendor_id: str,
        items_data: list[dict],
        delivery_address: DeliveryAddress | None = None,
        address_id: str | None = None,
        discount: float = 0.0,
        payment_method: str | None = None,
        alternate_drop: Coordinates | None = None,
    ):
        """Check out a cart into a pending order."""
        if not items_data:
            raise ValidationError({"items": ["An order must contain at least one item"]})

        subtotal = round(sum(float(i["unit_price"]) * int(i["quantity"]) for i in items_data), 2)
        discount = round(discount or 0.0, 2)
        if discount > subtotal:
            raise ValidationError({"discount": ["Discount cannot exceed the order subtotal"]})

        now = datetime.now(UTC)
        order = cls(
            customer_id=customer_id,
            vendor_id=vendor_id,
            address_id=address_id,
            delivery_address=delivery_address,
            subtotal=subtotal,
            discount=discount,
            final_amount=round(subtotal - discount, 2),
            payment_method=payment_method,
            payment_status=PaymentStatus.PENDING.value,
            delivery_status=OrderStatus.PENDING.value,
            ordered_for_someone_else=alternate_drop is not None,
            alternate_drop=alternate_drop,
            revision=1,
            created_at=now,
            updated_at=now,
        )
        for item_data in items_data:
            order.add_items(OrderItem(**item_data))

        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                customer_id=customer_id,
                vendor_id=vendor_id,
                address_id=address_id,
                items=json.dumps(items_data),
                item_count=len(items_data),
                subtotal=order.subtotal,
                discount=order.discount,
                final_amount=order.final_amount,
                payment_method=payment_method,
                payment_status=order.payment_status,
                ordered_for_someone_else=order.ordered_for_someone_else,
                delivery_status=order.delivery_status,
                revision=order.revision,
                placed_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # Lifecycle helpers
    # -------------------------------------------------------------------
    @property
    def current_request(self) -> DeliveryRequest | None:
        requests = self.delivery_requests or []
        if not requests:
            return None
        return max(requests, key=lambda r: r.attempt)

    @property
    def drop_location(self) -> Coordinates | None:
        """Where the partner delivers: the alternate drop, else the checkout address."""
        if self.ordered_for_someone_else and self.alternate_drop is not None:
            return self.alternate_drop
        if self.delivery_address is not None:
            return self.delivery_address.coordinates
        return None

    @property
    def dispatch_state(self):
        request = self.current_request
        return state_for_dashboard(
            OrderStatus(self.delivery_status),
            RequestStatus(request.status) if request else None,
        )

    def lifecycle_state(self) -> LifecycleState:
        request = self.current_request
        return LifecycleState(
            order_status=OrderStatus(self.delivery_status),
            request_status=RequestStatus(request.status) if request else None,
            customer_id=str(self.customer_id),
            vendor_id=str(self.vendor_id),
            partner_id=str(request.partner_id) if request else None,
        )

    def partner_ids_tried(self) -> set[str]:
        """Partners that already turned this order down."""
        return {
            str(r.partner_id)
            for r in (self.delivery_requests or [])
            if r.status == RequestStatus.REJECTED_BY_PARTNER.value
        }

    def find_request(self, request_id: str) -> DeliveryRequest:
        request = next((r for r in (self.delivery_requests or []) if str(r.id) == str(request_id)), None)
        if request is None:
            raise NotFoundError(f"delivery request {request_id} not found on order {self.id}")
        return request

    def ensure_status(self, expected_status: str | None) -> None:
        """Optimistic check: the caller acted on ``expected_status``."""
        if expected_status and expected_status != self.delivery_status:
            raise ConflictError(f"order status changed from {expected_status} to {self.delivery_status}")

    def ensure_current_request(self, request_id: str, expected_status: str | None = None) -> DeliveryRequest:
        """Resolve ``request_id`` and make sure it is still the order's current request."""
        request = self.find_request(request_id)
        if request is not self.current_request:
            raise ConflictError("delivery request is no longer current for this order")
        if expected_status and expected_status != request.status:
            raise ConflictError(f"request status changed from {expected_status} to {request.status}")
        return request

    def _decide(self, actor: Actor, action: Action, **facts) -> Transition:
        return ensure_allowed(decide(self.lifecycle_state(), actor, action, **facts))

    def _apply(self, transition: Transition, now: datetime) -> DeliveryRequest | None:
        """Write the decided status pair, stamps and revision in one atomic change."""
        request = self.current_request
        with atomic_change(self):
            self.delivery_status = transition.order_status.value
            if request is not None and transition.request_status is not None:
                request.status = transition.request_status.value
            if request is not None and transition.has_effect(SideEffect.RECORD_PARTNER_RESPONSE):
                request.responded_at = now
            if request is not None and transition.has_effect(SideEffect.STAMP_PICKED_UP_AT):
                request.picked_up_at = now
            if request is not None and transition.has_effect(SideEffect.STAMP_DELIVERED_AT):
                request.delivered_at = now
            self.revision = (self.revision or 0) + 1
            self.updated_at = now
        return request

    @staticmethod
    def _status_of(request: DeliveryRequest | None) -> str | None:
        return request.status if request is not None else None

    # -------------------------------------------------------------------
    # Payment
    # -------------------------------------------------------------------
    def mark_paid(self, payment_method: str | None = None) -> None:
        if self.payment_status == PaymentStatus.PAID.value:
            raise ConflictError("order is already paid")
        now = datetime.now(UTC)
        self.payment_status = PaymentStatus.PAID.value
        if payment_method:
            self.payment_method = payment_method
        self.revision = (self.revision or 0) + 1
        self.updated_at = now
        self.raise_(
            OrderPaid(
                order_id=str(self.id),
                payment_method=self.payment_method,
                revision=self.revision,
                paid_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Vendor review
    # -------------------------------------------------------------------
    def approve(self, vendor_id: str) -> None:
        """Vendor accepts the order; it becomes eligible for assignment."""
        transition = self._decide(Actor(ActorRole.VENDOR, vendor_id), Action.APPROVE)
        now = datetime.now(UTC)
        self._apply(transition, now)
        self.raise_(
            OrderApproved(
                order_id=str(self.id),
                vendor_id=str(self.vendor_id),
                customer_id=str(self.customer_id),
                delivery_status=self.delivery_status,
                revision=self.revision,
                approved_at=now,
            )
        )

    def reject(self, vendor_id: str, reason: str | None = None) -> None:
        """Vendor declines the order. An unanswered delivery request is withdrawn."""
        transition = self._decide(Actor(ActorRole.VENDOR, vendor_id), Action.REJECT)
        now = datetime.now(UTC)
        self.rejection_reason = reason
        request = self._apply(transition, now)
        self.raise_(
            OrderRejectedByVendor(
                order_id=str(self.id),
                vendor_id=str(self.vendor_id),
                customer_id=str(self.customer_id),
                reason=reason,
                request_id=str(request.id) if request else None,
                request_status=self._status_of(request),
                delivery_status=self.delivery_status,
                revision=self.revision,
                rejected_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Assignment
    # -------------------------------------------------------------------
    def assign_partner(
        self,
        partner_id: str | None,
        *,
        vendor_location_known: bool,
        distance_km: float | None = None,
    ) -> DeliveryRequest:
        """Create the next delivery request for the partner the resolver picked.

        ``partner_id`` is None when the resolver found nobody; the engine then
        rejects with a dependency error and the order stays approved.
        """
        transition = self._decide(
            Actor(ActorRole.SYSTEM),
            Action.ASSIGN,
            vendor_location_known=vendor_location_known,
            partner_found=partner_id is not None,
        )
        now = datetime.now(UTC)
        request = DeliveryRequest(
            partner_id=partner_id,
            vendor_id=self.vendor_id,
            attempt=len(self.delivery_requests or []) + 1,
            status=transition.request_status.value,
            distance_km=round(distance_km, 3) if distance_km is not None else None,
            assigned_at=now,
        )
        with atomic_change(self):
            self.add_delivery_requests(request)
            self.delivery_status = transition.order_status.value
            self.revision = (self.revision or 0) + 1
            self.updated_at = now

        self.raise_(
            DeliveryPartnerAssigned(
                order_id=str(self.id),
                request_id=str(request.id),
                partner_id=partner_id,
                vendor_id=str(self.vendor_id),
                customer_id=str(self.customer_id),
                attempt=request.attempt,
                distance_km=request.distance_km,
                request_status=request.status,
                delivery_status=self.delivery_status,
                revision=self.revision,
                assigned_at=now,
            )
        )
        return request

    # -------------------------------------------------------------------
    # Delivery partner response
    # -------------------------------------------------------------------
    def accept_request(self, partner_id: str) -> DeliveryRequest:
        transition = self._decide(Actor(ActorRole.DELIVERY_PARTNER, partner_id), Action.ACCEPT)
        now = datetime.now(UTC)
        request = self._apply(transition, now)
        self.raise_(
            DeliveryRequestAccepted(
                order_id=str(self.id),
                request_id=str(request.id),
                partner_id=partner_id,
                request_status=request.status,
                delivery_status=self.delivery_status,
                revision=self.revision,
                accepted_at=now,
            )
        )
        return request

    def decline_request(self, partner_id: str) -> DeliveryRequest:
        transition = self._decide(Actor(ActorRole.DELIVERY_PARTNER, partner_id), Action.REJECT)
        now = datetime.now(UTC)
        request = self._apply(transition, now)
        self.raise_(
            DeliveryRequestRejected(
                order_id=str(self.id),
                request_id=str(request.id),
                partner_id=partner_id,
                request_status=request.status,
                delivery_status=self.delivery_status,
                revision=self.revision,
                rejected_at=now,
            )
        )
        return request

    # -------------------------------------------------------------------
    # Delivery progression
    # -------------------------------------------------------------------
    def mark_picked_up(self, partner_id: str) -> DeliveryRequest:
        transition = self._decide(Actor(ActorRole.DELIVERY_PARTNER, partner_id), Action.MARK_PICKED_UP)
        now = datetime.now(UTC)
        request = self._apply(transition, now)
        self.raise_(
            OrderPickedUp(
                order_id=str(self.id),
                request_id=str(request.id),
                partner_id=partner_id,
                request_status=request.status,
                delivery_status=self.delivery_status,
                revision=self.revision,
                picked_up_at=now,
            )
        )
        return request

    def mark_out_for_delivery(self, partner_id: str) -> DeliveryRequest:
        transition = self._decide(Actor(ActorRole.DELIVERY_PARTNER, partner_id), Action.MARK_OUT_FOR_DELIVERY)
        now = datetime.now(UTC)
        request = self._apply(transition, now)
        self.raise_(
            OrderOutForDelivery(
                order_id=str(self.id),
                request_id=str(request.id),
                partner_id=partner_id,
                request_status=request.status,
                delivery_status=self.delivery_status,
                revision=self.revision,
                departed_at=now,
            )
        )
        return request

    def mark_delivered(self, partner_id: str) -> DeliveryRequest:
        transition = self._decide(Actor(ActorRole.DELIVERY_PARTNER, partner_id), Action.MARK_DELIVERED)
        now = datetime.now(UTC)
        request = self._apply(transition, now)
        self.raise_(
            OrderDelivered(
                order_id=str(self.id),
                request_id=str(request.id),
                partner_id=partner_id,
                request_status=request.status,
                delivery_status=self.delivery_status,
                revision=self.revision,
                delivered_at=now,
            )
        )
        return request

    # -------------------------------------------------------------------
    # Cancellation and archival
    # -------------------------------------------------------------------
    def cancel(self, actor: Actor, reason: str | None = None) -> None:
        """Cancel the order. Customers may only cancel before pickup."""
        transition = self._decide(actor, Action.CANCEL)
        now = datetime.now(UTC)
        self.cancellation_reason = reason
        request = self._apply(transition, now)
        self.raise_(
            OrderCancelled(
                order_id=str(self.id),
                cancelled_by=actor.role.value,
                reason=reason,
                request_id=str(request.id) if request else None,
                request_status=self._status_of(request),
                delivery_status=self.delivery_status,
                revision=self.revision,
                cancelled_at=now,
            )
        )

    def archive(self, actor: Actor) -> None:
        """Hide a terminal order from its owner's list. Statuses are untouched."""
        self._decide(actor, Action.ARCHIVE)
        if self.archived:
            return
        now = datetime.now(UTC)
        self.archived = True
        self.revision = (self.revision or 0) + 1
        self.updated_at = now
        self.raise_(
            OrderArchived(
                order_id=str(self.id),
                archived_by=actor.role.value,
                delivery_status=self.delivery_status,
                revision=self.revision,
                archived_at=now,
            )
        )

    def dismiss_request(self, partner_id: str, request_id: str) -> None:
        """Partner hides a finished request from their dashboard."""
        request = self.find_request(request_id)
        if str(request.partner_id) != str(partner_id):
            raise AuthorizationError("delivery request belongs to another partner")
        if RequestStatus(request.status) not in TERMINAL_REQUEST_STATUSES:
            raise ConflictError(f"request is {request.status}; only finished requests can be dismissed")
        if request.hidden_by_partner:
            return
        now = datetime.now(UTC)
        request.hidden_by_partner = True
        self.revision = (self.revision or 0) + 1
        self.updated_at = now
        self.raise_(
            DeliveryRequestDismissed(
                order_id=str(self.id),
                request_id=str(request.id),
                partner_id=partner_id,
                revision=self.revision,
                dismissed_at=now,
            )
        )
