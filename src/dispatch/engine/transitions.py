"""Lifecycle Engine — pure transition decisions for orders and delivery requests.

``decide()`` takes the current lifecycle state, the acting party and the
requested action, and returns either a ``Transition`` (next order status,
next request status, side effects to execute) or a ``Rejection`` naming the
failed precondition. It never touches storage and never raises for a
well-typed input, so every client consults the same table.

State Machine (order / request):
    pending → approved → assigned/assigned → approved/accepted →
    picked_up/picked_up → out_for_delivery/out_for_delivery → delivered/delivered
    {pending, approved, assigned} → rejected_by_vendor          (vendor)
    assigned/assigned → approved/rejected_by_partner             (partner)
    any non-terminal → cancelled                                 (customer before pickup, admin)
"""

from dataclasses import dataclass, field
from enum import Enum

from dispatch.engine.errors import (
    AuthorizationError,
    ConflictError,
    DependencyUnavailable,
    LifecycleError,
)
from dispatch.engine.statuses import (
    ACTIVE_REQUEST_STATUSES,
    PICKED_UP_ORDER_STATUSES,
    PICKED_UP_REQUEST_STATUSES,
    TERMINAL_ORDER_STATUSES,
    Action,
    ActorRole,
    DispatchState,
    OrderStatus,
    RequestStatus,
)


class SideEffect(Enum):
    CREATE_DELIVERY_REQUEST = "create_delivery_request"
    RECORD_PARTNER_RESPONSE = "record_partner_response"
    RESYNC_ORDER_STATUS = "resync_order_status"
    STAMP_PICKED_UP_AT = "stamp_picked_up_at"
    STAMP_DELIVERED_AT = "stamp_delivered_at"
    START_TRACKING = "start_tracking"
    STOP_TRACKING = "stop_tracking"
    HIDE_ORDER = "hide_order"
    NOTIFY_CHANGE = "notify_change"


class RejectionKind(Enum):
    CONFLICT = "conflict"
    AUTHORIZATION = "authorization"
    DEPENDENCY = "dependency_unavailable"


_ERROR_FOR_KIND = {
    RejectionKind.CONFLICT: ConflictError,
    RejectionKind.AUTHORIZATION: AuthorizationError,
    RejectionKind.DEPENDENCY: DependencyUnavailable,
}


@dataclass(frozen=True)
class Actor:
    role: ActorRole
    actor_id: str | None = None


@dataclass(frozen=True)
class LifecycleState:
    """Snapshot of one order's lifecycle as freshly read from the record store.

    ``request_status`` is the status of the order's current (latest) delivery
    request, or None when the order never had one.
    """

    order_status: OrderStatus
    request_status: RequestStatus | None = None
    customer_id: str | None = None
    vendor_id: str | None = None
    partner_id: str | None = None

    @property
    def has_active_request(self) -> bool:
        return self.request_status in ACTIVE_REQUEST_STATUSES


@dataclass(frozen=True)
class Transition:
    action: Action
    order_status: OrderStatus
    request_status: RequestStatus | None
    side_effects: tuple[SideEffect, ...] = field(default_factory=tuple)

    def has_effect(self, effect: SideEffect) -> bool:
        return effect in self.side_effects


@dataclass(frozen=True)
class Rejection:
    kind: RejectionKind
    reason: str

    def to_error(self) -> LifecycleError:
        return _ERROR_FOR_KIND[self.kind](self.reason)


def _conflict(reason: str) -> Rejection:
    return Rejection(RejectionKind.CONFLICT, reason)


def _forbidden(reason: str) -> Rejection:
    return Rejection(RejectionKind.AUTHORIZATION, reason)


def _is_party(expected_id: str | None, actor: Actor) -> bool:
    return expected_id is None or expected_id == actor.actor_id


# ---------------------------------------------------------------------------
# Vendor rules
# ---------------------------------------------------------------------------
def _vendor_approve(state: LifecycleState, actor: Actor, **_facts) -> Transition | Rejection:
    if not _is_party(state.vendor_id, actor):
        return _forbidden("order belongs to another vendor")
    if state.request_status is not None:
        return _conflict("order already has a delivery request")
    if state.order_status != OrderStatus.PENDING:
        return _conflict(f"order is {state.order_status.value}, not pending")
    return Transition(Action.APPROVE, OrderStatus.APPROVED, None, (SideEffect.NOTIFY_CHANGE,))


def _vendor_reject(state: LifecycleState, actor: Actor, **_facts) -> Transition | Rejection:
    if not _is_party(state.vendor_id, actor):
        return _forbidden("order belongs to another vendor")
    if state.order_status not in (OrderStatus.PENDING, OrderStatus.APPROVED, OrderStatus.ASSIGNED):
        return _conflict(f"cannot reject an order that is {state.order_status.value}")
    if state.request_status == RequestStatus.ACCEPTED:
        return _conflict("delivery partner has already accepted the order")
    if state.request_status not in (None, RequestStatus.ASSIGNED, RequestStatus.REJECTED_BY_PARTNER):
        return _conflict(f"delivery request is already {state.request_status.value}")

    next_request = RequestStatus.CANCELLED if state.request_status == RequestStatus.ASSIGNED else state.request_status
    return Transition(Action.REJECT, OrderStatus.REJECTED_BY_VENDOR, next_request, (SideEffect.NOTIFY_CHANGE,))


# ---------------------------------------------------------------------------
# Assignment resolver rule
# ---------------------------------------------------------------------------
def _assign(
    state: LifecycleState,
    _actor: Actor,
    *,
    vendor_location_known: bool = False,
    partner_found: bool = False,
) -> Transition | Rejection:
    if state.order_status == OrderStatus.ASSIGNED or state.has_active_request:
        return _conflict("order already assigned to a delivery partner")
    if state.order_status != OrderStatus.APPROVED:
        return _conflict(f"order is {state.order_status.value}, not approved")
    if not vendor_location_known:
        return Rejection(RejectionKind.DEPENDENCY, "vendor location missing")
    if not partner_found:
        return Rejection(RejectionKind.DEPENDENCY, "no delivery partner available")
    return Transition(
        Action.ASSIGN,
        OrderStatus.ASSIGNED,
        RequestStatus.ASSIGNED,
        (SideEffect.CREATE_DELIVERY_REQUEST, SideEffect.NOTIFY_CHANGE),
    )


# ---------------------------------------------------------------------------
# Delivery partner rules
# ---------------------------------------------------------------------------
def _partner_guard(state: LifecycleState, actor: Actor, expected: RequestStatus) -> Rejection | None:
    if state.request_status is None:
        return _conflict("order has no delivery request")
    if not _is_party(state.partner_id, actor):
        return _forbidden("order already assigned to another partner")
    if state.request_status != expected:
        return _conflict(f"request not in {expected.value} state")
    return None


def _partner_accept(state: LifecycleState, actor: Actor, **_facts) -> Transition | Rejection:
    rejection = _partner_guard(state, actor, RequestStatus.ASSIGNED)
    if rejection:
        return rejection
    return Transition(
        Action.ACCEPT,
        OrderStatus.APPROVED,
        RequestStatus.ACCEPTED,
        (
            SideEffect.RECORD_PARTNER_RESPONSE,
            SideEffect.RESYNC_ORDER_STATUS,
            SideEffect.NOTIFY_CHANGE,
        ),
    )


def _partner_reject(state: LifecycleState, actor: Actor, **_facts) -> Transition | Rejection:
    rejection = _partner_guard(state, actor, RequestStatus.ASSIGNED)
    if rejection:
        return rejection
    # The order drops back to approved so the resolver may try another partner
    return Transition(
        Action.REJECT,
        OrderStatus.APPROVED,
        RequestStatus.REJECTED_BY_PARTNER,
        (SideEffect.RECORD_PARTNER_RESPONSE, SideEffect.NOTIFY_CHANGE),
    )


# action -> (required request status, next order status, next request status, extra effects)
_PARTNER_PROGRESSION = {
    Action.MARK_PICKED_UP: (
        RequestStatus.ACCEPTED,
        OrderStatus.PICKED_UP,
        RequestStatus.PICKED_UP,
        (SideEffect.STAMP_PICKED_UP_AT,),
    ),
    Action.MARK_OUT_FOR_DELIVERY: (
        RequestStatus.PICKED_UP,
        OrderStatus.OUT_FOR_DELIVERY,
        RequestStatus.OUT_FOR_DELIVERY,
        (SideEffect.START_TRACKING,),
    ),
    Action.MARK_DELIVERED: (
        RequestStatus.OUT_FOR_DELIVERY,
        OrderStatus.DELIVERED,
        RequestStatus.DELIVERED,
        (SideEffect.STAMP_DELIVERED_AT, SideEffect.STOP_TRACKING),
    ),
}


def _partner_progress(action: Action):
    required, next_order, next_request, effects = _PARTNER_PROGRESSION[action]

    def rule(state: LifecycleState, actor: Actor, **_facts) -> Transition | Rejection:
        rejection = _partner_guard(state, actor, required)
        if rejection:
            return rejection
        return Transition(action, next_order, next_request, effects + (SideEffect.NOTIFY_CHANGE,))

    return rule


# ---------------------------------------------------------------------------
# Cancellation and archival
# ---------------------------------------------------------------------------
def _cancelled(state: LifecycleState) -> Transition:
    effects = (SideEffect.NOTIFY_CHANGE,)
    if state.request_status == RequestStatus.OUT_FOR_DELIVERY:
        effects = (SideEffect.STOP_TRACKING, SideEffect.NOTIFY_CHANGE)
    next_request = RequestStatus.CANCELLED if state.has_active_request else state.request_status
    return Transition(Action.CANCEL, OrderStatus.CANCELLED, next_request, effects)


def _customer_cancel(state: LifecycleState, actor: Actor, **_facts) -> Transition | Rejection:
    if not _is_party(state.customer_id, actor):
        return _forbidden("order belongs to another customer")
    if state.order_status in PICKED_UP_ORDER_STATUSES or state.request_status in PICKED_UP_REQUEST_STATUSES:
        return _conflict("cannot cancel after pickup")
    return _cancelled(state)


def _admin_cancel(state: LifecycleState, _actor: Actor, **_facts) -> Transition | Rejection:
    return _cancelled(state)


def _archive(state: LifecycleState, actor: Actor, **_facts) -> Transition | Rejection:
    if actor.role == ActorRole.CUSTOMER and not _is_party(state.customer_id, actor):
        return _forbidden("order belongs to another customer")
    if state.order_status not in TERMINAL_ORDER_STATUSES:
        return _conflict("only delivered, cancelled or rejected orders can be archived")
    return Transition(Action.ARCHIVE, state.order_status, state.request_status, (SideEffect.HIDE_ORDER,))


_RULES = {
    (ActorRole.VENDOR, Action.APPROVE): _vendor_approve,
    (ActorRole.VENDOR, Action.REJECT): _vendor_reject,
    (ActorRole.SYSTEM, Action.ASSIGN): _assign,
    (ActorRole.DELIVERY_PARTNER, Action.ACCEPT): _partner_accept,
    (ActorRole.DELIVERY_PARTNER, Action.REJECT): _partner_reject,
    (ActorRole.DELIVERY_PARTNER, Action.MARK_PICKED_UP): _partner_progress(Action.MARK_PICKED_UP),
    (ActorRole.DELIVERY_PARTNER, Action.MARK_OUT_FOR_DELIVERY): _partner_progress(Action.MARK_OUT_FOR_DELIVERY),
    (ActorRole.DELIVERY_PARTNER, Action.MARK_DELIVERED): _partner_progress(Action.MARK_DELIVERED),
    (ActorRole.CUSTOMER, Action.CANCEL): _customer_cancel,
    (ActorRole.ADMIN, Action.CANCEL): _admin_cancel,
    (ActorRole.CUSTOMER, Action.ARCHIVE): _archive,
    (ActorRole.ADMIN, Action.ARCHIVE): _archive,
}


def allowed_actions(role: ActorRole) -> set[Action]:
    """Actions a role may ever request, regardless of state."""
    return {action for (rule_role, action) in _RULES if rule_role == role}


def decide(
    state: LifecycleState,
    actor: Actor,
    action: Action,
    *,
    vendor_location_known: bool = False,
    partner_found: bool = False,
) -> Transition | Rejection:
    """Decide the outcome of ``action`` requested by ``actor`` on ``state``.

    The two facts only matter for ``assign``: they are what the assignment
    resolver found out about the vendor location and partner availability.
    """
    rule = _RULES.get((actor.role, action))
    if rule is None:
        return _forbidden(f"{actor.role.value} may not {action.value.replace('_', ' ')} an order")

    if state.order_status in TERMINAL_ORDER_STATUSES and action != Action.ARCHIVE:
        return _conflict(f"order is already {state.order_status.value}")

    if action == Action.ASSIGN:
        return rule(
            state,
            actor,
            vendor_location_known=vendor_location_known,
            partner_found=partner_found,
        )
    return rule(state, actor)


def ensure_allowed(outcome: Transition | Rejection) -> Transition:
    """Return the transition, or raise the error matching the rejection."""
    if isinstance(outcome, Rejection):
        raise outcome.to_error()
    return outcome


# ---------------------------------------------------------------------------
# Pair consistency and derived views
# ---------------------------------------------------------------------------
_CONSISTENT_PAIRS = {
    None: {
        OrderStatus.PENDING,
        OrderStatus.APPROVED,
        OrderStatus.CANCELLED,
        OrderStatus.REJECTED_BY_VENDOR,
    },
    RequestStatus.ASSIGNED: {OrderStatus.ASSIGNED},
    RequestStatus.ACCEPTED: {OrderStatus.APPROVED},
    RequestStatus.REJECTED_BY_PARTNER: {
        OrderStatus.APPROVED,
        OrderStatus.CANCELLED,
        OrderStatus.REJECTED_BY_VENDOR,
    },
    RequestStatus.PICKED_UP: {OrderStatus.PICKED_UP},
    RequestStatus.OUT_FOR_DELIVERY: {OrderStatus.OUT_FOR_DELIVERY},
    RequestStatus.DELIVERED: {OrderStatus.DELIVERED},
    RequestStatus.CANCELLED: {OrderStatus.CANCELLED, OrderStatus.REJECTED_BY_VENDOR},
}


def is_consistent(order_status: OrderStatus, request_status: RequestStatus | None) -> bool:
    """True when the order / current-request status pair is reachable."""
    return order_status in _CONSISTENT_PAIRS.get(request_status, set())


def consistent_pairs() -> list[tuple[OrderStatus, RequestStatus | None]]:
    return [(order, request) for request, orders in _CONSISTENT_PAIRS.items() for order in orders]


def dispatch_state(order_status: OrderStatus, request_status: RequestStatus | None) -> DispatchState:
    if order_status in TERMINAL_ORDER_STATUSES:
        return DispatchState.CLOSED
    if order_status == OrderStatus.PENDING:
        return DispatchState.AWAITING_VENDOR
    if request_status == RequestStatus.ASSIGNED:
        return DispatchState.AWAITING_PARTNER
    if order_status == OrderStatus.APPROVED and request_status not in ACTIVE_REQUEST_STATUSES:
        return DispatchState.NO_PARTNER_AVAILABLE
    return DispatchState.IN_PROGRESS
