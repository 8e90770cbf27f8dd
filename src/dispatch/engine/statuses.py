"""Lifecycle vocabulary — statuses, roles and actions shared by every client.

The enum values are wire values: they are persisted as-is and must match
exactly (case-sensitive) across the customer, vendor and partner clients.
"""

from enum import Enum


class OrderStatus(Enum):
    PENDING = "pending"
    APPROVED = "approved"
    ASSIGNED = "assigned"
    PICKED_UP = "picked_up"
    OUT_FOR_DELIVERY = "out_for_delivery"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    REJECTED_BY_VENDOR = "rejected_by_vendor"


class RequestStatus(Enum):
    ASSIGNED = "assigned"
    ACCEPTED = "accepted"
    REJECTED_BY_PARTNER = "rejected_by_partner"
    PICKED_UP = "picked_up"
    OUT_FOR_DELIVERY = "out_for_delivery"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class ActorRole(Enum):
    CUSTOMER = "customer"
    VENDOR = "vendor"
    DELIVERY_PARTNER = "delivery_partner"
    ADMIN = "admin"
    SYSTEM = "system"  # the assignment resolver


class Action(Enum):
    APPROVE = "approve"
    REJECT = "reject"
    ASSIGN = "assign"
    ACCEPT = "accept"
    MARK_PICKED_UP = "mark_picked_up"
    MARK_OUT_FOR_DELIVERY = "mark_out_for_delivery"
    MARK_DELIVERED = "mark_delivered"
    CANCEL = "cancel"
    ARCHIVE = "archive"


class DispatchState(Enum):
    """What the vendor dashboard shows for an order's delivery side."""

    AWAITING_VENDOR = "awaiting_vendor"
    NO_PARTNER_AVAILABLE = "no_partner_available"
    AWAITING_PARTNER = "awaiting_partner"
    IN_PROGRESS = "in_progress"
    CLOSED = "closed"


TERMINAL_ORDER_STATUSES = frozenset(
    {
        OrderStatus.DELIVERED,
        OrderStatus.CANCELLED,
        OrderStatus.REJECTED_BY_VENDOR,
    }
)

TERMINAL_REQUEST_STATUSES = frozenset(
    {
        RequestStatus.DELIVERED,
        RequestStatus.CANCELLED,
        RequestStatus.REJECTED_BY_PARTNER,
    }
)

ACTIVE_REQUEST_STATUSES = frozenset(set(RequestStatus) - TERMINAL_REQUEST_STATUSES)

# Statuses at or after pickup; the goods have left the vendor
PICKED_UP_REQUEST_STATUSES = frozenset({RequestStatus.PICKED_UP, RequestStatus.OUT_FOR_DELIVERY})
PICKED_UP_ORDER_STATUSES = frozenset({OrderStatus.PICKED_UP, OrderStatus.OUT_FOR_DELIVERY})

# Customer-facing progress timeline (branches are not steps)
TIMELINE = (
    OrderStatus.PENDING,
    OrderStatus.APPROVED,
    OrderStatus.ASSIGNED,
    OrderStatus.PICKED_UP,
    OrderStatus.OUT_FOR_DELIVERY,
    OrderStatus.DELIVERED,
)

STATUS_LABELS = {
    "pending": "Pending",
    "approved": "Approved",
    "assigned": "Assigned",
    "accepted": "Accepted",
    "picked_up": "Picked Up",
    "out_for_delivery": "Out for Delivery",
    "delivered": "Delivered",
    "cancelled": "Cancelled",
    "rejected_by_vendor": "Rejected by Vendor",
    "rejected_by_partner": "Rejected by Partner",
}


def status_label(status: OrderStatus | RequestStatus | str) -> str:
    """Human-readable label for an order or request status."""
    value = status.value if isinstance(status, Enum) else str(status)
    return STATUS_LABELS.get(value, value.replace("_", " ").title())


def timeline_position(status: OrderStatus | str) -> int:
    """Index of the status on the customer timeline; branches map to the first step."""
    try:
        status = OrderStatus(status) if isinstance(status, str) else status
    except ValueError:
        return 0
    return TIMELINE.index(status) if status in TIMELINE else 0
