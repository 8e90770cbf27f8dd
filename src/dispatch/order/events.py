"""Order domain events — immutable facts about lifecycle changes.

All events are past tense and versioned. Every lifecycle event carries the
order's ``delivery_status``, the current request's ``request_status`` and the
order ``revision`` after the change, so read models and the change feed can
refresh idempotently without reloading the aggregate.
"""

from protean.fields import Boolean, DateTime, Float, Identifier, Integer, String, Text

from dispatch.domain import dispatch


@dispatch.event(part_of="Order")
class OrderPlaced:
    """A customer checked out and the order awaits vendor review."""

    __version__ = 1

    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    vendor_id = Identifier(required=True)
    address_id = Identifier()
    items = Text(required=True)  # JSON list of item snapshots
    item_count = Integer(required=True)
    subtotal = Float(required=True)
    discount = Float(default=0.0)
    final_amount = Float(required=True)
    payment_method = String()
    payment_status = String(required=True)
    ordered_for_someone_else = Boolean(default=False)
    delivery_status = String(required=True)
    revision = Integer(required=True)
    placed_at = DateTime(required=True)


@dispatch.event(part_of="Order")
class OrderPaid:
    """Payment for the order was captured."""

    __version__ = 1

    order_id = Identifier(required=True)
    payment_method = String()
    revision = Integer(required=True)
    paid_at = DateTime(required=True)


@dispatch.event(part_of="Order")
class OrderApproved:
    """The vendor accepted the order for fulfillment."""

    __version__ = 1

    order_id = Identifier(required=True)
    vendor_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    delivery_status = String(required=True)
    revision = Integer(required=True)
    approved_at = DateTime(required=True)


@dispatch.event(part_of="Order")
class OrderRejectedByVendor:
    """The vendor declined the order before a partner accepted it."""

    __version__ = 1

    order_id = Identifier(required=True)
    vendor_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    reason = String()
    request_id = Identifier()
    request_status = String()
    delivery_status = String(required=True)
    revision = Integer(required=True)
    rejected_at = DateTime(required=True)


@dispatch.event(part_of="Order")
class DeliveryPartnerAssigned:
    """The assignment resolver created a delivery request for the nearest partner."""

    __version__ = 1

    order_id = Identifier(required=True)
    request_id = Identifier(required=True)
    partner_id = Identifier(required=True)
    vendor_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    attempt = Integer(required=True)
    distance_km = Float()
    request_status = String(required=True)
    delivery_status = String(required=True)
    revision = Integer(required=True)
    assigned_at = DateTime(required=True)


@dispatch.event(part_of="Order")
class DeliveryRequestAccepted:
    """The assigned partner accepted the delivery request."""

    __version__ = 1

    order_id = Identifier(required=True)
    request_id = Identifier(required=True)
    partner_id = Identifier(required=True)
    request_status = String(required=True)
    delivery_status = String(required=True)
    revision = Integer(required=True)
    accepted_at = DateTime(required=True)


@dispatch.event(part_of="Order")
class DeliveryRequestRejected:
    """The assigned partner turned the request down; the order may be reassigned."""

    __version__ = 1

    order_id = Identifier(required=True)
    request_id = Identifier(required=True)
    partner_id = Identifier(required=True)
    request_status = String(required=True)
    delivery_status = String(required=True)
    revision = Integer(required=True)
    rejected_at = DateTime(required=True)


@dispatch.event(part_of="Order")
class OrderPickedUp:
    """The partner collected the goods from the vendor."""

    __version__ = 1

    order_id = Identifier(required=True)
    request_id = Identifier(required=True)
    partner_id = Identifier(required=True)
    request_status = String(required=True)
    delivery_status = String(required=True)
    revision = Integer(required=True)
    picked_up_at = DateTime(required=True)


@dispatch.event(part_of="Order")
class OrderOutForDelivery:
    """The partner is on the way to the drop location."""

    __version__ = 1

    order_id = Identifier(required=True)
    request_id = Identifier(required=True)
    partner_id = Identifier(required=True)
    request_status = String(required=True)
    delivery_status = String(required=True)
    revision = Integer(required=True)
    departed_at = DateTime(required=True)


@dispatch.event(part_of="Order")
class OrderDelivered:
    """The partner handed the goods over at the drop location."""

    __version__ = 1

    order_id = Identifier(required=True)
    request_id = Identifier(required=True)
    partner_id = Identifier(required=True)
    request_status = String(required=True)
    delivery_status = String(required=True)
    revision = Integer(required=True)
    delivered_at = DateTime(required=True)


@dispatch.event(part_of="Order")
class OrderCancelled:
    """The order was cancelled by its customer or an admin."""

    __version__ = 1

    order_id = Identifier(required=True)
    cancelled_by = String(required=True)
    reason = String()
    request_id = Identifier()
    request_status = String()
    delivery_status = String(required=True)
    revision = Integer(required=True)
    cancelled_at = DateTime(required=True)


@dispatch.event(part_of="Order")
class OrderArchived:
    """A terminal order was hidden from its owner's order list."""

    __version__ = 1

    order_id = Identifier(required=True)
    archived_by = String(required=True)
    delivery_status = String(required=True)
    revision = Integer(required=True)
    archived_at = DateTime(required=True)


@dispatch.event(part_of="Order")
class DeliveryRequestDismissed:
    """A partner removed a finished request from their dashboard."""

    __version__ = 1

    order_id = Identifier(required=True)
    request_id = Identifier(required=True)
    partner_id = Identifier(required=True)
    revision = Integer(required=True)
    dismissed_at = DateTime(required=True)
