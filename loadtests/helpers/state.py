"""Per-user state tracking for Locust load test scenarios.

Each Locust user instance keeps its own state. It tracks the ids returned
by registration and checkout endpoints so follow-up calls can use them.
"""

from dataclasses import dataclass, field


@dataclass
class OrderJourneyState:
    """Tracks one simulated order from checkout to delivery."""

    vendor_id: str | None = None
    partner_id: str | None = None
    customer_id: str | None = None
    address_id: str | None = None
    order_id: str | None = None
    request_id: str | None = None
    assigned_partner_id: str | None = None
    current_status: str = "pending"
    positions_sent: int = 0
    declined_partner_ids: list[str] = field(default_factory=list)
