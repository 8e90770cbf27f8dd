"""Dispatch bounded context — order fulfillment across customer, vendor and delivery partner.

Handles the order lifecycle from checkout through vendor review, delivery
partner assignment and last-mile delivery. Uses CQRS: the Order aggregate
owns its delivery requests so the order status and the request status are
always persisted together.
"""

from protean.domain import Domain

from dispatch.utils.logging import configure_logging, get_logger

# Configure logging for the application
configure_logging(log_dir="logs", log_file_prefix="dispatch")

logger = get_logger(__name__)

# Domain Composition Root
dispatch = Domain(name="dispatch")
