"""Assignment resolver abstraction — pluggable nearest-partner lookup."""

import os

_resolver_instance = None


def get_resolver():
    """Return the configured assignment resolver (singleton).

    Uses NearestPartnerResolver by default. Select another adapter with the
    ASSIGNMENT_RESOLVER environment variable.
    """
    global _resolver_instance
    if _resolver_instance is None:
        adapter = os.environ.get("ASSIGNMENT_RESOLVER", "nearest")
        if adapter == "nearest":
            from dispatch.assignment.nearest import NearestPartnerResolver

            _resolver_instance = NearestPartnerResolver()
        elif adapter == "fake":
            from dispatch.assignment.fake_adapter import FakeResolver

            _resolver_instance = FakeResolver()
        else:
            raise ValueError(f"Unknown assignment resolver: {adapter}")
    return _resolver_instance


def reset_resolver():
    """Reset the resolver singleton (useful for testing)."""
    global _resolver_instance
    _resolver_instance = None
