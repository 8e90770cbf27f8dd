"""Lifecycle error taxonomy.

Every error carries a human-readable ``reason`` naming the precondition that
failed, so clients can refresh and show the actual current state instead of
retrying blindly.
"""


class LifecycleError(Exception):
    """Base class for rejected lifecycle operations."""

    kind = "lifecycle_error"

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(reason)

    def to_dict(self) -> dict:
        return {"error": self.kind, "reason": self.reason}


class ConflictError(LifecycleError):
    """The record changed since it was last read. Refetch, then decide again."""

    kind = "conflict"


class AuthorizationError(LifecycleError):
    """The actor may not perform the requested action. Never retried."""

    kind = "authorization"


class NotFoundError(LifecycleError):
    """A referenced order, request, partner or vendor does not exist."""

    kind = "not_found"


class DependencyUnavailable(LifecycleError):
    """A collaborator could not satisfy the request (no partner, no location).

    Recoverable: the vendor may retry later. Shown as its own UI state.
    """

    kind = "dependency_unavailable"
