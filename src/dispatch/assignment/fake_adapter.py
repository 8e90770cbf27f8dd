"""Fake assignment resolver — deterministic answers for testing and development."""

from dispatch.assignment.port import AssignmentResolverPort, Candidate
from dispatch.shared.coordinates import Coordinates


class FakeResolver(AssignmentResolverPort):
    """Returns a configured partner, or nobody."""

    def __init__(self):
        self.partner_id = None
        self.distance_km = 1.0
        self.calls = []

    def configure(self, partner_id: str | None = None, distance_km: float = 1.0):
        self.partner_id = partner_id
        self.distance_km = distance_km

    def find_nearest(self, origin: Coordinates, exclude: set[str] | None = None) -> Candidate | None:
        self.calls.append((origin, set(exclude or ())))
        if self.partner_id is None or self.partner_id in (exclude or ()):
            return None
        return Candidate(partner_id=self.partner_id, distance_km=self.distance_km)
