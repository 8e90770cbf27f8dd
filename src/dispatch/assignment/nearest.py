"""Nearest partner resolver — great-circle distance over the partner roster."""

from protean.utils.globals import current_domain

from dispatch.assignment.port import AssignmentResolverPort, Candidate
from dispatch.partner.partner import DeliveryPartner
from dispatch.shared.coordinates import Coordinates


class NearestPartnerResolver(AssignmentResolverPort):
    """Picks the active, verified partner closest to the pickup point.

    Ties are broken by partner id so repeated lookups are deterministic.
    An optional ``max_distance_km`` bounds the search radius.
    """

    def __init__(self, max_distance_km: float | None = None):
        self.max_distance_km = max_distance_km

    def _roster(self) -> list[DeliveryPartner]:
        repo = current_domain.repository_for(DeliveryPartner)
        return repo._dao.query.filter(is_active=True, is_verified=True).all().items

    def find_nearest(self, origin: Coordinates, exclude: set[str] | None = None) -> Candidate | None:
        exclude = exclude or set()
        candidates = []
        for partner in self._roster():
            if str(partner.id) in exclude or not partner.is_assignable:
                continue
            distance = origin.distance_km(partner.location)
            if self.max_distance_km is not None and distance > self.max_distance_km:
                continue
            candidates.append(Candidate(partner_id=str(partner.id), distance_km=distance))

        if not candidates:
            return None
        return min(candidates, key=lambda c: (c.distance_km, c.partner_id))
