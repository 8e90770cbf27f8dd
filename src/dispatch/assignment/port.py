"""Assignment resolver port — finds the delivery partner for an approved order.

The Order aggregate decides whether an assignment is allowed; the resolver
only answers "who is nearest". Adapters are swapped via configuration.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass

from dispatch.shared.coordinates import Coordinates


@dataclass(frozen=True)
class Candidate:
    partner_id: str
    distance_km: float


class AssignmentResolverPort(ABC):
    """Abstract interface for assignment resolvers."""

    @abstractmethod
    def find_nearest(self, origin: Coordinates, exclude: set[str] | None = None) -> Candidate | None:
        """Return the closest available partner to ``origin``.

        Partners in ``exclude`` are skipped. Returns None when nobody is available.
        """
        ...
