"""Coordinates value object — a latitude/longitude pair used across the context."""

import math

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import Float

from dispatch.domain import dispatch

EARTH_RADIUS_KM = 6371.0


@dispatch.value_object
class Coordinates:
    """Latitude/longitude pair.

    Both coordinates are required when provided; partial coordinates are rejected.
    Latitude ranges from -90 to 90, longitude from -180 to 180.
    """

    latitude = Float(min_value=-90.0, max_value=90.0)
    longitude = Float(min_value=-180.0, max_value=180.0)

    @invariant.post
    def both_coordinates_required(self):
        if self.latitude is None or self.longitude is None:
            raise ValidationError({"coordinates": ["Both latitude and longitude are required"]})

    def distance_km(self, other: "Coordinates") -> float:
        """Great-circle (haversine) distance to another point, in kilometres."""
        lat1, lon1 = math.radians(self.latitude), math.radians(self.longitude)
        lat2, lon2 = math.radians(other.latitude), math.radians(other.longitude)
        a = math.sin((lat2 - lat1) / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin((lon2 - lon1) / 2) ** 2
        return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(a))


def coordinates_or_none(latitude: float | None, longitude: float | None) -> Coordinates | None:
    if latitude is None and longitude is None:
        return None
    return Coordinates(latitude=latitude, longitude=longitude)
