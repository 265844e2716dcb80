"""GeoPoint value object — immutable (lat, lon) pair."""

import math
from dataclasses import dataclass

EARTH_RADIUS_KM = 6371.0


@dataclass(frozen=True)
class GeoPoint:
    latitude: float
    longitude: float

    def __post_init__(self) -> None:
        if not -90.0 <= self.latitude <= 90.0:
            raise ValueError(f"Latitude out of range: {self.latitude}")
        if not -180.0 <= self.longitude <= 180.0:
            raise ValueError(f"Longitude out of range: {self.longitude}")

    @classmethod
    def try_create(cls, latitude: float | None, longitude: float | None) -> "GeoPoint | None":
        """Build a point from nullable/possibly invalid components, or return None."""
        if latitude is None or longitude is None:
            return None
        try:
            return cls(latitude=float(latitude), longitude=float(longitude))
        except (TypeError, ValueError):
            return None

    def haversine_km(self, other: "GeoPoint") -> float:
        """Great-circle distance in km between two points."""
        lat1 = math.radians(self.latitude)
        lat2 = math.radians(other.latitude)
        dlat = math.radians(other.latitude - self.latitude)
        dlon = math.radians(other.longitude - self.longitude)

        a = (
            math.sin(dlat / 2) ** 2
            + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2
        )
        c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

        return EARTH_RADIUS_KM * c


def distance_km(origin: GeoPoint | None, target: GeoPoint | None) -> float:
    """Distance between two optional points; unknown on either side is infinitely far."""
    if origin is None or target is None:
        return math.inf
    return origin.haversine_km(target)
