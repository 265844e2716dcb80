"""Port interface for naming the area around a coordinate."""

from abc import ABC, abstractmethod

from fieldops.domain.value_objects.geo_point import GeoPoint


class AreaLookup(ABC):
    @abstractmethod
    async def area_for(self, point: GeoPoint) -> str | None:
        """Return a human-readable area name, or None if unknown; never raises."""
        ...
