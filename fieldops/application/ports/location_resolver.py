"""Port interface for turning a free-text location reference into coordinates."""

from abc import ABC, abstractmethod

from fieldops.domain.value_objects.geo_point import GeoPoint


class LocationResolver(ABC):
    @abstractmethod
    async def resolve(self, location_ref: str | None) -> GeoPoint | None:
        """Return coordinates for the reference.

        Returns None if the reference cannot be resolved; never raises.
        """
        ...
