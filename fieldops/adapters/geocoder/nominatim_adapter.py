"""Nominatim reverse geocoder — names the neighbourhood a ticket sits in."""

from __future__ import annotations

import logging

import httpx

from fieldops.application.ports.area_lookup import AreaLookup
from fieldops.config import settings
from fieldops.domain.value_objects.geo_point import GeoPoint

logger = logging.getLogger(__name__)

NOMINATIM_REVERSE_URL = "https://nominatim.openstreetmap.org/reverse"

# Most specific first
AREA_KEYS = (
    "village",
    "suburb",
    "neighbourhood",
    "quarter",
    "city_district",
    "town",
    "city",
    "county",
)


class NominatimAreaLookup(AreaLookup):
    """Reverse geocoding with in-memory caching by rounded coordinates."""

    def __init__(
        self,
        user_agent: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._user_agent = user_agent or settings.geocoder_user_agent
        self._timeout = timeout or settings.http_timeout_seconds
        self._transport = transport
        self._cache: dict[tuple[float, float], str | None] = {}

    async def area_for(self, point: GeoPoint) -> str | None:
        cache_key = (round(point.latitude, 4), round(point.longitude, 4))
        if cache_key in self._cache:
            return self._cache[cache_key]

        try:
            address = await self._reverse(point)
        except (httpx.HTTPError, ValueError):
            # Not cached; the next ticket at this spot asks again
            logger.exception("Nominatim reverse lookup failed for (%f, %f)", point.latitude, point.longitude)
            return None

        area = next((address[key] for key in AREA_KEYS if address.get(key)), None)
        if area:
            logger.info("Nominatim area for (%f, %f): %s", point.latitude, point.longitude, area)
        self._cache[cache_key] = area
        return area

    async def _reverse(self, point: GeoPoint) -> dict:
        async with httpx.AsyncClient(transport=self._transport, timeout=self._timeout) as client:
            response = await client.get(
                NOMINATIM_REVERSE_URL,
                params={
                    "format": "json",
                    "lat": point.latitude,
                    "lon": point.longitude,
                    "zoom": 16,
                    "addressdetails": 1,
                },
                headers={"User-Agent": self._user_agent},
            )
            response.raise_for_status()
            return response.json().get("address") or {}
