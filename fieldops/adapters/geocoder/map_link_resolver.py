"""Map-link location resolver — implements LocationResolver."""

from __future__ import annotations

import logging

import httpx

from fieldops.adapters.geocoder.location_parser import is_short_link, parse_coordinates
from fieldops.application.ports.location_resolver import LocationResolver
from fieldops.config import settings
from fieldops.domain.value_objects.geo_point import GeoPoint

logger = logging.getLogger(__name__)


class MapLinkResolver(LocationResolver):
    """Parses coordinates from the reference, expanding shortened links once, with caching."""

    def __init__(
        self,
        resolve_short_links: bool | None = None,
        timeout: float | None = None,
        user_agent: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._resolve_short = settings.resolve_short_links if resolve_short_links is None else resolve_short_links
        self._timeout = timeout or settings.http_timeout_seconds
        self._user_agent = user_agent or settings.geocoder_user_agent
        self._transport = transport
        self._cache: dict[str, GeoPoint | None] = {}

    async def resolve(self, location_ref: str | None) -> GeoPoint | None:
        """Resolve a location reference to GeoPoint.

        Strategy:
        1. Check in-memory cache (parse misses are cached too)
        2. Parse coordinates straight from the text
        3. Expand a shortened link and parse the target

        A failed expansion is not cached, the next call tries the network again.
        """
        if not location_ref or not location_ref.strip():
            return None
        cache_key = location_ref.strip()

        if cache_key in self._cache:
            logger.debug("Cache hit for '%s'", cache_key)
            return self._cache[cache_key]

        point = parse_coordinates(cache_key)
        if point is None and self._resolve_short and is_short_link(cache_key):
            try:
                target = await self._expand(cache_key)
            except httpx.HTTPError:
                logger.warning("Short link resolution failed for '%s'", cache_key, exc_info=True)
                return None
            if target != cache_key:
                point = parse_coordinates(target)

        if point is None:
            logger.info("No coordinates found in '%s'", cache_key)
        self._cache[cache_key] = point
        return point

    async def _expand(self, url: str) -> str:
        """Follow a single redirect and return its target."""
        async with httpx.AsyncClient(
            transport=self._transport,
            timeout=self._timeout,
            follow_redirects=False,
            headers={"User-Agent": self._user_agent},
        ) as client:
            response = await client.get(url)
        location = response.headers.get("location")
        if location:
            target = str(response.url.join(location))
            logger.info("Short link '%s' → '%s'", url, target)
            return target
        return str(response.url)
