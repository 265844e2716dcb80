"""Pull latitude/longitude out of map links and pasted coordinate pairs."""

from __future__ import annotations

import re

from fieldops.domain.value_objects.geo_point import GeoPoint

_NUM = r"(-?\d{1,3}(?:\.\d+)?)"

# Tried in order; the first pattern yielding an in-range pair wins
LINK_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(rf"[?&]q=(?:loc:)?{_NUM},\s*{_NUM}"),
    re.compile(rf"@{_NUM},{_NUM}"),
    re.compile(rf"place/(?:[^/]*/)?{_NUM},{_NUM}"),
    re.compile(rf"[?&]ll={_NUM},{_NUM}"),
    re.compile(rf"[?&]center={_NUM},{_NUM}"),
    re.compile(rf"!3d{_NUM}!4d{_NUM}"),
    re.compile(rf"/{_NUM},{_NUM}"),
)

# "-6.2088, 106.8456" typed by hand; at least 4 decimals so phone numbers do not match
BARE_PAIR = re.compile(r"(?<![\d.])(-?\d{1,2}\.\d{4,})\s*,\s*(-?\d{1,3}\.\d{4,})(?![\d.])")

SHORT_LINK_HOSTS = ("goo.gl", "maps.app", "bit.ly", "shorturl")


def parse_coordinates(text: str | None) -> GeoPoint | None:
    if not text:
        return None
    for pattern in LINK_PATTERNS:
        for match in pattern.finditer(text):
            point = _point(match)
            if point is not None:
                return point
    for match in BARE_PAIR.finditer(text):
        point = _point(match)
        if point is not None:
            return point
    return None


def is_short_link(text: str | None) -> bool:
    return bool(text) and any(host in text for host in SHORT_LINK_HOSTS)


def _point(match: re.Match[str]) -> GeoPoint | None:
    return GeoPoint.try_create(float(match.group(1)), float(match.group(2)))
