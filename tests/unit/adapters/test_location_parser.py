"""Tests for map-link coordinate parsing (no network)."""

import pytest

from fieldops.adapters.geocoder.location_parser import is_short_link, parse_coordinates
from fieldops.domain.value_objects.geo_point import GeoPoint

JAKARTA = GeoPoint(latitude=-6.2088, longitude=106.8456)


@pytest.mark.parametrize(
    "text",
    [
        "https://maps.google.com/?q=-6.2088,106.8456",
        "https://www.google.com/maps?q=loc:-6.2088,106.8456",
        "https://www.google.com/maps/@-6.2088,106.8456,17z",
        "https://www.google.com/maps/place/Monas/-6.2088,106.8456",
        "https://maps.apple.com/?ll=-6.2088,106.8456",
        "https://maps.example/embed?center=-6.2088,106.8456&zoom=15",
        "https://www.google.com/maps/place/Monas/data=!3m1!4b1!4m5!3m4!1s0x0:0x0!8m2!3d-6.2088!4d106.8456",
        "https://maps.example/dir/-6.2088,106.8456",
    ],
)
def test_link_patterns(text):
    assert parse_coordinates(text) == JAKARTA


def test_bare_pair_with_spaces():
    assert parse_coordinates("Rumah pagar hijau, -6.2088, 106.8456") == JAKARTA


def test_bare_pair_needs_four_decimals():
    assert parse_coordinates("Blok 12.5, 106.8") is None


def test_phone_numbers_are_not_coordinates():
    assert parse_coordinates("Call 0812-3456-7890 before arrival") is None


def test_out_of_range_pair_is_skipped():
    assert parse_coordinates("https://maps.example/?q=95.0000,106.8456") is None


def test_empty_reference():
    assert parse_coordinates(None) is None
    assert parse_coordinates("") is None


def test_short_link_detection():
    assert is_short_link("https://maps.app.goo.gl/AbCdEf")
    assert is_short_link("https://goo.gl/maps/xyz")
    assert is_short_link("https://bit.ly/3abc")
    assert not is_short_link("https://www.google.com/maps/@-6.2,106.8,17z")
    assert not is_short_link(None)
