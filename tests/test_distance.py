"""Tests for the haversine distance calculator."""

import math

import pytest

from courier_dispatch.core.exceptions import InvalidCoordinate
from courier_dispatch.shared.database.models import Address
from courier_dispatch.shared.schemas.common import Coordinate
from courier_dispatch.shared.services.distance import EARTH_RADIUS_KM, as_lat_lng, distance_km


class TestDistanceKm:
    def test_same_point_is_zero(self):
        assert distance_km((50.85, 4.35), (50.85, 4.35)) == 0.0

    def test_brussels_north_offset(self):
        # 0.05 degrees of latitude on a 6371 km sphere
        d = distance_km((50.85, 4.35), (50.90, 4.35))
        assert d == pytest.approx(5.56, abs=0.01)
        assert d == pytest.approx(EARTH_RADIUS_KM * math.radians(0.05))

    def test_symmetric(self):
        a, b = (50.85, 4.35), (51.22, 4.40)
        assert distance_km(a, b) == pytest.approx(distance_km(b, a))

    def test_quarter_meridian(self):
        assert distance_km((0, 0), (90, 0)) == pytest.approx(EARTH_RADIUS_KM * math.pi / 2)

    def test_accepts_mixed_inputs(self):
        expected = distance_km((50.85, 4.35), (50.90, 4.35))
        assert distance_km(Coordinate(lat=50.85, lng=4.35), {"lat": 50.90, "lng": 4.35}) == pytest.approx(expected)
        address = Address(street_name="Rue du Nord", house_number="1", postal_code="1000", lat=50.90, lng=4.35)
        assert distance_km([50.85, 4.35], address) == pytest.approx(expected)


class TestInvalidCoordinates:
    @pytest.mark.parametrize("value", [
        None,
        (50.85,),
        (50.85, None),
        {"lat": 50.85},
        {"lat": "north", "lng": 4.35},
        (float("nan"), 4.35),
        (91.0, 4.35),
        (50.85, -181.0),
    ])
    def test_rejected(self, value):
        with pytest.raises(InvalidCoordinate):
            distance_km(value, (50.85, 4.35))

    def test_address_without_coordinates(self):
        address = Address(street_name="Meir", house_number="1", postal_code="2000")
        with pytest.raises(InvalidCoordinate):
            distance_km((51.22, 4.40), address)

    def test_numeric_strings_are_accepted(self):
        assert as_lat_lng(("50.85", "4.35")) == (50.85, 4.35)
