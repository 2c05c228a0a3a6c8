# courier_dispatch/shared/services/distance.py
import math
from collections.abc import Mapping
from typing import Any, Tuple

from courier_dispatch.core.exceptions import InvalidCoordinate

EARTH_RADIUS_KM = 6371.0


def as_lat_lng(value: Any) -> Tuple[float, float]:
    """Accept a Coordinate, (lat, lng) pair, {"lat", "lng"} mapping or any object with lat/lng"""
    if value is None:
        raise InvalidCoordinate(value)

    if isinstance(value, (tuple, list)):
        if len(value) != 2:
            raise InvalidCoordinate(value, "expected a (lat, lng) pair")
        lat, lng = value
    elif isinstance(value, Mapping):
        lat, lng = value.get("lat"), value.get("lng")
    else:
        lat, lng = getattr(value, "lat", None), getattr(value, "lng", None)

    if lat is None or lng is None:
        raise InvalidCoordinate(value)

    try:
        lat, lng = float(lat), float(lng)
    except (TypeError, ValueError):
        raise InvalidCoordinate(value, "latitude and longitude must be numeric")

    if not (math.isfinite(lat) and math.isfinite(lng)):
        raise InvalidCoordinate(value, "latitude and longitude must be finite")
    if not -90.0 <= lat <= 90.0 or not -180.0 <= lng <= 180.0:
        raise InvalidCoordinate(value, "out of range")

    return lat, lng


def distance_km(a: Any, b: Any) -> float:
    """Great-circle (haversine) distance in kilometers."""
    lat1, lng1 = as_lat_lng(a)
    lat2, lng2 = as_lat_lng(b)

    dlat = math.radians(lat2 - lat1)
    dlng = math.radians(lng2 - lng1)
    h = (
        math.sin(dlat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(dlng / 2) ** 2
    )
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))
