from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Iterable

from ..errors import InvalidQueryParameter
from ..recommendations.models import Restaurant

logger = logging.getLogger(__name__)

EARTH_RADIUS_KM = 6371.0
KM_PER_DEGREE = 111.0


@dataclass(frozen=True)
class BoundingBox:
    """Cheap rectangular pre-filter around an origin.

    ``d_lon`` is ``None`` when the search circle reaches a pole, in which
    case every longitude is admitted.
    """

    origin_lat: float
    origin_lon: float
    d_lat: float
    d_lon: float | None

    def contains(self, lat: float, lon: float) -> bool:
        if abs(lat - self.origin_lat) > self.d_lat:
            return False
        if self.d_lon is None:
            return True
        return longitude_delta(self.origin_lon, lon) <= self.d_lon


@dataclass(frozen=True)
class GeoMatch:
    restaurant: Restaurant
    distance_km: float


def longitude_delta(a: float, b: float) -> float:
    """Absolute longitude difference in degrees, wrapped across the antimeridian."""
    return abs((b - a + 180.0) % 360.0 - 180.0)


def validate_origin(origin_lat: float, origin_lon: float) -> None:
    if not (math.isfinite(origin_lat) and -90.0 <= origin_lat <= 90.0):
        raise InvalidQueryParameter(f"origin latitude out of range: {origin_lat}")
    if not (math.isfinite(origin_lon) and -180.0 <= origin_lon <= 180.0):
        raise InvalidQueryParameter(f"origin longitude out of range: {origin_lon}")


def validate_radius(radius_km: float) -> None:
    if not (math.isfinite(radius_km) and radius_km > 0):
        raise InvalidQueryParameter(f"radius must be a positive number of km, got {radius_km}")


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in kilometres between two WGS84 points."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlambda = math.radians(lon2 - lon1)

    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(max(0.0, 1 - a)))
    return EARTH_RADIUS_KM * c


def _longitude_span(origin_lat: float, radius_km: float) -> float | None:
    cos_lat = math.cos(math.radians(origin_lat))
    angular = radius_km / EARTH_RADIUS_KM
    if cos_lat <= 0.0 or angular >= math.pi / 2 or math.sin(angular) >= cos_lat:
        return None

    approx = radius_km / (KM_PER_DEGREE * cos_lat)
    # The flat approximation under-reaches for wide circles at high latitudes.
    exact = math.degrees(math.asin(math.sin(angular) / cos_lat))
    d_lon = max(approx, exact)
    if not math.isfinite(d_lon) or d_lon >= 180.0:
        return None
    return d_lon


def bounding_box(origin_lat: float, origin_lon: float, radius_km: float) -> BoundingBox:
    validate_origin(origin_lat, origin_lon)
    validate_radius(radius_km)
    return BoundingBox(
        origin_lat=origin_lat,
        origin_lon=origin_lon,
        d_lat=radius_km / KM_PER_DEGREE,
        d_lon=_longitude_span(origin_lat, radius_km),
    )


def _coordinates(restaurant: Restaurant) -> tuple[float, float] | None:
    lat, lon = restaurant.latitude, restaurant.longitude
    if lat is None or lon is None:
        return None
    try:
        lat, lon = float(lat), float(lon)
    except (TypeError, ValueError):
        return None
    if not (math.isfinite(lat) and math.isfinite(lon)):
        return None
    if not (-90.0 <= lat <= 90.0 and -180.0 <= lon <= 180.0):
        return None
    return lat, lon


def filter_by_radius(
    candidates: Iterable[Restaurant],
    origin_lat: float,
    origin_lon: float,
    radius_km: float,
) -> list[GeoMatch]:
    """
    Keep candidates whose great-circle distance to the origin is at most
    ``radius_km``.

    A bounding box discards far-away candidates before the Haversine
    refinement. Candidates without usable coordinates are skipped. The
    result preserves input order.
    """
    box = bounding_box(origin_lat, origin_lon, radius_km)

    matches: list[GeoMatch] = []
    for restaurant in candidates:
        coords = _coordinates(restaurant)
        if coords is None:
            logger.debug("Skipping %s: no usable coordinates", restaurant.id)
            continue
        lat, lon = coords
        if not box.contains(lat, lon):
            continue
        distance = haversine_km(origin_lat, origin_lon, lat, lon)
        if distance <= radius_km:
            matches.append(GeoMatch(restaurant=restaurant, distance_km=distance))

    return matches
