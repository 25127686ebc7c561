from __future__ import annotations
from dataclasses import dataclass
from math import asin, cos, radians, sin, sqrt

"""
Geospatial helpers.

A tiny geometry layer so the store and the proximity ranking can do distance
calculations without pulling in heavier GIS dependencies.
"""

EARTH_RADIUS_KM = 6371.0


@dataclass(frozen=True)
class GeoPoint:
    """A latitude/longitude pair in decimal degrees."""

    lat: float
    lon: float


def _haversine_central_angle(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    phi1 = radians(lat1)
    phi2 = radians(lat2)
    dlat = phi2 - phi1
    dlon = radians(lon2) - radians(lon1)

    h = sin(dlat / 2) ** 2 + cos(phi1) * cos(phi2) * sin(dlon / 2) ** 2
    # Floating error can push h a hair above 1 for antipodal points.
    return 2 * asin(sqrt(min(1.0, h)))


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Unrounded great-circle distance in kilometres."""
    return EARTH_RADIUS_KM * _haversine_central_angle(float(lat1), float(lon1), float(lat2), float(lon2))


def distance_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in kilometres, rounded to one decimal place.

    Symmetric in its two points and exactly 0.0 for identical coordinates.
    """
    return round(haversine_km(lat1, lon1, lat2, lon2), 1)
