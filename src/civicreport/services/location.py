"""
Location collaborator + reverse geocoding (OpenStreetMap Nominatim).

Acquiring a position belongs to the caller's platform (GPS, browser, CLI flags).
The core only needs:
- a `LocationProvider` that returns coordinates or raises `PermissionDenied`,
- a best-effort address for those coordinates.

Failures never propagate: denial means "location unavailable" (None), and a
failed address lookup yields a placeholder address string.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol

import httpx

from civicreport.config.settings import Settings
from civicreport.core.geo import GeoPoint
from civicreport.core.http import get_json
from civicreport.domain.errors import PermissionDenied
from civicreport.domain.models import Location

logger = logging.getLogger(__name__)

UNKNOWN_ADDRESS = "Unknown location"
ADDRESS_ERROR = "Error getting address"


class LocationProvider(Protocol):
    def get_current_location(self) -> GeoPoint: ...


class StaticLocationProvider:
    """Returns a fixed point (CLI flags, API query params, tests)."""

    def __init__(self, point: GeoPoint | None):
        self._point = point

    def get_current_location(self) -> GeoPoint:
        if self._point is None:
            raise PermissionDenied("Location permission not granted")
        return self._point


class ReverseGeocoder(Protocol):
    def address_for(self, lat: float, lon: float) -> str: ...


class NullGeocoder:
    """Geocoding disabled: every point has an unknown address."""

    def address_for(self, lat: float, lon: float) -> str:
        return UNKNOWN_ADDRESS


def format_address(address: dict[str, Any]) -> str:
    """Join Nominatim address parts as "street, city, region, postcode, country"."""
    street = address.get("road") or address.get("pedestrian") or address.get("street")
    if street and address.get("house_number"):
        street = f"{address['house_number']} {street}"
    city = address.get("city") or address.get("town") or address.get("village")
    parts = [street, city, address.get("state"), address.get("postcode"), address.get("country")]
    return ", ".join(p for p in parts if p)


class NominatimGeocoder:
    """Reverse geocoder backed by the Nominatim `/reverse` endpoint."""

    def __init__(self, settings: Settings, *, transport: httpx.BaseTransport | None = None):
        self._settings = settings
        self._transport = transport

    def _fetch(self, lat: float, lon: float) -> dict[str, Any]:
        # Nominatim usage policy expects a descriptive UA and low rate.
        geo = self._settings.geocoding
        params = {"format": "jsonv2", "lat": f"{lat:.6f}", "lon": f"{lon:.6f}", "zoom": "18", "addressdetails": "1"}
        return get_json(
            f"{geo.base_url.rstrip('/')}/reverse",
            params=params,
            headers={"User-Agent": geo.user_agent},
            timeout_seconds=self._settings.app.http_timeout_seconds,
            transport=self._transport,
        )

    def address_for(self, lat: float, lon: float) -> str:
        try:
            payload = self._fetch(lat, lon)
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Reverse geocoding failed for %.5f,%.5f: %s", lat, lon, str(exc))
            return ADDRESS_ERROR
        address = payload.get("address") if isinstance(payload, dict) else None
        if not isinstance(address, dict):
            return UNKNOWN_ADDRESS
        return format_address(address) or UNKNOWN_ADDRESS


def build_geocoder(settings: Settings) -> ReverseGeocoder:
    if settings.geocoding.enabled:
        return NominatimGeocoder(settings)
    return NullGeocoder()


def resolve_current_location(provider: LocationProvider, geocoder: ReverseGeocoder) -> Location | None:
    """Current location with address, or None when the user denied access."""
    try:
        point = provider.get_current_location()
    except PermissionDenied as exc:
        logger.info("Location unavailable: %s", exc)
        return None
    return Location(
        latitude=point.lat,
        longitude=point.lon,
        address=geocoder.address_for(point.lat, point.lon),
    )
