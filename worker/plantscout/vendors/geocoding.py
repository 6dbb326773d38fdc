"""Google Geocoding helpers used to turn a zip code or city into a search area."""

import logging
import re
from typing import Any, Dict, Optional, Tuple

import requests

from plantscout.models import Bounds

logger = logging.getLogger(__name__)
_SESSION = requests.Session()
_GEOCODE_URL = "https://maps.googleapis.com/maps/api/geocode/json"
_ZIP_RE = re.compile(r"^\d{5}(-\d{4})?$")

# Roughly 15 miles, used when the geocoder returns a point without a viewport.
POINT_RADIUS_DEGREES = 0.15


class GeocodingError(RuntimeError):
    """Raised when a location cannot be resolved."""


def is_postal_code(location: str) -> bool:
    return bool(_ZIP_RE.match(location.strip()))


def build_address(location: str) -> str:
    """Append the country so zips (75001 is also Paris) and bare city names stay in the US."""
    return f"{location.strip()}, USA"


def _geocode(address: str, api_key: str) -> Dict[str, Any]:
    try:
        response = _SESSION.get(_GEOCODE_URL, params={"address": address, "key": api_key}, timeout=10)
        response.raise_for_status()
    except requests.RequestException as exc:
        logger.error("geocode request failed: address=%s error=%s", address, exc)
        raise GeocodingError(f'Could not geocode "{address}": {exc}') from exc
    return response.json() or {}


def _box(box: Optional[Dict[str, Any]]) -> Optional[Bounds]:
    if not box:
        return None
    southwest = box.get("southwest") or {}
    northeast = box.get("northeast") or {}
    try:
        return Bounds(
            low_lat=float(southwest["lat"]),
            low_lng=float(southwest["lng"]),
            high_lat=float(northeast["lat"]),
            high_lng=float(northeast["lng"]),
        )
    except (KeyError, TypeError, ValueError):
        return None


def geocode_to_bounds(location: str, api_key: str) -> Bounds:
    """Resolve a zip code or city name to the rectangle used to restrict text searches."""
    logger.info("Geocoding %s %s", "postal code" if is_postal_code(location) else "location", location)
    payload = _geocode(build_address(location), api_key)
    results = payload.get("results") or []
    status = payload.get("status")
    if status != "OK" or not results:
        logger.error("geocode failed: location=%s status=%s", location, status)
        raise GeocodingError(
            f'Could not geocode "{location}". Try a zip code (e.g. 75001) or city (e.g. Dallas, TX).'
        )

    geometry = results[0].get("geometry")
    if not geometry:
        raise GeocodingError(f'No geometry for "{location}"')

    bounds = _box(geometry.get("viewport")) or _box(geometry.get("bounds"))
    if bounds is not None:
        return bounds

    point = geometry.get("location")
    if not point:
        raise GeocodingError(f'No bounds for "{location}"')
    lat, lng = float(point["lat"]), float(point["lng"])
    return Bounds(
        low_lat=lat - POINT_RADIUS_DEGREES,
        low_lng=lng - POINT_RADIUS_DEGREES,
        high_lat=lat + POINT_RADIUS_DEGREES,
        high_lng=lng + POINT_RADIUS_DEGREES,
    )


def geocode_to_point(address: str, api_key: str) -> Tuple[float, float]:
    payload = _geocode(address, api_key)
    results = payload.get("results") or []
    if payload.get("status") != "OK" or not results:
        raise GeocodingError(f'Could not geocode "{address}".')
    point = (results[0].get("geometry") or {}).get("location")
    if not point:
        raise GeocodingError(f'No location for "{address}"')
    return float(point["lat"]), float(point["lng"])
