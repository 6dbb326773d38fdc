"""Distance of facilities from the sales team's reference location."""

import logging
import math
from typing import Any, Callable, Dict, Optional, Tuple

from plantscout.vendors.geocoding import GeocodingError, geocode_to_point

logger = logging.getLogger(__name__)

EARTH_RADIUS_MILES = 3959

Point = Tuple[float, float]


def haversine_miles(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance between two coordinates, in miles."""
    d_lat = math.radians(lat2 - lat1)
    d_lng = math.radians(lng2 - lng1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lng / 2) ** 2
    )
    return EARTH_RADIUS_MILES * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


class ReferenceLocationCache:
    """Geocodes the reference address once and remembers the result for the process lifetime.

    A failed lookup is remembered as well, so a bad key does not cost one
    geocoding call per request. The cache is never invalidated.
    """

    def __init__(
        self,
        address: str,
        api_key: Optional[str],
        geocoder: Callable[[str, str], Point] = geocode_to_point,
    ) -> None:
        self._address = address
        self._api_key = api_key
        self._geocoder = geocoder
        self._resolved = False
        self._point: Optional[Point] = None

    def get(self) -> Optional[Point]:
        if self._resolved:
            return self._point
        if self._api_key:
            try:
                self._point = self._geocoder(self._address, self._api_key)
            except (GeocodingError, OSError, ValueError) as exc:
                logger.warning("Could not geocode reference address %s: %s", self._address, exc)
        self._resolved = True
        return self._point

    def distance_miles(self, lat: Optional[float], lng: Optional[float]) -> Optional[float]:
        ref = self.get()
        if ref is None or lat is None or lng is None:
            return None
        return round(haversine_miles(ref[0], ref[1], float(lat), float(lng)), 1)

    def annotate(self, facility: Dict[str, Any]) -> Dict[str, Any]:
        facility["distance_miles"] = self.distance_miles(facility.get("lat"), facility.get("lng"))
        return facility
