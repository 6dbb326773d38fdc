"""Client utilities for the Google Places API (v1)."""

import logging
from typing import Any, Dict, Optional, Tuple

import requests

from plantscout.models import Bounds

logger = logging.getLogger(__name__)
_SESSION = requests.Session()
_BASE_URL = "https://places.googleapis.com/v1"
PAGE_SIZE = 20

SEARCH_FIELD_MASK = ",".join(
    f"places.{field}"
    for field in (
        "id",
        "displayName",
        "formattedAddress",
        "shortFormattedAddress",
        "location",
        "addressComponents",
        "nationalPhoneNumber",
        "internationalPhoneNumber",
        "websiteUri",
        "businessStatus",
        "googleMapsUri",
        "primaryType",
        "primaryTypeDisplayName",
        "types",
        "rating",
        "userRatingCount",
        "plusCode",
        "priceLevel",
        "photos",
        "editorialSummary",
        "generativeSummary",
        "regularOpeningHours",
        "viewport",
    )
) + ",nextPageToken"

DETAILS_FIELD_MASK = "id,displayName,primaryType,primaryTypeDisplayName,types,editorialSummary,generativeSummary"

# Bounding box of the Dallas-Fort Worth metro, searched when no location is given.
DEFAULT_BOUNDS = Bounds(low_lat=32.45, low_lng=-97.55, high_lat=33.35, high_lng=-96.55)

MANUFACTURING_QUERIES = (
    "brewery",
    "bottling plant",
    "beverage manufacturer",
    "food processing plant",
    "dairy plant",
    "textile mill",
    "paper mill",
    "chemical plant",
    "pharmaceutical manufacturing",
    "water treatment plant",
    "packaging facility",
    "distillery",
    "winery",
    "cold storage",
    "plastics manufacturer",
    "meat processing plant",
    "poultry plant",
    "cannery",
    "flour mill",
    "sugar refinery",
    "oil refinery",
    "steel mill",
    "foundry",
    "cement plant",
    "glass manufacturer",
    "rubber manufacturer",
    "fertilizer plant",
    "printing plant",
    "corrugated box manufacturer",
    "injection molding",
    "metal fabrication",
    "industrial facility",
)


class GooglePlacesError(RuntimeError):
    """Raised when the Places API returns a non-successful response."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


def _headers(api_key: str, field_mask: str) -> Dict[str, str]:
    return {
        "Content-Type": "application/json",
        "X-Goog-Api-Key": api_key,
        "X-Goog-FieldMask": field_mask,
    }


def search_text(
    query: str,
    api_key: str,
    bounds: Optional[Bounds] = None,
    page_token: Optional[str] = None,
) -> Dict[str, Any]:
    """Run one page of a text search; the payload carries ``places`` and maybe ``nextPageToken``."""
    body: Dict[str, Any] = {"textQuery": query, "pageSize": PAGE_SIZE}
    if page_token:
        body["pageToken"] = page_token
    if bounds is not None:
        body["locationRestriction"] = bounds.to_location_restriction()

    response = _SESSION.post(
        f"{_BASE_URL}/places:searchText",
        headers=_headers(api_key, SEARCH_FIELD_MASK),
        json=body,
        timeout=10,
    )
    if response.status_code >= 400:
        logger.error("search_text failed: status=%s body=%s", response.status_code, response.text[:500])
        raise GooglePlacesError(f"Places API error {response.status_code}: {response.text[:500]}", response.status_code)
    return response.json() or {}


def place_details(place_id: str, api_key: str, field_mask: str = DETAILS_FIELD_MASK) -> Dict[str, Any]:
    response = _SESSION.get(
        f"{_BASE_URL}/places/{place_id}",
        headers=_headers(api_key, field_mask),
        timeout=10,
    )
    if response.status_code >= 400:
        logger.error("place_details failed: status=%s body=%s", response.status_code, response.text[:500])
        raise GooglePlacesError(f"Place Details error {response.status_code}: {response.text[:500]}", response.status_code)
    return response.json() or {}


def fetch_photo(photo_name: str, api_key: str, max_px: int = 150) -> Tuple[bytes, str]:
    """Download a place photo thumbnail; returns the bytes and their content type."""
    response = _SESSION.get(
        f"{_BASE_URL}/{photo_name}/media",
        params={"maxWidthPx": max_px, "maxHeightPx": max_px, "key": api_key},
        timeout=10,
    )
    if response.status_code >= 400:
        logger.warning("fetch_photo failed: status=%s photo=%s", response.status_code, photo_name)
        raise GooglePlacesError(f"Place photo error {response.status_code}", response.status_code)
    return response.content, response.headers.get("Content-Type") or "image/jpeg"
