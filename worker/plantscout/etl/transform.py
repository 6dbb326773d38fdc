"""Utilities for transforming Places API responses into candidates and database rows."""

import json
import logging
from typing import Any, Dict, Iterable, Optional, Tuple

from plantscout.models import Candidate

logger = logging.getLogger(__name__)

_GENERIC_TYPES = {"establishment", "point_of_interest"}


def parse_address_components(
    address_components: Optional[Iterable[Dict[str, Any]]],
) -> Tuple[Optional[str], Optional[str], Optional[str]]:
    city = None
    state = None
    postal_code = None
    for component in address_components or []:
        types = set(component.get("types") or [])
        text = component.get("longText") or component.get("shortText")
        if not text:
            continue
        if "locality" in types:
            city = text
        elif "administrative_area_level_1" in types:
            state = text
        elif "postal_code" in types:
            postal_code = text
    return city, state, postal_code


def only_generic_types(types: Optional[Iterable[str]]) -> bool:
    """True when there are no types or only placeholder ones like ``establishment``."""
    types = list(types or [])
    if not types:
        return True
    return all(t.lower() in _GENERIC_TYPES for t in types)


def _text(value: Any) -> Optional[str]:
    """Places wraps localized strings as ``{"text": ...}``; accept plain strings too."""
    if isinstance(value, str):
        return value or None
    if isinstance(value, dict):
        return value.get("text") or None
    return None


def _generative_text(value: Any) -> Optional[str]:
    if isinstance(value, str):
        return value or None
    if isinstance(value, dict):
        return _text(value.get("overview"))
    return None


def _place_id(payload: Dict[str, Any]) -> Optional[str]:
    place_id = payload.get("id")
    if not place_id:
        resource_name = payload.get("name") or ""
        place_id = resource_name.replace("places/", "", 1) if resource_name else None
    return place_id or None


def _safe_float(value: Any) -> Optional[float]:
    try:
        if value is None:
            return None
        return float(value)
    except (TypeError, ValueError):
        return None


def _safe_int(value: Any) -> Optional[int]:
    try:
        if value is None:
            return None
        return int(value)
    except (TypeError, ValueError):
        return None


def to_candidate(payload: Dict[str, Any]) -> Optional[Candidate]:
    """Map a Places API place payload onto a Candidate, or None when it has no id."""
    place_id = _place_id(payload)
    if not place_id:
        logger.debug("Skipping place without id: %s", str(payload)[:200])
        return None

    location = payload.get("location") or {}
    plus_code = payload.get("plusCode") or {}
    photos = payload.get("photos") or []
    city, state, postal_code = parse_address_components(payload.get("addressComponents"))

    return Candidate(
        place_id=place_id,
        name=_text(payload.get("displayName")) or payload.get("formattedAddress"),
        formatted_address=payload.get("formattedAddress"),
        short_formatted_address=payload.get("shortFormattedAddress"),
        lat=_safe_float(location.get("latitude")),
        lng=_safe_float(location.get("longitude")),
        phone=payload.get("nationalPhoneNumber") or payload.get("internationalPhoneNumber"),
        website=payload.get("websiteUri"),
        business_status=payload.get("businessStatus"),
        google_maps_uri=payload.get("googleMapsUri"),
        primary_type=payload.get("primaryType"),
        primary_type_display_name=_text(payload.get("primaryTypeDisplayName")),
        types=[str(t) for t in payload.get("types") or []],
        rating=_safe_float(payload.get("rating")),
        user_rating_count=_safe_int(payload.get("userRatingCount")),
        plus_code=plus_code.get("compoundCode") or plus_code.get("globalCode"),
        price_level=payload.get("priceLevel"),
        regular_opening_hours=payload.get("regularOpeningHours"),
        photo_name=photos[0].get("name") if photos and isinstance(photos[0], dict) else None,
        editorial_summary=_text(payload.get("editorialSummary")),
        generative_summary=_generative_text(payload.get("generativeSummary")),
        city=city,
        state=state,
        postal_code=postal_code,
        raw_snapshot=payload,
    )


def needs_summary(candidate: Candidate) -> bool:
    return not candidate.generative_summary and not candidate.editorial_summary


def needs_types(candidate: Candidate) -> bool:
    return not candidate.primary_type and only_generic_types(candidate.types)


def apply_details(candidate: Candidate, details: Candidate, *, fill_types: bool) -> None:
    """Backfill summaries (and types when asked) from a details lookup in place."""
    if details.generative_summary:
        candidate.generative_summary = details.generative_summary
    if details.editorial_summary and not candidate.editorial_summary:
        candidate.editorial_summary = details.editorial_summary
    if not fill_types:
        return
    if details.primary_type and not candidate.primary_type:
        candidate.primary_type = details.primary_type
        candidate.primary_type_display_name = (
            details.primary_type_display_name or candidate.primary_type_display_name
        )
    if details.types and only_generic_types(candidate.types):
        candidate.types = list(details.types)


def to_facility_row(
    candidate: Candidate,
    *,
    relevance: Optional[str] = None,
    reason: Optional[str] = None,
) -> Dict[str, Any]:
    """Provider-sourced columns of the ``plants`` table for a candidate."""
    return {
        "place_id": candidate.place_id,
        "name": candidate.name,
        "formatted_address": candidate.formatted_address,
        "short_formatted_address": candidate.short_formatted_address,
        "lat": candidate.lat,
        "lng": candidate.lng,
        "phone": candidate.phone,
        "website": candidate.website,
        "business_status": candidate.business_status,
        "google_maps_uri": candidate.google_maps_uri,
        "primary_type": candidate.primary_type,
        "primary_type_display_name": candidate.primary_type_display_name,
        "types": json.dumps(candidate.types) if candidate.types else None,
        "rating": candidate.rating,
        "user_rating_count": candidate.user_rating_count,
        "plus_code": candidate.plus_code,
        "price_level": candidate.price_level,
        "regular_opening_hours": (
            json.dumps(candidate.regular_opening_hours) if candidate.regular_opening_hours else None
        ),
        "photo_name": candidate.photo_name,
        "editorial_summary": candidate.editorial_summary,
        "generative_summary": candidate.generative_summary,
        "city": candidate.city,
        "state": candidate.state,
        "postal_code": candidate.postal_code,
        "manufacturing_relevance": relevance,
        "manufacturing_reason": reason,
        "data_source": "google_places",
    }
