"""Rule-based exclusion of places that are clearly not manufacturing facilities.

Rules are evaluated in a fixed order and the first match wins:

1. restaurant-first venues (``winery & grill``, ``brewery and restaurant``) are excluded,
2. industrial keywords in the name or summary keep the place,
3. excluded place types (primary type or any tag) exclude it,
4. non-manufacturing phrasing in the name or summary excludes it,
5. anything else is kept.

The filter is conservative: an unclear place is kept and left to the LLM step.
"""

import json
import logging
import re
from typing import Any, Iterable, Mapping, Optional, Pattern, Sequence

from plantscout.models import Candidate

logger = logging.getLogger(__name__)

KEEP = "keep"
EXCLUDE = "exclude"

EXCLUDED_PLACE_TYPES = frozenset(
    {
        "supermarket",
        "grocery_store",
        "convenience_store",
        "department_store",
        "discount_store",
        "clothing_store",
        "shoe_store",
        "electronics_store",
        "furniture_store",
        "hardware_store",
        "liquor_store",
        "pet_store",
        "book_store",
        "restaurant",
        "cafe",
        "coffee_shop",
        "bar",
        "meal_delivery",
        "meal_takeaway",
        "fast_food_restaurant",
        "gas_station",
        "pharmacy",
        "drugstore",
        "bank",
        "atm",
        "hotel",
        "motel",
        "lodging",
        "real_estate_agency",
        "car_dealer",
        "car_rental",
        "car_wash",
        "car_repair",
        "parking",
        "church",
        "mosque",
        "synagogue",
        "hindu_temple",
        "school",
        "university",
        "library",
        "hospital",
        "doctor",
        "dentist",
        "gym",
        "fitness_center",
        "spa",
        "hair_salon",
        "barber_shop",
        "nail_salon",
        "movie_theater",
        "bowling_alley",
        "amusement_park",
        "zoo",
        "aquarium",
        "museum",
        "art_gallery",
        "night_club",
        "casino",
        "stadium",
        "park",
        # contracting trades
        "general_contractor",
        "roofing_contractor",
        "plumber",
        "electrician",
        "moving_company",
        "painter",
        "landscaping_company",
        "locksmith",
        "hvac_contractor",
        # retail supply
        "building_materials_store",
        "food_store",
        # offices with no plant
        "corporate_office",
    }
)


def _compile(patterns: Iterable[str]) -> Sequence[Pattern[str]]:
    return tuple(re.compile(pattern, re.IGNORECASE) for pattern in patterns)


# Checked before the positive signals: "brewery & restaurant" would otherwise be kept.
HYBRID_VENUE_PATTERNS = _compile(
    [
        r"\bwinery\s*[& and]+\s*grill\b",
        r"\bgrill\s+[& and]+\s*winery\b",
        r"\bwinery\s*[& and]+\s*restaurant\b",
        r"\brestaurant\s+[& and]+\s*winery\b",
        r"\bbrewery\s*[& and]+\s*(grill|restaurant)\b",
        r"\b(grill|restaurant)\s+[& and]+\s*brewery\b",
        r"\bprimarily\s+a\s*(brewery|winery)\s+and\s+restaurant\b",
    ]
)

MANUFACTURING_POSITIVE_SIGNALS = _compile(
    [
        r"\bbrewery\b",
        r"\bbreweries\b",
        r"\bbrewing\b",
        r"\bbottling\b",
        r"\bdistillery\b",
        r"\bdistilleries\b",
        r"\bwinery\b",
        r"\bwineries\b",
        r"\btextile\s*(mill|manufacturing|plant)?\b",
        r"\bpaper\s*mill\b",
        r"\bfood\s*processing\b",
        r"\bdairy\s*(plant|processor|manufacturing)?\b",
        r"\bchemical\s*plant\b",
        r"\bpharmaceutical\b",
        r"\bpackaging\s*(facility|plant)?\b",
        r"\bdeer\s*processing\b",
        r"\bcold\s*storage\b",
        r"\bplastics\s*(manufactur|plant)?\b",
        r"\bbeverage\s*(manufactur|producer)?\b",
        r"\bmeat\s*processing\b",
        r"\bpoultry\s*(plant|processing)?\b",
        r"\bcannery\b",
        r"\bflour\s*mill\b",
        r"\bsugar\s*refinery\b",
        r"\boil\s*refinery\b",
        r"\bsteel\s*mill\b",
        r"\bfoundry\b",
        r"\bcement\s*(plant|mill)?\b",
        r"\bglass\s*(manufactur|plant)?\b",
        r"\brubber\s*(manufactur|plant)?\b",
        r"\bfertilizer\s*(plant)?\b",
        r"\bprinting\s*(plant|press)?\b",
        r"\bcorrugated\b",
        r"\binjection\s*molding\b",
        r"\bmetal\s*fabrication\b",
        r"\bindustrial\s*(plant|facility|manufacturing)\b",
    ]
)

EXCLUDED_SUMMARY_PATTERNS = _compile(
    [
        r"\bsupermarket\b",
        r"\bgrocery\s*(store|chain)?\b",
        r"\bconvenience\s*store\b",
        r"\bretail\s*chain\b",
        r"\bchain\s*(store|restaurant|shop)\b",
        r"\brestaurant\b",
        r"\bcafe\b",
        r"\bcoffee\s*shop\b",
        r"\bbar\s+and\s+grill\b",
        r"\bgas\s*station\b",
        r"\bpharmacy\b",
        r"\bhotel\b",
        r"\bmotel\b",
        r"\bbank\b",
        r"\bfast\s*food\b",
        r"\bpizza\s*(restaurant|parlor|place)\b",
        r"\bhamburger\s*restaurant\b",
        r"\bseafood\s*market\b",
        r"\bproduce\s*(market|stand)\b",
        r"\borganic\s*(products?|market)\b",
        r"\bpremade\s*meals?\b",
        r"\bserving\s+(food|meals?|coffee)\b",
        r"\beatery\b",
        r"\bbakery\b",
        r"\bice\s*cream\s*shop\b",
        r"\bdeli\b",
        r"\bbistro\b",
        r"\btavern\b",
        r"\b(bar|restaurant)\s+and\s+grill\b",
        r"\bgrill\s+(house|restaurant|bar)\b",
        # construction
        r"\bconstruction\s*company\b",
        r"\bconstruction\s*contractor\b",
        r"\bgeneral\s*contractor\b",
        r"\bcommercial\s*construction\b",
        r"\bresidential\s*construction\b",
        r"\bbuilding\s*construction\b",
        r"\bcontractor\s*(company|services?)?\b",
        r"\b(roofing|electrical|plumbing|hvac)\s*(contractor|company|services?)\b",
        r"\bhome\s*(improvement|remodeling|builder)\b",
        r"\bremodeling\s*(contractor|company)\b",
        r"\bconstruction-related\s*(services?)?\b",
        # contracting, building and landscape retail, utilities
        r"\bcontracting\b",
        r"\bcustom\s*concrete\b",
        r"\bbuilding\s*materials\s*(store|supplier)?\b",
        r"\blandscap(e|ing)\s*(materials?|supply)\b",
        r"\blawn\s*care\s*supply\b",
        r"\bprimarily\s*a\s*retail\s*store\b",
        r"\bcorporate\s*office\b",
        r"\bwater\s*treatment\s*plant\b",
        r"\bwwtp\b",
        r"\bpro\s*desk\b",
    ]
)


def _matches_any(patterns: Sequence[Pattern[str]], text: str) -> bool:
    return any(pattern.search(text) for pattern in patterns)


def is_excluded_as_non_manufacturing(
    *,
    name: Optional[str],
    primary_type: Optional[str] = None,
    types: Optional[Iterable[str]] = None,
    editorial_summary: Optional[str] = None,
    generative_summary: Optional[str] = None,
) -> bool:
    """Return True when the place should be dropped as clearly not manufacturing."""
    summary = f"{editorial_summary or ''} {generative_summary or ''}".strip()
    combined = f"{name or ''} {summary}".strip()

    if _matches_any(HYBRID_VENUE_PATTERNS, combined):
        return True

    if _matches_any(MANUFACTURING_POSITIVE_SIGNALS, combined):
        return False

    all_types = [primary_type.lower()] if primary_type else []
    all_types.extend(t.lower() for t in types or [] if t)
    if any(t in EXCLUDED_PLACE_TYPES for t in all_types):
        return True

    if combined and _matches_any(EXCLUDED_SUMMARY_PATTERNS, combined):
        return True

    return False


def classify(candidate: Candidate) -> str:
    """Return ``"keep"`` or ``"exclude"`` for a candidate."""
    excluded = is_excluded_as_non_manufacturing(
        name=candidate.name,
        primary_type=candidate.primary_type,
        types=candidate.types,
        editorial_summary=candidate.editorial_summary,
        generative_summary=candidate.generative_summary,
    )
    return EXCLUDE if excluded else KEEP


def is_excluded_facility_row(row: Mapping[str, Any]) -> bool:
    """Apply the filter to a stored facility row, for cleanups of already ingested data.

    The stored LLM reason joins the editorial summary so phrasing such as
    "General contractor" in the reason can trigger an exclusion.
    """
    types = []
    raw_types = row.get("types")
    if isinstance(raw_types, str):
        try:
            parsed = json.loads(raw_types)
        except ValueError:
            logger.debug("Unparseable types for facility %s", row.get("id"))
            parsed = []
        types = parsed if isinstance(parsed, list) else []
    elif isinstance(raw_types, list):
        types = raw_types

    editorial = " ".join(
        part for part in (row.get("editorial_summary"), row.get("manufacturing_reason")) if part
    )
    return is_excluded_as_non_manufacturing(
        name=row.get("name"),
        primary_type=row.get("primary_type"),
        types=[str(t) for t in types],
        editorial_summary=editorial or None,
        generative_summary=row.get("generative_summary"),
    )
