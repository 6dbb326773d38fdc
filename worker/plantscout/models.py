"""Core data models shared by the ingestion pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

RELEVANCE_LEVELS = ("high", "medium", "low", "none")


@dataclass(slots=True)
class Candidate:
    """Normalized snapshot of a place returned by the Places API."""

    place_id: str
    name: Optional[str] = None
    formatted_address: Optional[str] = None
    short_formatted_address: Optional[str] = None
    lat: Optional[float] = None
    lng: Optional[float] = None
    phone: Optional[str] = None
    website: Optional[str] = None
    business_status: Optional[str] = None
    google_maps_uri: Optional[str] = None
    primary_type: Optional[str] = None
    primary_type_display_name: Optional[str] = None
    types: List[str] = field(default_factory=list)
    rating: Optional[float] = None
    user_rating_count: Optional[int] = None
    plus_code: Optional[str] = None
    price_level: Optional[str] = None
    regular_opening_hours: Optional[Dict[str, Any]] = None
    photo_name: Optional[str] = None
    editorial_summary: Optional[str] = None
    generative_summary: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postal_code: Optional[str] = None
    raw_snapshot: Optional[Dict[str, Any]] = field(default=None, repr=False)

    @property
    def summary(self) -> Optional[str]:
        """Generated summary when present, else the editorial one."""
        return self.generative_summary or self.editorial_summary


@dataclass(frozen=True)
class Bounds:
    low_lat: float
    low_lng: float
    high_lat: float
    high_lng: float

    def to_location_restriction(self) -> Dict[str, Any]:
        return {
            "rectangle": {
                "low": {"latitude": self.low_lat, "longitude": self.low_lng},
                "high": {"latitude": self.high_lat, "longitude": self.high_lng},
            }
        }


@dataclass(frozen=True)
class RelevanceVerdict:
    index: int
    relevance: str
    reason: str = ""


@dataclass(frozen=True)
class IngestionSummary:
    added: int
    updated: int
    total: int

    def as_dict(self) -> Dict[str, int]:
        return {"added": self.added, "updated": self.updated, "total": self.total}
