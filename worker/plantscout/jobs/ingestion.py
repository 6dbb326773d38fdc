"""Ingestion job: search Places for manufacturing facilities, filter, classify and persist them."""

import argparse
import json
import logging
import time
from typing import Dict, Iterable, List, Optional, Set

from plantscout.core import db
from plantscout.core.config import ConfigError, get_settings
from plantscout.etl import llm_classifier
from plantscout.etl.manufacturing_filter import EXCLUDE, classify
from plantscout.etl.transform import apply_details, needs_summary, needs_types, to_candidate, to_facility_row
from plantscout.models import Bounds, Candidate, IngestionSummary, RelevanceVerdict
from plantscout.vendors import geocoding, google_places, openai_chat

logger = logging.getLogger(__name__)

DETAILS_DELAY_SECONDS = 0.15
PAGE_DELAY_SECONDS = 0.5


def resolve_bounds(api_key: str, location: Optional[str]) -> Bounds:
    if location and location.strip():
        return geocoding.geocode_to_bounds(location.strip(), api_key)
    return google_places.DEFAULT_BOUNDS


def _keep(candidates: Iterable[Candidate]) -> List[Candidate]:
    kept = []
    for candidate in candidates:
        if classify(candidate) == EXCLUDE:
            logger.debug("Excluded %s (%s)", candidate.name, candidate.place_id)
            continue
        kept.append(candidate)
    return kept


def enrich_candidates(candidates: List[Candidate], api_key: str) -> None:
    """Backfill type and summary data through Place Details, best effort."""
    for candidate in candidates:
        fill_types = needs_types(candidate)
        if not (fill_types or needs_summary(candidate)):
            continue
        try:
            payload = google_places.place_details(candidate.place_id, api_key)
            details = to_candidate(payload)
            if details is not None:
                apply_details(candidate, details, fill_types=fill_types)
        except Exception as exc:  # noqa: BLE001
            logger.debug("Details lookup failed for %s: %s", candidate.place_id, exc)
        time.sleep(DETAILS_DELAY_SECONDS)


def classify_relevance(
    candidates: List[Candidate],
    openai_api_key: str,
    openai_model: str,
) -> Dict[int, RelevanceVerdict]:
    """Ask the LLM about each candidate; any failure leaves the whole page unclassified."""
    items = [
        llm_classifier.ClassificationItem(
            index=index,
            name=candidate.name or "",
            types=candidate.types,
            primary_type=candidate.primary_type,
            editorial_summary=candidate.editorial_summary,
            generative_summary=candidate.generative_summary,
            formatted_address=candidate.formatted_address,
        )
        for index, candidate in enumerate(candidates)
    ]
    try:
        return llm_classifier.classify_in_batches(items, api_key=openai_api_key, model=openai_model)
    except Exception as exc:  # noqa: BLE001
        logger.warning("LLM interpretation failed: %s", exc)
        return {}


def run_ingestion(
    api_key: str,
    location: Optional[str] = None,
    *,
    openai_api_key: Optional[str] = None,
    openai_model: Optional[str] = None,
    queries: Iterable[str] = google_places.MANUFACTURING_QUERIES,
) -> IngestionSummary:
    """Run every manufacturing query over the search area and upsert the survivors.

    Each upsert commits on its own, so an error part-way leaves earlier rows in place.
    """
    if not api_key or not api_key.strip():
        raise ConfigError("GOOGLE_PLACES_API_KEY is not configured. Add it to .env")
    api_key = api_key.strip()
    openai_api_key = (openai_api_key or "").strip()
    openai_model = openai_model or openai_chat.DEFAULT_MODEL

    bounds = resolve_bounds(api_key, location)
    logger.info("Starting ingestion: location=%s bounds=%s llm=%s", location or "default", bounds, bool(openai_api_key))

    added = 0
    updated = 0
    seen_place_ids: Set[str] = set()

    for query in queries:
        page_token: Optional[str] = None
        page = 0
        while True:
            page += 1
            response = google_places.search_text(query, api_key, bounds=bounds, page_token=page_token)
            places = response.get("places") or []
            candidates = _keep(c for c in (to_candidate(p) for p in places) if c is not None)

            enrich_candidates(candidates, api_key)
            # Details may reveal an excluded type such as building_materials_store.
            candidates = _keep(candidates)

            fresh: List[Candidate] = []
            for candidate in candidates:
                if candidate.place_id in seen_place_ids:
                    continue
                seen_place_ids.add(candidate.place_id)
                fresh.append(candidate)

            verdicts: Dict[int, RelevanceVerdict] = {}
            if openai_api_key and fresh:
                verdicts = classify_relevance(fresh, openai_api_key, openai_model)

            for index, candidate in enumerate(fresh):
                verdict = verdicts.get(index)
                if verdict is not None and verdict.relevance == "none":
                    logger.debug("LLM rejected %s: %s", candidate.name, verdict.reason)
                    continue

                existing_id = db.find_facility_id(candidate.place_id)
                row = to_facility_row(
                    candidate,
                    relevance=verdict.relevance if verdict else None,
                    reason=verdict.reason if verdict else None,
                )
                db.upsert_facility(row, existing_id)
                if existing_id:
                    updated += 1
                else:
                    added += 1

            logger.info(
                "query=%r page=%d fetched=%d kept=%d new=%d",
                query,
                page,
                len(places),
                len(candidates),
                len(fresh),
            )

            page_token = response.get("nextPageToken")
            if not page_token:
                break
            time.sleep(PAGE_DELAY_SECONDS)

    summary = IngestionSummary(added=added, updated=updated, total=db.count_facilities())
    logger.info("Completed ingestion: added=%d updated=%d total=%d", summary.added, summary.updated, summary.total)
    return summary


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Run the manufacturing facility ingestion pipeline")
    parser.add_argument("--location", dest="location", help="Zip code or city, e.g. 75001 or 'Dallas, TX'")
    parser.add_argument(
        "--init-schema",
        dest="init_schema",
        action="store_true",
        help="Create database tables before running",
    )
    return parser


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s - %(message)s")
    args = build_parser().parse_args()
    settings = get_settings()

    try:
        if args.init_schema:
            db.init_schema()
        summary = run_ingestion(
            settings.google_places_api_key,
            args.location,
            openai_api_key=settings.openai_api_key,
            openai_model=settings.openai_model,
        )
    except (ConfigError, geocoding.GeocodingError) as exc:
        logger.error("Ingestion aborted: %s", exc)
        raise SystemExit(2) from exc

    print(json.dumps(summary.as_dict()))


if __name__ == "__main__":
    main()
