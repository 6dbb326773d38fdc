"""Facility routes: listing, metrics, CRM updates, contact discovery and deletion."""

import logging
from datetime import date
from typing import Any, Dict

import requests
from flask import Blueprint, Response, jsonify, request

from plantscout.api.common import error, parse_bool, reference_cache, serialize, serialize_all
from plantscout.core import crm, db, uploads
from plantscout.core.config import get_settings
from plantscout.etl.manufacturing_filter import is_excluded_facility_row
from plantscout.vendors import apollo, google_places

logger = logging.getLogger(__name__)

plants_bp = Blueprint("plants", __name__)

MAX_LIST_LIMIT = 1000
DEFAULT_LIST_LIMIT = 500


def _with_distance(facility: Dict[str, Any]) -> Dict[str, Any]:
    cache = reference_cache()
    if cache is None:
        facility["distance_miles"] = None
        return facility
    return cache.annotate(facility)


def _int_arg(name: str, default: int) -> int:
    try:
        return int(request.args.get(name, default))
    except (TypeError, ValueError):
        return default


def _remove_uploads(result: Dict[str, Any]) -> None:
    for visit_id in result.get("visit_ids", []):
        uploads.remove_visit_files(visit_id)
    for project_id in result.get("project_ids", []):
        uploads.remove_project_files(project_id)


@plants_bp.get("")
def list_plants() -> Any:
    contacted = parse_bool(request.args.get("contacted"))
    limit = min(_int_arg("limit", DEFAULT_LIST_LIMIT) or DEFAULT_LIST_LIMIT, MAX_LIST_LIMIT)
    offset = max(_int_arg("offset", 0), 0)
    try:
        facilities = db.list_facilities(contacted=contacted, limit=limit, offset=offset)
    except Exception as exc:  # noqa: BLE001
        logger.exception("Failed to fetch plants: %s", exc)
        return error("Failed to fetch plants", 500)
    return jsonify(serialize_all(_with_distance(f) for f in facilities))


@plants_bp.get("/metrics")
def metrics() -> Any:
    try:
        return jsonify(db.facility_metrics())
    except Exception as exc:  # noqa: BLE001
        logger.exception("Failed to fetch metrics: %s", exc)
        return error("Failed to fetch metrics", 500)


@plants_bp.post("")
def create_plant() -> Any:
    """Add a facility by hand (not from the Places pipeline)."""
    payload: Dict[str, Any] = request.get_json(silent=True) or {}
    name = str(payload.get("name") or "").strip()
    if not name:
        return error("name is required", 400)

    fields = {
        key: payload.get(key)
        for key in ("formatted_address", "phone", "website", "city", "state", "postal_code", "lat", "lng")
    }
    fields["name"] = name
    try:
        facility = db.insert_manual_facility(fields)
    except Exception as exc:  # noqa: BLE001
        logger.exception("Failed to create plant: %s", exc)
        return error("Failed to create plant", 500)
    return jsonify(serialize(_with_distance(facility))), 201


@plants_bp.get("/<plant_id>")
def get_plant(plant_id: str) -> Any:
    facility = db.get_facility(plant_id)
    if facility is None:
        return error("Plant not found", 404)
    return jsonify(serialize(_with_distance(facility)))


@plants_bp.get("/<plant_id>/contacts")
def plant_contacts(plant_id: str) -> Any:
    if not crm.facility_exists(plant_id):
        return error("Plant not found", 404)
    return jsonify(serialize_all(crm.list_contacts(plant_id)))


@plants_bp.get("/<plant_id>/photo")
def plant_photo(plant_id: str) -> Any:
    """Proxy the facility's Places thumbnail so the API key stays server side."""
    facility = db.fetch_one("SELECT photo_name FROM plants WHERE id = %s", (plant_id,))
    if not facility or not facility.get("photo_name"):
        return error("No photo for this plant", 404)

    api_key = get_settings().google_places_api_key
    if not api_key:
        return error("Photo service unavailable", 503)

    try:
        content, content_type = google_places.fetch_photo(facility["photo_name"], api_key)
    except google_places.GooglePlacesError as exc:
        return error("Failed to fetch photo", exc.status_code or 502)
    return Response(content, mimetype=content_type, headers={"Cache-Control": "public, max-age=86400"})


@plants_bp.post("/<plant_id>/find-contacts")
def find_contacts(plant_id: str) -> Any:
    """Search Apollo for people at the facility's website domain and store new ones."""
    facility = db.get_facility(plant_id)
    if facility is None:
        return error("Plant not found", 404)

    domain = apollo.extract_domain(facility.get("website"))
    if not domain:
        return error("Plant has no website. Add a website to find contacts.", 400)

    api_key = get_settings().apollo_api_key
    if not api_key:
        return error("APOLLO_API_KEY not configured. Add it to .env", 503)

    try:
        people = apollo.search_people_by_domain(domain, api_key, per_page=10)
    except (apollo.ApolloError, requests.RequestException) as exc:
        logger.warning("Contact search failed for %s: %s", domain, exc)
        return error(str(exc), 502)

    added = crm.add_discovered_contacts(plant_id, (apollo.person_to_contact_fields(p) for p in people))
    contacts = crm.list_contacts(plant_id)
    return jsonify({"added": added, "total": len(contacts), "contacts": serialize_all(contacts)})


@plants_bp.patch("/<plant_id>")
def update_plant(plant_id: str) -> Any:
    payload: Dict[str, Any] = request.get_json(silent=True) or {}
    changes: Dict[str, Any] = {}

    for flag in ("contacted", "current_customer"):
        if isinstance(payload.get(flag), bool):
            changes[flag] = payload[flag]
    if "follow_up_date" in payload:
        follow_up = payload["follow_up_date"]
        if follow_up in (None, ""):
            changes["follow_up_date"] = None
        else:
            try:
                changes["follow_up_date"] = date.fromisoformat(str(follow_up))
            except ValueError:
                return error("follow_up_date must be YYYY-MM-DD", 400)
    if "notes" in payload:
        changes["notes"] = payload["notes"]

    if not changes:
        return error("No valid fields to update", 400)

    facility = db.update_facility_crm(plant_id, changes)
    if facility is None:
        return error("Plant not found", 404)
    return jsonify(serialize(_with_distance(facility)))


@plants_bp.post("/cleanup-non-manufacturing")
def cleanup_non_manufacturing() -> Any:
    """Re-apply the manufacturing filter to stored facilities and delete the excluded ones."""
    facilities = db.fetch_all(
        "SELECT id, name, primary_type, types, editorial_summary, generative_summary, manufacturing_reason FROM plants"
    )
    ids = [facility["id"] for facility in facilities if is_excluded_facility_row(facility)]
    if not ids:
        return jsonify({"deleted": 0, "ids": [], "message": "No non-manufacturing plants found"})

    result = db.delete_facilities(ids)
    _remove_uploads(result)
    logger.info("Cleanup removed %d non-manufacturing plants", result["deleted"])
    return jsonify({"deleted": result["deleted"], "ids": ids})


@plants_bp.delete("/bulk")
def delete_bulk() -> Any:
    payload: Dict[str, Any] = request.get_json(silent=True) or {}
    ids = payload.get("ids")
    if not isinstance(ids, list) or not ids:
        return error("ids array required", 400)

    result = db.delete_facilities(str(i) for i in ids)
    _remove_uploads(result)
    return jsonify({"deleted": result["deleted"]})


@plants_bp.delete("/<plant_id>")
def delete_plant(plant_id: str) -> Any:
    result = db.delete_facilities([plant_id])
    if not result["deleted"]:
        return error("Plant not found", 404)
    _remove_uploads(result)
    return "", 204
