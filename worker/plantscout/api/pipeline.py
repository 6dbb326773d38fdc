"""Route that runs the ingestion pipeline on demand."""

import logging
from typing import Any, Dict

from flask import Blueprint, jsonify, request

from plantscout.api.common import error
from plantscout.core.config import ConfigError, get_settings, require_places_api_key
from plantscout.jobs.ingestion import run_ingestion
from plantscout.vendors.geocoding import GeocodingError

logger = logging.getLogger(__name__)

pipeline_bp = Blueprint("pipeline", __name__)


@pipeline_bp.post("/run")
def run_pipeline() -> Any:
    """
    Run ingestion synchronously and return the summary.
    Optional JSON field: location (zip code or city).
    """
    payload: Dict[str, Any] = request.get_json(silent=True) or {}
    location = payload.get("location")
    if location is not None and not isinstance(location, str):
        return error("location must be a string", 400)

    settings = get_settings()
    try:
        api_key = require_places_api_key(settings)
    except ConfigError as exc:
        return error(str(exc), 500)

    try:
        summary = run_ingestion(
            api_key,
            location,
            openai_api_key=settings.openai_api_key,
            openai_model=settings.openai_model,
        )
    except GeocodingError as exc:
        logger.warning("Pipeline geocoding failed: %s", exc)
        return error(str(exc), 500)
    except Exception as exc:  # noqa: BLE001
        logger.exception("Pipeline run failed: %s", exc)
        return error(str(exc) or "Pipeline failed", 500)

    return jsonify(summary.as_dict())
