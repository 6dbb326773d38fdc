"""HTTP entrypoint serving the CRM API and on-demand ingestion runs."""

from __future__ import annotations

import logging
import os
from typing import Any, Optional

from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException

from plantscout.api.commissionings import commissionings_bp
from plantscout.api.common import REFERENCE_CACHE_KEY
from plantscout.api.contacts import contacts_bp
from plantscout.api.pipeline import pipeline_bp
from plantscout.api.plants import plants_bp
from plantscout.api.projects import projects_bp
from plantscout.api.visits import visits_bp
from plantscout.core import uploads
from plantscout.core.config import Settings, get_settings
from plantscout.core.distance import ReferenceLocationCache

# ---------- Logging ----------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s - %(message)s",
)
logger = logging.getLogger(__name__)


def _health() -> Any:
    return jsonify({"status": "ok", "revision": os.getenv("K_REVISION", "unknown")}), 200


def create_app(settings: Optional[Settings] = None) -> Flask:
    settings = settings or get_settings()

    app = Flask(__name__)
    app.config["MAX_CONTENT_LENGTH"] = uploads.MAX_UPLOAD_BYTES
    app.extensions[REFERENCE_CACHE_KEY] = ReferenceLocationCache(
        settings.reference_address,
        settings.google_places_api_key,
    )

    app.register_blueprint(pipeline_bp, url_prefix="/api/pipeline")
    app.register_blueprint(plants_bp, url_prefix="/api/plants")
    app.register_blueprint(contacts_bp, url_prefix="/api/contacts")
    app.register_blueprint(visits_bp, url_prefix="/api/visits")
    app.register_blueprint(projects_bp, url_prefix="/api/projects")
    app.register_blueprint(commissionings_bp, url_prefix="/api/commissionings")

    @app.get("/")
    def root() -> Any:
        """Simple root to avoid 404 on GET /"""
        return "ok", 200

    app.add_url_rule("/healthz", "healthz", _health)
    app.add_url_rule("/api/health", "health", _health)

    @app.errorhandler(413)
    def too_large(_exc: Exception) -> Any:
        return jsonify({"error": "File exceeds the 10 MB upload limit"}), 413

    @app.errorhandler(Exception)
    def unhandled(exc: Exception) -> Any:
        if isinstance(exc, HTTPException):
            return jsonify({"error": exc.description or exc.name}), exc.code
        logger.exception("Unhandled error on request: %s", exc)
        return jsonify({"error": "Internal server error"}), 500

    return app


def main() -> None:
    settings = get_settings()
    logger.info("[BOOT] Binding on 0.0.0.0:%d", settings.worker_port)
    create_app(settings).run(host="0.0.0.0", port=settings.worker_port)


if __name__ == "__main__":
    main()
