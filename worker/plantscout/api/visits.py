"""Visit routes, including report uploads."""

import os
from datetime import date
from typing import Any

from flask import Blueprint, jsonify, request, send_from_directory

from plantscout.api.common import error, serialize, serialize_all
from plantscout.core import crm, uploads

visits_bp = Blueprint("visits", __name__)


@visits_bp.get("")
def list_visits() -> Any:
    return jsonify(serialize_all(crm.list_visits(request.args.get("plant_id"))))


@visits_bp.post("")
def create_visit() -> Any:
    """
    Multipart form: plant_id, visit_date (YYYY-MM-DD), notes and an optional report
    under "file" (or several under "files"), pdf/doc/docx only.
    """
    plant_id = (request.form.get("plant_id") or "").strip()
    visit_date = (request.form.get("visit_date") or "").strip()
    if not plant_id or not visit_date:
        return error("plant_id and visit_date are required", 400)
    try:
        date.fromisoformat(visit_date)
    except ValueError:
        return error("visit_date must be YYYY-MM-DD", 400)

    files = [f for f in request.files.getlist("file") + request.files.getlist("files") if f and f.filename]
    rejected = [f.filename for f in files if not uploads.is_allowed(f.filename, uploads.VISIT_EXTENSIONS)]
    if rejected:
        return error(f"Unsupported file type: {', '.join(rejected)}", 400)

    if not crm.facility_exists(plant_id):
        return error("Plant not found", 404)

    visit_id = crm.create_visit(plant_id, visit_date, request.form.get("notes"))
    if files:
        directory = uploads.visit_files_path(visit_id)
        for upload in files:
            stored_name = uploads.save_upload(upload, directory)
            crm.add_visit_file(visit_id, stored_name, upload.filename, upload.mimetype)

    return jsonify(serialize(crm.get_visit(visit_id))), 201


@visits_bp.get("/<visit_id>")
def get_visit(visit_id: str) -> Any:
    visit = crm.get_visit(visit_id)
    if visit is None:
        return error("Visit not found", 404)
    return jsonify(serialize(visit))


@visits_bp.delete("/<visit_id>")
def delete_visit(visit_id: str) -> Any:
    if not crm.delete_visit(visit_id):
        return error("Visit not found", 404)
    uploads.remove_visit_files(visit_id)
    return "", 204


@visits_bp.get("/<visit_id>/files/<filename>")
def download_visit_file(visit_id: str, filename: str) -> Any:
    record = crm.get_visit_file(visit_id, filename)
    if record is None:
        return error("File not found", 404)
    directory = os.path.join(uploads.uploads_root(), "visits", visit_id)
    return send_from_directory(directory, record["filename"], as_attachment=True, download_name=record["original_name"])
