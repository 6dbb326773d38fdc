"""Project routes: quotes tracked per facility, their files and conversion to commissioning."""

import os
from typing import Any, Dict

from flask import Blueprint, jsonify, request, send_from_directory

from plantscout.api.common import error, serialize, serialize_all
from plantscout.core import crm, uploads

projects_bp = Blueprint("projects", __name__)


@projects_bp.get("")
def list_projects() -> Any:
    return jsonify(serialize_all(crm.list_projects(request.args.get("plant_id"))))


@projects_bp.post("")
def create_project() -> Any:
    payload: Dict[str, Any] = request.get_json(silent=True) or {}
    plant_id = str(payload.get("plant_id") or "").strip()
    if not plant_id:
        return error("plant_id is required", 400)
    status = payload.get("status") or "draft"
    if status not in crm.PROJECT_STATUSES:
        return error(f"status must be one of: {', '.join(crm.PROJECT_STATUSES)}", 400)
    if not crm.facility_exists(plant_id):
        return error("Plant not found", 404)
    # A bad reference must not consume a PR number.
    source_visit_id = payload.get("source_visit_id") or None
    if source_visit_id and crm.get_visit(source_visit_id) is None:
        return error("source_visit_id does not match a visit", 400)

    project_id = crm.create_project(
        plant_id,
        status=status,
        source_visit_id=source_visit_id,
        notes=payload.get("notes"),
    )
    return jsonify(serialize(crm.get_project(project_id))), 201


@projects_bp.get("/<project_id>")
def get_project(project_id: str) -> Any:
    project = crm.get_project(project_id)
    if project is None:
        return error("Project not found", 404)
    return jsonify(serialize(project))


@projects_bp.patch("/<project_id>")
def update_project(project_id: str) -> Any:
    payload: Dict[str, Any] = request.get_json(silent=True) or {}
    changes = {key: payload[key] for key in ("status", "notes") if key in payload}
    if not changes:
        return error("No valid fields to update", 400)
    if "status" in changes and changes["status"] not in crm.PROJECT_STATUSES:
        return error(f"status must be one of: {', '.join(crm.PROJECT_STATUSES)}", 400)

    project = crm.update_project(project_id, changes)
    if project is None:
        return error("Project not found", 404)
    return jsonify(serialize(project))


@projects_bp.post("/<project_id>/files")
def upload_project_file(project_id: str) -> Any:
    upload = request.files.get("file")
    if upload is None or not upload.filename:
        return error("file is required", 400)
    if not uploads.is_allowed(upload.filename, uploads.PROJECT_EXTENSIONS):
        return error(f"Unsupported file type: {upload.filename}", 400)
    if crm.get_project(project_id) is None:
        return error("Project not found", 404)

    stored_name = uploads.save_upload(upload, uploads.project_files_path(project_id))
    record = crm.add_project_file(
        project_id,
        stored_name,
        upload.filename,
        request.form.get("file_type") or "other",
    )
    return jsonify(serialize(record)), 201


@projects_bp.get("/<project_id>/files/<filename>")
def download_project_file(project_id: str, filename: str) -> Any:
    record = crm.get_project_file(project_id, filename)
    if record is None:
        return error("File not found", 404)
    directory = os.path.join(uploads.uploads_root(), "projects", project_id)
    return send_from_directory(directory, record["filename"], as_attachment=True, download_name=record["original_name"])


@projects_bp.post("/<project_id>/convert-to-commissioning")
def convert_to_commissioning(project_id: str) -> Any:
    if crm.get_project(project_id) is None:
        return error("Project not found", 404)
    try:
        commissioning = crm.convert_to_commissioning(project_id)
    except crm.CommissioningExistsError as exc:
        return error(str(exc), 400)
    return jsonify(serialize(commissioning)), 201
