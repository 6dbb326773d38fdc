"""On-disk storage for files attached to visits and projects."""

import logging
import os
import shutil
import uuid
from typing import Iterable, Optional

from plantscout.core.config import get_settings

logger = logging.getLogger(__name__)

MAX_UPLOAD_BYTES = 10 * 1024 * 1024

VISIT_EXTENSIONS = {"pdf", "doc", "docx"}
PROJECT_EXTENSIONS = VISIT_EXTENSIONS | {"xls", "xlsx", "jpg", "jpeg", "png"}


def uploads_root(base_path: Optional[str] = None) -> str:
    return base_path or get_settings().uploads_path


def _ensure_dir(path: str) -> str:
    os.makedirs(path, exist_ok=True)
    return path


def visit_files_path(visit_id: str, base_path: Optional[str] = None) -> str:
    return _ensure_dir(os.path.join(uploads_root(base_path), "visits", visit_id))


def project_files_path(project_id: str, base_path: Optional[str] = None) -> str:
    return _ensure_dir(os.path.join(uploads_root(base_path), "projects", project_id))


def extension_of(filename: str) -> str:
    _, _, ext = (filename or "").rpartition(".")
    return ext.lower() if ext and ext != filename else ""


def is_allowed(filename: str, allowed_extensions: Iterable[str]) -> bool:
    return extension_of(filename) in set(allowed_extensions)


def stored_name_for(original_name: str) -> str:
    """Uploaded files are stored under a random name keeping only the extension."""
    return f"{uuid.uuid4()}.{extension_of(original_name) or 'bin'}"


def save_upload(file_storage, directory: str) -> str:
    """Persist a werkzeug ``FileStorage`` into ``directory``; returns the stored name."""
    stored_name = stored_name_for(file_storage.filename or "")
    file_storage.save(os.path.join(directory, stored_name))
    logger.info("Stored upload %s as %s", file_storage.filename, stored_name)
    return stored_name


def remove_directory(path: str) -> None:
    """Delete an upload directory; missing directories are fine."""
    if not os.path.isdir(path):
        return
    try:
        shutil.rmtree(path)
    except OSError as exc:
        logger.warning("Failed to remove upload directory %s: %s", path, exc)


def remove_visit_files(visit_id: str, base_path: Optional[str] = None) -> None:
    remove_directory(os.path.join(uploads_root(base_path), "visits", visit_id))


def remove_project_files(project_id: str, base_path: Optional[str] = None) -> None:
    remove_directory(os.path.join(uploads_root(base_path), "projects", project_id))
