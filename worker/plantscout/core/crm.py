"""Queries for records owned by a facility: contacts, visits, projects and commissionings."""

import logging
import uuid
from typing import Any, Dict, Iterable, List, Optional

from plantscout.core.db import execute, fetch_all, fetch_one, next_sequence

logger = logging.getLogger(__name__)

PROJECT_STATUSES = ("draft", "sent", "won", "lost")


def facility_exists(facility_id: str) -> bool:
    return fetch_one("SELECT id FROM plants WHERE id = %s", (facility_id,)) is not None


# ---------- Contacts ----------


def list_contacts(plant_id: Optional[str] = None) -> List[Dict[str, Any]]:
    if plant_id:
        return fetch_all("SELECT * FROM contacts WHERE plant_id = %s ORDER BY created_at DESC", (plant_id,))
    return fetch_all("SELECT * FROM contacts ORDER BY created_at DESC")


def get_contact(contact_id: str) -> Optional[Dict[str, Any]]:
    return fetch_one("SELECT * FROM contacts WHERE id = %s", (contact_id,))


def delete_contact(contact_id: str) -> bool:
    return execute("DELETE FROM contacts WHERE id = %s", (contact_id,)) > 0


def add_discovered_contacts(plant_id: str, people: Iterable[Dict[str, Any]]) -> int:
    """Insert Apollo people not yet stored for the facility; returns how many were added."""
    known = {
        row["apollo_id"]
        for row in fetch_all("SELECT apollo_id FROM contacts WHERE plant_id = %s", (plant_id,))
        if row["apollo_id"]
    }
    added = 0
    for person in people:
        apollo_id = person.get("apollo_id")
        if not apollo_id or apollo_id in known:
            continue
        known.add(apollo_id)
        execute(
            """
            INSERT INTO contacts (id, plant_id, apollo_id, first_name, last_name, title, linkedin_url, source,
                                  created_at, updated_at)
            VALUES (%s, %s, %s, %s, %s, %s, %s, 'apollo', NOW(), NOW())
            """,
            (
                str(uuid.uuid4()),
                plant_id,
                apollo_id,
                person.get("first_name"),
                person.get("last_name"),
                person.get("title"),
                person.get("linkedin_url"),
            ),
        )
        added += 1
    if added:
        logger.info("Added %d contacts for facility %s", added, plant_id)
    return added


def apply_contact_enrichment(contact_id: str, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """Store revealed email and phone; names, title and LinkedIn only overwrite when present."""
    execute(
        """
        UPDATE contacts SET
            first_name = COALESCE(%(first_name)s, first_name),
            last_name = COALESCE(%(last_name)s, last_name),
            title = COALESCE(%(title)s, title),
            email = %(email)s,
            phone = %(phone)s,
            linkedin_url = COALESCE(%(linkedin_url)s, linkedin_url),
            updated_at = NOW()
        WHERE id = %(id)s
        """,
        {
            "id": contact_id,
            **{key: fields.get(key) for key in ("first_name", "last_name", "title", "email", "phone", "linkedin_url")},
        },
    )
    return get_contact(contact_id)


# ---------- Visits ----------


def list_visits(plant_id: Optional[str] = None) -> List[Dict[str, Any]]:
    sql = "SELECT v.*, pl.name AS plant_name FROM visits v LEFT JOIN plants pl ON v.plant_id = pl.id"
    params: List[Any] = []
    if plant_id:
        sql += " WHERE v.plant_id = %s"
        params.append(plant_id)
    sql += " ORDER BY v.visit_date DESC, v.created_at DESC"
    visits = fetch_all(sql, params)
    for visit in visits:
        visit["files"] = list_visit_files(visit["id"])
    return visits


def get_visit(visit_id: str) -> Optional[Dict[str, Any]]:
    visit = fetch_one("SELECT * FROM visits WHERE id = %s", (visit_id,))
    if visit is not None:
        visit["files"] = list_visit_files(visit_id)
    return visit


def create_visit(plant_id: str, visit_date: str, notes: Optional[str] = None) -> str:
    visit_id = str(uuid.uuid4())
    execute(
        """
        INSERT INTO visits (id, plant_id, visit_date, notes, created_at, updated_at)
        VALUES (%s, %s, %s, %s, NOW(), NOW())
        """,
        (visit_id, plant_id, visit_date, notes),
    )
    return visit_id


def list_visit_files(visit_id: str) -> List[Dict[str, Any]]:
    return fetch_all("SELECT * FROM visit_files WHERE visit_id = %s ORDER BY created_at", (visit_id,))


def add_visit_file(visit_id: str, filename: str, original_name: str, content_type: Optional[str]) -> None:
    execute(
        """
        INSERT INTO visit_files (id, visit_id, filename, original_name, content_type, created_at)
        VALUES (%s, %s, %s, %s, %s, NOW())
        """,
        (str(uuid.uuid4()), visit_id, filename, original_name, content_type),
    )


def get_visit_file(visit_id: str, filename: str) -> Optional[Dict[str, Any]]:
    return fetch_one(
        "SELECT * FROM visit_files WHERE visit_id = %s AND filename = %s",
        (visit_id, filename),
    )


def delete_visit(visit_id: str) -> bool:
    return execute("DELETE FROM visits WHERE id = %s", (visit_id,)) > 0


# ---------- Projects ----------

_PROJECT_WITH_PLANT = "SELECT p.*, pl.name AS plant_name FROM projects p LEFT JOIN plants pl ON p.plant_id = pl.id"


def list_projects(plant_id: Optional[str] = None) -> List[Dict[str, Any]]:
    if plant_id:
        return fetch_all(f"{_PROJECT_WITH_PLANT} WHERE p.plant_id = %s ORDER BY p.created_at DESC", (plant_id,))
    return fetch_all(f"{_PROJECT_WITH_PLANT} ORDER BY p.created_at DESC")


def get_project(project_id: str) -> Optional[Dict[str, Any]]:
    project = fetch_one(f"{_PROJECT_WITH_PLANT} WHERE p.id = %s", (project_id,))
    if project is not None:
        project["files"] = list_project_files(project_id)
    return project


def create_project(
    plant_id: str,
    status: Optional[str] = None,
    source_visit_id: Optional[str] = None,
    notes: Optional[str] = None,
) -> str:
    project_id = str(uuid.uuid4())
    pr_number = next_sequence("pr")["formatted"]
    execute(
        """
        INSERT INTO projects (id, plant_id, pr_number, status, source_visit_id, notes, created_at, updated_at)
        VALUES (%s, %s, %s, %s, %s, %s, NOW(), NOW())
        """,
        (project_id, plant_id, pr_number, status or "draft", source_visit_id, notes),
    )
    logger.info("Created project %s for facility %s", pr_number, plant_id)
    return project_id


def update_project(project_id: str, changes: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    columns = [column for column in ("status", "notes") if column in changes]
    assignments = "".join(f"{column} = %({column})s, " for column in columns)
    params = {column: changes[column] for column in columns}
    params["id"] = project_id
    if not execute(f"UPDATE projects SET {assignments}updated_at = NOW() WHERE id = %(id)s", params):
        return None
    return get_project(project_id)


def list_project_files(project_id: str) -> List[Dict[str, Any]]:
    return fetch_all("SELECT * FROM project_files WHERE project_id = %s ORDER BY created_at", (project_id,))


def add_project_file(project_id: str, filename: str, original_name: str, file_type: str = "other") -> Dict[str, Any]:
    file_id = str(uuid.uuid4())
    execute(
        """
        INSERT INTO project_files (id, project_id, filename, original_name, file_type, created_at)
        VALUES (%s, %s, %s, %s, %s, NOW())
        """,
        (file_id, project_id, filename, original_name, file_type),
    )
    return fetch_one("SELECT * FROM project_files WHERE id = %s", (file_id,))


def get_project_file(project_id: str, filename: str) -> Optional[Dict[str, Any]]:
    return fetch_one(
        "SELECT * FROM project_files WHERE project_id = %s AND filename = %s",
        (project_id, filename),
    )


# ---------- Commissionings ----------


class CommissioningExistsError(ValueError):
    """Raised when a project already has a commissioning record."""


def convert_to_commissioning(project_id: str) -> Dict[str, Any]:
    """Create the single commissioning record of a project."""
    if fetch_one("SELECT id FROM commissionings WHERE project_id = %s", (project_id,)):
        raise CommissioningExistsError("Project already has a commissioning")

    comm_id = str(uuid.uuid4())
    comm_number = next_sequence("comm")["formatted"]
    inserted = execute(
        """
        INSERT INTO commissionings (id, project_id, comm_number, created_at)
        VALUES (%s, %s, %s, NOW())
        ON CONFLICT (project_id) DO NOTHING
        """,
        (comm_id, project_id, comm_number),
    )
    if not inserted:
        raise CommissioningExistsError("Project already has a commissioning")
    logger.info("Project %s converted to commissioning %s", project_id, comm_number)
    return fetch_one("SELECT * FROM commissionings WHERE id = %s", (comm_id,))


def list_commissionings(plant_id: Optional[str] = None) -> List[Dict[str, Any]]:
    sql = """
        SELECT c.*, p.pr_number, p.plant_id, p.status AS project_status, pl.name AS plant_name
        FROM commissionings c
        JOIN projects p ON c.project_id = p.id
        LEFT JOIN plants pl ON p.plant_id = pl.id
    """
    params: List[Any] = []
    if plant_id:
        sql += " WHERE p.plant_id = %s"
        params.append(plant_id)
    sql += " ORDER BY c.created_at DESC"
    return fetch_all(sql, params)
