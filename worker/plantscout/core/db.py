"""Database helpers: connection pool, schema, facility upserts and sequences."""

import logging
import uuid
from contextlib import contextmanager
from typing import Any, Dict, Iterable, List, Optional

import psycopg2
from psycopg2 import extras, pool

from plantscout.core.config import get_settings

logger = logging.getLogger(__name__)

_connection_pool: Optional[pool.SimpleConnectionPool] = None

SEQUENCE_PREFIXES = {"pr": "PR", "comm": "COMM"}

# Columns written by ingestion. CRM-only columns (contacted, current_customer,
# follow_up_date, notes) and data_source/created_at are never overwritten.
PROVIDER_COLUMNS = (
    "name",
    "formatted_address",
    "short_formatted_address",
    "lat",
    "lng",
    "phone",
    "website",
    "business_status",
    "google_maps_uri",
    "primary_type",
    "primary_type_display_name",
    "types",
    "rating",
    "user_rating_count",
    "plus_code",
    "price_level",
    "regular_opening_hours",
    "photo_name",
    "editorial_summary",
    "generative_summary",
    "city",
    "state",
    "postal_code",
    "manufacturing_relevance",
    "manufacturing_reason",
)

CRM_COLUMNS = ("contacted", "current_customer", "follow_up_date", "notes")

SCHEMA = """
CREATE TABLE IF NOT EXISTS plants (
    id TEXT PRIMARY KEY,
    place_id TEXT UNIQUE NOT NULL,
    name TEXT,
    formatted_address TEXT,
    short_formatted_address TEXT,
    lat DOUBLE PRECISION,
    lng DOUBLE PRECISION,
    phone TEXT,
    website TEXT,
    business_status TEXT,
    google_maps_uri TEXT,
    primary_type TEXT,
    primary_type_display_name TEXT,
    types TEXT,
    rating DOUBLE PRECISION,
    user_rating_count INTEGER,
    plus_code TEXT,
    price_level TEXT,
    regular_opening_hours TEXT,
    photo_name TEXT,
    editorial_summary TEXT,
    generative_summary TEXT,
    city TEXT,
    state TEXT,
    postal_code TEXT,
    manufacturing_relevance TEXT,
    manufacturing_reason TEXT,
    data_source TEXT DEFAULT 'google_places',
    contacted BOOLEAN NOT NULL DEFAULT FALSE,
    current_customer BOOLEAN NOT NULL DEFAULT FALSE,
    follow_up_date DATE,
    notes TEXT,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);
CREATE INDEX IF NOT EXISTS idx_plants_contacted ON plants(contacted);
CREATE INDEX IF NOT EXISTS idx_plants_current_customer ON plants(current_customer);
CREATE INDEX IF NOT EXISTS idx_plants_follow_up_date ON plants(follow_up_date);
CREATE INDEX IF NOT EXISTS idx_plants_created_at ON plants(created_at);

CREATE TABLE IF NOT EXISTS contacts (
    id TEXT PRIMARY KEY,
    plant_id TEXT NOT NULL REFERENCES plants(id) ON DELETE CASCADE,
    apollo_id TEXT,
    first_name TEXT,
    last_name TEXT,
    title TEXT,
    email TEXT,
    phone TEXT,
    linkedin_url TEXT,
    source TEXT DEFAULT 'apollo',
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);
CREATE INDEX IF NOT EXISTS idx_contacts_plant_id ON contacts(plant_id);
CREATE INDEX IF NOT EXISTS idx_contacts_apollo_id ON contacts(apollo_id);

CREATE TABLE IF NOT EXISTS sequences (
    name TEXT PRIMARY KEY,
    next_value INTEGER NOT NULL DEFAULT 1
);
INSERT INTO sequences (name, next_value) VALUES ('pr', 1), ('comm', 1) ON CONFLICT (name) DO NOTHING;

CREATE TABLE IF NOT EXISTS visits (
    id TEXT PRIMARY KEY,
    plant_id TEXT NOT NULL REFERENCES plants(id) ON DELETE CASCADE,
    visit_date DATE NOT NULL,
    notes TEXT,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);
CREATE INDEX IF NOT EXISTS idx_visits_plant_id ON visits(plant_id);

CREATE TABLE IF NOT EXISTS visit_files (
    id TEXT PRIMARY KEY,
    visit_id TEXT NOT NULL REFERENCES visits(id) ON DELETE CASCADE,
    filename TEXT NOT NULL,
    original_name TEXT NOT NULL,
    content_type TEXT,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);
CREATE INDEX IF NOT EXISTS idx_visit_files_visit_id ON visit_files(visit_id);

CREATE TABLE IF NOT EXISTS projects (
    id TEXT PRIMARY KEY,
    plant_id TEXT NOT NULL REFERENCES plants(id) ON DELETE CASCADE,
    pr_number TEXT UNIQUE NOT NULL,
    status TEXT NOT NULL DEFAULT 'draft',
    source_visit_id TEXT REFERENCES visits(id) ON DELETE SET NULL,
    notes TEXT,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);
CREATE INDEX IF NOT EXISTS idx_projects_plant_id ON projects(plant_id);
CREATE INDEX IF NOT EXISTS idx_projects_status ON projects(status);

CREATE TABLE IF NOT EXISTS project_files (
    id TEXT PRIMARY KEY,
    project_id TEXT NOT NULL REFERENCES projects(id) ON DELETE CASCADE,
    filename TEXT NOT NULL,
    original_name TEXT NOT NULL,
    file_type TEXT NOT NULL DEFAULT 'other',
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);
CREATE INDEX IF NOT EXISTS idx_project_files_project_id ON project_files(project_id);

CREATE TABLE IF NOT EXISTS commissionings (
    id TEXT PRIMARY KEY,
    project_id TEXT UNIQUE NOT NULL REFERENCES projects(id) ON DELETE CASCADE,
    comm_number TEXT UNIQUE NOT NULL,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);
"""


def init_pool(minconn: int = 1, maxconn: int = 5) -> pool.SimpleConnectionPool:
    """Initialise and return the shared connection pool."""
    global _connection_pool
    if _connection_pool is None:
        settings = get_settings()
        if not settings.database_url:
            raise RuntimeError("DATABASE_URL is required for database connections")
        _connection_pool = pool.SimpleConnectionPool(
            minconn,
            maxconn,
            dsn=settings.database_url,
            connect_timeout=10,
        )
        logger.info("Database connection pool initialised")
    return _connection_pool


@contextmanager
def get_connection():
    """Context manager yielding a pooled connection, rolled back if the block raises."""
    pg_pool = init_pool()
    conn = pg_pool.getconn()
    try:
        yield conn
    except Exception:
        conn.rollback()
        raise
    finally:
        pg_pool.putconn(conn)


def init_schema() -> None:
    with get_connection() as conn:
        with conn.cursor() as cur:
            cur.execute(SCHEMA)
        conn.commit()
    logger.info("Database schema ensured")


def fetch_all(sql: str, params: Any = None) -> List[Dict[str, Any]]:
    with get_connection() as conn:
        with conn.cursor(cursor_factory=extras.RealDictCursor) as cur:
            cur.execute(sql, params)
            return [dict(row) for row in cur.fetchall()]


def fetch_one(sql: str, params: Any = None) -> Optional[Dict[str, Any]]:
    with get_connection() as conn:
        with conn.cursor(cursor_factory=extras.RealDictCursor) as cur:
            cur.execute(sql, params)
            row = cur.fetchone()
    return dict(row) if row else None


def execute(sql: str, params: Any = None) -> int:
    """Run a write statement, commit, and return the affected row count."""
    with get_connection() as conn:
        with conn.cursor() as cur:
            cur.execute(sql, params)
            rowcount = cur.rowcount
        conn.commit()
    return rowcount


# ---------- Facilities ----------


def _prepare_params(row: Dict[str, Any], facility_id: str) -> Dict[str, Any]:
    params = {column: row.get(column) for column in PROVIDER_COLUMNS}
    params["id"] = facility_id
    params["place_id"] = row.get("place_id")
    params["data_source"] = row.get("data_source") or "google_places"
    return params


_UPSERT_FACILITY = f"""
INSERT INTO plants (
    id,
    place_id,
    {", ".join(PROVIDER_COLUMNS)},
    data_source,
    contacted,
    current_customer,
    follow_up_date,
    notes,
    created_at,
    updated_at
) VALUES (
    %(id)s,
    %(place_id)s,
    {", ".join(f"%({column})s" for column in PROVIDER_COLUMNS)},
    %(data_source)s,
    FALSE,
    FALSE,
    NULL,
    NULL,
    NOW(),
    NOW()
)
ON CONFLICT (place_id) DO UPDATE SET
    {", ".join(f"{column} = EXCLUDED.{column}" for column in PROVIDER_COLUMNS)},
    updated_at = NOW()
RETURNING id;
"""


def find_facility_id(place_id: str) -> Optional[str]:
    row = fetch_one("SELECT id FROM plants WHERE place_id = %s", (place_id,))
    return row["id"] if row else None


def upsert_facility(row: Dict[str, Any], facility_id: Optional[str] = None) -> str:
    """Insert or refresh a facility keyed by place_id and return its internal id.

    An existing row keeps its id and CRM fields; only provider-sourced columns
    and ``updated_at`` change.
    """
    if not row.get("place_id"):
        raise ValueError("place_id is required for upsert")

    params = _prepare_params(row, facility_id or str(uuid.uuid4()))
    with get_connection() as conn:
        with conn.cursor() as cur:
            cur.execute(_UPSERT_FACILITY, params)
            facility_id = cur.fetchone()[0]
        conn.commit()
    logger.debug("Upserted facility %s (%s)", params["name"], params["place_id"])
    return facility_id


def count_facilities() -> int:
    row = fetch_one("SELECT COUNT(*) AS c FROM plants")
    return int(row["c"]) if row else 0


def insert_manual_facility(fields: Dict[str, Any]) -> Dict[str, Any]:
    """Add a facility that did not come from ingestion; it gets a synthetic place_id."""
    facility_id = str(uuid.uuid4())
    row = dict(fields)
    row["place_id"] = row.get("place_id") or f"manual-{facility_id}"
    row["data_source"] = "manual"
    upsert_facility(row, facility_id)
    return get_facility(facility_id)


def list_facilities(contacted: Optional[bool] = None, limit: int = 500, offset: int = 0) -> List[Dict[str, Any]]:
    sql = "SELECT * FROM plants WHERE 1=1"
    params: List[Any] = []
    if contacted is not None:
        sql += " AND contacted = %s"
        params.append(contacted)
    sql += " ORDER BY created_at DESC LIMIT %s OFFSET %s"
    params.extend([limit, offset])
    return fetch_all(sql, params)


def get_facility(facility_id: str) -> Optional[Dict[str, Any]]:
    return fetch_one("SELECT * FROM plants WHERE id = %s", (facility_id,))


def update_facility_crm(facility_id: str, changes: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """Update CRM-only fields; unknown keys are ignored."""
    columns = [column for column in CRM_COLUMNS if column in changes]
    if not columns:
        raise ValueError("No valid fields to update")

    assignments = ", ".join(f"{column} = %({column})s" for column in columns)
    params = {column: changes[column] for column in columns}
    params["id"] = facility_id
    updated = execute(f"UPDATE plants SET {assignments}, updated_at = NOW() WHERE id = %(id)s", params)
    if not updated:
        return None
    return get_facility(facility_id)


def facility_metrics() -> Dict[str, int]:
    row = fetch_one(
        """
        SELECT
            COUNT(*) AS total,
            COUNT(*) FILTER (WHERE contacted) AS contacted,
            COUNT(*) FILTER (WHERE current_customer) AS current_customers,
            COUNT(*) FILTER (WHERE follow_up_date IS NOT NULL AND follow_up_date >= CURRENT_DATE) AS pending_follow_ups,
            COUNT(*) FILTER (WHERE created_at >= NOW() - INTERVAL '7 days') AS new_this_week
        FROM plants
        """
    ) or {}
    return {
        "total": int(row.get("total") or 0),
        "contacted": int(row.get("contacted") or 0),
        "currentCustomers": int(row.get("current_customers") or 0),
        "pendingFollowUps": int(row.get("pending_follow_ups") or 0),
        "newThisWeek": int(row.get("new_this_week") or 0),
    }


def delete_facilities(facility_ids: Iterable[str]) -> Dict[str, Any]:
    """Delete facilities and everything they own in one transaction.

    Returns the deleted count plus the visit and project ids that were removed,
    so callers can clean up uploaded files.
    """
    ids = [facility_id for facility_id in facility_ids if facility_id]
    if not ids:
        return {"deleted": 0, "visit_ids": [], "project_ids": []}

    with get_connection() as conn:
        with conn.cursor() as cur:
            cur.execute("SELECT id FROM visits WHERE plant_id = ANY(%s)", (ids,))
            visit_ids = [r[0] for r in cur.fetchall()]
            cur.execute("SELECT id FROM projects WHERE plant_id = ANY(%s)", (ids,))
            project_ids = [r[0] for r in cur.fetchall()]
            cur.execute("DELETE FROM contacts WHERE plant_id = ANY(%s)", (ids,))
            cur.execute("DELETE FROM plants WHERE id = ANY(%s)", (ids,))
            deleted = cur.rowcount
        conn.commit()

    logger.info("Deleted %d facilities", deleted)
    return {"deleted": deleted, "visit_ids": visit_ids, "project_ids": project_ids}


# ---------- Sequences ----------

_NEXT_SEQUENCE = """
INSERT INTO sequences (name, next_value) VALUES (%(name)s, 2)
ON CONFLICT (name) DO UPDATE SET next_value = sequences.next_value + 1
RETURNING next_value - 1;
"""


def next_sequence(name: str) -> Dict[str, Any]:
    """Allocate the next number of a named sequence in a single atomic statement."""
    prefix = SEQUENCE_PREFIXES.get(name)
    if prefix is None:
        raise ValueError(f"Unknown sequence: {name}")

    with get_connection() as conn:
        with conn.cursor() as cur:
            cur.execute(_NEXT_SEQUENCE, {"name": name})
            value = int(cur.fetchone()[0])
        conn.commit()
    return {"value": value, "formatted": f"{prefix}-{value:03d}"}

