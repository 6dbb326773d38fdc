"""Helpers shared by the HTTP blueprints."""

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Tuple

from flask import current_app, jsonify

from plantscout.core.distance import ReferenceLocationCache

REFERENCE_CACHE_KEY = "reference_location"


def _json_value(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, list):
        return [_json_value(item) for item in value]
    if isinstance(value, dict):
        return serialize(value)
    return value


def serialize(row: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if row is None:
        return None
    return {key: _json_value(value) for key, value in row.items()}


def serialize_all(rows: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [serialize(row) for row in rows]


def error(message: str, status: int) -> Tuple[Any, int]:
    return jsonify({"error": message}), status


def reference_cache() -> Optional[ReferenceLocationCache]:
    return current_app.extensions.get(REFERENCE_CACHE_KEY)


def parse_bool(value: Any) -> Optional[bool]:
    """Map query-string style booleans; anything unrecognised is None."""
    if isinstance(value, bool):
        return value
    if value is None:
        return None
    text = str(value).strip().lower()
    if text in {"true", "1"}:
        return True
    if text in {"false", "0"}:
        return False
    return None
