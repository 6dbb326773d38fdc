"""Commissioning routes."""

from typing import Any

from flask import Blueprint, jsonify, request

from plantscout.api.common import serialize_all
from plantscout.core import crm

commissionings_bp = Blueprint("commissionings", __name__)


@commissionings_bp.get("")
def list_commissionings() -> Any:
    return jsonify(serialize_all(crm.list_commissionings(request.args.get("plant_id"))))
