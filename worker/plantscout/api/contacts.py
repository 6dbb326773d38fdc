"""Contact routes."""

import logging
from typing import Any

import requests
from flask import Blueprint, jsonify, request

from plantscout.api.common import error, serialize, serialize_all
from plantscout.core import crm
from plantscout.core.config import get_settings
from plantscout.vendors import apollo

logger = logging.getLogger(__name__)

contacts_bp = Blueprint("contacts", __name__)


@contacts_bp.get("")
def list_contacts() -> Any:
    return jsonify(serialize_all(crm.list_contacts(request.args.get("plant_id"))))


@contacts_bp.get("/<contact_id>")
def get_contact(contact_id: str) -> Any:
    contact = crm.get_contact(contact_id)
    if contact is None:
        return error("Contact not found", 404)
    return jsonify(serialize(contact))


@contacts_bp.post("/<contact_id>/enrich")
def enrich_contact(contact_id: str) -> Any:
    """Reveal the email of a discovered contact through Apollo (uses credits)."""
    contact = crm.get_contact(contact_id)
    if contact is None:
        return error("Contact not found", 404)
    if not contact.get("apollo_id"):
        return error("Contact has no Apollo ID - cannot enrich", 400)

    api_key = get_settings().apollo_api_key
    if not api_key:
        return error("APOLLO_API_KEY not configured. Add it to .env", 503)

    try:
        # Phone reveal needs an Apollo webhook, so only email is requested.
        people = apollo.enrich_people([contact["apollo_id"]], api_key, reveal_email=True, reveal_phone=False)
    except (apollo.ApolloError, requests.RequestException) as exc:
        logger.warning("Contact enrichment failed for %s: %s", contact_id, exc)
        return error(str(exc), 502)

    if not people or not isinstance(people[0], dict):
        return error("Apollo could not enrich this contact", 404)

    updated = crm.apply_contact_enrichment(contact_id, apollo.person_to_contact_fields(people[0]))
    return jsonify(serialize(updated))


@contacts_bp.delete("/<contact_id>")
def delete_contact(contact_id: str) -> Any:
    if not crm.delete_contact(contact_id):
        return error("Contact not found", 404)
    return "", 204
