"""Apollo people search and enrichment, used to discover contacts at a facility."""

import logging
from typing import Any, Dict, List, Optional, Sequence
from urllib.parse import urlparse

import requests

logger = logging.getLogger(__name__)
_SESSION = requests.Session()
_BASE_URL = "https://api.apollo.io/api/v1"

MAX_PER_PAGE = 25
MAX_ENRICH_BATCH = 10

# Titles of the people who buy for a plant.
MANUFACTURING_TITLES = (
    "plant manager",
    "maintenance manager",
    "maintenance director",
    "director of maintenance",
    "purchasing manager",
    "procurement manager",
    "operations manager",
    "facilities manager",
    "facilities director",
    "vp operations",
    "vp of operations",
    "coo",
    "chief operating officer",
)


class ApolloError(RuntimeError):
    """Raised when the Apollo API rejects a request."""


def extract_domain(website: Optional[str]) -> Optional[str]:
    """``https://www.acme.com/about`` -> ``acme.com``; None when there is nothing usable."""
    if not website or not website.strip():
        return None
    url = website.strip()
    if not url.startswith("http"):
        url = f"https://{url}"
    try:
        hostname = urlparse(url).hostname
    except ValueError:
        return None
    if not hostname:
        return None
    return hostname[4:] if hostname.startswith("www.") else hostname


def _post(path: str, api_key: str, body: Dict[str, Any]) -> Dict[str, Any]:
    key = (api_key or "").strip()
    if not key:
        raise ApolloError("Apollo API key is required")

    response = _SESSION.post(
        f"{_BASE_URL}/{path}",
        headers={"Content-Type": "application/json", "Cache-Control": "no-cache", "X-Api-Key": key},
        json=body,
        timeout=15,
    )
    if response.status_code >= 400:
        logger.error("apollo %s failed: status=%s body=%s", path, response.status_code, response.text[:500])
        raise ApolloError(f"Apollo API error {response.status_code}: {response.text[:500]}")
    return response.json() or {}


def search_people_by_domain(domain: str, api_key: str, per_page: int = 10, page: int = 1) -> List[Dict[str, Any]]:
    """People with manufacturing titles at ``domain``. Search results carry no emails."""
    payload = _post(
        "mixed_people/api_search",
        api_key,
        {
            "q_organization_domains_list": [domain],
            "person_titles": list(MANUFACTURING_TITLES),
            "per_page": min(per_page, MAX_PER_PAGE),
            "page": page,
        },
    )
    return payload.get("people") or []


def enrich_people(
    apollo_ids: Sequence[str],
    api_key: str,
    reveal_email: bool = True,
    reveal_phone: bool = False,
) -> List[Dict[str, Any]]:
    """Reveal emails (and optionally phones) for up to ten people. Consumes Apollo credits."""
    if not apollo_ids:
        return []
    if len(apollo_ids) > MAX_ENRICH_BATCH:
        raise ValueError(f"Apollo enrichment supports at most {MAX_ENRICH_BATCH} people per request")

    payload = _post(
        "people/bulk_match",
        api_key,
        {
            "details": [{"id": apollo_id} for apollo_id in apollo_ids],
            "reveal_personal_emails": reveal_email,
            "reveal_phone_number": reveal_phone,
        },
    )
    return payload.get("matches") or payload.get("people") or []


def person_to_contact_fields(person: Dict[str, Any]) -> Dict[str, Any]:
    """Map an Apollo person onto ``contacts`` columns."""
    phones = person.get("phone_numbers") or []
    first_phone = phones[0] if phones and isinstance(phones[0], dict) else {}
    return {
        "apollo_id": person.get("id"),
        "first_name": person.get("first_name"),
        "last_name": person.get("last_name") or person.get("last_name_obfuscated"),
        "title": person.get("title"),
        "email": person.get("email") or person.get("sanitized_email"),
        "phone": first_phone.get("sanitized_number") or first_phone.get("raw_number"),
        "linkedin_url": person.get("linkedin_url"),
    }
