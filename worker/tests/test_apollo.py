import pytest

from plantscout.vendors import apollo


class DummyResponse:
    def __init__(self, status_code=200, payload=None, text=""):
        self.status_code = status_code
        self._payload = payload or {}
        self.text = text

    def json(self):
        return self._payload


class DummySession:
    def __init__(self):
        self.calls = []

    def post(self, url, headers=None, json=None, timeout=None):
        self.calls.append((url, headers, json, timeout))
        return self.response


@pytest.fixture(autouse=True)
def patch_session(monkeypatch):
    session = DummySession()
    monkeypatch.setattr(apollo, "_SESSION", session)
    return session


@pytest.mark.parametrize(
    "website, expected",
    [
        ("https://www.acme.com/about", "acme.com"),
        ("acme-foundry.com", "acme-foundry.com"),
        ("http://plant.example.org", "plant.example.org"),
        ("   ", None),
        (None, None),
    ],
)
def test_extract_domain(website, expected):
    assert apollo.extract_domain(website) == expected


def test_search_people_by_domain(patch_session):
    patch_session.response = DummyResponse(payload={"people": [{"id": "a1", "first_name": "Dana"}]})

    people = apollo.search_people_by_domain("acme.com", " key ", per_page=50)

    assert people == [{"id": "a1", "first_name": "Dana"}]
    url, headers, body, timeout = patch_session.calls[0]
    assert url.endswith("/mixed_people/api_search")
    assert headers["X-Api-Key"] == "key"
    assert body["q_organization_domains_list"] == ["acme.com"]
    assert "plant manager" in body["person_titles"]
    assert body["per_page"] == apollo.MAX_PER_PAGE
    assert timeout == 15


def test_search_requires_key(patch_session):
    with pytest.raises(apollo.ApolloError):
        apollo.search_people_by_domain("acme.com", "")
    assert patch_session.calls == []


def test_search_error_status(patch_session):
    patch_session.response = DummyResponse(status_code=401, text="invalid api key")
    with pytest.raises(apollo.ApolloError, match="401"):
        apollo.search_people_by_domain("acme.com", "key")


def test_enrich_people_limits_batch(patch_session):
    assert apollo.enrich_people([], "key") == []
    with pytest.raises(ValueError):
        apollo.enrich_people([str(i) for i in range(11)], "key")
    assert patch_session.calls == []


def test_enrich_people_requests_email_only(patch_session):
    patch_session.response = DummyResponse(payload={"matches": [{"id": "a1", "email": "dana@acme.com"}]})

    people = apollo.enrich_people(["a1"], "key", reveal_phone=False)

    assert people[0]["email"] == "dana@acme.com"
    _, _, body, _ = patch_session.calls[0]
    assert body == {"details": [{"id": "a1"}], "reveal_personal_emails": True, "reveal_phone_number": False}


def test_person_to_contact_fields():
    fields = apollo.person_to_contact_fields(
        {
            "id": "a1",
            "first_name": "Dana",
            "last_name_obfuscated": "S***h",
            "title": "Plant Manager",
            "sanitized_email": "dana@acme.com",
            "phone_numbers": [{"raw_number": "+1 972 555 0100"}],
        }
    )
    assert fields == {
        "apollo_id": "a1",
        "first_name": "Dana",
        "last_name": "S***h",
        "title": "Plant Manager",
        "email": "dana@acme.com",
        "phone": "+1 972 555 0100",
        "linkedin_url": None,
    }
