import pytest

from plantscout.core import crm


@pytest.fixture
def recorder(monkeypatch):
    statements = []

    def fake_execute(sql, params=None):
        statements.append((" ".join(sql.split()), params))
        return 1

    monkeypatch.setattr(crm, "execute", fake_execute)
    return statements


def test_create_project_allocates_pr_number(recorder, monkeypatch):
    monkeypatch.setattr(crm, "next_sequence", lambda name: {"value": 4, "formatted": "PR-004"})

    project_id = crm.create_project("f1", notes="Chiller retrofit")

    statement, params = recorder[0]
    assert statement.startswith("INSERT INTO projects")
    assert params[0] == project_id
    assert params[1:] == ("f1", "PR-004", "draft", None, "Chiller retrofit")


def test_convert_to_commissioning_refuses_second_record(recorder, monkeypatch):
    monkeypatch.setattr(crm, "fetch_one", lambda sql, params=None: {"id": "existing"})
    monkeypatch.setattr(crm, "next_sequence", lambda name: pytest.fail("no number should be allocated"))

    with pytest.raises(crm.CommissioningExistsError):
        crm.convert_to_commissioning("p1")
    assert recorder == []


def test_convert_to_commissioning_creates_record(recorder, monkeypatch):
    lookups = iter([None, {"id": "c1", "comm_number": "COMM-001"}])
    monkeypatch.setattr(crm, "fetch_one", lambda sql, params=None: next(lookups))
    monkeypatch.setattr(crm, "next_sequence", lambda name: {"value": 1, "formatted": "COMM-001"})

    commissioning = crm.convert_to_commissioning("p1")

    assert commissioning["comm_number"] == "COMM-001"
    assert "ON CONFLICT (project_id) DO NOTHING" in recorder[0][0]


def test_update_project_returns_none_when_missing(monkeypatch):
    monkeypatch.setattr(crm, "execute", lambda sql, params=None: 0)
    assert crm.update_project("missing", {"status": "won"}) is None


def test_list_visits_embeds_files(monkeypatch):
    def fake_fetch_all(sql, params=None):
        if "FROM visit_files" in sql:
            return [{"filename": "a.pdf", "visit_id": params[0]}]
        return [{"id": "v1", "plant_name": "North Texas Foundry"}]

    monkeypatch.setattr(crm, "fetch_all", fake_fetch_all)

    visits = crm.list_visits("f1")

    assert visits[0]["files"] == [{"filename": "a.pdf", "visit_id": "v1"}]


def test_add_discovered_contacts_skips_known_and_repeated_people(recorder, monkeypatch):
    monkeypatch.setattr(crm, "fetch_all", lambda sql, params=None: [{"apollo_id": "a1"}, {"apollo_id": None}])

    added = crm.add_discovered_contacts(
        "f1",
        [
            {"apollo_id": "a1", "first_name": "Known"},
            {"apollo_id": "a2", "first_name": "Dana", "title": "Plant Manager"},
            {"apollo_id": "a2", "first_name": "Dana"},
            {"apollo_id": None, "first_name": "No id"},
        ],
    )

    assert added == 1
    statement, params = recorder[0]
    assert statement.startswith("INSERT INTO contacts")
    assert "'apollo'" in statement
    assert params[1:] == ("f1", "a2", "Dana", None, "Plant Manager", None)


def test_apply_contact_enrichment_keeps_existing_names(recorder, monkeypatch):
    monkeypatch.setattr(crm, "fetch_one", lambda sql, params=None: {"id": "c1", "email": "dana@acme.com"})

    contact = crm.apply_contact_enrichment("c1", {"email": "dana@acme.com"})

    statement, params = recorder[0]
    assert "first_name = COALESCE(%(first_name)s, first_name)" in statement
    assert params["first_name"] is None
    assert params["email"] == "dana@acme.com"
    assert contact["email"] == "dana@acme.com"
