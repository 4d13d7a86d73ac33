"""HTTP tests for the upload and lookup endpoints."""

from unittest.mock import Mock

import pytest
from fastapi.testclient import TestClient

from phone_lookup.config.settings import RuntimeConfig
from phone_lookup.main import create_app
from phone_lookup.utils.errors import StoreUnavailableError

PASSWORD = "s3cret"


@pytest.fixture(autouse=True)
def upload_password(monkeypatch):
    monkeypatch.setenv("UPLOAD_PASSWORD", PASSWORD)


@pytest.fixture
def client(store):
    return TestClient(create_app(store=store))


def _upload(client, records, password=PASSWORD):
    return client.post("/upload", json={"password": password, "phoneRecords": records})


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"
    assert "X-Request-ID" in response.headers


def test_upload_reports_statistics(client, upload_batch):
    response = _upload(client, upload_batch)

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["statistics"] == {
        "processed": 7,
        "inserted": 3,
        "updated": 1,
        "skipped": 2,
        "errors": 1,
        "totalInDatabase": 3,
    }


def test_upload_wrong_password(client, store):
    response = _upload(client, [{"phone": "5551234567", "person": {"name": "A", "type": "DEBTOR"}}], "nope")

    assert response.status_code == 401
    assert response.json() == {"error": "Invalid password"}
    assert store.count() == 0


def test_upload_without_configured_password(client, monkeypatch):
    monkeypatch.delenv("UPLOAD_PASSWORD")

    response = _upload(client, [])

    assert response.status_code == 500


@pytest.mark.parametrize("records", [None, [], "not-a-list", {"phone": "5551234567"}])
def test_upload_requires_records(client, records):
    response = _upload(client, records)

    assert response.status_code == 400
    assert response.json() == {"error": "No phone records provided"}


def test_upload_store_unavailable(monkeypatch):
    store = Mock()
    store.get = Mock(side_effect=StoreUnavailableError("get", "down"))
    client = TestClient(create_app(store=store))

    response = _upload(client, [{"phone": "5551234567", "person": {"name": "A", "type": "DEBTOR"}}])

    assert response.status_code == 503
    assert response.json()["error"] == "Store unavailable"


def test_lookup_found(client):
    _upload(client, [{"phone": "5551234567", "person": {"name": "A", "type": "DEBTOR", "addr": "X"}}])

    response = client.get("/lookup", params={"phone": "+1 (555) 123-4567"})

    assert response.status_code == 200
    body = response.json()
    assert body["found"] is True
    assert body["phone"] == "5551234567"
    assert body["persons"] == [{"name": "A", "type": "DEBTOR", "addr": "X"}]
    assert body["updatedAt"]


def test_lookup_post(client):
    _upload(client, [{"phone": "5551234567", "person": {"name": "A", "type": "DEBTOR"}}])

    response = client.post("/lookup", json={"phone": "555-123-4567"})

    assert response.status_code == 200
    assert response.json()["found"] is True


def test_lookup_not_found(client):
    response = client.get("/lookup", params={"phone": "5550000000"})

    assert response.status_code == 200
    assert response.json() == {"found": False, "phone": "5550000000", "persons": []}


def test_lookup_missing_phone(client):
    response = client.get("/lookup")

    assert response.status_code == 400
    assert response.json() == {"error": "Phone number required"}


def test_lookup_invalid_phone(client):
    response = client.get("/lookup", params={"phone": "12345"})

    assert response.status_code == 400
    assert response.json() == {"error": "Invalid phone number"}


@pytest.mark.parametrize("phone", [5551234567.0, ["555", "123", "4567"], {"n": "5551234567"}])
def test_lookup_post_rejects_non_string_phone(client, phone):
    response = client.post("/lookup", json={"phone": phone})

    assert response.status_code == 400
    assert response.json() == {"error": "Invalid phone number"}


def test_custom_priority_policy(store):
    config = RuntimeConfig(priority_policy={"EMPLOYER": "high", "NEIGHBOR": "low"})
    client = TestClient(create_app(store=store, config=config))

    response = _upload(
        client,
        [
            {"phone": "5551234567", "person": {"name": "E", "type": "EMPLOYER"}},
            {"phone": "5551234567", "person": {"name": "N", "type": "NEIGHBOR"}},
            {"phone": "5551234567", "person": {"name": "P", "type": "POSS POE"}},
        ],
    )

    statistics = response.json()["statistics"]
    assert (statistics["inserted"], statistics["updated"], statistics["skipped"]) == (1, 1, 1)
