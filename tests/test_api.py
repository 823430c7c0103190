from pathlib import Path
import sys

import pytest
from fastapi.testclient import TestClient

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from server.main import _parse_cors_origins, _parse_tokens, create_app
from store.engine import get_engine
from store.repository import StoreError, TableStore

TOKENS = {"tok-a": "user-a", "tok-b": "user-b"}
AUTH_A = {"Authorization": "Bearer tok-a"}
AUTH_B = {"Authorization": "Bearer tok-b"}

EPISODE = {
    "start_time": "2025-01-01T10:00:00Z",
    "end_time": "2025-01-01T12:30:00Z",
    "severity": 7,
    "pain_location": ["forehead", "eyes"],
    "symptoms": ["nausea"],
    "triggers": ["stress", "caffeine"],
    "medications": [{"name": "Ibuprofen", "dosage": "400mg", "time_taken": "2025-01-01T10:30:00Z"}],
}


@pytest.fixture
def store(tmp_path):
    return TableStore(get_engine(tmp_path / "migraine.db"))


@pytest.fixture
def client(store):
    return TestClient(create_app(store=store, tokens=TOKENS))


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"ok": True}


def test_requests_without_identity_are_401(client):
    assert client.get("/episodes").status_code == 401
    assert client.get("/episodes", headers={"Authorization": "Bearer wrong"}).status_code == 401
    r = client.post("/episodes", json=EPISODE)
    assert r.status_code == 401
    assert r.json()["detail"] == "User not authenticated"


def test_create_episode(client):
    r = client.post("/episodes", json=EPISODE, headers=AUTH_A)
    assert r.status_code == 201
    body = r.json()
    assert body["user_id"] == "user-a"
    assert body["pain_location"] == ["forehead", "eyes"]
    assert body["medications"][0]["name"] == "Ibuprofen"
    assert body["duration_hours"] == 2.5
    assert body["duration"] == "2h 30m"


def test_invalid_episode_lists_every_issue(client):
    bad = {**EPISODE, "severity": 11, "pain_location": [], "end_time": "2025-01-01T09:00:00Z"}
    r = client.post("/episodes", json=bad, headers=AUTH_A)
    assert r.status_code == 422
    paths = {issue["path"] for issue in r.json()["issues"]}
    assert paths == {"severity", "pain_location"}


def test_end_before_start_is_422(client):
    r = client.post("/episodes", json={**EPISODE, "end_time": "2025-01-01T09:00:00Z"}, headers=AUTH_A)
    assert r.status_code == 422
    assert r.json()["issues"] == [{"path": "end_time", "message": "End time must be after start time"}]


def test_read_update_delete(client):
    created = client.post("/episodes", json=EPISODE, headers=AUTH_A).json()
    url = f"/episodes/{created['id']}"

    assert client.get(url, headers=AUTH_A).json()["severity"] == 7
    assert client.get(url, headers=AUTH_B).status_code == 404

    r = client.patch(url, json={"severity": 8}, headers=AUTH_A)
    assert r.status_code == 200
    assert r.json()["severity"] == 8
    assert r.json()["triggers"] == ["stress", "caffeine"]

    r = client.patch(url, json={"end_time": None}, headers=AUTH_A)
    assert r.json()["duration"] == "Ongoing"
    assert r.json()["duration_hours"] is None

    r = client.patch(url, json={"pain_location": None}, headers=AUTH_A)
    assert r.status_code == 422

    assert client.delete(url, headers=AUTH_A).status_code == 204
    assert client.get(url, headers=AUTH_A).status_code == 404


def test_list_and_stats(client):
    client.post("/episodes", json=EPISODE, headers=AUTH_A)
    client.post(
        "/episodes",
        json={**EPISODE, "start_time": "2025-02-01T10:00:00Z", "end_time": None, "severity": 8, "triggers": ["stress"]},
        headers=AUTH_A,
    )
    listed = client.get("/episodes", headers=AUTH_A).json()
    assert [ep["start_time"][:7] for ep in listed] == ["2025-02", "2025-01"]
    assert client.get("/episodes", headers=AUTH_B).json() == []

    stats = client.get("/episodes/stats", headers=AUTH_A).json()
    assert stats["total_episodes"] == 2
    assert stats["average_severity"] == 7.5
    assert stats["average_duration"] == 2.5
    assert stats["most_common_triggers"] == [
        {"tag": "stress", "count": 2},
        {"tag": "caffeine", "count": 1},
    ]
    assert stats["episodes_per_month"] == [
        {"month": "2025-01", "count": 1},
        {"month": "2025-02", "count": 1},
    ]

    empty = client.get("/episodes/stats", headers=AUTH_B).json()
    assert empty["total_episodes"] == 0
    assert empty["average_severity"] == 0
    assert empty["most_common_triggers"] == []


def test_feedback_endpoints(client):
    payload = {"type": "feature_request", "title": "Export", "description": "Export my episodes as CSV."}
    r = client.post("/feedback", json=payload, headers=AUTH_A)
    assert r.status_code == 201
    created = r.json()
    assert created["status"] == "new"

    assert [fb["id"] for fb in client.get("/feedback", headers=AUTH_A).json()] == [created["id"]]

    r = client.patch(f"/feedback/{created['id']}", json={"title": "CSV export"}, headers=AUTH_A)
    assert r.json()["title"] == "CSV export"

    r = client.post("/feedback", json={**payload, "title": "no"}, headers=AUTH_A)
    assert r.status_code == 422

    assert client.delete(f"/feedback/{created['id']}", headers=AUTH_A).status_code == 204
    assert client.get(f"/feedback/{created['id']}", headers=AUTH_A).status_code == 404


def test_store_failure_keeps_its_message(store):
    class BrokenStore(TableStore):
        def list(self, *args, **kwargs):
            raise StoreError("upstream timed out", code="timeout")

    broken = BrokenStore(store.engine)
    client = TestClient(create_app(store=broken, tokens=TOKENS))
    r = client.get("/episodes", headers=AUTH_A)
    assert r.status_code == 502
    assert r.json() == {"detail": "upstream timed out", "code": "timeout"}


def test_caches_exist_only_for_configured_accounts(client):
    caches = client.app.state.caches
    assert set(caches) == {"user-a", "user-b"}
    first = caches["user-a"]

    client.get("/episodes", headers=AUTH_A)
    client.get("/episodes", headers={"Authorization": "Bearer wrong"})
    assert set(client.app.state.caches) == {"user-a", "user-b"}
    assert client.app.state.caches["user-a"] is first


def test_config_parsing():
    assert _parse_tokens("a:user-1, b:user-2,broken,") == {"a": "user-1", "b": "user-2"}
    assert _parse_tokens(None) == {}
    assert _parse_cors_origins(None) == ["*"]
    assert _parse_cors_origins("https://a.example, https://b.example") == [
        "https://a.example",
        "https://b.example",
    ]


def test_tokens_from_environment(monkeypatch, store):
    monkeypatch.setenv("API_TOKENS", "env-token:user-env")
    client = TestClient(create_app(store=store))
    assert client.get("/episodes", headers={"Authorization": "Bearer env-token"}).status_code == 200
