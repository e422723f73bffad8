import pytest


def test_health_ok(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json["ok"] is True
    assert r.json["db_connected"] is True


def test_healthz_ok(client):
    r = client.get("/healthz")
    assert r.status_code == 200
    assert r.data == b"ok"


def test_index(client):
    r = client.get("/")
    assert r.status_code == 200
    assert "running" in r.json["message"]


def test_unknown_route_is_json_404(client):
    r = client.get("/api/nope")
    assert r.status_code == 404
    assert "error" in r.json


def test_protected_route_without_token(client):
    r = client.get("/api/users/me")
    assert r.status_code == 401
    assert r.json == {"error": "No token provided"}


@pytest.mark.parametrize("body", [["x"], "text", 42])
def test_non_object_json_body_is_rejected(client, create_event, admin, society, body):
    event_id = create_event(society[0])
    for method, path, headers in (
        ("put", f"/api/events/{event_id}", society[1]),
        ("post", "/api/events/add", admin[1]),
        ("post", "/api/users/login", {}),
        ("post", "/api/users/add", {}),
        ("post", "/api/societies/request", society[1]),
        ("post", "/api/admin/society-requests/1/decision", admin[1]),
        ("post", "/api/announcements", admin[1]),
        ("post", "/api/queries", society[1]),
    ):
        r = getattr(client, method)(path, json=body, headers=headers)
        assert r.status_code == 400, (path, r.json)
        assert r.json == {"error": "Request body must be a JSON object"}


def test_missing_body_is_treated_as_empty(client, student):
    r = client.post("/api/queries", headers=student[1])
    assert r.status_code == 400
    assert r.json["error"] == "Message cannot be empty"
