"""Tests for sign-up, login and bearer token handling."""
import time

import pytest

from app.campus.auth import AuthGate
from app.campus.db import session_scope
from app.campus.errors import Unauthenticated
from app.campus.models import AuditEvent, Role, User


def _signup(client, email="new@example.com", password="secret"):
    return client.post(
        "/api/users/add",
        json={"name": "New User", "email": email, "password": password, "phone": "555-0199"},
    )


def test_signup_returns_token_and_student_role(client):
    r = _signup(client)
    assert r.status_code == 201
    assert r.json["role"] == "student"
    assert r.json["societyRequestStatus"] == "none"
    assert r.json["token"]

    r = client.get("/api/users/me", headers={"Authorization": f"Bearer {r.json['token']}"})
    assert r.status_code == 200
    assert r.json["email"] == "new@example.com"
    assert r.json["role"] == "student"


def test_signup_duplicate_email(client):
    assert _signup(client).status_code == 201
    r = _signup(client, email="NEW@example.com")
    assert r.status_code == 400
    assert r.json["error"] == "This email already exists in our database"


def test_signup_missing_fields(client):
    r = client.post("/api/users/add", json={"email": "x@example.com"})
    assert r.status_code == 400
    assert "name" in r.json["error"]
    assert "password" in r.json["error"]


def test_login_success_and_failure(client, app):
    _signup(client)
    r = client.post("/api/users/login", json={"email": "new@example.com", "password": "secret"})
    assert r.status_code == 200
    assert r.json["token"]

    r = client.post("/api/users/login", json={"email": "new@example.com", "password": "wrong"})
    assert r.status_code == 401
    assert r.json["error"] == "Invalid credentials"

    r = client.post("/api/users/login", json={"email": "ghost@example.com", "password": "secret"})
    assert r.status_code == 401

    with session_scope(app) as s:
        actions = [e.action for e in s.query(AuditEvent).order_by(AuditEvent.id).all()]
    assert actions.count("auth.login_failed") == 2
    assert "auth.login" in actions


def test_malformed_and_invalid_tokens(client):
    r = client.get("/api/users/me", headers={"Authorization": "Token abc"})
    assert r.status_code == 401
    assert r.json["error"] == "Malformed token"

    r = client.get("/api/users/me", headers={"Authorization": "Bearer not-a-real-token"})
    assert r.status_code == 401
    assert r.json["error"] == "Invalid or expired token"


def test_token_for_deleted_user_is_rejected(client, app, make_user, auth):
    uid = make_user(name="Gone")
    headers = auth(uid)
    with session_scope(app) as s:
        s.delete(s.get(User, uid))
    r = client.get("/api/users/me", headers=headers)
    assert r.status_code == 401


def test_update_profile(client, student):
    _, headers = student
    r = client.put("/api/users/update", json={"name": "Samantha", "phone": ""}, headers=headers)
    assert r.status_code == 200
    assert r.json["name"] == "Samantha"
    assert r.json["phone"] == "555-0100"


def test_auth_gate_round_trip_and_expiry():
    user = User(id=7, name="Ana", email="ana@example.com", role=Role.ADMIN)
    gate = AuthGate("k1", max_age_seconds=60)
    identity = gate.verify(gate.issue(user))
    assert identity.id == 7
    assert identity.role == Role.ADMIN
    assert identity.email == "ana@example.com"

    with pytest.raises(Unauthenticated):
        AuthGate("other-key").verify(gate.issue(user))

    expired = AuthGate("k1", max_age_seconds=-1)
    token = expired.issue(user)
    time.sleep(0.01)
    with pytest.raises(Unauthenticated) as exc:
        expired.verify(token)
    assert exc.value.message == "Invalid or expired token"


def test_auth_gate_requires_secret():
    with pytest.raises(RuntimeError):
        AuthGate("")


def test_verify_header_variants():
    gate = AuthGate("k1")
    with pytest.raises(Unauthenticated) as exc:
        gate.verify_header(None)
    assert exc.value.message == "No token provided"
    with pytest.raises(Unauthenticated) as exc:
        gate.verify_header("Bearer")
    assert exc.value.message == "Malformed token"
