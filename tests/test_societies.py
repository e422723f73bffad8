"""Tests for the society request workflow and society self-service."""
from types import SimpleNamespace

import pytest
from sqlalchemy import event as sa_event

from app.campus.db import session_scope
from app.campus.models import Role, SocietyRequestStatus, User
from app.campus.modules.notifications.models import Notification
from app.campus.modules.notifications.service import NotificationError
from app.campus.modules.societies import service as societies_service
from app.campus.modules.societies.models import RequestStatus, Society
from app.campus.modules.societies.service import events_for_owner


def _request(client, headers, name="Robotics Society"):
    r = client.post(
        "/api/societies/request",
        json={"name": name, "email": "robots@example.com", "description": "We build robots", "phone": "555-0142"},
        headers=headers,
    )
    assert r.status_code == 201, r.json
    return r.json["society"]["id"]


def _decide(client, headers, society_id, decision):
    return client.post(
        f"/api/admin/society-requests/{society_id}/decision",
        json={"decision": decision},
        headers=headers,
    )


@pytest.fixture()
def applicant(make_user, auth):
    uid = make_user(name="Riley Applicant", email="riley@example.com")
    return uid, auth(uid)


def test_request_creates_pending_society(client, app, applicant, admin):
    society_id = _request(client, applicant[1])

    r = client.get("/api/users/me", headers=applicant[1])
    assert r.json["societyRequestStatus"] == "pending"
    assert r.json["role"] == "student"

    r = client.get("/api/admin/society-requests", headers=admin[1])
    assert r.status_code == 200
    assert [row["id"] for row in r.json] == [society_id]
    assert r.json[0]["president"]["email"] == "riley@example.com"
    assert r.json[0]["requestStatus"] == "pending"


def test_request_requires_name_and_email(client, applicant):
    r = client.post("/api/societies/request", json={"name": "No Email"}, headers=applicant[1])
    assert r.status_code == 400
    assert "email" in r.json["error"]


def test_approve_promotes_president_and_notifies(client, app, applicant, admin):
    society_id = _request(client, applicant[1])

    r = _decide(client, admin[1], society_id, "approved")
    assert r.status_code == 200
    assert r.json["message"] == "Society request approved successfully."
    assert r.json["society"]["requestStatus"] == "approved"
    assert r.json["notification"]["userId"] == applicant[0]
    assert r.json["notification"]["message"] == 'Your society request for "Robotics Society" has been approved.'

    # The old token now carries the new role.
    r = client.get("/api/users/me", headers=applicant[1])
    assert r.json["role"] == "society"
    assert r.json["societyRequestStatus"] == "approved"

    assert client.get("/api/admin/society-requests", headers=admin[1]).json == []


def test_reject_keeps_student_role(client, app, applicant, admin):
    society_id = _request(client, applicant[1])

    r = _decide(client, admin[1], society_id, "Rejected")
    assert r.status_code == 200
    assert r.json["message"] == "Society request rejected successfully."

    with session_scope(app) as s:
        user = s.get(User, applicant[0])
        assert user.role == Role.STUDENT
        assert user.society_request_status == SocietyRequestStatus.REJECTED
        assert s.get(Society, society_id).request_status == RequestStatus.REJECTED


def test_second_decision_is_refused(client, app, applicant, admin):
    society_id = _request(client, applicant[1])
    assert _decide(client, admin[1], society_id, "approved").status_code == 200

    r = _decide(client, admin[1], society_id, "rejected")
    assert r.status_code == 400
    assert r.json["error"] == "Society request already approved"

    with session_scope(app) as s:
        assert s.get(User, applicant[0]).role == Role.SOCIETY
        assert s.get(Society, society_id).request_status == RequestStatus.APPROVED
        assert s.query(Notification).filter(Notification.user_id == applicant[0]).count() == 1


def test_invalid_or_unauthorized_decisions(client, applicant, admin, student):
    society_id = _request(client, applicant[1])

    r = _decide(client, admin[1], society_id, "maybe")
    assert r.status_code == 400

    r = _decide(client, student[1], society_id, "approved")
    assert r.status_code == 403

    r = _decide(client, admin[1], 4040, "approved")
    assert r.status_code == 404

    assert client.get("/api/admin/society-requests", headers=student[1]).status_code == 403


def test_decision_is_all_or_nothing(client, app, applicant, admin, monkeypatch):
    society_id = _request(client, applicant[1])

    def broken_single(s, recipient_id, message, link=None, **kwargs):
        raise NotificationError("boom")

    monkeypatch.setattr(societies_service, "single", broken_single)

    r = _decide(client, admin[1], society_id, "approved")
    assert r.status_code == 500
    assert r.json["error"] == "Could not record the society decision"

    with session_scope(app) as s:
        user = s.get(User, applicant[0])
        assert user.role == Role.STUDENT
        assert user.society_request_status == SocietyRequestStatus.PENDING
        assert s.get(Society, society_id).request_status == RequestStatus.PENDING
        assert s.query(Notification).count() == 0


def test_society_profile_self_service(client, applicant, admin, student):
    _request(client, applicant[1])
    assert client.get("/api/societies/me", headers=applicant[1]).status_code == 403

    society_id = _request(client, applicant[1], name="Second Try")
    _decide(client, admin[1], society_id, "approved")

    r = client.get("/api/societies/me", headers=applicant[1])
    assert r.status_code == 200
    assert r.json["name"] == "Second Try"

    r = client.put("/api/societies/me", json={"description": "Now with drones", "name": "Drone Club"}, headers=applicant[1])
    assert r.status_code == 200
    assert r.json["description"] == "Now with drones"
    assert r.json["name"] == "Drone Club"

    r = client.put("/api/societies/me", json={"email": " "}, headers=applicant[1])
    assert r.status_code == 400

    r = client.get("/api/societies/me", headers=student[1])
    assert r.status_code == 403
    assert r.json["error"] == "Unauthorized"


def test_my_events_lists_owned_events_with_registrants(client, create_event, society, student, admin, make_user, auth):
    mine = create_event(society[0], title="Mine")
    other_society = make_user(name="Drama Club", email="drama@example.com", role=Role.SOCIETY)
    theirs = create_event(other_society, title="Theirs")
    client.post(f"/api/registers/{mine}", headers=student[1])

    r = client.get("/api/societies/my-events", headers=society[1])
    assert r.status_code == 200
    assert [e["id"] for e in r.json] == [mine]
    assert [row["user"]["id"] for row in r.json[0]["registrations"]] == [student[0]]

    r = client.get("/api/societies/my-events", headers=admin[1])
    assert sorted(e["id"] for e in r.json) == sorted([mine, theirs])

    assert client.get("/api/societies/my-events", headers=student[1]).status_code == 403


def test_my_events_loads_registrants_in_one_query(app, client, create_event, society, student):
    event_ids = [create_event(society[0], title=f"Night {i}") for i in range(4)]
    for event_id in event_ids[:2]:
        client.post(f"/api/registers/{event_id}", headers=student[1])

    statements = []

    def _count(conn, cursor, statement, parameters, context, executemany):
        if "FROM registrations" in statement:
            statements.append(statement)

    engine = app.extensions["sqlalchemy_engine"]
    sa_event.listen(engine, "before_cursor_execute", _count)
    try:
        with session_scope(app) as s:
            rows = events_for_owner(s, SimpleNamespace(id=society[0], role=Role.SOCIETY))
    finally:
        sa_event.remove(engine, "before_cursor_execute", _count)

    assert len(statements) == 1
    assert [event.id for event, _ in rows] == event_ids
    assert [len(regs) for _, regs in rows] == [1, 1, 0, 0]


def test_approving_an_admins_request_makes_them_a_society(client, app, admin, make_user, auth):
    other_admin = make_user(name="Second Admin", email="admin2@example.com", role=Role.ADMIN)
    society_id = _request(client, auth(other_admin))

    r = _decide(client, admin[1], society_id, "approved")
    assert r.status_code == 200

    with session_scope(app) as s:
        assert s.get(User, other_admin).role == Role.SOCIETY
