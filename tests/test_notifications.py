"""Tests for the notification inbox and the fan-out helpers."""
from datetime import timedelta

from app.campus.db import session_scope
from app.campus.modules.events.models import Event
from app.campus.modules.notifications.models import Notification
from app.campus.modules.notifications.service import (
    KIND_NEW_EVENT,
    KIND_REGISTRATION,
    broadcast,
    reconcile_event_broadcast,
)
from app.campus.utils import utcnow


def _add_notifications(app, user_id, count, is_read=False):
    base = utcnow()
    with session_scope(app) as s:
        for i in range(count):
            s.add(
                Notification(
                    user_id=user_id,
                    message=f"note {i}",
                    is_read=is_read,
                    created_at=base + timedelta(seconds=i),
                )
            )


def test_list_is_newest_first_and_scoped(client, app, student, society):
    _add_notifications(app, student[0], 3)
    _add_notifications(app, society[0], 2)

    r = client.get("/api/notifications", headers=student[1])
    assert r.status_code == 200
    assert [n["message"] for n in r.json] == ["note 2", "note 1", "note 0"]
    assert {n["userId"] for n in r.json} == {student[0]}


def test_list_respects_page_size(app, client, student):
    app.config["NOTIFICATION_PAGE_SIZE"] = 2
    _add_notifications(app, student[0], 5)
    r = client.get("/api/notifications", headers=student[1])
    assert [n["message"] for n in r.json] == ["note 4", "note 3"]


def test_mark_read_defaults_to_true_and_is_idempotent(client, app, student):
    _add_notifications(app, student[0], 1)
    with session_scope(app) as s:
        nid = s.query(Notification).one().id

    for _ in range(2):
        r = client.patch(f"/api/notifications/{nid}/read", headers=student[1])
        assert r.status_code == 200
        assert r.json["isRead"] is True

    r = client.patch(f"/api/notifications/{nid}/read", json={"isRead": False}, headers=student[1])
    assert r.status_code == 200
    assert r.json["isRead"] is False

    r = client.patch(f"/api/notifications/{nid}/read", json={"isRead": "yes"}, headers=student[1])
    assert r.status_code == 400


def test_mark_read_on_someone_elses_notification(client, app, student, society):
    _add_notifications(app, society[0], 1)
    with session_scope(app) as s:
        nid = s.query(Notification).one().id

    r = client.patch(f"/api/notifications/{nid}/read", headers=student[1])
    assert r.status_code == 404
    assert r.json["error"] == "Notification not found"
    with session_scope(app) as s:
        assert s.get(Notification, nid).is_read is False


def test_delete_read_only_touches_own_read_notifications(client, app, student, society):
    _add_notifications(app, student[0], 2, is_read=True)
    _add_notifications(app, student[0], 1, is_read=False)
    _add_notifications(app, society[0], 2, is_read=True)

    r = client.delete("/api/notifications/delete-read", headers=student[1])
    assert r.status_code == 200
    assert r.json == {"message": "Deleted 2 read notifications", "deleted": 2}

    with session_scope(app) as s:
        assert s.query(Notification).filter(Notification.user_id == student[0]).count() == 1
        assert s.query(Notification).filter(Notification.user_id == society[0]).count() == 2

    r = client.delete("/api/notifications/delete-read", headers=student[1])
    assert r.json["deleted"] == 0


def test_notifications_require_login(client):
    assert client.get("/api/notifications").status_code == 401
    assert client.delete("/api/notifications/delete-read").status_code == 401


def test_broadcast_dedupes_recipients(app, student, society):
    with session_scope(app) as s:
        result = broadcast(s, [student[0], society[0], student[0]], "hello", "/events/1")
    assert result.as_dict() == {"attempted": 2, "delivered": 2, "failed": []}
    with session_scope(app) as s:
        assert s.query(Notification).count() == 2


def test_broadcast_with_no_recipients(app):
    with session_scope(app) as s:
        assert broadcast(s, [], "hello").attempted == 0


def test_reconcile_fills_gaps_once(client, app, create_event, admin, society, student):
    event_id = create_event(society[0])
    with session_scope(app) as s:
        s.query(Notification).filter(Notification.user_id == student[0]).delete()

    with session_scope(app) as s:
        result = reconcile_event_broadcast(s, s.get(Event, event_id))
    assert result.delivered == 1

    with session_scope(app) as s:
        result = reconcile_event_broadcast(s, s.get(Event, event_id))
        assert result.attempted == 0
        link = f"/events/{event_id}"
        assert s.query(Notification).filter(Notification.link == link).count() == 3


def test_reconcile_ignores_registration_confirmations(client, app, create_event, society, student):
    event_id = create_event(society[0])
    with session_scope(app) as s:
        s.query(Notification).filter(Notification.user_id == student[0]).delete()
    assert client.post(f"/api/registers/{event_id}", headers=student[1]).status_code == 201

    with session_scope(app) as s:
        result = reconcile_event_broadcast(s, s.get(Event, event_id))
    assert result.delivered == 1

    with session_scope(app) as s:
        kinds = sorted(n.kind for n in s.query(Notification).filter(Notification.user_id == student[0]))
    assert kinds == [KIND_NEW_EVENT, KIND_REGISTRATION]


def test_notifications_record_their_kind(client, app, create_event, society, student):
    event_id = create_event(society[0])
    client.post(f"/api/registers/{event_id}", headers=student[1])

    r = client.get("/api/notifications", headers=student[1])
    assert [n["kind"] for n in r.json] == [KIND_REGISTRATION, KIND_NEW_EVENT]
