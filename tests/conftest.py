import pytest
from werkzeug.security import generate_password_hash

from app.campus import create_app
from app.campus.db import session_scope
from app.campus.models import Base, Role, User

FUTURE_DATE = "2099-06-01"
PAST_DATE = "2001-06-01"


@pytest.fixture()
def app(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'test.db'}")
    monkeypatch.setenv("ENV", "test")
    for k in ("TOKEN_MAX_AGE_SECONDS", "EVENT_TIMEZONE", "NOTIFICATION_PAGE_SIZE"):
        monkeypatch.delenv(k, raising=False)

    app = create_app()
    engine = app.extensions["sqlalchemy_engine"]
    Base.metadata.create_all(bind=engine)
    return app


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def make_user(app):
    """Insert a user directly and return its id."""

    def _make(name="Student", email=None, role=Role.STUDENT, password="pw"):
        with session_scope(app) as s:
            u = User(
                name=name,
                email=email or f"{name.lower().replace(' ', '.')}@example.com",
                password_hash=generate_password_hash(password),
                phone="555-0100",
                role=role,
            )
            s.add(u)
            s.flush()
            return u.id

    return _make


@pytest.fixture()
def auth(app):
    """Authorization header for an existing user id."""

    def _auth(user_id):
        with session_scope(app) as s:
            token = app.extensions["auth_gate"].issue(s.get(User, user_id))
        return {"Authorization": f"Bearer {token}"}

    return _auth


@pytest.fixture()
def admin(make_user, auth):
    uid = make_user(name="Admin", email="admin@example.com", role=Role.ADMIN)
    return uid, auth(uid)


@pytest.fixture()
def society(make_user, auth):
    uid = make_user(name="Chess Club", email="chess@example.com", role=Role.SOCIETY)
    return uid, auth(uid)


@pytest.fixture()
def student(make_user, auth):
    uid = make_user(name="Sam Student", email="sam@example.com")
    return uid, auth(uid)


def _event_payload(society_id, **overrides):
    payload = {
        "title": "Opening Night",
        "date": FUTURE_DATE,
        "time": "18:30",
        "location": "Main Hall",
        "description": "Kick-off evening",
        "guest": "Dean",
        "registrationStatus": "upcoming",
        "coverImageURL": "https://img.example.com/cover.png",
        "eventCategory": "social",
        "societyId": society_id,
    }
    payload.update(overrides)
    return payload


@pytest.fixture()
def create_event(client, admin):
    """Create an event as the admin via the API and return its id."""

    def _create(society_id, **overrides):
        r = client.post("/api/events/add", json=_event_payload(society_id, **overrides), headers=admin[1])
        assert r.status_code == 201, r.json
        return r.json["event"]["id"]

    return _create


@pytest.fixture()
def event_payload():
    return _event_payload
