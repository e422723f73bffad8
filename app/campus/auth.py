from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from functools import wraps
from typing import Any

from flask import Blueprint, current_app, g, jsonify, request
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer
from sqlalchemy.exc import IntegrityError
from werkzeug.security import check_password_hash, generate_password_hash

from app.campus.audit import record_event
from app.campus.db import db_session
from app.campus.errors import Conflict, NotFound, Unauthenticated, json_payload, require_fields
from app.campus.models import Role, SocietyRequestStatus, User

logger = logging.getLogger(__name__)

bp = Blueprint("users", __name__)


@dataclass(frozen=True)
class Identity:
    id: int
    role: Role
    name: str
    email: str

    @classmethod
    def from_user(cls, user: User) -> "Identity":
        return cls(id=user.id, role=Role(user.role), name=user.name, email=user.email)


class AuthGate:
    """
    Issues and verifies bearer credentials.

    Tokens are signed, timestamped claims ``{id, role, name, email}``. The secret is
    passed in at construction; nothing is read from the process environment here.
    """

    def __init__(self, secret_key: str, *, max_age_seconds: int = 3600, salt: str = "campus.auth"):
        if not secret_key:
            raise RuntimeError("AuthGate requires a non-empty secret key.")
        self._serializer = URLSafeTimedSerializer(secret_key, salt=salt)
        self.max_age_seconds = max_age_seconds

    def issue(self, user: User) -> str:
        return self._serializer.dumps(
            {
                "id": user.id,
                "role": Role(user.role).value,
                "name": user.name,
                "email": user.email,
            }
        )

    def verify(self, token: str) -> Identity:
        try:
            claims = self._serializer.loads(token, max_age=self.max_age_seconds)
        except SignatureExpired as e:
            raise Unauthenticated("Invalid or expired token") from e
        except BadSignature as e:
            raise Unauthenticated("Invalid or expired token") from e
        try:
            return Identity(
                id=int(claims["id"]),
                role=Role(claims["role"]),
                name=str(claims.get("name") or ""),
                email=str(claims.get("email") or ""),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise Unauthenticated("Invalid or expired token") from e

    def verify_header(self, header: str | None) -> Identity:
        if not header:
            raise Unauthenticated("No token provided")
        scheme, _, token = header.strip().partition(" ")
        token = token.strip()
        if scheme.lower() != "bearer" or not token:
            raise Unauthenticated("Malformed token")
        return self.verify(token)


def auth_gate() -> AuthGate:
    return current_app.extensions["auth_gate"]


def load_current_user() -> None:
    """
    Resolves g.identity from the Authorization header.

    The token proves who the caller is; role/name come from the user row so a role
    granted after the token was issued is honoured. Failures are kept on g.auth_error
    and only raised when a route requires a login.
    Also assigns a simple per-request request_id (for audit/log correlation).
    """
    if not getattr(g, "request_id", None):
        g.request_id = uuid.uuid4().hex
    g.identity = None
    g.current_user = None
    g.auth_error = None

    header = request.headers.get("Authorization")
    if not header:
        return

    try:
        claims = auth_gate().verify_header(header)
        user = db_session().get(User, claims.id)
        if not user:
            raise Unauthenticated("Invalid or expired token")
    except Unauthenticated as e:
        logger.warning("Authentication failed: %s (request_id=%s)", e.message, g.request_id)
        g.auth_error = e
        return

    g.current_user = user
    g.identity = Identity.from_user(user)


def current_identity() -> Identity:
    identity = getattr(g, "identity", None)
    if identity is not None:
        return identity
    raise getattr(g, "auth_error", None) or Unauthenticated("No token provided")


def require_login(fn: Callable[..., Any]) -> Callable[..., Any]:
    @wraps(fn)
    def wrapped(*args: Any, **kwargs: Any):
        current_identity()
        return fn(*args, **kwargs)

    return wrapped


def user_json(user: User) -> dict:
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "phone": user.phone,
        "role": Role(user.role).value,
        "societyRequestStatus": SocietyRequestStatus(user.society_request_status).value,
    }


def _token_response(user: User, message: str, status: int):
    return (
        jsonify(
            {
                "message": message,
                "token": auth_gate().issue(user),
                "role": Role(user.role).value,
                "societyRequestStatus": SocietyRequestStatus(user.society_request_status).value,
            }
        ),
        status,
    )


@bp.post("/add")
def signup():
    payload = json_payload()
    require_fields(payload, ("name", "email", "password", "phone"))
    email = str(payload["email"]).strip().lower()

    s = db_session()
    if s.query(User).filter(User.email == email).one_or_none():
        logger.warning("Sign-up with existing email: %s", email)
        raise Conflict("This email already exists in our database")

    user = User(
        name=str(payload["name"]).strip(),
        email=email,
        password_hash=generate_password_hash(str(payload["password"])),
        phone=str(payload["phone"]).strip(),
        role=Role.STUDENT,
        society_request_status=SocietyRequestStatus.NONE,
    )
    s.add(user)
    try:
        s.flush()
    except IntegrityError as e:
        s.rollback()
        raise Conflict("This email already exists in our database") from e
    record_event(s, actor=user, action="user.signup", entity_type="User", entity_id=str(user.id))
    s.commit()
    logger.info("New user registered: %s", email)
    return _token_response(user, "User registered successfully", 201)


@bp.post("/login")
def login():
    payload = json_payload()
    require_fields(payload, ("email", "password"))
    email = str(payload["email"]).strip().lower()

    s = db_session()
    user = s.query(User).filter(User.email == email).one_or_none()
    if not user or not check_password_hash(user.password_hash, str(payload["password"])):
        record_event(
            s,
            actor=None,
            action="auth.login_failed",
            entity_type="User",
            entity_id=email,
            reason="Invalid credentials",
            metadata={"email": email},
        )
        s.commit()
        logger.warning("Login failed for %s", email)
        raise Unauthenticated("Invalid credentials")

    record_event(s, actor=user, action="auth.login", entity_type="User", entity_id=str(user.id))
    s.commit()
    return _token_response(user, "Login successful", 200)


@bp.get("/me")
@require_login
def me():
    user = db_session().get(User, current_identity().id)
    if not user:
        raise NotFound("User not found")
    return jsonify(user_json(user))


@bp.put("/update")
@require_login
def update_me():
    payload = json_payload()
    s = db_session()
    user = s.get(User, current_identity().id)
    if not user:
        raise NotFound("User not found")

    changes = {}
    new_name = (payload.get("name") or "").strip()
    if new_name and new_name != user.name:
        changes["name"] = {"old": user.name, "new": new_name}
        user.name = new_name
    new_phone = (payload.get("phone") or "").strip()
    if new_phone and new_phone != user.phone:
        changes["phone"] = {"old": user.phone, "new": new_phone}
        user.phone = new_phone

    if changes:
        record_event(s, actor=user, action="user.edit", entity_type="User", entity_id=str(user.id), metadata={"changes": changes})
    s.commit()
    return jsonify(user_json(user))
