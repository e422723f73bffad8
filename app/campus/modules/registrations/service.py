"""
Registration ledger.

At most one registration per (user, event). The pre-check gives a friendly answer
for the common case; the unique constraint is what actually holds under concurrent
requests, and its violation is translated to ``Conflict``.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from app.campus.audit import record_event
from app.campus.errors import Conflict
from app.campus.models import User
from app.campus.modules.events.models import Event
from app.campus.modules.events.service import get_event
from app.campus.modules.notifications.models import Notification
from app.campus.modules.notifications.service import (
    KIND_REGISTRATION,
    NotificationError,
    event_link,
    registration_message,
    single,
)
from app.campus.rbac import Action, enforce
from app.campus.utils import iso, utcnow

from .models import Registration

if TYPE_CHECKING:
    from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

ALREADY_REGISTERED = "Already registered for this event"
NOTIFICATION_FAILED = "Registration saved, but the confirmation notification could not be created."


@dataclass
class RegistrationResult:
    registration: Registration
    notification: Notification | None = None
    warnings: list[str] = field(default_factory=list)


def find_registration(s: "Session", user_id: int, event_id: int) -> Registration | None:
    return s.scalars(
        select(Registration).where(Registration.user_id == user_id).where(Registration.event_id == event_id)
    ).first()


def register(s: "Session", identity, event_id: int) -> RegistrationResult:
    enforce(identity, Action.REGISTER_FOR_EVENT, message="Society and admin accounts cannot register for events.")
    event = get_event(s, event_id)

    if find_registration(s, identity.id, event.id) is not None:
        logger.info("User %s already registered for event %s", identity.id, event.id)
        raise Conflict(ALREADY_REGISTERED)

    registration = Registration(user_id=identity.id, event_id=event.id, created_at=utcnow())
    try:
        with s.begin_nested():
            s.add(registration)
            s.flush()  # force unique constraint check now
    except IntegrityError as e:
        if find_registration(s, identity.id, event.id) is None:
            raise
        logger.info("Concurrent duplicate registration user=%s event=%s", identity.id, event.id)
        raise Conflict(ALREADY_REGISTERED) from e

    record_event(
        s,
        actor=identity,
        action="registration.create",
        entity_type="Registration",
        entity_id=str(registration.id),
        metadata={"event_id": event.id, "title": event.title},
    )
    s.commit()
    logger.info('User %s registered for "%s"', identity.id, event.title)

    result = RegistrationResult(registration=registration)
    try:
        result.notification = single(
            s, identity.id, registration_message(event.title), event_link(event.id), kind=KIND_REGISTRATION
        )
        s.commit()
    except (NotificationError, SQLAlchemyError) as e:
        s.rollback()
        result.notification = None
        result.warnings.append(NOTIFICATION_FAILED)
        logger.error("Registration notification failed user=%s event=%s err=%s", identity.id, event.id, e)
    return result


def list_for_user(s: "Session", user_id: int) -> list[Event]:
    """Events the user registered for; registrations whose event is gone are dropped by the join."""
    return list(
        s.scalars(
            select(Event)
            .join(Registration, Registration.event_id == Event.id)
            .where(Registration.user_id == user_id)
            .order_by(Registration.created_at.asc(), Registration.id.asc())
        )
    )


def list_for_event(s: "Session", identity, event_id: int) -> list[tuple[Registration, User]]:
    event = get_event(s, event_id)
    enforce(identity, Action.VIEW_EVENT_REGISTRATIONS, owner_id=event.society_id, message="Forbidden")
    return registrants(s, event.id)


def registrants(s: "Session", event_id: int) -> list[tuple[Registration, User]]:
    rows = s.execute(
        select(Registration, User)
        .join(User, User.id == Registration.user_id)
        .where(Registration.event_id == event_id)
        .order_by(Registration.created_at.asc(), Registration.id.asc())
    ).all()
    return [(reg, user) for reg, user in rows]


def registrants_by_event(s: "Session", event_ids: list[int]) -> dict[int, list[tuple[Registration, User]]]:
    """Registrants for several events in one query, keyed by event id."""
    grouped: dict[int, list[tuple[Registration, User]]] = {event_id: [] for event_id in event_ids}
    if not event_ids:
        return grouped
    rows = s.execute(
        select(Registration, User)
        .join(User, User.id == Registration.user_id)
        .where(Registration.event_id.in_(event_ids))
        .order_by(Registration.created_at.asc(), Registration.id.asc())
    ).all()
    for reg, user in rows:
        grouped[reg.event_id].append((reg, user))
    return grouped


def registration_json(reg: Registration, user: User | None = None) -> dict:
    out = {
        "id": reg.id,
        "userId": reg.user_id,
        "eventId": reg.event_id,
        "createdAt": iso(reg.created_at),
    }
    if user is not None:
        out["user"] = {"id": user.id, "name": user.name, "email": user.email}
    return out
