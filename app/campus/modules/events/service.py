"""
Event catalog service layer.
Handles event CRUD, ownership checks, read-time upcoming/past classification and
the new-event broadcast.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from app.campus.audit import record_event
from app.campus.errors import NotFound, ValidationError, require_fields
from app.campus.models import Role, User
from app.campus.modules.notifications.service import (
    KIND_NEW_EVENT,
    FanoutResult,
    broadcast,
    event_link,
    new_event_message,
)
from app.campus.rbac import Action, enforce
from app.campus.utils import event_starts_at, iso, parse_id, utcnow

from .models import Event

if TYPE_CHECKING:
    from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

# Wire name -> model attribute. societyId is deliberately absent: ownership is fixed at creation.
EDITABLE_FIELDS = {
    "title": "title",
    "date": "date",
    "time": "time",
    "location": "location",
    "description": "description",
    "guest": "guest",
    "registrationStatus": "registration_status",
    "coverImageURL": "cover_image_url",
    "eventCategory": "category",
}

UPCOMING_STATUS = "upcoming"


def get_event(s: "Session", event_id: int) -> Event:
    event = s.get(Event, event_id)
    if not event:
        raise NotFound("Event not found")
    return event


def _clean(value) -> str:
    return str(value).strip()


def create_event(s: "Session", identity, payload: dict, *, tz_name: str = "UTC") -> tuple[Event, FanoutResult]:
    """
    Create an event and notify every user.

    The event is committed before the broadcast runs; a failed broadcast is
    reported in the returned tally and never removes the event.
    """
    enforce(identity, Action.CREATE_EVENT, message="Only admins can create events")
    if payload.get("societyId") in (None, ""):
        raise ValidationError("societyId is required to associate the event")
    require_fields(payload, tuple(EDITABLE_FIELDS))

    society_id = parse_id(payload["societyId"], "societyId")
    owner = s.get(User, society_id)
    if not owner or owner.role != Role.SOCIETY:
        raise NotFound("Society not found")

    values = {attr: _clean(payload[key]) for key, attr in EDITABLE_FIELDS.items()}
    now = utcnow()
    event = Event(
        **values,
        starts_at=event_starts_at(values["date"], values["time"], tz_name),
        society_id=owner.id,
        created_at=now,
        updated_at=now,
    )
    s.add(event)
    s.flush()
    record_event(
        s,
        actor=identity,
        action="event.create",
        entity_type="Event",
        entity_id=str(event.id),
        metadata={"title": event.title, "society_id": owner.id, "starts_at": event.starts_at},
    )
    s.commit()
    logger.info("Event created id=%s title=%s", event.id, event.title)

    recipients = list(s.scalars(select(User.id).order_by(User.id)))
    result = broadcast(s, recipients, new_event_message(event.title), event_link(event.id), kind=KIND_NEW_EVENT)
    try:
        s.commit()
    except SQLAlchemyError as e:
        s.rollback()
        logger.error("Event broadcast commit failed event_id=%s err=%s", event.id, e)
        result = FanoutResult(delivered=0, failed=recipients)
    if result.failed:
        logger.warning(
            "Event broadcast partially failed event_id=%s delivered=%d failed=%d",
            event.id,
            result.delivered,
            len(result.failed),
        )
    else:
        logger.info("Event broadcast event_id=%s delivered=%d", event.id, result.delivered)
    return event, result


def update_event(s: "Session", identity, event_id: int, payload: dict, *, tz_name: str = "UTC") -> Event:
    """Apply allow-listed fields only; recompute starts_at when date or time changes."""
    event = get_event(s, event_id)
    enforce(identity, Action.MANAGE_EVENT, owner_id=event.society_id, message="You are not allowed to edit this event")

    changes = {}
    for key, attr in EDITABLE_FIELDS.items():
        if payload.get(key) is None:
            continue
        new_value = _clean(payload[key])
        if not new_value:
            raise ValidationError(f"{key} cannot be blank")
        old_value = getattr(event, attr)
        if new_value != old_value:
            changes[attr] = {"old": old_value, "new": new_value}
            setattr(event, attr, new_value)

    if "date" in changes or "time" in changes:
        event.starts_at = event_starts_at(event.date, event.time, tz_name)

    if changes:
        event.updated_at = utcnow()
        record_event(
            s,
            actor=identity,
            action="event.edit",
            entity_type="Event",
            entity_id=str(event.id),
            metadata={"title": event.title, "changes": changes},
        )
    return event


def delete_event(s: "Session", identity, event_id: int) -> None:
    event = get_event(s, event_id)
    enforce(identity, Action.MANAGE_EVENT, owner_id=event.society_id, message="Unauthorized")
    record_event(
        s,
        actor=identity,
        action="event.delete",
        entity_type="Event",
        entity_id=str(event.id),
        metadata={"title": event.title},
    )
    s.delete(event)


def list_events(s: "Session", now: datetime | None = None) -> list[Event]:
    """Events that have not started yet, soonest first."""
    now = now or utcnow()
    return list(s.scalars(select(Event).where(Event.starts_at > now).order_by(Event.starts_at.asc(), Event.id.asc())))


def list_upcoming(s: "Session", now: datetime | None = None) -> list[Event]:
    """Future events still marked "upcoming" for registration, soonest first."""
    now = now or utcnow()
    return list(
        s.scalars(
            select(Event)
            .where(Event.starts_at > now)
            .where(Event.registration_status == UPCOMING_STATUS)
            .order_by(Event.starts_at.asc(), Event.id.asc())
        )
    )


def list_past(s: "Session", now: datetime | None = None) -> list[Event]:
    """Events whose start is not after ``now``, most recent first."""
    now = now or utcnow()
    return list(s.scalars(select(Event).where(Event.starts_at <= now).order_by(Event.starts_at.desc(), Event.id.desc())))


def society_names(s: "Session", events: list[Event]) -> dict[int, str]:
    ids = {e.society_id for e in events if e.society_id is not None}
    if not ids:
        return {}
    return {uid: name for uid, name in s.execute(select(User.id, User.name).where(User.id.in_(ids)))}


def event_json(event: Event, society_name: str | None = None) -> dict:
    return {
        "id": event.id,
        "title": event.title,
        "date": event.date,
        "time": event.time,
        "startsAt": iso(event.starts_at),
        "location": event.location,
        "description": event.description,
        "guest": event.guest,
        "registrationStatus": event.registration_status,
        "coverImageURL": event.cover_image_url,
        "eventCategory": event.category,
        "societyId": event.society_id,
        "society": {"id": event.society_id, "name": society_name} if event.society_id is not None else None,
        "createdAt": iso(event.created_at),
        "updatedAt": iso(event.updated_at),
    }


def events_json(s: "Session", events: list[Event]) -> list[dict]:
    names = society_names(s, events)
    return [event_json(e, names.get(e.society_id)) for e in events]
