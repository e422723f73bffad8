"""
Society request workflow.

State machine on Society.request_status: pending -> approved | rejected, once.
A decision writes the society, its president and the president's notification in
a single transaction; if any of the three fails none is kept.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from sqlalchemy import select

from app.campus.audit import record_event
from app.campus.errors import Conflict, Internal, NotFound, ValidationError, require_fields
from app.campus.models import Role, SocietyRequestStatus, User
from app.campus.modules.events.models import Event
from app.campus.modules.notifications.models import Notification
from app.campus.modules.notifications.service import (
    KIND_SOCIETY_DECISION,
    NotificationError,
    single,
    society_decision_message,
)
from app.campus.modules.registrations.models import Registration
from app.campus.modules.registrations.service import registrants_by_event
from app.campus.rbac import Action, enforce
from app.campus.utils import iso, utcnow

from .models import REQUEST_TRANSITIONS, RequestStatus, Society

if TYPE_CHECKING:
    from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

PROFILE_FIELDS = ("name", "description", "email", "phone")

# President's request status mirrors the society's terminal state.
_PRESIDENT_STATUS = {
    RequestStatus.APPROVED: SocietyRequestStatus.APPROVED,
    RequestStatus.REJECTED: SocietyRequestStatus.REJECTED,
}


@dataclass
class DecisionResult:
    society: Society
    message: str
    notification: Notification


def _optional(payload: dict, key: str) -> str | None:
    return (str(payload.get(key) or "")).strip() or None


def request_society(s: "Session", identity, payload: dict) -> Society:
    """Open a pending request with the caller as president. Each call creates a new request."""
    require_fields(payload, ("name", "email"))
    user = s.get(User, identity.id)
    if not user:
        raise NotFound("User not found")

    society = Society(
        name=str(payload["name"]).strip(),
        description=_optional(payload, "description"),
        president_id=user.id,
        email=str(payload["email"]).strip(),
        phone=_optional(payload, "phone"),
        request_status=RequestStatus.PENDING,
        created_at=utcnow(),
    )
    s.add(society)
    user.society_request_status = SocietyRequestStatus.PENDING
    s.flush()

    record_event(
        s,
        actor=user,
        action="society_request.create",
        entity_type="Society",
        entity_id=str(society.id),
        metadata={"name": society.name},
    )
    logger.info("Society request created id=%s by user %s", society.id, user.email)
    return society


def parse_decision(raw) -> RequestStatus:
    value = str(raw or "").strip().lower()
    if value not in _PRESIDENT_STATUS:
        raise ValidationError("decision must be 'approved' or 'rejected'")
    return RequestStatus(value)


def can_transition_to(society: Society, new_status: RequestStatus) -> tuple[bool, list[str]]:
    """Check if a society request can move to new_status."""
    current = RequestStatus(society.request_status)
    if new_status not in REQUEST_TRANSITIONS[current]:
        return False, [f"Cannot transition from '{current.value}' to '{new_status.value}'"]
    return True, []


def decide(s: "Session", identity, society_id: int, raw_decision) -> DecisionResult:
    """
    Approve or reject a pending request.

    A request that is already approved or rejected is refused with Conflict; nothing
    is written and no notification is sent.
    """
    enforce(identity, Action.DECIDE_SOCIETY_REQUEST)
    decision = parse_decision(raw_decision)

    society = s.get(Society, society_id, with_for_update=True)
    if not society:
        raise NotFound("Society not found")
    president = society.president
    if not president:
        raise NotFound("Society president not found")

    ok, errors = can_transition_to(society, decision)
    if not ok:
        logger.warning("Repeated decision on society %s: %s", society.id, "; ".join(errors))
        raise Conflict(f"Society request already {RequestStatus(society.request_status).value}")

    society.request_status = decision
    society.decided_at = utcnow()
    if decision == RequestStatus.APPROVED:
        president.role = Role.SOCIETY
    president.society_request_status = _PRESIDENT_STATUS[decision]

    try:
        notification = single(
            s, president.id, society_decision_message(society.name, decision.value), kind=KIND_SOCIETY_DECISION
        )
    except NotificationError as e:
        s.rollback()
        raise Internal("Could not record the society decision") from e

    record_event(
        s,
        actor=identity,
        action=f"society_request.{decision.value}",
        entity_type="Society",
        entity_id=str(society.id),
        metadata={"name": society.name, "president_id": president.id},
    )
    s.commit()
    logger.info("Society request %s for: %s", decision.value, society.name)
    return DecisionResult(
        society=society,
        message=f"Society request {decision.value} successfully.",
        notification=notification,
    )


def list_pending(s: "Session") -> list[Society]:
    return list(
        s.scalars(
            select(Society)
            .where(Society.request_status == RequestStatus.PENDING)
            .order_by(Society.created_at.asc(), Society.id.asc())
        )
    )


def get_own_society(s: "Session", identity) -> Society:
    enforce(identity, Action.MANAGE_SOCIETY_PROFILE, message="Unauthorized")
    society = s.scalars(
        select(Society)
        .where(Society.president_id == identity.id)
        .order_by((Society.request_status == RequestStatus.APPROVED).desc(), Society.created_at.desc())
    ).first()
    if not society:
        raise NotFound("Society not found")
    return society


def update_own_society(s: "Session", identity, payload: dict) -> Society:
    society = get_own_society(s, identity)
    changes = {}
    for key in PROFILE_FIELDS:
        if key not in payload or payload[key] is None:
            continue
        new_value = str(payload[key]).strip() or None
        if key in ("name", "email") and not new_value:
            raise ValidationError(f"{key} cannot be blank")
        old_value = getattr(society, key)
        if new_value != old_value:
            changes[key] = {"old": old_value, "new": new_value}
            setattr(society, key, new_value)
    if changes:
        record_event(
            s,
            actor=identity,
            action="society.edit",
            entity_type="Society",
            entity_id=str(society.id),
            metadata={"changes": changes},
        )
    return society


def events_for_owner(s: "Session", identity) -> list[tuple[Event, list[tuple[Registration, User]]]]:
    """A society's own events (all events for admins), each with its registrants."""
    enforce(identity, Action.VIEW_OWNED_EVENTS)
    q = select(Event).order_by(Event.starts_at.asc(), Event.id.asc())
    if Role(identity.role) == Role.SOCIETY:
        q = q.where(Event.society_id == identity.id)
    events = list(s.scalars(q))
    grouped = registrants_by_event(s, [event.id for event in events])
    return [(event, grouped[event.id]) for event in events]


def society_json(society: Society) -> dict:
    president = society.president
    return {
        "id": society.id,
        "name": society.name,
        "description": society.description,
        "email": society.email,
        "phone": society.phone,
        "requestStatus": RequestStatus(society.request_status).value,
        "president": {"id": president.id, "name": president.name, "email": president.email} if president else None,
        "createdAt": iso(society.created_at),
        "decidedAt": iso(society.decided_at),
    }
