from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlalchemy import select

from app.campus.audit import record_event
from app.campus.errors import NotFound, ValidationError, require_fields
from app.campus.models import Role, User
from app.campus.rbac import Action, enforce
from app.campus.utils import iso, parse_id, utcnow

from .models import Announcement

if TYPE_CHECKING:
    from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)


def create_announcement(s: "Session", identity, payload: dict) -> Announcement:
    """Admins post announcements on behalf of a named society."""
    enforce(identity, Action.CREATE_ANNOUNCEMENT, message="Only admins can create announcements")
    if payload.get("societyId") in (None, ""):
        raise ValidationError("societyId is required to post announcement")
    require_fields(payload, ("title", "message"))

    society = s.get(User, parse_id(payload["societyId"], "societyId"))
    if not society or society.role != Role.SOCIETY:
        raise NotFound("Society not found")

    announcement = Announcement(
        title=str(payload["title"]).strip(),
        message=str(payload["message"]).strip(),
        author_id=society.id,
        author_role=Role.SOCIETY,
        created_at=utcnow(),
    )
    s.add(announcement)
    s.flush()
    record_event(
        s,
        actor=identity,
        action="announcement.create",
        entity_type="Announcement",
        entity_id=str(announcement.id),
        metadata={"society_id": society.id, "title": announcement.title},
    )
    logger.info("Announcement created id=%s for society %s", announcement.id, society.id)
    return announcement


def list_announcements(s: "Session") -> list[Announcement]:
    return list(s.scalars(select(Announcement).order_by(Announcement.created_at.desc(), Announcement.id.desc())))


def announcement_json(a: Announcement) -> dict:
    author = a.author
    return {
        "id": a.id,
        "title": a.title,
        "message": a.message,
        "authorId": a.author_id,
        "authorRole": Role(a.author_role).value,
        "author": {"id": author.id, "name": author.name, "email": author.email} if author else None,
        "createdAt": iso(a.created_at),
    }
