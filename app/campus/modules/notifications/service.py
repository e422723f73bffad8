"""
Notification fan-out.

Notifications are best-effort side effects: every write happens inside a SAVEPOINT
so a failed notification never rolls back the action that triggered it. Callers
own the surrounding transaction and commit it.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Iterable

from sqlalchemy import delete, insert, select
from sqlalchemy.exc import SQLAlchemyError

from app.campus.errors import NotFound
from app.campus.utils import iso, utcnow

from .models import Notification

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.campus.modules.events.models import Event

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 50

KIND_NEW_EVENT = "event.new"
KIND_REGISTRATION = "registration.confirmed"
KIND_SOCIETY_DECISION = "society.decision"


class NotificationError(RuntimeError):
    pass


@dataclass
class FanoutResult:
    """Per-recipient tally of a broadcast."""

    delivered: int = 0
    failed: list[int] = field(default_factory=list)

    @property
    def attempted(self) -> int:
        return self.delivered + len(self.failed)

    def as_dict(self) -> dict:
        return {"attempted": self.attempted, "delivered": self.delivered, "failed": list(self.failed)}


def event_link(event_id: int) -> str:
    return f"/events/{event_id}"


def new_event_message(title: str) -> str:
    return f'New event "{title}" has been added!'


def registration_message(title: str) -> str:
    return f'You have successfully registered for "{title}".'


def society_decision_message(society_name: str, decision: str) -> str:
    return f'Your society request for "{society_name}" has been {decision}.'


def single(
    s: "Session", recipient_id: int, message: str, link: str | None = None, *, kind: str | None = None
) -> Notification:
    """Create exactly one notification. Raises NotificationError; the caller's own writes survive."""
    n = Notification(user_id=recipient_id, message=message, link=link, kind=kind, is_read=False, created_at=utcnow())
    try:
        with s.begin_nested():
            s.add(n)
            s.flush()
    except SQLAlchemyError as e:
        logger.error("Notification insert failed user_id=%s link=%s err=%s", recipient_id, link, e)
        raise NotificationError(f"Could not notify user {recipient_id}") from e
    return n


def broadcast(
    s: "Session", recipient_ids: Iterable[int], message: str, link: str | None = None, *, kind: str | None = None
) -> FanoutResult:
    """
    One notification per distinct recipient.

    Tries a single batched INSERT first; if that fails, retries recipient by recipient
    so the tally reports exactly who was missed.
    """
    ids = list(dict.fromkeys(recipient_ids))
    result = FanoutResult()
    if not ids:
        return result

    now = utcnow()
    rows = [
        {"user_id": uid, "message": message, "link": link, "kind": kind, "is_read": False, "created_at": now}
        for uid in ids
    ]
    try:
        with s.begin_nested():
            s.execute(insert(Notification), rows)
        result.delivered = len(rows)
        return result
    except SQLAlchemyError as e:
        logger.warning("Batch notification insert failed (recipients=%d); retrying per recipient: %s", len(rows), e)

    for row in rows:
        try:
            with s.begin_nested():
                s.execute(insert(Notification), [row])
            result.delivered += 1
        except SQLAlchemyError as e:
            result.failed.append(row["user_id"])
            logger.error("Notification insert failed user_id=%s link=%s err=%s", row["user_id"], link, e)
    return result


def mark_read(s: "Session", notification_id: int, user_id: int, is_read: bool = True) -> Notification:
    """Set the read flag; idempotent. Another user's notification is reported as missing."""
    n = s.get(Notification, notification_id)
    if not n or n.user_id != user_id:
        raise NotFound("Notification not found")
    n.is_read = bool(is_read)
    return n


def delete_all_read(s: "Session", user_id: int) -> int:
    res = s.execute(
        delete(Notification).where(Notification.user_id == user_id).where(Notification.is_read == True)  # noqa: E712
    )
    return int(res.rowcount or 0)


def list_recent(s: "Session", user_id: int, limit: int = DEFAULT_PAGE_SIZE) -> list[Notification]:
    return list(
        s.scalars(
            select(Notification)
            .where(Notification.user_id == user_id)
            .order_by(Notification.created_at.desc(), Notification.id.desc())
            .limit(limit)
        )
    )


def reconcile_event_broadcast(s: "Session", event: "Event") -> FanoutResult:
    """
    Idempotent repair for a partially failed event broadcast.

    Notifies every user who existed when the event was created and has no
    new-event notification for it yet; other notices linking to the event, such as a
    registration confirmation, do not count. Running it twice creates nothing the second time.
    """
    from app.campus.models import User

    link = event_link(event.id)
    already = select(Notification.user_id).where(Notification.link == link).where(Notification.kind == KIND_NEW_EVENT)
    missing = s.scalars(
        select(User.id).where(User.created_at <= event.created_at).where(User.id.not_in(already)).order_by(User.id)
    ).all()
    if not missing:
        return FanoutResult()
    logger.info("Reconciling event_id=%s: %d users missing the new-event notification", event.id, len(missing))
    return broadcast(s, missing, new_event_message(event.title), link, kind=KIND_NEW_EVENT)


def notification_json(n: Notification) -> dict:
    return {
        "id": n.id,
        "userId": n.user_id,
        "message": n.message,
        "link": n.link,
        "kind": n.kind,
        "isRead": n.is_read,
        "createdAt": iso(n.created_at),
    }
