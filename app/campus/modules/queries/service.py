from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlalchemy import select

from app.campus.audit import record_event
from app.campus.errors import NotFound, ValidationError
from app.campus.rbac import Action, enforce
from app.campus.utils import iso, utcnow

from .models import Query

if TYPE_CHECKING:
    from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)


def submit_query(s: "Session", identity, message: str | None) -> Query:
    text = (message or "").strip()
    if not text:
        raise ValidationError("Message cannot be empty")
    now = utcnow()
    query = Query(
        user_id=identity.id,
        name=identity.name,
        email=identity.email,
        message=text,
        reply="",
        created_at=now,
        updated_at=now,
    )
    s.add(query)
    s.flush()
    logger.info("Query saved id=%s by user %s", query.id, identity.id)
    return query


def list_own_queries(s: "Session", user_id: int) -> list[Query]:
    return list(
        s.scalars(select(Query).where(Query.user_id == user_id).order_by(Query.created_at.desc(), Query.id.desc()))
    )


def list_all_queries(s: "Session", identity) -> list[Query]:
    enforce(identity, Action.MANAGE_QUERIES)
    return list(s.scalars(select(Query).order_by(Query.created_at.desc(), Query.id.desc())))


def reply_to_query(s: "Session", identity, query_id: int, reply: str | None) -> Query:
    enforce(identity, Action.MANAGE_QUERIES)
    query = s.get(Query, query_id)
    if not query:
        raise NotFound("Query not found")
    query.reply = (reply or "").strip()
    query.updated_at = utcnow()
    record_event(
        s,
        actor=identity,
        action="query.reply",
        entity_type="Query",
        entity_id=str(query.id),
    )
    logger.info("Reply updated for query %s by admin %s", query.id, identity.id)
    return query


def query_json(q: Query) -> dict:
    return {
        "id": q.id,
        "userId": q.user_id,
        "name": q.name,
        "email": q.email,
        "message": q.message,
        "reply": q.reply,
        "createdAt": iso(q.created_at),
        "updatedAt": iso(q.updated_at),
    }
