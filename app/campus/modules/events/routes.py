from __future__ import annotations

import logging

from flask import Blueprint, current_app, jsonify

from app.campus.auth import current_identity, require_login
from app.campus.db import db_session
from app.campus.errors import json_payload

from .service import (
    create_event,
    delete_event,
    event_json,
    events_json,
    get_event,
    list_events,
    list_past,
    list_upcoming,
    society_names,
    update_event,
)

logger = logging.getLogger(__name__)

bp = Blueprint("events", __name__)


def _tz_name() -> str:
    return current_app.config.get("EVENT_TIMEZONE") or "UTC"


# ---------- Create ----------
@bp.post("/add")
@require_login
def events_add():
    s = db_session()
    payload = json_payload()
    event, fanout = create_event(s, current_identity(), payload, tz_name=_tz_name())
    names = society_names(s, [event])
    return (
        jsonify(
            {
                "message": "Event saved successfully",
                "event": event_json(event, names.get(event.society_id)),
                "notifications": fanout.as_dict(),
            }
        ),
        201,
    )


# ---------- Lists ----------
@bp.get("")
def events_list():
    s = db_session()
    events = list_events(s)
    logger.info("Returned %d future events", len(events))
    return jsonify(events_json(s, events))


@bp.get("/upcoming")
def events_upcoming():
    s = db_session()
    events = list_upcoming(s)
    logger.info("Returned %d upcoming events", len(events))
    return jsonify(events_json(s, events))


@bp.get("/past")
def events_past():
    s = db_session()
    events = list_past(s)
    logger.info("Returned %d past events", len(events))
    return jsonify(events_json(s, events))


# ---------- Detail ----------
@bp.get("/<int:event_id>")
def event_detail(event_id: int):
    s = db_session()
    event = get_event(s, event_id)
    names = society_names(s, [event])
    return jsonify(event_json(event, names.get(event.society_id)))


# ---------- Edit / Delete ----------
@bp.put("/<int:event_id>")
@require_login
def event_update(event_id: int):
    s = db_session()
    payload = json_payload()
    event = update_event(s, current_identity(), event_id, payload, tz_name=_tz_name())
    s.commit()
    logger.info("Event %s updated", event_id)
    names = society_names(s, [event])
    return jsonify({"message": "Event updated successfully", "event": event_json(event, names.get(event.society_id))})


@bp.delete("/<int:event_id>")
@require_login
def event_delete(event_id: int):
    s = db_session()
    delete_event(s, current_identity(), event_id)
    s.commit()
    logger.info("Event %s deleted", event_id)
    return jsonify({"message": "Event deleted successfully"})
