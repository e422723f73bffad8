from __future__ import annotations

import logging

from flask import Blueprint, jsonify

from app.campus.auth import current_identity, require_login
from app.campus.db import db_session
from app.campus.modules.events.service import events_json
from app.campus.modules.notifications.service import notification_json

from .service import list_for_event, list_for_user, register, registration_json

logger = logging.getLogger(__name__)

bp = Blueprint("registrations", __name__)


@bp.post("/<int:event_id>")
@require_login
def registration_create(event_id: int):
    result = register(db_session(), current_identity(), event_id)
    body = {
        "message": "Registered successfully",
        "registration": registration_json(result.registration),
        "notification": notification_json(result.notification) if result.notification else None,
    }
    if result.warnings:
        body["warnings"] = result.warnings
    return jsonify(body), 201


@bp.get("/my")
@require_login
def registrations_mine():
    identity = current_identity()
    s = db_session()
    events = list_for_user(s, identity.id)
    logger.info("Fetched %d registered events for user %s", len(events), identity.id)
    return jsonify(events_json(s, events))


@bp.get("/<int:event_id>/registrations")
@require_login
def registrations_for_event(event_id: int):
    rows = list_for_event(db_session(), current_identity(), event_id)
    logger.info("%d registrations fetched for event %s", len(rows), event_id)
    return jsonify([registration_json(reg, user) for reg, user in rows])
