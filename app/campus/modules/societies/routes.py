from __future__ import annotations

from flask import Blueprint, jsonify

from app.campus.auth import current_identity, require_login
from app.campus.db import db_session
from app.campus.errors import json_payload
from app.campus.modules.events.service import events_json
from app.campus.modules.registrations.service import registration_json

from .service import events_for_owner, get_own_society, request_society, society_json, update_own_society

bp = Blueprint("societies", __name__)


@bp.post("/request")
@require_login
def society_request():
    s = db_session()
    payload = json_payload()
    society = request_society(s, current_identity(), payload)
    s.commit()
    return jsonify({"message": "Society request sent!", "society": society_json(society)}), 201


@bp.get("/my-events")
@require_login
def society_my_events():
    s = db_session()
    rows = events_for_owner(s, current_identity())
    serialized = events_json(s, [event for event, _ in rows])
    for item, (_, regs) in zip(serialized, rows):
        item["registrations"] = [registration_json(reg, user) for reg, user in regs]
    return jsonify(serialized)


@bp.get("/me")
@require_login
def society_me():
    return jsonify(society_json(get_own_society(db_session(), current_identity())))


@bp.put("/me")
@require_login
def society_me_update():
    s = db_session()
    payload = json_payload()
    society = update_own_society(s, current_identity(), payload)
    s.commit()
    return jsonify(society_json(society))
