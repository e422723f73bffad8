from __future__ import annotations

import logging

from flask import Blueprint, jsonify

from app.campus.auth import current_identity
from app.campus.db import db_session
from app.campus.errors import json_payload
from app.campus.modules.notifications.service import notification_json
from app.campus.rbac import Action, require_action

from .service import decide, list_pending, society_json

logger = logging.getLogger(__name__)

bp = Blueprint("society_admin", __name__)


@bp.get("/society-requests")
@require_action(Action.DECIDE_SOCIETY_REQUEST)
def society_requests_list():
    requests_ = list_pending(db_session())
    logger.info("Found %d pending society requests", len(requests_))
    return jsonify([society_json(soc) for soc in requests_])


@bp.post("/society-requests/<int:society_id>/decision")
@require_action(Action.DECIDE_SOCIETY_REQUEST)
def society_request_decision(society_id: int):
    payload = json_payload()
    result = decide(db_session(), current_identity(), society_id, payload.get("decision"))
    return jsonify(
        {
            "message": result.message,
            "society": society_json(result.society),
            "notification": notification_json(result.notification),
        }
    )
