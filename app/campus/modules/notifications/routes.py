from __future__ import annotations

import logging

from flask import Blueprint, current_app, jsonify

from app.campus.auth import current_identity, require_login
from app.campus.db import db_session
from app.campus.errors import ValidationError, json_payload

from .service import delete_all_read, list_recent, mark_read, notification_json

logger = logging.getLogger(__name__)

bp = Blueprint("notifications", __name__)


@bp.get("")
@require_login
def notifications_list():
    identity = current_identity()
    limit = int(current_app.config.get("NOTIFICATION_PAGE_SIZE") or 50)
    items = list_recent(db_session(), identity.id, limit=limit)
    logger.info("Fetched %d notifications for user %s", len(items), identity.id)
    return jsonify([notification_json(n) for n in items])


@bp.patch("/<int:notification_id>/read")
@require_login
def notification_mark_read(notification_id: int):
    payload = json_payload()
    is_read = payload.get("isRead", True)
    if not isinstance(is_read, bool):
        raise ValidationError("isRead must be true or false")

    s = db_session()
    n = mark_read(s, notification_id, current_identity().id, is_read=is_read)
    s.commit()
    return jsonify(notification_json(n))


@bp.delete("/delete-read")
@require_login
def notifications_delete_read():
    identity = current_identity()
    s = db_session()
    deleted = delete_all_read(s, identity.id)
    s.commit()
    logger.info("Deleted %d read notifications for user %s", deleted, identity.id)
    return jsonify({"message": f"Deleted {deleted} read notifications", "deleted": deleted})
