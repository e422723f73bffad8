from __future__ import annotations

from flask import Blueprint, jsonify

from app.campus.auth import current_identity, require_login
from app.campus.db import db_session
from app.campus.errors import json_payload

from .service import announcement_json, create_announcement, list_announcements

bp = Blueprint("announcements", __name__)


@bp.post("")
@require_login
def announcements_create():
    s = db_session()
    announcement = create_announcement(s, current_identity(), json_payload())
    s.commit()
    return (
        jsonify({"message": "Announcement created successfully", "announcement": announcement_json(announcement)}),
        201,
    )


@bp.get("")
def announcements_list():
    return jsonify([announcement_json(a) for a in list_announcements(db_session())])
