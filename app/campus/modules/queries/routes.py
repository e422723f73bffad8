from __future__ import annotations

from flask import Blueprint, jsonify

from app.campus.auth import current_identity, require_login
from app.campus.db import db_session
from app.campus.errors import json_payload

from .service import list_all_queries, list_own_queries, query_json, reply_to_query, submit_query

bp = Blueprint("queries", __name__)


@bp.post("")
@require_login
def queries_submit():
    s = db_session()
    payload = json_payload()
    submit_query(s, current_identity(), payload.get("message"))
    s.commit()
    return jsonify({"success": True, "message": "Query received!"}), 201


@bp.get("/my")
@require_login
def queries_mine():
    return jsonify([query_json(q) for q in list_own_queries(db_session(), current_identity().id)])


@bp.get("")
@require_login
def queries_all():
    return jsonify([query_json(q) for q in list_all_queries(db_session(), current_identity())])


@bp.put("/<int:query_id>")
@require_login
def queries_reply(query_id: int):
    s = db_session()
    payload = json_payload()
    reply_to_query(s, current_identity(), query_id, payload.get("reply"))
    s.commit()
    return jsonify({"success": True})
