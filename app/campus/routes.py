from flask import Blueprint, current_app
from sqlalchemy import text

from app.campus.db import db_session

bp = Blueprint("routes", __name__)


@bp.get("/")
def index():
    return {"message": "Campus events backend is running"}


@bp.get("/health")
def health():
    """Health check endpoint. Returns JSON, including DB connectivity."""
    db_ok = True
    try:
        db_session().execute(text("SELECT 1"))
    except Exception as e:
        current_app.logger.error("Health check DB error: %s", e)
        db_ok = False
    return {"ok": db_ok, "db_connected": db_ok}, (200 if db_ok else 503)


@bp.get("/healthz")
def healthz():
    """
    Fast health check for container liveness checks. No DB access, minimal overhead.
    """
    return "ok", 200
