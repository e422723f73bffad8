import logging

from flask import Flask, g, jsonify, request
from dotenv import load_dotenv
from werkzeug.exceptions import HTTPException

from app.campus.auth import AuthGate, bp as users_bp, load_current_user
from app.campus.config import load_config
from app.campus.db import init_db, teardown_db_session
from app.campus.errors import AppError
from app.campus.routes import bp as routes_bp
from app.campus.modules.events.routes import bp as events_bp
from app.campus.modules.registrations.routes import bp as registrations_bp
from app.campus.modules.notifications.routes import bp as notifications_bp
from app.campus.modules.societies.routes import bp as societies_bp
from app.campus.modules.societies.admin import bp as society_admin_bp
from app.campus.modules.announcements.routes import bp as announcements_bp
from app.campus.modules.queries.routes import bp as queries_bp


def create_app() -> Flask:
    load_dotenv()
    app = Flask(__name__)
    app.config.from_mapping(load_config())

    # Production guardrails (fail fast with clear logs)
    env = (app.config.get("ENV") or "").strip().lower()
    if env in ("prod", "production"):
        if not app.config.get("DATABASE_URL") or str(app.config["DATABASE_URL"]).strip() == "":
            raise RuntimeError("DATABASE_URL is required in production.")
        if str(app.config["DATABASE_URL"]).startswith("sqlite"):
            raise RuntimeError("DATABASE_URL must be Postgres in production (not sqlite).")
        if not app.config.get("SECRET_KEY") or str(app.config["SECRET_KEY"]) in ("", "change-me"):
            raise RuntimeError("SECRET_KEY must be set to a strong value in production (not default).")

    init_db(app)
    app.extensions["auth_gate"] = AuthGate(
        app.config["SECRET_KEY"],
        max_age_seconds=int(app.config["TOKEN_MAX_AGE_SECONDS"]),
    )

    app.register_blueprint(routes_bp)
    app.register_blueprint(users_bp, url_prefix="/api/users")
    app.register_blueprint(events_bp, url_prefix="/api/events")
    app.register_blueprint(registrations_bp, url_prefix="/api/registers")
    app.register_blueprint(notifications_bp, url_prefix="/api/notifications")
    app.register_blueprint(societies_bp, url_prefix="/api/societies")
    app.register_blueprint(society_admin_bp, url_prefix="/api/admin")
    app.register_blueprint(announcements_bp, url_prefix="/api/announcements")
    app.register_blueprint(queries_bp, url_prefix="/api/queries")

    def _load_user_wrapper():
        if request.path.startswith(("/health", "/healthz")):
            g.identity = None
            return None
        return load_current_user()

    app.before_request(_load_user_wrapper)
    app.teardown_appcontext(teardown_db_session)

    @app.errorhandler(AppError)
    def _err_app(e: AppError):  # type: ignore[no-redef]
        rid = getattr(g, "request_id", None)
        if e.status_code >= 500:
            app.logger.exception("Internal error (request_id=%s): %s", rid, e.message)
        elif e.status_code == 403:
            app.logger.warning("Forbidden: missing_permission=%s request_id=%s", getattr(g, "missing_permission", None), rid)
        return jsonify({"error": e.message}), e.status_code

    @app.errorhandler(HTTPException)
    def _err_http(e: HTTPException):  # type: ignore[no-redef]
        return jsonify({"error": e.description or e.name}), e.code or 500

    @app.errorhandler(Exception)
    def _err_500(e: Exception):  # type: ignore[no-redef]
        # Stack trace goes to the logs; the client only sees a generic message.
        app.logger.exception("Unhandled 500 (request_id=%s)", getattr(g, "request_id", None))
        return jsonify({"error": "Server error"}), 500

    logging.getLogger(__name__).info("create_app() complete; app ready to serve")

    return app
