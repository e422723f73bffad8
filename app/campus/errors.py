"""
Error taxonomy shared by every service and blueprint.

Services raise these; the app factory renders them as ``{"error": message}``
with the matching status code. Anything else becomes a generic 500.
"""
from __future__ import annotations

from flask import request


class AppError(Exception):
    status_code = 500
    default_message = "Server error"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class Unauthenticated(AppError):
    status_code = 401
    default_message = "Authentication required"


class Forbidden(AppError):
    status_code = 403
    default_message = "Access denied"


class NotFound(AppError):
    status_code = 404
    default_message = "Not found"


class Conflict(AppError):
    status_code = 400
    default_message = "Conflict"


class ValidationError(AppError):
    status_code = 400
    default_message = "Invalid request"


class Internal(AppError):
    status_code = 500
    default_message = "Server error"


def require_fields(payload: dict, fields: tuple[str, ...] | list[str]) -> None:
    """Raise ValidationError naming every required field that is missing or blank."""
    missing = []
    for name in fields:
        value = payload.get(name)
        if value is None or (isinstance(value, str) and not value.strip()):
            missing.append(name)
    if missing:
        raise ValidationError(f"Missing required field(s): {', '.join(missing)}")


def json_payload() -> dict:
    """The request's JSON body; a missing body is ``{}``, anything but an object is rejected."""
    payload = request.get_json(silent=True)
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")
    return payload
