"""
Authorization policy.

A closed decision table: every ``Action`` maps to the roles allowed outright and
the roles allowed only when they own the resource. Deciding is pure; ``enforce``
turns a denial into ``Forbidden``.
"""
from __future__ import annotations

import enum
import logging
from collections.abc import Callable
from dataclasses import dataclass
from functools import wraps
from typing import Any

from flask import g, has_request_context

from app.campus.auth import current_identity
from app.campus.errors import Forbidden
from app.campus.models import Role

logger = logging.getLogger(__name__)


class Action(str, enum.Enum):
    CREATE_EVENT = "event.create"
    MANAGE_EVENT = "event.manage"  # update or delete
    REGISTER_FOR_EVENT = "registration.create"
    VIEW_EVENT_REGISTRATIONS = "registration.view_for_event"
    CREATE_ANNOUNCEMENT = "announcement.create"
    DECIDE_SOCIETY_REQUEST = "society_request.decide"
    MANAGE_QUERIES = "query.manage"  # reply to / list all
    VIEW_OWNED_EVENTS = "society.view_owned_events"
    MANAGE_SOCIETY_PROFILE = "society.manage_profile"


@dataclass(frozen=True)
class Rule:
    roles: frozenset[Role] = frozenset()
    owner_roles: frozenset[Role] = frozenset()

    def allows(self, role: Role, owns: bool) -> bool:
        if role in self.roles:
            return True
        return owns and role in self.owner_roles


ADMIN = frozenset({Role.ADMIN})

POLICY: dict[Action, Rule] = {
    Action.CREATE_EVENT: Rule(roles=ADMIN),
    Action.MANAGE_EVENT: Rule(roles=ADMIN, owner_roles=frozenset({Role.SOCIETY})),
    Action.REGISTER_FOR_EVENT: Rule(roles=frozenset({Role.STUDENT})),
    Action.VIEW_EVENT_REGISTRATIONS: Rule(roles=ADMIN, owner_roles=frozenset({Role.SOCIETY})),
    Action.CREATE_ANNOUNCEMENT: Rule(roles=ADMIN),
    Action.DECIDE_SOCIETY_REQUEST: Rule(roles=ADMIN),
    Action.MANAGE_QUERIES: Rule(roles=ADMIN),
    Action.VIEW_OWNED_EVENTS: Rule(roles=frozenset({Role.SOCIETY, Role.ADMIN})),
    Action.MANAGE_SOCIETY_PROFILE: Rule(roles=frozenset({Role.SOCIETY})),
}

_unmapped = set(Action) - set(POLICY)
if _unmapped:
    raise RuntimeError(f"Authorization policy has no rule for: {sorted(a.value for a in _unmapped)}")


def authorize(identity: Any | None, action: Action, *, owner_id: int | None = None) -> bool:
    """Return True when ``identity`` (anything with ``id`` and ``role``) may perform ``action``."""
    if identity is None:
        return False
    try:
        rule = POLICY[action]
    except KeyError:
        raise ValueError(f"Unknown action: {action!r}") from None
    role = Role(identity.role)
    owns = owner_id is not None and owner_id == identity.id
    return rule.allows(role, owns)


def enforce(identity: Any | None, action: Action, *, owner_id: int | None = None, message: str | None = None) -> None:
    if authorize(identity, action, owner_id=owner_id):
        return
    if has_request_context():
        g.missing_permission = action.value
    logger.warning(
        "Forbidden: action=%s user_id=%s role=%s owner_id=%s",
        action.value,
        getattr(identity, "id", None),
        getattr(identity, "role", None),
        owner_id,
    )
    raise Forbidden(message or "Access denied")


def require_action(action: Action) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Route decorator for actions that do not depend on resource ownership."""

    def decorator(fn: Callable[..., Any]) -> Callable[..., Any]:
        @wraps(fn)
        def wrapped(*args: Any, **kwargs: Any):
            identity = current_identity()
            enforce(identity, action)
            return fn(*args, **kwargs)

        return wrapped

    return decorator
