from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import DateTime, Enum, ForeignKey, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from app.campus.utils import utcnow


class Base(DeclarativeBase):
    pass


class Role(str, enum.Enum):
    STUDENT = "student"
    SOCIETY = "society"
    ADMIN = "admin"


class SocietyRequestStatus(str, enum.Enum):
    NONE = "none"
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


def enum_column(enum_cls: type[enum.Enum], length: int = 16) -> Enum:
    """String-backed enum column storing member values (not names)."""
    return Enum(
        enum_cls,
        native_enum=False,
        length=length,
        validate_strings=True,
        values_callable=lambda members: [m.value for m in members],
    )


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(320), nullable=False, unique=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(32), nullable=True)

    # Mutated only by the society request workflow.
    role: Mapped[Role] = mapped_column(enum_column(Role), nullable=False, default=Role.STUDENT)
    society_request_status: Mapped[SocietyRequestStatus] = mapped_column(
        enum_column(SocietyRequestStatus),
        nullable=False,
        default=SocietyRequestStatus.NONE,
    )

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=utcnow)


class AuditEvent(Base):
    """
    Append-only audit trail event.
    Kept generic; module tables do not reference it.
    """

    __tablename__ = "audit_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=utcnow)
    request_id: Mapped[str | None] = mapped_column(String(64), nullable=True)

    actor_user_id: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    actor_user_email: Mapped[str | None] = mapped_column(String(320), nullable=True)

    action: Mapped[str] = mapped_column(String(128), nullable=False)  # e.g. "registration.create"
    entity_type: Mapped[str | None] = mapped_column(String(128), nullable=True)  # e.g. "Event"
    entity_id: Mapped[str | None] = mapped_column(String(128), nullable=True)

    reason: Mapped[str | None] = mapped_column(String(512), nullable=True)
    metadata_json: Mapped[str | None] = mapped_column(Text, nullable=True)  # small JSON string


# Ensure module models are imported so Base.metadata includes their tables.
# (Kept at bottom to avoid circular imports.)
from app.campus.modules.events.models import Event  # noqa: E402,F401
from app.campus.modules.registrations.models import Registration  # noqa: E402,F401
from app.campus.modules.notifications.models import Notification  # noqa: E402,F401
from app.campus.modules.societies.models import Society  # noqa: E402,F401
from app.campus.modules.announcements.models import Announcement  # noqa: E402,F401
from app.campus.modules.queries.models import Query  # noqa: E402,F401
