from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.campus.models import Base
from app.campus.utils import utcnow


class Event(Base):
    __tablename__ = "events"
    __table_args__ = (
        Index("idx_events_starts_at", "starts_at"),
        Index("idx_events_society_id", "society_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    # Wall-clock strings as submitted; starts_at is derived from them on every write.
    date: Mapped[str] = mapped_column(String(32), nullable=False)
    time: Mapped[str] = mapped_column(String(32), nullable=False)
    starts_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)

    location: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    guest: Mapped[str] = mapped_column(String(255), nullable=False)
    registration_status: Mapped[str] = mapped_column(String(64), nullable=False)  # e.g. "upcoming", "closed"
    cover_image_url: Mapped[str] = mapped_column(String(1024), nullable=False)
    category: Mapped[str] = mapped_column(String(128), nullable=False)

    # Owning society user; set once at creation.
    society_id: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=utcnow)
