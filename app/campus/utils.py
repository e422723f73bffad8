from __future__ import annotations

from datetime import date, datetime, time, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from app.campus.errors import ValidationError

# Accepted clock formats for event times: HTML <input type="time"> plus 12h variants.
TIME_FORMATS = ("%H:%M", "%H:%M:%S", "%I:%M %p", "%I:%M%p", "%I %p")


def utcnow() -> datetime:
    """Naive UTC now; all stored timestamps are naive UTC."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_event_date(s: str | None) -> date:
    """Parse YYYY-MM-DD date string."""
    raw = (s or "").strip()
    if not raw:
        raise ValidationError("date is required")
    try:
        return date.fromisoformat(raw)
    except ValueError as e:
        raise ValidationError(f"Invalid date {raw!r}; expected YYYY-MM-DD") from e


def parse_event_time(s: str | None) -> time:
    raw = (s or "").strip().upper()
    if not raw:
        raise ValidationError("time is required")
    for fmt in TIME_FORMATS:
        try:
            return datetime.strptime(raw, fmt).time()
        except ValueError:
            continue
    raise ValidationError(f"Invalid time {s!r}; expected HH:MM or hh:mm AM/PM")


def event_starts_at(date_str: str | None, time_str: str | None, tz_name: str = "UTC") -> datetime:
    """
    Combine an event's date and time strings into one naive UTC timestamp.

    The strings are interpreted as wall-clock time in ``tz_name``.
    """
    try:
        tz = ZoneInfo(tz_name or "UTC")
    except ZoneInfoNotFoundError as e:
        raise RuntimeError(f"Unknown EVENT_TIMEZONE {tz_name!r}") from e
    local = datetime.combine(parse_event_date(date_str), parse_event_time(time_str), tzinfo=tz)
    return local.astimezone(timezone.utc).replace(tzinfo=None)


def iso(value: datetime | None) -> str | None:
    if value is None:
        return None
    return value.isoformat() + "Z"


def parse_id(value, field_name: str) -> int:
    """Coerce a JSON id (int or numeric string) to int."""
    if isinstance(value, bool):
        raise ValidationError(f"{field_name} must be an id")
    try:
        parsed = int(str(value).strip())
    except (TypeError, ValueError) as e:
        raise ValidationError(f"{field_name} must be an id") from e
    if parsed <= 0:
        raise ValidationError(f"{field_name} must be an id")
    return parsed
