from datetime import datetime, time

import pytest

from app.campus.errors import ValidationError
from app.campus.utils import event_starts_at, iso, parse_event_time, parse_id


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("18:30", time(18, 30)),
        ("07:05:09", time(7, 5, 9)),
        ("6:30 pm", time(18, 30)),
        ("6:30PM", time(18, 30)),
        ("12 AM", time(0, 0)),
    ],
)
def test_parse_event_time_formats(raw, expected):
    assert parse_event_time(raw) == expected


@pytest.mark.parametrize("raw", ["", None, "25:00", "noon"])
def test_parse_event_time_rejects(raw):
    with pytest.raises(ValidationError):
        parse_event_time(raw)


def test_event_starts_at_converts_to_utc():
    assert event_starts_at("2030-01-15", "09:00", "UTC") == datetime(2030, 1, 15, 9, 0)
    # Karachi is UTC+5 with no DST.
    assert event_starts_at("2030-01-15", "09:00", "Asia/Karachi") == datetime(2030, 1, 15, 4, 0)


def test_event_starts_at_rejects_bad_date():
    with pytest.raises(ValidationError):
        event_starts_at("15/01/2030", "09:00")


def test_event_starts_at_unknown_timezone():
    with pytest.raises(RuntimeError):
        event_starts_at("2030-01-15", "09:00", "Mars/Olympus")


def test_parse_id():
    assert parse_id("12", "societyId") == 12
    assert parse_id(3, "societyId") == 3
    for bad in (True, "abc", 0, -4, None):
        with pytest.raises(ValidationError):
            parse_id(bad, "societyId")


def test_iso():
    assert iso(None) is None
    assert iso(datetime(2030, 1, 1, 12, 0)) == "2030-01-01T12:00:00Z"
