from __future__ import annotations

import re
from datetime import date, datetime, timedelta
from typing import Any


MINUTES_PER_DAY = 24 * 60
_TIME_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})$")
_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def parse_date(value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not _DATE_PATTERN.match(value.strip()):
        raise ValueError(f"Invalid date: {value!r}")
    return date.fromisoformat(value.strip())


def time_to_minutes(value: Any) -> int:
    """Minutes since midnight for a 24-hour ``H:MM``/``HH:MM`` string."""
    if not isinstance(value, str):
        raise ValueError(f"Invalid time: {value!r}")
    match = _TIME_PATTERN.match(value.strip())
    if match is None:
        raise ValueError(f"Invalid time: {value!r}")
    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23 or minutes > 59:
        raise ValueError(f"Invalid time: {value!r}")
    return hours * 60 + minutes


def minutes_to_time(minutes: int) -> str:
    minutes = int(minutes) % MINUTES_PER_DAY
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def normalize_time(value: str) -> str:
    hours, minutes = (int(part) for part in value.split(":"))
    if hours >= 24:
        return f"{hours % 24:02d}:{minutes:02d}"
    return value


def compute_end_time(start_time: str, duration_hours: float) -> str:
    return minutes_to_time(time_to_minutes(start_time) + round(duration_hours * 60))


def crosses_midnight(start_time: str, end_time: str) -> bool:
    return time_to_minutes(end_time) <= time_to_minutes(start_time)


def surrounding_dates(day: Any) -> tuple[str, str, str]:
    current = parse_date(day)
    return (
        (current - timedelta(days=1)).isoformat(),
        current.isoformat(),
        (current + timedelta(days=1)).isoformat(),
    )


def combine(day: Any, time_text: str) -> datetime:
    minutes = time_to_minutes(time_text)
    return datetime.combine(parse_date(day), datetime.min.time()) + timedelta(minutes=minutes)


def format_time_for_display(time_text: str) -> str:
    minutes = time_to_minutes(normalize_time(time_text))
    hours, mins = divmod(minutes, 60)
    period = "PM" if hours >= 12 else "AM"
    return f"{hours % 12 or 12}:{mins:02d} {period}"


def split_at_midnight(day: Any, start_time: str, duration_hours: float) -> list[dict[str, str]]:
    """Display segments for a booking, one per calendar date it touches."""
    current = parse_date(day)
    start_minutes = time_to_minutes(start_time)
    total_minutes = round(duration_hours * 60)
    minutes_to_midnight = MINUTES_PER_DAY - start_minutes

    if total_minutes <= minutes_to_midnight:
        return [
            {
                "date": current.isoformat(),
                "start_time": minutes_to_time(start_minutes),
                "end_time": minutes_to_time(start_minutes + total_minutes),
            }
        ]

    return [
        {
            "date": current.isoformat(),
            "start_time": minutes_to_time(start_minutes),
            "end_time": "00:00",
        },
        {
            "date": (current + timedelta(days=1)).isoformat(),
            "start_time": "00:00",
            "end_time": minutes_to_time(total_minutes - minutes_to_midnight),
        },
    ]
