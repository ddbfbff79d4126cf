from __future__ import annotations

import logging
import math
from typing import Any, Iterable

from pydantic import BaseModel, ConfigDict

from turfbook import config
from turfbook.booking.time_utils import MINUTES_PER_DAY, parse_date, time_to_minutes

logger = logging.getLogger("turfbook.booking.availability")

# Day offsets, relative to the candidate's date, that can overlap a slot of at most 24h.
_RELEVANT_DAY_OFFSETS = (-1, 0, 1)


class ClosedWindow(BaseModel):
    model_config = ConfigDict(frozen=True)

    start_minutes: int
    end_minutes: int

    @classmethod
    def from_times(cls, start_time: str, end_time: str) -> "ClosedWindow":
        return cls(
            start_minutes=time_to_minutes(start_time),
            end_minutes=time_to_minutes(end_time),
        )

    def intervals(self) -> list[tuple[int, int]]:
        end = self.end_minutes
        if end <= self.start_minutes:
            end += MINUTES_PER_DAY
        return [
            (offset * MINUTES_PER_DAY + self.start_minutes, offset * MINUTES_PER_DAY + end)
            for offset in _RELEVANT_DAY_OFFSETS
        ]


DEFAULT_CLOSED_WINDOW = ClosedWindow.from_times(
    config.CLOSED_WINDOW_START,
    config.CLOSED_WINDOW_END,
)


class BookedSlot(BaseModel):
    date: str
    start_time: str
    end_time: str
    court_id: int | None = None
    is_approved: bool | None = None


def is_available(
    candidate_date: Any,
    candidate_start: Any,
    duration_hours: Any,
    existing_bookings: Iterable[Any] | None,
    closed_window: ClosedWindow = DEFAULT_CLOSED_WINDOW,
) -> bool:
    """Whether a candidate slot can be booked.

    ``existing_bookings`` holds the court's bookings dated the day before, the
    day of and the day after the candidate; anything else is ignored. Bookings
    may be ORM rows, ``BookedSlot`` instances or plain dicts. Malformed input
    never raises, it just makes the slot unavailable.
    """
    try:
        slot_start, slot_end = _candidate_interval(candidate_start, duration_hours)
        anchor = parse_date(candidate_date)
    except (TypeError, ValueError):
        return False

    if _overlaps_closed_window(slot_start, slot_end, closed_window):
        return False

    try:
        conflicts = _find_conflicts(anchor, slot_start, slot_end, existing_bookings or [])
    except (TypeError, ValueError) as exc:
        logger.warning("Unreadable booking in availability check, failing closed: %s", exc)
        return False
    return not conflicts


def is_closed(
    candidate_start: Any,
    duration_hours: Any,
    closed_window: ClosedWindow = DEFAULT_CLOSED_WINDOW,
) -> bool:
    try:
        slot_start, slot_end = _candidate_interval(candidate_start, duration_hours)
    except (TypeError, ValueError):
        return True
    return _overlaps_closed_window(slot_start, slot_end, closed_window)


def find_conflicting_bookings(
    candidate_date: Any,
    candidate_start: Any,
    duration_hours: Any,
    existing_bookings: Iterable[Any] | None,
) -> list[Any]:
    slot_start, slot_end = _candidate_interval(candidate_start, duration_hours)
    anchor = parse_date(candidate_date)
    return _find_conflicts(anchor, slot_start, slot_end, existing_bookings or [])


def _candidate_interval(candidate_start: Any, duration_hours: Any) -> tuple[float, float]:
    if isinstance(duration_hours, bool) or duration_hours is None:
        raise ValueError("Duration is required")
    duration = float(duration_hours)
    if not math.isfinite(duration) or duration <= 0:
        raise ValueError(f"Invalid duration: {duration_hours!r}")
    slot_start = time_to_minutes(candidate_start)
    return slot_start, slot_start + duration * 60


def _overlaps_closed_window(slot_start: float, slot_end: float, closed_window: ClosedWindow) -> bool:
    return any(
        slot_start < closed_end and slot_end > closed_start
        for closed_start, closed_end in closed_window.intervals()
    )


def _find_conflicts(anchor, slot_start: float, slot_end: float, bookings: Iterable[Any]) -> list[Any]:
    conflicts = []
    for booking in bookings:
        if _field(booking, "is_approved") is False:
            continue

        offset_days = (parse_date(_field(booking, "date")) - anchor).days
        if offset_days not in _RELEVANT_DAY_OFFSETS:
            continue

        booking_start = time_to_minutes(_field(booking, "start_time"))
        booking_end = time_to_minutes(_field(booking, "end_time"))
        if booking_end <= booking_start:
            booking_end += MINUTES_PER_DAY

        offset = offset_days * MINUTES_PER_DAY
        if slot_start < offset + booking_end and slot_end > offset + booking_start:
            conflicts.append(booking)
    return conflicts


def _field(booking: Any, name: str) -> Any:
    if isinstance(booking, dict):
        return booking.get(name)
    return getattr(booking, name, None)
