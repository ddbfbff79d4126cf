from __future__ import annotations

import math
from datetime import datetime, timedelta
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from turfbook import config
from turfbook.booking.time_utils import combine, time_to_minutes


PRICING_INTERVAL_MINUTES = 30


class RateSchedule(BaseModel):
    model_config = ConfigDict(frozen=True)

    weekday_day: int = Field(ge=0)
    weekday_night: int = Field(ge=0)
    weekend_day: int = Field(ge=0)
    weekend_night: int = Field(ge=0)
    day_start_minutes: int = 6 * 60
    day_end_minutes: int = 18 * 60

    def rate_at(self, instant: datetime) -> int:
        # isoweekday: Saturday=6, Sunday=7
        is_weekend = instant.isoweekday() >= 6
        minutes = instant.hour * 60 + instant.minute
        is_day = self.day_start_minutes <= minutes < self.day_end_minutes

        if is_day:
            return self.weekend_day if is_weekend else self.weekday_day
        return self.weekend_night if is_weekend else self.weekday_night


def default_rate_schedule() -> RateSchedule:
    return RateSchedule(
        weekday_day=config.WEEKDAY_DAY_RATE,
        weekday_night=config.WEEKDAY_NIGHT_RATE,
        weekend_day=config.WEEKEND_DAY_RATE,
        weekend_night=config.WEEKEND_NIGHT_RATE,
        day_start_minutes=time_to_minutes(config.DAY_WINDOW_START),
        day_end_minutes=time_to_minutes(config.DAY_WINDOW_END),
    )


def calculate_price(
    date: Any,
    start_time: str,
    duration_hours: float,
    rate_schedule: RateSchedule | None = None,
) -> int:
    """Price a booking by summing half-hour blocks.

    Each block is charged half the hourly rate in force at the instant the
    block starts, so a booking running past 18:00 or past midnight into the
    weekend is prorated block by block. A block that straddles a boundary is
    charged entirely at its starting rate. Non-finite durations raise
    ``ValueError``.
    """
    schedule = rate_schedule or default_rate_schedule()
    start = combine(date, start_time)
    blocks_per_hour = 60 / PRICING_INTERVAL_MINUTES

    total = 0.0
    elapsed = 0
    duration_minutes = duration_hours * 60
    if not math.isfinite(duration_minutes):
        raise ValueError(f"Invalid duration: {duration_hours!r}")
    while elapsed < duration_minutes:
        instant = start + timedelta(minutes=elapsed)
        total += schedule.rate_at(instant) / blocks_per_hour
        elapsed += PRICING_INTERVAL_MINUTES

    # half-up
    return int(math.floor(total + 0.5))
