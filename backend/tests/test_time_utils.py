import pytest

from turfbook.booking.time_utils import (
    compute_end_time,
    crosses_midnight,
    format_time_for_display,
    minutes_to_time,
    normalize_time,
    split_at_midnight,
    surrounding_dates,
    time_to_minutes,
)


def test_time_to_minutes_accepts_single_digit_hours():
    assert time_to_minutes("9:30") == 570
    assert time_to_minutes("00:00") == 0
    assert time_to_minutes("23:59") == 1439


@pytest.mark.parametrize("value", ["24:00", "12:60", "1230", "", None, "12:5"])
def test_time_to_minutes_rejects_malformed_values(value):
    with pytest.raises(ValueError):
        time_to_minutes(value)


def test_minutes_to_time_wraps_past_midnight():
    assert minutes_to_time(90) == "01:30"
    assert minutes_to_time(1440 + 30) == "00:30"


def test_normalize_time():
    assert normalize_time("25:30") == "01:30"
    assert normalize_time("10:00") == "10:00"


def test_compute_end_time_wraps():
    assert compute_end_time("23:30", 1) == "00:30"
    assert compute_end_time("10:00", 1.5) == "11:30"
    assert compute_end_time("22:00", 2) == "00:00"


def test_crosses_midnight():
    assert crosses_midnight("23:00", "01:00") is True
    assert crosses_midnight("22:00", "00:00") is True
    assert crosses_midnight("10:00", "11:00") is False


def test_surrounding_dates_handles_month_and_leap_boundaries():
    assert surrounding_dates("2024-03-01") == ("2024-02-29", "2024-03-01", "2024-03-02")
    assert surrounding_dates("2024-12-31") == ("2024-12-30", "2024-12-31", "2025-01-01")


def test_format_time_for_display():
    assert format_time_for_display("0:00") == "12:00 AM"
    assert format_time_for_display("12:15") == "12:15 PM"
    assert format_time_for_display("13:05") == "1:05 PM"


def test_split_at_midnight_single_day():
    assert split_at_midnight("2024-06-10", "10:00", 2) == [
        {"date": "2024-06-10", "start_time": "10:00", "end_time": "12:00"}
    ]


def test_split_at_midnight_two_days():
    assert split_at_midnight("2024-06-30", "23:00", 2.5) == [
        {"date": "2024-06-30", "start_time": "23:00", "end_time": "00:00"},
        {"date": "2024-07-01", "start_time": "00:00", "end_time": "01:30"},
    ]
