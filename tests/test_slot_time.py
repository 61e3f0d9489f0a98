"""Tests for slot time normalization."""

import pytest

from shedula.core.exceptions import ValidationError
from shedula.utils.slot_time import (
    time_to_minutes,
    minutes_to_time,
    normalize_slot_time,
    generate_day_times,
)


@pytest.mark.parametrize("raw, expected", [
    ("10:00", "10:00"),
    ("9:30", "09:30"),
    ("10:00 AM", "10:00"),
    ("12:00 AM", "00:00"),
    ("12:30 PM", "12:30"),
    ("2:15 pm", "14:15"),
    (" 17:00 ", "17:00"),
])
def test_normalize_slot_time(raw, expected):
    assert normalize_slot_time(raw) == expected


@pytest.mark.parametrize("raw", ["", "25:00", "10:75", "13:00 PM", "noon", None])
def test_invalid_slot_time_rejected(raw):
    with pytest.raises(ValidationError):
        time_to_minutes(raw)


def test_minutes_round_trip_ordering():
    """9:30 sorts before 10:00 once converted, unlike the raw strings."""
    assert time_to_minutes("9:30") < time_to_minutes("10:00")
    assert minutes_to_time(570) == "09:30"


def test_generate_day_times_matches_half_hour_template():
    times = generate_day_times("09:00", "18:00", 30)
    assert times[0] == "09:00"
    assert times[-1] == "17:30"
    assert len(times) == 18


def test_generate_day_times_drops_partial_last_slot():
    assert generate_day_times("09:00", "10:45", 30) == ["09:00", "09:30", "10:00"]
