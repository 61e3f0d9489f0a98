"""Slot time parsing and formatting helpers.

Calendar times are stored as zero-padded 24h "HH:MM" strings. Inputs coming
from forms may be "9:00", "09:00" or "10:00 AM"; they are normalized before any
lookup so the same slot never appears under two spellings.
"""

import re

from shedula.core.exceptions import ValidationError

_TIME_RE = re.compile(r"^\s*(\d{1,2})(?::(\d{2}))?\s*([AaPp][Mm])?\s*$")


def time_to_minutes(t: str) -> int:
    """Convert a slot time string to minutes since midnight."""
    match = _TIME_RE.match(t or "")
    if not match:
        raise ValidationError(f"Invalid slot time '{t}'. Expected HH:MM or HH:MM AM/PM.")

    hour = int(match.group(1))
    minute = int(match.group(2) or 0)
    meridiem = (match.group(3) or "").lower()

    if meridiem:
        if not 1 <= hour <= 12:
            raise ValidationError(f"Invalid slot time '{t}': hour must be 1-12 with AM/PM.")
        if meridiem == "pm" and hour < 12:
            hour += 12
        if meridiem == "am" and hour == 12:
            hour = 0

    if hour > 23 or minute > 59:
        raise ValidationError(f"Invalid slot time '{t}'.")
    return hour * 60 + minute


def minutes_to_time(minutes: int) -> str:
    """Convert minutes since midnight to HH:MM string."""
    h = minutes // 60
    m = minutes % 60
    return f"{h:02d}:{m:02d}"


def normalize_slot_time(t: str) -> str:
    """Canonical "HH:MM" spelling of a slot time."""
    return minutes_to_time(time_to_minutes(t))


def generate_day_times(start: str, end: str, interval_minutes: int) -> list[str]:
    """All slot start times in [start, end) spaced by interval_minutes."""
    if interval_minutes <= 0:
        raise ValidationError("Slot interval must be positive")

    current = time_to_minutes(start)
    end_minutes = time_to_minutes(end)

    times = []
    while current + interval_minutes <= end_minutes:
        times.append(minutes_to_time(current))
        current += interval_minutes
    return times
