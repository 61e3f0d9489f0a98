"""Doctor console queries: status filter, free-text search, chronological sort.

Pure functions over an in-memory list of appointments; the endpoint layer
loads the doctor's records (after lazy completion) and passes them in.
"""

from collections import Counter
from datetime import datetime, time
from typing import Iterable, Optional

from shedula.core.config import settings
from shedula.core.exceptions import ValidationError
from shedula.models.appointment import Appointment, AppointmentStatus, ACTIVE_STATUSES
from shedula.utils.slot_time import time_to_minutes

ALL_STATUSES = "all"


def parse_status_filter(status: Optional[str]) -> Optional[AppointmentStatus]:
    """Case-insensitive status filter; None or "all" means no filter."""
    if status is None or not status.strip() or status.strip().lower() == ALL_STATUSES:
        return None
    try:
        return AppointmentStatus(status.strip().lower())
    except ValueError:
        allowed = ", ".join([ALL_STATUSES] + [s.value for s in AppointmentStatus])
        raise ValidationError(f"Unknown status filter '{status}'. Expected one of: {allowed}")


def matches_search(appointment: Appointment, search: str) -> bool:
    """Case-insensitive substring match on patient name, reason or token."""
    needle = search.lower()
    for field in (appointment.patient_name, appointment.reason, appointment.token):
        if field and needle in field.lower():
            return True
    return False


def chronological_key(appointment: Appointment) -> tuple:
    return (appointment.appointment_date, time_to_minutes(appointment.appointment_time))


def query_appointments(
    appointments: Iterable[Appointment],
    status: Optional[str] = None,
    search: Optional[str] = None,
) -> list[Appointment]:
    """Filter by status AND search, then sort ascending by (date, time)."""
    wanted = parse_status_filter(status)
    needle = search.strip() if search else ""

    selected = [
        a for a in appointments
        if (wanted is None or a.status == wanted)
        and (not needle or matches_search(a, needle))
    ]
    return sorted(selected, key=chronological_key)


def summarize(appointments: Iterable[Appointment]) -> dict:
    """Per-status counts for the dashboard widget."""
    counts = Counter(a.status for a in appointments)
    summary = {s.value: counts.get(s, 0) for s in AppointmentStatus}
    summary["total"] = sum(counts.values())
    return summary


def starts_at(appointment: Appointment) -> datetime:
    minutes = time_to_minutes(appointment.appointment_time)
    return datetime.combine(appointment.appointment_date, time(minutes // 60, minutes % 60))


def time_remaining(appointment: Appointment, now: Optional[datetime] = None) -> str:
    """Human readable countdown to the appointment start."""
    now = now or datetime.now()
    start = starts_at(appointment)

    if appointment.status == AppointmentStatus.CANCELLED:
        return "Appointment cancelled"

    remaining = start - now
    if remaining.total_seconds() <= 0 or appointment.status == AppointmentStatus.COMPLETED:
        return "Appointment completed"

    total_minutes = int(remaining.total_seconds() // 60)
    days, rest = divmod(total_minutes, 24 * 60)
    hours, mins = divmod(rest, 60)
    return f"{days}d {hours}h {mins}m remaining"


def reminder_due(
    appointment: Appointment,
    now: Optional[datetime] = None,
    window_minutes: Optional[int] = None,
) -> bool:
    """Active appointment starting within the reminder window (not yet started)."""
    if appointment.status not in ACTIVE_STATUSES:
        return False
    now = now or datetime.now()
    window = window_minutes if window_minutes is not None else settings.REMINDER_WINDOW_MINUTES
    remaining = (starts_at(appointment) - now).total_seconds()
    return 0 < remaining <= window * 60
