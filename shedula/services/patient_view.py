"""Patient view projector: split appointments into upcoming and past.

Read-only. Status is re-derived from the date on the fly so the buckets are
right even if lazy completion has not been persisted yet.
"""

from datetime import date, datetime
from typing import Iterable, NamedTuple, Optional

from shedula.models.appointment import Appointment, ACTIVE_STATUSES
from shedula.schemas.appointment import AppointmentOut
from shedula.services.doctor_console import chronological_key, reminder_due, starts_at, time_remaining
from shedula.services.lifecycle import derive_status


class PatientProjection(NamedTuple):
    upcoming: tuple
    past: tuple
    reminder: Optional[AppointmentOut] = None


def to_view(appointment: Appointment, today: date, now: Optional[datetime] = None) -> AppointmentOut:
    """Snapshot of an appointment with its derived status; the record is untouched."""
    view = AppointmentOut.model_validate(appointment)
    view = view.model_copy(update={"status": derive_status(appointment, today)})
    return view.model_copy(update={
        "time_remaining": time_remaining(view, now),
        "reminder_due": reminder_due(view, now),
    })


def is_upcoming(view: AppointmentOut, today: date) -> bool:
    return view.status in ACTIVE_STATUSES and view.appointment_date >= today


def project(
    appointments: Iterable[Appointment],
    today: Optional[date] = None,
    now: Optional[datetime] = None,
) -> PatientProjection:
    """Partition into upcoming (soonest first) and past (most recent first).

    Every appointment lands in exactly one bucket. ``reminder`` is the
    soonest upcoming appointment that has not started yet, when it starts
    within the reminder window.
    """
    today = today or date.today()
    now = now or datetime.now()
    views = [to_view(a, today, now) for a in appointments]

    upcoming = sorted((v for v in views if is_upcoming(v, today)), key=chronological_key)
    past = sorted((v for v in views if not is_upcoming(v, today)), key=chronological_key, reverse=True)

    not_started = [v for v in upcoming if starts_at(v) > now]
    reminder = not_started[0] if not_started and not_started[0].reminder_due else None
    return PatientProjection(upcoming=tuple(upcoming), past=tuple(past), reminder=reminder)
