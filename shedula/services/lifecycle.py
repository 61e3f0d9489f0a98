"""Appointment lifecycle controller.

The only component that writes ``Appointment.status``. Commands run under the
appointment's keyed lock and are retried when the version check reports a
concurrent write. State machine:

    pending      --accept-->      accepted
    pending/accepted/rescheduled --reschedule--> rescheduled
    pending/accepted/rescheduled --cancel-->     cancelled
    pending/accepted/rescheduled --date passed--> completed

completed and cancelled are terminal. ``doctor_update`` is an administrative
override that may set any status on a non-terminal appointment.
"""

import enum
import logging
from contextlib import AsyncExitStack
from datetime import date
from typing import Awaitable, Callable, Iterable, Optional
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from shedula.core.config import settings
from shedula.core.exceptions import InvalidTransition, ValidationError
from shedula.core.locks import appointment_locks, slot_locks
from shedula.models.appointment import (
    Appointment,
    AppointmentStatus,
    ACTIVE_STATUSES,
    TERMINAL_STATUSES,
)
from shedula.services import appointment_store, slot_calendar
from shedula.utils.slot_time import normalize_slot_time

logger = logging.getLogger(__name__)

MIN_RATING = 1
MAX_RATING = 5


class Actor(str, enum.Enum):
    PATIENT = "patient"
    DOCTOR = "doctor"


DEFAULT_CANCEL_REASONS = {
    Actor.PATIENT: "Patient cancelled",
    Actor.DOCTOR: "Doctor cancelled",
}


# ============================================================================
# TIME-BASED DERIVATION
# ============================================================================

def is_due_for_completion(appointment: Appointment, today: date) -> bool:
    """Non-terminal appointment whose date is strictly before today."""
    return appointment.status in ACTIVE_STATUSES and appointment.appointment_date < today


def derive_status(appointment: Appointment, today: Optional[date] = None) -> AppointmentStatus:
    """Status the appointment has at ``today`` without touching the record."""
    today = today or date.today()
    if is_due_for_completion(appointment, today):
        return AppointmentStatus.COMPLETED
    return appointment.status


def _promote_if_due(appointment: Appointment, today: date) -> bool:
    if not is_due_for_completion(appointment, today):
        return False
    appointment.status = AppointmentStatus.COMPLETED
    return True


def _append_note(existing: Optional[str], note: str) -> str:
    if existing and existing.strip():
        return f"{existing.rstrip()}\n{note}"
    return note


# ============================================================================
# COMMAND RUNNER
# ============================================================================

Mutation = Callable[[Appointment, AsyncExitStack], Awaitable[bool]]


async def _transition(db: AsyncSession, appointment_id: UUID, action: str, mutate: Mutation) -> Appointment:
    """Load, mutate and replace one appointment under its lock.

    ``mutate`` returns False when nothing changed, in which case no write
    happens. Locks entered on the exit stack are held until after commit.
    A failed command rolls the session back, which expires every instance
    loaded in it; callers re-read by id afterwards.
    """
    attempts = settings.TRANSITION_MAX_RETRIES
    async with appointment_locks.hold(appointment_id):
        for attempt in range(1, attempts + 1):
            async with AsyncExitStack() as stack:
                appointment = await appointment_store.get(db, appointment_id)
                try:
                    changed = await mutate(appointment, stack)
                    if changed:
                        await appointment_store.replace(db, appointment)
                    return appointment
                except StaleDataError:
                    await db.rollback()
                    logger.warning(
                        "Concurrent write on appointment %s during %s (attempt %d/%d); retrying",
                        appointment_id, action, attempt, attempts,
                    )
                except Exception:
                    await db.rollback()
                    raise

    logger.error("Giving up %s on appointment %s after %d conflicting writes", action, appointment_id, attempts)
    raise InvalidTransition(
        appointment_id,
        "unknown",
        action,
        message=f"Appointment {appointment_id} was modified concurrently. Refresh and retry.",
    )


def _ensure_active(appointment: Appointment, action: str) -> None:
    if appointment.status in TERMINAL_STATUSES:
        raise InvalidTransition(appointment.id, appointment.status.value, action)


# ============================================================================
# COMMANDS
# ============================================================================

async def accept(db: AsyncSession, appointment_id: UUID, today: Optional[date] = None) -> Appointment:
    """Doctor accepts a pending appointment."""
    today = today or date.today()

    async def mutate(appointment: Appointment, stack: AsyncExitStack) -> bool:
        if _promote_if_due(appointment, today):
            await appointment_store.replace(db, appointment)
        if appointment.status != AppointmentStatus.PENDING:
            raise InvalidTransition(appointment.id, appointment.status.value, "accept")
        appointment.status = AppointmentStatus.ACCEPTED
        return True

    appointment = await _transition(db, appointment_id, "accept", mutate)
    logger.info("Appointment %s accepted", appointment_id)
    return appointment


async def cancel(
    db: AsyncSession,
    appointment_id: UUID,
    actor: Actor = Actor.PATIENT,
    reason: Optional[str] = None,
    today: Optional[date] = None,
) -> Appointment:
    """Cancel a non-terminal appointment and give its slot back to the calendar."""
    today = today or date.today()
    actor = Actor(actor)
    reason = reason.strip() if reason and reason.strip() else DEFAULT_CANCEL_REASONS[actor]

    async def mutate(appointment: Appointment, stack: AsyncExitStack) -> bool:
        if _promote_if_due(appointment, today):
            await appointment_store.replace(db, appointment)
        _ensure_active(appointment, "cancel")
        await slot_calendar.release(db, *appointment.slot_key)
        appointment.status = AppointmentStatus.CANCELLED
        appointment.reason = reason
        return True

    appointment = await _transition(db, appointment_id, "cancel", mutate)
    logger.info("Appointment %s cancelled by %s: %s", appointment_id, actor.value, reason)
    return appointment


async def reschedule(
    db: AsyncSession,
    appointment_id: UUID,
    new_date: Optional[date],
    new_time: Optional[str],
    actor: Actor = Actor.PATIENT,
    today: Optional[date] = None,
) -> Appointment:
    """Move a non-terminal appointment to another free slot of the same channel.

    The new slot is reserved before the old one is released; both happen in
    the same transaction as the record update.
    """
    if new_date is None or not new_time or not str(new_time).strip():
        raise ValidationError("Both new_date and new_time are required to reschedule")
    new_time = normalize_slot_time(new_time)
    today = today or date.today()
    actor = Actor(actor)

    async def mutate(appointment: Appointment, stack: AsyncExitStack) -> bool:
        if _promote_if_due(appointment, today):
            await appointment_store.replace(db, appointment)
        _ensure_active(appointment, "reschedule")
        if (appointment.appointment_date, appointment.appointment_time) == (new_date, new_time):
            raise ValidationError("New slot is the same as the current slot")

        key = slot_calendar.slot_key(appointment.doctor_id, appointment.channel, new_date, new_time)
        await stack.enter_async_context(slot_locks.hold(key))
        await slot_calendar.reserve(db, appointment.doctor_id, appointment.channel, new_date, new_time)
        await slot_calendar.release(db, *appointment.slot_key)

        if appointment.original_date is None:
            appointment.original_date = appointment.appointment_date
            appointment.original_time = appointment.appointment_time

        note = f"Rescheduled to {new_date.isoformat()} at {new_time}"
        appointment.appointment_date = new_date
        appointment.appointment_time = new_time
        appointment.status = AppointmentStatus.RESCHEDULED
        appointment.reason = _append_note(appointment.reason, note)
        appointment.doctor_notes = _append_note(appointment.doctor_notes, note)
        return True

    appointment = await _transition(db, appointment_id, "reschedule", mutate)
    logger.info("Appointment %s rescheduled by %s to %s %s", appointment_id, actor.value, new_date, new_time)
    return appointment


async def doctor_update(
    db: AsyncSession,
    appointment_id: UUID,
    notes: Optional[str] = None,
    status: Optional[AppointmentStatus] = None,
    today: Optional[date] = None,
) -> Appointment:
    """Doctor sets notes and/or an explicit status.

    Bypasses the edge guards for non-terminal appointments (e.g. pending ->
    completed directly). Terminal appointments, including past-dated ones
    promoted here first, only accept notes.
    """
    today = today or date.today()
    if status is not None:
        try:
            status = AppointmentStatus(getattr(status, "value", status).lower())
        except (ValueError, AttributeError):
            allowed = ", ".join(s.value for s in AppointmentStatus)
            raise ValidationError(f"status must be one of: {allowed}")

    async def mutate(appointment: Appointment, stack: AsyncExitStack) -> bool:
        if _promote_if_due(appointment, today):
            await appointment_store.replace(db, appointment)
        changed = False
        if status is not None and status != appointment.status:
            _ensure_active(appointment, f"set status '{status.value}' on")
            if status == AppointmentStatus.CANCELLED:
                await slot_calendar.release(db, *appointment.slot_key)
            appointment.status = status
            changed = True
        if notes is not None and notes != appointment.doctor_notes:
            appointment.doctor_notes = notes
            changed = True
        return changed

    appointment = await _transition(db, appointment_id, "update", mutate)
    logger.info(
        "Appointment %s updated by doctor: status=%s notes=%s",
        appointment_id, appointment.status.value, "set" if notes is not None else "unchanged",
    )
    return appointment


async def rate(db: AsyncSession, appointment_id: UUID, rating: int, today: Optional[date] = None) -> Appointment:
    """Patient rates a completed visit."""
    if rating is None or not MIN_RATING <= int(rating) <= MAX_RATING:
        raise ValidationError(f"rating must be between {MIN_RATING} and {MAX_RATING}")
    today = today or date.today()

    async def mutate(appointment: Appointment, stack: AsyncExitStack) -> bool:
        _promote_if_due(appointment, today)
        if appointment.status != AppointmentStatus.COMPLETED:
            raise InvalidTransition(
                appointment.id,
                appointment.status.value,
                "rate",
                message="Only completed appointments can be rated",
            )
        appointment.rating = int(rating)
        return True

    return await _transition(db, appointment_id, "rate", mutate)


async def delete(db: AsyncSession, appointment_id: UUID) -> None:
    """Remove an appointment; an active one gives its slot back first."""

    async def mutate(appointment: Appointment, stack: AsyncExitStack) -> bool:
        if appointment.status in ACTIVE_STATUSES:
            await slot_calendar.release(db, *appointment.slot_key)
        await appointment_store.delete(db, appointment)
        return False

    await _transition(db, appointment_id, "delete", mutate)


async def auto_complete(db: AsyncSession, appointment_id: UUID, today: Optional[date] = None) -> Appointment:
    """Promote one appointment to completed if its date has passed. Idempotent."""
    today = today or date.today()

    async def mutate(appointment: Appointment, stack: AsyncExitStack) -> bool:
        return _promote_if_due(appointment, today)

    return await _transition(db, appointment_id, "auto-complete", mutate)


async def auto_complete_due(
    db: AsyncSession,
    appointments: Iterable[Appointment],
    today: Optional[date] = None,
) -> list[Appointment]:
    """Persist lazy completion for every due appointment in a read batch.

    Returns the records in their post-promotion state, in input order.
    """
    today = today or date.today()
    refreshed = []
    promoted = 0
    for appointment in appointments:
        if is_due_for_completion(appointment, today):
            appointment = await auto_complete(db, appointment.id, today)
            promoted += 1
        refreshed.append(appointment)

    if promoted:
        logger.info("Auto-completed %d past appointments", promoted)
    return refreshed
