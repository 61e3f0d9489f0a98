"""Booking engine: turn a slot selection into a Pending appointment.

Reservation, token issue and insert run in one transaction under the slot's
keyed lock and the doctor's token lock. Any failure rolls the transaction back, so
a rejected booking leaves the calendar untouched. A token already issued by
another process trips the (doctor_id, token) unique constraint and the
whole transaction is retried with a fresh token.
"""

import logging
from datetime import date, datetime
from typing import Optional
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from shedula.core.config import settings
from shedula.core.exceptions import TokenSpaceExhausted, ValidationError
from shedula.core.locks import slot_locks, token_locks
from shedula.models.appointment import Appointment, AppointmentStatus, PaymentMethod
from shedula.models.slot import Channel
from shedula.services import appointment_store, slot_calendar
from shedula.services.doctor_profiles import get_doctor
from shedula.services.tokens import generate_unique_token
from shedula.utils.slot_time import normalize_slot_time

logger = logging.getLogger(__name__)

MAX_PATIENT_AGE = 150


def _require_text(value: Optional[str], field: str) -> str:
    if value is None or not str(value).strip():
        raise ValidationError(f"{field} is required")
    return str(value).strip()


def _coerce_enum(enum_cls, value, field: str):
    if value is None or value == "":
        raise ValidationError(f"{field} is required")
    try:
        return enum_cls(getattr(value, "value", value))
    except ValueError:
        allowed = ", ".join(e.value for e in enum_cls)
        raise ValidationError(f"{field} must be one of: {allowed}")


async def book_appointment(
    db: AsyncSession,
    doctor_id: str,
    channel,
    appointment_date: date,
    appointment_time: str,
    patient_id: str,
    patient_name: str,
    patient_age: int,
    payment_method,
    reason: Optional[str] = None,
    today: Optional[date] = None,
) -> Appointment:
    """Reserve the slot and create the appointment.

    Raises:
        ValidationError: a required field is missing or malformed, or the date
            is before today.
        NotFound: the doctor does not exist.
        SlotConflict: the slot is not in the calendar or already taken.
        TokenSpaceExhausted: no free token could be generated.
    """
    doctor_id = _require_text(doctor_id, "doctor_id")
    patient_id = _require_text(patient_id, "patient_id")
    patient_name = _require_text(patient_name, "patient_name")
    channel = _coerce_enum(Channel, channel, "channel")
    payment_method = _coerce_enum(PaymentMethod, payment_method, "payment_method")
    if appointment_date is None:
        raise ValidationError("appointment_date is required")
    today = today or date.today()
    if appointment_date < today:
        raise ValidationError(f"Cannot book {appointment_date}: the date is in the past")
    slot_time = normalize_slot_time(_require_text(appointment_time, "appointment_time"))
    try:
        patient_age = int(patient_age)
    except (TypeError, ValueError):
        raise ValidationError("patient_age must be a whole number")
    if not 0 < patient_age <= MAX_PATIENT_AGE:
        raise ValidationError(f"patient_age must be between 1 and {MAX_PATIENT_AGE}")

    doctor = await get_doctor(db, doctor_id)
    # Plain values: a rollback below expires the loaded doctor
    fields = dict(
        doctor_id=doctor.id,
        doctor_name=doctor.name,
        doctor_avatar=doctor.avatar,
        doctor_specialization=doctor.specialization,
        location=doctor.location,
        patient_id=patient_id,
        patient_name=patient_name,
        patient_age=patient_age,
        appointment_date=appointment_date,
        appointment_time=slot_time,
        channel=channel,
        payment_method=payment_method,
        consultation_fee=doctor.price_for(channel),
        status=AppointmentStatus.ACCEPTED if doctor.auto_accept else AppointmentStatus.PENDING,
        reason=reason.strip() if reason and reason.strip() else None,
    )

    attempts = settings.TOKEN_MAX_ATTEMPTS
    collided = set()
    key = slot_calendar.slot_key(doctor_id, channel, appointment_date, slot_time)
    async with slot_locks.hold(key), token_locks.hold(doctor_id):
        for attempt in range(1, attempts + 1):
            token = None
            try:
                await slot_calendar.reserve(db, doctor_id, channel, appointment_date, slot_time)
                token = generate_unique_token(
                    await appointment_store.existing_tokens(db, doctor_id) | collided,
                    doctor_id,
                    attempts,
                )
                appointment = Appointment(token=token, created_at=datetime.utcnow(), **fields)
                await appointment_store.insert(db, appointment)
                break
            except IntegrityError:
                # Another process issued the same token first
                await db.rollback()
                collided.add(token)
                logger.warning(
                    "Token %s for doctor %s taken concurrently (attempt %d/%d); retrying",
                    token, doctor_id, attempt, attempts,
                )
            except Exception:
                await db.rollback()
                raise
        else:
            logger.error("Booking for doctor %s gave up after %d token collisions", doctor_id, attempts)
            raise TokenSpaceExhausted(doctor_id, attempts)

    logger.info(
        "Appointment %s booked: doctor=%s patient=%s %s %s (%s) token=%s status=%s",
        appointment.id,
        doctor_id,
        patient_id,
        appointment_date,
        slot_time,
        channel.value,
        token,
        appointment.status.value,
    )
    return appointment
