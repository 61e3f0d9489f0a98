"""Patient-facing booking and appointment action endpoints."""

from datetime import date
from uuid import UUID
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from shedula.core.database import get_db
from shedula.schemas.appointment import (
    AppointmentBook,
    AppointmentCancel,
    AppointmentOut,
    AppointmentRating,
    AppointmentReschedule,
)
from shedula.services import appointment_store, lifecycle
from shedula.services.booking import book_appointment
from shedula.services.patient_view import to_view

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/book", response_model=AppointmentOut, status_code=201)
async def book(
    payload: AppointmentBook,
    db: AsyncSession = Depends(get_db),
):
    """Book a slot. 409 if the slot is taken, 422 if a field is missing."""
    appointment = await book_appointment(
        db,
        doctor_id=payload.doctor_id,
        channel=payload.channel,
        appointment_date=payload.appointment_date,
        appointment_time=payload.appointment_time,
        patient_id=payload.patient_id,
        patient_name=payload.patient_name,
        patient_age=payload.patient_age,
        payment_method=payload.payment_method,
        reason=payload.reason,
    )
    return to_view(appointment, date.today())


@router.get("/{appointment_id}", response_model=AppointmentOut)
async def read_appointment(
    appointment_id: UUID,
    db: AsyncSession = Depends(get_db),
):
    """Appointment details; lazy completion is applied before returning."""
    appointment = await appointment_store.get(db, appointment_id)
    today = date.today()
    if lifecycle.is_due_for_completion(appointment, today):
        appointment = await lifecycle.auto_complete(db, appointment_id, today)
    return to_view(appointment, today)


@router.put("/{appointment_id}/accept", response_model=AppointmentOut)
async def accept_appointment(
    appointment_id: UUID,
    db: AsyncSession = Depends(get_db),
):
    appointment = await lifecycle.accept(db, appointment_id)
    return to_view(appointment, date.today())


@router.put("/{appointment_id}/cancel", response_model=AppointmentOut)
async def cancel_appointment(
    appointment_id: UUID,
    payload: AppointmentCancel,
    db: AsyncSession = Depends(get_db),
):
    """Patient cancels; the slot goes back to the calendar."""
    appointment = await lifecycle.cancel(db, appointment_id, actor=lifecycle.Actor.PATIENT, reason=payload.reason)
    return to_view(appointment, date.today())


@router.put("/{appointment_id}/reschedule", response_model=AppointmentOut)
async def reschedule_appointment(
    appointment_id: UUID,
    payload: AppointmentReschedule,
    db: AsyncSession = Depends(get_db),
):
    appointment = await lifecycle.reschedule(
        db, appointment_id, payload.new_date, payload.new_time, actor=lifecycle.Actor.PATIENT
    )
    return to_view(appointment, date.today())


@router.put("/{appointment_id}/rating", response_model=AppointmentOut)
async def rate_appointment(
    appointment_id: UUID,
    payload: AppointmentRating,
    db: AsyncSession = Depends(get_db),
):
    appointment = await lifecycle.rate(db, appointment_id, payload.rating)
    return to_view(appointment, date.today())
