"""Doctor console endpoints.

- GET    /doctor-console/{doctor_id}/appointments → filtered, sorted list
- GET    /doctor-console/{doctor_id}/summary → per-status counts
- PUT    /doctor-console/appointments/{id} → notes + status
- PUT    /doctor-console/appointments/{id}/reschedule → move to another slot
- DELETE /doctor-console/appointments/{id} → remove record, free the slot
"""

import logging
from datetime import date
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from shedula.core.database import get_db
from shedula.schemas.appointment import (
    AppointmentOut,
    AppointmentReschedule,
    ConsoleSummary,
    DoctorUpdate,
)
from shedula.services import appointment_store, doctor_console, lifecycle
from shedula.services.doctor_profiles import get_doctor
from shedula.services.patient_view import to_view

router = APIRouter()
logger = logging.getLogger(__name__)


async def _load_doctor_appointments(db: AsyncSession, doctor_id: str, today: date):
    await get_doctor(db, doctor_id)
    appointments = await appointment_store.read_all(db, doctor_id=doctor_id)
    return await lifecycle.auto_complete_due(db, appointments, today)


@router.get("/{doctor_id}/appointments", response_model=List[AppointmentOut])
async def list_console_appointments(
    doctor_id: str,
    status: Optional[str] = Query(None, description="pending, accepted, rescheduled, completed, cancelled or all"),
    search: Optional[str] = Query(None, description="Matches patient name, reason or token"),
    db: AsyncSession = Depends(get_db),
):
    """Doctor's appointments filtered by status and search, oldest first."""
    today = date.today()
    appointments = await _load_doctor_appointments(db, doctor_id, today)
    selected = doctor_console.query_appointments(appointments, status=status, search=search)
    return [to_view(a, today) for a in selected]


@router.get("/{doctor_id}/summary", response_model=ConsoleSummary)
async def console_summary(
    doctor_id: str,
    db: AsyncSession = Depends(get_db),
):
    appointments = await _load_doctor_appointments(db, doctor_id, date.today())
    return ConsoleSummary(**doctor_console.summarize(appointments))


@router.put("/appointments/{appointment_id}", response_model=AppointmentOut)
async def update_appointment(
    appointment_id: UUID,
    payload: DoctorUpdate,
    db: AsyncSession = Depends(get_db),
):
    """Set doctor notes and/or an explicit status."""
    appointment = await lifecycle.doctor_update(
        db, appointment_id, notes=payload.doctor_notes, status=payload.status
    )
    return to_view(appointment, date.today())


@router.put("/appointments/{appointment_id}/reschedule", response_model=AppointmentOut)
async def doctor_reschedule(
    appointment_id: UUID,
    payload: AppointmentReschedule,
    db: AsyncSession = Depends(get_db),
):
    appointment = await lifecycle.reschedule(
        db, appointment_id, payload.new_date, payload.new_time, actor=lifecycle.Actor.DOCTOR
    )
    return to_view(appointment, date.today())


@router.delete("/appointments/{appointment_id}", status_code=204)
async def delete_appointment(
    appointment_id: UUID,
    db: AsyncSession = Depends(get_db),
):
    await lifecycle.delete(db, appointment_id)
