"""Patient appointment list (upcoming / past)."""

import logging
from datetime import date

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from shedula.core.database import get_db
from shedula.schemas.appointment import PatientAppointments
from shedula.services import appointment_store, lifecycle, patient_view

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/{patient_id}/appointments", response_model=PatientAppointments)
async def list_patient_appointments(
    patient_id: str,
    db: AsyncSession = Depends(get_db),
):
    """Promote past-dated appointments to completed, then split into buckets."""
    today = date.today()
    appointments = await appointment_store.read_all(db, patient_id=patient_id)
    appointments = await lifecycle.auto_complete_due(db, appointments, today)

    projection = patient_view.project(appointments, today)
    logger.debug(
        "Patient %s: %d upcoming, %d past", patient_id, len(projection.upcoming), len(projection.past)
    )
    return PatientAppointments(
        upcoming=list(projection.upcoming),
        past=list(projection.past),
        reminder=projection.reminder,
    )
