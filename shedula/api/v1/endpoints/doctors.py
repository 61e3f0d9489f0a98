"""Doctor onboarding and slot calendar endpoints."""

from datetime import date
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from shedula.core.database import get_db
from shedula.models.slot import Channel
from shedula.schemas.doctor import (
    DoctorCreate,
    DoctorOut,
    AvailableDatesResponse,
    AvailableSlotsResponse,
    CalendarRefresh,
    CalendarRefreshResult,
    SlotRelease,
    SlotReleaseResult,
    TimeSlot,
)
from shedula.services import slot_calendar
from shedula.services.doctor_profiles import get_doctor, onboard_doctor

router = APIRouter()
logger = logging.getLogger(__name__)


# ============================================================================
# DOCTOR PROFILES
# ============================================================================

@router.post("/", response_model=DoctorOut, status_code=201)
async def create_doctor(
    payload: DoctorCreate,
    db: AsyncSession = Depends(get_db),
):
    """Onboard a doctor and generate the first calendar window."""
    return await onboard_doctor(
        db,
        doctor_id=payload.id,
        name=payload.name,
        specialization=payload.specialization,
        online_price=payload.online_price,
        clinic_price=payload.clinic_price,
        avatar=payload.avatar,
        location=payload.location,
        auto_accept=payload.auto_accept,
        start_date=payload.calendar_start,
        days=payload.calendar_days,
    )


@router.get("/{doctor_id}", response_model=DoctorOut)
async def read_doctor(
    doctor_id: str,
    db: AsyncSession = Depends(get_db),
):
    return await get_doctor(db, doctor_id)


# ============================================================================
# SLOT CALENDAR
# ============================================================================

@router.get("/{doctor_id}/calendar/{channel}/dates", response_model=AvailableDatesResponse)
async def list_calendar_dates(
    doctor_id: str,
    channel: Channel,
    db: AsyncSession = Depends(get_db),
):
    """All calendar dates for a doctor/channel, including fully booked ones."""
    await get_doctor(db, doctor_id)
    dates = await slot_calendar.available_dates(db, doctor_id, channel)
    return AvailableDatesResponse(doctor_id=doctor_id, channel=channel, dates=dates)


@router.get("/{doctor_id}/calendar/{channel}/{slot_date}/slots", response_model=AvailableSlotsResponse)
async def list_available_slots(
    doctor_id: str,
    channel: Channel,
    slot_date: date,
    db: AsyncSession = Depends(get_db),
):
    """Free slots for one day, ascending by time."""
    await get_doctor(db, doctor_id)
    slots = await slot_calendar.available_slots(db, doctor_id, channel, slot_date)
    return AvailableSlotsResponse(
        doctor_id=doctor_id,
        channel=channel,
        date=slot_date,
        slots=[TimeSlot(time=s.slot_time, available=s.available) for s in slots],
    )


@router.post("/{doctor_id}/calendar/refresh", response_model=CalendarRefreshResult)
async def refresh_doctor_calendar(
    doctor_id: str,
    payload: CalendarRefresh,
    db: AsyncSession = Depends(get_db),
):
    """Roll the calendar window forward (normally driven by the scheduler job)."""
    await get_doctor(db, doctor_id)
    stats = await slot_calendar.refresh_calendar(db, doctor_id, start_date=payload.start_date, days=payload.days)
    return CalendarRefreshResult(**stats)


@router.post("/{doctor_id}/calendar/{channel}/{slot_date}/release", response_model=SlotReleaseResult)
async def release_slot(
    doctor_id: str,
    channel: Channel,
    slot_date: date,
    payload: SlotRelease,
    db: AsyncSession = Depends(get_db),
):
    """Administrative release of a slot back to available. 409 if an active appointment holds it."""
    await get_doctor(db, doctor_id)
    released = await slot_calendar.release_unheld(db, doctor_id, channel, slot_date, payload.time)
    logger.info("Manual slot release for doctor %s on %s %s: %s", doctor_id, slot_date, payload.time, released)
    return SlotReleaseResult(released=released)
