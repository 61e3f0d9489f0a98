"""Slot calendar: per doctor, per channel, date -> ordered bookable slots.

Reservation is a conditional UPDATE (``available`` true -> false) so the
database arbitrates between processes; callers additionally hold
``slot_locks`` for the key while their transaction is open.
"""

import logging
from datetime import date, timedelta
from typing import Optional
from sqlalchemy import select, update, delete, and_
from sqlalchemy.ext.asyncio import AsyncSession

from shedula.core.config import settings
from shedula.core.exceptions import SlotConflict
from shedula.core.locks import slot_locks
from shedula.models.appointment import Appointment, ACTIVE_STATUSES
from shedula.models.slot import Slot, Channel
from shedula.utils.slot_time import time_to_minutes, normalize_slot_time, generate_day_times

logger = logging.getLogger(__name__)


def slot_key(doctor_id: str, channel: Channel, slot_date: date, slot_time: str) -> tuple:
    """Lock key for a single slot."""
    return (doctor_id, Channel(channel).value, slot_date, normalize_slot_time(slot_time))


def default_day_times() -> list[str]:
    """Slot times generated for every calendar day."""
    return generate_day_times(
        settings.SLOT_DAY_START,
        settings.SLOT_DAY_END,
        settings.SLOT_INTERVAL_MINUTES,
    )


async def available_dates(db: AsyncSession, doctor_id: str, channel: Channel) -> list[date]:
    """All calendar dates for the doctor/channel in ascending order.

    Dates whose slots are all taken are still returned.
    """
    result = await db.execute(
        select(Slot.slot_date)
        .where(and_(Slot.doctor_id == doctor_id, Slot.channel == Channel(channel)))
        .distinct()
        .order_by(Slot.slot_date)
    )
    return list(result.scalars().all())


async def list_slots(db: AsyncSession, doctor_id: str, channel: Channel, slot_date: date) -> list[Slot]:
    """Every slot of one calendar day, ascending by time."""
    result = await db.execute(
        select(Slot).where(
            and_(
                Slot.doctor_id == doctor_id,
                Slot.channel == Channel(channel),
                Slot.slot_date == slot_date,
            )
        )
    )
    return sorted(result.scalars().all(), key=lambda s: time_to_minutes(s.slot_time))


async def available_slots(db: AsyncSession, doctor_id: str, channel: Channel, slot_date: date) -> list[Slot]:
    """Free slots of one calendar day, ascending by time."""
    return [s for s in await list_slots(db, doctor_id, channel, slot_date) if s.available]


async def reserve(db: AsyncSession, doctor_id: str, channel: Channel, slot_date: date, slot_time: str) -> None:
    """Flip a free slot to taken inside the caller's transaction.

    Raises SlotConflict when the slot is missing or already taken.
    """
    normalized = normalize_slot_time(slot_time)
    result = await db.execute(
        update(Slot)
        .where(
            and_(
                Slot.doctor_id == doctor_id,
                Slot.channel == Channel(channel),
                Slot.slot_date == slot_date,
                Slot.slot_time == normalized,
                Slot.available.is_(True),
            )
        )
        .values(available=False)
    )
    if result.rowcount != 1:
        logger.warning(
            "Slot reservation rejected: doctor=%s channel=%s date=%s time=%s",
            doctor_id, Channel(channel).value, slot_date, normalized,
        )
        raise SlotConflict(doctor_id, Channel(channel).value, slot_date, normalized)

    logger.info(
        "Slot reserved: doctor=%s channel=%s date=%s time=%s",
        doctor_id, Channel(channel).value, slot_date, normalized,
    )


async def release(db: AsyncSession, doctor_id: str, channel: Channel, slot_date: date, slot_time: str) -> bool:
    """Mark a slot available again inside the caller's transaction.

    Unguarded: only the lifecycle commands call it, for the slot their own
    appointment holds. Operators go through ``release_unheld``.

    Returns False when the slot no longer exists (e.g. pruned from the window).
    """
    normalized = normalize_slot_time(slot_time)
    result = await db.execute(
        update(Slot)
        .where(
            and_(
                Slot.doctor_id == doctor_id,
                Slot.channel == Channel(channel),
                Slot.slot_date == slot_date,
                Slot.slot_time == normalized,
            )
        )
        .values(available=True)
    )
    if result.rowcount == 0:
        logger.warning(
            "Slot release skipped, slot not in calendar: doctor=%s channel=%s date=%s time=%s",
            doctor_id, Channel(channel).value, slot_date, normalized,
        )
        return False

    logger.info(
        "Slot released: doctor=%s channel=%s date=%s time=%s",
        doctor_id, Channel(channel).value, slot_date, normalized,
    )
    return True


async def release_unheld(db: AsyncSession, doctor_id: str, channel: Channel, slot_date: date, slot_time: str) -> bool:
    """Administrative release: free a slot that no active appointment holds. Commits.

    Raises SlotConflict when a pending, accepted or rescheduled appointment
    still occupies the slot; cancel or reschedule that appointment instead.
    """
    normalized = normalize_slot_time(slot_time)
    async with slot_locks.hold(slot_key(doctor_id, channel, slot_date, normalized)):
        result = await db.execute(
            select(Appointment.id).where(
                and_(
                    Appointment.doctor_id == doctor_id,
                    Appointment.channel == Channel(channel),
                    Appointment.appointment_date == slot_date,
                    Appointment.appointment_time == normalized,
                    Appointment.status.in_(list(ACTIVE_STATUSES)),
                )
            )
        )
        holder = result.scalars().first()
        if holder is not None:
            logger.warning(
                "Refusing manual release: doctor=%s channel=%s date=%s time=%s held by appointment %s",
                doctor_id, Channel(channel).value, slot_date, normalized, holder,
            )
            raise SlotConflict(
                doctor_id,
                Channel(channel).value,
                slot_date,
                normalized,
                message=f"Slot {slot_date} {normalized} is held by appointment {holder}. "
                "Cancel or reschedule it instead.",
            )

        released = await release(db, doctor_id, channel, slot_date, normalized)
        await db.commit()
    return released


async def add_day(
    db: AsyncSession,
    doctor_id: str,
    channel: Channel,
    slot_date: date,
    times: Optional[list[str]] = None,
) -> int:
    """Add a calendar day if it is not present yet. Returns slots created."""
    existing = await list_slots(db, doctor_id, channel, slot_date)
    if existing:
        return 0

    seen = set()
    created = 0
    for t in times if times is not None else default_day_times():
        normalized = normalize_slot_time(t)
        if normalized in seen:
            continue
        seen.add(normalized)
        db.add(Slot(
            doctor_id=doctor_id,
            channel=Channel(channel),
            slot_date=slot_date,
            slot_time=normalized,
            available=True,
        ))
        created += 1
    return created


async def refresh_calendar(
    db: AsyncSession,
    doctor_id: str,
    start_date: Optional[date] = None,
    days: Optional[int] = None,
) -> dict:
    """Roll the calendar window forward for both channels.

    Adds missing days in [start_date, start_date + days) and drops days before
    start_date. Existing days are never regenerated, so reservations survive.
    Commits.
    """
    start_date = start_date or date.today()
    days = days if days is not None else settings.CALENDAR_WINDOW_DAYS

    pruned = await db.execute(
        delete(Slot).where(and_(Slot.doctor_id == doctor_id, Slot.slot_date < start_date))
    )

    created = 0
    for channel in Channel:
        for offset in range(days):
            created += await add_day(db, doctor_id, channel, start_date + timedelta(days=offset))

    await db.commit()

    logger.info(
        "Calendar refreshed for doctor %s: %d slots created, %d pruned (window %s + %d days)",
        doctor_id, created, pruned.rowcount, start_date, days,
    )
    return {"created": created, "pruned": pruned.rowcount}
