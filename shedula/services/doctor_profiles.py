"""Doctor profile provider.

The scheduling core only reads doctor profiles (snapshot fields and channel
prices). Onboarding creates the profile and its first calendar window.
"""

import logging
from datetime import date
from typing import Optional
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from shedula.core.exceptions import NotFound, ValidationError
from shedula.models.doctor import Doctor
from shedula.services import slot_calendar

logger = logging.getLogger(__name__)


async def get_doctor(db: AsyncSession, doctor_id: str) -> Doctor:
    """Fetch a doctor profile or raise NotFound."""
    result = await db.execute(select(Doctor).where(Doctor.id == doctor_id))
    doctor = result.scalar_one_or_none()
    if not doctor:
        raise NotFound("Doctor", doctor_id)
    return doctor


async def onboard_doctor(
    db: AsyncSession,
    doctor_id: str,
    name: str,
    specialization: str,
    online_price: float,
    clinic_price: float,
    avatar: Optional[str] = None,
    location: Optional[str] = None,
    auto_accept: bool = False,
    start_date: Optional[date] = None,
    days: Optional[int] = None,
) -> Doctor:
    """Create a doctor profile and generate its initial slot calendar."""
    existing = await db.execute(select(Doctor).where(Doctor.id == doctor_id))
    if existing.scalar_one_or_none():
        raise ValidationError(f"Doctor {doctor_id} already exists")

    doctor = Doctor(
        id=doctor_id,
        name=name,
        specialization=specialization,
        online_price=online_price,
        clinic_price=clinic_price,
        avatar=avatar,
        location=location,
        auto_accept=auto_accept,
    )
    db.add(doctor)
    await db.flush()

    stats = await slot_calendar.refresh_calendar(db, doctor_id, start_date=start_date, days=days)
    await db.refresh(doctor)

    logger.info("Doctor %s onboarded with %d slots", doctor_id, stats["created"])
    return doctor


async def list_doctor_ids(db: AsyncSession) -> list[str]:
    result = await db.execute(select(Doctor.id).order_by(Doctor.id))
    return list(result.scalars().all())


DEMO_DOCTORS = [
    {
        "doctor_id": "dr001",
        "name": "Dr. Aarav Sharma",
        "specialization": "General",
        "location": "Mumbai",
        "online_price": 300,
        "clinic_price": 600,
    },
    {
        "doctor_id": "dr002",
        "name": "Dr. Ananya Singh",
        "specialization": "Gyno",
        "location": "Delhi",
        "online_price": 400,
        "clinic_price": 800,
    },
    {
        "doctor_id": "dr003",
        "name": "Dr. Rohan Verma",
        "specialization": "Neuro",
        "location": "Bangalore",
        "online_price": 450,
        "clinic_price": 900,
        "auto_accept": True,
    },
]


async def seed_demo_doctors(db: AsyncSession) -> int:
    """Onboard the demo doctors when the doctors table is empty."""
    count = (await db.execute(select(func.count(Doctor.id)))).scalar_one()
    if count:
        logger.info("Doctors already present (%d); skipping demo seed", count)
        return 0

    for profile in DEMO_DOCTORS:
        await onboard_doctor(db, **profile)

    logger.info("Seeded %d demo doctors", len(DEMO_DOCTORS))
    return len(DEMO_DOCTORS)
