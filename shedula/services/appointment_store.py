"""Appointment store: insert, get, read-all, whole-record replace and delete.

No partial-update API: callers load a record, change it
through the lifecycle commands and hand the whole record back to ``replace``.
The ``version`` column makes a replace based on a stale read fail with
``StaleDataError`` instead of silently overwriting a concurrent change.
"""

import logging
from datetime import datetime
from typing import Optional
from uuid import UUID
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from shedula.core.exceptions import NotFound
from shedula.models.appointment import Appointment

logger = logging.getLogger(__name__)


async def insert(db: AsyncSession, appointment: Appointment, commit: bool = True) -> Appointment:
    """Add a new appointment record."""
    db.add(appointment)
    if commit:
        await db.commit()
        await db.refresh(appointment)
    else:
        await db.flush()
    return appointment


async def get(db: AsyncSession, appointment_id: UUID) -> Appointment:
    """Fetch one appointment or raise NotFound.

    Always re-reads the row so a retry after a conflict sees the latest version.
    """
    result = await db.execute(
        select(Appointment)
        .where(Appointment.id == appointment_id)
        .execution_options(populate_existing=True)
    )
    appointment = result.scalar_one_or_none()
    if not appointment:
        raise NotFound("Appointment", appointment_id)
    return appointment


async def read_all(
    db: AsyncSession,
    doctor_id: Optional[str] = None,
    patient_id: Optional[str] = None,
) -> list[Appointment]:
    """Full read of the collection, optionally scoped to a doctor or patient."""
    query = select(Appointment).execution_options(populate_existing=True)
    if doctor_id is not None:
        query = query.where(Appointment.doctor_id == doctor_id)
    if patient_id is not None:
        query = query.where(Appointment.patient_id == patient_id)
    query = query.order_by(Appointment.created_at)

    result = await db.execute(query)
    return list(result.scalars().all())


async def existing_tokens(db: AsyncSession, doctor_id: str) -> set[str]:
    """Tokens already issued for a doctor."""
    result = await db.execute(select(Appointment.token).where(Appointment.doctor_id == doctor_id))
    return set(result.scalars().all())


async def replace(db: AsyncSession, appointment: Appointment, commit: bool = True) -> Appointment:
    """Write back a whole appointment record.

    Raises StaleDataError (from SQLAlchemy) when the row changed since it was read.
    """
    appointment.updated_at = datetime.utcnow()
    db.add(appointment)
    if commit:
        await db.commit()
    else:
        await db.flush()
    return appointment


async def delete(db: AsyncSession, appointment: Appointment, commit: bool = True) -> None:
    await db.delete(appointment)
    if commit:
        await db.commit()
    else:
        await db.flush()
    logger.info("Appointment %s deleted", appointment.id)
