"""Seed demo doctors on app startup."""

import logging
from shedula.core.config import settings
from shedula.core.database import async_session
from shedula.services.doctor_profiles import seed_demo_doctors

logger = logging.getLogger(__name__)


async def seed_demo_data():
    """Onboard the demo doctors when SEED_DEMO_DATA is enabled."""
    if not settings.SEED_DEMO_DATA:
        return

    async with async_session() as db:
        try:
            created = await seed_demo_doctors(db)
            if created:
                logger.info("✅ Demo doctors seeded: %d", created)
        except Exception as e:
            logger.error("Failed to seed demo doctors: %s", e)
            await db.rollback()
