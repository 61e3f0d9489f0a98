"""Roll every doctor's slot calendar forward.

Meant to run daily from cron / a scheduler:
    python -m shedula.scripts.refresh_calendars
    python -m shedula.scripts.refresh_calendars --doctor-id=dr001 --days=14
"""

import argparse
import asyncio
import sys
from datetime import date
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession

from shedula.core.config import settings
from shedula.core.database import async_session
from shedula.core.exceptions import NotFound
from shedula.services import slot_calendar
from shedula.services.doctor_profiles import get_doctor, list_doctor_ids


async def refresh_all(
    db: AsyncSession,
    doctor_id: Optional[str] = None,
    start_date: Optional[date] = None,
    days: Optional[int] = None,
) -> dict:
    """Refresh one doctor (if given) or all doctors. Returns per-doctor stats."""
    if doctor_id:
        await get_doctor(db, doctor_id)
        doctor_ids = [doctor_id]
    else:
        doctor_ids = await list_doctor_ids(db)

    stats = {}
    for current in doctor_ids:
        stats[current] = await slot_calendar.refresh_calendar(db, current, start_date=start_date, days=days)
    return stats


async def run(doctor_id: Optional[str], start_date: Optional[date], days: Optional[int]) -> int:
    async with async_session() as db:
        try:
            stats = await refresh_all(db, doctor_id=doctor_id, start_date=start_date, days=days)
        except NotFound as e:
            print(f"❌ {e}")
            return 1

    for current, result in stats.items():
        print(f"✅ {current}: {result['created']} slots created, {result['pruned']} pruned")
    print(f"\n🎉 Refreshed {len(stats)} calendar(s).")
    return 0


def main():
    """Parse CLI arguments and run the refresh."""
    parser = argparse.ArgumentParser(
        description="Roll doctor slot calendars forward for Shedula"
    )
    parser.add_argument(
        "--doctor-id",
        default=None,
        help="Only refresh this doctor (default: all doctors)"
    )
    parser.add_argument(
        "--start-date",
        type=date.fromisoformat,
        default=None,
        help="First day of the window, YYYY-MM-DD (default: today)"
    )
    parser.add_argument(
        "--days",
        type=int,
        default=settings.CALENDAR_WINDOW_DAYS,
        help=f"Window length in days (default: {settings.CALENDAR_WINDOW_DAYS})"
    )

    args = parser.parse_args()
    sys.exit(asyncio.run(run(args.doctor_id, args.start_date, args.days)))


if __name__ == "__main__":
    main()
