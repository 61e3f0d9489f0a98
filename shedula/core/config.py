"""
Application configuration.
Values are read from environment variables / .env file so the same build runs
against SQLite locally and PostgreSQL in production.
"""
import logging
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    APP_ENV: str = "development"
    DATABASE_URL: str = "sqlite+aiosqlite:///./shedula.db"
    LOG_LEVEL: str = "INFO"

    # Slot calendar
    CALENDAR_WINDOW_DAYS: int = 7
    SLOT_DAY_START: str = "09:00"
    SLOT_DAY_END: str = "18:00"
    SLOT_INTERVAL_MINUTES: int = 30

    # Booking / lifecycle
    TOKEN_MAX_ATTEMPTS: int = 20
    TRANSITION_MAX_RETRIES: int = 3

    # Patient view
    REMINDER_WINDOW_MINUTES: int = 30

    # Demo data for local development
    SEED_DEMO_DATA: bool = False

    class Config:
        env_file = ".env"


settings = Settings()

if settings.SLOT_INTERVAL_MINUTES <= 0:
    raise ValueError(
        "SLOT_INTERVAL_MINUTES must be a positive number of minutes "
        f"(got {settings.SLOT_INTERVAL_MINUTES})."
    )
