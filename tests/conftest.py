"""Shared test fixtures for Shedula API tests.

Uses an in-memory SQLite async engine so tests run without PostgreSQL.
"""

import uuid
import pytest
import pytest_asyncio
from datetime import date, datetime, timedelta
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession
from sqlalchemy.orm import sessionmaker

from shedula.core.database import Base, get_db
from shedula.main import app

# Import all models to ensure they're registered with Base.metadata
from shedula.models.doctor import Doctor  # noqa: F401
from shedula.models.slot import Slot  # noqa: F401
from shedula.models.appointment import Appointment, AppointmentStatus, PaymentMethod
from shedula.models.slot import Channel
from shedula.services.doctor_profiles import onboard_doctor


# Use aiosqlite for fast, isolated tests
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture
async def engine():
    """Fresh in-memory database per test."""
    engine = create_async_engine(TEST_DATABASE_URL, echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory):
    """Direct DB session for test setup/assertions."""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(session_factory):
    """Async HTTP test client."""
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def today():
    return date.today()


@pytest.fixture
def tomorrow(today):
    return today + timedelta(days=1)


@pytest_asyncio.fixture
async def doctor(db, today):
    """dr001 with a 7-day calendar starting today (09:00-17:30, every 30 min)."""
    return await onboard_doctor(
        db,
        doctor_id="dr001",
        name="Dr. Aarav Sharma",
        specialization="General",
        online_price=300,
        clinic_price=600,
        avatar="https://example.com/aarav.png",
        location="Mumbai",
        start_date=today,
        days=7,
    )


def make_appointment(**overrides) -> Appointment:
    """Transient appointment for pure projection/query tests."""
    fields = dict(
        id=uuid.uuid4(),
        doctor_id="dr001",
        doctor_name="Dr. Aarav Sharma",
        doctor_avatar=None,
        doctor_specialization="General",
        location="Mumbai",
        patient_id="p1",
        patient_name="Riya Kapoor",
        patient_age=30,
        appointment_date=date.today() + timedelta(days=1),
        appointment_time="10:00",
        channel=Channel.ONLINE,
        token="A001",
        payment_method=PaymentMethod.CASH,
        consultation_fee=300.0,
        status=AppointmentStatus.PENDING,
        reason=None,
        doctor_notes=None,
        created_at=datetime(2025, 1, 1, 9, 0),
        version=1,
    )
    fields.update(overrides)
    return Appointment(**fields)


@pytest.fixture
def appointment_factory():
    return make_appointment
