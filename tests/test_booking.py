"""Tests for the booking engine."""

import asyncio
import re
import pytest
from datetime import date, timedelta
from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError

from shedula.core.exceptions import NotFound, SlotConflict, TokenSpaceExhausted, ValidationError
from shedula.models.appointment import Appointment, AppointmentStatus, PaymentMethod
from shedula.models.slot import Channel
from shedula.services import appointment_store, slot_calendar, tokens
from shedula.services.booking import book_appointment
from shedula.services.doctor_profiles import onboard_doctor


def booking_args(**overrides):
    args = dict(
        doctor_id="dr001",
        channel="online",
        appointment_date=date.today() + timedelta(days=1),
        appointment_time="10:00",
        patient_id="p1",
        patient_name="Riya Kapoor",
        patient_age=30,
        payment_method="cash",
    )
    args.update(overrides)
    return args


async def count_appointments(db) -> int:
    return (await db.execute(select(func.count(Appointment.id)))).scalar_one()


@pytest.mark.asyncio
async def test_booking_creates_pending_appointment_with_snapshot(db, doctor):
    appointment = await book_appointment(db, **booking_args(reason="Fever"))

    assert appointment.status == AppointmentStatus.PENDING
    assert appointment.doctor_name == "Dr. Aarav Sharma"
    assert appointment.doctor_specialization == "General"
    assert appointment.doctor_avatar == "https://example.com/aarav.png"
    assert appointment.location == "Mumbai"
    assert appointment.consultation_fee == 300
    assert appointment.payment_method == PaymentMethod.CASH
    assert appointment.reason == "Fever"
    assert appointment.created_at is not None
    assert re.match(r"^[A-Z]-?\d{3}$", appointment.token)

    stored = await appointment_store.get(db, appointment.id)
    assert stored.token == appointment.token


@pytest.mark.asyncio
async def test_clinic_fee_uses_clinic_price(db, doctor):
    appointment = await book_appointment(db, **booking_args(channel="clinic", payment_method="online"))
    assert appointment.consultation_fee == 600
    assert appointment.channel == Channel.CLINIC


@pytest.mark.asyncio
async def test_fee_is_snapshot_at_booking_time(db, doctor):
    appointment = await book_appointment(db, **booking_args())
    doctor.online_price = 999
    await db.commit()

    stored = await appointment_store.get(db, appointment.id)
    assert stored.consultation_fee == 300


@pytest.mark.asyncio
async def test_auto_accept_doctor_starts_accepted(db, today):
    await onboard_doctor(
        db, doctor_id="dr009", name="Dr. Meera Desai", specialization="Skin",
        online_price=250, clinic_price=500, auto_accept=True, start_date=today, days=2,
    )
    appointment = await book_appointment(db, **booking_args(doctor_id="dr009"))
    assert appointment.status == AppointmentStatus.ACCEPTED


@pytest.mark.asyncio
async def test_second_identical_booking_conflicts(db):
    """dr001 / online / 2025-09-01 / 10:00 succeeds once, then SlotConflict."""
    await onboard_doctor(
        db, doctor_id="dr001", name="Dr. Aarav Sharma", specialization="General",
        online_price=300, clinic_price=600, start_date=date(2025, 9, 1), days=1,
    )
    args = booking_args(appointment_date=date(2025, 9, 1), appointment_time="10:00", today=date(2025, 9, 1))

    first = await book_appointment(db, **args)
    assert first.appointment_date == date(2025, 9, 1)

    with pytest.raises(SlotConflict):
        await book_appointment(db, **args)
    assert await count_appointments(db) == 1


@pytest.mark.asyncio
async def test_conflict_leaves_no_side_effects(db, doctor, tomorrow):
    await book_appointment(db, **booking_args())
    free_before = await slot_calendar.available_slots(db, "dr001", Channel.ONLINE, tomorrow)

    with pytest.raises(SlotConflict):
        await book_appointment(db, **booking_args(patient_id="p2", patient_name="Kabir Patel"))

    free_after = await slot_calendar.available_slots(db, "dr001", Channel.ONLINE, tomorrow)
    assert [s.slot_time for s in free_after] == [s.slot_time for s in free_before]
    assert await count_appointments(db) == 1


@pytest.mark.asyncio
async def test_booking_marks_exactly_one_slot_taken(db, doctor, tomorrow):
    before = len(await slot_calendar.available_slots(db, "dr001", Channel.ONLINE, tomorrow))
    await book_appointment(db, **booking_args(appointment_time="2:30 PM"))
    after = await slot_calendar.available_slots(db, "dr001", Channel.ONLINE, tomorrow)

    assert len(after) == before - 1
    assert "14:30" not in [s.slot_time for s in after]


@pytest.mark.asyncio
async def test_concurrent_bookings_for_same_slot_one_wins(session_factory, doctor):
    async def attempt(patient_id):
        async with session_factory() as session:
            try:
                await book_appointment(session, **booking_args(patient_id=patient_id, patient_name=patient_id))
                return "booked"
            except SlotConflict:
                return "conflict"

    results = await asyncio.gather(attempt("p1"), attempt("p2"))
    assert sorted(results) == ["booked", "conflict"]


@pytest.mark.asyncio
async def test_unknown_doctor_is_not_found(db, doctor):
    with pytest.raises(NotFound):
        await book_appointment(db, **booking_args(doctor_id="dr404"))


@pytest.mark.asyncio
async def test_date_outside_calendar_conflicts(db, doctor, today):
    with pytest.raises(SlotConflict):
        await book_appointment(db, **booking_args(appointment_date=today + timedelta(days=40)))


@pytest.mark.parametrize("overrides", [
    {"patient_name": ""},
    {"patient_name": "   "},
    {"patient_id": None},
    {"appointment_time": ""},
    {"appointment_time": "25:00"},
    {"appointment_date": None},
    {"channel": "video"},
    {"payment_method": "cheque"},
    {"patient_age": 0},
    {"patient_age": "abc"},
])
@pytest.mark.asyncio
async def test_invalid_requests_rejected_before_reservation(db, doctor, tomorrow, overrides):
    free_before = len(await slot_calendar.available_slots(db, "dr001", Channel.ONLINE, tomorrow))

    with pytest.raises(ValidationError):
        await book_appointment(db, **booking_args(**overrides))

    assert len(await slot_calendar.available_slots(db, "dr001", Channel.ONLINE, tomorrow)) == free_before
    assert await count_appointments(db) == 0


@pytest.mark.asyncio
async def test_tokens_unique_per_doctor(db, doctor, tomorrow):
    tokens = set()
    for slot in (await slot_calendar.available_slots(db, "dr001", Channel.ONLINE, tomorrow))[:10]:
        appointment = await book_appointment(db, **booking_args(appointment_time=slot.slot_time))
        tokens.add(appointment.token)
    assert len(tokens) == 10


@pytest.mark.asyncio
async def test_past_date_rejected_before_reservation(db, doctor, today):
    past_day = today - timedelta(days=1)
    await slot_calendar.add_day(db, "dr001", Channel.ONLINE, past_day)
    await db.commit()

    with pytest.raises(ValidationError):
        await book_appointment(db, **booking_args(appointment_date=past_day))

    assert "10:00" in [s.slot_time for s in await slot_calendar.available_slots(db, "dr001", Channel.ONLINE, past_day)]
    assert await count_appointments(db) == 0


@pytest.mark.asyncio
async def test_stale_calendar_without_future_dates_rejects_booking(db, today):
    start = today - timedelta(days=10)
    await onboard_doctor(
        db, doctor_id="dr009", name="Dr. Meera Desai", specialization="Skin",
        online_price=250, clinic_price=500, start_date=start, days=3,
    )
    dates = await slot_calendar.available_dates(db, "dr009", Channel.ONLINE)
    assert dates and all(d < today for d in dates)

    for day in dates:
        with pytest.raises(ValidationError):
            await book_appointment(db, **booking_args(doctor_id="dr009", appointment_date=day))
    assert await count_appointments(db) == 0


@pytest.mark.asyncio
async def test_today_is_bookable(db, doctor, today):
    appointment = await book_appointment(db, **booking_args(appointment_date=today, appointment_time="17:30"))
    assert appointment.appointment_date == today


@pytest.mark.asyncio
async def test_duplicate_token_for_doctor_rejected_by_schema(db, doctor, tomorrow):
    first = await book_appointment(db, **booking_args())
    first_token = first.token

    db.add(Appointment(**{
        **{c: getattr(first, c) for c in (
            "doctor_id", "doctor_name", "doctor_specialization", "patient_id", "patient_name", "patient_age",
            "channel", "payment_method", "consultation_fee", "status", "created_at",
        )},
        "appointment_date": tomorrow,
        "appointment_time": "11:00",
        "token": first_token,
    }))
    with pytest.raises(IntegrityError):
        await db.commit()
    await db.rollback()


@pytest.mark.asyncio
async def test_token_taken_by_another_writer_is_redrawn(db, doctor, tomorrow, monkeypatch):
    first = await book_appointment(db, **booking_args())
    first_token = first.token

    # A stale view of issued tokens, as another process would have
    async def no_tokens(session, doctor_id):
        return set()

    drawn = iter([first_token, "Z999"])
    monkeypatch.setattr(appointment_store, "existing_tokens", no_tokens)
    monkeypatch.setattr(tokens, "generate_token", lambda rng=None: next(drawn))

    second = await book_appointment(db, **booking_args(appointment_time="11:00", patient_id="p2"))

    assert second.token == "Z999"
    assert second.appointment_time == "11:00"
    assert "11:00" not in [s.slot_time for s in await slot_calendar.available_slots(db, "dr001", Channel.ONLINE, tomorrow)]
    assert await count_appointments(db) == 2


@pytest.mark.asyncio
async def test_token_collisions_exhaust_attempts(db, doctor, tomorrow, monkeypatch):
    first = await book_appointment(db, **booking_args())
    first_token = first.token

    async def no_tokens(session, doctor_id):
        return set()

    monkeypatch.setattr(appointment_store, "existing_tokens", no_tokens)
    monkeypatch.setattr(tokens, "generate_token", lambda rng=None: first_token)

    with pytest.raises(TokenSpaceExhausted):
        await book_appointment(db, **booking_args(appointment_time="11:00", patient_id="p2"))

    assert "11:00" in [s.slot_time for s in await slot_calendar.available_slots(db, "dr001", Channel.ONLINE, tomorrow)]
    assert await count_appointments(db) == 1
