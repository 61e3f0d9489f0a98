"""Pydantic schemas for appointments and the projections built on them."""

from datetime import datetime, date
from uuid import UUID
from pydantic import BaseModel, Field
from typing import Optional
from shedula.models.appointment import AppointmentStatus, PaymentMethod
from shedula.models.slot import Channel


class AppointmentBook(BaseModel):
    """Schema for booking an appointment."""
    doctor_id: str
    channel: Channel
    appointment_date: date
    appointment_time: str  # "10:00" or "10:00 AM"
    patient_id: str
    patient_name: str
    patient_age: int
    payment_method: PaymentMethod
    reason: Optional[str] = None


class AppointmentCancel(BaseModel):
    """Schema for cancelling an appointment."""
    reason: Optional[str] = None


class AppointmentReschedule(BaseModel):
    """Schema for moving an appointment to another slot.

    Fields are optional here so a missing value surfaces as the domain
    ValidationError rather than a schema error.
    """
    new_date: Optional[date] = None
    new_time: Optional[str] = None


class AppointmentRating(BaseModel):
    rating: int = Field(..., ge=1, le=5)


class DoctorUpdate(BaseModel):
    """Schema for the doctor console notes/status form."""
    doctor_notes: Optional[str] = None
    status: Optional[str] = None  # any of the five statuses, case-insensitive


class AppointmentOut(BaseModel):
    """Schema for returning appointment details."""
    id: UUID
    doctor_id: str
    doctor_name: str
    doctor_avatar: Optional[str] = None
    doctor_specialization: str
    location: Optional[str] = None
    patient_id: str
    patient_name: str
    patient_age: int
    appointment_date: date
    appointment_time: str
    channel: Channel
    token: str
    payment_method: PaymentMethod
    consultation_fee: float
    status: AppointmentStatus
    reason: Optional[str] = None
    doctor_notes: Optional[str] = None
    original_date: Optional[date] = None
    original_time: Optional[str] = None
    rating: Optional[int] = None
    created_at: datetime
    updated_at: Optional[datetime] = None
    time_remaining: Optional[str] = None
    reminder_due: bool = False

    class Config:
        from_attributes = True


class PatientAppointments(BaseModel):
    """Patient view: upcoming and past buckets."""
    upcoming: list[AppointmentOut]
    past: list[AppointmentOut]
    reminder: Optional[AppointmentOut] = None  # next upcoming, when it starts soon


class ConsoleSummary(BaseModel):
    """Per-status counts for the doctor dashboard."""
    pending: int
    accepted: int
    rescheduled: int
    completed: int
    cancelled: int
    total: int
