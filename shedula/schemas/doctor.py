"""Pydantic schemas for doctor profiles and the slot calendar."""

from datetime import datetime, date
from pydantic import BaseModel, Field
from typing import Optional
from shedula.models.slot import Channel


class DoctorCreate(BaseModel):
    """Schema for onboarding a doctor."""
    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    specialization: str = Field(..., min_length=1)
    avatar: Optional[str] = None
    location: Optional[str] = None
    online_price: float = Field(..., ge=0)
    clinic_price: float = Field(..., ge=0)
    auto_accept: bool = False
    calendar_start: Optional[date] = None  # defaults to today
    calendar_days: Optional[int] = Field(None, ge=1, le=60)


class DoctorOut(BaseModel):
    """Schema for returning a doctor profile."""
    id: str
    name: str
    avatar: Optional[str] = None
    specialization: str
    location: Optional[str] = None
    online_price: float
    clinic_price: float
    auto_accept: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class TimeSlot(BaseModel):
    """Schema for a calendar slot."""
    time: str  # "09:00", "09:30", etc.
    available: bool


class AvailableDatesResponse(BaseModel):
    doctor_id: str
    channel: Channel
    dates: list[date]


class AvailableSlotsResponse(BaseModel):
    """Schema for available slots response."""
    doctor_id: str
    channel: Channel
    date: date
    slots: list[TimeSlot]


class CalendarRefresh(BaseModel):
    start_date: Optional[date] = None
    days: Optional[int] = Field(None, ge=1, le=60)


class CalendarRefreshResult(BaseModel):
    created: int
    pruned: int


class SlotRelease(BaseModel):
    time: str


class SlotReleaseResult(BaseModel):
    released: bool
