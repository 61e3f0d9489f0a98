"""Appointment model for the booking system."""

from sqlalchemy import Column, String, DateTime, Integer, Date, Float, Text, ForeignKey, UniqueConstraint, Enum as SQLEnum
from sqlalchemy.dialects.postgresql import UUID
import uuid
from datetime import datetime
import enum
from shedula.core.database import Base
from shedula.models.slot import Channel


class AppointmentStatus(str, enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    RESCHEDULED = "rescheduled"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


TERMINAL_STATUSES = frozenset({AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED})
ACTIVE_STATUSES = frozenset({
    AppointmentStatus.PENDING,
    AppointmentStatus.ACCEPTED,
    AppointmentStatus.RESCHEDULED,
})


class PaymentMethod(str, enum.Enum):
    CASH = "cash"
    ONLINE = "online"


class Appointment(Base):
    __tablename__ = "appointments"
    __table_args__ = (
        UniqueConstraint("doctor_id", "token", name="uq_appointment_doctor_token"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)

    # Doctor snapshot at booking time
    doctor_id = Column(String, ForeignKey("doctors.id", ondelete="CASCADE"), nullable=False, index=True)
    doctor_name = Column(String, nullable=False)
    doctor_avatar = Column(String, nullable=True)
    doctor_specialization = Column(String, nullable=False)
    location = Column(String, nullable=True)

    # Patient info
    patient_id = Column(String, nullable=False, index=True)
    patient_name = Column(String, nullable=False)
    patient_age = Column(Integer, nullable=False)

    # Appointment details
    appointment_date = Column(Date, nullable=False, index=True)
    appointment_time = Column(String(5), nullable=False)  # "HH:MM"
    channel = Column(SQLEnum(Channel), nullable=False)
    token = Column(String(5), nullable=False)
    payment_method = Column(SQLEnum(PaymentMethod), nullable=False)
    consultation_fee = Column(Float, nullable=False)
    status = Column(SQLEnum(AppointmentStatus), default=AppointmentStatus.PENDING, nullable=False, index=True)
    reason = Column(Text, nullable=True)
    doctor_notes = Column(Text, nullable=True)

    # Slot held before the first reschedule
    original_date = Column(Date, nullable=True)
    original_time = Column(String(5), nullable=True)

    rating = Column(Integer, nullable=True)  # 1-5, completed visits only

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Optimistic concurrency: stale writes raise StaleDataError on flush
    version = Column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def slot_key(self) -> tuple:
        return (self.doctor_id, self.channel, self.appointment_date, self.appointment_time)
