"""Slot calendar model: one bookable (doctor, channel, date, time) unit."""

from sqlalchemy import Column, String, Integer, Date, Boolean, ForeignKey, UniqueConstraint, Enum as SQLEnum
from sqlalchemy.orm import relationship
import enum
from shedula.core.database import Base


class Channel(str, enum.Enum):
    ONLINE = "online"
    CLINIC = "clinic"


class Slot(Base):
    __tablename__ = "slots"
    __table_args__ = (
        UniqueConstraint("doctor_id", "channel", "slot_date", "slot_time", name="uq_slot_key"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    doctor_id = Column(String, ForeignKey("doctors.id", ondelete="CASCADE"), nullable=False, index=True)
    channel = Column(SQLEnum(Channel), nullable=False)
    slot_date = Column(Date, nullable=False, index=True)
    slot_time = Column(String(5), nullable=False)  # "HH:MM"
    available = Column(Boolean, nullable=False, default=True)

    # Relationships
    doctor = relationship("Doctor", back_populates="slots")
