"""Doctor profile model.

Read-only to the scheduling core: it supplies the snapshot fields copied onto
every booking and the per-channel consultation price.
"""

from sqlalchemy import Column, String, DateTime, Boolean, Float
from sqlalchemy.orm import relationship
from datetime import datetime
from shedula.core.database import Base
from shedula.models.slot import Slot  # noqa: F401 (registers the relationship target)


class Doctor(Base):
    __tablename__ = "doctors"

    id = Column(String, primary_key=True)  # e.g. "dr001"
    name = Column(String, nullable=False)
    avatar = Column(String, nullable=True)
    specialization = Column(String, nullable=False)
    location = Column(String, nullable=True)

    # Channel pricing
    online_price = Column(Float, nullable=False, default=0)
    clinic_price = Column(Float, nullable=False, default=0)

    auto_accept = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    slots = relationship("Slot", back_populates="doctor", cascade="all, delete-orphan")

    def price_for(self, channel) -> float:
        """Current consultation price for a channel ("online" or "clinic")."""
        value = getattr(channel, "value", channel)
        if value == "online":
            return self.online_price
        return self.clinic_price
