from sqlalchemy import Column, Integer, String, DateTime, Boolean, Float, Text, JSON
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from ..core.database import Base

DEFAULT_DOCTOR_IMAGE = "https://res.cloudinary.com/medique/image/upload/v1/defaults/doctor.png"

class Doctor(Base):
    __tablename__ = "doctors"

    id = Column(Integer, primary_key=True, index=True)

    # Profile
    name = Column(String(100), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    image = Column(String(500), default=DEFAULT_DOCTOR_IMAGE)
    speciality = Column(String(100), nullable=False)
    degree = Column(String(100), nullable=False)
    experience = Column(String(50), nullable=False)
    about = Column(Text, nullable=False)
    fees = Column(Float, nullable=False)
    address = Column(JSON, nullable=False)

    # Availability
    available = Column(Boolean, default=True, nullable=False)

    # Booked slots: {"2024-05-01": ["10:00", "10:30"], ...}
    # Index over the doctor's non-cancelled appointments, only written
    # by the booking service while holding the doctor's slot lock.
    slots_booked = Column(JSON, default=dict, nullable=False)

    # Timestamps
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    # Relationships
    appointments = relationship("Appointment", back_populates="doctor")

    def is_slot_booked(self, slot_date: str, slot_time: str) -> bool:
        return slot_time in (self.slots_booked or {}).get(slot_date, [])

    def __repr__(self):
        return f"<Doctor(id={self.id}, name='{self.name}', speciality='{self.speciality}')>"
