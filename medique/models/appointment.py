from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Boolean, Float
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from ..core.database import Base

SLOT_LABEL_LENGTH = 20

class Appointment(Base):
    __tablename__ = "appointments"

    id = Column(Integer, primary_key=True, index=True)

    # Relationships
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    doctor_id = Column(Integer, ForeignKey("doctors.id"), nullable=False, index=True)

    # Slot
    slot_date = Column(String(SLOT_LABEL_LENGTH), nullable=False)
    slot_time = Column(String(SLOT_LABEL_LENGTH), nullable=False)

    # Fee at booking time; later fee changes do not touch it
    amount = Column(Float, nullable=False)

    # Monotonic flags, only ever set from False to True
    payment = Column(Boolean, default=False, nullable=False)
    cancelled = Column(Boolean, default=False, nullable=False)

    # Tracking
    created_at = Column(DateTime, server_default=func.now(), index=True)

    # Relationships
    user = relationship("User", back_populates="appointments")
    doctor = relationship("Doctor", back_populates="appointments")

    def __repr__(self):
        return f"<Appointment(id={self.id}, user_id={self.user_id}, doctor_id={self.doctor_id}, slot='{self.slot_date} {self.slot_time}')>"
