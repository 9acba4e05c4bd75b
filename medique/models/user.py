from sqlalchemy import Column, Integer, String, DateTime, Boolean, JSON
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from ..core.database import Base

DEFAULT_USER_IMAGE = "https://res.cloudinary.com/medique/image/upload/v1/defaults/profile.png"

def default_address():
    return {"line1": "", "line2": ""}

class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    is_active = Column(Boolean, default=True)

    # Contact profile
    image = Column(String(500), default=DEFAULT_USER_IMAGE)
    phone = Column(String(20), default="0000000000")
    address = Column(JSON, default=default_address)
    gender = Column(String(20), default="Not Selected")
    dob = Column(String(20), default="Not Selected")

    last_login = Column(DateTime, nullable=True)

    # Timestamps
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    # Relationships
    appointments = relationship("Appointment", back_populates="user")

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}')>"
