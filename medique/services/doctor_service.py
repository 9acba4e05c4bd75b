from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from typing import List, Optional
from pydantic.networks import validate_email
import json
import logging

from ..models import Doctor
from ..core.exceptions import BadRequestError, NotFoundError
from ..schemas.doctor import DoctorUpdate

logger = logging.getLogger(__name__)


class DoctorService:
    """Doctor directory: profile records and the availability flag.

    The ``slots_booked`` map is never written here; it belongs to the
    booking service.
    """

    def __init__(self, db: Session):
        self.db = db

    def list_doctors(self) -> List[Doctor]:
        return self.db.query(Doctor).order_by(Doctor.id).all()

    def get_doctor(self, doctor_id: int) -> Doctor:
        doctor = self.db.query(Doctor).filter(Doctor.id == doctor_id).first()
        if not doctor:
            raise NotFoundError("Doctor not found")
        return doctor

    def add_doctor(
        self,
        name: str,
        email: str,
        speciality: str,
        degree: str,
        experience: str,
        about: str,
        fees: Optional[float],
        address: str,
        image_url: Optional[str] = None,
    ) -> Doctor:
        if not all([name, email, speciality, degree, experience, about, fees, address]):
            raise BadRequestError("Missing details")

        if fees <= 0:
            raise BadRequestError("Fees must be greater than zero")

        # Same check as the EmailStr field the doctor is served through
        try:
            _, email = validate_email(email.strip())
        except ValueError:
            raise BadRequestError("Please enter a valid email")

        try:
            parsed_address = json.loads(address)
        except ValueError:
            raise BadRequestError("Address must be a JSON object")
        if not isinstance(parsed_address, dict):
            raise BadRequestError("Address must be a JSON object")

        email = email.strip().lower()
        if self.db.query(Doctor).filter(Doctor.email == email).first():
            raise BadRequestError("Doctor with this email already exists")

        doctor = Doctor(
            name=name,
            email=email,
            speciality=speciality,
            degree=degree,
            experience=experience,
            about=about,
            fees=fees,
            address=parsed_address,
            available=True,
            slots_booked={},
        )
        if image_url:
            doctor.image = image_url

        self.db.add(doctor)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise BadRequestError("Doctor with this email already exists")
        self.db.refresh(doctor)

        logger.info(f"Added doctor {doctor.id} ({doctor.speciality})")
        return doctor

    def update_doctor(self, doctor_id: int, changes: DoctorUpdate) -> Doctor:
        """Apply profile edits. Fee changes only affect future bookings."""
        doctor = self.get_doctor(doctor_id)

        for field, value in changes.model_dump(exclude_unset=True).items():
            if value is None:
                continue
            setattr(doctor, field, value)

        self.db.commit()
        self.db.refresh(doctor)
        logger.info(f"Updated doctor {doctor.id}")
        return doctor

    def change_availability(self, doctor_id: int) -> Doctor:
        doctor = self.get_doctor(doctor_id)
        doctor.available = not doctor.available
        self.db.commit()
        self.db.refresh(doctor)
        logger.info(f"Doctor {doctor.id} availability set to {doctor.available}")
        return doctor
