from sqlalchemy.orm import Session, joinedload
from typing import List

from ..models import Appointment, Doctor, User

LATEST_APPOINTMENTS = 5


class AdminService:
    """Read-only rollups for the admin panel."""

    def __init__(self, db: Session):
        self.db = db

    def all_appointments(self) -> List[Appointment]:
        return (
            self.db.query(Appointment)
            .options(joinedload(Appointment.user), joinedload(Appointment.doctor))
            .order_by(Appointment.created_at.desc(), Appointment.id.desc())
            .all()
        )

    def dashboard(self) -> dict:
        latest = (
            self.db.query(Appointment)
            .options(joinedload(Appointment.user), joinedload(Appointment.doctor))
            .order_by(Appointment.created_at.desc(), Appointment.id.desc())
            .limit(LATEST_APPOINTMENTS)
            .all()
        )
        return {
            "doctors": self.db.query(Doctor).count(),
            "appointments": self.db.query(Appointment).count(),
            "patients": self.db.query(User).count(),
            "latest_appointments": latest,
        }
