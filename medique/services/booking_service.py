from sqlalchemy.orm import Session, joinedload
from sqlalchemy.exc import SQLAlchemyError
from typing import List, Optional
import logging

from ..models import Appointment, Doctor, User
from ..models.appointment import SLOT_LABEL_LENGTH
from ..core.exceptions import BadRequestError, ConflictError, NotFoundError, ServiceError
from ..core.locks import SlotLockRegistry, slot_locks
from ..core.security import AuthorizationError
from . import notification_service

logger = logging.getLogger(__name__)


class BookingService:
    """Reserves and releases doctor slots.

    An appointment row and the doctor's ``slots_booked`` entry are always
    written in the same transaction, under the doctor's slot lock, so the
    slot map stays equal to the set of non-cancelled appointments.
    """

    def __init__(self, db: Session, notifier=None, locks: Optional[SlotLockRegistry] = None):
        self.db = db
        self.notifier = notifier
        self.locks = locks or slot_locks

    def reserve_slot(self, user_id: int, doctor_id: int, slot_date: str, slot_time: str) -> Appointment:
        """Book ``slot_time`` on ``slot_date`` with a doctor."""
        slot_date = (slot_date or "").strip()
        slot_time = (slot_time or "").strip()
        if not user_id or not doctor_id or not slot_date or not slot_time:
            raise BadRequestError("All fields are required")

        if len(slot_date) > SLOT_LABEL_LENGTH or len(slot_time) > SLOT_LABEL_LENGTH:
            raise BadRequestError(f"Slot date and time must be at most {SLOT_LABEL_LENGTH} characters")

        user = self.db.query(User).filter(User.id == user_id).first()
        if not user:
            raise NotFoundError("User not found")

        with self.locks.hold(doctor_id):
            try:
                doctor = self._lock_doctor(doctor_id)
                if not doctor or not doctor.available:
                    self.db.rollback()
                    raise ConflictError("Doctor not available")

                if doctor.is_slot_booked(slot_date, slot_time):
                    self.db.rollback()
                    raise ConflictError("Slot not available")

                slots = dict(doctor.slots_booked or {})
                slots[slot_date] = list(slots.get(slot_date, [])) + [slot_time]
                doctor.slots_booked = slots

                appointment = Appointment(
                    user_id=user.id,
                    doctor_id=doctor.id,
                    slot_date=slot_date,
                    slot_time=slot_time,
                    amount=doctor.fees,
                    payment=False,
                    cancelled=False,
                )
                self.db.add(appointment)
                self.db.commit()
                self.db.refresh(appointment)

            except SQLAlchemyError as e:
                self.db.rollback()
                logger.error(f"Booking failed for doctor {doctor_id} on {slot_date} {slot_time}: {e}")
                raise ServiceError("Could not complete the booking") from e

        logger.info(
            f"Appointment {appointment.id} booked: user={user.id} doctor={doctor.id} "
            f"slot={slot_date} {slot_time}"
        )
        self._notify(notification_service.booking_confirmed(user, doctor, appointment))
        return appointment

    def cancel_slot(self, user_id: int, appointment_id: int) -> Appointment:
        """Cancel an appointment on behalf of the user who booked it."""
        return self._cancel(appointment_id, requester_id=user_id)

    def cancel_as_admin(self, appointment_id: int) -> Appointment:
        """Cancel any appointment; no ownership check."""
        return self._cancel(appointment_id, requester_id=None)

    def list_appointments(self, user_id: int) -> List[Appointment]:
        """A user's appointments, newest first, with the doctor's current profile."""
        return (
            self.db.query(Appointment)
            .options(joinedload(Appointment.doctor))
            .filter(Appointment.user_id == user_id)
            .order_by(Appointment.created_at.desc(), Appointment.id.desc())
            .all()
        )

    def _cancel(self, appointment_id: int, requester_id: Optional[int]) -> Appointment:
        appointment = self._get_appointment(appointment_id)
        if requester_id is not None and appointment.user_id != requester_id:
            logger.warning(f"User {requester_id} tried to cancel appointment {appointment_id}")
            raise AuthorizationError("Unauthorized action")

        doctor_id = appointment.doctor_id
        with self.locks.hold(doctor_id):
            try:
                appointment = self._get_appointment(appointment_id, for_update=True)
                if appointment.cancelled:
                    self.db.rollback()
                    raise ConflictError("Appointment already cancelled")

                appointment.cancelled = True

                doctor = self._lock_doctor(doctor_id)
                if doctor is not None:
                    slots = dict(doctor.slots_booked or {})
                    slots[appointment.slot_date] = [
                        t for t in slots.get(appointment.slot_date, []) if t != appointment.slot_time
                    ]
                    doctor.slots_booked = slots

                self.db.commit()
                self.db.refresh(appointment)

            except SQLAlchemyError as e:
                self.db.rollback()
                logger.error(f"Cancelling appointment {appointment_id} failed: {e}")
                raise ServiceError("Could not cancel the appointment") from e

        by_admin = requester_id is None
        logger.info(f"Appointment {appointment_id} cancelled{' by admin' if by_admin else ''}")

        user = self.db.query(User).filter(User.id == appointment.user_id).first()
        if user and doctor:
            self._notify(notification_service.booking_cancelled(user, doctor, appointment, by_admin=by_admin))
        return appointment

    def _lock_doctor(self, doctor_id: int) -> Optional[Doctor]:
        # Always read the committed row, never a stale identity-map copy.
        return (
            self.db.query(Doctor)
            .filter(Doctor.id == doctor_id)
            .populate_existing()
            .with_for_update()
            .first()
        )

    def _get_appointment(self, appointment_id: int, for_update: bool = False) -> Appointment:
        query = self.db.query(Appointment).filter(Appointment.id == appointment_id)
        if for_update:
            query = query.populate_existing().with_for_update()
        appointment = query.first()
        if not appointment:
            raise NotFoundError("Appointment not found")
        return appointment

    def _notify(self, notification) -> None:
        if self.notifier is None:
            return
        try:
            self.notifier.dispatch(notification)
        except Exception as e:
            logger.error(f"Could not schedule notification '{notification.subject}': {e}")
