from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...core.database import get_db
from ...api.deps import get_current_user, get_notifier
from ...services.booking_service import BookingService
from ...schemas.appointment import (
    BookAppointmentRequest, BookAppointmentResponse, CancelAppointmentRequest,
    MessageResponse, AppointmentListResponse, AppointmentWithDoctor
)
from ...models import User

router = APIRouter(prefix="/appointments", tags=["Appointments"])

@router.post("", response_model=BookAppointmentResponse)
async def book_appointment(
    booking: BookAppointmentRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    notifier = Depends(get_notifier)
):
    """Reserve a slot with a doctor for the current user."""
    booking_service = BookingService(db, notifier)
    appointment = booking_service.reserve_slot(
        current_user.id, booking.doctor_id, booking.slot_date, booking.slot_time
    )
    return BookAppointmentResponse(message="Appointment booked", appointment_id=appointment.id)

@router.get("", response_model=AppointmentListResponse)
async def list_appointments(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """List the current user's appointments, most recent first."""
    appointments = BookingService(db).list_appointments(current_user.id)
    return AppointmentListResponse(
        appointments=[AppointmentWithDoctor.model_validate(a) for a in appointments]
    )

@router.post("/cancel", response_model=MessageResponse)
async def cancel_appointment(
    cancellation: CancelAppointmentRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    notifier = Depends(get_notifier)
):
    """Cancel one of the current user's appointments and release its slot."""
    booking_service = BookingService(db, notifier)
    booking_service.cancel_slot(current_user.id, cancellation.appointment_id)
    return MessageResponse(message="Appointment cancelled")
