from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy.orm import Session
from typing import Optional

from ...core.database import get_db
from ...api.deps import get_admin, get_blob_storage, get_notifier
from ...services.admin_service import AdminService
from ...services.booking_service import BookingService
from ...services.doctor_service import DoctorService
from ...schemas.appointment import (
    AdminAppointment, AdminAppointmentListResponse, CancelAppointmentRequest,
    DashboardData, DashboardResponse, MessageResponse
)
from ...schemas.doctor import (
    AvailabilityResponse, DoctorListResponse, DoctorMutationResponse,
    DoctorResponse, DoctorUpdate
)

# Every route here requires the administrator bearer token
router = APIRouter(prefix="/admin", tags=["Admin"], dependencies=[Depends(get_admin)])

@router.post("/doctors", response_model=DoctorMutationResponse)
async def add_doctor(
    name: Optional[str] = Form(None),
    email: Optional[str] = Form(None),
    speciality: Optional[str] = Form(None),
    degree: Optional[str] = Form(None),
    experience: Optional[str] = Form(None),
    about: Optional[str] = Form(None),
    fees: Optional[float] = Form(None),
    address: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
    db: Session = Depends(get_db),
    blob_storage = Depends(get_blob_storage)
):
    """Add a doctor to the directory."""
    image_url = None
    if image is not None and image.filename:
        image_url = await blob_storage.upload(image)

    doctor = DoctorService(db).add_doctor(
        name, email, speciality, degree, experience, about, fees, address,
        image_url=image_url
    )
    return DoctorMutationResponse(message="Doctor added", doctor=DoctorResponse.model_validate(doctor))

@router.get("/doctors", response_model=DoctorListResponse)
async def all_doctors(db: Session = Depends(get_db)):
    doctors = DoctorService(db).list_doctors()
    return DoctorListResponse(doctors=[DoctorResponse.model_validate(d) for d in doctors])

@router.patch("/doctors/{doctor_id}", response_model=DoctorMutationResponse)
async def update_doctor(
    doctor_id: int,
    changes: DoctorUpdate,
    db: Session = Depends(get_db)
):
    """Edit a doctor's profile. Fee changes apply to future bookings only."""
    doctor = DoctorService(db).update_doctor(doctor_id, changes)
    return DoctorMutationResponse(message="Doctor updated", doctor=DoctorResponse.model_validate(doctor))

@router.post("/doctors/{doctor_id}/availability", response_model=AvailabilityResponse)
async def change_availability(doctor_id: int, db: Session = Depends(get_db)):
    """Toggle whether a doctor accepts bookings."""
    doctor = DoctorService(db).change_availability(doctor_id)
    return AvailabilityResponse(message="Availability changed", available=doctor.available)

@router.get("/appointments", response_model=AdminAppointmentListResponse)
async def all_appointments(db: Session = Depends(get_db)):
    appointments = AdminService(db).all_appointments()
    return AdminAppointmentListResponse(
        appointments=[AdminAppointment.model_validate(a) for a in appointments]
    )

@router.post("/appointments/cancel", response_model=MessageResponse)
async def cancel_appointment(
    cancellation: CancelAppointmentRequest,
    db: Session = Depends(get_db),
    notifier = Depends(get_notifier)
):
    """Cancel any appointment and release its slot."""
    BookingService(db, notifier).cancel_as_admin(cancellation.appointment_id)
    return MessageResponse(message="Appointment cancelled")

@router.get("/dashboard", response_model=DashboardResponse)
async def dashboard(db: Session = Depends(get_db)):
    data = AdminService(db).dashboard()
    return DashboardResponse(
        dashboard=DashboardData(
            doctors=data["doctors"],
            appointments=data["appointments"],
            patients=data["patients"],
            latest_appointments=[AdminAppointment.model_validate(a) for a in data["latest_appointments"]],
        )
    )
