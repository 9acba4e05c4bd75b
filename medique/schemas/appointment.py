from pydantic import BaseModel, ConfigDict
from typing import Optional, List, Dict, Any
from datetime import datetime

from .doctor import DoctorSummary

class BookAppointmentRequest(BaseModel):
    # Presence is checked by the booking service so that a missing field
    # is reported as a booking failure rather than a schema error.
    doctor_id: Optional[int] = None
    slot_date: Optional[str] = None
    slot_time: Optional[str] = None

class CancelAppointmentRequest(BaseModel):
    appointment_id: int

class BookAppointmentResponse(BaseModel):
    success: bool = True
    message: str
    appointment_id: int

class MessageResponse(BaseModel):
    success: bool = True
    message: str

class AppointmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    doctor_id: int
    slot_date: str
    slot_time: str
    amount: float
    payment: bool
    cancelled: bool
    created_at: Optional[datetime] = None

class AppointmentWithDoctor(AppointmentResponse):
    doctor: DoctorSummary

class AppointmentListResponse(BaseModel):
    success: bool = True
    appointments: List[AppointmentWithDoctor]

class PatientSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str
    image: Optional[str] = None
    dob: Optional[str] = None

class AdminAppointment(AppointmentWithDoctor):
    user: PatientSummary

class AdminAppointmentListResponse(BaseModel):
    success: bool = True
    appointments: List[AdminAppointment]

class DashboardData(BaseModel):
    doctors: int
    appointments: int
    patients: int
    latest_appointments: List[AdminAppointment]

class DashboardResponse(BaseModel):
    success: bool = True
    dashboard: DashboardData
