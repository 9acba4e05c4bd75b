from pydantic import BaseModel, EmailStr, ConfigDict, Field
from typing import Optional, Dict, List, Any
from datetime import datetime

class DoctorResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: EmailStr
    image: Optional[str] = None
    speciality: str
    degree: str
    experience: str
    about: str
    fees: float
    address: Dict[str, Any]
    available: bool
    slots_booked: Dict[str, List[str]] = Field(default_factory=dict)
    created_at: Optional[datetime] = None

class DoctorSummary(BaseModel):
    """Display fields of a doctor shown next to an appointment."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    speciality: str
    image: Optional[str] = None
    address: Dict[str, Any]
    fees: Optional[float] = None

class DoctorUpdate(BaseModel):
    name: Optional[str] = None
    speciality: Optional[str] = None
    degree: Optional[str] = None
    experience: Optional[str] = None
    about: Optional[str] = None
    fees: Optional[float] = Field(default=None, gt=0)
    address: Optional[Dict[str, Any]] = None

class DoctorListResponse(BaseModel):
    success: bool = True
    doctors: List[DoctorResponse]

class DoctorDetailResponse(BaseModel):
    success: bool = True
    doctor: DoctorResponse

class DoctorMutationResponse(BaseModel):
    success: bool = True
    message: str
    doctor: DoctorResponse

class AvailabilityResponse(BaseModel):
    success: bool = True
    message: str
    available: bool
