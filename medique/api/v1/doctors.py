from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...core.database import get_db
from ...services.doctor_service import DoctorService
from ...schemas.doctor import DoctorDetailResponse, DoctorListResponse, DoctorResponse

router = APIRouter(prefix="/doctors", tags=["Doctors"])

@router.get("", response_model=DoctorListResponse)
async def list_doctors(db: Session = Depends(get_db)):
    """List every doctor with availability and booked slots."""
    doctors = DoctorService(db).list_doctors()
    return DoctorListResponse(doctors=[DoctorResponse.model_validate(d) for d in doctors])

@router.get("/{doctor_id}", response_model=DoctorDetailResponse)
async def get_doctor(doctor_id: int, db: Session = Depends(get_db)):
    doctor = DoctorService(db).get_doctor(doctor_id)
    return DoctorDetailResponse(doctor=DoctorResponse.model_validate(doctor))
