from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy.orm import Session
from typing import Optional

from ...core.database import get_db
from ...api.deps import get_current_user, get_blob_storage
from ...services.auth_service import AuthService
from ...schemas.auth import ProfileResponse, ProfileUpdateResponse, UserResponse
from ...models import User

router = APIRouter(prefix="/users", tags=["Users"])

@router.get("/me", response_model=ProfileResponse)
async def get_profile(
    current_user: User = Depends(get_current_user)
):
    """Get the current user's profile."""
    return ProfileResponse(user=UserResponse.model_validate(current_user))

@router.put("/me", response_model=ProfileUpdateResponse)
async def update_profile(
    name: Optional[str] = Form(None),
    phone: Optional[str] = Form(None),
    address: Optional[str] = Form(None),
    dob: Optional[str] = Form(None),
    gender: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    blob_storage = Depends(get_blob_storage)
):
    """Update the current user's profile, optionally replacing the picture."""
    image_url = None
    if image is not None and image.filename:
        image_url = await blob_storage.upload(image)

    auth_service = AuthService(db)
    user = auth_service.update_profile(
        current_user, name, phone, address, dob, gender, image_url=image_url
    )
    return ProfileUpdateResponse(message="Profile updated", user=UserResponse.model_validate(user))
