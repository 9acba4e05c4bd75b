from pydantic import BaseModel, EmailStr, ConfigDict
from typing import Optional, Dict, Any
from datetime import datetime

class UserRegister(BaseModel):
    name: Optional[str] = None
    email: Optional[EmailStr] = None
    password: Optional[str] = None

class UserLogin(BaseModel):
    email: EmailStr
    password: str

class AdminLogin(BaseModel):
    email: str
    password: str

class TokenResponse(BaseModel):
    success: bool = True
    token: str
    token_type: str = "bearer"

class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: EmailStr
    image: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[Dict[str, Any]] = None
    gender: Optional[str] = None
    dob: Optional[str] = None
    created_at: Optional[datetime] = None

class ProfileResponse(BaseModel):
    success: bool = True
    user: UserResponse

class ProfileUpdateResponse(BaseModel):
    success: bool = True
    message: str
    user: UserResponse
