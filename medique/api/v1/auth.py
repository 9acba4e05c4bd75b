from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...core.database import get_db
from ...api.deps import rate_limit_check
from ...services.auth_service import AuthService
from ...schemas.auth import UserLogin, UserRegister, AdminLogin, TokenResponse

router = APIRouter(prefix="/auth", tags=["Authentication"])

@router.post("/register", response_model=TokenResponse)
async def register(
    user_data: UserRegister,
    db: Session = Depends(get_db),
    _: None = Depends(rate_limit_check)
):
    """Register a new user."""
    auth_service = AuthService(db)
    token = auth_service.register_user(user_data)
    return TokenResponse(token=token)

@router.post("/login", response_model=TokenResponse)
async def login(
    login_data: UserLogin,
    db: Session = Depends(get_db),
    _: None = Depends(rate_limit_check)
):
    """Authenticate user and return an access token."""
    auth_service = AuthService(db)
    token = auth_service.authenticate_user(login_data)
    return TokenResponse(token=token)

@router.post("/admin/login", response_model=TokenResponse)
async def admin_login(
    login_data: AdminLogin,
    db: Session = Depends(get_db),
    _: None = Depends(rate_limit_check)
):
    """Authenticate the administrator."""
    auth_service = AuthService(db)
    token = auth_service.authenticate_admin(login_data)
    return TokenResponse(token=token)
