"""Password hashing and bearer tokens.

Patients and the administrator go through the same bcrypt verification;
the administrator's hash lives in configuration instead of the users table.
"""

from datetime import datetime, timedelta
from typing import Optional
from jose import JWTError, jwt
from passlib.context import CryptContext
from fastapi import HTTPException, status
from fastapi.security import HTTPBearer
from pydantic import BaseModel
import secrets
from enum import Enum

from .config import settings

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# Reads "Authorization: Bearer <token>"
security = HTTPBearer()

ADMIN_SUBJECT = "admin"
ACCESS_TOKEN = "access"

class UserRole(str, Enum):
    ADMIN = "admin"
    PATIENT = "patient"

class TokenPayload(BaseModel):
    sub: Optional[str] = None
    email: Optional[str] = None
    role: Optional[UserRole] = None
    exp: Optional[int] = None
    token_type: Optional[str] = None

def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    if not hashed_password:
        return False
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError:
        # Not a hash passlib recognises
        return False

def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)

def create_access_token(
    subject: str,
    email: str,
    role: UserRole,
    expires_delta: Optional[timedelta] = None
) -> str:
    """Sign a bearer token for ``subject`` acting in ``role``."""
    lifetime = expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    claims = {
        "sub": subject,
        "email": email,
        "role": role.value,
        "exp": datetime.utcnow() + lifetime,
        "token_type": ACCESS_TOKEN,
    }
    return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.ALGORITHM)

def create_user_token(user_id: int, email: str) -> str:
    return create_access_token(str(user_id), email, UserRole.PATIENT)

def create_admin_token(email: str) -> str:
    return create_access_token(ADMIN_SUBJECT, email, UserRole.ADMIN)

def verify_token(token: str) -> Optional[TokenPayload]:
    """Decode a bearer token; None when the signature, expiry or claims are bad."""
    try:
        claims = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        return TokenPayload(**claims)
    except (JWTError, ValueError):
        return None

def verify_admin_credentials(email: str, password: str) -> bool:
    """Check submitted credentials against the configured administrator."""
    if not settings.ADMIN_PASSWORD_HASH:
        return False

    email_matches = secrets.compare_digest(
        email.strip().lower().encode(),
        settings.ADMIN_EMAIL.strip().lower().encode()
    )
    # Always run the hash check so timing does not reveal the email match
    password_matches = verify_password(password, settings.ADMIN_PASSWORD_HASH)
    return email_matches and password_matches

class AuthenticationError(HTTPException):
    def __init__(self, detail: str = "Could not validate credentials"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )

class AuthorizationError(HTTPException):
    def __init__(self, detail: str = "Not enough permissions"):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=detail,
        )
