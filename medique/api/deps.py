from fastapi import BackgroundTasks, Depends, HTTPException, status, Request
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from typing import AsyncGenerator
from datetime import datetime

from ..core.config import settings
from ..core.database import get_db, get_redis
from ..core.security import (
    security, verify_token, AuthenticationError,
    AuthorizationError, UserRole, TokenPayload, ADMIN_SUBJECT, ACCESS_TOKEN
)
from ..clients.cloudinary_client import CloudinaryClient
from ..clients.razorpay_client import RazorpayClient
from ..models import User
from ..services.notification_service import NotificationDispatcher

async def get_current_user_token(
    credentials: HTTPAuthorizationCredentials = Depends(security)
) -> TokenPayload:
    """Decode the bearer credential sent with the request."""
    token_payload = verify_token(credentials.credentials)
    if not token_payload or token_payload.token_type != ACCESS_TOKEN:
        raise AuthenticationError("Invalid or expired token")
    return token_payload

async def get_current_user(
    token_payload: TokenPayload = Depends(get_current_user_token),
    db: Session = Depends(get_db)
) -> User:
    """Load the patient the bearer token was issued to."""
    if token_payload.role != UserRole.PATIENT or not (token_payload.sub or "").isdigit():
        raise AuthenticationError("Invalid token payload")

    user = db.query(User).filter(User.id == int(token_payload.sub)).first()
    if not user or not user.is_active:
        raise AuthenticationError("User not found or deactivated")

    user.last_login = datetime.utcnow()
    db.commit()

    return user

async def get_admin(
    token_payload: TokenPayload = Depends(get_current_user_token)
) -> TokenPayload:
    """Require the administrator role."""
    if token_payload.role != UserRole.ADMIN or token_payload.sub != ADMIN_SUBJECT:
        raise AuthorizationError("Admin access required")

    if (token_payload.email or "").lower() != settings.ADMIN_EMAIL.lower():
        raise AuthorizationError("Admin access required")

    return token_payload

# Rate limiting dependency
async def rate_limit_check(
    request: Request,
    redis_client = Depends(get_redis)
) -> None:
    """Basic rate limiting for authentication endpoints."""
    client_ip = request.client.host if request.client else "unknown"
    key = f"rate_limit:{request.url.path}:{client_ip}"

    current_requests = redis_client.get(key)
    if current_requests is None:
        redis_client.setex(key, settings.RATE_LIMIT_WINDOW_SECONDS, 1)
    else:
        if int(current_requests) >= settings.RATE_LIMIT_REQUESTS:
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail="Too many requests. Please try again later."
            )
        redis_client.incr(key)

# External collaborators
def get_notifier(background_tasks: BackgroundTasks) -> NotificationDispatcher:
    """Emails are sent after the response has gone out."""
    return NotificationDispatcher(background_tasks)

async def get_payment_gateway() -> AsyncGenerator[RazorpayClient, None]:
    async with RazorpayClient() as client:
        yield client

def get_blob_storage() -> CloudinaryClient:
    return CloudinaryClient()
