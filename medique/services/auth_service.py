from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from fastapi import HTTPException, status
from datetime import datetime
from typing import Optional
import json
import logging
import re

from ..models import User
from ..core.config import settings
from ..core.exceptions import BadRequestError, NotFoundError
from ..core.security import (
    verify_password, get_password_hash, create_user_token,
    create_admin_token, verify_admin_credentials
)
from ..schemas.auth import UserLogin, UserRegister, AdminLogin

logger = logging.getLogger(__name__)

PHONE_PATTERN = re.compile(r"^\d{10}$")

class AuthService:
    def __init__(self, db: Session):
        self.db = db

    def register_user(self, user_data: UserRegister) -> str:
        """Register a new user and return a bearer token for it."""
        name = (user_data.name or "").strip()
        if not name or not user_data.email or not user_data.password:
            raise BadRequestError("Missing details")

        if len(user_data.password) < settings.MIN_PASSWORD_LENGTH:
            raise BadRequestError("Enter a strong password")

        email = user_data.email.lower()
        existing_user = self.db.query(User).filter(User.email == email).first()
        if existing_user:
            raise BadRequestError("Email already registered")

        new_user = User(
            name=name,
            email=email,
            password_hash=get_password_hash(user_data.password),
            is_active=True,
        )

        self.db.add(new_user)
        try:
            self.db.commit()
        except IntegrityError:
            # Lost a race against a concurrent registration of the same email
            self.db.rollback()
            raise BadRequestError("Email already registered")
        self.db.refresh(new_user)

        logger.info(f"Registered user {new_user.id}")
        return create_user_token(new_user.id, new_user.email)

    def authenticate_user(self, login_data: UserLogin) -> str:
        """Authenticate user and return a bearer token."""
        user = self.db.query(User).filter(
            User.email == login_data.email.lower()
        ).first()

        if not user:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="User does not exist"
            )

        if not verify_password(login_data.password, user.password_hash):
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid credentials"
            )

        if not user.is_active:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Account is deactivated"
            )

        user.last_login = datetime.utcnow()
        self.db.commit()

        return create_user_token(user.id, user.email)

    def authenticate_admin(self, login_data: AdminLogin) -> str:
        """Check administrator credentials and return an admin bearer token."""
        if not verify_admin_credentials(login_data.email, login_data.password):
            logger.warning("Failed administrator login attempt")
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid credentials"
            )

        return create_admin_token(settings.ADMIN_EMAIL)

    def get_user(self, user_id: int) -> User:
        user = self.db.query(User).filter(User.id == user_id).first()
        if not user:
            raise NotFoundError("User not found")
        return user

    def update_profile(
        self,
        user: User,
        name: Optional[str],
        phone: Optional[str],
        address: Optional[str],
        dob: Optional[str],
        gender: Optional[str],
        image_url: Optional[str] = None,
    ) -> User:
        """Update the contact profile of ``user``.

        ``address`` arrives as a JSON object encoded in a form field.
        """
        if not name or not phone or not dob or not gender:
            raise BadRequestError("Data missing")

        if not PHONE_PATTERN.match(phone):
            raise BadRequestError("Phone number must be exactly 10 digits")

        user.name = name
        user.phone = phone
        user.dob = dob
        user.gender = gender

        if address:
            try:
                parsed_address = json.loads(address)
            except ValueError:
                raise BadRequestError("Address must be a JSON object")
            if not isinstance(parsed_address, dict):
                raise BadRequestError("Address must be a JSON object")
            user.address = parsed_address

        if image_url:
            user.image = image_url

        self.db.commit()
        self.db.refresh(user)
        logger.info(f"Updated profile of user {user.id}")
        return user
