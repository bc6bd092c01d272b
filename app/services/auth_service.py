"""
WorkForce - Authentication Service

Business logic for account registration and login.

Registration only creates the account; the profile is provisioned by the
account insert hook and joins an organization later through onboarding or
an invitation.
"""

import logging
import uuid
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.models.user import User
from app.utils.error_handling import ConflictException
from app.utils.security import create_access_token, get_password_hash, verify_password

logger = logging.getLogger(__name__)


class AuthService:
    """Service for authentication operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_user_by_email(self, email: str) -> Optional[User]:
        """Get user by email address."""
        result = await self.db.execute(
            select(User).where(User.email == email.lower())
        )
        return result.scalar_one_or_none()

    async def get_user_by_id(self, user_id: uuid.UUID) -> Optional[User]:
        """Get user by ID."""
        result = await self.db.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    async def register_user(
        self,
        email: str,
        password: str,
        first_name: str,
        last_name: str,
    ) -> User:
        """
        Create a new account.

        Raises:
            ConflictException: If the email is already registered
        """
        if await self.get_user_by_email(email):
            raise ConflictException("Email already registered", details={"email": email.lower()})

        user = User(
            email=email.lower(),
            hashed_password=get_password_hash(password),
            first_name=first_name,
            last_name=last_name,
            is_active=True,
            email_confirmed=False,
        )
        self.db.add(user)
        await self.db.commit()

        logger.info(f"Registered account {user.id}")
        return user

    async def authenticate_user(self, email: str, password: str) -> Optional[User]:
        """
        Authenticate user with email and password.

        Returns:
            User if authentication successful, None otherwise
        """
        user = await self.get_user_by_email(email)

        if not user:
            return None

        if not verify_password(password, user.hashed_password):
            return None

        return user

    def create_tokens(self, user: User) -> dict:
        """
        Create an access token for the account.

        Returns:
            Dictionary with access_token, token_type, expires_in
        """
        token_data = {
            "sub": str(user.id),
            "email": user.email,
        }

        return {
            "access_token": create_access_token(token_data),
            "token_type": "bearer",
            "expires_in": settings.access_token_expire_minutes * 60,
        }
