"""
WorkForce - Organization User Management Service

Service for inviting staff into an organization.

An invitation creates the auth account with a temporary password and then
links the profile that the account-creation hook provisioned. The two
writes are separate commits: if the second finds no profile, the account
is left unlinked and the result says so.
"""

import logging
from typing import Any, Dict, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.tier_enums import ProfileRole
from app.models.user import Profile, User
from app.schemas.organization_users import InviteUserRequest
from app.services.results import DispatchResult, SoftFailure, Success
from app.utils.security import generate_temporary_password, get_password_hash

logger = logging.getLogger(__name__)


DEFAULT_DEPARTMENT = "Field Ops"
INVITE_SUCCESS_MESSAGE = "User invited and profile created successfully"


def _user_payload(user: User) -> Dict[str, Any]:
    return {
        "id": str(user.id),
        "email": user.email,
        "first_name": user.first_name,
        "last_name": user.last_name,
        "email_confirmed": user.email_confirmed,
    }


def _failure(message: str, details: Optional[Dict[str, Any]] = None) -> SoftFailure:
    payload: Dict[str, Any] = {"error": message}
    if details is not None:
        payload["details"] = details
    return SoftFailure(reason=message, payload=payload)


class OrganizationUserService:
    """Service for managing organization users."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def invite_user(self, inviter: Profile, request: InviteUserRequest) -> DispatchResult:
        """
        Invite a staff member into the inviter's organization.

        Args:
            inviter: Profile of the authenticated caller
            request: Invitation details

        Returns:
            Success with the new account, or SoftFailure with the error payload
        """
        if not request.email or not request.org_id:
            return _failure("Email and Organization ID are required")

        if inviter.organization_id is None or str(inviter.organization_id) != str(request.org_id):
            logger.warning(
                f"Profile {inviter.id} tried to invite into organization {request.org_id}"
            )
            return _failure("Permission denied: You can only invite users to your own organization.")

        try:
            role = ProfileRole(request.role) if request.role else ProfileRole.ASSOCIATE
        except ValueError:
            return _failure(f"Invalid role: {request.role}", {"allowed": [r.value for r in ProfileRole]})

        email = request.email.strip().lower()
        existing = await self.db.execute(select(User.id).where(User.email == email))
        if existing.scalar_one_or_none() is not None:
            return _failure(
                "A user with this email address has already been registered",
                {"email": email},
            )

        temp_password = generate_temporary_password()
        new_user = User(
            email=email,
            hashed_password=get_password_hash(temp_password),
            first_name=(request.first_name or "").strip(),
            last_name=(request.last_name or "").strip(),
            is_active=True,
            email_confirmed=True,
        )

        try:
            self.db.add(new_user)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Failed to create invited account {email}: {e}")
            return _failure("Failed to create user account", {"message": str(e)})

        logger.info(f"Created invited account {new_user.id} for organization {inviter.organization_id}")

        try:
            result = await self.db.execute(
                update(Profile)
                .where(Profile.id == new_user.id)
                .values(
                    organization_id=inviter.organization_id,
                    role=role,
                    phone=request.phone or None,
                    department=request.department or DEFAULT_DEPARTMENT,
                )
            )
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Profile update error for invited account {new_user.id}: {e}")
            return _failure(
                "Failed to link the invited user's profile",
                {"message": str(e), "user_id": str(new_user.id), "profile_linked": False},
            )

        if result.rowcount == 0:
            # Account exists but is not a member of any organization
            logger.warning(
                f"No profile provisioned for invited account {new_user.id}; account left unlinked"
            )
            return _failure(
                "User account created but no profile was found to link",
                {"user_id": str(new_user.id), "profile_linked": False},
            )

        return Success(payload={
            "message": INVITE_SUCCESS_MESSAGE,
            "user": _user_payload(new_user),
        })
