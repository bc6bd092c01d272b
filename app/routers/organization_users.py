"""
WorkForce - Organization Users Router

API endpoints for bringing staff into an organization.

Endpoints:
- POST /organization-users/invite - Invite a staff member

Invitation failures are answered with 200 and an ``error`` key.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_async_session
from app.dependencies import get_current_profile
from app.models.user import Profile
from app.schemas.organization_users import InviteUserRequest
from app.services.organization_user_service import OrganizationUserService


router = APIRouter(prefix="/organization-users", tags=["Organization Users"])


@router.post("/invite")
async def invite_user(
    request: InviteUserRequest,
    db: AsyncSession = Depends(get_async_session),
    inviter: Profile = Depends(get_current_profile),
):
    """Create an account for a staff member and link it to the organization."""
    service = OrganizationUserService(db)
    result = await service.invite_user(inviter, request)
    return result.payload
